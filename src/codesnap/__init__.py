"""codesnap: collect the most relevant files of a project into one LLM-ready document."""

__version__ = "0.1.0"
