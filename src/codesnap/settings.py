from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import find_dotenv
from pydantic import BaseModel, ConfigDict, Field

from codesnap.config import (
    CHARS_PER_TOKEN,
    DEFAULT_EXCLUDE_FILENAMES,
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_INCLUDE_EXTENSIONS,
    DEFAULT_INCLUDE_FILENAMES,
    EXPANDED_CODE_EXTENSIONS,
    HARD_MAX_FILE_SIZE,
    INFRA_EXTENSIONS,
    REDUCED_FOOTPRINT,
    TOP_K,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from codesnap.discovery import InfraDetection

ENV_FILE = find_dotenv(usecwd=True)

KIB = 1024


class Mode(StrEnum):
    """Project-type preset biasing extension defaults and scoring."""

    AUTO = auto()
    CODE = auto()
    INFRA = auto()
    DOC = auto()


class OversizeStrategy(StrEnum):
    """What the transformer does with content larger than the per-file budget."""

    KEEP = auto()
    TRUNCATE = auto()
    SUMMARIZE = auto()


class Settings(BaseModel):
    """Configuration settings for a codesnap run, as given on the command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    directory: Path = Field(default_factory=Path.cwd, description="Root directory to scan.")
    ignore: list[str] = Field(default_factory=list, description="Additional ignore globs.")
    extensions: list[str] | None = Field(default=None, description="File extensions to include.")
    files: list[str] | None = Field(default=None, description="Specific filenames to include.")
    exclude: list[str] | None = Field(default=None, description="Filenames or globs to exclude.")

    limit: int = Field(default=1024, ge=0, description="Total size limit in KB.")
    tokens: int = Field(default=100_000, ge=0, description="Approximate token limit (0 = unlimited).")
    max_file_size: int = Field(default=100, ge=1, description="Maximum size for a single file in KB.")
    max_files: int = Field(default=100, ge=1, description="Maximum number of files to consider.")
    recent: int = Field(default=0, ge=0, description="Only files modified in the last N days.")
    mode: Mode = Field(default=Mode.CODE, description="Project-type preset.")

    respect_gitignore: bool = Field(default=True, description="Respect .gitignore rules.")
    scan_all: bool = Field(default=False, description="Content-sniff every unknown file.")
    force_utf8: bool = Field(default=False, description="Skip files that are not valid UTF-8.")

    tree: bool = Field(default=False, description="Include the project tree.")
    list_only: bool = Field(default=False, description="List files without content.")
    dry_run: bool = Field(default=False, description="Show what would be collected.")
    summary: bool = Field(default=False, description="Show only the summary.")
    interactive: bool = Field(default=False, description="Select files interactively.")

    strip_comments: bool = Field(default=False, description="Strip code comments.")
    optimize_tokens: bool = Field(default=False, description="Token optimizations (strips comments).")
    truncate_large_files: bool = Field(default=False, description="Truncate files over max-file-size.")
    summarize_large_files: bool = Field(default=False, description="Summarize files over max-file-size.")

    redact_credentials: bool = Field(default=True, description="Redact API keys and credentials.")
    show_redacted: bool = Field(default=False, description="Report each redacted credential.")

    clipboard: bool = Field(default=True, description="Copy the document to the clipboard.")
    output: Path | None = Field(default=None, description="Write the document to this file.")
    verbose: bool = Field(default=False, description="Verbose logging.")
    log_file: str = Field(default="", description="Log file path.")

    save_config: str = Field(default="", description="Save these options as a named profile.")
    load_config: str = Field(default="", description="Load a named profile.")
    list_configs: bool = Field(default=False, description="List saved profiles.")


class Budget(BaseModel):
    """Hard ceilings for a run. Read-only for the whole pipeline.

    Attributes:
        total_byte_limit: cumulative bytes the reader may read.
        token_limit_chars: token limit expressed in characters (0 disables the ceiling).
        max_files: maximum number of files the reader considers.
        max_file_size: per-file budget handed to the transformer.
        max_read_size: files larger than this are skipped before reading.
        top_k: number of top-scored files admitted regardless of size.
        reduced_footprint: size charged for a file that will be truncated or summarized.
    """

    model_config = ConfigDict(frozen=True)

    total_byte_limit: int = Field(..., ge=0)
    token_limit_chars: int = Field(..., ge=0)
    max_files: int = Field(..., ge=1)
    max_file_size: int = Field(..., ge=1)
    max_read_size: int = Field(..., ge=1)
    top_k: int = Field(default=TOP_K, ge=0)
    reduced_footprint: int = Field(default=REDUCED_FOOTPRINT, ge=0)


class RunConfig(BaseModel):
    """Immutable, fully-derived configuration passed to every pipeline stage."""

    model_config = ConfigDict(frozen=True)

    root: Path
    mode: Mode
    ignore_patterns: tuple[str, ...]
    include_extensions: tuple[str, ...]
    include_filenames: tuple[str, ...]
    exclude_filenames: tuple[str, ...]
    respect_gitignore: bool
    recent_days: int
    scan_all: bool
    force_utf8: bool
    strip_comments: bool
    oversize: OversizeStrategy
    tree: bool
    list_only: bool
    redact_credentials: bool
    budget: Budget


def normalize_extensions(extensions: Iterable[str]) -> list[str]:
    """Lowercase extensions and make sure each starts with a dot.

    Args:
        extensions (Iterable[str]): raw extensions such as `py`, `.TS` or `.env.example`

    Returns:
        list[str]: normalized extensions, blanks dropped
    """
    out: list[str] = []
    for ext in extensions:
        e = (ext or "").strip().lower()
        if not e:
            continue
        out.append(e if e.startswith(".") else f".{e}")
    return out


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def resolve_oversize(settings: Settings) -> OversizeStrategy:
    """Pick the oversize strategy; truncation wins when both flags are set."""
    if settings.truncate_large_files:
        return OversizeStrategy.TRUNCATE
    if settings.summarize_large_files:
        return OversizeStrategy.SUMMARIZE
    return OversizeStrategy.KEEP


def build_budget(settings: Settings, oversize: OversizeStrategy) -> Budget:
    """Convert the user-facing KB/token options into a Budget.

    When an oversize strategy is active, files above `max_file_size` are still read
    (they will be shrunk later), up to the hard per-file read ceiling.
    """
    max_file_size = settings.max_file_size * KIB
    max_read_size = max_file_size if oversize is OversizeStrategy.KEEP else max(HARD_MAX_FILE_SIZE, max_file_size)
    return Budget(
        total_byte_limit=settings.limit * KIB,
        token_limit_chars=settings.tokens * CHARS_PER_TOKEN,
        max_files=settings.max_files,
        max_file_size=max_file_size,
        max_read_size=max_read_size,
    )


def build_run_config(settings: Settings, detection: InfraDetection | None = None) -> RunConfig:
    """Derive the immutable RunConfig from the user settings.

    This is the only place where derived values (KB to bytes, tokens to
    characters, mode-driven defaults) are computed.

    Args:
        settings (Settings): the parsed user settings
        detection (InfraDetection | None): infrastructure detection for `auto` mode;
            ignored for the other modes

    Returns:
        RunConfig: the configuration every pipeline stage receives
    """
    extensions = (
        normalize_extensions(settings.extensions)
        if settings.extensions
        else [*DEFAULT_INCLUDE_EXTENSIONS, *EXPANDED_CODE_EXTENSIONS]
    )
    filenames = list(settings.files) if settings.files else list(DEFAULT_INCLUDE_FILENAMES)

    mode = settings.mode
    if mode is Mode.AUTO:
        mode = Mode.CODE
        if detection is not None and detection.detected:
            mode = Mode.INFRA
            extensions.extend(detection.extra_extensions())
            filenames.extend(detection.extra_filenames())
    elif mode is Mode.INFRA:
        extensions.extend(INFRA_EXTENSIONS)

    oversize = resolve_oversize(settings)
    return RunConfig(
        root=settings.directory.resolve(),
        mode=mode,
        ignore_patterns=_unique([*DEFAULT_IGNORE_PATTERNS, *settings.ignore]),
        include_extensions=_unique(extensions),
        include_filenames=_unique(filenames),
        exclude_filenames=_unique(settings.exclude if settings.exclude else DEFAULT_EXCLUDE_FILENAMES),
        respect_gitignore=settings.respect_gitignore,
        recent_days=settings.recent,
        scan_all=settings.scan_all,
        force_utf8=settings.force_utf8,
        strip_comments=settings.strip_comments or settings.optimize_tokens,
        oversize=oversize,
        tree=settings.tree,
        list_only=settings.list_only,
        redact_credentials=settings.redact_credentials,
        budget=build_budget(settings, oversize),
    )
