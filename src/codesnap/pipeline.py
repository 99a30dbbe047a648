"""Wiring of the core stages.

`collect` runs discovery, reading and scoring; `package` transforms, redacts
and assembles the admitted files. The interactive selector, if any, sits
between the two.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from codesnap.discovery import discover
from codesnap.exceptions import RootDirectoryError
from codesnap.logging import logger
from codesnap.output_construction import DEFAULT_TREE_STRATEGIES, build_document, render_tree
from codesnap.records import DocumentSection, ReadReport, Selection
from codesnap.redaction import Finding, redact_credentials
from codesnap.reader import read_files
from codesnap.scoring import score_and_fit
from codesnap.transform import transform

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime
    from pathlib import Path

    from codesnap.output_construction import TreeResult
    from codesnap.records import ScoredFile
    from codesnap.settings import RunConfig


class CollectResult(BaseModel):
    """What the core stages produced for one run."""

    model_config = ConfigDict(frozen=True)

    candidates: tuple[str, ...] = ()
    report: ReadReport = Field(default_factory=ReadReport)
    selection: Selection = Field(default_factory=Selection)


class PackageResult(BaseModel):
    """The final document plus the credentials redacted from it, per file."""

    model_config = ConfigDict(frozen=True)

    document: str
    findings: dict[str, tuple[Finding, ...]] = Field(default_factory=dict)

    @property
    def redaction_count(self) -> int:
        return sum(len(f) for f in self.findings.values())


def collect(config: RunConfig, *, now: float | None = None) -> CollectResult:
    """Discover, read and score the project files.

    Args:
        config (RunConfig): the run configuration
        now (float | None): current POSIX time for the recency rules

    Returns:
        CollectResult: candidates, read report and the budget-fitted selection

    Raises:
        RootDirectoryError: if the root is not a directory
    """
    if not config.root.is_dir():
        raise RootDirectoryError(folder=config.root)

    candidates = discover(
        config.root,
        ignore_patterns=config.ignore_patterns,
        include_extensions=config.include_extensions,
        include_filenames=config.include_filenames,
        exclude_filenames=config.exclude_filenames,
        respect_gitignore=config.respect_gitignore,
        max_files=config.budget.max_files,
        recent_days=config.recent_days,
        scan_all=config.scan_all,
        now=now,
    )
    if not candidates:
        return CollectResult()

    report = read_files(config.root, candidates, config.budget, force_utf8=config.force_utf8)
    selection = score_and_fit(
        report.files,
        config.budget,
        mode=config.mode,
        recency_applied=config.recent_days > 0,
        oversize=config.oversize,
        now=now,
    )
    return CollectResult(candidates=tuple(candidates), report=report, selection=selection)


def build_sections(
    files: Sequence[ScoredFile],
    config: RunConfig,
) -> tuple[list[DocumentSection], dict[str, tuple[Finding, ...]]]:
    """Transform and redact each admitted file, keeping admission order.

    Returns:
        tuple: the document sections and the redaction findings keyed by path
    """
    sections: list[DocumentSection] = []
    findings: dict[str, tuple[Finding, ...]] = {}
    for scored in files:
        f = scored.file
        content = ""
        if not config.list_only:
            size_budget = config.budget.max_file_size
            if scored.shrink_to is not None:
                size_budget = min(size_budget, scored.shrink_to)
            content = transform(
                f.content,
                f.extension,
                size_budget,
                oversize=config.oversize,
                strip_comments=config.strip_comments,
            )
            if config.redact_credentials:
                result = redact_credentials(content, f.rel)
                content = result.content
                if result.found:
                    findings[f.rel] = result.findings
        sections.append(DocumentSection(rel=f.rel, size=f.size, content=content, language=f.language))
    return sections, findings


def package(
    config: RunConfig,
    files: Sequence[ScoredFile],
    *,
    generated_at: datetime | None = None,
    tree_strategies: Sequence[Callable[[Path, Sequence[str]], TreeResult]] = DEFAULT_TREE_STRATEGIES,
) -> PackageResult:
    """Turn the admitted files into the final document.

    Args:
        config (RunConfig): the run configuration
        files (Sequence[ScoredFile]): the files to render, in order
        generated_at (datetime | None): generation time shown in the document
        tree_strategies (Sequence): tree rendering strategies, tried in order

    Returns:
        PackageResult: the document and the redaction findings
    """
    tree_text = None
    if config.tree:
        tree = render_tree(config.root, [f.rel for f in files], tree_strategies)
        if tree.ok:
            tree_text = tree.text
        else:
            logger.warning("tree_unavailable", reason=tree.reason)

    sections, findings = build_sections(files, config)
    document = build_document(
        sections,
        root_name=config.root.name,
        tree_text=tree_text,
        list_only=config.list_only,
        redaction_notice=config.redact_credentials,
        generated_at=generated_at,
    )
    logger.info(
        "document_built",
        files=len(sections),
        chars=len(document),
        redacted=sum(len(v) for v in findings.values()),
    )
    return PackageResult(document=document, findings=findings)
