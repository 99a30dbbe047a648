"""Relevance scoring and budget fitting.

A file's score is the sum of independent rules, each a plain function of a
`ScoringContext`. Adding a heuristic means appending a function to
`SCORING_RULES`; nothing else changes. Scores may be negative.
"""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from codesnap.config import (
    DOC_EXTENSIONS,
    README_NAMES,
    in_important_folder,
    is_entry_point,
    is_high_priority_name,
)
from codesnap.logging import logger
from codesnap.records import Rejection, RejectionReason, ScoredFile, Selection
from codesnap.settings import Mode, OversizeStrategy

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from codesnap.records import ReadFile
    from codesnap.settings import Budget

SECONDS_PER_DAY = 24 * 60 * 60

EXTENSION_POINTS: dict[str, int] = {
    ".md": 30,
    ".json": 25,
    ".yml": 25,
    ".yaml": 25,
    ".js": 20,
    ".ts": 25,
    ".jsx": 20,
    ".tsx": 25,
    ".py": 20,
    ".go": 20,
    ".java": 20,
    ".rb": 20,
    ".tf": 30,
    ".tfvars": 25,
    ".hcl": 25,
    ".tpl": 20,
}

IMPORT_RE = re.compile(r"import\s+|require\s*\(")
DEFINITION_RE = re.compile(r"function\s+|=>|def\s+|class\s+|interface\s+")
ARCHITECTURE_MARKERS: tuple[str, ...] = (
    "export default",
    "module.exports",
    "@Component",
    "extends React",
    "createSlice",
    "@Injectable",
)
K8S_MARKERS: tuple[str, ...] = ("apiVersion:", "kind:", "metadata:", "spec:")
GENERATED_MARKERS: tuple[str, ...] = (".generated.", ".gen.", "/generated/", "/dist/", "/build/")
TEST_MARKERS: tuple[str, ...] = (".test.", ".spec.", "/__tests__/", "/__mocks__/")


@dataclass(frozen=True)
class ScoringContext:
    """Everything a scoring rule may look at. No rule touches the filesystem."""

    file: ReadFile
    mode: Mode
    recency_applied: bool
    now: float

    @property
    def rel(self) -> str:
        return self.file.rel

    @property
    def anchored(self) -> str:
        """The relative path with a leading slash, so `/dist/` also matches top-level folders."""
        return f"/{self.file.rel}"

    @property
    def basename(self) -> str:
        return PurePosixPath(self.file.rel).name

    @property
    def ext(self) -> str:
        return self.file.extension

    @property
    def size(self) -> int:
        return self.file.size

    @property
    def content(self) -> str:
        return self.file.content


def readme_rule(ctx: ScoringContext) -> int:
    return 200 if ctx.basename.lower() in README_NAMES else 0


def high_priority_rule(ctx: ScoringContext) -> int:
    return 150 if is_high_priority_name(ctx.basename) else 0


def entry_point_rule(ctx: ScoringContext) -> int:
    return 100 if is_entry_point(ctx.rel) else 0


def important_folder_rule(ctx: ScoringContext) -> int:
    return 50 if in_important_folder(ctx.rel) else 0


def extension_rule(ctx: ScoringContext) -> int:
    return EXTENSION_POINTS.get(ctx.ext, 0)


def size_rule(ctx: ScoringContext) -> int:
    """Prefer small files, penalise tiny and huge ones, reward the 500 B - 10 KB sweet spot."""
    size = ctx.size
    points = max(0, 50 - size // 1000)
    if size > 100_000:  # noqa: PLR2004
        points -= 50
    if size < 100:  # noqa: PLR2004
        points -= 20
    if 500 < size < 10_000:  # noqa: PLR2004
        points += 20
    return points


def import_rule(ctx: ScoringContext) -> int:
    return min(20, 2 * len(IMPORT_RE.findall(ctx.content)))


def definition_rule(ctx: ScoringContext) -> int:
    return min(20, len(DEFINITION_RE.findall(ctx.content)))


def architecture_rule(ctx: ScoringContext) -> int:
    return 15 if any(marker in ctx.content for marker in ARCHITECTURE_MARKERS) else 0


def recency_rule(ctx: ScoringContext) -> int:
    """Bonus for files touched in the last two weeks, unless recency already filtered them."""
    if ctx.recency_applied or not ctx.file.mtime:
        return 0
    age_days = (ctx.now - ctx.file.mtime) / SECONDS_PER_DAY
    if age_days >= 14:  # noqa: PLR2004
        return 0
    return max(0, 30 - math.floor(age_days * 2))


def infrastructure_rule(ctx: ScoringContext) -> int:
    if ctx.mode is not Mode.INFRA:
        return 0
    if ctx.ext in {".tf", ".tfvars", ".hcl"}:
        return 100
    if ctx.ext in {".yaml", ".yml"} and any(marker in ctx.content for marker in K8S_MARKERS):
        return 80
    if ctx.basename == "Dockerfile" or ctx.basename.startswith("docker-compose"):
        return 70
    if ctx.ext in {".tpl", ".tmpl", ".j2"}:
        return 60
    return 0


def documentation_rule(ctx: ScoringContext) -> int:
    return 60 if ctx.mode is Mode.DOC and ctx.ext in DOC_EXTENSIONS else 0


def generated_rule(ctx: ScoringContext) -> int:
    return -80 if any(marker in ctx.anchored for marker in GENERATED_MARKERS) else 0


def minified_rule(ctx: ScoringContext) -> int:
    return -100 if ".min." in ctx.basename else 0


def test_file_rule(ctx: ScoringContext) -> int:
    return -40 if any(marker in ctx.anchored for marker in TEST_MARKERS) else 0


SCORING_RULES: list[Callable[[ScoringContext], int]] = [
    readme_rule,
    high_priority_rule,
    entry_point_rule,
    important_folder_rule,
    extension_rule,
    size_rule,
    import_rule,
    definition_rule,
    architecture_rule,
    recency_rule,
    infrastructure_rule,
    documentation_rule,
    generated_rule,
    minified_rule,
    test_file_rule,
]


def score_file(
    file: ReadFile,
    *,
    mode: Mode,
    recency_applied: bool,
    now: float | None = None,
    rules: Sequence[Callable[[ScoringContext], int]] = SCORING_RULES,
) -> int:
    """Score one file by summing every rule.

    The result depends only on the arguments: the same file scored twice with
    the same `now` gets the same score.

    Args:
        file (ReadFile): the file to score
        mode (Mode): the resolved project mode
        recency_applied (bool): True when discovery already filtered by modification time
        now (float | None): current POSIX time, defaults to `time.time()`
        rules (Sequence): the scoring rules

    Returns:
        int: the relevance score, possibly negative
    """
    ctx = ScoringContext(
        file=file,
        mode=mode,
        recency_applied=recency_applied,
        now=time.time() if now is None else now,
    )
    return sum(rule(ctx) for rule in rules)


def fit_budget(scored: Sequence[ScoredFile], budget: Budget, *, oversize: OversizeStrategy) -> Selection:
    """Greedy admission of already-sorted files under the token-in-chars ceiling.

    The first `budget.top_k` files are admitted whatever their size, and their
    sizes count against the ceiling for the files that follow. A later file
    that does not fit may still get in at a reduced footprint when it is over
    `budget.max_file_size` and will be truncated or summarized; it is then
    marked with `shrink_to` so the transformer cuts it down to that footprint.

    Args:
        scored (Sequence[ScoredFile]): files in descending score order
        budget (Budget): the run budget
        oversize (OversizeStrategy): the transformer's oversize strategy

    Returns:
        Selection: admitted files in order, plus rejections
    """
    limit = budget.token_limit_chars
    shrinkable = oversize is not OversizeStrategy.KEEP
    admitted = list(scored[: budget.top_k])
    charged = sum(s.size for s in admitted)
    rejected: list[Rejection] = []

    for s in scored[budget.top_k :]:
        if limit == 0 or charged + s.size <= limit:
            admitted.append(s)
            charged += s.size
            continue
        footprint = min(s.size, budget.reduced_footprint)
        if shrinkable and s.size > budget.max_file_size and charged + footprint <= limit:
            admitted.append(s.model_copy(update={"shrink_to": footprint}))
            charged += footprint
            continue
        rejected.append(Rejection(rel=s.rel, score=s.score, size=s.size, reason=RejectionReason.TOKEN_BUDGET))

    return Selection(admitted=tuple(admitted), rejected=tuple(rejected))


def score_and_fit(
    files: Sequence[ReadFile],
    budget: Budget,
    *,
    mode: Mode,
    recency_applied: bool,
    oversize: OversizeStrategy,
    now: float | None = None,
) -> Selection:
    """Score, sort and fit files into the budget.

    Files are sorted by descending score; ties keep discovery order.

    No file content is read here; everything comes from the ReadFile records.

    Returns:
        Selection: the admitted files and the rejected ones
    """
    now = time.time() if now is None else now
    scored = [
        ScoredFile(file=f, score=score_file(f, mode=mode, recency_applied=recency_applied, now=now)) for f in files
    ]
    scored.sort(key=lambda s: (-s.score, s.file.discovery_index))
    selection = fit_budget(scored, budget, oversize=oversize)
    logger.info(
        "selection_finished",
        admitted=len(selection.admitted),
        rejected=len(selection.rejected),
        total_size=selection.total_size,
    )
    return selection
