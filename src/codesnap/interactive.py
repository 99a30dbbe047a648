from __future__ import annotations

from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from rich.console import Console
from rich.prompt import Confirm, Prompt

from codesnap.exceptions import SelectionCancelledError
from codesnap.logging import logger
from codesnap.records import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codesnap.records import ScoredFile

LARGE_GROUP_THRESHOLD = 15


def group_by_directory(rels: Sequence[str]) -> dict[str, list[int]]:
    """Group file indices by parent directory, keeping first-seen order.

    Args:
        rels (Sequence[str]): relative file paths

    Returns:
        dict[str, list[int]]: directory (`.` for the root) to indices into `rels`
    """
    groups: dict[str, list[int]] = {}
    for i, rel in enumerate(rels):
        groups.setdefault(str(PurePosixPath(rel).parent), []).append(i)
    return groups


def parse_index_selection(text: str, count: int) -> list[int]:
    """Parse a 1-based selection such as `1,3-5`, `all` or `none`.

    Args:
        text (str): the user's answer
        count (int): number of listed items

    Returns:
        list[int]: sorted 0-based positions

    Raises:
        ValueError: if the answer is not a valid selection
    """
    answer = text.strip().lower()
    if answer in {"", "all", "a"}:
        return list(range(count))
    if answer in {"none", "n"}:
        return []
    chosen: set[int] = set()
    for part in answer.replace(" ", "").split(","):
        if not part:
            continue
        lo, sep, hi = part.partition("-")
        start, end = int(lo), int(hi) if sep else int(lo)
        if not 1 <= start <= end <= count:
            msg = f"{part!r} is outside 1-{count}"
            raise ValueError(msg)
        chosen.update(range(start - 1, end))
    return sorted(chosen)


def _ask_indices(console: Console, directory: str, items: Sequence[ScoredFile]) -> list[int]:
    for n, item in enumerate(items, start=1):
        console.print(f"  [bold]{n:>3}[/bold]  {item.rel}  [dim]({item.size} bytes, score {item.score})[/dim]")
    while True:
        answer = Prompt.ask(
            f"Files to include from [cyan]{directory}[/cyan] (e.g. 1,3-5, all, none)",
            default="all",
            console=console,
        )
        try:
            return parse_index_selection(answer, len(items))
        except ValueError as e:
            console.print(f"[red]Invalid selection:[/red] {e}")


def _select(console: Console, files: Sequence[ScoredFile]) -> list[int]:
    selected: list[int] = []
    for directory, indices in group_by_directory([f.rel for f in files]).items():
        items = [files[i] for i in indices]
        console.print(f"\n[bold]{directory}/[/bold] ({len(items)} files)")
        if len(items) > LARGE_GROUP_THRESHOLD:
            choice = Prompt.ask(
                "Include this directory",
                choices=["all", "none", "select"],
                default="all",
                console=console,
            )
            if choice == "all":
                selected.extend(indices)
                continue
            if choice == "none":
                continue
        selected.extend(indices[pos] for pos in _ask_indices(console, directory, items))

    selected.sort()
    size = sum(files[i].size for i in selected)
    if not Confirm.ask(
        f"Include {len(selected)} files ({size} bytes, ~{estimate_tokens(size)} tokens)?",
        default=True,
        console=console,
    ):
        raise SelectionCancelledError
    return selected


def select_files(files: Sequence[ScoredFile], *, console: Console | None = None) -> list[int]:
    """Let the user pick which admitted files to keep.

    Files are grouped by directory; directories with many files first offer an
    all / none / select choice. A final confirmation closes the selection.

    Args:
        files (Sequence[ScoredFile]): the admitted files, in order
        console (Console | None): where to prompt, defaults to stderr

    Returns:
        list[int]: indices of the kept files, in the original order

    Raises:
        SelectionCancelledError: if the user declines the final confirmation or interrupts
    """
    if not files:
        return []
    console = console or Console(stderr=True)
    try:
        return _select(console, files)
    except KeyboardInterrupt as e:
        raise SelectionCancelledError from e
    except (EOFError, OSError) as e:
        logger.warning("interactive_selection_failed", error=str(e) or type(e).__name__)
        return list(range(len(files)))
