from __future__ import annotations

import io
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from codesnap.logging import logger
from codesnap.records import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from codesnap.records import DocumentSection

SECURITY_NOTICE = (
    "> ⚠️ **Security Notice**: Sensitive information and credentials have been automatically redacted"
)
TREE_DEPTH = "3"
TREE_TIMEOUT_SECONDS = 10

_BACKTICK_RUN = re.compile(r"`{3,}")


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): file paths relative to the root, using POSIX separators (e.g. "src/main.py")

    Returns:
        list[str]: the tree lines, directories before files, case-insensitive order
    """
    tree: dict[str, Any] = {}
    for rp in sorted({p.strip("/").replace("\\", "/") for p in rel_paths if p.strip()}, key=str.lower):
        cur = tree
        *dirs, name = rp.split("/")
        for part in dirs:
            cur = cur.setdefault(part, {})
        cur.setdefault("__files__", set()).add(name)

    lines: list[str] = [f"{root_name}/"]

    def walk(node: dict[str, Any], prefix: str) -> None:
        entries: list[tuple[str, dict[str, Any] | None]] = [
            (d, node[d]) for d in sorted((k for k in node if k != "__files__"), key=str.lower)
        ]
        entries.extend((f, None) for f in sorted(node.get("__files__", set()), key=str.lower))
        for idx, (name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            lines.append(prefix + ("└── " if last else "├── ") + name + ("/" if child is not None else ""))
            if child is not None:
                walk(child, prefix + ("    " if last else "│   "))

    walk(tree, "")
    return lines


@dataclass(frozen=True)
class TreeResult:
    """Outcome of one tree-rendering strategy."""

    ok: bool
    text: str = ""
    reason: str = ""


def external_tree(*args: str) -> Callable[[Path, Sequence[str]], TreeResult]:
    """Build a strategy running the `tree` command with `args` in the project root."""

    def run(root: Path, _rel_paths: Sequence[str]) -> TreeResult:
        exe = shutil.which("tree")
        if exe is None:
            return TreeResult(ok=False, reason="tree command not found")
        try:
            proc = subprocess.run(  # noqa: S603
                [exe, *args],
                cwd=root,
                capture_output=True,
                text=True,
                timeout=TREE_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            return TreeResult(ok=False, reason=str(e))
        if proc.returncode != 0 or not proc.stdout.strip():
            return TreeResult(ok=False, reason=proc.stderr.strip() or f"tree exited with status {proc.returncode}")
        return TreeResult(ok=True, text=proc.stdout)

    return run


def in_process_tree(root: Path, rel_paths: Sequence[str]) -> TreeResult:
    """Render the tree of the selected files without any external command."""
    return TreeResult(ok=True, text="\n".join(build_tree_lines(root.name, rel_paths)) + "\n")


DEFAULT_TREE_STRATEGIES: tuple[Callable[[Path, Sequence[str]], TreeResult], ...] = (
    external_tree("--gitignore", "-L", TREE_DEPTH),
    external_tree("-L", TREE_DEPTH),
    in_process_tree,
)


def render_tree(
    root: Path,
    rel_paths: Sequence[str],
    strategies: Sequence[Callable[[Path, Sequence[str]], TreeResult]] = DEFAULT_TREE_STRATEGIES,
) -> TreeResult:
    """Try each tree strategy in order; the first success wins.

    Args:
        root (Path): the project root
        rel_paths (Sequence[str]): the selected files, for strategies that need them
        strategies (Sequence): ordered strategies, each returning a TreeResult

    Returns:
        TreeResult: the first successful result, or a failed one collecting every reason
    """
    reasons: list[str] = []
    for strategy in strategies:
        result = strategy(root, rel_paths)
        if result.ok:
            return result
        logger.debug("tree_strategy_failed", reason=result.reason)
        reasons.append(result.reason)
    return TreeResult(ok=False, reason="; ".join(reasons))


def _fence_for(content: str) -> str:
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=2)
    return "`" * (longest + 1)


def build_document(
    files: Sequence[DocumentSection],
    *,
    root_name: str,
    tree_text: str | None = None,
    list_only: bool = False,
    redaction_notice: bool = False,
    generated_at: datetime | None = None,
) -> str:
    """Assemble the final context document.

    Layout: optional project structure block, metadata (date, file count, size,
    token estimate), optional security notice, then one fenced section per file
    (or a plain list in list-only mode), and a closing footer.

    Args:
        files (Sequence[DocumentSection]): the sections, in admission order
        root_name (str): the project directory name
        tree_text (str | None): a rendered project tree, if requested
        list_only (bool): list paths and sizes without content
        redaction_notice (bool): add the credential redaction notice
        generated_at (datetime | None): generation time, defaults to now

    Returns:
        str: the markdown document
    """
    when = generated_at or datetime.now(UTC).astimezone()
    total_size = sum(f.size for f in files)
    out = io.StringIO()

    if tree_text:
        out.write("# PROJECT STRUCTURE\n")
        out.write("```text\n")
        out.write(tree_text if tree_text.endswith("\n") else tree_text + "\n")
        out.write("```\n\n")

    out.write("# PROJECT CONTEXT\n\n")
    out.write(f"Collected by codesnap from `{root_name}` on {when.date().isoformat()}.\n")
    out.write(f"Total files: {len(files)}, Size: {total_size} bytes, Est. tokens: ~{estimate_tokens(total_size)}\n\n")

    if redaction_notice and not list_only:
        out.write(SECURITY_NOTICE + "\n\n")

    out.write("# PROJECT FILES\n\n")
    if list_only:
        out.write("Files included:\n")
        for f in files:
            out.write(f"- {f.rel} (size={f.size} bytes)\n")
        out.write("\n")
    else:
        for f in files:
            fence = _fence_for(f.content)
            out.write(f"## {f.rel} (size={f.size} bytes)\n")
            out.write(f"{fence}{f.language}\n")
            out.write(f.content if f.content.endswith("\n") else f.content + "\n")
            out.write(f"{fence}\n\n")

    out.write("---\n")
    out.write("Generated with codesnap. For more options run: `codesnap --help`\n")
    return out.getvalue()
