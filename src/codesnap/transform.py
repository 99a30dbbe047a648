"""Per-file content transformations: truncation, structural summary, comment stripping.

Language support is data: `COMMENT_RULES` maps an extension to the comment
syntax of its family and `DEFINITION_RULES` maps an extension to the patterns
that name a definition. Supporting a new language means adding table entries.
All functions here are pure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codesnap.settings import OversizeStrategy

if TYPE_CHECKING:
    from collections.abc import Callable

TRUNCATION_MARKER = "\n\n// ... truncated, file too large ..."

SUMMARY_MIN_LINES = 20
HEADER_LINES = 10
IMPORT_SCAN_LINES = 30
MAX_HEADER_LINES = 20
FOOTER_LINES = 5
SAMPLE_LINES = 5
MAX_LISTED_DEFINITIONS = 20

ANNOTATION_MARKERS = re.compile(r"\b(?:TODO|FIXME|HACK|NOTE)\b")
DOC_TAGS = re.compile(r"@(?:param|returns?|throws|description)\b")
_EXCESS_BLANK_LINES = re.compile(r"\n(?:[ \t]*\n){3,}")


@dataclass(frozen=True)
class CommentRule:
    """One comment pattern and whether a given match survives stripping."""

    pattern: str
    keep: Callable[[re.Match[str]], bool] = field(default=lambda _m: False)


@dataclass(frozen=True)
class CommentSyntax:
    """Comment rules of a language family.

    `protected` patterns (string literals) are matched first and always left
    alone, so comment markers inside strings are never touched.
    """

    name: str
    rules: tuple[CommentRule, ...]
    protected: tuple[str, ...] = ()
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        parts = [f"(?P<p{i}>{p})" for i, p in enumerate(self.protected)]
        parts += [f"(?P<r{i}>{r.pattern})" for i, r in enumerate(self.rules)]
        object.__setattr__(self, "_regex", re.compile("|".join(parts)))

    def strip(self, content: str) -> str:
        def replace(m: re.Match[str]) -> str:
            group = m.lastgroup or ""
            if group.startswith("p"):
                return m.group(0)
            rule = self.rules[int(group[1:])]
            return m.group(0) if rule.keep(m) else ""

        return self._regex.sub(replace, content)


def _has_annotation(m: re.Match[str]) -> bool:
    return bool(ANNOTATION_MARKERS.search(m.group(0)))


def _is_tagged_doc_block(m: re.Match[str]) -> bool:
    text = m.group(0)
    return text.startswith("/**") and bool(DOC_TAGS.search(text))


def _is_shebang_or_annotated(m: re.Match[str]) -> bool:
    if m.start() == 0 and m.group(0).startswith("#!"):
        return True
    return _has_annotation(m)


_DQ_STRING = r'"(?:\\.|[^"\\\n])*"'
_SQ_STRING = r"'(?:\\.|[^'\\\n])*'"
_TEMPLATE_STRING = r"`(?:\\.|[^`\\])*`"
_TRIPLE_STRINGS = r'"""[\s\S]*?"""|\'\'\'[\s\S]*?\'\'\''

C_FAMILY = CommentSyntax(
    name="c",
    protected=(_DQ_STRING, _SQ_STRING, _TEMPLATE_STRING),
    rules=(
        CommentRule(r"/\*[\s\S]*?\*/", keep=_is_tagged_doc_block),
        CommentRule(r"//[^\n]*", keep=_has_annotation),
    ),
)

CSS_FAMILY = CommentSyntax(
    name="css",
    protected=(_DQ_STRING, _SQ_STRING),
    rules=(CommentRule(r"/\*[\s\S]*?\*/"),),
)

HASH_FAMILY = CommentSyntax(
    name="hash",
    protected=(_TRIPLE_STRINGS, _DQ_STRING, _SQ_STRING),
    rules=(CommentRule(r"#[^\n]*", keep=_is_shebang_or_annotated),),
)

# `#` only opens a comment at line start or after whitespace (`$#`, `${#arr[@]}`).
SHELL_FAMILY = CommentSyntax(
    name="shell",
    protected=(_DQ_STRING, _SQ_STRING),
    rules=(CommentRule(r"(?<!\S)#[^\n]*", keep=_is_shebang_or_annotated),),
)

MARKUP_FAMILY = CommentSyntax(
    name="markup",
    rules=(CommentRule(r"<!--[\s\S]*?-->"),),
)

COMMENT_RULES: dict[str, CommentSyntax] = {
    **dict.fromkeys(
        (
            ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".c", ".cpp", ".cc", ".h", ".hpp",
            ".java", ".cs", ".go", ".php", ".swift", ".kt", ".rs", ".scala", ".dart",
            ".scss", ".less",
        ),
        C_FAMILY,
    ),
    ".css": CSS_FAMILY,
    **dict.fromkeys((".py", ".rb", ".r"), HASH_FAMILY),
    **dict.fromkeys((".sh", ".bash", ".zsh", ".yml", ".yaml", ".toml"), SHELL_FAMILY),
    **dict.fromkeys((".html", ".htm", ".xml", ".svg", ".vue"), MARKUP_FAMILY),
}


def collapse_blank_lines(content: str) -> str:
    """Collapse runs of 3 or more blank lines down to 2."""
    return _EXCESS_BLANK_LINES.sub("\n\n\n", content)


def strip_comments(content: str, extension: str) -> str:
    """Remove comments according to the extension's language family.

    Tagged doc blocks (`@param`, `@returns`...) and comments carrying TODO, FIXME,
    HACK or NOTE are kept. Extensions without an entry in COMMENT_RULES only get
    their blank lines collapsed.

    Args:
        content (str): the file content
        extension (str): the file extension, e.g. `.ts`

    Returns:
        str: the stripped content
    """
    if not content:
        return content
    syntax = COMMENT_RULES.get(extension.lower())
    if syntax is not None:
        content = syntax.strip(content)
    return collapse_blank_lines(content)


_strip = strip_comments


_JS_DEFINITIONS: tuple[str, ...] = (
    r"^\s*(?:export\s+)?(?:async\s+)?function\s+(\w+)",
    r"^\s*(?:export\s+)?const\s+(\w+)\s*=",
    r"^\s*(?:export\s+)?class\s+(\w+)",
    r"^\s*(?:export\s+)?interface\s+(\w+)",
)
_TS_DEFINITIONS: tuple[str, ...] = (
    r"^\s*(?:export\s+)?(?:async\s+)?function\s+(\w+)",
    r"^\s*(?:export\s+)?const\s+(\w+)\s*[:=]",
    r"^\s*(?:export\s+)?(?:abstract\s+)?class\s+(\w+)",
    r"^\s*(?:export\s+)?interface\s+(\w+)",
    r"^\s*(?:export\s+)?type\s+(\w+)",
    r"^\s*(?:export\s+)?enum\s+(\w+)",
)

DEFINITION_RULES: dict[str, tuple[re.Pattern[str], ...]] = {
    ext: tuple(re.compile(p) for p in patterns)
    for ext, patterns in {
        ".js": _JS_DEFINITIONS,
        ".jsx": _JS_DEFINITIONS,
        ".mjs": _JS_DEFINITIONS,
        ".cjs": _JS_DEFINITIONS,
        ".ts": _TS_DEFINITIONS,
        ".tsx": _TS_DEFINITIONS,
        ".py": (
            r"^\s*(?:async\s+)?def\s+(\w+)\s*\(",
            r"^\s*class\s+(\w+)",
        ),
        ".go": (
            r"^\s*func\s+(?:\([^)]*\)\s*)?(\w+)",
            r"^\s*type\s+(\w+)\s+struct",
            r"^\s*type\s+(\w+)\s+interface",
        ),
        ".java": (
            r"^\s*(?:public|private|protected)\s+(?:[\w<>\[\],]+\s+)*class\s+(\w+)",
            r"^\s*(?:public|private|protected)\s+(?:[\w<>\[\],]+\s+)*interface\s+(\w+)",
            r"^\s*(?:public|private|protected)\s+.*\s+(\w+)\s*\(",
        ),
        ".rb": (r"^\s*def\s+(?:self\.)?(\w+)", r"^\s*class\s+(\w+)", r"^\s*module\s+(\w+)"),
        ".php": (
            r"^\s*(?:public|private|protected)?\s*(?:static\s+)?function\s+(\w+)",
            r"^\s*(?:abstract\s+|final\s+)?class\s+(\w+)",
            r"^\s*interface\s+(\w+)",
            r"^\s*trait\s+(\w+)",
        ),
        ".cs": (
            r"^\s*(?:public|private|protected|internal)\s+(?:[\w<>\[\],]+\s+)*class\s+(\w+)",
            r"^\s*(?:public|private|protected|internal)\s+(?:[\w<>\[\],]+\s+)*interface\s+(\w+)",
            r"^\s*(?:public|private|protected|internal)\s+(?:[\w<>\[\],]+\s+)*enum\s+(\w+)",
            r"^\s*(?:public|private|protected|internal)\s+.*\s+(\w+)\s*\(",
        ),
        ".swift": (
            r"^\s*func\s+(\w+)",
            r"^\s*class\s+(\w+)",
            r"^\s*struct\s+(\w+)",
            r"^\s*enum\s+(\w+)",
            r"^\s*protocol\s+(\w+)",
        ),
        ".rs": (
            r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?fn\s+(\w+)",
            r"^\s*(?:pub(?:\([^)]*\))?\s+)?struct\s+(\w+)",
            r"^\s*(?:pub(?:\([^)]*\))?\s+)?enum\s+(\w+)",
            r"^\s*(?:pub(?:\([^)]*\))?\s+)?trait\s+(\w+)",
        ),
    }.items()
}

DEFAULT_DEFINITIONS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*function\s+(\w+)"),
    re.compile(r"^\s*class\s+(\w+)"),
    re.compile(r"^\s*def\s+(\w+)"),
)

_IMPORT_BLOCK_EXTENSIONS = frozenset({".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"})


def _header_end(lines: list[str], extension: str) -> int:
    """Index where the header window ends; JS/TS headers stretch over the import block."""
    if extension not in _IMPORT_BLOCK_EXTENSIONS:
        return HEADER_LINES
    last_import = 0
    for i, line in enumerate(lines[:IMPORT_SCAN_LINES]):
        if "import " in line or "require(" in line:
            last_import = i
        elif i > 15 and last_import < i - 5:  # noqa: PLR2004
            break
    return min(last_import + 3, MAX_HEADER_LINES)


def find_definitions(lines: list[str], start: int, extension: str) -> list[tuple[str, int]]:
    """Scan `lines[start:]` for definitions, first matching pattern per line wins.

    Returns:
        list[tuple[str, int]]: (name, line index) pairs in file order
    """
    patterns = DEFINITION_RULES.get(extension, DEFAULT_DEFINITIONS)
    found: list[tuple[str, int]] = []
    for i in range(start, len(lines)):
        for pattern in patterns:
            m = pattern.match(lines[i])
            if m and m.group(1):
                found.append((m.group(1), i))
                break
    return found


def summarize(content: str, extension: str, *, clean: Callable[[str], str] | None = None) -> str:
    """Build a structural summary of a large source file.

    Keeps a header window, lists the definitions found in the rest of the file,
    shows a few sample definitions and keeps the last lines. Content with 20
    lines or fewer is returned unchanged.

    Args:
        content (str): the original file content
        extension (str): the file extension, selecting the definition patterns
        clean (Callable[[str], str] | None): applied to every verbatim window
            (header, samples, footer), e.g. comment stripping

    Returns:
        str: the summary
    """
    lines = content.split("\n")
    if len(lines) <= SUMMARY_MIN_LINES:
        return content
    ext = extension.lower()

    def verbatim(chunk: list[str]) -> str:
        text = "\n".join(chunk)
        return clean(text) if clean is not None else text

    header_end = _header_end(lines, ext)
    definitions = find_definitions(lines, header_end, ext)
    footer = lines[-FOOTER_LINES:]

    parts = [verbatim(lines[:header_end]) + "\n\n"]
    if definitions:
        names = [name for name, _ in definitions]
        listed = ", ".join(names[:MAX_LISTED_DEFINITIONS])
        more = len(names) - MAX_LISTED_DEFINITIONS
        parts.append(f"// File contains these {len(names)} definitions:\n// - {listed}")
        if more > 0:
            parts.append(f", ... and {more} more")
        parts.append("\n\n")
        if len(definitions) > 3:  # noqa: PLR2004
            for idx in (0, len(definitions) // 2, len(definitions) - 1):
                name, line_idx = definitions[idx]
                parts.append(f"// Sample definition: {name}\n")
                parts.append(verbatim(lines[line_idx : line_idx + SAMPLE_LINES]) + "\n\n")
    else:
        hidden = len(lines) - header_end - len(footer)
        parts.append(f"// ... {hidden} lines not shown ...\n\n")
    parts.append(verbatim(footer))
    return "".join(parts)


def truncate(content: str, size_budget: int) -> str:
    """Keep the first `size_budget` characters and append TRUNCATION_MARKER."""
    return content[:size_budget] + TRUNCATION_MARKER


def transform(
    content: str,
    extension: str,
    size_budget: int,
    *,
    oversize: OversizeStrategy,
    strip_comments: bool,
) -> str:
    """Apply the configured transformations to one admitted file.

    Truncation and summary always work on the original content; comment
    stripping is then applied to what was retained only. For content larger
    than `size_budget`, the output never exceeds `size_budget` plus the length
    of TRUNCATION_MARKER when an oversize strategy is active.

    Args:
        content (str): the file content
        extension (str): the file extension
        size_budget (int): the per-file size budget in characters
        oversize (OversizeStrategy): what to do with content over the budget
        strip_comments (bool): remove comments from the retained content

    Returns:
        str: the transformed content
    """
    ext = extension.lower()
    clean: Callable[[str], str] | None = (lambda text: _strip(text, ext)) if strip_comments else None
    oversized = len(content) > size_budget

    if oversized and oversize is OversizeStrategy.TRUNCATE:
        window = content[:size_budget]
        return (clean(window) if clean else window) + TRUNCATION_MARKER

    if oversized and oversize is OversizeStrategy.SUMMARIZE:
        summary = summarize(content, ext, clean=clean)
        if len(summary) > size_budget:
            return truncate(summary, size_budget)
        return summary

    return clean(content) if clean else content

