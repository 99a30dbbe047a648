from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from codesnap.output_construction import (
    SECURITY_NOTICE,
    TreeResult,
    build_document,
    build_tree_lines,
    in_process_tree,
    render_tree,
)
from codesnap.records import DocumentSection

WHEN = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def sections() -> list[DocumentSection]:
    return [
        DocumentSection(rel="README.md", size=7, content="# Demo\n", language="markdown"),
        DocumentSection(rel="src/app.py", size=12, content="print('hi')\n", language="python"),
    ]


@pytest.mark.unit
def test_build_document_layout() -> None:
    doc = build_document(sections(), root_name="demo", generated_at=WHEN)

    assert doc.startswith("# PROJECT CONTEXT\n\nCollected by codesnap from `demo` on 2024-05-01.\n")
    assert "Total files: 2, Size: 19 bytes, Est. tokens: ~5\n" in doc
    assert "## README.md (size=7 bytes)\n```markdown\n# Demo\n```\n" in doc
    assert "## src/app.py (size=12 bytes)\n```python\nprint('hi')\n```\n" in doc
    assert doc.index("README.md (size") < doc.index("src/app.py (size")
    assert doc.endswith("---\nGenerated with codesnap. For more options run: `codesnap --help`\n")
    assert "# PROJECT STRUCTURE" not in doc
    assert SECURITY_NOTICE not in doc


@pytest.mark.unit
def test_build_document_with_tree_and_notice() -> None:
    doc = build_document(
        sections(),
        root_name="demo",
        tree_text="demo/\n└── README.md",
        redaction_notice=True,
        generated_at=WHEN,
    )

    assert doc.startswith("# PROJECT STRUCTURE\n```text\ndemo/\n└── README.md\n```\n\n# PROJECT CONTEXT")
    assert SECURITY_NOTICE in doc


@pytest.mark.unit
def test_build_document_list_only() -> None:
    doc = build_document(sections(), root_name="demo", list_only=True, redaction_notice=True, generated_at=WHEN)

    assert "Files included:\n- README.md (size=7 bytes)\n- src/app.py (size=12 bytes)\n" in doc
    assert "```" not in doc
    assert SECURITY_NOTICE not in doc


@pytest.mark.unit
def test_build_document_lengthens_fence_around_backticks() -> None:
    content = "Example:\n```bash\nls\n```\n"
    doc = build_document(
        [DocumentSection(rel="GUIDE.md", size=len(content), content=content, language="markdown")],
        root_name="demo",
        generated_at=WHEN,
    )

    assert f"````markdown\n{content}````\n" in doc


@pytest.mark.unit
def test_build_document_empty_selection() -> None:
    doc = build_document([], root_name="demo", generated_at=WHEN)

    assert "Total files: 0, Size: 0 bytes, Est. tokens: ~0" in doc


@pytest.mark.unit
def test_build_tree_lines_directories_first() -> None:
    lines = build_tree_lines("demo", ["src/b.py", "README.md", "src/a.py", "docs/intro.md"])

    assert lines == [
        "demo/",
        "├── docs/",
        "│   └── intro.md",
        "├── src/",
        "│   ├── a.py",
        "│   └── b.py",
        "└── README.md",
    ]


@pytest.mark.unit
def test_render_tree_falls_back_to_next_strategy(tmp_path: Path) -> None:
    def failing(_root: Path, _rels: object) -> TreeResult:
        return TreeResult(ok=False, reason="no tree here")

    result = render_tree(tmp_path, ["a.py"], strategies=(failing, in_process_tree))

    assert result.ok
    assert result.text == f"{tmp_path.name}/\n└── a.py\n"


@pytest.mark.unit
def test_render_tree_collects_reasons_when_all_fail(tmp_path: Path) -> None:
    def first(_root: Path, _rels: object) -> TreeResult:
        return TreeResult(ok=False, reason="first")

    def second(_root: Path, _rels: object) -> TreeResult:
        return TreeResult(ok=False, reason="second")

    result = render_tree(tmp_path, [], strategies=(first, second))

    assert not result.ok
    assert result.reason == "first; second"
