from pathlib import Path

import pytest

from codesnap import cli


def write_project(root: Path) -> None:
    files = {
        "README.md": "# Shop\n\nOrders service.\n",
        "pyproject.toml": '[project]\nname = "shop"\nversion = "0.1.0"\n',
        "src/shop/__init__.py": "",
        "src/shop/main.py": "from shop.orders import total\n\n\ndef main():\n    print(total([1, 2]))\n",
        "src/shop/orders.py": "\n".join(
            ["# Order helpers.", "import math", ""]
            + [f"def helper_{i}(x):\n    # internal note\n    return math.floor(x) + {i}\n" for i in range(40)]
            + ["def total(items):\n    return sum(items)\n"],
        ),
        ".venv/lib/site.py": "x = 1\n",
        "build/out.py": "x = 2\n",
        "docs/logo.png": "png",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def test_end_to_end_document_on_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_project(tmp_path)

    exit_code = cli.main(["-d", str(tmp_path), "--no-copy", "--tree"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert out.startswith("# PROJECT STRUCTURE\n")
    assert "## README.md (size=" in out
    assert "## src/shop/orders.py (size=" in out
    assert "## src/shop/__init__.py" not in out
    assert ".venv/lib/site.py (size=" not in out
    assert "build/out.py (size=" not in out
    assert out.index("## README.md") < out.index("## src/shop/orders.py")
    assert out.rstrip().endswith("For more options run: `codesnap --help`")


def test_end_to_end_summarize_and_strip(tmp_path: Path) -> None:
    write_project(tmp_path)
    output = tmp_path / "context.md"

    exit_code = cli.main(
        [
            "-d",
            str(tmp_path),
            "-o",
            str(output),
            "--max-file-size",
            "1",
            "--summarize-large-files",
            "--optimize-tokens",
        ],
    )

    text = output.read_text(encoding="utf-8")
    assert exit_code == 0
    assert "// File contains these 39 definitions:" in text
    assert ", ... and 19 more" in text
    assert "# internal note" not in text


def test_end_to_end_token_budget_limits_selection(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    for i in range(30):
        (tmp_path / f"mod{i:02d}.py").write_text(f"VALUE = {i}\n" + "x = 1\n" * 400, encoding="utf-8")

    exit_code = cli.main(["-d", str(tmp_path), "--tokens", "1000", "--dry-run"])

    err = capsys.readouterr().err
    assert exit_code == 0
    assert "Selected 10 files" in err
    assert "Left out 20 files to stay within the token budget." in err


def test_end_to_end_list_only(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_project(tmp_path)

    exit_code = cli.main(["-d", str(tmp_path), "--no-copy", "--list-only"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Files included:\n" in out
    assert "- src/shop/main.py (size=" in out
    assert "def main():" not in out
