from pathlib import Path

import pyperclip
import pytest
from pytest_mock import MockerFixture

from codesnap import cli
from codesnap.profiles import CONFIG_DIR_ENV


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "profiles"))
    root = tmp_path / "demo"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_text("# Demo\n", encoding="utf-8")
    (root / "src" / "app.py").write_text("def main():\n    return 1\n", encoding="utf-8")
    return root


@pytest.mark.integration
def test_main_copies_to_clipboard(project: Path, mocker: MockerFixture) -> None:
    copy = mocker.patch.object(cli.pyperclip, "copy")

    exit_code = cli.main(["-d", str(project)])

    assert exit_code == 0
    copy.assert_called_once()
    document = copy.call_args.args[0]
    assert "## README.md (size=7 bytes)" in document
    assert "## src/app.py (size=" in document


@pytest.mark.integration
def test_main_falls_back_to_stdout_without_clipboard(
    project: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch.object(cli.pyperclip, "copy", side_effect=pyperclip.PyperclipException("no clipboard"))

    exit_code = cli.main(["-d", str(project)])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "# PROJECT FILES" in captured.out
    assert "Clipboard unavailable" in captured.err


@pytest.mark.integration
def test_main_writes_output_file(project: Path, mocker: MockerFixture) -> None:
    copy = mocker.patch.object(cli.pyperclip, "copy")
    output = project.parent / "context.md"

    exit_code = cli.main(["-d", str(project), "-o", str(output)])

    assert exit_code == 0
    assert "def main():" in output.read_text(encoding="utf-8")
    copy.assert_not_called()


@pytest.mark.integration
def test_main_dry_run_prints_summary_only(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["-d", str(project), "--dry-run"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out == ""
    assert "Selected 2 files" in captured.err
    assert "README.md" in captured.err


@pytest.mark.integration
def test_main_missing_directory(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["-d", str(tmp_path / "missing"), "--no-copy"])

    assert exit_code == 1
    assert "Error:" in capsys.readouterr().err


@pytest.mark.integration
def test_main_empty_directory(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["-d", str(tmp_path), "--no-copy"])

    assert exit_code == 0
    assert "No files found" in capsys.readouterr().err


@pytest.mark.integration
def test_main_save_list_and_load_profile(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["-d", str(project), "-e", "md", "--dry-run", "--save-config", "docs"]) == 0
    assert cli.main(["--list-configs"]) == 0
    assert capsys.readouterr().out.strip().splitlines() == ["docs"]

    exit_code = cli.main(["-d", str(project), "--load-config", "docs", "--no-copy"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "## README.md" in out
    assert "src/app.py" not in out


@pytest.mark.integration
def test_main_unknown_profile(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["-d", str(project), "--load-config", "nope"])

    assert exit_code == 1
    assert "not found" in capsys.readouterr().err


@pytest.mark.integration
def test_main_interactive_cancel(project: Path, mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    mocker.patch("codesnap.interactive.Prompt.ask", return_value="all")
    mocker.patch("codesnap.interactive.Confirm.ask", return_value=False)

    exit_code = cli.main(["-d", str(project), "--interactive", "--no-copy"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out == ""
    assert "Selection cancelled." in captured.err


@pytest.mark.integration
def test_main_show_redacted(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (project / "src" / "settings.py").write_text('api_key = "abcdef1234567890"\n', encoding="utf-8")

    exit_code = cli.main(["-d", str(project), "--no-copy", "--show-redacted"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "abcdef1234567890" not in captured.out
    assert "redacted api_key in src/settings.py:1:12" in captured.err
