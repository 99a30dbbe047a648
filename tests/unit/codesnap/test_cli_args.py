from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import BaseModel

from codesnap import __version__
from codesnap.cli import parse_args
from codesnap.exceptions import ProfileNotFoundError
from codesnap.profiles import ProfileStore
from codesnap.settings import Mode, Settings


@pytest.mark.unit
def test_parse_args_defaults() -> None:
    settings = parse_args([])

    assert settings.directory == Path()
    assert settings.tokens == 100_000
    assert settings.limit == 1024
    assert settings.mode is Mode.CODE
    assert settings.clipboard
    assert settings.respect_gitignore
    assert settings.redact_credentials
    assert settings.extensions is None


@pytest.mark.unit
def test_parse_args_lists_accept_commas_and_repeats(tmp_path: Path) -> None:
    settings = parse_args(["-d", str(tmp_path), "-e", "py,md", "ts", "-i", "**/gen/**", "-x", "*.pb.go"])

    assert settings.directory == tmp_path
    assert settings.extensions == ["py", "md", "ts"]
    assert settings.ignore == ["**/gen/**"]
    assert settings.exclude == ["*.pb.go"]


@pytest.mark.unit
def test_parse_args_negative_flags() -> None:
    settings = parse_args(["--no-copy", "--no-gitignore", "--no-redact-credentials"])

    assert not settings.clipboard
    assert not settings.respect_gitignore
    assert not settings.redact_credentials


@pytest.mark.unit
def test_settings_fields_do_not_shadow_model_methods() -> None:
    settings = parse_args(["--no-copy"])

    assert not settings.clipboard
    assert not set(Settings.model_fields) & set(dir(BaseModel))


@pytest.mark.unit
def test_parse_args_infrastructure_shortcut() -> None:
    assert parse_args(["--infrastructure"]).mode is Mode.INFRA
    assert parse_args(["--mode", "doc"]).mode is Mode.DOC


@pytest.mark.unit
def test_parse_args_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        parse_args(["--version"])

    assert exc.value.code == 0
    assert f"codesnap {__version__}" in capsys.readouterr().out


@pytest.mark.unit
def test_parse_args_rejects_bad_values() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--tokens", "lots"])


@pytest.mark.unit
def test_parse_args_profile_values_with_explicit_override(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path)
    store.save("go", Settings(tokens=2_000, tree=True, extensions=[".go"]))

    settings = parse_args(["--load-config", "go", "--tokens", "300"], profiles=store)

    assert settings.tokens == 300
    assert settings.tree
    assert settings.extensions == [".go"]
    assert settings.load_config == "go"


@pytest.mark.unit
def test_parse_args_missing_profile(tmp_path: Path) -> None:
    with pytest.raises(ProfileNotFoundError):
        parse_args(["--load-config", "absent"], profiles=ProfileStore(tmp_path))
