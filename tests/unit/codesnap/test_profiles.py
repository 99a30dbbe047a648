from __future__ import annotations

from pathlib import Path

import pytest

from codesnap import profiles
from codesnap.exceptions import ProfileError, ProfileNotFoundError
from codesnap.profiles import CONFIG_DIR_ENV, ProfileStore, default_config_dir
from codesnap.settings import Mode, Settings


@pytest.mark.unit
def test_profile_round_trip(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path / "profiles")
    settings = Settings(
        directory=tmp_path,
        extensions=[".py", ".md"],
        tokens=50_000,
        mode=Mode.INFRA,
        tree=True,
        output=tmp_path / "out.md",
        save_config="python",
    )

    path = store.save("python", settings)
    loaded = store.load("python")

    assert path == tmp_path / "profiles" / "python.yaml"
    assert loaded["extensions"] == [".py", ".md"]
    assert loaded["tokens"] == 50_000
    assert loaded["mode"] == "infra"
    assert loaded["tree"] is True
    assert not {"directory", "output", "save_config", "load_config", "list_configs"} & loaded.keys()
    assert Settings(**loaded).mode is Mode.INFRA


@pytest.mark.unit
def test_profile_names_sorted(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path)
    for name in ("web", "infra", "docs"):
        store.save(name, Settings(directory=tmp_path))
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    assert store.names() == ["docs", "infra", "web"]
    assert ProfileStore(tmp_path / "missing").names() == []


@pytest.mark.unit
def test_profile_load_missing(tmp_path: Path) -> None:
    with pytest.raises(ProfileNotFoundError) as exc:
        ProfileStore(tmp_path).load("nope")

    assert "nope" in str(exc.value)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "../escape", "a/b", "-flag"])
def test_profile_invalid_name(tmp_path: Path, name: str) -> None:
    with pytest.raises(ProfileError):
        ProfileStore(tmp_path).path_for(name)


@pytest.mark.unit
def test_profile_load_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / "bad.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    (tmp_path / "broken.yaml").write_text("key: [unclosed\n", encoding="utf-8")
    (tmp_path / "empty.yaml").write_text("", encoding="utf-8")
    store = ProfileStore(tmp_path)

    with pytest.raises(ProfileError):
        store.load("bad")
    with pytest.raises(ProfileError):
        store.load("broken")
    assert store.load("empty") == {}


@pytest.mark.unit
def test_profile_load_drops_unknown_keys(tmp_path: Path) -> None:
    (tmp_path / "old.yaml").write_text("tokens: 2000\nlegacy_option: true\ndirectory: /tmp\n", encoding="utf-8")

    assert ProfileStore(tmp_path).load("old") == {"tokens": 2000}


@pytest.mark.unit
def test_default_config_dir_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "cfg"))

    assert default_config_dir() == tmp_path / "cfg"
    assert ProfileStore().folder == tmp_path / "cfg"


@pytest.mark.unit
def test_default_config_dir_falls_back_to_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)
    monkeypatch.setattr(profiles, "ENV_FILE", "")
    monkeypatch.setenv("HOME", str(tmp_path))

    assert default_config_dir() == tmp_path / ".codesnap"
