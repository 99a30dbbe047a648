from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import dotenv_values

from codesnap.exceptions import ProfileError, ProfileNotFoundError
from codesnap.logging import logger
from codesnap.settings import ENV_FILE, Settings

if TYPE_CHECKING:
    from collections.abc import Mapping

CONFIG_DIR_ENV = "CODESNAP_CONFIG_DIR"
PROFILE_SUFFIX = ".yaml"

# Fields that describe a single invocation rather than reusable options.
PROFILE_EXCLUDED_FIELDS: frozenset[str] = frozenset({
    "directory",
    "output",
    "dry_run",
    "summary",
    "save_config",
    "load_config",
    "list_configs",
})

_PROFILE_NAME = re.compile(r"^[\w][\w.-]*$")


def default_config_dir() -> Path:
    """Profile folder: `$CODESNAP_CONFIG_DIR` (environment, then `.env`), else `~/.codesnap`."""
    configured = os.environ.get(CONFIG_DIR_ENV)
    if not configured and ENV_FILE:
        configured = dotenv_values(ENV_FILE).get(CONFIG_DIR_ENV)
    return Path(configured).expanduser() if configured else Path.home() / ".codesnap"


class ProfileStore:
    """Named option profiles persisted as YAML files, one file per profile."""

    def __init__(self, folder: Path | None = None) -> None:
        self.folder = folder if folder is not None else default_config_dir()

    def path_for(self, name: str) -> Path:
        if not _PROFILE_NAME.match(name):
            raise ProfileError(name=name, reason="invalid profile name")
        return self.folder / f"{name}{PROFILE_SUFFIX}"

    def save(self, name: str, settings: Settings) -> Path:
        """Persist the reusable options of `settings` under `name`.

        Args:
            name (str): the profile name
            settings (Settings): the options to save

        Returns:
            Path: the profile file

        Raises:
            ProfileError: if the name is invalid or the file cannot be written
        """
        path = self.path_for(name)
        data = settings.model_dump(mode="json", exclude=set(PROFILE_EXCLUDED_FIELDS))
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=True, allow_unicode=True)
        except OSError as e:
            raise ProfileError(name=name, reason=str(e)) from e
        logger.info("profile_saved", name=name, path=str(path))
        return path

    def load(self, name: str) -> dict[str, Any]:
        """Load the options saved under `name`.

        Unknown keys (from older versions) are dropped with a warning.

        Returns:
            dict[str, Any]: Settings field values

        Raises:
            ProfileNotFoundError: if no such profile exists
            ProfileError: if the file cannot be read or is not a mapping
        """
        path = self.path_for(name)
        if not path.is_file():
            raise ProfileNotFoundError(name=name, folder=self.folder)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ProfileError(name=name, reason=str(e)) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ProfileError(name=name, reason="profile content is not a mapping")
        return self._known_fields(name, data)

    def names(self) -> list[str]:
        """Sorted names of the saved profiles; empty when the folder does not exist."""
        if not self.folder.is_dir():
            return []
        return sorted(p.stem for p in self.folder.glob(f"*{PROFILE_SUFFIX}") if p.is_file())

    @staticmethod
    def _known_fields(name: str, data: Mapping[str, Any]) -> dict[str, Any]:
        known = set(Settings.model_fields) - PROFILE_EXCLUDED_FIELDS
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning("profile_unknown_keys", name=name, keys=unknown)
        return {k: v for k, v in data.items() if k in known}
