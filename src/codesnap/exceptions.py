from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CodesnapError(Exception):
    """Base exception for errors in the codesnap package."""


@dataclass(frozen=True)
class RootDirectoryError(CodesnapError):
    """Raised when the directory to scan does not exist or is not a directory."""

    folder: Path
    message: str = "The specified root is not a readable directory."

    def __str__(self) -> str:
        return f"{self.message} ({self.folder})"


@dataclass(frozen=True)
class ProfileError(CodesnapError):
    """Raised when a configuration profile cannot be read or written."""

    name: str
    reason: str

    def __str__(self) -> str:
        return f"Profile {self.name!r}: {self.reason}"


@dataclass(frozen=True)
class ProfileNotFoundError(CodesnapError):
    """Raised when a configuration profile does not exist."""

    name: str
    folder: Path

    def __str__(self) -> str:
        return f"Configuration profile {self.name!r} not found in {self.folder}"


@dataclass(frozen=True)
class SelectionCancelledError(CodesnapError):
    """Raised when the user declines the interactive selection."""

    message: str = "Selection cancelled."

    def __str__(self) -> str:
        return self.message
