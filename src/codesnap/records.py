from __future__ import annotations

import math
from enum import StrEnum, auto
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, computed_field

from codesnap.config import CHARS_PER_TOKEN, guess_file_type, guess_language


def estimate_tokens(size: int) -> int:
    """Estimate the token count of `size` characters (roughly 4 characters per token)."""
    return math.ceil(size / CHARS_PER_TOKEN)


class Candidate(BaseModel):
    """A discovered file, before any content is read.

    Attributes:
        rel: Path relative to the project root, POSIX separators.
        size: Size in bytes, filled by the reader's stat pass.
        mtime: POSIX modification time, filled by the reader's stat pass.
    """

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="File path relative to the project root")
    size: int | None = Field(default=None, ge=0, description="File size in bytes")
    mtime: float | None = Field(default=None, description="POSIX modification time (seconds)")


class ReadFile(BaseModel):
    """A candidate whose content has been read and decoded.

    `size` is the length of `content`; every budget computation after the read uses it.
    """

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="File path relative to the project root")
    size: int = Field(..., ge=0, description="Content length in characters")
    mtime: float = Field(default=0.0, description="POSIX modification time (seconds)")
    content: str = Field(default="", description="Decoded file content")
    discovery_index: int = Field(default=0, ge=0, description="Position in discovery order, used to break score ties")

    @classmethod
    def from_content(cls, rel: str, content: str, mtime: float = 0.0, discovery_index: int = 0) -> ReadFile:
        """Build a ReadFile whose size is derived from `content`."""
        return cls(rel=rel, size=len(content), mtime=mtime, content=content, discovery_index=discovery_index)

    @computed_field
    @property
    def tokens(self) -> int:
        """Estimated token count."""
        return estimate_tokens(self.size)

    @computed_field
    @property
    def extension(self) -> str:
        """Lowercased final suffix, e.g. `.py` (empty when there is none)."""
        return PurePosixPath(self.rel).suffix.lower()

    @computed_field
    @property
    def language(self) -> str:
        """Suggested code fence language."""
        return guess_language(guess_file_type(self.rel))


class ScoredFile(BaseModel):
    """A read file with its relevance score.

    `shrink_to` is set when the fitter admitted the file at a reduced footprint;
    the transformer then keeps at most that many characters.
    """

    model_config = ConfigDict(frozen=True)

    file: ReadFile
    score: int
    shrink_to: int | None = None

    @property
    def rel(self) -> str:
        return self.file.rel

    @property
    def size(self) -> int:
        return self.file.size


class RejectionReason(StrEnum):
    """Why the budget fitter left a file out."""

    TOKEN_BUDGET = auto()


class Rejection(BaseModel):
    """A scored file that did not make it into the selection."""

    model_config = ConfigDict(frozen=True)

    rel: str
    score: int
    size: int
    reason: RejectionReason


class Selection(BaseModel):
    """Ordered admitted files plus the files the fitter rejected."""

    model_config = ConfigDict(frozen=True)

    admitted: tuple[ScoredFile, ...] = ()
    rejected: tuple[Rejection, ...] = ()

    @computed_field
    @property
    def total_size(self) -> int:
        """Sum of the admitted files' sizes."""
        return sum(f.size for f in self.admitted)

    @computed_field
    @property
    def total_tokens(self) -> int:
        """Estimated token count of the admitted files."""
        return estimate_tokens(self.total_size)


class ReadReport(BaseModel):
    """Result of the two-pass reader: files read and why the others were skipped."""

    model_config = ConfigDict(frozen=True)

    files: tuple[ReadFile, ...] = ()
    skipped_for_size: int = 0
    skipped_for_encoding: int = 0
    skipped_unreadable: int = 0
    skipped_empty: int = 0

    @computed_field
    @property
    def total_size(self) -> int:
        """Sum of the read files' sizes."""
        return sum(f.size for f in self.files)


class DocumentSection(BaseModel):
    """One file as it appears in the output document.

    `size` is the size of the file as read; `content` is what is rendered after
    transformation and redaction.
    """

    model_config = ConfigDict(frozen=True)

    rel: str
    size: int = Field(..., ge=0)
    content: str = ""
    language: str = ""
