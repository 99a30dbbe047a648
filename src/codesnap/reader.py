from __future__ import annotations

import re
import stat
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from codesnap.config import SMALL_FILE_PREFERENCE_THRESHOLD, is_high_priority_name
from codesnap.logging import logger
from codesnap.records import Candidate, ReadFile, ReadReport

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from codesnap.settings import Budget

_NON_ASCII = re.compile(r"[^\x00-\x7f]")


def _read_bytes(path: Path) -> bytes:
    return path.read_bytes()


def decode_content(raw: bytes, *, force_utf8: bool) -> str | None:
    """Decode file bytes as UTF-8.

    Args:
        raw (bytes): the file content
        force_utf8 (bool): when True, undecodable content is rejected; otherwise
            it is decoded lossily with every non-ASCII character replaced by `?`

    Returns:
        str | None: the decoded text, or None when rejected
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        if force_utf8:
            return None
        return _NON_ASCII.sub("?", raw.decode("utf-8", errors="replace"))


def _preliminary_key(c: Candidate) -> tuple[bool, bool, int]:
    size = c.size or 0
    return (
        not is_high_priority_name(PurePosixPath(c.rel).name),
        size >= SMALL_FILE_PREFERENCE_THRESHOLD,
        size,
    )


def stat_candidates(root: Path, rels: Sequence[str], budget: Budget) -> tuple[list[Candidate], int, int]:
    """First pass: stat every candidate without reading it.

    Args:
        root (Path): the project root
        rels (Sequence[str]): relative candidate paths
        budget (Budget): the run budget

    Returns:
        tuple[list[Candidate], int, int]: candidates with size and mtime populated,
            in preliminary order and capped to `budget.max_files`, plus the number
            of files skipped for size and for being empty
    """
    out: list[Candidate] = []
    skipped_for_size = 0
    skipped_empty = 0
    for rel in rels:
        try:
            st = (root / rel).stat()
        except OSError as e:
            logger.debug("stat_failed", path=rel, error=str(e))
            continue
        if not stat.S_ISREG(st.st_mode):
            logger.debug("not_a_regular_file", path=rel)
            continue
        if st.st_size == 0:
            skipped_empty += 1
            continue
        if st.st_size > budget.max_read_size:
            logger.debug("file_too_large", path=rel, size=st.st_size, limit=budget.max_read_size)
            skipped_for_size += 1
            continue
        out.append(Candidate(rel=rel, size=st.st_size, mtime=st.st_mtime))

    out.sort(key=_preliminary_key)
    return out[: budget.max_files], skipped_for_size, skipped_empty


def read_files(root: Path, candidates: Sequence[str], budget: Budget, *, force_utf8: bool) -> ReadReport:
    """Read candidate files under the cumulative byte ceiling.

    Two passes: a stat-only pass that drops empty and oversized files and orders
    the rest (high-priority names first, then small files, then by size), and a
    read pass that skips any file which would push the running total over
    `budget.total_byte_limit` before touching its content. Every path is read
    at most once.

    Args:
        root (Path): the project root
        candidates (Sequence[str]): relative paths from discovery
        budget (Budget): the run budget
        force_utf8 (bool): skip files that are not valid UTF-8 instead of
            decoding them lossily

    Returns:
        ReadReport: the files read, in processing order, and the skip counters
    """
    ordered, skipped_for_size, skipped_empty = stat_candidates(root, candidates, budget)
    discovery_index = {rel: i for i, rel in enumerate(candidates)}
    skipped_for_encoding = 0
    skipped_unreadable = 0
    total = 0
    files: list[ReadFile] = []

    for c in ordered:
        size = c.size or 0
        if total + size > budget.total_byte_limit:
            logger.debug("byte_limit_reached", path=c.rel, size=size, total=total)
            skipped_for_size += 1
            continue
        try:
            raw = _read_bytes(root / c.rel)
        except OSError as e:
            logger.warning("file_unreadable", path=c.rel, error=str(e))
            skipped_unreadable += 1
            continue
        text = decode_content(raw, force_utf8=force_utf8)
        if text is None:
            logger.debug("not_utf8", path=c.rel)
            skipped_for_encoding += 1
            continue
        total += len(raw)
        files.append(ReadFile.from_content(c.rel, text, c.mtime or 0.0, discovery_index[c.rel]))

    report = ReadReport(
        files=tuple(files),
        skipped_for_size=skipped_for_size,
        skipped_for_encoding=skipped_for_encoding,
        skipped_unreadable=skipped_unreadable,
        skipped_empty=skipped_empty,
    )
    logger.info(
        "read_finished",
        read=len(files),
        total_size=report.total_size,
        skipped_for_size=skipped_for_size,
        skipped_for_encoding=skipped_for_encoding,
        skipped_unreadable=skipped_unreadable,
        skipped_empty=skipped_empty,
    )
    return report
