from __future__ import annotations

import json
from pathlib import Path

import pytest

from codesnap.logging import setup_logging


@pytest.mark.unit
@pytest.mark.parametrize(("verbose", "expected"), [(False, ["warning"]), (True, ["debug", "info", "warning"])])
def test_setup_logging_level_follows_verbose(tmp_path: Path, verbose: bool, expected: list[str]) -> None:
    log_file = tmp_path / "codesnap.log"
    try:
        log = setup_logging(log_file, verbose=verbose, force=True)
        log.debug("file_skipped", path="a.bin")
        log.info("selection_finished", admitted=1)
        log.warning("clipboard_unavailable")
    finally:
        setup_logging(force=True)

    levels = [json.loads(line)["level"] for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert levels == expected
