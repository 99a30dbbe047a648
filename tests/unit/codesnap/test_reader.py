from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from codesnap import reader
from codesnap.reader import decode_content, read_files
from codesnap.settings import Budget

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

KB = 1024


def make_budget(**overrides: int) -> Budget:
    values = {
        "total_byte_limit": 1024 * KB,
        "token_limit_chars": 0,
        "max_files": 100,
        "max_file_size": 100 * KB,
        "max_read_size": 100 * KB,
    }
    values.update(overrides)
    return Budget(**values)


def write(root: Path, rel: str, content: str | bytes) -> str:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return rel


@pytest.mark.unit
def test_read_files_stops_at_cumulative_byte_limit(tmp_path: Path) -> None:
    rels = [write(tmp_path, name, "a" * KB) for name in ("a.py", "b.py", "c.py")]

    report = read_files(tmp_path, rels, make_budget(total_byte_limit=2 * KB), force_utf8=False)

    assert [f.rel for f in report.files] == ["a.py", "b.py"]
    assert report.skipped_for_size == 1
    assert report.total_size <= 2 * KB


@pytest.mark.unit
def test_read_files_drops_empty_and_oversized_before_reading(tmp_path: Path, mocker: MockerFixture) -> None:
    rels = [
        write(tmp_path, "empty.py", ""),
        write(tmp_path, "huge.py", "x" * (10 * KB)),
        write(tmp_path, "ok.py", "print('ok')\n"),
    ]
    spy = mocker.spy(reader, "_read_bytes")

    report = read_files(tmp_path, rels, make_budget(max_read_size=5 * KB), force_utf8=False)

    assert [f.rel for f in report.files] == ["ok.py"]
    assert report.skipped_empty == 1
    assert report.skipped_for_size == 1
    assert [call.args[0].name for call in spy.call_args_list] == ["ok.py"]


@pytest.mark.unit
def test_read_files_reads_each_path_at_most_once(tmp_path: Path, mocker: MockerFixture) -> None:
    rels = [write(tmp_path, f"m{i}.py", f"x = {i}\n" * (i + 1)) for i in range(8)]
    spy = mocker.spy(reader, "_read_bytes")

    report = read_files(tmp_path, rels, make_budget(total_byte_limit=60), force_utf8=False)

    counts = Counter(call.args[0] for call in spy.call_args_list)
    assert all(n == 1 for n in counts.values())
    assert len(counts) == len(report.files)


@pytest.mark.unit
def test_read_files_orders_priority_names_then_small_files(tmp_path: Path) -> None:
    rels = [
        write(tmp_path, "big.py", "b" * (60 * KB)),
        write(tmp_path, "small.py", "s" * 10),
        write(tmp_path, "medium.py", "m" * 100),
        write(tmp_path, "package.json", "{" + " " * (70 * KB) + "}"),
    ]

    report = read_files(tmp_path, rels, make_budget(), force_utf8=False)

    assert [f.rel for f in report.files] == ["package.json", "small.py", "medium.py", "big.py"]


@pytest.mark.unit
def test_read_files_truncates_to_max_files(tmp_path: Path) -> None:
    rels = [write(tmp_path, f"f{i}.py", "x" * (i + 1)) for i in range(5)]

    report = read_files(tmp_path, rels, make_budget(max_files=2), force_utf8=False)

    assert [f.rel for f in report.files] == ["f0.py", "f1.py"]


@pytest.mark.unit
def test_read_files_encoding_policy(tmp_path: Path) -> None:
    rels = [write(tmp_path, "latin.txt", b"caf\xe9\n"), write(tmp_path, "utf.txt", "café\n")]

    lossy = read_files(tmp_path, rels, make_budget(), force_utf8=False)
    strict = read_files(tmp_path, rels, make_budget(), force_utf8=True)

    assert {f.rel: f.content for f in lossy.files} == {"latin.txt": "caf?\n", "utf.txt": "café\n"}
    assert [f.rel for f in strict.files] == ["utf.txt"]
    assert strict.skipped_for_encoding == 1


@pytest.mark.unit
def test_read_files_counts_unreadable_files(tmp_path: Path, mocker: MockerFixture) -> None:
    rels = [write(tmp_path, "a.py", "x = 1\n")]
    mocker.patch.object(reader, "_read_bytes", side_effect=PermissionError("denied"))

    report = read_files(tmp_path, rels, make_budget(), force_utf8=False)

    assert report.files == ()
    assert report.skipped_unreadable == 1


@pytest.mark.unit
def test_read_files_drops_missing_candidates(tmp_path: Path) -> None:
    report = read_files(tmp_path, ["gone.py"], make_budget(), force_utf8=False)

    assert report.files == ()
    assert report.skipped_unreadable == 0


@pytest.mark.unit
def test_read_file_size_is_content_length(tmp_path: Path) -> None:
    rels = [write(tmp_path, "accent.md", "é" * 10)]

    report = read_files(tmp_path, rels, make_budget(), force_utf8=False)

    f = report.files[0]
    assert f.size == len(f.content) == 10
    assert f.tokens == 3


@pytest.mark.unit
def test_decode_content_replaces_non_ascii_when_lossy() -> None:
    assert decode_content(b"ok", force_utf8=True) == "ok"
    assert decode_content(b"\xff\xfeA", force_utf8=False) == "??A"
    assert decode_content(b"\xff", force_utf8=True) is None


@pytest.mark.unit
def test_decode_content_keeps_one_placeholder_per_character() -> None:
    assert decode_content("café".encode() + b"\xff", force_utf8=False) == "caf??"
    assert decode_content("naïve ✓".encode() + b"\xfe", force_utf8=False) == "na?ve ??"


@pytest.mark.unit
def test_read_files_second_file_would_overflow_limit(tmp_path: Path) -> None:
    rels = [write(tmp_path, "first.py", "1" * 600), write(tmp_path, "second.py", "2" * 600)]

    report = read_files(tmp_path, rels, make_budget(total_byte_limit=1000), force_utf8=False)

    assert [f.rel for f in report.files] == ["first.py"]
    assert report.skipped_for_size == 1


@pytest.mark.unit
def test_read_files_records_discovery_position(tmp_path: Path) -> None:
    rels = [
        write(tmp_path, "z.py", "x = 1\n" * 600),
        write(tmp_path, "README.md", "# r\n"),
        write(tmp_path, "a.py", "y\n"),
    ]

    report = read_files(tmp_path, rels, make_budget(), force_utf8=False)

    assert [f.rel for f in report.files] == ["README.md", "a.py", "z.py"]
    assert {f.rel: f.discovery_index for f in report.files} == {"z.py": 0, "README.md": 1, "a.py": 2}
