"""Tests for the text archive writer."""

from datetime import date, datetime
from pathlib import Path

import pytest

from cnblogs_harvester.adapters.archive import SEPARATOR, TextArchiveWriter
from cnblogs_harvester.core import ArticleRecord, PersistenceError


def make_record(url: str) -> ArticleRecord:
    return ArticleRecord(
        title=f"Title {url}",
        url=url,
        summary="Summary",
        author="Author",
        published_at=datetime(2024, 5, 1, 7, 5),
    )


def test_path_for_day(tmp_path: Path) -> None:
    writer = TextArchiveWriter(tmp_path)
    
    assert writer.path_for(date(2024, 5, 1)) == tmp_path / "cnblogs-2024-05-01.txt"


def test_render_block() -> None:
    block = TextArchiveWriter.render_block(make_record("/a"))
    
    assert block.splitlines() == [
        "Title: Title /a",
        "Url: /a",
        "Summary: Summary",
        "Author: Author",
        "PublishedAt: 2024-05-01 07:05",
        SEPARATOR,
    ]


def test_appends_accumulate_in_call_order(tmp_path: Path) -> None:
    """Test two appends on the same day end up in one file."""
    writer = TextArchiveWriter(tmp_path)
    day = date(2024, 5, 1)
    
    writer.append([make_record("/1"), make_record("/2")], day)
    path = writer.append([make_record("/3"), make_record("/4"), make_record("/5")], day)
    
    lines = path.read_text(encoding="utf-8").splitlines()
    urls = [line.removeprefix("Url: ") for line in lines if line.startswith("Url: ")]
    
    assert lines.count(SEPARATOR) == 5
    assert urls == ["/1", "/2", "/3", "/4", "/5"]


def test_empty_append_creates_no_file(tmp_path: Path) -> None:
    writer = TextArchiveWriter(tmp_path)
    
    assert writer.append([], date(2024, 5, 1)) is None
    assert not writer.path_for(date(2024, 5, 1)).exists()


def test_read(tmp_path: Path) -> None:
    writer = TextArchiveWriter(tmp_path)
    day = date(2024, 5, 1)
    
    assert writer.read(day) is None
    
    writer.append([make_record("/1")], day)
    assert writer.read(day) == writer.path_for(day).read_bytes()


def test_append_failure_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    writer = TextArchiveWriter(blocker)
    
    with pytest.raises(PersistenceError):
        writer.append([make_record("/1")], date(2024, 5, 1))


def test_render_block_keeps_fields_on_one_line() -> None:
    record = ArticleRecord("two\nlines", "/a", "a\r\nb", "x\ny", datetime(2024, 5, 1, 7, 5))
    
    lines = TextArchiveWriter.render_block(record).splitlines()
    
    assert len(lines) == 6
    assert lines[0] == "Title: two lines"
    assert lines[2] == "Summary: a b"
