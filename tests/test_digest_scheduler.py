"""Tests for the daily digest scheduler."""

from datetime import date, datetime, time, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from cnblogs_harvester.adapters.archive import TextArchiveWriter
from cnblogs_harvester.core import ArticleRecord, DigestAnchor, NotificationError
from cnblogs_harvester.use_cases import DigestScheduler, render_digest_body

ANCHOR_DAY = date(2024, 5, 1)


def make_scheduler(tmp_path: Path, notifier: AsyncMock) -> DigestScheduler:
    return DigestScheduler(
        archive=TextArchiveWriter(tmp_path),
        notifier=notifier,
        recipients=["reader@example.com"],
        anchor=DigestAnchor.for_day(ANCHOR_DAY, time(9, 0)),
        grace=timedelta(minutes=10),
        subject="Digest",
    )


def write_archive(tmp_path: Path, day: date) -> Path:
    record = ArticleRecord("A <b>title</b>", "/a", "summary", "author", datetime(2024, 5, 1, 8, 0))
    return TextArchiveWriter(tmp_path).append([record], day)


def test_should_dispatch_respects_anchor_and_grace(tmp_path: Path) -> None:
    scheduler = make_scheduler(tmp_path, AsyncMock())
    
    assert not scheduler.should_dispatch(datetime(2024, 5, 1, 8, 0))
    assert not scheduler.should_dispatch(datetime(2024, 5, 1, 9, 5))
    assert scheduler.should_dispatch(datetime(2024, 5, 1, 9, 10))
    assert scheduler.should_dispatch(datetime(2024, 5, 2, 0, 30))


def test_should_dispatch_without_notifier(tmp_path: Path) -> None:
    scheduler = make_scheduler(tmp_path, AsyncMock())
    scheduler.notifier = None
    
    assert not scheduler.should_dispatch(datetime(2024, 5, 1, 12, 0))


@pytest.mark.asyncio
async def test_check_sends_once_then_waits_for_next_anchor(tmp_path: Path) -> None:
    """Test a successful dispatch advances the anchor by one day."""
    notifier = AsyncMock()
    scheduler = make_scheduler(tmp_path, notifier)
    write_archive(tmp_path, ANCHOR_DAY)
    now = datetime(2024, 5, 1, 9, 15)
    
    assert await scheduler.check(now) is True
    
    assert scheduler.anchor.due_at == datetime(2024, 5, 2, 9, 0)
    assert not scheduler.should_dispatch(now)
    assert not scheduler.should_dispatch(datetime(2024, 5, 2, 9, 5))
    assert scheduler.should_dispatch(datetime(2024, 5, 2, 9, 10))
    
    assert await scheduler.check(datetime(2024, 5, 1, 9, 20)) is False
    notifier.send.assert_called_once()


@pytest.mark.asyncio
async def test_dispatch_message_content(tmp_path: Path) -> None:
    """Test subject, HTML body and raw attachment."""
    notifier = AsyncMock()
    scheduler = make_scheduler(tmp_path, notifier)
    path = write_archive(tmp_path, ANCHOR_DAY)
    
    assert await scheduler.dispatch(ANCHOR_DAY) is True
    
    recipients, subject, body, attachment = notifier.send.call_args.args
    assert recipients == ["reader@example.com"]
    assert subject == "Digest - 2024-05-01"
    assert "Title: A &lt;b&gt;title&lt;/b&gt;<br/>" in body
    assert body.count("<br/>") == len(path.read_text(encoding="utf-8").splitlines())
    assert attachment.filename == "cnblogs-2024-05-01.txt"
    assert attachment.content == path.read_bytes()


@pytest.mark.asyncio
async def test_dispatch_uses_anchor_day_after_midnight(tmp_path: Path) -> None:
    """Test the digest covers the anchor's day, not the current day."""
    notifier = AsyncMock()
    scheduler = make_scheduler(tmp_path, notifier)
    write_archive(tmp_path, ANCHOR_DAY)
    write_archive(tmp_path, date(2024, 5, 2))
    
    await scheduler.check(datetime(2024, 5, 2, 0, 5))
    
    assert notifier.send.call_args.args[3].filename == "cnblogs-2024-05-01.txt"


@pytest.mark.asyncio
async def test_missing_archive_skips_and_advances(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Test a day without new articles is skipped, not retried."""
    notifier = AsyncMock()
    scheduler = make_scheduler(tmp_path, notifier)
    
    assert await scheduler.check(datetime(2024, 5, 1, 10, 0)) is False
    
    notifier.send.assert_not_called()
    assert scheduler.anchor.day == date(2024, 5, 2)
    assert "skipped" in caplog.text


@pytest.mark.asyncio
async def test_send_failure_keeps_anchor(tmp_path: Path) -> None:
    """Test a failed dispatch is retried on the next check."""
    notifier = AsyncMock()
    notifier.send.side_effect = NotificationError("smtp down")
    scheduler = make_scheduler(tmp_path, notifier)
    write_archive(tmp_path, ANCHOR_DAY)
    
    assert await scheduler.check(datetime(2024, 5, 1, 9, 15)) is False
    assert scheduler.anchor.day == ANCHOR_DAY
    assert scheduler.should_dispatch(datetime(2024, 5, 1, 9, 20))
    
    notifier.send.side_effect = None
    assert await scheduler.check(datetime(2024, 5, 1, 9, 20)) is True
    assert scheduler.anchor.day == date(2024, 5, 2)


def test_render_digest_body() -> None:
    body = render_digest_body("first\nsecond & more\n".encode("utf-8"))
    
    assert body == "first<br/>second &amp; more<br/>"


@pytest.mark.asyncio
async def test_unexpected_notifier_error_stays_in_digest_step(tmp_path: Path) -> None:
    """Test any notifier failure leaves the anchor and is not raised."""
    notifier = AsyncMock()
    notifier.send.side_effect = RuntimeError("boom")
    scheduler = make_scheduler(tmp_path, notifier)
    write_archive(tmp_path, ANCHOR_DAY)
    
    assert await scheduler.check(datetime(2024, 5, 1, 10, 0)) is False
    assert scheduler.anchor.day == ANCHOR_DAY


@pytest.mark.asyncio
async def test_marker_prevents_resend_after_restart(tmp_path: Path) -> None:
    """Test a restarted scheduler skips the day already mailed."""
    marker = tmp_path / "cnblogs.digest"
    write_archive(tmp_path, ANCHOR_DAY)
    scheduler = make_scheduler(tmp_path, AsyncMock())
    scheduler.marker_path = marker
    
    assert await scheduler.check(datetime(2024, 5, 1, 9, 15)) is True
    assert marker.read_text(encoding="utf-8") == "2024-05-01"
    
    restarted_notifier = AsyncMock()
    restarted = DigestScheduler(
        archive=TextArchiveWriter(tmp_path),
        notifier=restarted_notifier,
        recipients=["reader@example.com"],
        anchor=DigestAnchor.for_day(ANCHOR_DAY, time(9, 0)),
        marker_path=marker,
    )
    
    assert restarted.anchor.due_at == datetime(2024, 5, 2, 9, 0)
    assert await restarted.check(datetime(2024, 5, 1, 9, 30)) is False
    restarted_notifier.send.assert_not_called()


def test_stale_or_corrupt_marker_is_ignored(tmp_path: Path) -> None:
    marker = tmp_path / "cnblogs.digest"
    
    marker.write_text("2024-04-30", encoding="utf-8")
    stale = DigestScheduler(
        TextArchiveWriter(tmp_path), AsyncMock(), [], DigestAnchor.for_day(ANCHOR_DAY, time(9, 0)), marker_path=marker
    )
    assert stale.anchor.day == ANCHOR_DAY
    
    marker.write_text("garbage", encoding="utf-8")
    corrupt = DigestScheduler(
        TextArchiveWriter(tmp_path), AsyncMock(), [], DigestAnchor.for_day(ANCHOR_DAY, time(9, 0)), marker_path=marker
    )
    assert corrupt.anchor.day == ANCHOR_DAY


def test_render_digest_body_splits_on_line_feeds_only() -> None:
    """Test form feeds and unicode separators stay inside their line."""
    body = render_digest_body("a\x0cb\r\nc\u2028d\n".encode("utf-8"))
    
    assert body == "a\x0cb<br/>c\u2028d<br/>"
