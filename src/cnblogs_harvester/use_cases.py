"""Business logic use cases."""

import asyncio
import logging
import os
import time
from datetime import date, datetime, timedelta
from enum import Enum
from html import escape
from pathlib import Path
from typing import Awaitable, Callable, Optional

from cnblogs_harvester.adapters.archive import TextArchiveWriter
from cnblogs_harvester.core import (
    ArticleExtractor,
    Attachment,
    CycleReport,
    DeduplicationCache,
    DigestAnchor,
    FetchError,
    NotificationError,
    Notifier,
    PageFetcher,
    PersistenceError,
)

logger = logging.getLogger(__name__)
mail_logger = logging.getLogger("cnblogs_harvester.digest")


class DigestScheduler:
    """Send the archive of the anchor day once the anchor has passed.

    When ``marker_path`` is set, the last handled anchor day is recorded there
    so a restart does not resend a digest that already went out.
    """

    def __init__(
        self,
        archive: TextArchiveWriter,
        notifier: Optional[Notifier],
        recipients: list[str],
        anchor: DigestAnchor,
        grace: timedelta = timedelta(minutes=10),
        subject: str = "Cnblogs front page digest",
        marker_path: Optional[Path] = None,
    ) -> None:
        self.archive = archive
        self.notifier = notifier
        self.recipients = recipients
        self.anchor = anchor
        self.grace = grace
        self.subject = subject
        self.marker_path = marker_path

        if marker_path is not None:
            last_day = read_last_digest_day(marker_path)
            if last_day is not None and last_day >= self.anchor.day:
                self.anchor = DigestAnchor.for_day(last_day, self.anchor.due_at.time()).next()
                mail_logger.info(
                    "Digest for %s already handled, next anchor %s",
                    last_day, self.anchor.due_at.strftime("%Y-%m-%d %H:%M:%S"),
                )

    def should_dispatch(self, now: datetime) -> bool:
        return self.notifier is not None and self.anchor.is_due(now, self.grace)

    async def check(self, now: datetime) -> bool:
        """Dispatch if due and advance the anchor unless sending failed.

        Failures stay inside the digest step; the harvest cycle is unaffected.

        Returns:
            True if a digest was sent
        """
        if not self.should_dispatch(now):
            return False

        mail_logger.info("Digest due, anchor %s", self.anchor.due_at.strftime("%Y-%m-%d %H:%M:%S"))

        try:
            sent = await self.dispatch(self.anchor.day)
        except NotificationError as e:
            mail_logger.error("Digest for %s not sent, will retry next cycle: %s", self.anchor.day, e)
            return False
        except Exception as e:
            mail_logger.error(
                "Digest for %s failed unexpectedly, will retry next cycle: %s: %s",
                self.anchor.day, type(e).__name__, e,
            )
            return False

        handled_day = self.anchor.day
        self.anchor = self.anchor.next()
        self._record_handled(handled_day)
        mail_logger.info("Next digest anchor: %s", self.anchor.due_at.strftime("%Y-%m-%d %H:%M:%S"))
        return sent

    async def dispatch(self, day: date) -> bool:
        """Mail the archive of ``day`` with the raw file attached.

        Returns:
            False if there is no archive for ``day`` and nothing was sent

        Raises:
            NotificationError: if the archive cannot be read or the mail fails
        """
        if self.notifier is None:
            raise NotificationError("Mail is not configured")

        path = self.archive.path_for(day)
        try:
            content = self.archive.read(day)
        except PersistenceError as e:
            raise NotificationError(str(e)) from e

        if content is None:
            mail_logger.warning("No archive file %s, digest for %s skipped", path.name, day)
            return False

        await self.notifier.send(
            self.recipients,
            f"{self.subject} - {day:%Y-%m-%d}",
            render_digest_body(content),
            Attachment(content=content, filename=path.name),
        )
        mail_logger.info("Digest %s sent", path.name)
        return True

    def _record_handled(self, day: date) -> None:
        if self.marker_path is None:
            return
        try:
            write_last_digest_day(self.marker_path, day)
        except OSError as e:
            mail_logger.warning("Could not record digest day in %s: %s", self.marker_path, e)


def read_last_digest_day(path: Path) -> Optional[date]:
    """Day recorded by the last handled digest, or None if absent or unreadable."""
    if not path.exists():
        return None
    try:
        return date.fromisoformat(path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError) as e:
        mail_logger.warning("Ignoring digest marker %s: %s", path, e)
        return None


def write_last_digest_day(path: Path, day: date) -> None:
    tmp_path = path.with_name(path.name + ".part")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path.write_text(day.isoformat(), encoding="utf-8")
    os.replace(tmp_path, path)


def render_digest_body(content: bytes) -> str:
    """One HTML line per archive line, split on line feeds only."""
    text = content.decode("utf-8", errors="replace")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    lines = [line.rstrip("\r") for line in lines]
    return "".join(f"{escape(line)}<br/>" for line in lines)


class HarvestService:
    """One harvest cycle: fetch, extract, drop repeats, archive, then check the digest."""

    def __init__(
        self,
        url: str,
        fetcher: PageFetcher,
        extractor: ArticleExtractor,
        cache: DeduplicationCache,
        archive: TextArchiveWriter,
        digest_scheduler: Optional[DigestScheduler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.url = url
        self.fetcher = fetcher
        self.extractor = extractor
        self.cache = cache
        self.archive = archive
        self.digest_scheduler = digest_scheduler
        self.clock = clock

    async def run_cycle(self) -> CycleReport:
        """Run one cycle.

        Raises:
            FetchError: the page could not be fetched or held no articles
            PersistenceError: the archive or snapshot could not be written
        """
        started = time.perf_counter()

        markup = await self.fetcher.fetch(self.url)
        batch = self.extractor.extract(markup)
        if not batch:
            raise FetchError(f"No articles found at {self.url}")

        result = self.cache.classify(batch)
        archive_path = self.archive.append(result.novel, self.clock().date())
        # Snapshot must never get ahead of the archive
        self.cache.advance(batch)

        report = CycleReport(
            total=len(batch),
            duplicate_count=result.duplicate_count,
            elapsed_ms=(time.perf_counter() - started) * 1000,
            archive_path=archive_path,
            novel=result.novel,
        )
        logger.info(
            "Harvest ok in %.0fms: %d articles, %d repeated, %d new",
            report.elapsed_ms, report.total, report.duplicate_count, report.novel_count,
        )

        if self.digest_scheduler is not None:
            await self.digest_scheduler.check(self.clock())

        return report


class SchedulerState(str, Enum):
    """Phase of the harvest loop."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class RetryingScheduler:
    """Run a cycle with bounded retries, sleep, repeat until stopped.

    Exhausting the retries is logged and never ends the loop.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[object]],
        max_retries: int = 3,
        interval: float = 300.0,
        retry_delay: float = 0.0,
    ) -> None:
        self.cycle = cycle
        self.max_retries = max_retries
        self.interval = interval
        self.retry_delay = retry_delay
        self.state = SchedulerState.IDLE
        self.attempt = 0
        self._stop_event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to finish after the current attempt or sleep."""
        self._stop_event.set()

    async def run_once(self) -> bool:
        """Run the cycle, retrying up to ``max_retries`` times.

        Returns:
            True if an attempt succeeded
        """
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            if self.stopped:
                self.state = SchedulerState.STOPPED
                return False

            self.state = SchedulerState.RUNNING
            self.attempt = attempt

            try:
                await self.cycle()
            except Exception as e:
                logger.error(
                    "Cycle attempt %d/%d failed: %s: %s",
                    attempt, attempts, type(e).__name__, e,
                )
                if attempt < attempts and self.retry_delay > 0:
                    await self._sleep(self.retry_delay)
                continue

            self.state = SchedulerState.SUCCEEDED
            return True

        self.state = SchedulerState.EXHAUSTED
        logger.error("Cycle failed after %d attempts, next try in %.0fs", attempts, self.interval)
        return False

    async def run_forever(self) -> None:
        """Alternate cycles and sleeps until ``stop`` is called."""
        while not self.stopped:
            await self.run_once()
            if self.stopped:
                break

            self.state = SchedulerState.SLEEPING
            await self._sleep(self.interval)

        self.state = SchedulerState.STOPPED
        logger.info("Harvest loop stopped")

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
