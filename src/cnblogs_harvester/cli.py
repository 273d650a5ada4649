"""CLI entry point for the cnblogs harvester."""

import asyncio
import logging
import os
import signal
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import typer

from cnblogs_harvester.adapters.archive import TextArchiveWriter
from cnblogs_harvester.adapters.fetch import HttpPageFetcher
from cnblogs_harvester.adapters.notifications import SmtpNotifier
from cnblogs_harvester.adapters.parsing import CnblogsArticleExtractor
from cnblogs_harvester.config import Settings, get_settings
from cnblogs_harvester.core import DeduplicationCache, DigestAnchor, HarvesterError, parse_anchor_time
from cnblogs_harvester.use_cases import DigestScheduler, HarvestService, RetryingScheduler

logger = logging.getLogger("cnblogs_harvester")


def main(
    config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config"),
    once: bool = typer.Option(False, "--once", help="Run a single (retried) cycle and exit"),
    no_mail: bool = typer.Option(False, "--no-mail", help="Disable the daily mail digest"),
    digest_date: Optional[datetime] = typer.Option(
        None, "--digest-date", formats=["%Y-%m-%d"], help="Send the digest of this day now and exit"
    ),
) -> None:
    """Harvest the cnblogs front page into a daily archive and mail a digest."""
    settings = get_settings(config)
    configure_logging(settings)

    if digest_date is not None:
        sent = asyncio.run(send_digest(settings, digest_date.date()))
        raise typer.Exit(code=0 if sent else 1)

    asyncio.run(async_run(settings, once, no_mail))


def app() -> None:
    """CLI entry point."""
    typer.run(main)


def configure_logging(settings: Settings) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.logging.file:
        settings.logging.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.logging.file, encoding="utf-8"))

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def build_notifier(settings: Settings) -> SmtpNotifier:
    return SmtpNotifier(
        host=settings.mail.smtp_host,
        port=settings.mail.smtp_port,
        username=settings.mail.username,
        password=settings.smtp_password,
        sender=settings.mail.sender,
        sender_name=settings.mail.sender_name,
        use_ssl=settings.mail.use_ssl,
        starttls=settings.mail.starttls,
    )


def build_digest_scheduler(
    settings: Settings, archive: TextArchiveWriter, mail_enabled: bool
) -> DigestScheduler:
    anchor = DigestAnchor.for_day(date.today(), parse_anchor_time(settings.digest.anchor_time))
    return DigestScheduler(
        archive=archive,
        notifier=build_notifier(settings) if mail_enabled else None,
        recipients=settings.mail.recipients,
        anchor=anchor,
        grace=timedelta(minutes=settings.digest.grace_minutes),
        subject=settings.digest.subject,
        marker_path=settings.digest_marker_path,
    )


def build_scheduler(settings: Settings, no_mail: bool) -> RetryingScheduler:
    """Wire the harvest pipeline into a retrying loop."""
    settings.paths.base_dir.mkdir(parents=True, exist_ok=True)

    archive = TextArchiveWriter(settings.archive_dir, settings.paths.archive_prefix)
    mail_enabled = settings.mail_enabled and not no_mail

    service = HarvestService(
        url=settings.source.url,
        fetcher=HttpPageFetcher(timeout=settings.source.timeout, user_agent=settings.source.user_agent),
        extractor=CnblogsArticleExtractor(
            item_selector=settings.extractor.item_selector,
            title_selector=settings.extractor.title_selector,
            summary_selector=settings.extractor.summary_selector,
            footer_selector=settings.extractor.footer_selector,
            author_selector=settings.extractor.author_selector,
            base_url=settings.source.url,
        ),
        cache=DeduplicationCache.load(settings.snapshot_path),
        archive=archive,
        digest_scheduler=build_digest_scheduler(settings, archive, mail_enabled),
    )

    return RetryingScheduler(
        cycle=service.run_cycle,
        max_retries=settings.scheduler.max_retries,
        interval=settings.scheduler.interval_seconds,
        retry_delay=settings.scheduler.retry_delay_seconds,
    )


async def async_run(settings: Settings, once: bool, no_mail: bool) -> None:
    """Async implementation of run command."""
    print("\n" + "=" * 70)
    print("Cnblogs Article Archives Tool")
    print("=" * 70)
    print(f"  • Source: {settings.source.url}")
    print(f"  • Archive dir: {settings.archive_dir}")
    print(f"  • Interval: {settings.scheduler.interval_seconds:.0f}s, retries: {settings.scheduler.max_retries}")
    if no_mail:
        print("  • Mail digest: disabled by --no-mail")
    elif settings.mail_enabled:
        print(f"  • Mail digest: daily after {settings.digest.anchor_time} to {len(settings.mail.recipients)} recipients")
    else:
        print("  • Mail digest: not configured (smtp_host / recipients missing)")
    print()

    scheduler = build_scheduler(settings, no_mail)

    if once:
        ok = await scheduler.run_once()
        if not ok:
            raise typer.Exit(code=1)
        return

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    logger.info("Service working...")
    await scheduler.run_forever()


async def send_digest(settings: Settings, day: date) -> bool:
    """Send the digest of ``day`` immediately."""
    if not settings.mail_enabled:
        logger.error("Mail is not configured, set mail.smtp_host and mail.recipients")
        return False

    archive = TextArchiveWriter(settings.archive_dir, settings.paths.archive_prefix)
    digest_scheduler = build_digest_scheduler(settings, archive, mail_enabled=True)

    try:
        return await digest_scheduler.dispatch(day)
    except HarvesterError as e:
        logger.error("Digest for %s failed: %s", day, e)
        return False


if __name__ == "__main__":
    app()
