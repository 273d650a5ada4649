"""Extract article records from the cnblogs post list markup."""

import logging
import re
from datetime import datetime
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from cnblogs_harvester.core import PUBLISHED_AT_FORMAT, ArticleExtractor, ArticleRecord, ParseError

logger = logging.getLogger(__name__)

PUBLISHED_AT_PATTERN = re.compile(r"\d+-\d+-\d+ \d+:\d+")


class CnblogsArticleExtractor(ArticleExtractor):
    """Parse post list items using CSS selectors.

    Every item yields a record even when title, link, summary or author are
    missing (those become empty strings). An item without a readable publish
    time is dropped with a warning.
    """

    def __init__(
        self,
        item_selector: str = "div.post_item_body",
        title_selector: str = "h3 > a",
        summary_selector: str = "p.post_item_summary",
        footer_selector: str = "div.post_item_foot",
        author_selector: str = "a",
        base_url: Optional[str] = None,
    ) -> None:
        self.item_selector = item_selector
        self.title_selector = title_selector
        self.summary_selector = summary_selector
        self.footer_selector = footer_selector
        self.author_selector = author_selector
        self.base_url = base_url

    def extract(self, markup: str) -> list[ArticleRecord]:
        """Extract records in document order."""
        soup = BeautifulSoup(markup, "html.parser")
        records: list[ArticleRecord] = []
        skipped = 0

        for index, item in enumerate(soup.select(self.item_selector), 1):
            try:
                records.append(self._parse_item(item))
            except ParseError as e:
                skipped += 1
                logger.warning("Skipping article #%d: %s", index, e)

        if skipped:
            logger.warning("Dropped %d of %d articles with unreadable publish time", skipped, skipped + len(records))

        return records

    def _parse_item(self, item: Tag) -> ArticleRecord:
        title_elem = item.select_one(self.title_selector)
        title = clean_text(title_elem) if title_elem is not None else ""
        url = (title_elem.get("href") or "").strip() if title_elem is not None else ""
        if url and self.base_url:
            url = urljoin(self.base_url, url)

        summary_elem = item.select_one(self.summary_selector)
        summary = ""
        if summary_elem is not None:
            summary = clean_text(summary_elem)

        footer_elem = item.select_one(self.footer_selector)
        author = ""
        footer_text = ""
        if footer_elem is not None:
            author_elem = footer_elem.select_one(self.author_selector)
            author = clean_text(author_elem) if author_elem is not None else ""
            footer_text = footer_elem.get_text()

        return ArticleRecord(
            title=title,
            url=url,
            summary=summary,
            author=author,
            published_at=parse_published_at(footer_text, title or url),
        )


def parse_published_at(text: str, label: str = "") -> datetime:
    """Find a ``YYYY-MM-DD HH:MM`` timestamp in ``text``.

    Raises:
        ParseError: if no valid timestamp is present
    """
    match = PUBLISHED_AT_PATTERN.search(text)
    if not match:
        raise ParseError(f"no publish time found for {label!r}")

    try:
        return datetime.strptime(match.group(0), PUBLISHED_AT_FORMAT)
    except ValueError as e:
        raise ParseError(f"invalid publish time {match.group(0)!r} for {label!r}: {e}") from e


def clean_text(elem: Tag) -> str:
    """Element text on one line, whitespace runs collapsed."""
    return " ".join(elem.get_text().split())
