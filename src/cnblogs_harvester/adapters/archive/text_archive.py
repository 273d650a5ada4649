"""Day-named plain text archive of new articles."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from cnblogs_harvester.core import PUBLISHED_AT_FORMAT, ArticleRecord, PersistenceError

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 50


class TextArchiveWriter:
    """Append article blocks to ``<prefix>-<YYYY-MM-DD>.txt`` files."""
    
    def __init__(self, archive_dir: Path, prefix: str = "cnblogs") -> None:
        self.archive_dir = archive_dir
        self.prefix = prefix
    
    def path_for(self, day: date) -> Path:
        return self.archive_dir / f"{self.prefix}-{day:%Y-%m-%d}.txt"
    
    def append(self, records: list[ArticleRecord], day: date) -> Optional[Path]:
        """Append one block per record to the archive of ``day``.
        
        Nothing is written, and no file is created, for an empty list.
        
        Returns:
            Path of the archive file, or None if nothing was written
            
        Raises:
            PersistenceError: on any I/O failure
        """
        if not records:
            return None
        
        path = self.path_for(day)
        content = "".join(self.render_block(record) for record in records)
        
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise PersistenceError(f"Could not append to archive {path}: {e}") from e
        
        logger.debug("Appended %d articles to %s", len(records), path)
        return path
    
    def read(self, day: date) -> Optional[bytes]:
        """Return the raw archive of ``day``, or None if it does not exist.
        
        Raises:
            PersistenceError: if the file exists but cannot be read
        """
        path = self.path_for(day)
        if not path.exists():
            return None
        
        try:
            return path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Could not read archive {path}: {e}") from e
    
    @staticmethod
    def render_block(record: ArticleRecord) -> str:
        lines = [
            f"Title: {one_line(record.title)}",
            f"Url: {one_line(record.url)}",
            f"Summary: {one_line(record.summary)}",
            f"Author: {one_line(record.author)}",
            f"PublishedAt: {record.published_at.strftime(PUBLISHED_AT_FORMAT)}",
            SEPARATOR,
        ]
        return "\n".join(lines) + "\n"


def one_line(value: str) -> str:
    """Keep a field on a single archive line."""
    return " ".join(value.split())
