"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

PUBLISHED_AT_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class ArticleRecord:
    """One harvested article. ``url`` is the identity key."""
    
    title: str
    url: str
    summary: str
    author: str
    published_at: datetime
    
    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "url": self.url,
            "summary": self.summary,
            "author": self.author,
            "published_at": self.published_at.isoformat(),
        }
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArticleRecord":
        """Build a record from its snapshot form.
        
        Raises:
            KeyError: if ``url`` or ``published_at`` is missing
            ValueError: if ``published_at`` is not ISO-8601
        """
        return cls(
            title=data.get("title") or "",
            url=data["url"],
            summary=data.get("summary") or "",
            author=data.get("author") or "",
            published_at=datetime.fromisoformat(data["published_at"]),
        )


@dataclass
class ClassifyResult:
    """Outcome of checking a batch against the dedup cache."""
    
    novel: list[ArticleRecord]
    duplicate_count: int


@dataclass
class CycleReport:
    """Statistics of one successful harvest cycle."""
    
    total: int
    duplicate_count: int
    elapsed_ms: float
    archive_path: Optional[Path] = None
    novel: list[ArticleRecord] = field(default_factory=list)
    
    @property
    def novel_count(self) -> int:
        return len(self.novel)
