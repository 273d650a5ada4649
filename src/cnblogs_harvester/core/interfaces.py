"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from cnblogs_harvester.core.entities import ArticleRecord


@dataclass
class Attachment:
    """File attached to an outgoing message."""
    
    content: bytes
    filename: str


class PageFetcher(ABC):
    """Interface for retrieving raw page markup."""
    
    @abstractmethod
    async def fetch(self, url: str) -> str:
        """Return the page markup or raise FetchError."""
        pass


class ArticleExtractor(ABC):
    """Interface for turning markup into article records."""
    
    @abstractmethod
    def extract(self, markup: str) -> list[ArticleRecord]:
        """Extract records in document order."""
        pass


class Notifier(ABC):
    """Interface for delivering the daily digest."""
    
    @abstractmethod
    async def send(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        attachment: Optional[Attachment] = None,
    ) -> None:
        """Deliver a message or raise NotificationError."""
        pass
