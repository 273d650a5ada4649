"""Core domain layer."""

from cnblogs_harvester.core.dedup_cache import DeduplicationCache
from cnblogs_harvester.core.digest_anchor import DigestAnchor, parse_anchor_time
from cnblogs_harvester.core.entities import (
    PUBLISHED_AT_FORMAT,
    ArticleRecord,
    ClassifyResult,
    CycleReport,
)
from cnblogs_harvester.core.errors import (
    FetchError,
    HarvesterError,
    NotificationError,
    ParseError,
    PersistenceError,
)
from cnblogs_harvester.core.interfaces import ArticleExtractor, Attachment, Notifier, PageFetcher

__all__ = [
    "ArticleRecord",
    "ClassifyResult",
    "CycleReport",
    "PUBLISHED_AT_FORMAT",
    "DeduplicationCache",
    "DigestAnchor",
    "parse_anchor_time",
    "HarvesterError",
    "FetchError",
    "ParseError",
    "PersistenceError",
    "NotificationError",
    "PageFetcher",
    "ArticleExtractor",
    "Notifier",
    "Attachment",
]
