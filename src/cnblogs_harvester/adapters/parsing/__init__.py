"""Markup parsing adapters."""

from cnblogs_harvester.adapters.parsing.cnblogs_extractor import CnblogsArticleExtractor

__all__ = ["CnblogsArticleExtractor"]
