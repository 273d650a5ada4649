"""Page fetch adapters."""

from cnblogs_harvester.adapters.fetch.http_fetcher import HttpPageFetcher

__all__ = ["HttpPageFetcher"]
