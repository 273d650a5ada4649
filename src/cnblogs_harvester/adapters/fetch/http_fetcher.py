"""HTTP page fetcher."""

import logging

import httpx

from cnblogs_harvester.core import FetchError, PageFetcher

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class HttpPageFetcher(PageFetcher):
    """Fetch page markup with a single GET request.
    
    Retrying is left to the caller.
    """
    
    def __init__(self, timeout: float = 30.0, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
    
    async def fetch(self, url: str) -> str:
        """Fetch ``url`` and return its decoded body."""
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
        ) as client:
            try:
                response = await client.get(url)
            except httpx.TimeoutException as e:
                raise FetchError(f"Timed out fetching {url}: {e}") from e
            except httpx.RequestError as e:
                raise FetchError(f"Request to {url} failed: {type(e).__name__}: {e}") from e
            
            if not 200 <= response.status_code < 300:
                raise FetchError(f"GET {url} returned HTTP {response.status_code}")
            
            logger.debug("Fetched %s (%d chars)", url, len(response.text))
            return response.text
