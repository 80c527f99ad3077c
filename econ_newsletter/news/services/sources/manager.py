"""
News Sources Manager - fans out to every configured source concurrently
"""

import asyncio
from typing import List, Optional

import httpx
import structlog

from ....config import Settings
from ...models import NewsItem
from .base import DEFAULT_HEADERS, NewsSourceAdapter
from .newsapi_adapter import NewsAPIAdapter
from .rss_adapter import RSSFeedAdapter

logger = structlog.get_logger(__name__)


class NewsSourceManager:
    """
    Fetches from all sources in parallel with per-source isolation.

    A failing or slow source contributes zero items; it never fails the
    others or the caller.
    """

    def __init__(
        self,
        sources: List[NewsSourceAdapter],
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.sources = sources
        self.timeout_seconds = timeout_seconds
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "NewsSourceManager":
        sources: List[NewsSourceAdapter] = [RSSFeedAdapter(url) for url in settings.rss_feed_urls]
        sources.append(NewsAPIAdapter(
            api_key=settings.news_api_key,
            base_url=settings.news_api_base_url,
            query=settings.news_api_query,
            sources=settings.news_api_sources,
            page_size=settings.news_api_page_size,
            headlines_page_size=settings.news_api_headlines_page_size,
        ))
        return cls(sources, timeout_seconds=settings.feed_timeout_seconds)

    async def fetch_all(self) -> List[NewsItem]:
        active = [source for source in self.sources if source.enabled]
        skipped = [source.name for source in self.sources if not source.enabled]
        if skipped:
            logger.info("news_sources_skipped", sources=skipped)
        if not active:
            return []

        if self.client is not None:
            return await self._fetch_with(self.client, active)

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        ) as client:
            return await self._fetch_with(client, active)

    async def _fetch_with(self, client: httpx.AsyncClient, sources: List[NewsSourceAdapter]) -> List[NewsItem]:
        results = await asyncio.gather(
            *(asyncio.wait_for(source.fetch_news(client), timeout=self.timeout_seconds) for source in sources),
            return_exceptions=True,
        )

        all_items: List[NewsItem] = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.TimeoutError):
                    reason = f"timed out after {self.timeout_seconds}s"
                else:
                    reason = str(result) or type(result).__name__
                logger.warning("news_source_failed", source=source.name, url=source.base_url, error=reason)
                continue
            logger.info("news_source_fetched", source=source.name, count=len(result))
            all_items.extend(result)

        logger.info("news_fetch_completed", sources=len(sources), total=len(all_items))
        return all_items

    async def health_check(self) -> dict:
        return {
            "total_sources": len(self.sources),
            "enabled_sources": [source.name for source in self.sources if source.enabled],
        }
