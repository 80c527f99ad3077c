"""
Base class for news source adapters
Every source normalizes its payload into NewsItem
"""

from abc import ABC, abstractmethod
from typing import List

import httpx

from ...models import NewsItem

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; EconNewsletterBot/1.0; +https://example.com/bot)",
    "Accept": "application/rss+xml, application/xml, application/json;q=0.9, */*;q=0.8",
}


class NewsSourceAdapter(ABC):
    """Base adapter for news sources"""

    def __init__(self, name: str, base_url: str):
        self.name = name
        self.base_url = base_url

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    async def fetch_news(self, client: httpx.AsyncClient) -> List[NewsItem]:
        """Fetch news from source and return standardized items"""
        pass
