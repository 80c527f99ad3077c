"""
NewsAPI keyword-search adapter

Searches /everything across the financial press. Some source ids are
not available on every NewsAPI plan; when the API reports
``sourceDoesNotExist`` the adapter retries once against business
top-headlines instead.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ....exceptions import SourceFetchError
from ...models import NewsItem, hostname_of
from .base import NewsSourceAdapter

logger = structlog.get_logger(__name__)

HEADLINES_QUERY = "economy OR finance OR market"


def _parse_published(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class NewsAPIAdapter(NewsSourceAdapter):

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://newsapi.org/v2",
        query: str = "economy OR finance OR market",
        sources: str = "",
        page_size: int = 50,
        headlines_page_size: int = 30,
    ):
        super().__init__("NewsAPI", base_url)
        self.api_key = api_key
        self.query = query
        self.sources = sources
        self.page_size = page_size
        self.headlines_page_size = headlines_page_size

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def fetch_news(self, client: httpx.AsyncClient) -> List[NewsItem]:
        if not self.enabled:
            logger.info("news_source_skipped", source=self.name, reason="api key not configured")
            return []

        params = {
            "q": self.query,
            "language": "en",
            "sortBy": "publishedAt",
            "pageSize": self.page_size,
        }
        if self.sources:
            params["sources"] = self.sources

        payload = await self._request(client, "everything", params)
        if payload.get("status") == "error" and payload.get("code") == "sourceDoesNotExist":
            logger.warning("newsapi_sources_unavailable", message=payload.get("message"))
            payload = await self._request(client, "top-headlines", {
                "category": "business",
                "language": "en",
                "pageSize": self.headlines_page_size,
                "q": HEADLINES_QUERY,
            })

        if payload.get("status") != "ok":
            raise SourceFetchError(
                f"NewsAPI error {payload.get('code')}: {payload.get('message')}"
            )

        items = []
        for article in payload.get("articles") or []:
            item = self.parse_article(article)
            if item:
                items.append(item)
        return items

    async def _request(self, client: httpx.AsyncClient, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await client.get(
                f"{self.base_url}/{endpoint}",
                params=params,
                headers={"X-Api-Key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise SourceFetchError(f"NewsAPI {endpoint} request failed: {e}") from e

        if response.status_code == 401:
            raise SourceFetchError("NewsAPI rejected the configured api key")

        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(f"NewsAPI {endpoint} returned a non-JSON body (HTTP {response.status_code})") from e

    def parse_article(self, article: Dict[str, Any]) -> Optional[NewsItem]:
        url = (article.get("url") or "").strip()
        if not url:
            return None

        source = (article.get("source") or {}).get("name") or hostname_of(url)
        return NewsItem(
            url=url,
            title=article.get("title") or "Untitled",
            description=article.get("description") or "",
            content=article.get("content") or article.get("description") or "",
            pub_date=_parse_published(article.get("publishedAt")),
            source=source,
        )
