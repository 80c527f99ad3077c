"""
RSS/Atom feed adapter
"""

import calendar
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
import httpx
import structlog

from ....exceptions import SourceFetchError
from ...models import NewsItem, hostname_of
from .base import NewsSourceAdapter

logger = structlog.get_logger(__name__)


def _entry_value(entry: Any, name: str) -> Optional[str]:
    value = entry.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _entry_content(entry: Any) -> Optional[str]:
    # feedparser exposes content:encoded as a list of content dicts
    for block in entry.get("content") or []:
        value = block.get("value")
        if value and value.strip():
            return value.strip()
    return None


def _entry_published(entry: Any) -> datetime:
    for field in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return datetime.now(timezone.utc)


class RSSFeedAdapter(NewsSourceAdapter):
    """Single RSS or Atom feed"""

    def __init__(self, feed_url: str):
        super().__init__(hostname_of(feed_url), feed_url)
        self.feed_url = feed_url

    async def fetch_news(self, client: httpx.AsyncClient) -> List[NewsItem]:
        try:
            response = await client.get(self.feed_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceFetchError(f"RSS feed {self.feed_url} unavailable: {e}") from e

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise SourceFetchError(f"RSS feed {self.feed_url} could not be parsed: {feed.get('bozo_exception')}")

        items = []
        for entry in feed.entries:
            item = self.parse_entry(entry)
            if item:
                items.append(item)
        return items

    def parse_entry(self, entry: Any) -> Optional[NewsItem]:
        url = _entry_value(entry, "link") or _entry_value(entry, "id")
        if not url:
            logger.debug("rss_entry_skipped", feed=self.feed_url, reason="no link or guid")
            return None

        summary = _entry_value(entry, "summary") or _entry_value(entry, "description")
        content = _entry_content(entry)

        return NewsItem(
            url=url,
            title=_entry_value(entry, "title") or "Untitled",
            description=summary or content or "",
            content=content or summary or "",
            pub_date=_entry_published(entry),
            source=self.name,
        )
