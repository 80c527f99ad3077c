import fnmatch
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from econ_newsletter.config import Settings
from econ_newsletter.core.cache import CacheClient, CacheEntry
from econ_newsletter.news.models import NewsItem
from econ_newsletter.news.services.news_store import NewsCacheStore

# Wednesday
FIXED_NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class InMemoryCache(CacheClient):
    """Dict-backed CacheClient that records what was written and with which TTL."""

    def __init__(self):
        self.data: Dict[str, Tuple[str, Optional[int]]] = {}
        self.batch_calls: List[List[CacheEntry]] = []

    def seed(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self.data[key] = (value, ttl)

    def value(self, key: str) -> Optional[str]:
        entry = self.data.get(key)
        return entry[0] if entry else None

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return sorted(key for key in self.data if key.startswith(prefix))

    async def get(self, key):
        return self.value(key)

    async def set_with_ttl(self, key, value, ttl_seconds):
        self.data[key] = (value, ttl_seconds)

    async def exists(self, key):
        return key in self.data

    async def batch_get(self, keys):
        return {key: self.value(key) for key in keys}

    async def batch_set(self, entries):
        self.batch_calls.append(list(entries))
        for entry in entries:
            self.data[entry.key] = (entry.value, entry.ttl)

    async def keys(self, pattern):
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]

    async def delete(self, *keys):
        deleted = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def ttl(self, key):
        if key not in self.data:
            return -2
        ttl = self.data[key][1]
        return -1 if ttl is None else ttl


class FailingCache(CacheClient):
    """Every operation raises, as if Redis were unreachable."""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise ConnectionError("cache unreachable")

    async def get(self, key):
        self._fail()

    async def set_with_ttl(self, key, value, ttl_seconds):
        self._fail()

    async def exists(self, key):
        self._fail()

    async def batch_get(self, keys):
        self._fail()

    async def batch_set(self, entries):
        self._fail()

    async def keys(self, pattern):
        self._fail()

    async def delete(self, *keys):
        self._fail()

    async def ttl(self, key):
        self._fail()

    async def ping(self):
        return False


def make_item(
    title: str,
    url: Optional[str] = None,
    description: str = "",
    content: str = "",
    hours_ago: float = 0,
    source: str = "Test Wire",
    category: Optional[str] = None,
) -> NewsItem:
    slug = "-".join(title.lower().split())[:60]
    return NewsItem(
        url=url or f"https://news.example.com/{slug}",
        title=title,
        description=description,
        content=content,
        pub_date=FIXED_NOW - timedelta(hours=hours_ago),
        source=source,
        category=category,
    )


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture
def failing_cache():
    return FailingCache()


@pytest.fixture
def news_store(memory_cache):
    return NewsCacheStore(memory_cache, clock=lambda: FIXED_NOW)


@pytest.fixture
def mock_source_manager():
    manager = MagicMock()
    manager.fetch_all = AsyncMock(return_value=[])
    manager.health_check = AsyncMock(return_value={"total_sources": 0, "enabled_sources": []})
    return manager


@pytest.fixture
def app_settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        cron_enabled=False,
        rss_feed_urls=[],
        subscriber_emails=["reader@example.com"],
        trigger_all_delay_seconds=0,
    )


@pytest.fixture
def news_item_factory():
    return make_item
