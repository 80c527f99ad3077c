"""
News Cache Store

Persists processed articles, the per-day URL index, per-day stats and the
existence marker. The cache is an accelerator rather than a system of record:
reads and writes degrade to empty results and skipped writes when the cache
misbehaves, so callers never fail because it is down.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Type

import structlog
from pydantic import BaseModel

from ...core.cache import CacheClient, CacheEntry
from ...exceptions import CacheRecordError
from ..models import NewsItem, hostname_of
from ..schemas.cache_records import (
    NewsItemListRecord,
    NewsItemRecord,
    RecordT,
    StatsRecord,
    UrlListRecord,
    decode_record,
    encode_record,
)
from .cache_keys import NewsKeys, get_ttl

logger = structlog.get_logger(__name__)

EXISTS_MARKER_VALUE = "1"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NewsCacheStore:

    def __init__(self, cache: CacheClient, clock: Callable[[], datetime] = utc_now):
        self.cache = cache
        self.clock = clock
        self._day_locks: Dict[date, asyncio.Lock] = {}

    def today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store_news(self, items: List[NewsItem], day: Optional[date] = None) -> bool:
        """
        Write a batch of items for one day in a single pipelined call.

        The day's URL index is extended rather than replaced, and the stats
        record is recomputed over the merged index. Returns False when the
        write was skipped.
        """
        if not items:
            return False

        day = day or self.today()
        # Writers for the same day merge into the index one at a time
        async with self._day_locks.setdefault(day, asyncio.Lock()):
            return await self._store_news_for_day(items, day)

    async def _store_news_for_day(self, items: List[NewsItem], day: date) -> bool:
        fetched_at = self.clock()
        daily_key = NewsKeys.daily(day)
        stats_key = NewsKeys.stats(day)

        try:
            previous = await self.cache.batch_get([daily_key, stats_key])
        except Exception as e:
            logger.warning("cache_read_failed", operation="store_news", date=day.isoformat(), error=str(e))
            previous = {}

        existing_urls = self._decode_or_none(previous.get(daily_key), UrlListRecord, daily_key)
        existing_stats = self._decode_or_none(previous.get(stats_key), StatsRecord, stats_key)

        urls: List[str] = list(existing_urls.urls) if existing_urls else []
        known = set(urls)
        for item in items:
            if item.url not in known:
                urls.append(item.url)
                known.add(item.url)

        categories = set(existing_stats.categories) if existing_stats else set()
        categories.update(item.category for item in items if item.category)

        stats = StatsRecord(
            total_items=len(urls),
            sources=sorted({hostname_of(url) for url in urls}),
            categories=sorted(categories),
            fetched_at=fetched_at,
            stats_date=day,
        )

        entries = [
            self._entry(
                NewsKeys.item(item.url),
                encode_record(NewsItemRecord.from_news_item(item, fetched_at=fetched_at, fetch_date=day)),
            )
            for item in items
        ]
        entries.append(self._entry(daily_key, encode_record(UrlListRecord(urls=urls))))
        entries.append(self._entry(stats_key, encode_record(stats)))
        entries.append(self._entry(NewsKeys.exists(day), EXISTS_MARKER_VALUE))

        try:
            await self.cache.batch_set(entries)
        except Exception as e:
            logger.warning("cache_write_skipped", operation="store_news", date=day.isoformat(),
                           keys=len(entries), error=str(e))
            return False

        logger.info("news_stored", date=day.isoformat(), items=len(items), total_for_day=len(urls))
        return True

    async def store_processed(self, stage: str, items: List[NewsItem], day: Optional[date] = None) -> bool:
        day = day or self.today()
        key = NewsKeys.processed(stage, day)
        record = NewsItemListRecord(
            stage=stage,
            items=[NewsItemRecord.from_news_item(item) for item in items],
        )
        try:
            await self.cache.set_with_ttl(key, encode_record(record), get_ttl(key))
        except Exception as e:
            logger.warning("cache_write_skipped", operation="store_processed", key=key, error=str(e))
            return False
        return True

    async def put_record(self, key: str, record: BaseModel) -> bool:
        try:
            await self.cache.set_with_ttl(key, encode_record(record), get_ttl(key))
        except Exception as e:
            logger.warning("cache_write_skipped", operation="put_record", key=key, error=str(e))
            return False
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def has_news_for_date(self, day: date) -> bool:
        try:
            return await self.cache.exists(NewsKeys.exists(day))
        except Exception as e:
            logger.warning("cache_read_failed", operation="has_news_for_date", date=day.isoformat(), error=str(e))
            return False

    async def get_cached_news(self, day: date) -> List[NewsItem]:
        daily_key = NewsKeys.daily(day)
        try:
            # The marker expires long before the index, so a miss still checks the index itself
            if not await self.cache.exists(NewsKeys.exists(day)) and not await self.cache.exists(daily_key):
                return []

            raw_index = await self.cache.get(daily_key)
            index = self._decode_or_none(raw_index, UrlListRecord, daily_key)
            if not index or not index.urls:
                return []

            item_keys = [NewsKeys.item(url) for url in index.urls]
            raw_items = await self.cache.batch_get(item_keys)
        except Exception as e:
            logger.warning("cache_read_failed", operation="get_cached_news", date=day.isoformat(), error=str(e))
            return []

        items: List[NewsItem] = []
        missing = 0
        invalid = 0
        for key in item_keys:
            raw = raw_items.get(key)
            if raw is None:
                missing += 1
                continue
            try:
                items.append(decode_record(raw, NewsItemRecord, key).to_news_item())
            except CacheRecordError as e:
                invalid += 1
                logger.debug("cache_record_invalid", key=key, error=str(e))

        if missing or invalid:
            logger.warning("cached_news_incomplete", date=day.isoformat(),
                           indexed=len(item_keys), missing=missing, invalid=invalid)
        return items

    async def get_news_for_range(self, days: List[date]) -> Dict[date, List[NewsItem]]:
        return {day: await self.get_cached_news(day) for day in days}

    async def get_stats(self, day: date) -> Optional[StatsRecord]:
        return await self.get_record(NewsKeys.stats(day), StatsRecord)

    async def get_processed(self, stage: str, day: date) -> List[NewsItem]:
        record = await self.get_record(NewsKeys.processed(stage, day), NewsItemListRecord)
        if record is None:
            return []
        return [item.to_news_item() for item in record.items]

    async def get_record(self, key: str, record_type: Type[RecordT]) -> Optional[RecordT]:
        try:
            raw = await self.cache.get(key)
        except Exception as e:
            logger.warning("cache_read_failed", operation="get_record", key=key, error=str(e))
            return None
        return self._decode_or_none(raw, record_type, key)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def cleanup_stale_entries(self, max_age_days: int) -> int:
        """
        Delete news keys that never expire and item records fetched more than
        ``max_age_days`` ago. Cache errors propagate so the cleanup job can
        report them.
        """
        cutoff = self.clock() - timedelta(days=max_age_days)
        keys = await self.cache.keys("news:*")
        stale = set()

        item_keys = [key for key in keys if key.startswith(NewsKeys.ITEM_PREFIX + ":")]
        raw_items = await self.cache.batch_get(item_keys)
        for key in item_keys:
            raw = raw_items.get(key)
            if raw is None:
                continue
            try:
                record = decode_record(raw, NewsItemRecord, key)
            except CacheRecordError:
                stale.add(key)
                continue
            if record.fetched_at is not None and record.fetched_at < cutoff:
                stale.add(key)

        remaining = await self.cache.batch_ttl([key for key in keys if key not in stale])
        stale.update(key for key, ttl in remaining.items() if ttl == -1)

        deleted = await self.cache.delete(*sorted(stale)) if stale else 0
        logger.info("cache_cleanup_completed", scanned=len(keys), deleted=deleted)
        return deleted

    # ------------------------------------------------------------------

    @staticmethod
    def _entry(key: str, value: str) -> CacheEntry:
        return CacheEntry(key=key, value=value, ttl=get_ttl(key))

    @staticmethod
    def _decode_or_none(raw: Optional[str], record_type: Type[RecordT], key: str) -> Optional[RecordT]:
        if raw is None:
            return None
        try:
            return decode_record(raw, record_type, key)
        except CacheRecordError as e:
            logger.warning("cache_record_invalid", key=key, kind=record_type.KIND, error=str(e))
            return None

