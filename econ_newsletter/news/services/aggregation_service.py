"""
News Aggregation Service
Single pipeline shared by the on-demand endpoints and the scheduled jobs:
1. Fetch from every source concurrently
2. Keep economically relevant articles
3. Collapse near-duplicates
4. Tag categories
5. Store the day's batch in the cache
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import structlog

from ..models import NewsItem, hostname_of
from .categorizer import Categorizer
from .deduplicator import Deduplicator
from .news_store import NewsCacheStore
from .relevance_filter import EconomicRelevanceFilter
from .sources.manager import NewsSourceManager

logger = structlog.get_logger(__name__)


@dataclass
class AggregationSummary:
    total_items: int
    categories: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)


def summarize(items: List[NewsItem]) -> AggregationSummary:
    return AggregationSummary(
        total_items=len(items),
        categories=sorted({item.category for item in items if item.category}),
        sources=sorted({hostname_of(item.url) for item in items}),
    )


class NewsAggregationService:

    def __init__(
        self,
        source_manager: NewsSourceManager,
        store: NewsCacheStore,
        relevance_filter: Optional[EconomicRelevanceFilter] = None,
        deduplicator: Optional[Deduplicator] = None,
        categorizer: Optional[Categorizer] = None,
        max_items: Optional[int] = None,
        store_snapshots: bool = True,
    ):
        self.source_manager = source_manager
        self.store = store
        self.relevance_filter = relevance_filter or EconomicRelevanceFilter()
        self.deduplicator = deduplicator or Deduplicator()
        self.categorizer = categorizer or Categorizer()
        self.max_items = max_items
        self.store_snapshots = store_snapshots

    async def run_pipeline(self, day: Optional[date] = None) -> List[NewsItem]:
        """Fetch, filter, dedupe, categorize and store. Never raises on cache failure."""
        day = day or self.store.today()

        fetched = await self.source_manager.fetch_all()
        logger.info("pipeline_stage_completed", stage="fetch", count=len(fetched))
        if not fetched:
            logger.info("pipeline_short_circuited", reason="no items fetched")
            return []

        if self.max_items is not None and len(fetched) > self.max_items:
            fetched = fetched[:self.max_items]
            logger.info("pipeline_items_capped", limit=self.max_items)

        filtered = self.relevance_filter.filter(fetched)
        logger.info("pipeline_stage_completed", stage="filter", count=len(filtered))

        deduplicated = self.deduplicator.dedupe(filtered)
        logger.info("pipeline_stage_completed", stage="dedupe", count=len(deduplicated))

        categorized = self.categorizer.categorize(deduplicated)
        logger.info("pipeline_stage_completed", stage="categorize", count=len(categorized))

        if categorized:
            await self.store.store_news(categorized, day)
            if self.store_snapshots:
                await self.store.store_processed("filtered", filtered, day)
                await self.store.store_processed("deduplicated", deduplicated, day)
                await self.store.store_processed("categorized", categorized, day)

        return categorized
