from typing import Iterable, List, Tuple

import structlog

from ..models import NewsItem

logger = structlog.get_logger(__name__)

ECONOMIC_KEYWORDS: Tuple[str, ...] = (
    "economy",
    "economic",
    "finance",
    "financial",
    "market",
    "markets",
    "gdp",
    "inflation",
    "recession",
    "growth",
    "trade",
    "investment",
    "banking",
    "currency",
    "monetary",
    "fiscal",
    "stocks",
    "bonds",
)


class EconomicRelevanceFilter:
    """Keeps articles mentioning at least one economic keyword anywhere in their text."""

    def __init__(self, keywords: Iterable[str] = ECONOMIC_KEYWORDS):
        self.keywords = tuple(keyword.lower() for keyword in keywords)

    def is_relevant(self, item: NewsItem) -> bool:
        text = item.text.lower()
        return any(keyword in text for keyword in self.keywords)

    def filter(self, items: List[NewsItem]) -> List[NewsItem]:
        relevant = [item for item in items if self.is_relevant(item)]
        logger.debug("economic_filter_applied", received=len(items), kept=len(relevant))
        return relevant
