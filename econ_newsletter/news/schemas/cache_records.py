"""
Versioned cache payloads.

Every value written to the cache is an envelope ``{"kind", "version", "data"}``
so readers can tell a stale or foreign payload from a corrupt one and fail
with a typed error instead of an opaque parse error.
"""

import json
from datetime import date, datetime
from typing import ClassVar, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ...exceptions import CacheRecordError
from ..models import NewsItem


class CacheRecord(BaseModel):
    KIND: ClassVar[str] = ""
    VERSION: ClassVar[int] = 1


RecordT = TypeVar("RecordT", bound=BaseModel)


# ============================================================================
# News records
# ============================================================================

class NewsItemRecord(CacheRecord):
    KIND: ClassVar[str] = "news_item"

    url: str
    title: str
    description: str = ""
    content: str = ""
    pub_date: datetime
    source: str = ""
    category: Optional[str] = None
    fetched_at: Optional[datetime] = None
    fetch_date: Optional[date] = None

    @classmethod
    def from_news_item(
        cls,
        item: NewsItem,
        fetched_at: Optional[datetime] = None,
        fetch_date: Optional[date] = None,
    ) -> "NewsItemRecord":
        return cls(
            url=item.url,
            title=item.title,
            description=item.description,
            content=item.content,
            pub_date=item.pub_date,
            source=item.source,
            category=item.category,
            fetched_at=fetched_at,
            fetch_date=fetch_date,
        )

    def to_news_item(self) -> NewsItem:
        return NewsItem(
            url=self.url,
            title=self.title,
            description=self.description,
            content=self.content,
            pub_date=self.pub_date,
            source=self.source,
            category=self.category,
        )


class UrlListRecord(CacheRecord):
    """Daily index: article URLs only, in first-stored order."""
    KIND: ClassVar[str] = "url_list"

    urls: List[str] = []


class StatsRecord(CacheRecord):
    KIND: ClassVar[str] = "news_stats"

    total_items: int
    sources: List[str] = []
    categories: List[str] = []
    fetched_at: datetime
    stats_date: date


class NewsItemListRecord(CacheRecord):
    """Snapshot of one pipeline stage's output."""
    KIND: ClassVar[str] = "news_item_list"

    stage: str
    items: List[NewsItemRecord] = []


# ============================================================================
# Envelope codec
# ============================================================================

def encode_record(record: BaseModel) -> str:
    return json.dumps({
        "kind": record.KIND,
        "version": record.VERSION,
        "data": record.model_dump(mode="json"),
    })


def decode_record(raw: str, record_type: Type[RecordT], key: Optional[str] = None) -> RecordT:
    kind = record_type.KIND
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CacheRecordError(f"Value is not valid JSON: {e}", key=key, kind=kind) from e

    if not isinstance(envelope, dict):
        raise CacheRecordError("Value is not a record envelope", key=key, kind=kind)
    if envelope.get("kind") != kind:
        raise CacheRecordError(
            f"Expected record kind '{kind}', found '{envelope.get('kind')}'", key=key, kind=kind
        )
    if envelope.get("version") != record_type.VERSION:
        raise CacheRecordError(
            f"Unsupported {kind} version {envelope.get('version')}", key=key, kind=kind
        )

    try:
        return record_type.model_validate(envelope.get("data"))
    except ValidationError as e:
        raise CacheRecordError(f"Invalid {kind} payload: {e}", key=key, kind=kind) from e
