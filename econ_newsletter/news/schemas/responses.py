"""News API response schemas"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models import NewsItem


class NewsItemResponse(BaseModel):
    url: str
    title: str
    description: str
    content: str
    pub_date: datetime
    source: str
    category: Optional[str] = None

    @classmethod
    def from_item(cls, item: NewsItem) -> "NewsItemResponse":
        return cls(
            url=item.url,
            title=item.title,
            description=item.description,
            content=item.content,
            pub_date=item.pub_date,
            source=item.source,
            category=item.category,
        )


class AggregateResponse(BaseModel):
    """On-demand pipeline run"""
    success: bool = True
    total_items: int
    categories: List[str]
    sources: List[str]
    items: List[NewsItemResponse]


class RefreshResponse(BaseModel):
    success: bool = True
    message: str
    total_processed: int
    timestamp: datetime


class CachedNewsResponse(BaseModel):
    news_date: date
    total_items: int
    items: List[NewsItemResponse]


class NewsStatsResponse(BaseModel):
    news_date: date
    total_items: int
    sources: List[str]
    categories: List[str]
    fetched_at: datetime
