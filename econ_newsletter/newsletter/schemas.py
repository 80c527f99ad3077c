"""Newsletter and digest schemas shared by the AI and fallback generators"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..news.schemas.cache_records import CacheRecord

MAX_TOP_STORIES = 5
MAX_HIGHLIGHTS = 3


class NewsletterKind(str, Enum):
    DAILY = "daily"
    WEEKLY_PREVIEW = "weekly_preview"
    WEEKLY_REVIEW = "weekly_review"


class NewsletterSource(BaseModel):
    title: str
    url: str
    published_at: Optional[datetime] = None
    source: str = ""


class NewsletterContent(CacheRecord):
    KIND: ClassVar[str] = "newsletter_content"

    title: str
    content: str
    summary: Optional[str] = None
    kind: NewsletterKind
    publish_date: date
    sources: List[NewsletterSource] = []


class TopStory(BaseModel):
    headline: str
    summary: str = ""
    category: str = "general"
    url: str = ""


class DailyDigest(CacheRecord):
    KIND: ClassVar[str] = "daily_digest"

    title: str
    summary: str
    top_stories: List[TopStory] = []
    market_highlights: List[str] = []
    economic_indicators: List[str] = []
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("top_stories", mode="after")
    @classmethod
    def cap_top_stories(cls, value: List[TopStory]) -> List[TopStory]:
        return value[:MAX_TOP_STORIES]

    @field_validator("market_highlights", "economic_indicators", mode="after")
    @classmethod
    def cap_highlights(cls, value: List[str]) -> List[str]:
        return value[:MAX_HIGHLIGHTS]


class DeliveryResult(BaseModel):
    sent: int = 0
    failed: int = 0
