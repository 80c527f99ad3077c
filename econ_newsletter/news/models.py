"""
Core news data types shared by the feed clients, the processing stages and
the cache store.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

UNKNOWN_SOURCE = "unknown"


@dataclass
class NewsItem:
    """Standardized article produced by every feed client"""
    url: str
    title: str
    description: str = ""
    content: str = ""
    pub_date: datetime = None
    source: str = ""
    category: Optional[str] = None

    def __post_init__(self):
        self.url = (self.url or "").strip()
        if self.description is None:
            self.description = ""
        if self.content is None:
            self.content = ""
        if self.pub_date is None:
            self.pub_date = datetime.now(timezone.utc)
        elif self.pub_date.tzinfo is None:
            self.pub_date = self.pub_date.replace(tzinfo=timezone.utc)

    @property
    def hostname(self) -> str:
        return hostname_of(self.url)

    @property
    def text(self) -> str:
        return f"{self.title} {self.description} {self.content}"

    def with_category(self, category: str) -> "NewsItem":
        return replace(self, category=category)


def hostname_of(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_SOURCE
    return host or UNKNOWN_SOURCE
