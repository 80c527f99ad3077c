"""
Content generators for newsletters and daily digests.

The AI generator may fail for any reason (no provider configured, provider
outage, unparseable output). The fallback generator is deterministic and
emits the same schemas from the top headlines, so delivery cannot tell which
path produced a newsletter.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

import structlog

from ..news.models import NewsItem
from .schemas import (
    MAX_HIGHLIGHTS,
    MAX_TOP_STORIES,
    DailyDigest,
    NewsletterContent,
    NewsletterKind,
    NewsletterSource,
    TopStory,
)

logger = structlog.get_logger(__name__)

NO_NEWS_TITLE = "No News Available"

KIND_TITLES = {
    NewsletterKind.DAILY: "Daily Economic Briefing",
    NewsletterKind.WEEKLY_PREVIEW: "Weekly Economic Preview",
    NewsletterKind.WEEKLY_REVIEW: "Weekly Economic Review",
}

INDICATOR_TERMS = ("gdp", "inflation", "unemployment", "interest rate", "cpi", "jobs report", "payrolls")


def _format_date(day: date) -> str:
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def _shorten(text: str, limit: int = 200) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[:limit].rsplit(" ", 1)[0] + "..."


def to_sources(items: List[NewsItem]) -> List[NewsletterSource]:
    return [
        NewsletterSource(title=item.title, url=item.url, published_at=item.pub_date, source=item.source)
        for item in items
    ]


class ContentGenerator(ABC):

    @abstractmethod
    async def generate_newsletter(self, items: List[NewsItem], kind: NewsletterKind, day: date) -> NewsletterContent:
        pass

    @abstractmethod
    async def generate_daily_digest(self, items: List[NewsItem], day: date) -> DailyDigest:
        pass


class FallbackContentGenerator(ContentGenerator):
    """Fixed skeleton built from the first N headlines of the corpus."""

    def __init__(self, headline_count: int = MAX_TOP_STORIES):
        self.headline_count = headline_count

    async def generate_newsletter(self, items: List[NewsItem], kind: NewsletterKind, day: date) -> NewsletterContent:
        return self.build_newsletter(items, kind, day)

    async def generate_daily_digest(self, items: List[NewsItem], day: date) -> DailyDigest:
        return self.build_daily_digest(items, day)

    def build_newsletter(self, items: List[NewsItem], kind: NewsletterKind, day: date) -> NewsletterContent:
        headlines = items[:self.headline_count]
        title = f"{KIND_TITLES[kind]} - {_format_date(day)}"

        if not headlines:
            return NewsletterContent(
                title=title,
                content="No economic news was collected for this period.",
                summary="No stories available.",
                kind=kind,
                publish_date=day,
            )

        lines = [f"# {title}", "", "Top economic stories:", ""]
        for position, item in enumerate(headlines, start=1):
            lines.append(f"{position}. **{item.title}**" + (f" ({item.source})" if item.source else ""))
            if item.description:
                lines.append(f"   {_shorten(item.description)}")
            lines.append(f"   {item.url}")
            lines.append("")

        return NewsletterContent(
            title=title,
            content="\n".join(lines).rstrip() + "\n",
            summary=f"The {len(headlines)} leading stories out of {len(items)} collected.",
            kind=kind,
            publish_date=day,
            sources=to_sources(headlines),
        )

    def build_daily_digest(
        self,
        items: List[NewsItem],
        day: date,
        generated_at: Optional[datetime] = None,
    ) -> DailyDigest:
        generated_at = generated_at or datetime.now(timezone.utc)
        if not items:
            return DailyDigest(
                title=NO_NEWS_TITLE,
                summary=f"No economic news was collected for {_format_date(day)}.",
                generated_at=generated_at,
            )

        headlines = items[:min(self.headline_count, MAX_TOP_STORIES)]
        categories = sorted({item.category for item in items if item.category})
        market = [item.title for item in items if item.category == "markets"]
        indicators = [
            item.title for item in items
            if any(term in item.text.lower() for term in INDICATOR_TERMS)
        ]

        return DailyDigest(
            title=f"Daily Economic Digest - {_format_date(day)}",
            summary=f"{len(items)} economic stories" + (f" across {', '.join(categories)}." if categories else "."),
            top_stories=[
                TopStory(
                    headline=item.title,
                    summary=_shorten(item.description),
                    category=item.category or "general",
                    url=item.url,
                )
                for item in headlines
            ],
            market_highlights=market[:MAX_HIGHLIGHTS],
            economic_indicators=indicators[:MAX_HIGHLIGHTS],
            generated_at=generated_at,
        )


class NewsletterComposer:
    """Runs the primary generator and substitutes fallback content when it fails."""

    def __init__(self, primary: ContentGenerator, fallback: FallbackContentGenerator):
        self.primary = primary
        self.fallback = fallback

    async def compose_newsletter(
        self, items: List[NewsItem], kind: NewsletterKind, day: date
    ) -> Tuple[NewsletterContent, bool]:
        try:
            return await self.primary.generate_newsletter(items, kind, day), False
        except Exception as e:
            logger.warning("content_generation_fallback", kind=kind.value, error=str(e))
        return await self.fallback.generate_newsletter(items, kind, day), True

    async def compose_daily_digest(self, items: List[NewsItem], day: date) -> Tuple[DailyDigest, bool]:
        if not items:
            return await self.fallback.generate_daily_digest(items, day), True
        try:
            return await self.primary.generate_daily_digest(items, day), False
        except Exception as e:
            logger.warning("content_generation_fallback", kind="daily_digest", error=str(e))
        return await self.fallback.generate_daily_digest(items, day), True
