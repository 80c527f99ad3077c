"""
Newsletter Jobs
Bodies of the scheduled jobs. Each returns a JobResult rather than raising;
anything unexpected that slips through is caught by the scheduler wrapper.
"""

from datetime import date, timedelta
from typing import List, Optional, Union

import structlog

from ..news.models import NewsItem
from ..news.services.aggregation_service import NewsAggregationService
from ..news.services.news_store import NewsCacheStore
from ..newsletter.email_service import EmailSender
from ..newsletter.generators import NewsletterComposer
from ..newsletter.schemas import DailyDigest, DeliveryResult, NewsletterContent, NewsletterKind
from ..newsletter.subscribers import SubscriberProvider
from .models import JobResult

logger = structlog.get_logger(__name__)


def preview_window(today: date) -> List[date]:
    """The last seven calendar days, newest first."""
    return [today - timedelta(days=offset) for offset in range(7)]


def review_window(today: date) -> List[date]:
    """Monday of the current week through today."""
    monday = today - timedelta(days=today.weekday())
    return [monday + timedelta(days=offset) for offset in range((today - monday).days + 1)]


class NewsletterJobs:

    def __init__(
        self,
        aggregation: NewsAggregationService,
        store: NewsCacheStore,
        composer: NewsletterComposer,
        email_sender: EmailSender,
        subscribers: SubscriberProvider,
        cleanup_max_age_days: int = 7,
        weekly_item_limit: Optional[int] = None,
    ):
        self.aggregation = aggregation
        self.store = store
        self.composer = composer
        self.email_sender = email_sender
        self.subscribers = subscribers
        self.cleanup_max_age_days = cleanup_max_age_days
        self.weekly_item_limit = weekly_item_limit

    async def news_aggregation(self) -> JobResult:
        try:
            items = await self.aggregation.run_pipeline()
        except Exception as e:
            logger.error("news_aggregation_failed", error=str(e), exc_info=True)
            return JobResult.failure(str(e))

        logger.info("news_aggregation_completed", items=len(items))
        return JobResult(success=True, items_processed=len(items))

    async def daily_newsletter(self) -> JobResult:
        day = self.store.today()
        try:
            logger.info("daily_newsletter_step", step=1, action="aggregate")
            items = await self.aggregation.run_pipeline(day)
            if not items:
                logger.info("daily_newsletter_step", step=1, action="reuse_cached_news")
                items = await self.store.get_cached_news(day)
            if not items:
                logger.info("daily_newsletter_skipped", reason="no news available", date=day.isoformat())
                return JobResult(success=True, items_processed=0)

            logger.info("daily_newsletter_step", step=2, action="generate", items=len(items))
            digest, used_fallback = await self.composer.compose_daily_digest(items, day)

            logger.info("daily_newsletter_step", step=3, action="deliver", fallback=used_fallback)
            delivery = await self._deliver(digest)
        except Exception as e:
            logger.error("daily_newsletter_failed", error=str(e), exc_info=True)
            return JobResult.failure(str(e))

        return JobResult(
            success=True,
            items_processed=len(items),
            emails_sent=delivery.sent,
            emails_failed=delivery.failed,
            details={"fallback_content": used_fallback},
        )

    async def weekly_preview(self) -> JobResult:
        today = self.store.today()
        return await self._weekly_newsletter(NewsletterKind.WEEKLY_PREVIEW, preview_window(today), today)

    async def weekly_review(self) -> JobResult:
        today = self.store.today()
        return await self._weekly_newsletter(NewsletterKind.WEEKLY_REVIEW, review_window(today), today)

    async def cache_cleanup(self) -> JobResult:
        try:
            deleted = await self.store.cleanup_stale_entries(self.cleanup_max_age_days)
        except Exception as e:
            logger.error("cache_cleanup_failed", error=str(e))
            return JobResult.failure(str(e))
        return JobResult(success=True, items_processed=deleted)

    # ------------------------------------------------------------------

    async def _weekly_newsletter(self, kind: NewsletterKind, days: List[date], today: date) -> JobResult:
        try:
            logger.info("weekly_newsletter_step", kind=kind.value, step=1, action="collect",
                        start=min(days).isoformat(), end=max(days).isoformat())
            items = await self.collect_window(days)
            if not items:
                logger.info("weekly_newsletter_skipped", kind=kind.value, reason="no news available")
                return JobResult(success=True, items_processed=0)

            logger.info("weekly_newsletter_step", kind=kind.value, step=2, action="generate", items=len(items))
            content, used_fallback = await self.composer.compose_newsletter(items, kind, today)

            logger.info("weekly_newsletter_step", kind=kind.value, step=3, action="deliver", fallback=used_fallback)
            delivery = await self._deliver(content)
        except Exception as e:
            logger.error("weekly_newsletter_failed", kind=kind.value, error=str(e), exc_info=True)
            return JobResult.failure(str(e))

        return JobResult(
            success=True,
            items_processed=len(items),
            emails_sent=delivery.sent,
            emails_failed=delivery.failed,
            details={"fallback_content": used_fallback},
        )

    async def collect_window(self, days: List[date]) -> List[NewsItem]:
        """Cached news for every day in the window; a fresh pipeline run only when all are empty."""
        by_day = await self.store.get_news_for_range(days)
        items: List[NewsItem] = [item for day in days for item in by_day[day]]

        if not items:
            logger.info("weekly_window_empty", days=len(days), action="run_pipeline")
            items = await self.aggregation.run_pipeline()

        # The same story can be indexed on several days
        items = self.aggregation.deduplicator.dedupe(items)
        if self.weekly_item_limit is not None:
            items = items[:self.weekly_item_limit]
        return items

    async def _deliver(self, content: Union[NewsletterContent, DailyDigest]) -> DeliveryResult:
        subscribers = await self.subscribers.get_confirmed_subscribers()
        if not subscribers:
            logger.info("email_delivery_skipped", reason="no confirmed subscribers")
            return DeliveryResult()
        return await self.email_sender.send(content, [subscriber.email for subscriber in subscribers])
