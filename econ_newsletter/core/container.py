"""
Application service graph.

Built once per process in the FastAPI lifespan; the cache client is the
single shared connection used by the pipeline, the generators and every job.
"""

from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..jobs.newsletter_jobs import NewsletterJobs
from ..jobs.registry import build_scheduler
from ..jobs.scheduler import JobScheduler
from ..news.services.aggregation_service import NewsAggregationService
from ..news.services.news_store import NewsCacheStore
from ..news.services.sources.manager import NewsSourceManager
from ..newsletter.ai_generator import AIContentGenerator
from ..newsletter.email_service import EmailProvider, EmailSender, LoggingEmailProvider, ResendEmailProvider
from ..newsletter.generators import FallbackContentGenerator, NewsletterComposer
from ..newsletter.llm_service import LLMService
from ..newsletter.subscribers import StaticSubscriberProvider
from .cache import CacheClient, RedisCacheClient


@dataclass
class ServiceContainer:
    settings: Settings
    cache: CacheClient
    store: NewsCacheStore
    aggregation: NewsAggregationService
    composer: NewsletterComposer
    jobs: NewsletterJobs
    scheduler: JobScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.cache.close()


def build_email_provider(settings: Settings) -> EmailProvider:
    if settings.resend_api_key:
        return ResendEmailProvider(
            api_key=settings.resend_api_key,
            from_address=f"{settings.email_from_name} <{settings.email_from_address}>",
        )
    return LoggingEmailProvider()


def build_container(settings: Settings, cache: Optional[CacheClient] = None) -> ServiceContainer:
    cache = cache or RedisCacheClient.from_url(settings.redis_url, settings.redis_socket_timeout_seconds)
    store = NewsCacheStore(cache)

    aggregation = NewsAggregationService(
        NewsSourceManager.from_settings(settings),
        store,
        max_items=settings.dev_max_news_items if settings.is_development else None,
        store_snapshots=settings.store_stage_snapshots,
    )

    llm_service = LLMService(
        openai_api_key=settings.openai_api_key,
        anthropic_api_key=settings.anthropic_api_key,
        google_api_key=settings.google_api_key,
        openai_model_name=settings.openai_model_name,
        anthropic_model_name=settings.anthropic_model_name,
        google_model_name=settings.google_model_name,
    )
    composer = NewsletterComposer(
        AIContentGenerator(
            llm_service,
            store,
            temperature=settings.content_generation_temperature,
            max_tokens=settings.content_generation_max_tokens,
        ),
        FallbackContentGenerator(settings.fallback_headline_count),
    )

    jobs = NewsletterJobs(
        aggregation,
        store,
        composer,
        EmailSender(build_email_provider(settings), batch_size=settings.effective_email_batch_size),
        StaticSubscriberProvider(
            settings.subscriber_emails,
            limit=settings.dev_max_subscribers if settings.is_development else None,
        ),
        cleanup_max_age_days=settings.cleanup_max_age_days,
        weekly_item_limit=settings.dev_max_news_items if settings.is_development else None,
    )

    return ServiceContainer(
        settings=settings,
        cache=cache,
        store=store,
        aggregation=aggregation,
        composer=composer,
        jobs=jobs,
        scheduler=build_scheduler(settings, jobs),
    )
