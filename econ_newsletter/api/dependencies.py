from fastapi import Request

from ..core.container import ServiceContainer
from ..jobs.scheduler import JobScheduler
from ..news.services.aggregation_service import NewsAggregationService
from ..news.services.news_store import NewsCacheStore
from ..newsletter.generators import NewsletterComposer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_scheduler(request: Request) -> JobScheduler:
    return get_container(request).scheduler


def get_aggregation_service(request: Request) -> NewsAggregationService:
    return get_container(request).aggregation


def get_news_store(request: Request) -> NewsCacheStore:
    return get_container(request).store


def get_composer(request: Request) -> NewsletterComposer:
    return get_container(request).composer
