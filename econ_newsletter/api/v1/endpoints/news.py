from datetime import date, datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from ....news.schemas.responses import (
    AggregateResponse,
    CachedNewsResponse,
    NewsItemResponse,
    NewsStatsResponse,
    RefreshResponse,
)
from ....news.services.aggregation_service import NewsAggregationService, summarize
from ....news.services.news_store import NewsCacheStore
from ....newsletter.generators import NewsletterComposer
from ....newsletter.schemas import DailyDigest
from ...dependencies import get_aggregation_service, get_composer, get_news_store

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/aggregate", response_model=AggregateResponse)
async def aggregate_news(
    limit: int = Query(20, ge=1, le=200, description="Number of items returned"),
    aggregation: NewsAggregationService = Depends(get_aggregation_service),
):
    """Run the pipeline now and return the categorized corpus"""
    items = await aggregation.run_pipeline()
    summary = summarize(items)
    return AggregateResponse(
        total_items=summary.total_items,
        categories=summary.categories,
        sources=summary.sources,
        items=[NewsItemResponse.from_item(item) for item in items[:limit]],
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_news(aggregation: NewsAggregationService = Depends(get_aggregation_service)):
    items = await aggregation.run_pipeline()
    return RefreshResponse(
        message="News cache refreshed" if items else "No news fetched; cache left unchanged",
        total_processed=len(items),
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/cached", response_model=CachedNewsResponse)
@router.get("/cached/{news_date}", response_model=CachedNewsResponse)
async def get_cached_news(
    news_date: Optional[date] = None,
    store: NewsCacheStore = Depends(get_news_store),
):
    news_date = news_date or store.today()
    items = await store.get_cached_news(news_date)
    return CachedNewsResponse(
        news_date=news_date,
        total_items=len(items),
        items=[NewsItemResponse.from_item(item) for item in items],
    )


@router.get("/stats", response_model=NewsStatsResponse)
@router.get("/stats/{news_date}", response_model=NewsStatsResponse)
async def get_news_stats(
    news_date: Optional[date] = None,
    store: NewsCacheStore = Depends(get_news_store),
):
    news_date = news_date or store.today()
    stats = await store.get_stats(news_date)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"No stats found for {news_date.isoformat()}")
    return NewsStatsResponse(
        news_date=stats.stats_date,
        total_items=stats.total_items,
        sources=stats.sources,
        categories=stats.categories,
        fetched_at=stats.fetched_at,
    )


@router.get("/daily-digest", response_model=DailyDigest)
async def get_daily_digest(
    news_date: Optional[date] = Query(None, description="Digest date, defaults to today"),
    store: NewsCacheStore = Depends(get_news_store),
    aggregation: NewsAggregationService = Depends(get_aggregation_service),
    composer: NewsletterComposer = Depends(get_composer),
):
    """Digest for a date from cached news; today's digest falls back to a fresh pipeline run"""
    today = store.today()
    news_date = news_date or today
    items = await store.get_cached_news(news_date)
    if not items and news_date == today:
        items = await aggregation.run_pipeline(news_date)

    digest, used_fallback = await composer.compose_daily_digest(items, news_date)
    logger.info("daily_digest_served", date=news_date.isoformat(), items=len(items), fallback=used_fallback)
    return digest
