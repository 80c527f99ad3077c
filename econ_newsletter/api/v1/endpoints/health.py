from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends

from ....core.container import ServiceContainer
from ...dependencies import get_container

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    cache_ok = await container.cache.ping()
    sources = await container.aggregation.source_manager.health_check()

    # The cache is an accelerator; the service stays usable without it
    status = "healthy" if cache_ok else "degraded"
    if not cache_ok:
        logger.warning("Health check degraded", cache_status="unreachable")

    return {
        "status": status,
        "service": "Economic Newsletter API",
        "version": "0.1.0",
        "environment": container.settings.environment,
        "cache": "healthy" if cache_ok else "unreachable",
        "scheduler_running": container.scheduler.is_running,
        "news_sources": sources,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
