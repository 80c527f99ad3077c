from fastapi import APIRouter

from .endpoints import health, jobs, news

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(news.router, prefix="/news", tags=["news"])

# Manual triggers, status and metrics for the scheduled jobs
api_router.include_router(jobs.router, prefix="/admin/jobs", tags=["jobs"])
