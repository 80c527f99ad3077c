from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ....exceptions import JobNotFoundError
from ....jobs.models import JobMetricsSummary, JobStatus
from ....jobs.registry import JOB_SLUGS
from ....jobs.scheduler import JobScheduler
from ...dependencies import get_scheduler

logger = structlog.get_logger(__name__)

router = APIRouter()


def _failure(message: str, error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": message, "error": str(error)},
    )


def _dump(status: JobStatus) -> Dict[str, Any]:
    return status.model_dump(mode="json", by_alias=True)


@router.post("/trigger-all")
async def trigger_all_jobs(scheduler: JobScheduler = Depends(get_scheduler)):
    """Run aggregation, then every digest job in parallel"""
    try:
        statuses = await scheduler.trigger_all()
    except Exception as e:
        logger.error("trigger_all_failed", error=str(e), exc_info=True)
        return _failure("Failed to trigger all jobs", e)

    return {
        "success": True,
        "message": "All jobs triggered",
        "jobs": {name: _dump(status) for name, status in statuses.items()},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
async def get_jobs_status(scheduler: JobScheduler = Depends(get_scheduler)):
    return {
        "success": True,
        "scheduler_running": scheduler.is_running,
        "jobs": {name: _dump(status) for name, status in scheduler.status.all().items()},
    }


@router.get("/status/{job_name}")
async def get_job_status(job_name: str, scheduler: JobScheduler = Depends(get_scheduler)):
    name = JOB_SLUGS[job_name].value if job_name in JOB_SLUGS else job_name
    try:
        status = scheduler.status.get(name)
    except JobNotFoundError as e:
        return JSONResponse(status_code=404, content=e.to_dict())
    return {"success": True, "job": _dump(status)}


@router.get("/metrics", response_model=JobMetricsSummary, response_model_by_alias=True)
async def get_job_metrics(scheduler: JobScheduler = Depends(get_scheduler)):
    return scheduler.status.summary()


@router.post("/{job_slug}")
async def trigger_job(job_slug: str, scheduler: JobScheduler = Depends(get_scheduler)):
    """Manually run one job: daily-news, weekly-preview, weekly-review, news-aggregation or cache-cleanup"""
    job = JOB_SLUGS.get(job_slug)
    name = job.value if job else job_slug
    try:
        was_running = scheduler.is_job_running(name)
        status = await scheduler.trigger(name)
    except JobNotFoundError as e:
        payload = e.to_dict()
        payload["available_jobs"] = list(JOB_SLUGS)
        return JSONResponse(status_code=404, content=payload)
    except Exception as e:
        logger.error("manual_trigger_failed", job=name, error=str(e), exc_info=True)
        return _failure(f"Failed to trigger {name}", e)

    message = f"{name} is already running; trigger skipped" if was_running else f"{name} job triggered"
    return {
        "success": True,
        "message": message,
        "job": _dump(status),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
