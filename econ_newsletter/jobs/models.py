from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobName(str, Enum):
    DAILY_NEWSLETTER = "dailyNewsletter"
    WEEKLY_PREVIEW = "weeklyPreview"
    WEEKLY_REVIEW = "weeklyReview"
    NEWS_AGGREGATION = "newsAggregation"
    CACHE_CLEANUP = "cacheCleanup"


class JobState(str, Enum):
    SCHEDULED = "scheduled"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobMetrics(CamelModel):
    duration: int = 0  # milliseconds
    items_processed: int = 0
    emails_sent: int = 0
    emails_failed: int = 0


class JobStatus(CamelModel):
    name: str
    status: JobState = JobState.SCHEDULED
    schedule: Optional[str] = None
    description: Optional[str] = None
    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_error: Optional[datetime] = None
    next_run: Optional[datetime] = None
    error_message: Optional[str] = None
    metrics: JobMetrics = Field(default_factory=JobMetrics)


class JobMetricsSummary(CamelModel):
    total_jobs: int
    running_jobs: int
    successful_jobs: int
    failed_jobs: int
    last_updated: datetime
    jobs: Dict[str, JobStatus]


@dataclass
class JobResult:
    """Outcome returned by every job body instead of raising."""
    success: bool
    items_processed: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    error: Optional[str] = None
    details: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, **counts) -> "JobResult":
        return cls(success=False, error=error, **counts)
