"""
Job status store

Owned by the scheduler and injected into anything that reads job state.
Exactly one record exists per registered job; outcome timestamps only move
forward.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from ..exceptions import JobNotFoundError
from .models import JobMetrics, JobMetricsSummary, JobResult, JobState, JobStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatusStore:

    def __init__(self, job_names: Iterable[str], clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._statuses: Dict[str, JobStatus] = {name: JobStatus(name=name) for name in job_names}

    def names(self) -> List[str]:
        return list(self._statuses)

    def _require(self, name: str) -> JobStatus:
        status = self._statuses.get(name)
        if status is None:
            raise JobNotFoundError(name, self.names())
        return status

    def get(self, name: str) -> JobStatus:
        return self._require(name).model_copy(deep=True)

    def all(self) -> Dict[str, JobStatus]:
        return {name: status.model_copy(deep=True) for name, status in self._statuses.items()}

    def describe(self, name: str, schedule: Optional[str], description: Optional[str]) -> None:
        status = self._require(name)
        status.schedule = schedule
        status.description = description

    def set_next_run(self, name: str, next_run: Optional[datetime]) -> None:
        self._require(name).next_run = next_run

    def mark_running(self, name: str) -> None:
        self._require(name).status = JobState.RUNNING

    def record_result(self, name: str, result: JobResult, started_at: datetime, duration_ms: int) -> bool:
        """
        Apply a finished run. Returns False and leaves the record untouched
        when a run that started later has already been recorded.
        """
        status = self._require(name)
        if status.last_run is not None and started_at < status.last_run:
            return False

        status.last_run = started_at
        if result.success:
            status.status = JobState.SUCCESS
            status.last_success = started_at
            status.error_message = None
        else:
            status.status = JobState.ERROR
            status.last_error = started_at
            status.error_message = result.error or "Unknown error"

        status.metrics = JobMetrics(
            duration=duration_ms,
            items_processed=result.items_processed,
            emails_sent=result.emails_sent,
            emails_failed=result.emails_failed,
        )
        return True

    def summary(self) -> JobMetricsSummary:
        statuses = self.all()
        return JobMetricsSummary(
            total_jobs=len(statuses),
            running_jobs=sum(1 for s in statuses.values() if s.status == JobState.RUNNING),
            successful_jobs=sum(1 for s in statuses.values() if s.status == JobState.SUCCESS),
            failed_jobs=sum(1 for s in statuses.values() if s.status == JobState.ERROR),
            last_updated=self.clock(),
            jobs=statuses,
        )
