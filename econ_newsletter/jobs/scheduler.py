"""
Job Scheduler

Cooperative asyncio scheduler: one loop per named job sleeps until the job's
next cron match and fires it. Every run goes through ``execute_job``, which
times the body, records the outcome in the status store and never lets an
exception escape, so a crashing job is simply tried again on its next tick.

A job never overlaps itself: a tick or manual trigger that arrives while the
previous run holds the job's lock is skipped and logged.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo

import structlog

from ..exceptions import JobNotFoundError
from .cron import CronExpression
from .models import JobName, JobResult, JobStatus
from .status_store import JobStatusStore, utc_now

logger = structlog.get_logger(__name__)

JobBody = Callable[[], Awaitable[JobResult]]

DIGEST_JOBS = (JobName.DAILY_NEWSLETTER, JobName.WEEKLY_PREVIEW, JobName.WEEKLY_REVIEW)


@dataclass
class ScheduledJob:
    name: str
    cron: CronExpression
    body: JobBody
    description: str = ""


class JobScheduler:

    def __init__(
        self,
        jobs: List[ScheduledJob],
        status_store: Optional[JobStatusStore] = None,
        timezone_name: str = "UTC",
        job_timeout_seconds: Optional[float] = None,
        trigger_all_delay_seconds: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.jobs: Dict[str, ScheduledJob] = {job.name: job for job in jobs}
        self.status = status_store or JobStatusStore(self.jobs, clock=clock)
        self.tz = ZoneInfo(timezone_name)
        self.job_timeout_seconds = job_timeout_seconds
        self.trigger_all_delay_seconds = trigger_all_delay_seconds
        self.clock = clock

        self._locks: Dict[str, asyncio.Lock] = {name: asyncio.Lock() for name in self.jobs}
        self._loops: Dict[str, asyncio.Task] = {}
        self._runs: Set[asyncio.Task] = set()

        for job in jobs:
            self.status.describe(job.name, job.cron.expression, job.description)

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._loops.values())

    def job_names(self) -> List[str]:
        return list(self.jobs)

    def _require(self, name: str) -> ScheduledJob:
        job = self.jobs.get(name)
        if job is None:
            raise JobNotFoundError(name, self.job_names())
        return job

    def is_job_running(self, name: str) -> bool:
        self._require(name)
        return self._locks[name].locked()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_job(self, name: str) -> bool:
        """
        Run one job through the wrapper. Returns False when the run was
        skipped because the job is already running.
        """
        job = self._require(name)
        lock = self._locks[name]
        if lock.locked():
            logger.warning("job_skipped", job=name, reason="previous run still in progress")
            return False

        async with lock:
            started_at = self.clock()
            started = time.perf_counter()
            self.status.mark_running(name)
            logger.info("job_started", job=name)

            try:
                if self.job_timeout_seconds:
                    result = await asyncio.wait_for(job.body(), timeout=self.job_timeout_seconds)
                else:
                    result = await job.body()
            except asyncio.TimeoutError:
                result = JobResult.failure(f"Job exceeded its {self.job_timeout_seconds}s deadline")
            except asyncio.CancelledError:
                self._record(name, JobResult.failure("Job cancelled"), started_at, started)
                raise
            except Exception as e:
                logger.error("job_crashed", job=name, error=str(e), exc_info=True)
                result = JobResult.failure(str(e) or type(e).__name__)

            self._record(name, result, started_at, started)
        return True

    def _record(self, name: str, result: JobResult, started_at: datetime, started: float) -> None:
        duration_ms = int((time.perf_counter() - started) * 1000)
        self.status.record_result(name, result, started_at, duration_ms)
        log = logger.info if result.success else logger.error
        log(
            "job_finished",
            job=name,
            success=result.success,
            duration_ms=duration_ms,
            items_processed=result.items_processed,
            emails_sent=result.emails_sent,
            emails_failed=result.emails_failed,
            error=result.error,
        )

    async def trigger(self, name: str) -> JobStatus:
        executed = await self.execute_job(name)
        if not executed:
            logger.info("manual_trigger_ignored", job=name)
        return self.status.get(name)

    async def trigger_all(self) -> Dict[str, JobStatus]:
        """Aggregation first so digests see fresh news, then the digest jobs in parallel."""
        if JobName.NEWS_AGGREGATION.value in self.jobs:
            await self.execute_job(JobName.NEWS_AGGREGATION.value)
            if self.trigger_all_delay_seconds:
                await asyncio.sleep(self.trigger_all_delay_seconds)

        await asyncio.gather(*(
            self.execute_job(name.value) for name in DIGEST_JOBS if name.value in self.jobs
        ))
        return self.status.all()

    # ------------------------------------------------------------------
    # Scheduling loop
    # ------------------------------------------------------------------

    def next_run(self, name: str, after: Optional[datetime] = None) -> datetime:
        job = self._require(name)
        return job.cron.next_after(after or self.clock(), self.tz).astimezone(timezone.utc)

    def start(self) -> None:
        if self.is_running:
            return
        for job in self.jobs.values():
            self._loops[job.name] = asyncio.create_task(self._run_loop(job), name=f"cron:{job.name}")
        logger.info("scheduler_started", jobs=self.job_names(), timezone=str(self.tz))

    async def stop(self) -> None:
        tasks = list(self._loops.values()) + list(self._runs)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loops.clear()
        self._runs.clear()
        logger.info("scheduler_stopped")

    async def _run_loop(self, job: ScheduledJob) -> None:
        last_fired: Optional[datetime] = None
        while True:
            now = self.clock()
            reference = max(now, last_fired) if last_fired else now
            next_run = self.next_run(job.name, reference)
            self.status.set_next_run(job.name, next_run)

            await asyncio.sleep(max((next_run - self.clock()).total_seconds(), 0))
            last_fired = next_run

            run = asyncio.create_task(self.execute_job(job.name), name=f"run:{job.name}")
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)
