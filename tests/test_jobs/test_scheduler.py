import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from econ_newsletter.exceptions import JobNotFoundError
from econ_newsletter.jobs.cron import CronExpression
from econ_newsletter.jobs.models import JobName, JobResult, JobState
from econ_newsletter.jobs.scheduler import JobScheduler, ScheduledJob
from econ_newsletter.jobs.status_store import JobStatusStore


def make_job(name, body, cron="0 8 * * *"):
    return ScheduledJob(name=name, cron=CronExpression(cron), body=body, description=f"{name} job")


def succeed(**counts):
    async def body():
        return JobResult(success=True, **counts)
    return body


class TestExecuteJob:
    @pytest.fixture
    def build(self, fixed_now):
        def _build(*jobs, **kwargs):
            return JobScheduler(list(jobs), clock=lambda: fixed_now, **kwargs)
        return _build

    @pytest.mark.asyncio
    async def test_success_updates_status_and_metrics(self, build, fixed_now):
        scheduler = build(make_job("newsAggregation", succeed(items_processed=12)))

        assert await scheduler.execute_job("newsAggregation")

        status = scheduler.status.get("newsAggregation")
        assert status.status == JobState.SUCCESS
        assert status.last_run == fixed_now
        assert status.last_success == fixed_now
        assert status.error_message is None
        assert status.metrics.items_processed == 12
        assert status.metrics.duration >= 0

    @pytest.mark.asyncio
    async def test_raising_body_is_recorded_not_propagated(self, build, fixed_now):
        async def body():
            raise RuntimeError("feed exploded")

        scheduler = build(make_job("dailyNewsletter", body))

        assert await scheduler.execute_job("dailyNewsletter")

        status = scheduler.status.get("dailyNewsletter")
        assert status.status == JobState.ERROR
        assert status.error_message == "feed exploded"
        assert status.last_error == fixed_now
        assert status.last_success is None

    @pytest.mark.asyncio
    async def test_body_failing_before_first_await_is_recorded(self, build):
        body = MagicMock(side_effect=ValueError("bad wiring"))
        scheduler = build(make_job("cacheCleanup", body))

        await scheduler.execute_job("cacheCleanup")

        assert scheduler.status.get("cacheCleanup").error_message == "bad wiring"

    @pytest.mark.asyncio
    async def test_failed_result_is_recorded(self, build):
        async def body():
            return JobResult.failure("cache unreachable", items_processed=3)

        scheduler = build(make_job("cacheCleanup", body))
        await scheduler.execute_job("cacheCleanup")

        status = scheduler.status.get("cacheCleanup")
        assert status.status == JobState.ERROR
        assert status.error_message == "cache unreachable"
        assert status.metrics.items_processed == 3

    @pytest.mark.asyncio
    async def test_deadline_marks_run_as_failed(self, build):
        async def body():
            await asyncio.sleep(5)
            return JobResult(success=True)

        scheduler = build(make_job("weeklyReview", body), job_timeout_seconds=0.05)
        await scheduler.execute_job("weeklyReview")

        status = scheduler.status.get("weeklyReview")
        assert status.status == JobState.ERROR
        assert "deadline" in status.error_message

    @pytest.mark.asyncio
    async def test_overlapping_run_is_skipped(self, build):
        release = asyncio.Event()
        calls = []

        async def body():
            calls.append(1)
            await release.wait()
            return JobResult(success=True)

        scheduler = build(make_job("weeklyPreview", body))
        first = asyncio.create_task(scheduler.execute_job("weeklyPreview"))
        await asyncio.sleep(0)

        assert scheduler.is_job_running("weeklyPreview")
        assert scheduler.status.get("weeklyPreview").status == JobState.RUNNING
        assert not await scheduler.execute_job("weeklyPreview")

        release.set()
        assert await first
        assert len(calls) == 1
        assert scheduler.status.get("weeklyPreview").status == JobState.SUCCESS

    @pytest.mark.asyncio
    async def test_success_after_error_clears_message(self, build):
        outcomes = [JobResult.failure("first attempt failed"), JobResult(success=True)]

        async def body():
            return outcomes.pop(0)

        scheduler = build(make_job("newsAggregation", body))
        await scheduler.execute_job("newsAggregation")
        await scheduler.execute_job("newsAggregation")

        status = scheduler.status.get("newsAggregation")
        assert status.status == JobState.SUCCESS
        assert status.error_message is None
        assert status.last_error is not None

    @pytest.mark.asyncio
    async def test_unknown_job(self, build):
        scheduler = build(make_job("newsAggregation", succeed()))

        with pytest.raises(JobNotFoundError) as exc_info:
            await scheduler.trigger("nope")

        assert exc_info.value.available_jobs == ["newsAggregation"]


class TestTriggers:
    @pytest.mark.asyncio
    async def test_trigger_returns_status(self, fixed_now):
        scheduler = JobScheduler([make_job("cacheCleanup", succeed(items_processed=4))], clock=lambda: fixed_now)

        status = await scheduler.trigger("cacheCleanup")

        assert status.name == "cacheCleanup"
        assert status.status == JobState.SUCCESS
        assert status.metrics.items_processed == 4

    @pytest.mark.asyncio
    async def test_trigger_all_runs_aggregation_first(self, fixed_now):
        order = []

        def recording(name):
            async def body():
                order.append(name)
                return JobResult(success=True)
            return body

        jobs = [make_job(name.value, recording(name.value)) for name in JobName]
        scheduler = JobScheduler(jobs, clock=lambda: fixed_now, trigger_all_delay_seconds=0)

        statuses = await scheduler.trigger_all()

        assert order[0] == JobName.NEWS_AGGREGATION.value
        assert set(order[1:]) == {
            JobName.DAILY_NEWSLETTER.value,
            JobName.WEEKLY_PREVIEW.value,
            JobName.WEEKLY_REVIEW.value,
        }
        assert JobName.CACHE_CLEANUP.value not in order
        assert statuses[JobName.CACHE_CLEANUP.value].status == JobState.SCHEDULED


class TestScheduling:
    def test_next_run_in_configured_timezone(self, fixed_now):
        scheduler = JobScheduler(
            [make_job("dailyNewsletter", succeed(), cron="0 8 * * *")],
            timezone_name="America/New_York",
            clock=lambda: fixed_now,
        )

        # 12:00 UTC is 07:00 in New York
        assert scheduler.next_run("dailyNewsletter") == datetime(2024, 1, 10, 13, 0, tzinfo=timezone.utc)

    def test_status_carries_schedule_and_description(self, fixed_now):
        scheduler = JobScheduler([make_job("cacheCleanup", succeed(), cron="0 2 * * *")], clock=lambda: fixed_now)

        status = scheduler.status.get("cacheCleanup")

        assert status.schedule == "0 2 * * *"
        assert status.description == "cacheCleanup job"
        assert status.status == JobState.SCHEDULED

    @pytest.mark.asyncio
    async def test_start_publishes_next_run_and_stop_cancels(self, fixed_now):
        scheduler = JobScheduler([make_job("cacheCleanup", succeed(), cron="0 2 * * *")], clock=lambda: fixed_now)

        scheduler.start()
        await asyncio.sleep(0)

        assert scheduler.is_running
        assert scheduler.status.get("cacheCleanup").next_run == datetime(2024, 1, 11, 2, 0, tzinfo=timezone.utc)

        await scheduler.stop()
        assert not scheduler.is_running


class TestJobStatusStore:
    def test_one_record_per_job(self):
        store = JobStatusStore(["a", "b"])
        assert set(store.all()) == {"a", "b"}

    def test_older_run_does_not_overwrite_newer(self, fixed_now):
        store = JobStatusStore(["newsAggregation"], clock=lambda: fixed_now)
        newer = fixed_now
        older = fixed_now - timedelta(minutes=5)

        assert store.record_result("newsAggregation", JobResult(success=True, items_processed=9), newer, 10)
        assert not store.record_result("newsAggregation", JobResult.failure("stale"), older, 10)

        status = store.get("newsAggregation")
        assert status.status == JobState.SUCCESS
        assert status.last_run == newer
        assert status.metrics.items_processed == 9

    def test_get_returns_a_copy(self):
        store = JobStatusStore(["a"])
        store.get("a").error_message = "mutated"
        assert store.get("a").error_message is None

    def test_summary_counts(self, fixed_now):
        store = JobStatusStore(["a", "b", "c"], clock=lambda: fixed_now)
        store.record_result("a", JobResult(success=True), fixed_now, 1)
        store.record_result("b", JobResult.failure("boom"), fixed_now, 1)
        store.mark_running("c")

        summary = store.summary()

        assert (summary.total_jobs, summary.successful_jobs, summary.failed_jobs, summary.running_jobs) == (3, 1, 1, 1)
        assert summary.last_updated == fixed_now

    def test_serializes_with_camel_case_keys(self, fixed_now):
        store = JobStatusStore(["a"], clock=lambda: fixed_now)
        store.record_result("a", JobResult(success=True, emails_sent=2), fixed_now, 5)

        payload = store.get("a").model_dump(mode="json", by_alias=True)

        assert payload["lastRun"] == "2024-01-10T12:00:00Z"
        assert payload["metrics"] == {"duration": 5, "itemsProcessed": 0, "emailsSent": 2, "emailsFailed": 0}
