from typing import Dict, List

from ..config import Settings
from .cron import CronExpression
from .models import JobName
from .newsletter_jobs import NewsletterJobs
from .scheduler import JobScheduler, ScheduledJob

JOB_DESCRIPTIONS: Dict[JobName, str] = {
    JobName.DAILY_NEWSLETTER: "Aggregate today's news and send the daily digest",
    JobName.WEEKLY_PREVIEW: "Send the week-ahead preview built from the last seven days",
    JobName.WEEKLY_REVIEW: "Send the review of this week's news",
    JobName.NEWS_AGGREGATION: "Fetch, filter, deduplicate, categorize and cache news",
    JobName.CACHE_CLEANUP: "Purge stale and non-expiring news cache entries",
}

# Manual-trigger URL slugs
JOB_SLUGS: Dict[str, JobName] = {
    "daily-news": JobName.DAILY_NEWSLETTER,
    "weekly-preview": JobName.WEEKLY_PREVIEW,
    "weekly-review": JobName.WEEKLY_REVIEW,
    "news-aggregation": JobName.NEWS_AGGREGATION,
    "cache-cleanup": JobName.CACHE_CLEANUP,
}


def job_schedules(settings: Settings) -> Dict[JobName, str]:
    if settings.is_development:
        return {
            JobName.DAILY_NEWSLETTER: settings.dev_daily_newsletter_cron,
            JobName.WEEKLY_PREVIEW: settings.dev_weekly_preview_cron,
            JobName.WEEKLY_REVIEW: settings.dev_weekly_review_cron,
            JobName.NEWS_AGGREGATION: settings.dev_news_aggregation_cron,
            JobName.CACHE_CLEANUP: settings.dev_cache_cleanup_cron,
        }
    return {
        JobName.DAILY_NEWSLETTER: settings.daily_newsletter_cron,
        JobName.WEEKLY_PREVIEW: settings.weekly_preview_cron,
        JobName.WEEKLY_REVIEW: settings.weekly_review_cron,
        JobName.NEWS_AGGREGATION: settings.news_aggregation_cron,
        JobName.CACHE_CLEANUP: settings.cache_cleanup_cron,
    }


def build_scheduled_jobs(settings: Settings, jobs: NewsletterJobs) -> List[ScheduledJob]:
    bodies = {
        JobName.DAILY_NEWSLETTER: jobs.daily_newsletter,
        JobName.WEEKLY_PREVIEW: jobs.weekly_preview,
        JobName.WEEKLY_REVIEW: jobs.weekly_review,
        JobName.NEWS_AGGREGATION: jobs.news_aggregation,
        JobName.CACHE_CLEANUP: jobs.cache_cleanup,
    }
    schedules = job_schedules(settings)
    return [
        ScheduledJob(
            name=name.value,
            cron=CronExpression(schedules[name]),
            body=bodies[name],
            description=JOB_DESCRIPTIONS[name],
        )
        for name in JobName
    ]


def build_scheduler(settings: Settings, jobs: NewsletterJobs) -> JobScheduler:
    return JobScheduler(
        build_scheduled_jobs(settings, jobs),
        timezone_name=settings.cron_timezone,
        job_timeout_seconds=settings.job_timeout_seconds,
        trigger_all_delay_seconds=settings.trigger_all_delay_seconds,
    )
