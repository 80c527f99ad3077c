from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):

    api_host: str = Field(default="localhost", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development, production, test)",
        validation_alias=AliasChoices("ENVIRONMENT", "APP_ENV"),
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    # Cache
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    redis_socket_timeout_seconds: float = Field(default=5.0, description="Redis socket timeout")

    # News sources
    rss_feed_urls: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "https://feeds.bloomberg.com/markets/news.rss",
            "https://www.cnbc.com/id/100003114/device/rss/rss.html",
            "https://feeds.marketwatch.com/marketwatch/topstories/",
        ],
        description="Comma-separated RSS feed URLs",
    )
    news_api_key: Optional[str] = Field(default=None, description="NewsAPI key")
    news_api_base_url: str = Field(default="https://newsapi.org/v2", description="NewsAPI base URL")
    news_api_query: str = Field(
        default="economy OR finance OR market OR GDP OR inflation OR economic OR financial "
                "OR stocks OR bonds OR banking OR monetary OR fiscal",
        description="NewsAPI everything query",
    )
    news_api_sources: str = Field(
        default="bloomberg,business-insider,fortune,the-wall-street-journal,"
                "australian-financial-review,financial-post,reuters",
        description="NewsAPI source ids",
    )
    news_api_page_size: int = Field(default=50, description="NewsAPI page size")
    news_api_headlines_page_size: int = Field(default=30, description="NewsAPI top-headlines page size")
    feed_timeout_seconds: float = Field(default=10.0, description="Per-source fetch timeout")
    store_stage_snapshots: bool = Field(default=True, description="Store filtered/deduplicated/categorized snapshots")

    # Scheduler
    cron_enabled: bool = Field(default=True, description="Run scheduled jobs")
    cron_timezone: str = Field(
        default="UTC",
        description="Timezone used to evaluate cron expressions",
        validation_alias=AliasChoices("CRON_TIMEZONE", "TZ"),
    )
    daily_newsletter_cron: str = Field(default="0 8 * * *", description="Daily newsletter schedule")
    weekly_preview_cron: str = Field(default="0 9 * * 1", description="Weekly preview schedule")
    weekly_review_cron: str = Field(default="0 17 * * 5", description="Weekly review schedule")
    news_aggregation_cron: str = Field(default="0 */4 * * *", description="News aggregation schedule")
    cache_cleanup_cron: str = Field(default="0 2 * * *", description="Cache cleanup schedule")
    dev_daily_newsletter_cron: str = Field(default="*/30 * * * *", description="Development daily newsletter schedule")
    dev_weekly_preview_cron: str = Field(default="*/35 * * * *", description="Development weekly preview schedule")
    dev_weekly_review_cron: str = Field(default="*/40 * * * *", description="Development weekly review schedule")
    dev_news_aggregation_cron: str = Field(default="*/15 * * * *", description="Development aggregation schedule")
    dev_cache_cleanup_cron: str = Field(default="0 */2 * * *", description="Development cache cleanup schedule")
    job_timeout_seconds: float = Field(default=900.0, description="Deadline for a single job run")
    trigger_all_delay_seconds: float = Field(
        default=5.0,
        description="Pause between aggregation and digest jobs on trigger-all",
    )

    # Limits
    dev_max_news_items: int = Field(default=20, description="Aggregation item cap in development")
    dev_max_subscribers: int = Field(default=3, description="Recipient cap in development")
    fallback_headline_count: int = Field(default=5, description="Headlines used by fallback content")
    cleanup_max_age_days: int = Field(default=7, description="Age after which cached items are purged")

    # LLM Provider API Keys
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    google_api_key: Optional[str] = Field(default=None, description="Google API key for Gemini")
    openai_model_name: str = Field(default="gpt-4o-mini", description="OpenAI model name")
    anthropic_model_name: str = Field(default="claude-3-haiku-20240307", description="Anthropic Claude model name")
    google_model_name: str = Field(default="gemini-1.5-flash-latest", description="Google Gemini model name")
    content_generation_temperature: float = Field(default=0.4, description="LLM temperature for newsletters")
    content_generation_max_tokens: int = Field(default=4000, description="Max tokens for newsletters")

    # Email
    resend_api_key: Optional[str] = Field(default=None, description="Resend API key")
    email_from_address: str = Field(default="newsletter@example.com", description="Sender address")
    email_from_name: str = Field(default="Economic Newsletter", description="Sender display name")
    email_batch_size: int = Field(default=100, description="Recipients per provider batch")
    dev_email_batch_size: int = Field(default=10, description="Recipients per batch in development")
    subscriber_emails: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated confirmed subscriber addresses",
    )

    @field_validator("rss_feed_urls", "subscriber_emails", mode="before")
    @classmethod
    def parse_comma_separated(cls, value):
        if value is None:
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def effective_email_batch_size(self) -> int:
        return self.dev_email_batch_size if self.is_development else self.email_batch_size

    class Config:
        env_file = [".env", ".env.local"]  # .env.local takes precedence over .env
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
