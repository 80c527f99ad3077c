from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from econ_newsletter.config import Settings
from econ_newsletter.core.cache import CacheEntry, RedisCacheClient
from econ_newsletter.exceptions import CacheUnavailableError


class FakePipeline:
    def __init__(self, results=None, error=None):
        self.commands = []
        self.results = results or []
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def get(self, key):
        self.commands.append(("get", key))

    def set(self, key, value, ex=None):
        self.commands.append(("set", key, value, ex))

    def ttl(self, key):
        self.commands.append(("ttl", key))

    async def execute(self):
        if self.error:
            raise self.error
        return self.results


@pytest.fixture
def redis():
    return MagicMock()


class TestRedisCacheClient:
    @pytest.mark.asyncio
    async def test_batch_set_uses_one_transaction(self, redis):
        pipeline = FakePipeline()
        redis.pipeline.return_value = pipeline
        client = RedisCacheClient(redis)

        await client.batch_set([CacheEntry("news:daily:2024-01-10", "[]", 259200), CacheEntry("news:exists:x", "1", 3600)])

        redis.pipeline.assert_called_once_with(transaction=True)
        assert pipeline.commands == [
            ("set", "news:daily:2024-01-10", "[]", 259200),
            ("set", "news:exists:x", "1", 3600),
        ]

    @pytest.mark.asyncio
    async def test_batch_get_maps_keys_to_values(self, redis):
        redis.pipeline.return_value = FakePipeline(results=["a", None])
        client = RedisCacheClient(redis)

        assert await client.batch_get(["k1", "k2"]) == {"k1": "a", "k2": None}
        assert await client.batch_get([]) == {}

    @pytest.mark.asyncio
    async def test_batch_ttl_is_pipelined(self, redis):
        pipeline = FakePipeline(results=[3600, -1])
        redis.pipeline.return_value = pipeline
        client = RedisCacheClient(redis)

        assert await client.batch_ttl(["news:exists:x", "news:legacy:blob"]) == {
            "news:exists:x": 3600,
            "news:legacy:blob": -1,
        }
        redis.pipeline.assert_called_once_with(transaction=False)
        assert pipeline.commands == [("ttl", "news:exists:x"), ("ttl", "news:legacy:blob")]
        assert await client.batch_ttl([]) == {}

    @pytest.mark.asyncio
    async def test_driver_errors_become_cache_unavailable(self, redis):
        redis.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        redis.pipeline.return_value = FakePipeline(error=RedisConnectionError("refused"))
        client = RedisCacheClient(redis)

        with pytest.raises(CacheUnavailableError):
            await client.get("news:item:x")
        with pytest.raises(CacheUnavailableError):
            await client.batch_set([CacheEntry("k", "v", 60)])

    @pytest.mark.asyncio
    async def test_ping_reports_unreachable(self, redis):
        redis.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        assert not await RedisCacheClient(redis).ping()

    @pytest.mark.asyncio
    async def test_set_with_ttl_and_delete(self, redis):
        redis.set = AsyncMock()
        redis.delete = AsyncMock(return_value=2)
        client = RedisCacheClient(redis)

        await client.set_with_ttl("ai:digest:2024-01-10", "{}", 28800)

        redis.set.assert_awaited_once_with("ai:digest:2024-01-10", "{}", ex=28800)
        assert await client.delete("a", "b") == 2
        assert await client.delete() == 0


class TestSettings:
    def test_comma_separated_lists(self):
        settings = Settings(
            _env_file=None,
            rss_feed_urls="https://a.example.com/rss, https://b.example.com/rss",
            subscriber_emails="x@example.com,y@example.com",
        )

        assert settings.rss_feed_urls == ["https://a.example.com/rss", "https://b.example.com/rss"]
        assert settings.subscriber_emails == ["x@example.com", "y@example.com"]

    def test_development_batch_size(self):
        assert Settings(_env_file=None, ENVIRONMENT="development").effective_email_batch_size == 10
        assert Settings(_env_file=None, ENVIRONMENT="production").effective_email_batch_size == 100

    def test_environment_alias(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("APP_ENV", "production")

        assert not Settings(_env_file=None).is_development
