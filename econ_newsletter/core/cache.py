from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..exceptions import CacheUnavailableError

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: str
    ttl: int


class CacheClient(ABC):
    """Narrow key-value contract the news store is written against."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def batch_get(self, keys: List[str]) -> Dict[str, Optional[str]]:
        pass

    @abstractmethod
    async def batch_set(self, entries: List[CacheEntry]) -> None:
        pass

    @abstractmethod
    async def keys(self, pattern: str) -> List[str]:
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        pass

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when the key never expires, -2 when missing."""
        pass

    async def batch_ttl(self, keys: List[str]) -> Dict[str, int]:
        return {key: await self.ttl(key) for key in keys}

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class RedisCacheClient(CacheClient):
    """
    CacheClient over redis.asyncio.

    Every Redis failure surfaces as CacheUnavailableError so callers can
    degrade without depending on the driver's exception types. Multi-key
    writes go through one MULTI/EXEC pipeline; a connection drop mid-call can
    still leave part of a batch committed, which is tolerated because every
    key carries its own TTL.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_url(cls, url: str, socket_timeout: Optional[float] = None) -> "RedisCacheClient":
        redis = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(redis)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"GET {key} failed: {e}") from e

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise CacheUnavailableError(f"SET {key} failed: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.redis.exists(key))
        except RedisError as e:
            raise CacheUnavailableError(f"EXISTS {key} failed: {e}") from e

    async def batch_get(self, keys: List[str]) -> Dict[str, Optional[str]]:
        if not keys:
            return {}
        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.get(key)
                values = await pipe.execute()
        except RedisError as e:
            raise CacheUnavailableError(f"Pipelined GET of {len(keys)} keys failed: {e}") from e
        return dict(zip(keys, values))

    async def batch_set(self, entries: List[CacheEntry]) -> None:
        if not entries:
            return
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for entry in entries:
                    pipe.set(entry.key, entry.value, ex=entry.ttl)
                await pipe.execute()
        except RedisError as e:
            raise CacheUnavailableError(f"Pipelined SET of {len(entries)} keys failed: {e}") from e
        logger.debug("cache_batch_set", count=len(entries))

    async def keys(self, pattern: str) -> List[str]:
        try:
            return [key async for key in self.redis.scan_iter(match=pattern, count=500)]
        except RedisError as e:
            raise CacheUnavailableError(f"SCAN {pattern} failed: {e}") from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self.redis.delete(*keys))
        except RedisError as e:
            raise CacheUnavailableError(f"DEL of {len(keys)} keys failed: {e}") from e

    async def ttl(self, key: str) -> int:
        try:
            return int(await self.redis.ttl(key))
        except RedisError as e:
            raise CacheUnavailableError(f"TTL {key} failed: {e}") from e

    async def batch_ttl(self, keys: List[str]) -> Dict[str, int]:
        if not keys:
            return {}
        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.ttl(key)
                values = await pipe.execute()
        except RedisError as e:
            raise CacheUnavailableError(f"Pipelined TTL of {len(keys)} keys failed: {e}") from e
        return {key: int(value) for key, value in zip(keys, values)}

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.warning("cache_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.redis.aclose()
