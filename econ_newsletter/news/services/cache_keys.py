"""
Cache keyspace for the news pipeline.

Keys are derived from semantic components only (article URL, calendar date,
pipeline stage) so any process sharing the cache can compute them without a
lookup table. TTLs are chosen per key prefix, longest prefix wins.
"""

import base64
from datetime import date
from typing import Dict, Union

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

DEFAULT_TTL = HOUR

PROCESSED_STAGES = ("filtered", "deduplicated", "categorized")

TTL_POLICY: Dict[str, int] = {
    "news:item": 7 * DAY,
    "news:daily": 3 * DAY,
    "news:stats": 7 * DAY,
    "news:filtered": 2 * DAY,
    "news:deduplicated": 2 * DAY,
    "news:categorized": 2 * DAY,
    "news:exists": HOUR,
    "ai:newsletter": 6 * HOUR,
    "ai:digest": 8 * HOUR,
}

DateLike = Union[date, str]


def _date_part(day: DateLike) -> str:
    if isinstance(day, date):
        return day.isoformat()
    return day


def encode_url(url: str) -> str:
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def decode_url(encoded: str) -> str:
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding).decode("utf-8")


class NewsKeys:
    ITEM_PREFIX = "news:item"
    DAILY_PREFIX = "news:daily"
    STATS_PREFIX = "news:stats"
    EXISTS_PREFIX = "news:exists"

    @staticmethod
    def item(url: str) -> str:
        return f"{NewsKeys.ITEM_PREFIX}:{encode_url(url)}"

    @staticmethod
    def daily(day: DateLike) -> str:
        return f"{NewsKeys.DAILY_PREFIX}:{_date_part(day)}"

    @staticmethod
    def stats(day: DateLike) -> str:
        return f"{NewsKeys.STATS_PREFIX}:{_date_part(day)}"

    @staticmethod
    def exists(day: DateLike) -> str:
        return f"{NewsKeys.EXISTS_PREFIX}:{_date_part(day)}"

    @staticmethod
    def processed(stage: str, day: DateLike) -> str:
        if stage not in PROCESSED_STAGES:
            raise ValueError(f"Unknown pipeline stage: {stage}")
        return f"news:{stage}:{_date_part(day)}"

    @staticmethod
    def newsletter(kind: str, day: DateLike) -> str:
        return f"ai:newsletter:{kind}:{_date_part(day)}"

    @staticmethod
    def digest(day: DateLike) -> str:
        return f"ai:digest:{_date_part(day)}"


def get_ttl(key: str) -> int:
    """Resolve the TTL in seconds for a key by longest matching prefix."""
    best_prefix = ""
    for prefix in TTL_POLICY:
        matches = key == prefix or key.startswith(prefix + ":")
        if matches and len(prefix) > len(best_prefix):
            best_prefix = prefix
    return TTL_POLICY[best_prefix] if best_prefix else DEFAULT_TTL
