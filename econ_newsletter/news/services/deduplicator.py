"""
Near-duplicate removal across sources.

Items are ordered newest first, exact URL repeats are dropped, then each
candidate's title key is compared against every accepted title key with
Jaccard similarity. Comparison is pairwise, O(n^2) in the candidate count.
"""

import re
from typing import List, Set

import structlog

from ..models import NewsItem

logger = structlog.get_logger(__name__)

SIMILARITY_THRESHOLD = 0.8
TITLE_KEY_TOKENS = 8
MIN_TOKEN_LENGTH = 4

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def title_key(title: str) -> str:
    normalized = _PUNCTUATION.sub(" ", (title or "").lower())
    normalized = _WHITESPACE.sub(" ", normalized).strip()
    tokens = [token for token in normalized.split(" ") if len(token) >= MIN_TOKEN_LENGTH]
    return " ".join(tokens[:TITLE_KEY_TOKENS])


def jaccard_similarity(key_a: str, key_b: str) -> float:
    tokens_a: Set[str] = set(key_a.split())
    tokens_b: Set[str] = set(key_b.split())
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


class Deduplicator:

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD):
        self.threshold = threshold

    def dedupe(self, items: List[NewsItem]) -> List[NewsItem]:
        ordered = sorted(items, key=lambda item: item.pub_date, reverse=True)

        seen_urls: Set[str] = set()
        accepted_keys: List[str] = []
        unique: List[NewsItem] = []

        for item in ordered:
            if item.url in seen_urls:
                continue

            key = title_key(item.title)
            if any(jaccard_similarity(key, accepted) > self.threshold for accepted in accepted_keys):
                continue

            seen_urls.add(item.url)
            accepted_keys.append(key)
            unique.append(item)

        logger.debug("deduplication_applied", received=len(items), kept=len(unique))
        return unique
