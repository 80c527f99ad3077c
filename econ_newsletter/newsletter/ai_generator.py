import json
from datetime import date
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from ..exceptions import ContentGenerationError
from ..news.models import NewsItem
from ..news.services.cache_keys import NewsKeys
from ..news.services.news_store import NewsCacheStore
from .generators import KIND_TITLES, ContentGenerator, to_sources
from .llm_service import LLMService
from .schemas import DailyDigest, NewsletterContent, NewsletterKind

logger = structlog.get_logger(__name__)

MAX_PROMPT_ITEMS = 40

NEWSLETTER_SYSTEM_PROMPT = (
    "You are an economics editor writing an email newsletter for a general business audience. "
    "Use only the supplied articles. Respond with a single JSON object with keys "
    '"title" (string), "summary" (one or two sentences) and "content" (markdown body).'
)

DIGEST_SYSTEM_PROMPT = (
    "You are an economics editor writing a short daily digest. Use only the supplied articles. "
    "Respond with a single JSON object with keys "
    '"title", "summary", '
    '"top_stories" (at most 5 objects with "headline", "summary", "category", "url"), '
    '"market_highlights" (at most 3 strings) and '
    '"economic_indicators" (at most 3 strings).'
)

KIND_INSTRUCTIONS = {
    NewsletterKind.DAILY: "Summarize today's most important economic developments.",
    NewsletterKind.WEEKLY_PREVIEW: (
        "Preview the week ahead: what the last seven days of news imply for markets, "
        "policy decisions and data releases coming up."
    ),
    NewsletterKind.WEEKLY_REVIEW: "Review this week's economic news, grouping stories by theme.",
}


def _articles_payload(items: List[NewsItem]) -> str:
    return json.dumps([
        {
            "title": item.title,
            "description": item.description[:500],
            "category": item.category or "general",
            "source": item.source,
            "url": item.url,
            "published": item.pub_date.isoformat(),
        }
        for item in items[:MAX_PROMPT_ITEMS]
    ], indent=2)


class AIContentGenerator(ContentGenerator):
    """LLM-backed generator; results are cached per kind and date."""

    def __init__(
        self,
        llm_service: LLMService,
        store: Optional[NewsCacheStore] = None,
        temperature: float = 0.4,
        max_tokens: int = 4000,
    ):
        self.llm_service = llm_service
        self.store = store
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_newsletter(self, items: List[NewsItem], kind: NewsletterKind, day: date) -> NewsletterContent:
        cache_key = NewsKeys.newsletter(kind.value, day)
        if self.store:
            cached = await self.store.get_record(cache_key, NewsletterContent)
            if cached:
                logger.info("newsletter_cache_hit", kind=kind.value, date=day.isoformat())
                return cached

        prompt = (
            f"{KIND_INSTRUCTIONS[kind]}\n"
            f"Suggested title: {KIND_TITLES[kind]}\n"
            f"Date: {day.isoformat()}\n\n"
            f"Articles:\n{_articles_payload(items)}"
        )
        data = await self._generate_json(NEWSLETTER_SYSTEM_PROMPT, prompt)

        try:
            content = NewsletterContent(
                title=data.get("title") or KIND_TITLES[kind],
                content=data["content"],
                summary=data.get("summary"),
                kind=kind,
                publish_date=day,
                sources=to_sources(items[:MAX_PROMPT_ITEMS]),
            )
        except (KeyError, ValidationError) as e:
            raise ContentGenerationError(f"Newsletter response missing required fields: {e}") from e

        if self.store:
            await self.store.put_record(cache_key, content)
        return content

    async def generate_daily_digest(self, items: List[NewsItem], day: date) -> DailyDigest:
        cache_key = NewsKeys.digest(day)
        if self.store:
            cached = await self.store.get_record(cache_key, DailyDigest)
            if cached:
                logger.info("digest_cache_hit", date=day.isoformat())
                return cached

        prompt = f"Date: {day.isoformat()}\n\nArticles:\n{_articles_payload(items)}"
        data = await self._generate_json(DIGEST_SYSTEM_PROMPT, prompt)

        try:
            digest = DailyDigest.model_validate(data)
        except ValidationError as e:
            raise ContentGenerationError(f"Digest response failed validation: {e}") from e

        if self.store:
            await self.store.put_record(cache_key, digest)
        return digest

    async def _generate_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        response = await self.llm_service.generate_with_fallback(
            system_prompt,
            user_prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return self.llm_service.parse_json_response(response)
