import json
from enum import Enum
from typing import Any, Dict, List, Optional

import anthropic
import google.generativeai as genai
import openai
import structlog

from ..exceptions import ContentGenerationError

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class LLMService:
    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        openai_model_name: str = "gpt-4o-mini",
        anthropic_model_name: str = "claude-3-haiku-20240307",
        google_model_name: str = "gemini-1.5-flash"
    ):
        self.openai_model_name = openai_model_name
        self.anthropic_model_name = anthropic_model_name
        self.google_model_name = google_model_name

        self.openai_client = None
        self.anthropic_client = None
        self.google_client = None

        if openai_api_key:
            try:
                self.openai_client = openai.AsyncOpenAI(api_key=openai_api_key)
                logger.info("OpenAI client initialized")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client", error=str(e))

        if anthropic_api_key:
            try:
                self.anthropic_client = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
                logger.info("Anthropic client initialized")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client", error=str(e))

        if google_api_key:
            try:
                genai.configure(api_key=google_api_key)
                self.google_client = genai.GenerativeModel(self.google_model_name)
                logger.info("Google Gemini client initialized")
            except Exception as e:
                logger.warning("Failed to initialize Google Gemini client", error=str(e))

    async def generate_with_fallback(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.4,
        max_tokens: int = 4000,
    ) -> str:
        """
        Generate a response, trying OpenAI, then Gemini, then Claude.

        Raises ContentGenerationError when no provider is configured or all
        configured providers fail.
        """
        providers = self.get_available_providers()
        if not providers:
            raise ContentGenerationError("No LLM provider configured")

        errors = []
        for provider in providers:
            try:
                logger.info(f"Attempting generation with {provider.value}")
                return await self._generate_with_provider(
                    provider, system_prompt, user_prompt, temperature, max_tokens
                )
            except Exception as e:
                logger.warning(f"{provider.value} failed, trying next provider", error=str(e))
                errors.append(f"{provider.value}: {e}")

        raise ContentGenerationError("All LLM providers failed: " + "; ".join(errors))

    async def _generate_with_provider(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        if provider == LLMProvider.OPENAI:
            response = await self.openai_client.chat.completions.create(
                model=self.openai_model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ]
            )
            result = response.choices[0].message.content or ""
        elif provider == LLMProvider.ANTHROPIC:
            response = await self.anthropic_client.messages.create(
                model=self.anthropic_model_name,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}]
            )
            result = response.content[0].text
        elif provider == LLMProvider.GOOGLE:
            generation_config = genai.types.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens
            )
            response = await self.google_client.generate_content_async(
                f"{system_prompt}\n\nUser: {user_prompt}",
                generation_config=generation_config
            )
            result = response.text
        else:
            raise ValueError(f"Unknown provider: {provider}")

        logger.info("llm_generation_completed", provider=provider.value, response_length=len(result))
        return result

    def get_available_providers(self) -> List[LLMProvider]:
        providers = []
        if self.openai_client:
            providers.append(LLMProvider.OPENAI)
        if self.google_client:
            providers.append(LLMProvider.GOOGLE)
        if self.anthropic_client:
            providers.append(LLMProvider.ANTHROPIC)
        return providers

    @staticmethod
    def parse_json_response(response: str) -> Dict[str, Any]:
        """Parse a JSON object from a model response, tolerating surrounding prose or code fences."""
        try:
            parsed = json.loads(response.strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        start = response.find("{")
        while start != -1:
            depth = 0
            for i, char in enumerate(response[start:], start):
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        try:
                            parsed = json.loads(response[start:i + 1])
                        except json.JSONDecodeError:
                            break
                        if isinstance(parsed, dict):
                            return parsed
                        break
            start = response.find("{", start + 1)

        raise ContentGenerationError("Model response did not contain a JSON object")
