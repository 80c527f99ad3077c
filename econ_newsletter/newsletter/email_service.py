"""
Newsletter delivery

Recipients are sent in provider-sized batches. A failing batch is counted
into ``failed`` and the remaining batches still go out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import httpx
import markdown2
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from ..exceptions import EmailDeliveryError
from .schemas import DailyDigest, DeliveryResult, NewsletterContent

logger = structlog.get_logger(__name__)


@dataclass
class EmailMessage:
    subject: str
    text: str
    html: str


class EmailProvider(ABC):

    @abstractmethod
    async def send_batch(self, message: EmailMessage, recipients: List[str]) -> None:
        """Deliver one message to one batch of recipients; raise on failure."""
        pass


class ResendEmailProvider(EmailProvider):

    API_URL = "https://api.resend.com/emails/batch"

    def __init__(self, api_key: str, from_address: str, timeout_seconds: float = 15.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.from_address = from_address
        self.timeout_seconds = timeout_seconds
        self.client = client

    async def send_batch(self, message: EmailMessage, recipients: List[str]) -> None:
        payload = [
            {
                "from": self.from_address,
                "to": [recipient],
                "subject": message.subject,
                "html": message.html,
                "text": message.text,
            }
            for recipient in recipients
        ]
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self.client is not None:
                response = await self.client.post(self.API_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email provider request failed: {e}") from e

        if response.status_code >= 400:
            raise EmailDeliveryError(f"Email provider returned HTTP {response.status_code}: {response.text[:200]}")


class LoggingEmailProvider(EmailProvider):
    """Used when no provider key is configured; records what would have been sent."""

    async def send_batch(self, message: EmailMessage, recipients: List[str]) -> None:
        logger.info("email_batch_logged", subject=message.subject, recipients=len(recipients))


# ============================================================================
# Rendering
# ============================================================================

TEMPLATE_DIR = Path(__file__).parent / "templates"


class EmailRenderer:
    """Renders newsletters and digests into HTML and plain-text bodies through Jinja2."""

    def __init__(self, template_dir: Union[str, Path] = TEMPLATE_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default_for_string=True),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["markdown"] = self._markdown_filter

    def render_newsletter(self, content: NewsletterContent) -> EmailMessage:
        return EmailMessage(
            subject=content.title,
            text=self.env.get_template("newsletter.txt.j2").render(content=content),
            html=self.env.get_template("newsletter.html.j2").render(title=content.title, content=content),
        )

    def render_digest(self, digest: DailyDigest) -> EmailMessage:
        return EmailMessage(
            subject=digest.title,
            text=self.env.get_template("digest.txt.j2").render(digest=digest),
            html=self.env.get_template("digest.html.j2").render(title=digest.title, digest=digest),
        )

    def render(self, content: Union[NewsletterContent, DailyDigest]) -> EmailMessage:
        if isinstance(content, DailyDigest):
            return self.render_digest(content)
        return self.render_newsletter(content)

    @staticmethod
    def _markdown_filter(text: Optional[str]) -> Markup:
        if not text:
            return Markup("")
        # Raw HTML in generated content is escaped, markdown syntax is rendered
        return Markup(markdown2.markdown(text, extras=["fenced-code-blocks"], safe_mode="escape"))


class EmailSender:

    def __init__(self, provider: EmailProvider, batch_size: int = 100, renderer: Optional[EmailRenderer] = None):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.provider = provider
        self.batch_size = batch_size
        self.renderer = renderer or EmailRenderer()

    async def send(self, content: Union[NewsletterContent, DailyDigest], recipients: List[str]) -> DeliveryResult:
        message = self.renderer.render(content)
        result = DeliveryResult()

        for start in range(0, len(recipients), self.batch_size):
            batch = recipients[start:start + self.batch_size]
            try:
                await self.provider.send_batch(message, batch)
                result.sent += len(batch)
            except Exception as e:
                result.failed += len(batch)
                logger.error("email_batch_failed", batch_start=start, batch_size=len(batch), error=str(e))

        logger.info("email_delivery_completed", subject=message.subject, sent=result.sent, failed=result.failed)
        return result
