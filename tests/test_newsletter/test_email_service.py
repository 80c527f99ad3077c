import json
from datetime import date

import httpx
import pytest

from econ_newsletter.exceptions import EmailDeliveryError
from econ_newsletter.newsletter.email_service import (
    EmailMessage,
    EmailProvider,
    EmailRenderer,
    EmailSender,
    ResendEmailProvider,
)
from econ_newsletter.newsletter.schemas import (
    DailyDigest,
    NewsletterContent,
    NewsletterKind,
    NewsletterSource,
    TopStory,
)
from econ_newsletter.newsletter.subscribers import StaticSubscriberProvider


class CountingProvider(EmailProvider):
    def __init__(self, fail_on=()):
        self.batches = []
        self.fail_on = set(fail_on)

    async def send_batch(self, message, recipients):
        self.batches.append(list(recipients))
        if len(self.batches) - 1 in self.fail_on:
            raise EmailDeliveryError("rate limited")


class CaptureProvider(EmailProvider):
    def __init__(self):
        self.messages = []

    async def send_batch(self, message, recipients):
        self.messages.append(message)


@pytest.fixture
def digest():
    return DailyDigest(
        title="Daily Economic Digest - January 10, 2024",
        summary="Rates & <risk> in focus",
        top_stories=[TopStory(headline="Fed holds", summary="No change", category="policy",
                              url="https://a.example.com/fed")],
        market_highlights=["Stocks up"],
    )


@pytest.fixture
def newsletter():
    return NewsletterContent(
        title="Weekly Economic Review - January 12, 2024",
        summary="A calmer week.",
        content="First paragraph.\n\nSecond paragraph.",
        kind=NewsletterKind.WEEKLY_REVIEW,
        publish_date=date(2024, 1, 12),
        sources=[NewsletterSource(title="Jobs report", url="https://a.example.com/jobs")],
    )


class TestEmailSender:
    @pytest.mark.asyncio
    async def test_sends_in_batches(self, digest):
        provider = CountingProvider()
        recipients = [f"user{i}@example.com" for i in range(250)]

        result = await EmailSender(provider, batch_size=100).send(digest, recipients)

        assert [len(batch) for batch in provider.batches] == [100, 100, 50]
        assert (result.sent, result.failed) == (250, 0)

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_stop_the_rest(self, digest):
        provider = CountingProvider(fail_on={1})
        recipients = [f"user{i}@example.com" for i in range(25)]

        result = await EmailSender(provider, batch_size=10).send(digest, recipients)

        assert len(provider.batches) == 3
        assert (result.sent, result.failed) == (15, 10)

    @pytest.mark.asyncio
    async def test_no_recipients(self, newsletter):
        provider = CountingProvider()
        result = await EmailSender(provider).send(newsletter, [])

        assert provider.batches == []
        assert (result.sent, result.failed) == (0, 0)

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            EmailSender(CountingProvider(), batch_size=0)


class TestEmailRenderer:
    def test_digest_html_is_escaped(self, digest):
        message = EmailRenderer().render_digest(digest)

        assert message.subject == digest.title
        assert "Rates &amp; &lt;risk&gt; in focus" in message.html
        assert '<a href="https://a.example.com/fed">Fed holds</a>' in message.html
        assert "<h3>Market highlights</h3>" in message.html
        assert "Economic indicators" not in message.html
        assert "1. Fed holds [policy]" in message.text
        assert "   https://a.example.com/fed" in message.text
        assert "- Stocks up" in message.text
        assert "&amp;" not in message.text

    def test_newsletter_paragraphs_and_sources(self, newsletter):
        message = EmailRenderer().render_newsletter(newsletter)

        assert "<p>First paragraph.</p>" in message.html
        assert "<p>Second paragraph.</p>" in message.html
        assert '<a href="https://a.example.com/jobs">Jobs report</a>' in message.html
        assert "- Jobs report: https://a.example.com/jobs" in message.text
        assert message.text.startswith("Weekly Economic Review - January 12, 2024")

    def test_newsletter_markdown_is_rendered(self, newsletter):
        newsletter.content = "# Markets\n\n**Fed** holds rates <script>alert(1)</script>\n\n- Stocks up\n- Bonds down"

        message = EmailRenderer().render(newsletter)

        assert "<h1>Markets</h1>" in message.html
        assert "<strong>Fed</strong>" in message.html
        assert "<li>Stocks up</li>" in message.html
        assert "<script>" not in message.html
        assert "**Fed** holds rates" in message.text

    @pytest.mark.asyncio
    async def test_sender_sends_rendered_message(self, newsletter):
        provider = CaptureProvider()

        await EmailSender(provider).send(newsletter, ["a@example.com"])

        assert provider.messages[0].subject == newsletter.title
        assert "<p>First paragraph.</p>" in provider.messages[0].html


class TestResendEmailProvider:
    @pytest.mark.asyncio
    async def test_posts_one_email_per_recipient(self):
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, json={"data": []})

        message = EmailMessage(subject="Hello", text="Body", html="<p>Body</p>")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            provider = ResendEmailProvider("re_key", "Economic Newsletter <news@example.com>", client=client)
            await provider.send_batch(message, ["a@example.com", "b@example.com"])

        request = captured[0]
        payload = json.loads(request.content)
        assert str(request.url) == ResendEmailProvider.API_URL
        assert request.headers["Authorization"] == "Bearer re_key"
        assert [email["to"] for email in payload] == [["a@example.com"], ["b@example.com"]]
        assert payload[0]["subject"] == "Hello"

    @pytest.mark.asyncio
    async def test_error_response_raises(self):
        message = EmailMessage(subject="Hello", text="Body", html="<p>Body</p>")
        transport = httpx.MockTransport(lambda request: httpx.Response(422, text="invalid from"))
        async with httpx.AsyncClient(transport=transport) as client:
            provider = ResendEmailProvider("re_key", "news@example.com", client=client)
            with pytest.raises(EmailDeliveryError, match="422"):
                await provider.send_batch(message, ["a@example.com"])


class TestStaticSubscriberProvider:
    @pytest.mark.asyncio
    async def test_normalizes_and_dedupes(self):
        provider = StaticSubscriberProvider([" A@Example.com", "a@example.com", "", "b@example.com"])

        subscribers = await provider.get_confirmed_subscribers()

        assert [subscriber.email for subscriber in subscribers] == ["a@example.com", "b@example.com"]

    @pytest.mark.asyncio
    async def test_limit(self):
        provider = StaticSubscriberProvider(["a@example.com", "b@example.com", "c@example.com"], limit=2)

        assert len(await provider.get_confirmed_subscribers()) == 2
