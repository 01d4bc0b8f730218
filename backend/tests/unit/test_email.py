"""Tests for the email transports, transport selection and templates."""

import json

import httpx
import pytest
from pydantic import SecretStr

from app.core import email_templates
from app.core.config import settings
from app.core.email import (
    BREVO_API_URL,
    BrevoEmailTransport,
    LoggingEmailTransport,
    get_email_transport,
)


def _transport(handler) -> BrevoEmailTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BrevoEmailTransport(
        api_key="test-key",
        sender_email="noreply@cuetsphere.com",
        sender_name="CUET Sphere",
        client=client,
    )


async def _send(transport: BrevoEmailTransport, **overrides) -> bool:
    kwargs = {
        "to_address": "student@cuet.ac.bd",
        "to_name": "Student",
        "subject": "Hello",
        "html_body": "<p>Hi</p>",
        "text_body": "Hi",
    }
    kwargs.update(overrides)
    return await transport.send(**kwargs)


class TestBrevoEmailTransport:
    async def test_posts_payload_with_api_key(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={"messageId": "abc"})

        assert await _send(_transport(handler)) is True

        [request] = captured
        assert str(request.url) == BREVO_API_URL
        assert request.headers["api-key"] == "test-key"
        body = json.loads(request.content)
        assert body == {
            "sender": {"name": "CUET Sphere", "email": "noreply@cuetsphere.com"},
            "to": [{"email": "student@cuet.ac.bd", "name": "Student"}],
            "subject": "Hello",
            "htmlContent": "<p>Hi</p>",
            "textContent": "Hi",
        }

    async def test_omits_recipient_name_when_missing(self) -> None:
        captured: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(201)

        await _send(_transport(handler), to_name=None)

        assert captured[0]["to"] == [{"email": "student@cuet.ac.bd"}]

    @pytest.mark.parametrize("status", [400, 401, 500, 503])
    async def test_error_status_returns_false(self, status: int) -> None:
        transport = _transport(lambda request: httpx.Response(status))
        assert await _send(transport) is False

    async def test_network_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert await _send(_transport(handler)) is False


class TestLoggingEmailTransport:
    async def test_reports_success(self) -> None:
        assert await LoggingEmailTransport().send(
            to_address="a@x.com", subject="s", html_body="h", text_body="t"
        )


class TestTransportSelection:
    def test_logging_transport_without_key(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "brevo_api_key", SecretStr(""))
        assert isinstance(get_email_transport(), LoggingEmailTransport)

    def test_brevo_transport_with_key(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "brevo_api_key", SecretStr("xkeysib-123"))
        assert isinstance(get_email_transport(), BrevoEmailTransport)

    def test_transport_is_cached(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "brevo_api_key", SecretStr(""))
        assert get_email_transport() is get_email_transport()


class TestTemplates:
    def test_password_reset_code_contains_code_and_ttl(self) -> None:
        rendered = email_templates.password_reset_code("482913", 10)

        assert "Password Reset" in rendered.subject
        assert "482913" in rendered.html
        assert "482913" in rendered.text
        assert "10 minutes" in rendered.text

    def test_signup_code_subject(self) -> None:
        rendered = email_templates.signup_code("123456", 10)
        assert rendered.subject.startswith("Verify your email")
        assert "123456" in rendered.text

    def test_admin_alert_escapes_user_text(self) -> None:
        rendered = email_templates.new_post_admin_alert(
            admin_name="Admin",
            author_name="<b>Mallory</b>",
            post_title="<script>alert(1)</script>",
        )

        assert "<script>" not in rendered.html
        assert "&lt;script&gt;" in rendered.html
        assert "&lt;b&gt;Mallory&lt;/b&gt;" in rendered.html
        assert "<script>alert(1)</script>" in rendered.text

    def test_admin_alert_greets_admin_without_name(self) -> None:
        rendered = email_templates.new_post_admin_alert(
            admin_name=None, author_name="Rafi", post_title="Notes"
        )
        assert "Hello Admin!" in rendered.text

    def test_admin_alert_previews_post_content(self) -> None:
        rendered = email_templates.new_post_admin_alert(
            admin_name="Admin",
            author_name="Rafi",
            post_title="Notes",
            post_content="<i>" + "n" * 250,
        )

        preview = ("<i>" + "n" * 250)[:200] + "..."
        assert preview in rendered.text
        assert "&lt;i&gt;" in rendered.html
        assert "<i>" not in rendered.html

    def test_admin_alert_without_content_has_no_preview(self) -> None:
        rendered = email_templates.new_post_admin_alert(
            admin_name="Admin", author_name="Rafi", post_title="Notes"
        )
        assert '"Notes"\n\nLog in to review the post.' in rendered.text

    def test_welcome_greets_by_name(self) -> None:
        rendered = email_templates.welcome("<Nadia>")

        assert rendered.subject == "Welcome to CUET Sphere!"
        assert "Hello <Nadia>!" in rendered.text
        assert "Hello &lt;Nadia&gt;!" in rendered.html
        assert "Access and share academic resources" in rendered.text

    def test_welcome_without_name(self) -> None:
        assert "Hello there!" in email_templates.welcome(None).text
