"""Email sending via the Brevo transactional API.

Transports implement ``send(...) -> bool`` and never raise for delivery
problems: a False return is the only failure signal. With no API key
configured the LoggingEmailTransport stands in and reports success, so
the rest of the system behaves the same with or without email.
"""

import logging
from typing import Protocol

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


class EmailTransport(Protocol):
    """Outbound email provider."""

    async def send(
        self,
        *,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        to_name: str | None = None,
    ) -> bool:
        """Send one email. True if the provider accepted it."""
        ...


class BrevoEmailTransport:
    """Posts transactional emails to Brevo.

    Args:
        api_key: Brevo API key.
        sender_email: From address.
        sender_name: From display name.
        timeout: Request timeout in seconds.
        client: Shared AsyncClient. A short-lived client is opened per send
            when omitted.
    """

    def __init__(
        self,
        *,
        api_key: str,
        sender_email: str,
        sender_name: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = {"name": sender_name, "email": sender_email}
        self._timeout = timeout
        self._client = client

    def _payload(
        self,
        *,
        to_address: str,
        to_name: str | None,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> dict:
        recipient = {"email": to_address}
        if to_name:
            recipient["name"] = to_name
        return {
            "sender": self._sender,
            "to": [recipient],
            "subject": subject,
            "htmlContent": html_body,
            "textContent": text_body,
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            BREVO_API_URL,
            headers={
                "api-key": self._api_key,
                "accept": "application/json",
            },
            json=payload,
            timeout=self._timeout,
        )

    async def send(
        self,
        *,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        to_name: str | None = None,
    ) -> bool:
        """Send one email through Brevo.

        Returns:
            True on a 2xx response, False on any HTTP or network error.
        """
        payload = self._payload(
            to_address=to_address,
            to_name=to_name,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
        )
        try:
            if self._client is not None:
                resp = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await self._post(client, payload)
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to send email %r", subject, exc_info=True)
            return False
        return True


class LoggingEmailTransport:
    """Stand-in used when no provider is configured. Always succeeds."""

    async def send(
        self,
        *,
        to_address: str,
        subject: str,
        html_body: str,  # noqa: ARG002
        text_body: str,  # noqa: ARG002
        to_name: str | None = None,  # noqa: ARG002
    ) -> bool:
        logger.info("Email not configured; skipping %r", subject)
        logger.debug("Skipped email to=%s", to_address)
        return True


_transport: EmailTransport | None = None


def get_email_transport() -> EmailTransport:
    """Return the process-wide email transport, creating it on first use.

    Brevo when an API key is configured, the logging stand-in otherwise.
    """
    global _transport
    if _transport is None:
        if settings.email_configured:
            _transport = BrevoEmailTransport(
                api_key=settings.brevo_api_key.get_secret_value(),
                sender_email=settings.email_from,
                sender_name=settings.email_from_name,
                timeout=settings.email_timeout_seconds,
            )
        else:
            _transport = LoggingEmailTransport()
    return _transport


def reset_email_transport() -> None:
    """Drop the cached transport (tests, settings reload)."""
    global _transport
    _transport = None
