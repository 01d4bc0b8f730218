"""Delivery channels for notification fan-out.

A channel is anything with a ``name`` and an async
``deliver(recipient, message) -> DeliveryOutcome``. Channels never raise
for delivery problems: transport errors, timeouts and rejections come back
as a failed outcome. Nothing is retried or queued.

Channels:
- RealtimeChannel: push to the recipient's open WebSocket sessions. No
  open session means nothing to do, which counts as delivered.
- EmailChannel: send through the configured EmailTransport. When email is
  unconfigured the transport is the logging stand-in and reports success.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import structlog

from app.core.email import EmailTransport
from app.core.email_templates import RenderedEmail
from app.core.errors import ChannelFailedError
from app.core.realtime import USER_NOTIFICATIONS_TOPIC, RealtimePublisher
from app.models.user import User

logger = structlog.get_logger()


class DeliveryStatus(str, Enum):
    """Result of one channel attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """What happened when a channel tried to deliver.

    Attributes:
        channel: Channel name.
        status: DELIVERED or FAILED.
        reason: Why it failed. None when delivered.
    """

    channel: str
    status: DeliveryStatus
    reason: str | None = None

    @classmethod
    def delivered(cls, channel: str) -> "DeliveryOutcome":
        return cls(channel=channel, status=DeliveryStatus.DELIVERED)

    @classmethod
    def failed(cls, channel: str, reason: str) -> "DeliveryOutcome":
        return cls(channel=channel, status=DeliveryStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


@dataclass(frozen=True)
class DeliveryMessage:
    """Content handed to every channel for one notification.

    Attributes:
        payload: JSON-ready notification body (realtime).
        email: Rendered email, present only when the kind escalates to email.
    """

    payload: dict[str, Any]
    email: RenderedEmail | None = None


class DeliveryChannel(Protocol):
    """Capability shared by all channels."""

    name: str

    async def deliver(
        self, recipient: User, message: DeliveryMessage
    ) -> DeliveryOutcome:
        ...


class RealtimeChannel:
    """Pushes the notification payload to the recipient's open sockets.

    Args:
        publisher: Realtime transport.
        timeout: Seconds before the push counts as failed.
        topic: Topic name sent with every message.
    """

    name = "realtime"

    def __init__(
        self,
        publisher: RealtimePublisher,
        *,
        timeout: float = 0.5,
        topic: str = USER_NOTIFICATIONS_TOPIC,
    ) -> None:
        self._publisher = publisher
        self._timeout = timeout
        self._topic = topic

    async def deliver(
        self, recipient: User, message: DeliveryMessage
    ) -> DeliveryOutcome:
        try:
            reached = await asyncio.wait_for(
                self._publisher.publish_to_user(
                    recipient.id, self._topic, message.payload
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            return DeliveryOutcome.failed(
                self.name, f"timed out after {self._timeout}s"
            )
        except Exception as exc:  # noqa: BLE001
            return DeliveryOutcome.failed(self.name, f"{type(exc).__name__}: {exc}")

        logger.debug("realtime_push", recipient_id=str(recipient.id), sockets=reached)
        return DeliveryOutcome.delivered(self.name)


class EmailChannel:
    """Sends the rendered email to the recipient's address.

    Args:
        transport: Email provider (or the logging stand-in).
        timeout: Seconds before the send counts as failed.
    """

    name = "email"

    def __init__(self, transport: EmailTransport, *, timeout: float = 5.0) -> None:
        self._transport = transport
        self._timeout = timeout

    async def _send(self, recipient: User, email: RenderedEmail) -> None:
        accepted = await asyncio.wait_for(
            self._transport.send(
                to_address=recipient.email,
                to_name=recipient.full_name,
                subject=email.subject,
                html_body=email.html,
                text_body=email.text,
            ),
            timeout=self._timeout,
        )
        if not accepted:
            raise ChannelFailedError("transport rejected the message")

    async def deliver(
        self, recipient: User, message: DeliveryMessage
    ) -> DeliveryOutcome:
        if message.email is None:
            return DeliveryOutcome.failed(self.name, "no email content")
        if not recipient.email:
            return DeliveryOutcome.failed(self.name, "recipient has no email address")

        try:
            await self._send(recipient, message.email)
        except TimeoutError:
            return DeliveryOutcome.failed(
                self.name, f"timed out after {self._timeout}s"
            )
        except ChannelFailedError as exc:
            return DeliveryOutcome.failed(self.name, str(exc))
        except Exception as exc:  # noqa: BLE001
            return DeliveryOutcome.failed(self.name, f"{type(exc).__name__}: {exc}")
        return DeliveryOutcome.delivered(self.name)
