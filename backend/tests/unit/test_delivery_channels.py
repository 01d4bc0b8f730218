"""Tests for the realtime and email delivery channels."""

import asyncio
from unittest.mock import AsyncMock

from app.core.email_templates import RenderedEmail
from app.services.delivery_channels import (
    DeliveryMessage,
    DeliveryOutcome,
    DeliveryStatus,
    EmailChannel,
    RealtimeChannel,
)
from tests.fakes import RecordingEmailTransport, RecordingPublisher, make_user

_EMAIL = RenderedEmail(subject="Subject", html="<p>Body</p>", text="Body")


class SlowPublisher:
    async def publish_to_user(self, user_id, topic, payload) -> int:
        await asyncio.sleep(10)
        return 1

    async def publish_broadcast(self, topic, payload) -> int:
        return 0


class TestDeliveryOutcome:
    def test_delivered(self) -> None:
        outcome = DeliveryOutcome.delivered("email")
        assert outcome.ok
        assert outcome.reason is None

    def test_failed(self) -> None:
        outcome = DeliveryOutcome.failed("email", "boom")
        assert not outcome.ok
        assert outcome.status is DeliveryStatus.FAILED
        assert outcome.reason == "boom"


class TestRealtimeChannel:
    async def test_pushes_payload_to_recipient(self) -> None:
        user = make_user()
        publisher = RecordingPublisher(online=[user.id])

        outcome = await RealtimeChannel(publisher).deliver(
            user, DeliveryMessage(payload={"id": "n1"})
        )

        assert outcome.ok
        assert publisher.pushed == [(user.id, "notifications", {"id": "n1"})]

    async def test_offline_recipient_counts_as_delivered(self) -> None:
        outcome = await RealtimeChannel(RecordingPublisher()).deliver(
            make_user(), DeliveryMessage(payload={})
        )
        assert outcome.ok

    async def test_publisher_error_becomes_failed_outcome(self) -> None:
        publisher = AsyncMock()
        publisher.publish_to_user.side_effect = ConnectionError("socket gone")

        outcome = await RealtimeChannel(publisher).deliver(
            make_user(), DeliveryMessage(payload={})
        )

        assert not outcome.ok
        assert "ConnectionError" in outcome.reason

    async def test_timeout_becomes_failed_outcome(self) -> None:
        outcome = await RealtimeChannel(SlowPublisher(), timeout=0.01).deliver(
            make_user(), DeliveryMessage(payload={})
        )

        assert not outcome.ok
        assert "timed out" in outcome.reason


class TestEmailChannel:
    async def test_sends_rendered_email_to_recipient(self) -> None:
        transport = RecordingEmailTransport()
        user = make_user("admin@cuet.ac.bd", full_name="Admin")

        outcome = await EmailChannel(transport).deliver(
            user, DeliveryMessage(payload={}, email=_EMAIL)
        )

        assert outcome.ok
        [sent] = transport.sent
        assert sent["to_address"] == "admin@cuet.ac.bd"
        assert sent["to_name"] == "Admin"
        assert sent["subject"] == "Subject"
        assert sent["text_body"] == "Body"

    async def test_rejected_send_is_failed(self) -> None:
        outcome = await EmailChannel(RecordingEmailTransport(result=False)).deliver(
            make_user(), DeliveryMessage(payload={}, email=_EMAIL)
        )

        assert not outcome.ok
        assert outcome.reason == "transport rejected the message"

    async def test_missing_content_is_failed_without_sending(self) -> None:
        transport = RecordingEmailTransport()

        outcome = await EmailChannel(transport).deliver(
            make_user(), DeliveryMessage(payload={})
        )

        assert not outcome.ok
        assert transport.sent == []

    async def test_missing_address_is_failed(self) -> None:
        user = make_user()
        user.email = ""

        outcome = await EmailChannel(RecordingEmailTransport()).deliver(
            user, DeliveryMessage(payload={}, email=_EMAIL)
        )

        assert not outcome.ok

    async def test_transport_exception_is_failed(self) -> None:
        transport = AsyncMock()
        transport.send.side_effect = RuntimeError("provider down")

        outcome = await EmailChannel(transport).deliver(
            make_user(), DeliveryMessage(payload={}, email=_EMAIL)
        )

        assert not outcome.ok
        assert "provider down" in outcome.reason
