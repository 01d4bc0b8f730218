"""Notification dispatch and read-side operations.

Dispatch runs in two phases around the caller's commit:

dispatch():
1. Suppress self-notification (actor == recipient), except for
   admin-broadcast kinds, which are addressed to a role.
2. Persist the notification. This is the only step whose failure reaches
   the caller (StoreUnavailableError). The result carries the pending
   fan-out; nothing has been delivered yet.

deliver(), once the transaction holding the row has committed:
3. Fan out: realtime for every kind, email additionally for
   admin-broadcast kinds. Each channel is attempted independently; a
   failure is logged and never touches the stored row.

A transaction that never commits therefore never delivers.

Read-side operations are scoped to the recipient; another user's
notification behaves as missing.
"""

import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email_templates import RenderedEmail
from app.core.errors import NotFoundError
from app.models.notification import (
    ADMIN_BROADCAST_KINDS,
    Notification,
    NotificationKind,
)
from app.models.user import User
from app.repositories.base import NotificationStore, UserDirectory
from app.repositories.notification_repository import NotificationRepository
from app.repositories.user_repository import UserRepository
from app.schemas.notification import NotificationRead
from app.services.delivery_channels import (
    DeliveryChannel,
    DeliveryMessage,
    DeliveryOutcome,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class NotificationContent:
    """Kind-specific fields supplied by the producer.

    Attributes:
        title: Headline.
        message: Body text.
        related_post_id: Optional post reference.
        related_comment_id: Optional comment reference.
        related_reply_id: Optional reply reference.
        email: Rendered email for kinds that escalate to email.
    """

    title: str
    message: str
    related_post_id: int | None = None
    related_comment_id: int | None = None
    related_reply_id: int | None = None
    email: RenderedEmail | None = None


@dataclass(frozen=True)
class PendingDelivery:
    """Fan-out prepared by dispatch(), performed by deliver()."""

    recipient: User
    message: DeliveryMessage
    channels: tuple[DeliveryChannel, ...]


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatch.

    Attributes:
        notification: Persisted row, or None when suppressed.
        pending: Fan-out still to run; None once delivered or when suppressed.
        outcomes: One entry per channel attempted, in attempt order.
    """

    notification: Notification | None
    pending: PendingDelivery | None = None
    outcomes: tuple[DeliveryOutcome, ...] = field(default=())

    @property
    def suppressed(self) -> bool:
        return self.notification is None


class NotificationDispatcher:
    """Persists notifications and fans them out to delivery channels.

    Args:
        realtime: Channel attempted for every kind.
        email: Channel attempted for admin-broadcast kinds.
        store: Notification persistence.
        users: Actor name lookup for the read side.
    """

    def __init__(
        self,
        *,
        realtime: DeliveryChannel,
        email: DeliveryChannel,
        store: NotificationStore = NotificationRepository,
        users: UserDirectory = UserRepository,
    ) -> None:
        self._realtime = realtime
        self._email = email
        self._store = store
        self._users = users

    def _channels_for(self, kind: NotificationKind) -> tuple[DeliveryChannel, ...]:
        if kind in ADMIN_BROADCAST_KINDS:
            return (self._realtime, self._email)
        return (self._realtime,)

    async def _attempt(
        self,
        channel: DeliveryChannel,
        recipient: User,
        message: DeliveryMessage,
        notification_id: uuid.UUID,
    ) -> DeliveryOutcome:
        try:
            outcome = await channel.deliver(recipient, message)
        except Exception as exc:  # noqa: BLE001
            outcome = DeliveryOutcome.failed(
                channel.name, f"{type(exc).__name__}: {exc}"
            )
        if not outcome.ok:
            logger.warning(
                "notification_channel_failed",
                channel=outcome.channel,
                reason=outcome.reason,
                notification_id=str(notification_id),
                recipient_id=str(recipient.id),
            )
        return outcome

    async def dispatch(
        self,
        db: AsyncSession,
        kind: NotificationKind,
        recipient: User,
        actor: User | None,
        content: NotificationContent,
    ) -> DispatchResult:
        """Persist a notification for recipient and prepare its fan-out.

        The caller commits, then passes the result to deliver().

        Args:
            db: Async database session.
            kind: Notification kind.
            recipient: User who receives it.
            actor: User who triggered it, None for system notifications.
            content: Title, message, related ids and optional email.

        Returns:
            DispatchResult with ``pending`` set, or a suppressed result.

        Raises:
            StoreUnavailableError: If persisting the notification fails.
        """
        if (
            actor is not None
            and actor.id == recipient.id
            and kind not in ADMIN_BROADCAST_KINDS
        ):
            logger.debug(
                "notification_suppressed", kind=kind.value, user_id=str(actor.id)
            )
            return DispatchResult(notification=None)

        notification = await self._store.insert(
            db,
            recipient_id=recipient.id,
            title=content.title,
            message=content.message,
            kind=kind.value,
            actor_id=actor.id if actor is not None else None,
            related_post_id=content.related_post_id,
            related_comment_id=content.related_comment_id,
            related_reply_id=content.related_reply_id,
        )

        view = NotificationRead.from_model(
            notification, actor_name=actor.full_name if actor is not None else None
        )
        message = DeliveryMessage(
            payload=view.model_dump(mode="json"), email=content.email
        )
        return DispatchResult(
            notification=notification,
            pending=PendingDelivery(
                recipient=recipient,
                message=message,
                channels=self._channels_for(kind),
            ),
        )

    async def deliver(self, result: DispatchResult) -> DispatchResult:
        """Run the fan-out of a committed notification.

        Suppressed and already delivered results come back unchanged, so
        calling this twice never delivers twice. Never raises for channel
        failures.
        """
        pending = result.pending
        if pending is None or result.notification is None:
            return result
        notification = result.notification

        outcomes = []
        for channel in pending.channels:
            outcomes.append(
                await self._attempt(
                    channel, pending.recipient, pending.message, notification.id
                )
            )

        logger.info(
            "notification_dispatched",
            kind=notification.kind,
            notification_id=str(notification.id),
            delivered=[o.channel for o in outcomes if o.ok],
        )
        return DispatchResult(notification=notification, outcomes=tuple(outcomes))

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_for_user(
        self, db: AsyncSession, recipient_id: uuid.UUID
    ) -> list[NotificationRead]:
        """Recipient's notifications, newest first, with actor names resolved."""
        rows = await self._store.list_by_recipient(db, recipient_id)
        actor_ids = {row.actor_id for row in rows if row.actor_id is not None}
        names = await self._users.get_names(db, actor_ids)
        return [
            NotificationRead.from_model(
                row,
                actor_name=names.get(row.actor_id) if row.actor_id else None,
            )
            for row in rows
        ]

    async def unread_count(self, db: AsyncSession, recipient_id: uuid.UUID) -> int:
        return await self._store.count_unread(db, recipient_id)

    async def mark_read(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> None:
        """Mark one notification read.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else.
        """
        if not await self._store.mark_read(db, notification_id, recipient_id):
            raise NotFoundError("Notification", str(notification_id))

    async def mark_all_read(self, db: AsyncSession, recipient_id: uuid.UUID) -> int:
        return await self._store.mark_all_read(db, recipient_id)

    async def delete(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> None:
        """Delete one notification.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else.
        """
        if not await self._store.delete_by_id(db, notification_id, recipient_id):
            raise NotFoundError("Notification", str(notification_id))

    async def delete_all(self, db: AsyncSession, recipient_id: uuid.UUID) -> int:
        return await self._store.delete_by_recipient(db, recipient_id)
