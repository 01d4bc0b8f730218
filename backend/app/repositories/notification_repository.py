"""Repository for Notification operations.

Every read and mutation is scoped by recipient_id: asking for someone
else's notification behaves exactly like asking for a missing one.
"""

import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.repositories.base import store_errors


class NotificationRepository:
    """Stateless repository for notifications.

    All methods are static; no instance state. Satisfies NotificationStore.
    """

    @staticmethod
    async def insert(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        title: str,
        message: str,
        kind: str,
        actor_id: uuid.UUID | None = None,
        related_post_id: int | None = None,
        related_comment_id: int | None = None,
        related_reply_id: int | None = None,
    ) -> Notification:
        """Store a new unread notification.

        Args:
            db: Async database session.
            recipient_id: User who will see it.
            title: Headline.
            message: Body text.
            kind: NotificationKind value.
            actor_id: Triggering user, None for system notifications.
            related_post_id: Optional post reference.
            related_comment_id: Optional comment reference.
            related_reply_id: Optional reply reference.

        Returns:
            Created Notification with server timestamps populated.
        """
        notification = Notification(
            recipient_id=recipient_id,
            title=title,
            message=message,
            kind=kind,
            is_read=False,
            actor_id=actor_id,
            related_post_id=related_post_id,
            related_comment_id=related_comment_id,
            related_reply_id=related_reply_id,
        )
        with store_errors("notification insert"):
            db.add(notification)
            await db.flush()
            await db.refresh(notification)
        return notification

    @staticmethod
    async def list_by_recipient(
        db: AsyncSession, recipient_id: uuid.UUID
    ) -> list[Notification]:
        """List a recipient's notifications, newest first."""
        stmt = (
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        with store_errors("notification list"):
            result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_unread(db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Count a recipient's unread notifications."""
        stmt = select(func.count()).where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        with store_errors("notification count"):
            result = await db.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> bool:
        """Mark one notification read.

        Marking an already-read notification succeeds (Read is terminal for
        this transition).

        Returns:
            True if the notification exists and belongs to recipient.
        """
        stmt = (
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
            )
            .values(is_read=True, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        with store_errors("notification update"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def mark_all_read(db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Mark all unread notifications of a recipient read.

        Returns:
            Number of notifications that changed state.
        """
        stmt = (
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        with store_errors("notification update"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_by_id(
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> bool:
        """Delete one notification owned by recipient."""
        stmt = delete(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == recipient_id,
        )
        with store_errors("notification delete"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete_by_recipient(db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Delete every notification owned by recipient."""
        stmt = delete(Notification).where(Notification.recipient_id == recipient_id)
        with store_errors("notification delete"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
