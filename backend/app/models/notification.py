"""Notification model - in-app notifications with read state.

Related entity ids are informational only; no foreign keys are enforced
because posts, comments and replies live outside this service.
"""

import uuid
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")


class NotificationKind(str, Enum):
    """Kinds of notification.

    Values:
        POST_COMMENT: Someone commented on the recipient's post.
        COMMENT_REPLY: Someone replied to the recipient's comment.
        NEW_POST_ADMIN: A post was created; sent to every admin (broadcast class).
        WELCOME: System greeting for a newly registered user.
    """

    POST_COMMENT = "post_comment"
    COMMENT_REPLY = "comment_reply"
    NEW_POST_ADMIN = "new_post_admin"
    WELCOME = "welcome"


# Kinds addressed to a role rather than one owner; exempt from self-suppression
# and escalated to email.
ADMIN_BROADCAST_KINDS: frozenset[NotificationKind] = frozenset(
    {NotificationKind.NEW_POST_ADMIN}
)


class Notification(Base, TimestampMixin):
    """Persisted notification for one recipient.

    Attributes:
        id: UUID primary key.
        recipient_id: User who sees the notification.
        title: Short headline.
        message: Body text.
        kind: NotificationKind value.
        is_read: False until markRead / markAllRead.
        related_post_id: Optional post reference.
        related_comment_id: Optional comment reference.
        related_reply_id: Optional reply reference.
        actor_id: User who triggered it. NULL for system-generated.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "kind IN ('post_comment', 'comment_reply', 'new_post_admin', 'welcome')",
            name="ck_notifications_kind",
        ),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
        default=uuid.uuid4,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    related_post_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    related_comment_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    related_reply_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )
