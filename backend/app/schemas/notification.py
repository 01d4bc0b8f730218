"""Notification response schema.

The same shape is returned by the REST endpoints and pushed over the
realtime channel, so clients parse one format.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.notification import Notification, NotificationKind


class NotificationRead(BaseModel):
    """A notification as seen by its recipient."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    message: str
    kind: NotificationKind
    is_read: bool
    related_post_id: int | None = None
    related_comment_id: int | None = None
    related_reply_id: int | None = None
    actor_id: uuid.UUID | None = None
    actor_name: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls, notification: Notification, *, actor_name: str | None = None
    ) -> "NotificationRead":
        """Build from the ORM row, attaching the resolved actor name."""
        view = cls.model_validate(notification)
        return view.model_copy(update={"actor_name": actor_name})


class UnreadCount(BaseModel):
    """Body of GET /notifications/unread-count."""

    count: int


class BulkUpdateResult(BaseModel):
    """Body of mark-all-read and clear-all."""

    affected: int
