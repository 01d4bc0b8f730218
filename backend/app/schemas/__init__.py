"""Pydantic request/response schemas for API endpoints."""

from app.schemas.notification import (
    BulkUpdateResult,
    NotificationRead,
    UnreadCount,
)

__all__ = [
    "BulkUpdateResult",
    "NotificationRead",
    "UnreadCount",
]
