"""Declarative base and the server-side timestamp mixin.

Users and notifications take their timestamps from the database. Credentials
and tickets do not: their windows are computed from the injected clock so
expiry can be tested without waiting.
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    # Every datetime column is timezone-aware.
    type_annotation_map = {datetime: DateTime(timezone=True)}


class TimestampMixin:
    """created_at / updated_at filled in by PostgreSQL (``now()``)."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
