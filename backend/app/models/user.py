"""User model.

Only the columns the credential and notification flows read or write: the
login email (which doubles as the credential identity), display name, bcrypt
hash, verification time, session revocation time and the admin flag that
decides who receives new-post alerts.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Account holder, notification recipient and notification actor.

    Attributes:
        email: Unique and stored lowercased.
        password_hash: NULL only for rows created outside the signup flow.
        email_verified: Set when a signup code is verified.
        token_invalidated_before: Session JWTs with an earlier iat are
            rejected. Bumped on password reset.
        is_admin: Receives admin-broadcast notifications.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_verified: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    token_invalidated_before: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    def __repr__(self) -> str:
        return f"<User {self.id} admin={self.is_admin}>"
