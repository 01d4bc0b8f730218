"""One-time credential model - short-lived numeric codes.

Codes prove control of an email address for password reset and signup.
Status is derived from consumed_at and expires_at, never stored.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

_DEFAULT_UUID = text("gen_random_uuid()")


class CredentialPurpose(str, Enum):
    """What a code (and the ticket it yields) may be used for."""

    PASSWORD_RESET = "password_reset"
    SIGNUP = "signup"


class CredentialStatus(str, Enum):
    """Derived lifecycle state at a given instant.

    Values:
        PENDING: Not consumed and still inside its validity window.
        CONSUMED: Verified, or superseded by a newer code.
        EXPIRED: Not consumed but past expires_at.
    """

    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class OneTimeCredential(Base):
    """Issued one-time code.

    Rows are written once by the issuer, updated at most once more
    (consumed_at or superseded_at, via conditional updates), and
    hard-deleted by the sweeper.

    Attributes:
        id: UUID primary key.
        identity: Normalized email the code was issued to. Not unique.
        code: Fixed-length numeric secret.
        purpose: "password_reset" or "signup".
        created_at: Issue time.
        expires_at: End of the validity window.
        consumed_at: When verify consumed it. NULL = never verified.
        superseded_at: When a newer code for the same identity invalidated it.
            Superseded codes never verify but still count toward the live limit.
    """

    __tablename__ = "one_time_credentials"
    __table_args__ = (
        CheckConstraint(
            "purpose IN ('password_reset', 'signup')",
            name="ck_one_time_credentials_purpose",
        ),
        Index("ix_one_time_credentials_identity_code", "identity", "code"),
        Index("ix_one_time_credentials_expires_at", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
        default=uuid.uuid4,
    )
    identity: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    purpose: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    superseded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def status_at(self, now: datetime) -> CredentialStatus:
        """Derive the lifecycle state at ``now``.

        Args:
            now: Reference time (timezone-aware UTC).

        Returns:
            CredentialStatus for this row at that instant.
        """
        if self.consumed_at is not None or self.superseded_at is not None:
            return CredentialStatus.CONSUMED
        if now >= self.expires_at:
            return CredentialStatus.EXPIRED
        return CredentialStatus.PENDING
