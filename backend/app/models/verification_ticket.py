"""Verification ticket model.

A ticket is returned by a successful code verification and must be
presented (once) to apply the sensitive change: set a new password or
finish signup. Stored hashed, bound to the consumed credential.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class VerificationTicket(Base):
    """Single-use proof that a code was verified.

    Attributes:
        ticket_hash: SHA-256 hex digest of the plain ticket (primary key).
        identity: Email the verified code belonged to.
        purpose: Purpose copied from the credential.
        credential_id: The credential whose verification produced this ticket.
            Set to NULL when the sweeper removes that credential.
        created_at: Issue time.
        expires_at: Ticket must be redeemed before this.
        redeemed_at: When the ticket authorized its action. NULL = unused.
    """

    __tablename__ = "verification_tickets"

    ticket_hash: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    identity: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    purpose: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    credential_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("one_time_credentials.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    redeemed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
