"""Repository for VerificationTicket operations.

Tickets are stored as SHA-256 hashes; the plain value only exists in the
verify response and in the client that presents it back.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.verification_ticket import VerificationTicket
from app.repositories.base import store_errors


class TicketRepository:
    """Stateless repository for verification_tickets.

    All methods are static; no instance state. Satisfies TicketStore.
    """

    @staticmethod
    async def insert(
        db: AsyncSession,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        credential_id: uuid.UUID | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationTicket:
        """Store a new unredeemed ticket.

        Args:
            db: Async database session.
            ticket_hash: SHA-256 hex digest of the plain ticket.
            identity: Normalized email address.
            purpose: CredentialPurpose value.
            credential_id: Credential consumed to produce the ticket.
            created_at: Issue time.
            expires_at: Redemption deadline.

        Returns:
            Created VerificationTicket.
        """
        ticket = VerificationTicket(
            ticket_hash=ticket_hash,
            identity=identity,
            purpose=purpose,
            credential_id=credential_id,
            created_at=created_at,
            expires_at=expires_at,
        )
        with store_errors("ticket insert"):
            db.add(ticket)
            await db.flush()
        return ticket

    @staticmethod
    async def conditional_redeem(
        db: AsyncSession,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        now: datetime,
    ) -> bool:
        """Redeem a ticket if it is unused, unexpired and bound to identity/purpose.

        Args:
            db: Async database session.
            ticket_hash: SHA-256 hex digest of the presented ticket.
            identity: Normalized email address the ticket must belong to.
            purpose: Purpose the ticket must carry.
            now: Redemption time.

        Returns:
            True if this call redeemed the ticket.
        """
        stmt = (
            update(VerificationTicket)
            .where(
                VerificationTicket.ticket_hash == ticket_hash,
                VerificationTicket.identity == identity,
                VerificationTicket.purpose == purpose,
                VerificationTicket.redeemed_at.is_(None),
                VerificationTicket.expires_at > now,
            )
            .values(redeemed_at=now)
            .execution_options(synchronize_session=False)
        )
        with store_errors("ticket redeem"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete_expired_before(db: AsyncSession, before: datetime) -> int:
        """Delete tickets past their redemption deadline.

        Args:
            db: Async database session.
            before: Rows with expires_at strictly earlier are deleted.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationTicket).where(VerificationTicket.expires_at < before)
        with store_errors("ticket sweep"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
