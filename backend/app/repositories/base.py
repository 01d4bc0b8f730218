"""Store interfaces consumed by the credential and notification services.

Services depend on these protocols rather than on concrete repositories so
the same service code runs against PostgreSQL (the repository classes,
passed as class objects since all their methods are static) or against
in-memory fakes in tests.

Every method takes the caller's AsyncSession first; stores flush but never
commit.
"""

import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreUnavailableError
from app.models.notification import Notification
from app.models.one_time_credential import OneTimeCredential
from app.models.user import User
from app.models.verification_ticket import VerificationTicket


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into StoreUnavailableError.

    Args:
        operation: Short name of the failing operation, used in the message.

    Raises:
        StoreUnavailableError: If the wrapped block raises SQLAlchemyError.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(operation) from exc


class CredentialStore(Protocol):
    """Persistence of issued one-time codes."""

    async def insert(
        self,
        db: AsyncSession,
        *,
        identity: str,
        code: str,
        purpose: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> OneTimeCredential:
        """Persist a new pending credential."""
        ...

    async def find_pending(
        self,
        db: AsyncSession,
        *,
        identity: str,
        code: str,
        purpose: str,
    ) -> OneTimeCredential | None:
        """Newest verifiable credential for (identity, code, purpose).

        Expiry is not filtered here so the caller can tell Expired apart.
        """
        ...

    async def conditional_consume(
        self,
        db: AsyncSession,
        credential_id: uuid.UUID,
        *,
        now: datetime,
    ) -> bool:
        """Set consumed_at if neither consumed nor superseded. True if this call won."""
        ...

    async def delete_expired_before(self, db: AsyncSession, before: datetime) -> int:
        """Hard-delete credentials with expires_at < before, consumed or not."""
        ...

    async def count_live(
        self,
        db: AsyncSession,
        identity: str,
        *,
        as_of: datetime,
    ) -> int:
        """Count never-verified credentials for identity expiring after as_of."""
        ...

    async def invalidate_all_pending(
        self,
        db: AsyncSession,
        identity: str,
        *,
        now: datetime,
    ) -> int:
        """Set superseded_at on every verifiable credential for identity."""
        ...

    async def delete_for_identity(self, db: AsyncSession, identity: str) -> int:
        """Delete every credential for identity."""
        ...


class TicketStore(Protocol):
    """Persistence of hashed verification tickets."""

    async def insert(
        self,
        db: AsyncSession,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        credential_id: uuid.UUID | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationTicket:
        """Persist a new unredeemed ticket."""
        ...

    async def conditional_redeem(
        self,
        db: AsyncSession,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        now: datetime,
    ) -> bool:
        """Set redeemed_at only if unredeemed and unexpired. True if this call won."""
        ...

    async def delete_expired_before(self, db: AsyncSession, before: datetime) -> int:
        """Hard-delete tickets with expires_at < before."""
        ...


class NotificationStore(Protocol):
    """Persistence of notifications per recipient."""

    async def insert(
        self,
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
        """Persist a new unread notification."""
        ...

    async def list_by_recipient(
        self, db: AsyncSession, recipient_id: uuid.UUID
    ) -> list[Notification]:
        """All notifications for recipient, newest first."""
        ...

    async def count_unread(self, db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Number of unread notifications for recipient."""
        ...

    async def mark_read(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> bool:
        """Mark one of recipient's notifications read. False if not theirs."""
        ...

    async def mark_all_read(self, db: AsyncSession, recipient_id: uuid.UUID) -> int:
        """Mark all of recipient's unread notifications read."""
        ...

    async def delete_by_id(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
    ) -> bool:
        """Delete one of recipient's notifications. False if not theirs."""
        ...

    async def delete_by_recipient(
        self, db: AsyncSession, recipient_id: uuid.UUID
    ) -> int:
        """Delete all of recipient's notifications."""
        ...


class UserDirectory(Protocol):
    """User lookups needed by the credential and notification flows."""

    async def get_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """User by primary key."""
        ...

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        """User by (case-insensitive) email."""
        ...

    async def create(
        self,
        db: AsyncSession,
        *,
        email: str,
        full_name: str | None = None,
        password_hash: str | None = None,
        email_verified: datetime | None = None,
    ) -> User:
        """Create a user. Raises IntegrityError on a duplicate email."""
        ...

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | datetime | None,
    ) -> User | None:
        """Update whitelisted fields."""
        ...

    async def list_admins(self, db: AsyncSession) -> list[User]:
        """All admin users."""
        ...

    async def get_names(
        self, db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str | None]:
        """Display names for the given ids."""
        ...
