"""Repository for OneTimeCredential operations.

Single-consume is enforced here, not in the issuer: consumption is an
UPDATE guarded by ``consumed_at IS NULL AND superseded_at IS NULL``, so
concurrent verifiers across replicas race on the row and exactly one sees
rowcount == 1.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.one_time_credential import OneTimeCredential
from app.repositories.base import store_errors


class CredentialRepository:
    """Stateless repository for one_time_credentials.

    All methods are static; no instance state. Satisfies CredentialStore.
    """

    @staticmethod
    async def insert(
        db: AsyncSession,
        *,
        identity: str,
        code: str,
        purpose: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> OneTimeCredential:
        """Store a new pending credential.

        Args:
            db: Async database session.
            identity: Normalized email address.
            code: Plain numeric code.
            purpose: CredentialPurpose value.
            created_at: Issue time.
            expires_at: End of validity window.

        Returns:
            Created OneTimeCredential.
        """
        credential = OneTimeCredential(
            id=uuid.uuid4(),
            identity=identity,
            code=code,
            purpose=purpose,
            created_at=created_at,
            expires_at=expires_at,
        )
        with store_errors("credential insert"):
            db.add(credential)
            await db.flush()
        return credential

    @staticmethod
    async def find_pending(
        db: AsyncSession,
        *,
        identity: str,
        code: str,
        purpose: str,
    ) -> OneTimeCredential | None:
        """Find the newest verifiable credential for identity, code and purpose.

        Expired rows are returned too; the caller compares expires_at.

        Args:
            db: Async database session.
            identity: Normalized email address.
            code: Plain numeric code.
            purpose: CredentialPurpose value.

        Returns:
            Matching OneTimeCredential or None.
        """
        stmt = (
            select(OneTimeCredential)
            .where(
                OneTimeCredential.identity == identity,
                OneTimeCredential.code == code,
                OneTimeCredential.purpose == purpose,
                OneTimeCredential.consumed_at.is_(None),
                OneTimeCredential.superseded_at.is_(None),
            )
            .order_by(OneTimeCredential.created_at.desc())
            .limit(1)
        )
        with store_errors("credential lookup"):
            result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def conditional_consume(
        db: AsyncSession,
        credential_id: uuid.UUID,
        *,
        now: datetime,
    ) -> bool:
        """Consume a credential if nobody else has.

        Args:
            db: Async database session.
            credential_id: Credential primary key.
            now: Consumption timestamp.

        Returns:
            True if this call transitioned the row, False if already consumed,
            superseded or gone.
        """
        stmt = (
            update(OneTimeCredential)
            .where(
                OneTimeCredential.id == credential_id,
                OneTimeCredential.consumed_at.is_(None),
                OneTimeCredential.superseded_at.is_(None),
            )
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        with store_errors("credential consume"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete_expired_before(db: AsyncSession, before: datetime) -> int:
        """Delete credentials past their window, consumed or not.

        Args:
            db: Async database session.
            before: Rows with expires_at strictly earlier are deleted.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(OneTimeCredential).where(OneTimeCredential.expires_at < before)
        with store_errors("credential sweep"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def count_live(
        db: AsyncSession,
        identity: str,
        *,
        as_of: datetime,
    ) -> int:
        """Count never-verified, unexpired credentials for an identity.

        Superseded rows are included: a burst of requests counts in full
        even though only the newest code can still verify.

        Args:
            db: Async database session.
            identity: Normalized email address.
            as_of: Reference time.

        Returns:
            Live credential count.
        """
        stmt = select(func.count()).where(
            OneTimeCredential.identity == identity,
            OneTimeCredential.consumed_at.is_(None),
            OneTimeCredential.expires_at > as_of,
        )
        with store_errors("credential count"):
            result = await db.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def invalidate_all_pending(
        db: AsyncSession,
        identity: str,
        *,
        now: datetime,
    ) -> int:
        """Supersede every verifiable credential for identity.

        Args:
            db: Async database session.
            identity: Normalized email address.
            now: Timestamp written to superseded_at.

        Returns:
            Number of invalidated rows.
        """
        stmt = (
            update(OneTimeCredential)
            .where(
                OneTimeCredential.identity == identity,
                OneTimeCredential.consumed_at.is_(None),
                OneTimeCredential.superseded_at.is_(None),
            )
            .values(superseded_at=now)
            .execution_options(synchronize_session=False)
        )
        with store_errors("credential invalidate"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_for_identity(db: AsyncSession, identity: str) -> int:
        """Delete all credentials for an identity (cleanup after reset).

        Args:
            db: Async database session.
            identity: Normalized email address.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(OneTimeCredential).where(OneTimeCredential.identity == identity)
        with store_errors("credential delete"):
            result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
