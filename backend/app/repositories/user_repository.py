"""Repository for User operations.

The credential flows look users up by email and write password hashes; the
notification flows need the admin list and actor display names. Satisfies
UserDirectory.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import store_errors

# Columns update() may write. id, email and is_admin are never writable here.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"full_name", "email_verified", "password_hash", "token_invalidated_before"}
)


class UserRepository:
    """Stateless repository for users; the caller owns the transaction."""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        with store_errors("user lookup"):
            return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Case-insensitive lookup; the stored address is already lowercased."""
        stmt = select(User).where(User.email == email.strip().lower())
        with store_errors("user lookup"):
            result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        full_name: str | None = None,
        password_hash: str | None = None,
        email_verified: datetime | None = None,
    ) -> User:
        """Insert a user and return it with server defaults loaded.

        IntegrityError propagates untranslated; signup maps it to a conflict.

        Raises:
            sqlalchemy.exc.IntegrityError: If the email is already taken.
        """
        user = User(
            email=email.strip().lower(),
            full_name=full_name,
            password_hash=password_hash,
            email_verified=email_verified,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **fields: str | datetime | None,
    ) -> User | None:
        """Write whitelisted columns.

        Returns:
            The updated user, or None if it no longer exists.

        Raises:
            ValueError: For a column outside _UPDATABLE_FIELDS.
        """
        unknown = sorted(set(fields) - _UPDATABLE_FIELDS)
        if unknown:
            msg = f"Unknown fields: {', '.join(unknown)}"
            raise ValueError(msg)

        with store_errors("user update"):
            user = await db.get(User, user_id)
            if user is None:
                return None
            for name, value in fields.items():
                setattr(user, name, value)
            await db.flush()
        return user

    @staticmethod
    async def list_admins(db: AsyncSession) -> list[User]:
        stmt = select(User).where(User.is_admin.is_(True)).order_by(User.created_at)
        with store_errors("admin lookup"):
            result = await db.execute(stmt)
        return list(result.scalars())

    @staticmethod
    async def get_names(
        db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str | None]:
        """Map ids to full_name; unknown ids are left out."""
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(User.id, User.full_name).where(User.id.in_(ids))
        with store_errors("user lookup"):
            result = await db.execute(stmt)
        return {row.id: row.full_name for row in result}
