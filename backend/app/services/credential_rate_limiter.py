"""Store-backed limit on live one-time codes per identity.

No in-process counter: the count is a query over persisted credentials,
so it holds across replicas and restarts. Window edges are slightly
permissive, which is acceptable for an anti-spam control.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import RateLimitedError
from app.repositories.base import CredentialStore
from app.repositories.credential_repository import CredentialRepository


class CredentialRateLimiter:
    """Counts live credentials and rejects issuance at the cap.

    Args:
        store: Credential persistence.
        max_live: Maximum live credentials one identity may hold.
    """

    def __init__(
        self,
        store: CredentialStore = CredentialRepository,
        *,
        max_live: int | None = None,
    ) -> None:
        self._store = store
        if max_live is None:
            max_live = settings.credential_max_live
        self._max_live = max_live

    @property
    def max_live(self) -> int:
        return self._max_live

    async def count(self, db: AsyncSession, identity: str, as_of: datetime) -> int:
        """Never-verified credentials for identity still inside their window."""
        return await self._store.count_live(db, identity, as_of=as_of)

    async def check(self, db: AsyncSession, identity: str, as_of: datetime) -> None:
        """Raise if identity already holds max_live live credentials.

        Raises:
            RateLimitedError: When the count has reached the cap.
        """
        if await self.count(db, identity, as_of) >= self._max_live:
            raise RateLimitedError()
