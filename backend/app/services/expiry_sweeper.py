"""Expired credential sweeper.

asyncio background task started from the FastAPI lifespan. Runs hourly by
default and deletes one-time codes and verification tickets whose window
has closed. Issue and verify already compare expires_at themselves, so the
sweeper only reclaims storage; its cadence never affects correctness.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, system_clock
from app.repositories.base import CredentialStore, TicketStore
from app.repositories.credential_repository import CredentialRepository
from app.repositories.ticket_repository import TicketRepository

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60 * 60


@dataclass(frozen=True)
class SweepResult:
    """Result of one sweep pass.

    Attributes:
        credentials_deleted: One-time codes removed.
        tickets_deleted: Verification tickets removed.
        cutoff: Rows expiring before this instant were removed.
    """

    credentials_deleted: int
    tickets_deleted: int
    cutoff: datetime


class ExpirySweeper:
    """Background worker that periodically deletes expired credentials.

    Lifecycle:
    - start() creates an asyncio task that runs the sweep loop.
    - stop() cancels the task and waits for it. Safe without start().
    - run_once() executes a single pass in its own session and commits.

    Args:
        session_factory: Async session factory for DB access.
        store: Credential persistence.
        tickets: Verification ticket persistence.
        clock: Time source.
        interval_seconds: Seconds between passes.
        grace: Extra age a row must reach past expires_at before deletion.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        store: CredentialStore = CredentialRepository,
        tickets: TicketStore = TicketRepository,
        clock: Clock = system_clock,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        grace: timedelta = timedelta(0),
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._tickets = tickets
        self._clock = clock
        self._interval_seconds = interval_seconds
        self._grace = grace
        self._task: asyncio.Task[None] | None = None
        self._last_run_at: datetime | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def last_run_at(self) -> datetime | None:
        """Cutoff used by the most recent completed pass."""
        return self._last_run_at

    def start(self) -> None:
        """Start the background sweep loop.

        No-op if already running. Must be called with a running event loop.
        """
        if self.is_running:
            logger.warning("Expiry sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Expiry sweeper started (interval=%ds)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for it to finish."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def sweep(self, db: AsyncSession, now: datetime) -> int:
        """Delete every credential with expires_at < now, consumed or not.

        Idempotent: a second call with the same now deletes nothing.

        Args:
            db: Async database session (not committed here).
            now: Cutoff instant.

        Returns:
            Number of credentials deleted.
        """
        return await self._store.delete_expired_before(db, now)

    async def run_once(self) -> SweepResult:
        """Execute a single sweep pass and commit it.

        Returns:
            SweepResult with deletion counts.
        """
        cutoff = self._clock.now() - self._grace
        async with self._session_factory() as db:
            credentials_deleted = await self.sweep(db, cutoff)
            tickets_deleted = await self._tickets.delete_expired_before(db, cutoff)
            await db.commit()
        self._last_run_at = cutoff
        return SweepResult(
            credentials_deleted=credentials_deleted,
            tickets_deleted=tickets_deleted,
            cutoff=cutoff,
        )

    async def _run_loop(self) -> None:
        """Background loop: sweep → sleep → repeat."""
        try:
            while self._running:
                try:
                    result = await self.run_once()
                    logger.info(
                        "Expiry sweep: %d credentials, %d tickets deleted",
                        result.credentials_deleted,
                        result.tickets_deleted,
                    )
                except Exception:  # noqa: BLE001
                    logger.exception("Error in expiry sweep")
                await asyncio.sleep(self._interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Expiry sweep loop cancelled")
            raise
