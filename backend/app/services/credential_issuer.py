"""One-time code issuance and verification.

Flow:
1. issue(): rate-limit check, supersede older codes, store a fresh code.
   The caller delivers the returned code out of band (email).
2. verify(): match a verifiable code, reject if expired, consume it with a
   conditional update, persist a hashed verification ticket and return the
   plain ticket.
3. redeem_ticket(): the sensitive action (new password, account creation)
   redeems the ticket exactly once before it is applied.

Wrong, already-used and superseded codes all surface as
CredentialNotFoundError so callers cannot tell them apart.
"""

import hashlib
import logging
import re
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.errors import (
    CredentialExpiredError,
    CredentialNotFoundError,
    InvalidTicketError,
    ValidationError,
)
from app.models.one_time_credential import CredentialPurpose, CredentialStatus
from app.repositories.base import CredentialStore, TicketStore
from app.repositories.credential_repository import CredentialRepository
from app.repositories.ticket_repository import TicketRepository
from app.services.credential_rate_limiter import CredentialRateLimiter

logger = logging.getLogger(__name__)

# Plain ticket entropy: 32 bytes, URL-safe base64
_TICKET_BYTES = 32


def normalize_identity(identity: str) -> str:
    """Trim and lowercase an email identity.

    Raises:
        ValidationError: If nothing is left after trimming.
    """
    normalized = identity.strip().lower()
    if not normalized:
        raise ValidationError("Email is required")
    return normalized


def hash_ticket(ticket: str) -> str:
    """SHA-256 hex digest used as the stored ticket key."""
    return hashlib.sha256(ticket.encode()).hexdigest()


def generate_code(length: int) -> str:
    """Uniformly random numeric code without a leading zero.

    For length 6 the range is 100000-999999.
    """
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


class CredentialIssuer:
    """Issues and verifies one-time codes.

    Holds no mutable state; every guarantee comes from the stores.

    Args:
        store: Credential persistence.
        tickets: Verification ticket persistence.
        clock: Time source for expiry comparisons.
        rate_limiter: Live-credential cap. Built from store when omitted.
        ttl: Code lifetime. Defaults to settings.credential_ttl_minutes.
        ticket_ttl: Ticket lifetime. Defaults to settings.ticket_ttl_minutes.
        code_length: Digits per code. Defaults to settings.credential_code_length.
    """

    def __init__(
        self,
        *,
        store: CredentialStore = CredentialRepository,
        tickets: TicketStore = TicketRepository,
        clock: Clock = system_clock,
        rate_limiter: CredentialRateLimiter | None = None,
        ttl: timedelta | None = None,
        ticket_ttl: timedelta | None = None,
        code_length: int | None = None,
    ) -> None:
        self._store = store
        self._tickets = tickets
        self._clock = clock
        self._rate_limiter = rate_limiter or CredentialRateLimiter(store)
        self._ttl = ttl or timedelta(minutes=settings.credential_ttl_minutes)
        self._ticket_ttl = ticket_ttl or timedelta(minutes=settings.ticket_ttl_minutes)
        self._code_length = code_length or settings.credential_code_length
        self._code_pattern = re.compile(rf"^\d{{{self._code_length}}}$")

    async def issue(
        self,
        db: AsyncSession,
        identity: str,
        purpose: CredentialPurpose,
    ) -> str:
        """Issue a fresh code for identity, superseding any pending ones.

        Args:
            db: Async database session.
            identity: Email address (normalized here).
            purpose: What the code may be used for.

        Returns:
            The plain code, for out-of-band delivery.

        Raises:
            ValidationError: If identity is blank.
            RateLimitedError: If identity already holds the maximum live codes.
            StoreUnavailableError: If persistence fails.
        """
        identity = normalize_identity(identity)
        now = self._clock.now()

        await self._rate_limiter.check(db, identity, now)

        superseded = await self._store.invalidate_all_pending(db, identity, now=now)
        code = generate_code(self._code_length)
        await self._store.insert(
            db,
            identity=identity,
            code=code,
            purpose=purpose.value,
            created_at=now,
            expires_at=now + self._ttl,
        )
        logger.info(
            "Issued %s code (superseded %d pending)", purpose.value, superseded
        )
        logger.debug("Issued code for identity=%s", identity)
        return code

    async def verify(
        self,
        db: AsyncSession,
        identity: str,
        code: str,
        purpose: CredentialPurpose,
    ) -> str:
        """Consume a pending code and return a one-time verification ticket.

        Args:
            db: Async database session.
            identity: Email address (normalized here).
            code: Code as typed by the user (surrounding whitespace ignored).
            purpose: Purpose the code must have been issued for.

        Returns:
            Plain verification ticket. Only its hash is stored.

        Raises:
            ValidationError: If identity is blank or code is malformed.
            CredentialNotFoundError: No verifiable code matches, or a
                concurrent verify consumed it first.
            CredentialExpiredError: The matching code is past its window.
            StoreUnavailableError: If persistence fails.
        """
        identity = normalize_identity(identity)
        code = code.strip()
        if not self._code_pattern.match(code):
            raise ValidationError(
                f"Invalid code format. Code must be {self._code_length} digits."
            )

        now = self._clock.now()
        credential = await self._store.find_pending(
            db, identity=identity, code=code, purpose=purpose.value
        )
        if credential is None:
            raise CredentialNotFoundError()
        if credential.status_at(now) is CredentialStatus.EXPIRED:
            raise CredentialExpiredError()

        if not await self._store.conditional_consume(db, credential.id, now=now):
            logger.info("Lost consume race for %s code", purpose.value)
            raise CredentialNotFoundError()

        ticket = secrets.token_urlsafe(_TICKET_BYTES)
        await self._tickets.insert(
            db,
            ticket_hash=hash_ticket(ticket),
            identity=identity,
            purpose=purpose.value,
            credential_id=credential.id,
            created_at=now,
            expires_at=now + self._ticket_ttl,
        )
        logger.info("Verified %s code", purpose.value)
        return ticket

    async def redeem_ticket(
        self,
        db: AsyncSession,
        identity: str,
        ticket: str,
        purpose: CredentialPurpose,
    ) -> None:
        """Redeem a verification ticket before applying the sensitive action.

        Args:
            db: Async database session.
            identity: Email address the ticket must belong to.
            ticket: Plain ticket returned by verify().
            purpose: Purpose the ticket must carry.

        Raises:
            InvalidTicketError: Unknown, redeemed, expired, or bound to another
                identity or purpose.
            StoreUnavailableError: If persistence fails.
        """
        identity = normalize_identity(identity)
        redeemed = await self._tickets.conditional_redeem(
            db,
            ticket_hash=hash_ticket(ticket.strip()),
            identity=identity,
            purpose=purpose.value,
            now=self._clock.now(),
        )
        if not redeemed:
            raise InvalidTicketError()
