"""Password reset via emailed one-time code.

Flow:
1. request_reset(email): unknown emails return silently so the endpoint
   cannot be used to discover accounts. Known emails get a code by email.
2. verify_code(email, code): returns a reset ticket.
3. reset_password(email, ticket, new_password): redeems the ticket, stores
   the new bcrypt hash, revokes existing sessions and deletes every
   remaining code for the email.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email_templates
from app.core.auth import hash_password, validate_password_strength
from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.email import EmailTransport
from app.core.errors import NotFoundError
from app.models.one_time_credential import CredentialPurpose
from app.repositories.base import CredentialStore, UserDirectory
from app.repositories.credential_repository import CredentialRepository
from app.repositories.user_repository import UserRepository
from app.services.credential_issuer import CredentialIssuer, normalize_identity

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Orchestrates the three password reset steps.

    Args:
        issuer: Code issuance and verification.
        transport: Email provider for the code.
        users: User lookup and update.
        store: Credential persistence (post-reset cleanup).
        clock: Time source for session revocation.
    """

    def __init__(
        self,
        issuer: CredentialIssuer,
        transport: EmailTransport,
        *,
        users: UserDirectory = UserRepository,
        store: CredentialStore = CredentialRepository,
        clock: Clock = system_clock,
    ) -> None:
        self._issuer = issuer
        self._transport = transport
        self._users = users
        self._store = store
        self._clock = clock

    async def request_reset(self, db: AsyncSession, email: str) -> None:
        """Email a reset code if the account exists.

        Raises:
            ValidationError: If email is blank.
            RateLimitedError: If the account already holds too many live codes.
        """
        identity = normalize_identity(email)
        user = await self._users.get_by_email(db, identity)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        code = await self._issuer.issue(db, identity, CredentialPurpose.PASSWORD_RESET)
        rendered = email_templates.password_reset_code(
            code, settings.credential_ttl_minutes
        )
        sent = await self._transport.send(
            to_address=identity,
            to_name=user.full_name,
            subject=rendered.subject,
            html_body=rendered.html,
            text_body=rendered.text,
        )
        if not sent:
            # The code stays valid; the user can request another.
            logger.warning("Password reset email was not accepted by the provider")

    async def verify_code(self, db: AsyncSession, email: str, code: str) -> str:
        """Exchange a reset code for a reset ticket."""
        return await self._issuer.verify(
            db, email, code, CredentialPurpose.PASSWORD_RESET
        )

    async def reset_password(
        self,
        db: AsyncSession,
        email: str,
        ticket: str,
        new_password: str,
    ) -> None:
        """Set a new password using a reset ticket.

        Password strength is checked before the ticket is redeemed so a
        rejected password does not burn the ticket.

        Raises:
            ValidationError: Weak password or blank email.
            InvalidTicketError: Ticket unknown, redeemed or expired.
            NotFoundError: The account no longer exists.
        """
        validate_password_strength(new_password)
        identity = normalize_identity(email)

        await self._issuer.redeem_ticket(
            db, identity, ticket, CredentialPurpose.PASSWORD_RESET
        )

        user = await self._users.get_by_email(db, identity)
        if user is None:
            raise NotFoundError("User")

        # PyJWT encodes iat as whole seconds.
        revoked_before = self._clock.now().replace(microsecond=0)
        await self._users.update(
            db,
            user.id,
            password_hash=hash_password(new_password),
            token_invalidated_before=revoked_before,
        )
        deleted = await self._store.delete_for_identity(db, identity)
        logger.info("Password reset completed (%d codes removed)", deleted)
