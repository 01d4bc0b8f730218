"""Signup with email verification.

Flow:
1. request_code(email): existing accounts return silently (no code, no
   email), so the endpoint cannot be used to discover accounts.
2. verify_code(email, code): returns a signup ticket.
3. complete_signup(email, ticket, full_name, password): redeems the ticket,
   creates the verified account and stores the welcome notification.
4. send_welcome(completed), after commit: pushes the welcome notification
   and emails the welcome message. Neither failure affects the signup.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email_templates
from app.core.auth import hash_password, validate_password_strength
from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.email import EmailTransport
from app.core.errors import ConflictError, ValidationError
from app.models.one_time_credential import CredentialPurpose
from app.models.user import User
from app.repositories.base import CredentialStore, UserDirectory
from app.repositories.credential_repository import CredentialRepository
from app.repositories.user_repository import UserRepository
from app.services.credential_issuer import CredentialIssuer, normalize_identity
from app.services.notification_dispatcher import DispatchResult
from app.services.notification_events import NotificationEvents

logger = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 255


@dataclass(frozen=True)
class CompletedSignup:
    """A created account and its not yet delivered welcome notification."""

    user: User
    welcome: DispatchResult


def _email_taken() -> ConflictError:
    return ConflictError(
        code="EMAIL_ALREADY_EXISTS",
        message="Email already registered",
    )


class SignupVerificationService:
    """Orchestrates the signup steps.

    Args:
        issuer: Code issuance and verification.
        transport: Email provider for the code and the welcome email.
        events: Welcome notification producer.
        users: User lookup and creation.
        store: Credential persistence (post-signup cleanup).
        clock: Time source for email_verified.
    """

    def __init__(
        self,
        issuer: CredentialIssuer,
        transport: EmailTransport,
        events: NotificationEvents,
        *,
        users: UserDirectory = UserRepository,
        store: CredentialStore = CredentialRepository,
        clock: Clock = system_clock,
    ) -> None:
        self._issuer = issuer
        self._transport = transport
        self._events = events
        self._users = users
        self._store = store
        self._clock = clock

    async def request_code(self, db: AsyncSession, email: str) -> None:
        """Email a signup code unless the address is already registered.

        Raises:
            ValidationError: If email is blank.
            RateLimitedError: If the address already holds too many live codes.
        """
        identity = normalize_identity(email)
        if await self._users.get_by_email(db, identity) is not None:
            logger.info("Signup code requested for an existing account")
            return

        code = await self._issuer.issue(db, identity, CredentialPurpose.SIGNUP)
        rendered = email_templates.signup_code(code, settings.credential_ttl_minutes)
        sent = await self._transport.send(
            to_address=identity,
            subject=rendered.subject,
            html_body=rendered.html,
            text_body=rendered.text,
        )
        if not sent:
            logger.warning("Signup email was not accepted by the provider")

    async def verify_code(self, db: AsyncSession, email: str, code: str) -> str:
        """Exchange a signup code for a signup ticket."""
        return await self._issuer.verify(db, email, code, CredentialPurpose.SIGNUP)

    async def complete_signup(
        self,
        db: AsyncSession,
        email: str,
        ticket: str,
        full_name: str,
        password: str,
    ) -> CompletedSignup:
        """Create the verified account.

        Returns:
            The new user and the welcome notification, to be passed to
            send_welcome() once the session has committed.

        Raises:
            ValidationError: Weak password, blank name or blank email.
            InvalidTicketError: Ticket unknown, redeemed or expired.
            ConflictError: The email was registered in the meantime.
        """
        validate_password_strength(password)
        full_name = full_name.strip()
        if not full_name:
            raise ValidationError("Full name is required")
        if len(full_name) > _MAX_NAME_LENGTH:
            raise ValidationError(
                f"Full name must be at most {_MAX_NAME_LENGTH} characters"
            )
        identity = normalize_identity(email)

        await self._issuer.redeem_ticket(db, identity, ticket, CredentialPurpose.SIGNUP)

        if await self._users.get_by_email(db, identity) is not None:
            raise _email_taken()
        try:
            user = await self._users.create(
                db,
                email=identity,
                full_name=full_name,
                password_hash=hash_password(password),
                email_verified=self._clock.now(),
            )
        except IntegrityError as exc:
            await db.rollback()
            raise _email_taken() from exc

        await self._store.delete_for_identity(db, identity)
        welcome = await self._events.user_welcomed(db, user=user)
        logger.info("Signup completed for user %s", user.id)
        return CompletedSignup(user=user, welcome=welcome)

    async def send_welcome(self, completed: CompletedSignup) -> None:
        """Deliver the welcome notification and email for a committed signup.

        Runs after the response is sent. Failures are logged, never raised.
        """
        await self._events.deliver([completed.welcome])

        user = completed.user
        rendered = email_templates.welcome(user.full_name)
        try:
            sent = await self._transport.send(
                to_address=user.email,
                to_name=user.full_name,
                subject=rendered.subject,
                html_body=rendered.html,
                text_body=rendered.text,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Welcome email failed for user %s", user.id)
            return
        if not sent:
            logger.warning("Welcome email was not accepted by the provider")
