"""Shared dependencies for API endpoints.

Authentication: local mode uses DEFAULT_USER_ID; hosted mode validates the
JWT from the session cookie. Services are assembled here so tests can swap
any of them through ``app.dependency_overrides``.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import JWT_AUDIENCE
from app.core.config import settings
from app.core.database import get_db
from app.core.email import EmailTransport, get_email_transport
from app.core.errors import UnauthorizedError
from app.core.realtime import RealtimePublisher, connection_manager
from app.models import User
from app.services.credential_issuer import CredentialIssuer
from app.services.delivery_channels import EmailChannel, RealtimeChannel
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_events import NotificationEvents
from app.services.password_reset import PasswordResetService
from app.services.signup_verification import SignupVerificationService


class AuthenticationFailed(Exception):
    """Session token missing, invalid or revoked."""


async def resolve_user_id(token: str | None, db: AsyncSession) -> uuid.UUID:
    """Resolve the user behind a session token.

    Shared by HTTP requests and WebSocket handshakes.

    Validation steps (hosted mode):
    1. Decode + verify signature (HS256)
    2. Verify exp, aud, iss claims
    3. Extract sub as UUID
    4. Check token_invalidated_before (revocation)

    Args:
        token: Raw cookie value, None if absent.
        db: Database session for the revocation check.

    Returns:
        The authenticated user's id.

    Raises:
        AuthenticationFailed: For any failure.
    """
    if not settings.auth_enabled:
        if settings.default_user_id is None:
            raise AuthenticationFailed()
        return settings.default_user_id

    if not token:
        raise AuthenticationFailed()

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=settings.auth_issuer,
        )
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise AuthenticationFailed() from exc

    # A JWT without iat would bypass token_invalidated_before.
    iat = payload.get("iat")
    if iat is None:
        raise AuthenticationFailed()

    result = await db.execute(
        select(User.token_invalidated_before).where(User.id == user_id)
    )
    invalidated_before = result.scalar_one_or_none()
    if invalidated_before is not None and iat < invalidated_before.timestamp():
        raise AuthenticationFailed()

    return user_id


async def get_current_user_id(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> uuid.UUID:
    """Get current user ID from auth context.

    Raises:
        UnauthorizedError: For any auth failure, without saying which.
    """
    try:
        return await resolve_user_id(
            request.cookies.get(settings.auth_cookie_name), db
        )
    except AuthenticationFailed as exc:
        raise UnauthorizedError() from exc


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Service wiring
# =============================================================================


def get_realtime_publisher() -> RealtimePublisher:
    return connection_manager


def get_credential_issuer() -> CredentialIssuer:
    return CredentialIssuer()


def get_notification_dispatcher(
    publisher: Annotated[RealtimePublisher, Depends(get_realtime_publisher)],
    transport: Annotated[EmailTransport, Depends(get_email_transport)],
) -> NotificationDispatcher:
    return NotificationDispatcher(
        realtime=RealtimeChannel(
            publisher, timeout=settings.realtime_timeout_seconds
        ),
        email=EmailChannel(transport, timeout=settings.email_timeout_seconds),
    )


def get_notification_events(
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> NotificationEvents:
    return NotificationEvents(dispatcher)


def get_password_reset_service(
    issuer: Annotated[CredentialIssuer, Depends(get_credential_issuer)],
    transport: Annotated[EmailTransport, Depends(get_email_transport)],
) -> PasswordResetService:
    return PasswordResetService(issuer, transport)


def get_signup_service(
    issuer: Annotated[CredentialIssuer, Depends(get_credential_issuer)],
    transport: Annotated[EmailTransport, Depends(get_email_transport)],
    events: Annotated[NotificationEvents, Depends(get_notification_events)],
) -> SignupVerificationService:
    return SignupVerificationService(issuer, transport, events)


Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
PasswordReset = Annotated[PasswordResetService, Depends(get_password_reset_service)]
Signup = Annotated[SignupVerificationService, Depends(get_signup_service)]
