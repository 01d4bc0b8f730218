"""Session and password helpers for the signup and password-reset flows.

Signup completion starts a session: an HS256 JWT carried in an httpOnly
cookie. Password reset rewrites the bcrypt hash and bumps
token_invalidated_before, which ends every older session (see
app.api.deps.resolve_user_id).
"""

import re
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Response

from app.core.config import settings
from app.core.errors import ValidationError

JWT_AUDIENCE = "sphere"

SESSION_LIFETIME = timedelta(hours=1)

_BCRYPT_ROUNDS = 12

_PASSWORD_MIN_LENGTH = 8
_PASSWORD_MAX_LENGTH = 128

_PASSWORD_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"\d"), "Password must contain at least one number"),
)


def create_jwt(
    *,
    user_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session token for ``user_id``.

    Claims: sub, aud, iss, iat and exp (``expires_delta`` from now, default
    SESSION_LIFETIME).
    """
    issued_at = datetime.now(UTC)
    claims = {
        "sub": user_id,
        "aud": JWT_AUDIENCE,
        "iss": settings.auth_issuer,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or SESSION_LIFETIME),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def set_auth_cookie(response: Response, token: str) -> None:
    """Attach the session cookie using the configured cookie attributes."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=int(SESSION_LIFETIME.total_seconds()),
        path="/",
        domain=settings.auth_cookie_domain or None,
        secure=settings.auth_cookie_secure,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
    )


def validate_password_strength(password: str) -> None:
    """Check length (8-128) and character classes.

    Raises:
        ValidationError: With the first rule the password breaks.
    """
    if len(password) < _PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {_PASSWORD_MIN_LENGTH} characters"
        )
    if len(password) > _PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be at most {_PASSWORD_MAX_LENGTH} characters"
        )
    for pattern, message in _PASSWORD_RULES:
        if pattern.search(password) is None:
            raise ValidationError(message)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode(), salt).decode()
