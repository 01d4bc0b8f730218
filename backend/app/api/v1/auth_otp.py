"""One-time code endpoints for password reset and signup.

Endpoints:
- POST /auth/password-reset/request: email a reset code
- POST /auth/password-reset/verify: exchange the code for a reset ticket
- POST /auth/password-reset/confirm: set the new password
- POST /auth/signup/request: email a signup code
- POST /auth/signup/verify: exchange the code for a signup ticket
- POST /auth/signup/complete: create the account and start a session

The request endpoints answer the same way whether or not the address is
registered.
"""

from fastapi import APIRouter, BackgroundTasks, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.api.deps import DbSession, PasswordReset, Signup
from app.core.auth import create_jwt, set_auth_cookie
from app.core.config import settings
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse

router = APIRouter()

_CODE_SENT_MSG = "If the address is eligible, a verification code has been sent."


# ===================================================================
# Request models
# ===================================================================


class CodeRequest(BaseModel):
    """Request body for the */request endpoints."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class CodeVerifyRequest(BaseModel):
    """Request body for the */verify endpoints."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    code: str = Field(min_length=1, max_length=12)


class PasswordResetConfirmRequest(BaseModel):
    """Request body for POST /auth/password-reset/confirm."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    reset_ticket: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)


class SignupCompleteRequest(BaseModel):
    """Request body for POST /auth/signup/complete."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    signup_ticket: str = Field(min_length=1, max_length=128)
    full_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


# ===================================================================
# Password reset
# ===================================================================


@router.post("/password-reset/request")
@limiter.limit(lambda: settings.rate_limit_code_request)
async def request_password_reset(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CodeRequest,
    db: DbSession,
    service: PasswordReset,
) -> DataResponse[dict]:
    """Email a reset code when the account exists."""
    await service.request_reset(db, body.email)
    return DataResponse(data={"message": _CODE_SENT_MSG})


@router.post("/password-reset/verify")
@limiter.limit(lambda: settings.rate_limit_code_verify)
async def verify_password_reset_code(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CodeVerifyRequest,
    db: DbSession,
    service: PasswordReset,
) -> DataResponse[dict]:
    """Exchange a reset code for a short-lived reset ticket."""
    ticket = await service.verify_code(db, body.email, body.code)
    return DataResponse(data={"reset_ticket": ticket})


@router.post("/password-reset/confirm")
@limiter.limit(lambda: settings.rate_limit_code_verify)
async def confirm_password_reset(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: PasswordResetConfirmRequest,
    db: DbSession,
    service: PasswordReset,
) -> DataResponse[dict]:
    """Set a new password. Every existing session is signed out."""
    await service.reset_password(
        db, body.email, body.reset_ticket, body.new_password
    )
    return DataResponse(data={"message": "Password updated"})


# ===================================================================
# Signup
# ===================================================================


@router.post("/signup/request")
@limiter.limit(lambda: settings.rate_limit_code_request)
async def request_signup_code(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CodeRequest,
    db: DbSession,
    service: Signup,
) -> DataResponse[dict]:
    """Email a signup code unless the address is already registered."""
    await service.request_code(db, body.email)
    return DataResponse(data={"message": _CODE_SENT_MSG})


@router.post("/signup/verify")
@limiter.limit(lambda: settings.rate_limit_code_verify)
async def verify_signup_code(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CodeVerifyRequest,
    db: DbSession,
    service: Signup,
) -> DataResponse[dict]:
    """Exchange a signup code for a short-lived signup ticket."""
    ticket = await service.verify_code(db, body.email, body.code)
    return DataResponse(data={"signup_ticket": ticket})


@router.post("/signup/complete", status_code=201)
@limiter.limit(lambda: settings.rate_limit_code_verify)
async def complete_signup(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    response: Response,
    body: SignupCompleteRequest,
    background_tasks: BackgroundTasks,
    db: DbSession,
    service: Signup,
) -> DataResponse[dict]:
    """Create the verified account and set the session cookie.

    The welcome push and email go out after the commit, once the response
    has been sent.
    """
    completed = await service.complete_signup(
        db, body.email, body.signup_ticket, body.full_name, body.password
    )
    await db.commit()
    background_tasks.add_task(service.send_welcome, completed)

    user = completed.user
    token = create_jwt(
        user_id=str(user.id),
        secret=settings.auth_secret.get_secret_value(),
    )
    set_auth_cookie(response, token)
    return DataResponse(
        data={
            "user": {
                "id": str(user.id),
                "email": user.email,
                "full_name": user.full_name,
            }
        }
    )
