"""API error classes.

Each subclass fixes an HTTP status and a machine-readable code; main.py
renders any of them as ``{"error": {"code", "message", "details"}}``.
Credential failures share one user-facing message so a client cannot tell
a wrong code from a used one.
"""

# Shared by every credential failure the user can see.
INVALID_CODE_MESSAGE = "Invalid or expired code. Please request a new one."


class APIError(Exception):
    """Base class for errors that reach an API caller.

    Attributes:
        code: Machine-readable error code (e.g. "NOT_FOUND").
        message: Human-readable message, safe to show to end users.
        status_code: HTTP status to respond with.
        details: Optional field-level details (validation errors).
    """

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(APIError):
    """Malformed input, weak password or bad display name (400)."""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message, details=details)


class UnauthorizedError(APIError):
    """Missing, invalid or revoked session (401)."""

    status_code = 401
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class NotFoundError(APIError):
    """Resource missing, or owned by someone else (404).

    Both cases look the same so ownership is never revealed.
    """

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            super().__init__(f"{resource} with id '{resource_id}' not found")
        else:
            super().__init__(f"{resource} not found")


class ConflictError(APIError):
    """Duplicate resource, e.g. an account created mid-signup (409)."""

    status_code = 409

    def __init__(
        self, code: str, message: str, details: list[dict] | None = None
    ) -> None:
        super().__init__(message, code=code, details=details)


class RateLimitedError(APIError):
    """Identity already holds the maximum number of live codes (429)."""

    status_code = 429
    default_code = "RATE_LIMITED"
    default_message = "Too many verification requests. Please try again later."


class CredentialNotFoundError(APIError):
    """No pending code matches; covers wrong and already-used codes (400)."""

    status_code = 400
    default_code = "INVALID_CODE"
    default_message = INVALID_CODE_MESSAGE


class CredentialExpiredError(APIError):
    """The matching code is past its validity window (400)."""

    status_code = 400
    default_code = "CODE_EXPIRED"
    default_message = INVALID_CODE_MESSAGE


class InvalidTicketError(APIError):
    """Verification ticket unknown, already redeemed or expired (400)."""

    status_code = 400
    default_code = "INVALID_TICKET"
    default_message = "Verification has expired. Please start again."


class StoreUnavailableError(APIError):
    """Persistence failed (503). Fatal to the request; never retried inline."""

    status_code = 503
    default_code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str) -> None:
        super().__init__(f"Storage unavailable during {operation}")


class InternalError(APIError):
    """Unexpected server error (500). Never carries internal detail."""


class ChannelFailedError(Exception):
    """A delivery channel could not deliver.

    Not an APIError: channels turn it into a failed DeliveryOutcome and the
    dispatcher logs it.
    """
