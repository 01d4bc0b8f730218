"""Application configuration loaded from environment variables.

One pydantic-settings object, read from the environment or a ``.env`` file
(names are case-insensitive: CREDENTIAL_TTL_MINUTES sets
credential_ttl_minutes). Invalid combinations fail at import time.
"""

import uuid
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Development-only password; rejected when ENVIRONMENT=production.
_INSECURE_DEFAULT_PASSWORD = "sphere_dev_password"  # nosec B105

# 256 bits of HS256 key material.
_MIN_AUTH_SECRET_LENGTH = 32

# Bounded by the width of one_time_credentials.code.
_MIN_CODE_LENGTH = 4
_MAX_CODE_LENGTH = 12

_POSITIVE_FIELDS = (
    "credential_ttl_minutes",
    "credential_max_live",
    "credential_code_length",
    "ticket_ttl_minutes",
    "sweep_interval_seconds",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "sphere"
    database_user: str = "sphere_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # Server. 0.0.0.0 so the API is reachable inside a container.
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000
    allowed_origins: list[str] = ["http://localhost:5173"]
    environment: str = "development"
    log_level: str = "INFO"

    # Sessions. With auth disabled every request acts as default_user_id.
    auth_enabled: bool = False
    default_user_id: uuid.UUID | None = None
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "sphere"
    auth_cookie_name: str = "sphere.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""

    # One-time codes and the tickets they are exchanged for
    credential_ttl_minutes: int = 10
    credential_max_live: int = 5
    credential_code_length: int = 6
    ticket_ttl_minutes: int = 10

    # Expiry sweeper
    sweep_enabled: bool = True
    sweep_interval_seconds: int = 3600
    sweep_grace_minutes: int = 0

    # Email via Brevo; an empty key selects the log-only transport.
    brevo_api_key: SecretStr = SecretStr("")
    email_from: str = "noreply@cuetsphere.com"
    email_from_name: str = "CUET Sphere"
    email_timeout_seconds: float = 5.0

    # Realtime push
    realtime_timeout_seconds: float = 0.5

    # Per-client throttling of the code endpoints (slowapi "count/period")
    rate_limit_enabled: bool = True
    rate_limit_code_request: str = "5/hour"
    rate_limit_code_verify: str = "10/minute"

    @property
    def database_url(self) -> str:
        """asyncpg URL used by the application engine."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Driverless URL for Alembic and other sync tooling."""
        return self.database_url.replace("postgresql+asyncpg://", "postgresql://", 1)

    @property
    def email_configured(self) -> bool:
        return bool(self.brevo_api_key.get_secret_value().strip())

    @model_validator(mode="after")
    def check_windows_and_timeouts(self) -> "Settings":
        """Lifetimes, limits and intervals must be positive; grace may be 0."""
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name.upper()} must be positive. Got: {value}"
                raise ValueError(msg)
        if not _MIN_CODE_LENGTH <= self.credential_code_length <= _MAX_CODE_LENGTH:
            msg = (
                f"CREDENTIAL_CODE_LENGTH must be between {_MIN_CODE_LENGTH} and "
                f"{_MAX_CODE_LENGTH}. Got: {self.credential_code_length}"
            )
            raise ValueError(msg)
        if self.sweep_grace_minutes < 0:
            msg = (
                "SWEEP_GRACE_MINUTES cannot be negative. "
                f"Got: {self.sweep_grace_minutes}"
            )
            raise ValueError(msg)
        if min(self.email_timeout_seconds, self.realtime_timeout_seconds) <= 0:
            msg = "Channel timeouts must be positive"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_cookie_and_cors(self) -> "Settings":
        """Cookie sessions rule out wildcard CORS and insecure SameSite=None."""
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none; "
                "browsers drop SameSite=None cookies without Secure."
            )
            raise ValueError(msg)
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard): session "
                "cookies cannot be sent to wildcard CORS origins."
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """No default database password or weak AUTH_SECRET in production."""
        if self.environment != "production":
            return self
        if self.database_password == _INSECURE_DEFAULT_PASSWORD:
            msg = (
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD."
            )
            raise ValueError(msg)
        if self.auth_enabled:
            secret = self.auth_secret.get_secret_value()
            if not secret:
                msg = "AUTH_SECRET must be set when AUTH_ENABLED=true in production."
                raise ValueError(msg)
            if len(secret) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters."
                )
                raise ValueError(msg)
        return self


settings = Settings()
