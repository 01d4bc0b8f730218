"""Shared fixtures for API tests.

The app runs with every service dependency overridden by instances built
on the in-memory stores, so no database is needed. Auth runs in local
mode (DEFAULT_USER_ID) unless a test turns it on.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from app.api import deps
from app.core.clock import FrozenClock
from app.core.config import settings
from app.core.database import get_db
from app.models.user import User
from app.services.credential_issuer import CredentialIssuer
from app.services.credential_rate_limiter import CredentialRateLimiter
from app.services.delivery_channels import EmailChannel, RealtimeChannel
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_events import NotificationEvents
from app.services.password_reset import PasswordResetService
from app.services.signup_verification import SignupVerificationService
from tests.conftest import TEST_AUTH_SECRET, TEST_USER_ID
from tests.fakes import (
    T0,
    FakeCredentialStore,
    FakeNotificationStore,
    FakeTicketStore,
    FakeUserDirectory,
    RecordingEmailTransport,
    RecordingPublisher,
    make_user,
)


class FakeBackend:
    """Every store, transport and service an API test can inspect."""

    def __init__(self) -> None:
        self.clock = FrozenClock(T0)
        self.credentials = FakeCredentialStore()
        self.tickets = FakeTicketStore()
        self.notifications = FakeNotificationStore()
        self.transport = RecordingEmailTransport()
        self.publisher = RecordingPublisher()

        self.user = make_user("test@example.com", full_name="Test User")
        self.user.id = TEST_USER_ID
        self.users = FakeUserDirectory([self.user])

        self.issuer = CredentialIssuer(
            store=self.credentials,
            tickets=self.tickets,
            clock=self.clock,
            rate_limiter=CredentialRateLimiter(self.credentials, max_live=5),
            ttl=timedelta(minutes=10),
            ticket_ttl=timedelta(minutes=10),
            code_length=6,
        )
        self.dispatcher = NotificationDispatcher(
            realtime=RealtimeChannel(self.publisher),
            email=EmailChannel(self.transport),
            store=self.notifications,
            users=self.users,
        )
        self.events = NotificationEvents(self.dispatcher, users=self.users)
        self.password_reset = PasswordResetService(
            self.issuer,
            self.transport,
            users=self.users,
            store=self.credentials,
            clock=self.clock,
        )
        self.signup = SignupVerificationService(
            self.issuer,
            self.transport,
            self.events,
            users=self.users,
            store=self.credentials,
            clock=self.clock,
        )

    def last_code(self) -> str:
        return self.transport.sent[-1]["text_body"].split("code: ")[1][:6]

    def add_user(self, email: str, **kwargs) -> User:
        return self.users.add(make_user(email, **kwargs))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def local_auth(monkeypatch) -> None:
    """Local mode: every request acts as TEST_USER_ID."""
    monkeypatch.setattr(settings, "auth_enabled", False)
    monkeypatch.setattr(settings, "default_user_id", TEST_USER_ID)
    monkeypatch.setattr(settings, "auth_secret", SecretStr(TEST_AUTH_SECRET))


@pytest.fixture
def db_mock() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def api_app(backend, local_auth, db_mock):  # noqa: ARG001
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield db_mock

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_password_reset_service] = (
        lambda: backend.password_reset
    )
    app.dependency_overrides[deps.get_signup_service] = lambda: backend.signup
    app.dependency_overrides[deps.get_notification_dispatcher] = (
        lambda: backend.dispatcher
    )
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
