"""In-memory stores for service tests.

Each fake honors the same conditional-update contract as its repository:
consume, redeem, mark and delete only succeed for rows in the right state,
and report whether this call made the change. The ``db`` argument is
accepted and ignored.
"""

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.core.clock import FrozenClock
from app.models.notification import Notification
from app.models.one_time_credential import OneTimeCredential
from app.models.user import User
from app.models.verification_ticket import VerificationTicket


class FakeCredentialStore:
    def __init__(self) -> None:
        self.rows: list[OneTimeCredential] = []

    async def insert(
        self,
        db: Any,
        *,
        identity: str,
        code: str,
        purpose: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> OneTimeCredential:
        row = OneTimeCredential(
            id=uuid.uuid4(),
            identity=identity,
            code=code,
            purpose=purpose,
            created_at=created_at,
            expires_at=expires_at,
            consumed_at=None,
            superseded_at=None,
        )
        self.rows.append(row)
        return row

    async def find_pending(
        self, db: Any, *, identity: str, code: str, purpose: str
    ) -> OneTimeCredential | None:
        matches = [
            row
            for row in self.rows
            if row.identity == identity
            and row.code == code
            and row.purpose == purpose
            and row.consumed_at is None
            and row.superseded_at is None
        ]
        if not matches:
            return None
        return max(matches, key=lambda row: row.created_at)

    async def conditional_consume(
        self, db: Any, credential_id: uuid.UUID, *, now: datetime
    ) -> bool:
        for row in self.rows:
            if (
                row.id == credential_id
                and row.consumed_at is None
                and row.superseded_at is None
            ):
                row.consumed_at = now
                return True
        return False

    async def delete_expired_before(self, db: Any, before: datetime) -> int:
        kept = [row for row in self.rows if row.expires_at >= before]
        deleted = len(self.rows) - len(kept)
        self.rows = kept
        return deleted

    async def count_live(self, db: Any, identity: str, *, as_of: datetime) -> int:
        return sum(
            1
            for row in self.rows
            if row.identity == identity
            and row.consumed_at is None
            and row.expires_at > as_of
        )

    async def invalidate_all_pending(
        self, db: Any, identity: str, *, now: datetime
    ) -> int:
        count = 0
        for row in self.rows:
            if (
                row.identity == identity
                and row.consumed_at is None
                and row.superseded_at is None
            ):
                row.superseded_at = now
                count += 1
        return count

    async def delete_for_identity(self, db: Any, identity: str) -> int:
        kept = [row for row in self.rows if row.identity != identity]
        deleted = len(self.rows) - len(kept)
        self.rows = kept
        return deleted

    def for_identity(self, identity: str) -> list[OneTimeCredential]:
        return [row for row in self.rows if row.identity == identity]


class FakeTicketStore:
    def __init__(self) -> None:
        self.rows: dict[str, VerificationTicket] = {}

    async def insert(
        self,
        db: Any,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        credential_id: uuid.UUID | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationTicket:
        row = VerificationTicket(
            ticket_hash=ticket_hash,
            identity=identity,
            purpose=purpose,
            credential_id=credential_id,
            created_at=created_at,
            expires_at=expires_at,
            redeemed_at=None,
        )
        self.rows[ticket_hash] = row
        return row

    async def conditional_redeem(
        self,
        db: Any,
        *,
        ticket_hash: str,
        identity: str,
        purpose: str,
        now: datetime,
    ) -> bool:
        row = self.rows.get(ticket_hash)
        if (
            row is None
            or row.identity != identity
            or row.purpose != purpose
            or row.redeemed_at is not None
            or row.expires_at <= now
        ):
            return False
        row.redeemed_at = now
        return True

    async def delete_expired_before(self, db: Any, before: datetime) -> int:
        expired = [h for h, row in self.rows.items() if row.expires_at < before]
        for ticket_hash in expired:
            del self.rows[ticket_hash]
        return len(expired)


class FakeNotificationStore:
    def __init__(self, clock: FrozenClock | None = None) -> None:
        self.rows: list[Notification] = []
        self._clock = clock or FrozenClock()
        self.fail_insert = False

    async def insert(
        self,
        db: Any,
        *,
        recipient_id: uuid.UUID,
        title: str,
        message: str,
        kind: str,
        actor_id: uuid.UUID | None = None,
        related_post_id: int | None = None,
        related_comment_id: int | None = None,
        related_reply_id: int | None = None,
    ) -> Notification:
        if self.fail_insert:
            from app.core.errors import StoreUnavailableError

            raise StoreUnavailableError("notification insert")
        # Distinct timestamps keep newest-first ordering deterministic.
        now = self._clock.advance(timedelta(microseconds=1))
        row = Notification(
            id=uuid.uuid4(),
            recipient_id=recipient_id,
            title=title,
            message=message,
            kind=kind,
            is_read=False,
            actor_id=actor_id,
            related_post_id=related_post_id,
            related_comment_id=related_comment_id,
            related_reply_id=related_reply_id,
            created_at=now,
            updated_at=now,
        )
        self.rows.append(row)
        return row

    async def list_by_recipient(
        self, db: Any, recipient_id: uuid.UUID
    ) -> list[Notification]:
        mine = [row for row in self.rows if row.recipient_id == recipient_id]
        return sorted(mine, key=lambda row: row.created_at, reverse=True)

    async def count_unread(self, db: Any, recipient_id: uuid.UUID) -> int:
        return sum(
            1
            for row in self.rows
            if row.recipient_id == recipient_id and not row.is_read
        )

    async def mark_read(
        self, db: Any, notification_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> bool:
        for row in self.rows:
            if row.id == notification_id and row.recipient_id == recipient_id:
                row.is_read = True
                return True
        return False

    async def mark_all_read(self, db: Any, recipient_id: uuid.UUID) -> int:
        count = 0
        for row in self.rows:
            if row.recipient_id == recipient_id and not row.is_read:
                row.is_read = True
                count += 1
        return count

    async def delete_by_id(
        self, db: Any, notification_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> bool:
        for row in self.rows:
            if row.id == notification_id and row.recipient_id == recipient_id:
                self.rows.remove(row)
                return True
        return False

    async def delete_by_recipient(self, db: Any, recipient_id: uuid.UUID) -> int:
        kept = [row for row in self.rows if row.recipient_id != recipient_id]
        deleted = len(self.rows) - len(kept)
        self.rows = kept
        return deleted


def make_user(
    email: str = "student@cuet.ac.bd",
    *,
    full_name: str | None = "Test Student",
    is_admin: bool = False,
    password_hash: str | None = None,
) -> User:
    """Detached User with a fresh id."""
    return User(
        id=uuid.uuid4(),
        email=email,
        full_name=full_name,
        password_hash=password_hash,
        is_admin=is_admin,
        email_verified=None,
        token_invalidated_before=None,
    )


class FakeUserDirectory:
    def __init__(self, users: Iterable[User] = ()) -> None:
        self.users: dict[uuid.UUID, User] = {user.id: user for user in users}
        self.fail_create_with_integrity_error = False

    def add(self, user: User) -> User:
        self.users[user.id] = user
        return user

    async def get_by_id(self, db: Any, user_id: uuid.UUID) -> User | None:
        return self.users.get(user_id)

    async def get_by_email(self, db: Any, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self.users.values():
            if user.email == wanted:
                return user
        return None

    async def create(
        self,
        db: Any,
        *,
        email: str,
        full_name: str | None = None,
        password_hash: str | None = None,
        email_verified: datetime | None = None,
    ) -> User:
        if self.fail_create_with_integrity_error:
            raise IntegrityError("INSERT INTO users", {}, Exception("duplicate"))
        user = make_user(email, full_name=full_name, password_hash=password_hash)
        user.email_verified = email_verified
        return self.add(user)

    async def update(
        self, db: Any, user_id: uuid.UUID, **kwargs: Any
    ) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        for key, value in kwargs.items():
            setattr(user, key, value)
        return user

    async def list_admins(self, db: Any) -> list[User]:
        return [user for user in self.users.values() if user.is_admin]

    async def get_names(
        self, db: Any, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str | None]:
        return {
            user_id: self.users[user_id].full_name
            for user_id in user_ids
            if user_id in self.users
        }


class RecordingEmailTransport:
    """EmailTransport that records each send and returns ``result``."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        *,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        to_name: str | None = None,
    ) -> bool:
        self.sent.append(
            {
                "to_address": to_address,
                "to_name": to_name,
                "subject": subject,
                "html_body": html_body,
                "text_body": text_body,
            }
        )
        return self.result


class RecordingPublisher:
    """RealtimePublisher that records pushes. ``online`` users get 1 socket."""

    def __init__(self, online: Iterable[uuid.UUID] = ()) -> None:
        self.online = set(online)
        self.pushed: list[tuple[uuid.UUID, str, dict[str, Any]]] = []
        self.broadcasts: list[tuple[str, dict[str, Any]]] = []

    async def publish_to_user(
        self, user_id: uuid.UUID, topic: str, payload: dict[str, Any]
    ) -> int:
        self.pushed.append((user_id, topic, payload))
        return 1 if user_id in self.online else 0

    async def publish_broadcast(self, topic: str, payload: dict[str, Any]) -> int:
        self.broadcasts.append((topic, payload))
        return len(self.online)


T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
