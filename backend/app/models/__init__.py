"""SQLAlchemy ORM models.

All models are exported from this module for convenient imports:
    from app.models import User, Notification, OneTimeCredential, ...

- user.py: User
- one_time_credential.py: OneTimeCredential (+ purpose/status enums)
- verification_ticket.py: VerificationTicket
- notification.py: Notification (+ NotificationKind)
"""

from app.models.base import Base, TimestampMixin
from app.models.notification import (
    ADMIN_BROADCAST_KINDS,
    Notification,
    NotificationKind,
)
from app.models.one_time_credential import (
    CredentialPurpose,
    CredentialStatus,
    OneTimeCredential,
)
from app.models.user import User
from app.models.verification_ticket import VerificationTicket

__all__ = [
    "ADMIN_BROADCAST_KINDS",
    "Base",
    "CredentialPurpose",
    "CredentialStatus",
    "Notification",
    "NotificationKind",
    "OneTimeCredential",
    "TimestampMixin",
    "User",
    "VerificationTicket",
]
