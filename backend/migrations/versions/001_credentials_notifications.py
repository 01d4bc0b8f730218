"""Create users, one-time credential, verification ticket and notification tables.

Revision ID: 001_credentials_notifications
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_credentials_notifications"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # pgcrypto provides gen_random_uuid() for UUID primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("email_verified", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "token_invalidated_before", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        *_timestamps(),
    )
    op.create_index("idx_user_email", "users", ["email"], unique=True)

    # Codes are never updated in place except consumed_at / superseded_at.
    op.create_table(
        "one_time_credentials",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column("code", sa.String(12), nullable=False),
        sa.Column("purpose", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "purpose IN ('password_reset', 'signup')",
            name="ck_one_time_credentials_purpose",
        ),
    )
    op.create_index(
        "ix_one_time_credentials_identity_code",
        "one_time_credentials",
        ["identity", "code"],
    )
    op.create_index(
        "ix_one_time_credentials_expires_at",
        "one_time_credentials",
        ["expires_at"],
    )

    op.create_table(
        "verification_tickets",
        sa.Column("ticket_hash", sa.String(64), primary_key=True),
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column("purpose", sa.String(20), nullable=False),
        sa.Column(
            "credential_id",
            sa.UUID(),
            sa.ForeignKey("one_time_credentials.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_verification_tickets_identity", "verification_tickets", ["identity"]
    )
    op.create_index(
        "ix_verification_tickets_expires_at", "verification_tickets", ["expires_at"]
    )

    op.create_table(
        "notifications",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "recipient_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column(
            "is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("related_post_id", sa.BigInteger(), nullable=True),
        sa.Column("related_comment_id", sa.BigInteger(), nullable=True),
        sa.Column("related_reply_id", sa.BigInteger(), nullable=True),
        sa.Column("actor_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "kind IN ('post_comment', 'comment_reply', 'new_post_admin', 'welcome')",
            name="ck_notifications_kind",
        ),
    )
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("verification_tickets")
    op.drop_table("one_time_credentials")
    op.drop_table("users")
