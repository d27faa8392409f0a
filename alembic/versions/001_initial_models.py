"""Initial models - users, letters, history, notifications, requests, permissions

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # Create users table
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="EMPLOYEE"),
        sa.Column("can_login", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("telegram_chat_id", sa.String(100), nullable=True),
        sa.Column("notify_email", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_telegram", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notify_sms", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notify_in_app", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("quiet_hours_start", sa.String(5), nullable=True),
        sa.Column("quiet_hours_end", sa.String(5), nullable=True),
        sa.Column("digest_frequency", sa.String(20), nullable=False, server_default="NONE"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    # Create user_profiles table
    op.create_table(
        "user_profiles",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("department", sa.String(255), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)
    op.create_index("ix_user_profiles_created_at", "user_profiles", ["created_at"])

    # Create notification_preferences table
    op.create_table(
        "notification_preferences",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("settings", postgresql.JSON(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notification_preferences_user_id",
        "notification_preferences",
        ["user_id"],
        unique=True,
    )
    op.create_index(
        "ix_notification_preferences_created_at", "notification_preferences", ["created_at"]
    )

    # Create role_permissions table
    op.create_table(
        "role_permissions",
        _id(),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("permission", sa.String(50), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role", "permission", name="uq_role_permissions_role_permission"),
    )
    op.create_index("ix_role_permissions_created_at", "role_permissions", ["created_at"])

    # Create tags table
    op.create_table(
        "tags",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(20), nullable=False, server_default="#6B7280"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_tags_created_at", "tags", ["created_at"])

    # Create letters table
    op.create_table(
        "letters",
        _id(),
        sa.Column("number", sa.String(50), nullable=False),
        sa.Column("org", sa.String(500), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deadline_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="NOT_REVIEWED"),
        sa.Column("type", sa.String(200), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("contacts", sa.String(500), nullable=True),
        sa.Column("answer", sa.Text(), nullable=True),
        sa.Column("zordoc", sa.Text(), nullable=True),
        sa.Column("jira_link", sa.String(500), nullable=True),
        sa.Column("send_status", sa.String(200), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("applicant_name", sa.String(200), nullable=True),
        sa.Column("applicant_email", sa.String(320), nullable=True),
        sa.Column("applicant_phone", sa.String(50), nullable=True),
        sa.Column("applicant_telegram_chat_id", sa.String(50), nullable=True),
        sa.Column("applicant_access_token", sa.String(255), nullable=True),
        sa.Column(
            "applicant_access_token_expires_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("applicant_access_token"),
    )
    op.create_index("ix_letters_number", "letters", ["number"])
    op.create_index("ix_letters_deadline_date", "letters", ["deadline_date"])
    op.create_index("ix_letters_status", "letters", ["status"])
    op.create_index("ix_letters_owner_id", "letters", ["owner_id"])
    op.create_index("ix_letters_deleted_at", "letters", ["deleted_at"])
    op.create_index("ix_letters_created_at", "letters", ["created_at"])
    op.create_index("ix_letters_status_deadline", "letters", ["status", "deadline_date"])

    # Create letter_tags association table
    op.create_table(
        "letter_tags",
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tag_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("letter_id", "tag_id"),
    )

    # Create letter_history table
    op.create_table(
        "letter_history",
        _id(),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("field", sa.String(100), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_letter_history_user_id", "letter_history", ["user_id"])
    op.create_index("ix_letter_history_created_at", "letter_history", ["created_at"])
    op.create_index(
        "ix_letter_history_letter_created", "letter_history", ["letter_id", "created_at"]
    )

    # Create watchers and favorites tables
    op.create_table(
        "watchers",
        _id(),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("notify_on_change", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("letter_id", "user_id", name="uq_watchers_letter_user"),
    )
    op.create_index("ix_watchers_letter_id", "watchers", ["letter_id"])
    op.create_index("ix_watchers_user_id", "watchers", ["user_id"])
    op.create_index("ix_watchers_created_at", "watchers", ["created_at"])

    op.create_table(
        "favorites",
        _id(),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("letter_id", "user_id", name="uq_favorites_letter_user"),
    )
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
    op.create_index("ix_favorites_created_at", "favorites", ["created_at"])

    # Create comments table
    op.create_table(
        "comments",
        _id(),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["comments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_letter_id", "comments", ["letter_id"])
    op.create_index("ix_comments_created_at", "comments", ["created_at"])

    # Create letter_files table
    op.create_table(
        "letter_files",
        _id(),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("url", sa.String(2000), nullable=False),
        sa.Column("size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(200), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="READY"),
        _created_at(),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_letter_files_letter_id", "letter_files", ["letter_id"])
    op.create_index("ix_letter_files_created_at", "letter_files", ["created_at"])

    # Create letter_templates table
    op.create_table(
        "letter_templates",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_letter_templates_created_at", "letter_templates", ["created_at"])

    # Create notifications table
    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("letter_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dedupe_key", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSON(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["letter_id"], ["letters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_letter_id", "notifications", ["letter_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index(
        "ix_notifications_user_dedupe",
        "notifications",
        ["user_id", "dedupe_key", "created_at"],
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    # Create notification_deliveries table
    op.create_table(
        "notification_deliveries",
        _id(),
        sa.Column("notification_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="QUEUED"),
        sa.Column("recipient", sa.String(320), nullable=True),
        sa.Column("error", sa.String(255), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["notification_id"], ["notifications.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notification_deliveries_notification_id",
        "notification_deliveries",
        ["notification_id"],
    )
    op.create_index(
        "ix_notification_deliveries_user_id", "notification_deliveries", ["user_id"]
    )
    op.create_index(
        "ix_notification_deliveries_created_at", "notification_deliveries", ["created_at"]
    )

    # Create notification_subscriptions table
    op.create_table(
        "notification_subscriptions",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event", sa.String(50), nullable=False, server_default="ALL"),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("value", sa.String(255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notification_subscriptions_user_id", "notification_subscriptions", ["user_id"]
    )
    op.create_index(
        "ix_notification_subscriptions_created_at",
        "notification_subscriptions",
        ["created_at"],
    )

    # Create requests table
    op.create_table(
        "requests",
        _id(),
        sa.Column("organization", sa.String(500), nullable=False),
        sa.Column("contact_name", sa.String(200), nullable=False),
        sa.Column("contact_email", sa.String(320), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_telegram", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="NEW"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("category", sa.String(30), nullable=False, server_default="OTHER"),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sla_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_response_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sla_status", sa.String(20), nullable=False, server_default="ON_TIME"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_requests_status", "requests", ["status"])
    op.create_index("ix_requests_priority", "requests", ["priority"])
    op.create_index("ix_requests_deleted_at", "requests", ["deleted_at"])
    op.create_index("ix_requests_created_at", "requests", ["created_at"])

    # Create request_history table
    op.create_table(
        "request_history",
        _id(),
        sa.Column("request_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("field", sa.String(100), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["request_id"], ["requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_request_history_created_at", "request_history", ["created_at"])
    op.create_index(
        "ix_request_history_request_created",
        "request_history",
        ["request_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("request_history")
    op.drop_table("requests")
    op.drop_table("notification_subscriptions")
    op.drop_table("notification_deliveries")
    op.drop_table("notifications")
    op.drop_table("letter_templates")
    op.drop_table("letter_files")
    op.drop_table("comments")
    op.drop_table("favorites")
    op.drop_table("watchers")
    op.drop_table("letter_history")
    op.drop_table("letter_tags")
    op.drop_table("letters")
    op.drop_table("tags")
    op.drop_table("role_permissions")
    op.drop_table("notification_preferences")
    op.drop_table("user_profiles")
    op.drop_table("users")
