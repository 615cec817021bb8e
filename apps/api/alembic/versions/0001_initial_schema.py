"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates:
1. admins, admin_sessions and password_resets for admin authentication
2. students and signups for the public signup flow
3. message_templates, delivery_logs and audit_logs (no application code yet)

Enum types are created explicitly with checkfirst so the migration can be
re-run against a database where they already exist.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

CLASS_TYPES = ("TYPE_1", "TYPE_2", "TYPE_3", "TYPE_4", "TYPE_5", "TYPE_6")

admin_role_enum = postgresql.ENUM(
    "viewer", "admin", "super_admin", name="admin_role", create_type=False
)
class_type_enum = postgresql.ENUM(*CLASS_TYPES, name="class_type", create_type=False)
signup_status_enum = postgresql.ENUM(
    "PENDING", "SENT", "FAILED", name="signup_status", create_type=False
)
message_channel_enum = postgresql.ENUM("EMAIL", "SMS", name="message_channel", create_type=False)

ENUMS = (admin_role_enum, class_type_enum, signup_status_enum, message_channel_enum)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create every table of the signup system."""
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # ----- Admin authentication -----
    op.create_table(
        "admins",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", admin_role_enum, nullable=False, server_default="viewer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admins_email"), "admins", ["email"], unique=True)

    op.create_table(
        "admin_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=False),
        # SHA-256 fingerprints of the issued tokens
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("refresh_token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["admin_id"], ["admins.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token"),
        sa.UniqueConstraint("refresh_token"),
    )
    op.create_index(op.f("ix_admin_sessions_admin_id"), "admin_sessions", ["admin_id"])
    op.create_index("ix_admin_sessions_expires_at", "admin_sessions", ["expires_at"])

    op.create_table(
        "password_resets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["admin_id"], ["admins.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token"),
    )
    op.create_index(op.f("ix_password_resets_admin_id"), "password_resets", ["admin_id"])

    # ----- Students and signups -----
    op.create_table(
        "students",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("opted_out_email", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("opted_out_sms", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL",
            name="ck_students_email_or_phone",
        ),
    )
    op.create_index(op.f("ix_students_email"), "students", ["email"], unique=True)
    op.create_index(op.f("ix_students_phone"), "students", ["phone"], unique=True)

    op.create_table(
        "signups",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("class_type", class_type_enum, nullable=False),
        sa.Column("status", signup_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("reminder_scheduled_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_signups_student_id"), "signups", ["student_id"])
    op.create_index("ix_signups_status", "signups", ["status"])
    op.create_index("ix_signups_class_type", "signups", ["class_type"])
    op.create_index("ix_signups_reminder_scheduled_date", "signups", ["reminder_scheduled_date"])
    # At most one pending signup per student
    op.create_index(
        "uq_signups_student_pending",
        "signups",
        ["student_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    # ----- Messaging and audit (schema only) -----
    op.create_table(
        "message_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("class_type", class_type_enum, nullable=False),
        sa.Column("channel", message_channel_enum, nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("class_type", "channel", name="uq_message_templates_type_channel"),
    )

    op.create_table(
        "delivery_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("signup_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("channel", message_channel_enum, nullable=False),
        sa.Column("status", signup_status_enum, nullable=False),
        sa.Column("provider_message_id", sa.String(length=255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "attempted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["signup_id"], ["signups.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_delivery_logs_signup_id"), "delivery_logs", ["signup_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["admin_id"], ["admins.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_audit_logs_admin_id"), "audit_logs", ["admin_id"])
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop every table and enum type, dependents first."""
    op.drop_index(op.f("ix_audit_logs_created_at"), table_name="audit_logs")
    op.drop_index(op.f("ix_audit_logs_admin_id"), table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index(op.f("ix_delivery_logs_signup_id"), table_name="delivery_logs")
    op.drop_table("delivery_logs")
    op.drop_table("message_templates")

    op.drop_index("uq_signups_student_pending", table_name="signups")
    op.drop_index("ix_signups_reminder_scheduled_date", table_name="signups")
    op.drop_index("ix_signups_class_type", table_name="signups")
    op.drop_index("ix_signups_status", table_name="signups")
    op.drop_index(op.f("ix_signups_student_id"), table_name="signups")
    op.drop_table("signups")

    op.drop_index(op.f("ix_students_phone"), table_name="students")
    op.drop_index(op.f("ix_students_email"), table_name="students")
    op.drop_table("students")

    op.drop_index(op.f("ix_password_resets_admin_id"), table_name="password_resets")
    op.drop_table("password_resets")

    op.drop_index("ix_admin_sessions_expires_at", table_name="admin_sessions")
    op.drop_index(op.f("ix_admin_sessions_admin_id"), table_name="admin_sessions")
    op.drop_table("admin_sessions")

    op.drop_index(op.f("ix_admins_email"), table_name="admins")
    op.drop_table("admins")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
