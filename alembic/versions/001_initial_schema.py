"""Initial schema — salon scheduling and reminder tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # Overlap exclusion on appointments mixes a uuid equality with a range
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "audit_log",
        sa.Column("event_type", sa.String(100), nullable=False, index=True),
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("actor_id", sa.String(100), comment="Staff ID or 'system'"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "staff",
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("working_hours_start", sa.Time(), nullable=False),
        sa.Column("working_hours_end", sa.Time(), nullable=False),
        sa.Column("break_start", sa.Time()),
        sa.Column("break_end", sa.Time()),
        sa.Column(
            "working_days",
            postgresql.ARRAY(sa.String(10)),
            nullable=False,
            comment="Lower-case weekday names",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "clients",
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("email", sa.String(255)),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "reminder_settings",
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("reminder_timing", sa.String(20), nullable=False, comment="24_hours or 2_hours"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("message_template", sa.Text(), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "whatsapp_messages",
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("recipient_phone", sa.String(30), nullable=False),
        sa.Column("recipient_name", sa.String(200)),
        sa.Column("message_content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("whatsapp_message_id", sa.String(255)),
        sa.Column("error_message", sa.Text()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── Appointments (depends on staff, clients) ───────────────────────

    op.create_table(
        "appointments",
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("staff_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("staff.id"), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clients.id")),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("service", sa.String(200), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.String(1000)),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "end_time > start_time OR end_time = time '00:00'",
            name="ck_appointments_end_after_start",
        ),
    )
    op.create_index("ix_appointments_staff_date", "appointments", ["staff_id", "date"])
    op.create_index("ix_appointments_salon_date", "appointments", ["salon_id", "date"])
    op.create_exclude_constraint(
        "ex_appointments_staff_no_overlap",
        "appointments",
        ("staff_id", "="),
        (
            sa.text(
                "tsrange(\"date\" + start_time, "
                "CASE WHEN end_time = time '00:00' THEN (\"date\" + 1) + time '00:00' "
                "ELSE \"date\" + end_time END, '[)')"
            ),
            "&&",
        ),
        where=sa.text("status IN ('confirmed', 'in_progress', 'scheduled')"),
        using="gist",
    )

    # ── Reminder jobs (depends on appointments) ────────────────────────

    op.create_table(
        "reminder_jobs",
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("salon_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reminder_type", sa.String(20), nullable=False),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_phone", sa.String(30), nullable=False),
        sa.Column("message_content", sa.Text(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        sa.Column("gateway_message_id", sa.String(255)),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    # One live job per (appointment, reminder type); cancelled jobs don't count
    op.create_index(
        "uq_reminder_jobs_appointment_type_active",
        "reminder_jobs",
        ["appointment_id", "reminder_type"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index("ix_reminder_jobs_status_scheduled", "reminder_jobs", ["status", "scheduled_time"])


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_index("ix_reminder_jobs_status_scheduled", table_name="reminder_jobs")
    op.drop_index("uq_reminder_jobs_appointment_type_active", table_name="reminder_jobs")
    op.drop_table("reminder_jobs")
    op.drop_index("ix_appointments_salon_date", table_name="appointments")
    op.drop_index("ix_appointments_staff_date", table_name="appointments")
    op.drop_constraint("ex_appointments_staff_no_overlap", "appointments")
    op.drop_table("appointments")
    op.drop_table("whatsapp_messages")
    op.drop_table("reminder_settings")
    op.drop_table("clients")
    op.drop_table("staff")
    op.drop_table("audit_log")
