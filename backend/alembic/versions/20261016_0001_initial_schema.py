"""Create providers, session types, calendars, bookings and calendar events.

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:01
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261016_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_providers_username", "providers", ["username"], unique=True)
    op.create_index("ix_providers_email", "providers", ["email"], unique=True)

    op.create_table(
        "session_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("unique_link", sa.String(length=64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "duration_minutes >= 1 AND duration_minutes <= 480",
            name="ck_session_types_duration_minutes",
        ),
    )
    op.create_index("ix_session_types_provider_id", "session_types", ["provider_id"], unique=False)
    op.create_index("ix_session_types_unique_link", "session_types", ["unique_link"], unique=True)

    op.create_table(
        "calendars",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_calendars_provider_id", "calendars", ["provider_id"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_type_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["session_type_id"], ["session_types.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL",
            name="ck_bookings_contact",
        ),
    )
    op.create_index("ix_bookings_session_type_id", "bookings", ["session_type_id"], unique=False)
    op.create_index("ix_bookings_start_time", "bookings", ["start_time"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)

    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("calendar_id", sa.Integer(), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["calendar_id"], ["calendars.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="SET NULL"),
        sa.CheckConstraint("start_time < end_time", name="ck_calendar_events_range"),
    )
    op.create_index("ix_calendar_events_calendar_id", "calendar_events", ["calendar_id"], unique=False)
    op.create_index("ix_calendar_events_booking_id", "calendar_events", ["booking_id"], unique=False)
    op.create_index("ix_calendar_events_start_time", "calendar_events", ["start_time"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_calendar_events_start_time", table_name="calendar_events")
    op.drop_index("ix_calendar_events_booking_id", table_name="calendar_events")
    op.drop_index("ix_calendar_events_calendar_id", table_name="calendar_events")
    op.drop_table("calendar_events")

    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_start_time", table_name="bookings")
    op.drop_index("ix_bookings_session_type_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_calendars_provider_id", table_name="calendars")
    op.drop_table("calendars")

    op.drop_index("ix_session_types_unique_link", table_name="session_types")
    op.drop_index("ix_session_types_provider_id", table_name="session_types")
    op.drop_table("session_types")

    op.drop_index("ix_providers_email", table_name="providers")
    op.drop_index("ix_providers_username", table_name="providers")
    op.drop_table("providers")
