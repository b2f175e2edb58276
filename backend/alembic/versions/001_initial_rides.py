"""Initial schema: users, trails, rides (+ trails/attendees), messages, message_notifications.

message_notifications is the notification throttle: one row per delivered email, looked up by
(user_id, source_type, created_at) plus ride_id or sender_id scope.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("email", sa.String(256), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("email_notifications_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("notify_local_rides", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("notify_ride_cancellations", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("notify_ride_messages", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("notify_direct_messages", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("notification_radius_miles", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "trail_systems",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(256), nullable=False),
    )
    op.create_index("ix_trail_systems_name", "trail_systems", ["name"])

    op.create_table(
        "trails",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("difficulty", sa.String(32), nullable=True),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("distance_km", sa.Float(), nullable=True),
        sa.Column("coordinates", _JSON, nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("trail_system_id", sa.Integer(), sa.ForeignKey("trail_systems.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_trails_trail_system_id", "trails", ["trail_system_id"])

    op.create_table(
        "rides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(256), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recurrence", sa.String(16), nullable=False, server_default="none"),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("postponed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_rides_date", "rides", ["date"])
    op.create_index("ix_rides_user_id", "rides", ["user_id"])

    op.create_table(
        "ride_trails",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer(), sa.ForeignKey("rides.id", ondelete="CASCADE"), nullable=False),
        sa.Column("trail_id", sa.Integer(), sa.ForeignKey("trails.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_ride_trails_ride_id", "ride_trails", ["ride_id"])

    op.create_table(
        "ride_attendees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer(), sa.ForeignKey("rides.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("ride_id", "user_id", name="uq_ride_attendees_ride_user"),
    )
    op.create_index("ix_ride_attendees_ride_id", "ride_attendees", ["ride_id"])
    op.create_index("ix_ride_attendees_user_id", "ride_attendees", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ride_id", sa.Integer(), sa.ForeignKey("rides.id", ondelete="CASCADE"), nullable=True),
        sa.Column("label", sa.String(64), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_ride_id", "messages", ["ride_id"])

    op.create_table(
        "message_recipients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("message_id", sa.Integer(), sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_message_recipients_message_id", "message_recipients", ["message_id"])
    op.create_index("ix_message_recipients_user_id", "message_recipients", ["user_id"])

    op.create_table(
        "message_notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("ride_id", sa.Integer(), nullable=True),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("metadata", _JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_message_notifications_user_id", "message_notifications", ["user_id"])
    op.create_index(
        "ix_message_notifications_lookup",
        "message_notifications",
        ["user_id", "source_type", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("message_notifications")
    op.drop_table("message_recipients")
    op.drop_table("messages")
    op.drop_table("ride_attendees")
    op.drop_table("ride_trails")
    op.drop_table("rides")
    op.drop_table("trails")
    op.drop_table("trail_systems")
    op.drop_table("users")
