"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts the
registered models match this list.
"""
# All tables that exist in the DB. Must match models and migration 001.
ALL_TABLE_NAMES = (
    "users",
    "trail_systems",
    "trails",
    "rides",
    "ride_trails",
    "ride_attendees",
    "messages",
    "message_recipients",
    "message_notifications",
)

