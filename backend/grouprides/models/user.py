"""Rider account: contact email, saved location and notification preferences.

notification_radius_miles: local-ride alert radius; NULL means the default (25) applies.
Preference flags are nullable for legacy rows; NULL is read as enabled.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, true
from sqlalchemy.sql import func

from grouprides.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=True)
    email = Column(String(256), nullable=True, unique=True, index=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    email_notifications_enabled = Column(Boolean, nullable=True, default=True, server_default=true())
    notify_local_rides = Column(Boolean, nullable=True, default=True, server_default=true())
    notify_ride_cancellations = Column(Boolean, nullable=True, default=True, server_default=true())
    notify_ride_messages = Column(Boolean, nullable=True, default=True, server_default=true())
    notify_direct_messages = Column(Boolean, nullable=True, default=True, server_default=true())
    notification_radius_miles = Column(Integer, nullable=True, default=25)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
