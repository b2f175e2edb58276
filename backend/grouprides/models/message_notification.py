"""Throttle record: one row per email actually delivered by the notification engine.

user_id: recipient. source_type: notification kind (RIDE_MESSAGE, DIRECT_MESSAGE, HOST_JOIN, ...).
ride_id / sender_id: scope key (ride for ride messages and host-join, sender for direct messages).
metadata: JSON payload for the send (sender name, ride name, ...).
"""
from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from grouprides.db.base import Base, JSONType


class MessageNotification(Base):
    __tablename__ = "message_notifications"
    __table_args__ = (
        Index("ix_message_notifications_lookup", "user_id", "source_type", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    source_type = Column(String(32), nullable=False)
    ride_id = Column(Integer, nullable=True)
    sender_id = Column(Integer, nullable=True)
    payload = Column("metadata", JSONType, nullable=True)  # column name 'metadata' in DB
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
