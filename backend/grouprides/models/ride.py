"""Group ride with optional recurrence. date is always served in the future: recurring rides
are advanced on read (services.recurrence), not by a scheduler."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from grouprides.db.base import Base


class Ride(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=True)
    notes = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    recurrence = Column(String(16), nullable=False, default="none", server_default="none")  # none | daily | weekly | monthly | yearly
    location = Column(String(256), nullable=True)
    postponed = Column(Boolean, nullable=False, default=False, server_default=false())
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)  # host
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    host = relationship("User")
    trails = relationship(
        "RideTrail",
        order_by="RideTrail.position",
        cascade="all, delete-orphan",
        back_populates="ride",
    )
    attendees = relationship(
        "RideAttendee",
        order_by="RideAttendee.id",
        cascade="all, delete-orphan",
        back_populates="ride",
    )


class RideTrail(Base):
    __tablename__ = "ride_trails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id", ondelete="CASCADE"), nullable=False, index=True)
    trail_id = Column(Integer, ForeignKey("trails.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    ride = relationship("Ride", back_populates="trails")
    trail = relationship("Trail")


class RideAttendee(Base):
    __tablename__ = "ride_attendees"
    __table_args__ = (UniqueConstraint("ride_id", "user_id", name="uq_ride_attendees_ride_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    ride = relationship("Ride", back_populates="attendees")
    user = relationship("User")
