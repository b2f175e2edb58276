"""Trails and trail systems. Coordinates come in several stored shapes; see services.geo.extract_point."""
from sqlalchemy import Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from grouprides.db.base import Base, JSONType


class TrailSystem(Base):
    __tablename__ = "trail_systems"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False, index=True)

    trails = relationship("Trail", back_populates="trail_system")


class Trail(Base):
    __tablename__ = "trails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    difficulty = Column(String(32), nullable=True)
    location = Column(String(256), nullable=True)
    distance_km = Column(Float, nullable=True)
    # [[lng, lat], ...] or {"type": "LineString", "coordinates": [[lng, lat], ...]}
    coordinates = Column(JSONType, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    trail_system_id = Column(Integer, ForeignKey("trail_systems.id", ondelete="SET NULL"), nullable=True, index=True)

    trail_system = relationship("TrailSystem", back_populates="trails")
