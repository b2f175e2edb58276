"""
Geo eligibility for local-ride alerts.

Stored coordinates come in several shapes; extract_point is the only place that knows them:
  - {"lat": .., "lng": ..} mappings (explicit columns)
  - [[lng, lat], ...] flat arrays (first point wins)
  - {"type": ..., "coordinates": [[lng, lat], ...]} GeoJSON-like objects
  - a bare [lng, lat] pair
Distances are great-circle (haversine) in miles.
"""
import logging
import math
from typing import Any, NamedTuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from grouprides.core.constants import (
    DEFAULT_NOTIFICATION_RADIUS_MILES,
    EARTH_RADIUS_MILES,
    MAX_NOTIFICATION_RADIUS_MILES,
    MIN_NOTIFICATION_RADIUS_MILES,
)
from grouprides.models.ride import Ride
from grouprides.models.trail import Trail, TrailSystem

logger = logging.getLogger(__name__)


class GeoPoint(NamedTuple):
    lat: float
    lng: float


def _number(v: Any) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    f = float(v)
    return f if math.isfinite(f) else None


def _point(lat: Any, lng: Any) -> GeoPoint | None:
    lat_f, lng_f = _number(lat), _number(lng)
    if lat_f is None or lng_f is None:
        return None
    return GeoPoint(lat_f, lng_f)


def _from_pair(pair: Any) -> GeoPoint | None:
    if isinstance(pair, (list, tuple)) and len(pair) >= 2:
        lng, lat = pair[0], pair[1]
        return _point(lat, lng)
    return None


def extract_point(raw: Any) -> GeoPoint | None:
    """Single (lat, lng) from any stored coordinate shape, or None."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        if "lat" in raw and "lng" in raw:
            return _point(raw.get("lat"), raw.get("lng"))
        return extract_point(raw.get("coordinates"))
    if isinstance(raw, (list, tuple)) and raw:
        first = raw[0]
        if isinstance(first, (list, tuple)):
            return _from_pair(first)
        return _from_pair(raw)
    return None


def trail_point(trail: Trail | None) -> GeoPoint | None:
    if trail is None:
        return None
    return extract_point(trail.coordinates) or _point(trail.lat, trail.lng)


def distance_miles(a: GeoPoint, b: GeoPoint) -> float:
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))
    return EARTH_RADIUS_MILES * c


def sanitize_radius(value: Any) -> int:
    """Missing/invalid -> 25; otherwise rounded and clamped to [1, 500]."""
    v = _number(value)
    if v is None:
        return DEFAULT_NOTIFICATION_RADIUS_MILES
    rounded = max(MIN_NOTIFICATION_RADIUS_MILES, int(round(v)))
    return min(rounded, MAX_NOTIFICATION_RADIUS_MILES)


def is_eligible(recipient_point: GeoPoint | None, ride_point: GeoPoint | None, radius_miles: Any) -> bool:
    """Recipients without a saved point are never eligible."""
    if recipient_point is None or ride_point is None:
        return False
    return distance_miles(recipient_point, ride_point) <= sanitize_radius(radius_miles)


def _location_match_point(db: Session, location: str) -> GeoPoint | None:
    name = location.strip().lower()
    candidates = (
        db.query(Trail)
        .outerjoin(TrailSystem, Trail.trail_system_id == TrailSystem.id)
        .filter(
            or_(
                func.lower(Trail.location) == name,
                func.lower(Trail.name) == name,
                func.lower(TrailSystem.name) == name,
            )
        )
        .order_by(Trail.id.asc())
        .all()
    )
    for trail in candidates:
        p = trail_point(trail)
        if p is not None:
            return p
    return None


def resolve_ride_point(db: Session, ride: Ride) -> tuple[GeoPoint | None, Trail | None]:
    """
    Ride location for geo alerts: first linked trail with coordinates, else a trail or
    trail system whose name matches ride.location (case-insensitive). Returns (point, trail used).
    """
    for link in ride.trails:
        p = trail_point(link.trail)
        if p is not None:
            return p, link.trail
    location = (ride.location or "").strip()
    if location:
        p = _location_match_point(db, location)
        if p is not None:
            logger.info("Using coordinates from location match for ride %s", ride.id)
            return p, None
    return None, None
