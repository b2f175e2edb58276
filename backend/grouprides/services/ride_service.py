"""
Rides: create, read (with lazy recurrence advance), join, postpone, cancel.

Each mutation commits first and returns what the caller needs to queue notifications;
routes hand that to services.notifications without waiting.
"""
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from grouprides.core.errors import AlreadyAttending, InvalidRequest, NotRideHost, RideNotFound, UserNotFound
from grouprides.models.ride import Ride, RideAttendee, RideTrail
from grouprides.models.trail import Trail
from grouprides.models.user import User
from grouprides.services.notifications.events import HostJoinEvent, RideSnapshot
from grouprides.services.recurrence import advance_ride_occurrence, as_utc, normalize_recurrence

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user


def _get_ride(db: Session, ride_id: int) -> Ride:
    ride = db.get(Ride, ride_id)
    if ride is None:
        raise RideNotFound(ride_id)
    return ride


def create_ride(
    db: Session,
    host_id: int,
    *,
    date: datetime,
    name: str | None = None,
    notes: str | None = None,
    location: str | None = None,
    recurrence: str | None = None,
    trail_ids: list[int] | None = None,
) -> Ride:
    """Create a ride hosted (and attended) by host_id. Trails are linked in the given order."""
    _get_user(db, host_id)
    trail_ids = list(dict.fromkeys(trail_ids or []))
    if trail_ids:
        found = {t.id for t in db.query(Trail.id).filter(Trail.id.in_(trail_ids)).all()}
        missing = [tid for tid in trail_ids if tid not in found]
        if missing:
            raise InvalidRequest(f"Unknown trail ids: {missing}")
    row = Ride(
        user_id=host_id,
        name=(name or "").strip() or None,
        notes=(notes or "").strip() or None,
        location=(location or "").strip() or None,
        recurrence=normalize_recurrence(recurrence),
        date=as_utc(date),
        postponed=False,
    )
    row.trails = [RideTrail(trail_id=tid, position=i) for i, tid in enumerate(trail_ids)]
    row.attendees = [RideAttendee(user_id=host_id)]
    db.add(row)
    db.commit()
    db.refresh(row)
    advance_ride_occurrence(db, row)
    logger.info("Created ride %s (host %s, recurrence %s)", row.id, host_id, row.recurrence)
    return row


def get_ride(db: Session, ride_id: int, now: datetime | None = None) -> Ride:
    """Load a ride, advancing a recurring ride whose date has passed."""
    ride = _get_ride(db, ride_id)
    advance_ride_occurrence(db, ride, now)
    return ride


def join_ride(db: Session, ride_id: int, user_id: int) -> tuple[Ride, HostJoinEvent]:
    """Add user_id to the ride's attendees. Returns the ride and the host-join event to queue."""
    ride = _get_ride(db, ride_id)
    advance_ride_occurrence(db, ride)
    user = _get_user(db, user_id)
    if any(a.user_id == user_id for a in ride.attendees):
        raise AlreadyAttending()
    ride.attendees.append(RideAttendee(user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyAttending()
    db.refresh(ride)
    event = HostJoinEvent(
        ride_id=ride.id,
        attendee_id=user_id,
        attendee_name=user.name,
        attendee_count=len(ride.attendees),
    )
    return ride, event


def set_postponed(db: Session, ride_id: int, user_id: int, postponed: bool) -> tuple[Ride, RideSnapshot | None]:
    """
    Host-only. Returns a snapshot to notify attendees only when the ride moves from
    not-postponed to postponed; un-postponing or repeating the same value notifies no one.
    """
    ride = _get_ride(db, ride_id)
    advance_ride_occurrence(db, ride)
    _get_user(db, user_id)
    if ride.user_id != user_id:
        raise NotRideHost("postpone")
    was_postponed = bool(ride.postponed)
    ride.postponed = postponed
    db.commit()
    db.refresh(ride)
    if postponed and not was_postponed:
        return ride, RideSnapshot.from_ride(ride)
    return ride, None


def cancel_ride(db: Session, ride_id: int, user_id: int) -> RideSnapshot:
    """Host-only delete. The snapshot is taken before the delete so attendees can still be notified."""
    ride = _get_ride(db, ride_id)
    advance_ride_occurrence(db, ride)
    _get_user(db, user_id)
    if ride.user_id != user_id:
        raise NotRideHost("cancel")
    snapshot = RideSnapshot.from_ride(ride)
    db.delete(ride)
    db.commit()
    logger.info("Cancelled ride %s (%s attendees)", ride_id, len(snapshot.attendees))
    return snapshot


def ride_to_dict(ride: Ride) -> dict[str, Any]:
    trails = [link.trail for link in ride.trails if link.trail is not None]
    return {
        "id": ride.id,
        "name": ride.name,
        "notes": ride.notes,
        "location": ride.location,
        "recurrence": ride.recurrence or "none",
        "postponed": bool(ride.postponed),
        "date": as_utc(ride.date).isoformat(),
        "created_at": as_utc(ride.created_at).isoformat() if ride.created_at else None,
        "trail_ids": [t.id for t in trails],
        "trail_names": [t.name for t in trails],
        "trail_systems": list(dict.fromkeys((t.trail_system.name if t.trail_system else t.name) for t in trails)),
        "host": {"id": ride.host.id, "name": ride.host.name} if ride.host else None,
        "attendees": [{"id": a.user_id, "name": a.user.name if a.user else None} for a in ride.attendees],
    }