"""
Who receives a notification, per event kind.

Every resolver drops the acting user, recipients without an email and duplicate emails
(case-insensitive, first wins). Preference flags stored as NULL count as enabled.
Geo filtering for local-ride alerts happens in the dispatcher once the ride point is known.
"""
import logging
from typing import Iterable, NamedTuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from grouprides.core.constants import DEFAULT_NOTIFICATION_RADIUS_MILES
from grouprides.models.ride import Ride, RideAttendee
from grouprides.models.user import User
from grouprides.services.geo import GeoPoint, sanitize_radius
from grouprides.services.notifications.events import RideSnapshot

logger = logging.getLogger(__name__)


class Recipient(NamedTuple):
    user_id: int
    email: str
    name: str | None = None
    point: GeoPoint | None = None
    radius_miles: int = DEFAULT_NOTIFICATION_RADIUS_MILES


def _enabled(column):
    return or_(column.is_(None), column.is_(True))


def _flag(value: bool | None) -> bool:
    return True if value is None else bool(value)


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def dedupe_by_email(recipients: Iterable[Recipient]) -> list[Recipient]:
    seen: set[str] = set()
    out: list[Recipient] = []
    for r in recipients:
        key = _normalize_email(r.email)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(r)
    return out


def _from_user(user: User) -> Recipient:
    point = None
    if user.lat is not None and user.lng is not None:
        point = GeoPoint(float(user.lat), float(user.lng))
    return Recipient(
        user_id=user.id,
        email=(user.email or "").strip(),
        name=user.name,
        point=point,
        radius_miles=sanitize_radius(user.notification_radius_miles),
    )


def local_ride_recipients(db: Session, ride: Ride) -> list[Recipient]:
    """Users opted in to local-ride alerts (and email overall), host excluded. Not yet geo-filtered."""
    users = (
        db.query(User)
        .filter(
            User.id != ride.user_id,
            User.email.isnot(None),
            _enabled(User.email_notifications_enabled),
            _enabled(User.notify_local_rides),
        )
        .order_by(User.id.asc())
        .all()
    )
    return [_from_user(u) for u in users]


def cancellation_recipients(ride: RideSnapshot, acting_user_id: int | None = None) -> list[Recipient]:
    """
    Attendees of a cancelled/postponed ride who allow cancellation emails.
    The acting user (the host unless given) never receives their own notice.
    """
    if acting_user_id is None and ride.host is not None:
        acting_user_id = ride.host.id
    candidates = []
    for a in ride.attendees:
        if a.id == acting_user_id:
            continue
        if not (_flag(a.email_notifications_enabled) and _flag(a.notify_ride_cancellations)):
            continue
        if not _normalize_email(a.email):
            continue
        candidates.append(Recipient(user_id=a.id, email=a.email.strip(), name=a.name))
    return dedupe_by_email(candidates)


def ride_message_recipients(db: Session, ride_id: int, sender_id: int) -> list[Recipient]:
    """Attendees of the ride other than the sender, opted in to ride-message emails."""
    attendee_ids = [
        uid
        for (uid,) in db.query(RideAttendee.user_id).filter(RideAttendee.ride_id == ride_id).all()
        if uid is not None and uid != sender_id
    ]
    if not attendee_ids:
        return []
    users = (
        db.query(User)
        .filter(
            User.id.in_(attendee_ids),
            User.email.isnot(None),
            _enabled(User.email_notifications_enabled),
            _enabled(User.notify_ride_messages),
        )
        .order_by(User.id.asc())
        .all()
    )
    return dedupe_by_email(_from_user(u) for u in users)


def direct_message_recipients(db: Session, recipient_ids: Iterable[int], sender_id: int) -> list[Recipient]:
    """Explicit recipients minus the sender, opted in to direct-message emails."""
    ids = [rid for rid in dict.fromkeys(recipient_ids) if rid != sender_id]
    if not ids:
        return []
    users = (
        db.query(User)
        .filter(
            User.id.in_(ids),
            User.email.isnot(None),
            _enabled(User.email_notifications_enabled),
            _enabled(User.notify_direct_messages),
        )
        .order_by(User.id.asc())
        .all()
    )
    return dedupe_by_email(_from_user(u) for u in users)


def host_join_recipient(db: Session, ride_id: int, attendee_id: int) -> Recipient | None:
    """The ride host, when opted in to ride-message emails and not the joining rider."""
    ride = db.get(Ride, ride_id)
    if ride is None or ride.host is None:
        return None
    host = ride.host
    if host.id == attendee_id or not _normalize_email(host.email):
        return None
    if not (_flag(host.email_notifications_enabled) and _flag(host.notify_ride_messages)):
        return None
    return _from_user(host)
