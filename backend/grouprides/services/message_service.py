"""
Messages: post a ride or direct message and build the notification event for it.
"""
import logging

from sqlalchemy.orm import Session

from grouprides.config import settings
from grouprides.core.errors import InvalidRequest, RideNotFound, UserNotFound
from grouprides.models.message import Message, MessageRecipient
from grouprides.models.ride import Ride, RideAttendee
from grouprides.models.user import User
from grouprides.services.notifications.events import DirectMessageEvent, RideMessageEvent, make_snippet
from grouprides.services.recurrence import advance_ride_occurrence

logger = logging.getLogger(__name__)


def post_ride_message(db: Session, sender_id: int, ride_id: int, content: str) -> tuple[Message, RideMessageEvent]:
    """Message every attendee of the ride (sender excluded as recipient). Returns the message and its event."""
    content = (content or "").strip()
    if not content:
        raise InvalidRequest("Message content is required")
    sender = db.get(User, sender_id)
    if sender is None:
        raise UserNotFound(sender_id)
    ride = db.get(Ride, ride_id)
    if ride is None:
        raise RideNotFound(ride_id)
    advance_ride_occurrence(db, ride)
    attendee_ids = [
        uid for (uid,) in db.query(RideAttendee.user_id).filter(RideAttendee.ride_id == ride_id).all()
    ]
    recipient_ids = [uid for uid in dict.fromkeys(attendee_ids) if uid != sender_id]
    msg = Message(sender_id=sender_id, ride_id=ride_id, content=content)
    msg.recipients = [MessageRecipient(user_id=uid, read=False) for uid in recipient_ids]
    db.add(msg)
    db.commit()
    db.refresh(msg)
    event = RideMessageEvent(
        ride_id=ride.id,
        ride_name=ride.name,
        ride_date=ride.date,
        ride_location=ride.location,
        sender_id=sender_id,
        sender_name=sender.name,
        snippet=make_snippet(content),
    )
    return msg, event


def post_direct_message(
    db: Session,
    sender_id: int,
    recipient_ids: list[int],
    content: str,
    label: str | None = None,
) -> tuple[Message, DirectMessageEvent]:
    content = (content or "").strip()
    if not content:
        raise InvalidRequest("Message content is required")
    sender = db.get(User, sender_id)
    if sender is None:
        raise UserNotFound(sender_id)
    ids = [rid for rid in dict.fromkeys(recipient_ids or []) if rid != sender_id]
    if not ids:
        raise InvalidRequest("At least one recipient is required")
    known = {uid for (uid,) in db.query(User.id).filter(User.id.in_(ids)).all()}
    missing = [rid for rid in ids if rid not in known]
    if missing:
        raise UserNotFound(missing[0])
    msg = Message(sender_id=sender_id, content=content, label=(label or "").strip() or None)
    msg.recipients = [MessageRecipient(user_id=uid, read=False) for uid in ids]
    db.add(msg)
    db.commit()
    db.refresh(msg)
    event = DirectMessageEvent(
        recipient_ids=ids,
        sender_id=sender_id,
        sender_name=sender.name,
        sender_profile_url=f"{settings.site_url}/profile/{sender_id}",
        snippet=make_snippet(content),
    )
    return msg, event


def mark_read(db: Session, message_id: int, user_id: int) -> bool:
    """Mark one message read for user_id. Returns False if the user is not a recipient."""
    row = (
        db.query(MessageRecipient)
        .filter(MessageRecipient.message_id == message_id, MessageRecipient.user_id == user_id)
        .first()
    )
    if row is None:
        return False
    if not row.read:
        row.read = True
        db.commit()
    return True


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(MessageRecipient)
        .filter(MessageRecipient.user_id == user_id, MessageRecipient.read.is_(False))
        .count()
    )
