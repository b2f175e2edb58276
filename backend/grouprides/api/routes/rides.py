"""
Rides API: list/get (recurring rides advanced on read), create, join, postpone, cancel.

Acting user from the X-User-Id header. Notifications are queued after the DB write commits
and never awaited, so response time does not depend on recipients or the email provider.
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from grouprides.api.deps import current_user_id
from grouprides.core.constants import RECURRENCE_KINDS
from grouprides.core.errors import GroupRideError, domain_error_to_http
from grouprides.db.session import get_db
from grouprides.services import notifications
from grouprides.services.recurrence import upcoming_rides
from grouprides.services.ride_service import cancel_ride, create_ride, get_ride, join_ride, ride_to_dict, set_postponed

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateRideBody(BaseModel):
    date: datetime
    name: str | None = Field(None, max_length=256)
    notes: str | None = None
    location: str | None = Field(None, max_length=256)
    recurrence: str = Field("none", description="|".join(RECURRENCE_KINDS))
    trail_ids: list[int] = Field(default_factory=list, max_length=50)


class PostponeBody(BaseModel):
    postponed: bool


# --- Read ---


@router.get("/rides")
def list_rides(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    """Upcoming rides, soonest first. Recurring rides in the past are moved to their next occurrence."""
    return [ride_to_dict(r) for r in upcoming_rides(db)]


@router.get("/rides/{ride_id}")
def read_ride(ride_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        return ride_to_dict(get_ride(db, ride_id))
    except GroupRideError as e:
        raise domain_error_to_http(e)


# --- Create ---


@router.post("/rides", status_code=201)
def create(
    body: CreateRideBody,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    """Create a ride and queue local-ride alerts for nearby riders."""
    try:
        ride = create_ride(
            db,
            user_id,
            date=body.date,
            name=body.name,
            notes=body.notes,
            location=body.location,
            recurrence=body.recurrence,
            trail_ids=body.trail_ids,
        )
    except GroupRideError as e:
        raise domain_error_to_http(e)
    notifications.queue_local_ride_notifications(ride.id)
    return {"success": True, "ride": ride_to_dict(ride)}


# --- Join ---


@router.post("/rides/{ride_id}/join")
def join(
    ride_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        ride, event = join_ride(db, ride_id, user_id)
    except GroupRideError as e:
        raise domain_error_to_http(e)
    notifications.queue_host_join_notification(event)
    return {"success": True, "ride": ride_to_dict(ride)}


# --- Postpone ---


@router.put("/rides/{ride_id}/postpone")
def postpone(
    ride_id: int,
    body: PostponeBody,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    """Host-only. Attendees are emailed only on the not-postponed -> postponed transition."""
    try:
        ride, snapshot = set_postponed(db, ride_id, user_id, body.postponed)
    except GroupRideError as e:
        raise domain_error_to_http(e)
    if snapshot is not None:
        notifications.queue_ride_postponement_notifications(snapshot)
    return {"success": True, "ride": ride_to_dict(ride)}


# --- Cancel ---


@router.delete("/rides/{ride_id}")
def cancel(
    ride_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    """Host-only. Deletes the ride and emails its attendees."""
    try:
        snapshot = cancel_ride(db, ride_id, user_id)
    except GroupRideError as e:
        raise domain_error_to_http(e)
    notifications.queue_ride_cancellation_notifications(snapshot)
    return {"success": True, "id": ride_id}
