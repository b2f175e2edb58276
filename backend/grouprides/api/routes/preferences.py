"""User notification preferences and saved location (used for local-ride alerts)."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from grouprides.api.deps import current_user_id
from grouprides.core.constants import MAX_NOTIFICATION_RADIUS_MILES, MIN_NOTIFICATION_RADIUS_MILES
from grouprides.core.errors import GroupRideError, domain_error_to_http
from grouprides.db.session import get_db
from grouprides.services.preference_service import preferences_to_dict, update_location, update_preferences

router = APIRouter()
logger = logging.getLogger(__name__)


class PreferencesBody(BaseModel):
    email_notifications_enabled: bool | None = None
    notify_local_rides: bool | None = None
    notify_ride_cancellations: bool | None = None
    notify_ride_messages: bool | None = None
    notify_direct_messages: bool | None = None
    notification_radius_miles: int | None = Field(
        None, ge=MIN_NOTIFICATION_RADIUS_MILES, le=MAX_NOTIFICATION_RADIUS_MILES
    )


class LocationBody(BaseModel):
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)


@router.patch("/user/preferences")
def patch_preferences(
    body: PreferencesBody,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        user = update_preferences(
            db,
            user_id,
            email_notifications_enabled=body.email_notifications_enabled,
            notify_local_rides=body.notify_local_rides,
            notify_ride_cancellations=body.notify_ride_cancellations,
            notify_ride_messages=body.notify_ride_messages,
            notify_direct_messages=body.notify_direct_messages,
            notification_radius_miles=body.notification_radius_miles,
        )
    except GroupRideError as e:
        raise domain_error_to_http(e)
    return {"success": True, "user": preferences_to_dict(user)}


@router.put("/user/location")
def put_location(
    body: LocationBody,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        user = update_location(db, user_id, body.lat, body.lng)
    except GroupRideError as e:
        raise domain_error_to_http(e)
    logger.info("Updated saved location for user %s", user_id)
    return {"success": True, "lat": user.lat, "lng": user.lng}
