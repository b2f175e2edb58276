"""
Notification preferences.

Effective flags: turning email off globally turns every category off. The local-ride radius is
required while local alerts are on (omitted or null is rejected) and cleared when off.
"""
from typing import Any

from sqlalchemy.orm import Session

from grouprides.core.errors import InvalidRequest, UserNotFound
from grouprides.models.user import User

PREFERENCE_FIELDS = (
    "email_notifications_enabled",
    "notify_local_rides",
    "notify_ride_cancellations",
    "notify_ride_messages",
    "notify_direct_messages",
    "notification_radius_miles",
)


def preferences_to_dict(user: User) -> dict[str, Any]:
    return {f: getattr(user, f) for f in PREFERENCE_FIELDS}


def update_preferences(
    db: Session,
    user_id: int,
    *,
    email_notifications_enabled: bool | None = None,
    notify_local_rides: bool | None = None,
    notify_ride_cancellations: bool | None = None,
    notify_ride_messages: bool | None = None,
    notify_direct_messages: bool | None = None,
    notification_radius_miles: int | None = None,
) -> User:
    """Apply a preference update. Omitted flags default to enabled."""
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)

    email_enabled = True if email_notifications_enabled is None else email_notifications_enabled
    local = email_enabled and (True if notify_local_rides is None else notify_local_rides)
    if local and notification_radius_miles is None:
        raise InvalidRequest("Please provide a radius when notifications are enabled.")

    user.email_notifications_enabled = email_enabled
    user.notify_local_rides = local
    user.notify_ride_cancellations = email_enabled and (True if notify_ride_cancellations is None else notify_ride_cancellations)
    user.notify_ride_messages = email_enabled and (True if notify_ride_messages is None else notify_ride_messages)
    user.notify_direct_messages = email_enabled and (True if notify_direct_messages is None else notify_direct_messages)
    if local:
        user.notification_radius_miles = notification_radius_miles
    else:
        user.notification_radius_miles = None
    db.commit()
    db.refresh(user)
    return user


def update_location(db: Session, user_id: int, lat: float | None, lng: float | None) -> User:
    """Saved location for local-ride alerts. Both or neither."""
    if (lat is None) != (lng is None):
        raise InvalidRequest("lat and lng must be provided together")
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)
    user.lat = lat
    user.lng = lng
    db.commit()
    db.refresh(user)
    return user
