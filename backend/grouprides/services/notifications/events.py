"""Event payloads handed from route handlers to the dispatcher (in-process, not a wire format).

Cancellation and postponement carry a full ride snapshot because the ride row may be gone
(deleted) or changed by the time the background task runs.
"""
from datetime import datetime

from pydantic import BaseModel, Field

from grouprides.core.constants import MESSAGE_SNIPPET_MAX_CHARS
from grouprides.models.ride import Ride


class PersonSnapshot(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None


class AttendeeSnapshot(PersonSnapshot):
    email_notifications_enabled: bool | None = None
    notify_ride_cancellations: bool | None = None


class RideSnapshot(BaseModel):
    id: int
    name: str | None = None
    date: datetime
    notes: str | None = None
    host: PersonSnapshot | None = None
    attendees: list[AttendeeSnapshot] = Field(default_factory=list)

    @classmethod
    def from_ride(cls, ride: Ride) -> "RideSnapshot":
        host = None
        if ride.host is not None:
            host = PersonSnapshot(id=ride.host.id, name=ride.host.name, email=ride.host.email)
        return cls(
            id=ride.id,
            name=ride.name,
            date=ride.date,
            notes=ride.notes,
            host=host,
            attendees=[
                AttendeeSnapshot(
                    id=a.user.id,
                    name=a.user.name,
                    email=a.user.email,
                    email_notifications_enabled=a.user.email_notifications_enabled,
                    notify_ride_cancellations=a.user.notify_ride_cancellations,
                )
                for a in ride.attendees
                if a.user is not None
            ],
        )


def make_snippet(content: str, limit: int = MESSAGE_SNIPPET_MAX_CHARS) -> str:
    text = " ".join((content or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


class RideMessageEvent(BaseModel):
    ride_id: int
    ride_name: str | None = None
    ride_date: datetime | None = None
    ride_location: str | None = None
    sender_id: int
    sender_name: str | None = None
    snippet: str = ""


class DirectMessageEvent(BaseModel):
    recipient_ids: list[int]
    sender_id: int
    sender_name: str | None = None
    sender_profile_url: str = ""
    snippet: str = ""


class HostJoinEvent(BaseModel):
    ride_id: int
    attendee_id: int
    attendee_name: str | None = None
    attendee_count: int = 0
