from grouprides.models.message import Message, MessageRecipient
from grouprides.models.message_notification import MessageNotification
from grouprides.models.ride import Ride, RideAttendee, RideTrail
from grouprides.models.trail import Trail, TrailSystem
from grouprides.models.user import User

__all__ = [
    "Message",
    "MessageNotification",
    "MessageRecipient",
    "Ride",
    "RideAttendee",
    "RideTrail",
    "Trail",
    "TrailSystem",
    "User",
]
