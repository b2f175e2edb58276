"""
Notification engine: recipients per ride/message event, geo + throttle filtering, Mailgun delivery.
Route handlers call the queue_* functions (fire-and-forget).
"""
from grouprides.services.notifications.dispatcher import (
    DispatchResult,
    NotificationDispatcher,
    get_dispatcher,
    queue_direct_message_notifications,
    queue_host_join_notification,
    queue_local_ride_notifications,
    queue_ride_cancellation_notifications,
    queue_ride_message_notifications,
    queue_ride_postponement_notifications,
)
from grouprides.services.notifications.events import (
    DirectMessageEvent,
    HostJoinEvent,
    RideMessageEvent,
    RideSnapshot,
)

__all__ = [
    "DirectMessageEvent",
    "DispatchResult",
    "HostJoinEvent",
    "NotificationDispatcher",
    "RideMessageEvent",
    "RideSnapshot",
    "get_dispatcher",
    "queue_direct_message_notifications",
    "queue_host_join_notification",
    "queue_local_ride_notifications",
    "queue_ride_cancellation_notifications",
    "queue_ride_message_notifications",
    "queue_ride_postponement_notifications",
]
