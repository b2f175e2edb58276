"""
Centralized constants for recurrence and notifications (Encapsulate What Changes).

Change radius bounds, throttle windows or notification kinds here instead of
scattering literals across services and routes.
"""

# Recurrence kinds accepted on a ride
RECURRENCE_NONE = "none"
RECURRENCE_KINDS = ("none", "daily", "weekly", "monthly", "yearly")
# Upper bound on interval steps when advancing a recurring ride (runaway guard)
RECURRENCE_MAX_ITERATIONS = 1000

# Local-ride alerts: user radius in miles
DEFAULT_NOTIFICATION_RADIUS_MILES = 25
MIN_NOTIFICATION_RADIUS_MILES = 1
MAX_NOTIFICATION_RADIUS_MILES = 500
EARTH_RADIUS_MILES = 3958.8

# One email per (recipient, kind, scope) inside this window
MESSAGE_THROTTLE_HOURS = 24

# message_notifications.source_type values
SOURCE_LOCAL_RIDE = "LOCAL_RIDE"
SOURCE_RIDE_CANCELLED = "RIDE_CANCELLED"
SOURCE_RIDE_POSTPONED = "RIDE_POSTPONED"
SOURCE_RIDE_MESSAGE = "RIDE_MESSAGE"
SOURCE_DIRECT_MESSAGE = "DIRECT_MESSAGE"
SOURCE_HOST_JOIN = "HOST_JOIN"

# Kinds whose scope key is a ride id; DIRECT_MESSAGE is scoped by sender id
RIDE_SCOPED_SOURCES = (SOURCE_RIDE_MESSAGE, SOURCE_HOST_JOIN)

# Fallback display strings
DEFAULT_RIDE_NAME = "Untitled Ride"
DEFAULT_SENDER_NAME = "A rider"
MESSAGE_SNIPPET_MAX_CHARS = 280
