from grouprides.services.recurrence import advance_ride_occurrence, next_occurrence, upcoming_rides
from grouprides.services.ride_service import cancel_ride, create_ride, get_ride, join_ride, set_postponed

__all__ = [
    "advance_ride_occurrence",
    "cancel_ride",
    "create_ride",
    "get_ride",
    "join_ride",
    "next_occurrence",
    "set_postponed",
    "upcoming_rides",
]
