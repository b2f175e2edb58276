"""
Centralized error handling for ride/message route failures.
Domain exceptions plus a rule table so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500


# ---------------------------------------------------------------------------
# Domain errors raised by services; route handlers convert them with domain_error_to_http.
# ---------------------------------------------------------------------------

class GroupRideError(Exception):
    """Base class for errors a route handler should turn into a 4xx."""


class RideNotFound(GroupRideError):
    def __init__(self, ride_id: int):
        super().__init__("Ride not found")
        self.ride_id = ride_id


class UserNotFound(GroupRideError):
    def __init__(self, user_id: int | None = None):
        super().__init__("User not found")
        self.user_id = user_id


class NotRideHost(GroupRideError):
    def __init__(self, action: str = "modify"):
        super().__init__(f"Only the host can {action} a ride")


class AlreadyAttending(GroupRideError):
    def __init__(self):
        super().__init__("You are already attending this ride")


class InvalidRequest(GroupRideError):
    pass


# List of (exception type, status_code). First match wins.
DOMAIN_ERROR_RULES: list[tuple[type[GroupRideError], int]] = [
    (RideNotFound, STATUS_NOT_FOUND),
    (UserNotFound, STATUS_NOT_FOUND),
    (NotRideHost, STATUS_FORBIDDEN),
    (AlreadyAttending, STATUS_BAD_REQUEST),
    (InvalidRequest, STATUS_BAD_REQUEST),
]


def domain_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception raised by a ride/message service into an HTTPException.
    Uses DOMAIN_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in DOMAIN_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
