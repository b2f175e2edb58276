"""
Recurring rides: advance a ride's date to its next occurrence, lazily on read.

- next_occurrence is pure: base + n * interval for the smallest n that lands strictly after reference.
  Month/year steps are calendar-aware (relativedelta) and always computed from base, so a
  Jan 31 monthly ride clamps to Feb 28 without drifting to the 28th afterwards.
- There is no scheduler. Readers call advance_ride_occurrence, which persists the advanced date;
  concurrent readers compute the same value so the write is idempotent.
"""
import logging
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from grouprides.core.constants import RECURRENCE_KINDS, RECURRENCE_MAX_ITERATIONS, RECURRENCE_NONE
from grouprides.models.ride import Ride

logger = logging.getLogger(__name__)

_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}


def as_utc(value: datetime) -> datetime:
    """Naive datetimes (e.g. read back from SQLite) are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_recurrence(value: str | None) -> str:
    v = (value or "").strip().lower()
    return v if v in RECURRENCE_KINDS else RECURRENCE_NONE


def next_occurrence(
    base: datetime,
    interval: str | None,
    reference: datetime | None = None,
    *,
    max_iterations: int = RECURRENCE_MAX_ITERATIONS,
) -> datetime | None:
    """
    Next occurrence of a ride dated base, strictly after reference (default: now).
    Returns None when the ride does not recur, when base is already in the future,
    or when max_iterations steps do not reach the future.
    """
    step = _STEPS.get(normalize_recurrence(interval))
    if step is None:
        return None
    base = as_utc(base)
    reference = as_utc(reference) if reference is not None else datetime.now(timezone.utc)
    if base > reference:
        return None
    for n in range(1, max_iterations + 1):
        candidate = base + step * n
        if candidate > reference:
            return candidate
    logger.warning(
        "Recurrence cap hit: base=%s interval=%s reference=%s after %s steps",
        base.isoformat(),
        interval,
        reference.isoformat(),
        max_iterations,
    )
    return None


def advance_ride_occurrence(db: Session, ride: Ride, now: datetime | None = None) -> bool:
    """Persist the next occurrence onto a recurring ride whose date has passed. Returns True if the date changed."""
    next_date = next_occurrence(ride.date, ride.recurrence, now)
    if next_date is None:
        return False
    logger.debug("Advancing ride %s from %s to %s", ride.id, ride.date, next_date.isoformat())
    ride.date = next_date
    db.commit()
    return True


def upcoming_rides(db: Session, now: datetime | None = None) -> list[Ride]:
    """All rides with a date strictly after now, after advancing recurring rides. Ordered by date."""
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    rows = db.query(Ride).order_by(Ride.date.asc()).all()
    for ride in rows:
        advance_ride_occurrence(db, ride, now)
    upcoming = [r for r in rows if as_utc(r.date) > now]
    upcoming.sort(key=lambda r: as_utc(r.date))
    return upcoming
