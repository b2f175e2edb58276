"""
Notification throttle: at most one email per (recipient, kind, scope) per window.

Rows are written only after the email gateway confirms delivery, so a failed send never
blocks the next qualifying event. Check-then-record is not atomic; a race costs at most one
extra email.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session

from grouprides.core.constants import MESSAGE_THROTTLE_HOURS, RIDE_SCOPED_SOURCES, SOURCE_DIRECT_MESSAGE
from grouprides.models.message_notification import MessageNotification

logger = logging.getLogger(__name__)


def _scope_columns(kind: str, scope_key: int | None) -> dict[str, int]:
    if scope_key is None:
        return {}
    if kind in RIDE_SCOPED_SOURCES:
        return {"ride_id": scope_key}
    if kind == SOURCE_DIRECT_MESSAGE:
        return {"sender_id": scope_key}
    return {"ride_id": scope_key}


def last_send(
    db: Session,
    recipient_id: int,
    kind: str,
    scope_key: int | None = None,
    window_hours: float = MESSAGE_THROTTLE_HOURS,
    now: datetime | None = None,
) -> MessageNotification | None:
    """Most recent send of this kind/scope to recipient inside the window, or None."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=window_hours)
    q = db.query(MessageNotification).filter(
        MessageNotification.user_id == recipient_id,
        MessageNotification.source_type == kind,
        MessageNotification.created_at >= cutoff,
    )
    for column, value in _scope_columns(kind, scope_key).items():
        q = q.filter(getattr(MessageNotification, column) == value)
    return q.order_by(MessageNotification.created_at.desc()).first()


def has_recent_send(
    db: Session,
    recipient_id: int,
    kind: str,
    scope_key: int | None = None,
    window_hours: float = MESSAGE_THROTTLE_HOURS,
    now: datetime | None = None,
) -> bool:
    return last_send(db, recipient_id, kind, scope_key, window_hours, now) is not None


def record_send(
    db: Session,
    recipient_id: int,
    kind: str,
    scope_key: int | None = None,
    metadata: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> MessageNotification:
    """Record a delivered notification. Call only after the gateway returned success."""
    row = MessageNotification(
        user_id=recipient_id,
        source_type=kind,
        payload=metadata or {},
        created_at=now or datetime.now(timezone.utc),
        **_scope_columns(kind, scope_key),
    )
    db.add(row)
    db.commit()
    logger.debug("Recorded %s notification for user %s (scope %s)", kind, recipient_id, scope_key)
    return row
