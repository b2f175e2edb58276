"""
Notification dispatch: resolve recipients -> filter -> render -> send -> record, per event.

- Recipients are processed concurrently in a thread pool; each runs its own strict sequence
  (throttle check, unread count, render, send, record) in its own DB session. One recipient
  failing is logged and never affects the others.
- Throttle rows are written only after the gateway confirms delivery.
- Missing email configuration turns a dispatch into a logged no-op.
- queue_* functions are fire-and-forget: the caller (a route handler) returns immediately and the
  work runs in the background behind an error boundary that logs and swallows.
"""
import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from grouprides.config import settings
from grouprides.core.constants import (
    DEFAULT_RIDE_NAME,
    DEFAULT_SENDER_NAME,
    SOURCE_DIRECT_MESSAGE,
    SOURCE_HOST_JOIN,
    SOURCE_LOCAL_RIDE,
    SOURCE_RIDE_CANCELLED,
    SOURCE_RIDE_MESSAGE,
    SOURCE_RIDE_POSTPONED,
)
from grouprides.models.message import Message, MessageRecipient
from grouprides.models.ride import Ride
from grouprides.services import email_templates
from grouprides.services.geo import distance_miles, is_eligible, resolve_ride_point
from grouprides.services.notifications.events import (
    DirectMessageEvent,
    HostJoinEvent,
    RideMessageEvent,
    RideSnapshot,
)
from grouprides.services.notifications.recipients import (
    Recipient,
    cancellation_recipients,
    dedupe_by_email,
    direct_message_recipients,
    host_join_recipient,
    local_ride_recipients,
    ride_message_recipients,
)
from grouprides.services.throttle import has_recent_send, record_send

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


class EmailGateway(Protocol):
    def is_configured(self) -> bool:
        ...

    def send(self, to: str, subject: str, html: str) -> bool:
        ...


@dataclass
class DispatchResult:
    """Outcome of one dispatch; counts per recipient status."""

    kind: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    recipients: list[int] = field(default_factory=list)

    def add(self, status: str) -> None:
        if status == SENT:
            self.sent += 1
        elif status == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


class NotificationDispatcher:
    """Orchestrates one notification pass per ride lifecycle or message event."""

    def __init__(
        self,
        gateway: EmailGateway,
        session_factory: Callable[[], Session],
        *,
        max_workers: int | None = None,
        throttle_hours: float | None = None,
        site_url: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._gateway = gateway
        self._session_factory = session_factory
        self._max_workers = max_workers or settings.notification_max_workers
        self._throttle_hours = throttle_hours if throttle_hours is not None else settings.message_throttle_hours
        self._site_url = (site_url if site_url is not None else settings.site_url).rstrip("/")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # --- shared plumbing ---

    def _gateway_ready(self, kind: str) -> bool:
        if self._gateway.is_configured():
            return True
        logger.warning("Email gateway not configured; skipping %s notifications", kind)
        return False

    def _fan_out(
        self,
        kind: str,
        recipients: list[Recipient],
        deliver: Callable[[Session, Recipient], str],
    ) -> DispatchResult:
        """Run deliver(db, recipient) concurrently, one DB session per recipient."""
        result = DispatchResult(kind=kind, recipients=[r.user_id for r in recipients])
        if not recipients:
            return result

        def _one(recipient: Recipient) -> str:
            db = self._session_factory()
            try:
                return deliver(db, recipient)
            except Exception as e:
                logger.exception("%s notification to user %s failed: %s", kind, recipient.user_id, e)
                db.rollback()
                return FAILED
            finally:
                db.close()

        max_workers = min(len(recipients), self._max_workers)
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"notify_{kind.lower()}") as executor:
            future_to_recipient = {executor.submit(_one, r): r for r in recipients}
            for future in as_completed(future_to_recipient):
                recipient = future_to_recipient[future]
                try:
                    result.add(future.result())
                except Exception as e:
                    logger.exception("Future for user %s raised: %s", recipient.user_id, e)
                    result.add(FAILED)
        logger.info(
            "%s notifications: sent=%s skipped=%s failed=%s",
            kind,
            result.sent,
            result.skipped,
            result.failed,
        )
        return result

    def _send_and_record(
        self,
        db: Session,
        recipient: Recipient,
        kind: str,
        subject: str,
        html: str,
        *,
        scope_key: int | None = None,
        metadata: dict | None = None,
    ) -> str:
        if not self._gateway.send(recipient.email, subject, html):
            logger.warning("%s email to user %s was not delivered", kind, recipient.user_id)
            return FAILED
        record_send(db, recipient.user_id, kind, scope_key, metadata, now=self._clock())
        return SENT

    def _throttled(self, db: Session, recipient: Recipient, kind: str, scope_key: int) -> bool:
        if has_recent_send(db, recipient.user_id, kind, scope_key, self._throttle_hours, now=self._clock()):
            logger.info("Throttled %s notification for user %s (scope %s)", kind, recipient.user_id, scope_key)
            return True
        return False

    # --- local ride alerts ---

    def process_local_ride(self, ride_id: int) -> DispatchResult:
        """Email opted-in users whose saved location is within their radius of a new ride."""
        result = DispatchResult(kind=SOURCE_LOCAL_RIDE)
        if not self._gateway_ready(SOURCE_LOCAL_RIDE):
            return result
        db = self._session_factory()
        try:
            ride = db.get(Ride, ride_id)
            if ride is None:
                logger.warning("Ride not found for local alerts: %s", ride_id)
                return result
            ride_point, ride_trail = resolve_ride_point(db, ride)
            if ride_point is None:
                logger.info("Skipping local alerts for ride without coordinates: %s", ride_id)
                return result
            candidates = local_ride_recipients(db, ride)
            nearby: list[tuple[Recipient, float]] = []
            for r in candidates:
                if r.point is None:
                    logger.info("Skipping user without coordinates: %s", r.user_id)
                    continue
                if not is_eligible(r.point, ride_point, r.radius_miles):
                    continue
                nearby.append((r, distance_miles(r.point, ride_point)))
            recipients = dedupe_by_email(r for r, _ in nearby)
            distances = {r.user_id: d for r, d in nearby}

            ride_name = ride.name or DEFAULT_RIDE_NAME
            ride_url = f"{self._site_url}/rides/{ride.id}"
            ride_date = email_templates.format_date(ride.date)
            ride_time = email_templates.format_time(ride.date)
            difficulty = (ride_trail.difficulty if ride_trail is not None else None) or "Not specified"
            location = ride.location or (ride_trail.name if ride_trail is not None else None)
            host_name = ride.host.name if ride.host is not None else None
        finally:
            db.close()

        subject = f"New ride near you: {ride_name}"

        def deliver(db: Session, r: Recipient) -> str:
            html = email_templates.render_local_ride_email(
                ride_name=ride_name,
                ride_url=ride_url,
                ride_date=ride_date,
                ride_time=ride_time,
                ride_difficulty=difficulty,
                distance_miles=distances[r.user_id],
                radius_miles=r.radius_miles,
                location=location,
                host_name=host_name,
                referral_url=f"{ride_url}?ref=email-invite",
            )
            return self._send_and_record(
                db, r, SOURCE_LOCAL_RIDE, subject, html,
                scope_key=ride_id,
                metadata={"distance_miles": round(distances[r.user_id], 1)},
            )

        return self._fan_out(SOURCE_LOCAL_RIDE, recipients, deliver)

    # --- cancellation / postponement ---

    def _process_ride_status(
        self,
        kind: str,
        ride: RideSnapshot,
        acting_user_id: int | None,
        subject: str,
        html: str,
    ) -> DispatchResult:
        if not self._gateway_ready(kind):
            return DispatchResult(kind=kind)
        recipients = cancellation_recipients(ride, acting_user_id)

        def deliver(db: Session, r: Recipient) -> str:
            return self._send_and_record(db, r, kind, subject, html, scope_key=ride.id, metadata={"ride_name": ride.name})

        return self._fan_out(kind, recipients, deliver)

    def process_ride_cancellation(self, ride: RideSnapshot, acting_user_id: int | None = None) -> DispatchResult:
        ride_name = ride.name or DEFAULT_RIDE_NAME
        html = email_templates.render_ride_cancelled_email(
            ride_name=ride_name,
            ride_date=email_templates.format_date(ride.date),
            ride_time=email_templates.format_time(ride.date),
            host_name=ride.host.name if ride.host else None,
            notes=ride.notes,
            rides_url=f"{self._site_url}/rides",
        )
        return self._process_ride_status(SOURCE_RIDE_CANCELLED, ride, acting_user_id, f"Ride cancelled: {ride_name}", html)

    def process_ride_postponement(self, ride: RideSnapshot, acting_user_id: int | None = None) -> DispatchResult:
        ride_name = ride.name or DEFAULT_RIDE_NAME
        html = email_templates.render_ride_postponed_email(
            ride_name=ride_name,
            ride_date=email_templates.format_date(ride.date),
            ride_time=email_templates.format_time(ride.date),
            host_name=ride.host.name if ride.host else None,
            notes=ride.notes,
            ride_url=f"{self._site_url}/rides/{ride.id}",
        )
        return self._process_ride_status(SOURCE_RIDE_POSTPONED, ride, acting_user_id, f"Ride postponed: {ride_name}", html)

    # --- messages ---

    def process_ride_message(self, event: RideMessageEvent) -> DispatchResult:
        """One email per ride per recipient per throttle window; subject carries the live unread count."""
        if not self._gateway_ready(SOURCE_RIDE_MESSAGE):
            return DispatchResult(kind=SOURCE_RIDE_MESSAGE)
        db = self._session_factory()
        try:
            recipients = ride_message_recipients(db, event.ride_id, event.sender_id)
        finally:
            db.close()

        ride_name = event.ride_name or "Group Ride"
        ride_url = f"{self._site_url}/rides/{event.ride_id}"
        sender_name = event.sender_name or DEFAULT_SENDER_NAME
        if event.ride_date is not None:
            when = f"{email_templates.format_date(event.ride_date)} @ {email_templates.format_time(event.ride_date)}"
        else:
            when = "Upcoming ride @ TBD"
        ride_location = f"{event.ride_location} • {when}" if event.ride_location else when

        def deliver(db: Session, r: Recipient) -> str:
            if self._throttled(db, r, SOURCE_RIDE_MESSAGE, event.ride_id):
                return SKIPPED
            total_unread = count_unread_ride_messages(db, event.ride_id, r.user_id)
            html = email_templates.render_ride_message_email(
                ride_name=ride_name,
                ride_url=ride_url,
                sender_name=sender_name,
                snippet=event.snippet,
                total_unread=total_unread,
                ride_location=ride_location,
            )
            if total_unread > 1:
                subject = f"{total_unread} new messages about {ride_name}"
            else:
                subject = f"New message about {ride_name}"
            return self._send_and_record(
                db, r, SOURCE_RIDE_MESSAGE, subject, html,
                scope_key=event.ride_id,
                metadata={
                    "sender_id": event.sender_id,
                    "sender_name": event.sender_name,
                    "ride_name": ride_name,
                    "ride_location": ride_location,
                },
            )

        return self._fan_out(SOURCE_RIDE_MESSAGE, recipients, deliver)

    def process_direct_message(self, event: DirectMessageEvent) -> DispatchResult:
        """One email per sender per recipient per throttle window."""
        if not self._gateway_ready(SOURCE_DIRECT_MESSAGE):
            return DispatchResult(kind=SOURCE_DIRECT_MESSAGE)
        db = self._session_factory()
        try:
            recipients = direct_message_recipients(db, event.recipient_ids, event.sender_id)
        finally:
            db.close()

        sender_name = event.sender_name or DEFAULT_SENDER_NAME
        inbox_url = f"{self._site_url}/messages"
        profile_url = event.sender_profile_url or f"{self._site_url}/profile/{event.sender_id}"

        def deliver(db: Session, r: Recipient) -> str:
            if self._throttled(db, r, SOURCE_DIRECT_MESSAGE, event.sender_id):
                return SKIPPED
            total_unread = count_unread_direct_messages(db, event.sender_id, r.user_id)
            html = email_templates.render_direct_message_email(
                sender_name=sender_name,
                sender_profile_url=profile_url,
                snippet=event.snippet,
                inbox_url=inbox_url,
                total_unread_from_sender=total_unread,
            )
            if total_unread > 1:
                subject = f"{sender_name} sent {total_unread} new messages"
            else:
                subject = f"{sender_name} sent you a message"
            return self._send_and_record(
                db, r, SOURCE_DIRECT_MESSAGE, subject, html,
                scope_key=event.sender_id,
                metadata={"sender_name": event.sender_name},
            )

        return self._fan_out(SOURCE_DIRECT_MESSAGE, recipients, deliver)

    # --- host join ---

    def process_host_join(self, event: HostJoinEvent) -> DispatchResult:
        """Tell the host a rider joined; throttled per ride like ride messages."""
        if not self._gateway_ready(SOURCE_HOST_JOIN):
            return DispatchResult(kind=SOURCE_HOST_JOIN)
        db = self._session_factory()
        try:
            host = host_join_recipient(db, event.ride_id, event.attendee_id)
            ride = db.get(Ride, event.ride_id)
            ride_name = (ride.name if ride else None) or "Your ride"
            ride_date = ride.date if ride else None
        finally:
            db.close()
        if host is None:
            return DispatchResult(kind=SOURCE_HOST_JOIN)

        attendee_name = event.attendee_name or DEFAULT_SENDER_NAME

        def deliver(db: Session, r: Recipient) -> str:
            if self._throttled(db, r, SOURCE_HOST_JOIN, event.ride_id):
                return SKIPPED
            html = email_templates.render_host_join_email(
                host_name=r.name or "Ride host",
                attendee_name=attendee_name,
                ride_name=ride_name,
                ride_date=email_templates.format_date(ride_date) if ride_date else "Upcoming ride",
                ride_time=email_templates.format_time(ride_date) if ride_date else "TBD",
                ride_url=f"{self._site_url}/rides/{event.ride_id}",
                attendee_count=event.attendee_count,
            )
            return self._send_and_record(
                db, r, SOURCE_HOST_JOIN, f"{attendee_name} joined {ride_name}", html,
                scope_key=event.ride_id,
                metadata={"attendee_name": attendee_name},
            )

        return self._fan_out(SOURCE_HOST_JOIN, [host], deliver)


def count_unread_ride_messages(db: Session, ride_id: int, user_id: int) -> int:
    return (
        db.query(Message)
        .join(MessageRecipient, MessageRecipient.message_id == Message.id)
        .filter(
            Message.ride_id == ride_id,
            MessageRecipient.user_id == user_id,
            MessageRecipient.read.is_(False),
        )
        .distinct()
        .count()
    )


def count_unread_direct_messages(db: Session, sender_id: int, user_id: int) -> int:
    return (
        db.query(Message)
        .join(MessageRecipient, MessageRecipient.message_id == Message.id)
        .filter(
            Message.sender_id == sender_id,
            Message.ride_id.is_(None),
            MessageRecipient.user_id == user_id,
            MessageRecipient.read.is_(False),
        )
        .distinct()
        .count()
    )


# ---------------------------------------------------------------------------
# Fire-and-forget entry points used by route handlers
# ---------------------------------------------------------------------------

_dispatcher: NotificationDispatcher | None = None
_background_tasks: set[asyncio.Task] = set()


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        from grouprides.db.session import SessionLocal
        from grouprides.services.mailgun import get_gateway

        _dispatcher = NotificationDispatcher(get_gateway(), SessionLocal)
    return _dispatcher


def _run_guarded(label: str, fn: Callable[..., DispatchResult], *args) -> None:
    """Error boundary for background dispatch: log the outcome, never raise."""
    try:
        fn(*args)
    except Exception as e:
        logger.exception("%s notifications failed: %s", label, e)


def run_in_background(label: str, fn: Callable[..., DispatchResult], *args) -> None:
    """Schedule fn(*args) without waiting: a loop task when called from async code, else a daemon thread."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop is not None:
        task = loop.create_task(asyncio.to_thread(_run_guarded, label, fn, *args))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return
    threading.Thread(target=_run_guarded, args=(label, fn, *args), daemon=True, name=f"notify_{label}").start()


def queue_local_ride_notifications(ride_id: int) -> None:
    run_in_background(SOURCE_LOCAL_RIDE, get_dispatcher().process_local_ride, ride_id)


def queue_ride_cancellation_notifications(ride: RideSnapshot) -> None:
    run_in_background(SOURCE_RIDE_CANCELLED, get_dispatcher().process_ride_cancellation, ride)


def queue_ride_postponement_notifications(ride: RideSnapshot) -> None:
    run_in_background(SOURCE_RIDE_POSTPONED, get_dispatcher().process_ride_postponement, ride)


def queue_ride_message_notifications(event: RideMessageEvent) -> None:
    run_in_background(SOURCE_RIDE_MESSAGE, get_dispatcher().process_ride_message, event)


def queue_direct_message_notifications(event: DirectMessageEvent) -> None:
    run_in_background(SOURCE_DIRECT_MESSAGE, get_dispatcher().process_direct_message, event)


def queue_host_join_notification(event: HostJoinEvent) -> None:
    run_in_background(SOURCE_HOST_JOIN, get_dispatcher().process_host_join, event)
