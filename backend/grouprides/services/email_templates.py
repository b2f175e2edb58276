"""
HTML bodies for notification emails. Presentation only: callers pass display-ready values.
User-supplied text (ride names, notes, message snippets) is escaped here.
"""
from datetime import datetime
from html import escape

from grouprides.services.recurrence import as_utc


def format_date(value: datetime, include_weekday: bool = True) -> str:
    """'Saturday, March 22, 2025' (UTC)."""
    d = as_utc(value)
    text = f"{d.strftime('%B')} {d.day}, {d.year}"
    return f"{d.strftime('%A')}, {text}" if include_weekday else text


def format_time(value: datetime) -> str:
    """'6:00 PM UTC'."""
    d = as_utc(value)
    hour = d.hour % 12 or 12
    return f"{hour}:{d.minute:02d} {'AM' if d.hour < 12 else 'PM'} UTC"


def _info_row(label: str, value: str) -> str:
    return (
        '<tr><td style="padding:6px 0;font-size:14px;color:#4b5563;">'
        f'<span style="font-weight:600;color:#111827;">{escape(label)}:</span> {escape(value)}'
        "</td></tr>"
    )


def _layout(eyebrow: str, title: str, intro: str, rows: list[str], cta_url: str, cta_label: str) -> str:
    return f"""
<table cellpadding="0" cellspacing="0" role="presentation" style="width:100%;background-color:#f9fafb;padding:24px 0;">
  <tr><td>
    <table cellpadding="0" cellspacing="0" role="presentation" style="margin:0 auto;max-width:520px;background:#ffffff;border-radius:16px;padding:32px;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;">
      <tr><td>
        <p style="margin:0 0 8px;text-transform:uppercase;font-size:12px;font-weight:600;color:#10b981;">{escape(eyebrow)}</p>
        <h1 style="margin:0 0 16px;font-size:24px;color:#111827;">{escape(title)}</h1>
        <p style="margin:0 0 20px;font-size:14px;color:#4b5563;">{intro}</p>
      </td></tr>
      {''.join(rows)}
      <tr><td style="padding-top:24px;">
        <a href="{escape(cta_url, quote=True)}" style="display:inline-block;background:#10b981;color:#ffffff;padding:12px 20px;border-radius:9999px;text-decoration:none;font-weight:600;">{escape(cta_label)}</a>
      </td></tr>
    </table>
  </td></tr>
</table>
"""


def render_local_ride_email(
    *,
    ride_name: str,
    ride_url: str,
    ride_date: str,
    ride_time: str,
    ride_difficulty: str,
    distance_miles: float,
    radius_miles: int,
    location: str | None,
    host_name: str | None,
    referral_url: str,
) -> str:
    intro = (
        f"A group ride has been created within {distance_miles:.1f} miles of your saved location. "
        f"You're receiving this alert because your distance preference is set to {radius_miles:.0f} miles."
    )
    rows = [
        _info_row("When", f"{ride_date} at {ride_time}"),
        _info_row("Where", (location or "").strip() or "Location shared on ride page"),
        _info_row("Difficulty", ride_difficulty),
        _info_row("Host", (host_name or "").strip() or "Local rider"),
        _info_row("Invite a friend", referral_url),
    ]
    return _layout("New ride near you", ride_name, intro, rows, ride_url, "View ride")


def render_ride_cancelled_email(
    *,
    ride_name: str,
    ride_date: str,
    ride_time: str,
    host_name: str | None,
    notes: str | None,
    rides_url: str,
) -> str:
    intro = "The host has cancelled this ride. Find another ride on the calendar."
    rows = [
        _info_row("Was scheduled", f"{ride_date} at {ride_time}"),
        _info_row("Host", (host_name or "").strip() or "Ride host"),
    ]
    if notes and notes.strip():
        rows.append(_info_row("Notes", notes.strip()))
    return _layout("Ride cancelled", ride_name, intro, rows, rides_url, "Browse rides")


def render_ride_postponed_email(
    *,
    ride_name: str,
    ride_date: str,
    ride_time: str,
    host_name: str | None,
    notes: str | None,
    ride_url: str,
) -> str:
    intro = "The host has postponed this ride. Check the ride page for updates."
    rows = [
        _info_row("Was scheduled", f"{ride_date} at {ride_time}"),
        _info_row("Host", (host_name or "").strip() or "Ride host"),
    ]
    if notes and notes.strip():
        rows.append(_info_row("Notes", notes.strip()))
    return _layout("Ride postponed", ride_name, intro, rows, ride_url, "View ride")


def render_ride_message_email(
    *,
    ride_name: str,
    ride_url: str,
    sender_name: str,
    snippet: str,
    total_unread: int,
    ride_location: str | None = None,
) -> str:
    if total_unread > 1:
        intro = f"You have {total_unread} unread messages about this ride."
    else:
        intro = f"{escape(sender_name)} posted a message about this ride."
    rows = [_info_row(sender_name, snippet)]
    if ride_location:
        rows.append(_info_row("Ride", ride_location))
    return _layout("New ride message", ride_name, intro, rows, ride_url, "Open conversation")


def render_direct_message_email(
    *,
    sender_name: str,
    sender_profile_url: str,
    snippet: str,
    inbox_url: str,
    total_unread_from_sender: int,
) -> str:
    if total_unread_from_sender > 1:
        intro = f"{escape(sender_name)} has sent you {total_unread_from_sender} unread messages."
    else:
        intro = f"{escape(sender_name)} sent you a message."
    rows = [
        _info_row("Message", snippet),
        _info_row("Profile", sender_profile_url),
    ]
    return _layout("New message", sender_name, intro, rows, inbox_url, "Reply in inbox")


def render_host_join_email(
    *,
    host_name: str,
    attendee_name: str,
    ride_name: str,
    ride_date: str,
    ride_time: str,
    ride_url: str,
    attendee_count: int,
) -> str:
    riders = "rider" if attendee_count == 1 else "riders"
    intro = f"Hi {escape(host_name)}, {escape(attendee_name)} just joined your ride. {attendee_count} {riders} signed up so far."
    rows = [_info_row("When", f"{ride_date} at {ride_time}")]
    return _layout("New rider", ride_name, intro, rows, ride_url, "View ride")
