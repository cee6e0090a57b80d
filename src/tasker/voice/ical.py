"""
iCalendar export for proposed calendar events.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Iterable

from tasker.voice.models import CalendarEventCandidate, RecurrencePattern

PRODID = "-//Tasker//Tasker Calendar//EN"
UID_DOMAIN = "tasker.app"

_BYDAY = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")


def _utc_stamp(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(dt_timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def rrule(pattern: RecurrencePattern) -> str:
    """RRULE value for a recurrence pattern."""
    parts = [f"FREQ={pattern.type.value.upper()}"]
    if pattern.interval > 1:
        parts.append(f"INTERVAL={pattern.interval}")
    if pattern.days_of_week:
        parts.append("BYDAY=" + ",".join(_BYDAY[d] for d in pattern.days_of_week))
    if pattern.count is not None:
        parts.append(f"COUNT={pattern.count}")
    elif pattern.end_date is not None:
        parts.append(f"UNTIL={_utc_stamp(pattern.end_date)}")
    return ";".join(parts)


def _event_lines(event: CalendarEventCandidate, stamp: str) -> list[str]:
    start = event.start_date
    if event.is_all_day:
        end = event.end_date or start + timedelta(days=1)
        dtstart = f"DTSTART;VALUE=DATE:{start.strftime('%Y%m%d')}"
        dtend = f"DTEND;VALUE=DATE:{end.strftime('%Y%m%d')}"
    else:
        end = event.end_date or start
        dtstart = f"DTSTART:{_utc_stamp(start)}"
        dtend = f"DTEND:{_utc_stamp(end)}"

    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.id}@{UID_DOMAIN}",
        f"DTSTAMP:{stamp}",
        dtstart,
        dtend,
        f"SUMMARY:{_escape(event.title)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{_escape(event.description)}")
    lines += ["STATUS:CONFIRMED", "TRANSP:OPAQUE"]
    if event.recurrence is not None:
        lines.append(f"RRULE:{rrule(event.recurrence)}")
    lines.append("END:VEVENT")
    return lines


def to_ical(
    events: Iterable[CalendarEventCandidate],
    timezone: str = "UTC",
    now: datetime | None = None,
) -> str:
    """
    Render events as a VCALENDAR document with CRLF line endings.

    Timed events are written in UTC; ``timezone`` is advertised through
    X-WR-TIMEZONE for clients that display local times.
    """
    stamp = _utc_stamp(now or datetime.now(dt_timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        f"X-WR-TIMEZONE:{timezone}",
    ]
    for event in events:
        lines.extend(_event_lines(event, stamp))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
