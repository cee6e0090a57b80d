"""
Lexical Signals

Keyword and regex scans over a raw transcript: does it mention a time, a
day, a schedulable thing, a place, a repeat? No I/O and no exceptions;
a missing signal is simply False.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

# Index = weekday number used throughout the pipeline (0=Sunday..6=Saturday)
WEEKDAYS = (
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
)

CALENDAR_KEYWORDS = (
    "every", "daily", "weekly", "monthly", "schedule", "appointment",
    "meeting", "remind", "calendar", "weekend", "weekday", *WEEKDAYS,
    "morning", "afternoon", "evening", "tonight", "tomorrow", "today",
    "next week", "next month", "recurring", "repeat", "regularly", "noon",
)

# Named times of day and their default clock time
DAYPART_TIMES = {
    "morning": (9, 0),
    "noon": (12, 0),
    "afternoon": (14, 0),
    "evening": (18, 0),
    "tonight": (20, 0),
    "night": (20, 0),
    "midnight": (0, 0),
}

_HOUR_WORDS = (
    "one", "two", "three", "four", "five", "six",
    "seven", "eight", "nine", "ten", "eleven", "twelve",
)
_WEEKDAY_RE = "|".join(WEEKDAYS)
_HOUR_WORD_RE = "|".join(_HOUR_WORDS)

_KEYWORD_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in CALENDAR_KEYWORDS) + r")",
    re.IGNORECASE,
)
_CLOCK_RE = re.compile(
    r"\b\d{1,2}(?::\d{2})?\s*(?:(?:am|pm)\b|a\.m\.|p\.m\.)|\b\d{1,2}:\d{2}\b",
    re.IGNORECASE,
)
_DAYPART_RE = re.compile(
    r"\b(?:" + "|".join(DAYPART_TIMES) + r")\b",
    re.IGNORECASE,
)
_SPELLED_HOUR_RE = re.compile(
    rf"\b(?:{_HOUR_WORD_RE})\s+(?:o'?clock|am|pm|thirty|fifteen|forty[- ]five)\b"
    rf"|\bat\s+(?:{_HOUR_WORD_RE})\b",
    re.IGNORECASE,
)
_DAY_RE = re.compile(
    rf"\b(?:today|tomorrow|tonight)\b"
    rf"|\b(?:{_WEEKDAY_RE})s?\b"
    rf"|\bnext\s+(?:week|month|{_WEEKDAY_RE})\b",
    re.IGNORECASE,
)
_ACTION_RE = re.compile(
    r"\b(?:meeting|appointment|call|task|reminder|event|lunch|dinner|"
    r"breakfast|standup|stand-up|class|session|interview)s?\b",
    re.IGNORECASE,
)
_RECURRENCE_RE = re.compile(
    r"\b(?:every|weekly|daily|monthly|repeat(?:s|ing|ed)?|recurring)\b",
    re.IGNORECASE,
)
_LOCATION_VERB_RE = re.compile(
    r"\b(?:go(?:ing)?\s+to|eat(?:ing)?|visit(?:ing)?|meet(?:ing)?\s+(?:at|up))\b",
    re.IGNORECASE,
)
_LOCATION_RE = re.compile(
    r"\b(?:restaurant|cafe|coffee shop|office|home|house|gym|store|shop|"
    r"park|school|church|library|mall|downtown|clinic|hospital|place|"
    r"location|where|address)\b"
    r"|\b\d+\s+\w+\s+(?:street|st|avenue|ave|road|rd|boulevard|blvd)\b",
    re.IGNORECASE,
)
_TIME_STRING_RE = re.compile(
    r"(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Signals:
    """What a transcript mentions, as booleans."""

    has_time: bool = False
    has_day: bool = False
    has_action: bool = False
    has_location: bool = False
    has_recurrence: bool = False
    calendar_intent: bool = False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


def detect_signals(text: str) -> Signals:
    """Scan ``text`` for scheduling signals (case-insensitive)."""
    text = text or ""
    return Signals(
        has_time=bool(
            _CLOCK_RE.search(text)
            or _DAYPART_RE.search(text)
            or _SPELLED_HOUR_RE.search(text)
        ),
        has_day=bool(_DAY_RE.search(text)),
        has_action=bool(_ACTION_RE.search(text)),
        has_location=bool(_LOCATION_RE.search(text)),
        has_recurrence=bool(_RECURRENCE_RE.search(text)),
        calendar_intent=bool(_KEYWORD_RE.search(text)),
    )


def has_location_verb(text: str) -> bool:
    """True for phrasing that implies going somewhere (go to, eat, visit)."""
    return bool(_LOCATION_VERB_RE.search(text or ""))


def weekdays_mentioned(text: str) -> list[int]:
    """
    Weekday indices named in ``text``.

    "weekend" expands to Saturday and Sunday, "weekdays" to Monday-Friday.
    """
    lower = (text or "").lower()
    days: set[int] = set()
    for index, name in enumerate(WEEKDAYS):
        if re.search(rf"\b{name}s?\b", lower):
            days.add(index)
    if re.search(r"\bweekends?\b", lower):
        days.update((0, 6))
    if re.search(r"\bweekdays\b|\bevery weekday\b", lower):
        days.update((1, 2, 3, 4, 5))
    return sorted(days)


def parse_time_string(text: str) -> tuple[int, int] | None:
    """
    Parse a time of day.

    Accepts named dayparts ("morning", "noon") and clock strings
    ("3pm", "9:30am", "14:00"). Returns ``(hour, minute)`` or None.
    """
    lower = (text or "").strip().lower()
    if not lower:
        return None

    clock = _CLOCK_RE.search(lower)
    if clock:
        match = _TIME_STRING_RE.search(clock.group(0))
        if match:
            hour = int(match.group(1))
            minute = int(match.group(2) or 0)
            ampm = (match.group(3) or "").replace(".", "")
            if ampm == "pm" and hour != 12:
                hour += 12
            elif ampm == "am" and hour == 12:
                hour = 0
            if hour < 24 and minute < 60:
                return hour, minute

    daypart = _DAYPART_RE.search(lower)
    if daypart:
        return DAYPART_TIMES[daypart.group(0)]

    return None
