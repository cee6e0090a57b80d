"""
Ambiguity Classifier

Decides whether a transcript carries enough scheduling detail to act on,
or whether the user must be asked a follow-up question first.

Smart defaults are recurring phrases ("every week", "daily", ...) that look
vague but map to a fixed day and time, so they never trigger clarification
on their own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from tasker.voice.models import DEFAULT_CLARIFY_THRESHOLD, RepeatPattern
from tasker.voice.signals import Signals, detect_signals

VAGUE_PHRASES = (
    "regularly",
    "often",
    "sometimes",
    "sometime",
    "later",
    "when i have time",
    "on a day during the week",
    "this week",
    "next week",
)


@dataclass(frozen=True)
class SmartDefault:
    """What a recurring phrase resolves to when the user gives no details."""

    phrase: str
    pattern: RepeatPattern
    days: tuple[int, ...] | None
    hour: int = 9
    minute: int = 0
    description: str = ""


# Longest phrases first so "every weekend" wins over "every week"
SMART_DEFAULTS = (
    SmartDefault("every weekend", RepeatPattern.WEEKLY, (0, 6),
                 description="weekly on Saturday and Sunday at 9:00 AM"),
    SmartDefault("every week", RepeatPattern.WEEKLY, (1,),
                 description="weekly on Monday at 9:00 AM"),
    SmartDefault("weekly", RepeatPattern.WEEKLY, (1,),
                 description="weekly on Monday at 9:00 AM"),
    SmartDefault("monthly", RepeatPattern.MONTHLY, None,
                 description="monthly on the same day of the month at 9:00 AM"),
    SmartDefault("daily", RepeatPattern.DAILY, None,
                 description="every day at 9:00 AM, starting tomorrow"),
)

_VAGUE_RE = [
    re.compile(r"\b" + re.escape(p) + r"\b", re.IGNORECASE) for p in VAGUE_PHRASES
]
_SMART_DEFAULT_RE = [
    (re.compile(r"\b" + re.escape(d.phrase) + r"\b", re.IGNORECASE), d)
    for d in SMART_DEFAULTS
]


def match_smart_default(text: str) -> SmartDefault | None:
    """The smart default a transcript uses, if any."""
    for pattern, default in _SMART_DEFAULT_RE:
        if pattern.search(text or ""):
            return default
    return None


def is_vague(text: str) -> bool:
    """
    True when the text leans on a vague phrase ("sometime", "later", ...).

    A smart-default phrase anywhere in the text always overrides.
    """
    if match_smart_default(text) is not None:
        return False
    return any(pattern.search(text or "") for pattern in _VAGUE_RE)


def has_sufficient_detail(text: str, signals: Signals | None = None) -> bool:
    """Time + day + action, or time + day on recurring language."""
    s = signals or detect_signals(text)
    return (s.has_time and s.has_day and s.has_action) or (
        s.has_recurrence and s.has_time and s.has_day
    )


def needs_clarification(
    text: str,
    model_confidence: float,
    threshold: float = DEFAULT_CLARIFY_THRESHOLD,
    calendar_event_count: int = 0,
) -> bool:
    """
    Should the user be asked before accepting the model's interpretation?

    Any doubt (low model confidence, vague wording, no calendar events) only
    counts when the text itself lacks detail.

    The smart-default check comes first and is deliberately stronger than
    that rule: "eat pizza every week" lacks a time and day and yields no
    calendar event, yet must not ask, because the phrase supplies Monday
    09:00. Removing the early return makes such transcripts ask again.
    """
    if match_smart_default(text) is not None:
        return False
    doubtful = (
        model_confidence <= threshold
        or is_vague(text)
        or calendar_event_count == 0
    )
    return doubtful and not has_sufficient_detail(text)
