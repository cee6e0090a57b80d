"""
Smart-Default Normalizer

Post-processes tasks proposed by the model: ISO due dates, clamped numbers,
and for repeatable tasks a concrete first due date and a termination date.
Running it on its own output changes nothing.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Mapping

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from tasker.voice.ambiguity import SmartDefault
from tasker.voice.models import RepeatPattern, TaskCandidate
from tasker.voice.recurrence import at_time, next_weekday, weekday_index

MIN_ESTIMATE = 1
MAX_ESTIMATE = 24 * 60
DEFAULT_HOUR = 9
MONDAY = 1


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_confidence(value: Any, default: float = 0.0) -> float:
    try:
        return clamp(float(value), 0.0, 1.0)
    except (TypeError, ValueError):
        return default


def coerce_iso(value: str | None, now: datetime) -> str | None:
    """ISO-8601 form of ``value``, or None if it does not parse."""
    if not value:
        return None
    try:
        parsed = isoparse(value.strip().replace(" ", "T", 1))
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed.isoformat()


def next_due(
    pattern: RepeatPattern | None,
    days: list[int] | None,
    now: datetime,
) -> datetime:
    """
    First due date for a repeatable task that has none.

    - weekly with days: next listed weekday after today, else the first
      listed weekday of next week
    - monthly: same day next month
    - daily: tomorrow
    - weekly without days, or anything else: next Monday
    All at 09:00.
    """
    if pattern == RepeatPattern.WEEKLY and days:
        today = weekday_index(now)
        ordered = sorted(days)
        later = [d for d in ordered if d > today]
        delta = later[0] - today if later else 7 - today + ordered[0]
        return at_time(now + timedelta(days=delta), DEFAULT_HOUR)
    if pattern == RepeatPattern.MONTHLY:
        return at_time(now + relativedelta(months=1), DEFAULT_HOUR)
    if pattern == RepeatPattern.DAILY:
        return at_time(now + timedelta(days=1), DEFAULT_HOUR)
    return next_weekday(now, MONDAY, DEFAULT_HOUR)


def default_end_date(now: datetime, smart_default: bool) -> datetime:
    """Dec 31 of next year for smart defaults, else the end of today."""
    if smart_default:
        return now.replace(
            year=now.year + 1, month=12, day=31,
            hour=23, minute=59, second=59, microsecond=0,
        )
    return now.replace(hour=23, minute=59, second=59, microsecond=0)


def normalize(
    raw: Mapping[str, Any] | TaskCandidate,
    now: datetime,
    smart_default: SmartDefault | None = None,
) -> TaskCandidate:
    """
    Normalize one task proposal.

    Args:
        raw: Task dict from the model (camelCase keys) or a TaskCandidate
        now: Current time in the user's timezone
        smart_default: Smart-default phrase found in the transcript, if any;
            applied to repeatable tasks only

    Returns:
        A new TaskCandidate; ``raw`` is not modified
    """
    if isinstance(raw, TaskCandidate):
        task = raw.model_copy(deep=True)
    else:
        task = TaskCandidate.model_validate(dict(raw))

    if not task.title:
        task.title = (task.summary or "").strip()[:50] or "Untitled task"

    if task.estimate_min is not None:
        task.estimate_min = int(clamp(task.estimate_min, MIN_ESTIMATE, MAX_ESTIMATE))

    task.due_at = coerce_iso(task.due_at, now)
    task.repeat_end_date = coerce_iso(task.repeat_end_date, now)

    if not task.is_repeatable:
        return task

    # A phrase in the transcript only shapes tasks that already repeat, and
    # only when the task follows that phrase's pattern.
    from_smart_default = False
    if smart_default is not None:
        if task.repeat_pattern is None:
            task.repeat_pattern = smart_default.pattern
        from_smart_default = task.repeat_pattern == smart_default.pattern
        if (
            from_smart_default
            and task.repeat_days is None
            and smart_default.days
            and _falls_on(task.due_at, smart_default.days)
        ):
            task.repeat_days = list(smart_default.days)

    if task.repeat_interval is None or task.repeat_interval < 1:
        task.repeat_interval = 1
    if task.repeat_count is not None and task.repeat_count < 1:
        task.repeat_count = None

    if task.due_at is None:
        task.due_at = next_due(task.repeat_pattern, task.repeat_days, now).isoformat()

    if task.repeat_pattern is None:
        task.repeat_pattern = RepeatPattern.WEEKLY

    if task.repeat_pattern == RepeatPattern.WEEKLY and not task.repeat_days:
        task.repeat_days = [weekday_index(isoparse(task.due_at))]

    if task.repeat_end_date is None:
        task.repeat_end_date = default_end_date(now, from_smart_default).isoformat()

    return task


def _falls_on(due_at: str | None, days: tuple[int, ...]) -> bool:
    """True when there is no due date yet, or it is one of ``days``."""
    if due_at is None:
        return True
    return weekday_index(isoparse(due_at)) in days
