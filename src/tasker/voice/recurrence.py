"""
Recurrence Expander

Turns one base event plus a recurrence rule into concrete occurrences.
Expansion is a pure function of its inputs: the same event always yields the
same sequence, and every sequence is finite.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterator

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from tasker.voice.models import (
    CalendarEventCandidate,
    RecurrencePattern,
    RepeatPattern,
    TaskCandidate,
)

DEFAULT_MAX_OCCURRENCES = 52


def weekday_index(moment: datetime) -> int:
    """Weekday as 0=Sunday..6=Saturday."""
    return moment.isoweekday() % 7


def at_time(moment: datetime, hour: int, minute: int = 0) -> datetime:
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def next_weekday(moment: datetime, weekday: int, hour: int = 9, minute: int = 0) -> datetime:
    """First ``weekday`` strictly after the day of ``moment``, at hour:minute."""
    days_ahead = (weekday - weekday_index(moment)) % 7 or 7
    return at_time(moment + timedelta(days=days_ahead), hour, minute)


def _align(value: datetime | None, reference: datetime) -> datetime | None:
    """Give ``value`` the reference's tzinfo when exactly one of them is naive."""
    if value is None:
        return None
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.astimezone(None).replace(tzinfo=None)
    return value


def _next_in_week_set(current: datetime, days: list[int]) -> datetime:
    """Next listed weekday after ``current``; wraps to the next week's first."""
    today = weekday_index(current)
    later = [d for d in days if d > today]
    if later:
        return current + timedelta(days=later[0] - today)
    return current + timedelta(days=7 - today + days[0])


def iter_occurrence_dates(
    start: datetime,
    rule: RecurrencePattern,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> Iterator[datetime]:
    """
    Yield occurrence start times for ``rule`` beginning at ``start``.

    Stops at whichever comes first: ``rule.count`` occurrences, a date past
    ``rule.end_date``, or ``max_occurrences``.
    """
    limit = max(0, max_occurrences)
    if rule.count is not None:
        limit = min(limit, rule.count)
    end = _align(rule.end_date, start)
    days = sorted(set(rule.days_of_week or []))

    current = start
    for index in range(limit):
        if end is not None and current > end:
            return
        yield current

        step = index + 1
        if rule.type == RepeatPattern.DAILY:
            current = current + timedelta(days=rule.interval)
        elif rule.type == RepeatPattern.WEEKLY:
            if len(days) == 1:
                current = current + timedelta(days=7)
            elif days:
                current = _next_in_week_set(current, days)
            else:
                current = current + timedelta(weeks=rule.interval)
        elif rule.type == RepeatPattern.MONTHLY:
            # Offset from the start so the 31st comes back after short months
            current = start + relativedelta(months=rule.interval * step)
        elif rule.type == RepeatPattern.YEARLY:
            current = start + relativedelta(years=rule.interval * step)


def iter_occurrences(
    base: CalendarEventCandidate,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> Iterator[CalendarEventCandidate]:
    """Yield concrete copies of ``base``, one per occurrence."""
    if base.recurrence is None:
        yield base
        return

    duration = base.duration
    dates = iter_occurrence_dates(base.start_date, base.recurrence, max_occurrences)
    for index, start in enumerate(dates):
        yield base.model_copy(
            update={
                "id": f"{base.id}_{index}",
                "start_date": start,
                "end_date": start + duration if duration is not None else None,
            },
            deep=True,
        )


def expand(
    base: CalendarEventCandidate,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[CalendarEventCandidate]:
    """All occurrences of ``base`` as a list."""
    return list(iter_occurrences(base, max_occurrences))


def task_recurrence(task: TaskCandidate) -> RecurrencePattern | None:
    """Rebuild the recurrence rule from a task's flattened repeat fields."""
    if not task.is_repeatable or task.repeat_pattern is None:
        return None

    end_date = None
    if task.repeat_end_date:
        try:
            end_date = isoparse(task.repeat_end_date)
        except ValueError:
            end_date = None
    return RecurrencePattern(
        type=task.repeat_pattern,
        interval=task.repeat_interval or 1,
        days_of_week=task.repeat_days,
        end_date=end_date,
        count=task.repeat_count,
    )


def task_occurrences(
    task: TaskCandidate,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[datetime]:
    """Due dates of a repeatable task, starting from its ``due_at``."""
    if not task.due_at:
        return []
    try:
        start = isoparse(task.due_at)
    except ValueError:
        return []
    rule = task_recurrence(task)
    if rule is None:
        return [start]
    return list(iter_occurrence_dates(start, rule, max_occurrences))
