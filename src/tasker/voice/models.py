"""
Interpretation Models

Pydantic models for the interpretation contract. Field aliases follow the
camelCase JSON exchanged with the model provider and the client app, so
``model_dump(by_alias=True, mode="json")`` yields the wire format verbatim.

Validators here only coerce types; range clamping and date defaults belong
to the normalizer.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_CLARIFY_THRESHOLD = 0.4


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Energy(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Intent(str, Enum):
    TASK_ONLY = "task_only"
    CALENDAR_ONLY = "calendar_only"
    TASK_AND_CALENDAR = "task_and_calendar"
    NEEDS_CLARIFICATION = "needs_clarification"


class RepeatPattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Any) -> Any:
    """Case-insensitive enum lookup; unknown values become ``default``."""
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for candidate in (text, text.upper(), text.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    return default


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _coerce_weekdays(value: Any) -> list[int] | None:
    """Sorted, de-duplicated weekday indices (0=Sunday..6=Saturday)."""
    if value is None:
        return None
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    days = {_coerce_int(v) for v in value}
    days = sorted(d for d in days if d is not None and 0 <= d <= 6)
    return days or None


class WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RecurrencePattern(WireModel):
    """Rule for repeating an event: every ``interval`` units of ``type``."""

    type: RepeatPattern
    interval: int = 1
    days_of_week: list[int] | None = None
    end_date: datetime | None = None
    count: int | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> Any:
        if v is None or isinstance(v, RepeatPattern):
            return v
        return str(v).strip().lower()

    @field_validator("interval", mode="before")
    @classmethod
    def _interval(cls, v: Any) -> int:
        n = _coerce_int(v)
        return n if n is not None and n >= 1 else 1

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _days(cls, v: Any) -> list[int] | None:
        return _coerce_weekdays(v)

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int | None:
        n = _coerce_int(v)
        return n if n is not None and n >= 1 else None


class TaskCandidate(WireModel):
    """A proposed task, with recurrence flattened onto the task."""

    id: str = Field(default_factory=lambda: new_id("task"))
    title: str = ""
    summary: str | None = None
    priority: Priority = Priority.MEDIUM
    energy: Energy = Energy.MEDIUM
    estimate_min: int | None = None
    due_at: str | None = None
    is_repeatable: bool = False
    repeat_pattern: RepeatPattern | None = None
    repeat_interval: int | None = None
    repeat_days: list[int] | None = None
    repeat_count: int | None = None
    repeat_end_date: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> str:
        return str(v) if v not in (None, "") else new_id("task")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> Priority:
        return _coerce_enum(Priority, v, Priority.MEDIUM)

    @field_validator("energy", mode="before")
    @classmethod
    def _energy(cls, v: Any) -> Energy:
        return _coerce_enum(Energy, v, Energy.MEDIUM)

    @field_validator("repeat_pattern", mode="before")
    @classmethod
    def _pattern(cls, v: Any) -> RepeatPattern | None:
        if v in (None, ""):
            return None
        return _coerce_enum(RepeatPattern, v, None)

    @field_validator("estimate_min", "repeat_interval", "repeat_count", mode="before")
    @classmethod
    def _ints(cls, v: Any) -> int | None:
        return _coerce_int(v)

    @field_validator("repeat_days", mode="before")
    @classmethod
    def _days(cls, v: Any) -> list[int] | None:
        return _coerce_weekdays(v)

    @field_validator("is_repeatable", mode="before")
    @classmethod
    def _repeatable(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("due_at", "repeat_end_date", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> str | None:
        if v in (None, ""):
            return None
        if isinstance(v, datetime):
            return v.isoformat()
        return str(v)


class CalendarEventCandidate(WireModel):
    """A proposed calendar entry; recurring when ``recurrence`` is set."""

    id: str = Field(default_factory=lambda: new_id("event"))
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    is_all_day: bool = False
    recurrence: RecurrencePattern | None = None
    task_id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v: Any) -> str:
        return str(v) if v not in (None, "") else new_id("event")

    @field_validator("is_all_day", mode="before")
    @classmethod
    def _all_day(cls, v: Any) -> bool:
        return bool(v)

    @property
    def duration(self):
        if self.end_date is None:
            return None
        return self.end_date - self.start_date


class InterpretationResult(WireModel):
    """Output of one pipeline invocation."""

    intent: Intent
    tasks: list[TaskCandidate] = Field(default_factory=list)
    calendar_events: list[CalendarEventCandidate] = Field(default_factory=list)
    clarifying_questions: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    occurrences: list[CalendarEventCandidate] = Field(default_factory=list)
    proposal_id: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, min(1.0, value))

    @property
    def needs_clarification(self) -> bool:
        return self.intent == Intent.NEEDS_CLARIFICATION


class TranscriptInput(BaseModel):
    """Raw user input for one interpretation."""

    model_config = ConfigDict(frozen=True)

    text: str
    timezone: str | None = None
    confidence_threshold: float = Field(default=DEFAULT_CLARIFY_THRESHOLD, ge=0.0, le=1.0)


class RawModelOutput(WireModel):
    """
    Loosely validated model response.

    Entries stay as dicts so a single malformed task or event can be dropped
    without discarding the rest of the answer.
    """

    intent: str | None = None
    tasks: list[dict[str, Any]] = Field(default_factory=list)
    calendar_events: list[dict[str, Any]] = Field(default_factory=list)
    clarifying_questions: list[str] = Field(default_factory=list)
    confidence: float | None = None

    @field_validator("tasks", "calendar_events", "clarifying_questions", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float | None:
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None
