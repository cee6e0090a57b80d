"""
Prompt Builder

Instruction text and few-shot examples for the interpretation request. The
template is deterministic: the same transcript, clock and timezone always
produce the same prompt.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from tasker.llm.gateway import Message, Role
from tasker.voice.ambiguity import SMART_DEFAULTS
from tasker.voice.models import DEFAULT_CLARIFY_THRESHOLD
from tasker.voice.recurrence import next_weekday

# Marker the task-only extraction prompt starts with
FALLBACK_PROMPT_PREFIX = "Extract tasks from this voice input."

RESPONSE_SCHEMA = """{
  "intent": "task_only" | "calendar_only" | "task_and_calendar" | "needs_clarification",
  "tasks": [
    {
      "id": "unique_id",
      "title": "Task title",
      "summary": "Brief description",
      "priority": "LOW" | "MEDIUM" | "HIGH" | "URGENT",
      "energy": "LOW" | "MEDIUM" | "HIGH",
      "estimateMin": number_or_null,
      "dueAt": "ISO_date_string_or_null",
      "isRepeatable": boolean,
      "repeatPattern": "daily" | "weekly" | "monthly" | null,
      "repeatInterval": number_or_null,
      "repeatDays": [0,1,2,3,4,5,6] | null,
      "repeatCount": number_or_null,
      "repeatEndDate": "ISO_date_string_or_null"
    }
  ],
  "calendarEvents": [
    {
      "id": "unique_id",
      "title": "Event title",
      "description": "Optional description",
      "startDate": "ISO_date_string",
      "endDate": "ISO_date_string_or_null",
      "isAllDay": boolean,
      "recurrence": {
        "type": "daily" | "weekly" | "monthly" | "yearly",
        "interval": number,
        "daysOfWeek": [0,1,2,3,4,5,6],
        "count": number_of_occurrences_or_null
      } | null
    }
  ],
  "clarifyingQuestions": ["..."],
  "confidence": 0.0_to_1.0
}"""

FALLBACK_SCHEMA = """{
  "tasks": [
    {
      "id": "unique_id",
      "title": "Task title",
      "summary": "Brief description",
      "priority": "MEDIUM",
      "energy": "MEDIUM",
      "estimateMin": null
    }
  ]
}"""

SYSTEM_TEMPLATE = """You are an expert at interpreting voice commands for task management and calendar scheduling.

IMPORTANT: You must respond with valid JSON only. No other text.

CRITICAL RULES:
1. If the voice input is ambiguous about timing, location, or specifics, set confidence to {threshold} or lower and ask clarifying questions instead of guessing.
2. Never split one request into multiple tasks unless the user explicitly asked for several (e.g. "create 3 tasks for...").
3. Recurring language ("every weekend", "every Monday") is ONE repeatable task, not one task per occurrence.
4. Only ask about details that are actually missing.

SMART DEFAULTS (do NOT ask for clarification when one of these phrases is used):
{smart_defaults}

Weekday numbers: 0=Sunday, 1=Monday, ..., 6=Saturday. "every weekend" is [0,6], "every weekday" is [1,2,3,4,5].

Response format:
{schema}

Current date/time: {now}
User timezone: {timezone}"""


@dataclass
class PromptExample:
    """One transcript and the answer the model should give for it."""

    transcript: str
    output: dict[str, Any]


@dataclass
class PromptSpec:
    """System instructions plus few-shot examples."""

    system: str
    examples: list[PromptExample] = field(default_factory=list)

    def messages(self, text: str) -> list[Message]:
        """Conversation to send: example pairs, then the real transcript."""
        messages: list[Message] = []
        for example in self.examples:
            messages.append(Message(role=Role.USER, content=example.transcript))
            messages.append(
                Message(role=Role.ASSISTANT, content=json.dumps(example.output))
            )
        messages.append(Message(role=Role.USER, content=text))
        return messages


def smart_default_table() -> str:
    return "\n".join(
        f'- "{default.phrase}" -> {default.description}' for default in SMART_DEFAULTS
    )


def _task(title: str, due: datetime, days: list[int] | None, pattern: str = "weekly") -> dict:
    return {
        "id": "task_1",
        "title": title,
        "summary": None,
        "priority": "MEDIUM",
        "energy": "LOW",
        "estimateMin": 60,
        "dueAt": due.isoformat(),
        "isRepeatable": True,
        "repeatPattern": pattern,
        "repeatInterval": 1,
        "repeatDays": days,
        "repeatCount": 52,
        "repeatEndDate": None,
    }


def _event(title: str, start: datetime, days: list[int], minutes: int = 60) -> dict:
    return {
        "id": "event_1",
        "title": title,
        "description": None,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(minutes=minutes)).isoformat(),
        "isAllDay": False,
        "recurrence": {"type": "weekly", "interval": 1, "daysOfWeek": days, "count": 52},
    }


def build_examples(now: datetime) -> list[PromptExample]:
    """Few-shot examples dated relative to ``now``."""
    saturday = next_weekday(now, 6, 18)
    monday = next_weekday(now, 1, 9)
    return [
        PromptExample(
            "Set a recurring reminder for Chick-fil-A every weekend at 6pm",
            {
                "intent": "task_and_calendar",
                "tasks": [_task("Chick-fil-A", saturday, [0, 6])],
                "calendarEvents": [_event("Chick-fil-A", saturday, [0, 6])],
                "clarifyingQuestions": [],
                "confidence": 0.9,
            },
        ),
        PromptExample(
            "I want to eat pizza every week",
            {
                "intent": "task_only",
                "tasks": [_task("Eat pizza", monday, [1])],
                "calendarEvents": [],
                "clarifyingQuestions": [],
                "confidence": 0.8,
            },
        ),
        PromptExample(
            "Go to chick fil a on a day during the week",
            {
                "intent": "needs_clarification",
                "tasks": [],
                "calendarEvents": [],
                "clarifyingQuestions": ["Which day of the week?", "What time?"],
                "confidence": 0.2,
            },
        ),
        PromptExample(
            "Review project every Monday morning at 9am",
            {
                "intent": "task_and_calendar",
                "tasks": [_task("Review project", monday, [1])],
                "calendarEvents": [_event("Review project", monday, [1])],
                "clarifyingQuestions": [],
                "confidence": 0.9,
            },
        ),
    ]


def build_prompt(
    text: str,
    now: datetime,
    timezone: str,
    threshold: float = DEFAULT_CLARIFY_THRESHOLD,
) -> PromptSpec:
    """
    Build the interpretation prompt.

    Args:
        text: The transcript (sent separately as the final user message)
        now: Current time, embedded as an ISO timestamp with its offset
        timezone: Resolved IANA timezone name
        threshold: Confidence ceiling the model must use for ambiguous input

    Returns:
        PromptSpec with the system text and few-shot examples
    """
    system = SYSTEM_TEMPLATE.format(
        threshold=threshold,
        smart_defaults=smart_default_table(),
        schema=RESPONSE_SCHEMA,
        now=now.isoformat(),
        timezone=timezone,
    )
    return PromptSpec(system=system, examples=build_examples(now))


def build_fallback_prompt(text: str) -> str:
    """Task-only extraction prompt, sent without a system prompt."""
    return (
        f"{FALLBACK_PROMPT_PREFIX} Respond with JSON only:\n"
        f"{FALLBACK_SCHEMA}\n\n"
        f'Voice input: "{text}"'
    )
