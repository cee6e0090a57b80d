"""
Mock LLM Provider

Offline, deterministic stand-in for a real model. Builds the interpretation
JSON from the transcript with keyword heuristics so the pipeline can run in
development and demos without credentials.
"""

from __future__ import annotations

import json
import re
import time
from datetime import datetime, timedelta, timezone

from dateutil.parser import isoparse

from tasker.llm.gateway import LLMResponse, Message, Role
from tasker.llm.providers.base import BaseLLMProvider
from tasker.voice.ambiguity import has_sufficient_detail, is_vague, match_smart_default
from tasker.voice.models import RepeatPattern
from tasker.voice.prompts import FALLBACK_PROMPT_PREFIX
from tasker.voice.recurrence import at_time, next_weekday
from tasker.voice.signals import detect_signals, parse_time_string, weekdays_mentioned

MAX_TASKS = 7

# Phrases that introduce a task; the captured group becomes the title
TASK_PATTERNS = [
    r"(?:i )?need to (.+)",
    r"(?:i )?have to (.+)",
    r"(?:i )?(?:gotta|got to) (.+)",
    r"(?:i )?want to (.+)",
    r"(?:i )?should (.+)",
    r"(?:please )?(?:create|make|add) (?:a )?task (?:to |for )?(.+)",
    r"remind me (?:to )?(.+)",
    r"set a (?:recurring )?reminder (?:to |for )?(.+)",
    r"don'?t (?:let me )?forget (?:to )?(.+)",
    r"remember (?:to )?(.+)",
]

# Trailing scheduling words are not part of a title
_SCHEDULE_TAIL_RE = re.compile(
    r"\s+(?:every|at|on|by|tomorrow|today|tonight|next|this|daily|weekly|monthly)\b.*$",
    re.IGNORECASE,
)
_SENTENCE_RE = re.compile(r"(?:[.!?;\n]+|\band then\b)", re.IGNORECASE)
_NOW_RE = re.compile(r"Current date/time:\s*(\S+)")
_VOICE_INPUT_RE = re.compile(r'Voice input:\s*"(.*)"\s*$', re.DOTALL)

PRIORITY_KEYWORDS = [
    (("urgent", "asap", "immediately", "right away"), ("URGENT", "HIGH")),
    (("important", "soon", "priority"), ("HIGH", "MEDIUM")),
    (("quick", "easy", "simple", "when i have time"), ("LOW", "LOW")),
]

ESTIMATE_KEYWORDS = [
    (("call", "phone"), 10),
    (("email", "text", "message"), 5),
    (("write", "draft", "report"), 30),
    (("meeting", "meet", "appointment"), 60),
]
DEFAULT_ESTIMATE = 15


def extract_title(sentence: str) -> str:
    """Action phrase from a sentence, without trailing schedule words."""
    text = sentence.strip()
    for pattern in TASK_PATTERNS:
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            text = match.group(1)
            break
    text = _SCHEDULE_TAIL_RE.sub("", text).strip(" ,")
    if not text:
        text = sentence.strip()
    return (text[:1].upper() + text[1:])[:80]


def priority_and_energy(text: str) -> tuple[str, str]:
    lower = text.lower()
    for keywords, result in PRIORITY_KEYWORDS:
        if any(k in lower for k in keywords):
            return result
    return "MEDIUM", "MEDIUM"


def estimate_minutes(text: str) -> int:
    lower = text.lower()
    for keywords, minutes in ESTIMATE_KEYWORDS:
        if any(re.search(rf"\b{k}\b", lower) for k in keywords):
            return minutes
    return DEFAULT_ESTIMATE


def split_sentences(text: str) -> list[str]:
    parts = [p.strip() for p in _SENTENCE_RE.split(text or "")]
    return [p for p in parts if p][:MAX_TASKS]


def first_due(text: str, days: list[int], now: datetime) -> datetime | None:
    """Explicit start time when the text names both a day and a time."""
    clock = parse_time_string(text)
    if clock is None:
        return None
    hour, minute = clock
    lower = text.lower()
    if days:
        return min(next_weekday(now, day, hour, minute) for day in days)
    if "tomorrow" in lower:
        return at_time(now + timedelta(days=1), hour, minute)
    if re.search(r"\b(?:today|tonight)\b", lower):
        return at_time(now, hour, minute)
    return None


class MockProvider(BaseLLMProvider):
    """Heuristic provider that never touches the network."""

    name = "mock"
    requires_api_key = False

    def __init__(self, api_key: str = "", model: str = "mock-heuristic"):
        super().__init__(api_key=api_key, model=model)

    async def generate(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> LLMResponse:
        start_time = time.perf_counter()
        user_messages = [m for m in messages if m.role == Role.USER]
        content = user_messages[-1].content if user_messages else ""

        if content.startswith(FALLBACK_PROMPT_PREFIX):
            match = _VOICE_INPUT_RE.search(content)
            body = self.extract_tasks(match.group(1) if match else content)
        else:
            body = self.interpret(content, self._now(system_prompt))

        return LLMResponse(
            content=json.dumps(body),
            model=self.model,
            provider=self.name,
            latency_ms=(time.perf_counter() - start_time) * 1000,
        )

    @staticmethod
    def _now(system_prompt: str | None) -> datetime:
        """Clock embedded in the prompt, so answers are reproducible."""
        match = _NOW_RE.search(system_prompt or "")
        if match:
            try:
                return isoparse(match.group(1))
            except ValueError:
                pass
        return datetime.now(timezone.utc)

    def _task(self, index: int, sentence: str) -> dict:
        priority, energy = priority_and_energy(sentence)
        return {
            "id": f"task_{index + 1}",
            "title": extract_title(sentence),
            "summary": sentence.strip(),
            "priority": priority,
            "energy": energy,
            "estimateMin": estimate_minutes(sentence),
        }

    def extract_tasks(self, text: str) -> dict:
        """Answer in the task-only schema."""
        return {"tasks": [self._task(i, s) for i, s in enumerate(split_sentences(text))]}

    def interpret(self, text: str, now: datetime) -> dict:
        """Answer in the full interpretation schema."""
        signals = detect_signals(text)
        smart = match_smart_default(text)

        tasks = []
        events = []
        for index, sentence in enumerate(split_sentences(text)):
            # Recurrence is decided per sentence so one-off tasks stay one-off
            sentence_smart = match_smart_default(sentence)
            repeating = detect_signals(sentence).has_recurrence or sentence_smart is not None
            days = weekdays_mentioned(sentence) or (
                list(sentence_smart.days) if sentence_smart and sentence_smart.days else []
            )

            task = self._task(index, sentence)
            due = first_due(sentence, days, now)
            task["dueAt"] = due.isoformat() if due else None
            task["isRepeatable"] = repeating

            pattern = None
            if repeating:
                if sentence_smart is not None:
                    pattern = sentence_smart.pattern
                elif re.search(r"\b(?:daily|every day)\b", sentence, re.IGNORECASE):
                    pattern = RepeatPattern.DAILY
                elif re.search(r"\b(?:monthly|every month)\b", sentence, re.IGNORECASE):
                    pattern = RepeatPattern.MONTHLY
                else:
                    pattern = RepeatPattern.WEEKLY
                task.update(
                    repeatPattern=pattern.value,
                    repeatInterval=1,
                    repeatDays=days or None,
                    repeatCount=52,
                )
            tasks.append(task)

            if due is not None and signals.calendar_intent:
                events.append({
                    "id": f"event_{index + 1}",
                    "title": task["title"],
                    "description": task["summary"],
                    "startDate": due.isoformat(),
                    "endDate": (due + timedelta(minutes=task["estimateMin"])).isoformat(),
                    "isAllDay": False,
                    "recurrence": {
                        "type": pattern.value,
                        "interval": 1,
                        "daysOfWeek": days or None,
                        "count": 52,
                    } if pattern else None,
                    "taskId": task["id"],
                })

        sufficient = has_sufficient_detail(text, signals)
        confidence = 0.85 if sufficient or smart is not None else 0.3
        if not sufficient and smart is None and is_vague(text):
            intent = "needs_clarification"
        elif events:
            intent = "task_and_calendar"
        else:
            intent = "task_only"

        return {
            "intent": intent,
            "tasks": tasks,
            "calendarEvents": events,
            "clarifyingQuestions": [],
            "confidence": confidence,
        }
