"""
LLM Interpretation Client

Sends the interpretation request and turns the reply into a RawModelOutput.
Failures surface as LLMTransportError or LLMParseError; the interpreter
decides how to recover from each. The task-only extraction tier never fails:
it degrades to a single task built from the transcript.
"""

from __future__ import annotations

import json
from datetime import tzinfo
from typing import Any

import structlog
from pydantic import ValidationError

from tasker.exceptions import LLMParseError, LLMTransportError
from tasker.llm.gateway import LLMGateway
from tasker.voice.models import (
    CalendarEventCandidate,
    RawModelOutput,
    new_id,
)
from tasker.voice.prompts import PromptSpec, build_fallback_prompt

logger = structlog.get_logger(__name__)


def strip_code_fences(content: str) -> str:
    """Remove a markdown code block around a JSON reply."""
    content = content.strip()
    if content.startswith("```json"):
        content = content.replace("```json", "", 1)
    elif content.startswith("```"):
        content = content.replace("```", "", 1)
    else:
        return content
    if content.rstrip().endswith("```"):
        content = content.rstrip()[:-3]
    return content.strip()


def parse_json_object(content: str) -> dict[str, Any]:
    """
    Parse model content as a JSON object.

    Raises:
        LLMParseError: Content is not JSON, or not an object
    """
    text = strip_code_fences(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMParseError(f"Invalid JSON from model: {e}", raw=content) from e
    if not isinstance(data, dict):
        raise LLMParseError("Model reply is not a JSON object", raw=content)
    return data


def parse_model_output(content: str) -> RawModelOutput:
    """Parse and schema-check an interpretation reply."""
    data = parse_json_object(content)
    try:
        return RawModelOutput.model_validate(data)
    except ValidationError as e:
        raise LLMParseError(f"Model reply does not match schema: {e}", raw=content) from e


def coerce_events(raw_events: list[dict[str, Any]], tz: tzinfo) -> list[CalendarEventCandidate]:
    """
    Validate calendar events from the model.

    Events that cannot be read are dropped. An unreadable recurrence only
    drops the recurrence. Naive timestamps are read in ``tz``.
    """
    events: list[CalendarEventCandidate] = []
    for raw in raw_events:
        try:
            event = CalendarEventCandidate.model_validate(raw)
        except ValidationError:
            if not raw.get("recurrence"):
                logger.debug("event_dropped", event_id=raw.get("id"))
                continue
            try:
                event = CalendarEventCandidate.model_validate({**raw, "recurrence": None})
            except ValidationError:
                logger.debug("event_dropped", event_id=raw.get("id"))
                continue

        if event.start_date.tzinfo is None:
            event.start_date = event.start_date.replace(tzinfo=tz)
        if event.end_date is not None and event.end_date.tzinfo is None:
            event.end_date = event.end_date.replace(tzinfo=tz)
        events.append(event)
    return events


class InterpretationClient:
    """Issues interpretation and task-only extraction requests."""

    def __init__(self, gateway: LLMGateway, fallback_title_chars: int = 50):
        self.gateway = gateway
        self.fallback_title_chars = fallback_title_chars

    async def interpret(self, prompt: PromptSpec, text: str) -> RawModelOutput:
        """
        Ask the model to interpret a transcript.

        Raises:
            LLMTransportError: Network failure, timeout or empty reply
            LLMParseError: Reply is not valid JSON of the expected shape
        """
        response = await self.gateway.generate(
            prompt.messages(text),
            system_prompt=prompt.system,
            json_mode=True,
        )
        if not response.ok:
            raise LLMTransportError(response.error or "Model request failed")
        return parse_model_output(response.content)

    async def extract_tasks(self, text: str) -> tuple[list[dict[str, Any]], bool]:
        """
        Task-only extraction.

        Returns:
            (tasks, degraded): ``degraded`` is True when the request failed
            and the single transcript task was returned instead
        """
        response = await self.gateway.complete_json(None, build_fallback_prompt(text))
        if response.ok:
            try:
                tasks = parse_json_object(response.content).get("tasks")
            except LLMParseError as e:
                logger.warning("task_extraction_parse_failed", error=str(e))
            else:
                if isinstance(tasks, list):
                    tasks = [t for t in tasks if isinstance(t, dict)]
                    if tasks:
                        return tasks, False
        else:
            logger.warning("task_extraction_failed", error=response.error)

        return [self.degraded_task(text)], True

    def degraded_task(self, text: str) -> dict[str, Any]:
        """Best-effort task: truncated transcript as title, full text as summary."""
        text = text.strip()
        return {
            "id": new_id("task"),
            "title": text[: self.fallback_title_chars] or "Untitled task",
            "summary": text,
            "priority": "MEDIUM",
            "energy": "MEDIUM",
            "estimateMin": None,
        }
