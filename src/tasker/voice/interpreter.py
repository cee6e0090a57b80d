"""
Voice Interpreter

Pipeline entry point: transcript in, InterpretationResult out.

    signals -> ambiguity gate -> prompt -> model -> normalize -> expand
                     |                                  |
                     +------> clarification <-----------+

Transport and parse failures are recovered here and never reach the caller.
The only exception that propagates is ConfigurationError, raised while
building the interpreter from config.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import ValidationError

from tasker.config import TaskerConfig, get_config
from tasker.events import (
    CLARIFICATION_OPENED,
    CLARIFICATION_RESOLVED,
    INTERPRET_CLARIFICATION_REQUESTED,
    INTERPRET_COMPLETED,
    INTERPRET_DEGRADED,
    INTERPRET_FALLBACK,
    EventBus,
)
from tasker.exceptions import LLMParseError, LLMTransportError
from tasker.llm.gateway import LLMGateway
from tasker.utils.logging import preview
from tasker.voice.ambiguity import (
    SmartDefault,
    has_sufficient_detail,
    is_vague,
    match_smart_default,
    needs_clarification,
)
from tasker.voice.clarification import (
    GENERIC_QUESTIONS,
    ClarificationOrchestrator,
    ProposalStore,
    placeholder_task,
    questions_for,
)
from tasker.voice.client import InterpretationClient, coerce_events
from tasker.voice.models import (
    DEFAULT_CLARIFY_THRESHOLD,
    CalendarEventCandidate,
    Intent,
    InterpretationResult,
    TaskCandidate,
    TranscriptInput,
)
from tasker.voice.normalizer import clamp_confidence, normalize
from tasker.voice.prompts import build_prompt
from tasker.voice.recurrence import iter_occurrences
from tasker.voice.signals import detect_signals

logger = structlog.get_logger(__name__)

# Confidence reported when the model omits one
DEFAULT_MODEL_CONFIDENCE = 0.8
# Task-only answers: straight extraction, after a transport failure, degraded
TASK_ONLY_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.5
DEGRADED_CONFIDENCE = 0.3
# Clarification asked before the model is consulted, or after a parse failure
PRE_MODEL_CLARIFY_CONFIDENCE = 0.2


def derive_intent(tasks: list[Any], events: list[Any]) -> Intent:
    if tasks and events:
        return Intent.TASK_AND_CALENDAR
    if events:
        return Intent.CALENDAR_ONLY
    return Intent.TASK_ONLY


class VoiceInterpreter:
    """
    Turns transcripts into task and calendar proposals.

    Instances hold no per-request state apart from the proposal store, so
    concurrent ``process`` calls are independent.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        clarify_threshold: float = DEFAULT_CLARIFY_THRESHOLD,
        max_occurrences: int = 52,
        max_tasks: int = 7,
        default_timezone: str = "UTC",
        fallback_title_chars: int = 50,
        event_bus: EventBus | None = None,
        store: ProposalStore | None = None,
    ):
        """
        Initialize the interpreter.

        Args:
            gateway: LLM gateway used for both request tiers
            clarify_threshold: Default confidence at or below which to ask
            max_occurrences: Cap on expanded occurrences per event
            max_tasks: Cap on tasks returned per transcript
            default_timezone: IANA name used when the input has none
            fallback_title_chars: Title length of the degraded task
            event_bus: Optional observer for pipeline events
            store: Pending clarification proposals
        """
        self.client = InterpretationClient(gateway, fallback_title_chars)
        self.clarify_threshold = clarify_threshold
        self.max_occurrences = max_occurrences
        self.max_tasks = max_tasks
        self.default_timezone = default_timezone
        self.event_bus = event_bus
        self.store = store if store is not None else ProposalStore()
        self.orchestrator = ClarificationOrchestrator(self.store, self.process)

    @classmethod
    def from_config(
        cls,
        config: TaskerConfig | None = None,
        api_key: str | None = None,
        event_bus: EventBus | None = None,
        store: ProposalStore | None = None,
    ) -> "VoiceInterpreter":
        """
        Build an interpreter from configuration.

        Raises:
            ConfigurationError: Unknown provider or missing API key
        """
        from tasker.llm.providers import get_provider

        config = config or get_config()
        provider = get_provider(
            config.llm.provider,
            api_key=api_key or config.llm.resolve_api_key(),
            model=config.llm.model,
        )
        gateway = LLMGateway(
            provider,
            timeout=config.llm.timeout,
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        )
        return cls(
            gateway,
            clarify_threshold=config.interpret.clarify_threshold,
            max_occurrences=config.interpret.max_occurrences,
            max_tasks=config.interpret.max_tasks,
            default_timezone=config.interpret.default_timezone,
            fallback_title_chars=config.interpret.fallback_title_chars,
            event_bus=event_bus,
            store=store if store is not None else ProposalStore(ttl=config.interpret.proposal_ttl),
        )

    def resolve_timezone(self, name: str | None) -> tuple[str, ZoneInfo]:
        """User timezone, or the default when missing or unknown."""
        if name:
            try:
                return name, ZoneInfo(name)
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning("unknown_timezone", timezone=name, fallback=self.default_timezone)
        return self.default_timezone, ZoneInfo(self.default_timezone)

    async def process(
        self,
        transcript: TranscriptInput | str,
        now: datetime | None = None,
    ) -> InterpretationResult:
        """
        Interpret one transcript.

        Args:
            transcript: The input, or plain text with default settings
            now: Current time (defaults to the wall clock, UTC)

        Returns:
            The interpretation; never raises for model or network trouble
        """
        if isinstance(transcript, str):
            transcript = TranscriptInput(text=transcript, confidence_threshold=self.clarify_threshold)

        text = transcript.text.strip()
        tz_name, tz = self.resolve_timezone(transcript.timezone)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local_now = now.astimezone(tz)
        threshold = transcript.confidence_threshold

        log = logger.bind(chars=len(text), preview=preview(text), timezone=tz_name)
        log.info("interpret_started")

        if not text:
            return InterpretationResult(intent=Intent.TASK_ONLY, confidence=0.0)

        signals = detect_signals(text)
        if is_vague(text) and not has_sufficient_detail(text, signals):
            questions = questions_for(text, signals)
            if questions:
                return await self._clarify(transcript, questions, PRE_MODEL_CLARIFY_CONFIDENCE)

        if not signals.calendar_intent:
            log.debug("no_calendar_intent")
            result = await self._tasks_only(text, local_now, TASK_ONLY_CONFIDENCE)
            return await self._complete(result)

        prompt = build_prompt(text, local_now, tz_name, threshold)
        try:
            raw = await self.client.interpret(prompt, text)
        except LLMTransportError as e:
            log.warning("interpret_transport_failed", error=str(e))
            await self._emit(INTERPRET_FALLBACK, {"error": str(e)})
            result = await self._tasks_only(text, local_now, FALLBACK_CONFIDENCE)
            return await self._complete(result)
        except LLMParseError as e:
            log.warning("interpret_parse_failed", error=str(e), raw_chars=len(e.raw))
            return await self._clarify(
                transcript, list(GENERIC_QUESTIONS), PRE_MODEL_CLARIFY_CONFIDENCE
            )

        smart = match_smart_default(text)
        tasks = self._normalize_tasks(raw.tasks, local_now, smart)
        events = coerce_events(raw.calendar_events, tz)
        confidence = clamp_confidence(raw.confidence, DEFAULT_MODEL_CONFIDENCE)

        if needs_clarification(text, confidence, threshold, len(events)):
            questions = questions_for(text, signals)
            if questions:
                return await self._clarify(transcript, questions, min(confidence, threshold))
            log.debug("clarification_skipped")

        if not tasks and not events:
            log.warning("interpret_empty_result")
            tasks = self._normalize_tasks([self.client.degraded_task(text)], local_now, None)
            await self._emit(INTERPRET_DEGRADED, {"reason": "empty_result"})

        intent = Intent.__members__.get(str(raw.intent or "").upper())
        if intent is None or intent == Intent.NEEDS_CLARIFICATION:
            intent = derive_intent(tasks, events)

        result = InterpretationResult(
            intent=intent,
            tasks=tasks,
            calendar_events=events,
            confidence=confidence,
            occurrences=self._expand(events),
        )
        return await self._complete(result)

    async def answer_clarification(
        self,
        proposal_id: str,
        answer: str,
        now: datetime | None = None,
    ) -> InterpretationResult:
        """
        Resolve a pending clarification with the user's answer.

        Raises:
            ProposalNotFoundError: No open proposal with that id
        """
        result = await self.orchestrator.merge_response(proposal_id, answer, now)
        await self._emit(
            CLARIFICATION_RESOLVED,
            {"proposal_id": proposal_id, "intent": result.intent.value},
        )
        return result

    async def _tasks_only(
        self,
        text: str,
        local_now: datetime,
        confidence: float,
    ) -> InterpretationResult:
        raw_tasks, degraded = await self.client.extract_tasks(text)
        tasks = self._normalize_tasks(raw_tasks, local_now, None)
        if not tasks:
            tasks = self._normalize_tasks([self.client.degraded_task(text)], local_now, None)
            degraded = True
        if degraded:
            logger.warning("interpret_degraded", chars=len(text))
            await self._emit(INTERPRET_DEGRADED, {"reason": "extraction_failed"})
        return InterpretationResult(
            intent=Intent.TASK_ONLY,
            tasks=tasks,
            confidence=DEGRADED_CONFIDENCE if degraded else confidence,
        )

    def _normalize_tasks(
        self,
        raw_tasks: Iterable[dict[str, Any]],
        local_now: datetime,
        smart: SmartDefault | None,
    ) -> list[TaskCandidate]:
        tasks: list[TaskCandidate] = []
        for raw in raw_tasks:
            if len(tasks) >= self.max_tasks:
                logger.info("task_cap_reached", max_tasks=self.max_tasks)
                break
            try:
                tasks.append(normalize(raw, local_now, smart_default=smart))
            except ValidationError as e:
                logger.debug("task_dropped", error=str(e))
        return tasks

    def _expand(self, events: list[CalendarEventCandidate]) -> list[CalendarEventCandidate]:
        occurrences: list[CalendarEventCandidate] = []
        for event in events:
            occurrences.extend(iter_occurrences(event, self.max_occurrences))
        return occurrences

    async def _clarify(
        self,
        transcript: TranscriptInput,
        questions: list[str],
        confidence: float,
    ) -> InterpretationResult:
        result = InterpretationResult(
            intent=Intent.NEEDS_CLARIFICATION,
            tasks=[placeholder_task(transcript.text.strip())],
            clarifying_questions=questions,
            confidence=confidence,
        )
        result = self.orchestrator.open(transcript, result)
        logger.info(
            "interpret_clarification_requested",
            proposal_id=result.proposal_id,
            questions=len(questions),
        )
        await self._emit(
            INTERPRET_CLARIFICATION_REQUESTED,
            {"proposal_id": result.proposal_id, "questions": questions},
        )
        await self._emit(CLARIFICATION_OPENED, {"proposal_id": result.proposal_id})
        return result

    async def _complete(self, result: InterpretationResult) -> InterpretationResult:
        logger.info(
            "interpret_completed",
            intent=result.intent.value,
            tasks=len(result.tasks),
            events=len(result.calendar_events),
            occurrences=len(result.occurrences),
            confidence=result.confidence,
        )
        await self._emit(
            INTERPRET_COMPLETED,
            {
                "intent": result.intent.value,
                "tasks": len(result.tasks),
                "events": len(result.calendar_events),
                "confidence": result.confidence,
            },
        )
        return result

    async def _emit(self, name: str, payload: dict[str, Any]) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(name, payload)
