"""
Voice Interpretation

Transcript -> task and calendar proposals, with a clarification loop for
input that is too vague to schedule.
"""

from tasker.voice.ambiguity import (
    SMART_DEFAULTS,
    SmartDefault,
    has_sufficient_detail,
    is_vague,
    match_smart_default,
    needs_clarification,
)
from tasker.voice.clarification import (
    ClarificationOrchestrator,
    PendingProposal,
    ProposalStore,
    questions_for,
)
from tasker.voice.ical import to_ical
from tasker.voice.interpreter import VoiceInterpreter
from tasker.voice.models import (
    CalendarEventCandidate,
    Energy,
    Intent,
    InterpretationResult,
    Priority,
    RecurrencePattern,
    RepeatPattern,
    TaskCandidate,
    TranscriptInput,
)
from tasker.voice.normalizer import normalize
from tasker.voice.prompts import PromptSpec, build_prompt
from tasker.voice.recurrence import expand, iter_occurrences
from tasker.voice.signals import Signals, detect_signals

__all__ = [
    "SMART_DEFAULTS",
    "CalendarEventCandidate",
    "ClarificationOrchestrator",
    "Energy",
    "Intent",
    "InterpretationResult",
    "PendingProposal",
    "Priority",
    "PromptSpec",
    "ProposalStore",
    "RecurrencePattern",
    "RepeatPattern",
    "Signals",
    "SmartDefault",
    "TaskCandidate",
    "TranscriptInput",
    "VoiceInterpreter",
    "build_prompt",
    "detect_signals",
    "expand",
    "has_sufficient_detail",
    "is_vague",
    "iter_occurrences",
    "match_smart_default",
    "needs_clarification",
    "normalize",
    "questions_for",
    "to_ical",
]
