"""
Clarification Orchestrator

Asks only about what a transcript is actually missing, parks the pending
proposal, and re-runs the whole pipeline once the user answers.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Iterator

import structlog

from tasker.exceptions import ProposalNotFoundError
from tasker.voice.models import (
    Energy,
    InterpretationResult,
    Priority,
    TaskCandidate,
    TranscriptInput,
    new_id,
)
from tasker.voice.signals import Signals, detect_signals, has_location_verb

logger = structlog.get_logger(__name__)

# Asked when the model's reply could not be read at all
GENERIC_QUESTIONS = (
    "What specific time?",
    "Which day(s) of the week?",
    "How often should this repeat?",
    "Where should this happen?",
)

# "some day this week" phrasing: the day is the open question, not the date
_WEEK_SCOPED_RE = re.compile(
    r"\b(?:during the week|this week|on a day)\b",
    re.IGNORECASE,
)


def questions_for(text: str, signals: Signals | None = None) -> list[str]:
    """
    Follow-up questions for the fields the transcript leaves out.

    An empty list means nothing is missing.
    """
    s = signals or detect_signals(text)
    questions: list[str] = []

    if not s.has_day and _WEEK_SCOPED_RE.search(text or ""):
        questions.append("Which day of the week?")
        if not s.has_time:
            questions.append("What time?")
    else:
        if not s.has_time:
            questions.append("What specific time?")
        if not s.has_day:
            questions.append("Which day(s) of the week?" if s.has_recurrence else "Which day?")

    if s.has_recurrence and not s.has_time:
        questions.append("How often should this repeat?")
    if has_location_verb(text) and not s.has_location:
        questions.append("Where should this happen?")

    return questions


def placeholder_task(text: str) -> TaskCandidate:
    """Stand-in task shown while the user is asked for details."""
    return TaskCandidate(
        id=new_id("clarify"),
        title="Need more details",
        summary=f'Original request: "{text}"\n\nPlease provide more specific details.',
        priority=Priority.MEDIUM,
        energy=Energy.LOW,
        estimate_min=5,
    )


# Unanswered proposals are dropped after this many seconds
DEFAULT_PROPOSAL_TTL = 30 * 60


@dataclass
class PendingProposal:
    """A clarification request waiting for the user's answer."""

    id: str
    transcript: str
    timezone: str | None
    threshold: float
    result: InterpretationResult
    created_at: float = field(default_factory=time.time)


class ProposalStore:
    """
    In-memory pending proposals, keyed by proposal id.

    One store per session or request scope; pass it to the interpreter
    rather than sharing a module-level instance. Proposals older than
    ``ttl`` seconds are evicted on every read and write.
    """

    def __init__(
        self,
        ttl: float | None = DEFAULT_PROPOSAL_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            ttl: Seconds a proposal stays answerable; None keeps them forever
            clock: Source of the current time in seconds
        """
        self.ttl = ttl
        self.clock = clock
        self._proposals: dict[str, PendingProposal] = {}

    def is_expired(self, proposal: PendingProposal) -> bool:
        return self.ttl is not None and self.clock() - proposal.created_at >= self.ttl

    def prune(self) -> int:
        """Drop expired proposals; returns how many were dropped."""
        stale = [pid for pid, p in self._proposals.items() if self.is_expired(p)]
        for pid in stale:
            del self._proposals[pid]
        if stale:
            logger.debug("proposals_expired", count=len(stale), pending=len(self._proposals))
        return len(stale)

    def put(self, proposal: PendingProposal) -> None:
        self.prune()
        self._proposals[proposal.id] = proposal

    def get(self, proposal_id: str) -> PendingProposal | None:
        self.prune()
        return self._proposals.get(proposal_id)

    def pop(self, proposal_id: str) -> PendingProposal | None:
        self.prune()
        return self._proposals.pop(proposal_id, None)

    def __contains__(self, proposal_id: object) -> bool:
        self.prune()
        return proposal_id in self._proposals

    def __len__(self) -> int:
        self.prune()
        return len(self._proposals)

    def __iter__(self) -> Iterator[PendingProposal]:
        self.prune()
        return iter(list(self._proposals.values()))


Rerun = Callable[[TranscriptInput, datetime | None], Awaitable[InterpretationResult]]


class ClarificationOrchestrator:
    """Opens and resolves clarification proposals."""

    def __init__(self, store: ProposalStore, rerun: Rerun):
        """
        Args:
            store: Where pending proposals are kept
            rerun: Pipeline entry point called with the merged transcript
        """
        self.store = store
        self.rerun = rerun

    def open(self, transcript: TranscriptInput, result: InterpretationResult) -> InterpretationResult:
        """Park ``result`` and return it tagged with its proposal id."""
        proposal_id = new_id("proposal")
        tagged = result.model_copy(update={"proposal_id": proposal_id})
        self.store.put(
            PendingProposal(
                id=proposal_id,
                transcript=transcript.text,
                timezone=transcript.timezone,
                threshold=transcript.confidence_threshold,
                result=tagged,
                created_at=self.store.clock(),
            )
        )
        logger.debug("proposal_opened", proposal_id=proposal_id, pending=len(self.store))
        return tagged

    async def merge_response(
        self,
        pending: PendingProposal | str,
        answer: str,
        now: datetime | None = None,
    ) -> InterpretationResult:
        """
        Append the user's answer to the original transcript and re-run.

        Raises:
            ProposalNotFoundError: No open proposal for ``pending``, or it expired
        """
        if isinstance(pending, str):
            proposal = self.store.pop(pending)
            if proposal is None:
                raise ProposalNotFoundError(f"No pending proposal with id {pending}")
        else:
            proposal = pending
            self.store.pop(proposal.id)
            if self.store.is_expired(proposal):
                raise ProposalNotFoundError(f"Proposal {proposal.id} has expired")

        merged = f"{proposal.transcript} {answer.strip()}".strip()
        logger.debug("proposal_resolved", proposal_id=proposal.id, chars=len(merged))
        return await self.rerun(
            TranscriptInput(
                text=merged,
                timezone=proposal.timezone,
                confidence_threshold=proposal.threshold,
            ),
            now,
        )
