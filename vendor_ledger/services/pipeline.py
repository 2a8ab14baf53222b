"""Explicit state machine for one ingestion run."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    HASHING = "hashing"
    RESOLVING = "resolving"
    SUPERSEDING = "superseding"
    CREATING_BATCH = "creating_batch"
    CREATING_HEADER = "creating_header"
    RECONCILING = "reconciling"
    WRITING_LINE_ITEMS = "writing_line_items"
    UPSERTING_TRIAGE = "upserting_triage"
    UPDATING_PRICES = "updating_prices"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


_FORWARD = [
    PipelineState.HASHING,
    PipelineState.RESOLVING,
    PipelineState.SUPERSEDING,
    PipelineState.CREATING_BATCH,
    PipelineState.CREATING_HEADER,
    PipelineState.RECONCILING,
    PipelineState.WRITING_LINE_ITEMS,
    PipelineState.UPSERTING_TRIAGE,
    PipelineState.UPDATING_PRICES,
    PipelineState.FINALIZING,
    PipelineState.COMPLETED,
]

TERMINAL_STATES = frozenset({PipelineState.COMPLETED, PipelineState.FAILED})

TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    state: frozenset({following, PipelineState.FAILED})
    for state, following in zip(_FORWARD, _FORWARD[1:])
}
TRANSITIONS[PipelineState.COMPLETED] = frozenset()
TRANSITIONS[PipelineState.FAILED] = frozenset()


@dataclass(slots=True)
class PipelineRun:
    """Tracks where a run is, what it passed through, and any degraded steps."""

    state: PipelineState = PipelineState.HASHING
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.HASHING])
    warnings: list[str] = field(default_factory=list)
    failed_in: PipelineState | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_advance(self, target: PipelineState) -> bool:
        return target in TRANSITIONS[self.state]

    def advance(self, target: PipelineState) -> None:
        if not self.can_advance(target):
            raise InvalidTransitionError(f"Cannot move from {self.state.value} to {target.value}")
        logger.debug("Pipeline %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def fail(self, error: str) -> None:
        failed_in = self.state
        self.advance(PipelineState.FAILED)
        self.failed_in = failed_in
        self.error = error
