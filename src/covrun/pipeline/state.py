"""Pipeline state machines.

PipelineState covers the whole run; CoverageState covers the report artifact
inside the Reporting stage. Both reject transitions not listed here.
"""

from __future__ import annotations

from enum import Enum

import structlog

from covrun.core.errors import InvalidTransitionError

log = structlog.get_logger()


class PipelineState(Enum):
    IDLE = "idle"
    TRIGGERED = "triggered"
    SKIPPED = "skipped"
    PROVISIONING = "provisioning"
    INSTALLING = "installing"
    TESTING = "testing"
    REPORTING = "reporting"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({PipelineState.SKIPPED, PipelineState.DONE, PipelineState.FAILED})

TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.TRIGGERED, PipelineState.SKIPPED}),
    PipelineState.TRIGGERED: frozenset({PipelineState.PROVISIONING, PipelineState.FAILED}),
    PipelineState.PROVISIONING: frozenset({PipelineState.INSTALLING, PipelineState.FAILED}),
    PipelineState.INSTALLING: frozenset({PipelineState.TESTING, PipelineState.FAILED}),
    # Failed tests still move to REPORTING when report_on_test_failure is set
    PipelineState.TESTING: frozenset({PipelineState.REPORTING, PipelineState.FAILED}),
    PipelineState.REPORTING: frozenset(
        {PipelineState.UPLOADING, PipelineState.DONE, PipelineState.FAILED}
    ),
    PipelineState.UPLOADING: frozenset({PipelineState.DONE, PipelineState.FAILED}),
    PipelineState.SKIPPED: frozenset(),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


class PipelineStateMachine:
    """Tracks the current state of one run and its history."""

    def __init__(self, initial: PipelineState = PipelineState.IDLE) -> None:
        self._state = initial
        self._history: list[PipelineState] = [initial]

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> list[PipelineState]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def can_advance(self, target: PipelineState) -> bool:
        return target in TRANSITIONS[self._state]

    def advance(self, target: PipelineState) -> PipelineState:
        """Move to target.

        Raises:
            InvalidTransitionError: If target is not reachable from the current state.
        """
        if not self.can_advance(target):
            raise InvalidTransitionError.between(self._state.value, target.value)
        log.debug("transition", source=self._state.value, target=target.value)
        self._state = target
        self._history.append(target)
        return target


class CoverageState(Enum):
    RAW = "raw"
    REPORTED = "reported"
