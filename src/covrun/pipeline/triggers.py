"""Trigger evaluation: does a source-control event start a run?"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from covrun.config.constants import BRANCH_REF_PREFIX, PULL_REQUEST_EVENTS, PUSH_EVENTS
from covrun.config.models import TriggerConfig


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    """A source-control event as reported by the CI host."""

    kind: str  # "push", "pull_request", ...
    ref: str | None = None  # refs/heads/master, refs/pull/12/merge, refs/tags/v1

    @property
    def branch(self) -> str | None:
        """Short branch name for branch refs, None for tags and PR merge refs."""
        if self.ref is None:
            return None
        if self.ref.startswith(BRANCH_REF_PREFIX):
            return self.ref[len(BRANCH_REF_PREFIX) :]
        if self.ref.startswith("refs/"):
            return None
        # Bare branch names, as typed on the command line
        return self.ref

    @property
    def is_push(self) -> bool:
        return self.kind in PUSH_EVENTS

    @property
    def is_pull_request(self) -> bool:
        return self.kind in PULL_REQUEST_EVENTS

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> TriggerEvent:
        """Build from GitHub Actions variables (GITHUB_EVENT_NAME, GITHUB_REF)."""
        env = os.environ if env is None else env
        return cls(
            kind=env.get("GITHUB_EVENT_NAME", ""),
            ref=env.get("GITHUB_REF") or None,
        )


def should_run(event: TriggerEvent, config: TriggerConfig) -> bool:
    """Pushes to the primary branch and every pull request start a run."""
    if event.is_pull_request:
        return True
    if event.is_push:
        return event.branch is not None and event.branch in config.push_branches
    return False
