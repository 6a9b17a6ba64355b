"""Blocking subprocess execution for pipeline stages."""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

log = structlog.get_logger()


@dataclass
class CommandResult:
    """Outcome of a single command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    not_found: bool = False  # executable missing from PATH
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.not_found and not self.timed_out

    @property
    def error_detail(self) -> str:
        if self.not_found:
            return f"Executable not found: {self.command[0]}"
        if self.timed_out:
            return f"Timed out after {self.duration_seconds:.1f}s"
        return self.stderr.strip() or f"exit code {self.returncode}"


class Runner(Protocol):
    """What stages need from a command runner."""

    @property
    def cwd(self) -> Path: ...

    def run(
        self,
        command: list[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult: ...


class CommandRunner:
    """Runs commands one at a time in the job's working directory.

    ``env`` entries are layered over the inherited process environment.
    With ``capture=False`` output streams straight to the terminal.
    """

    def __init__(
        self,
        cwd: Path | None = None,
        *,
        timeout_sec: float | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._cwd = (cwd or Path.cwd()).resolve()
        self._timeout_sec = timeout_sec
        self._base_env = dict(base_env) if base_env is not None else None

    @property
    def cwd(self) -> Path:
        return self._cwd

    def _build_env(self, overrides: Mapping[str, str] | None) -> dict[str, str]:
        env = dict(self._base_env) if self._base_env is not None else dict(os.environ)
        if overrides:
            env.update(overrides)
        return env

    def run(
        self,
        command: list[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult:
        start = time.perf_counter()
        full_env = self._build_env(env)

        if not shutil.which(command[0], path=full_env.get("PATH")):
            log.warning("command_not_found", executable=command[0])
            return CommandResult(command=command, returncode=127, not_found=True)

        log.info("command_start", command=command, env_overrides=sorted(env or {}))
        try:
            proc = subprocess.run(
                command,
                cwd=self._cwd,
                env=full_env,
                capture_output=capture,
                text=True,
                timeout=self._timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired:
            elapsed = time.perf_counter() - start
            log.error("command_timeout", command=command, timeout_sec=self._timeout_sec)
            return CommandResult(
                command=command,
                returncode=-1,
                duration_seconds=elapsed,
                timed_out=True,
            )

        elapsed = time.perf_counter() - start
        log.info(
            "command_done",
            command=command,
            returncode=proc.returncode,
            elapsed_s=round(elapsed, 2),
        )
        return CommandResult(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_seconds=elapsed,
        )
