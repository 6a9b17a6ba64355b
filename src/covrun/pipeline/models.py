"""Pipeline run models - per-stage and per-run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from covrun.config.constants import (
    EXIT_INSTALL_FAILURE,
    EXIT_PROVISION_FAILURE,
    EXIT_REPORT_FAILURE,
    EXIT_SKIPPED,
    EXIT_SUCCESS,
    EXIT_TEST_FAILURE,
    EXIT_UPLOAD_FAILURE,
)
from covrun.core.errors import (
    InstallError,
    ProvisioningError,
    ReportError,
    StageError,
    TestFailure,
    UploadError,
)
from covrun.pipeline.state import PipelineState

StageName = Literal["provision", "install", "test", "report", "upload"]

STAGE_ORDER: tuple[StageName, ...] = ("provision", "install", "test", "report", "upload")

_EXIT_BY_ERROR: tuple[tuple[type[StageError], int], ...] = (
    (ProvisioningError, EXIT_PROVISION_FAILURE),
    (InstallError, EXIT_INSTALL_FAILURE),
    (TestFailure, EXIT_TEST_FAILURE),
    (ReportError, EXIT_REPORT_FAILURE),
    (UploadError, EXIT_UPLOAD_FAILURE),
)


@dataclass
class StageResult:
    """Result of one pipeline stage."""

    stage: StageName
    status: Literal["passed", "failed", "skipped"]
    command: list[str] | None = None
    returncode: int | None = None
    duration_seconds: float = 0.0
    error_detail: str | None = None


@dataclass
class RunResult:
    """Outcome of one pipeline run.

    ``failure`` is the error that decides the run status. Errors from later
    stages that ran anyway (reporting after a test failure) go to
    ``secondary_failures`` so they never mask the primary cause.
    """

    status: Literal["success", "failed", "skipped", "degraded"]
    final_state: PipelineState
    run_id: str | None = None
    stages: list[StageResult] = field(default_factory=list)
    failure: StageError | None = None
    secondary_failures: list[StageError] = field(default_factory=list)
    tool_version: str | None = None
    report_path: Path | None = None
    upload_url: str | None = None

    @property
    def failure_category(self) -> StageName | None:
        for stage in self.stages:
            if stage.status == "failed":
                return stage.stage
        return None

    @property
    def exit_code(self) -> int:
        if self.status == "skipped":
            return EXIT_SKIPPED
        if self.status in ("success", "degraded"):
            return EXIT_SUCCESS
        if self.failure is not None:
            for error_type, code in _EXIT_BY_ERROR:
                if isinstance(self.failure, error_type):
                    return code
        return EXIT_TEST_FAILURE

    def stage(self, name: StageName) -> StageResult | None:
        for stage in self.stages:
            if stage.stage == name:
                return stage
        return None
