"""Pipeline orchestration.

Drives one run through PipelineStateMachine:

    IDLE -> TRIGGERED -> PROVISIONING -> INSTALLING -> TESTING
         -> REPORTING -> UPLOADING -> DONE
    any stage -> FAILED, IDLE -> SKIPPED

Failure policies (see PolicyConfig):
- report_on_test_failure: a failed test stage still proceeds to REPORTING,
  but the run ends FAILED with the test failure as its cause.
- upload_failure_fails_run: when false an upload error leaves the run
  "degraded" (exit 0) instead of failed.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import TypeVar

import structlog

from covrun.config.models import CovrunConfig
from covrun.core.errors import ReportError, StageError, TestFailure, UploadError
from covrun.core.logging import set_run_id
from covrun.core.progress import status, task
from covrun.pipeline.models import STAGE_ORDER, RunResult, StageName, StageResult
from covrun.pipeline.reporter import CoverageReporter, Uploader
from covrun.pipeline.runner import Runner
from covrun.pipeline.stages import (
    build_install_command,
    build_report_command,
    build_test_command,
    install_coverage_tool,
    provision_toolchain,
    run_instrumented_tests,
)
from covrun.pipeline.state import PipelineState, PipelineStateMachine
from covrun.pipeline.triggers import TriggerEvent, should_run
from covrun.upload.codecov import CodecovUploader, UploadContext

log = structlog.get_logger()

T = TypeVar("T")

_STAGE_LABELS: dict[StageName, str] = {
    "provision": "Provisioning toolchain",
    "install": "Installing coverage tool",
    "test": "Running instrumented tests",
    "report": "Generating coverage report",
    "upload": "Uploading coverage",
}


class Pipeline:
    """One linear coverage pipeline run per call to run()."""

    def __init__(
        self,
        config: CovrunConfig,
        runner: Runner,
        *,
        uploader: Uploader | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._env = env
        self._uploader = uploader or CodecovUploader(config.upload, env=env)

    def _stage_command(self, name: StageName) -> list[str] | None:
        if name == "install":
            return build_install_command(self._config)
        if name == "test":
            return build_test_command(self._config)
        if name == "report":
            return build_report_command(self._config)
        return None

    def _run_stage(
        self,
        machine: PipelineStateMachine,
        state: PipelineState,
        name: StageName,
        stages: list[StageResult],
        fn: Callable[[], T],
    ) -> T:
        machine.advance(state)
        log.info("stage_start", stage=name)
        start = time.perf_counter()
        try:
            with task(_STAGE_LABELS[name]):
                value = fn()
        except StageError as e:
            elapsed = time.perf_counter() - start
            stages.append(
                StageResult(
                    stage=name,
                    status="failed",
                    command=self._stage_command(name),
                    returncode=e.details.get("returncode"),
                    duration_seconds=elapsed,
                    error_detail=e.message,
                )
            )
            log.error("stage_failed", stage=name, error=e.error_name, message=e.message)
            raise
        elapsed = time.perf_counter() - start
        stages.append(
            StageResult(
                stage=name,
                status="passed",
                command=self._stage_command(name),
                returncode=0,
                duration_seconds=elapsed,
            )
        )
        log.info("stage_done", stage=name, elapsed_s=round(elapsed, 2))
        return value

    def run(self, event: TriggerEvent) -> RunResult:
        """Evaluate the trigger and, if it matches, run every stage in order.

        KeyboardInterrupt (job cancellation) moves the machine to FAILED and
        propagates with no partial result.
        """
        run_id = set_run_id()
        machine = PipelineStateMachine()
        log.info("trigger_received", kind=event.kind, ref=event.ref)

        if not should_run(event, self._config.trigger):
            machine.advance(PipelineState.SKIPPED)
            log.info("run_skipped", kind=event.kind, ref=event.ref)
            status(f"Skipped: {event.kind} {event.ref or ''}".rstrip(), style="skip")
            return RunResult(status="skipped", final_state=machine.state, run_id=run_id)

        machine.advance(PipelineState.TRIGGERED)
        result = RunResult(status="success", final_state=machine.state, run_id=run_id)
        try:
            self._execute(machine, result)
        except BaseException:
            if not machine.is_terminal:
                machine.advance(PipelineState.FAILED)
            log.warning("run_aborted", state=machine.state.value)
            raise

        result.final_state = machine.state
        self._fill_skipped(result)
        log.info(
            "run_done",
            status=result.status,
            final_state=result.final_state.value,
            exit_code=result.exit_code,
        )
        return result

    def _execute(self, machine: PipelineStateMachine, result: RunResult) -> None:
        config = self._config
        stages = result.stages

        try:
            self._run_stage(
                machine,
                PipelineState.PROVISIONING,
                "provision",
                stages,
                lambda: provision_toolchain(config, self._runner),
            )
            result.tool_version = self._run_stage(
                machine,
                PipelineState.INSTALLING,
                "install",
                stages,
                lambda: install_coverage_tool(config, self._runner),
            )
        except StageError as e:
            self._fail(machine, result, e)
            return

        test_failure: TestFailure | None = None
        try:
            self._run_stage(
                machine,
                PipelineState.TESTING,
                "test",
                stages,
                lambda: run_instrumented_tests(config, self._runner),
            )
        except TestFailure as e:
            test_failure = e
            if not config.policy.report_on_test_failure:
                log.info("report_skipped", reason="test_failure")
                self._fail(machine, result, e)
                return

        reporter = CoverageReporter(config, self._runner)
        try:
            result.report_path = self._run_stage(
                machine, PipelineState.REPORTING, "report", stages, reporter.generate
            )
        except ReportError as e:
            self._fail(machine, result, test_failure or e, secondary=e if test_failure else None)
            return

        if not config.upload.enabled:
            log.info("upload_skipped", reason="disabled")
            self._finish(machine, result, test_failure)
            return

        context = UploadContext.from_env(self._env)
        try:
            receipt = self._run_stage(
                machine,
                PipelineState.UPLOADING,
                "upload",
                stages,
                lambda: reporter.upload(self._uploader, context),
            )
            result.upload_url = receipt.result_url
        except UploadError as e:
            if test_failure is not None:
                self._fail(machine, result, test_failure, secondary=e)
            elif config.policy.upload_failure_fails_run:
                self._fail(machine, result, e)
            else:
                log.warning("upload_failed", error=e.error_name, policy="degrade")
                result.status = "degraded"
                result.secondary_failures.append(e)
                machine.advance(PipelineState.DONE)
            return

        self._finish(machine, result, test_failure)

    def _finish(
        self,
        machine: PipelineStateMachine,
        result: RunResult,
        test_failure: TestFailure | None,
    ) -> None:
        if test_failure is not None:
            self._fail(machine, result, test_failure)
        else:
            machine.advance(PipelineState.DONE)

    def _fail(
        self,
        machine: PipelineStateMachine,
        result: RunResult,
        error: StageError,
        *,
        secondary: StageError | None = None,
    ) -> None:
        result.status = "failed"
        result.failure = error
        if secondary is not None:
            result.secondary_failures.append(secondary)
        machine.advance(PipelineState.FAILED)

    def _fill_skipped(self, result: RunResult) -> None:
        ran = {s.stage for s in result.stages}
        for name in STAGE_ORDER:
            if name not in ran:
                result.stages.append(StageResult(stage=name, status="skipped"))
        order = {name: i for i, name in enumerate(STAGE_ORDER)}
        result.stages.sort(key=lambda s: order[s.stage])
