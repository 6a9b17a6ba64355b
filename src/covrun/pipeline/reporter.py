"""Coverage Reporter: RAW -> REPORTED, then upload."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from covrun.config.models import CovrunConfig
from covrun.core.errors import InvalidTransitionError
from covrun.pipeline.runner import Runner
from covrun.pipeline.stages import generate_report
from covrun.pipeline.state import CoverageState
from covrun.upload.codecov import UploadContext, UploadReceipt


class Uploader(Protocol):
    def upload(self, directory: Path, context: UploadContext) -> UploadReceipt: ...


class CoverageReporter:
    """Owns the report artifact for one run.

    Upload is only possible once the raw artifacts have been turned into a
    report; the report directory is what gets uploaded.
    """

    def __init__(self, config: CovrunConfig, runner: Runner) -> None:
        self._config = config
        self._runner = runner
        self._state = CoverageState.RAW
        self._report_path: Path | None = None

    @property
    def state(self) -> CoverageState:
        return self._state

    @property
    def report_path(self) -> Path | None:
        return self._report_path

    @property
    def report_dir(self) -> Path:
        return self._runner.cwd / self._config.report.output_dir

    def generate(self) -> Path:
        if self._state is not CoverageState.RAW:
            raise InvalidTransitionError.between(self._state.value, CoverageState.REPORTED.value)
        self._report_path = generate_report(self._config, self._runner)
        self._state = CoverageState.REPORTED
        return self._report_path

    def upload(self, uploader: Uploader, context: UploadContext) -> UploadReceipt:
        if self._state is not CoverageState.REPORTED:
            raise InvalidTransitionError.between(self._state.value, "uploaded")
        return uploader.upload(self.report_dir, context)
