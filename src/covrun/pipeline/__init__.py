"""Coverage pipeline: trigger evaluation, stages, and orchestration."""

from covrun.pipeline.instrumentation import InstrumentationFlags
from covrun.pipeline.models import RunResult, StageResult
from covrun.pipeline.orchestrator import Pipeline
from covrun.pipeline.runner import CommandResult, CommandRunner
from covrun.pipeline.state import CoverageState, PipelineState, PipelineStateMachine
from covrun.pipeline.triggers import TriggerEvent, should_run

__all__ = [
    "CommandResult",
    "CommandRunner",
    "CoverageState",
    "InstrumentationFlags",
    "Pipeline",
    "PipelineState",
    "PipelineStateMachine",
    "RunResult",
    "StageResult",
    "TriggerEvent",
    "should_run",
]
