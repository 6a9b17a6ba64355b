"""Config module exports."""

from covrun.config.loader import load_config
from covrun.config.models import (
    CoverageToolConfig,
    CovrunConfig,
    InstrumentationConfig,
    LoggingConfig,
    PolicyConfig,
    ReportConfig,
    TriggerConfig,
    UploadConfig,
)

__all__ = [
    "load_config",
    "CovrunConfig",
    "CoverageToolConfig",
    "InstrumentationConfig",
    "LoggingConfig",
    "PolicyConfig",
    "ReportConfig",
    "TriggerConfig",
    "UploadConfig",
]
