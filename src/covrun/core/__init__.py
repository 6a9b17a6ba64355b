"""Core module exports."""

from covrun.core.errors import (
    ConfigError,
    CovrunError,
    ErrorCode,
    InstallError,
    InternalError,
    InvalidTransitionError,
    ProvisioningError,
    ReportError,
    StageError,
    TestFailure,
    UploadError,
)
from covrun.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from covrun.core.progress import status, task

__all__ = [
    # Errors
    "ConfigError",
    "CovrunError",
    "ErrorCode",
    "InstallError",
    "InternalError",
    "InvalidTransitionError",
    "ProvisioningError",
    "ReportError",
    "StageError",
    "TestFailure",
    "UploadError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "status",
    "task",
]
