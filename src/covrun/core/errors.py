"""covrun error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Provisioning
- 4xxx: Install
- 5xxx: Test
- 6xxx: Report
- 7xxx: Upload
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Provisioning (3xxx)
    PROVISION_COMMAND_FAILED = 3001
    PROVISION_EXECUTABLE_MISSING = 3002

    # Install (4xxx)
    INSTALL_COMMAND_FAILED = 4001
    INSTALL_EXECUTABLE_MISSING = 4002
    INSTALL_VERSION_MISMATCH = 4003

    # Test (5xxx)
    TEST_FAILED = 5001
    TEST_EXECUTABLE_MISSING = 5002

    # Report (6xxx)
    REPORT_NO_ARTIFACTS = 6001
    REPORT_COMMAND_FAILED = 6002
    REPORT_EMPTY = 6003

    # Upload (7xxx)
    UPLOAD_MISSING_TOKEN = 7001
    UPLOAD_REQUEST_FAILED = 7002
    UPLOAD_BAD_RESPONSE = 7003
    UPLOAD_NOTHING_TO_SEND = 7004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INVALID_TRANSITION = 9003


@dataclass(frozen=True)
class CovrunError(Exception):
    """Base error with structured context for logs and CLI output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'TEST_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CovrunError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class StageError(CovrunError):
    """Failure of a pipeline stage. Subclasses name the stage."""


class ProvisioningError(StageError):
    """Toolchain provisioning failed."""

    @classmethod
    def command_failed(cls, command: list[str], returncode: int, stderr: str = "") -> "ProvisioningError":
        return cls(
            code=ErrorCode.PROVISION_COMMAND_FAILED,
            message=f"'{' '.join(command)}' exited with {returncode}",
            details={"command": command, "returncode": returncode, "stderr": stderr},
        )

    @classmethod
    def executable_missing(cls, executable: str) -> "ProvisioningError":
        return cls(
            code=ErrorCode.PROVISION_EXECUTABLE_MISSING,
            message=f"Executable not found: {executable}",
            details={"executable": executable},
        )


class InstallError(StageError):
    """Coverage tool installation failed."""

    @classmethod
    def command_failed(cls, command: list[str], returncode: int, stderr: str = "") -> "InstallError":
        return cls(
            code=ErrorCode.INSTALL_COMMAND_FAILED,
            message=f"'{' '.join(command)}' exited with {returncode}",
            details={"command": command, "returncode": returncode, "stderr": stderr},
        )

    @classmethod
    def executable_missing(cls, executable: str) -> "InstallError":
        return cls(
            code=ErrorCode.INSTALL_EXECUTABLE_MISSING,
            message=f"Executable not found: {executable}",
            details={"executable": executable},
        )

    @classmethod
    def version_mismatch(cls, tool: str, expected: str, actual: str | None) -> "InstallError":
        return cls(
            code=ErrorCode.INSTALL_VERSION_MISMATCH,
            message=f"{tool} resolved to {actual or 'unknown'}, expected pinned {expected}",
            details={"tool": tool, "expected": expected, "actual": actual},
        )


class TestFailure(StageError):
    """Instrumented test run exited non-zero."""

    __test__ = False  # not a pytest class

    @classmethod
    def exited(cls, command: list[str], returncode: int) -> "TestFailure":
        return cls(
            code=ErrorCode.TEST_FAILED,
            message=f"Test command exited with {returncode}",
            details={"command": command, "returncode": returncode},
        )

    @classmethod
    def executable_missing(cls, executable: str) -> "TestFailure":
        return cls(
            code=ErrorCode.TEST_EXECUTABLE_MISSING,
            message=f"Executable not found: {executable}",
            details={"executable": executable},
        )


class ReportError(StageError):
    """Coverage report generation failed."""

    @classmethod
    def no_artifacts(cls, build_dir: str) -> "ReportError":
        return cls(
            code=ErrorCode.REPORT_NO_ARTIFACTS,
            message=f"No raw coverage artifacts (*.gcda) under {build_dir}",
            details={"build_dir": build_dir},
        )

    @classmethod
    def command_failed(cls, command: list[str], returncode: int, stderr: str = "") -> "ReportError":
        return cls(
            code=ErrorCode.REPORT_COMMAND_FAILED,
            message=f"'{' '.join(command)}' exited with {returncode}",
            details={"command": command, "returncode": returncode, "stderr": stderr},
        )

    @classmethod
    def empty(cls, path: str) -> "ReportError":
        return cls(
            code=ErrorCode.REPORT_EMPTY,
            message=f"Coverage report missing or empty: {path}",
            details={"path": path},
        )


class UploadError(StageError):
    """Coverage upload failed."""

    @classmethod
    def missing_token(cls, env_var: str) -> "UploadError":
        return cls(
            code=ErrorCode.UPLOAD_MISSING_TOKEN,
            message=f"Upload token not set in ${env_var}",
            details={"env_var": env_var},
        )

    @classmethod
    def request_failed(cls, url: str, reason: str) -> "UploadError":
        return cls(
            code=ErrorCode.UPLOAD_REQUEST_FAILED,
            message=f"Upload request to {url} failed: {reason}",
            details={"url": url, "reason": reason},
        )

    @classmethod
    def bad_response(cls, status_code: int, body: str) -> "UploadError":
        return cls(
            code=ErrorCode.UPLOAD_BAD_RESPONSE,
            message=f"Unexpected upload response ({status_code})",
            details={"status_code": status_code, "body": body[:500]},
        )

    @classmethod
    def nothing_to_send(cls, directory: str) -> "UploadError":
        return cls(
            code=ErrorCode.UPLOAD_NOTHING_TO_SEND,
            message=f"No report files in {directory}",
            details={"directory": directory},
        )


class InternalError(CovrunError):
    """Internal/unexpected errors."""


class InvalidTransitionError(InternalError):
    """Pipeline state machine was asked for an illegal transition."""

    @classmethod
    def between(cls, source: str, target: str) -> "InvalidTransitionError":
        return cls(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Illegal pipeline transition {source} -> {target}",
            details={"from": source, "to": target},
        )
