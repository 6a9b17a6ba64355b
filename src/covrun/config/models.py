"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (COVRUN__SECTION__KEY)
3. Repo YAML (.covrun/config.yaml)
4. Global YAML (~/.config/covrun/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    COVRUN__<SECTION>__<KEY>=<VALUE>

Examples:
    COVRUN__LOGGING__LEVEL=DEBUG
    COVRUN__TRIGGER__PRIMARY_BRANCH=main
    COVRUN__POLICY__UPLOAD_FAILURE_FAILS_RUN=true
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from covrun.config.constants import (
    CODECOV_DEFAULT_URL,
    CODECOV_TOKEN_ENV,
    COVERAGE_TOOL_NAME,
    DEFAULT_BUILD_DIR,
    DEFAULT_PRIMARY_BRANCH,
    DEFAULT_REPORT_DIR,
    DEFAULT_REPORT_FILENAME,
    FLOATING_VERSION_MARKERS,
    GRCOV_KNOWN_BROKEN_VERSION,
    GRCOV_PINNED_VERSION,
    INTEGRATION_TEST_FEATURE,
    TOOLCHAIN_CHANNEL,
    TOOLCHAIN_PROFILE,
    VERSION_RANGE_PREFIXES,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_EXACT_VERSION = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$")


def version_tuple(version: str) -> tuple[int, ...]:
    """Numeric release components of a semver string ("0.8.2-alpha" -> (0, 8, 2))."""
    release = re.split(r"[-+]", version, maxsplit=1)[0]
    return tuple(int(part) for part in release.split("."))


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        COVRUN__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every command and environment override.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class TriggerConfig(BaseModel):
    """Which source-control events start a run.

    Env vars:
        COVRUN__TRIGGER__PRIMARY_BRANCH: Branch whose pushes start a run
    """

    primary_branch: str = Field(
        default=DEFAULT_PRIMARY_BRANCH,
        description="Pushes to this branch start a run. Pull requests always do.",
    )
    extra_branches: list[str] = Field(
        default_factory=list,
        description="Additional push branches that start a run.",
    )

    @field_validator("primary_branch")
    @classmethod
    def validate_primary_branch(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("primary_branch must not be empty")
        return v

    @property
    def push_branches(self) -> frozenset[str]:
        return frozenset([self.primary_branch, *self.extra_branches])


class ToolchainConfig(BaseModel):
    """Toolchain provisioning.

    Env vars:
        COVRUN__TOOLCHAIN__CHANNEL: rustup channel (default: nightly)
        COVRUN__TOOLCHAIN__PROFILE: rustup install profile (default: minimal)
    """

    channel: str = Field(
        default=TOOLCHAIN_CHANNEL,
        description="rustup channel. Instrumentation needs -Zprofile, which only nightly accepts.",
    )
    profile: Literal["minimal", "default", "complete"] = Field(
        default=TOOLCHAIN_PROFILE,
        description="rustup profile. minimal skips docs and optional components.",
    )
    executable: str = "rustup"


class CoverageToolConfig(BaseModel):
    """Coverage-processing tool installation.

    Env vars:
        COVRUN__COVERAGE_TOOL__VERSION: Exact grcov version to install
        COVRUN__COVERAGE_TOOL__ALLOW_UNVALIDATED_BUMP: Accept pins at/above the broken release
    """

    name: str = COVERAGE_TOOL_NAME
    version: str = Field(
        default=GRCOV_PINNED_VERSION,
        description=f"Exact version. {GRCOV_KNOWN_BROKEN_VERSION} is known to fail to build.",
    )
    force: bool = Field(
        default=True,
        description="Pass --force so a cached newer binary is overwritten with the pin.",
    )
    allow_unvalidated_bump: bool = Field(
        default=False,
        description="Allow pins at or above the known-broken release. "
        "RISK: set only after confirming the newer release builds.",
    )
    installer: str = "cargo"
    verify_version: bool = Field(
        default=True,
        description="Run '<tool> --version' after install and fail on mismatch.",
    )

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        v = v.strip()
        if v.lower() in FLOATING_VERSION_MARKERS:
            raise ValueError(f"Coverage tool version must be pinned, got {v!r}")
        if v.startswith(VERSION_RANGE_PREFIXES) or not _EXACT_VERSION.match(v):
            raise ValueError(f"Coverage tool version must be an exact x.y.z release, got {v!r}")
        return v

    @model_validator(mode="after")
    def guard_known_regression(self) -> "CoverageToolConfig":
        if self.allow_unvalidated_bump:
            return self
        if version_tuple(self.version) >= version_tuple(GRCOV_KNOWN_BROKEN_VERSION):
            raise ValueError(
                f"{self.name} {self.version} is at or above {GRCOV_KNOWN_BROKEN_VERSION}, "
                "which fails to build; set allow_unvalidated_bump after re-validating"
            )
        return self


class InstrumentationConfig(BaseModel):
    """Compiler flags for coverage instrumentation.

    Every field is applied identically to RUSTFLAGS and RUSTDOCFLAGS.
    """

    profile: bool = Field(default=True, description="-Zprofile (gcov-style counters).")
    codegen_units: int = Field(
        default=1,
        description="-Ccodegen-units. More than one fragments counters across units.",
    )
    inline_threshold: int = Field(
        default=0,
        description="-Cinline-threshold. 0 keeps inlined code attributed to its own lines.",
    )
    link_dead_code: bool = Field(
        default=True,
        description="-Clink-dead-code so unreached functions appear as uncovered.",
    )
    overflow_checks: bool = Field(default=False, description="-Coverflow-checks.")
    incremental: bool = Field(
        default=False,
        description="CARGO_INCREMENTAL. Incremental builds produce inconsistent counters.",
    )

    @field_validator("codegen_units")
    @classmethod
    def validate_codegen_units(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"codegen_units must be >= 1, got {v}")
        return v

    @field_validator("inline_threshold")
    @classmethod
    def validate_inline_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"inline_threshold must be >= 0, got {v}")
        return v


class TestConfig(BaseModel):
    """Instrumented test invocation.

    Env vars:
        COVRUN__TEST__NOCAPTURE: Stream test output live (default: true)
    """

    __test__ = False  # not a pytest class

    executable: str = "cargo"
    features: list[str] = Field(
        default_factory=lambda: [INTEGRATION_TEST_FEATURE],
        description="Cargo features enabled for the test build.",
    )
    nocapture: bool = Field(
        default=True,
        description="Pass --nocapture so failing-test diagnostics stream live.",
    )
    extra_args: list[str] = Field(
        default_factory=list,
        description="Extra cargo test arguments placed before '--'.",
    )


class ReportConfig(BaseModel):
    """Coverage report generation.

    Env vars:
        COVRUN__REPORT__OUTPUT_DIR: Report directory (default: ./coverage/reports/)
    """

    build_dir: str = Field(
        default=DEFAULT_BUILD_DIR,
        description="Directory holding raw .gcda/.gcno artifacts.",
    )
    source_dir: str = "."
    output_dir: str = Field(default=DEFAULT_REPORT_DIR)
    output_filename: str = DEFAULT_REPORT_FILENAME
    output_type: Literal["lcov", "cobertura", "coveralls", "html"] = "lcov"
    branch: bool = True
    ignore_not_existing: bool = True
    ignore: list[str] = Field(
        default_factory=lambda: ["/*"],
        description="Path globs excluded from the report. /* drops toolchain and registry sources.",
    )

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / self.output_filename


class UploadConfig(BaseModel):
    """Remote coverage upload.

    Env vars:
        COVRUN__UPLOAD__ENABLED: Skip upload entirely when false
        COVRUN__UPLOAD__TOKEN_ENV: Name of the env var holding the token
    """

    enabled: bool = True
    url: str = Field(default=CODECOV_DEFAULT_URL)
    token_env: str = Field(
        default=CODECOV_TOKEN_ENV,
        description="Environment variable holding the upload token. The token itself is never configured here.",
    )
    require_token: bool = Field(
        default=False,
        description="Public repos on GitHub Actions may upload tokenless.",
    )
    timeout_sec: float = 60.0
    flags: list[str] = Field(default_factory=list)
    name: str | None = None


class PolicyConfig(BaseModel):
    """Failure policies left open by the workflow definition.

    Env vars:
        COVRUN__POLICY__REPORT_ON_TEST_FAILURE
        COVRUN__POLICY__UPLOAD_FAILURE_FAILS_RUN
    """

    report_on_test_failure: bool = Field(
        default=True,
        description="Generate and upload coverage even when tests fail; partial data is still informative.",
    )
    upload_failure_fails_run: bool = Field(
        default=False,
        description="When false an upload failure marks the run degraded, not failed.",
    )


class RunnerConfig(BaseModel):
    """Subprocess execution.

    Env vars:
        COVRUN__RUNNER__TIMEOUT_SEC: Per-command timeout (default: none)
    """

    timeout_sec: float | None = Field(
        default=None,
        description="Per-command timeout. None defers to the CI job timeout.",
    )
    workdir: str = "."

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"timeout_sec must be positive, got {v}")
        return v


class CovrunConfig(BaseModel):
    """Root configuration for covrun.

    All settings can be configured via:
    1. Environment variables: COVRUN__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    trigger: TriggerConfig = Field(default_factory=TriggerConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    coverage_tool: CoverageToolConfig = Field(default_factory=CoverageToolConfig)
    instrumentation: InstrumentationConfig = Field(default_factory=InstrumentationConfig)
    test: TestConfig = Field(default_factory=TestConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
