"""Tests for pipeline/stages.py with a scripted runner."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from covrun.config.models import CovrunConfig
from covrun.core.errors import (
    ErrorCode,
    InstallError,
    ProvisioningError,
    ReportError,
    TestFailure,
)
from covrun.pipeline.runner import CommandResult
from covrun.pipeline.stages import (
    build_install_command,
    build_provision_commands,
    build_report_command,
    build_test_command,
    discover_artifacts,
    generate_report,
    install_coverage_tool,
    parse_tool_version,
    provision_toolchain,
    run_instrumented_tests,
)

MakeRunner = Callable[..., Any]


@pytest.fixture
def config() -> CovrunConfig:
    return CovrunConfig()


class TestProvision:
    def test_commands(self, config: CovrunConfig) -> None:
        assert build_provision_commands(config) == [
            ["rustup", "default", "nightly"],
            ["rustup", "set", "profile", "minimal"],
        ]

    def test_runs_both_in_order(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner()
        provision_toolchain(config, runner)
        assert runner.commands == build_provision_commands(config)

    def test_failure_stops_after_first_command(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        runner = make_runner(failures={"provision": 1})
        with pytest.raises(ProvisioningError) as exc_info:
            provision_toolchain(config, runner)
        assert exc_info.value.code == ErrorCode.PROVISION_COMMAND_FAILED
        assert exc_info.value.details["returncode"] == 1
        assert len(runner.commands) == 1

    def test_missing_rustup(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(missing={"provision"})
        with pytest.raises(ProvisioningError) as exc_info:
            provision_toolchain(config, runner)
        assert exc_info.value.code == ErrorCode.PROVISION_EXECUTABLE_MISSING


class TestInstall:
    def test_command_pins_exact_version_with_force(self, config: CovrunConfig) -> None:
        assert build_install_command(config) == [
            "cargo",
            "install",
            "grcov",
            "--force",
            "--version",
            "0.8.2",
        ]

    def test_no_force(self) -> None:
        config = CovrunConfig.model_validate({"coverage_tool": {"force": False}})
        assert "--force" not in build_install_command(config)

    def test_installs_then_verifies(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner()
        assert install_coverage_tool(config, runner) == "0.8.2"
        assert runner.stages_called() == ["install", "version"]

    def test_version_mismatch(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(version_output="grcov 0.8.3")
        with pytest.raises(InstallError) as exc_info:
            install_coverage_tool(config, runner)
        assert exc_info.value.code == ErrorCode.INSTALL_VERSION_MISMATCH
        assert exc_info.value.details["actual"] == "0.8.3"

    def test_unparseable_version_is_mismatch(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        runner = make_runner(version_output="grcov dev build")
        with pytest.raises(InstallError) as exc_info:
            install_coverage_tool(config, runner)
        assert exc_info.value.details["actual"] is None

    def test_version_check_failure_is_command_failure(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        """A crashing --version is reported as such, not as a wrong version."""
        runner = make_runner(failures={"version": 1})
        with pytest.raises(InstallError) as exc_info:
            install_coverage_tool(config, runner)
        assert exc_info.value.code == ErrorCode.INSTALL_COMMAND_FAILED
        assert exc_info.value.details["command"] == ["grcov", "--version"]
        assert exc_info.value.details["returncode"] == 1

    def test_version_check_timeout_is_command_failure(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        runner = make_runner()
        timed_out = CommandResult(
            command=["grcov", "--version"], returncode=-9, duration_seconds=5.0, timed_out=True
        )
        with patch.object(
            runner, "run", side_effect=[CommandResult(command=["cargo"], returncode=0), timed_out]
        ):
            with pytest.raises(InstallError) as exc_info:
                install_coverage_tool(config, runner)
        assert exc_info.value.code == ErrorCode.INSTALL_COMMAND_FAILED
        assert "Timed out" in exc_info.value.details["stderr"]

    def test_build_failure(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(failures={"install": 101})
        with pytest.raises(InstallError) as exc_info:
            install_coverage_tool(config, runner)
        assert exc_info.value.code == ErrorCode.INSTALL_COMMAND_FAILED
        assert exc_info.value.details["returncode"] == 101
        assert runner.stages_called() == ["install"]

    def test_missing_cargo(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(missing={"install"})
        with pytest.raises(InstallError) as exc_info:
            install_coverage_tool(config, runner)
        assert exc_info.value.code == ErrorCode.INSTALL_EXECUTABLE_MISSING

    def test_verification_disabled(self, make_runner: MakeRunner) -> None:
        config = CovrunConfig.model_validate({"coverage_tool": {"verify_version": False}})
        runner = make_runner(version_output="grcov 9.9.9")
        assert install_coverage_tool(config, runner) == "0.8.2"
        assert runner.stages_called() == ["install"]


class TestParseToolVersion:
    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            ("grcov 0.8.2", "0.8.2"),
            ("grcov 0.8.2\n", "0.8.2"),
            ("grcov 0.8.3-alpha.1", "0.8.3-alpha.1"),
            ("no version here", None),
            ("", None),
        ],
    )
    def test_parse(self, output: str, expected: str | None) -> None:
        assert parse_tool_version(output) == expected


class TestInstrumentedTests:
    def test_command(self, config: CovrunConfig) -> None:
        assert build_test_command(config) == [
            "cargo",
            "test",
            "--features=integration-test",
            "--",
            "--nocapture",
        ]

    def test_extra_args_before_separator(self) -> None:
        config = CovrunConfig.model_validate({"test": {"extra_args": ["--workspace"]}})
        command = build_test_command(config)
        assert command.index("--workspace") < command.index("--")

    def test_no_features_no_nocapture(self) -> None:
        config = CovrunConfig.model_validate({"test": {"features": [], "nocapture": False}})
        assert build_test_command(config) == ["cargo", "test"]

    def test_runs_with_instrumentation_env_uncaptured(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        runner = make_runner()
        run_instrumented_tests(config, runner)

        command, env, capture = runner.calls[0]
        assert command == build_test_command(config)
        assert capture is False
        assert env["CARGO_INCREMENTAL"] == "0"
        assert env["RUSTFLAGS"] == env["RUSTDOCFLAGS"]

    def test_failure_carries_returncode(
        self, config: CovrunConfig, make_runner: MakeRunner
    ) -> None:
        runner = make_runner(failures={"test": 101})
        with pytest.raises(TestFailure) as exc_info:
            run_instrumented_tests(config, runner)
        assert exc_info.value.code == ErrorCode.TEST_FAILED
        assert exc_info.value.details["returncode"] == 101

    def test_missing_cargo(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(missing={"test"})
        with pytest.raises(TestFailure) as exc_info:
            run_instrumented_tests(config, runner)
        assert exc_info.value.code == ErrorCode.TEST_EXECUTABLE_MISSING


class TestReport:
    def test_command(self, config: CovrunConfig) -> None:
        assert build_report_command(config) == [
            "grcov",
            "./target/debug/",
            "-s",
            ".",
            "-t",
            "lcov",
            "--branch",
            "--ignore-not-existing",
            "--ignore",
            "/*",
            "-o",
            "coverage/reports/lcov.info",
        ]

    def test_discover_artifacts_missing_dir(self, tmp_path: Path) -> None:
        assert discover_artifacts(tmp_path / "nope") == []

    def test_discover_artifacts_recursive(self, tmp_path: Path) -> None:
        (tmp_path / "deps").mkdir()
        (tmp_path / "deps" / "b.gcda").write_bytes(b"")
        (tmp_path / "a.gcda").write_bytes(b"")
        (tmp_path / "a.gcno").write_bytes(b"")
        assert [p.name for p in discover_artifacts(tmp_path)] == ["a.gcda", "b.gcda"]

    def test_no_artifacts(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner()
        with pytest.raises(ReportError) as exc_info:
            generate_report(config, runner)
        assert exc_info.value.code == ErrorCode.REPORT_NO_ARTIFACTS
        assert runner.commands == []

    def test_writes_report_into_output_dir(
        self, config: CovrunConfig, make_runner: MakeRunner, tmp_path: Path
    ) -> None:
        runner = make_runner()
        run_instrumented_tests(config, runner)

        path = generate_report(config, runner)

        assert path == tmp_path / "coverage" / "reports" / "lcov.info"
        assert path.read_text().startswith("TN:")

    def test_command_failure(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(failures={"report": 1})
        run_instrumented_tests(config, runner)
        with pytest.raises(ReportError) as exc_info:
            generate_report(config, runner)
        assert exc_info.value.code == ErrorCode.REPORT_COMMAND_FAILED

    def test_empty_output(self, config: CovrunConfig, make_runner: MakeRunner) -> None:
        runner = make_runner(write_report=False)
        run_instrumented_tests(config, runner)
        with pytest.raises(ReportError) as exc_info:
            generate_report(config, runner)
        assert exc_info.value.code == ErrorCode.REPORT_EMPTY
