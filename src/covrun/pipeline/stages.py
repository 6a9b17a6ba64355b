"""Pipeline stages: provision, install, test, report.

Each stage builds its command from config, runs it through a Runner, and
raises the stage's StageError subclass on failure. Nothing here retries.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from covrun.config.constants import RAW_ARTIFACT_SUFFIX
from covrun.config.models import CovrunConfig
from covrun.core.errors import InstallError, ProvisioningError, ReportError, TestFailure
from covrun.pipeline.instrumentation import InstrumentationFlags
from covrun.pipeline.runner import CommandResult, Runner

log = structlog.get_logger()

_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?)")


# =============================================================================
# Environment Provisioner
# =============================================================================


def build_provision_commands(config: CovrunConfig) -> list[list[str]]:
    tc = config.toolchain
    return [
        [tc.executable, "default", tc.channel],
        [tc.executable, "set", "profile", tc.profile],
    ]


def provision_toolchain(config: CovrunConfig, runner: Runner) -> list[CommandResult]:
    """Select the toolchain channel and install profile for the rest of the run."""
    results: list[CommandResult] = []
    for command in build_provision_commands(config):
        result = runner.run(command)
        results.append(result)
        if result.not_found:
            raise ProvisioningError.executable_missing(command[0])
        if not result.ok:
            raise ProvisioningError.command_failed(command, result.returncode, result.error_detail)
    log.info(
        "toolchain_provisioned",
        channel=config.toolchain.channel,
        profile=config.toolchain.profile,
    )
    return results


# =============================================================================
# Dependency Installer
# =============================================================================


def build_install_command(config: CovrunConfig) -> list[str]:
    tool = config.coverage_tool
    command = [tool.installer, "install", tool.name]
    if tool.force:
        command.append("--force")
    command.extend(["--version", tool.version])
    return command


def parse_tool_version(output: str) -> str | None:
    """Extract the version from '<tool> --version' output ("grcov 0.8.2" -> "0.8.2")."""
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None


def install_coverage_tool(config: CovrunConfig, runner: Runner) -> str:
    """Install the coverage tool at its pinned version.

    Returns:
        The resolved version string.

    Raises:
        InstallError: On install failure or when the installed binary reports
            a different version than the pin.
    """
    tool = config.coverage_tool
    command = build_install_command(config)
    result = runner.run(command)
    if result.not_found:
        raise InstallError.executable_missing(command[0])
    if not result.ok:
        raise InstallError.command_failed(command, result.returncode, result.error_detail)

    if not tool.verify_version:
        return tool.version

    check_command = [tool.name, "--version"]
    check = runner.run(check_command)
    if check.not_found:
        raise InstallError.executable_missing(tool.name)
    if not check.ok:
        raise InstallError.command_failed(check_command, check.returncode, check.error_detail)
    resolved = parse_tool_version(check.stdout or check.stderr)
    if resolved != tool.version:
        raise InstallError.version_mismatch(tool.name, tool.version, resolved)

    log.info("coverage_tool_installed", tool=tool.name, version=resolved)
    return resolved


# =============================================================================
# Instrumented Test Runner
# =============================================================================


def build_test_command(config: CovrunConfig) -> list[str]:
    test = config.test
    command = [test.executable, "test"]
    if test.features:
        command.append(f"--features={','.join(test.features)}")
    command.extend(test.extra_args)
    if test.nocapture:
        command.extend(["--", "--nocapture"])
    return command


def build_test_env(config: CovrunConfig) -> dict[str, str]:
    return InstrumentationFlags.from_config(config.instrumentation).to_env()


def run_instrumented_tests(config: CovrunConfig, runner: Runner) -> CommandResult:
    """Run the test suite with instrumentation; output streams live."""
    command = build_test_command(config)
    env = build_test_env(config)
    log.debug("instrumentation_env", **env)

    result = runner.run(command, env=env, capture=False)
    if result.not_found:
        raise TestFailure.executable_missing(command[0])
    if not result.ok:
        raise TestFailure.exited(command, result.returncode)
    return result


# =============================================================================
# Coverage report generation
# =============================================================================


def discover_artifacts(build_dir: Path) -> list[Path]:
    """Raw counter files written by the instrumented test binaries."""
    if not build_dir.is_dir():
        return []
    return sorted(build_dir.rglob(f"*{RAW_ARTIFACT_SUFFIX}"))


def build_report_command(config: CovrunConfig) -> list[str]:
    report = config.report
    command = [
        config.coverage_tool.name,
        report.build_dir,
        "-s",
        report.source_dir,
        "-t",
        report.output_type,
    ]
    if report.branch:
        command.append("--branch")
    if report.ignore_not_existing:
        command.append("--ignore-not-existing")
    for pattern in report.ignore:
        command.extend(["--ignore", pattern])
    command.extend(["-o", str(report.output_path)])
    return command


def generate_report(config: CovrunConfig, runner: Runner) -> Path:
    """Turn raw artifacts into the report file under report.output_dir.

    Returns:
        Path of the written report (absolute).
    """
    report_cfg = config.report
    build_dir = runner.cwd / report_cfg.build_dir
    artifacts = discover_artifacts(build_dir)
    if not artifacts:
        raise ReportError.no_artifacts(report_cfg.build_dir)
    log.info("coverage_artifacts_found", count=len(artifacts), build_dir=report_cfg.build_dir)

    output_path = runner.cwd / report_cfg.output_path
    output_path.parent.mkdir(parents=True, exist_ok=True)

    command = build_report_command(config)
    result = runner.run(command)
    if not result.ok:
        raise ReportError.command_failed(command, result.returncode, result.error_detail)

    if not output_path.is_file() or output_path.stat().st_size == 0:
        raise ReportError.empty(str(report_cfg.output_path))

    log.info("coverage_report_written", path=str(report_cfg.output_path))
    return output_path
