"""Tests for pipeline/runner.py.

subprocess.run and shutil.which are mocked; nothing here spawns a process.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from covrun.pipeline.runner import CommandResult, CommandRunner


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc


class TestCommandResult:
    def test_ok(self) -> None:
        assert CommandResult(command=["cargo"], returncode=0).ok

    def test_not_ok_on_nonzero(self) -> None:
        result = CommandResult(command=["cargo"], returncode=101, stderr="error: build failed\n")
        assert not result.ok
        assert result.error_detail == "error: build failed"

    def test_error_detail_falls_back_to_exit_code(self) -> None:
        assert CommandResult(command=["cargo"], returncode=2).error_detail == "exit code 2"

    def test_not_found(self) -> None:
        result = CommandResult(command=["grcov"], returncode=127, not_found=True)
        assert not result.ok
        assert result.error_detail == "Executable not found: grcov"

    def test_timed_out(self) -> None:
        result = CommandResult(
            command=["cargo"], returncode=-1, duration_seconds=30.0, timed_out=True
        )
        assert not result.ok
        assert "Timed out" in result.error_detail


class TestCommandRunner:
    def test_missing_executable_not_spawned(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path)
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value=None),
            patch("covrun.pipeline.runner.subprocess.run") as mock_run,
        ):
            result = runner.run(["rustup", "default", "nightly"])

        mock_run.assert_not_called()
        assert result.not_found
        assert result.returncode == 127

    def test_env_overrides_layered_on_base(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, base_env={"PATH": "/usr/bin", "HOME": "/home/ci"})
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/cargo"),
            patch(
                "covrun.pipeline.runner.subprocess.run", return_value=_completed()
            ) as mock_run,
        ):
            runner.run(["cargo", "test"], env={"CARGO_INCREMENTAL": "0"})

        kwargs = mock_run.call_args.kwargs
        assert kwargs["env"] == {
            "PATH": "/usr/bin",
            "HOME": "/home/ci",
            "CARGO_INCREMENTAL": "0",
        }
        assert kwargs["cwd"] == tmp_path.resolve()
        assert kwargs["check"] is False

    def test_overrides_do_not_leak_between_calls(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, base_env={"PATH": "/usr/bin"})
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/x"),
            patch(
                "covrun.pipeline.runner.subprocess.run", return_value=_completed()
            ) as mock_run,
        ):
            runner.run(["cargo", "test"], env={"RUSTFLAGS": "-Zprofile"})
            runner.run(["grcov", "--version"])

        assert "RUSTFLAGS" not in mock_run.call_args_list[1].kwargs["env"]

    def test_capture_flag_passed_through(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, base_env={"PATH": "/usr/bin"})
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/cargo"),
            patch(
                "covrun.pipeline.runner.subprocess.run", return_value=_completed()
            ) as mock_run,
        ):
            runner.run(["cargo", "test"], capture=False)

        assert mock_run.call_args.kwargs["capture_output"] is False

    def test_nonzero_exit_reported_not_raised(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, base_env={"PATH": "/usr/bin"})
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/cargo"),
            patch(
                "covrun.pipeline.runner.subprocess.run",
                return_value=_completed(101, stderr="test failed"),
            ),
        ):
            result = runner.run(["cargo", "test"])

        assert result.returncode == 101
        assert result.stderr == "test failed"
        assert not result.ok

    def test_timeout(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, timeout_sec=5.0, base_env={"PATH": "/usr/bin"})
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/cargo"),
            patch(
                "covrun.pipeline.runner.subprocess.run",
                side_effect=subprocess.TimeoutExpired(cmd=["cargo", "test"], timeout=5.0),
            ) as mock_run,
        ):
            result = runner.run(["cargo", "test"])

        assert mock_run.call_args.kwargs["timeout"] == 5.0
        assert result.timed_out
        assert not result.ok

    def test_uncaptured_output_becomes_empty_strings(self, tmp_path: Path) -> None:
        runner = CommandRunner(tmp_path, base_env={"PATH": "/usr/bin"})
        proc = _completed()
        proc.stdout = None
        proc.stderr = None
        with (
            patch("covrun.pipeline.runner.shutil.which", return_value="/usr/bin/cargo"),
            patch("covrun.pipeline.runner.subprocess.run", return_value=proc),
        ):
            result = runner.run(["cargo", "test"], capture=False)

        assert result.stdout == ""
        assert result.stderr == ""
