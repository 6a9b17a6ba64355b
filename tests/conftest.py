"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides a scripted command runner that stands in for rustup/cargo/grcov.
"""

import sys
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from covrun.pipeline.runner import CommandResult  # noqa: E402

SAMPLE_LCOV = """\
TN:
SF:src/lib.rs
FN:1,demo::reachable
FN:5,demo::unreachable
FNDA:1,demo::reachable
FNDA:0,demo::unreachable
FNF:2
FNH:1
BRDA:2,0,0,1
BRDA:2,0,1,0
DA:1,1
DA:2,1
DA:3,1
DA:5,0
DA:6,0
DA:7,0
LF:6
LH:3
end_of_record
"""


def classify(command: list[str]) -> str:
    """Map a command to the stage key FakeRunner scripts against."""
    if command[0] == "rustup":
        return "provision"
    if command[:2] == ["cargo", "install"]:
        return "install"
    if command[:2] == ["cargo", "test"]:
        return "test"
    if command[0] == "grcov" and "--version" in command:
        return "version"
    if command[0] == "grcov":
        return "report"
    return "other"


class FakeRunner:
    """Scripted Runner: records calls and simulates the files tools would write.

    - ``test`` writes a .gcda counter file under target/debug (even on failure,
      like a real instrumented binary that ran some tests).
    - ``report`` writes SAMPLE_LCOV to the path after ``-o``.
    """

    def __init__(
        self,
        cwd: Path,
        *,
        failures: Mapping[str, int] | None = None,
        missing: set[str] | None = None,
        version_output: str = "grcov 0.8.2",
        write_artifacts: bool = True,
        write_report: bool = True,
    ) -> None:
        self._cwd = cwd
        self.failures = dict(failures or {})
        self.missing = missing or set()
        self.version_output = version_output
        self.write_artifacts = write_artifacts
        self.write_report = write_report
        self.calls: list[tuple[list[str], dict[str, str] | None, bool]] = []

    @property
    def cwd(self) -> Path:
        return self._cwd

    @property
    def commands(self) -> list[list[str]]:
        return [c for c, _, _ in self.calls]

    def stages_called(self) -> list[str]:
        return [classify(c) for c in self.commands]

    def run(
        self,
        command: list[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult:
        self.calls.append((list(command), dict(env) if env is not None else None, capture))
        stage = classify(command)

        if stage in self.missing:
            return CommandResult(command=command, returncode=127, not_found=True)

        if stage == "test" and self.write_artifacts:
            deps = self._cwd / "target" / "debug" / "deps"
            deps.mkdir(parents=True, exist_ok=True)
            (deps / "demo-1234.gcda").write_bytes(b"\x00gcda")

        returncode = self.failures.get(stage, 0)
        if stage == "report" and returncode == 0 and self.write_report:
            out = self._cwd / command[command.index("-o") + 1]
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(SAMPLE_LCOV)

        stdout = self.version_output if stage == "version" else ""
        stderr = f"{stage} failed" if returncode else ""
        return CommandResult(command=command, returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def sample_lcov() -> str:
    return SAMPLE_LCOV


@pytest.fixture
def make_runner(tmp_path: Path) -> Callable[..., FakeRunner]:
    """Factory for FakeRunner rooted at tmp_path."""

    def _make(**kwargs: object) -> FakeRunner:
        return FakeRunner(tmp_path, **kwargs)  # type: ignore[arg-type]

    return _make
