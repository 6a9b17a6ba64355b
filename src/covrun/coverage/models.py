"""Coverage data model for the generated report.

File-centric: lines and functions per source file, with hit counts.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class CoverageParseError(Exception):
    """Error parsing coverage data."""

    pass


@dataclass(frozen=True, slots=True)
class BranchCoverage:
    """Branch coverage at a specific line."""

    line: int
    block_id: int
    branch_id: int
    hits: int


@dataclass(frozen=True, slots=True)
class FunctionCoverage:
    """Function coverage. hits == 0 means compiled but never called."""

    name: str
    start_line: int
    hits: int

    @property
    def covered(self) -> bool:
        return self.hits > 0


@dataclass(slots=True)
class FileCoverage:
    """Coverage data for a single source file.

    Line numbers are 1-based to match source file conventions.
    """

    path: str
    lines: dict[int, int] = field(default_factory=dict)  # line_number → hit_count
    branches: list[BranchCoverage] = field(default_factory=list)
    functions: dict[str, FunctionCoverage] = field(default_factory=dict)  # name → coverage

    @property
    def lines_found(self) -> int:
        return len(self.lines)

    @property
    def lines_hit(self) -> int:
        return sum(1 for hits in self.lines.values() if hits > 0)

    @property
    def line_rate(self) -> float:
        if not self.lines:
            return 0.0
        return self.lines_hit / len(self.lines)

    @property
    def uncovered_lines(self) -> list[int]:
        return sorted(line for line, hits in self.lines.items() if hits == 0)

    @property
    def branches_found(self) -> int:
        return len(self.branches)

    @property
    def branches_hit(self) -> int:
        return sum(1 for b in self.branches if b.hits > 0)

    @property
    def functions_found(self) -> int:
        return len(self.functions)

    @property
    def functions_hit(self) -> int:
        return sum(1 for f in self.functions.values() if f.hits > 0)

    @property
    def uncovered_functions(self) -> list[FunctionCoverage]:
        return sorted(
            (f for f in self.functions.values() if f.hits == 0),
            key=lambda f: (f.start_line, f.name),
        )


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Aggregate coverage statistics."""

    files: int
    lines_found: int
    lines_hit: int
    branches_found: int
    branches_hit: int
    functions_found: int
    functions_hit: int

    @property
    def line_rate(self) -> float:
        return self.lines_hit / self.lines_found if self.lines_found else 0.0

    @property
    def branch_rate(self) -> float:
        return self.branches_hit / self.branches_found if self.branches_found else 0.0

    @property
    def function_rate(self) -> float:
        return self.functions_hit / self.functions_found if self.functions_found else 0.0


@dataclass(slots=True)
class CoverageReport:
    """Parsed report. Files are keyed by path as written in the report."""

    source_format: str
    files: dict[str, FileCoverage] = field(default_factory=dict)

    @property
    def summary(self) -> CoverageSummary:
        return CoverageSummary(
            files=len(self.files),
            lines_found=sum(f.lines_found for f in self.files.values()),
            lines_hit=sum(f.lines_hit for f in self.files.values()),
            branches_found=sum(f.branches_found for f in self.files.values()),
            branches_hit=sum(f.branches_hit for f in self.files.values()),
            functions_found=sum(f.functions_found for f in self.files.values()),
            functions_hit=sum(f.functions_hit for f in self.files.values()),
        )
