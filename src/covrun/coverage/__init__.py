"""Parsing and summarizing the generated coverage report.

Usage:
    from covrun.coverage import parse_report, build_summary

    report = parse_report(Path("coverage/reports/lcov.info"))
    summary = build_summary(report)
"""

from pathlib import Path

from covrun.coverage.lcov import LcovParser, parse_lcov_text
from covrun.coverage.models import (
    BranchCoverage,
    CoverageParseError,
    CoverageReport,
    CoverageSummary,
    FileCoverage,
    FunctionCoverage,
)
from covrun.coverage.report import build_summary, build_text_summary


def parse_report(path: Path, *, base_path: Path | None = None) -> CoverageReport:
    """Parse an LCOV report file.

    Raises:
        CoverageParseError: If the file is missing, unreadable, or not LCOV.
    """
    parser = LcovParser()
    if path.exists() and not parser.can_parse(path):
        raise CoverageParseError(f"Not an LCOV report: {path}")
    return parser.parse(path, base_path=base_path)


__all__ = [
    "BranchCoverage",
    "CoverageParseError",
    "CoverageReport",
    "CoverageSummary",
    "FileCoverage",
    "FunctionCoverage",
    "LcovParser",
    "build_summary",
    "build_text_summary",
    "parse_lcov_text",
    "parse_report",
]
