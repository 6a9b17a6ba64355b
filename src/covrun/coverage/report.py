"""Structured summaries of a parsed coverage report.

Output schema for build_summary:
{
    "summary": {
        "total_files": int,
        "total_lines": int,
        "covered_lines": int,
        "line_coverage_percent": float,
        "total_functions": int,
        "covered_functions": int,
        "function_coverage_percent": float | null,
        "total_branches": int,            # only when branches present
        "covered_branches": int,
        "branch_coverage_percent": float
    },
    "files": [
        {
            "path": str,
            "coverage_percent": float,
            "missed_lines": "3-5,9",
            "uncovered_functions": [str, ...]
        }
    ],
    "source_format": str
}
"""

from typing import Any

from covrun.coverage.models import CoverageReport


def _compress_ranges(lines: list[int]) -> str:
    """[1, 2, 3, 5] -> "1-3,5"."""
    if not lines:
        return ""
    ranges: list[str] = []
    start = prev = lines[0]
    for n in lines[1:]:
        if n == prev + 1:
            prev = n
            continue
        ranges.append(str(start) if start == prev else f"{start}-{prev}")
        start = prev = n
    ranges.append(str(start) if start == prev else f"{start}-{prev}")
    return ",".join(ranges)


def _percent(hit: int, found: int) -> float:
    return round(hit / found * 100.0, 2) if found else 100.0


def build_summary(report: CoverageReport, *, include_files: bool = True) -> dict[str, Any]:
    """Build a JSON-serializable summary, lowest-covered files first."""
    s = report.summary
    summary: dict[str, Any] = {
        "total_files": s.files,
        "total_lines": s.lines_found,
        "covered_lines": s.lines_hit,
        "line_coverage_percent": _percent(s.lines_hit, s.lines_found),
        "total_functions": s.functions_found,
        "covered_functions": s.functions_hit,
        "function_coverage_percent": (
            _percent(s.functions_hit, s.functions_found) if s.functions_found else None
        ),
    }
    if s.branches_found:
        summary["total_branches"] = s.branches_found
        summary["covered_branches"] = s.branches_hit
        summary["branch_coverage_percent"] = _percent(s.branches_hit, s.branches_found)

    result: dict[str, Any] = {"summary": summary, "source_format": report.source_format}

    if include_files:
        files = [
            {
                "path": fc.path,
                "coverage_percent": _percent(fc.lines_hit, fc.lines_found),
                "missed_lines": _compress_ranges(fc.uncovered_lines),
                "uncovered_functions": [f.name for f in fc.uncovered_functions],
            }
            for fc in report.files.values()
        ]
        files.sort(key=lambda f: (f["coverage_percent"], f["path"]))
        result["files"] = files

    return result


def build_text_summary(report: CoverageReport) -> str:
    """One-line summary for terminal output."""
    s = report.summary
    if s.lines_found == 0:
        return "No coverage data"
    text = f"Coverage: {s.line_rate * 100:.1f}% ({s.lines_hit}/{s.lines_found} lines)"
    if s.functions_found:
        text += f", {s.functions_hit}/{s.functions_found} functions"
    return text
