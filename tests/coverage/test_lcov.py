"""Tests for coverage/lcov.py and coverage/report.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from covrun.coverage import (
    CoverageParseError,
    LcovParser,
    build_summary,
    build_text_summary,
    parse_lcov_text,
    parse_report,
)
from covrun.coverage.report import _compress_ranges


class TestParseLcovText:
    def test_reachable_covered_unreachable_present_with_zero_hits(
        self, sample_lcov: str
    ) -> None:
        """Dead code linked in shows up as an uncovered function, not a missing one."""
        functions = parse_lcov_text(sample_lcov).files["src/lib.rs"].functions

        reachable = functions["demo::reachable"]
        unreachable = functions["demo::unreachable"]
        assert reachable.covered
        assert unreachable.hits == 0
        assert not unreachable.covered
        assert unreachable.start_line == 5

    def test_line_and_branch_counts(self, sample_lcov: str) -> None:
        fc = parse_lcov_text(sample_lcov).files["src/lib.rs"]
        assert fc.lines_found == 6
        assert fc.lines_hit == 3
        assert fc.uncovered_lines == [5, 6, 7]
        assert fc.branches_found == 2
        assert fc.branches_hit == 1

    def test_fn_without_fnda_recorded_as_uncovered(self) -> None:
        content = "SF:src/a.rs\nFN:3,a::never\nDA:3,0\nend_of_record\n"
        fc = parse_lcov_text(content).files["src/a.rs"]
        assert fc.functions["a::never"].hits == 0
        assert fc.functions["a::never"].start_line == 3

    def test_trailing_record_without_terminator(self) -> None:
        report = parse_lcov_text("SF:src/b.rs\nDA:1,1\n")
        assert report.files["src/b.rs"].lines == {1: 1}

    def test_base_path_relativizes(self, tmp_path: Path) -> None:
        content = f"SF:{tmp_path}/src/lib.rs\nDA:1,1\nend_of_record\n"
        report = parse_lcov_text(content, base_path=tmp_path)
        assert "src/lib.rs" in report.files

    def test_malformed_records_ignored(self) -> None:
        content = "SF:src/c.rs\nDA:x,1\nDA:2,-\nBRDA:1,0\nFNDA:abc,f\nend_of_record\n"
        fc = parse_lcov_text(content).files["src/c.rs"]
        assert fc.lines == {2: 0}
        assert fc.branches == []
        assert fc.functions == {}

    def test_records_before_sf_ignored(self) -> None:
        report = parse_lcov_text("DA:1,1\nSF:src/d.rs\nDA:2,1\nend_of_record\n")
        assert report.files["src/d.rs"].lines == {2: 1}


class TestLcovParser:
    def test_can_parse_by_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "lcov.info"
        path.write_text("")
        assert LcovParser().can_parse(path)

    def test_can_parse_by_content(self, tmp_path: Path, sample_lcov: str) -> None:
        path = tmp_path / "report.txt"
        path.write_text(sample_lcov)
        assert LcovParser().can_parse(path)

    def test_rejects_other_content(self, tmp_path: Path) -> None:
        path = tmp_path / "coverage.xml"
        path.write_text("<coverage/>")
        assert not LcovParser().can_parse(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CoverageParseError):
            LcovParser().parse(tmp_path / "missing.info")


class TestParseReport:
    def test_parses_lcov(self, tmp_path: Path, sample_lcov: str) -> None:
        path = tmp_path / "lcov.info"
        path.write_text(sample_lcov)
        assert parse_report(path).source_format == "lcov"

    def test_rejects_non_lcov(self, tmp_path: Path) -> None:
        path = tmp_path / "coverage.xml"
        path.write_text("<coverage/>")
        with pytest.raises(CoverageParseError, match="Not an LCOV report"):
            parse_report(path)


class TestSummary:
    def test_build_summary(self, sample_lcov: str) -> None:
        summary = build_summary(parse_lcov_text(sample_lcov))

        assert summary["summary"]["total_lines"] == 6
        assert summary["summary"]["covered_lines"] == 3
        assert summary["summary"]["line_coverage_percent"] == 50.0
        assert summary["summary"]["function_coverage_percent"] == 50.0
        assert summary["summary"]["branch_coverage_percent"] == 50.0
        assert summary["files"] == [
            {
                "path": "src/lib.rs",
                "coverage_percent": 50.0,
                "missed_lines": "5-7",
                "uncovered_functions": ["demo::unreachable"],
            }
        ]

    def test_no_branches_no_branch_keys(self) -> None:
        summary = build_summary(parse_lcov_text("SF:a.rs\nDA:1,1\nend_of_record\n"))
        assert "branch_coverage_percent" not in summary["summary"]
        assert summary["summary"]["function_coverage_percent"] is None

    def test_files_sorted_lowest_coverage_first(self) -> None:
        content = "SF:b.rs\nDA:1,1\nend_of_record\nSF:a.rs\nDA:1,0\nend_of_record\n"
        summary = build_summary(parse_lcov_text(content))
        assert [f["path"] for f in summary["files"]] == ["a.rs", "b.rs"]

    def test_exclude_files(self, sample_lcov: str) -> None:
        assert "files" not in build_summary(parse_lcov_text(sample_lcov), include_files=False)

    def test_text_summary(self, sample_lcov: str) -> None:
        text = build_text_summary(parse_lcov_text(sample_lcov))
        assert text == "Coverage: 50.0% (3/6 lines), 1/2 functions"

    def test_text_summary_empty(self) -> None:
        assert build_text_summary(parse_lcov_text("")) == "No coverage data"

    @pytest.mark.parametrize(
        ("lines", "expected"),
        [([], ""), ([4], "4"), ([1, 2, 3, 5], "1-3,5"), ([1, 3, 4, 9], "1,3-4,9")],
    )
    def test_compress_ranges(self, lines: list[int], expected: str) -> None:
        assert _compress_ranges(lines) == expected
