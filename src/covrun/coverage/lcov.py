"""LCOV format parser.

LCOV is grcov's default output. Records used:
- SF:<source file path>
- DA:<line>,<hit count>[,<checksum>]
- BRDA:<line>,<block>,<branch>,<taken>
- FN:<line>,<name>
- FNDA:<hit count>,<name>
- end_of_record

Summary records (LF/LH/BRF/BRH/FNF/FNH) are recomputed, not trusted.
"""

import contextlib
from pathlib import Path

from covrun.coverage.models import (
    BranchCoverage,
    CoverageParseError,
    CoverageReport,
    FileCoverage,
    FunctionCoverage,
)


def _finish_file(current: FileCoverage, fn_lines: dict[str, int]) -> FileCoverage:
    # FN without a matching FNDA: compiled in, never executed
    for name, start_line in fn_lines.items():
        if name not in current.functions:
            current.functions[name] = FunctionCoverage(name=name, start_line=start_line, hits=0)
    return current


def parse_lcov_text(content: str, *, base_path: Path | None = None) -> CoverageReport:
    files: dict[str, FileCoverage] = {}
    current: FileCoverage | None = None
    fn_lines: dict[str, int] = {}  # name -> start line

    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue

        if line.startswith("SF:"):
            file_path = line[3:]
            if base_path:
                with contextlib.suppress(ValueError):
                    file_path = str(Path(file_path).relative_to(base_path))
            current = FileCoverage(path=file_path)
            fn_lines = {}

        elif line.startswith("DA:"):
            if current is None:
                continue
            parts = line[3:].split(",")
            if len(parts) >= 2:
                try:
                    hits = 0 if parts[1] == "-" else int(parts[1])
                    current.lines[int(parts[0])] = hits
                except ValueError:
                    pass

        elif line.startswith("BRDA:"):
            if current is None:
                continue
            parts = line[5:].split(",")
            if len(parts) >= 4:
                try:
                    current.branches.append(
                        BranchCoverage(
                            line=int(parts[0]),
                            block_id=int(parts[1]),
                            branch_id=int(parts[2]),
                            hits=0 if parts[3] == "-" else int(parts[3]),
                        )
                    )
                except ValueError:
                    pass

        elif line.startswith("FN:"):
            parts = line[3:].split(",", 1)
            if len(parts) == 2:
                with contextlib.suppress(ValueError):
                    fn_lines[parts[1]] = int(parts[0])

        elif line.startswith("FNDA:"):
            if current is None:
                continue
            parts = line[5:].split(",", 1)
            if len(parts) == 2:
                try:
                    hits = int(parts[0])
                except ValueError:
                    continue
                name = parts[1]
                current.functions[name] = FunctionCoverage(
                    name=name,
                    start_line=fn_lines.get(name, 0),
                    hits=hits,
                )

        elif line == "end_of_record":
            if current is not None:
                files[current.path] = _finish_file(current, fn_lines)
            current = None
            fn_lines = {}

    # Trailing file without end_of_record
    if current is not None:
        files[current.path] = _finish_file(current, fn_lines)

    return CoverageReport(source_format="lcov", files=files)


class LcovParser:
    """Parser for LCOV format coverage files."""

    def can_parse(self, path: Path) -> bool:
        if not path.is_file():
            return False
        if path.suffix in (".info", ".lcov"):
            return True
        try:
            with path.open() as f:
                for line in f:
                    stripped = line.strip()
                    if stripped.startswith(("SF:", "TN:")):
                        return True
                    if stripped and not stripped.startswith("#"):
                        break
        except (OSError, UnicodeDecodeError):
            pass
        return False

    def parse(self, path: Path, *, base_path: Path | None = None) -> CoverageReport:
        if not path.exists():
            raise CoverageParseError(f"LCOV file not found: {path}")
        try:
            content = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise CoverageParseError(f"Failed to read LCOV file: {e}") from e
        return parse_lcov_text(content, base_path=base_path)
