"""covrun summary command - summarize a generated LCOV report."""

import json
from pathlib import Path

import click

from covrun.coverage import CoverageParseError, build_summary, build_text_summary, parse_report


@click.command()
@click.argument("report_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def summary_command(report_path: Path, as_json: bool) -> None:
    """Print coverage totals and uncovered functions from REPORT_PATH."""
    try:
        report = parse_report(report_path)
    except CoverageParseError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(build_summary(report), indent=2))
        return

    click.echo(build_text_summary(report))
    for fc in sorted(report.files.values(), key=lambda f: f.path):
        for fn in fc.uncovered_functions:
            click.echo(f"  uncovered: {fc.path}:{fn.start_line} {fn.name}")
