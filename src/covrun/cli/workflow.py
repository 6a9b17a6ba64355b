"""covrun workflow command - emit the GitHub Actions workflow."""

from pathlib import Path

import click

from covrun.cli.utils import load_config_or_exit
from covrun.core.progress import status
from covrun.workflow import dump_workflow


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout (e.g. .github/workflows/test.yaml)",
)
def workflow_command(path: Path, output: Path | None) -> None:
    """Render the CI workflow for the project at PATH."""
    config = load_config_or_exit(path)
    text = dump_workflow(config)
    if output is None:
        click.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    status(f"Wrote {output}", style="success")
