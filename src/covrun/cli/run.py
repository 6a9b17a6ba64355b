"""covrun run / should-run commands."""

from pathlib import Path

import click

from covrun.cli.utils import load_config_or_exit, resolve_event
from covrun.config.constants import EXIT_SKIPPED, EXIT_SUCCESS
from covrun.core.progress import get_console, make_run_table, status
from covrun.pipeline.orchestrator import Pipeline
from covrun.pipeline.runner import CommandRunner
from covrun.pipeline.triggers import should_run

_event_option = click.option(
    "--event",
    "event_kind",
    default=None,
    help="Event kind (push, pull_request). Default: $GITHUB_EVENT_NAME",
)
_ref_option = click.option(
    "--ref",
    default=None,
    help="Git ref or branch name (refs/heads/master, master). Default: $GITHUB_REF",
)


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@_event_option
@_ref_option
@click.pass_context
def run_command(ctx: click.Context, path: Path, event_kind: str | None, ref: str | None) -> None:
    """Run the coverage pipeline for the project at PATH.

    Exit codes: 0 success (or degraded upload), 1 tests failed,
    3 provisioning, 4 install, 6 report, 7 upload, 78 skipped.
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    config = load_config_or_exit(path, verbose=verbose)
    event = resolve_event(event_kind, ref)

    root = (path / config.runner.workdir).resolve()
    runner = CommandRunner(root, timeout_sec=config.runner.timeout_sec)
    result = Pipeline(config, runner).run(event)

    if result.status != "skipped":
        get_console().print(make_run_table(result))
    if result.failure is not None:
        status(str(result.failure), style="error")
    for secondary in result.secondary_failures:
        status(str(secondary), style="warning")
    if result.upload_url:
        status(f"Report: {result.upload_url}", style="info")

    ctx.exit(result.exit_code)


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@_event_option
@_ref_option
@click.pass_context
def should_run_command(
    ctx: click.Context, path: Path, event_kind: str | None, ref: str | None
) -> None:
    """Print whether the event would start a run (exit 78 when it would not)."""
    config = load_config_or_exit(path)
    event = resolve_event(event_kind, ref)
    decision = should_run(event, config.trigger)
    click.echo("true" if decision else "false")
    ctx.exit(EXIT_SUCCESS if decision else EXIT_SKIPPED)
