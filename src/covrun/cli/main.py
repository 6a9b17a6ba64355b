"""covrun CLI - covrun command."""

import click

from covrun.cli.plan import plan_command
from covrun.cli.run import run_command, should_run_command
from covrun.cli.summary import summary_command
from covrun.cli.workflow import workflow_command
from covrun.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="covrun")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """covrun - run a Rust test suite with coverage and upload the report."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(run_command, name="run")
cli.add_command(should_run_command, name="should-run")
cli.add_command(plan_command, name="plan")
cli.add_command(workflow_command, name="workflow")
cli.add_command(summary_command, name="summary")


if __name__ == "__main__":
    cli()
