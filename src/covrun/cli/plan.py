"""covrun plan command - show what a run would execute."""

import json
import shlex
from pathlib import Path

import click

from covrun.cli.utils import load_config_or_exit
from covrun.pipeline.stages import (
    build_install_command,
    build_provision_commands,
    build_report_command,
    build_test_command,
    build_test_env,
)


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def plan_command(path: Path, as_json: bool) -> None:
    """Print the ordered stage commands without executing them."""
    config = load_config_or_exit(path)
    plan = [
        *({"stage": "provision", "command": cmd} for cmd in build_provision_commands(config)),
        {"stage": "install", "command": build_install_command(config)},
        {"stage": "test", "command": build_test_command(config), "env": build_test_env(config)},
        {"stage": "report", "command": build_report_command(config)},
        {
            "stage": "upload",
            "target": config.upload.url if config.upload.enabled else None,
            "directory": config.report.output_dir,
        },
    ]

    if as_json:
        click.echo(json.dumps({"steps": plan, "policy": config.policy.model_dump()}, indent=2))
        return

    for step in plan:
        if "command" in step:
            env = "".join(f"{k}={shlex.quote(v)} " for k, v in step.get("env", {}).items())
            click.echo(f"[{step['stage']}] {env}{shlex.join(step['command'])}")
        elif step["target"]:
            click.echo(f"[upload] {step['directory']} -> {step['target']}")
        else:
            click.echo("[upload] disabled")
    click.echo(
        f"policy: report_on_test_failure={config.policy.report_on_test_failure} "
        f"upload_failure_fails_run={config.policy.upload_failure_fails_run}"
    )
