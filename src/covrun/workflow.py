"""Render the GitHub Actions workflow equivalent of the configured pipeline.

The rendered workflow runs the same commands the Pipeline runs locally, so a
config change (new pin, different primary branch) is reflected in both.
"""

from __future__ import annotations

import shlex
from typing import Any

import yaml

from covrun.config.constants import GRCOV_KNOWN_BROKEN_VERSION
from covrun.config.models import CovrunConfig
from covrun.pipeline.stages import (
    build_install_command,
    build_provision_commands,
    build_test_command,
    build_test_env,
)

WORKFLOW_NAME = "test"
JOB_ID = "test_with_codecov"
CHECKOUT_ACTION = "actions/checkout@v3"
GRCOV_ACTION = "actions-rs/grcov@v0.1.5"
CODECOV_ACTION = "codecov/codecov-action@v1"
TEST_STEP_ID = "tests"
COVERAGE_STEP_ID = "coverage"


def _run(command: list[str]) -> str:
    return shlex.join(command)


def render_workflow(config: CovrunConfig) -> dict[str, Any]:
    """Workflow as a plain dict, keys in GitHub's conventional order."""
    provision_default, provision_profile = build_provision_commands(config)
    tool = config.coverage_tool

    upload_with: dict[str, Any] = {
        "file": f"${{{{ steps.{COVERAGE_STEP_ID}.outputs.report }}}}",
        "directory": config.report.output_dir,
    }
    if config.upload.require_token:
        upload_with["token"] = f"${{{{ secrets.{config.upload.token_env} }}}}"
    if config.upload.flags:
        upload_with["flags"] = ",".join(config.upload.flags)
    if config.policy.upload_failure_fails_run:
        upload_with["fail_ci_if_error"] = True

    steps: list[dict[str, Any]] = [
        {"name": "Checkout", "uses": CHECKOUT_ACTION},
        {"name": "Set default toolchain", "run": _run(provision_default)},
        {"name": "Set profile", "run": _run(provision_profile)},
        {
            "name": f"Install {tool.name}",
            "run": _run(build_install_command(config)),
        },
        {
            "id": TEST_STEP_ID,
            "name": "Run cargo test",
            "env": build_test_env(config),
            "run": _run(build_test_command(config)),
        },
        {"id": COVERAGE_STEP_ID, "name": "Generate coverage", "uses": GRCOV_ACTION},
    ]
    upload_step = {
        "name": "Upload coverage to Codecov",
        "uses": CODECOV_ACTION,
        "with": upload_with,
    }

    if config.policy.report_on_test_failure:
        # A failed test step still reports; a skipped one means setup failed
        steps[-1]["if"] = f"${{{{ !cancelled() && steps.{TEST_STEP_ID}.outcome != 'skipped' }}}}"
        upload_step["if"] = (
            f"${{{{ !cancelled() && steps.{COVERAGE_STEP_ID}.outcome == 'success' }}}}"
        )
    if config.upload.enabled:
        steps.append(upload_step)

    return {
        "on": {
            "push": {"branches": sorted(config.trigger.push_branches)},
            "pull_request": None,
        },
        "name": WORKFLOW_NAME,
        "jobs": {
            JOB_ID: {
                "name": "Run tests with coverage reporting",
                "runs-on": "ubuntu-latest",
                "steps": steps,
            }
        },
    }


def dump_workflow(config: CovrunConfig) -> str:
    header = f"# Generated by covrun. {tool_pin_comment(config)}\n"
    body = yaml.safe_dump(render_workflow(config), sort_keys=False, default_flow_style=False)
    return header + body


def tool_pin_comment(config: CovrunConfig) -> str:
    tool = config.coverage_tool
    return (
        f"{tool.name} pinned to {tool.version} "
        f"because of build failure at {GRCOV_KNOWN_BROKEN_VERSION}"
    )
