"""CLI utilities."""

from pathlib import Path

import click

from covrun.config.loader import load_config
from covrun.config.models import CovrunConfig
from covrun.core.errors import ConfigError
from covrun.core.logging import configure_logging
from covrun.pipeline.triggers import TriggerEvent


def load_config_or_exit(path: Path, *, verbose: bool = False) -> CovrunConfig:
    """Load config for ``path`` and reconfigure logging from it.

    Raises:
        click.ClickException: On any ConfigError.
    """
    try:
        config = load_config(path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    return config


def resolve_event(event_kind: str | None, ref: str | None) -> TriggerEvent:
    """Explicit --event/--ref win; otherwise read the CI environment."""
    if event_kind is None and ref is not None:
        raise click.UsageError("--ref requires --event")
    if event_kind is None:
        env_event = TriggerEvent.from_env()
        if not env_event.kind:
            raise click.UsageError(
                "No trigger event: pass --event or run under GitHub Actions (GITHUB_EVENT_NAME)"
            )
        return env_event
    return TriggerEvent(kind=event_kind, ref=ref)
