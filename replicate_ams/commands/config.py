"""Configuration commands.

This module provides the 'show-config' command for displaying the effective
settings without sensitive data and the 'init-config' command for writing a
settings template.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import create_default_config, load_config
from ..exceptions import ConfigurationError

config_path_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: appsettings.json or AMS_REPLICATOR_CONFIG_PATH)",
)


def _print_dict(d: Any, indent: int = 0) -> None:
    for key, value in d.items():
        if isinstance(value, dict):
            click.echo("  " * indent + f"{key}:")
            _print_dict(value, indent + 1)
        else:
            click.echo("  " * indent + f"{key}: {value}")


@click.command("show-config")
@config_path_option
def show_config(config_path: Optional[Path]) -> None:
    """Show the effective configuration (without secrets)."""
    try:
        settings = load_config(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    click.echo("Effective Configuration:")
    click.echo("=" * 60)
    _print_dict(settings.to_dict())
    click.echo("=" * 60)


@click.command("init-config")
@config_path_option
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_config(config_path: Optional[Path], force: bool) -> None:
    """Write a settings template to fill in."""
    try:
        path = create_default_config(config_path, force=force)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Configuration template written to {path}")


__all__ = ["init_config", "show_config"]
