#!/usr/bin/env python3
"""
replicate-ams CLI

Entry point for replicating an Azure Media Services account: account
filters, content key policies, transforms, streaming endpoints, assets,
streaming locators and live events are copied from a source account into a
destination account.
"""

import click

from . import __version__
from .commands import register_all_commands


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.version_option(__version__, prog_name="replicate-ams")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Replicate an Azure Media Services account into another account."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper()


register_all_commands(cli)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
