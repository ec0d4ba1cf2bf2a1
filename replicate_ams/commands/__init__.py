"""Command registry for the replicate-ams CLI.

Command modules are imported and their click commands added to the main
group by register_all_commands.
"""

import importlib
import logging

import click

from .base import CommandContext, async_command, command_context, exit_with_error

logger = logging.getLogger(__name__)

# Mapping of command names to the module defining them
_COMMAND_MODULES: dict[str, str] = {
    "run": "replicate_ams.commands.run",
    "show-config": "replicate_ams.commands.config",
    "init-config": "replicate_ams.commands.config",
}


def register_all_commands(cli_group: click.Group) -> None:
    """Register all commands with a CLI group.

    Args:
        cli_group: Click group to register commands with
    """
    for name, module_path in _COMMAND_MODULES.items():
        module = importlib.import_module(module_path)
        command = getattr(module, name.replace("-", "_"))
        if isinstance(command, click.Command):
            cli_group.add_command(command, name)
            logger.debug(str(f"Added command {name} to CLI"))


__all__ = [
    "CommandContext",
    "async_command",
    "command_context",
    "exit_with_error",
    "register_all_commands",
]
