"""Base command infrastructure and shared utilities.

This module provides common utilities used across command modules:
- CommandContext for shared command execution context
- async_command for running coroutine commands under click
- exit_with_error for consistent error exits
"""

import asyncio
import functools
import sys
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

import click

from ..logging_config import LoggingConfig, setup_logging


class CommandContext:
    """Shared context for command execution."""

    def __init__(
        self,
        ctx: click.Context,
        log_level: str = "INFO",
    ):
        self.click_ctx = ctx
        self.log_level = log_level

    def configure_logging(
        self,
        log_file: Optional[str] = None,
        log_dir: Optional[str] = None,
        create_log_file: bool = True,
    ) -> Optional[Path]:
        """Set up console and run-file logging for this command."""
        config = LoggingConfig(level=self.log_level)
        if log_file:
            config.file_output = log_file
        if log_dir:
            config.log_directory = log_dir
        return setup_logging(config, create_log_file=create_log_file)


def command_context(ctx: click.Context) -> CommandContext:
    """Create CommandContext from click context."""
    obj = ctx.obj or {}
    return CommandContext(ctx=ctx, log_level=obj.get("log_level", "INFO"))


def exit_with_error(message: str, code: int = 1) -> None:
    """Exit with error message."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def async_command(f: Callable[..., Coroutine[Any, Any, Any]]) -> Callable[..., Any]:
    """Decorator to make Click commands async-compatible.

    Handles both running inside and outside of existing event loops.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already in an event loop (e.g., pytest-asyncio, Jupyter)
            import nest_asyncio  # type: ignore[import-untyped]

            nest_asyncio.apply()
            task = loop.create_task(f(*args, **kwargs))
            return loop.run_until_complete(task)
        return asyncio.run(f(*args, **kwargs))

    return wrapper

