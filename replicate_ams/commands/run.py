"""Replication run command.

This module provides the 'run' command which replicates every category
from the source Media Services account into the destination account.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import click

from ..config import AppSettings, load_config
from ..credential_provider import MediaServicesClientProvider
from ..exceptions import ConfigurationError, ReplicationAbortedError, ReplicatorError
from ..models import FailurePolicy, ResourceCategory, RunReport
from ..orchestrator import Orchestrator, RunContext
from ..report import log_fault, log_run_finished, log_run_header, print_summary
from .base import async_command, command_context, exit_with_error

logger = logging.getLogger(__name__)


def build_cli_overrides(
    dry_run: bool,
    failure_policy: Optional[str],
    skip: Tuple[str, ...],
    local_network: Optional[bool],
    parallel: Optional[int],
) -> Dict[str, Any]:
    """Translate command options into a settings overlay (None means unset)."""
    return {
        "miscellaneous": {
            "dry_run": True if dry_run else None,
            "failure_policy": failure_policy,
            "skip_categories": list(skip) if skip else None,
            "copy_using_local_network": local_network,
            "max_parallel_operations": parallel,
        }
    }


async def run_replication(
    settings: AppSettings,
    provider_factory: Optional[Callable[[AppSettings], Any]] = None,
) -> RunReport:
    """
    Authenticate both accounts and run every replication step.

    Raises:
        AzureAuthenticationError: If either account cannot be authenticated
        ReplicationAbortedError: If a step failed under the fail-fast policy
    """
    provider = (provider_factory or MediaServicesClientProvider)(settings)
    clients = provider.create_client_pair()
    log_run_header(settings)
    orchestrator = Orchestrator(RunContext(settings=settings, clients=clients))
    return await orchestrator.run()


def _wait_for_operator(no_wait: bool) -> None:
    if no_wait or not sys.stdin.isatty():
        return
    click.pause("Press any key to exit...")


@click.command("run")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: appsettings.json or AMS_REPLICATOR_CONFIG_PATH)",
)
@click.option("--dry-run", is_flag=True, help="List and diff only, create nothing")
@click.option(
    "--failure-policy",
    type=click.Choice([p.value for p in FailurePolicy]),
    help="Stop at the first failed step (fail_fast) or keep going (continue)",
)
@click.option(
    "--skip",
    multiple=True,
    type=click.Choice([c.value for c in ResourceCategory]),
    help="Category to skip (repeatable)",
)
@click.option(
    "--local-network/--cloud-copy",
    "local_network",
    default=None,
    help="Relay asset content through this machine instead of a server-side copy",
)
@click.option(
    "--parallel",
    type=click.IntRange(1, 32),
    help="Entities of one category processed concurrently",
)
@click.option("--log-file", help="Write the run log to this file")
@click.option("--log-dir", help="Directory for the timestamped run log")
@click.option("--no-wait", is_flag=True, help="Do not wait for a key press after a successful run")
@click.pass_context
@async_command
async def run(
    ctx: click.Context,
    config_path: Optional[Path],
    dry_run: bool,
    failure_policy: Optional[str],
    skip: Tuple[str, ...],
    local_network: Optional[bool],
    parallel: Optional[int],
    log_file: Optional[str],
    log_dir: Optional[str],
    no_wait: bool,
) -> None:
    """Replicate a Media Services account into another account."""
    cmd_ctx = command_context(ctx)
    log_path = cmd_ctx.configure_logging(log_file=log_file, log_dir=log_dir)
    logger.info(f"Run log: {log_path}")

    try:
        settings = load_config(
            config_path,
            build_cli_overrides(dry_run, failure_policy, skip, local_network, parallel),
        )
    except ConfigurationError as e:
        log_fault(e)
        exit_with_error(f"Configuration is invalid: {e.message}")

    try:
        report = await run_replication(settings)
    except ReplicationAbortedError as e:
        log_fault(e)
        report = e.report
    except ReplicatorError as e:
        log_fault(e)
        exit_with_error(e.message)
    except Exception as e:
        log_fault(e)
        exit_with_error(f"Unexpected error: {e}")

    log_run_finished(report)
    print_summary(report)

    if not report.succeeded:
        exit_with_error("Replication did not complete successfully")
    _wait_for_operator(no_wait)


__all__ = ["build_cli_overrides", "run", "run_replication"]
