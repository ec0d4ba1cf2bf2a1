"""
Run report: progress lines, structured step events and the final summary.

Plain progress lines go to the standard logger (console and run log file);
per-step and per-run outcomes are also emitted as structlog events so the
log file can be parsed afterwards.
"""

import logging
import traceback
from datetime import datetime
from typing import List, Optional

import structlog
from rich.console import Console
from rich.table import Table

from .config import AppSettings
from .exceptions import describe_api_error
from .models import RunReport, StepResult

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    "succeeded": "green",
    "skipped": "yellow",
    "failed": "red",
    "not attempted": "dim",
}


def format_move_message(label: str, source: str, destination: str) -> str:
    return f"{label}: {source} --> {destination}"


def run_header_lines(settings: AppSettings, now: Optional[datetime] = None) -> List[str]:
    """Lines describing what is replicated where, in the order they are logged."""
    source = settings.source
    destination = settings.destination
    stamp = (now or datetime.now()).strftime("%d/%m/%Y %H:%M")
    return [
        f"[{stamp}] Start replicating AMS account:-",
        format_move_message("Subscription ID", source.subscription_id, destination.subscription_id),
        format_move_message("AMS Account", source.account_name, destination.account_name),
        format_move_message("Resource Group", source.resource_group, destination.resource_group),
        format_move_message(
            "Storage Account", source.storage_account_name, destination.storage_account_name
        ),
        format_move_message("Location", source.location, destination.location),
        f"Source AAD Settings: {source.aad_settings}",
        f"Destination AAD Settings: {destination.aad_settings}",
        f"Copy Using Local Network: {settings.miscellaneous.copy_using_local_network}",
    ]


def log_run_header(settings: AppSettings) -> None:
    for line in run_header_lines(settings):
        logger.info(line)
    misc = settings.miscellaneous
    if misc.dry_run:
        logger.info("Dry run: nothing will be created in the destination account")
    if misc.skip_categories:
        logger.info(
            "Skipping categories: " + ", ".join(c.value for c in misc.skip_categories)
        )


def log_step_result(result: StepResult) -> None:
    structlog.get_logger(__name__).info(
        "step_completed",
        step=result.index,
        label=result.label,
        status=result.status,
        stats=result.stats.to_dict() if result.stats else None,
        error=result.error,
        error_code=result.error_code,
    )


def log_run_finished(report: RunReport) -> None:
    structlog.get_logger(__name__).info(
        "run_finished",
        succeeded=report.succeeded,
        dry_run=report.dry_run,
        failed_steps=[r.label for r in report.failed_steps],
    )
    if report.succeeded:
        logger.info("")
        logger.info(f"[{datetime.now():%d/%m/%Y %H:%M}] Replication done successfully!")
    else:
        logger.error(
            f"Replication finished with {len(report.failed_steps)} failed step(s): "
            + ", ".join(r.label for r in report.failed_steps)
        )


def log_fault(exc: BaseException) -> None:
    """Log an unhandled fault: API error details, message and stack trace."""
    logger.error("")
    logger.error("   ***** Exception occurred! *****")
    details = describe_api_error(exc)
    if details:
        code, message = details
        logger.error(f"API error code '{code}' and message '{message}'")
    logger.error(f"Message: {getattr(exc, 'message', None) or exc}")
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Stack trace: {stack}")


def build_summary_table(report: RunReport) -> Table:
    title = "Replication summary (dry run)" if report.dry_run else "Replication summary"
    table = Table(title=title)
    table.add_column("Step", style="cyan", justify="right")
    table.add_column("Category", style="magenta")
    table.add_column("Status")
    table.add_column("Source", justify="right")
    table.add_column("Existing", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Planned" if report.dry_run else "Children", justify="right")
    table.add_column("Error", style="red")

    for result in report.results:
        stats = result.stats
        style = STATUS_STYLES.get(result.status, "white")
        table.add_row(
            f"{result.index} of {report.total_steps}",
            result.label,
            f"[{style}]{result.status}[/{style}]",
            str(stats.source_count) if stats else "-",
            str(stats.existing) if stats else "-",
            str(stats.created) if stats else "-",
            (str(stats.planned if report.dry_run else stats.child_created) if stats else "-"),
            result.error or "",
        )
    return table


def print_summary(report: RunReport, console: Optional[Console] = None) -> None:
    (console or Console()).print(build_summary_table(report))
