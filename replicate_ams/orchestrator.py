"""
Replication orchestrator.

Runs the seven category steps strictly in order against one authenticated
client pair and turns every category failure into a step outcome. The
failure policy decides whether a failed step stops the run.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Tuple

from .config import AppSettings
from .credential_provider import ClientPair
from .exceptions import ReplicationAbortedError, ReplicatorError
from .models import FailurePolicy, ResourceCategory, RunReport, StepResult
from .reconcilers import (
    AccountFilterReconciler,
    AssetReconciler,
    ContentKeyPolicyReconciler,
    LiveEventReconciler,
    Reconciler,
    StreamingEndpointReconciler,
    StreamingLocatorReconciler,
    TransformReconciler,
)
from .report import log_step_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Everything a run needs, built once at startup."""

    settings: AppSettings
    clients: ClientPair


@dataclass(frozen=True)
class ReplicationStep:
    """
    One orchestrator step.

    ``collection`` and ``auxiliary_collection`` name the operation groups of
    the management client handed to the reconciler on both sides.
    """

    label: str
    category: ResourceCategory
    factory: Callable[[], Reconciler]
    collection: str
    auxiliary_collection: Optional[str] = None


REPLICATION_STEPS: Tuple[ReplicationStep, ...] = (
    ReplicationStep(
        "account filters", ResourceCategory.ACCOUNT_FILTERS, AccountFilterReconciler, "account_filters"
    ),
    ReplicationStep(
        "content key policies",
        ResourceCategory.CONTENT_KEY_POLICIES,
        ContentKeyPolicyReconciler,
        "content_key_policies",
    ),
    ReplicationStep("transforms", ResourceCategory.TRANSFORMS, TransformReconciler, "transforms"),
    ReplicationStep(
        "streaming endpoints",
        ResourceCategory.STREAMING_ENDPOINTS,
        StreamingEndpointReconciler,
        "streaming_endpoints",
    ),
    ReplicationStep(
        "assets", ResourceCategory.ASSETS, AssetReconciler, "assets", "asset_filters"
    ),
    ReplicationStep(
        "streaming locators",
        ResourceCategory.STREAMING_LOCATORS,
        StreamingLocatorReconciler,
        "streaming_locators",
    ),
    ReplicationStep(
        "live events", ResourceCategory.LIVE_EVENTS, LiveEventReconciler, "live_events", "live_outputs"
    ),
)


class Orchestrator:
    """
    Sequences the replication steps and aggregates their outcomes.

    Attributes:
        context: Settings and client pair of the run
        steps: Ordered steps, REPLICATION_STEPS unless overridden (for testing)
    """

    def __init__(
        self,
        context: RunContext,
        steps: Tuple[ReplicationStep, ...] = REPLICATION_STEPS,
    ) -> None:
        self.context = context
        self.steps = steps
        self.last_fault: Optional[ReplicatorError] = None

    @property
    def failure_policy(self) -> FailurePolicy:
        return self.context.settings.miscellaneous.failure_policy

    async def run(self) -> RunReport:
        """
        Run every step in order.

        Returns:
            RunReport with one StepResult per step

        Raises:
            ReplicationAbortedError: If a step failed under the fail-fast policy;
                the partial report is attached
        """
        misc = self.context.settings.miscellaneous
        report = RunReport(total_steps=len(self.steps), dry_run=misc.dry_run)
        total = len(self.steps)

        for index, step in enumerate(self.steps, start=1):
            logger.info("")
            logger.info(
                f"[{datetime.now():%d/%m/%Y %H:%M}] Step {index} of {total}: Replicate {step.label}"
            )
            result = await self.run_step(index, step)
            report.results.append(result)
            log_step_result(result)

            if result.attempted and not result.succeeded and not result.skipped:
                if self.failure_policy == FailurePolicy.FAIL_FAST:
                    self._mark_not_attempted(report, index)
                    raise ReplicationAbortedError(
                        f"Replication stopped at step {index} of {total} ({step.label}): {result.error}",
                        report=report,
                        context={"step": step.label},
                        cause=self.last_fault,
                    )
                logger.warning(
                    f"Step {index} of {total} ({step.label}) failed; continuing with the next step"
                )

        return report

    async def run_step(self, index: int, step: ReplicationStep) -> StepResult:
        """Run one step and convert its outcome (or fault) into a StepResult."""
        self.last_fault = None
        reconciler = step.factory()
        try:
            self._initialize(reconciler, step)
            replicated = await reconciler.replicate()
        except ReplicatorError as exc:
            logger.error(f"Step '{step.label}' failed: {exc}")
            self.last_fault = exc
            return StepResult(
                index=index,
                label=step.label,
                category=step.category,
                succeeded=False,
                stats=reconciler.stats,
                error=str(exc.message),
                error_code=exc.error_code,
            )

        return StepResult(
            index=index,
            label=step.label,
            category=step.category,
            succeeded=replicated,
            skipped=not replicated,
            stats=reconciler.stats,
        )

    def _initialize(self, reconciler: Reconciler, step: ReplicationStep) -> None:
        settings = self.context.settings
        clients = self.context.clients
        reconciler.initialize(
            _operation_group(clients.source, step.collection),
            _operation_group(clients.destination, step.collection),
            settings.source,
            settings.destination,
            settings.miscellaneous,
            auxiliary_source=_operation_group(clients.source, step.auxiliary_collection),
            auxiliary_destination=_operation_group(clients.destination, step.auxiliary_collection),
        )

    def _mark_not_attempted(self, report: RunReport, failed_index: int) -> None:
        for index, step in enumerate(self.steps, start=1):
            if index <= failed_index:
                continue
            logger.info(f"Step {index} of {len(self.steps)} ({step.label}) not attempted")
            report.results.append(
                StepResult(
                    index=index,
                    label=step.label,
                    category=step.category,
                    succeeded=False,
                    attempted=False,
                )
            )


def _operation_group(client: Any, name: Optional[str]) -> Any:
    if name is None:
        return None
    return getattr(client, name, None)
