"""
Reconciler contract and the shared algorithm skeleton.

Every resource kind follows the same shape: drain the source listing, build a
name set from the destination listing, create what is missing (the
destination is authoritative for names it already has), then, for kinds with
children, reconcile the children of every parent that exists at the
destination. Per-entity failures are collected and fail the whole category.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Set, runtime_checkable

from ..config import AccountContext, MiscellaneousSettings
from ..exceptions import (
    CategoryReplicationError,
    ReconcilerInitializationError,
    ReplicationError,
    ReplicatorError,
)
from ..models import ReplicationStats, ResourceCategory
from ..timeout_config import TimeoutError, Timeouts, log_timeout_event
from ..utils.retry import call_with_retry
from .mapping import AccountTranslator

logger = logging.getLogger(__name__)


@runtime_checkable
class Reconciler(Protocol):
    """What the orchestrator needs from a per-kind reconciler."""

    category: ResourceCategory
    stats: ReplicationStats

    def initialize(
        self,
        source: Any,
        destination: Any,
        source_context: AccountContext,
        destination_context: AccountContext,
        misc: MiscellaneousSettings,
        auxiliary_source: Any = None,
        auxiliary_destination: Any = None,
    ) -> None: ...

    async def replicate(self) -> bool: ...


@dataclass(frozen=True)
class ReconcilerBindings:
    """Collection handles and settings a reconciler was initialized with."""

    source: Any
    destination: Any
    source_context: AccountContext
    destination_context: AccountContext
    misc: MiscellaneousSettings
    auxiliary_source: Any = None
    auxiliary_destination: Any = None


class CollectionReconciler(ABC):
    """
    Shared implementation of the reconciler contract.

    Subclasses name their category, build the destination model and issue the
    create call. Kinds with child collections set ``child_label`` and must
    override ``create_child``; a subclass that sets one without the other is
    rejected when the class is defined.
    """

    category: ResourceCategory
    entity_label: str = "entity"
    child_label: Optional[str] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        overrides_child = cls.create_child is not CollectionReconciler.create_child
        if cls.child_label is not None and not overrides_child:
            raise TypeError(f"{cls.__name__} sets child_label but does not override create_child")
        if cls.child_label is None and overrides_child:
            raise TypeError(f"{cls.__name__} overrides create_child but sets no child_label")

    def __init__(self) -> None:
        self._bindings: Optional[ReconcilerBindings] = None
        self.translator: Optional[AccountTranslator] = None
        self.stats = ReplicationStats()
        self.faults: List[ReplicatorError] = []

    @property
    def has_children(self) -> bool:
        return self.child_label is not None

    def initialize(
        self,
        source: Any,
        destination: Any,
        source_context: AccountContext,
        destination_context: AccountContext,
        misc: MiscellaneousSettings,
        auxiliary_source: Any = None,
        auxiliary_destination: Any = None,
    ) -> None:
        """
        Bind the reconciler to live collection handles. Performs no I/O.

        Raises:
            ReconcilerInitializationError: If a required handle is absent
        """
        required = {
            "source": source,
            "destination": destination,
            "source_context": source_context,
            "destination_context": destination_context,
            "misc": misc,
        }
        if self.has_children:
            required["auxiliary_source"] = auxiliary_source
            required["auxiliary_destination"] = auxiliary_destination

        missing = [name for name, handle in required.items() if handle is None]
        if missing:
            raise ReconcilerInitializationError(
                f"Cannot initialize {self.category.label} reconciler: missing {', '.join(missing)}",
                category=self.category.value,
                missing_handles=missing,
            )

        self._bindings = ReconcilerBindings(
            source=source,
            destination=destination,
            source_context=source_context,
            destination_context=destination_context,
            misc=misc,
            auxiliary_source=auxiliary_source,
            auxiliary_destination=auxiliary_destination,
        )
        self.translator = AccountTranslator(source_context, destination_context)

    @property
    def bindings(self) -> ReconcilerBindings:
        if self._bindings is None:
            raise ReconcilerInitializationError(
                f"{self.category.label} reconciler used before initialize()",
                category=self.category.value,
            )
        return self._bindings

    @property
    def source_context(self) -> AccountContext:
        return self.bindings.source_context

    @property
    def destination_context(self) -> AccountContext:
        return self.bindings.destination_context

    @property
    def misc(self) -> MiscellaneousSettings:
        return self.bindings.misc

    async def replicate(self) -> bool:
        """
        Replicate the whole category.

        Returns:
            True when every source entity exists at the destination, False when
            the category is skipped by configuration

        Raises:
            CategoryReplicationError: If any entity (or child) failed
        """
        bindings = self.bindings
        if self.category in bindings.misc.skip_categories:
            logger.info(f"Skipping {self.category.label}: disabled in configuration")
            return False

        self.stats = ReplicationStats()
        self.faults = []
        source_entities = await self.list_source()
        destination_names = await self.list_destination_names()

        self.stats.source_count = len(source_entities)
        self.stats.existing = sum(
            1 for entity in source_entities if entity.name in destination_names
        )
        logger.info(
            f"Found {self.stats.source_count} {self.category.label} in "
            f"{self.source_context.account_name}, {self.stats.existing} already in "
            f"{self.destination_context.account_name}"
        )

        semaphore = asyncio.Semaphore(bindings.misc.max_parallel_operations)

        async def _bounded(entity: Any) -> List[str]:
            async with semaphore:
                return await self._reconcile_entity(entity, entity.name in destination_names)

        outcomes = await asyncio.gather(
            *[_bounded(entity) for entity in source_entities], return_exceptions=True
        )

        failed: List[str] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            failed.extend(outcome)
        self.stats.failed = failed

        if failed:
            raise CategoryReplicationError(
                f"{len(failed)} {self.category.label} item(s) could not be replicated",
                category=self.category.value,
                failed_entities=failed,
                cause=self.faults[0] if self.faults else None,
            )

        logger.info(
            f"Replicated {self.category.label}: {self.stats.created} created, "
            f"{self.stats.existing} already present"
            + (f", {self.stats.planned} planned (dry run)" if bindings.misc.dry_run else "")
        )
        return True

    async def _reconcile_entity(self, entity: Any, exists: bool) -> List[str]:
        name = entity.name
        try:
            if exists:
                logger.debug(f"{self.entity_label} '{name}' already exists")
                if not self.misc.dry_run:
                    await self.converge_existing(entity)
            elif self.misc.dry_run:
                logger.info(f"[dry run] Would create {self.entity_label} '{name}'")
                self.stats.planned += 1
            else:
                logger.info(f"Creating {self.entity_label} '{name}'")
                await self.create_entity(entity)
                self.stats.created += 1
        except ReplicatorError as exc:
            logger.error(f"Failed to replicate {self.entity_label} '{name}': {exc}")
            self.faults.append(exc)
            return [name]

        if not self.has_children:
            return []
        return await self._reconcile_children(name, parent_exists=exists or not self.misc.dry_run)

    async def _reconcile_children(self, parent_name: str, parent_exists: bool) -> List[str]:
        try:
            source_children = await self.list_source_children(parent_name)
            destination_names: Set[str] = (
                {child.name for child in await self.list_destination_children(parent_name)}
                if parent_exists
                else set()
            )
        except ReplicatorError as exc:
            logger.error(f"Failed to list {self.child_label} of '{parent_name}': {exc}")
            self.faults.append(exc)
            return [parent_name]

        failed: List[str] = []
        for child in source_children:
            qualified = f"{parent_name}/{child.name}"
            if child.name in destination_names:
                logger.debug(f"{self.child_label} '{qualified}' already exists, skipping")
                continue
            if self.misc.dry_run:
                logger.info(f"[dry run] Would create {self.child_label} '{qualified}'")
                self.stats.planned += 1
                continue
            try:
                logger.info(f"Creating {self.child_label} '{qualified}'")
                await self.create_child(parent_name, child)
                self.stats.child_created += 1
            except ReplicatorError as exc:
                logger.error(f"Failed to replicate {self.child_label} '{qualified}': {exc}")
                self.faults.append(exc)
                failed.append(qualified)
        return failed

    # Collection access

    async def list_source(self) -> List[Any]:
        ctx = self.source_context
        return await self._call(
            _drain,
            self.bindings.source.list,
            ctx.resource_group,
            ctx.account_name,
            operation=f"list source {self.category.label}",
        )

    async def list_destination_names(self) -> Set[str]:
        ctx = self.destination_context
        entities = await self._call(
            _drain,
            self.bindings.destination.list,
            ctx.resource_group,
            ctx.account_name,
            operation=f"list destination {self.category.label}",
        )
        return {entity.name for entity in entities}

    async def list_source_children(self, parent_name: str) -> List[Any]:
        ctx = self.source_context
        return await self._call(
            _drain,
            self.bindings.auxiliary_source.list,
            ctx.resource_group,
            ctx.account_name,
            parent_name,
            operation=f"list source {self.child_label} of '{parent_name}'",
        )

    async def list_destination_children(self, parent_name: str) -> List[Any]:
        ctx = self.destination_context
        return await self._call(
            _drain,
            self.bindings.auxiliary_destination.list,
            ctx.resource_group,
            ctx.account_name,
            parent_name,
            operation=f"list destination {self.child_label} of '{parent_name}'",
        )

    async def _call(self, func: Callable[..., Any], *args: Any, operation: str, **kwargs: Any) -> Any:
        return await call_with_retry(
            func,
            *args,
            operation=operation,
            max_retries=self.misc.max_retries,
            retry_delay=self.misc.retry_delay,
            **kwargs,
        )

    async def _call_long_running(
        self, begin: Callable[..., Any], *args: Any, operation: str, **kwargs: Any
    ) -> Any:
        return await self._call(
            _begin_and_wait, begin, *args, operation=operation, lro_operation=operation, **kwargs
        )

    # Kind specific hooks

    @abstractmethod
    async def create_entity(self, entity: Any) -> None:
        """Create the destination counterpart of *entity*."""

    async def converge_existing(self, entity: Any) -> None:
        """Bring the destination counterpart of an already present *entity* up to date."""

    async def create_child(self, parent_name: str, child: Any) -> None:
        """Create the destination counterpart of *child*. Overridden exactly when ``child_label`` is set."""
        raise NotImplementedError(f"{type(self).__name__} has no child collection")


def _drain(list_call: Callable[..., Any], *args: Any) -> List[Any]:
    """Iterate every page of a paged listing."""
    return list(list_call(*args))


def _begin_and_wait(
    begin: Callable[..., Any], *args: Any, lro_operation: str, **kwargs: Any
) -> Any:
    poller = begin(*args, **kwargs)
    result = poller.result(timeout=Timeouts.LONG_RUNNING_OPERATION)
    if not poller.done():
        log_timeout_event(lro_operation, Timeouts.LONG_RUNNING_OPERATION, level="error")
        raise ReplicationError(
            f"{lro_operation} did not finish within {Timeouts.LONG_RUNNING_OPERATION}s",
            error_code="LONG_RUNNING_OPERATION_TIMEOUT",
            cause=TimeoutError(
                "Long-running operation timed out",
                operation=lro_operation,
                timeout_value=Timeouts.LONG_RUNNING_OPERATION,
            ),
        )
    return result
