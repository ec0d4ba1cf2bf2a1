"""
Assets and their asset filters.

An asset is metadata pointing at a blob container. The destination asset is
created in the destination account's storage account. When content copy is
enabled the blobs of every asset present at the destination are copied;
blobs already in place are skipped, so a rerun completes an interrupted copy.
Asset filters are reconciled for every asset that exists at the destination,
whether it was created in this run or was already there.
"""

import logging
from typing import Any, Callable, Optional

from azure.mgmt.media.models import Asset, AssetFilter

from ..exceptions import ReplicatorError
from ..models import ResourceCategory
from ..storage import AssetContentCopier
from .account_filters import FILTER_FIELDS
from .base import CollectionReconciler
from .mapping import build_model

logger = logging.getLogger(__name__)

ASSET_FIELDS = ("alternate_id", "description", "container")


class AssetReconciler(CollectionReconciler):
    """Replicates assets, their content and their asset filters."""

    category = ResourceCategory.ASSETS
    entity_label = "asset"
    child_label = "asset filter"

    def __init__(self, copier_factory: Optional[Callable[..., Any]] = None) -> None:
        super().__init__()
        self.copier_factory = copier_factory or AssetContentCopier
        self._copier: Optional[Any] = None

    @property
    def copier(self) -> Any:
        if self._copier is None:
            bindings = self.bindings
            self._copier = self.copier_factory(
                bindings.source,
                bindings.destination,
                bindings.source_context,
                bindings.destination_context,
                bindings.misc,
            )
        return self._copier

    def build_destination(self, entity: Any) -> Asset:
        return build_model(
            Asset,
            entity,
            ASSET_FIELDS,
            storage_account_name=self.translator.storage_account_name(
                entity.storage_account_name
            ),
        )

    async def create_entity(self, entity: Any) -> None:
        ctx = self.destination_context
        await self._call(
            self.bindings.destination.create_or_update,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity),
            operation=f"create asset '{entity.name}'",
        )
        await self.copy_content(entity.name)

    async def converge_existing(self, entity: Any) -> None:
        await self.copy_content(entity.name)

    async def copy_content(self, asset_name: str) -> None:
        if not self.misc.copy_asset_content:
            return
        try:
            await self.copier.copy(asset_name)
        except ReplicatorError:
            logger.error(f"Content of asset '{asset_name}' was not fully copied")
            raise

    async def create_child(self, parent_name: str, child: Any) -> None:
        ctx = self.destination_context
        await self._call(
            self.bindings.auxiliary_destination.create_or_update,
            ctx.resource_group,
            ctx.account_name,
            parent_name,
            child.name,
            build_model(AssetFilter, child, FILTER_FIELDS),
            operation=f"create asset filter '{parent_name}/{child.name}'",
        )
