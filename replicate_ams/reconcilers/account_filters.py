"""Account filters: account-wide dynamic manifest filters."""

from typing import Any

from azure.mgmt.media.models import AccountFilter

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

FILTER_FIELDS = ("presentation_time_range", "first_quality", "tracks")


class AccountFilterReconciler(CollectionReconciler):
    category = ResourceCategory.ACCOUNT_FILTERS
    entity_label = "account filter"

    def build_destination(self, entity: Any) -> AccountFilter:
        return build_model(AccountFilter, entity, FILTER_FIELDS)

    async def create_entity(self, entity: Any) -> None:
        ctx = self.destination_context
        await self._call(
            self.bindings.destination.create_or_update,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity),
            operation=f"create account filter '{entity.name}'",
        )
