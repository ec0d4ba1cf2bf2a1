"""Transforms: encoding and analysis recipes."""

from typing import Any

from azure.mgmt.media.models import Transform

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

TRANSFORM_FIELDS = ("description", "outputs")


class TransformReconciler(CollectionReconciler):
    category = ResourceCategory.TRANSFORMS
    entity_label = "transform"

    def build_destination(self, entity: Any) -> Transform:
        return build_model(Transform, entity, TRANSFORM_FIELDS)

    async def create_entity(self, entity: Any) -> None:
        ctx = self.destination_context
        await self._call(
            self.bindings.destination.create_or_update,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity),
            operation=f"create transform '{entity.name}'",
        )
