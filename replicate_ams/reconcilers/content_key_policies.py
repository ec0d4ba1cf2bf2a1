"""Content key policies.

Listings return policies with their secrets (keys, token signing material)
stripped, so the options of every policy are read again from the source with
``get_policy_properties_with_secrets`` before the destination copy is built.
"""

from typing import Any

from azure.mgmt.media.models import ContentKeyPolicy

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

POLICY_FIELDS = ("description", "options")


class ContentKeyPolicyReconciler(CollectionReconciler):
    category = ResourceCategory.CONTENT_KEY_POLICIES
    entity_label = "content key policy"

    async def read_with_secrets(self, name: str) -> Any:
        ctx = self.source_context
        return await self._call(
            self.bindings.source.get_policy_properties_with_secrets,
            ctx.resource_group,
            ctx.account_name,
            name,
            operation=f"read content key policy '{name}' with secrets",
        )

    def build_destination(self, entity: Any, properties: Any) -> ContentKeyPolicy:
        return build_model(
            ContentKeyPolicy,
            properties,
            POLICY_FIELDS,
            description=getattr(properties, "description", None) or entity.description,
        )

    async def create_entity(self, entity: Any) -> None:
        properties = await self.read_with_secrets(entity.name)
        ctx = self.destination_context
        await self._call(
            self.bindings.destination.create_or_update,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity, properties),
            operation=f"create content key policy '{entity.name}'",
        )
