"""Streaming locators.

Locators reference assets, streaming policies and content key policies by
name, so they run after those categories. The content keys of a locator are
not part of the listing; they are read with ``list_content_keys`` so clients
holding the old keys keep working against the destination.
"""

from typing import Any, List

from azure.mgmt.media.models import StreamingLocator, StreamingLocatorContentKey

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

LOCATOR_FIELDS = (
    "asset_name",
    "start_time",
    "end_time",
    "streaming_locator_id",
    "streaming_policy_name",
    "default_content_key_policy_name",
    "alternative_media_id",
    "filters",
)


class StreamingLocatorReconciler(CollectionReconciler):
    category = ResourceCategory.STREAMING_LOCATORS
    entity_label = "streaming locator"

    async def read_content_keys(self, name: str) -> List[StreamingLocatorContentKey]:
        ctx = self.source_context
        response = await self._call(
            self.bindings.source.list_content_keys,
            ctx.resource_group,
            ctx.account_name,
            name,
            operation=f"list content keys of streaming locator '{name}'",
        )
        return [
            StreamingLocatorContentKey(
                id=key.id,
                label_reference_in_streaming_policy=key.label_reference_in_streaming_policy,
                value=key.value,
            )
            for key in (response.content_keys or [])
        ]

    def build_destination(
        self, entity: Any, content_keys: List[StreamingLocatorContentKey]
    ) -> StreamingLocator:
        return build_model(
            StreamingLocator,
            entity,
            LOCATOR_FIELDS,
            content_keys=content_keys or None,
        )

    async def create_entity(self, entity: Any) -> None:
        content_keys = await self.read_content_keys(entity.name)
        ctx = self.destination_context
        await self._call(
            self.bindings.destination.create,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity, content_keys),
            operation=f"create streaming locator '{entity.name}'",
        )
