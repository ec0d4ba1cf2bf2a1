"""
Streaming endpoints.

Endpoints are tracked resources: the region is rewritten to the destination
account's location. Custom host names are copied as they are; they only
resolve once the operator repoints DNS at the new endpoint. Endpoints are
created stopped, never started.
"""

from typing import Any

from azure.mgmt.media.models import StreamingEndpoint

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

STREAMING_ENDPOINT_FIELDS = (
    "tags",
    "description",
    "scale_units",
    "availability_set_name",
    "access_control",
    "max_cache_age",
    "custom_host_names",
    "cdn_enabled",
    "cdn_provider",
    "cdn_profile",
    "cross_site_access_policies",
)


class StreamingEndpointReconciler(CollectionReconciler):
    category = ResourceCategory.STREAMING_ENDPOINTS
    entity_label = "streaming endpoint"

    def build_destination(self, entity: Any) -> StreamingEndpoint:
        return build_model(
            StreamingEndpoint,
            entity,
            STREAMING_ENDPOINT_FIELDS,
            location=self.translator.location(entity.location),
        )

    async def create_entity(self, entity: Any) -> None:
        ctx = self.destination_context
        await self._call_long_running(
            self.bindings.destination.begin_create,
            ctx.resource_group,
            ctx.account_name,
            entity.name,
            self.build_destination(entity),
            auto_start=False,
            operation=f"create streaming endpoint '{entity.name}'",
        )
