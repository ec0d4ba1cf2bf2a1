"""
Live events and their live outputs.

Live events are tracked resources created stopped (never started, which would
begin billing). Live outputs are reconciled for every live event present at
the destination; the archive asset they name must already exist, which the
assets step guarantees.
"""

from typing import Any

from azure.mgmt.media.models import LiveEvent, LiveOutput

from ..models import ResourceCategory
from .base import CollectionReconciler
from .mapping import build_model

LIVE_EVENT_FIELDS = (
    "tags",
    "description",
    "input",
    "preview",
    "encoding",
    "transcriptions",
    "cross_site_access_policies",
    "use_static_hostname",
    "hostname_prefix",
    "stream_options",
)

LIVE_OUTPUT_FIELDS = (
    "description",
    "asset_name",
    "archive_window_length",
    "rewind_window_length",
    "manifest_name",
    "hls",
    "output_snap_time",
)


class LiveEventReconciler(CollectionReconciler):
    category = ResourceCategory.LIVE_EVENTS
    entity_label = "live event"
    child_label = "live output"

    def build_destination(self, entity: Any) -> LiveEvent:
        return build_model(
            LiveEvent,
            entity,
            LIVE_EVENT_FIELDS,
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
            operation=f"create live event '{entity.name}'",
        )

    async def create_child(self, parent_name: str, child: Any) -> None:
        ctx = self.destination_context
        await self._call_long_running(
            self.bindings.auxiliary_destination.begin_create,
            ctx.resource_group,
            ctx.account_name,
            parent_name,
            child.name,
            build_model(LiveOutput, child, LIVE_OUTPUT_FIELDS),
            operation=f"create live output '{parent_name}/{child.name}'",
        )
