"""
Asset content copy between the storage accounts of two Media Services accounts.

Container access goes through short-lived SAS URLs issued by the Media
Services API (``assets.list_container_sas``), so no storage account keys are
needed. Two transfer paths exist:

- cloud copy: the destination storage service pulls every blob from the
  source SAS URL (``start_copy_from_url``); this machine only polls status.
- local relay: every blob is downloaded in chunks and uploaded again from
  this machine, for setups where the two storage accounts cannot reach each
  other directly.

Blobs already present at the destination with the same size and no
unfinished copy are skipped, so copying an asset again resumes an earlier
partial transfer.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from azure.mgmt.media.models import AssetContainerPermission, ListContainerSasInput
from azure.storage.blob import ContainerClient

from ..config import AccountContext, MiscellaneousSettings
from ..exceptions import AssetContentCopyError
from ..timeout_config import TimeoutError, Timeouts, log_timeout_event
from ..utils.retry import SDK_ERRORS, call_with_retry

logger = logging.getLogger(__name__)

COPY_STATUS_SUCCESS = "success"
COPY_STATUS_PENDING = "pending"


class AssetContentCopier:
    """
    Copies the blobs of one asset container into its destination counterpart.

    Attributes:
        source_assets: Source ``assets`` operation group (SAS issuance only)
        destination_assets: Destination ``assets`` operation group
        use_local_network: Relay content through this machine
    """

    def __init__(
        self,
        source_assets: Any,
        destination_assets: Any,
        source_context: AccountContext,
        destination_context: AccountContext,
        misc: MiscellaneousSettings,
        container_client_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.source_assets = source_assets
        self.destination_assets = destination_assets
        self.source_context = source_context
        self.destination_context = destination_context
        self.misc = misc
        self.use_local_network = misc.copy_using_local_network
        self.container_client_factory = (
            container_client_factory or ContainerClient.from_container_url
        )

    @property
    def mode(self) -> str:
        return "local relay" if self.use_local_network else "cloud copy"

    async def copy(self, asset_name: str) -> int:
        """
        Copy every blob of *asset_name* from source to destination.

        Returns:
            Number of blobs transferred (blobs already in place are not counted)

        Raises:
            AssetContentCopyError: If a blob could not be transferred
        """
        source_url = await self.container_sas_url(
            self.source_assets, self.source_context, asset_name, AssetContainerPermission.READ
        )
        destination_url = await self.container_sas_url(
            self.destination_assets,
            self.destination_context,
            asset_name,
            AssetContainerPermission.READ_WRITE,
        )
        logger.info(f"Copying content of asset '{asset_name}' ({self.mode})")

        transfer = self._relay_container if self.use_local_network else self._copy_container
        try:
            count = await asyncio.to_thread(transfer, asset_name, source_url, destination_url)
        except SDK_ERRORS as exc:
            raise AssetContentCopyError(
                f"Content copy of asset '{asset_name}' failed: {exc}",
                asset_name=asset_name,
                cause=exc,
            ) from exc

        logger.info(f"Copied {count} blob(s) of asset '{asset_name}'")
        return count

    async def container_sas_url(
        self, assets: Any, context: AccountContext, asset_name: str, permission: str
    ) -> str:
        expiry = datetime.now(timezone.utc) + timedelta(hours=self.misc.sas_expiry_hours)
        response = await call_with_retry(
            assets.list_container_sas,
            context.resource_group,
            context.account_name,
            asset_name,
            ListContainerSasInput(permissions=permission, expiry_time=expiry),
            operation=f"list container SAS of asset '{asset_name}' in {context.account_name}",
            max_retries=self.misc.max_retries,
            retry_delay=self.misc.retry_delay,
        )
        urls = response.asset_container_sas_urls or []
        if not urls:
            raise AssetContentCopyError(
                f"No container SAS URL returned for asset '{asset_name}' in {context.account_name}",
                asset_name=asset_name,
            )
        return urls[0]

    def _copy_container(self, asset_name: str, source_url: str, destination_url: str) -> int:
        source = self.container_client_factory(source_url)
        destination = self.container_client_factory(destination_url)

        present = _blobs_by_name(destination)

        count = 0
        for blob in source.list_blobs():
            if _already_copied(blob, present.get(blob.name)):
                logger.debug(f"Blob '{blob.name}' of asset '{asset_name}' already copied")
                continue
            source_blob_url = source.get_blob_client(blob.name).url
            target = destination.get_blob_client(blob.name)
            target.start_copy_from_url(source_blob_url)
            self._wait_for_copy(asset_name, blob.name, target)
            count += 1
        return count

    def _wait_for_copy(self, asset_name: str, blob_name: str, target: Any) -> None:
        deadline = time.monotonic() + Timeouts.BLOB_COPY
        while True:
            status = target.get_blob_properties().copy.status
            if status == COPY_STATUS_SUCCESS:
                return
            if status != COPY_STATUS_PENDING:
                raise AssetContentCopyError(
                    f"Copy of blob '{blob_name}' ended with status '{status}'",
                    asset_name=asset_name,
                    blob_name=blob_name,
                )
            if time.monotonic() >= deadline:
                log_timeout_event(f"copy blob {blob_name}", Timeouts.BLOB_COPY, level="error")
                raise AssetContentCopyError(
                    f"Copy of blob '{blob_name}' did not finish in time",
                    asset_name=asset_name,
                    blob_name=blob_name,
                    cause=TimeoutError(
                        "Blob copy timed out",
                        operation=f"copy blob {blob_name}",
                        timeout_value=Timeouts.BLOB_COPY,
                    ),
                )
            time.sleep(Timeouts.BLOB_COPY_POLL_INTERVAL)

    def _relay_container(self, asset_name: str, source_url: str, destination_url: str) -> int:
        source = self.container_client_factory(source_url)
        destination = self.container_client_factory(destination_url)

        present = _blobs_by_name(destination)

        count = 0
        for blob in source.list_blobs():
            if _already_copied(blob, present.get(blob.name)):
                logger.debug(f"Blob '{blob.name}' of asset '{asset_name}' already copied")
                continue
            logger.debug(f"Relaying blob '{blob.name}' ({blob.size} bytes) of asset '{asset_name}'")
            downloader = source.download_blob(blob.name)
            destination.upload_blob(
                blob.name, downloader.chunks(), length=blob.size, overwrite=True
            )
            count += 1
        return count


def _blobs_by_name(container: Any) -> Dict[str, Any]:
    return {blob.name: blob for blob in container.list_blobs()}


def _already_copied(blob: Any, existing: Optional[Any]) -> bool:
    if existing is None or existing.size != blob.size:
        return False
    copy = getattr(existing, "copy", None)
    status = getattr(copy, "status", None)
    return status is None or status == COPY_STATUS_SUCCESS
