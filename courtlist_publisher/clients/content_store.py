from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
import logging
import math
from typing import Any

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas

from courtlist_publisher.domain.contracts import ARTIFACT_CONTENT_TYPE
from courtlist_publisher.domain.errors import ArtifactNotFound, StorageFailed
from courtlist_publisher.domain.models import StoredArtifact

logger = logging.getLogger("runtime")

DEFAULT_SAS_EXPIRY_MINUTES = 120


def operation_timeout_for(stage_timeout_seconds: float) -> int:
    return max(1, math.ceil(stage_timeout_seconds) - 1)


def artifact_reference(folder: str, name: str) -> str:
    folder = folder.strip("/")
    name = name.strip("/")
    if not name:
        raise ValueError("artifact name must be non-empty")
    if not folder:
        return name
    return f"{folder}/{name}"


@dataclass
class AzureBlobContentStore:
    """Court list artifacts in one blob container; uploads overwrite (last write wins)."""

    service_client: BlobServiceClient
    container: str
    account_key: str | None = None
    sas_expiry_minutes: int = DEFAULT_SAS_EXPIRY_MINUTES
    # Seconds, passed as `timeout=` to every SDK call; kept below the stage timeout.
    operation_timeout_seconds: int | None = None

    @classmethod
    def from_connection_string(cls, connection_string: str, *, container: str, **kwargs: Any) -> AzureBlobContentStore:
        return cls(
            service_client=BlobServiceClient.from_connection_string(connection_string),
            container=container,
            **kwargs,
        )

    @classmethod
    def from_account(cls, account_name: str, *, container: str, credential: Any, **kwargs: Any) -> AzureBlobContentStore:
        return cls(
            service_client=BlobServiceClient(
                account_url=f"https://{account_name}.blob.core.windows.net",
                credential=credential,
            ),
            container=container,
            **kwargs,
        )

    async def store(
        self,
        *,
        folder: str,
        name: str,
        payload: bytes,
        content_type: str = ARTIFACT_CONTENT_TYPE,
    ) -> StoredArtifact:
        reference = artifact_reference(folder, name)
        try:
            url = await asyncio.to_thread(self._upload, reference, payload, content_type)
        except AzureError as exc:
            raise StorageFailed(f"failed to store {reference}: {exc}") from exc
        return StoredArtifact(reference=reference, url=url, size=len(payload))

    async def fetch(self, *, reference: str) -> bytes:
        try:
            return await asyncio.to_thread(self._download, reference)
        except ResourceNotFoundError as exc:
            raise ArtifactNotFound(reference) from exc
        except AzureError as exc:
            raise StorageFailed(f"failed to fetch {reference}: {exc}") from exc

    async def list(self, *, folder: str) -> list[StoredArtifact]:
        prefix = folder.strip("/")
        if prefix:
            prefix = f"{prefix}/"
        try:
            return await asyncio.to_thread(self._list, prefix)
        except AzureError as exc:
            raise StorageFailed(f"failed to list {folder}: {exc}") from exc

    def _upload(self, reference: str, payload: bytes, content_type: str) -> str:
        blob_client = self.service_client.get_blob_client(container=self.container, blob=reference)
        blob_client.upload_blob(
            payload,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
            **self._sdk_options(),
        )
        logger.info("artifact stored", extra={"service": "clients.content_store", "stage": "store"})
        return self._url_for(blob_client.url, reference)

    def _download(self, reference: str) -> bytes:
        blob_client = self.service_client.get_blob_client(container=self.container, blob=reference)
        return blob_client.download_blob(**self._sdk_options()).readall()

    def _list(self, prefix: str) -> list[StoredArtifact]:
        container_client = self.service_client.get_container_client(self.container)
        items: list[StoredArtifact] = []
        for blob in container_client.list_blobs(name_starts_with=prefix, **self._sdk_options()):
            blob_url = f"{container_client.url}/{blob.name}"
            items.append(StoredArtifact(reference=blob.name, url=self._url_for(blob_url, blob.name), size=blob.size))
        return items

    def _sdk_options(self) -> dict[str, Any]:
        if self.operation_timeout_seconds is None:
            return {}
        return {"timeout": self.operation_timeout_seconds}

    def _url_for(self, blob_url: str, reference: str) -> str:
        if not self.account_key:
            return blob_url
        now = datetime.now(tz=UTC)
        sas_token = generate_blob_sas(
            account_name=self.service_client.account_name,
            container_name=self.container,
            blob_name=reference,
            account_key=self.account_key,
            permission=BlobSasPermissions(read=True),
            start=now - timedelta(minutes=5),
            expiry=now + timedelta(minutes=self.sas_expiry_minutes),
        )
        return f"{blob_url}?{sas_token}"
