from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    ContentSettings,
    generate_blob_sas,
)

from monetiq.config import settings
from monetiq.services.storage.base import DEFAULT_CACHE_CONTROL, StoredObject

logger = logging.getLogger("storage.azure")


class AzureBlobBackend:
    """
    Azure Blob Storage backend. Objects are private; the returned URL carries
    a read-only SAS valid for AZURE_SAS_HOURS.
    """

    name = "azure"

    def __init__(self, *, connection_string: Optional[str] = None, container: Optional[str] = None):
        self.connection_string = (connection_string or settings.AZURE_STORAGE_CONNECTION_STRING).strip()
        if not self.connection_string:
            raise RuntimeError("missing_azure_storage_connection_string")

        self.bucket = container or settings.AZURE_MEDIA_CONTAINER
        self.sas_hours = int(settings.AZURE_SAS_HOURS)
        self.blob_service = BlobServiceClient.from_connection_string(self.connection_string)

        parts = dict(item.split("=", 1) for item in self.connection_string.split(";") if "=" in item)
        self.account_name = parts.get("AccountName")
        self.account_key = parts.get("AccountKey")
        if not self.account_name or not self.account_key:
            raise RuntimeError("could_not_parse_storage_account_credentials")

        self._container_ready = False

    def _ensure_container(self) -> None:
        if self._container_ready:
            return
        try:
            self.blob_service.get_container_client(self.bucket).create_container()
        except ResourceExistsError:
            pass
        self._container_ready = True

    def sas_url(self, key: str) -> str:
        sas_token = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.bucket,
            blob_name=key,
            account_key=self.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=datetime.now(timezone.utc) + timedelta(hours=self.sas_hours),
        )
        return f"https://{self.account_name}.blob.core.windows.net/{self.bucket}/{key}?{sas_token}"

    async def put_object(self, *, data: bytes, key: str, content_type: str) -> StoredObject:
        logger.info("Uploading to azure container=%s key=%s bytes=%s", self.bucket, key, len(data))

        def _sync_upload() -> None:
            self._ensure_container()
            blob_client = self.blob_service.get_blob_client(container=self.bucket, blob=key)
            blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type, cache_control=DEFAULT_CACHE_CONTROL),
            )

        await asyncio.to_thread(_sync_upload)
        return StoredObject(provider=self.name, key=key, url=self.sas_url(key), bucket=self.bucket, size=len(data))
