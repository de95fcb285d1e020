from __future__ import annotations

import logging
from typing import Dict, Optional

from monetiq.config import settings
from monetiq.domain.enums import StorageProvider
from monetiq.services.storage.base import MediaBackend, StoredObject

logger = logging.getLogger("media_store")


class MediaStore:
    """
    Provider-agnostic upload. The primary backend's result is authoritative;
    the optional secondary is written best effort (failures are logged only).
    """

    def __init__(self, primary: MediaBackend, secondary: Optional[MediaBackend] = None):
        self.primary = primary
        self.secondary = secondary

    async def upload(self, *, data: bytes, filename: str, content_type: str, path: str) -> StoredObject:
        if not data:
            raise ValueError("empty upload")
        key = f"{path.strip('/')}/{filename}"

        result = await self.primary.put_object(data=data, key=key, content_type=content_type)

        if self.secondary is not None:
            try:
                await self.secondary.put_object(data=data, key=key, content_type=content_type)
            except Exception as e:
                logger.warning("Dual-write to %s failed (non-blocking) key=%s: %s", self.secondary.name, key, e)

        return result


_BACKENDS: Dict[str, MediaBackend] = {}


def _backend(provider: StorageProvider) -> MediaBackend:
    if provider.value in _BACKENDS:
        return _BACKENDS[provider.value]

    if provider == StorageProvider.r2:
        from monetiq.services.storage.r2_provider import R2StorageBackend

        backend: MediaBackend = R2StorageBackend()
    elif provider == StorageProvider.azure:
        from monetiq.services.storage.azure_provider import AzureBlobBackend

        backend = AzureBlobBackend()
    else:
        from monetiq.services.storage.supabase_provider import SupabaseStorageBackend

        backend = SupabaseStorageBackend()

    _BACKENDS[provider.value] = backend
    return backend


def build_media_store() -> MediaStore:
    primary = StorageProvider((settings.MEDIA_WRITE_PROVIDER or "supabase").strip().lower())
    secondary = None
    if settings.MEDIA_DUAL_WRITE:
        # Dual write pairs supabase and r2; azure has no partner.
        if primary == StorageProvider.r2:
            secondary = _backend(StorageProvider.supabase)
        elif primary == StorageProvider.supabase:
            secondary = _backend(StorageProvider.r2)
    return MediaStore(_backend(primary), secondary)
