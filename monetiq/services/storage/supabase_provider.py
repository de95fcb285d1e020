from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from supabase import Client, create_client

from monetiq.config import settings
from monetiq.services.storage.base import DEFAULT_CACHE_CONTROL, StoredObject

logger = logging.getLogger("storage.supabase")

_client: Client | None = None


def get_supabase() -> Client:
    """Service-role Supabase client, created once."""
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


class SupabaseStorageBackend:
    name = "supabase"

    def __init__(self, *, client: Any = None, bucket: Optional[str] = None):
        self.client = client if client is not None else get_supabase()
        self.bucket = bucket or settings.SUPABASE_STORAGE_BUCKET

    async def put_object(self, *, data: bytes, key: str, content_type: str) -> StoredObject:
        logger.info("Uploading to supabase bucket=%s key=%s bytes=%s", self.bucket, key, len(data))

        def _sync_upload() -> str:
            bucket = self.client.storage.from_(self.bucket)
            bucket.upload(
                path=key,
                file=data,
                file_options={
                    "content-type": content_type,
                    "cache-control": DEFAULT_CACHE_CONTROL,
                    "upsert": "true",
                },
            )
            return bucket.get_public_url(key)

        try:
            url = await asyncio.to_thread(_sync_upload)
        except Exception as e:
            raise RuntimeError(f"Supabase upload failed: {e}") from e

        return StoredObject(provider=self.name, key=key, url=str(url), bucket=self.bucket, size=len(data))
