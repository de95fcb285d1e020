from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from monetiq.config import settings
from monetiq.services.storage.base import DEFAULT_CACHE_CONTROL, StoredObject

logger = logging.getLogger("storage.r2")


def _build_client() -> Any:
    if not settings.R2_ENDPOINT or not settings.R2_ACCESS_KEY_ID or not settings.R2_SECRET_ACCESS_KEY:
        raise RuntimeError("R2 configuration missing. Check R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY")
    # R2 speaks the S3 API; region is always "auto".
    cfg = Config(signature_version="s3v4", region_name="auto")
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url=settings.R2_ENDPOINT,
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        config=cfg,
    )


class R2StorageBackend:
    name = "r2"

    def __init__(self, *, client: Any = None, bucket: Optional[str] = None, public_base_url: Optional[str] = None):
        self.client = client if client is not None else _build_client()
        self.bucket = bucket or settings.R2_BUCKET
        base = public_base_url if public_base_url is not None else settings.R2_PUBLIC_BASE_URL
        if not base:
            logger.warning("R2_PUBLIC_BASE_URL not set, public URLs will use the R2 endpoint")
            base = settings.R2_ENDPOINT or ""
        self.public_base_url = base

    def public_url(self, key: str) -> str:
        host = self.public_base_url
        for prefix in ("https://", "http://"):
            if host.startswith(prefix):
                host = host[len(prefix):]
        return f"https://{host.rstrip('/')}/{key}"

    async def put_object(self, *, data: bytes, key: str, content_type: str) -> StoredObject:
        logger.info("Uploading to r2 bucket=%s key=%s bytes=%s", self.bucket, key, len(data))

        def _sync_upload() -> None:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=DEFAULT_CACHE_CONTROL,
            )

        try:
            await asyncio.to_thread(_sync_upload)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            msg = e.response.get("Error", {}).get("Message")
            raise RuntimeError(f"R2 upload failed: {code} {msg}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"R2 upload failed: {e}") from e

        return StoredObject(provider=self.name, key=key, url=self.public_url(key), bucket=self.bucket, size=len(data))
