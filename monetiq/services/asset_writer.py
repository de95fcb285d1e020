from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from monetiq.repos.assets_repo import AssetsRepo
from monetiq.services.storage.media_store import MediaStore

logger = logging.getLogger("asset_writer")

_AUDIO_EXT = {"audio/mpeg": "mp3", "audio/wav": "wav"}
_IMAGE_EXT = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


@dataclass(frozen=True)
class SavedAsset:
    asset_id: str
    public_url: str


class AssetWriter:
    """Uploads media bytes (or records an external URL) and creates the assets row."""

    def __init__(self, store: MediaStore, assets: AssetsRepo):
        self.store = store
        self.assets = assets

    async def save_audio(
        self,
        *,
        user_id: str,
        job_id: str,
        kind: str,
        provider: str,
        data: Optional[bytes] = None,
        url: Optional[str] = None,
        mime_type: str = "audio/mpeg",
        meta: Optional[Dict[str, Any]] = None,
    ) -> SavedAsset:
        if data:
            stored = await self.store.upload(
                data=data,
                filename=f"{job_id}.{_AUDIO_EXT.get(mime_type, 'bin')}",
                content_type=mime_type,
                path=f"music-mode/{user_id}",
            )
            public_url, key, bucket, origin = stored.url, stored.key, stored.bucket, stored.provider
        elif url:
            public_url, key, bucket, origin = url, f"external/{job_id}", None, provider
        else:
            raise ValueError("either data or url must be provided")

        asset_id = await self.assets.insert_asset(
            user_id=user_id,
            kind="audio",
            role=f"music_{kind}",
            public_url=public_url,
            storage_key=key,
            storage_bucket=bucket,
            origin_provider=origin,
            mime_type=mime_type,
            meta={"job_id": job_id, "provider": provider, **(meta or {})},
        )
        logger.info("audio_asset_saved", extra={"asset_id": asset_id, "job_id": job_id, "storage_key": key})
        return SavedAsset(asset_id=asset_id, public_url=public_url)

    async def upload_image(
        self,
        *,
        data: bytes,
        path: str,
        filename_stem: str,
        mime_type: str = "image/png",
    ) -> Dict[str, Any]:
        stored = await self.store.upload(
            data=data,
            filename=f"{filename_stem}.{_IMAGE_EXT.get(mime_type, 'png')}",
            content_type=mime_type,
            path=path,
        )
        return {"url": stored.url, "key": stored.key, "bucket": stored.bucket, "provider": stored.provider}

    async def record_shot_image(
        self,
        *,
        user_id: str,
        variant_id: str,
        shot_type: str,
        stored: Dict[str, Any],
        mime_type: str = "image/png",
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Best-effort asset-library row for a generated shot. Returns None if the write fails."""
        try:
            return await self.assets.upsert_shot_asset(
                user_id=user_id,
                variant_id=variant_id,
                shot_type=shot_type,
                public_url=stored["url"],
                storage_key=stored["key"],
                storage_bucket=stored.get("bucket"),
                origin_provider=stored.get("provider") or "unknown",
                mime_type=mime_type,
                meta=meta or {},
            )
        except Exception:
            logger.exception("Shot asset write failed (non-blocking) variant_id=%s shot=%s", variant_id, shot_type)
            return None
