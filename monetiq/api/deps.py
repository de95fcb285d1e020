from __future__ import annotations

import hmac
from typing import Callable

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from monetiq.config import settings
from monetiq.db import get_pool
from monetiq.repos.ad_packs_repo import AdPacksRepo
from monetiq.repos.assets_repo import AssetsRepo
from monetiq.repos.music_jobs_repo import MusicJobsRepo
from monetiq.repos.music_outputs_repo import MusicOutputsRepo
from monetiq.repos.usage_credits_repo import UsageCreditsRepo
from monetiq.security import AuthError, decode_access_token, user_id_from_payload
from monetiq.services.ads.shot_pipeline import ShotPipeline
from monetiq.services.asset_writer import AssetWriter
from monetiq.services.music_queue import QueueManager
from monetiq.services.quota_ledger import QuotaLedger
from monetiq.services.storage.media_store import build_media_store
from monetiq.services.task_spawner import TaskSpawner, spawner
from monetiq.workers.music_worker import MusicWorker

bearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str:
    """Authorization: Bearer <Supabase JWT>; the user id is the `sub` claim."""
    if not creds or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise HTTPException(status_code=401, detail="not_authenticated")
    try:
        payload = decode_access_token(creds.credentials)
        return user_id_from_payload(payload)
    except AuthError as e:
        code = str(e)
        if code == "jwt_secret_missing":
            raise HTTPException(status_code=500, detail=code)
        raise HTTPException(status_code=401, detail=code)


async def require_worker_token(x_worker_token: str | None = Header(default=None, alias="X-Worker-Token")) -> None:
    expected = (settings.WORKER_TOKEN or "").strip()
    if not expected:
        return
    if not x_worker_token or not hmac.compare_digest(x_worker_token, expected):
        raise HTTPException(status_code=401, detail="invalid_worker_token")


def get_spawner() -> TaskSpawner:
    return spawner


async def get_quota_ledger() -> QuotaLedger:
    pool = await get_pool()
    return QuotaLedger(UsageCreditsRepo(pool))


async def get_queue_manager() -> QueueManager:
    pool = await get_pool()
    return QueueManager(MusicJobsRepo(pool), QuotaLedger(UsageCreditsRepo(pool)))


async def get_music_jobs_repo() -> MusicJobsRepo:
    return MusicJobsRepo(await get_pool())


async def get_music_outputs_repo() -> MusicOutputsRepo:
    return MusicOutputsRepo(await get_pool())


WorkerFactory = Callable[[], MusicWorker]


async def get_worker_factory() -> WorkerFactory:
    """Storage clients are built when a run starts, not while the request resolves."""
    pool = await get_pool()
    return lambda: MusicWorker.from_pool(pool)


async def get_ad_packs_repo() -> AdPacksRepo:
    return AdPacksRepo(await get_pool())


async def get_assets_repo() -> AssetsRepo:
    return AssetsRepo(await get_pool())


async def get_shot_pipeline() -> ShotPipeline:
    pool = await get_pool()
    return ShotPipeline(
        ads=AdPacksRepo(pool),
        writer=AssetWriter(build_media_store(), AssetsRepo(pool)),
    )
