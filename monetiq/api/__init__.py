from __future__ import annotations

from fastapi import APIRouter

from monetiq.api.health import router as health_router
from monetiq.api.routes.ads_mode import router as ads_mode_router
from monetiq.api.routes.music_jobs import router as music_jobs_router
from monetiq.api.routes.music_worker import router as music_worker_router


def build_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health_router)
    router.include_router(music_jobs_router)
    router.include_router(music_worker_router)
    router.include_router(ads_mode_router)
    return router
