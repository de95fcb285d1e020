from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from monetiq.api.deps import WorkerFactory, get_worker_factory, require_worker_token
from monetiq.workers.music_worker import new_worker_id

logger = logging.getLogger("api.music_worker")

router = APIRouter(prefix="/api/music", tags=["music-worker"])


@router.post("/worker", dependencies=[Depends(require_worker_token)])
async def run_worker(make_worker: WorkerFactory = Depends(get_worker_factory)):
    """Process at most one queued job. Meant for cron or internal triggers."""
    worker_id = new_worker_id()
    try:
        out = await make_worker().run_once(worker_id)
    except Exception as e:
        logger.exception("Worker run failed worker_id=%s", worker_id)
        return JSONResponse(status_code=500, content={"error": str(e), "worker_id": worker_id})
    return out.model_dump(mode="json", exclude_none=True)
