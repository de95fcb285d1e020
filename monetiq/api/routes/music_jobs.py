from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from monetiq.api.deps import (
    WorkerFactory,
    get_current_user_id,
    get_music_jobs_repo,
    get_music_outputs_repo,
    get_queue_manager,
    get_quota_ledger,
    get_spawner,
    get_worker_factory,
)
from monetiq.domain.models import (
    JobCreatedOut,
    MusicJob,
    MusicJobCreateIn,
    MusicJobOut,
    MusicOutputOut,
    MusicOutputsOut,
    QuotaOut,
)
from monetiq.repos.music_jobs_repo import MusicJobsRepo
from monetiq.repos.music_outputs_repo import MusicOutputsRepo
from monetiq.services.music_queue import InsufficientQuotaError, QueueManager
from monetiq.services.quota_ledger import QuotaLedger
from monetiq.services.task_spawner import TaskSpawner
from monetiq.workers.music_worker import new_worker_id

logger = logging.getLogger("api.music_jobs")

router = APIRouter(prefix="/api/music", tags=["music-jobs"])


async def _kick_worker(make_worker: WorkerFactory) -> None:
    await make_worker().run_once(new_worker_id())


@router.post("/jobs", response_model=JobCreatedOut)
async def create_job(
    payload: MusicJobCreateIn,
    user_id: str = Depends(get_current_user_id),
    queue: QueueManager = Depends(get_queue_manager),
    make_worker: WorkerFactory = Depends(get_worker_factory),
    tasks: TaskSpawner = Depends(get_spawner),
):
    try:
        job = await queue.create_job(
            user_id,
            payload.audio_type,
            payload.duration_sec,
            preset=payload.preset,
            prompt=payload.prompt,
            text=payload.text,
            voice_id=payload.voice_id,
        )
    except InsufficientQuotaError:
        raise HTTPException(status_code=402, detail="insufficient_quota")

    # Kick a worker run; the response does not wait for it
    tasks.spawn(_kick_worker(make_worker), name=f"music-worker:{job.id}")

    return JobCreatedOut(job_id=job.id, status=job.status)


@router.get("/jobs/{job_id}", response_model=MusicJobOut)
async def get_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    jobs: MusicJobsRepo = Depends(get_music_jobs_repo),
):
    row = await jobs.get_for_user(job_id=str(job_id), user_id=user_id)
    if not row:
        raise HTTPException(status_code=404, detail="job_not_found")
    return MusicJobOut.model_validate(MusicJob.from_row(row).model_dump())


@router.get("/jobs/{job_id}/outputs", response_model=MusicOutputsOut)
async def get_job_outputs(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    jobs: MusicJobsRepo = Depends(get_music_jobs_repo),
    outputs: MusicOutputsRepo = Depends(get_music_outputs_repo),
):
    row = await jobs.get_for_user(job_id=str(job_id), user_id=user_id)
    if not row:
        raise HTTPException(status_code=404, detail="job_not_found")
    rows = await outputs.list_for_job(job_id=str(job_id))
    return MusicOutputsOut(outputs=[MusicOutputOut.model_validate(r) for r in rows])


@router.get("/quota", response_model=QuotaOut)
async def get_quota(
    user_id: str = Depends(get_current_user_id),
    ledger: QuotaLedger = Depends(get_quota_ledger),
):
    return await ledger.balance(user_id)
