from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from monetiq.domain.enums import PROVIDER_TARGETS, AudioType
from monetiq.domain.models import MusicJob
from monetiq.repos.music_jobs_repo import MusicJobsRepo
from monetiq.services.quota_ledger import QuotaLedger

logger = logging.getLogger("music_queue")

CREATION_FAILED_REASON = "job_creation_failed"


class InsufficientQuotaError(Exception):
    def __init__(self, audio_type: AudioType, seconds: int):
        super().__init__(f"insufficient quota for {seconds}s of {audio_type.value}")
        self.audio_type = audio_type
        self.seconds = seconds


class QueueManager:
    def __init__(self, jobs: MusicJobsRepo, ledger: QuotaLedger):
        self.jobs = jobs
        self.ledger = ledger

    async def create_job(
        self,
        user_id: str,
        audio_type: AudioType | str,
        duration_sec: int,
        preset: Optional[str] = None,
        prompt: Optional[str] = None,
        text: Optional[str] = None,
        voice_id: Optional[str] = None,
    ) -> MusicJob:
        audio_type = AudioType(audio_type)
        job_id = str(uuid4())

        if not await self.ledger.reserve(user_id, audio_type, duration_sec, job_id=job_id):
            raise InsufficientQuotaError(audio_type, duration_sec)

        try:
            row = await self.jobs.insert_job(
                job_id=job_id,
                user_id=user_id,
                audio_type=audio_type.value,
                duration_sec=duration_sec,
                provider_target=PROVIDER_TARGETS[audio_type],
                preset=preset,
                prompt=prompt,
                text=text,
                voice_id=voice_id,
            )
        except Exception:
            logger.exception("Job insert failed, refunding reservation job_id=%s", job_id)
            await self.ledger.refund(user_id, audio_type, duration_sec, CREATION_FAILED_REASON, job_id=job_id)
            raise

        logger.info(
            "music_job_queued",
            extra={"job_id": job_id, "user_id": user_id, "audio_type": audio_type.value, "duration_sec": duration_sec},
        )
        return MusicJob.from_row(row)
