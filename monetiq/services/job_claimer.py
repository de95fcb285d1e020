from __future__ import annotations

import asyncio
import logging
from typing import Optional

from monetiq.config import settings
from monetiq.domain.models import MusicJob
from monetiq.repos.music_jobs_repo import MusicJobsRepo

logger = logging.getLogger("job_claimer")


class JobClaimer:
    """
    Optimistic claim over a small batch of queued candidates.

    Each candidate is attempted with a conditional UPDATE; losing a race just
    moves on to the next one. Whole batches lost to other workers are retried
    a bounded number of times after a short fixed delay.
    """

    def __init__(
        self,
        jobs: MusicJobsRepo,
        *,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay_secs: Optional[float] = None,
    ):
        self.jobs = jobs
        self.batch_size = int(batch_size if batch_size is not None else settings.CLAIM_BATCH_SIZE)
        self.max_retries = int(max_retries if max_retries is not None else settings.CLAIM_MAX_RETRIES)
        self.retry_delay_secs = float(
            retry_delay_secs if retry_delay_secs is not None else settings.CLAIM_RETRY_DELAY_SECS
        )

    async def claim(self, worker_id: str) -> Optional[MusicJob]:
        if not worker_id:
            raise ValueError("worker_id is required")

        for attempt in range(1, self.max_retries + 1):
            candidates = await self.jobs.list_queued_ids(limit=self.batch_size)
            if not candidates:
                return None

            for job_id in candidates:
                row = await self.jobs.claim(job_id=job_id, worker_id=worker_id)
                if row:
                    logger.info("job_claimed", extra={"job_id": job_id, "worker_id": worker_id, "attempt": attempt})
                    return MusicJob.from_row(row)

            logger.info(
                "All %s candidates taken by other workers worker_id=%s attempt=%s",
                len(candidates),
                worker_id,
                attempt,
            )
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay_secs)

        return None
