from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional
from uuid import uuid4

import asyncpg

from monetiq.config import settings
from monetiq.db import close_pool, get_pool
from monetiq.domain.enums import MusicJobStatus
from monetiq.domain.models import WorkerRunOut
from monetiq.logging import configure_logging
from monetiq.repos.assets_repo import AssetsRepo
from monetiq.repos.music_jobs_repo import MusicJobsRepo
from monetiq.repos.music_outputs_repo import MusicOutputsRepo
from monetiq.repos.provider_calls_repo import ProviderCallsRepo
from monetiq.repos.usage_credits_repo import UsageCreditsRepo
from monetiq.services.asset_writer import AssetWriter
from monetiq.services.job_claimer import JobClaimer
from monetiq.services.provider_dispatcher import ProviderDispatcher
from monetiq.services.providers.call_logger import ProviderCallLogger
from monetiq.services.providers.errors import error_code_of
from monetiq.services.quota_ledger import QuotaLedger
from monetiq.services.storage.media_store import build_media_store

logger = logging.getLogger("music_worker")

NO_JOBS_MESSAGE = "No jobs in queue"
FAILED_REFUND_REASON = "job_failed"
STALE_REFUND_REASON = "job_stale"


def new_worker_id() -> str:
    return str(uuid4())


class MusicWorker:
    def __init__(
        self,
        *,
        jobs: MusicJobsRepo,
        claimer: JobClaimer,
        dispatcher: ProviderDispatcher,
        ledger: QuotaLedger,
    ):
        self.jobs = jobs
        self.claimer = claimer
        self.dispatcher = dispatcher
        self.ledger = ledger

        self.poll_secs = float(settings.WORKER_POLL_SECS)
        self.stale_after_secs = int(settings.WORKER_STALE_AFTER_SECS)
        self.sweep_every_secs = float(settings.WORKER_SWEEP_EVERY_SECS)

    @classmethod
    def from_pool(cls, pool: asyncpg.Pool) -> "MusicWorker":
        jobs = MusicJobsRepo(pool)
        return cls(
            jobs=jobs,
            claimer=JobClaimer(jobs),
            dispatcher=ProviderDispatcher(
                call_logger=ProviderCallLogger(ProviderCallsRepo(pool)),
                writer=AssetWriter(build_media_store(), AssetsRepo(pool)),
                outputs=MusicOutputsRepo(pool),
            ),
            ledger=QuotaLedger(UsageCreditsRepo(pool)),
        )

    async def run_once(self, worker_id: str) -> WorkerRunOut:
        """Claim at most one job and drive it to a terminal state."""
        job = await self.claimer.claim(worker_id)
        if job is None:
            return WorkerRunOut(worker_id=worker_id, message=NO_JOBS_MESSAGE)

        logger.info("Processing music job %s worker_id=%s", job.id, worker_id)
        try:
            result = await self.dispatcher.process(job)
        except Exception as e:
            logger.exception("Music job failed %s", job.id)
            code = error_code_of(e)
            owned = await self.jobs.mark_failed(
                job_id=job.id,
                worker_id=worker_id,
                error_code=code,
                error_message=str(e),
            )
            if owned:
                await self.ledger.refund(
                    job.user_id, job.audio_type, job.duration_sec, FAILED_REFUND_REASON, job_id=job.id
                )
            else:
                logger.warning("Job %s no longer owned by %s, skipping refund", job.id, worker_id)
            return WorkerRunOut(
                worker_id=worker_id,
                job_id=job.id,
                status=MusicJobStatus.failed,
                error=str(e),
            )

        owned = await self.jobs.mark_succeeded(job_id=job.id, worker_id=worker_id, provider_final=result.provider)
        if not owned:
            logger.warning("Job %s finished but ownership was lost (worker_id=%s)", job.id, worker_id)
            return WorkerRunOut(
                worker_id=worker_id,
                job_id=job.id,
                status=MusicJobStatus.failed,
                asset_id=result.asset_id,
                error="ownership_lost",
            )

        logger.info("Music job finished %s provider=%s", job.id, result.provider)
        return WorkerRunOut(
            worker_id=worker_id,
            job_id=job.id,
            status=MusicJobStatus.succeeded,
            asset_id=result.asset_id,
        )

    async def sweep_stale(self) -> int:
        """Fail and refund jobs stuck in 'running'. Returns how many were swept."""
        rows = await self.jobs.fail_stale_running(older_than_secs=self.stale_after_secs)
        for row in rows:
            logger.warning("Stale music job failed %s worker_id=%s", row["id"], row.get("worker_id"))
            await self.ledger.refund(
                str(row["user_id"]),
                row["audio_type"],
                int(row["duration_sec"]),
                STALE_REFUND_REASON,
                job_id=str(row["id"]),
            )
        return len(rows)

    async def run_forever(self) -> None:
        logger.info("MusicWorker started poll_secs=%s stale_after_secs=%s", self.poll_secs, self.stale_after_secs)
        last_sweep: Optional[float] = None

        while True:
            try:
                now = time.monotonic()
                if last_sweep is None or now - last_sweep >= self.sweep_every_secs:
                    last_sweep = now
                    swept = await self.sweep_stale()
                    if swept:
                        logger.info("Swept %s stale jobs", swept)

                out = await self.run_once(new_worker_id())
                if out.job_id is None:
                    await asyncio.sleep(self.poll_secs)
            except Exception:
                logger.exception("Worker loop error")
                await asyncio.sleep(self.poll_secs)


async def main() -> None:
    configure_logging()
    pool = await get_pool()
    try:
        await MusicWorker.from_pool(pool).run_forever()
    finally:
        await close_pool()


if __name__ == "__main__":
    asyncio.run(main())
