from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from monetiq.domain.enums import AudioType, MusicJobStatus
from monetiq.services.job_claimer import JobClaimer
from monetiq.services.provider_dispatcher import DispatchResult
from monetiq.services.providers.errors import ErrorCode, ProviderError
from monetiq.workers.music_worker import FAILED_REFUND_REASON, NO_JOBS_MESSAGE, STALE_REFUND_REASON, MusicWorker


class StubDispatcher:
    def __init__(self, error=None, on_process=None):
        self.error = error
        self.on_process = on_process
        self.processed = []

    async def process(self, job):
        self.processed.append(job.id)
        if self.on_process:
            self.on_process(job)
        if self.error:
            raise self.error
        return DispatchResult(provider="stable_audio", asset_id="asset-1", url="https://cdn.test/a.mp3")


@pytest.fixture
def reserved_job(jobs_repo, credits_repo, ledger, user_id):
    """A queued 15s premium voice job whose seconds were already reserved."""

    async def _make():
        row = jobs_repo.add(user_id=user_id, audio_type="voice_premium", duration_sec=15, text="hello")
        assert await ledger.reserve(user_id, AudioType.voice_premium, 15, job_id=row["id"])
        return row

    return _make


def _worker(jobs_repo, ledger, dispatcher):
    return MusicWorker(
        jobs=jobs_repo,
        claimer=JobClaimer(jobs_repo, retry_delay_secs=0),
        dispatcher=dispatcher,
        ledger=ledger,
    )


@pytest.mark.asyncio
async def test_empty_queue_message(jobs_repo, ledger):
    out = await _worker(jobs_repo, ledger, StubDispatcher()).run_once("worker-a")

    assert out.message == NO_JOBS_MESSAGE
    assert out.worker_id == "worker-a"
    assert out.job_id is None


@pytest.mark.asyncio
async def test_success_marks_job_succeeded(jobs_repo, ledger, reserved_job):
    row = await reserved_job()

    out = await _worker(jobs_repo, ledger, StubDispatcher()).run_once("worker-a")

    assert out.status == MusicJobStatus.succeeded
    assert out.asset_id == "asset-1"
    assert jobs_repo.rows[row["id"]]["status"] == "succeeded"
    assert jobs_repo.rows[row["id"]]["provider_final"] == "stable_audio"


@pytest.mark.asyncio
async def test_rate_limited_fails_and_refunds(jobs_repo, ledger, credits_repo, user_id, reserved_job):
    row = await reserved_job()
    dispatcher = StubDispatcher(error=ProviderError("throttled", ErrorCode.RATE_LIMITED, "elevenlabs"))

    out = await _worker(jobs_repo, ledger, dispatcher).run_once("worker-a")

    assert out.status == MusicJobStatus.failed
    assert out.error == "throttled"
    stored = jobs_repo.rows[row["id"]]
    assert stored["status"] == "failed"
    assert stored["error_code"] == "RATE_LIMITED"
    refund = credits_repo.ledger(user_id)[-1]
    assert refund["action"] == "refund"
    assert refund["reason"] == FAILED_REFUND_REASON
    assert refund["job_id"] == row["id"]
    assert credits_repo.rows[user_id]["seconds_premium"] == 30


@pytest.mark.asyncio
async def test_no_refund_when_ownership_lost(jobs_repo, ledger, credits_repo, user_id, reserved_job):
    row = await reserved_job()

    def steal(job):
        jobs_repo.rows[job.id]["worker_id"] = "someone-else"

    dispatcher = StubDispatcher(error=RuntimeError("boom"), on_process=steal)
    out = await _worker(jobs_repo, ledger, dispatcher).run_once("worker-a")

    assert out.status == MusicJobStatus.failed
    assert jobs_repo.rows[row["id"]]["status"] == "running"
    assert [e["action"] for e in credits_repo.ledger(user_id)] == ["reserve"]


@pytest.mark.asyncio
async def test_success_after_ownership_lost_is_reported(jobs_repo, ledger, reserved_job):
    row = await reserved_job()

    def steal(job):
        jobs_repo.rows[job.id]["worker_id"] = "someone-else"

    out = await _worker(jobs_repo, ledger, StubDispatcher(on_process=steal)).run_once("worker-a")

    assert out.error == "ownership_lost"
    assert jobs_repo.rows[row["id"]]["status"] == "running"


@pytest.mark.asyncio
async def test_sweep_stale_fails_and_refunds(jobs_repo, ledger, credits_repo, user_id, reserved_job):
    row = await reserved_job()
    jobs_repo.rows[row["id"]].update(
        status="running",
        worker_id="dead-worker",
        started_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    worker = _worker(jobs_repo, ledger, StubDispatcher())

    swept = await worker.sweep_stale()

    assert swept == 1
    assert jobs_repo.rows[row["id"]]["error_code"] == "WORKER_TIMEOUT"
    assert credits_repo.ledger(user_id)[-1]["reason"] == STALE_REFUND_REASON
    assert credits_repo.rows[user_id]["seconds_premium"] == 30
