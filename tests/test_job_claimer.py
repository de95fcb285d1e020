from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from monetiq.domain.enums import MusicJobStatus
from monetiq.services.job_claimer import JobClaimer


@pytest.fixture
def claimer(jobs_repo):
    return JobClaimer(jobs_repo, batch_size=5, max_retries=3, retry_delay_secs=0)


@pytest.mark.asyncio
async def test_empty_queue_returns_none(claimer):
    assert await claimer.claim("worker-a") is None


@pytest.mark.asyncio
async def test_worker_id_is_required(claimer):
    with pytest.raises(ValueError):
        await claimer.claim("")


@pytest.mark.asyncio
async def test_claims_oldest_first(claimer, jobs_repo):
    now = datetime.now(timezone.utc)
    newer = jobs_repo.add(created_at=now)
    older = jobs_repo.add(created_at=now - timedelta(minutes=5))

    job = await claimer.claim("worker-a")

    assert job.id == older["id"]
    assert job.status == MusicJobStatus.running
    assert job.worker_id == "worker-a"
    assert jobs_repo.rows[newer["id"]]["status"] == "queued"


@pytest.mark.asyncio
async def test_two_workers_one_job(jobs_repo):
    job = jobs_repo.add()
    a = JobClaimer(jobs_repo, retry_delay_secs=0)
    b = JobClaimer(jobs_repo, retry_delay_secs=0)

    results = await asyncio.gather(a.claim("worker-a"), b.claim("worker-b"))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0].id == job["id"]
    assert jobs_repo.rows[job["id"]]["worker_id"] == winners[0].worker_id


@pytest.mark.asyncio
async def test_many_workers_never_double_claim(jobs_repo):
    for _ in range(3):
        jobs_repo.add()
    claimers = [JobClaimer(jobs_repo, retry_delay_secs=0) for _ in range(8)]

    results = await asyncio.gather(*(c.claim(f"worker-{i}") for i, c in enumerate(claimers)))

    claimed = [r.id for r in results if r is not None]
    assert len(claimed) == 3
    assert len(set(claimed)) == 3


class _AlwaysLosingRepo:
    """Candidates are listed but every claim loses the race."""

    def __init__(self):
        self.list_calls = 0

    async def list_queued_ids(self, *, limit=5):
        self.list_calls += 1
        return ["a", "b"]

    async def claim(self, *, job_id, worker_id):
        return None


@pytest.mark.asyncio
async def test_gives_up_after_bounded_batches():
    repo = _AlwaysLosingRepo()
    claimer = JobClaimer(repo, max_retries=3, retry_delay_secs=0)

    assert await claimer.claim("worker-a") is None
    assert repo.list_calls == 3
