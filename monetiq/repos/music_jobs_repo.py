from __future__ import annotations

from typing import List, Optional

import asyncpg


class MusicJobsRepo:
    """
    music_jobs access.

    Ownership rule: after a job is claimed, every status update carries
    `worker_id = $n` in its WHERE clause. An update that matches no row means
    the job is no longer ours and the caller gets False back.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert_job(
        self,
        *,
        job_id: str,
        user_id: str,
        audio_type: str,
        duration_sec: int,
        provider_target: str,
        preset: Optional[str] = None,
        prompt: Optional[str] = None,
        text: Optional[str] = None,
        voice_id: Optional[str] = None,
    ) -> dict:
        row = await self.pool.fetchrow(
            """
            INSERT INTO music_jobs (id, user_id, status, audio_type, duration_sec,
                                    preset, prompt, text, voice_id, provider_target)
            VALUES ($1::uuid, $2::uuid, 'queued', $3, $4, $5, $6, $7, $8, $9)
            RETURNING *
            """,
            job_id,
            user_id,
            audio_type,
            int(duration_sec),
            preset,
            prompt,
            text,
            voice_id,
            provider_target,
        )
        return dict(row)

    async def list_queued_ids(self, *, limit: int = 5) -> List[str]:
        rows = await self.pool.fetch(
            """
            SELECT id::text
            FROM music_jobs
            WHERE status = 'queued'
            ORDER BY created_at ASC
            LIMIT $1
            """,
            max(1, int(limit)),
        )
        return [r["id"] for r in rows]

    async def claim(self, *, job_id: str, worker_id: str) -> Optional[dict]:
        # Conditional update: only one concurrent caller can flip queued -> running.
        row = await self.pool.fetchrow(
            """
            UPDATE music_jobs
               SET status='running',
                   worker_id=$2,
                   started_at=now(),
                   updated_at=now()
             WHERE id=$1::uuid
               AND status='queued'
            RETURNING *
            """,
            job_id,
            worker_id,
        )
        return dict(row) if row else None

    async def mark_succeeded(self, *, job_id: str, worker_id: str, provider_final: str) -> bool:
        row = await self.pool.fetchrow(
            """
            UPDATE music_jobs
               SET status='succeeded',
                   provider_final=$3,
                   completed_at=now(),
                   updated_at=now()
             WHERE id=$1::uuid
               AND worker_id=$2
               AND status='running'
            RETURNING id
            """,
            job_id,
            worker_id,
            provider_final,
        )
        return row is not None

    async def mark_failed(
        self,
        *,
        job_id: str,
        worker_id: str,
        error_code: str,
        error_message: str,
    ) -> bool:
        row = await self.pool.fetchrow(
            """
            UPDATE music_jobs
               SET status='failed',
                   error_code=$3,
                   error_message=$4,
                   completed_at=now(),
                   updated_at=now()
             WHERE id=$1::uuid
               AND worker_id=$2
               AND status='running'
            RETURNING id
            """,
            job_id,
            worker_id,
            error_code,
            (error_message or "")[:2000],
        )
        return row is not None

    async def get_for_user(self, *, job_id: str, user_id: str) -> Optional[dict]:
        row = await self.pool.fetchrow(
            "SELECT * FROM music_jobs WHERE id=$1::uuid AND user_id=$2::uuid",
            job_id,
            user_id,
        )
        return dict(row) if row else None

    async def fail_stale_running(self, *, older_than_secs: int, limit: int = 50) -> List[dict]:
        """Fail jobs stuck in 'running' past the provider wall clock. Returns the rows that flipped."""
        rows = await self.pool.fetch(
            """
            WITH stale AS (
              SELECT id
              FROM music_jobs
              WHERE status='running'
                AND started_at < now() - ($1::int * interval '1 second')
              ORDER BY started_at ASC
              FOR UPDATE SKIP LOCKED
              LIMIT $2
            )
            UPDATE music_jobs j
               SET status='failed',
                   error_code='WORKER_TIMEOUT',
                   error_message='job exceeded worker time limit',
                   completed_at=now(),
                   updated_at=now()
              FROM stale
             WHERE j.id = stale.id
               AND j.status='running'
            RETURNING j.*
            """,
            int(older_than_secs),
            int(limit),
        )
        return [dict(r) for r in rows]
