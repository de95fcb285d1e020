from __future__ import annotations

from typing import Any, Dict, List, Optional

import asyncpg


class MusicOutputsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert_output(
        self,
        *,
        job_id: str,
        asset_id: str,
        kind: str,
        duration_sec: Optional[int],
        meta: Optional[Dict[str, Any]] = None,
    ) -> str:
        # music_outputs.job_id is UNIQUE; a second insert raises UniqueViolationError.
        row = await self.pool.fetchrow(
            """
            INSERT INTO music_outputs (job_id, asset_id, kind, duration_sec, meta)
            VALUES ($1::uuid, $2::uuid, $3, $4, $5::jsonb)
            RETURNING id::text
            """,
            job_id,
            asset_id,
            kind,
            duration_sec,
            meta or {},
        )
        return row["id"]

    async def list_for_job(self, *, job_id: str) -> List[dict]:
        rows = await self.pool.fetch(
            """
            SELECT o.id::text AS id,
                   o.kind,
                   o.duration_sec,
                   o.asset_id::text AS asset_id,
                   o.meta,
                   o.created_at,
                   a.public_url,
                   a.mime_type
            FROM music_outputs o
            LEFT JOIN assets a ON a.id = o.asset_id
            WHERE o.job_id=$1::uuid
            ORDER BY o.created_at ASC
            """,
            job_id,
        )
        return [dict(r) for r in rows]
