from __future__ import annotations

from typing import Any, Dict, Optional

import asyncpg


class ProviderCallsRepo:
    """Append-only audit log of external provider calls."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert_call(
        self,
        *,
        job_id: Optional[str],
        provider: str,
        action: str,
        status: str,
        latency_ms: Optional[int] = None,
        request_meta: Optional[Dict[str, Any]] = None,
        response_meta: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        await self.pool.execute(
            """
            INSERT INTO provider_calls (job_id, provider, action, status, latency_ms,
                                        request_meta, response_meta, error_code, error_message)
            VALUES ($1::uuid, $2, $3, $4, $5, $6::jsonb, $7::jsonb, $8, $9)
            """,
            job_id,
            provider,
            action,
            status,
            latency_ms,
            request_meta or {},
            response_meta or {},
            error_code,
            error_message,
        )
