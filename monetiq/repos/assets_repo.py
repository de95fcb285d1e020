from __future__ import annotations

from typing import Any, Dict, List, Optional

import asyncpg


class AssetsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert_asset(
        self,
        *,
        user_id: str,
        kind: str,
        role: str,
        public_url: str,
        storage_key: str,
        storage_bucket: Optional[str],
        origin_provider: str,
        mime_type: Optional[str],
        meta: Optional[Dict[str, Any]] = None,
        status: str = "ready",
    ) -> str:
        row = await self.pool.fetchrow(
            """
            INSERT INTO assets (user_id, kind, role, status, public_url, storage_key,
                                storage_bucket, origin_provider, mime_type, meta)
            VALUES ($1::uuid, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb)
            RETURNING id::text
            """,
            user_id,
            kind,
            role,
            status,
            public_url,
            storage_key,
            storage_bucket,
            origin_provider,
            mime_type,
            meta or {},
        )
        return row["id"]

    async def upsert_shot_asset(
        self,
        *,
        user_id: str,
        variant_id: str,
        shot_type: str,
        public_url: str,
        storage_key: str,
        storage_bucket: Optional[str],
        origin_provider: str,
        mime_type: str,
        meta: Dict[str, Any],
    ) -> str:
        """One asset per (variant, shot type): a regenerated shot replaces the previous row."""
        payload = {**meta, "variant_id": variant_id, "shot_type": shot_type}
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchval(
                    """
                    SELECT id::text
                    FROM assets
                    WHERE user_id=$1::uuid
                      AND meta->>'variant_id' = $2
                      AND meta->>'shot_type' = $3
                    LIMIT 1
                    FOR UPDATE
                    """,
                    user_id,
                    variant_id,
                    shot_type,
                )
                if existing:
                    await conn.execute(
                        """
                        UPDATE assets
                           SET public_url=$2, storage_key=$3, storage_bucket=$4,
                               origin_provider=$5, mime_type=$6, meta=$7::jsonb,
                               status='ready', updated_at=now()
                         WHERE id=$1::uuid
                        """,
                        existing,
                        public_url,
                        storage_key,
                        storage_bucket,
                        origin_provider,
                        mime_type,
                        payload,
                    )
                    return existing

                return await conn.fetchval(
                    """
                    INSERT INTO assets (user_id, kind, role, status, public_url, storage_key,
                                        storage_bucket, origin_provider, mime_type, meta)
                    VALUES ($1::uuid, 'image', $2, 'ready', $3, $4, $5, $6, $7, $8::jsonb)
                    RETURNING id::text
                    """,
                    user_id,
                    f"shot_{shot_type}",
                    public_url,
                    storage_key,
                    storage_bucket,
                    origin_provider,
                    mime_type,
                    payload,
                )

    async def get_public_urls(self, *, asset_ids: List[str]) -> List[str]:
        """Public URLs for `asset_ids`, preserving the input order. Unknown ids are skipped."""
        if not asset_ids:
            return []
        rows = await self.pool.fetch(
            "SELECT id::text AS id, public_url FROM assets WHERE id = ANY($1::uuid[])",
            list(asset_ids),
        )
        by_id = {r["id"]: r["public_url"] for r in rows}
        return [by_id[a] for a in asset_ids if by_id.get(a)]
