from __future__ import annotations

from typing import Any, Dict, List, Optional

import asyncpg


class AdPacksRepo:
    """ad_packs, ad_variants and the project lookup used by Ads Mode."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_pack(self, *, pack_id: str, user_id: str) -> Optional[dict]:
        row = await self.pool.fetchrow(
            """
            SELECT id::text AS id,
                   user_id::text AS user_id,
                   project_id::text AS project_id,
                   product_name,
                   category,
                   template_type,
                   product_image_asset_ids
            FROM ad_packs
            WHERE id=$1::uuid AND user_id=$2::uuid
            """,
            pack_id,
            user_id,
        )
        if not row:
            return None
        d = dict(row)
        d["product_image_asset_ids"] = [str(x) for x in (d.get("product_image_asset_ids") or [])]
        return d

    async def get_project(self, *, project_id: str) -> Optional[dict]:
        row = await self.pool.fetchrow(
            """
            SELECT id::text AS id, canonical_product_image_url
            FROM projects
            WHERE id=$1::uuid
            """,
            project_id,
        )
        return dict(row) if row else None

    async def list_open_variants(self, *, pack_id: str) -> List[dict]:
        rows = await self.pool.fetch(
            """
            SELECT id::text AS id, status, meta
            FROM ad_variants
            WHERE ad_pack_id=$1::uuid
              AND is_final=false
            ORDER BY created_at ASC
            """,
            pack_id,
        )
        return [dict(r) for r in rows]

    async def set_variant_status(self, *, variant_id: str, status: str) -> None:
        await self.pool.execute(
            "UPDATE ad_variants SET status=$2, updated_at=now() WHERE id=$1::uuid",
            variant_id,
            status,
        )

    async def merge_variant_meta(
        self,
        *,
        variant_id: str,
        patch: Dict[str, Any],
        status: Optional[str] = None,
    ) -> None:
        await self.pool.execute(
            """
            UPDATE ad_variants
               SET meta = coalesce(meta, '{}'::jsonb) || $2::jsonb,
                   status = coalesce($3, status),
                   updated_at = now()
             WHERE id=$1::uuid
            """,
            variant_id,
            patch,
            status,
        )

    async def get_variant_for_user(self, *, variant_id: str, user_id: str) -> Optional[dict]:
        row = await self.pool.fetchrow(
            """
            SELECT v.id::text AS id, v.status, v.meta
            FROM ad_variants v
            JOIN ad_packs p ON p.id = v.ad_pack_id
            WHERE v.id=$1::uuid AND p.user_id=$2::uuid
            """,
            variant_id,
            user_id,
        )
        return dict(row) if row else None
