from __future__ import annotations

from typing import Any, Dict, Optional

import asyncpg

from monetiq.domain.enums import QuotaField


def _column(field: QuotaField | str) -> str:
    # Column names cannot be bound as parameters; only enum members reach the SQL text.
    return QuotaField(field).value


class UsageCreditsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_balance(self, *, user_id: str) -> Optional[dict]:
        row = await self.pool.fetchrow(
            """
            SELECT seconds_standard, seconds_premium
            FROM usage_credits
            WHERE user_id=$1::uuid
            """,
            user_id,
        )
        return dict(row) if row else None

    async def try_debit(
        self,
        *,
        user_id: str,
        field: QuotaField,
        amount: int,
        entry: Dict[str, Any],
    ) -> Optional[int]:
        """
        Atomically decrement `field` by `amount` and append `entry` to the ledger,
        only if the balance covers it. Returns the new balance, or None if rejected.
        """
        col = _column(field)
        value = await self.pool.fetchval(
            f"""
            UPDATE usage_credits
               SET {col} = {col} - $2,
                   ledger = coalesce(ledger, '[]'::jsonb) || jsonb_build_array($3::jsonb),
                   updated_at = now()
             WHERE user_id=$1::uuid
               AND {col} >= $2
            RETURNING {col}
            """,
            user_id,
            int(amount),
            entry,
        )
        return int(value) if value is not None else None

    async def credit(
        self,
        *,
        user_id: str,
        field: QuotaField,
        amount: int,
        entry: Dict[str, Any],
    ) -> Optional[int]:
        """Unconditional increment plus ledger append. None when the user has no credits row."""
        col = _column(field)
        value = await self.pool.fetchval(
            f"""
            UPDATE usage_credits
               SET {col} = {col} + $2,
                   ledger = coalesce(ledger, '[]'::jsonb) || jsonb_build_array($3::jsonb),
                   updated_at = now()
             WHERE user_id=$1::uuid
            RETURNING {col}
            """,
            user_id,
            int(amount),
            entry,
        )
        return int(value) if value is not None else None
