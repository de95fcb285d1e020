from __future__ import annotations

import logging
from typing import Optional

from monetiq.domain.enums import AudioType, LedgerAction, quota_field_for
from monetiq.domain.models import LedgerEntry, QuotaOut
from monetiq.repos.usage_credits_repo import UsageCreditsRepo

logger = logging.getLogger("quota_ledger")

RESERVE_REASON = "job_creation"


class QuotaLedger:
    """
    Per-user seconds quota with an append-only audit ledger.

    Every counter change is written together with its ledger entry in one
    UPDATE, so counter == initial + sum(ledger amounts) for each field.
    """

    def __init__(self, credits: UsageCreditsRepo):
        self.credits = credits

    async def reserve(
        self,
        user_id: str,
        audio_type: AudioType | str,
        seconds: int,
        job_id: Optional[str] = None,
    ) -> bool:
        seconds = _positive(seconds)
        field = quota_field_for(audio_type)
        entry = LedgerEntry(
            action=LedgerAction.reserve,
            amount=-seconds,
            field=field,
            job_id=job_id,
            reason=RESERVE_REASON,
        )

        remaining = await self.credits.try_debit(
            user_id=user_id,
            field=field,
            amount=seconds,
            entry=entry.model_dump(mode="json"),
        )
        if remaining is None:
            logger.info(
                "quota_reserve_rejected",
                extra={"user_id": user_id, "field": field.value, "seconds": seconds},
            )
            return False

        logger.info(
            "quota_reserved",
            extra={"user_id": user_id, "field": field.value, "seconds": seconds, "remaining": remaining, "job_id": job_id},
        )
        return True

    async def refund(
        self,
        user_id: str,
        audio_type: AudioType | str,
        seconds: int,
        reason: str,
        job_id: Optional[str] = None,
    ) -> None:
        seconds = _positive(seconds)
        field = quota_field_for(audio_type)
        entry = LedgerEntry(
            action=LedgerAction.refund,
            amount=seconds,
            field=field,
            job_id=job_id,
            reason=reason,
        )

        balance = await self.credits.credit(
            user_id=user_id,
            field=field,
            amount=seconds,
            entry=entry.model_dump(mode="json"),
        )
        if balance is None:
            logger.warning("Refund skipped, no usage_credits row user_id=%s job_id=%s", user_id, job_id)
            return

        logger.info(
            "quota_refunded",
            extra={"user_id": user_id, "field": field.value, "seconds": seconds, "reason": reason, "job_id": job_id},
        )

    async def balance(self, user_id: str) -> QuotaOut:
        row = await self.credits.get_balance(user_id=user_id)
        if not row:
            return QuotaOut()
        return QuotaOut(
            seconds_standard=int(row.get("seconds_standard") or 0),
            seconds_premium=int(row.get("seconds_premium") or 0),
        )


def _positive(seconds: int) -> int:
    n = int(seconds)
    if n <= 0:
        raise ValueError(f"seconds must be positive, got {seconds!r}")
    return n
