from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from monetiq.domain.enums import ProviderCallStatus
from monetiq.repos.provider_calls_repo import ProviderCallsRepo

logger = logging.getLogger("provider_calls")

# Only these keys are ever persisted; anything else (keys, prompts, raw payloads) is dropped.
ALLOWED_META_KEYS = (
    "duration_sec",
    "preset",
    "type",
    "voice_id",
    "lang",
    "style",
    "provider_job_id",
    "size_bytes",
    "format",
    "text_length",
)


def sanitize_meta(meta: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    src = meta or {}
    return {k: src[k] for k in ALLOWED_META_KEYS if src.get(k) is not None}


class ProviderCallLogger:
    def __init__(self, calls: ProviderCallsRepo):
        self.calls = calls

    async def log(
        self,
        *,
        job_id: Optional[str],
        provider: str,
        action: str,
        status: ProviderCallStatus,
        latency_ms: Optional[int] = None,
        request_meta: Optional[Dict[str, Any]] = None,
        response_meta: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Never raises: a broken audit write must not fail the job."""
        try:
            await self.calls.insert_call(
                job_id=job_id,
                provider=provider,
                action=action,
                status=ProviderCallStatus(status).value,
                latency_ms=latency_ms,
                request_meta=sanitize_meta(request_meta),
                response_meta=sanitize_meta(response_meta),
                error_code=error_code,
                error_message=(error_message or None) and error_message[:2000],
            )
        except Exception:
            logger.exception("provider_call_log_failed provider=%s action=%s job_id=%s", provider, action, job_id)
            return

        logger.info("%s.%s -> %s", provider, action, ProviderCallStatus(status).value, extra={"job_id": job_id})
