from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from monetiq.services.providers.errors import is_retryable

logger = logging.getLogger("providers")

# Speech runs at roughly 150 characters per second of audio.
CHARS_PER_SECOND = 150


@dataclass
class AudioResult:
    provider: str
    duration_sec: int
    format: str = "mp3"
    audio: Optional[bytes] = None
    audio_url: Optional[str] = None
    voice_id: Optional[str] = None
    provider_job_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def mime_type(self) -> str:
        return "audio/wav" if self.format == "wav" else "audio/mpeg"

    def meta(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "provider": self.provider,
            "duration_sec": self.duration_sec,
            "format": self.format,
        }
        if self.voice_id:
            out["voice_id"] = self.voice_id
        if self.provider_job_id:
            out["provider_job_id"] = self.provider_job_id
        if self.audio is not None:
            out["size_bytes"] = len(self.audio)
        out.update(self.extra)
        return out


class MusicAdapter(Protocol):
    provider_name: str

    async def generate(self, *, duration_sec: int, prompt: Optional[str] = None, preset: Optional[str] = None) -> AudioResult:
        ...


class VoiceAdapter(Protocol):
    provider_name: str

    async def tts(
        self,
        *,
        text: str,
        voice_id: Optional[str] = None,
        lang: Optional[str] = None,
        style: Optional[str] = None,
    ) -> AudioResult:
        ...


def estimate_speech_seconds(text: str) -> int:
    return max(1, math.ceil(len(text or "") / CHARS_PER_SECOND))


def provider_retrying(
    *,
    attempts: int,
    wait: wait_base,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> AsyncRetrying:
    """Bounded retry over retryable ProviderErrors; the last error is re-raised unchanged."""
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait,
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
