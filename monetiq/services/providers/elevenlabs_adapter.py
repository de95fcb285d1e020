from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import wait_fixed
from tenacity.wait import wait_base

from monetiq.config import settings
from monetiq.services.providers.base import AudioResult, estimate_speech_seconds, provider_retrying
from monetiq.services.providers.errors import ErrorCode, ProviderError, is_retryable

logger = logging.getLogger("elevenlabs")

PROVIDER = "elevenlabs"
MAX_TEXT_CHARS = 5000


def _should_retry(exc: BaseException) -> bool:
    # A 429 on the premium provider is surfaced immediately instead of retried.
    if isinstance(exc, ProviderError) and exc.code == ErrorCode.RATE_LIMITED:
        return False
    return is_retryable(exc)


class ElevenLabsAdapter:
    """Premium voice (voice_premium)."""

    provider_name = PROVIDER

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.ELEVENLABS_API_KEY
        if not self.api_key:
            raise RuntimeError("ELEVENLABS_API_KEY is not set.")
        self.base = settings.ELEVENLABS_BASE_URL.rstrip("/")
        self.timeout = 60.0
        self.max_retries = 1
        self.transport = transport
        self.wait = wait if wait is not None else wait_fixed(2)

    async def tts(
        self,
        *,
        text: str,
        voice_id: Optional[str] = None,
        lang: Optional[str] = None,
        style: Optional[str] = None,
    ) -> AudioResult:
        if not text:
            raise ProviderError("Text is required", ErrorCode.INVALID_INPUT, PROVIDER)
        if len(text) > MAX_TEXT_CHARS:
            raise ProviderError(f"Text too long (max {MAX_TEXT_CHARS} chars)", ErrorCode.TEXT_TOO_LONG, PROVIDER)

        voice = voice_id or settings.ELEVENLABS_DEFAULT_VOICE
        result: Optional[AudioResult] = None
        async for attempt in provider_retrying(
            attempts=self.max_retries + 1, wait=self.wait, should_retry=_should_retry
        ):
            with attempt:
                result = await self._synthesize(text, voice, style)
        return result

    async def _synthesize(self, text: str, voice_id: str, style: Optional[str]) -> AudioResult:
        url = f"{self.base}/text-to-speech/{voice_id}"
        payload = {
            "text": text,
            "model_id": settings.ELEVENLABS_MODEL_ID,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
                "style": _style_value(style),
            },
        }
        headers = {"xi-api-key": self.api_key, "Content-Type": "application/json", "Accept": "audio/mpeg"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError("Request timeout", ErrorCode.TIMEOUT, PROVIDER, True, e) from e
        except httpx.HTTPError as e:
            raise ProviderError(str(e) or "ElevenLabs network error", ErrorCode.NETWORK_ERROR, PROVIDER, True, e) from e

        if r.status_code == 429:
            raise ProviderError("ElevenLabs rate limit exceeded", ErrorCode.RATE_LIMITED, PROVIDER, False)
        if r.status_code == 401:
            raise ProviderError("Invalid API key", ErrorCode.AUTH_ERROR, PROVIDER, False)
        if r.status_code == 402:
            raise ProviderError("ElevenLabs quota exceeded", ErrorCode.QUOTA_EXCEEDED, PROVIDER, False)
        if r.status_code >= 400:
            raise ProviderError(f"ElevenLabs API error {r.status_code}: {r.text[:500]}", ErrorCode.PROVIDER_ERROR, PROVIDER)

        return AudioResult(
            provider=PROVIDER,
            duration_sec=estimate_speech_seconds(text),
            format="mp3",
            audio=r.content,
            voice_id=voice_id,
            provider_job_id=r.headers.get("request-id"),
            extra={"text_length": len(text)},
        )


def _style_value(style: Optional[str]) -> float:
    try:
        return float(style) if style else 0.0
    except ValueError:
        return 0.0
