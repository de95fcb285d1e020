from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import wait_fixed
from tenacity.wait import wait_base

from monetiq.config import settings
from monetiq.services.providers.base import AudioResult, provider_retrying
from monetiq.services.providers.errors import ErrorCode, ProviderError

logger = logging.getLogger("stable_audio")

PROVIDER = "stable_audio"
MAX_DURATION_SEC = 47
DEFAULT_PRESET = "Cinematic"

PRESET_PROMPTS = {
    "Cinematic": "Cinematic orchestral music, epic, dramatic, sweeping strings",
    "Epic": "Epic trailer music, powerful drums, heroic brass, intense",
    "Upbeat": "Upbeat energetic music, positive vibes, catchy melody",
    "Calm": "Calm ambient music, peaceful, relaxing, soft piano",
    "Dark": "Dark atmospheric music, mysterious, tension, deep bass",
}


def prompt_from_preset(preset: Optional[str]) -> str:
    return PRESET_PROMPTS.get(preset or DEFAULT_PRESET) or PRESET_PROMPTS[DEFAULT_PRESET]


class StableAudioAdapter:
    """Instrumental music (instrumental)."""

    provider_name = PROVIDER

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.STABILITY_API_KEY
        if not self.api_key:
            raise RuntimeError("STABILITY_API_KEY is not set.")
        self.url = settings.STABLE_AUDIO_URL
        self.timeout = 120.0
        self.max_retries = 1
        self.transport = transport
        self.wait = wait if wait is not None else wait_fixed(3)

    async def generate(
        self,
        *,
        duration_sec: int,
        prompt: Optional[str] = None,
        preset: Optional[str] = None,
    ) -> AudioResult:
        final_prompt = (prompt or "").strip() or prompt_from_preset(preset)
        if int(duration_sec) > MAX_DURATION_SEC:
            raise ProviderError(
                f"Duration too long (max {MAX_DURATION_SEC}s for Stable Audio)", ErrorCode.INVALID_INPUT, PROVIDER
            )

        result: Optional[AudioResult] = None
        async for attempt in provider_retrying(attempts=self.max_retries + 1, wait=self.wait):
            with attempt:
                result = await self._generate(final_prompt, int(duration_sec))
        if preset:
            result.extra["preset"] = preset
        return result

    async def _generate(self, prompt: str, duration_sec: int) -> AudioResult:
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "audio/*"}
        # The v2beta audio endpoints take multipart form fields.
        form = {"prompt": prompt, "duration": str(duration_sec), "output_format": "mp3"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(self.url, headers=headers, data=form, files={"none": ("", b"")})
        except httpx.TimeoutException as e:
            raise ProviderError("Request timeout", ErrorCode.TIMEOUT, PROVIDER, True, e) from e
        except httpx.HTTPError as e:
            raise ProviderError(str(e) or "Stable Audio network error", ErrorCode.NETWORK_ERROR, PROVIDER, True, e) from e

        if r.status_code == 429:
            raise ProviderError("Stable Audio rate limit exceeded", ErrorCode.RATE_LIMITED, PROVIDER, True)
        if r.status_code == 401:
            raise ProviderError("Invalid API key", ErrorCode.AUTH_ERROR, PROVIDER, False)
        if r.status_code >= 400:
            raise ProviderError(f"Stable Audio API error {r.status_code}: {r.text[:500]}", ErrorCode.PROVIDER_ERROR, PROVIDER)

        return AudioResult(
            provider=PROVIDER,
            duration_sec=duration_sec,
            format="mp3",
            audio=r.content,
            provider_job_id=r.headers.get("x-request-id"),
        )
