from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError
from tenacity import wait_exponential
from tenacity.wait import wait_base

from monetiq.config import settings
from monetiq.services.providers.base import AudioResult, estimate_speech_seconds, provider_retrying
from monetiq.services.providers.errors import ErrorCode, ProviderError

logger = logging.getLogger("polly")

PROVIDER = "polly"
MAX_TEXT_CHARS = 3000


def _build_client() -> Any:
    cfg = Config(
        region_name=settings.AWS_REGION,
        connect_timeout=10,
        read_timeout=30,
        retries={"total_max_attempts": 1},
    )
    return boto3.client(
        "polly",
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        config=cfg,
    )


def _map_client_error(e: ClientError) -> ProviderError:
    code = e.response.get("Error", {}).get("Code") or ""
    msg = e.response.get("Error", {}).get("Message") or str(e)
    if code == "ThrottlingException":
        return ProviderError("Rate limit exceeded", ErrorCode.RATE_LIMITED, PROVIDER, True, e)
    if code == "InvalidParameterException":
        return ProviderError(msg, ErrorCode.INVALID_VOICE_ID, PROVIDER, False, e)
    if code == "TextLengthExceededException":
        return ProviderError(msg, ErrorCode.TEXT_TOO_LONG, PROVIDER, False, e)
    if code in ("AccessDeniedException", "UnrecognizedClientException", "InvalidSignatureException"):
        return ProviderError(msg, ErrorCode.AUTH_ERROR, PROVIDER, False, e)
    return ProviderError(f"Polly API error {code}: {msg}", ErrorCode.PROVIDER_ERROR, PROVIDER, False, e)


class PollyAdapter:
    """Standard voice (voice_standard). boto3 is sync, so calls run in a worker thread."""

    provider_name = PROVIDER

    def __init__(self, *, client: Any = None, wait: Optional[wait_base] = None) -> None:
        self.client = client if client is not None else _build_client()
        self.max_retries = 2
        # 1s then 2s between attempts
        self.wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=2)

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

        voice = voice_id or settings.POLLY_DEFAULT_VOICE
        language = lang or settings.POLLY_DEFAULT_LANG

        result: Optional[AudioResult] = None
        async for attempt in provider_retrying(attempts=self.max_retries + 1, wait=self.wait):
            with attempt:
                result = await asyncio.to_thread(self._synthesize_sync, text, voice, language)
        return result

    def _synthesize_sync(self, text: str, voice_id: str, lang: str) -> AudioResult:
        try:
            resp = self.client.synthesize_speech(
                Text=text,
                VoiceId=voice_id,
                OutputFormat="mp3",
                LanguageCode=lang,
            )
            stream = resp.get("AudioStream")
            if stream is None:
                raise ProviderError("No audio stream in response", ErrorCode.PROVIDER_ERROR, PROVIDER)
            audio = stream.read()
        except ClientError as e:
            raise _map_client_error(e) from e
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            raise ProviderError("Request timeout", ErrorCode.TIMEOUT, PROVIDER, True, e) from e
        except BotoCoreError as e:
            raise ProviderError(str(e) or "Polly network error", ErrorCode.NETWORK_ERROR, PROVIDER, True, e) from e

        return AudioResult(
            provider=PROVIDER,
            duration_sec=estimate_speech_seconds(text),
            format="mp3",
            audio=audio,
            voice_id=voice_id,
            provider_job_id=(resp.get("ResponseMetadata") or {}).get("RequestId"),
            extra={"lang": lang, "text_length": len(text)},
        )
