from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from monetiq.db import is_unique_violation
from monetiq.domain.enums import AudioType, OutputKind, ProviderCallStatus
from monetiq.domain.models import MusicJob
from monetiq.repos.music_outputs_repo import MusicOutputsRepo
from monetiq.services.asset_writer import AssetWriter
from monetiq.services.providers.base import AudioResult
from monetiq.services.providers.call_logger import ProviderCallLogger
from monetiq.services.providers.errors import error_code_of

logger = logging.getLogger("provider_dispatcher")


@dataclass(frozen=True)
class AdapterBinding:
    provider: str
    action: str  # "generate" | "tts"
    kind: OutputKind
    factory: Callable[[], Any]


@dataclass(frozen=True)
class DispatchResult:
    provider: str
    asset_id: str
    url: str


def _stable_audio() -> Any:
    from monetiq.services.providers.stable_audio_adapter import StableAudioAdapter

    return StableAudioAdapter()


def _elevenlabs() -> Any:
    from monetiq.services.providers.elevenlabs_adapter import ElevenLabsAdapter

    return ElevenLabsAdapter()


def _polly() -> Any:
    from monetiq.services.providers.polly_adapter import PollyAdapter

    return PollyAdapter()


DEFAULT_BINDINGS: Dict[AudioType, AdapterBinding] = {
    AudioType.instrumental: AdapterBinding("stable_audio", "generate", OutputKind.music, _stable_audio),
    AudioType.voice_premium: AdapterBinding("elevenlabs", "tts", OutputKind.voice, _elevenlabs),
    AudioType.voice_standard: AdapterBinding("polly", "tts", OutputKind.voice, _polly),
}


class ProviderDispatcher:
    def __init__(
        self,
        *,
        call_logger: ProviderCallLogger,
        writer: AssetWriter,
        outputs: MusicOutputsRepo,
        bindings: Optional[Mapping[AudioType, AdapterBinding]] = None,
    ):
        self.call_logger = call_logger
        self.writer = writer
        self.outputs = outputs
        self.bindings = dict(bindings or DEFAULT_BINDINGS)

    def binding_for(self, audio_type: AudioType | str) -> AdapterBinding:
        return self.bindings[AudioType(audio_type)]

    async def process(self, job: MusicJob) -> DispatchResult:
        binding = self.binding_for(job.audio_type)

        await self.call_logger.log(
            job_id=job.id,
            provider=binding.provider,
            action=binding.action,
            status=ProviderCallStatus.started,
            request_meta={
                "duration_sec": job.duration_sec,
                "preset": job.preset,
                "type": job.audio_type.value,
                "voice_id": job.voice_id,
                "text_length": len(job.text) if job.text else None,
            },
        )

        t0 = time.perf_counter()
        try:
            adapter = binding.factory()
            result = await self._call(adapter, binding, job)
        except Exception as e:
            await self.call_logger.log(
                job_id=job.id,
                provider=binding.provider,
                action=binding.action,
                status=ProviderCallStatus.failed,
                latency_ms=_elapsed_ms(t0),
                error_code=error_code_of(e),
                error_message=str(e),
            )
            raise

        await self.call_logger.log(
            job_id=job.id,
            provider=binding.provider,
            action=binding.action,
            status=ProviderCallStatus.succeeded,
            latency_ms=_elapsed_ms(t0),
            response_meta=result.meta(),
        )

        saved = await self.writer.save_audio(
            user_id=job.user_id,
            job_id=job.id,
            kind=binding.kind.value,
            provider=binding.provider,
            data=result.audio,
            url=result.audio_url,
            mime_type=result.mime_type,
            meta=result.meta(),
        )

        try:
            await self.outputs.insert_output(
                job_id=job.id,
                asset_id=saved.asset_id,
                kind=binding.kind.value,
                duration_sec=result.duration_sec,
                meta=result.meta(),
            )
        except Exception as e:
            if not is_unique_violation(e):
                raise
            logger.warning("Output already exists for job %s, keeping the first one", job.id)

        return DispatchResult(provider=binding.provider, asset_id=saved.asset_id, url=saved.public_url)

    async def _call(self, adapter: Any, binding: AdapterBinding, job: MusicJob) -> AudioResult:
        if binding.action == "generate":
            return await adapter.generate(duration_sec=job.duration_sec, prompt=job.prompt, preset=job.preset)
        return await adapter.tts(text=job.text or "", voice_id=job.voice_id)


def _elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)
