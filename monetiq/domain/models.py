from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from monetiq.domain.enums import (
    AudioType,
    LedgerAction,
    MusicJobStatus,
    QuotaField,
    VariantStatus,
)

ALLOWED_DURATIONS = (6, 15, 30)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Music jobs
# ---------------------------------------------------------------------------


class MusicJob(BaseModel):
    """A row of music_jobs."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    status: MusicJobStatus
    audio_type: AudioType
    duration_sec: int
    preset: Optional[str] = None
    prompt: Optional[str] = None
    text: Optional[str] = None
    voice_id: Optional[str] = None
    provider_target: Optional[str] = None
    provider_final: Optional[str] = None
    worker_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> "MusicJob":
        d = dict(row)
        d["id"] = str(d["id"])
        d["user_id"] = str(d["user_id"])
        return cls.model_validate(d)


class MusicJobCreateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_type: AudioType = Field(alias="audioType")
    duration_sec: int = Field(alias="durationSec")
    preset: Optional[str] = Field(default=None, max_length=64)
    prompt: Optional[str] = Field(default=None, max_length=2000)
    text: Optional[str] = Field(default=None, max_length=5000)
    voice_id: Optional[str] = Field(default=None, alias="voiceId", max_length=128)

    @model_validator(mode="after")
    def _check_combination(self) -> "MusicJobCreateIn":
        if self.duration_sec not in ALLOWED_DURATIONS:
            raise ValueError(f"duration_sec must be one of {ALLOWED_DURATIONS}")
        if self.audio_type != AudioType.instrumental and not (self.text or "").strip():
            raise ValueError("text is required for voice types")
        return self


class JobCreatedOut(BaseModel):
    job_id: str
    status: MusicJobStatus


class MusicJobOut(BaseModel):
    id: str
    status: MusicJobStatus
    audio_type: AudioType
    duration_sec: int
    preset: Optional[str] = None
    text: Optional[str] = None
    provider_target: Optional[str] = None
    provider_final: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class MusicOutputOut(BaseModel):
    id: str
    kind: str
    duration_sec: Optional[int] = None
    asset_id: Optional[str] = None
    public_url: Optional[str] = None
    mime_type: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class MusicOutputsOut(BaseModel):
    outputs: List[MusicOutputOut] = Field(default_factory=list)


class WorkerRunOut(BaseModel):
    worker_id: str
    message: Optional[str] = None
    job_id: Optional[str] = None
    status: Optional[MusicJobStatus] = None
    asset_id: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


class LedgerEntry(BaseModel):
    action: LedgerAction
    amount: int
    field: QuotaField
    job_id: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())
    reason: str


class QuotaOut(BaseModel):
    seconds_standard: int = 0
    seconds_premium: int = 0


# ---------------------------------------------------------------------------
# Ads Mode
# ---------------------------------------------------------------------------


class GenerateShotsIn(BaseModel):
    ad_pack_id: UUID


class GenerateShotsOut(BaseModel):
    ok: bool
    message: str
    variant_count: int


class VariantStatusOut(BaseModel):
    variant_id: str
    status: VariantStatus
    meta: Dict[str, Any] = Field(default_factory=dict)
