from __future__ import annotations

from enum import Enum


class AudioType(str, Enum):
    instrumental = "instrumental"
    voice_standard = "voice_standard"
    voice_premium = "voice_premium"


class MusicJobStatus(str, Enum):
    queued = "queued"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


class QuotaField(str, Enum):
    seconds_standard = "seconds_standard"
    seconds_premium = "seconds_premium"


class LedgerAction(str, Enum):
    reserve = "reserve"
    refund = "refund"


class OutputKind(str, Enum):
    music = "music"
    voice = "voice"


class ProviderCallStatus(str, Enum):
    started = "started"
    succeeded = "succeeded"
    failed = "failed"


class StorageProvider(str, Enum):
    supabase = "supabase"
    r2 = "r2"
    azure = "azure"


class VariantStatus(str, Enum):
    queued = "queued"
    generating_shots = "generating_shots"
    shots_ready = "shots_ready"
    shots_partial = "shots_partial"
    generation_failed = "generation_failed"


class ShotType(str, Enum):
    hook = "hook"
    proof = "proof"
    variation = "variation"
    winner = "winner"


class SpatialRole(str, Enum):
    grounded_static = "grounded-static"
    supported_elevated = "supported-elevated"
    handled_transient = "handled-transient"
    folded_resting = "folded-resting"


class AdTemplate(str, Enum):
    scroll_stop = "scroll_stop"
    trust_ugc = "trust_ugc"
    problem_solution = "problem_solution"
    offer_promo = "offer_promo"


class ProductCategory(str, Enum):
    fashion = "fashion"
    electronics = "electronics"
    beauty = "beauty"
    home = "home"
    sports = "sports"
    food = "food"
    drinkware = "drinkware"
    toys = "toys"
    books = "books"
    health = "health"
    automotive = "automotive"
    jewelry = "jewelry"
    other = "other"


# premium voice burns premium seconds; music and standard voice share the standard pool
def quota_field_for(audio_type: AudioType | str) -> QuotaField:
    if AudioType(audio_type) == AudioType.voice_premium:
        return QuotaField.seconds_premium
    return QuotaField.seconds_standard


PROVIDER_TARGETS = {
    AudioType.instrumental: "stable_audio",
    AudioType.voice_premium: "elevenlabs",
    AudioType.voice_standard: "polly",
}
