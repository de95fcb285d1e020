"""In-memory stand-ins for the asyncpg repositories and storage backends."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from monetiq.domain.enums import QuotaField
from monetiq.services.ads.image_client import GeneratedImage, ImageGenerationError
from monetiq.services.storage.base import StoredObject


class FakeUniqueViolation(Exception):
    sqlstate = "23505"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeMusicJobsRepo:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fail_insert: Optional[Exception] = None

    def add(self, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": str(uuid4()),
            "user_id": str(uuid4()),
            "status": "queued",
            "audio_type": "instrumental",
            "duration_sec": 15,
            "preset": None,
            "prompt": None,
            "text": None,
            "voice_id": None,
            "provider_target": None,
            "provider_final": None,
            "worker_id": None,
            "error_code": None,
            "error_message": None,
            "created_at": _now(),
            "started_at": None,
            "completed_at": None,
        }
        row.update(fields)
        self.rows[row["id"]] = row
        return row

    async def insert_job(self, *, job_id: str, user_id: str, audio_type: str, duration_sec: int,
                         provider_target: str, preset=None, prompt=None, text=None, voice_id=None) -> dict:
        if self.fail_insert is not None:
            raise self.fail_insert
        return dict(
            self.add(
                id=job_id,
                user_id=user_id,
                audio_type=audio_type,
                duration_sec=duration_sec,
                provider_target=provider_target,
                preset=preset,
                prompt=prompt,
                text=text,
                voice_id=voice_id,
            )
        )

    async def list_queued_ids(self, *, limit: int = 5) -> List[str]:
        await asyncio.sleep(0)
        queued = sorted((r for r in self.rows.values() if r["status"] == "queued"), key=lambda r: r["created_at"])
        return [r["id"] for r in queued[:limit]]

    async def claim(self, *, job_id: str, worker_id: str) -> Optional[dict]:
        # check-and-set with no await in between, like the conditional UPDATE
        row = self.rows.get(job_id)
        if not row or row["status"] != "queued":
            return None
        row.update(status="running", worker_id=worker_id, started_at=_now())
        return dict(row)

    async def mark_succeeded(self, *, job_id: str, worker_id: str, provider_final: str) -> bool:
        row = self.rows.get(job_id)
        if not row or row["status"] != "running" or row["worker_id"] != worker_id:
            return False
        row.update(status="succeeded", provider_final=provider_final, completed_at=_now())
        return True

    async def mark_failed(self, *, job_id: str, worker_id: str, error_code: str, error_message: str) -> bool:
        row = self.rows.get(job_id)
        if not row or row["status"] != "running" or row["worker_id"] != worker_id:
            return False
        row.update(status="failed", error_code=error_code, error_message=error_message, completed_at=_now())
        return True

    async def get_for_user(self, *, job_id: str, user_id: str) -> Optional[dict]:
        row = self.rows.get(job_id)
        if not row or row["user_id"] != user_id:
            return None
        return dict(row)

    async def fail_stale_running(self, *, older_than_secs: int, limit: int = 50) -> List[dict]:
        out = []
        for row in self.rows.values():
            started = row.get("started_at")
            if row["status"] == "running" and started and (_now() - started).total_seconds() > older_than_secs:
                row.update(status="failed", error_code="WORKER_TIMEOUT", completed_at=_now())
                out.append(dict(row))
        return out[:limit]


class FakeUsageCreditsRepo:
    def __init__(self, balances: Optional[Dict[str, Dict[str, int]]] = None) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.initial: Dict[str, Dict[str, int]] = {}
        for user_id, fields in (balances or {}).items():
            self.set_balance(user_id, **fields)

    def set_balance(self, user_id: str, seconds_standard: int = 0, seconds_premium: int = 0) -> None:
        self.rows[user_id] = {"seconds_standard": seconds_standard, "seconds_premium": seconds_premium, "ledger": []}
        self.initial[user_id] = {"seconds_standard": seconds_standard, "seconds_premium": seconds_premium}

    def ledger(self, user_id: str) -> List[Dict[str, Any]]:
        return self.rows[user_id]["ledger"]

    async def get_balance(self, *, user_id: str) -> Optional[dict]:
        row = self.rows.get(user_id)
        if not row:
            return None
        return {"seconds_standard": row["seconds_standard"], "seconds_premium": row["seconds_premium"]}

    async def try_debit(self, *, user_id: str, field: QuotaField, amount: int, entry: Dict[str, Any]) -> Optional[int]:
        row = self.rows.get(user_id)
        col = QuotaField(field).value
        if not row or row[col] < amount:
            return None
        row[col] -= amount
        row["ledger"].append(entry)
        return row[col]

    async def credit(self, *, user_id: str, field: QuotaField, amount: int, entry: Dict[str, Any]) -> Optional[int]:
        row = self.rows.get(user_id)
        if not row:
            return None
        col = QuotaField(field).value
        row[col] += amount
        row["ledger"].append(entry)
        return row[col]


class FakeMusicOutputsRepo:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    async def insert_output(self, *, job_id: str, asset_id: str, kind: str, duration_sec, meta=None) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        if any(r["job_id"] == job_id for r in self.rows):
            raise FakeUniqueViolation("duplicate key value violates unique constraint")
        out_id = str(uuid4())
        self.rows.append(
            {"id": out_id, "job_id": job_id, "asset_id": asset_id, "kind": kind,
             "duration_sec": duration_sec, "meta": meta or {}, "created_at": _now()}
        )
        return out_id

    async def list_for_job(self, *, job_id: str) -> List[dict]:
        return [dict(r) for r in self.rows if r["job_id"] == job_id]


class FakeAssetsRepo:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fail_shot_writes = False

    async def insert_asset(self, **fields: Any) -> str:
        asset_id = str(uuid4())
        self.rows[asset_id] = {"id": asset_id, **fields}
        return asset_id

    async def upsert_shot_asset(self, *, user_id: str, variant_id: str, shot_type: str, **fields: Any) -> str:
        if self.fail_shot_writes:
            raise RuntimeError("assets table unavailable")
        for asset_id, row in self.rows.items():
            meta = row.get("meta") or {}
            if row.get("user_id") == user_id and meta.get("variant_id") == variant_id and meta.get("shot_type") == shot_type:
                row.update(fields)
                row["meta"] = {**fields.get("meta", {}), "variant_id": variant_id, "shot_type": shot_type}
                return asset_id
        asset_id = str(uuid4())
        meta = {**fields.pop("meta", {}), "variant_id": variant_id, "shot_type": shot_type}
        self.rows[asset_id] = {"id": asset_id, "user_id": user_id, "role": f"shot_{shot_type}", "meta": meta, **fields}
        return asset_id

    async def get_public_urls(self, *, asset_ids: List[str]) -> List[str]:
        return [self.rows[a]["public_url"] for a in asset_ids if a in self.rows and self.rows[a].get("public_url")]


class FakeProviderCallsRepo:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.broken = False

    async def insert_call(self, **fields: Any) -> None:
        if self.broken:
            raise RuntimeError("provider_calls insert failed")
        self.rows.append(fields)


class FakeAdPacksRepo:
    def __init__(self) -> None:
        self.packs: Dict[str, Dict[str, Any]] = {}
        self.projects: Dict[str, Dict[str, Any]] = {}
        self.variants: Dict[str, Dict[str, Any]] = {}

    def add_pack(self, **fields: Any) -> Dict[str, Any]:
        pack = {
            "id": str(uuid4()),
            "user_id": str(uuid4()),
            "project_id": None,
            "product_name": "Aurora Headphones",
            "category": "electronics",
            "template_type": "scroll_stop",
            "product_image_asset_ids": [],
        }
        pack.update(fields)
        self.packs[pack["id"]] = pack
        return pack

    def add_variant(self, pack_id: str, **fields: Any) -> Dict[str, Any]:
        variant = {"id": str(uuid4()), "ad_pack_id": pack_id, "status": "queued", "is_final": False, "meta": {}}
        variant.update(fields)
        self.variants[variant["id"]] = variant
        return variant

    async def get_pack(self, *, pack_id: str, user_id: str) -> Optional[dict]:
        pack = self.packs.get(pack_id)
        if not pack or pack["user_id"] != user_id:
            return None
        return dict(pack)

    async def get_project(self, *, project_id: str) -> Optional[dict]:
        project = self.projects.get(project_id)
        return dict(project) if project else None

    async def list_open_variants(self, *, pack_id: str) -> List[dict]:
        return [
            {"id": v["id"], "status": v["status"], "meta": v["meta"]}
            for v in self.variants.values()
            if v["ad_pack_id"] == pack_id and not v["is_final"]
        ]

    async def set_variant_status(self, *, variant_id: str, status: str) -> None:
        self.variants[variant_id]["status"] = status

    async def merge_variant_meta(self, *, variant_id: str, patch: Dict[str, Any], status: Optional[str] = None) -> None:
        variant = self.variants[variant_id]
        variant["meta"] = {**(variant.get("meta") or {}), **patch}
        if status is not None:
            variant["status"] = status

    async def get_variant_for_user(self, *, variant_id: str, user_id: str) -> Optional[dict]:
        variant = self.variants.get(variant_id)
        if not variant:
            return None
        pack = self.packs.get(variant["ad_pack_id"])
        if not pack or pack["user_id"] != user_id:
            return None
        return {"id": variant["id"], "status": variant["status"], "meta": variant["meta"]}


class FakeBackend:
    def __init__(self, name: str = "supabase", bucket: str = "ads-images", fail: bool = False) -> None:
        self.name = name
        self.bucket = bucket
        self.fail = fail
        self.objects: Dict[str, bytes] = {}

    async def put_object(self, *, data: bytes, key: str, content_type: str) -> StoredObject:
        if self.fail:
            raise RuntimeError(f"{self.name} upload failed")
        self.objects[key] = data
        return StoredObject(
            provider=self.name,
            key=key,
            url=f"https://cdn.example.test/{self.bucket}/{key}",
            bucket=self.bucket,
            size=len(data),
        )


class ScriptedImageClient:
    """Plays back a list of outcomes: bytes produce an image, exceptions are raised."""

    def __init__(self, outcomes: List[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, *, prompt: str, reference_image_url: Optional[str] = None) -> GeneratedImage:
        self.calls.append({"prompt": prompt, "reference_image_url": reference_image_url})
        if not self.outcomes:
            raise ImageGenerationError("no more scripted outcomes")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return GeneratedImage(data=outcome, mime_type="image/png", meta={"model": "fake-image-model"})
