from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from monetiq.config import settings
from monetiq.domain.enums import ShotType, VariantStatus
from monetiq.repos.ad_packs_repo import AdPacksRepo
from monetiq.repos.assets_repo import AssetsRepo
from monetiq.services.ads.constraints import extract_constraints, format_constraints
from monetiq.services.ads.image_client import GeminiImageClient
from monetiq.services.ads.shot_plan import FourShotPlan, ShotSpec, generate_four_shot_plan, validate_four_shot_plan
from monetiq.services.ads.shot_prompts import build_shot_prompt
from monetiq.services.asset_writer import AssetWriter

logger = logging.getLogger("ads.shot_pipeline")

CANONICAL_PATH = "monetiq/inputs/{project_id}/source.png"


class PlanRejected(Exception):
    pass


class HookShotFailed(Exception):
    pass


class ReferenceImageError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


@dataclass
class VariantJob:
    variant_id: str
    user_id: str
    ad_pack_id: str
    product_name: str
    category: Optional[str]
    template: Optional[str]
    reference_urls: List[str] = field(default_factory=list)

    @property
    def canonical_url(self) -> Optional[str]:
        return self.reference_urls[0] if self.reference_urls else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _now_ms() -> int:
    return int(time.time() * 1000)


async def resolve_reference_urls(pack: Dict[str, Any], *, ads: AdPacksRepo, assets: AssetsRepo) -> List[str]:
    """
    Project packs must point at the canonical source image; asset packs use
    their product images in order. The first URL is the canonical reference.
    """
    project_id = pack.get("project_id")
    if project_id:
        project = await ads.get_project(project_id=project_id)
        if project is None:
            raise ReferenceImageError("PROJECT_FETCH_FAILED", f"Project {project_id} not found", status_code=500)
        url = project.get("canonical_product_image_url")
        expected = CANONICAL_PATH.format(project_id=project_id)
        if not url:
            raise ReferenceImageError("CANONICAL_IMAGE_MISSING", f"Product must have a canonical image at {expected}")
        if expected not in url:
            raise ReferenceImageError("NON_CANONICAL_IMAGE_PATH", f"Product image must use canonical path {expected}")
        return [url]

    asset_ids = pack.get("product_image_asset_ids") or []
    if not asset_ids:
        logger.warning("No product images for ad_pack %s", pack.get("id"))
        return []
    urls = await assets.get_public_urls(asset_ids=asset_ids)
    if not urls:
        raise ReferenceImageError("ASSET_FETCH_FAILED", "Failed to fetch product image assets")
    return urls


class ShotPipeline:
    """
    Two-level bounded retry for one variant: up to MAX_PLAN_RETRIES plans,
    each shot up to MAX_SHOT_RETRIES attempts, shots generated in plan order.
    A hook that cannot be produced abandons the rest of that plan.
    """

    def __init__(
        self,
        *,
        ads: AdPacksRepo,
        writer: AssetWriter,
        image_client_factory: Callable[[], Any] = GeminiImageClient,
        plan_factory: Callable[[str], FourShotPlan] = generate_four_shot_plan,
        max_plan_retries: Optional[int] = None,
        max_shot_retries: Optional[int] = None,
        now_ms: Callable[[], int] = _now_ms,
    ):
        self.ads = ads
        self.writer = writer
        self.image_client_factory = image_client_factory
        self.plan_factory = plan_factory
        self.max_plan_retries = int(max_plan_retries if max_plan_retries is not None else settings.MAX_PLAN_RETRIES)
        self.max_shot_retries = int(max_shot_retries if max_shot_retries is not None else settings.MAX_SHOT_RETRIES)
        self.now_ms = now_ms

    async def run(self, job: VariantJob) -> VariantStatus:
        try:
            status, patch = await self._generate(job)
        except Exception as e:
            logger.exception("Shot generation failed for variant %s", job.variant_id)
            await self.ads.merge_variant_meta(
                variant_id=job.variant_id,
                patch={"error": str(e), "failed_at": _now_iso()},
                status=VariantStatus.generation_failed.value,
            )
            return VariantStatus.generation_failed

        await self.ads.merge_variant_meta(variant_id=job.variant_id, patch=patch, status=status.value)
        logger.info("variant_shots_done", extra={"variant_id": job.variant_id, "status": status.value})
        return status

    async def _generate(self, job: VariantJob) -> tuple[VariantStatus, Dict[str, Any]]:
        client = self.image_client_factory()
        constraint_block = format_constraints(
            extract_constraints(
                canonical_image_url=job.canonical_url or "",
                additional_image_urls=job.reference_urls[1:],
                category=job.category,
            )
        )

        plan: Optional[FourShotPlan] = None
        shots: Dict[str, Dict[str, Any]] = {}
        attempts = 0

        for attempt in range(1, self.max_plan_retries + 1):
            attempts = attempt
            seed = f"{job.variant_id}-attempt-{attempt}-{self.now_ms()}"
            try:
                candidate = self.plan_factory(seed)
                check = validate_four_shot_plan(candidate)
                if not check.valid:
                    raise PlanRejected(check.error)

                plan = candidate
                shots = {}
                logger.info("Plan %s/%s for variant %s: %s", attempt, self.max_plan_retries, job.variant_id, plan.describe())

                if await self._run_plan(client, job, plan, constraint_block, shots):
                    break
                logger.warning("Some shots failed for variant %s, trying a new plan", job.variant_id)
            except (PlanRejected, HookShotFailed) as e:
                logger.warning("Plan %s failed for variant %s: %s", attempt, job.variant_id, e)
                if attempt >= self.max_plan_retries:
                    raise

        complete = plan is not None and all(shots.get(s.shot_type.value, {}).get("image_url") for s in plan.shots)
        status = VariantStatus.shots_ready if complete else VariantStatus.shots_partial
        patch = {"shots": shots, "plan_seed": plan.seed if plan else None, "plan_attempts": attempts}
        return status, patch

    async def _run_plan(
        self,
        client: Any,
        job: VariantJob,
        plan: FourShotPlan,
        constraint_block: str,
        shots: Dict[str, Dict[str, Any]],
    ) -> bool:
        all_ok = True
        for index, spec in enumerate(plan.shots, start=1):
            meta = await self._generate_shot(client, job, spec, index, constraint_block)
            shots[spec.shot_type.value] = meta
            if "error" not in meta:
                continue
            all_ok = False
            if spec.shot_type == ShotType.hook:
                raise HookShotFailed("hook shot failed, cannot proceed without a valid hook")
        return all_ok

    async def _generate_shot(
        self,
        client: Any,
        job: VariantJob,
        spec: ShotSpec,
        index: int,
        constraint_block: str,
    ) -> Dict[str, Any]:
        prompt = build_shot_prompt(shot=spec, product_name=job.product_name, category=job.category, template=job.template)
        final_prompt = (
            f"{constraint_block}\nGENERATION TASK:\n{prompt}\n\n"
            "REMINDER: The reference image defines EXACT structure. "
            "Any deviation from hard constraints above is a FAILURE."
        )
        shot = spec.shot_type.value
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_shot_retries + 1):
            try:
                image = await client.generate(prompt=final_prompt, reference_image_url=job.canonical_url)
                stored = await self.writer.upload_image(
                    data=image.data,
                    path=f"ads-mode/{job.user_id}/{job.ad_pack_id}/{job.variant_id}",
                    filename_stem=f"{shot}-{uuid4().hex[:8]}",
                    mime_type=image.mime_type,
                )
            except Exception as e:
                last_error = e
                logger.warning("Shot %s (%s/4) attempt %s/%s failed: %s", shot, index, attempt, self.max_shot_retries, e)
                continue

            meta: Dict[str, Any] = {
                "image_url": stored["url"],
                "prompt": prompt,
                "spatial_role": spec.spatial_role.value,
                "context": spec.context,
                "shot_index": index,
                "attempts": attempt,
                "generated_at": _now_iso(),
                **image.meta,
            }
            asset_id = await self.writer.record_shot_image(
                user_id=job.user_id,
                variant_id=job.variant_id,
                shot_type=shot,
                stored=stored,
                mime_type=image.mime_type,
                meta={"ad_pack_id": job.ad_pack_id, "spatial_role": spec.spatial_role.value, "prompt": prompt},
            )
            if asset_id:
                meta["asset_id"] = asset_id
            return meta

        return {
            "error": str(last_error) if last_error else "shot generation failed",
            "finish_reason": getattr(last_error, "finish_reason", None),
            "spatial_role": spec.spatial_role.value,
            "context": spec.context,
            "shot_index": index,
            "failed_at": _now_iso(),
        }
