from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from monetiq.api.deps import (
    get_ad_packs_repo,
    get_assets_repo,
    get_current_user_id,
    get_shot_pipeline,
    get_spawner,
)
from monetiq.domain.enums import VariantStatus
from monetiq.domain.models import GenerateShotsIn, GenerateShotsOut, VariantStatusOut
from monetiq.repos.ad_packs_repo import AdPacksRepo
from monetiq.repos.assets_repo import AssetsRepo
from monetiq.services.ads.shot_pipeline import (
    ReferenceImageError,
    ShotPipeline,
    VariantJob,
    resolve_reference_urls,
)
from monetiq.services.task_spawner import TaskSpawner

logger = logging.getLogger("api.ads_mode")

router = APIRouter(prefix="/api/ads-mode", tags=["ads-mode"])


@router.post("/generate-shots", response_model=GenerateShotsOut)
async def generate_shots(
    payload: GenerateShotsIn,
    user_id: str = Depends(get_current_user_id),
    ads: AdPacksRepo = Depends(get_ad_packs_repo),
    assets: AssetsRepo = Depends(get_assets_repo),
    pipeline: ShotPipeline = Depends(get_shot_pipeline),
    tasks: TaskSpawner = Depends(get_spawner),
):
    pack = await ads.get_pack(pack_id=str(payload.ad_pack_id), user_id=user_id)
    if not pack:
        raise HTTPException(status_code=404, detail="ad_pack_not_found")

    variants = await ads.list_open_variants(pack_id=pack["id"])

    try:
        reference_urls = await resolve_reference_urls(pack, ads=ads, assets=assets)
    except ReferenceImageError as e:
        logger.warning("Reference image check failed ad_pack=%s code=%s: %s", pack["id"], e.code, e)
        raise HTTPException(status_code=e.status_code, detail=e.code)

    for variant in variants:
        await ads.set_variant_status(variant_id=variant["id"], status=VariantStatus.generating_shots.value)
        job = VariantJob(
            variant_id=variant["id"],
            user_id=user_id,
            ad_pack_id=pack["id"],
            product_name=pack.get("product_name") or "Product",
            category=pack.get("category"),
            template=pack.get("template_type"),
            reference_urls=reference_urls,
        )
        tasks.spawn(pipeline.run(job), name=f"shots:{variant['id']}")

    logger.info("Started shot generation ad_pack=%s variants=%s", pack["id"], len(variants))
    return GenerateShotsOut(
        ok=True,
        message=f"Generating 4 AAA shots for {len(variants)} variants",
        variant_count=len(variants),
    )


@router.get("/variants/{variant_id}", response_model=VariantStatusOut)
async def get_variant(
    variant_id: UUID,
    user_id: str = Depends(get_current_user_id),
    ads: AdPacksRepo = Depends(get_ad_packs_repo),
):
    row = await ads.get_variant_for_user(variant_id=str(variant_id), user_id=user_id)
    if not row:
        raise HTTPException(status_code=404, detail="variant_not_found")
    return VariantStatusOut(variant_id=row["id"], status=row["status"], meta=row.get("meta") or {})
