from __future__ import annotations

from typing import Dict

from monetiq.domain.enums import AdTemplate, ProductCategory, ShotType, SpatialRole
from monetiq.services.ads.shot_plan import ShotSpec

# Layer 1: applied to every shot, never changes.
BASE_PROMPT = """You are generating a 4-shot product set. The PRODUCT is IMMUTABLE.

NEVER CHANGE:
- shape, proportions, print/artwork, texture, knit pattern
- defects, folds logic, gravity behavior

ALLOWED TO VARY:
- realistic physical context ONLY
- credible interaction with environment
- camera distance and angle (subtle only)

ABSOLUTE RULES:
- Product must ALWAYS be supported by visible surface or hands
- NO floating, NO invisible support, NO stylization
- NO cinematic exaggeration, NO redesign, NO beautification

LIGHTING (CONSISTENT ACROSS 4 SHOTS):
- Soft daylight OR soft indoor
- No dramatic contrast

ANTI-REPETITION RULE:
NO two shots may share the same support surface, orientation, interaction type or framing logic.

SPATIAL ROLE ENFORCEMENT (HARD LOCK):
Each shot has an assigned spatial_role. It is a HARD CONSTRAINT, NOT a suggestion.
IF THE SHOT VIOLATES ITS SPATIAL_ROLE: do not generate the image, do not auto-correct, do not fall back.

CONTEXT RULES:
Use the specified context from the context pool.
Do NOT repeat the same context across shots.

VALIDATION BLOCK IF:
- Product floats
- Support is unclear
- Pose is repeated
- Product appearance is altered
- Spatial role is violated

What the user validates is EXACTLY what they will export in video.
Vertical 9:16."""

SPATIAL_ROLE_DEFINITIONS: Dict[SpatialRole, str] = {
    SpatialRole.supported_elevated: """SPATIAL ROLE: supported-elevated (HARD LOCK)

MANDATORY REQUIREMENTS:
- Product MUST be attached to visible physical support
  * Apparel: hanger, hook, rail, wall mount
  * Electronics/Other: stand, dock, holder, clamp, mount
- ZERO human presence (no hands, no body parts)
- ZERO manipulation (product is static, not being moved)

VIOLATION CRITERIA (BLOCK IF ANY):
- Product resting on flat surface instead of elevated support
- Human hands visible
- Product appears to be in motion
- Support is invisible or unclear""",
    SpatialRole.grounded_static: """SPATIAL ROLE: grounded-static (HARD LOCK)

MANDATORY REQUIREMENTS:
- Product MUST rest fully on a surface (bed, table, floor, rug)
- Gravity visible (natural contact, shadows)
- ZERO human presence (no hands, no body parts)
- Product is static (not being moved)

VIOLATION CRITERIA (BLOCK IF ANY):
- Product hanging or elevated
- Human hands visible
- Product appears to be floating
- Product appears to be in motion""",
    SpatialRole.handled_transient: """SPATIAL ROLE: handled-transient (HARD LOCK)

MANDATORY REQUIREMENTS:
- Human hands REQUIRED (must be visible)
- Product in motion or manipulation (holding, lifting, folding, adjusting)
- NOT resting (product is being actively handled)
- NOT staged (realistic interaction only)

VIOLATION CRITERIA (BLOCK IF ANY):
- No human hands visible
- Product resting on surface without hands
- Product hanging without hands
- Hands visible but not interacting with product""",
    SpatialRole.folded_resting: """SPATIAL ROLE: folded-resting (HARD LOCK)

MANDATORY REQUIREMENTS:
- Product folded or compact (not fully extended)
- Resting on surface (table, bed, floor)
- Inactive state (not being manipulated)
- ZERO human presence (no hands, no body parts)

VIOLATION CRITERIA (BLOCK IF ANY):
- Product fully extended (not folded)
- Product hanging or elevated
- Human hands visible
- Product appears to be in motion""",
}

# Layer 2: per-shot constraints. {spatial_role} and {context} are filled in per shot.
SHOT_CONSTRAINTS: Dict[ShotType, str] = {
    ShotType.hook: """SHOT 1 - HOOK (ANCHOR SHOT)

{spatial_role}

PRODUCT ALONE:
- Supported (bed, table, floor, wall, hanger, hook, rail)
- No hands
- Clean, readable silhouette
- Pose must be DIFFERENT from other shots

PURPOSE: Instant recognition of the real product

CONTEXT: {context}

Soft daylight or soft indoor lighting.
Luxury e-commerce aesthetic.

EXACT REPRODUCTION:
- Exact shape, proportions, print/artwork, texture
- Exact monogram placement, scale, alignment""",
    ShotType.proof: """SHOT 2 - TRUST (HANDLING / REALITY)

{spatial_role}

HUMAN HANDS ALLOWED:
- Hands must interact naturally (holding, lifting, folding)
- Hands must NOT hide artwork
- No repeated pose from Shot 1
- Realistic manipulation ONLY
- No styling, no posing, no fashion attitude

PURPOSE: Scale, texture, reality proof

CONTEXT: {context}
(Must be DIFFERENT from HOOK context)

EXACT PRODUCT REPRODUCTION:
- Exact fabric texture, print/artwork, monogram accuracy
- Product obeys gravity when handled""",
    ShotType.variation: """SHOT 3 - TRUST (FLAT / E-COMMERCE)

{spatial_role}

FLAT LAY OR PERFECTLY FRONTAL HANG:
- Full product visible
- Neutral surface
- No hands touching product
- Product folded/compact OR resting flat

PURPOSE: Technical clarity, catalog-level trust

CONTEXT: {context}
(Must be DIFFERENT from previous contexts)

EXACT PROPORTIONS:
- Fabric texture and monogram clarity prioritized
- Perfect symmetry and alignment
- All details visible and readable""",
    ShotType.winner: """SHOT 4 - VARIATION (CONTEXT CHANGE)

{spatial_role}
(MUST be different from shots 1-3)

NEW PHYSICAL CONTEXT:
- Different support type (if bed was used, use table, floor, chair, wall, etc.)
- Different orientation or fold state
- Must feel naturally different, not decorative
- Still realistic and credible

PURPOSE: Context diversity without product drift

CONTEXT: {context}
(Must be DIFFERENT from all previous contexts)

EXACT REPRODUCTION (NO DRIFT):
- Same fabric texture, print/artwork, monogram placement, proportions
- Product physically supported (no floating)""",
}

CATEGORY_CONTEXT: Dict[ProductCategory, str] = {
    ProductCategory.fashion: "Scene: bedroom/closet",
    ProductCategory.electronics: "Scene: modern desk",
    ProductCategory.beauty: "Scene: bathroom counter",
    ProductCategory.home: "Scene: living room",
    ProductCategory.sports: "Scene: gym/outdoors",
    ProductCategory.food: "Scene: kitchen table",
    ProductCategory.drinkware: "Scene: kitchen/desk",
    ProductCategory.toys: "Scene: playroom floor",
    ProductCategory.books: "Scene: reading nook",
    ProductCategory.health: "Scene: wellness space",
    ProductCategory.automotive: "Scene: garage/driveway",
    ProductCategory.jewelry: "Scene: vanity table",
    ProductCategory.other: "Scene: casual setting",
}

# Hook shot only: one line of template-specific differentiation.
HOOK_VARIANTS: Dict[AdTemplate, str] = {
    AdTemplate.scroll_stop: "Shot 1: Product upright on visible premium stand/dock, ultra clean, no hands, no motion, high readability",
    AdTemplate.trust_ugc: "Shot 1: Product on visible stand in real-life neutral setting, no hands, static, natural light",
    AdTemplate.problem_solution: "Shot 1: Product shown clearly on stand next to subtle 'problem context' object, no hands, static",
    AdTemplate.offer_promo: "Shot 1: Product centered on stand, label/finish emphasized, no hands, static, bright premium lighting",
}


def _category(value: str | None) -> ProductCategory:
    try:
        return ProductCategory(value or "other")
    except ValueError:
        return ProductCategory.other


def _template(value: str | None) -> AdTemplate | None:
    try:
        return AdTemplate(value) if value else None
    except ValueError:
        return None


def build_shot_prompt(*, shot: ShotSpec, product_name: str, category: str | None, template: str | None) -> str:
    """Base prompt + category scene + context + spatial-role lock + shot constraints (+ hook variant)."""
    constraints = SHOT_CONSTRAINTS[shot.shot_type].format(
        spatial_role=SPATIAL_ROLE_DEFINITIONS[shot.spatial_role],
        context=shot.context,
    )
    prompt = (
        f"{BASE_PROMPT}\n\n"
        f"Product: {product_name}\n"
        f"{CATEGORY_CONTEXT[_category(category)]}\n\n"
        f"CONTEXT: {shot.context}\n\n"
        f"{constraints}"
    )

    tpl = _template(template)
    if shot.shot_type == ShotType.hook and tpl is not None:
        prompt += f"\n\n{HOOK_VARIANTS[tpl]}"
    return prompt
