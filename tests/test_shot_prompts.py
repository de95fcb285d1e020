from __future__ import annotations

from monetiq.domain.enums import AdTemplate, ShotType, SpatialRole
from monetiq.services.ads.constraints import extract_constraints, format_constraints
from monetiq.services.ads.shot_plan import ShotSpec
from monetiq.services.ads.shot_prompts import BASE_PROMPT, HOOK_VARIANTS, build_shot_prompt


def test_hook_prompt_carries_template_variant():
    shot = ShotSpec(ShotType.hook, SpatialRole.supported_elevated, "light wood table")

    prompt = build_shot_prompt(shot=shot, product_name="Aurora", category="electronics", template="trust_ugc")

    assert prompt.startswith(BASE_PROMPT)
    assert "Product: Aurora" in prompt
    assert "Scene: modern desk" in prompt
    assert "CONTEXT: light wood table" in prompt
    assert "SPATIAL ROLE: supported-elevated" in prompt
    assert prompt.endswith(HOOK_VARIANTS[AdTemplate.trust_ugc])


def test_non_hook_prompt_has_no_template_variant():
    shot = ShotSpec(ShotType.proof, SpatialRole.handled_transient, "neutral sofa")

    prompt = build_shot_prompt(shot=shot, product_name="Aurora", category="electronics", template="trust_ugc")

    assert HOOK_VARIANTS[AdTemplate.trust_ugc] not in prompt
    assert "SPATIAL ROLE: handled-transient" in prompt


def test_unknown_category_and_template_fall_back():
    shot = ShotSpec(ShotType.hook, SpatialRole.grounded_static, "soft concrete floor")

    prompt = build_shot_prompt(shot=shot, product_name="Mug", category="spaceships", template="mystery")

    assert "Scene: casual setting" in prompt
    assert not any(v in prompt for v in HOOK_VARIANTS.values())


def test_electronics_constraints_block():
    pc = extract_constraints(
        canonical_image_url="https://cdn.test/monetiq/inputs/p1/source.png",
        additional_image_urls=["https://cdn.test/side.png"],
        category="electronics",
    )

    block = format_constraints(pc)

    assert "HARD CONSTRAINTS (MACHINE-READABLE)" in block
    assert "BUTTON_LAYOUT = EXACT_AS_REFERENCE" in block
    assert "HANDS_VISIBLE = FALSE" in block
    assert "FORBIDDEN_MIRRORED_TEXT = TRUE" in block
    assert "CANONICAL_IMAGE_ID = source.png" in block
    assert "IF_CONFLICT -> CANONICAL_ALWAYS_WINS" in block
    assert "SECONDARY CONSTRAINTS:" not in block


def test_fashion_rules_differ_from_electronics():
    pc = extract_constraints(canonical_image_url="https://cdn.test/a.png", additional_image_urls=[], category="fashion")
    keys = {c.key for c in pc.constraints}

    assert "PATTERN_ALTERATION" in keys
    assert "PORT_POSITIONS" not in keys
    assert "OBJECT_SYMMETRY" in keys
