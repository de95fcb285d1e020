from __future__ import annotations

import pytest

from monetiq.domain.enums import ShotType, SpatialRole
from monetiq.services.ads.shot_plan import (
    CONTEXT_POOL,
    FourShotPlan,
    ShotSpec,
    generate_four_shot_plan,
    select_contexts,
    valid_role_combinations,
    validate_four_shot_plan,
)


def _plan(roles, types=None):
    types = types or [ShotType.hook, ShotType.proof, ShotType.variation, ShotType.winner]
    shots = tuple(ShotSpec(t, r, CONTEXT_POOL[i]) for i, (t, r) in enumerate(zip(types, roles)))
    return FourShotPlan(seed="manual", shots=shots)


def test_plan_is_deterministic_for_a_seed():
    assert generate_four_shot_plan("variant-1-attempt-1-1700000000000") == generate_four_shot_plan(
        "variant-1-attempt-1-1700000000000"
    )


@pytest.mark.parametrize("seed", [f"v-{i}-attempt-{i % 3 + 1}-{1700000000000 + i}" for i in range(40)])
def test_generated_plans_are_valid(seed):
    plan = generate_four_shot_plan(seed)

    assert validate_four_shot_plan(plan).valid
    roles = [s.spatial_role for s in plan.shots]
    assert roles[0] in (SpatialRole.supported_elevated, SpatialRole.grounded_static)
    assert roles[1] == SpatialRole.handled_transient
    assert roles[2] in (SpatialRole.folded_resting, SpatialRole.grounded_static)
    assert len({s.context for s in plan.shots}) == 4


def test_seeds_cover_every_combination():
    seen = {tuple(s.spatial_role for s in generate_four_shot_plan(f"seed-{i}").shots) for i in range(200)}
    assert seen == set(valid_role_combinations())
    assert len(seen) == 3


def test_rejects_repeated_roles():
    plan = _plan(
        [SpatialRole.grounded_static, SpatialRole.handled_transient, SpatialRole.grounded_static, SpatialRole.folded_resting]
    )
    result = validate_four_shot_plan(plan)
    assert not result.valid
    assert "repetition" in result.error


def test_rejects_wrong_shot_count():
    plan = FourShotPlan(seed="short", shots=_plan(list(valid_role_combinations()[0])).shots[:3])
    result = validate_four_shot_plan(plan)
    assert not result.valid
    assert "exactly 4" in result.error


def test_rejects_proof_not_handled():
    plan = _plan(
        [SpatialRole.handled_transient, SpatialRole.grounded_static, SpatialRole.folded_resting, SpatialRole.supported_elevated]
    )
    result = validate_four_shot_plan(plan)
    assert not result.valid
    assert "shot 2" in result.error


def test_rejects_shot_types_out_of_order():
    plan = _plan(
        list(valid_role_combinations()[0]),
        types=[ShotType.proof, ShotType.hook, ShotType.variation, ShotType.winner],
    )
    assert not validate_four_shot_plan(plan).valid


def test_rejects_unknown_role():
    plan = _plan(["floating", SpatialRole.handled_transient, SpatialRole.folded_resting, SpatialRole.grounded_static])
    result = validate_four_shot_plan(plan)
    assert not result.valid
    assert "illegal" in result.error


def test_select_contexts_refuses_more_than_pool():
    with pytest.raises(ValueError):
        select_contexts("seed", len(CONTEXT_POOL) + 1)
