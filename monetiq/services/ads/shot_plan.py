from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from monetiq.domain.enums import ShotType, SpatialRole

SHOT_ORDER: Tuple[ShotType, ...] = (ShotType.hook, ShotType.proof, ShotType.variation, ShotType.winner)

# The proof shot (second in the sequence) always shows hands handling the product.
PROOF_ROLE = SpatialRole.handled_transient

HOOK_ROLES = (SpatialRole.supported_elevated, SpatialRole.grounded_static)
VARIATION_ROLES = (SpatialRole.folded_resting, SpatialRole.grounded_static)
STATIC_ROLES = (SpatialRole.grounded_static, SpatialRole.supported_elevated, SpatialRole.folded_resting)

CONTEXT_POOL: Tuple[str, ...] = (
    "minimalist bedroom (natural light)",
    "premium walk-in closet (light or dark wood)",
    "neutral textile floor (wool, rug, carpet)",
    "light wood table",
    "raw floor / workshop",
    "neutral sofa",
    "simple coat rack",
    "bench or chair",
    "white wall with raking light",
    "soft concrete floor",
)


@dataclass(frozen=True)
class ShotSpec:
    shot_type: ShotType
    spatial_role: SpatialRole
    context: str


@dataclass(frozen=True)
class FourShotPlan:
    seed: str
    shots: Tuple[ShotSpec, ...]

    def describe(self) -> str:
        return ", ".join(f"{s.shot_type.value}:{s.spatial_role.value}" for s in self.shots)


@dataclass(frozen=True)
class PlanValidation:
    valid: bool
    error: Optional[str] = None


def _digest(value: str) -> int:
    return int.from_bytes(hashlib.sha256(value.encode("utf-8")).digest()[:8], "big")


def valid_role_combinations() -> List[Tuple[SpatialRole, SpatialRole, SpatialRole, SpatialRole]]:
    """Every (hook, proof, variation, winner) assignment that uses four distinct roles."""
    combos = []
    for hook in HOOK_ROLES:
        for variation in VARIATION_ROLES:
            if hook == variation:
                continue
            remaining = [r for r in STATIC_ROLES if r not in (hook, variation)]
            if len(remaining) == 1:
                combos.append((hook, PROOF_ROLE, variation, remaining[0]))
    return combos


def select_contexts(seed: str, count: int) -> List[str]:
    if count > len(CONTEXT_POOL):
        raise ValueError(f"cannot select {count} unique contexts from a pool of {len(CONTEXT_POOL)}")
    ranked = sorted(CONTEXT_POOL, key=lambda ctx: _digest(seed + ctx))
    return ranked[:count]


def generate_four_shot_plan(seed: str) -> FourShotPlan:
    """Deterministic for a given seed."""
    combos = valid_role_combinations()
    if not combos:
        raise RuntimeError("no valid 4-shot role combination exists")

    roles = combos[_digest(seed) % len(combos)]
    contexts = select_contexts(seed, len(SHOT_ORDER))
    shots = tuple(
        ShotSpec(shot_type=shot_type, spatial_role=role, context=ctx)
        for shot_type, role, ctx in zip(SHOT_ORDER, roles, contexts)
    )
    return FourShotPlan(seed=seed, shots=shots)


def validate_four_shot_plan(plan: FourShotPlan) -> PlanValidation:
    shots: Sequence[ShotSpec] = plan.shots or ()
    if len(shots) != len(SHOT_ORDER):
        return PlanValidation(False, f"plan must have exactly {len(SHOT_ORDER)} shots, got {len(shots)}")

    types = [s.shot_type for s in shots]
    if tuple(types) != SHOT_ORDER:
        return PlanValidation(False, f"shot types out of order: {', '.join(str(getattr(t, 'value', t)) for t in types)}")

    try:
        roles = [SpatialRole(s.spatial_role) for s in shots]
    except ValueError as e:
        return PlanValidation(False, f"illegal spatial role: {e}")

    if len(set(roles)) != len(roles):
        return PlanValidation(False, f"spatial role repetition in plan: {', '.join(r.value for r in roles)}")

    if roles[1] != PROOF_ROLE:
        return PlanValidation(False, f"shot 2 (proof) must be {PROOF_ROLE.value}, got {roles[1].value}")

    return PlanValidation(True)
