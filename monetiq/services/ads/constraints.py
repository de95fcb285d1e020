from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Union

logger = logging.getLogger("ads.constraints")

ConstraintValue = Union[str, int, bool]


class ConstraintLevel(str, Enum):
    CRITICAL = "CRITICAL"  # violation fails the shot
    SECONDARY = "SECONDARY"
    INFO = "INFO"


@dataclass(frozen=True)
class Constraint:
    key: str
    value: ConstraintValue
    level: ConstraintLevel
    source_image_ids: Sequence[str] = ()


@dataclass
class ProductConstraints:
    canonical_image_id: str
    constraints: List[Constraint] = field(default_factory=list)


RULE = "=" * 55

FORBIDDEN_ELEMENTS = (
    Constraint("FORBIDDEN_LOGO_NOT_IN_REFERENCE", True, ConstraintLevel.CRITICAL),
    Constraint("FORBIDDEN_MIRRORED_TEXT", True, ConstraintLevel.CRITICAL),
    Constraint("FORBIDDEN_ADDITIONAL_BUTTONS", True, ConstraintLevel.CRITICAL),
    Constraint("FORBIDDEN_STRUCTURAL_PARTS_NOT_IN_REFERENCE", True, ConstraintLevel.CRITICAL),
)


def canonical_image_id(url: str) -> str:
    return (url or "").rstrip("/").split("/")[-1] or "canonical"


def extract_constraints(
    *,
    canonical_image_url: str,
    additional_image_urls: Sequence[str],
    category: str | None,
) -> ProductConstraints:
    """
    Heuristic constraint set for a product.

    The additional reference images are never sent to the image model; they
    can only restrict. When references disagree the canonical image wins.
    """
    cid = canonical_image_id(canonical_image_url)
    out = ProductConstraints(canonical_image_id=cid)
    out.constraints.extend(FORBIDDEN_ELEMENTS)

    def critical(key: str, value: ConstraintValue, *, from_canonical: bool = True) -> None:
        out.constraints.append(Constraint(key, value, ConstraintLevel.CRITICAL, (cid,) if from_canonical else ()))

    if category == "electronics":
        critical("LOGO_ORIENTATION", "LEFT_TO_RIGHT")
        critical("BUTTON_LAYOUT", "EXACT_AS_REFERENCE")
        critical("PORT_POSITIONS", "LOCKED")
        critical("SCREEN_ORIENTATION", "MATCH_REFERENCE")
    elif category == "fashion":
        critical("LOGO_POSITION", "TOP_CENTER")
        critical("PATTERN_ALTERATION", "FORBIDDEN")

    critical("OBJECT_SYMMETRY", "PRESERVE")
    critical("HANDS_VISIBLE", False, from_canonical=False)
    critical("ACCESSORIES_NOT_IN_REFERENCE", "FORBIDDEN", from_canonical=False)

    logger.debug(
        "Extracted %s constraints canonical=%s additional=%s",
        len(out.constraints),
        cid,
        len(additional_image_urls),
    )
    return out


def _fmt_value(value: ConstraintValue) -> str:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value).upper()


def format_constraints(pc: ProductConstraints) -> str:
    """Machine-readable KEY = VALUE block, grouped by level, ending with the canonical truth rule."""
    lines = [RULE, "HARD CONSTRAINTS (MACHINE-READABLE)", RULE, ""]

    headings = (
        (ConstraintLevel.CRITICAL, "CRITICAL CONSTRAINTS (VIOLATION = IMMEDIATE FAIL):"),
        (ConstraintLevel.SECONDARY, "SECONDARY CONSTRAINTS:"),
        (ConstraintLevel.INFO, "INFO CONSTRAINTS:"),
    )
    for level, heading in headings:
        group = [c for c in pc.constraints if c.level == level]
        if not group:
            continue
        lines.append(heading)
        lines.append("")
        lines.extend(f"{c.key} = {_fmt_value(c.value)}" for c in group)
        lines.append("")

    lines.extend(
        [
            RULE,
            "CANONICAL TRUTH RULE:",
            f"CANONICAL_IMAGE_ID = {pc.canonical_image_id}",
            "IF_CONFLICT -> CANONICAL_ALWAYS_WINS",
            RULE,
            "",
            "CRITICAL: Any deviation from CRITICAL constraints = FAILURE.",
            "",
        ]
    )
    return "\n".join(lines)
