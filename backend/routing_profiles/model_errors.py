from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "max_speed_fallback_lowered",
        "distance_influence_lowered",
        "factor_too_large",
        "duplicate_area",
        "profile_unavailable",
        "profile_invalid",
        "custom_model_invalid",
    }
)


@dataclass
class CustomModelError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ConstraintViolation(CustomModelError):
    """A query model tried to relax what the base model enforces."""


class FallbackLowered(ConstraintViolation):
    def __init__(self, *, current: float, requested: float) -> None:
        super().__init__(
            reason_code="max_speed_fallback_lowered",
            message=f"CustomModel in query can only use max_speed_fallback bigger or equal to {current}",
            details={"field": "max_speed_fallback", "current": current, "requested": requested},
        )


class DistanceInfluenceLowered(ConstraintViolation):
    def __init__(self, *, current: float, requested: float) -> None:
        super().__init__(
            reason_code="distance_influence_lowered",
            message=f"CustomModel in query can only use distance_influence bigger or equal to {current}",
            details={"field": "distance_influence", "current": current, "requested": requested},
        )


class FactorTooLarge(ConstraintViolation):
    def __init__(self, *, field: str, index: int, value: float) -> None:
        super().__init__(
            reason_code="factor_too_large",
            message=f"factor cannot be larger than 1 but was {value}",
            details={"field": field, "index": index, "value": value, "limit": 1.0},
        )


class DuplicateArea(ConstraintViolation):
    def __init__(self, *, area_id: str) -> None:
        super().__init__(
            reason_code="duplicate_area",
            message=f"area {area_id} already exists",
            details={"field": "areas", "area_id": area_id},
        )


def normalize_reason_code(reason_code: str, *, default: str = "custom_model_invalid") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
