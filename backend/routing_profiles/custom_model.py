from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .areas import Area, render_areas
from .clauses import Clause, render_clauses

# Key under which a profile carries its model in JSON payloads.
KEY = "custom_model"

# Default derived from a cost for time (e.g. 25/hour) and for distance (0.5/km); trucks usually go higher.
DEFAULT_D_I: float = 70.0
DEFAULT_HEADING_PENALTY: float = 300.0


class CustomModel(BaseModel):
    """Routing cost adjustments layered on top of a profile.

    Clause lists are evaluated first-match-wins, so their order is part of the
    model. ``areas`` maps the names used inside clause conditions to polygons.
    """

    model_config = ConfigDict(validate_assignment=True)

    max_speed_fallback: float | None = Field(default=None, gt=0)
    heading_penalty: float = DEFAULT_HEADING_PENALTY
    distance_influence: float = DEFAULT_D_I
    speed_factor: list[Clause] = Field(default_factory=list)
    max_speed: list[Clause] = Field(default_factory=list)
    priority: list[Clause] = Field(default_factory=list)
    areas: dict[str, Area] = Field(default_factory=dict)

    @field_validator("areas")
    @classmethod
    def _validate_area_names(cls, value: dict[str, Area]) -> dict[str, Area]:
        for name in value:
            if not name.strip():
                raise ValueError("area names must not be empty")
        return value

    def deep_copy(self) -> "CustomModel":
        # Clauses and areas are frozen, so fresh containers are enough for independence.
        return self.model_copy(
            update={
                "speed_factor": list(self.speed_factor),
                "max_speed": list(self.max_speed),
                "priority": list(self.priority),
                "areas": dict(self.areas),
            }
        )

    def fingerprint(self) -> str:
        # Compared against stored models to decide whether cached results still apply.
        return (
            f"distance_influence={self.distance_influence}"
            f"|speed_factor={render_clauses(self.speed_factor)}"
            f"|max_speed={render_clauses(self.max_speed)}"
            f"|max_speed_fallback={self.max_speed_fallback}"
            f"|priority={render_clauses(self.priority)}"
            f"|areas={render_areas(self.areas)}"
        )

    def fingerprint_digest(self) -> str:
        return hashlib.sha256(self.fingerprint().encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return self.fingerprint()
