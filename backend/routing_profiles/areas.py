from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

AREA_GEOMETRY_TYPES: tuple[str, ...] = ("Polygon", "MultiPolygon")


class Area(BaseModel):
    """GeoJSON Feature referenced from clause conditions by its key in ``CustomModel.areas``.

    Geometry is kept as plain GeoJSON; point-in-polygon tests happen in the
    evaluator, so instances are never mutated once built.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["Feature"] = "Feature"
    id: str | None = None
    geometry: dict[str, Any]
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("geometry")
    @classmethod
    def _validate_geometry(cls, value: dict[str, Any]) -> dict[str, Any]:
        kind = value.get("type")
        if kind not in AREA_GEOMETRY_TYPES:
            raise ValueError("area geometry must be a Polygon or MultiPolygon")
        coords = value.get("coordinates")
        if not isinstance(coords, list) or not coords:
            raise ValueError("area geometry requires coordinates")
        return value

    def __str__(self) -> str:
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


def render_areas(areas: dict[str, Area]) -> str:
    # One canonical JSON object: names are quoted, so no name can pose as another entry.
    payload = {name: area.model_dump(mode="json") for name, area in areas.items()}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
