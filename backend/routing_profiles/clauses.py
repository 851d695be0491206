from __future__ import annotations

import json
import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_serializer, model_validator

ClauseKeyword = Literal["if", "else_if", "else"]
CLAUSE_KEYWORDS: tuple[str, ...] = ("if", "else_if", "else")
VALUE_ALIASES: tuple[str, ...] = ("multiply_by", "limit_to")


class Clause(BaseModel):
    """One branch of a speed factor, max speed or priority block.

    On the wire a clause is ``{"if": "road_class == MOTORWAY", "value": 0.8}``;
    ``else_if`` and ``else`` take the place of ``if`` for later branches. The
    condition text is evaluated elsewhere, only ``value`` is inspected here.
    """

    model_config = ConfigDict(frozen=True)

    keyword: ClauseKeyword
    condition: str = ""
    value: float

    @model_validator(mode="before")
    @classmethod
    def accept_keyword_form(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        data = dict(value)
        aliases = [key for key in VALUE_ALIASES if key in data]
        if len(aliases) + ("value" in data) > 1:
            raise ValueError("clause takes exactly one of 'value', 'multiply_by' or 'limit_to'")
        if aliases:
            data["value"] = data.pop(aliases[0])
        if "keyword" in data:
            return data
        present = [key for key in CLAUSE_KEYWORDS if key in data]
        if len(present) != 1:
            raise ValueError("clause needs exactly one of 'if', 'else_if' or 'else'")
        keyword = present[0]
        condition = data.pop(keyword)
        data["keyword"] = keyword
        data["condition"] = "" if condition is None else str(condition)
        return data

    @field_validator("condition")
    @classmethod
    def _strip_condition(cls, v: str) -> str:
        return v.strip()

    @field_validator("value")
    @classmethod
    def finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("clause value must be finite")
        return v

    @model_validator(mode="after")
    def _validate_condition(self) -> "Clause":
        if self.keyword == "else":
            if self.condition:
                raise ValueError("'else' clause must not carry a condition")
        elif not self.condition:
            raise ValueError(f"'{self.keyword}' clause requires a condition")
        return self

    @model_serializer
    def _serialize(self) -> dict[str, Any]:
        return {self.keyword: self.condition, "value": self.value}

    def __str__(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False)


def render_clauses(clauses: list[Clause]) -> str:
    return "[" + ", ".join(str(clause) for clause in clauses) + "]"
