from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .custom_model import CustomModel


class ProfileSummary(BaseModel):
    name: str
    fingerprint: str


class ProfileListResponse(BaseModel):
    profiles: list[ProfileSummary]


class ProfileResponse(BaseModel):
    name: str
    fingerprint: str
    custom_model: CustomModel


class MergeResponse(BaseModel):
    profile: str
    fingerprint: str
    cache_key: str
    cached: bool
    custom_model: CustomModel


class CacheClearResponse(BaseModel):
    cleared: int


class ErrorResponse(BaseModel):
    detail: str
    reason_code: str
    details: dict[str, Any] = Field(default_factory=dict)
