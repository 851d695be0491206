from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .custom_model import KEY, CustomModel
from .logging_utils import log_event, model_fields, profile_logger
from .merge import merge_custom_models
from .merge_cache import get_cached_model, merge_cache_key, set_cached_model
from .model_errors import CustomModelError
from .settings import settings

PROFILE_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]{1,47}$")


def _bootstrap_builtin_profiles() -> dict[str, CustomModel]:
    rows: list[dict[str, Any]] = [
        {"name": "car", KEY: {}},
        {
            "name": "truck",
            KEY: {
                "distance_influence": 90,
                "max_speed_fallback": 90,
                "max_speed": [{"if": "road_class == MOTORWAY", "limit_to": 90}],
                "priority": [{"if": "road_access == DESTINATION", "multiply_by": 0.1}],
            },
        },
        {
            "name": "bike",
            KEY: {
                "max_speed_fallback": 25,
                "speed_factor": [{"if": "surface == GRAVEL", "multiply_by": 0.7}],
                "priority": [
                    {"if": "road_class == MOTORWAY", "multiply_by": 0},
                    {"else_if": "road_class == PRIMARY", "multiply_by": 0.6},
                ],
            },
        },
    ]
    return {row["name"]: CustomModel.model_validate(row[KEY]) for row in rows}


BUILTIN_PROFILES: dict[str, CustomModel] = _bootstrap_builtin_profiles()


def _validate_profile_name(name: str) -> str:
    key = str(name).strip().lower()
    if not PROFILE_NAME_RE.match(key):
        raise CustomModelError(
            reason_code="profile_invalid",
            message="profile name must match ^[a-z][a-z0-9_-]{1,47}$",
            details={"profile": name},
        )
    return key


def _load_profile_file(path: Path) -> dict[str, CustomModel]:
    if not path.exists():
        raise CustomModelError(
            reason_code="profile_unavailable",
            message=f"Profile file '{path}' does not exist.",
            details={"profiles_path": str(path)},
        )
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CustomModelError(
            reason_code="profile_invalid",
            message=f"Profile file '{path}' is not valid JSON.",
            details={"profiles_path": str(path)},
        ) from exc
    raw_profiles = payload.get("profiles") if isinstance(payload, dict) else None
    if not isinstance(raw_profiles, list):
        raise CustomModelError(
            reason_code="profile_invalid",
            message=f"Profile file '{path}' has no 'profiles' list.",
            details={"profiles_path": str(path)},
        )

    out: dict[str, CustomModel] = {}
    for raw in raw_profiles:
        if not isinstance(raw, dict) or "name" not in raw:
            raise CustomModelError(
                reason_code="profile_invalid",
                message=f"Profile file '{path}' contains an entry without a name.",
                details={"profiles_path": str(path)},
            )
        name = _validate_profile_name(raw["name"])
        if name in out:
            raise CustomModelError(
                reason_code="profile_invalid",
                message=f"Profile '{name}' is defined twice in '{path}'.",
                details={"profiles_path": str(path), "profile": name},
            )
        try:
            out[name] = CustomModel.model_validate(raw.get(KEY) or {})
        except ValidationError as exc:
            raise CustomModelError(
                reason_code="profile_invalid",
                message=f"Invalid custom model for profile '{name}'.",
                details={
                    "profiles_path": str(path),
                    "profile": name,
                    "errors": [err["msg"] for err in exc.errors()],
                },
            ) from exc
    return out


@lru_cache(maxsize=1)
def load_profiles() -> dict[str, CustomModel]:
    profiles = dict(BUILTIN_PROFILES)
    source = "builtin"
    configured = settings.profiles_path.strip()
    if configured:
        profiles.update(_load_profile_file(Path(configured).expanduser()))
        source = configured
    log_event("profiles_loaded", source=source, profile_names=sorted(profiles))
    return profiles


def list_profiles() -> list[tuple[str, CustomModel]]:
    profiles = load_profiles()
    return [(name, profiles[name]) for name in sorted(profiles)]


def resolve_profile(name: str) -> CustomModel:
    """Return the shared base model for ``name``; callers must not modify it."""
    key = (name or "").strip().lower()
    profiles = load_profiles()
    if key in profiles:
        return profiles[key]
    raise CustomModelError(
        reason_code="profile_unavailable",
        message=f"Unknown profile '{name}'.",
        details={"profile": name},
    )


def merge_with_profile(name: str, query: CustomModel) -> tuple[CustomModel, str, bool]:
    key = (name or "").strip().lower()
    base = resolve_profile(key)
    log = profile_logger(key, base)
    cache_key = merge_cache_key(key, base, query)
    cached = get_cached_model(cache_key)
    if cached is not None:
        log_event("merge_cache_hit", logger=log, cache_key=cache_key, **model_fields(query, prefix="query"))
        return cached, cache_key, True
    merged = merge_custom_models(base, query, logger=log)
    set_cached_model(key, cache_key, merged)
    return merged, cache_key, False
