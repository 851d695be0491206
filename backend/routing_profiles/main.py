from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .custom_model import CustomModel
from .logging_utils import error_fields, log_event
from .merge_cache import clear_merge_cache, merge_cache_stats
from .model_errors import ConstraintViolation, CustomModelError, normalize_reason_code
from .models import (
    CacheClearResponse,
    ErrorResponse,
    MergeResponse,
    ProfileListResponse,
    ProfileResponse,
    ProfileSummary,
)
from .profiles import list_profiles, merge_with_profile, resolve_profile

app = FastAPI(title="Routing Profiles", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: CustomModelError) -> int:
    if isinstance(exc, ConstraintViolation):
        return 400
    if exc.reason_code == "profile_unavailable":
        return 404
    return 500


@app.exception_handler(CustomModelError)
async def custom_model_error_handler(request: Request, exc: CustomModelError) -> JSONResponse:
    status_code = _status_for(exc)
    body = ErrorResponse(
        detail=exc.message,
        reason_code=normalize_reason_code(exc.reason_code),
        details=exc.details or {},
    )
    fields = {**error_fields(exc), "reason_code": body.reason_code}
    log_event("custom_model_error", path=request.url.path, status_code=status_code, **fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/profiles", response_model=ProfileListResponse)
async def get_profiles() -> ProfileListResponse:
    return ProfileListResponse(
        profiles=[ProfileSummary(name=name, fingerprint=model.fingerprint()) for name, model in list_profiles()]
    )


@app.get("/profiles/{name}", response_model=ProfileResponse)
async def get_profile(name: str) -> ProfileResponse:
    model = resolve_profile(name)
    return ProfileResponse(name=name.strip().lower(), fingerprint=model.fingerprint(), custom_model=model.deep_copy())


@app.post("/profiles/{name}/merge", response_model=MergeResponse)
async def merge_profile(name: str, query: CustomModel) -> MergeResponse:
    request_id = str(uuid.uuid4())
    t0 = time.perf_counter()

    merged, cache_key, cached = merge_with_profile(name, query)

    log_event(
        "merge_request",
        request_id=request_id,
        profile=name,
        cached=cached,
        cache_key=cache_key,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return MergeResponse(
        profile=name.strip().lower(),
        fingerprint=merged.fingerprint(),
        cache_key=cache_key,
        cached=cached,
        custom_model=merged,
    )


@app.get("/cache/stats")
async def cache_stats() -> dict[str, int | dict[str, int]]:
    return merge_cache_stats()


@app.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(profile: str | None = None) -> CacheClearResponse:
    key = profile.strip().lower() if profile else None
    return CacheClearResponse(cleared=clear_merge_cache(key))
