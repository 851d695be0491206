from __future__ import annotations

import logging

from .clauses import Clause
from .custom_model import DEFAULT_D_I, CustomModel
from .logging_utils import error_fields, log_event, model_fields
from .model_errors import (
    ConstraintViolation,
    DistanceInfluenceLowered,
    DuplicateArea,
    FactorTooLarge,
    FallbackLowered,
)

# A query distance_influence this close to the default counts as "not set".
DISTANCE_INFLUENCE_TOLERANCE: float = 0.01
MAX_QUERY_FACTOR: float = 1.0


def _check_factors(field: str, clauses: list[Clause]) -> None:
    for index, clause in enumerate(clauses):
        if clause.value > MAX_QUERY_FACTOR:
            raise FactorTooLarge(field=field, index=index, value=clause.value)


def _merge(base: CustomModel, query: CustomModel) -> CustomModel:
    # Work on a copy: the base usually belongs to server configuration and is shared.
    merged = base.deep_copy()

    if query.max_speed_fallback is not None:
        if merged.max_speed_fallback is not None and merged.max_speed_fallback > query.max_speed_fallback:
            raise FallbackLowered(current=merged.max_speed_fallback, requested=query.max_speed_fallback)
        merged.max_speed_fallback = query.max_speed_fallback

    if abs(query.distance_influence - DEFAULT_D_I) > DISTANCE_INFLUENCE_TOLERANCE:
        if merged.distance_influence > query.distance_influence:
            raise DistanceInfluenceLowered(current=merged.distance_influence, requested=query.distance_influence)
        merged.distance_influence = query.distance_influence

    _check_factors("priority", query.priority)
    _check_factors("speed_factor", query.speed_factor)

    merged.max_speed.extend(query.max_speed)
    merged.speed_factor.extend(query.speed_factor)
    merged.priority.extend(query.priority)

    for area_id, area in query.areas.items():
        if area_id in merged.areas:
            raise DuplicateArea(area_id=area_id)
        merged.areas[area_id] = area

    return merged


def merge_custom_models(
    base: CustomModel,
    query: CustomModel,
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> CustomModel:
    """Layer ``query`` onto ``base`` and return a new model.

    The query may only tighten the base: raise ``max_speed_fallback`` and
    ``distance_influence``, add clauses whose priority / speed factor values are
    at most 1, and add areas under new names. Clauses are appended after the
    base clauses of the same list. Neither input is modified.

    Raises a ``ConstraintViolation`` subclass when the query would relax the base.
    """
    try:
        merged = _merge(base, query)
    except ConstraintViolation as exc:
        log_event(
            "custom_model_merge_rejected",
            level=logging.WARNING,
            logger=logger,
            **error_fields(exc),
            **model_fields(query, prefix="query"),
        )
        raise
    log_event("custom_model_merged", logger=logger, **model_fields(merged, prefix="merged"))
    return merged
