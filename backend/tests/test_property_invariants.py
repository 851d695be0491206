from __future__ import annotations

import random

from routing_profiles.areas import Area
from routing_profiles.clauses import Clause
from routing_profiles.custom_model import DEFAULT_D_I, CustomModel
from routing_profiles.merge import DISTANCE_INFLUENCE_TOLERANCE, merge_custom_models
from routing_profiles.model_errors import ConstraintViolation


def _random_clauses(rng: random.Random, *, max_value: float) -> list[Clause]:
    out: list[Clause] = []
    for idx in range(rng.randint(0, 4)):
        out.append(
            Clause(
                keyword="if" if idx == 0 else "else_if",
                condition=f"road_class == C{rng.randint(0, 9)}",
                value=round(rng.uniform(0.0, max_value), 3),
            )
        )
    return out


def _random_areas(rng: random.Random) -> dict[str, Area]:
    out: dict[str, Area] = {}
    for _ in range(rng.randint(0, 3)):
        lon = round(rng.uniform(-10.0, 10.0), 3)
        lat = round(rng.uniform(40.0, 60.0), 3)
        ring = [[lon, lat], [lon + 0.05, lat], [lon + 0.05, lat + 0.05], [lon, lat]]
        out[f"zone{rng.randint(0, 6)}"] = Area(geometry={"type": "Polygon", "coordinates": [ring]})
    return out


def _random_model(rng: random.Random, *, max_factor: float) -> CustomModel:
    return CustomModel(
        distance_influence=rng.choice([DEFAULT_D_I, round(rng.uniform(0.0, 200.0), 2)]),
        max_speed_fallback=rng.choice([None, round(rng.uniform(10.0, 130.0), 1)]),
        speed_factor=_random_clauses(rng, max_value=max_factor),
        max_speed=_random_clauses(rng, max_value=140.0),
        priority=_random_clauses(rng, max_value=max_factor),
        areas=_random_areas(rng),
    )


def test_deep_copy_randomized_invariants() -> None:
    rng = random.Random(20260212)

    for _ in range(40):
        model = _random_model(rng, max_factor=2.0)
        before = model.fingerprint()
        copied = model.deep_copy()
        assert copied.fingerprint() == before

        copied.priority.append(Clause(keyword="else", value=0.5))
        copied.max_speed.clear()
        copied.areas["extra_zone"] = Area(
            geometry={"type": "Polygon", "coordinates": [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.0]]]}
        )
        assert model.fingerprint() == before
        assert model.fingerprint() == model.fingerprint()


def test_merge_randomized_invariants() -> None:
    rng = random.Random(42)
    accepted = 0
    rejected = 0

    for _ in range(300):
        base = _random_model(rng, max_factor=1.5)
        query = _random_model(rng, max_factor=1.2)
        base_before = base.fingerprint()
        query_before = query.fingerprint()

        try:
            merged = merge_custom_models(base, query)
        except ConstraintViolation:
            rejected += 1
            assert base.fingerprint() == base_before
            assert query.fingerprint() == query_before
            continue

        accepted += 1
        assert base.fingerprint() == base_before
        assert query.fingerprint() == query_before

        assert merged.distance_influence >= base.distance_influence
        if abs(query.distance_influence - DEFAULT_D_I) <= DISTANCE_INFLUENCE_TOLERANCE:
            assert merged.distance_influence == base.distance_influence
        if base.max_speed_fallback is not None:
            assert merged.max_speed_fallback is not None
            assert merged.max_speed_fallback >= base.max_speed_fallback

        assert merged.speed_factor == base.speed_factor + query.speed_factor
        assert merged.max_speed == base.max_speed + query.max_speed
        assert merged.priority == base.priority + query.priority
        assert all(c.value <= 1.0 for c in query.priority + query.speed_factor)
        assert set(merged.areas) == set(base.areas) | set(query.areas)
        assert not set(base.areas) & set(query.areas)

        assert merge_custom_models(merged, CustomModel()).fingerprint() == merged.fingerprint()

    assert accepted > 0
    assert rejected > 0
