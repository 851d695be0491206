from __future__ import annotations

import time
from typing import Any

import pytest

from routing_profiles.areas import Area, render_areas
from routing_profiles.clauses import Clause
from routing_profiles.custom_model import CustomModel
from routing_profiles.merge_cache import MergeCacheStore, clear_merge_cache, merge_cache_key
from routing_profiles.profiles import load_profiles, merge_with_profile
from routing_profiles.settings import settings


def _model(value: float) -> CustomModel:
    return CustomModel(priority=[Clause(keyword="if", condition="road_class == MOTORWAY", value=value)])


def _area(lon: float, lat: float) -> dict[str, Any]:
    ring = [[lon, lat], [lon + 0.1, lat], [lon + 0.1, lat + 0.1], [lon, lat + 0.1], [lon, lat]]
    return {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [ring]}}


@pytest.fixture
def fresh_registry(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "out_dir", str(tmp_path / "out"))
    monkeypatch.setattr(settings, "profiles_path", "")
    load_profiles.cache_clear()
    clear_merge_cache()
    yield
    load_profiles.cache_clear()
    clear_merge_cache()


def test_cache_hits_misses_and_copies() -> None:
    store = MergeCacheStore(ttl_s=60, max_entries=8)
    model = _model(0.5)

    assert store.get("missing") is None
    store.put("car", "k1", model)

    # Mutating the original after storing does not leak into the cache.
    model.priority.clear()

    first = store.get("k1")
    assert first is not None
    assert len(first.priority) == 1

    first.priority.clear()
    second = store.get("k1")
    assert second is not None
    assert len(second.priority) == 1
    assert second is not first

    stats = store.snapshot()
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["ttl_s"] == 60
    assert stats["max_entries"] == 8
    assert stats["profiles"] == {"car": 1}


def test_cache_evicts_least_recently_used() -> None:
    store = MergeCacheStore(ttl_s=60, max_entries=2)
    store.put("car", "a", _model(0.1))
    store.put("car", "b", _model(0.2))
    assert store.get("a") is not None
    store.put("car", "c", _model(0.3))

    assert store.get("b") is None
    assert store.get("a") is not None
    assert store.get("c") is not None
    assert store.snapshot()["evictions"] == 1
    assert store.clear() == 2
    assert store.snapshot()["size"] == 0


def test_cache_clear_by_profile() -> None:
    store = MergeCacheStore(ttl_s=60, max_entries=8)
    store.put("car", "c1", _model(0.1))
    store.put("car", "c2", _model(0.2))
    store.put("truck", "t1", _model(0.3))

    assert store.snapshot()["profiles"] == {"car": 2, "truck": 1}
    assert store.clear("truck") == 1
    assert store.clear("bike") == 0
    assert store.get("t1") is None
    assert store.get("c1") is not None
    assert store.snapshot()["profiles"] == {"car": 2}


def test_cache_ttl_expiry() -> None:
    store = MergeCacheStore(ttl_s=60, max_entries=4)
    store.put("car", "k", _model(0.5))
    store._ttl_s = 0
    time.sleep(0.02)
    assert store.get("k") is None
    stats = store.snapshot()
    assert stats["size"] == 0
    assert stats["expired"] == 1
    assert stats["misses"] == 1


def test_merge_cache_key_tracks_inputs() -> None:
    base = CustomModel(distance_influence=80.0)
    query = _model(0.5)

    key = merge_cache_key("car", base, query)
    assert key == merge_cache_key("car", base.deep_copy(), _model(0.5))
    assert len(key) == 64
    assert key != merge_cache_key("truck", base, query)
    assert key != merge_cache_key("car", base, _model(0.6))
    assert key != merge_cache_key("car", CustomModel(distance_influence=81.0), query)
    assert key != merge_cache_key("car", CustomModel(distance_influence=80.0, heading_penalty=1.0), query)


def test_area_names_cannot_collide_in_cache_key(fresh_registry) -> None:
    first_area, second_area = _area(13.3, 52.5), _area(2.3, 48.8)
    # A name that spells out the old "name=area, name" rendering of a two-area map.
    crafted_name = f"x={Area.model_validate(first_area)}, y"
    honest = CustomModel.model_validate({"areas": {"x": first_area, "y": second_area}})
    crafted = CustomModel.model_validate({"areas": {crafted_name: second_area}})

    assert render_areas(honest.areas) != render_areas(crafted.areas)
    base = CustomModel()
    assert merge_cache_key("car", base, honest) != merge_cache_key("car", base, crafted)

    merged, _, cached = merge_with_profile("car", honest)
    assert cached is False
    assert list(merged.areas) == ["x", "y"]

    merged, _, cached = merge_with_profile("car", crafted)
    assert cached is False
    assert list(merged.areas) == [crafted_name]
