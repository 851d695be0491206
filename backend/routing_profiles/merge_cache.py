from __future__ import annotations

import hashlib
import time
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from threading import Lock

from .custom_model import CustomModel
from .settings import settings


@dataclass
class _CachedMerge:
    profile: str
    model: CustomModel
    stored_at: float = field(default_factory=time.monotonic)


class MergeCacheStore:
    """Merged models per (profile, base, query), bounded by age and entry count.

    Entries are private copies: callers get a fresh ``deep_copy`` on every hit
    and can mutate it freely.
    """

    def __init__(self, *, ttl_s: int, max_entries: int) -> None:
        self._ttl_s = max(1, int(ttl_s))
        self._max_entries = max(1, int(max_entries))
        self._lock = Lock()
        self._entries: OrderedDict[str, _CachedMerge] = OrderedDict()
        self._counters: Counter[str] = Counter()

    def _fresh(self, entry: _CachedMerge) -> bool:
        return (time.monotonic() - entry.stored_at) <= self._ttl_s

    def get(self, key: str) -> CustomModel | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._fresh(entry):
                del self._entries[key]
                self._counters["expired"] += 1
                entry = None
            if entry is None:
                self._counters["misses"] += 1
                return None
            self._entries.move_to_end(key)
            self._counters["hits"] += 1
            model = entry.model
        return model.deep_copy()

    def put(self, profile: str, key: str, model: CustomModel) -> None:
        entry = _CachedMerge(profile=profile, model=model.deep_copy())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
                self._counters["evictions"] += 1

    def clear(self, profile: str | None = None) -> int:
        with self._lock:
            if profile is None:
                keys = list(self._entries)
            else:
                keys = [key for key, entry in self._entries.items() if entry.profile == profile]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def snapshot(self) -> dict[str, int | dict[str, int]]:
        with self._lock:
            per_profile = Counter(entry.profile for entry in self._entries.values())
            return {
                "size": len(self._entries),
                "hits": self._counters["hits"],
                "misses": self._counters["misses"],
                "expired": self._counters["expired"],
                "evictions": self._counters["evictions"],
                "ttl_s": self._ttl_s,
                "max_entries": self._max_entries,
                "profiles": dict(sorted(per_profile.items())),
            }


MERGE_CACHE = MergeCacheStore(
    ttl_s=settings.merge_cache_ttl_s,
    max_entries=settings.merge_cache_max_entries,
)


def merge_cache_key(profile_name: str, base: CustomModel, query: CustomModel) -> str:
    # heading_penalty is not part of the fingerprint but is carried over from the base.
    parts = (
        profile_name,
        base.fingerprint(),
        repr(base.heading_penalty),
        query.fingerprint(),
    )
    return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()


def get_cached_model(key: str) -> CustomModel | None:
    return MERGE_CACHE.get(key)


def set_cached_model(profile: str, key: str, model: CustomModel) -> None:
    MERGE_CACHE.put(profile, key, model)


def clear_merge_cache(profile: str | None = None) -> int:
    return MERGE_CACHE.clear(profile)


def merge_cache_stats() -> dict[str, int | dict[str, int]]:
    return MERGE_CACHE.snapshot()
