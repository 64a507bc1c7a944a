"""
Caching module for the Byte Savings Backend
Memoizes computed artifacts (dependency graph, simulator, processed navigation)
so audits of the same page compute them once
"""

import hashlib
import json
from typing import Any, Callable, Optional, TypeVar
from collections import OrderedDict
import logging
import threading

from pydantic import BaseModel

from byte_savings.types import CacheStatsDict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def hash_inputs(*inputs: Optional[BaseModel]) -> str:
    """
    Generate a deterministic hash of pydantic inputs

    Args:
        inputs: Models (or None) the computed artifact depends on

    Returns:
        Hexadecimal SHA256 string
    """
    payload = [
        item.model_dump(mode="json") if item is not None else None
        for item in inputs
    ]
    data = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class ComputedArtifactCache:
    """
    Thread-safe LRU cache of computed artifacts

    Keys combine an artifact name with a hash of its inputs. The first request
    computes the value, later ones read it back.
    """

    def __init__(self, max_size: int = 50):
        self.max_size = max_size
        self._cache: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.RLock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    @staticmethod
    def make_key(name: str, input_hash: str) -> str:
        return f"{name}:{input_hash}"

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a cached artifact

        Returns:
            The cached value, or None if not cached
        """
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                self._stats["hits"] += 1
                logger.debug(f"Cache hit: {key[:48]}...")
                return self._cache[key]
            self._stats["misses"] += 1
            logger.debug(f"Cache miss: {key[:48]}...")
            return None

    def put(self, key: str, value: Any) -> None:
        """Store an artifact, evicting the least recently used entry if full"""
        with self._lock:
            if len(self._cache) >= self.max_size and key not in self._cache:
                oldest_key, _ = self._cache.popitem(last=False)
                self._stats["evictions"] += 1
                logger.debug(f"Cache eviction: {oldest_key[:48]}...")
            self._cache[key] = value
            self._cache.move_to_end(key)

    def get_or_compute(self, name: str, input_hash: str, compute: Callable[[], T]) -> T:
        """
        Return the cached artifact or compute and store it

        Exceptions from ``compute`` propagate and nothing is cached.
        """
        key = self.make_key(name, input_hash)
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.put(key, value)
        return value

    def clear(self) -> None:
        """Clear all cached entries"""
        with self._lock:
            self._cache.clear()
            self._stats["hits"] = 0
            self._stats["misses"] = 0
            self._stats["evictions"] = 0
            logger.info("Cache cleared")

    def get_stats(self) -> CacheStatsDict:
        """
        Get cache statistics

        Returns:
            Size, limits, hit/miss/eviction counts and hit rate (percent)
        """
        with self._lock:
            total_requests = self._stats["hits"] + self._stats["misses"]
            hit_rate = (
                (self._stats["hits"] / total_requests * 100)
                if total_requests > 0
                else 0.0
            )
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "evictions": self._stats["evictions"],
                "hit_rate": round(hit_rate, 2),
            }


_artifact_cache: Optional[ComputedArtifactCache] = None
_cache_lock = threading.Lock()


def get_cache() -> ComputedArtifactCache:
    """
    Get the global computed artifact cache

    Returns:
        ComputedArtifactCache singleton
    """
    global _artifact_cache
    if _artifact_cache is None:
        with _cache_lock:
            if _artifact_cache is None:
                from byte_savings.config import get_settings
                config = get_settings()
                _artifact_cache = ComputedArtifactCache(max_size=config.cache_max_size)
                logger.info(f"Initialized artifact cache with max_size={config.cache_max_size}")
    return _artifact_cache
