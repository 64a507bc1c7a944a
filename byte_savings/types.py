"""
Type definitions for the Byte Savings Backend
Provides TypedDict and other type hints for structured data
"""

from typing import TypedDict, List, Dict, Any


class NodeTimingDict(TypedDict):
    """
    Simulated timing of a single graph node

    All values are milliseconds relative to navigation start.
    """
    start_time: float
    end_time: float
    duration: float


class CacheStatsDict(TypedDict):
    """
    Typed dictionary for cache statistics
    """
    size: int
    max_size: int
    hits: int
    misses: int
    evictions: int
    hit_rate: float


class ResultStoreStatsDict(TypedDict):
    """
    Typed dictionary for result store statistics
    """
    size: int
    max_size: int
    results: List[Dict[str, Any]]
