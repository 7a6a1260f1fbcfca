"""Fallback pools serving every key the snapshot does not own."""

from .base import CachePool, ComputingPool, compute_or_get
from .mapping import MappingPool
from .memory import CacheMetrics, MemoryPool, TelemetryCallback, default_size_estimator

__all__ = [
    "CacheMetrics",
    "CachePool",
    "ComputingPool",
    "MappingPool",
    "MemoryPool",
    "TelemetryCallback",
    "compute_or_get",
    "default_size_estimator",
]
