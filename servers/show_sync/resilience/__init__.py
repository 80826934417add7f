"""Partial-failure isolation for detail fetches and run health tracking."""

from .batching import gather_in_batches
from .health import HealthMonitor

__all__ = [
    "gather_in_batches",
    "HealthMonitor",
]
