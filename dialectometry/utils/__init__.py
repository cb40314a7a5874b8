"""Utilities: computation settings and the worker pool."""

from .config import ComputeConfig, DEFAULT_CONFIG
from .workers import work_on_items

__all__ = [
    "ComputeConfig",
    "DEFAULT_CONFIG",
    "work_on_items",
]
