"""Explicit computation settings passed to the estimation entry points."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

import yaml


def _default_threads() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ComputeConfig:
    """Settings for density estimation, bandwidth search and parallel work."""

    threads: int = _default_threads()
    candidates_count: int = 100
    max_distance_ratio: Decimal = Decimal("1.0")
    strictly_decreasing_break: int = 20
    strictly_increasing_break: int = 20
    min_occurrence_at_location: float = 0.1
    ignore_frequencies: bool = False
    likelihood_include_own_location: bool = False
    location_count_for_tree: int = 1000

    def __post_init__(self) -> None:
        assert self.threads >= 1, "Threads must be positive"
        assert self.candidates_count >= 1, "Candidates count must be positive"
        assert self.max_distance_ratio > 0, "Max distance ratio must be positive"
        assert self.strictly_decreasing_break >= 1, "Break counter must be positive"
        assert self.strictly_increasing_break >= 1, "Break counter must be positive"
        assert (
            0.0 <= self.min_occurrence_at_location < 1.0
        ), "Min occurrence must be in [0, 1)"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ComputeConfig":
        """Create a ComputeConfig from a dict (YAML section); unknown keys are ignored."""
        known = {f.name for f in fields(ComputeConfig)}
        values = {key: value for key, value in data.items() if key in known}
        if "max_distance_ratio" in values:
            values["max_distance_ratio"] = Decimal(str(values["max_distance_ratio"]))
        for key in ("ignore_frequencies", "likelihood_include_own_location"):
            if key in values:
                values[key] = bool(values[key])
        for key in (
            "threads",
            "candidates_count",
            "strictly_decreasing_break",
            "strictly_increasing_break",
            "location_count_for_tree",
        ):
            if key in values:
                values[key] = int(values[key])
        if "min_occurrence_at_location" in values:
            values["min_occurrence_at_location"] = float(
                values["min_occurrence_at_location"]
            )
        return ComputeConfig(**values)

    @staticmethod
    def from_yaml(config_path: Path, section: str = "compute") -> "ComputeConfig":
        """Load the ``compute`` section of a YAML file."""
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        return ComputeConfig.from_dict(data.get(section) or {})

    def with_threads(self, threads: int) -> "ComputeConfig":
        """Return a copy using ``threads`` workers."""
        return replace(self, threads=threads)


DEFAULT_CONFIG = ComputeConfig()


__all__ = ["ComputeConfig", "DEFAULT_CONFIG"]
