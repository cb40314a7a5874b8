"""Common helper functions for scripts."""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from dialectometry.types.identification import (
    EstimatorType,
    KernelType,
    LinkageType,
    MapDistanceType,
)
from dialectometry.utils.config import ComputeConfig


@dataclass
class PathsConfig:
    """Configuration for path-related settings."""

    dataset_path: Path
    output_dir: Path

    @staticmethod
    def from_dict(data: dict) -> "PathsConfig":
        """Create PathsConfig from a dict (YAML section)."""
        return PathsConfig(
            dataset_path=Path(data["dataset_path"]),
            output_dir=Path(data["output_dir"]),
        )


@dataclass
class ClusteringConfig:
    """Configuration for clustering maps."""

    map_distance: MapDistanceType
    sectors: int
    linkage: LinkageType
    termination: str
    number_of_clusters: int
    variability_k: float
    covariance_max_distance: Optional[int]
    grid_resolution: float
    kernel: KernelType
    estimator: EstimatorType
    distance: str
    level_id: Optional[int]
    group_id: Optional[int]

    @staticmethod
    def from_dict(data: dict) -> "ClusteringConfig":
        """Create ClusteringConfig from a dict (YAML section)."""
        termination = str(data.get("termination", "number_of_clusters"))
        assert termination in [
            "number_of_clusters",
            "distance_variability",
        ], "Invalid termination criterion"
        sectors = int(data.get("sectors", 8))
        assert sectors > 0, "Number of sectors must be positive"
        number_of_clusters = int(data.get("number_of_clusters", 5))
        assert number_of_clusters > 0, "Number of clusters must be positive"
        covariance_max_distance = data.get("covariance_max_distance")
        if covariance_max_distance is not None:
            covariance_max_distance = int(covariance_max_distance)
            assert covariance_max_distance > 0, "Covariance max distance must be positive"
        grid_resolution = float(data.get("grid_resolution", 1.0))
        assert grid_resolution > 0.0, "Grid resolution must be positive"
        distance = str(data.get("distance", "geographic"))
        assert distance in ["geographic", "linguistic"], "Invalid distance"

        level_id = data.get("level_id")
        group_id = data.get("group_id")
        return ClusteringConfig(
            map_distance=MapDistanceType(data.get("map_distance", "sector_method")),
            sectors=sectors,
            linkage=LinkageType(data.get("linkage", "wards_method")),
            termination=termination,
            number_of_clusters=number_of_clusters,
            variability_k=float(data.get("variability_k", 1.0)),
            covariance_max_distance=covariance_max_distance,
            grid_resolution=grid_resolution,
            kernel=KernelType(data.get("kernel", "gaussian")),
            estimator=EstimatorType(data.get("estimator", "likelihood_cross_validation")),
            distance=distance,
            level_id=int(level_id) if level_id is not None else None,
            group_id=int(group_id) if group_id is not None else None,
        )


@dataclass
class ConfigType:
    """Top-level configuration for the scripts, containing subconfigs."""

    paths: PathsConfig
    clustering: ClusteringConfig
    compute: ComputeConfig

    @staticmethod
    def from_yaml(config_path: Path) -> "ConfigType":
        """Load the configuration from a YAML file and split into subconfigs."""
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}

        # Paths are flat, the other subconfigs have their own sections
        paths_config = PathsConfig.from_dict(data)
        clustering_config = ClusteringConfig.from_dict(data.get("clustering") or {})
        compute_config = ComputeConfig.from_dict(data.get("compute") or {})

        return ConfigType(
            paths=paths_config,
            clustering=clustering_config,
            compute=compute_config,
        )


@dataclass
class Args:
    """Arguments for the script."""

    config: ConfigType
    recompute: bool = False
    levels: Optional[List[int]] = None


def add_data_config_argument(parser: argparse.ArgumentParser) -> None:
    """
    Add the standard data-config-path argument to an argument parser.
    """
    parser.add_argument(
        "-d",
        "--data-config-path",
        type=Path,
        required=True,
        help="Path to the YAML data configuration file.",
    )


def add_recompute_argument(parser: argparse.ArgumentParser) -> None:
    """
    Add the recompute flag to an argument parser.
    """
    parser.add_argument(
        "--recompute",
        action="store_true",
        help="Recompute values even if they are already stored.",
    )


def add_levels_argument(parser: argparse.ArgumentParser) -> None:
    """
    Add the optional list of level ids to an argument parser.
    """
    parser.add_argument(
        "--levels",
        type=int,
        nargs="*",
        default=None,
        help="Level ids to compute (all levels if omitted).",
    )


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the scripts."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_args(description: str, get_compute_args: bool = True) -> Args:
    """
    Create an Args object with the standard data-config-path argument.
    """
    parser = argparse.ArgumentParser(description=description)
    add_data_config_argument(parser)
    if get_compute_args:
        add_recompute_argument(parser)
        add_levels_argument(parser)

    args = parser.parse_args()
    config = ConfigType.from_yaml(args.data_config_path)
    if not get_compute_args:
        return Args(config)
    return Args(config, recompute=args.recompute, levels=args.levels)


__all__ = [
    "Args",
    "ConfigType",
    "PathsConfig",
    "ClusteringConfig",
    "get_args",
    "setup_logging",
]
