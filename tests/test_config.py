"""Tests for the computation settings and the script configuration."""

from decimal import Decimal
from pathlib import Path

import pytest

from dialectometry.types.identification import (
    EstimatorType,
    KernelType,
    LinkageType,
    MapDistanceType,
)
from dialectometry.utils.config import DEFAULT_CONFIG, ComputeConfig
from scripts.helpers import ClusteringConfig, ConfigType

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_defaults() -> None:
    assert DEFAULT_CONFIG.threads >= 1
    assert DEFAULT_CONFIG.candidates_count == 100
    assert DEFAULT_CONFIG.max_distance_ratio == Decimal("1.0")
    assert DEFAULT_CONFIG.min_occurrence_at_location == pytest.approx(0.1)
    assert not DEFAULT_CONFIG.likelihood_include_own_location


def test_from_dict_converts_values() -> None:
    config = ComputeConfig.from_dict(
        {
            "threads": "2",
            "max_distance_ratio": 0.5,
            "ignore_frequencies": 1,
            "min_occurrence_at_location": "0.25",
            "unknown": "ignored",
        }
    )
    assert config.threads == 2
    assert config.max_distance_ratio == Decimal("0.5")
    assert config.ignore_frequencies is True
    assert config.min_occurrence_at_location == 0.25


@pytest.mark.parametrize(
    "data",
    [
        {"threads": 0},
        {"candidates_count": 0},
        {"max_distance_ratio": 0},
        {"strictly_decreasing_break": 0},
        {"min_occurrence_at_location": 1.0},
    ],
)
def test_invalid_values(data: dict) -> None:
    with pytest.raises(AssertionError):
        ComputeConfig.from_dict(data)


def test_with_threads() -> None:
    config = ComputeConfig(threads=4, candidates_count=10)
    single = config.with_threads(1)
    assert single.threads == 1
    assert single.candidates_count == 10
    assert config.threads == 4


def test_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("compute:\n  candidates_count: 12\n", encoding="utf-8")
    assert ComputeConfig.from_yaml(path).candidates_count == 12

    path.write_text("other: 1\n", encoding="utf-8")
    assert ComputeConfig.from_yaml(path) == ComputeConfig()


def test_analysis_config() -> None:
    config = ConfigType.from_yaml(REPO_ROOT / "config" / "analysis.yaml")
    assert config.paths.dataset_path == Path("data/survey.db")
    assert config.compute.threads == 4
    assert config.clustering.kernel is KernelType.GAUSSIAN
    assert config.clustering.estimator is EstimatorType.LIKELIHOOD_CROSS_VALIDATION
    assert config.clustering.map_distance is MapDistanceType.SECTOR_METHOD
    assert config.clustering.linkage is LinkageType.WARD
    assert config.clustering.level_id is None
    assert config.clustering.covariance_max_distance is None
    assert config.clustering.grid_resolution == 1.0


def test_clustering_config_validation() -> None:
    config = ClusteringConfig.from_dict({"linkage": "single_linkage", "level_id": "2"})
    assert config.linkage is LinkageType.SINGLE
    assert config.level_id == 2
    assert config.sectors == 8

    with pytest.raises(AssertionError):
        ClusteringConfig.from_dict({"termination": "never"})
    with pytest.raises(ValueError):
        ClusteringConfig.from_dict({"kernel": "triangle"})


def test_covariance_settings() -> None:
    config = ClusteringConfig.from_dict({"covariance_max_distance": "150", "grid_resolution": 2})
    assert config.covariance_max_distance == 150
    assert config.grid_resolution == 2.0
    assert ClusteringConfig.from_dict({}).covariance_max_distance is None

    with pytest.raises(AssertionError):
        ClusteringConfig.from_dict({"covariance_max_distance": 0})
    with pytest.raises(AssertionError):
        ClusteringConfig.from_dict({"grid_resolution": 0.0})
