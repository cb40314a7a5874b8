"""Tests for identification strings."""

from decimal import Decimal

import pytest

from dialectometry.types.identification import (
    DensityType,
    EstimatorType,
    KernelType,
    density_identification,
    estimator_identification,
    format_bandwidth,
    kernel_identification,
    linguistic_distance_identification,
    normalize_bandwidth,
    parse_bandwidth,
    parse_kernel_identification,
    weights_identification,
)


def test_kernel_identification_golden_strings() -> None:
    """Kernel strings are stored next to bandwidths and must not change."""
    assert kernel_identification(KernelType.GAUSSIAN, "geographic") == (
        "gaussian:distances=geographic"
    )
    assert kernel_identification(KernelType.K3, "geographic", Decimal("1.250")) == (
        "k3:distances=geographic:bandwidth=1.25"
    )
    assert kernel_identification(
        KernelType.EPANECHNIKOV, "linguistic:level_id=3:group_id=7", 100
    ) == "epanechnikov:distances=linguistic:level_id=3:group_id=7:bandwidth=100"


def test_estimator_identification_golden_strings() -> None:
    assert estimator_identification(
        EstimatorType.LIKELIHOOD_CROSS_VALIDATION, KernelType.K3, "linguistic:level_id=3"
    ) == "likelihood_cross_validation:kernel=k3:distances=linguistic:level_id=3"
    assert estimator_identification(
        EstimatorType.LEAST_SQUARES_CROSS_VALIDATION, KernelType.GAUSSIAN, "geographic"
    ) == "least_squares_cross_validation:kernel=gaussian:distances=geographic"
    assert estimator_identification(
        EstimatorType.MIN_COMPLEXITY_MAX_FIDELITY, KernelType.GAUSSIAN, "geographic"
    ) == "min_complexity_max_area_compactness:kernel=gaussian:distances=geographic"


def test_weights_and_distance_identification() -> None:
    assert weights_identification() == "default"
    assert weights_identification(2) == "default:level_id=2"
    assert linguistic_distance_identification() == "linguistic"
    assert linguistic_distance_identification(level_id=3) == "linguistic:level_id=3"
    assert linguistic_distance_identification(group_id=7) == "linguistic:group_id=7"
    assert linguistic_distance_identification(3, 7) == "linguistic:level_id=3:group_id=7"


def test_density_identification() -> None:
    assert density_identification(DensityType.KDE, "gaussian:distances=geographic:bandwidth=10") == (
        "kde:gaussian:distances=geographic:bandwidth=10"
    )
    assert density_identification(DensityType.WEIGHT_PASSTHROUGH) == "weight_passthrough"
    with pytest.raises(ValueError):
        density_identification(DensityType.KDE)


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("1.50"), "1.5"),
        (Decimal("1E+2"), "100"),
        ("0.010", "0.01"),
        (3, "3"),
        (None, "0"),
    ],
)
def test_format_bandwidth(value, expected: str) -> None:
    """Bandwidths are printed without trailing zeros and without exponent."""
    if value is None:
        assert format_bandwidth(normalize_bandwidth(None)) == expected
    else:
        assert format_bandwidth(value) == expected


def test_parse_bandwidth_rejects_malformed_input() -> None:
    assert parse_bandwidth(" 2.50 ") == Decimal("2.5")
    with pytest.raises(ValueError):
        parse_bandwidth("abc")
    with pytest.raises(ValueError):
        parse_bandwidth("NaN")


def test_parse_kernel_identification() -> None:
    assert parse_kernel_identification("gaussian:distances=geographic:bandwidth=12.5") == (
        KernelType.GAUSSIAN,
        "geographic",
        Decimal("12.5"),
    )
    assert parse_kernel_identification("k3:distances=linguistic:level_id=3:group_id=7") == (
        KernelType.K3,
        "linguistic:level_id=3:group_id=7",
        None,
    )


@pytest.mark.parametrize(
    "text",
    ["gaussian", "gaussian:geographic", "unknown:distances=geographic", "k3:distances="],
)
def test_parse_kernel_identification_invalid(text: str) -> None:
    with pytest.raises(ValueError):
        parse_kernel_identification(text)
