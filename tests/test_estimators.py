"""Tests for bandwidth estimators."""

import math
from decimal import Decimal
from typing import Dict, List

import pytest

from dialectometry.bandwidth.estimators import (
    LeastSquaresCrossValidation,
    LikelihoodCrossValidation,
    MinComplexityMaxFidelity,
    equidistant_steps,
    estimators,
    make_estimator,
    round_to_leading_digit,
)
from dialectometry.errors import UnsupportedKernelError
from dialectometry.maps.distances import GeographicDistance, PrecomputedDistance, great_circle_distance
from dialectometry.maps.kernels import EpanechnikovKernel, GaussianKernel, K3Kernel
from dialectometry.maps.weights import VariantWeights
from dialectometry.types.identification import EstimatorType
from dialectometry.types.locations import Location, MapRecord, Variant
from dialectometry.utils.config import ComputeConfig

CONFIG = ComputeConfig(threads=1, candidates_count=20)


def gaussian() -> GaussianKernel:
    return GaussianKernel(GeographicDistance(), 1)


@pytest.mark.parametrize(
    "value, expected",
    [(37.2, "30"), (0.46, "0.4"), (9.99, "9"), (1.0, "1"), (1234.5, "1000")],
)
def test_round_to_leading_digit(value: float, expected: str) -> None:
    assert round_to_leading_digit(value) == Decimal(expected)


def test_equidistant_steps() -> None:
    steps = equidistant_steps(Decimal(0), Decimal(1), 4)
    assert [str(s) for s in steps] == ["0.25", "0.50", "0.75", "1.00"]


def test_candidates_for_37_km() -> None:
    """A maximal distance of 37.2 km yields 100 candidates 0.3, 0.6, ..., 30.0."""
    map_record = MapRecord(1)
    variant = Variant(1, 1)
    locations = [
        Location(1, 0.0, 0.0),
        Location(2, 0.0, 0.1),
        Location(3, 0.0, 37.2 / 111.19492664455873),
    ]
    assert great_circle_distance(locations[0].lat_long, locations[2].lat_long) == pytest.approx(37.2)
    weights = VariantWeights.from_answers(map_record, [(loc, variant, 1) for loc in locations])

    candidates = LikelihoodCrossValidation(gaussian()).bandwidth_candidates(weights)
    assert len(candidates) == 100
    assert str(candidates[0]) == "0.3"
    assert str(candidates[-1]) == "30.0"
    assert candidates[1] - candidates[0] == Decimal("0.3")


def test_candidates_respect_ratio_and_minimum(weights: VariantWeights) -> None:
    """The rounded maximum is at least 1 and is scaled by the ratio."""
    config = ComputeConfig(threads=1, candidates_count=10, max_distance_ratio=Decimal("0.5"))
    candidates = LikelihoodCrossValidation(gaussian(), config).bandwidth_candidates(weights)
    # the grid spans about 18.6 km, rounded down to 10
    assert candidates[-1] == Decimal(5)
    assert len(candidates) == 10

    class Store:
        def find_precomputed_distance(self, *args):
            return None

        def iter_precomputed_distances(self, identification):
            return iter([(i, j, 0.05) for i in range(1, 7) for j in range(i + 1, 7)])

    linguistic = K3Kernel(PrecomputedDistance(Store(), "linguistic"), 1)
    candidates = LikelihoodCrossValidation(linguistic, config).bandwidth_candidates(weights)
    assert candidates[-1] == Decimal("0.5")


def test_no_candidates_without_spread(map_record: MapRecord, variants: List[Variant]) -> None:
    single = VariantWeights.from_answers(map_record, [(Location(1, 48.0, 10.0), variants[0], 2)])
    estimator = LikelihoodCrossValidation(gaussian(), CONFIG)
    assert estimator.bandwidth_candidates(single) == []
    assert estimator.find_bandwidth(single) is None


def test_identification() -> None:
    assert LikelihoodCrossValidation(K3Kernel(GeographicDistance(), 1)).identification == (
        "likelihood_cross_validation:kernel=k3:distances=geographic"
    )
    assert make_estimator(EstimatorType.LEAST_SQUARES_CROSS_VALIDATION, gaussian()).identification == (
        "least_squares_cross_validation:kernel=gaussian:distances=geographic"
    )
    assert set(estimators) == set(EstimatorType)


def test_least_squares_requires_gaussian_geographic() -> None:
    with pytest.raises(UnsupportedKernelError):
        LeastSquaresCrossValidation(EpanechnikovKernel(GeographicDistance(), 1))

    class Store:
        def iter_precomputed_distances(self, identification):
            return iter([])

    with pytest.raises(UnsupportedKernelError):
        LeastSquaresCrossValidation(GaussianKernel(PrecomputedDistance(Store(), "linguistic"), 1))


def test_likelihood_leaves_own_location_out_by_default(weights: VariantWeights) -> None:
    """With a tiny bandwidth nothing but the own location is close enough."""
    tiny = Decimal("0.001")
    leave_out = LikelihoodCrossValidation(gaussian(), CONFIG)
    assert leave_out.log_likelihood(weights, tiny) == -math.inf

    include = LikelihoodCrossValidation(
        gaussian(), ComputeConfig(threads=1, likelihood_include_own_location=True)
    )
    expected = sum(
        weights.weight(v, loc) * math.log(weights.weight(v, loc))
        for v in weights.variants
        for loc in weights.locations
        if weights.weight(v, loc) > 0
    )
    assert include.log_likelihood(weights, tiny) == pytest.approx(expected)


def test_likelihood_skips_rare_variants(
    weights: VariantWeights, map_record: MapRecord, variants: List[Variant], locations
) -> None:
    """A variant answered at too few locations does not contribute."""
    rare = Variant(3, map_record.id)
    answers = [(loc, variants[0], 1) for loc in locations] + [(locations[0], rare, 1)]
    with_rare = VariantWeights.from_answers(map_record, answers)
    # the rare variant has no support once its only location is left out
    counted = LikelihoodCrossValidation(gaussian(), CONFIG)
    assert counted.log_likelihood(with_rare, Decimal(10)) == -math.inf

    skipped = LikelihoodCrossValidation(
        gaussian(), ComputeConfig(threads=1, min_occurrence_at_location=0.2)
    )
    assert math.isfinite(skipped.log_likelihood(with_rare, Decimal(10)))


def test_likelihood_finds_a_candidate(weights: VariantWeights) -> None:
    estimator = LikelihoodCrossValidation(gaussian(), CONFIG)
    candidates = estimator.bandwidth_candidates(weights)
    bandwidth = estimator.find_bandwidth(weights)
    assert bandwidth in candidates


class ScriptedLikelihood(LikelihoodCrossValidation):
    """Likelihood values from a table, recording the evaluated bandwidths."""

    def __init__(self, values: Dict[Decimal, float], config: ComputeConfig) -> None:
        super().__init__(gaussian(), config)
        self.values = values
        self.evaluated: List[Decimal] = []

    def log_likelihood(self, weights, bandwidth):
        self.evaluated.append(bandwidth)
        return self.values[bandwidth]


def test_likelihood_stops_after_consecutive_decreases(weights: VariantWeights) -> None:
    candidates = [Decimal(i) for i in range(1, 11)]
    values = dict(zip(candidates, [1.0, 3.0, 2.0, 2.5, 2.0, 1.0, 0.0, 5.0, 6.0, 7.0]))
    estimator = ScriptedLikelihood(values, ComputeConfig(threads=1, strictly_decreasing_break=3))
    assert estimator.find_bandwidth(weights, candidates) == Decimal(2)
    assert estimator.evaluated == candidates[:7]


def test_least_squares_score_matches_direct_sum(weights: VariantWeights) -> None:
    estimator = LeastSquaresCrossValidation(gaussian(), CONFIG)
    locations = weights.locations
    distances = estimator.distance.pairwise(locations)
    h = 5.0

    expected = 0.0
    for variant in weights.variants:
        numbers = [weights.count(variant, loc) for loc in locations]
        n = sum(numbers)
        pair_sum = 0.0
        for i in range(len(locations)):
            for j in range(len(locations)):
                if i != j:
                    d = (distances[i, j] / h) ** 2
                    pair_sum += numbers[i] * numbers[j] * (math.exp(-d / 4) / 4 - math.exp(-d / 2))
        weight_sum = sum(weights.weight(variant, loc) for loc in locations)
        expected += weight_sum * (pair_sum / (n * n * h * h * math.pi) + 1 / (math.pi * n * h * h))

    assert estimator.score(weights, Decimal(5), distances) == pytest.approx(expected)


def test_least_squares_finds_a_candidate(weights: VariantWeights) -> None:
    estimator = LeastSquaresCrossValidation(gaussian(), CONFIG)
    assert estimator.find_bandwidth(weights) in estimator.bandwidth_candidates(weights)


def test_min_complexity_max_fidelity(weights: VariantWeights) -> None:
    estimator = MinComplexityMaxFidelity(gaussian(), ComputeConfig(threads=2, candidates_count=10))
    bandwidth = estimator.find_bandwidth(weights)
    assert bandwidth in estimator.bandwidth_candidates(weights)
    assert estimator.identification == (
        "min_complexity_max_area_compactness:kernel=gaussian:distances=geographic"
    )
