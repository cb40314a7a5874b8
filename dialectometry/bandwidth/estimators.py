"""Bandwidth estimators selecting a kernel bandwidth from a list of candidates.

Every estimator evaluates an objective per candidate, in ascending order,
and returns the optimal candidate or ``None`` if none could be selected.
The per-variant inner loop runs on the worker pool and the per-variant
values are summed after the batch has finished.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from dialectometry.errors import UnsupportedKernelError
from dialectometry.maps.area_class_map import AreaClassMap, voronoi_ridges
from dialectometry.maps.density import KernelDensityEstimation
from dialectometry.maps.distances import DistanceMeasure, GeographicDistance
from dialectometry.maps.kernels import GaussianKernel, Kernel
from dialectometry.maps.weights import VariantWeights
from dialectometry.types.identification import EstimatorType, estimator_identification
from dialectometry.types.locations import Variant
from dialectometry.utils.config import DEFAULT_CONFIG, ComputeConfig
from dialectometry.utils.workers import work_on_items

logger = logging.getLogger(__name__)


def equidistant_steps(exclusive_min: Decimal, maximum: Decimal, count: int) -> List[Decimal]:
    """``count`` equidistant values in ``(exclusive_min, maximum]``.

    All values carry the number of decimal places of the step size.
    """
    step = ((maximum - exclusive_min) / Decimal(count)).normalize()
    exponent = Decimal(1).scaleb(step.as_tuple().exponent)
    return [
        (exclusive_min + step * i).quantize(exponent, rounding=ROUND_HALF_UP)
        for i in range(1, count + 1)
    ]


def round_to_leading_digit(value: float) -> Decimal:
    """Round down to one significant digit, e.g. ``37.2 -> 30`` and ``0.46 -> 0.4``."""
    exact = Decimal(repr(value))
    exponent = exact.adjusted()
    leading = int(exact.scaleb(-exponent))
    return Decimal(leading).scaleb(exponent)


class BandwidthEstimator(ABC):  # pylint: disable=R0903
    """Base class of bandwidth estimators for one kernel type and distance."""

    estimator_type: EstimatorType

    def __init__(self, kernel: Kernel, config: ComputeConfig = DEFAULT_CONFIG) -> None:
        self.kernel = kernel
        self.config = config

    @property
    def distance(self) -> DistanceMeasure:
        return self.kernel.distance

    @property
    def identification(self) -> str:
        """``<estimator>:kernel=<kernel>:distances=<distance>``"""
        return estimator_identification(
            self.estimator_type, self.kernel.kernel_type, self.distance.identification
        )

    def bandwidth_candidates(self, weights: VariantWeights) -> List[Decimal]:
        """Equidistant candidates up to the rounded maximal distance between locations.

        The maximum is rounded down to its leading digit, raised to at least 1
        and multiplied by ``max_distance_ratio``. Returns an empty list if all
        locations coincide.
        """
        locations = weights.locations
        if len(locations) < 2:
            return []
        max_distance = float(np.max(self.distance.pairwise(locations)))
        if max_distance <= 0.0:
            return []

        maximum = round_to_leading_digit(max_distance)
        if maximum < 1:
            maximum = Decimal(1)
        maximum *= self.config.max_distance_ratio
        return equidistant_steps(Decimal(0), maximum, self.config.candidates_count)

    def find_bandwidth(
        self,
        weights: VariantWeights,
        candidates: Optional[Sequence[Decimal]] = None,
    ) -> Optional[Decimal]:
        """Best bandwidth among ``candidates`` (generated if omitted), ``None`` if none."""
        if candidates is None:
            candidates = self.bandwidth_candidates(weights)
        if not candidates:
            logger.debug("No bandwidth candidates for map '%s'", weights.map_record.name)
            return None
        return self._find_bandwidth(weights, list(candidates))

    @abstractmethod
    def _find_bandwidth(
        self, weights: VariantWeights, candidates: List[Decimal]
    ) -> Optional[Decimal]:
        raise NotImplementedError

    def _sum_over_variants(self, weights: VariantWeights, worker) -> float:
        values = work_on_items(weights.variants, worker, threads=self.config.threads)
        return sum(values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identification!r})"


class LikelihoodCrossValidation(BandwidthEstimator):
    """Maximizes the cross-validated log-likelihood of the observed weights.

    Only variants occurring at more than ``min_occurrence_at_location`` of
    the locations contribute. By default a location and every location
    sharing its coordinates are left out of its own estimate; with
    ``likelihood_include_own_location`` the estimate at a location includes
    the location itself. The search stops after
    ``strictly_decreasing_break`` consecutive decreasing values.
    """

    estimator_type = EstimatorType.LIKELIHOOD_CROSS_VALIDATION

    def log_likelihood(self, weights: VariantWeights, bandwidth: Decimal) -> float:
        """Summed log-likelihood over the frequent variants for one bandwidth."""
        kde = KernelDensityEstimation(
            self.kernel.with_bandwidth(bandwidth),
            ignore_frequencies=self.config.ignore_frequencies,
            location_count_for_tree=self.config.location_count_for_tree,
        )
        locations = weights.locations
        include_own = self.config.likelihood_include_own_location
        min_count = len(locations) * self.config.min_occurrence_at_location

        def evaluate(variant: Variant) -> float:
            occurrences = sum(1 for loc in locations if weights.count(variant, loc) > 0)
            if not occurrences > min_count:
                return 0.0
            value = 0.0
            for location in locations:
                weight = weights.weight(variant, location)
                if weight > 0.0:
                    # left out of its own estimate unless likelihood_include_own_location
                    ignore_location = None if include_own else location
                    estimate = kde.estimate(weights, variant, location, ignore_location)
                    value += weight * (math.log(estimate) if estimate > 0.0 else -math.inf)
            return value

        return self._sum_over_variants(weights, evaluate)

    def _find_bandwidth(
        self, weights: VariantWeights, candidates: List[Decimal]
    ) -> Optional[Decimal]:
        max_value = -math.inf
        prev_value = -math.inf
        best: Optional[Decimal] = None
        decreasing = 0
        for bandwidth in candidates:
            value = self.log_likelihood(weights, bandwidth)
            if value > max_value:
                max_value, best = value, bandwidth
            if value < prev_value:
                decreasing += 1
                if decreasing >= self.config.strictly_decreasing_break:
                    logger.debug("Likelihood decreasing, stopping at bandwidth %s", bandwidth)
                    break
            else:
                decreasing = 0
            prev_value = value
        return best


class LeastSquaresCrossValidation(BandwidthEstimator):
    """Minimizes the closed-form least-squares cross-validation score.

    Only defined for a Gaussian kernel with geographic distance. With
    ``ignore_frequencies`` the counts are replaced by ``round(100 * weight)``.
    """

    estimator_type = EstimatorType.LEAST_SQUARES_CROSS_VALIDATION

    def __init__(self, kernel: Kernel, config: ComputeConfig = DEFAULT_CONFIG) -> None:
        if not (
            isinstance(kernel, GaussianKernel) and isinstance(kernel.distance, GeographicDistance)
        ):
            raise UnsupportedKernelError(
                "Least-squares cross-validation requires a Gaussian kernel with "
                f"geographic distance, got {kernel.identification}"
            )
        super().__init__(kernel, config)

    def _numbers(self, weights: VariantWeights, variant: Variant) -> np.ndarray:
        locations = weights.locations
        if self.config.ignore_frequencies:
            values = np.array([weights.weight(variant, loc) for loc in locations])
            return np.floor(values * 100.0 + 0.5)
        return np.array([weights.count(variant, loc) for loc in locations], dtype=float)

    def score(
        self, weights: VariantWeights, bandwidth: Decimal, distances: np.ndarray
    ) -> float:
        """LSCV score for one bandwidth given the pairwise distance matrix."""
        h = float(bandwidth)
        scaled = (distances / h) ** 2
        kernel_matrix = np.exp(-scaled / 4.0) / 4.0 - np.exp(-scaled / 2.0)
        locations = weights.locations

        def evaluate(variant: Variant) -> float:
            numbers = self._numbers(weights, variant)
            n = float(numbers.sum())
            if n == 0.0:
                return 0.0
            # pairs of distinct locations only
            pair_sum = float(numbers @ kernel_matrix @ numbers)
            pair_sum -= float(np.sum(np.diag(kernel_matrix) * numbers * numbers))
            weight_sum = sum(weights.weight(variant, loc) for loc in locations)
            return weight_sum * (pair_sum / (n * n * h * h * math.pi) + 1.0 / (math.pi * n * h * h))

        return self._sum_over_variants(weights, evaluate)

    def _find_bandwidth(
        self, weights: VariantWeights, candidates: List[Decimal]
    ) -> Optional[Decimal]:
        distances = self.distance.pairwise(weights.locations)
        min_value = math.inf
        prev_value = math.inf
        best: Optional[Decimal] = None
        increasing = 0
        for bandwidth in candidates:
            value = self.score(weights, bandwidth, distances)
            if value < min_value:
                min_value, best = value, bandwidth
            if value > prev_value:
                increasing += 1
                if increasing >= self.config.strictly_increasing_break:
                    logger.debug("LSCV score increasing, stopping at bandwidth %s", bandwidth)
                    break
            else:
                increasing = 0
            prev_value = value
        return best


class MinComplexityMaxFidelity(BandwidthEstimator):
    """Trade-off between border length (complexity) and area compactness (fidelity).

    Picks the bandwidth maximizing
    ``(max_border - border) * sqrt(compactness - min_compactness)``.
    """

    estimator_type = EstimatorType.MIN_COMPLEXITY_MAX_FIDELITY

    def _find_bandwidth(
        self, weights: VariantWeights, candidates: List[Decimal]
    ) -> Optional[Decimal]:
        ridges = voronoi_ridges(weights.locations)

        def evaluate(bandwidth: Decimal) -> Dict[str, float]:
            kde = KernelDensityEstimation(
                self.kernel.with_bandwidth(bandwidth),
                ignore_frequencies=self.config.ignore_frequencies,
                location_count_for_tree=self.config.location_count_for_tree,
            )
            area_class_map = AreaClassMap(weights, kde)
            area_class_map.build_areas(ridges)
            return {
                "border": area_class_map.total_border_length(),
                "compactness": area_class_map.overall_area_compactness(),
            }

        results = work_on_items(candidates, evaluate, threads=self.config.threads)
        max_border = max(r["border"] for r in results)
        min_compactness = min(r["compactness"] for r in results)

        max_value = -math.inf
        best: Optional[Decimal] = None
        for bandwidth, result in zip(candidates, results):
            diff_complexity = max_border - result["border"]
            diff_fidelity = result["compactness"] - min_compactness
            value = diff_complexity * math.sqrt(max(diff_fidelity, 0.0))
            if value > max_value:
                max_value, best = value, bandwidth
        return best


estimators: Mapping[EstimatorType, type[BandwidthEstimator]] = {
    EstimatorType.LIKELIHOOD_CROSS_VALIDATION: LikelihoodCrossValidation,
    EstimatorType.LEAST_SQUARES_CROSS_VALIDATION: LeastSquaresCrossValidation,
    EstimatorType.MIN_COMPLEXITY_MAX_FIDELITY: MinComplexityMaxFidelity,
}


def make_estimator(
    estimator_type: EstimatorType, kernel: Kernel, config: ComputeConfig = DEFAULT_CONFIG
) -> BandwidthEstimator:
    """Instantiate the estimator class registered for ``estimator_type``."""
    return estimators[estimator_type](kernel, config)


__all__ = [
    "equidistant_steps",
    "round_to_leading_digit",
    "BandwidthEstimator",
    "LikelihoodCrossValidation",
    "LeastSquaresCrossValidation",
    "MinComplexityMaxFidelity",
    "estimators",
    "make_estimator",
]
