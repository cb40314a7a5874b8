"""Density estimation of variants at locations: kernel density estimation and raw weights."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from dialectometry.types.identification import DensityType, density_identification
from dialectometry.types.locations import LatLong, Location, Variant

from .distances import GeographicDistance
from .kernels import Kernel
from .weights import VariantWeights

logger = logging.getLogger(__name__)

EPS = 1e-8
LOCATION_COUNT_FOR_TREE = 1000


class DensityEstimation(ABC):
    """Estimates the density of a variant at a location from ``VariantWeights``."""

    @property
    @abstractmethod
    def identification(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def estimate_variants(
        self,
        weights: VariantWeights,
        variants: Sequence[Variant],
        location: Location,
        ignore_location: Optional[Location] = None,
    ) -> Dict[Variant, float]:
        """Densities of several variants at one location."""
        raise NotImplementedError

    @abstractmethod
    def estimate_at_latlong(
        self, weights: VariantWeights, variant: Variant, lat_long: LatLong
    ) -> float:
        """Density of a variant at an arbitrary coordinate."""
        raise NotImplementedError

    def estimate(
        self,
        weights: VariantWeights,
        variant: Variant,
        location: Location,
        ignore_location: Optional[Location] = None,
    ) -> float:
        """Density of a variant at a known location."""
        return self.estimate_variants(weights, [variant], location, ignore_location)[variant]

    def estimate_aggregated(
        self, weights: VariantWeights, variant: Variant, locations: Sequence[Location]
    ) -> float:
        """Mean density of a variant over a group of locations."""
        if not locations:
            return 0.0
        return sum(self.estimate(weights, variant, loc) for loc in locations) / len(locations)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identification!r})"


class KernelDensityEstimation(DensityEstimation):
    """Kernel-weighted relative frequency of a variant around a location.

    By default every answer counts, i.e. the estimate is
    ``sum(count * k) / sum(total * k)``. With ``ignore_frequencies`` every
    location counts once: ``sum(weight * k) / sum(k)``. Locations without
    answers are skipped. Missing precomputed distances propagate.
    """

    def __init__(
        self,
        kernel: Kernel,
        ignore_frequencies: bool = False,
        location_count_for_tree: int = LOCATION_COUNT_FOR_TREE,
    ) -> None:
        self.kernel = kernel
        self.ignore_frequencies = ignore_frequencies
        self.location_count_for_tree = location_count_for_tree

    @property
    def identification(self) -> str:
        return density_identification(DensityType.KDE, self.kernel.identification)

    def relevant_locations(
        self,
        weights: VariantWeights,
        lat_long: LatLong,
        max_distance: Optional[float] = None,
    ) -> List[Location]:
        """Locations close enough to contribute to an estimate at ``lat_long``.

        Only geographic kernels are pruned. When no location lies within the
        relevant distance, the radius doubles until one does.
        """
        if max_distance is None:
            max_distance = self.kernel.max_relevant_distance()
        if max_distance <= 0.0:
            raise ValueError("max_distance must be positive")

        all_locations = weights.locations
        distance = self.kernel.distance
        if not isinstance(distance, GeographicDistance) or not all_locations:
            return all_locations

        while True:
            if len(all_locations) >= self.location_count_for_tree:
                result = weights.location_index().within(lat_long, max_distance + EPS)
            else:
                result = [
                    loc
                    for loc in all_locations
                    if distance.distance_lat_long(loc.lat_long, lat_long) < max_distance + EPS
                ]
            if result:
                return result
            max_distance *= 2.0

    def _sums(
        self,
        weights: VariantWeights,
        variants: Sequence[Variant],
        contributions,
    ) -> Dict[Variant, float]:
        results = {variant: 0.0 for variant in variants}
        total_sum = 0.0
        for other, kernel_value in contributions:
            if self.ignore_frequencies:
                for variant in variants:
                    results[variant] += weights.weight(variant, other) * kernel_value
                total_sum += kernel_value
            else:
                for variant in variants:
                    results[variant] += weights.count(variant, other) * kernel_value
                total_sum += weights.total(other) * kernel_value

        if total_sum > 0.0:
            return {variant: value / total_sum for variant, value in results.items()}
        return {variant: 0.0 for variant in variants}

    def estimate_variants(
        self,
        weights: VariantWeights,
        variants: Sequence[Variant],
        location: Location,
        ignore_location: Optional[Location] = None,
    ) -> Dict[Variant, float]:
        def contributions():
            for other in self.relevant_locations(weights, location.lat_long):
                if ignore_location is not None and (
                    other == ignore_location or other.lat_long == location.lat_long
                ):
                    continue
                if weights.total(other) == 0:
                    continue
                yield other, self.kernel.evaluate_locations(other, location)

        return self._sums(weights, variants, contributions())

    def estimate_at_latlong(
        self, weights: VariantWeights, variant: Variant, lat_long: LatLong
    ) -> float:
        distance = self.kernel.distance

        def contributions():
            for other in self.relevant_locations(weights, lat_long):
                if weights.total(other) == 0:
                    continue
                value = distance.distance_lat_long(other.lat_long, lat_long)
                yield other, self.kernel.evaluate(value)

        return self._sums(weights, [variant], contributions())[variant]


class WeightPassthrough(DensityEstimation):
    """No smoothing: the density of a variant is its weight at the location."""

    @property
    def identification(self) -> str:
        return density_identification(DensityType.WEIGHT_PASSTHROUGH)

    def estimate_variants(
        self,
        weights: VariantWeights,
        variants: Sequence[Variant],
        location: Location,
        ignore_location: Optional[Location] = None,
    ) -> Dict[Variant, float]:
        return {variant: weights.weight(variant, location) for variant in variants}

    def estimate_at_latlong(
        self, weights: VariantWeights, variant: Variant, lat_long: LatLong
    ) -> float:
        nearest = weights.location_index().nearest(lat_long)
        if nearest is None:
            return 0.0
        return weights.weight(variant, nearest)

    def estimate_aggregated(
        self, weights: VariantWeights, variant: Variant, locations: Sequence[Location]
    ) -> float:
        occurrences = sum(weights.count(variant, loc) for loc in locations)
        total = sum(weights.total(loc) for loc in locations)
        if total == 0:
            return 0.0
        return occurrences / total


__all__ = [
    "EPS",
    "LOCATION_COUNT_FOR_TREE",
    "DensityEstimation",
    "KernelDensityEstimation",
    "WeightPassthrough",
]
