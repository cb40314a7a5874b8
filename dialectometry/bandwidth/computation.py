"""Computing, persisting and loading bandwidths of maps."""

from __future__ import annotations

import logging
import sqlite3
import time
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from dialectometry.errors import BandwidthNotFoundError
from dialectometry.maps.distances import DistanceMeasure, GeographicDistance, LinguisticDistance
from dialectometry.maps.kernels import Kernel, make_kernel
from dialectometry.maps.weights import VariantWeights
from dialectometry.types.identification import EstimatorType, KernelType, format_bandwidth
from dialectometry.types.locations import Group, Level, MapRecord
from dialectometry.types.stores import BandwidthStore
from dialectometry.utils.config import DEFAULT_CONFIG, ComputeConfig

from .estimators import (
    BandwidthEstimator,
    LeastSquaresCrossValidation,
    LikelihoodCrossValidation,
    MinComplexityMaxFidelity,
)

if TYPE_CHECKING:
    from dialectometry.dataset.database import Database

logger = logging.getLogger(__name__)

FALLBACK_BANDWIDTH = Decimal(1)

# Bandwidth of the prototype kernels handed to estimators; never persisted.
PROTOTYPE_BANDWIDTH = Decimal(1)

BandwidthKey = Tuple[int, str, str]


def _store_key(weights: VariantWeights, estimator: BandwidthEstimator) -> Tuple[int, str, str, str, str]:
    """``(map_id, weights, kernel, distance, estimator)`` as stored in the bandwidths table."""
    return (
        weights.map_record.id,
        weights.identification,
        estimator.kernel.kernel_type.value,
        estimator.distance.identification,
        estimator.estimator_type.value,
    )


def compute_bandwidth(weights: VariantWeights, estimator: BandwidthEstimator) -> Decimal:
    """Estimated bandwidth, or 1 if the estimator finds none.

    No bandwidth is found e.g. if only one variant occurs on this level, so
    the maximal linguistic distance is zero.
    """
    bandwidth = estimator.find_bandwidth(weights)
    if bandwidth is None:
        logger.warning(
            "No bandwidth found for map '%s' (%s, %s), using %s",
            weights.map_record.name,
            weights.identification,
            estimator.identification,
            FALLBACK_BANDWIDTH,
        )
        return FALLBACK_BANDWIDTH
    return bandwidth


def compute_and_save_bandwidth(
    weights: VariantWeights, estimator: BandwidthEstimator, store: BandwidthStore
) -> Decimal:
    """Compute a bandwidth and store it. A failed save is logged, the value is still returned."""
    bandwidth = compute_bandwidth(weights, estimator)
    try:
        store.save_bandwidth(*_store_key(weights, estimator), bandwidth)
    except sqlite3.Error:
        logger.exception(
            "Could not save bandwidth %s for map '%s'",
            format_bandwidth(bandwidth),
            weights.map_record.name,
        )
    return bandwidth


def find_or_compute_and_save_bandwidth(
    weights: VariantWeights,
    estimator: BandwidthEstimator,
    store: BandwidthStore,
    recompute: bool = False,
) -> Decimal:
    """Stored bandwidth if present (and not ``recompute``), else compute and save it."""
    logger.info(
        "Map: %s | Weights: %s | Estimator: %s",
        weights.map_record.name,
        weights.identification,
        estimator.identification,
    )
    stored = store.find_bandwidth(*_store_key(weights, estimator))
    if stored is not None and stored != 0 and not recompute:
        logger.info("Result: %s (already stored, skipping)", format_bandwidth(stored))
        return stored

    start = time.perf_counter()
    bandwidth = compute_and_save_bandwidth(weights, estimator, store)
    logger.info(
        "Result: %s (%.0f ms)", format_bandwidth(bandwidth), (time.perf_counter() - start) * 1000.0
    )
    return bandwidth


def compute_bandwidths(
    database: "Database",
    estimators: Sequence[BandwidthEstimator],
    maps: Optional[Sequence[MapRecord]] = None,
    levels: Optional[Sequence[Level]] = None,
    only_contained: bool = True,
    recompute: bool = False,
) -> Dict[BandwidthKey, Decimal]:
    """Bandwidths for every map, level and estimator.

    Estimators with a linguistic distance only run for the level of that
    distance and, with ``only_contained``, for maps of its group. Without
    levels the unaggregated weights are used. A failing item is logged and
    the batch continues.

    Returns ``(map_id, weights identification, estimator identification) -> bandwidth``.
    """
    if maps is None:
        maps = database.maps.get_maps()
    if levels is None:
        levels = database.maps.get_levels()

    group_maps: Dict[int, set] = {}
    results: Dict[BandwidthKey, Decimal] = {}

    for map_record in maps:
        base_weights = VariantWeights.from_store(database, map_record)
        weights_list = [base_weights.with_level(database, level) for level in levels] or [base_weights]

        for weights in weights_list:
            for estimator in estimators:
                distance = estimator.distance
                if isinstance(distance, LinguisticDistance):
                    if distance.level is not None and distance.level != weights.level:
                        continue
                    group = distance.group
                    if only_contained and group is not None:
                        if group.id not in group_maps:
                            group_maps[group.id] = {m.id for m in database.maps.get_maps(group)}
                        if map_record.id not in group_maps[group.id]:
                            continue

                try:
                    bandwidth = find_or_compute_and_save_bandwidth(
                        weights, estimator, database.bandwidths, recompute=recompute
                    )
                except Exception:  # pylint: disable=W0718
                    logger.exception(
                        "Bandwidth computation failed for map '%s' (%s, %s)",
                        map_record.name,
                        weights.identification,
                        estimator.identification,
                    )
                    continue
                results[(map_record.id, weights.identification, estimator.identification)] = bandwidth

    return results


def default_estimators(
    database: "Database",
    config: ComputeConfig = DEFAULT_CONFIG,
    groups: Optional[Sequence[Group]] = None,
    all_estimators: bool = False,
) -> List[BandwidthEstimator]:
    """The standard set of estimators.

    Geographic distance: LSCV (Gaussian), likelihood CV (Gaussian, K3) and
    min-complexity-max-fidelity (Gaussian). Linguistic distance of every
    group and level: likelihood CV and min-complexity-max-fidelity with K3.
    ``all_estimators`` adds the remaining kernel combinations.
    """
    geographic = GeographicDistance(database.enumerate_locations())

    def kernel(kernel_type: KernelType, distance: DistanceMeasure) -> Kernel:
        return make_kernel(kernel_type, distance, PROTOTYPE_BANDWIDTH)

    if groups is None:
        groups = database.maps.get_groups()
    levels = database.maps.get_levels()
    linguistic_distances = [
        LinguisticDistance(database, level=level, group=group)
        for group in groups
        for level in levels
    ]

    linguistic_likelihood = [KernelType.K3]
    linguistic_min_complexity = [KernelType.K3]
    geographic_likelihood = [KernelType.GAUSSIAN, KernelType.K3]
    geographic_min_complexity = [KernelType.GAUSSIAN]
    if all_estimators:
        linguistic_likelihood = [KernelType.GAUSSIAN, KernelType.EPANECHNIKOV, KernelType.K3]
        linguistic_min_complexity = [KernelType.GAUSSIAN, KernelType.EPANECHNIKOV, KernelType.K3]
        geographic_likelihood = list(KernelType)
        geographic_min_complexity = list(KernelType)

    result: List[BandwidthEstimator] = [
        LeastSquaresCrossValidation(kernel(KernelType.GAUSSIAN, geographic), config)
    ]
    result.extend(LikelihoodCrossValidation(kernel(k, geographic), config) for k in geographic_likelihood)
    result.extend(
        LikelihoodCrossValidation(kernel(k, d), config)
        for k in linguistic_likelihood
        for d in linguistic_distances
    )
    result.extend(
        MinComplexityMaxFidelity(kernel(k, geographic), config) for k in geographic_min_complexity
    )
    result.extend(
        MinComplexityMaxFidelity(kernel(k, d), config)
        for k in linguistic_min_complexity
        for d in linguistic_distances
    )
    return result


def kernel_from_store(
    store: BandwidthStore,
    weights: VariantWeights,
    kernel_type: KernelType,
    distance: DistanceMeasure,
    estimator_type: EstimatorType,
) -> Kernel:
    """Kernel with the bandwidth stored for a map, weights and estimator."""
    bandwidth = store.find_bandwidth(
        weights.map_record.id,
        weights.identification,
        kernel_type.value,
        distance.identification,
        estimator_type.value,
    )
    if bandwidth is None or bandwidth == 0:
        raise BandwidthNotFoundError(
            f"No bandwidth stored for map '{weights.map_record.name}' "
            f"({weights.identification}, {kernel_type.value}, "
            f"{distance.identification}, {estimator_type.value})"
        )
    return make_kernel(kernel_type, distance, bandwidth)


__all__ = [
    "FALLBACK_BANDWIDTH",
    "compute_bandwidth",
    "compute_and_save_bandwidth",
    "find_or_compute_and_save_bandwidth",
    "compute_bandwidths",
    "default_estimators",
    "kernel_from_store",
]
