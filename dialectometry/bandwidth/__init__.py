"""Bandwidth selection for kernel density estimation."""

from .computation import (
    compute_and_save_bandwidth,
    compute_bandwidth,
    compute_bandwidths,
    default_estimators,
    find_or_compute_and_save_bandwidth,
    kernel_from_store,
)
from .estimators import (
    BandwidthEstimator,
    LeastSquaresCrossValidation,
    LikelihoodCrossValidation,
    MinComplexityMaxFidelity,
    estimators,
    make_estimator,
)

__all__ = [
    "compute_and_save_bandwidth",
    "compute_bandwidth",
    "compute_bandwidths",
    "default_estimators",
    "find_or_compute_and_save_bandwidth",
    "kernel_from_store",
    "BandwidthEstimator",
    "LeastSquaresCrossValidation",
    "LikelihoodCrossValidation",
    "MinComplexityMaxFidelity",
    "estimators",
    "make_estimator",
]
