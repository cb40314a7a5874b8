"""Distances, kernels, weights, density estimation and area-class maps."""

from .area_class_map import AreaClassMap, VariantDensity, voronoi_ridges
from .density import DensityEstimation, KernelDensityEstimation, WeightPassthrough
from .distances import (
    DistanceMeasure,
    GeographicDistance,
    LinguisticDistance,
    PrecomputedDistance,
)
from .grid import RectangularGrid
from .kernels import EpanechnikovKernel, GaussianKernel, K3Kernel, Kernel, make_kernel
from .linguistic import compute_and_save_linguistic_distances, compute_linguistic_distances
from .weights import VariantWeights, aggregate_by_level

__all__ = [
    "AreaClassMap",
    "VariantDensity",
    "voronoi_ridges",
    "DensityEstimation",
    "KernelDensityEstimation",
    "WeightPassthrough",
    "DistanceMeasure",
    "GeographicDistance",
    "LinguisticDistance",
    "PrecomputedDistance",
    "RectangularGrid",
    "EpanechnikovKernel",
    "GaussianKernel",
    "K3Kernel",
    "Kernel",
    "make_kernel",
    "compute_and_save_linguistic_distances",
    "compute_linguistic_distances",
    "VariantWeights",
    "aggregate_by_level",
]
