"""Radially symmetric kernel functions parameterized by a bandwidth and a distance measure."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping

from dialectometry.types.identification import (
    BandwidthLike,
    KernelType,
    kernel_identification,
    normalize_bandwidth,
)
from dialectometry.types.locations import Location

from .distances import DistanceMeasure

_SQRT_2PI = math.sqrt(2.0 * math.pi)


class Kernel(ABC):
    """Kernel with an exact decimal bandwidth.

    The bandwidth is kept as a normalized ``Decimal`` so the identification
    string is reproducible; evaluation uses the derived float.
    """

    kernel_type: KernelType

    def __init__(self, distance: DistanceMeasure, bandwidth: BandwidthLike) -> None:
        self.distance = distance
        self.bandwidth: Decimal = normalize_bandwidth(bandwidth)
        if self.bandwidth <= 0:
            raise ValueError(f"Bandwidth must be positive, got {bandwidth!r}")
        self.bandwidth_value = float(self.bandwidth)

    @property
    def identification(self) -> str:
        """``<kernel>:distances=<distance>:bandwidth=<bandwidth>``"""
        return kernel_identification(
            self.kernel_type, self.distance.identification, self.bandwidth
        )

    @property
    def type_identification(self) -> str:
        """Identification without the bandwidth, as used by estimator keys."""
        return kernel_identification(self.kernel_type, self.distance.identification)

    @abstractmethod
    def max_relevant_distance(self) -> float:
        """Distance beyond which contributions are negligible or zero."""
        raise NotImplementedError

    @abstractmethod
    def _evaluate_scaled(self, x: float) -> float:
        raise NotImplementedError

    def evaluate(self, distance: float) -> float:
        """Kernel value for a distance, scaled by the bandwidth."""
        return self._evaluate_scaled(distance / self.bandwidth_value)

    def evaluate_locations(self, location1: Location, location2: Location) -> float:
        return self.evaluate(self.distance.distance(location1, location2))

    def with_bandwidth(self, bandwidth: BandwidthLike) -> "Kernel":
        """Same kernel type and distance with another bandwidth."""
        return type(self)(self.distance, bandwidth)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Kernel):
            return NotImplemented
        return self.identification == other.identification

    def __hash__(self) -> int:
        return hash(self.identification)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identification!r})"


class GaussianKernel(Kernel):
    """Standard normal density; contributions beyond 3.09 bandwidths are ignored."""

    kernel_type = KernelType.GAUSSIAN

    def max_relevant_distance(self) -> float:
        return 3.09 * self.bandwidth_value

    def _evaluate_scaled(self, x: float) -> float:
        if math.isnan(x):
            return 0.0
        return math.exp(-0.5 * x * x) / _SQRT_2PI


class EpanechnikovKernel(Kernel):
    kernel_type = KernelType.EPANECHNIKOV

    def max_relevant_distance(self) -> float:
        return self.bandwidth_value

    def _evaluate_scaled(self, x: float) -> float:
        if not abs(x) < 1.0:
            return 0.0
        return 0.75 * (1.0 - x * x)


class K3Kernel(Kernel):
    """Triweight-like kernel ``(4/pi)(1 - x^2)^3`` with compact support."""

    kernel_type = KernelType.K3

    def max_relevant_distance(self) -> float:
        return self.bandwidth_value

    def _evaluate_scaled(self, x: float) -> float:
        if not abs(x) < 1.0:
            return 0.0
        return 4.0 / math.pi * (1.0 - x * x) ** 3


kernels: Mapping[KernelType, type[Kernel]] = {
    KernelType.GAUSSIAN: GaussianKernel,
    KernelType.EPANECHNIKOV: EpanechnikovKernel,
    KernelType.K3: K3Kernel,
}


def make_kernel(
    kernel_type: KernelType, distance: DistanceMeasure, bandwidth: BandwidthLike
) -> Kernel:
    """Instantiate the kernel class registered for ``kernel_type``."""
    return kernels[kernel_type](distance, bandwidth)


__all__ = [
    "Kernel",
    "GaussianKernel",
    "EpanechnikovKernel",
    "K3Kernel",
    "kernels",
    "make_kernel",
]
