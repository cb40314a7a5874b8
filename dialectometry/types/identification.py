"""Identification strings used as lookup keys for persisted bandwidths and distances.

Every kernel, estimator, distance measure and weights pipeline is described by a
colon-delimited identification string, e.g.::

    gaussian:distances=geographic:bandwidth=1.25
    likelihood_cross_validation:kernel=k3:distances=linguistic:level_id=3:group_id=7
    default:level_id=2

The strings are stored next to computed bandwidths, so the grammar below must
stay byte-for-byte stable. Each category is a closed ``Enum`` and every string
is produced by one pure function.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Tuple, Union


class KernelType(Enum):
    """Supported kernel functions."""

    GAUSSIAN = "gaussian"
    EPANECHNIKOV = "epanechnikov"
    K3 = "k3"


class EstimatorType(Enum):
    """Supported bandwidth estimators."""

    LIKELIHOOD_CROSS_VALIDATION = "likelihood_cross_validation"
    LEAST_SQUARES_CROSS_VALIDATION = "least_squares_cross_validation"
    MIN_COMPLEXITY_MAX_FIDELITY = "min_complexity_max_area_compactness"


class DensityType(Enum):
    """Supported density estimations."""

    KDE = "kde"
    WEIGHT_PASSTHROUGH = "weight_passthrough"


class MapDistanceType(Enum):
    """Supported distances between area-class maps."""

    RELATIVE_INTENSITIES = "relative_intensities"
    SECTOR_METHOD = "sector_method"


class LinkageType(Enum):
    """Supported distances between clusters."""

    SINGLE = "single_linkage"
    COMPLETE = "complete_linkage"
    AVERAGE = "average_linkage"
    CENTROID = "centroid_method"
    WARD = "wards_method"


GEOGRAPHIC_DISTANCE = "geographic"
LINGUISTIC_DISTANCE = "linguistic"
DEFAULT_WEIGHTS = "default"

BandwidthLike = Union[Decimal, str, int, float]


def normalize_bandwidth(bandwidth: Optional[BandwidthLike]) -> Decimal:
    """Return the bandwidth as a ``Decimal`` without trailing zeros (``None`` is zero)."""
    if bandwidth is None:
        return Decimal(0)
    if not isinstance(bandwidth, Decimal):
        bandwidth = parse_bandwidth(str(bandwidth))
    return bandwidth.normalize()


def parse_bandwidth(text: str) -> Decimal:
    """Parse a bandwidth string exactly, raising ``ValueError`` for malformed input."""
    try:
        value = Decimal(text.strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid bandwidth: {text!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid bandwidth: {text!r}")
    return value.normalize()


def format_bandwidth(bandwidth: BandwidthLike) -> str:
    """Plain (non-scientific) string of a bandwidth, e.g. ``100`` or ``0.01``."""
    return format(normalize_bandwidth(bandwidth), "f")


def kernel_identification(
    kernel_type: KernelType,
    distance_identification: str,
    bandwidth: Optional[BandwidthLike] = None,
) -> str:
    """``<kernel>:distances=<distance>[:bandwidth=<bandwidth>]``"""
    result = f"{kernel_type.value}:distances={distance_identification}"
    if bandwidth is not None:
        result += f":bandwidth={format_bandwidth(bandwidth)}"
    return result


def parse_kernel_identification(
    identification: str,
) -> Tuple[KernelType, str, Optional[Decimal]]:
    """Split a kernel identification string into kernel type, distance and bandwidth."""
    kernel_str, sep, rest = identification.partition(":")
    if not sep or not rest.startswith("distances="):
        raise ValueError(f"Invalid kernel identification: {identification!r}")
    kernel_type = KernelType(kernel_str)

    rest = rest[len("distances=") :]
    bandwidth: Optional[Decimal] = None
    head, sep, tail = rest.rpartition(":bandwidth=")
    if sep:
        rest = head
        bandwidth = parse_bandwidth(tail)
    if not rest:
        raise ValueError(f"Invalid kernel identification: {identification!r}")
    return kernel_type, rest, bandwidth


def estimator_identification(
    estimator_type: EstimatorType,
    kernel_type: KernelType,
    distance_identification: str,
) -> str:
    """``<estimator>:kernel=<kernel identification without bandwidth>``"""
    kernel_str = kernel_identification(kernel_type, distance_identification)
    return f"{estimator_type.value}:kernel={kernel_str}"


def density_identification(
    density_type: DensityType, kernel_str: Optional[str] = None
) -> str:
    """``kde:<kernel identification>`` or ``weight_passthrough``."""
    if density_type is DensityType.KDE:
        if kernel_str is None:
            raise ValueError("Kernel density estimation requires a kernel identification")
        return f"{density_type.value}:{kernel_str}"
    return density_type.value


def weights_identification(
    level_id: Optional[int] = None, base: str = DEFAULT_WEIGHTS
) -> str:
    """``default`` or ``<base>:level_id=<level>`` for level-aggregated weights."""
    if level_id is None:
        return base
    return f"{base}:level_id={level_id}"


def linguistic_distance_identification(
    level_id: Optional[int] = None, group_id: Optional[int] = None
) -> str:
    """``linguistic[:level_id=<level>][:group_id=<group>]``"""
    result = LINGUISTIC_DISTANCE
    if level_id is not None:
        result += f":level_id={level_id}"
    if group_id is not None:
        result += f":group_id={group_id}"
    return result


__all__ = [
    "KernelType",
    "EstimatorType",
    "DensityType",
    "MapDistanceType",
    "LinkageType",
    "GEOGRAPHIC_DISTANCE",
    "LINGUISTIC_DISTANCE",
    "DEFAULT_WEIGHTS",
    "normalize_bandwidth",
    "parse_bandwidth",
    "format_bandwidth",
    "kernel_identification",
    "parse_kernel_identification",
    "estimator_identification",
    "density_identification",
    "weights_identification",
    "linguistic_distance_identification",
]
