"""Errors raised by the density, bandwidth and clustering layers."""


class DialectometryError(Exception):
    """Base class for all errors of this package."""


class PrecomputedDistanceNotFoundError(DialectometryError, LookupError):
    """A precomputed distance between two locations is not available."""

    def __init__(self, distance_identification: str, location_id1: int, location_id2: int):
        super().__init__(
            f"No precomputed distance '{distance_identification}' "
            f"for locations {location_id1} and {location_id2}"
        )
        self.distance_identification = distance_identification
        self.location_id1 = location_id1
        self.location_id2 = location_id2


class LatLongNotSupportedError(DialectometryError, ValueError):
    """Arbitrary coordinates cannot be used with this distance measure."""

    def __init__(self, distance_identification: str):
        super().__init__(
            "Arbitrary geographical coordinates not supported for distance "
            f"measure '{distance_identification}'"
        )


class UnsupportedKernelError(DialectometryError, ValueError):
    """The kernel or distance measure is not supported by an estimator."""


class LocationMismatchError(DialectometryError, ValueError):
    """Two maps (or a map and a cached geometry) do not share the same locations."""


class InconsistentTableError(DialectometryError, ValueError):
    """A record store table violates one of its invariants."""


class BandwidthNotFoundError(DialectometryError, LookupError):
    """No (positive) bandwidth is stored for the requested combination."""


__all__ = [
    "DialectometryError",
    "PrecomputedDistanceNotFoundError",
    "LatLongNotSupportedError",
    "UnsupportedKernelError",
    "LocationMismatchError",
    "InconsistentTableError",
    "BandwidthNotFoundError",
]
