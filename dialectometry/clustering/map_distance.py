"""Distances between area-class maps used to cluster maps.

Both methods memoize the distance of every pair of maps per instance and
in both orders. The cached value is never invalidated, so area-class maps
must not change once a distance has been computed for them. Concurrent
computation of the same pair is possible and stores the same value.
"""

from __future__ import annotations

import logging
import math
import threading
from abc import abstractmethod
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

import numpy as np

from dialectometry.errors import LocationMismatchError
from dialectometry.maps.area_class_map import AreaClassMap
from dialectometry.maps.distances import great_circle_distance
from dialectometry.types.identification import MapDistanceType
from dialectometry.types.locations import Location, Variant

from .data import MapClusterObject
from .linkage import ObjectDistance

logger = logging.getLogger(__name__)

MapLike = Union[MapClusterObject, AreaClassMap]


def _area_class_map(obj: MapLike) -> AreaClassMap:
    if isinstance(obj, AreaClassMap):
        return obj
    return obj.area_class_map


def _check_same_locations(map1: AreaClassMap, map2: AreaClassMap) -> None:
    if set(map1.locations) != set(map2.locations):
        raise LocationMismatchError("Both maps need to have the same locations")


class MapDistance(ObjectDistance):
    """Memoized distance between two area-class maps."""

    distance_type: MapDistanceType

    def __init__(self) -> None:
        self._cache: Dict[Tuple[AreaClassMap, AreaClassMap], float] = {}

    @property
    def identification(self) -> str:
        return self.distance_type.value

    def distance(self, object1: MapLike, object2: MapLike) -> float:
        map1 = _area_class_map(object1)
        map2 = _area_class_map(object2)

        cached = self._cache.get((map1, map2))
        if cached is not None:
            return cached

        map1.build_location_density_cache()
        map2.build_location_density_cache()
        _check_same_locations(map1, map2)

        result = self._compute(map1, map2)
        self._cache[(map1, map2)] = result
        self._cache[(map2, map1)] = result
        return result

    @abstractmethod
    def _compute(self, map1: AreaClassMap, map2: AreaClassMap) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _intensity_contrasts(area_class_map: AreaClassMap) -> List[float]:
    """Local intensity contrast of every pair of locations of one map."""
    locations = area_class_map.locations
    dominant = [area_class_map.dominant_variant(loc) for loc in locations]
    density = area_class_map.variant_density

    result = []
    for i, location1 in enumerate(locations):
        dominant1 = dominant[i]
        for j in range(i + 1, len(locations)):
            location2 = locations[j]
            dominant2 = dominant[j]
            if dominant1 is None and dominant2 is None:
                result.append(0.0)
            elif dominant1 is None:
                result.append(abs(dominant2.density - density(dominant2.variant, location1)) / 2.0)
            elif dominant2 is None:
                result.append(abs(dominant1.density - density(dominant1.variant, location2)) / 2.0)
            elif dominant1.variant == dominant2.variant:
                result.append(abs(dominant1.density - dominant2.density))
            else:
                result.append(
                    abs(dominant1.density - density(dominant1.variant, location2)) / 2.0
                    + abs(dominant2.density - density(dominant2.variant, location1)) / 2.0
                )
    return result


class RelativeIntensityMethod(MapDistance):
    """Sum over all location pairs of the difference of local intensity contrasts."""

    distance_type = MapDistanceType.RELATIVE_INTENSITIES

    def _compute(self, map1: AreaClassMap, map2: AreaClassMap) -> float:
        # both maps are evaluated in the location order of the first map
        map2_view = _ReorderedMap(map2, map1.locations)
        contrasts1 = np.array(_intensity_contrasts(map1))
        contrasts2 = np.array(_intensity_contrasts(map2_view))
        return float(np.sum(np.abs(contrasts1 - contrasts2)))


class _ReorderedMap:  # pylint: disable=R0903
    """Read-only view of an area-class map with another location order."""

    def __init__(self, area_class_map: AreaClassMap, locations: Sequence[Location]) -> None:
        self.locations = list(locations)
        self.dominant_variant = area_class_map.dominant_variant
        self.variant_density = area_class_map.variant_density


def sector_boundaries(d: int) -> List[Tuple[float, float]]:
    """Unit directions ``(lat, long)`` of the boundaries of ``d`` equal sectors."""
    if d == 1:
        return []
    if d == 2:
        return [(1.0, 0.0)]
    result = []
    for i in range(d):
        cos = math.cos(2.0 * math.pi / d * i)
        sin = math.sqrt(max(1.0 - cos * cos, 0.0))
        result.append((cos, sin if i <= d / 2.0 else -sin))
    return result


def _angle(direction: Tuple[float, float], boundary: Tuple[float, float]) -> float:
    dot = direction[0] * boundary[0] + direction[1] * boundary[1]
    return math.acos(min(1.0, max(-1.0, dot)))


def locations_in_sector(
    locations: Sequence[Location],
    current: Location,
    d: int,
    sector: int,
    boundaries: Optional[Sequence[Tuple[float, float]]] = None,
) -> List[Location]:
    """Locations in sector ``sector`` of ``d`` sectors around ``current``.

    ``d == 1``: every location. ``d == 2``: sector 0 holds the locations
    strictly east of ``current``, sector 1 all others. Otherwise the
    directions are compared in degree space; a location at the same
    coordinates belongs to every sector.
    """
    if d == 1:
        return list(locations)
    if d == 2:
        if sector == 0:
            return [loc for loc in locations if loc.longitude > current.longitude]
        return [loc for loc in locations if not loc.longitude > current.longitude]

    if boundaries is None:
        boundaries = sector_boundaries(d)
    boundary1 = boundaries[sector]
    boundary2 = boundaries[(sector + 1) % d]
    angle = 2.0 * math.pi / d

    result = []
    for location in locations:
        dlat = location.latitude - current.latitude
        dlong = location.longitude - current.longitude
        norm = math.hypot(dlat, dlong)
        if norm == 0.0:
            result.append(location)
            continue
        direction = (dlat / norm, dlong / norm)
        if _angle(direction, boundary1) < angle and _angle(direction, boundary2) < angle:
            result.append(location)
    return result


def _boundary_distance(
    current: Location,
    current_variant: Optional[Variant],
    sector: Sequence[Location],
    variants: Sequence[Optional[Variant]],
) -> float:
    """Distance to the closest differing variant, or to the farthest location if all agree."""
    if all(v == variants[0] for v in variants):
        return max(
            (great_circle_distance(current.lat_long, loc.lat_long) for loc in sector), default=0.0
        )
    return min(
        great_circle_distance(current.lat_long, loc.lat_long)
        for loc, variant in zip(sector, variants)
        if variant != current_variant
    )


class SectorMethod(MapDistance):
    """Compares the distances to variant boundaries in ``d`` sectors around every location.

    The sectors are computed for the locations of the first pair of maps
    and reused; maps over other locations raise ``LocationMismatchError``.
    """

    distance_type = MapDistanceType.SECTOR_METHOD

    def __init__(self, d: int) -> None:
        super().__init__()
        if d < 1:
            raise ValueError("The number of sectors must be positive")
        self.d = d
        self._lock = threading.Lock()
        self._locations: Optional[List[Location]] = None
        self._location_set: Optional[FrozenSet[Location]] = None
        self._sectors: Dict[Location, List[List[Location]]] = {}

    def sectors(self, locations: Sequence[Location]) -> Dict[Location, List[List[Location]]]:
        """Sectors of every location, built once for the first location set."""
        with self._lock:
            if self._locations is None:
                self._locations = list(locations)
                self._location_set = frozenset(self._locations)
                boundaries = sector_boundaries(self.d)
                self._sectors = {
                    current: [
                        locations_in_sector(self._locations, current, self.d, j, boundaries)
                        for j in range(self.d)
                    ]
                    for current in self._locations
                }
        if frozenset(locations) != self._location_set:
            raise LocationMismatchError("Cached sector locations are different")
        return self._sectors

    def _boundary_distances(self, area_class_map: AreaClassMap) -> np.ndarray:
        sectors = self.sectors(area_class_map.locations)

        def variant_at(location: Location) -> Optional[Variant]:
            result = area_class_map.dominant_variant(location)
            return result.variant if result is not None else None

        values = []
        for current in self._locations:
            current_variant = variant_at(current)
            for sector in sectors[current]:
                variants = [variant_at(loc) for loc in sector]
                values.append(_boundary_distance(current, current_variant, sector, variants))
        return np.array(values)

    def _compute(self, map1: AreaClassMap, map2: AreaClassMap) -> float:
        distances1 = self._boundary_distances(map1)
        distances2 = self._boundary_distances(map2)
        return float(np.sum(np.abs(distances1 - distances2)))

    def __repr__(self) -> str:
        return f"SectorMethod({self.d})"


__all__ = [
    "MapDistance",
    "RelativeIntensityMethod",
    "SectorMethod",
    "sector_boundaries",
    "locations_in_sector",
]
