"""Distance measures between locations: geographic and precomputed (linguistic)."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from dialectometry.errors import (
    InconsistentTableError,
    LatLongNotSupportedError,
    PrecomputedDistanceNotFoundError,
)
from dialectometry.types.identification import (
    GEOGRAPHIC_DISTANCE,
    linguistic_distance_identification,
)
from dialectometry.types.locations import Group, LatLong, Level, Location
from dialectometry.types.stores import DistanceStore

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def _haversine(
    lat1: np.ndarray, long1: np.ndarray, lat2: np.ndarray, long2: np.ndarray
) -> np.ndarray:
    """Haversine distances in km between contiguous 1-d arrays of radians."""
    a = (
        np.sin((lat2 - lat1) / 2.0) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((long2 - long1) / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_KM * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def great_circle_distance(lat_long1: LatLong, lat_long2: LatLong) -> float:
    """Haversine distance in kilometres between two coordinates given in degrees."""
    lat1, long1, lat2, long2 = np.radians(
        [[lat_long1.latitude], [lat_long1.longitude], [lat_long2.latitude], [lat_long2.longitude]]
    )
    return float(_haversine(lat1, long1, lat2, long2)[0])


def pairwise_lat_long_distances(lat_longs: Sequence[LatLong]) -> np.ndarray:
    """Symmetric matrix of great-circle distances (km) between coordinates.

    Every entry equals ``great_circle_distance`` of the same pair exactly.
    """
    n = len(lat_longs)
    if n == 0:
        return np.zeros((0, 0))
    coords = np.radians([[ll.latitude, ll.longitude] for ll in lat_longs])
    rows, cols = np.tril_indices(n, k=-1)
    values = _haversine(
        np.ascontiguousarray(coords[rows, 0]),
        np.ascontiguousarray(coords[rows, 1]),
        np.ascontiguousarray(coords[cols, 0]),
        np.ascontiguousarray(coords[cols, 1]),
    )
    result = np.zeros((n, n))
    result[rows, cols] = values
    result[cols, rows] = values
    return result


def pairwise_great_circle_distances(locations: Sequence[Location]) -> np.ndarray:
    """Symmetric matrix of great-circle distances (km) between all locations."""
    return pairwise_lat_long_distances([loc.lat_long for loc in locations])


class _TriangularCache:
    """Packed lower-triangular matrix of distances indexed by ``id - min_id``.

    Unknown entries are NaN. Concurrent writers may compute the same entry
    twice; each entry always receives the same value.
    """

    def __init__(self, min_id: int, max_id: int) -> None:
        self.min_id = min_id
        self.size = max_id - min_id + 1
        self._values = np.full(self.size * (self.size - 1) // 2, np.nan)

    def _index(self, id1: int, id2: int) -> Optional[int]:
        i, j = id1 - self.min_id, id2 - self.min_id
        if i < j:
            i, j = j, i
        if j < 0 or i >= self.size:
            return None
        return i * (i - 1) // 2 + j

    def get(self, id1: int, id2: int) -> float:
        index = self._index(id1, id2)
        if index is None:
            return math.nan
        return float(self._values[index])

    def put(self, id1: int, id2: int, value: float) -> None:
        index = self._index(id1, id2)
        if index is not None:
            self._values[index] = value


def _id_range(ids: Iterable[int]) -> Optional[Tuple[int, int]]:
    ids = list(ids)
    if not ids:
        return None
    return min(ids), max(ids)


class DistanceMeasure(ABC):
    """Symmetric distance between two locations with ``distance(x, x) == 0``."""

    @property
    @abstractmethod
    def identification(self) -> str:
        """Identification string of this distance measure."""
        raise NotImplementedError

    @abstractmethod
    def distance(self, location1: Location, location2: Location) -> float:
        """Distance between two known locations."""
        raise NotImplementedError

    @abstractmethod
    def distance_lat_long(self, lat_long1: LatLong, lat_long2: LatLong) -> float:
        """Distance between two arbitrary coordinates."""
        raise NotImplementedError

    def pairwise(self, locations: Sequence[Location]) -> np.ndarray:
        """Symmetric matrix of distances between all given locations."""
        n = len(locations)
        result = np.zeros((n, n))
        for i in range(n):
            for j in range(i):
                result[i, j] = result[j, i] = self.distance(locations[i], locations[j])
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identification!r})"


class GeographicDistance(DistanceMeasure):
    """Great-circle distance in kilometres, optionally memoized per location pair."""

    def __init__(self, locations: Optional[Iterable[Location]] = None) -> None:
        self._cache: Optional[_TriangularCache] = None
        if locations is not None:
            id_range = _id_range(loc.id for loc in locations)
            if id_range is not None:
                self._cache = _TriangularCache(*id_range)

    @property
    def identification(self) -> str:
        return GEOGRAPHIC_DISTANCE

    def distance_lat_long(self, lat_long1: LatLong, lat_long2: LatLong) -> float:
        return great_circle_distance(lat_long1, lat_long2)

    def distance(self, location1: Location, location2: Location) -> float:
        if location1.id == location2.id:
            return 0.0
        if self._cache is None or location1.id < 1 or location2.id < 1:
            return self.distance_lat_long(location1.lat_long, location2.lat_long)

        result = self._cache.get(location1.id, location2.id)
        if math.isnan(result):
            result = self.distance_lat_long(location1.lat_long, location2.lat_long)
            self._cache.put(location1.id, location2.id, result)
        return result

    def pairwise(self, locations: Sequence[Location]) -> np.ndarray:
        return pairwise_great_circle_distances(locations)


class PrecomputedDistance(DistanceMeasure):
    """Distances loaded from a precomputed table of the record store.

    With ``use_cache`` all rows are streamed into a dense triangular cache
    during construction; otherwise every query goes to the store. A pair
    without a value raises ``PrecomputedDistanceNotFoundError``.
    """

    def __init__(
        self,
        store: DistanceStore,
        distance_identification: str,
        use_cache: bool = True,
        locations: Optional[Iterable[Location]] = None,
    ) -> None:
        self._store = store
        self._identification = distance_identification
        self._cache: Optional[_TriangularCache] = None
        if use_cache:
            self._cache = self._load_cache(locations)

    def _load_cache(
        self, locations: Optional[Iterable[Location]]
    ) -> Optional[_TriangularCache]:
        rows = self._store.iter_precomputed_distances(self._identification)
        if locations is not None:
            id_range = _id_range(loc.id for loc in locations)
        else:
            rows = list(rows)
            id_range = _id_range(
                location_id for row in rows for location_id in (row[0], row[1])
            )
        if id_range is None:
            logger.warning("No precomputed distances for '%s'", self._identification)
            return _TriangularCache(0, 0)

        cache = _TriangularCache(*id_range)
        count = 0
        for id1, id2, value in rows:
            if id1 >= id2:
                raise InconsistentTableError(
                    "Table 'location_distances' requires the smaller ID in "
                    f"location_id1 and the larger ID in location_id2 (got {id1}, {id2})"
                )
            cache.put(id1, id2, float(value))
            count += 1
        logger.debug("Loaded %d distances for '%s'", count, self._identification)
        return cache

    @property
    def identification(self) -> str:
        return self._identification

    def distance_lat_long(self, lat_long1: LatLong, lat_long2: LatLong) -> float:
        raise LatLongNotSupportedError(self._identification)

    def distance(self, location1: Location, location2: Location) -> float:
        id1, id2 = location1.id, location2.id
        if id1 == id2:
            return 0.0

        if self._cache is None:
            value = self._store.find_precomputed_distance(
                self._identification, min(id1, id2), max(id1, id2)
            )
            result = math.nan if value is None else float(value)
        else:
            result = self._cache.get(id1, id2)

        if math.isnan(result):
            raise PrecomputedDistanceNotFoundError(self._identification, id1, id2)
        return result


class LinguisticDistance(PrecomputedDistance):
    """Precomputed linguistic distance of a level and a group of maps."""

    def __init__(
        self,
        store: DistanceStore,
        level: Optional[Level] = None,
        group: Optional[Group] = None,
        use_cache: bool = True,
        locations: Optional[Iterable[Location]] = None,
    ) -> None:
        self.level = level
        self.group = group
        super().__init__(
            store,
            linguistic_distance_identification(
                level.id if level is not None else None,
                group.id if group is not None else None,
            ),
            use_cache=use_cache,
            locations=locations,
        )


__all__ = [
    "EARTH_RADIUS_KM",
    "great_circle_distance",
    "pairwise_lat_long_distances",
    "pairwise_great_circle_distances",
    "DistanceMeasure",
    "GeographicDistance",
    "PrecomputedDistance",
    "LinguisticDistance",
]
