"""Relative frequencies of variants per location, with level aggregation."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np
from sklearn.neighbors import BallTree

from dialectometry.types.identification import DEFAULT_WEIGHTS, weights_identification
from dialectometry.types.locations import LatLong, Level, Location, MapRecord, Variant
from dialectometry.types.stores import AnswerStore

from .distances import EARTH_RADIUS_KM

logger = logging.getLogger(__name__)


class LocationIndex:
    """Haversine ``BallTree`` over a fixed list of locations."""

    def __init__(self, locations: Sequence[Location]) -> None:
        self.locations = list(locations)
        self._tree: Optional[BallTree] = None
        if self.locations:
            coords = np.radians([[loc.latitude, loc.longitude] for loc in self.locations])
            self._tree = BallTree(coords, metric="haversine")

    @staticmethod
    def _query_point(lat_long: LatLong) -> np.ndarray:
        return np.radians([[lat_long.latitude, lat_long.longitude]])

    def within(self, lat_long: LatLong, radius_km: float) -> List[Location]:
        """Locations within ``radius_km`` of a coordinate, in index order."""
        if self._tree is None:
            return []
        indices = self._tree.query_radius(
            self._query_point(lat_long), r=radius_km / EARTH_RADIUS_KM
        )[0]
        return [self.locations[i] for i in sorted(indices)]

    def nearest(self, lat_long: LatLong) -> Optional[Location]:
        if self._tree is None:
            return None
        _, indices = self._tree.query(self._query_point(lat_long), k=1)
        return self.locations[int(indices[0][0])]


class VariantWeights:
    """Answer counts per (location, variant) of one map.

    A variant entry exists for a location only if its count is positive.
    Locations added by ``enforce_location`` have no answers and a total of 0.
    Apart from that, instances are not modified after construction.
    """

    def __init__(
        self,
        map_record: MapRecord,
        counts: Mapping[Location, Mapping[Variant, int]],
        identification: str = DEFAULT_WEIGHTS,
        level: Optional[Level] = None,
    ) -> None:
        self.map_record = map_record
        self.identification = identification
        self.level = level

        self._counts: Dict[Location, Dict[Variant, int]] = {}
        self._totals: Dict[Location, int] = {}
        for location in sorted(counts, key=lambda loc: loc.id):
            at_location = {v: int(n) for v, n in counts[location].items() if n > 0}
            self._counts[location] = dict(sorted(at_location.items(), key=lambda kv: kv[0].id))
            self._totals[location] = sum(at_location.values())

        all_variants = {v for at_location in self._counts.values() for v in at_location}
        self._variants = sorted(all_variants, key=lambda v: v.id)

        self._lock = threading.Lock()
        self._index: Optional[LocationIndex] = None

    @classmethod
    def from_answers(
        cls,
        map_record: MapRecord,
        answers: Iterable[Tuple[Location, Variant, int]],
    ) -> "VariantWeights":
        """Sum ``(location, variant, count)`` triples. Locations without answers are dropped."""
        counts: Dict[Location, Dict[Variant, int]] = defaultdict(lambda: defaultdict(int))
        for location, variant, count in answers:
            if count > 0:
                counts[location][variant] += count
        return cls(map_record, counts)

    @classmethod
    def from_store(cls, store: AnswerStore, map_record: MapRecord) -> "VariantWeights":
        return cls.from_answers(map_record, store.enumerate_answers(map_record))

    def with_level(self, store: AnswerStore, level: Level) -> "VariantWeights":
        """Aggregate these weights with the mapping table of ``level`` from the store."""
        return aggregate_by_level(self, level, store.level_mapping(self.map_record, level))

    @property
    def locations(self) -> List[Location]:
        """All locations, ordered by id."""
        return list(self._totals)

    @property
    def variants(self) -> List[Variant]:
        """All variants with at least one answer, ordered by id."""
        return list(self._variants)

    def variants_at_location(self, location: Location) -> List[Variant]:
        return list(self._counts.get(location, ()))

    def count(self, variant: Variant, location: Location) -> int:
        return self._counts.get(location, {}).get(variant, 0)

    def total(self, location: Location) -> int:
        return self._totals.get(location, 0)

    def weight(self, variant: Variant, location: Location) -> float:
        """Relative frequency of ``variant`` at ``location`` (0 if absent)."""
        n = self.count(variant, location)
        if n == 0:
            return 0.0
        return n / self._totals[location]

    def enforce_location(self, location: Location) -> bool:
        """Add an empty location, keeping the id order. Returns ``True`` if it was missing."""
        with self._lock:
            if location in self._totals:
                return False
            last_id = next(reversed(self._totals)).id if self._totals else None
            self._counts[location] = {}
            self._totals[location] = 0
            if last_id is not None and location.id < last_id:
                order = sorted(self._totals, key=lambda loc: loc.id)
                self._counts = {loc: self._counts[loc] for loc in order}
                self._totals = {loc: self._totals[loc] for loc in order}
            self._index = None
            return True

    def enforce_locations(self, locations: Iterable[Location]) -> bool:
        changed = False
        for location in locations:
            if self.enforce_location(location):
                changed = True
        return changed

    def location_index(self) -> LocationIndex:
        """Spatial index over all locations, built on first use."""
        with self._lock:
            if self._index is None:
                self._index = LocationIndex(self.locations)
            return self._index

    def __contains__(self, location: object) -> bool:
        return location in self._totals

    def __repr__(self) -> str:
        return (
            f"VariantWeights(map={self.map_record.name!r}, "
            f"identification={self.identification!r}, locations={len(self._totals)})"
        )


def aggregate_by_level(
    weights: VariantWeights,
    level: Level,
    mapping: Mapping[Variant, Sequence[Optional[Variant]]],
) -> VariantWeights:
    """Merge variants into the coarser variants of ``level``.

    Every variant is mapped to each of its target variants; a ``None``
    target discards the answers, a variant without mapping is kept as is.
    """
    counts: Dict[Location, Dict[Variant, int]] = defaultdict(lambda: defaultdict(int))
    for variant in weights.variants:
        targets = mapping.get(variant)
        if targets is None:
            targets = [variant]
        for target in targets:
            if target is None:
                continue
            for location in weights.locations:
                n = weights.count(variant, location)
                if n > 0:
                    counts[location][target] += n

    return VariantWeights(
        weights.map_record,
        counts,
        identification=weights_identification(level.id, base=weights.identification),
        level=level,
    )


__all__ = ["LocationIndex", "VariantWeights", "aggregate_by_level"]
