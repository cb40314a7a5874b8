"""Narrow interfaces of the record store consumed by the core."""

from __future__ import annotations

from decimal import Decimal
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from .locations import Level, Location, MapRecord, Variant


class DistanceStore(Protocol):
    """Lookup of precomputed distances between pairs of locations."""

    def find_precomputed_distance(
        self, distance_identification: str, location_id1: int, location_id2: int
    ) -> Optional[float]:
        """Return the distance for the pair, or ``None`` if absent."""

    def iter_precomputed_distances(
        self, distance_identification: str
    ) -> Iterator[Tuple[int, int, float]]:
        """Yield ``(location_id1, location_id2, distance)`` rows of one distance."""


class BandwidthStore(Protocol):
    """Lookup and storage of bandwidths keyed by identification strings."""

    def find_bandwidth(
        self,
        map_id: int,
        weights_identification: str,
        kernel_identification: str,
        distance_identification: str,
        estimator_identification: str,
    ) -> Optional[Decimal]:
        """Return the stored bandwidth, or ``None`` if absent."""

    def save_bandwidth(
        self,
        map_id: int,
        weights_identification: str,
        kernel_identification: str,
        distance_identification: str,
        estimator_identification: str,
        bandwidth: Decimal,
    ) -> None:
        """Insert or update a bandwidth."""


class AnswerStore(Protocol):
    """Enumeration of locations, variants and answers of maps."""

    def enumerate_locations(self) -> List[Location]:
        """Return all locations."""

    def enumerate_variants(self, map_record: MapRecord) -> List[Variant]:
        """Return all variants of a map."""

    def enumerate_answers(
        self, map_record: MapRecord
    ) -> Iterable[Tuple[Location, Variant, int]]:
        """Return ``(location, variant, count)`` triples of a map."""

    def level_mapping(
        self, map_record: MapRecord, level: Level
    ) -> Dict[Variant, Sequence[Optional[Variant]]]:
        """Return ``variant -> [to_variant | None]`` mappings for a level."""


__all__ = ["DistanceStore", "BandwidthStore", "AnswerStore"]
