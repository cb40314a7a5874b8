"""Record store of a dialect survey: locations, maps, distances and bandwidths."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from dialectometry.types.locations import Level, Location, MapRecord, Variant

from .bandwidths_table import BandwidthsTable
from .distances_table import DistancesTable
from .locations_table import LocationsTable
from .maps_table import MapsTable


class Database:
    """Store the survey and the values computed from it in one SQLite database.

    Besides exposing its tables, the database answers the store lookups the
    core needs (answers, precomputed distances) by delegating to them.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the database."""
        self._conn = connection
        self.locations = LocationsTable(self._conn)
        self.maps = MapsTable(self._conn)
        self.distances = DistancesTable(self._conn)
        self.bandwidths = BandwidthsTable(self._conn)

    @classmethod
    def from_db(cls, db_path: str | Path) -> "Database":
        """Open (or create) a database file; ``:memory:`` opens an in-memory one."""
        if str(db_path) == ":memory:":
            return cls(sqlite3.connect(":memory:", check_same_thread=False))
        connection = sqlite3.connect(Path(db_path), check_same_thread=False)
        return cls(connection)

    def enumerate_locations(self) -> List[Location]:
        return self.locations.get_locations()

    def enumerate_variants(self, map_record: MapRecord) -> List[Variant]:
        return self.maps.enumerate_variants(map_record)

    def enumerate_answers(self, map_record: MapRecord) -> List[Tuple[Location, Variant, int]]:
        return self.maps.enumerate_answers(map_record)

    def level_mapping(
        self, map_record: MapRecord, level: Level
    ) -> Dict[Variant, Sequence[Optional[Variant]]]:
        return self.maps.level_mapping(map_record, level)

    def find_precomputed_distance(
        self, distance_identification: str, location_id1: int, location_id2: int
    ) -> Optional[float]:
        return self.distances.find_precomputed_distance(
            distance_identification, location_id1, location_id2
        )

    def iter_precomputed_distances(
        self, distance_identification: str
    ) -> Iterator[Tuple[int, int, float]]:
        return self.distances.iter_precomputed_distances(distance_identification)

    def reset(self) -> None:
        """Reset the database."""
        self.bandwidths.reset()
        self.distances.reset()
        self.maps.reset()
        self.locations.reset()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.commit()
            self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()


__all__ = ["Database"]
