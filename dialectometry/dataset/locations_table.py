"""SQLite-backed collection of survey locations."""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from dialectometry.types.locations import Location

logger = logging.getLogger(__name__)


def _ensure_schema(connection: sqlite3.Connection, table_name: str) -> None:
    connection.execute(
        f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL DEFAULT '',
                latitude REAL NOT NULL,
                longitude REAL NOT NULL
            )
            """
    )
    connection.commit()


class LocationsTable:
    """SQLite-backed collection of survey locations."""

    TABLE_NAME = "locations"

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        _ensure_schema(self._conn, self.TABLE_NAME)

    def add_locations(self, locations: Sequence[Location]) -> None:
        """Insert or replace locations."""

        # Insert the locations, keeping their ids
        self._conn.executemany(
            f"""
            INSERT OR REPLACE INTO {self.TABLE_NAME} (id, name, latitude, longitude)
            VALUES (?, ?, ?, ?)
            """,
            [(loc.id, loc.name, loc.latitude, loc.longitude) for loc in locations],
        )
        self._conn.commit()

    def iter_locations(self) -> Iterator[Location]:
        """Yield all locations ordered by id."""
        cursor = self._conn.execute(
            f"SELECT id, name, latitude, longitude FROM {self.TABLE_NAME} ORDER BY id"
        )
        for row in cursor:
            yield Location(
                id=row["id"],
                latitude=row["latitude"],
                longitude=row["longitude"],
                name=row["name"],
            )

    def get_locations(self) -> List[Location]:
        return list(self.iter_locations())

    def get_location(self, location_id: int) -> Optional[Location]:
        row = self._conn.execute(
            f"SELECT id, name, latitude, longitude FROM {self.TABLE_NAME} WHERE id = ?",
            (location_id,),
        ).fetchone()
        if row is None:
            return None
        return Location(
            id=row["id"], latitude=row["latitude"], longitude=row["longitude"], name=row["name"]
        )

    def id_range(self) -> Optional[Tuple[int, int]]:
        """Smallest and largest location id, ``None`` if the table is empty."""
        row = self._conn.execute(f"SELECT MIN(id), MAX(id) FROM {self.TABLE_NAME}").fetchone()
        if row is None or row[0] is None:
            return None
        return int(row[0]), int(row[1])

    def reset(self) -> None:
        """Reset the locations table."""
        self._conn.execute(f"DELETE FROM {self.TABLE_NAME}")
        self._conn.commit()
        _ensure_schema(self._conn, self.TABLE_NAME)

    def to_df(self) -> "pd.DataFrame":
        """Convert the table to a pandas DataFrame."""
        return pd.read_sql_query(f"SELECT * FROM {self.TABLE_NAME}", self._conn)

    def __len__(self) -> int:
        row = self._conn.execute(f"SELECT COUNT(*) FROM {self.TABLE_NAME}").fetchone()
        return int(row[0]) if row else 0

    def __iter__(self) -> Iterator[Location]:
        return self.iter_locations()


__all__ = ["LocationsTable"]
