"""SQLite-backed precomputed distances between pairs of locations."""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Iterator, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


def _ensure_schema(connection: sqlite3.Connection, table_name: str) -> None:
    connection.executescript(
        f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                identification TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL DEFAULT '',
                type TEXT NOT NULL DEFAULT 'precomputed'
            );
            CREATE TABLE IF NOT EXISTS location_distances (
                distance_id INTEGER NOT NULL REFERENCES {table_name} (id),
                location_id1 INTEGER NOT NULL,
                location_id2 INTEGER NOT NULL,
                distance REAL NOT NULL,
                PRIMARY KEY (distance_id, location_id1, location_id2)
            );
            """
    )
    connection.commit()


class DistancesTable:
    """Named distance measures with one row per pair of locations.

    Pairs are stored with ``location_id1 < location_id2``.
    """

    TABLE_NAME = "distances"

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        _ensure_schema(self._conn, self.TABLE_NAME)

    def find_distance_id(self, distance_identification: str) -> Optional[int]:
        row = self._conn.execute(
            f"SELECT id FROM {self.TABLE_NAME} WHERE identification = ?",
            (distance_identification,),
        ).fetchone()
        return int(row["id"]) if row else None

    def find_precomputed_distance(
        self, distance_identification: str, location_id1: int, location_id2: int
    ) -> Optional[float]:
        row = self._conn.execute(
            f"""
            SELECT ld.distance FROM location_distances AS ld
            JOIN {self.TABLE_NAME} AS d ON d.id = ld.distance_id
            WHERE d.identification = ? AND ld.location_id1 = ? AND ld.location_id2 = ?
            """,
            (distance_identification, location_id1, location_id2),
        ).fetchone()
        return float(row["distance"]) if row else None

    def iter_precomputed_distances(
        self, distance_identification: str
    ) -> Iterator[Tuple[int, int, float]]:
        """Yield ``(location_id1, location_id2, distance)`` rows as stored."""
        cursor = self._conn.execute(
            f"""
            SELECT ld.location_id1, ld.location_id2, ld.distance FROM location_distances AS ld
            JOIN {self.TABLE_NAME} AS d ON d.id = ld.distance_id
            WHERE d.identification = ?
            ORDER BY ld.location_id1, ld.location_id2
            """,
            (distance_identification,),
        )
        for row in cursor:
            yield int(row[0]), int(row[1]), float(row[2])

    def save_distances(
        self,
        distance_identification: str,
        name: str,
        rows: Iterable[Tuple[int, int, float]],
        distance_type: str = "precomputed",
    ) -> int:
        """Replace all rows stored under ``distance_identification``.

        Pairs are normalized so that the smaller location id comes first.
        Returns the number of rows written.
        """
        # Upsert the distance measure
        self._conn.execute(
            f"""
            INSERT INTO {self.TABLE_NAME} (identification, name, type) VALUES (?, ?, ?)
            ON CONFLICT (identification) DO UPDATE SET name = excluded.name, type = excluded.type
            """,
            (distance_identification, name, distance_type),
        )
        distance_id = self.find_distance_id(distance_identification)

        # Replace the rows of that distance measure
        self._conn.execute(
            "DELETE FROM location_distances WHERE distance_id = ?", (distance_id,)
        )
        values = [
            (distance_id, min(id1, id2), max(id1, id2), float(value))
            for id1, id2, value in rows
            if id1 != id2
        ]
        self._conn.executemany(
            """
            INSERT OR REPLACE INTO location_distances
                (distance_id, location_id1, location_id2, distance)
            VALUES (?, ?, ?, ?)
            """,
            values,
        )
        self._conn.commit()
        logger.debug("Stored %d rows for distance '%s'", len(values), distance_identification)
        return len(values)

    def reset(self) -> None:
        """Reset the distances tables."""
        self._conn.execute("DELETE FROM location_distances")
        self._conn.execute(f"DELETE FROM {self.TABLE_NAME}")
        self._conn.commit()
        _ensure_schema(self._conn, self.TABLE_NAME)

    def to_df(self) -> "pd.DataFrame":
        """Convert the stored distances to a pandas DataFrame."""
        query = f"""
            SELECT d.identification, d.name, ld.location_id1, ld.location_id2, ld.distance
            FROM location_distances AS ld
            JOIN {self.TABLE_NAME} AS d ON d.id = ld.distance_id
            """
        return pd.read_sql_query(query, self._conn)

    def __len__(self) -> int:
        row = self._conn.execute(f"SELECT COUNT(*) FROM {self.TABLE_NAME}").fetchone()
        return int(row[0]) if row else 0


__all__ = ["DistancesTable"]
