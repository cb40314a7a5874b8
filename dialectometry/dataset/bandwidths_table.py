"""SQLite-backed bandwidths keyed by identification strings."""

from __future__ import annotations

import sqlite3
from decimal import Decimal
from typing import Optional

import pandas as pd

from dialectometry.types.identification import format_bandwidth, parse_bandwidth


def _ensure_schema(connection: sqlite3.Connection, table_name: str) -> None:
    connection.execute(
        f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                map_id INTEGER NOT NULL,
                weights_identification TEXT NOT NULL,
                kernel_identification TEXT NOT NULL,
                distance_identification TEXT NOT NULL,
                estimator_identification TEXT NOT NULL,
                bandwidth TEXT NOT NULL,
                PRIMARY KEY (
                    map_id,
                    weights_identification,
                    kernel_identification,
                    distance_identification,
                    estimator_identification
                )
            )
            """
    )
    connection.commit()


class BandwidthsTable:
    """Bandwidths stored as exact decimal strings.

    A stored bandwidth of zero is treated as absent.
    """

    TABLE_NAME = "bandwidths"

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        _ensure_schema(self._conn, self.TABLE_NAME)

    def find_bandwidth(
        self,
        map_id: int,
        weights_identification: str,
        kernel_identification: str,
        distance_identification: str,
        estimator_identification: str,
    ) -> Optional[Decimal]:
        row = self._conn.execute(
            f"""
            SELECT bandwidth FROM {self.TABLE_NAME}
            WHERE map_id = ? AND weights_identification = ? AND kernel_identification = ?
              AND distance_identification = ? AND estimator_identification = ?
            """,
            (
                map_id,
                weights_identification,
                kernel_identification,
                distance_identification,
                estimator_identification,
            ),
        ).fetchone()
        if row is None:
            return None
        bandwidth = parse_bandwidth(str(row["bandwidth"]))
        return bandwidth if bandwidth != 0 else None

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
        self._conn.execute(
            f"""
            INSERT OR REPLACE INTO {self.TABLE_NAME} (
                map_id,
                weights_identification,
                kernel_identification,
                distance_identification,
                estimator_identification,
                bandwidth
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                map_id,
                weights_identification,
                kernel_identification,
                distance_identification,
                estimator_identification,
                format_bandwidth(bandwidth),
            ),
        )
        self._conn.commit()

    def reset(self) -> None:
        """Reset the bandwidths table."""
        self._conn.execute(f"DELETE FROM {self.TABLE_NAME}")
        self._conn.commit()
        _ensure_schema(self._conn, self.TABLE_NAME)

    def to_df(self) -> "pd.DataFrame":
        """Convert the table to a pandas DataFrame."""
        return pd.read_sql_query(f"SELECT * FROM {self.TABLE_NAME}", self._conn)

    def __len__(self) -> int:
        row = self._conn.execute(f"SELECT COUNT(*) FROM {self.TABLE_NAME}").fetchone()
        return int(row[0]) if row else 0


__all__ = ["BandwidthsTable"]
