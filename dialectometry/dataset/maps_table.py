"""SQLite-backed maps with their variants, answers, levels and groups."""

from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from dialectometry.types.locations import Group, Level, Location, MapRecord, Variant

logger = logging.getLogger(__name__)


def _ensure_schema(connection: sqlite3.Connection, table_name: str) -> None:
    connection.executescript(
        f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS variants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                map_id INTEGER NOT NULL REFERENCES {table_name} (id),
                name TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS answers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                variant_id INTEGER NOT NULL REFERENCES variants (id),
                location_id INTEGER NOT NULL REFERENCES locations (id)
            );
            CREATE INDEX IF NOT EXISTS idx_answers_variant ON answers (variant_id);
            CREATE TABLE IF NOT EXISTS levels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS variant_mappings (
                variant_id INTEGER NOT NULL REFERENCES variants (id),
                level_id INTEGER NOT NULL REFERENCES levels (id),
                to_variant_id INTEGER REFERENCES variants (id)
            );
            CREATE TABLE IF NOT EXISTS groups (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS groups_maps (
                group_id INTEGER NOT NULL REFERENCES groups (id),
                map_id INTEGER NOT NULL REFERENCES {table_name} (id),
                UNIQUE (group_id, map_id)
            );
            """
    )
    connection.commit()


class MapsTable:
    """Maps of the survey together with variants, answers, levels and groups."""

    TABLE_NAME = "maps"

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        _ensure_schema(self._conn, self.TABLE_NAME)

    def add_map(self, name: str) -> MapRecord:
        cursor = self._conn.execute(f"INSERT INTO {self.TABLE_NAME} (name) VALUES (?)", (name,))
        self._conn.commit()
        return MapRecord(id=cursor.lastrowid, name=name)

    def add_variant(self, map_record: MapRecord, name: str) -> Variant:
        cursor = self._conn.execute(
            "INSERT INTO variants (map_id, name) VALUES (?, ?)", (map_record.id, name)
        )
        self._conn.commit()
        return Variant(id=cursor.lastrowid, map_id=map_record.id, name=name)

    def add_answers(self, answers: Iterable[Tuple[Location, Variant]]) -> None:
        """Insert one row per informant answer."""
        self._conn.executemany(
            "INSERT INTO answers (variant_id, location_id) VALUES (?, ?)",
            [(variant.id, location.id) for location, variant in answers],
        )
        self._conn.commit()

    def add_level(self, name: str) -> Level:
        cursor = self._conn.execute("INSERT INTO levels (name) VALUES (?)", (name,))
        self._conn.commit()
        return Level(id=cursor.lastrowid, name=name)

    def add_variant_mapping(
        self, variant: Variant, level: Level, to_variant: Optional[Variant]
    ) -> None:
        """Map ``variant`` to ``to_variant`` on ``level``; ``None`` discards its answers."""
        self._conn.execute(
            "INSERT INTO variant_mappings (variant_id, level_id, to_variant_id) VALUES (?, ?, ?)",
            (variant.id, level.id, to_variant.id if to_variant is not None else None),
        )
        self._conn.commit()

    def add_group(self, name: str, maps: Sequence[MapRecord] = ()) -> Group:
        cursor = self._conn.execute("INSERT INTO groups (name) VALUES (?)", (name,))
        group = Group(id=cursor.lastrowid, name=name)
        self._conn.executemany(
            "INSERT OR IGNORE INTO groups_maps (group_id, map_id) VALUES (?, ?)",
            [(group.id, m.id) for m in maps],
        )
        self._conn.commit()
        return group

    def get_maps(self, group: Optional[Group] = None) -> List[MapRecord]:
        """All maps ordered by id, or only those of ``group``."""
        query = f"SELECT id, name FROM {self.TABLE_NAME}"
        params: Tuple[int, ...] = ()

        # Filter by group if provided
        if group is not None:
            query += " WHERE id IN (SELECT map_id FROM groups_maps WHERE group_id = ?)"
            params = (group.id,)

        cursor = self._conn.execute(query + " ORDER BY id", params)
        return [MapRecord(id=row["id"], name=row["name"]) for row in cursor]

    def get_map(self, map_id: int) -> Optional[MapRecord]:
        row = self._conn.execute(
            f"SELECT id, name FROM {self.TABLE_NAME} WHERE id = ?", (map_id,)
        ).fetchone()
        return MapRecord(id=row["id"], name=row["name"]) if row else None

    def get_levels(self) -> List[Level]:
        cursor = self._conn.execute("SELECT id, name FROM levels ORDER BY id")
        return [Level(id=row["id"], name=row["name"]) for row in cursor]

    def get_groups(self) -> List[Group]:
        cursor = self._conn.execute("SELECT id, name FROM groups ORDER BY id")
        return [Group(id=row["id"], name=row["name"]) for row in cursor]

    def enumerate_variants(self, map_record: MapRecord) -> List[Variant]:
        cursor = self._conn.execute(
            "SELECT id, map_id, name FROM variants WHERE map_id = ? ORDER BY id",
            (map_record.id,),
        )
        return [Variant(id=row["id"], map_id=row["map_id"], name=row["name"]) for row in cursor]

    def enumerate_answers(
        self, map_record: MapRecord
    ) -> List[Tuple[Location, Variant, int]]:
        """``(location, variant, count)`` of a map, counting the answer rows."""
        cursor = self._conn.execute(
            """
            SELECT l.id AS location_id, l.name AS location_name, l.latitude, l.longitude,
                   v.id AS variant_id, v.map_id, v.name AS variant_name,
                   COUNT(*) AS count
            FROM answers AS a
            JOIN variants AS v ON v.id = a.variant_id
            JOIN locations AS l ON l.id = a.location_id
            WHERE v.map_id = ?
            GROUP BY l.id, v.id
            ORDER BY l.id, v.id
            """,
            (map_record.id,),
        )
        return [
            (
                Location(
                    id=row["location_id"],
                    latitude=row["latitude"],
                    longitude=row["longitude"],
                    name=row["location_name"],
                ),
                Variant(id=row["variant_id"], map_id=row["map_id"], name=row["variant_name"]),
                int(row["count"]),
            )
            for row in cursor
        ]

    def level_mapping(
        self, map_record: MapRecord, level: Level
    ) -> Dict[Variant, List[Optional[Variant]]]:
        """``variant -> [to_variant | None]`` for the variants of a map on a level."""
        cursor = self._conn.execute(
            """
            SELECT v.id AS variant_id, v.map_id, v.name AS variant_name,
                   t.id AS to_id, t.map_id AS to_map_id, t.name AS to_name
            FROM variant_mappings AS vm
            JOIN variants AS v ON v.id = vm.variant_id
            LEFT JOIN variants AS t ON t.id = vm.to_variant_id
            WHERE v.map_id = ? AND vm.level_id = ?
            ORDER BY v.id
            """,
            (map_record.id, level.id),
        )
        result: Dict[Variant, List[Optional[Variant]]] = defaultdict(list)
        for row in cursor:
            variant = Variant(id=row["variant_id"], map_id=row["map_id"], name=row["variant_name"])
            to_variant = None
            if row["to_id"] is not None:
                to_variant = Variant(id=row["to_id"], map_id=row["to_map_id"], name=row["to_name"])
            result[variant].append(to_variant)
        return dict(result)

    def to_df(self) -> "pd.DataFrame":
        """Answer counts per map, variant and location as a pandas DataFrame."""
        query = f"""
            SELECT m.id AS map_id, m.name AS map_name, v.id AS variant_id,
                   v.name AS variant_name, a.location_id, COUNT(*) AS count
            FROM answers AS a
            JOIN variants AS v ON v.id = a.variant_id
            JOIN {self.TABLE_NAME} AS m ON m.id = v.map_id
            GROUP BY m.id, v.id, a.location_id
            """
        return pd.read_sql_query(query, self._conn)

    def reset(self) -> None:
        """Reset the maps, variants, answers, levels and groups."""
        for table in (
            "groups_maps",
            "groups",
            "variant_mappings",
            "levels",
            "answers",
            "variants",
            self.TABLE_NAME,
        ):
            self._conn.execute(f"DELETE FROM {table}")
        self._conn.commit()
        _ensure_schema(self._conn, self.TABLE_NAME)

    def __len__(self) -> int:
        row = self._conn.execute(f"SELECT COUNT(*) FROM {self.TABLE_NAME}").fetchone()
        return int(row[0]) if row else 0


__all__ = ["MapsTable"]
