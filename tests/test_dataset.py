"""Tests for the SQLite-backed survey tables."""

import sqlite3
from decimal import Decimal
from pathlib import Path

import pytest

from dialectometry.dataset import Database
from dialectometry.types.locations import Level, Location, MapRecord, Variant


def test_locations_table(database: Database, locations) -> None:
    table = database.locations
    assert len(table) == 6
    assert table.get_locations() == locations
    assert table.get_location(3).name == "L3"
    assert table.get_location(42) is None
    assert table.id_range() == (1, 6)

    # Replacing keeps the id
    table.add_locations([Location(id=3, latitude=1.0, longitude=2.0, name="moved")])
    assert len(table) == 6
    assert table.get_location(3).latitude == 1.0


def test_empty_locations_table() -> None:
    with Database(sqlite3.connect(":memory:")) as database:
        assert database.locations.id_range() is None
        assert database.enumerate_locations() == []


def test_enumerate_answers_counts(database: Database) -> None:
    butter = database.maps.get_map(1)
    answers = database.enumerate_answers(butter)
    assert len(answers) == 9
    location, variant, count = answers[0]
    assert (location.id, variant.id, count) == (1, 1, 4)
    assert location.name == "L1"
    assert variant.name == "butter"
    assert [(loc.id, v.id, n) for loc, v, n in answers if loc.id == 4] == [(4, 1, 3), (4, 2, 1)]


def test_maps_variants_levels_groups(database: Database) -> None:
    maps = database.maps.get_maps()
    assert [m.name for m in maps] == ["butter", "milk"]
    assert len(database.maps) == 2
    assert database.maps.get_map(5) is None
    assert [v.name for v in database.enumerate_variants(maps[1])] == ["milch", "melk"]
    assert database.maps.get_levels() == [Level(id=1)]
    group = database.maps.get_groups()[0]
    assert group.name == "dairy"
    assert database.maps.get_maps(group) == maps

    other = database.maps.add_group("empty")
    assert database.maps.get_maps(other) == []


def test_level_mapping(database: Database) -> None:
    butter = MapRecord(id=1)
    level = Level(id=1)
    mapping = database.level_mapping(butter, level)
    assert mapping == {
        Variant(id=1, map_id=1): [Variant(id=1, map_id=1)],
        Variant(id=2, map_id=1): [Variant(id=1, map_id=1)],
    }
    assert database.level_mapping(MapRecord(id=2), level) == {}


def test_level_mapping_discard(database: Database) -> None:
    milk = database.maps.get_map(2)
    melk = database.enumerate_variants(milk)[1]
    level = database.maps.add_level("Phonetic")
    database.maps.add_variant_mapping(melk, level, None)
    assert database.level_mapping(milk, level) == {melk: [None]}


def test_save_distances_normalizes_pairs(database: Database) -> None:
    table = database.distances
    written = table.save_distances("precomputed:test", "Test", [(3, 1, 0.5), (2, 2, 0.0), (1, 2, 0.25)])
    assert written == 2
    assert list(table.iter_precomputed_distances("precomputed:test")) == [
        (1, 2, 0.25),
        (1, 3, 0.5),
    ]
    assert table.find_precomputed_distance("precomputed:test", 1, 3) == 0.5
    assert table.find_precomputed_distance("precomputed:test", 2, 3) is None
    assert table.find_precomputed_distance("unknown", 1, 3) is None


def test_save_distances_replaces_rows(database: Database) -> None:
    table = database.distances
    table.save_distances("precomputed:test", "Test", [(1, 2, 0.25), (1, 3, 0.5)])
    table.save_distances("precomputed:test", "Renamed", [(1, 2, 0.75)])
    assert len(table) == 1
    assert list(table.iter_precomputed_distances("precomputed:test")) == [(1, 2, 0.75)]
    frame = table.to_df()
    assert list(frame["name"]) == ["Renamed"]


def test_bandwidths_table(database: Database) -> None:
    table = database.bandwidths
    key = (1, "default", "gaussian", "geographic", "lcv")
    assert table.find_bandwidth(*key) is None

    table.save_bandwidth(*key, Decimal("12.50"))
    assert table.find_bandwidth(*key) == Decimal("12.5")
    assert str(table.to_df()["bandwidth"][0]) == "12.5"

    table.save_bandwidth(*key, Decimal("0"))
    assert table.find_bandwidth(*key) is None
    assert len(table) == 1


def test_maps_to_df(database: Database) -> None:
    frame = database.maps.to_df()
    butter = frame[frame["map_name"] == "butter"]
    assert butter["count"].sum() == 22
    assert set(frame["map_id"]) == {1, 2}


def test_reset(database: Database) -> None:
    database.distances.save_distances("precomputed:test", "Test", [(1, 2, 0.25)])
    database.bandwidths.save_bandwidth(1, "default", "gaussian", "geographic", "lcv", Decimal(1))
    database.reset()
    assert len(database.locations) == 0
    assert len(database.maps) == 0
    assert len(database.distances) == 0
    assert len(database.bandwidths) == 0
    assert database.maps.get_levels() == []


def test_from_db_persists(tmp_path: Path, locations) -> None:
    db_path = tmp_path / "survey.db"
    with Database.from_db(db_path) as database:
        database.locations.add_locations(locations)

    with Database.from_db(db_path) as database:
        assert database.enumerate_locations() == locations


def test_closed_database_rejects_queries(locations) -> None:
    database = Database.from_db(":memory:")
    database.close()
    with pytest.raises(sqlite3.ProgrammingError):
        database.enumerate_locations()
