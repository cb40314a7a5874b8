"""Tests for linguistic distances computed from the survey maps."""

import sqlite3

import pytest

from dialectometry.dataset import Database
from dialectometry.maps.distances import LinguisticDistance
from dialectometry.maps.linguistic import (
    compute_and_save_linguistic_distances,
    compute_linguistic_distances,
    linguistic_distance_name,
)
from dialectometry.maps.weights import VariantWeights
from dialectometry.types.locations import Group, Level
from scripts.compute_linguistic_distances import run_compute_linguistic_distances


def test_single_map_is_half_l1(weights: VariantWeights, locations) -> None:
    """On one map the distance is half the L1 distance of the weights."""
    distances = compute_linguistic_distances([weights])
    assert len(distances) == 15
    assert distances[(locations[0], locations[2])] == pytest.approx(1.0)
    assert distances[(locations[0], locations[1])] == pytest.approx(0.5)
    assert distances[(locations[2], locations[5])] == pytest.approx(0.0)
    assert all(loc1.id < loc2.id for loc1, loc2 in distances)


def test_mean_over_maps(database: Database, locations) -> None:
    maps = database.maps.get_maps()
    distances = compute_linguistic_distances(
        [VariantWeights.from_store(database, m) for m in maps]
    )
    loc1, loc2, loc3, _, _, loc6 = locations
    assert distances[(loc1, loc2)] == pytest.approx(0.25)
    assert distances[(loc1, loc6)] == pytest.approx(1.0)
    assert distances[(loc3, loc6)] == pytest.approx(0.5)


def test_no_maps_give_no_distances() -> None:
    assert compute_linguistic_distances([]) == {}


def test_name() -> None:
    level = Level(id=1, name="Lexicon: merged")
    assert linguistic_distance_name() == "Linguistic distance (all groups)"
    assert linguistic_distance_name(level) == "Linguistic distance (all groups, Lexicon)"
    assert (
        linguistic_distance_name(group=Group(id=2, name="dairy"))
        == "Linguistic distance (dairy)"
    )


def test_saved_distances_are_readable(database: Database, locations) -> None:
    identification = compute_and_save_linguistic_distances(database)
    assert identification == "linguistic"

    distance = LinguisticDistance(database, locations=locations)
    assert distance.identification == "linguistic"
    assert distance.distance(locations[5], locations[0]) == pytest.approx(1.0)
    assert distance.distance(locations[0], locations[1]) == pytest.approx(0.25)

    uncached = LinguisticDistance(database, use_cache=False)
    assert uncached.distance(locations[2], locations[5]) == pytest.approx(0.5)


def test_level_and_group_distances(database: Database, locations) -> None:
    level = database.maps.get_levels()[0]
    group = database.maps.get_groups()[0]

    identification = compute_and_save_linguistic_distances(database, level, group)
    assert identification == "linguistic:level_id=1:group_id=1"

    # On the level all butter answers are merged, only the milk map differs
    distance = LinguisticDistance(database, level, group)
    assert distance.distance(locations[0], locations[5]) == pytest.approx(0.5)
    assert distance.distance(locations[0], locations[2]) == pytest.approx(0.0)


def test_recomputation_replaces_rows(database: Database) -> None:
    compute_and_save_linguistic_distances(database)
    compute_and_save_linguistic_distances(database)
    assert len(database.distances) == 1
    assert len(list(database.iter_precomputed_distances("linguistic"))) == 15


def test_script_computes_every_group_and_level(database: Database, tmp_path) -> None:
    db_path = tmp_path / "survey.db"
    target = sqlite3.connect(db_path)
    database._conn.backup(target)  # pylint: disable=protected-access
    target.close()

    identifications = run_compute_linguistic_distances(db_path)
    assert identifications == [
        "linguistic",
        "linguistic:level_id=1",
        "linguistic:group_id=1",
        "linguistic:level_id=1:group_id=1",
    ]
    with Database.from_db(db_path) as stored:
        assert len(stored.distances) == 4
