"""Pytest configuration and fixtures."""

import sqlite3
from typing import Dict, Iterator, List, Tuple

import pytest

from dialectometry.dataset import Database
from dialectometry.maps.weights import VariantWeights
from dialectometry.types.locations import Location, MapRecord, Variant

# Two rows of three locations, about 7.4 km apart east-west and 11.1 km north-south
GRID: List[Tuple[int, float, float]] = [
    (1, 48.0, 10.0),
    (2, 48.0, 10.1),
    (3, 48.0, 10.2),
    (4, 48.1, 10.0),
    (5, 48.1, 10.1),
    (6, 48.1, 10.2),
]

# location id -> (count of variant 1, count of variant 2); west answers 1, east answers 2
COUNTS: Dict[int, Tuple[int, int]] = {
    1: (4, 0),
    2: (2, 2),
    3: (0, 3),
    4: (3, 1),
    5: (1, 2),
    6: (0, 4),
}


@pytest.fixture
def locations() -> List[Location]:
    """Six survey locations on a small grid."""
    return [Location(id=i, latitude=lat, longitude=lon, name=f"L{i}") for i, lat, lon in GRID]


@pytest.fixture
def map_record() -> MapRecord:
    return MapRecord(id=1, name="butter")


@pytest.fixture
def variants(map_record: MapRecord) -> List[Variant]:
    return [
        Variant(id=1, map_id=map_record.id, name="butter"),
        Variant(id=2, map_id=map_record.id, name="anke"),
    ]


@pytest.fixture
def weights(
    map_record: MapRecord, variants: List[Variant], locations: List[Location]
) -> VariantWeights:
    """West-east split map built from answer triples."""
    answers = [
        (location, variant, COUNTS[location.id][k])
        for location in locations
        for k, variant in enumerate(variants)
    ]
    return VariantWeights.from_answers(map_record, answers)


@pytest.fixture
def database(locations: List[Location]) -> Iterator[Database]:
    """In-memory database holding the grid, two maps, a level and a group."""
    database = Database(sqlite3.connect(":memory:"))
    database.locations.add_locations(locations)

    # Map 1 mirrors the ``weights`` fixture
    butter = database.maps.add_map("butter")
    variant1 = database.maps.add_variant(butter, "butter")
    variant2 = database.maps.add_variant(butter, "anke")
    answers = []
    for location in locations:
        n1, n2 = COUNTS[location.id]
        answers.extend([(location, variant1)] * n1)
        answers.extend([(location, variant2)] * n2)
    database.maps.add_answers(answers)

    # Map 2 answers the same variant everywhere except in the north-east
    milk = database.maps.add_map("milk")
    milk1 = database.maps.add_variant(milk, "milch")
    milk2 = database.maps.add_variant(milk, "melk")
    database.maps.add_answers(
        [(location, milk2 if location.id == 6 else milk1) for location in locations]
    )

    # Level merging both butter variants into the first one
    level = database.maps.add_level("Lexicon: merged")
    database.maps.add_variant_mapping(variant1, level, variant1)
    database.maps.add_variant_mapping(variant2, level, variant1)
    database.maps.add_group("dairy", [butter, milk])

    yield database
    database.close()
