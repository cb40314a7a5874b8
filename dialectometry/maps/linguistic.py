"""Computation of linguistic distances between locations from the answers of many maps.

The linguistic distance of two locations on one map is half the L1 distance
of their variant weights. Over several maps it is the mean over the maps on
which both locations have answers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics.pairwise import manhattan_distances

from dialectometry.types.identification import linguistic_distance_identification
from dialectometry.types.locations import Group, Level, Location

from .weights import VariantWeights

if TYPE_CHECKING:
    from dialectometry.dataset.database import Database

logger = logging.getLogger(__name__)


def compute_linguistic_distances(
    weights_list: Sequence[VariantWeights],
) -> Dict[Tuple[Location, Location], float]:
    """Linguistic distance for every pair of locations answered together on some map.

    Keys are ``(location1, location2)`` with ``location1.id < location2.id``.
    """
    all_locations = sorted(
        {loc for weights in weights_list for loc in weights.locations}, key=lambda loc: loc.id
    )
    index = {loc: i for i, loc in enumerate(all_locations)}
    n = len(all_locations)
    sums = np.zeros((n, n))
    counts = np.zeros((n, n), dtype=np.int64)

    for weights in weights_list:
        locations = [loc for loc in weights.locations if weights.total(loc) > 0]
        variants = weights.variants
        if len(locations) < 2 or not variants:
            continue
        matrix = np.array(
            [[weights.weight(v, loc) for v in variants] for loc in locations]
        )
        positions = np.array([index[loc] for loc in locations])
        grid = np.ix_(positions, positions)
        sums[grid] += 0.5 * manhattan_distances(matrix)
        counts[grid] += 1
        logger.debug("Added %d locations of map '%s'", len(locations), weights.map_record.name)

    result = {}
    rows, cols = np.nonzero(np.triu(counts, k=1))
    for i, j in zip(rows, cols):
        result[(all_locations[i], all_locations[j])] = float(sums[i, j] / counts[i, j])
    return result


def linguistic_distance_name(level: Optional[Level] = None, group: Optional[Group] = None) -> str:
    """Human-readable name, e.g. ``Linguistic distance (Lexicon, phonetic)``."""
    name = "Linguistic distance (" + ("all groups" if group is None else group.name)
    if level is not None:
        name += ", " + level.name.split(":", 1)[0]
    return name + ")"


def compute_and_save_linguistic_distances(
    database: "Database",
    level: Optional[Level] = None,
    group: Optional[Group] = None,
) -> str:
    """Compute the linguistic distances of a level and group and replace the stored ones.

    Returns the identification string the distances were saved under.
    """
    maps = database.maps.get_maps(group)
    logger.info(
        "Loading %d maps (group: %s, level: %s)",
        len(maps),
        "all maps" if group is None else group.name,
        "none" if level is None else level.name,
    )

    weights_list: List[VariantWeights] = []
    for map_record in maps:
        weights = VariantWeights.from_store(database, map_record)
        if level is not None:
            weights = weights.with_level(database, level)
        weights_list.append(weights)

    distances = compute_linguistic_distances(weights_list)

    identification = linguistic_distance_identification(
        level.id if level is not None else None,
        group.id if group is not None else None,
    )
    database.distances.save_distances(
        identification,
        linguistic_distance_name(level, group),
        ((loc1.id, loc2.id, value) for (loc1, loc2), value in distances.items()),
    )
    logger.info("Saved %d distances as '%s'", len(distances), identification)
    return identification


__all__ = [
    "compute_linguistic_distances",
    "linguistic_distance_name",
    "compute_and_save_linguistic_distances",
]
