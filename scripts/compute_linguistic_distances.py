#!/usr/bin/env python3
"""Compute linguistic distances between locations for every group and level."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from scripts.helpers import get_args, setup_logging  # pylint: disable=C0413, E0401
from dialectometry.dataset import Database  # pylint: disable=C0413, E0401
from dialectometry.maps.linguistic import (  # pylint: disable=C0413, E0401
    compute_and_save_linguistic_distances,
)


def run_compute_linguistic_distances(
    dataset_path: Path, level_ids: Optional[List[int]] = None
) -> List[str]:
    """
    Compute and store the linguistic distances of all groups and levels.

    Args:
        dataset_path: Path to the SQLite database
        level_ids: Level ids to compute, all levels if None

    Returns:
        The identification strings of the stored distances
    """
    if not dataset_path.exists():
        print(f"Error: Database file not found at {dataset_path}")
        sys.exit(1)

    print("=" * 50)
    print("LINGUISTIC DISTANCES")
    print("=" * 50)
    print(f"Database: {dataset_path}")

    identifications = []
    with Database.from_db(dataset_path) as database:
        levels = database.maps.get_levels()
        if level_ids is not None:
            levels = [level for level in levels if level.id in level_ids]
        groups = database.maps.get_groups()
        print(f"Groups: {len(groups)}, levels: {len(levels)}")

        # Without level (raw variants) and for every level
        for group in [None, *groups]:
            for level in [None, *levels]:
                identification = compute_and_save_linguistic_distances(database, level, group)
                print(f"  saved {identification}")
                identifications.append(identification)

    print("=" * 50)
    print(f"Stored {len(identifications)} distance measures")
    print("=" * 50)
    return identifications


def main() -> None:
    """Program entrypoint."""
    setup_logging()
    args = get_args(__doc__)
    run_compute_linguistic_distances(args.config.paths.dataset_path, args.levels)


if __name__ == "__main__":  # pragma: no cover
    main()
