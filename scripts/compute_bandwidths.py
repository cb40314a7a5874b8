#!/usr/bin/env python3
"""Compute and store the bandwidths of all maps for the standard estimators."""

from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from scripts.helpers import get_args, setup_logging  # pylint: disable=C0413, E0401
from dialectometry.bandwidth import (  # pylint: disable=C0413, E0401
    compute_bandwidths,
    default_estimators,
)
from dialectometry.dataset import Database  # pylint: disable=C0413, E0401
from dialectometry.types.identification import (  # pylint: disable=C0413, E0401
    format_bandwidth,
)
from dialectometry.utils.config import ComputeConfig  # pylint: disable=C0413, E0401


def run_compute_bandwidths(
    dataset_path: Path,
    output_dir: Path,
    config: ComputeConfig,
    level_ids: Optional[List[int]] = None,
    recompute: bool = False,
) -> Path:
    """
    Compute the bandwidths of all maps and export them to CSV.

    Args:
        dataset_path: Path to the SQLite database
        output_dir: Directory to save the bandwidths CSV
        config: Computation settings
        level_ids: Level ids to compute, all levels if None
        recompute: Recompute bandwidths that are already stored

    Returns:
        Path of the written CSV file
    """
    if not dataset_path.exists():
        print(f"Error: Database file not found at {dataset_path}")
        sys.exit(1)

    # Create output directory
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 50)
    print("BANDWIDTH COMPUTATION")
    print("=" * 50)
    print(f"Database: {dataset_path}")
    print(f"Threads: {config.threads}")
    print(f"Candidates: {config.candidates_count}")
    print(f"Recompute: {recompute}")

    with Database.from_db(dataset_path) as database:
        levels = None
        if level_ids is not None:
            levels = [level for level in database.maps.get_levels() if level.id in level_ids]

        estimators = default_estimators(database, config)
        print(f"Estimators: {len(estimators)}")
        for estimator in estimators:
            print(f"  {estimator.identification}")

        bandwidths = compute_bandwidths(
            database, estimators, levels=levels, recompute=recompute
        )

    # Write the results
    output_path = output_dir / "bandwidths.csv"
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["map_id", "weights", "estimator", "bandwidth"])
        for (map_id, weights_id, estimator_id), bandwidth in sorted(bandwidths.items()):
            writer.writerow([map_id, weights_id, estimator_id, format_bandwidth(bandwidth)])

    print("=" * 50)
    print(f"Computed {len(bandwidths)} bandwidths, saved to {output_path}")
    print("=" * 50)
    return output_path


def main() -> None:
    """Program entrypoint."""
    setup_logging()
    args = get_args(__doc__)
    run_compute_bandwidths(
        args.config.paths.dataset_path,
        args.config.paths.output_dir,
        args.config.compute,
        args.levels,
        args.recompute,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
