#!/usr/bin/env python3
"""Cluster the area-class maps of a survey and export the clusters to CSV."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from scripts.helpers import ClusteringConfig, get_args, setup_logging  # pylint: disable=C0413, E0401
from dialectometry.bandwidth import kernel_from_store  # pylint: disable=C0413, E0401
from dialectometry.clustering import (  # pylint: disable=C0413, E0401
    AgglomerativeHierarchicalClustering,
    DistanceVariabilityThreshold,
    MapClusterObject,
    MapClusteringResult,
    NumberOfClusters,
    ObjectDistance,
    RelativeIntensityMethod,
    SectorMethod,
    SquaredEuclideanDistance,
    TerminationCriterion,
    linkage_methods,
)
from dialectometry.dataset import Database  # pylint: disable=C0413, E0401
from dialectometry.errors import BandwidthNotFoundError  # pylint: disable=C0413, E0401
from dialectometry.maps import (  # pylint: disable=C0413, E0401
    AreaClassMap,
    DistanceMeasure,
    GeographicDistance,
    KernelDensityEstimation,
    LinguisticDistance,
    RectangularGrid,
    VariantWeights,
    voronoi_ridges,
)
from dialectometry.types.identification import (  # pylint: disable=C0413, E0401
    LinkageType,
    MapDistanceType,
)
from dialectometry.types.locations import Location  # pylint: disable=C0413, E0401
from dialectometry.utils.config import ComputeConfig  # pylint: disable=C0413, E0401
from dialectometry.utils.workers import work_on_items  # pylint: disable=C0413, E0401


def make_object_distance(clustering: ClusteringConfig) -> ObjectDistance:
    """Map distance of the configuration, covariance functions for centroid linkages."""
    if clustering.linkage in (LinkageType.CENTROID, LinkageType.WARD):
        return SquaredEuclideanDistance()
    if clustering.map_distance == MapDistanceType.SECTOR_METHOD:
        return SectorMethod(clustering.sectors)
    return RelativeIntensityMethod()


def make_termination(clustering: ClusteringConfig) -> TerminationCriterion:
    if clustering.termination == "distance_variability":
        return DistanceVariabilityThreshold(clustering.variability_k)
    return NumberOfClusters(clustering.number_of_clusters)


def build_area_class_maps(
    database: Database, clustering: ClusteringConfig, config: ComputeConfig
) -> List[AreaClassMap]:
    """Area-class maps over all locations using the stored bandwidths."""
    locations = database.enumerate_locations()
    levels = {level.id: level for level in database.maps.get_levels()}
    groups = {group.id: group for group in database.maps.get_groups()}
    level = levels.get(clustering.level_id) if clustering.level_id is not None else None
    group = groups.get(clustering.group_id) if clustering.group_id is not None else None

    distance: DistanceMeasure = GeographicDistance(locations)
    if clustering.distance == "linguistic":
        distance = LinguisticDistance(database, level=level, group=group)

    ridges = voronoi_ridges(locations)
    result = []
    for map_record in database.maps.get_maps(group):
        weights = VariantWeights.from_store(database, map_record)
        if level is not None:
            weights = weights.with_level(database, level)
        try:
            kernel = kernel_from_store(
                database.bandwidths, weights, clustering.kernel, distance, clustering.estimator
            )
        except BandwidthNotFoundError as e:
            print(f"Warning: {e}")
            continue

        density = KernelDensityEstimation(
            kernel, config.ignore_frequencies, config.location_count_for_tree
        )
        area_class_map = AreaClassMap(weights, density, locations)
        area_class_map.build_areas(ridges)
        result.append(area_class_map)
    return result


def compute_covariance_functions(
    objects: List[MapClusterObject],
    locations: List[Location],
    clustering: ClusteringConfig,
    threads: int,
) -> None:
    """Covariance functions of all maps on one grid over the locations."""
    grid = RectangularGrid(locations, clustering.grid_resolution)
    grid_distances = grid.distances()
    max_distance = clustering.covariance_max_distance or grid.max_distance()
    print(f"Covariance grid: {len(grid)} points, max distance {max_distance} km")
    work_on_items(
        objects,
        lambda obj: obj.compute_covariance_function(grid, grid_distances, max_distance),
        threads=threads,
    )


def run_cluster_maps(
    dataset_path: Path,
    output_dir: Path,
    clustering: ClusteringConfig,
    config: ComputeConfig,
) -> Path:
    """
    Cluster the maps of the database and save the clusters to CSV.

    Args:
        dataset_path: Path to the SQLite database
        output_dir: Directory to save the clusters CSV
        clustering: Clustering settings
        config: Computation settings

    Returns:
        Path of the written CSV file
    """
    if not dataset_path.exists():
        print(f"Error: Database file not found at {dataset_path}")
        sys.exit(1)
    needs_grid = clustering.linkage in (LinkageType.CENTROID, LinkageType.WARD)
    if needs_grid and clustering.distance != "geographic":
        print(f"Error: {clustering.linkage.value} estimates densities on a grid, use geographic distance")
        sys.exit(1)

    # Create output directory
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 50)
    print("MAP CLUSTERING")
    print("=" * 50)
    print(f"Database: {dataset_path}")
    print(f"Kernel: {clustering.kernel.value}, estimator: {clustering.estimator.value}")
    print(f"Linkage: {clustering.linkage.value}")
    print(f"Termination: {clustering.termination}")

    with Database.from_db(dataset_path) as database:
        locations = database.enumerate_locations()
        area_class_maps = build_area_class_maps(database, clustering, config)
    print(f"Area-class maps: {len(area_class_maps)}")

    objects = [MapClusterObject(acm) for acm in area_class_maps]
    object_distance = make_object_distance(clustering)
    if isinstance(object_distance, SquaredEuclideanDistance):
        compute_covariance_functions(objects, locations, clustering, config.threads)
    print(f"Object distance: {object_distance!r}")

    linkage = linkage_methods[clustering.linkage](object_distance)
    analysis = AgglomerativeHierarchicalClustering(
        linkage, make_termination(clustering), threads=config.threads
    )
    result = MapClusteringResult(analysis.cluster_analysis(objects))

    # Print the clusters
    print("-" * 50)
    for index in range(result.cluster_count):
        names = [obj.area_class_map.map_record.name for obj in result.cluster(index)]
        print(f"  Cluster {index + 1} ({result.cluster_size(index)} maps): {', '.join(names)}")

    output_path = output_dir / f"clusters_{clustering.linkage.value}.csv"
    pd.DataFrame(result.to_rows()).to_csv(output_path, index=False)

    print("=" * 50)
    print(f"Saved {result.cluster_count} clusters to {output_path}")
    print("=" * 50)
    return output_path


def main() -> None:
    """Program entrypoint."""
    setup_logging()
    args = get_args(__doc__, get_compute_args=False)
    run_cluster_maps(
        args.config.paths.dataset_path,
        args.config.paths.output_dir,
        args.config.clustering,
        args.config.compute,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
