"""Maps as cluster objects and per-cluster views of map clustering results."""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from dialectometry.maps.area_class_map import AreaClassMap
from dialectometry.maps.grid import RectangularGrid
from dialectometry.types.clusters import ClusteringResult


class MapClusterObject:
    """An area-class map to be clustered, compared by identity.

    Coordinates are only available after ``compute_covariance_function``.
    """

    def __init__(self, area_class_map: AreaClassMap) -> None:
        self.area_class_map = area_class_map
        self.covariance_function: Optional[np.ndarray] = None

    @property
    def weight(self) -> float:
        return 1.0

    @property
    def coordinates(self) -> Optional[np.ndarray]:
        return self.covariance_function

    def has_coordinates(self) -> bool:
        return self.covariance_function is not None

    def compute_covariance_function(
        self, grid: RectangularGrid, grid_distances: np.ndarray, max_distance: int
    ) -> np.ndarray:
        """Covariance of the dominant densities on a grid per distance class of 1 km.

        Pairs of grid points are grouped by their rounded distance in
        ``grid_distances`` up to ``max_distance``; pairs where a point has no
        dominant variant are skipped. The mean prevalence is taken over all
        grid points, counting points without dominant variant as zero.
        """
        acm = self.area_class_map
        dominant = [acm.dominant_variant_at_latlong(point) for point in grid.points]
        densities = np.array([np.nan if d is None else d.density for d in dominant])
        mean_prevalence = float(np.nan_to_num(densities).mean()) if len(densities) else 0.0

        rows, cols = np.tril_indices(len(densities), k=-1)
        distance_classes = np.floor(grid_distances[rows, cols] + 0.5).astype(np.int64)
        products = (densities[rows] - mean_prevalence) * (densities[cols] - mean_prevalence)
        counted = (distance_classes <= max_distance) & ~np.isnan(products)

        covariance = np.bincount(
            distance_classes[counted], weights=products[counted], minlength=max_distance + 1
        )
        counts = np.bincount(distance_classes[counted], minlength=max_distance + 1)
        nonzero = counts > 0
        covariance[nonzero] /= counts[nonzero]
        self.covariance_function = covariance
        return covariance

    def __repr__(self) -> str:
        return f"MapClusterObject({self.area_class_map.map_record.name!r})"


class MapClusteringResult:
    """Clusters of ``MapClusterObject`` sorted for reporting."""

    def __init__(self, result: ClusteringResult) -> None:
        self.result = result

    @property
    def cluster_count(self) -> int:
        return self.result.number_of_clusters

    @property
    def is_fuzzy(self) -> bool:
        return self.result.is_fuzzy

    def cluster(self, index: int) -> List[MapClusterObject]:
        """Objects of a cluster by descending probability, then map id."""
        cluster = self.result.clusters[index]
        return sorted(
            cluster.objects,
            key=lambda obj: (-cluster.probability(obj), obj.area_class_map.map_record.id),
        )

    def probability(self, index: int, obj: MapClusterObject) -> float:
        return self.result.clusters[index].probability(obj)

    def cluster_size(self, index: int) -> int:
        return len(self.result.clusters[index])

    def to_rows(self) -> List[dict]:
        """One row per (cluster, map) for tabular export."""
        return [
            {
                "cluster": index + 1,
                "map_id": obj.area_class_map.map_record.id,
                "map_name": obj.area_class_map.map_record.name,
                "probability": self.probability(index, obj),
            }
            for index in range(self.cluster_count)
            for obj in self.cluster(index)
        ]


__all__ = ["MapClusterObject", "MapClusteringResult"]
