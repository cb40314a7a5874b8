"""Distances between cluster objects and linkage methods between clusters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from dialectometry.types.clusters import Cluster, ClusterObject
from dialectometry.types.identification import LinkageType
from dialectometry.utils.workers import work_on_items

logger = logging.getLogger(__name__)


class ObjectDistance(ABC):  # pylint: disable=R0903
    """Distance between two cluster objects."""

    @abstractmethod
    def distance(self, object1: ClusterObject, object2: ClusterObject) -> float:
        raise NotImplementedError

    def distance_coordinates(self, p: np.ndarray, q: np.ndarray) -> float:
        """Distance between two coordinate vectors."""
        raise NotImplementedError(f"{type(self).__name__} does not support coordinates")


class SquaredEuclideanDistance(ObjectDistance):  # pylint: disable=R0903
    def distance(self, object1: ClusterObject, object2: ClusterObject) -> float:
        return self.distance_coordinates(object1.coordinates, object2.coordinates)

    def distance_coordinates(self, p: np.ndarray, q: np.ndarray) -> float:
        p, q = np.asarray(p, dtype=float), np.asarray(q, dtype=float)
        if p.shape != q.shape:
            raise ValueError("p and q must have the same length")
        return float(np.sum((p - q) ** 2))


class EuclideanDistance(SquaredEuclideanDistance):  # pylint: disable=R0903
    def distance_coordinates(self, p: np.ndarray, q: np.ndarray) -> float:
        return float(np.sqrt(super().distance_coordinates(p, q)))


class LinkageMethod(ABC):
    """Distance between two clusters derived from an object distance."""

    linkage_type: LinkageType

    def __init__(self, object_distance: ObjectDistance) -> None:
        self.object_distance = object_distance

    @property
    def identification(self) -> str:
        return self.linkage_type.value

    @abstractmethod
    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        raise NotImplementedError

    def _object_distances(self, cluster1: Cluster, cluster2: Cluster) -> List[float]:
        return [
            self.object_distance.distance(obj1, obj2) for obj1 in cluster1 for obj2 in cluster2
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identification!r})"


class SingleLinkage(LinkageMethod):
    linkage_type = LinkageType.SINGLE

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        return min(self._object_distances(cluster1, cluster2), default=np.inf)


class CompleteLinkage(LinkageMethod):
    linkage_type = LinkageType.COMPLETE

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        return max(self._object_distances(cluster1, cluster2), default=np.inf)


class AverageLinkage(LinkageMethod):
    """Mean object distance, weighted by the product of the object weights."""

    linkage_type = LinkageType.AVERAGE

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        total = 0.0
        n = 0.0
        for obj1 in cluster1:
            for obj2 in cluster2:
                weight = obj1.weight * obj2.weight
                total += self.object_distance.distance(obj1, obj2) * weight
                n += weight
        return total / n


def weighted_centroid(cluster: Cluster) -> Optional[np.ndarray]:
    """Weighted mean of the coordinates of the cluster's objects."""
    objects = cluster.objects
    if not objects:
        return None
    for obj in objects:
        if not obj.has_coordinates():
            raise ValueError(f"Object {obj!r} has no coordinates")
    coords = np.array([obj.coordinates for obj in objects], dtype=float)
    weights = np.array([obj.weight for obj in objects], dtype=float)
    return weights @ coords / weights.sum()


class CentroidMethod(LinkageMethod):
    """Distance between the weighted centroids; objects need coordinates."""

    linkage_type = LinkageType.CENTROID

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        return self.object_distance.distance_coordinates(
            weighted_centroid(cluster1), weighted_centroid(cluster2)
        )


class WardsMethod(CentroidMethod):
    """Centroid distance divided by ``1/w1 + 1/w2`` of the cluster weights."""

    linkage_type = LinkageType.WARD

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        weight1 = cluster1.total_weight()
        weight2 = cluster2.total_weight()
        return super().distance(cluster1, cluster2) / (1.0 / weight1 + 1.0 / weight2)


linkage_methods: Mapping[LinkageType, type[LinkageMethod]] = {
    LinkageType.SINGLE: SingleLinkage,
    LinkageType.COMPLETE: CompleteLinkage,
    LinkageType.AVERAGE: AverageLinkage,
    LinkageType.CENTROID: CentroidMethod,
    LinkageType.WARD: WardsMethod,
}


class CachedLinkage(LinkageMethod):
    """Symmetric matrix of linkage distances between a fixed list of clusters.

    Removed clusters stay in the list as ``None`` and their matrix entries
    are infinite. The smallest pair is the first minimum in row-major order,
    i.e. the pair with the lowest indices among equal distances.
    """

    def __init__(
        self, clusters: Sequence[Cluster], linkage: LinkageMethod, threads: int = 1
    ) -> None:
        super().__init__(linkage.object_distance)
        self.linkage = linkage
        self.linkage_type = linkage.linkage_type
        self._clusters: List[Optional[Cluster]] = list(clusters)
        self._index: Dict[Cluster, int] = {c: i for i, c in enumerate(self._clusters)}

        n = len(self._clusters)
        self._distances = np.full((n, n), np.inf)
        pairs = [(i, j) for i in range(n) for j in range(i)]

        def compute(pair: Tuple[int, int]) -> float:
            i, j = pair
            return self.linkage.distance(self._clusters[i], self._clusters[j])

        for (i, j), value in zip(pairs, work_on_items(pairs, compute, threads=threads)):
            self._distances[i, j] = self._distances[j, i] = value
        logger.debug("Cached %d linkage distances (%s)", len(pairs), linkage.identification)

    @property
    def clusters(self) -> List[Cluster]:
        """Clusters that have not been removed, in their original order."""
        return [c for c in self._clusters if c is not None]

    def _position(self, cluster: Cluster) -> int:
        if cluster not in self._index:
            raise KeyError("Cluster is not known")
        return self._index[cluster]

    def distance(self, cluster1: Cluster, cluster2: Cluster) -> float:
        return float(self._distances[self._position(cluster1), self._position(cluster2)])

    def smallest_distance_pair(self) -> Optional[Tuple[Cluster, Cluster]]:
        """The two closest clusters (lower index first), ``None`` if fewer than two remain."""
        if self._distances.size == 0:
            return None
        flat = int(np.argmin(self._distances))
        i, j = divmod(flat, self._distances.shape[1])
        if not np.isfinite(self._distances[i, j]):
            return None
        return self._clusters[i], self._clusters[j]

    def recompute_distances_to(self, cluster: Cluster) -> None:
        k = self._position(cluster)
        for i, other in enumerate(self._clusters):
            if i == k or other is None:
                continue
            value = self.linkage.distance(cluster, other)
            self._distances[i, k] = self._distances[k, i] = value

    def remove_cluster(self, cluster: Cluster) -> None:
        """Remove an emptied cluster from the matrix."""
        if len(cluster) > 0:
            raise ValueError("Cluster has to be empty")
        k = self._position(cluster)
        self._distances[k, :] = np.inf
        self._distances[:, k] = np.inf
        del self._index[cluster]
        self._clusters[k] = None


__all__ = [
    "ObjectDistance",
    "SquaredEuclideanDistance",
    "EuclideanDistance",
    "LinkageMethod",
    "SingleLinkage",
    "CompleteLinkage",
    "AverageLinkage",
    "CentroidMethod",
    "WardsMethod",
    "weighted_centroid",
    "linkage_methods",
    "CachedLinkage",
]
