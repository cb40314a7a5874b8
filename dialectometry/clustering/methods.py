"""Cluster analysis methods producing ``ClusteringResult`` objects."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence

import numpy as np
from sklearn.cluster import KMeans

from dialectometry.types.clusters import Cluster, ClusteringResult, ClusterObject

from .linkage import CachedLinkage, LinkageMethod
from .termination import TerminationCriterion

logger = logging.getLogger(__name__)


class ClusterAnalysis(ABC):  # pylint: disable=R0903
    """Base class of cluster analysis methods."""

    @abstractmethod
    def cluster_analysis(self, objects: Iterable[ClusterObject]) -> ClusteringResult:
        raise NotImplementedError


class AgglomerativeHierarchicalClustering(ClusterAnalysis):  # pylint: disable=R0903
    """Merge the two closest clusters until the termination criterion holds.

    Starts from singleton clusters. The cluster with the lower index absorbs
    the other one. Stops early when fewer than two clusters remain.
    """

    def __init__(
        self, linkage: LinkageMethod, termination: TerminationCriterion, threads: int = 1
    ) -> None:
        self.linkage = linkage
        self.termination = termination
        self.threads = threads

    def cluster_analysis(self, objects: Iterable[ClusterObject]) -> ClusteringResult:
        cached = CachedLinkage(
            [Cluster([obj]) for obj in objects], self.linkage, threads=self.threads
        )
        result = ClusteringResult(cached.clusters, is_fuzzy=False)

        while not self.termination.should_terminate(result, cached):
            pair = cached.smallest_distance_pair()
            if pair is None:
                break
            cluster1, cluster2 = pair
            for obj in cluster2:
                cluster1.put(obj, 1.0)
            cluster2.clear()

            cached.remove_cluster(cluster2)
            cached.recompute_distances_to(cluster1)
            result = ClusteringResult(cached.clusters, is_fuzzy=False)
            logger.debug("Merged clusters, %d remaining", result.number_of_clusters)

        return result


def _coordinates(objects: Sequence[ClusterObject]) -> np.ndarray:
    for obj in objects:
        if not obj.has_coordinates():
            raise ValueError(f"Object {obj!r} has no coordinates")
    return np.array([obj.coordinates for obj in objects], dtype=float)


class KMeansClustering(ClusterAnalysis):  # pylint: disable=R0903
    """Hard partition into ``c`` clusters with k-means on the object coordinates."""

    def __init__(self, c: int, random_state: int = 42) -> None:
        if c <= 0:
            raise ValueError("The number of clusters must be positive")
        self.c = c
        self.random_state = random_state

    def cluster_analysis(self, objects: Iterable[ClusterObject]) -> ClusteringResult:
        objects = list(objects)
        if self.c > len(objects):
            raise ValueError("More clusters than objects")
        coords = _coordinates(objects)
        model = KMeans(n_clusters=self.c, n_init=10, random_state=self.random_state)
        labels = model.fit_predict(coords, sample_weight=[obj.weight for obj in objects])

        clusters = [Cluster() for _ in range(self.c)]
        for obj, label in zip(objects, labels):
            clusters[int(label)].put(obj, 1.0)
        return ClusteringResult(clusters, is_fuzzy=False)


class FuzzyCMeansClustering(ClusterAnalysis):  # pylint: disable=R0903
    """Fuzzy c-means with fuzzifier ``m``.

    Iterates until the squared Frobenius norm of the membership change is
    below ``epsilon``. An object lying exactly on a centre belongs to that
    centre only.
    """

    def __init__(
        self,
        c: int,
        m: float = 2.0,
        epsilon: float = 1e-6,
        max_iterations: int = 1000,
        random_state: int = 42,
    ) -> None:
        if c <= 0:
            raise ValueError("The number of clusters must be positive")
        if m <= 1.0:
            raise ValueError("The fuzzifier m must be greater than 1")
        if epsilon <= 0.0:
            raise ValueError("Epsilon must be positive")
        self.c = c
        self.m = m
        self.epsilon = epsilon
        self.max_iterations = max_iterations
        self.random_state = random_state

    def _memberships(self, coords: np.ndarray, centers: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(coords[np.newaxis, :, :] - centers[:, np.newaxis, :], axis=2)
        on_center = norms == 0.0
        result = np.zeros_like(norms)
        exponent = 2.0 / (self.m - 1.0)
        for k in range(norms.shape[1]):
            if on_center[:, k].any():
                result[int(np.argmax(on_center[:, k])), k] = 1.0
            else:
                ratios = (norms[:, k][:, np.newaxis] / norms[:, k][np.newaxis, :]) ** exponent
                result[:, k] = 1.0 / ratios.sum(axis=1)
        return result

    def cluster_analysis(self, objects: Iterable[ClusterObject]) -> ClusteringResult:
        objects = list(objects)
        if self.c > len(objects):
            raise ValueError("More clusters than objects")
        coords = _coordinates(objects)

        rng = np.random.default_rng(self.random_state)
        memberships = rng.random((self.c, len(objects)))
        memberships /= memberships.sum(axis=0)

        for iteration in range(self.max_iterations):
            powered = memberships**self.m
            centers = powered @ coords / powered.sum(axis=1)[:, np.newaxis]
            updated = self._memberships(coords, centers)
            change = float(np.sum((memberships - updated) ** 2))
            memberships = updated
            if change < self.epsilon:
                logger.debug("Fuzzy c-means converged after %d iterations", iteration + 1)
                break
        else:
            logger.warning("Fuzzy c-means did not converge in %d iterations", self.max_iterations)

        clusters: List[Cluster] = []
        for i in range(self.c):
            cluster = Cluster()
            for obj, probability in zip(objects, memberships[i]):
                cluster.put(obj, float(probability))
            clusters.append(cluster)
        return ClusteringResult(clusters, is_fuzzy=True)


__all__ = [
    "ClusterAnalysis",
    "AgglomerativeHierarchicalClustering",
    "KMeansClustering",
    "FuzzyCMeansClustering",
]
