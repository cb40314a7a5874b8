"""Termination criteria of agglomerative clustering."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from dialectometry.types.clusters import ClusteringResult

from .linkage import CachedLinkage, LinkageMethod

EPS = 1e-8


class TerminationCriterion(ABC):  # pylint: disable=R0903
    """Decides after each merge whether agglomeration stops."""

    @abstractmethod
    def should_terminate(self, result: ClusteringResult, linkage: LinkageMethod) -> bool:
        raise NotImplementedError


class NumberOfClusters(TerminationCriterion):  # pylint: disable=R0903
    """Stop when exactly ``target`` clusters remain."""

    def __init__(self, target: int) -> None:
        self.target = target

    def should_terminate(self, result: ClusteringResult, linkage: LinkageMethod) -> bool:
        return result.number_of_clusters == self.target

    def __repr__(self) -> str:
        return f"NumberOfClusters({self.target})"


class DistanceVariabilityThreshold(TerminationCriterion):  # pylint: disable=R0903
    """Stop when the two closest clusters are unusually far apart.

    The smallest linkage distance is compared with the mean plus ``k``
    sample standard deviations of the object distances between the two
    closest clusters. Requires a ``CachedLinkage``.
    """

    def __init__(self, k: float) -> None:
        self.k = k

    def should_terminate(self, result: ClusteringResult, linkage: LinkageMethod) -> bool:
        if not isinstance(linkage, CachedLinkage):
            raise ValueError("DistanceVariabilityThreshold requires a CachedLinkage")

        pair = linkage.smallest_distance_pair()
        if pair is None:
            return True

        cluster1, cluster2 = pair
        smallest = linkage.distance(cluster1, cluster2)
        distances = np.array(
            [
                linkage.object_distance.distance(obj1, obj2)
                for obj1 in cluster1
                for obj2 in cluster2
            ]
        )
        mean = float(distances.mean())
        stddev = float(distances.std(ddof=1)) if len(distances) > 1 else 0.0
        if math.isnan(stddev):
            stddev = 0.0
        return smallest > mean + self.k * stddev + EPS

    def __repr__(self) -> str:
        return f"DistanceVariabilityThreshold({self.k})"


__all__ = ["TerminationCriterion", "NumberOfClusters", "DistanceVariabilityThreshold"]
