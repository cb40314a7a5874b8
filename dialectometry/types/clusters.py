"""Cluster types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
)

import numpy as np


class ClusterObject(Protocol):
    """An object that can be clustered. Must be hashable."""

    @property
    def weight(self) -> float:
        """Weight of the object in weighted linkages and centroids."""

    @property
    def coordinates(self) -> Optional[np.ndarray]:
        """Coordinates of the object, or ``None`` if it has none."""

    def has_coordinates(self) -> bool:
        """Return ``True`` if ``coordinates`` is available."""


@dataclass(eq=False)
class ClusterPoint:
    """A point in Euclidean space, compared by identity."""

    coordinates: np.ndarray
    weight: float = 1.0
    label: Optional[Hashable] = None

    def __post_init__(self) -> None:
        self.coordinates = np.asarray(self.coordinates, dtype=float)

    def has_coordinates(self) -> bool:
        return True

    def __repr__(self) -> str:
        if self.label is not None:
            return f"ClusterPoint({self.label!r})"
        return f"ClusterPoint({self.coordinates.tolist()})"


class Cluster:
    """Mapping from cluster object to its membership probability in (0, 1].

    Objects keep their insertion order. Putting a probability <= 0 removes
    the object; it is never stored as zero.
    """

    def __init__(self, objects: Optional[Iterable[ClusterObject]] = None) -> None:
        self._objects: Dict[ClusterObject, float] = {}
        for obj in objects or ():
            self.put(obj, 1.0)

    @property
    def objects(self) -> List[ClusterObject]:
        """Return the objects of the cluster in insertion order."""
        return list(self._objects)

    def probability(self, obj: ClusterObject) -> float:
        """Membership probability of ``obj`` (0 if absent)."""
        return self._objects.get(obj, 0.0)

    def put(self, obj: ClusterObject, probability: float) -> None:
        """Set the membership probability of ``obj``."""
        if probability > 0.0:
            self._objects[obj] = float(probability)
        else:
            self._objects.pop(obj, None)

    def clear(self) -> None:
        """Remove all objects."""
        self._objects.clear()

    def total_weight(self) -> float:
        """Sum of the object weights."""
        return sum(obj.weight for obj in self._objects)

    def __contains__(self, obj: object) -> bool:
        return obj in self._objects

    def __iter__(self) -> Iterator[ClusterObject]:
        return iter(list(self._objects))

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        return f"Cluster({list(self._objects.values())!r})"


@dataclass
class ClusteringResult:
    """A list of non-empty clusters plus a fuzzy/hard flag."""

    clusters: Sequence[Cluster] = field(default_factory=list)
    is_fuzzy: bool = False

    def __post_init__(self) -> None:
        self.clusters = [c for c in self.clusters if c is not None and len(c) > 0]

    @property
    def number_of_clusters(self) -> int:
        """Number of (non-empty) clusters."""
        return len(self.clusters)

    def get_hard_result(self) -> "ClusteringResult":
        """Assign every object to its most probable cluster with probability 1.

        Ties are broken in favour of the cluster with the lowest index.
        """
        if not self.is_fuzzy:
            return self

        hard_clusters = [Cluster() for _ in self.clusters]
        seen: Dict[ClusterObject, None] = {}
        for cluster in self.clusters:
            for obj in cluster:
                seen.setdefault(obj, None)

        for obj in seen:
            best_index = -1
            best_probability = 0.0
            for index, cluster in enumerate(self.clusters):
                probability = cluster.probability(obj)
                if probability > best_probability:
                    best_probability = probability
                    best_index = index
            hard_clusters[best_index].put(obj, 1.0)

        return ClusteringResult(hard_clusters, is_fuzzy=False)

    def report(self) -> str:
        """Human-readable listing of the clusters."""
        lines = []
        for index, cluster in enumerate(self.clusters, 1):
            lines.append(f"Cluster: {index}")
            for obj in cluster:
                if self.is_fuzzy:
                    lines.append(f"  {obj!r} with probability {cluster.probability(obj):.4f}")
                else:
                    lines.append(f"  {obj!r}")
        return "\n".join(lines)


__all__ = ["ClusterObject", "ClusterPoint", "Cluster", "ClusteringResult"]
