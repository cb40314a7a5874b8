"""Tests for linkages, termination criteria and clustering methods."""

from typing import List

import numpy as np
import pytest

from dialectometry.clustering.linkage import (
    AverageLinkage,
    CachedLinkage,
    CentroidMethod,
    CompleteLinkage,
    EuclideanDistance,
    SingleLinkage,
    SquaredEuclideanDistance,
    WardsMethod,
    linkage_methods,
    weighted_centroid,
)
from dialectometry.clustering.methods import (
    AgglomerativeHierarchicalClustering,
    FuzzyCMeansClustering,
    KMeansClustering,
)
from dialectometry.clustering.termination import DistanceVariabilityThreshold, NumberOfClusters
from dialectometry.types.clusters import Cluster, ClusteringResult, ClusterPoint
from dialectometry.types.identification import LinkageType


def points(*values: float) -> List[ClusterPoint]:
    return [ClusterPoint(np.array([v]), label=v) for v in values]


def labels(result: ClusteringResult) -> List[set]:
    return sorted(({obj.label for obj in cluster} for cluster in result.clusters), key=min)


def test_cluster_put_and_remove() -> None:
    a, b = points(1.0, 2.0)
    cluster = Cluster([a])
    cluster.put(b, 0.4)
    assert cluster.probability(b) == 0.4
    cluster.put(b, 0.0)
    assert b not in cluster
    assert cluster.probability(b) == 0.0
    assert len(cluster) == 1


def test_empty_clusters_are_dropped() -> None:
    result = ClusteringResult([Cluster(), Cluster(points(1.0))])
    assert result.number_of_clusters == 1


def test_hard_result_of_fuzzy_clustering() -> None:
    """An object with memberships 0.3 and 0.7 ends up in the second cluster only."""
    a, b = points(1.0, 2.0)
    first, second = Cluster(), Cluster()
    first.put(a, 0.3)
    second.put(a, 0.7)
    first.put(b, 1.0)
    hard = ClusteringResult([first, second], is_fuzzy=True).get_hard_result()
    assert not hard.is_fuzzy
    assert hard.clusters[0].objects == [b]
    assert hard.clusters[1].objects == [a]
    assert hard.clusters[1].probability(a) == 1.0


def test_hard_result_ties_go_to_first_cluster() -> None:
    (a,) = points(1.0)
    first, second = Cluster(), Cluster()
    first.put(a, 0.5)
    second.put(a, 0.5)
    hard = ClusteringResult([first, second], is_fuzzy=True).get_hard_result()
    assert hard.number_of_clusters == 1
    assert hard.clusters[0].objects == [a]


def test_hard_result_of_hard_clustering_is_itself() -> None:
    result = ClusteringResult([Cluster(points(1.0))])
    assert result.get_hard_result() is result


def test_object_distances() -> None:
    p, q = ClusterPoint([0.0, 0.0]), ClusterPoint([3.0, 4.0])
    assert SquaredEuclideanDistance().distance(p, q) == 25.0
    assert EuclideanDistance().distance(p, q) == 5.0
    with pytest.raises(ValueError):
        EuclideanDistance().distance_coordinates(np.zeros(2), np.zeros(3))


def test_linkages() -> None:
    c1 = Cluster(points(0.0, 1.0))
    c2 = Cluster(points(4.0, 6.0))
    distance = EuclideanDistance()
    assert SingleLinkage(distance).distance(c1, c2) == 3.0
    assert CompleteLinkage(distance).distance(c1, c2) == 6.0
    assert AverageLinkage(distance).distance(c1, c2) == pytest.approx((4 + 6 + 3 + 5) / 4)
    assert CentroidMethod(distance).distance(c1, c2) == pytest.approx(4.5)
    # Ward: centroid distance / (1/2 + 1/2)
    assert WardsMethod(SquaredEuclideanDistance()).distance(c1, c2) == pytest.approx(4.5**2)


def test_weighted_centroid() -> None:
    cluster = Cluster([ClusterPoint([0.0], weight=1.0), ClusterPoint([4.0], weight=3.0)])
    assert weighted_centroid(cluster).tolist() == pytest.approx([3.0])
    assert weighted_centroid(Cluster()) is None


def test_linkage_registry() -> None:
    assert set(linkage_methods) == set(LinkageType)
    for linkage_type, linkage_class in linkage_methods.items():
        assert linkage_class(EuclideanDistance()).identification == linkage_type.value


def test_cached_linkage() -> None:
    clusters = [Cluster([p]) for p in points(0.0, 1.0, 5.0)]
    cached = CachedLinkage(clusters, SingleLinkage(EuclideanDistance()))
    assert cached.distance(clusters[0], clusters[2]) == 5.0
    assert cached.smallest_distance_pair() == (clusters[0], clusters[1])

    with pytest.raises(ValueError):
        cached.remove_cluster(clusters[1])

    for obj in clusters[1]:
        clusters[0].put(obj, 1.0)
    clusters[1].clear()
    cached.remove_cluster(clusters[1])
    cached.recompute_distances_to(clusters[0])
    assert cached.clusters == [clusters[0], clusters[2]]
    assert cached.distance(clusters[0], clusters[2]) == 4.0
    assert cached.smallest_distance_pair() == (clusters[0], clusters[2])


def test_cached_linkage_ties_take_lowest_indices() -> None:
    clusters = [Cluster([p]) for p in points(0.0, 1.0, 2.0)]
    cached = CachedLinkage(clusters, SingleLinkage(EuclideanDistance()), threads=2)
    assert cached.smallest_distance_pair() == (clusters[0], clusters[1])


def test_agglomerative_number_of_clusters() -> None:
    analysis = AgglomerativeHierarchicalClustering(
        SingleLinkage(EuclideanDistance()), NumberOfClusters(2)
    )
    result = analysis.cluster_analysis(points(0.0, 1.0, 2.0, 10.0, 11.0))
    assert labels(result) == [{0.0, 1.0, 2.0}, {10.0, 11.0}]
    assert not result.is_fuzzy


def test_agglomerative_stops_with_one_cluster() -> None:
    analysis = AgglomerativeHierarchicalClustering(
        CompleteLinkage(EuclideanDistance()), NumberOfClusters(0)
    )
    result = analysis.cluster_analysis(points(0.0, 1.0, 5.0))
    assert result.number_of_clusters == 1


def test_agglomerative_with_wards_method() -> None:
    analysis = AgglomerativeHierarchicalClustering(
        WardsMethod(SquaredEuclideanDistance()), NumberOfClusters(2), threads=2
    )
    result = analysis.cluster_analysis(points(0.0, 0.5, 1.0, 9.0, 10.0))
    assert labels(result) == [{0.0, 0.5, 1.0}, {9.0, 10.0}]


def test_distance_variability_requires_cached_linkage() -> None:
    criterion = DistanceVariabilityThreshold(1.0)
    result = ClusteringResult([Cluster(points(0.0)), Cluster(points(1.0))])
    with pytest.raises(ValueError):
        criterion.should_terminate(result, SingleLinkage(EuclideanDistance()))


def test_distance_variability_threshold() -> None:
    """Merging stops once the closest clusters are far apart compared to their spread."""
    analysis = AgglomerativeHierarchicalClustering(
        CompleteLinkage(EuclideanDistance()), DistanceVariabilityThreshold(1.0)
    )
    result = analysis.cluster_analysis(points(0.0, 1.0, 2.0, 20.0, 21.0, 22.0))
    assert labels(result) == [{0.0, 1.0, 2.0}, {20.0, 21.0, 22.0}]


def blobs() -> List[ClusterPoint]:
    rng = np.random.default_rng(0)
    left = rng.normal(loc=(0.0, 0.0), scale=0.1, size=(10, 2))
    right = rng.normal(loc=(5.0, 5.0), scale=0.1, size=(10, 2))
    return [ClusterPoint(p, label=i) for i, p in enumerate(np.vstack([left, right]))]


def test_kmeans_separates_blobs() -> None:
    result = KMeansClustering(2).cluster_analysis(blobs())
    assert sorted(labels(result), key=min) == [set(range(10)), set(range(10, 20))]
    with pytest.raises(ValueError):
        KMeansClustering(0)
    with pytest.raises(ValueError):
        KMeansClustering(30).cluster_analysis(blobs())


def test_fuzzy_cmeans_memberships() -> None:
    objects = blobs()
    result = FuzzyCMeansClustering(2).cluster_analysis(objects)
    assert result.is_fuzzy
    for obj in objects:
        total = sum(cluster.probability(obj) for cluster in result.clusters)
        assert total == pytest.approx(1.0)

    hard = result.get_hard_result()
    assert sorted(labels(hard), key=min) == [set(range(10)), set(range(10, 20))]


def test_fuzzy_cmeans_validation() -> None:
    with pytest.raises(ValueError):
        FuzzyCMeansClustering(2, m=1.0)
    with pytest.raises(ValueError):
        FuzzyCMeansClustering(2, epsilon=0.0)
    with pytest.raises(ValueError):
        FuzzyCMeansClustering(2).cluster_analysis([ClusterPoint([0.0])])
