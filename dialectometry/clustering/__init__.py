"""Clustering of cluster objects and of area-class maps."""

from .data import MapClusterObject, MapClusteringResult
from .linkage import (
    AverageLinkage,
    CachedLinkage,
    CentroidMethod,
    CompleteLinkage,
    EuclideanDistance,
    LinkageMethod,
    ObjectDistance,
    SingleLinkage,
    SquaredEuclideanDistance,
    WardsMethod,
    linkage_methods,
)
from .map_distance import MapDistance, RelativeIntensityMethod, SectorMethod
from .methods import (
    AgglomerativeHierarchicalClustering,
    ClusterAnalysis,
    FuzzyCMeansClustering,
    KMeansClustering,
)
from .termination import DistanceVariabilityThreshold, NumberOfClusters, TerminationCriterion

__all__ = [
    "MapClusterObject",
    "MapClusteringResult",
    "AverageLinkage",
    "CachedLinkage",
    "CentroidMethod",
    "CompleteLinkage",
    "EuclideanDistance",
    "LinkageMethod",
    "ObjectDistance",
    "SingleLinkage",
    "SquaredEuclideanDistance",
    "WardsMethod",
    "linkage_methods",
    "MapDistance",
    "RelativeIntensityMethod",
    "SectorMethod",
    "AgglomerativeHierarchicalClustering",
    "ClusterAnalysis",
    "FuzzyCMeansClustering",
    "KMeansClustering",
    "DistanceVariabilityThreshold",
    "NumberOfClusters",
    "TerminationCriterion",
]
