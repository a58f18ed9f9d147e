"""
Core clustering module for clusterlab.

Exports:
- ClusteringEngine: Main orchestration class
- BaseClusterer: Base class for algorithms
- ClusteringResult: Result container
- ClusteringConfig: Configuration container
- Individual algorithm implementations and strategies
"""

from clusterlab.core.base_clustering import (
    BaseClusterer,
    ClusteringResult,
    ClusteringConfig,
    calc_centroids,
)
from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.clustering_engine import ClusteringEngine
from clusterlab.core.distance import dist, distances, euclidean
from clusterlab.core.evaluation import StreamStatistics, evaluate_streams
from clusterlab.core.gap_statistic import GapResult
from clusterlab.core.hierarchical_algorithm import HierarchicalClusterer
from clusterlab.core.initialization import (
    Initializer,
    KMeansPlusPlus,
    RandomAssignment,
    RandomCentroids,
)
from clusterlab.core.kmeans_algorithm import (
    Algorithm,
    KMeansClusterer,
    kmeans_pp_clusterer,
    kmeans_pp_restarts,
)
from clusterlab.core.markov_algorithm import MarkovClusterer
from clusterlab.core.reassignment import HartiganWong, Lloyd, NearestCentroid, Reassigner
from clusterlab.core.tight_algorithm import TightClusterer

__all__ = [
    "ClusteringEngine",
    "BaseClusterer",
    "ClusteringResult",
    "ClusteringConfig",
    "calc_centroids",
    "ClusterState",
    "dist",
    "distances",
    "euclidean",
    "StreamStatistics",
    "evaluate_streams",
    "GapResult",
    "HierarchicalClusterer",
    "Initializer",
    "KMeansPlusPlus",
    "RandomAssignment",
    "RandomCentroids",
    "Algorithm",
    "KMeansClusterer",
    "kmeans_pp_clusterer",
    "kmeans_pp_restarts",
    "MarkovClusterer",
    "HartiganWong",
    "Lloyd",
    "NearestCentroid",
    "Reassigner",
    "TightClusterer",
]
