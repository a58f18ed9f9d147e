"""
Hierarchical (Agglomerative) Clustering Algorithm Implementation.

Bottom-up single-linkage merging:
- start with one singleton cluster per point
- repeatedly merge the two clusters whose closest members are nearest
- stop when k clusters remain
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

import numpy as np

from clusterlab.core.base_clustering import BaseClusterer, ClusteringConfig, calc_centroids
from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.distance import pairwise_sq_distances
from clusterlab.utils.error_handling import validate_cluster_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeStep:
    """One merge: the two clusters joined and their single-linkage distance."""

    left: FrozenSet[int]
    right: FrozenSet[int]
    distance: float

    @property
    def merged(self) -> FrozenSet[int]:
        return self.left | self.right


class HierarchicalClusterer(BaseClusterer):
    """
    Single-linkage agglomerative clustering.

    Best for: small point sets, elongated or chained clusters
    Strengths: deterministic, no random stream involved
    Weaknesses: O(k * m^2) pair scans per merge, chaining effect
    """

    algorithm_name = "hierarchical"

    def __init__(self, x: np.ndarray, k: int = 2, stream: int = 0):
        """
        Initialize hierarchical clusterer.

        Args:
            x: Point set (m x n)
            k: Number of clusters, 1 <= k <= m (k = m performs no merges)
            stream: Random stream (unused; kept for the common interface)
        """
        super().__init__(x, stream)
        validate_cluster_count(k, len(self.x), allow_equal=True)
        self.k = k
        self.clusters: List[FrozenSet[int]] = []
        self.merge_history: List[MergeStep] = []

    @classmethod
    def from_config(cls, x: np.ndarray, config: ClusteringConfig) -> "HierarchicalClusterer":
        return cls(x, k=config.params.get("n_clusters", 2), stream=config.stream)

    def _cluster_distance(self, d: np.ndarray, a: FrozenSet[int], b: FrozenSet[int]) -> float:
        """Single-linkage distance: closest pair with one point from each set."""
        return float(d[np.ix_(sorted(a), sorted(b))].min())

    def _best_merge(self, d: np.ndarray) -> Tuple[int, int, float]:
        best_i, best_j, best_d = 0, 1, np.inf
        n = len(self.clusters)
        for i in range(n - 1):
            for j in range(i + 1, n):
                d_ij = self._cluster_distance(d, self.clusters[i], self.clusters[j])
                if d_ij < best_d:
                    best_i, best_j, best_d = i, j, d_ij
        return best_i, best_j, best_d

    def train(self) -> "HierarchicalClusterer":
        """
        Merge clusters until k remain, then assign labels and centroids.

        Label c is the c-th remaining cluster; merged clusters are appended
        after their two inputs are removed.
        """
        m = len(self.x)
        logger.info(f"Starting hierarchical clustering on {m} vectors (k={self.k})")

        d = pairwise_sq_distances(self.x)
        self.clusters = [frozenset([i]) for i in range(m)]
        self.merge_history = []

        while len(self.clusters) > self.k:
            i, j, d_ij = self._best_merge(d)
            left, right = self.clusters[i], self.clusters[j]
            self.merge_history.append(MergeStep(left, right, d_ij))
            # remove j first so index i stays valid
            del self.clusters[j]
            del self.clusters[i]
            self.clusters.append(left | right)
            logger.debug(f"Merged {sorted(left)} + {sorted(right)} at distance {d_ij:.6g}")

        labels = np.empty(m, dtype=int)
        for c, members in enumerate(self.clusters):
            labels[sorted(members)] = c

        self._state = ClusterState.from_labels(labels, self.k)
        self._cent = calc_centroids(self.x, labels, self.k)

        logger.info(
            f"Hierarchical clustering created {self.k} clusters after {len(self.merge_history)} merges"
        )
        return self
