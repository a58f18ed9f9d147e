"""
Base Clusterer Interface.

Defines the contract for all clustering algorithms in clusterlab.
Supports pluggable algorithms with consistent API.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
import numpy as np
from dataclasses import dataclass, field

from clusterlab.core.distance import distances
from clusterlab.utils.error_handling import (
    ConfigurationError,
    InsufficientDataError,
    NotTrainedError,
)


@dataclass
class ClusteringConfig:
    """Configuration for clustering algorithms."""

    algorithm_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    stream: int = 0


class ClusteringResult:
    """Results from clustering operation."""

    def __init__(
        self,
        cluster_labels: np.ndarray,
        n_clusters: int,
        outlier_count: int,
        quality_metrics: Dict[str, float],
        centroids: Optional[np.ndarray] = None,
        cluster_probabilities: Optional[np.ndarray] = None,
        cluster_sizes: Optional[np.ndarray] = None,
        algorithm: Optional[str] = None,
    ):
        self.cluster_labels = cluster_labels
        self.n_clusters = n_clusters
        self.outlier_count = outlier_count
        self.quality_metrics = quality_metrics
        self.centroids = centroids
        self.cluster_probabilities = cluster_probabilities
        self.cluster_sizes = cluster_sizes
        self.algorithm = algorithm

    @property
    def labels(self) -> np.ndarray:
        """Alias for cluster_labels."""
        return self.cluster_labels

    @property
    def probabilities(self) -> Optional[np.ndarray]:
        """Alias for cluster_probabilities."""
        return self.cluster_probabilities

    @property
    def cluster_centroids(self) -> Optional[Dict[int, np.ndarray]]:
        """Return centroids as dict mapping cluster_id -> centroid_vector."""
        if self.centroids is None:
            return None
        return {i: self.centroids[i] for i in range(len(self.centroids))}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "algorithm": self.algorithm,
            "n_clusters": self.n_clusters,
            "outlier_count": self.outlier_count,
            "quality_metrics": self.quality_metrics,
            "total_items": len(self.cluster_labels),
            "cluster_labels": [int(c) for c in self.cluster_labels],
            "cluster_sizes": (
                [int(s) for s in self.cluster_sizes]
                if self.cluster_sizes is not None else None
            ),
            "centroids": (
                self.centroids.tolist() if self.centroids is not None else None
            ),
        }


def calc_centroids(x: np.ndarray, to_c: np.ndarray, k: int) -> np.ndarray:
    """
    Compute centroids as the coordinate-wise means of each cluster's points.

    Args:
        x: Point set (m x n)
        to_c: Cluster assignment for each point (length m)
        k: Number of clusters

    Returns:
        Centroid matrix (k x n); rows of empty clusters are left at zero
    """
    to_c = np.asarray(to_c, dtype=int)
    cent = np.zeros((k, x.shape[1]))
    np.add.at(cent, to_c, x)
    sizes = np.bincount(to_c, minlength=k)
    nonempty = sizes > 0
    cent[nonempty] /= sizes[nonempty, None]
    return cent


class BaseClusterer(ABC):
    """
    Abstract base class for clustering algorithms.

    A clusterer is bound to its point set at construction. `train()` runs the
    algorithm to a fixed point using the current random stream; afterwards
    the assignment, centroids and cluster sizes can be read and new points
    classified against the centroids.
    """

    algorithm_name = "clusterer"

    def __init__(self, x: np.ndarray, stream: int = 0):
        """
        Initialize clusterer.

        Args:
            x: Point set (m x n), row i is point i
            stream: Random stream used by the next train()
        """
        x = np.asarray(x, dtype=float)
        if x.ndim != 2:
            raise ConfigurationError(
                f"Expected an m x n point matrix, got array with shape {x.shape}",
                error_code="INVALID_SHAPE",
            )
        if x.shape[0] == 0:
            raise InsufficientDataError("Cannot cluster empty vector array")

        self.x = x
        self._stream = int(stream)
        self._state = None
        self._cent: Optional[np.ndarray] = None
        self._cluster_names: Optional[List[str]] = None

    @abstractmethod
    def train(self) -> "BaseClusterer":
        """
        Run the algorithm until the assignment no longer changes.

        Returns:
            self, so calls can be chained
        """
        pass

    # ------------------------------------------------------------------
    # Random stream
    # ------------------------------------------------------------------

    @property
    def stream(self) -> int:
        return self._stream

    def set_stream(self, s: int) -> None:
        """Set the random stream used by the next train()."""
        self._stream = int(s)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def is_trained(self) -> bool:
        return self._state is not None

    def _require_trained(self) -> None:
        if self._state is None:
            raise NotTrainedError(
                f"{self.algorithm_name}: train() must be called before reading results",
                error_code="NOT_TRAINED",
            )

    @property
    def cluster(self) -> np.ndarray:
        """Cluster assignment of every point (copy)."""
        self._require_trained()
        return self._state.to_c.copy()

    @property
    def csize(self) -> np.ndarray:
        """Number of points in each cluster (copy)."""
        self._require_trained()
        return self._state.sz.copy()

    @property
    def centroids(self) -> np.ndarray:
        """Centroid matrix, one row per cluster (copy)."""
        self._require_trained()
        return self._cent.copy()

    def classify(self, z: np.ndarray) -> int:
        """
        Assign a new point to the cluster with the closest centroid.

        Ties go to the lowest cluster index.
        """
        return int(np.argmin(distances(z, self.centroids)))

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def sse(self, to_c: Optional[np.ndarray] = None, c: Optional[int] = None) -> float:
        """
        Sum of squared distances from points to their cluster's centroid.

        Args:
            to_c: Assignment to evaluate (the trained one when None)
            c: Restrict the sum to cluster c

        Returns:
            Sum of squared errors
        """
        cent = self.centroids
        labels = self._state.to_c if to_c is None else np.asarray(to_c, dtype=int)
        diff = self.x - cent[labels]
        sq = np.einsum("ij,ij->i", diff, diff)
        if c is not None:
            sq = sq[labels == c]
        return float(sq.sum())

    def sst(self) -> float:
        """Sum of squared distances from points to the global mean."""
        diff = self.x - self.x.mean(axis=0)
        return float(np.einsum("ij,ij->", diff, diff))

    def check_opt(self, opt: float, to_c: Optional[np.ndarray] = None) -> bool:
        """Whether the achieved sse is at or below a known optimum."""
        return self.sse(to_c) <= opt

    # ------------------------------------------------------------------
    # Cluster names
    # ------------------------------------------------------------------

    @property
    def cluster_names(self) -> Optional[List[str]]:
        return self._cluster_names

    @cluster_names.setter
    def cluster_names(self, names: Optional[List[str]]) -> None:
        self._cluster_names = list(names) if names is not None else None

    def name(self, c: int) -> str:
        """Name of cluster c, or "unknown" when none was given."""
        if self._cluster_names is not None and 0 <= c < len(self._cluster_names):
            return self._cluster_names[c]
        return "unknown"

    # ------------------------------------------------------------------
    # Result container
    # ------------------------------------------------------------------

    def result(self) -> ClusteringResult:
        """
        Package the trained clustering into a ClusteringResult.

        Returns:
            ClusteringResult with labels, centroids, confidence and metrics
        """
        labels = self.cluster
        centroids = self.centroids

        # Confidence from distance to the assigned centroid
        cluster_probabilities = None
        d = np.sqrt(
            np.einsum("ij,ij->i", self.x - centroids[labels], self.x - centroids[labels])
        )
        positive_distances = d[d > 0]
        if len(positive_distances) > 0:
            max_dist = np.max(positive_distances)
            cluster_probabilities = np.exp(-d / max_dist)
        else:
            cluster_probabilities = np.ones(len(labels))

        quality_metrics = self._calculate_quality_metrics(self.x, labels)
        quality_metrics["sse"] = self.sse()
        quality_metrics["sst"] = self.sst()
        if quality_metrics["sst"] > 0:
            quality_metrics["r_squared"] = 1.0 - quality_metrics["sse"] / quality_metrics["sst"]

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=len(centroids),
            outlier_count=0,
            quality_metrics=quality_metrics,
            centroids=centroids,
            cluster_probabilities=cluster_probabilities,
            cluster_sizes=self.csize,
            algorithm=self.algorithm_name,
        )

    @staticmethod
    def _calculate_quality_metrics(
        vectors: np.ndarray,
        labels: np.ndarray,
    ) -> Dict[str, float]:
        """
        Calculate clustering quality metrics.

        Args:
            vectors: Input vectors
            labels: Cluster labels (-1 marks points outside any cluster)

        Returns:
            Dictionary of quality metrics
        """
        from sklearn.metrics import silhouette_score, davies_bouldin_score

        metrics = {}

        # Filter out outliers (-1 labels) for metrics calculation
        non_outlier_mask = labels != -1
        n_labels = len(np.unique(labels[non_outlier_mask]))

        if 1 < n_labels < np.sum(non_outlier_mask):
            try:
                # Silhouette score (higher is better, range: -1 to 1)
                silhouette = silhouette_score(
                    vectors[non_outlier_mask],
                    labels[non_outlier_mask],
                )
                metrics["silhouette_score"] = float(silhouette)
            except ValueError:
                metrics["silhouette_score"] = 0.0

            try:
                # Davies-Bouldin Index (lower is better)
                db_index = davies_bouldin_score(
                    vectors[non_outlier_mask],
                    labels[non_outlier_mask],
                )
                metrics["davies_bouldin_index"] = float(db_index)
            except ValueError:
                metrics["davies_bouldin_index"] = 0.0

        return metrics
