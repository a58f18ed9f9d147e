"""
Markov Clustering (MCL) Algorithm Implementation.

Clusters the nodes of a graph by simulating flow:
- Expand: raise the column-stochastic transition matrix to the k-th power
- Inflate: raise entries to the r-th power, renormalize, prune tiny entries
- Repeat until every column has collapsed onto its attractors

Works on an adjacency matrix (call add_self_loops/normalize first) or on a
matrix that is already column-stochastic. The clusterer keeps its own copy
of the matrix; the caller's array is never modified.
"""

import logging
from typing import Optional

import numpy as np

from clusterlab.core.base_clustering import BaseClusterer, ClusteringConfig, ClusteringResult
from clusterlab.utils.error_handling import (
    ConfigurationError,
    NotTrainedError,
    UnsupportedOperationError,
)

logger = logging.getLogger(__name__)

MAX_ITER = 200
EPSILON = 1e-7


class MarkovClusterer(BaseClusterer):
    """
    Markov clustering of a weighted graph.

    Best for: community detection on graphs
    Strengths: number of groups is not fixed in advance
    Weaknesses: dense n x n matrix powers, no centroid concept
    """

    algorithm_name = "markov"

    def __init__(
        self,
        t: np.ndarray,
        k: int = 2,
        r: float = 2.0,
        max_iter: int = MAX_ITER,
        epsilon: float = EPSILON,
        stream: int = 0,
    ):
        """
        Initialize Markov clusterer.

        Args:
            t: Adjacency or column-stochastic transition matrix (n x n)
            k: Expansion power
            r: Inflation exponent
            max_iter: Maximum expand/inflate rounds
            epsilon: Pruning and convergence threshold
            stream: Random stream (unused; kept for the common interface)
        """
        super().__init__(np.array(t, dtype=float, copy=True), stream)
        if self.x.shape[0] != self.x.shape[1]:
            raise ConfigurationError(
                f"Markov clustering needs a square matrix, got shape {self.x.shape}",
                error_code="INVALID_SHAPE",
            )
        if np.any(self.x < 0):
            raise ConfigurationError(
                "Markov clustering needs non-negative edge weights",
                error_code="NEGATIVE_WEIGHTS",
            )
        if k < 1:
            raise ConfigurationError(f"k must be >= 1, got {k}", error_code="INVALID_K")
        if r <= 0:
            raise ConfigurationError(f"r must be > 0, got {r}", error_code="INVALID_R")
        if max_iter < 1 or epsilon <= 0:
            raise ConfigurationError(
                f"max_iter must be >= 1 and epsilon > 0, got {max_iter}, {epsilon}",
                error_code="INVALID_LIMITS",
            )

        self.k = k
        self.r = r
        self.max_iter = max_iter
        self.epsilon = epsilon

        self.processed = False
        self.converged = False
        self.n_iter = 0
        self._groups: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, t: np.ndarray, config: ClusteringConfig) -> "MarkovClusterer":
        params = config.params
        clusterer = cls(
            t,
            k=params.get("expansion", 2),
            r=params.get("inflation", 2.0),
            max_iter=params.get("max_iter", MAX_ITER),
            epsilon=params.get("epsilon", EPSILON),
            stream=config.stream,
        )
        if params.get("add_self_loops", True):
            clusterer.add_self_loops(params.get("self_loop_weight", 1.0))
        if params.get("normalize", True):
            clusterer.normalize()
        return clusterer

    @property
    def t(self) -> np.ndarray:
        """Current transition matrix (copy)."""
        return self.x.copy()

    # ------------------------------------------------------------------
    # Preprocessing
    # ------------------------------------------------------------------

    def add_self_loops(self, weight: float = 1.0) -> None:
        """Set every diagonal entry to `weight`."""
        np.fill_diagonal(self.x, weight)

    def normalize(self) -> None:
        """Divide each column by its sum; all-zero columns stay zero."""
        self.x = self._normalize_columns(self.x)

    @staticmethod
    def _normalize_columns(t: np.ndarray) -> np.ndarray:
        sums = t.sum(axis=0)
        nonzero = sums > 0
        out = t.copy()
        out[:, nonzero] /= sums[nonzero]
        return out

    # ------------------------------------------------------------------
    # Flow simulation
    # ------------------------------------------------------------------

    def _expand(self) -> None:
        self.x = np.linalg.matrix_power(self.x, self.k)

    def _inflate(self) -> bool:
        """
        Inflate, renormalize and prune every column.

        Returns:
            True if every column's variance over its non-zero entries is below epsilon
        """
        t = self._normalize_columns(np.power(self.x, self.r))
        t[t < self.epsilon] = 0.0
        t = self._normalize_columns(t)
        self.x = t

        for j in range(t.shape[1]):
            col = t[:, j]
            nz = col[col > 0]
            # an all-zero column has nothing left to converge
            if len(nz) > 1 and np.var(nz) >= self.epsilon:
                return False
        return True

    def process_matrix(self) -> np.ndarray:
        """
        Alternate expansion and inflation until convergence or max_iter.

        Returns:
            The processed transition matrix (copy)
        """
        self.converged = False
        for it in range(1, self.max_iter + 1):
            self.n_iter = it
            self._expand()
            if self._inflate():
                self.converged = True
                break
            logger.debug(f"MCL round {it}: {int(np.count_nonzero(self.x))} non-zero entries")

        if not self.converged:
            logger.warning(f"MCL stopped at max_iter={self.max_iter} without converging")
        else:
            logger.info(f"MCL converged after {self.n_iter} rounds")

        self.processed = True
        return self.t

    def train(self) -> "MarkovClusterer":
        """
        Assign each node to the group of its strongest attractor.

        Rows are scanned top to bottom; a row that holds the largest entry
        seen so far for some column claims that column's node and gets the
        next group number. Nodes never claimed stay in group 0.
        """
        if not self.processed:
            self.process_matrix()

        t = self.x
        n = t.shape[1]
        force = np.zeros(n)
        groups = np.zeros(n, dtype=int)
        group = 1
        for i in range(t.shape[0]):
            stronger = t[i] > force
            if stronger.any():
                groups[stronger] = group
                force[stronger] = t[i, stronger]
                group += 1

        self._groups = groups
        logger.info(f"MCL found {self.n_groups} groups among {n} nodes")
        return self

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def is_trained(self) -> bool:
        return self._groups is not None

    def _require_trained(self) -> None:
        if self._groups is None:
            raise NotTrainedError(
                f"{self.algorithm_name}: train() must be called before reading results",
                error_code="NOT_TRAINED",
            )

    @property
    def cluster(self) -> np.ndarray:
        """Group of every node; 0 means unclustered."""
        self._require_trained()
        return self._groups.copy()

    @property
    def n_groups(self) -> int:
        """Number of distinct non-zero groups."""
        self._require_trained()
        return len(np.unique(self._groups[self._groups > 0]))

    @property
    def centroids(self) -> np.ndarray:
        raise UnsupportedOperationError("centroids", self.algorithm_name)

    @property
    def csize(self) -> np.ndarray:
        raise UnsupportedOperationError("csize", self.algorithm_name)

    def classify(self, z: np.ndarray) -> int:
        raise UnsupportedOperationError("classify", self.algorithm_name)

    def result(self) -> ClusteringResult:
        """
        Package the groups into a ClusteringResult.

        Groups are renumbered 0..n_groups-1 in ascending group order;
        unclustered nodes are labelled -1.
        """
        groups = self.cluster
        labels = np.full(len(groups), -1, dtype=int)
        for new, g in enumerate(np.unique(groups[groups > 0])):
            labels[groups == g] = new
        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=self.n_groups,
            outlier_count=int(np.sum(groups == 0)),
            quality_metrics={
                "iterations": self.n_iter,
                "converged": float(self.converged),
            },
            algorithm=self.algorithm_name,
        )
