"""
Cluster State.

`ClusterState` owns the assignment array `to_c` and the size vector `sz`
of a clustering run. All mutation goes through its methods so that
`sz[c] == count(to_c == c)` holds after every call; the arrays handed out
by the `to_c` and `sz` properties are read-only views.
"""

import logging
from typing import List

import numpy as np

from clusterlab.core.base_clustering import calc_centroids
from clusterlab.utils.error_handling import ClusteringFailedError, EmptyClusterError

logger = logging.getLogger(__name__)

UNASSIGNED = -1


class ClusterState:
    """Assignment of m points to k clusters, with sizes kept in lock-step."""

    def __init__(self, m: int, k: int):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.m = m
        self.k = k
        self._to_c = np.full(m, UNASSIGNED, dtype=int)
        self._sz = np.zeros(k, dtype=int)

    @classmethod
    def from_labels(cls, labels: np.ndarray, k: int) -> "ClusterState":
        """Build a fully assigned state from an existing label array."""
        labels = np.asarray(labels, dtype=int)
        state = cls(len(labels), k)
        for i, c in enumerate(labels):
            state.assign(i, int(c))
        return state

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def to_c(self) -> np.ndarray:
        view = self._to_c.view()
        view.flags.writeable = False
        return view

    @property
    def sz(self) -> np.ndarray:
        view = self._sz.view()
        view.flags.writeable = False
        return view

    def label(self, i: int) -> int:
        return int(self._to_c[i])

    def size(self, c: int) -> int:
        return int(self._sz[c])

    @property
    def n_assigned(self) -> int:
        return int(self._sz.sum())

    def members(self, c: int) -> np.ndarray:
        """Indices of the points in cluster c, ascending."""
        return np.flatnonzero(self._to_c == c)

    def empty_clusters(self) -> List[int]:
        return [int(c) for c in np.flatnonzero(self._sz == 0)]

    def centroids(self, x: np.ndarray) -> np.ndarray:
        """Coordinate-wise mean of each cluster's points."""
        if self.n_assigned != self.m:
            raise ClusteringFailedError(
                "Centroids requested before every point was assigned",
                error_code="INCOMPLETE_ASSIGNMENT",
            )
        return calc_centroids(x, self._to_c, self.k)

    def copy(self) -> "ClusterState":
        other = ClusterState(self.m, self.k)
        other._to_c = self._to_c.copy()
        other._sz = self._sz.copy()
        return other

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _check_cluster(self, c: int) -> None:
        if not 0 <= c < self.k:
            raise ClusteringFailedError(
                f"Cluster index {c} out of range [0, {self.k})",
                error_code="INVALID_CLUSTER",
            )

    def assign(self, i: int, c: int) -> None:
        """Initial placement of an unassigned point."""
        self._check_cluster(c)
        if self._to_c[i] != UNASSIGNED:
            raise ClusteringFailedError(
                f"Point {i} is already assigned to cluster {self._to_c[i]}",
                error_code="ALREADY_ASSIGNED",
            )
        self._to_c[i] = c
        self._sz[c] += 1

    def move(self, i: int, c: int) -> bool:
        """
        Move point i to cluster c.

        Returns:
            True if the point changed cluster

        Raises:
            ClusteringFailedError: If the move would empty the source cluster
        """
        self._check_cluster(c)
        src = self._to_c[i]
        if src == UNASSIGNED:
            raise ClusteringFailedError(
                f"Point {i} is not assigned", error_code="NOT_ASSIGNED"
            )
        if src == c:
            return False
        if self._sz[src] <= 1:
            raise ClusteringFailedError(
                f"Moving point {i} would empty cluster {src}",
                error_code="WOULD_EMPTY",
            )
        self._sz[src] -= 1
        self._sz[c] += 1
        self._to_c[i] = c
        return True

    def swap(self, i: int, j: int) -> None:
        """Exchange the clusters of points i and j; sizes are unchanged."""
        self._to_c[i], self._to_c[j] = self._to_c[j], self._to_c[i]

    def fix_empty_clusters(self, rng: np.random.Generator) -> int:
        """
        Give every empty cluster a point taken from the current largest cluster.

        The point is drawn uniformly among the largest cluster's members.

        Returns:
            Number of clusters that were filled
        """
        fixed = 0
        for c in range(self.k):
            if self._sz[c] > 0:
                continue
            largest = int(np.argmax(self._sz))
            candidates = self.members(largest)
            i = int(candidates[rng.integers(len(candidates))])
            logger.debug(f"Cluster {c} is empty; moving point {i} from cluster {largest}")
            self.move(i, c)
            fixed += 1
        return fixed

    def check_nonempty(self) -> None:
        """Raise EmptyClusterError for the first empty cluster."""
        empty = self.empty_clusters()
        if empty:
            raise EmptyClusterError(empty[0], details={"sizes": self._sz.tolist()})

    def __repr__(self) -> str:
        return f"ClusterState(k={self.k}, sz={self._sz.tolist()})"
