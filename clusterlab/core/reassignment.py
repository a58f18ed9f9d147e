"""
K-Means Reassignment Strategies.

A reassigner runs one pass over the points, moving points between clusters
through the ClusterState. It never empties a cluster: a point whose
cluster has exactly one member is skipped.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Union

import numpy as np

from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.distance import distances
from clusterlab.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


class Reassigner(ABC):
    """Strategy for one reassignment pass."""

    name = "reassigner"

    # True when the strategy keeps `cent` current after every move
    incremental = False

    @abstractmethod
    def reassign(
        self,
        x: np.ndarray,
        state: ClusterState,
        cent: np.ndarray,
        rng: np.random.Generator,
        immediate: bool = False,
    ) -> bool:
        """
        Run one pass over the points.

        Args:
            x: Point set (m x n)
            state: Current assignment, updated in place
            cent: Current centroids (k x n); incremental strategies update it
            rng: Random generator for this run
            immediate: Stop the pass at the first move

        Returns:
            True if no point changed cluster
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class NearestCentroid(Reassigner):
    """
    Move each point to its nearest centroid when that is strictly closer.

    Points are visited in index order, or in a fresh random order each pass
    when `order="random"`.
    """

    name = "plain"

    def __init__(self, order: str = "fixed"):
        if order not in ("fixed", "random"):
            raise ConfigurationError(
                f"order must be 'fixed' or 'random', got {order}",
                error_code="INVALID_ORDER",
            )
        self.order = order

    def _visit_order(self, m: int, rng: np.random.Generator):
        return rng.permutation(m) if self.order == "random" else range(m)

    def reassign(self, x, state, cent, rng, immediate=False):
        done = True
        for i in self._visit_order(len(x), rng):
            c1 = state.label(i)
            if state.size(c1) <= 1:
                continue
            d = distances(x[i], cent)
            c2 = int(np.argmin(d))
            if d[c2] < d[c1]:
                state.move(i, c2)
                done = False
                if immediate:
                    break
        return done

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(order={self.order!r})"


class Lloyd(NearestCentroid):
    """Batch nearest-centroid pass in index order."""

    name = "lloyd"

    def __init__(self):
        super().__init__(order="fixed")

    def __repr__(self) -> str:
        return "Lloyd()"


class HartiganWong(Reassigner):
    """
    Single-point relocation with a size-adjusted distance.

    For a point in cluster c1 the adjusted distance to its own cluster is
    sz*d/(sz-1) and to any other cluster sz*d/(sz+1). The point moves to the
    cluster with the smallest adjusted distance when that is strictly less
    than its own. Points are visited in a random order.

    With `incremental=True` the two affected centroids are updated after
    every move, so later points in the same pass see current means.
    """

    name = "hartigan_wong"

    def __init__(self, incremental: bool = False):
        self.incremental = incremental
        if incremental:
            self.name = "hartigan"

    @staticmethod
    def adjusted_distances(u: np.ndarray, cent: np.ndarray, sz: np.ndarray, own: int) -> np.ndarray:
        """Size-adjusted distances from u to every centroid; requires sz[own] > 1."""
        d = distances(u, cent)
        n = sz.astype(float)
        adj = n * d / (n + 1.0)
        adj[own] = n[own] * d[own] / (n[own] - 1.0)
        return adj

    def reassign(self, x, state, cent, rng, immediate=False):
        done = True
        for i in rng.permutation(len(x)):
            c1 = state.label(i)
            n1 = state.size(c1)
            if n1 <= 1:
                continue
            adj = self.adjusted_distances(x[i], cent, state.sz, c1)
            c2 = int(np.argmin(adj))
            if adj[c2] < adj[c1]:
                n2 = state.size(c2)
                state.move(i, c2)
                if self.incremental:
                    cent[c1] = (n1 * cent[c1] - x[i]) / (n1 - 1)
                    cent[c2] = (n2 * cent[c2] + x[i]) / (n2 + 1)
                done = False
                if immediate:
                    break
        return done

    def __repr__(self) -> str:
        return f"HartiganWong(incremental={self.incremental})"


REASSIGNERS: Dict[str, Callable[[], Reassigner]] = {
    "plain": lambda: NearestCentroid("fixed"),
    "plain_random": lambda: NearestCentroid("random"),
    "hartigan_wong": lambda: HartiganWong(incremental=False),
    "hartigan": lambda: HartiganWong(incremental=True),
    "lloyd": Lloyd,
}


def get_reassigner(reassign: Union[str, Reassigner]) -> Reassigner:
    """
    Resolve a reassigner by name, or pass an instance through.

    Raises:
        ConfigurationError: If the name is unknown
    """
    if isinstance(reassign, Reassigner):
        return reassign
    key = str(reassign).lower()
    if key not in REASSIGNERS:
        raise ConfigurationError(
            f"Unknown reassigner: {reassign}. Supported: {list(REASSIGNERS.keys())}",
            error_code="INVALID_REASSIGNER",
        )
    return REASSIGNERS[key]()
