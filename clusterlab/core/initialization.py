"""
K-Means Initialization Strategies.

Each strategy produces a fully populated ClusterState with no empty
cluster. Centroid-based strategies (random centroid pick, k-means++) place
every point at its nearest seed; the driver then recomputes centroids as
cluster means, so centroids always agree with the assignment.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Type, Union

import numpy as np

from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.distance import distances
from clusterlab.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


class Initializer(ABC):
    """Strategy that creates the initial cluster assignment."""

    name = "initializer"

    @abstractmethod
    def initialize(self, x: np.ndarray, k: int, rng: np.random.Generator) -> ClusterState:
        """
        Create the initial assignment.

        Args:
            x: Point set (m x n)
            k: Number of clusters
            rng: Random generator for this run

        Returns:
            ClusterState with every point assigned and every cluster non-empty
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def assign_to_nearest(x: np.ndarray, seeds: np.ndarray, rng: np.random.Generator) -> ClusterState:
    """
    Place every point in the cluster of its nearest seed, then fill empties.

    Ties go to the lowest seed index.
    """
    k = len(seeds)
    state = ClusterState(len(x), k)
    for i in range(len(x)):
        state.assign(i, int(np.argmin(distances(x[i], seeds))))
    state.fix_empty_clusters(rng)
    return state


class RandomAssignment(Initializer):
    """Assign every point to a uniformly random cluster."""

    name = "random_assignment"

    def initialize(self, x, k, rng):
        state = ClusterState(len(x), k)
        for i, c in enumerate(rng.integers(0, k, size=len(x))):
            state.assign(i, int(c))
        fixed = state.fix_empty_clusters(rng)
        if fixed:
            logger.debug(f"Random assignment left {fixed} empty clusters; refilled")
        return state


class RandomCentroids(Initializer):
    """Pick k distinct points as the initial centroids."""

    name = "random_centroids"

    def initialize(self, x, k, rng):
        picks = rng.choice(len(x), size=k, replace=False)
        return assign_to_nearest(x, x[picks], rng)


class KMeansPlusPlus(Initializer):
    """
    k-means++ seeding.

    The first centroid is a uniformly random point. Each further centroid is
    drawn with probability proportional to a point's squared distance to its
    nearest already-chosen centroid.
    """

    name = "kmeans++"

    def choose_seeds(self, x: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
        m = len(x)
        seeds = np.empty((k, x.shape[1]))
        seeds[0] = x[rng.integers(m)]
        # shortest squared distance from each point to any chosen seed
        shortest = np.array([distances(x[i], seeds, 1)[0] for i in range(m)])
        for c in range(1, k):
            total = shortest.sum()
            if total > 0:
                pmf = shortest / total
            else:
                # every point coincides with a chosen seed
                pmf = np.full(m, 1.0 / m)
            seeds[c] = x[rng.choice(m, p=pmf)]
            d = x - seeds[c]
            shortest = np.minimum(shortest, np.einsum("ij,ij->i", d, d))
        return seeds

    def initialize(self, x, k, rng):
        return assign_to_nearest(x, self.choose_seeds(x, k, rng), rng)


INITIALIZERS: Dict[str, Type[Initializer]] = {
    "random_assignment": RandomAssignment,
    "random_centroids": RandomCentroids,
    "kmeans++": KMeansPlusPlus,
}


def get_initializer(init: Union[str, Initializer]) -> Initializer:
    """
    Resolve an initializer by name, or pass an instance through.

    Raises:
        ConfigurationError: If the name is unknown
    """
    if isinstance(init, Initializer):
        return init
    key = str(init).lower()
    if key not in INITIALIZERS:
        raise ConfigurationError(
            f"Unknown initializer: {init}. Supported: {list(INITIALIZERS.keys())}",
            error_code="INVALID_INITIALIZER",
        )
    return INITIALIZERS[key]()
