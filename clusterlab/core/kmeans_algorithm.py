"""
K-Means Clustering Algorithm Implementation.

A generic K-Means driver composed from two independent strategies:
- an Initializer (random assignment, random centroid pick, k-means++)
- a Reassigner (plain nearest-centroid, Hartigan-Wong, Lloyd, Hartigan)

Run: Init -> Assign -> (Reassign <-> RecomputeCentroids)* -> [PostProcessSwap]
"""

import logging
import math
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from clusterlab.core.base_clustering import BaseClusterer, ClusteringConfig
from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.initialization import Initializer, get_initializer
from clusterlab.core.reassignment import Reassigner, get_reassigner
from clusterlab.utils.error_handling import ConfigurationError, validate_cluster_count

logger = logging.getLogger(__name__)

MAX_ITER = 1000
N_STREAMS = 1000


class Algorithm(str, Enum):
    """Reassignment algorithm used after k-means++ seeding."""

    HARTIGAN = "hartigan"
    LLOYD = "lloyd"


class KMeansClusterer(BaseClusterer):
    """
    K-Means clustering implementation.

    Best for: points with roughly spherical, similarly sized clusters
    Strengths: simple, every strategy combination can be swapped in
    Weaknesses: requires k as input, result depends on the random stream
    """

    algorithm_name = "kmeans"

    def __init__(
        self,
        x: np.ndarray,
        k: int,
        init: Union[str, Initializer] = "random_assignment",
        reassign: Union[str, Reassigner] = "plain",
        post_swap: bool = False,
        immediate: bool = False,
        max_iter: int = MAX_ITER,
        stream: int = 0,
    ):
        """
        Initialize K-Means clusterer.

        Args:
            x: Point set (m x n)
            k: Number of clusters, 1 <= k < m
            init: Initializer name or instance
            reassign: Reassigner name or instance
            post_swap: Try pairwise label swaps after convergence
            immediate: Stop each reassignment pass at its first move
            max_iter: Maximum reassignment passes
            stream: Random stream

        Raises:
            ConfigurationError: If k or max_iter is out of range
        """
        super().__init__(x, stream)
        validate_cluster_count(k, len(self.x))
        if max_iter < 1:
            raise ConfigurationError(
                f"max_iter must be >= 1, got {max_iter}", error_code="INVALID_MAX_ITER"
            )

        self.k = k
        self.initializer = get_initializer(init)
        self.reassigner = get_reassigner(reassign)
        self.post_swap = post_swap
        self.immediate = immediate
        self.max_iter = max_iter

        self.converged = False
        self.n_iter = 0
        self.n_swaps = 0
        self.sse_history: List[float] = []

        logger.debug(
            f"Initialized K-Means: k={k}, init={self.initializer.name}, "
            f"reassign={self.reassigner.name}, post_swap={post_swap}, immediate={immediate}"
        )

    @classmethod
    def from_flags(
        cls,
        x: np.ndarray,
        k: int,
        flags: Sequence[bool] = (False, False),
        **kwargs,
    ) -> "KMeansClusterer":
        """
        Build a clusterer from a (post_swap, immediate) flag pair.

        Raises:
            ConfigurationError: If flags does not hold exactly two values
        """
        flags = tuple(flags)
        if len(flags) != 2:
            raise ConfigurationError(
                f"K-Means requires 2 flags (post_swap, immediate), got {len(flags)}",
                error_code="INVALID_FLAGS",
                details={"flags": list(flags)},
            )
        return cls(x, k, post_swap=bool(flags[0]), immediate=bool(flags[1]), **kwargs)

    @classmethod
    def from_config(cls, x: np.ndarray, config: ClusteringConfig) -> "KMeansClusterer":
        """Build a clusterer from a ClusteringConfig's params."""
        params = config.params
        options = dict(
            init=params.get("init", "random_assignment"),
            reassign=params.get("reassign", "plain"),
            max_iter=params.get("max_iter", MAX_ITER),
            stream=config.stream,
        )
        k = params.get("n_clusters", 3)
        if params.get("flags") is not None:
            return cls.from_flags(x, k, params["flags"], **options)
        return cls(
            x,
            k,
            post_swap=params.get("post_swap", False),
            immediate=params.get("immediate", False),
            **options,
        )

    @property
    def flags(self) -> Tuple[bool, bool]:
        return (self.post_swap, self.immediate)

    def _total_sse(self, state: ClusterState, cent: np.ndarray) -> float:
        diff = self.x - cent[state.to_c]
        return float(np.einsum("ij,ij->", diff, diff))

    def train(self) -> "KMeansClusterer":
        """
        Iterate reassignment and centroid recomputation until no point moves.

        Returns:
            self

        Raises:
            EmptyClusterError: If a cluster is empty after the iterations
        """
        rng = np.random.default_rng(self._stream)
        state = self.initializer.initialize(self.x, self.k, rng)
        cent = state.centroids(self.x)

        self.converged = False
        self.n_iter = 0
        self.n_swaps = 0
        self.sse_history = [self._total_sse(state, cent)]

        for it in range(1, self.max_iter + 1):
            self.n_iter = it
            if self.reassigner.reassign(self.x, state, cent, rng, self.immediate):
                self.converged = True
                break
            cent = state.centroids(self.x)
            self.sse_history.append(self._total_sse(state, cent))
            logger.debug(f"({it}) sz = {state.sz.tolist()}, sse = {self.sse_history[-1]:.6g}")

        if not self.converged:
            logger.warning(
                f"K-Means stopped at max_iter={self.max_iter} without converging (stream={self._stream})"
            )

        state.check_nonempty()
        cent = state.centroids(self.x)

        if self.post_swap:
            cent = self._swap(state, cent)

        self._state = state
        self._cent = cent

        logger.debug(
            f"K-Means finished after {self.n_iter} iterations: sz = {state.sz.tolist()}, "
            f"converged={self.converged}"
        )
        return self

    def _pair_sse(self, state: ClusterState, cent: np.ndarray, a: int, b: int) -> float:
        total = 0.0
        for c in (a, b):
            diff = self.x[state.members(c)] - cent[c]
            total += float(np.einsum("ij,ij->", diff, diff))
        return total

    def _swap(self, state: ClusterState, cent: np.ndarray) -> np.ndarray:
        """
        Try every swap of two points in different clusters.

        A swap is kept only when it strictly lowers the combined sse of the
        two clusters involved.
        """
        x = self.x
        m = len(x)
        for i in range(m - 1):
            for j in range(i + 1, m):
                a, b = state.label(i), state.label(j)
                if a == b:
                    continue
                before = self._pair_sse(state, cent, a, b)
                state.swap(i, j)
                # sizes are unchanged, so only the two means shift
                trial = cent.copy()
                trial[a] += (x[j] - x[i]) / state.size(a)
                trial[b] += (x[i] - x[j]) / state.size(b)
                after = self._pair_sse(state, trial, a, b)
                if after < before:
                    cent = trial
                    self.n_swaps += 1
                else:
                    state.swap(i, j)

        if self.n_swaps:
            logger.debug(f"Post-process swap kept {self.n_swaps} swaps")
        return state.centroids(x)

    def __repr__(self) -> str:
        return (
            f"KMeansClusterer(k={self.k}, init={self.initializer!r}, "
            f"reassign={self.reassigner!r}, flags={self.flags}, stream={self._stream})"
        )


# =============================================================================
# Presets
# =============================================================================


def kmeans_clusterer(
    x: np.ndarray, k: int, flags: Sequence[bool] = (False, False), stream: int = 0
) -> KMeansClusterer:
    """Random assignment with plain reassignment."""
    return KMeansClusterer.from_flags(x, k, flags, stream=stream)


def kmeans_clusterer2(
    x: np.ndarray, k: int, flags: Sequence[bool] = (False, False), stream: int = 0
) -> KMeansClusterer:
    """Random centroid pick with plain reassignment."""
    return KMeansClusterer.from_flags(x, k, flags, init="random_centroids", stream=stream)


def kmeans_clusterer_hw(
    x: np.ndarray, k: int, flags: Sequence[bool] = (False, False), stream: int = 0
) -> KMeansClusterer:
    """Random assignment with Hartigan-Wong reassignment."""
    return KMeansClusterer.from_flags(x, k, flags, reassign="hartigan_wong", stream=stream)


def kmeans_clusterer_pp(
    x: np.ndarray, k: int, flags: Sequence[bool] = (False, False), stream: int = 0
) -> KMeansClusterer:
    """k-means++ seeding with Hartigan-Wong reassignment."""
    return KMeansClusterer.from_flags(
        x, k, flags, init="kmeans++", reassign="hartigan_wong", stream=stream
    )


def kmeans_pp_clusterer(
    x: np.ndarray,
    k: int,
    algorithm: Union[Algorithm, str] = Algorithm.HARTIGAN,
    stream: int = 0,
    max_iter: int = MAX_ITER,
) -> KMeansClusterer:
    """
    k-means++ seeding followed by Lloyd batch passes or Hartigan single-point moves.

    Args:
        x: Point set (m x n)
        k: Number of clusters
        algorithm: Algorithm.HARTIGAN (centroids updated after every move)
            or Algorithm.LLOYD (centroids recomputed after a full pass)
        stream: Random stream
        max_iter: Maximum reassignment passes
    """
    algorithm = Algorithm(algorithm)
    reassign = "hartigan" if algorithm is Algorithm.HARTIGAN else "lloyd"
    return KMeansClusterer(
        x, k, init="kmeans++", reassign=reassign, max_iter=max_iter, stream=stream
    )


# =============================================================================
# Random-restart factory
# =============================================================================


def permute_streams(streams: Iterable[int], stream: int = 0) -> np.ndarray:
    """Return a random permutation of `streams` drawn from `stream`."""
    return np.random.default_rng(stream).permutation(np.asarray(list(streams), dtype=int))


def kmeans_pp_restarts(
    x: np.ndarray,
    k: int,
    algorithm: Union[Algorithm, str] = Algorithm.HARTIGAN,
    check: int = 3,
    streams: Optional[Iterable[int]] = None,
    max_iter: int = MAX_ITER,
) -> KMeansClusterer:
    """
    Train k-means++ over several streams and keep the lowest-sse clusterer.

    Stops early once the current minimum sse has been reached again `check`
    more times.

    Args:
        x: Point set (m x n)
        k: Number of clusters
        algorithm: HARTIGAN or LLOYD
        check: Repeats of the minimum before stopping
        streams: Streams to try, in order (0..999 when None)
        max_iter: Maximum reassignment passes per run

    Returns:
        The trained clusterer with the lowest sse
    """
    if check < 0:
        raise ConfigurationError(f"check must be >= 0, got {check}", error_code="INVALID_CHECK")
    if streams is None:
        streams = range(N_STREAMS)

    best: Optional[KMeansClusterer] = None
    sse_min = math.inf
    seen = 0
    tried = 0

    for s in streams:
        clusterer = kmeans_pp_clusterer(x, k, algorithm, stream=int(s), max_iter=max_iter).train()
        sse = clusterer.sse()
        tried += 1
        if best is not None and math.isclose(sse, sse_min, rel_tol=1e-9, abs_tol=1e-12):
            if seen == check:
                break
            seen += 1
        elif sse < sse_min:
            sse_min = sse
            best = clusterer
            seen = 0

    if best is None:
        raise ConfigurationError("No random streams given", error_code="NO_STREAMS")

    logger.debug(f"Restarts: best sse = {sse_min:.6g} after {tried} streams (k={k})")
    return best
