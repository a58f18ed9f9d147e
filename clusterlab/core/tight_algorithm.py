"""
Tight Clustering Algorithm Implementation.

Finds only the clusters that k-means++ reproduces consistently under
subsampling; points that never reliably co-cluster are left out.

For each k from k0 down to kmin:
1. Cluster b random subsamples and average co-membership per point pair
2. Greedily form candidate clusters ("clubs") of high co-membership
3. Keep the q largest clubs at levels k and k+1
4. A club that reappears at the next level (Jaccard >= beta) is stable:
   it becomes a tight cluster and its points leave the pool
"""

import logging
from typing import List, Optional, Set, Tuple

import numpy as np

from clusterlab.core.base_clustering import BaseClusterer, ClusteringResult, calc_centroids
from clusterlab.core.kmeans_algorithm import Algorithm, kmeans_pp_clusterer
from clusterlab.utils.error_handling import ConfigurationError, NotTrainedError

logger = logging.getLogger(__name__)


class TightClusterer:
    """
    Resampling-based tight clustering on top of k-means++.

    Best for: noisy data where only part of the points form real clusters
    Strengths: reports stable clusters only, leaves scattered points out
    Weaknesses: O(m^2) co-membership matrix, b k-means runs per level
    """

    algorithm_name = "tight"

    def __init__(
        self,
        x: np.ndarray,
        k0: int,
        kmin: int,
        stream: int = 0,
        ratio: float = 0.7,
        alpha: float = 0.5,
        beta: float = 0.7,
        b: int = 10,
        q: int = 7,
        levels: int = 2,
        algorithm: Algorithm = Algorithm.HARTIGAN,
    ):
        """
        Initialize tight clusterer.

        Args:
            x: Point set (m x n)
            k0: Starting (largest) number of clusters
            kmin: Smallest number of clusters tried
            stream: Random stream
            ratio: Subsample fraction
            alpha: Clubs require co-membership >= 1 - alpha
            beta: Jaccard similarity needed to call a club stable
            b: Subsamples per level
            q: Largest clubs compared per level
            levels: Consecutive k values compared
            algorithm: k-means++ reassignment (HARTIGAN or LLOYD)
        """
        self.x = np.asarray(x, dtype=float)
        m = len(self.x)

        if not 1 <= kmin <= k0:
            raise ConfigurationError(
                f"Need 1 <= kmin <= k0, got kmin={kmin}, k0={k0}", error_code="INVALID_K"
            )
        if not 0.0 < ratio <= 1.0:
            raise ConfigurationError(f"ratio must be in (0, 1], got {ratio}", error_code="INVALID_RATIO")
        if b < 1 or q < 1 or levels < 2:
            raise ConfigurationError(
                f"Need b >= 1, q >= 1 and levels >= 2, got b={b}, q={q}, levels={levels}",
                error_code="INVALID_PARAMS",
            )
        if int(m * ratio) <= k0 + levels - 1:
            raise ConfigurationError(
                f"A subsample of {int(m * ratio)} points is too small for k up to {k0 + levels - 1}",
                error_code="INVALID_K",
                details={"m": m, "ratio": ratio, "k0": k0},
            )

        self.k0 = k0
        self.kmin = kmin
        self.stream = stream
        self.ratio = ratio
        self.alpha = alpha
        self.threshold = 1.0 - alpha
        self.beta = beta
        self.b = b
        self.q = q
        self.levels = levels
        self.algorithm = Algorithm(algorithm)

        self.clusters: List[Set[int]] = []
        self._trained = False

    def set_stream(self, s: int) -> None:
        self.stream = int(s)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def create_subsample(
        self, rng: np.random.Generator, pool: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Draw a subsample of the pool without replacement.

        Returns:
            (subsample points, their indices in x)
        """
        ns = int(len(pool) * self.ratio)
        index_map = np.sort(rng.choice(pool, size=ns, replace=False))
        return self.x[index_map], index_map

    def compute_mean_comembership(
        self, k: int, pool: np.ndarray, rng: Optional[np.random.Generator] = None
    ) -> np.ndarray:
        """
        Average co-membership of every point pair over b clustered subsamples.

        Counts are divided by ratio * b.

        Returns:
            m x m matrix (rows and columns outside the pool stay zero)
        """
        if rng is None:
            rng = np.random.default_rng(self.stream)
        m = len(self.x)
        md = np.zeros((m, m))
        for l in range(self.b):
            y, index_map = self.create_subsample(rng, pool)
            clusterer = kmeans_pp_clusterer(y, k, self.algorithm, stream=self.stream + l).train()
            labels = clusterer.cluster
            same = (labels[:, None] == labels[None, :]).astype(float)
            md[np.ix_(index_map, index_map)] += same
        md /= self.ratio * self.b
        return md

    def form_candidate_clusters(self, md: np.ndarray, pool: np.ndarray) -> List[Set[int]]:
        """
        Greedily group pool points whose co-membership reaches the threshold.

        Each unclaimed point starts a club and claims every later unclaimed
        point with md[i, j] >= 1 - alpha.
        """
        available = {int(i) for i in pool}
        clubs: List[Set[int]] = []
        ordered = sorted(available)
        for i in ordered:
            if i not in available:
                continue
            club = {i}
            available.discard(i)
            for j in ordered:
                if j > i and j in available and md[i, j] >= self.threshold:
                    club.add(j)
                    available.discard(j)
            clubs.append(club)
        return clubs

    @staticmethod
    def order_by_size(clubs: List[Set[int]]) -> List[int]:
        """Club indices by descending size; ties keep formation order."""
        return sorted(range(len(clubs)), key=lambda i: -len(clubs[i]))

    def pick_top_q(self, clubs: List[Set[int]], order: List[int]) -> List[Set[int]]:
        return [clubs[i] for i in order[: self.q]]

    @staticmethod
    def sim(c1: Set[int], c2: Set[int]) -> float:
        """Jaccard similarity |c1 & c2| / |c1 | c2|."""
        union = len(c1 | c2)
        if union == 0:
            return 0.0
        return len(c1 & c2) / union

    def find_stable(self, top_clubs: List[List[Set[int]]]) -> Tuple[int, Optional[Set[int]]]:
        """
        First club at some level with a match at the next level.

        Returns:
            (level, club), or (-1, None) when no club is stable
        """
        for lev in range(len(top_clubs) - 1):
            for c1 in top_clubs[lev]:
                for c2 in top_clubs[lev + 1]:
                    if self.sim(c1, c2) >= self.beta:
                        return lev, c1
        return -1, None

    def select_candidate_clusters(
        self, k: int, pool: np.ndarray
    ) -> Tuple[List[Set[int]], List[int]]:
        """
        Form clubs for k and rank them by size.

        The random generator is reseeded from the stream, so every level
        sees the same sequence of subsamples.
        """
        rng = np.random.default_rng(self.stream)
        md = self.compute_mean_comembership(k, pool, rng)
        clubs = self.form_candidate_clusters(md, pool)
        order = self.order_by_size(clubs)
        logger.debug(f"k={k}: {len(clubs)} clubs, largest sizes {[len(clubs[i]) for i in order[:self.q]]}")
        return clubs, order

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def train(self) -> "TightClusterer":
        """Scan k from k0 down to kmin collecting stable clusters."""
        m = len(self.x)
        pool = np.arange(m)
        self.clusters = []

        logger.info(
            f"Starting tight clustering on {m} vectors (k0={self.k0}, kmin={self.kmin}, b={self.b})"
        )

        for kc in range(self.k0, self.kmin - 1, -1):
            k_top = kc + self.levels - 1
            if int(len(pool) * self.ratio) <= k_top:
                logger.warning(
                    f"Stopping at kc={kc}: {len(pool)} remaining points are too few to subsample"
                )
                break

            top_clubs = []
            for k in range(kc, k_top + 1):
                clubs, order = self.select_candidate_clusters(k, pool)
                top_clubs.append(self.pick_top_q(clubs, order))

            lev, stable = self.find_stable(top_clubs)
            if stable is None:
                logger.warning(f"No stable cluster found for kc={kc}")
                continue

            self.clusters.append(stable)
            pool = np.setdiff1d(pool, sorted(stable))
            logger.info(f"kc={kc}: stable cluster of {len(stable)} points (level {kc + lev})")

        self._trained = True
        logger.info(f"Tight clustering found {len(self.clusters)} stable clusters")
        return self

    def cluster(self) -> List[Set[int]]:
        """Train and return the tight clusters."""
        return self.train().clusters

    @property
    def labels(self) -> np.ndarray:
        """Tight cluster index per point; -1 for points in no tight cluster."""
        if not self._trained:
            raise NotTrainedError(
                f"{self.algorithm_name}: train() must be called before reading results",
                error_code="NOT_TRAINED",
            )
        labels = np.full(len(self.x), -1, dtype=int)
        for c, members in enumerate(self.clusters):
            labels[sorted(members)] = c
        return labels

    def result(self) -> ClusteringResult:
        labels = self.labels
        n_clusters = len(self.clusters)
        inside = labels != -1
        centroids = None
        if n_clusters:
            centroids = calc_centroids(self.x[inside], labels[inside], n_clusters)
        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=n_clusters,
            outlier_count=int(np.sum(~inside)),
            quality_metrics=BaseClusterer._calculate_quality_metrics(self.x, labels),
            centroids=centroids,
            cluster_sizes=np.array([len(c) for c in self.clusters], dtype=int),
            algorithm=self.algorithm_name,
        )
