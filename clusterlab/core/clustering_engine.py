"""
Clustering Engine - Orchestrates clustering operations.

Main entry point for clustering functionality in clusterlab.
Manages algorithm selection, settings defaults, execution, and result handling.
"""

import logging
from typing import Dict, Any, Optional, Union
import numpy as np

from clusterlab.config.settings_loader import Settings, get_settings
from clusterlab.core.base_clustering import ClusteringResult, ClusteringConfig
from clusterlab.core.evaluation import StreamStatistics, evaluate_streams
from clusterlab.core.gap_statistic import GapResult, kmeans_pp
from clusterlab.core.hierarchical_algorithm import HierarchicalClusterer
from clusterlab.core.kmeans_algorithm import (
    Algorithm,
    KMeansClusterer,
    kmeans_pp_restarts,
    permute_streams,
)
from clusterlab.core.markov_algorithm import MarkovClusterer
from clusterlab.core.tight_algorithm import TightClusterer
from clusterlab.utils.advanced_logging import (
    PerformanceLogger,
    get_logger,
    log_exceptions,
    timed,
)
from clusterlab.utils.error_handling import InvalidAlgorithmError

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Main clustering engine that orchestrates different algorithms.

    Provides a unified interface for all clustering operations regardless
    of the underlying algorithm. Parameters not given explicitly are taken
    from the loaded settings.
    """

    # Registry of available algorithms
    ALGORITHMS = {
        "kmeans": KMeansClusterer,
        "hierarchical": HierarchicalClusterer,
        "markov": MarkovClusterer,
    }

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize clustering engine.

        Args:
            settings: Settings to draw defaults from (loaded when None)
        """
        self.settings = settings or get_settings()
        self.log = get_logger(__name__, component="clustering_engine")
        logger.info("Initialized ClusteringEngine")

    def _resolve_algorithm(self, algorithm: Optional[str]) -> str:
        algorithm = (algorithm or self.settings.clustering.default_algorithm).lower()
        if algorithm not in self.ALGORITHMS:
            raise InvalidAlgorithmError(
                f"Unsupported algorithm '{algorithm}'. "
                f"Supported: {list(self.ALGORITHMS.keys())}",
                error_code="UNSUPPORTED_ALGORITHM",
                details={"algorithm": algorithm},
            )
        return algorithm

    def _default_params(self, algorithm: str) -> Dict[str, Any]:
        clustering = self.settings.clustering
        if algorithm == "kmeans":
            s = clustering.kmeans
            return {
                "n_clusters": s.n_clusters,
                "init": s.init,
                "reassign": s.reassign,
                "post_swap": s.post_swap,
                "immediate": s.immediate,
                "max_iter": s.max_iter,
            }
        if algorithm == "hierarchical":
            return {"n_clusters": clustering.hierarchical.n_clusters}
        s = clustering.markov
        return {
            "expansion": s.expansion,
            "inflation": s.inflation,
            "max_iter": s.max_iter,
            "epsilon": s.epsilon,
            "self_loop_weight": s.self_loop_weight,
        }

    def resolve_stream(self, stream: Optional[int]) -> int:
        return self.settings.clustering.default_stream if stream is None else stream

    def build(
        self,
        vectors: np.ndarray,
        algorithm: Optional[str] = None,
        algorithm_params: Optional[Dict[str, Any]] = None,
        stream: Optional[int] = None,
    ):
        """
        Create an untrained clusterer with settings defaults applied.

        Args:
            vectors: Point set (N x D), or adjacency matrix for markov
            algorithm: Algorithm name (kmeans/hierarchical/markov)
            algorithm_params: Overrides for the algorithm's parameters
            stream: Random stream

        Returns:
            Untrained clusterer instance
        """
        algorithm = self._resolve_algorithm(algorithm)
        params = self._default_params(algorithm)
        params.update(algorithm_params or {})

        config = ClusteringConfig(
            algorithm_name=algorithm,
            params=params,
            stream=self.resolve_stream(stream),
        )
        return self.ALGORITHMS[algorithm].from_config(np.asarray(vectors, dtype=float), config)

    def cluster(
        self,
        vectors: np.ndarray,
        algorithm: Optional[str] = None,
        algorithm_params: Optional[Dict[str, Any]] = None,
        stream: Optional[int] = None,
    ) -> ClusteringResult:
        """
        Perform clustering using the specified algorithm.

        Args:
            vectors: Point set (N x D), or adjacency matrix for markov
            algorithm: Algorithm name (kmeans/hierarchical/markov)
            algorithm_params: Algorithm-specific parameters
            stream: Random stream

        Returns:
            ClusteringResult with labels and metrics

        Raises:
            InvalidAlgorithmError: If algorithm is not supported
        """
        with log_exceptions(self.log, operation="cluster"):
            clusterer = self.build(vectors, algorithm, algorithm_params, stream)
            name = clusterer.algorithm_name

            logger.info(f"Starting {name} clustering on {len(clusterer.x)} vectors")
            with PerformanceLogger(
                f"{name}_clustering", logger=self.log, item_count=len(clusterer.x)
            ) as perf:
                clusterer.train()
                result = clusterer.result()
                perf.record(n_clusters=result.n_clusters, outliers=result.outlier_count)

        logger.info(
            f"{name} clustering complete: {result.n_clusters} clusters, "
            f"{result.outlier_count} outliers"
        )
        return result

    def estimate_optimal_k(
        self,
        vectors: np.ndarray,
        k_max: Optional[int] = None,
        stream: Optional[int] = None,
        **overrides: Any,
    ) -> GapResult:
        """
        Estimate the optimal number of clusters with the gap statistic.

        Args:
            vectors: Point set (N x D)
            k_max: Largest candidate k (settings value when None)
            stream: Random stream
            **overrides: Other gap statistic parameters (b, use_svd, rule, ...)

        Returns:
            GapResult with the selected k and its trained clusterer
        """
        s = self.settings.clustering.gap_statistic
        params = {
            "algorithm": s.algorithm,
            "b": s.b,
            "use_svd": s.use_svd,
            "tolerance": s.tolerance,
            "rule": s.rule,
            "restarts": s.restarts,
        }
        params.update(overrides)

        with log_exceptions(self.log, operation="estimate_optimal_k"):
            with PerformanceLogger("gap_statistic", logger=self.log, item_count=len(vectors)) as perf:
                gap = kmeans_pp(
                    np.asarray(vectors, dtype=float),
                    k_max or s.k_max,
                    stream=self.resolve_stream(stream),
                    **params,
                )
                perf.record(optimal_k=gap.k)

        logger.info(f"Estimated optimal k={gap.k} (tried k=1 to {len(gap.gap)})")
        return gap

    @timed(operation="kmeans_pp_restarts", count_arg=1)
    def best_of_restarts(
        self,
        vectors: np.ndarray,
        k: Optional[int] = None,
        algorithm: Union[Algorithm, str] = Algorithm.HARTIGAN,
        stream: Optional[int] = None,
    ) -> ClusteringResult:
        """
        Train k-means++ over shuffled streams and keep the lowest sse.

        Args:
            vectors: Point set (N x D)
            k: Number of clusters (settings value when None)
            algorithm: HARTIGAN or LLOYD reassignment
            stream: Stream that orders the restart streams

        Returns:
            ClusteringResult of the best run
        """
        s = self.settings.clustering.kmeans
        streams = permute_streams(range(s.restart_streams), self.resolve_stream(stream))
        with log_exceptions(self.log, operation="best_of_restarts"):
            best = kmeans_pp_restarts(
                np.asarray(vectors, dtype=float),
                k or s.n_clusters,
                algorithm,
                check=s.restart_check,
                streams=streams,
                max_iter=s.max_iter,
            )
        logger.info(f"Best of restarts: stream={best.stream}, sse={best.sse():.6g}")
        return best.result()

    def tight_cluster(
        self,
        vectors: np.ndarray,
        k0: int,
        kmin: int,
        stream: Optional[int] = None,
        **params: Any,
    ) -> ClusteringResult:
        """
        Find the stable (tight) clusters between k0 and kmin.

        Args:
            vectors: Point set (N x D)
            k0: Starting number of clusters
            kmin: Smallest number of clusters
            stream: Random stream
            **params: Overrides for ratio, alpha, beta, b, q, levels

        Returns:
            ClusteringResult; points in no tight cluster are labelled -1
        """
        options = self.settings.clustering.tight.model_dump()
        options.update(params)

        with log_exceptions(self.log, operation="tight_cluster"):
            clusterer = TightClusterer(
                np.asarray(vectors, dtype=float), k0, kmin, stream=self.resolve_stream(stream), **options
            )
            with PerformanceLogger("tight_clustering", logger=self.log, item_count=len(vectors)) as perf:
                clusterer.train()
                perf.record(tight_clusters=len(clusterer.clusters))
            return clusterer.result()

    def evaluate(
        self,
        vectors: np.ndarray,
        algorithm: Optional[str] = None,
        algorithm_params: Optional[Dict[str, Any]] = None,
        n_streams: int = 100,
        opt: Optional[float] = None,
    ) -> StreamStatistics:
        """
        Summarize sse / R^2 of an algorithm over many random streams.

        Args:
            vectors: Point set (N x D)
            algorithm: Algorithm name (kmeans/hierarchical)
            algorithm_params: Algorithm-specific parameters
            n_streams: Number of streams
            opt: Known optimal sse

        Returns:
            StreamStatistics
        """
        with log_exceptions(self.log, operation="evaluate"):
            return evaluate_streams(
                lambda s: self.build(vectors, algorithm, algorithm_params, stream=s),
                n_streams=n_streams,
                opt=opt,
            )

    def validate_clustering_config(
        self,
        algorithm: str,
        params: Dict[str, Any],
        n_points: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Validate clustering configuration.

        Args:
            algorithm: Algorithm name
            params: Algorithm parameters
            n_points: Number of points to be clustered, if known

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        algorithm = algorithm.lower()
        if algorithm not in self.ALGORITHMS:
            errors["algorithm"] = f"Unsupported algorithm '{algorithm}'"
            return errors

        # Algorithm-specific validation
        if algorithm == "kmeans":
            n_clusters = params.get("n_clusters", self.settings.clustering.kmeans.n_clusters)

            if n_clusters < 1:
                errors["n_clusters"] = "Must be >= 1"
            elif n_points is not None and n_clusters >= n_points:
                errors["n_clusters"] = f"Must be less than the number of points ({n_points})"

            flags = params.get("flags")
            if flags is not None and len(flags) != 2:
                errors["flags"] = "Must hold exactly 2 values (post_swap, immediate)"

            if params.get("max_iter", 1) < 1:
                errors["max_iter"] = "Must be >= 1"

        elif algorithm == "hierarchical":
            n_clusters = params.get("n_clusters", self.settings.clustering.hierarchical.n_clusters)

            if n_clusters < 1:
                errors["n_clusters"] = "Must be >= 1"
            elif n_points is not None and n_clusters > n_points:
                errors["n_clusters"] = f"Must be at most the number of points ({n_points})"

        elif algorithm == "markov":
            if params.get("expansion", 2) < 1:
                errors["expansion"] = "Must be >= 1"
            if params.get("inflation", 2.0) <= 0:
                errors["inflation"] = "Must be > 0"
            if params.get("epsilon", 1e-7) <= 0:
                errors["epsilon"] = "Must be > 0"

        return errors
