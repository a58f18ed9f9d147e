"""
Gap Statistic.

Chooses the number of clusters for k-means++ by comparing the log
within-cluster dispersion of the data against that of uniform reference
data with no cluster structure:

    gap(k) = log W*(k) - log W(k)

where W(k) sums, over clusters, the pairwise Euclidean distances between
members divided by the cluster size.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from clusterlab.core.kmeans_algorithm import (
    Algorithm,
    KMeansClusterer,
    N_STREAMS,
    kmeans_pp_restarts,
    permute_streams,
)
from clusterlab.utils.error_handling import ConfigurationError, InsufficientDataError

logger = logging.getLogger(__name__)

RULES = ("relative", "standard_error")


@dataclass
class GapResult:
    """Outcome of a gap statistic scan over k = 1..k_max."""

    clusterer: KMeansClusterer
    cluster: np.ndarray
    k: int
    log_wk: np.ndarray
    log_wk_ref: np.ndarray
    gap: np.ndarray
    sk: np.ndarray

    @property
    def ks(self) -> np.ndarray:
        """Candidate cluster counts, aligned with the gap arrays."""
        return np.arange(1, len(self.gap) + 1)

    def to_dict(self) -> dict:
        return {
            "k": self.k,
            "ks": self.ks.tolist(),
            "log_wk": self.log_wk.tolist(),
            "log_wk_ref": self.log_wk_ref.tolist(),
            "gap": self.gap.tolist(),
            "sk": self.sk.tolist(),
            "cluster_labels": self.cluster.tolist(),
        }


def reference(x: np.ndarray, use_svd: bool = True, stream: int = 0) -> np.ndarray:
    """
    Generate uniform reference data shaped like `x`.

    Args:
        x: Point set (m x n)
        use_svd: Draw on the principal axes of the centred data and map back;
            otherwise draw each original column over its observed range
        stream: Random stream

    Returns:
        Reference point set (m x n)
    """
    x = np.asarray(x, dtype=float)
    rng = np.random.default_rng(stream)
    m, n = x.shape

    if use_svd:
        mean = x.mean(axis=0)
        xzero = x - mean
        _, _, vt = np.linalg.svd(xzero, full_matrices=False)
        xp = xzero @ vt.T
        zp = np.column_stack(
            [rng.uniform(xp[:, i].min(), xp[:, i].max(), size=m) for i in range(xp.shape[1])]
        )
        return zp @ vt + mean

    return np.column_stack(
        [rng.uniform(x[:, i].min(), x[:, i].max(), size=m) for i in range(n)]
    )


def cum_distance(x: np.ndarray, to_c: np.ndarray, k: int) -> np.ndarray:
    """
    Per-cluster sum of Euclidean distances over unordered member pairs.

    Args:
        x: Point set (m x n)
        to_c: Cluster assignment (length m)
        k: Number of clusters

    Returns:
        Vector of length k
    """
    to_c = np.asarray(to_c, dtype=int)
    sums = np.zeros(k)
    for c in range(k):
        pts = x[to_c == c]
        if len(pts) < 2:
            continue
        diff = pts[:, None, :] - pts[None, :, :]
        d = np.sqrt(np.einsum("ijk,ijk->ij", diff, diff))
        sums[c] = np.triu(d, 1).sum()
    return sums


def within_sse(x: np.ndarray, to_c: np.ndarray, sizes: np.ndarray) -> float:
    """Within-cluster dispersion W: sum over clusters of pair distance sum / size."""
    sizes = np.asarray(sizes, dtype=float)
    return float(np.sum(cum_distance(x, to_c, len(sizes)) / sizes))


def _log_dispersion(x: np.ndarray, clusterer: KMeansClusterer) -> float:
    w = within_sse(x, clusterer.cluster, clusterer.csize)
    # all clusters made of coincident points
    return float(np.log(max(w, np.finfo(float).tiny)))


def select_k(
    gap: np.ndarray,
    sk: np.ndarray,
    tolerance: float = 0.1,
    rule: str = "relative",
) -> int:
    """
    Pick the first k whose gap is not beaten by the next one.

    relative:        gap[k] >= gap[k+1] - tolerance * |gap[k+1]|
    standard_error:  gap[k] >= gap[k+1] - s[k+1]

    Returns:
        Selected cluster count (1-based); the largest candidate when none qualifies
    """
    for i in range(len(gap) - 1):
        if rule == "relative":
            margin = tolerance * abs(gap[i + 1])
        else:
            margin = sk[i + 1]
        if gap[i] >= gap[i + 1] - margin:
            return i + 1
    return len(gap)


def kmeans_pp(
    x: np.ndarray,
    k_max: int,
    algorithm: Union[Algorithm, str] = Algorithm.HARTIGAN,
    b: int = 1,
    use_svd: bool = True,
    stream: int = 0,
    tolerance: float = 0.1,
    rule: str = "relative",
    restarts: Optional[int] = None,
) -> GapResult:
    """
    Choose k for k-means++ with the gap statistic.

    Args:
        x: Point set (m x n)
        k_max: Largest candidate k (capped at m - 1)
        algorithm: HARTIGAN or LLOYD reassignment
        b: Number of reference datasets
        use_svd: Reference data on principal axes
        stream: Random stream for references and restart order
        tolerance: Relative margin for the "relative" rule
        rule: "relative" or "standard_error"
        restarts: Streams tried per k-means fit (all 1000 when None)

    Returns:
        GapResult holding the clusterer trained for the selected k
    """
    x = np.asarray(x, dtype=float)
    m = len(x)
    if m < 2:
        raise InsufficientDataError(
            f"Gap statistic needs at least 2 points, got {m}", error_code="TOO_FEW_POINTS"
        )
    if k_max < 1:
        raise ConfigurationError(f"k_max must be >= 1, got {k_max}", error_code="INVALID_K")
    if b < 1:
        raise ConfigurationError(f"b must be >= 1, got {b}", error_code="INVALID_B")
    if rule not in RULES:
        raise ConfigurationError(
            f"Unknown gap rule: {rule}. Supported: {list(RULES)}", error_code="INVALID_RULE"
        )

    if k_max >= m:
        logger.warning(f"k_max={k_max} capped at {m - 1} (number of points - 1)")
        k_max = m - 1

    streams = permute_streams(range(N_STREAMS), stream)
    if restarts is not None:
        streams = streams[:restarts]

    refs = [reference(x, use_svd, stream + j) for j in range(b)]

    log_wk = np.zeros(k_max)
    log_wk_ref = np.zeros(k_max)
    sk = np.zeros(k_max)
    fitted: List[KMeansClusterer] = []

    for idx in range(k_max):
        k = idx + 1
        actual = kmeans_pp_restarts(x, k, algorithm, streams=streams)
        fitted.append(actual)
        log_wk[idx] = _log_dispersion(x, actual)

        ref_logs = np.array(
            [_log_dispersion(ref, kmeans_pp_restarts(ref, k, algorithm, streams=streams)) for ref in refs]
        )
        log_wk_ref[idx] = ref_logs.mean()
        sk[idx] = ref_logs.std() * np.sqrt(1.0 + 1.0 / b)
        logger.debug(
            f"k={k}: log W={log_wk[idx]:.4f}, log W*={log_wk_ref[idx]:.4f}, "
            f"gap={log_wk_ref[idx] - log_wk[idx]:.4f}"
        )

    gap = log_wk_ref - log_wk
    k_opt = select_k(gap, sk, tolerance, rule)
    chosen = fitted[k_opt - 1]

    logger.info(f"Gap statistic selected k={k_opt} (rule={rule}, k_max={k_max})")

    return GapResult(
        clusterer=chosen,
        cluster=chosen.cluster,
        k=k_opt,
        log_wk=log_wk,
        log_wk_ref=log_wk_ref,
        gap=gap,
        sk=sk,
    )
