"""
Sample datasets.

Small fixed point sets with known optimal sse, the classic 12-node two-lobe
graph for Markov clustering, and random generators for multi-modal data.
"""

from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from clusterlab.utils.error_handling import ConfigurationError

# Six points in three pairs; optimal sse for k = 3 is 3.0
SIX_POINTS = np.array(
    [
        [1.0, 2.0],
        [2.0, 1.0],
        [4.0, 5.0],
        [5.0, 4.0],
        [8.0, 9.0],
        [9.0, 8.0],
    ]
)
SIX_POINTS_K = 3
SIX_POINTS_OPT = 3.0

# Eight points in four vertical pairs; optimal sse for k = 4 is 8.0
EIGHT_POINTS = np.array(
    [
        [1.0, 1.0],
        [1.0, 3.0],
        [5.0, 18.0],
        [5.0, 20.0],
        [9.0, 10.0],
        [9.0, 12.0],
        [15.0, 30.0],
        [15.0, 32.0],
    ]
)
EIGHT_POINTS_K = 4
EIGHT_POINTS_OPT = 8.0

# Graph with two densely connected lobes; the 10 -> 11 edge has no reverse edge
TWO_LOBE_GRAPH = np.array(
    [
        [0, 1, 0, 0, 0, 1, 1, 0, 0, 1, 0, 0],
        [1, 0, 1, 0, 1, 0, 0, 0, 0, 0, 0, 0],
        [0, 1, 0, 1, 1, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 1, 0, 0, 0, 0, 1, 1, 0, 1, 0],
        [0, 1, 1, 0, 0, 0, 1, 1, 0, 0, 0, 0],
        [1, 0, 0, 0, 0, 0, 0, 0, 0, 1, 0, 0],
        [1, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 0],
        [0, 0, 0, 1, 1, 0, 0, 0, 1, 0, 1, 0],
        [0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1],
        [1, 0, 0, 0, 0, 1, 1, 0, 0, 0, 0, 0],
        [0, 0, 0, 1, 0, 0, 0, 1, 1, 0, 0, 1],
        [0, 0, 0, 0, 0, 0, 0, 0, 1, 0, 0, 0],
    ],
    dtype=float,
)

# Column-stochastic transition matrix of the same graph with self-loops
TWO_LOBE_TRANSITION = np.array(
    [
        [0.2, 0.25, 0.0, 0.0, 0.0, 0.333, 0.25, 0.0, 0.0, 0.25, 0.0, 0.0],
        [0.2, 0.25, 0.25, 0.0, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.25, 0.25, 0.2, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.25, 0.2, 0.0, 0.0, 0.0, 0.2, 0.2, 0.0, 0.2, 0.0],
        [0.0, 0.25, 0.25, 0.0, 0.2, 0.0, 0.25, 0.2, 0.0, 0.0, 0.0, 0.0],
        [0.2, 0.0, 0.0, 0.0, 0.0, 0.333, 0.0, 0.0, 0.0, 0.25, 0.0, 0.0],
        [0.2, 0.0, 0.0, 0.0, 0.2, 0.0, 0.25, 0.0, 0.0, 0.25, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.2, 0.2, 0.0, 0.0, 0.2, 0.2, 0.0, 0.2, 0.0],
        [0.0, 0.0, 0.0, 0.2, 0.0, 0.0, 0.0, 0.2, 0.2, 0.0, 0.2, 0.333],
        [0.2, 0.0, 0.0, 0.0, 0.0, 0.333, 0.25, 0.0, 0.0, 0.25, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.2, 0.0, 0.0, 0.0, 0.2, 0.2, 0.0, 0.2, 0.333],
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.2, 0.0, 0.2, 0.333],
    ]
)


def two_mode_points(m: int = 50, stream: int = 0, sd: float = 1.0) -> np.ndarray:
    """
    Points whose coordinates are each drawn from N(2, sd) or N(8, sd) by a fair coin.

    Args:
        m: Number of points
        stream: Random stream
        sd: Standard deviation of both modes

    Returns:
        m x 2 point set
    """
    rng = np.random.default_rng(stream)
    coins = rng.integers(0, 2, size=(m, 2))
    means = np.where(coins == 0, 2.0, 8.0)
    return means + rng.normal(0.0, sd, size=(m, 2))


def gaussian_blobs(
    centers: Sequence[Sequence[float]],
    n_per_cluster: int = 10,
    sd: float = 0.5,
    stream: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Isotropic Gaussian clusters around the given centers.

    Args:
        centers: One center per cluster
        n_per_cluster: Points drawn around each center
        sd: Standard deviation of every coordinate
        stream: Random stream

    Returns:
        (points, true cluster label of each point)
    """
    centers = np.asarray(centers, dtype=float)
    if centers.ndim != 2 or len(centers) == 0:
        raise ConfigurationError("centers must be a non-empty 2-D array", error_code="INVALID_CENTERS")
    rng = np.random.default_rng(stream)
    points = np.vstack(
        [c + rng.normal(0.0, sd, size=(n_per_cluster, centers.shape[1])) for c in centers]
    )
    labels = np.repeat(np.arange(len(centers)), n_per_cluster)
    return points, labels


DATASETS: Dict[str, np.ndarray] = {
    "six_points": SIX_POINTS,
    "eight_points": EIGHT_POINTS,
    "two_lobe_graph": TWO_LOBE_GRAPH,
    "two_lobe_transition": TWO_LOBE_TRANSITION,
}

KNOWN_OPTIMA: Dict[str, Tuple[int, float]] = {
    "six_points": (SIX_POINTS_K, SIX_POINTS_OPT),
    "eight_points": (EIGHT_POINTS_K, EIGHT_POINTS_OPT),
}


def load_dataset(name: str, stream: Optional[int] = None) -> np.ndarray:
    """
    Look up a named dataset.

    `two_mode` is generated from `stream`; the others are fixed.

    Raises:
        ConfigurationError: If the name is unknown
    """
    if name == "two_mode":
        return two_mode_points(stream=stream or 0)
    if name not in DATASETS:
        raise ConfigurationError(
            f"Unknown dataset: {name}. Available: {sorted(DATASETS) + ['two_mode']}",
            error_code="UNKNOWN_DATASET",
        )
    return DATASETS[name].copy()
