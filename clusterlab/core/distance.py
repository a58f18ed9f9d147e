"""
Distance Metrics.

Squared Euclidean distance is the metric every clusterer compares with;
only the relative ordering of distances matters there, so the square root
is skipped. The gap statistic needs true Euclidean distances for its
dispersion formula and uses `euclidean` instead.
"""

from typing import Optional

import numpy as np


def dist(x: np.ndarray, z: np.ndarray) -> float:
    """
    Squared Euclidean distance between two points.

    Args:
        x: First point (length n)
        z: Second point (length n)

    Returns:
        ||x - z||^2
    """
    d = np.asarray(x, dtype=float) - np.asarray(z, dtype=float)
    return float(np.dot(d, d))


def distances(
    u: np.ndarray,
    centroids: np.ndarray,
    kc: Optional[int] = None,
) -> np.ndarray:
    """
    Squared distances from point `u` to the first `kc` centroids.

    Args:
        u: Point (length n)
        centroids: Centroid matrix (k x n)
        kc: Number of leading centroids to use (all when None)

    Returns:
        Vector of length kc
    """
    cents = centroids if kc is None else centroids[:kc]
    diff = cents - np.asarray(u, dtype=float)
    return np.einsum("ij,ij->i", diff, diff)


def euclidean(x: np.ndarray, z: np.ndarray) -> float:
    """True (square-rooted) Euclidean distance."""
    return float(np.sqrt(dist(x, z)))


def pairwise_sq_distances(x: np.ndarray) -> np.ndarray:
    """
    Squared distance between every pair of rows.

    Args:
        x: Point set (m x n)

    Returns:
        Symmetric m x m matrix with a zero diagonal
    """
    x = np.asarray(x, dtype=float)
    diff = x[:, None, :] - x[None, :, :]
    return np.einsum("ijk,ijk->ij", diff, diff)
