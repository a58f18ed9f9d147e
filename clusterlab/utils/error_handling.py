"""
Error Handling Module

Provides the exception hierarchy shared by every clustering algorithm:
- Configuration errors raised before any computation starts
- Algorithm failures (empty clusters) raised during training
- Contract violations (unsupported operations, untrained access)
"""

import time
from typing import Any, Optional

import structlog


logger = structlog.get_logger(__name__)


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class ClusterlabError(Exception):
    """Base exception for all clustering engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(ClusterlabError, ValueError):
    """Invalid clusterer configuration (bad k, flag arity, settings file)."""
    pass


# Clustering Errors
class ClusteringError(ClusterlabError):
    """Base class for clustering algorithm errors."""
    pass


class InvalidAlgorithmError(ClusteringError, ValueError):
    """Unknown or unsupported clustering algorithm."""
    pass


class ClusteringFailedError(ClusteringError):
    """Clustering algorithm reached an invalid state."""
    pass


class EmptyClusterError(ClusteringFailedError):
    """A cluster lost all of its points after initialization."""

    def __init__(self, cluster: int, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Empty cluster c = {cluster}",
            error_code="EMPTY_CLUSTER",
            details={"cluster": cluster, **(details or {})},
        )
        self.cluster = cluster


class InsufficientDataError(ClusteringError, ValueError):
    """Not enough data points for clustering."""
    pass


class NotTrainedError(ClusteringError):
    """Results were requested before train() was called."""
    pass


class UnsupportedOperationError(ClusteringError, NotImplementedError):
    """Operation is not applicable to this clustering algorithm."""

    def __init__(self, operation: str, algorithm: str):
        super().__init__(
            f"{operation} is not applicable to {algorithm}",
            error_code="NOT_APPLICABLE",
            details={"operation": operation, "algorithm": algorithm},
        )


# =============================================================================
# Validation Helpers
# =============================================================================


def validate_cluster_count(k: int, n_points: int, allow_equal: bool = False) -> None:
    """
    Validate the requested number of clusters against the point count.

    Args:
        k: Requested number of clusters
        n_points: Number of points to cluster
        allow_equal: Whether k == n_points is acceptable

    Raises:
        ConfigurationError: If k is out of range
    """
    if n_points == 0:
        raise InsufficientDataError("Cannot cluster empty vector array")

    upper_ok = k <= n_points if allow_equal else k < n_points
    if k < 1 or not upper_ok:
        bound = "at most" if allow_equal else "less than"
        logger.error(
            "invalid_cluster_count",
            k=k,
            n_points=n_points,
        )
        raise ConfigurationError(
            f"k must be >= 1 and {bound} the number of vectors ({n_points}), got {k}",
            error_code="INVALID_K",
            details={"k": k, "n_points": n_points},
        )
