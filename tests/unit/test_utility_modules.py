"""
Unit tests for utility modules.

Tests for error_handling and advanced_logging.
"""

import logging

import numpy as np
import pytest

from clusterlab.utils.advanced_logging import (
    PerformanceLogger,
    add_static_fields,
    configure_logging,
    get_logger,
    log_exceptions,
    numpy_to_builtin,
    timed,
)
from clusterlab.utils.error_handling import (
    ClusterlabError,
    ClusteringError,
    ConfigurationError,
    EmptyClusterError,
    InsufficientDataError,
    InvalidAlgorithmError,
    NotTrainedError,
    UnsupportedOperationError,
    validate_cluster_count,
)


@pytest.mark.unit
class TestErrorHandling:
    """Test the exception hierarchy."""

    def test_to_dict(self):
        """Test exceptions serialize their code and details."""
        error = ClusterlabError("boom", error_code="BOOM", details={"k": 3})

        data = error.to_dict()

        assert data["error_type"] == "ClusterlabError"
        assert data["error_code"] == "BOOM"
        assert data["message"] == "boom"
        assert data["details"] == {"k": 3}
        assert "timestamp" in data

    def test_default_error_code(self):
        """Test the class name is the default error code."""
        assert NotTrainedError("not yet").error_code == "NotTrainedError"

    def test_value_error_compatibility(self):
        """Test argument errors are also ValueErrors."""
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(InvalidAlgorithmError, ValueError)
        assert issubclass(InsufficientDataError, ValueError)
        assert issubclass(InvalidAlgorithmError, ClusteringError)

    def test_empty_cluster_error(self):
        """Test the empty cluster message and details."""
        error = EmptyClusterError(2, details={"sizes": [3, 1, 0]})

        assert str(error) == "Empty cluster c = 2"
        assert error.error_code == "EMPTY_CLUSTER"
        assert error.details == {"cluster": 2, "sizes": [3, 1, 0]}

    def test_unsupported_operation(self):
        """Test unsupported operations are NotImplementedErrors."""
        error = UnsupportedOperationError("centroids", "markov")

        assert isinstance(error, NotImplementedError)
        assert str(error) == "centroids is not applicable to markov"

    @pytest.mark.parametrize("k, n, allow_equal", [(0, 5, False), (5, 5, False), (6, 5, True)])
    def test_validate_cluster_count_rejects(self, k, n, allow_equal):
        """Test out-of-range k is rejected."""
        with pytest.raises(ConfigurationError):
            validate_cluster_count(k, n, allow_equal=allow_equal)

    def test_validate_cluster_count_accepts(self):
        """Test in-range k passes."""
        validate_cluster_count(4, 5)
        validate_cluster_count(5, 5, allow_equal=True)

    def test_validate_cluster_count_no_points(self):
        """Test an empty point set is insufficient data."""
        with pytest.raises(InsufficientDataError):
            validate_cluster_count(1, 0)


@pytest.mark.unit
class TestAdvancedLogging:
    """Test structured logging helpers."""

    def test_configure_logging(self, tmp_path):
        """Test logging can be configured with a file handler."""
        log_file = tmp_path / "logs" / "clusterlab.log"

        configure_logging(log_level="DEBUG", log_format="json", log_file=str(log_file))

        assert log_file.parent.exists()
        for handler in list(logging.root.handlers):
            if getattr(handler, "baseFilename", None) == str(log_file):
                logging.root.removeHandler(handler)
                handler.close()

    def test_performance_logger(self):
        """Test elapsed time is measured."""
        with PerformanceLogger("test_operation", item_count=10) as perf:
            sum(range(1000))

        assert perf.elapsed_time > 0
        assert perf.end_time is not None

    def test_performance_logger_not_started(self):
        """Test elapsed time is zero before entering."""
        assert PerformanceLogger("idle").elapsed_time == 0.0

    def test_performance_logger_propagates(self):
        """Test exceptions inside the block are not swallowed."""
        with pytest.raises(RuntimeError):
            with PerformanceLogger("failing"):
                raise RuntimeError("failure")

    def test_timed_decorator(self):
        """Test timed keeps the wrapped function's name and result."""

        @timed(operation="double")
        def double(v):
            return 2 * v

        assert double(21) == 42
        assert double.__name__ == "double"

    def test_log_exceptions_reraises(self):
        """Test exceptions are re-raised by default."""
        with pytest.raises(ConfigurationError):
            with log_exceptions(get_logger(__name__), operation="test"):
                raise ConfigurationError("bad k", error_code="INVALID_K")

    def test_log_exceptions_suppress(self):
        """Test reraise=False swallows the exception."""
        with log_exceptions(operation="test", reraise=False):
            raise ValueError("ignored")

    def test_performance_logger_record(self):
        """Test recorded fields are kept for the completion event."""
        with PerformanceLogger("kmeans", n_clusters=3) as perf:
            perf.record(n_iter=4)

        assert perf.context == {"n_clusters": 3, "n_iter": 4}

    def test_timed_counts_points(self):
        """Test count_arg reads the item count from a positional argument."""
        seen = []

        @timed(operation="count", count_arg=0)
        def count(points):
            seen.append(len(points))
            return len(points)

        assert count([1, 2, 3]) == 3
        assert seen == [3]

    def test_numpy_to_builtin(self):
        """Test numpy values in events become plain Python values."""
        event = numpy_to_builtin(None, "info", {"sizes": np.array([2, 3]), "sse": np.float64(1.5), "k": 2})

        assert event == {"sizes": [2, 3], "sse": 1.5, "k": 2}
        assert type(event["sse"]) is float

    def test_add_static_fields(self):
        """Test static fields do not override event fields."""
        processor = add_static_fields(service="clusterlab")

        assert processor(None, "info", {"event": "x"})["service"] == "clusterlab"
        assert processor(None, "info", {"service": "other"})["service"] == "other"

    def test_get_logger_with_context(self):
        """Test context is bound to the logger."""
        log = get_logger(__name__, algorithm="kmeans")

        assert log is not None
