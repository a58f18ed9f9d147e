"""
Unit tests for the evaluation harness and result containers.
"""

import numpy as np
import pytest

from clusterlab.core.base_clustering import ClusteringResult, calc_centroids
from clusterlab.core.evaluation import Statistic, evaluate_streams
from clusterlab.core.hierarchical_algorithm import HierarchicalClusterer
from clusterlab.core.kmeans_algorithm import KMeansClusterer
from clusterlab.datasets import EIGHT_POINTS_OPT, SIX_POINTS_OPT
from clusterlab.utils.error_handling import ConfigurationError, InsufficientDataError


@pytest.mark.unit
class TestStatistic:
    """Test the running summary."""

    def test_summary(self):
        """Test min, max, mean and sample std."""
        stat = Statistic("sse")
        for v in (1.0, 2.0, 3.0):
            stat.tally(v)

        summary = stat.summary()

        assert stat.count == 3
        assert summary["min"] == 1.0
        assert summary["max"] == 3.0
        assert summary["mean"] == pytest.approx(2.0)
        assert summary["std"] == pytest.approx(1.0)

    def test_empty_summary(self):
        """Test an empty statistic reports only its count."""
        assert Statistic("sse").summary() == {"count": 0}

    def test_single_value_std(self):
        """Test one value has zero spread."""
        stat = Statistic("sse")
        stat.tally(4.0)

        assert stat.summary()["std"] == 0.0


@pytest.mark.unit
class TestEvaluateStreams:
    """Test evaluation across random streams."""

    def test_deterministic_algorithm(self, six_points):
        """Test hierarchical clustering gives identical statistics on every stream."""
        stats = evaluate_streams(
            lambda s: HierarchicalClusterer(six_points, k=3, stream=s),
            n_streams=5,
            opt=SIX_POINTS_OPT,
        )

        assert stats.n_streams == 5
        assert stats.sse.count == 5
        assert stats.n_optimal == 5
        assert stats.optimal_rate == 1.0
        summary = stats.sse.summary()
        assert summary["mean"] == pytest.approx(3.0)
        assert summary["std"] == pytest.approx(0.0)

    def test_kmeans_streams(self, eight_points):
        """Test k-means statistics stay within bounds."""
        stats = evaluate_streams(
            lambda s: KMeansClusterer(eight_points, 4, init="kmeans++", reassign="hartigan", stream=s),
            n_streams=10,
            opt=EIGHT_POINTS_OPT,
        )

        assert stats.sse.summary()["min"] >= EIGHT_POINTS_OPT - 1e-9
        assert all(0.0 <= r <= 1.0 for r in stats.r_squared.values)
        assert 0 <= stats.n_optimal <= 10

    def test_without_opt(self, six_points):
        """Test no optimum means no optimal rate."""
        stats = evaluate_streams(lambda s: KMeansClusterer(six_points, 3, stream=s), n_streams=3)

        assert stats.optimal_rate is None
        assert stats.to_dict()["sse"]["count"] == 3


@pytest.mark.unit
class TestBaseClusterer:
    """Test behaviour shared by every centroid-based clusterer."""

    def test_rejects_1d_input(self):
        """Test a flat vector is not accepted as a point set."""
        with pytest.raises(ConfigurationError) as exc:
            KMeansClusterer(np.arange(6.0), 2)
        assert exc.value.error_code == "INVALID_SHAPE"

    def test_rejects_empty_input(self):
        """Test an empty point set raises InsufficientDataError."""
        with pytest.raises(InsufficientDataError):
            KMeansClusterer(np.empty((0, 2)), 2)

    def test_sst(self, six_points):
        """Test sst is the total squared deviation from the mean."""
        clusterer = HierarchicalClusterer(six_points, k=3)
        diff = six_points - six_points.mean(axis=0)

        assert clusterer.sst() == pytest.approx(float((diff ** 2).sum()))

    def test_sse_of_other_assignment(self, six_points):
        """Test sse can score an assignment against the trained centroids."""
        clusterer = HierarchicalClusterer(six_points, k=3).train()

        assert clusterer.sse(np.array([0, 0, 1, 1, 2, 2])) == pytest.approx(3.0)
        assert clusterer.sse(np.array([1, 1, 0, 0, 2, 2])) > 3.0

    def test_check_opt(self, six_points):
        """Test check_opt compares sse with a known optimum."""
        clusterer = HierarchicalClusterer(six_points, k=3).train()

        assert clusterer.check_opt(3.0)
        assert not clusterer.check_opt(2.0)

    def test_result_confidence(self, six_points):
        """Test confidences lie in (0, 1]."""
        result = HierarchicalClusterer(six_points, k=3).train().result()

        assert np.all(result.probabilities > 0)
        assert np.all(result.probabilities <= 1)
        assert result.quality_metrics["r_squared"] == pytest.approx(
            1 - 3.0 / result.quality_metrics["sst"]
        )

    def test_result_confidence_zero_distances(self, six_points):
        """Test singleton clusters give full confidence."""
        result = HierarchicalClusterer(six_points, k=6).train().result()

        np.testing.assert_allclose(result.probabilities, 1.0)


@pytest.mark.unit
class TestResultContainers:
    """Test centroid computation and ClusteringResult."""

    def test_calc_centroids_empty_row(self):
        """Test an empty cluster's centroid row stays zero."""
        x = np.array([[1.0, 1.0], [3.0, 3.0]])

        cent = calc_centroids(x, np.array([0, 0]), 2)

        np.testing.assert_allclose(cent, [[2.0, 2.0], [0.0, 0.0]])

    def test_to_dict(self):
        """Test results serialize to plain Python values."""
        result = ClusteringResult(
            cluster_labels=np.array([0, 1, 1]),
            n_clusters=2,
            outlier_count=0,
            quality_metrics={"sse": 1.0},
            centroids=np.array([[0.0], [1.0]]),
            cluster_sizes=np.array([1, 2]),
            algorithm="kmeans",
        )

        data = result.to_dict()

        assert data["cluster_labels"] == [0, 1, 1]
        assert data["cluster_sizes"] == [1, 2]
        assert data["centroids"] == [[0.0], [1.0]]
        assert data["total_items"] == 3
        assert result.cluster_centroids[1].tolist() == [1.0]
