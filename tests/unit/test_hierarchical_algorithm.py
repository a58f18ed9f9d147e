"""
Unit tests for single-linkage hierarchical clustering.

Tests the HierarchicalClusterer class including:
- Merge order and final labels
- Edge values of k
- Merge history
"""

import numpy as np
import pytest

from clusterlab.core.base_clustering import ClusteringConfig
from clusterlab.core.hierarchical_algorithm import HierarchicalClusterer
from clusterlab.utils.error_handling import ConfigurationError


@pytest.mark.unit
class TestHierarchicalClusterer:
    """Test suite for hierarchical clustering."""

    def test_three_pairs(self, six_points):
        """Test k=3 recovers the three pairs."""
        clusterer = HierarchicalClusterer(six_points, k=3).train()

        assert clusterer.cluster.tolist() == [0, 0, 1, 1, 2, 2]
        assert clusterer.csize.tolist() == [2, 2, 2]
        assert clusterer.sse() == pytest.approx(3.0)

    def test_two_clusters(self, six_points):
        """Test k=2 joins the two nearest pairs; the merged cluster is appended last."""
        clusterer = HierarchicalClusterer(six_points, k=2).train()

        assert clusterer.cluster.tolist() == [1, 1, 1, 1, 0, 0]

    def test_merge_history(self, six_points):
        """Test merges are recorded with their single-linkage distances."""
        clusterer = HierarchicalClusterer(six_points, k=2).train()

        distances = [step.distance for step in clusterer.merge_history]
        assert distances == pytest.approx([2.0, 2.0, 2.0, 18.0])
        assert clusterer.merge_history[0].merged == frozenset({0, 1})

    def test_k_equals_m(self, six_points):
        """Test k=m performs no merges and labels each point by itself."""
        clusterer = HierarchicalClusterer(six_points, k=6).train()

        assert clusterer.cluster.tolist() == list(range(6))
        assert clusterer.merge_history == []
        np.testing.assert_allclose(clusterer.centroids, six_points)

    def test_k_equals_one(self, six_points):
        """Test k=1 puts every point in one cluster."""
        clusterer = HierarchicalClusterer(six_points, k=1).train()

        assert set(clusterer.cluster.tolist()) == {0}
        np.testing.assert_allclose(clusterer.centroids[0], six_points.mean(axis=0))

    def test_invalid_k(self, six_points):
        """Test k outside [1, m] raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            HierarchicalClusterer(six_points, k=0)
        with pytest.raises(ConfigurationError):
            HierarchicalClusterer(six_points, k=7)

    def test_deterministic(self, eight_points):
        """Test the stream has no effect on the result."""
        a = HierarchicalClusterer(eight_points, k=4, stream=0).train()
        b = HierarchicalClusterer(eight_points, k=4, stream=99).train()

        assert a.cluster.tolist() == b.cluster.tolist()
        assert a.sse() == pytest.approx(8.0)

    def test_chaining(self):
        """Test single linkage follows a chain of close points."""
        x = np.array([[0.0], [1.0], [2.0], [3.0], [10.0]])

        clusterer = HierarchicalClusterer(x, k=2).train()
        labels = clusterer.cluster

        assert len(set(labels[:4].tolist())) == 1
        assert labels[4] != labels[0]

    def test_classify(self, six_points):
        """Test new points join the cluster with the closest centroid."""
        clusterer = HierarchicalClusterer(six_points, k=3).train()

        assert clusterer.classify(np.array([9.0, 9.0])) == 2
        assert clusterer.classify(np.array([0.0, 0.0])) == 0

    def test_from_config(self, six_points):
        """Test construction from a ClusteringConfig."""
        config = ClusteringConfig(algorithm_name="hierarchical", params={"n_clusters": 3})

        clusterer = HierarchicalClusterer.from_config(six_points, config)

        assert clusterer.k == 3

    def test_result(self, six_points):
        """Test the packaged result."""
        result = HierarchicalClusterer(six_points, k=3).train().result()

        assert result.n_clusters == 3
        assert result.outlier_count == 0
        assert result.algorithm == "hierarchical"
        assert result.quality_metrics["sse"] == pytest.approx(3.0)
        assert "silhouette_score" in result.quality_metrics
