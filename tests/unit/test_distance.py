"""
Unit tests for distance functions.
"""

import numpy as np
import pytest

from clusterlab.core.distance import dist, distances, euclidean, pairwise_sq_distances


@pytest.mark.unit
class TestDistance:
    """Test squared and true Euclidean distances."""

    def test_dist_is_squared(self):
        """Test dist returns the squared distance."""
        assert dist([0.0, 0.0], [3.0, 4.0]) == 25.0

    def test_dist_of_identical_points(self):
        """Test dist is zero for identical points."""
        assert dist([1.5, -2.0], [1.5, -2.0]) == 0.0

    def test_euclidean(self):
        """Test euclidean takes the square root."""
        assert euclidean([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)

    def test_distances_to_all_centroids(self):
        """Test distances returns one value per centroid."""
        cent = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 2.0]])
        d = distances(np.array([0.0, 0.0]), cent)
        np.testing.assert_allclose(d, [0.0, 1.0, 4.0])

    def test_distances_leading_centroids_only(self):
        """Test kc restricts to the first kc centroids."""
        cent = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 2.0]])
        d = distances(np.array([0.0, 0.0]), cent, kc=2)
        assert len(d) == 2

    def test_pairwise_sq_distances(self, six_points):
        """Test pairwise matrix is symmetric with a zero diagonal."""
        d = pairwise_sq_distances(six_points)

        assert d.shape == (6, 6)
        np.testing.assert_allclose(d, d.T)
        np.testing.assert_allclose(np.diag(d), 0.0)
        assert d[0, 1] == pytest.approx(dist(six_points[0], six_points[1]))
