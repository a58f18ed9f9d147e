"""
Unit tests for ClusterState.

Tests that assignment and sizes stay consistent through:
- initial assignment
- moves and swaps
- empty cluster repair
"""

import numpy as np
import pytest

from clusterlab.core.cluster_state import UNASSIGNED, ClusterState
from clusterlab.utils.error_handling import ClusteringFailedError, EmptyClusterError


@pytest.mark.unit
class TestClusterState:
    """Test suite for ClusterState."""

    def test_new_state_is_unassigned(self):
        """Test a new state has every point unassigned and zero sizes."""
        state = ClusterState(4, 2)

        assert np.all(state.to_c == UNASSIGNED)
        assert state.sz.tolist() == [0, 0]
        assert state.n_assigned == 0

    def test_invalid_k(self):
        """Test k < 1 is rejected."""
        with pytest.raises(ValueError):
            ClusterState(4, 0)

    def test_assign_updates_sizes(self):
        """Test assign keeps sizes in step with labels."""
        state = ClusterState(3, 2)
        state.assign(0, 1)
        state.assign(1, 1)
        state.assign(2, 0)

        assert state.sz.tolist() == [1, 2]
        assert state.label(0) == 1
        assert state.members(1).tolist() == [0, 1]

    def test_assign_twice_fails(self):
        """Test a point cannot be assigned twice."""
        state = ClusterState(2, 2)
        state.assign(0, 0)

        with pytest.raises(ClusteringFailedError) as exc:
            state.assign(0, 1)
        assert exc.value.error_code == "ALREADY_ASSIGNED"

    def test_assign_out_of_range(self):
        """Test cluster indices outside [0, k) are rejected."""
        state = ClusterState(2, 2)

        with pytest.raises(ClusteringFailedError) as exc:
            state.assign(0, 2)
        assert exc.value.error_code == "INVALID_CLUSTER"

    def test_views_are_read_only(self):
        """Test to_c and sz cannot be written through."""
        state = ClusterState.from_labels([0, 1, 1], 2)

        with pytest.raises(ValueError):
            state.to_c[0] = 1
        with pytest.raises(ValueError):
            state.sz[0] = 5

    def test_move(self):
        """Test move shifts one point between clusters."""
        state = ClusterState.from_labels([0, 0, 1], 2)

        assert state.move(0, 1) is True
        assert state.sz.tolist() == [1, 2]
        assert state.move(0, 1) is False

    def test_move_would_empty(self):
        """Test moving the last member of a cluster is refused."""
        state = ClusterState.from_labels([0, 1, 1], 2)

        with pytest.raises(ClusteringFailedError) as exc:
            state.move(0, 1)
        assert exc.value.error_code == "WOULD_EMPTY"
        assert state.sz.tolist() == [1, 2]

    def test_move_unassigned(self):
        """Test moving an unassigned point fails."""
        state = ClusterState(2, 2)

        with pytest.raises(ClusteringFailedError):
            state.move(0, 1)

    def test_swap_keeps_sizes(self):
        """Test swap exchanges labels without touching sizes."""
        state = ClusterState.from_labels([0, 0, 1], 2)
        state.swap(1, 2)

        assert state.to_c.tolist() == [0, 1, 0]
        assert state.sz.tolist() == [2, 1]

    def test_fix_empty_clusters(self):
        """Test empty clusters take points from the largest cluster."""
        state = ClusterState.from_labels([0, 0, 0, 0], 3)

        fixed = state.fix_empty_clusters(np.random.default_rng(0))

        assert fixed == 2
        assert state.sz.tolist() == [2, 1, 1]
        assert state.empty_clusters() == []

    def test_centroids_require_full_assignment(self):
        """Test centroids fail while points are unassigned."""
        state = ClusterState(2, 1)
        state.assign(0, 0)

        with pytest.raises(ClusteringFailedError) as exc:
            state.centroids(np.zeros((2, 2)))
        assert exc.value.error_code == "INCOMPLETE_ASSIGNMENT"

    def test_centroids_are_means(self, six_points):
        """Test centroids are the coordinate-wise cluster means."""
        state = ClusterState.from_labels([0, 0, 1, 1, 2, 2], 3)

        cent = state.centroids(six_points)

        np.testing.assert_allclose(cent, [[1.5, 1.5], [4.5, 4.5], [8.5, 8.5]])

    def test_check_nonempty(self):
        """Test check_nonempty reports the first empty cluster."""
        state = ClusterState.from_labels([0, 0], 3)

        with pytest.raises(EmptyClusterError) as exc:
            state.check_nonempty()
        assert exc.value.cluster == 1
        assert str(exc.value) == "Empty cluster c = 1"

    def test_copy_is_independent(self):
        """Test copies do not share arrays."""
        state = ClusterState.from_labels([0, 0, 1], 2)
        other = state.copy()
        other.move(0, 1)

        assert state.sz.tolist() == [2, 1]
        assert other.sz.tolist() == [1, 2]
