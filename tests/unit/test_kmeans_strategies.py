"""
Unit tests for K-Means initialization and reassignment strategies.
"""

import numpy as np
import pytest

from clusterlab.core.cluster_state import ClusterState
from clusterlab.core.initialization import (
    KMeansPlusPlus,
    RandomAssignment,
    RandomCentroids,
    assign_to_nearest,
    get_initializer,
)
from clusterlab.core.reassignment import (
    HartiganWong,
    Lloyd,
    NearestCentroid,
    get_reassigner,
)
from clusterlab.utils.error_handling import ConfigurationError


@pytest.mark.unit
class TestInitializers:
    """Test suite for the initialization strategies."""

    @pytest.mark.parametrize("initializer", [RandomAssignment(), RandomCentroids(), KMeansPlusPlus()])
    def test_every_cluster_nonempty(self, six_points, initializer):
        """Test initializers assign every point and fill every cluster."""
        for stream in range(10):
            state = initializer.initialize(six_points, 3, np.random.default_rng(stream))

            assert state.n_assigned == 6
            assert state.sz.sum() == 6
            assert np.all(state.sz >= 1)

    def test_same_stream_same_assignment(self, eight_points):
        """Test initialization is reproducible from the stream."""
        a = KMeansPlusPlus().initialize(eight_points, 4, np.random.default_rng(3))
        b = KMeansPlusPlus().initialize(eight_points, 4, np.random.default_rng(3))

        assert a.to_c.tolist() == b.to_c.tolist()

    def test_kmeans_pp_seeds_are_data_points(self, eight_points):
        """Test k-means++ seeds are distinct rows of x."""
        seeds = KMeansPlusPlus().choose_seeds(eight_points, 4, np.random.default_rng(0))
        rows = {tuple(p) for p in eight_points}

        assert all(tuple(s) in rows for s in seeds)
        assert len({tuple(s) for s in seeds}) == 4

    def test_kmeans_pp_with_coincident_points(self):
        """Test k-means++ falls back to uniform picks when all distances are zero."""
        x = np.ones((5, 2))

        state = KMeansPlusPlus().initialize(x, 2, np.random.default_rng(0))

        assert sorted(state.sz.tolist()) == [1, 4]

    def test_assign_to_nearest_ties_go_low(self):
        """Test a point equidistant from two seeds joins the lower index."""
        x = np.array([[0.0], [1.0], [2.0]])
        seeds = np.array([[0.0], [2.0]])

        state = assign_to_nearest(x, seeds, np.random.default_rng(0))

        assert state.to_c.tolist() == [0, 0, 1]

    def test_get_initializer(self):
        """Test lookup by name is case-insensitive and passes instances through."""
        assert isinstance(get_initializer("KMEANS++"), KMeansPlusPlus)
        init = RandomCentroids()
        assert get_initializer(init) is init

    def test_unknown_initializer(self):
        """Test unknown names raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc:
            get_initializer("farthest_first")
        assert exc.value.error_code == "INVALID_INITIALIZER"


@pytest.mark.unit
class TestReassigners:
    """Test suite for the reassignment strategies."""

    def test_nearest_centroid_moves_point(self):
        """Test a point moves to a strictly closer centroid."""
        x = np.array([[0.0], [0.1], [5.0], [5.1]])
        state = ClusterState.from_labels([0, 1, 1, 1], 2)
        cent = np.array([[0.0], [3.4]])

        done = NearestCentroid().reassign(x, state, cent, np.random.default_rng(0))

        assert done is False
        assert state.to_c.tolist() == [0, 0, 1, 1]

    def test_nearest_centroid_converged(self):
        """Test a pass with no moves reports done."""
        x = np.array([[0.0], [0.1], [5.0], [5.1]])
        state = ClusterState.from_labels([0, 0, 1, 1], 2)
        cent = state.centroids(x)

        assert NearestCentroid().reassign(x, state, cent, np.random.default_rng(0)) is True

    def test_singleton_never_moves(self):
        """Test the only member of a cluster is skipped."""
        x = np.array([[0.0], [10.0], [10.1]])
        state = ClusterState.from_labels([0, 1, 1], 2)
        cent = np.array([[20.0], [10.05]])

        NearestCentroid().reassign(x, state, cent, np.random.default_rng(0))

        assert state.sz.tolist() == [1, 2]

    def test_immediate_stops_after_first_move(self):
        """Test immediate ends the pass at the first move."""
        x = np.array([[0.0], [0.1], [0.2], [5.0]])
        state = ClusterState.from_labels([1, 1, 1, 0], 2)
        cent = np.array([[0.0], [5.0]])

        NearestCentroid().reassign(x, state, cent, np.random.default_rng(0), immediate=True)

        assert state.sz.tolist() == [2, 2]

    def test_invalid_order(self):
        """Test unknown visit orders are rejected."""
        with pytest.raises(ConfigurationError):
            NearestCentroid(order="reverse")

    def test_hartigan_adjusted_distances(self):
        """Test size-adjusted distances for own and other clusters."""
        cent = np.array([[1.0, 0.0], [3.0, 0.0]])
        sz = np.array([2, 3])

        adj = HartiganWong.adjusted_distances(np.zeros(2), cent, sz, own=0)

        np.testing.assert_allclose(adj, [2.0, 6.75])

    def test_incremental_hartigan_updates_centroids(self):
        """Test incremental Hartigan keeps centroids equal to cluster means."""
        x = np.array([[0.0], [0.2], [0.4], [9.0], [9.2]])
        state = ClusterState.from_labels([0, 0, 1, 1, 1], 2)
        cent = state.centroids(x)

        HartiganWong(incremental=True).reassign(x, state, cent, np.random.default_rng(1))

        np.testing.assert_allclose(cent, state.centroids(x))
        assert state.to_c.tolist() == [0, 0, 0, 1, 1]

    def test_registry(self):
        """Test reassigner names resolve to the right strategies."""
        assert isinstance(get_reassigner("lloyd"), Lloyd)
        assert get_reassigner("hartigan").incremental is True
        assert get_reassigner("hartigan_wong").incremental is False
        assert get_reassigner("plain_random").order == "random"

    def test_unknown_reassigner(self):
        """Test unknown names raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc:
            get_reassigner("macqueen")
        assert exc.value.error_code == "INVALID_REASSIGNER"
