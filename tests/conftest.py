"""
Pytest configuration and shared fixtures for clusterlab tests.

This module provides:
- The bundled sample datasets
- Synthetic multi-cluster point sets
- Settings fixtures that never touch a settings file
"""

import os

import numpy as np
import pytest

from clusterlab.config.settings_loader import (
    ClusteringSettings,
    ConfigManager,
    GapStatisticSettings,
    KMeansSettings,
    Settings,
    TightClusteringSettings,
)
from clusterlab.datasets import (
    EIGHT_POINTS,
    SIX_POINTS,
    TWO_LOBE_GRAPH,
    TWO_LOBE_TRANSITION,
    gaussian_blobs,
)

# Read by ${LOG_LEVEL:INFO} in config/settings.yaml
os.environ["LOG_LEVEL"] = "DEBUG"


# =============================================================================
# Sample Datasets
# =============================================================================

@pytest.fixture
def six_points():
    """Six points in three pairs (optimal sse for k=3 is 3.0)."""
    return SIX_POINTS.copy()


@pytest.fixture
def eight_points():
    """Eight points in four pairs (optimal sse for k=4 is 8.0)."""
    return EIGHT_POINTS.copy()


@pytest.fixture
def two_lobe_graph():
    """12-node adjacency matrix with two dense lobes."""
    return TWO_LOBE_GRAPH.copy()


@pytest.fixture
def two_lobe_transition():
    """Column-stochastic transition matrix of the two-lobe graph."""
    return TWO_LOBE_TRANSITION.copy()


@pytest.fixture
def two_triangles():
    """Adjacency matrix of two disconnected triangles."""
    t = np.zeros((6, 6))
    for block in ((0, 1, 2), (3, 4, 5)):
        for i in block:
            for j in block:
                if i != j:
                    t[i, j] = 1.0
    return t


# =============================================================================
# Synthetic Point Sets
# =============================================================================

@pytest.fixture
def two_blobs():
    """
    Two tight, well separated blobs.

    25 points each around (2, 2) and (8, 8) with standard deviation 0.1.
    """
    return gaussian_blobs([[2.0, 2.0], [8.0, 8.0]], n_per_cluster=25, sd=0.1, stream=7)


@pytest.fixture
def three_blobs():
    """
    Three blobs of 15 points: two tight ones and one wide one.

    k-means with one cluster too many always splits the wide blob, so the
    tight blobs stay intact across neighbouring k.
    """
    rng = np.random.default_rng(11)
    tight_a = np.array([0.0, 0.0]) + rng.normal(0.0, 0.2, size=(15, 2))
    tight_b = np.array([10.0, 0.0]) + rng.normal(0.0, 0.2, size=(15, 2))
    wide = np.array([0.0, 10.0]) + rng.normal(0.0, 1.0, size=(15, 2))
    points = np.vstack([tight_a, tight_b, wide])
    labels = np.repeat([0, 1, 2], 15)
    return points, labels


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def default_settings():
    """Settings with every default value."""
    return Settings()


@pytest.fixture
def fast_settings():
    """Settings with small restart budgets for quick engine runs."""
    return Settings(
        clustering=ClusteringSettings(
            kmeans=KMeansSettings(n_clusters=3, restart_streams=30),
            gap_statistic=GapStatisticSettings(k_max=4, use_svd=False, restarts=5),
            tight=TightClusteringSettings(b=10),
        )
    )


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Drop cached settings after each test."""
    yield
    ConfigManager._settings = None


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take >1 second"
    )
