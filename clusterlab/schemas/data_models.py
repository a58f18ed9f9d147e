"""
data_models.py

Pydantic data models for clusterlab reports.
Defines the JSON output schemas written by the command-line interface.

Schema Design:
- Cluster: one cluster of a clustering run (members, centroid, size)
- ClusteringReport: a full clustering run with its quality metrics
- GapReport / StreamStatisticsReport: model selection and evaluation output
"""

from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ClusterAlgorithm(str, Enum):
    """Supported clustering algorithms."""

    KMEANS = "kmeans"
    HIERARCHICAL = "hierarchical"
    MARKOV = "markov"
    TIGHT = "tight"


# =============================================================================
# CLUSTER MODELS
# =============================================================================


class Cluster(BaseModel):
    """Cluster representation."""

    cluster_id: int = Field(..., ge=0, description="Cluster index")
    name: str = Field(default="unknown", description="Optional cluster name")
    members: List[int] = Field(default_factory=list, description="Indices of member points")
    centroid: Optional[List[float]] = Field(None, description="Cluster centroid vector")
    size: int = Field(..., ge=0, description="Number of members")


class ClusteringReport(BaseModel):
    """Results of a clustering operation."""

    algorithm: str
    stream: int = Field(default=0, ge=0)
    total_items: int
    clusters_created: int
    outliers: int
    avg_cluster_size: float
    cluster_labels: List[int]
    clusters: List[Cluster] = Field(default_factory=list)
    quality_metrics: Dict[str, float] = Field(default_factory=dict)
    processing_time_ms: Optional[float] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class GapReport(BaseModel):
    """Gap statistic scan over k = 1..k_max."""

    optimal_k: int = Field(..., ge=1)
    ks: List[int]
    log_wk: List[float]
    log_wk_ref: List[float]
    gap: List[float]
    sk: List[float]
    cluster_labels: List[int]
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class StatisticSummary(BaseModel):
    """Summary of one tallied quantity."""

    count: int
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    std: Optional[float] = None


class StreamStatisticsReport(BaseModel):
    """Fit quality of an algorithm across random streams."""

    algorithm: str
    n_streams: int
    opt: Optional[float] = None
    n_optimal: int = 0
    sst: StatisticSummary
    sse: StatisticSummary
    r_squared: StatisticSummary


class ErrorReport(BaseModel):
    """Error payload printed by the command-line interface."""

    error_type: str
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# BUILDERS
# =============================================================================


def build_clustering_report(
    result,
    stream: int = 0,
    processing_time_ms: Optional[float] = None,
    names: Optional[List[str]] = None,
) -> ClusteringReport:
    """
    Convert a core ClusteringResult into a ClusteringReport.

    Args:
        result: clusterlab.core.ClusteringResult
        stream: Random stream the run used
        processing_time_ms: Wall time of the run
        names: Optional cluster names, by cluster index

    Returns:
        ClusteringReport
    """
    labels = [int(c) for c in result.cluster_labels]
    clusters = []
    for c in range(result.n_clusters):
        members = [i for i, label in enumerate(labels) if label == c]
        centroid = None
        if result.centroids is not None and c < len(result.centroids):
            centroid = [float(v) for v in result.centroids[c]]
        clusters.append(
            Cluster(
                cluster_id=c,
                name=names[c] if names and c < len(names) else "unknown",
                members=members,
                centroid=centroid,
                size=len(members),
            )
        )

    clustered = len(labels) - result.outlier_count
    return ClusteringReport(
        algorithm=result.algorithm or "unknown",
        stream=stream,
        total_items=len(labels),
        clusters_created=result.n_clusters,
        outliers=result.outlier_count,
        avg_cluster_size=clustered / result.n_clusters if result.n_clusters else 0.0,
        cluster_labels=labels,
        clusters=clusters,
        quality_metrics={k: float(v) for k, v in result.quality_metrics.items()},
        processing_time_ms=processing_time_ms,
    )


def build_gap_report(gap) -> GapReport:
    """Convert a core GapResult into a GapReport."""
    data = gap.to_dict()
    return GapReport(
        optimal_k=data["k"],
        ks=data["ks"],
        log_wk=data["log_wk"],
        log_wk_ref=data["log_wk_ref"],
        gap=data["gap"],
        sk=data["sk"],
        cluster_labels=data["cluster_labels"],
    )


def build_stream_report(stats, algorithm: str) -> StreamStatisticsReport:
    """Convert core StreamStatistics into a StreamStatisticsReport."""
    data = stats.to_dict()
    return StreamStatisticsReport(
        algorithm=algorithm,
        n_streams=data["n_streams"],
        opt=data["opt"],
        n_optimal=data["n_optimal"],
        sst=StatisticSummary(**data["sst"]),
        sse=StatisticSummary(**data["sse"]),
        r_squared=StatisticSummary(**data["r_squared"]),
    )
