"""
Evaluation Across Random Streams.

Trains a fresh clusterer for each of several random streams and tallies
sst, sse and R^2, plus how many runs reached a known optimal sse.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import numpy as np

from clusterlab.core.base_clustering import BaseClusterer

logger = logging.getLogger(__name__)


@dataclass
class Statistic:
    """Running summary of one measured quantity."""

    name: str
    values: list = field(default_factory=list)

    def tally(self, value: float) -> None:
        self.values.append(float(value))

    @property
    def count(self) -> int:
        return len(self.values)

    def summary(self) -> Dict[str, float]:
        if not self.values:
            return {"count": 0}
        v = np.asarray(self.values)
        return {
            "count": len(v),
            "min": float(v.min()),
            "max": float(v.max()),
            "mean": float(v.mean()),
            "std": float(v.std(ddof=1)) if len(v) > 1 else 0.0,
        }


@dataclass
class StreamStatistics:
    """Results of evaluate_streams."""

    sst: Statistic
    sse: Statistic
    r_squared: Statistic
    n_streams: int
    opt: Optional[float] = None
    n_optimal: int = 0

    @property
    def optimal_rate(self) -> Optional[float]:
        if self.opt is None or self.n_streams == 0:
            return None
        return self.n_optimal / self.n_streams

    def to_dict(self) -> Dict:
        return {
            "n_streams": self.n_streams,
            "opt": self.opt,
            "n_optimal": self.n_optimal,
            "sst": self.sst.summary(),
            "sse": self.sse.summary(),
            "r_squared": self.r_squared.summary(),
        }


def evaluate_streams(
    factory: Callable[[int], BaseClusterer],
    n_streams: int = 1000,
    opt: Optional[float] = None,
) -> StreamStatistics:
    """
    Train one clusterer per stream and summarize the fit quality.

    Args:
        factory: Called with a stream number; returns an untrained clusterer
        n_streams: Number of streams (0..n_streams-1)
        opt: Known optimal sse; runs with sse <= opt are counted

    Returns:
        StreamStatistics with sst, sse and R^2 summaries
    """
    stats = StreamStatistics(
        sst=Statistic("sst"),
        sse=Statistic("sse"),
        r_squared=Statistic("r_squared"),
        n_streams=n_streams,
        opt=opt,
    )

    for s in range(n_streams):
        clusterer = factory(s)
        clusterer.set_stream(s)
        clusterer.train()
        sst, sse = clusterer.sst(), clusterer.sse()
        stats.sst.tally(sst)
        stats.sse.tally(sse)
        stats.r_squared.tally(1.0 - sse / sst if sst > 0 else 0.0)
        if opt is not None and clusterer.check_opt(opt):
            stats.n_optimal += 1
        if s < 5:
            logger.debug(f"stream {s}: cluster = {clusterer.cluster.tolist()}, sse = {sse:.6g}")

    if opt is not None:
        logger.info(f"{stats.n_optimal} of {n_streams} streams reached sse <= {opt}")
    return stats
