#!/usr/bin/env python3
"""
clusterlab CLI

Command-line interface for running the clustering engine on a CSV file or
one of the bundled sample datasets. Results are printed as JSON.

Usage:
    clusterlab kmeans --dataset eight_points -k 4          # K-Means
    clusterlab kmeans --input points.csv -k 3 --init kmeans++ --reassign hartigan_wong
    clusterlab kmeans --dataset eight_points -k 4 --restarts hartigan
    clusterlab hierarchical --dataset six_points -k 3      # Single-linkage
    clusterlab markov --dataset two_lobe_graph             # Markov clustering
    clusterlab gap --input points.csv --k-max 6            # Gap statistic
    clusterlab tight --input points.csv --k0 3 --kmin 2    # Tight clustering
    clusterlab evaluate --dataset six_points -k 3 --streams 100
"""

import sys
import json
from typing import List, Optional
import argparse

import numpy as np

from clusterlab.config.settings_loader import ConfigManager, Settings
from clusterlab.core.clustering_engine import ClusteringEngine
from clusterlab.datasets import KNOWN_OPTIMA, load_dataset
from clusterlab.schemas.data_models import (
    ClusterAlgorithm,
    ErrorReport,
    build_clustering_report,
    build_gap_report,
    build_stream_report,
)
from clusterlab.utils.advanced_logging import PerformanceLogger, configure_logging
from clusterlab.utils.error_handling import ClusterlabError


class ClusteringCLI:
    """CLI for the clusterlab clustering engine."""

    def __init__(self, settings: Settings):
        """
        Initialize CLI.

        Args:
            settings: Loaded settings
        """
        self.settings = settings
        self.engine = ClusteringEngine(settings)

    def _timed(self, func, *args, **kwargs):
        with PerformanceLogger(f"cli_{func.__name__}", log_level="debug") as perf:
            result = func(*args, **kwargs)
        return result, perf.elapsed_time * 1000.0

    def cluster(self, x: np.ndarray, algorithm: str, params: dict, stream: Optional[int]) -> dict:
        """Run kmeans / hierarchical / markov."""
        result, elapsed = self._timed(self.engine.cluster, x, algorithm, params, stream)
        report = build_clustering_report(
            result,
            stream=self.engine.resolve_stream(stream),
            processing_time_ms=elapsed,
        )
        return report.model_dump()

    def restarts(self, x: np.ndarray, k: Optional[int], algorithm: str, stream: Optional[int]) -> dict:
        """Best k-means++ run over the configured restart streams."""
        result, elapsed = self._timed(self.engine.best_of_restarts, x, k, algorithm, stream)
        report = build_clustering_report(
            result,
            stream=self.engine.resolve_stream(stream),
            processing_time_ms=elapsed,
        )
        return report.model_dump()

    def gap(self, x: np.ndarray, k_max: Optional[int], stream: Optional[int], params: dict) -> dict:
        """Estimate k with the gap statistic."""
        gap = self.engine.estimate_optimal_k(x, k_max=k_max, stream=stream, **params)
        return build_gap_report(gap).model_dump()

    def tight(self, x: np.ndarray, k0: int, kmin: int, stream: Optional[int], params: dict) -> dict:
        """Find tight clusters."""
        result, elapsed = self._timed(self.engine.tight_cluster, x, k0, kmin, stream, **params)
        report = build_clustering_report(
            result,
            stream=self.engine.resolve_stream(stream),
            processing_time_ms=elapsed,
        )
        return report.model_dump()

    def evaluate(
        self, x: np.ndarray, algorithm: str, params: dict, n_streams: int, opt: Optional[float]
    ) -> dict:
        """Summarize fit quality across streams."""
        stats = self.engine.evaluate(x, algorithm, params, n_streams=n_streams, opt=opt)
        return build_stream_report(stats, algorithm).model_dump()


def print_json(data: dict, indent: int = 2):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str))


def load_points(args) -> np.ndarray:
    """Read the point set named on the command line."""
    if args.input:
        return np.loadtxt(args.input, delimiter=args.delimiter, ndmin=2)
    if args.dataset:
        return load_dataset(args.dataset, stream=args.stream)
    print("❌ One of --input or --dataset is required", file=sys.stderr)
    sys.exit(1)


def kmeans_params(args) -> dict:
    params = {}
    if args.k is not None:
        params["n_clusters"] = args.k
    if args.init:
        params["init"] = args.init
    if args.reassign:
        params["reassign"] = args.reassign
    if args.post_swap:
        params["post_swap"] = True
    if args.immediate:
        params["immediate"] = True
    if args.max_iter is not None:
        params["max_iter"] = args.max_iter
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clusterlab",
        description="clusterlab clustering engine CLI",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "command",
        help="Command to execute",
        choices=["kmeans", "hierarchical", "markov", "gap", "tight", "evaluate"],
    )

    parser.add_argument("--input", "-i", help="CSV file with one point (or matrix row) per line")
    parser.add_argument("--delimiter", default=",", help="CSV delimiter")
    parser.add_argument("--dataset", "-d", help="Bundled dataset (six_points, eight_points, two_lobe_graph, two_lobe_transition, two_mode)")
    parser.add_argument("--config", "-c", help="Settings YAML file")
    parser.add_argument("--stream", "-s", type=int, help="Random stream")
    parser.add_argument("-k", type=int, help="Number of clusters (kmeans/hierarchical) or expansion power (markov)")
    parser.add_argument("--init", choices=["random_assignment", "random_centroids", "kmeans++"], help="K-Means initializer")
    parser.add_argument("--reassign", choices=["plain", "plain_random", "hartigan_wong", "hartigan", "lloyd"], help="K-Means reassigner")
    parser.add_argument("--post-swap", action="store_true", help="K-Means post-process swap")
    parser.add_argument("--immediate", action="store_true", help="K-Means: stop each pass at the first move")
    parser.add_argument("--restarts", choices=["hartigan", "lloyd"], help="K-Means: best k-means++ run over restart streams")
    parser.add_argument("--max-iter", type=int, help="Maximum iterations")
    parser.add_argument("--inflation", "-r", type=float, help="Markov inflation exponent")
    parser.add_argument("--no-self-loops", action="store_true", help="Markov: input already has self-loops")
    parser.add_argument("--stochastic", action="store_true", help="Markov: input is already column-stochastic")
    parser.add_argument("--k-max", type=int, help="Gap statistic: largest candidate k")
    parser.add_argument("--rule", choices=["relative", "standard_error"], help="Gap statistic selection rule")
    parser.add_argument("--no-svd", action="store_true", help="Gap statistic: box reference data")
    parser.add_argument("--k0", type=int, help="Tight clustering: starting k")
    parser.add_argument("--kmin", type=int, help="Tight clustering: smallest k")
    parser.add_argument("--streams", type=int, default=100, help="Evaluate: number of streams")
    parser.add_argument("--opt", type=float, help="Evaluate: known optimal sse")
    parser.add_argument(
        "--algorithm",
        "-a",
        default=ClusterAlgorithm.KMEANS.value,
        choices=[ClusterAlgorithm.KMEANS.value, ClusterAlgorithm.HIERARCHICAL.value],
        help="Evaluate: algorithm",
    )
    parser.add_argument("--log-level", help="Log level override")
    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ConfigManager.reload_config(args.config) if args.config else ConfigManager.get_settings()
        configure_logging(
            log_level=args.log_level or settings.logging.level,
            log_format=settings.logging.format,
            log_file=settings.logging.file,
        )
        cli = ClusteringCLI(settings)
        x = load_points(args)

        if args.command == "kmeans" and args.restarts:
            print_json(cli.restarts(x, args.k, args.restarts, args.stream))

        elif args.command in ("kmeans", "hierarchical"):
            params = kmeans_params(args) if args.command == "kmeans" else (
                {"n_clusters": args.k} if args.k is not None else {}
            )
            print_json(cli.cluster(x, args.command, params, args.stream))

        elif args.command == "markov":
            params = {}
            if args.k is not None:
                params["expansion"] = args.k
            if args.inflation is not None:
                params["inflation"] = args.inflation
            if args.max_iter is not None:
                params["max_iter"] = args.max_iter
            if args.no_self_loops or args.stochastic:
                params["add_self_loops"] = False
            if args.stochastic:
                params["normalize"] = False
            print_json(cli.cluster(x, "markov", params, args.stream))

        elif args.command == "gap":
            params = {}
            if args.rule:
                params["rule"] = args.rule
            if args.no_svd:
                params["use_svd"] = False
            print_json(cli.gap(x, args.k_max, args.stream, params))

        elif args.command == "tight":
            if args.k0 is None or args.kmin is None:
                print("❌ --k0 and --kmin are required", file=sys.stderr)
                sys.exit(1)
            print_json(cli.tight(x, args.k0, args.kmin, args.stream, {}))

        elif args.command == "evaluate":
            params = kmeans_params(args) if args.algorithm == "kmeans" else (
                {"n_clusters": args.k} if args.k is not None else {}
            )
            opt = args.opt
            if opt is None and args.dataset in KNOWN_OPTIMA:
                k, known = KNOWN_OPTIMA[args.dataset]
                params.setdefault("n_clusters", k)
                opt = known
            print_json(cli.evaluate(x, args.algorithm, params, args.streams, opt))

    except ClusterlabError as e:
        report = ErrorReport(**{k: v for k, v in e.to_dict().items() if k != "timestamp"})
        print(f"❌ {report.message}", file=sys.stderr)
        print(json.dumps(report.model_dump(), default=str), file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
