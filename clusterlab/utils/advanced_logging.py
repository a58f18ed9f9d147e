"""
Advanced Logging Module

structlog setup for clusterlab:
- JSON or console rendering, optional rotating log file
- numpy values in event fields rendered as plain Python values
- timing of clustering runs (context manager and decorator)
- exception logging that keeps the ClusterlabError code and details
"""

import contextlib
import functools
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import structlog
from structlog.types import EventDict, Processor

LOG_FILE_MAX_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUPS = 5


# =============================================================================
# Structured Logging Configuration
# =============================================================================


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[str] = None,
    service_name: str = "clusterlab",
) -> None:
    """
    Route structlog through stdlib logging with the chosen renderer.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" for one JSON object per line, anything else for console
        log_file: Also write to this file, rotated at 100MB with 5 backups
        service_name: Value of the `service` field on every event
    """
    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
        )
        handler.setLevel(level)
        logging.getLogger().addHandler(handler)

    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_static_fields(service=service_name),
        numpy_to_builtin,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_static_fields(**fields: Any) -> Processor:
    """Processor that adds the same fields to every event."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def _to_builtin(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return value


def numpy_to_builtin(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace numpy scalars and arrays (cluster sizes, sse) with Python values."""
    return {key: _to_builtin(value) for key, value in event_dict.items()}


def get_logger(name: str, **context: Any) -> structlog.BoundLogger:
    """
    Get a structlog logger with optional bound context.

    Args:
        name: Logger name (usually __name__)
        **context: Fields attached to every event, e.g. algorithm or stream
    """
    log = structlog.get_logger(name)
    return log.bind(**context) if context else log


# =============================================================================
# Timing
# =============================================================================


class PerformanceLogger:
    """
    Time a clustering step and log its outcome.

    Logs `operation_started` at debug level on entry and either
    `operation_completed` or `operation_failed` on exit. Fields added with
    `record()` inside the block go on the completion event.

    Example:
        with PerformanceLogger("kmeans_clustering", item_count=len(x)) as perf:
            clusterer.train()
            perf.record(n_iter=clusterer.n_iter)
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.BoundLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **extra_context: Any,
    ):
        """
        Args:
            operation: Name of the timed step
            logger: Logger to write to (module logger when None)
            log_level: Level of the completion event
            item_count: Points processed, for a points-per-second rate
            **extra_context: Fields added to every event
        """
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.context: Dict[str, Any] = dict(extra_context)
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def record(self, **fields: Any) -> None:
        """Attach result fields to the completion event."""
        self.context.update(fields)

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        self.logger.debug("operation_started", operation=self.operation, **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.perf_counter()
        fields = {
            "operation": self.operation,
            "duration_seconds": round(self.elapsed_time, 3),
            **self.context,
        }
        if self.item_count:
            fields["item_count"] = self.item_count
            if self.elapsed_time > 0:
                fields["items_per_second"] = round(self.item_count / self.elapsed_time, 2)

        if exc_type is None:
            getattr(self.logger, self.log_level)("operation_completed", **fields)
        else:
            self.logger.error(
                "operation_failed",
                error=str(exc_val),
                error_type=exc_type.__name__,
                **fields,
            )

    @property
    def elapsed_time(self) -> float:
        """Seconds since entry; stops counting on exit."""
        if self.start_time is None:
            return 0.0
        return (self.end_time or time.perf_counter()) - self.start_time


def timed(
    operation: Optional[str] = None,
    log_level: str = "info",
    count_arg: Optional[int] = None,
) -> Callable:
    """
    Decorator form of PerformanceLogger.

    Args:
        operation: Name of the timed step (function name when None)
        log_level: Level of the completion event
        count_arg: Index of the positional argument holding the point set;
            its length is logged as the item count

    Example:
        @timed(operation="gap_statistic", count_arg=0)
        def estimate(x):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = operation or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            count = None
            if count_arg is not None and count_arg < len(args):
                count = len(args[count_arg])
            with PerformanceLogger(name, log_level=log_level, item_count=count):
                return func(*args, **kwargs)

        return wrapper

    return decorator


# =============================================================================
# Exceptions
# =============================================================================


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[structlog.BoundLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
):
    """
    Log any exception raised in the block as `exception_caught`.

    ClusterlabError subclasses contribute their error code and details.

    Args:
        logger: Logger to write to (module logger when None)
        operation: Name of the step, added to the event
        reraise: Re-raise after logging
    """
    log = logger or get_logger(__name__)
    try:
        yield
    except Exception as e:
        fields: Dict[str, Any] = {"error": str(e), "error_type": type(e).__name__}
        if operation:
            fields["operation"] = operation
        if hasattr(e, "to_dict"):
            data = e.to_dict()
            fields["error_code"] = data.get("error_code")
            fields["details"] = data.get("details", {})

        log.error("exception_caught", exc_info=True, **fields)

        if reraise:
            raise
