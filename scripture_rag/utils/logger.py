"""
Logging helpers for retrieval: timing and per-query metrics.
"""
import time
import logging
from typing import Dict, Any
from enum import Enum
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Log verbosity levels."""
    MINIMAL = "minimal"      # Only errors and warnings
    STANDARD = "standard"    # One line per query
    VERBOSE = "verbose"      # Per-pass details


class PerformanceTimer:
    """Track operation timing and emit warnings for slow operations."""

    def __init__(self, operation: str, warn_threshold_ms: float = 3000):
        self.operation = operation
        self.warn_threshold_ms = warn_threshold_ms
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        duration_ms = self.elapsed_ms()

        if duration_ms > self.warn_threshold_ms:
            logger.warning(
                f"Slow operation: {self.operation} took {duration_ms:.0f}ms "
                f"(threshold: {self.warn_threshold_ms:.0f}ms)"
            )
        else:
            logger.debug(f"{self.operation} completed in {duration_ms:.0f}ms")

    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        if self.start_time is not None and self.end_time is not None:
            return (self.end_time - self.start_time) * 1000
        elif self.start_time is not None:
            return (time.perf_counter() - self.start_time) * 1000
        return 0


class RetrievalLogger:
    """Logger for retrieval calls that also keeps the last query's metrics."""

    _HIERARCHY = {
        LogLevel.MINIMAL: 0,
        LogLevel.STANDARD: 1,
        LogLevel.VERBOSE: 2
    }

    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD, verbose: bool = False):
        self.name = name
        self.level = LogLevel.VERBOSE if verbose else level
        self.metrics: Dict[str, Any] = {}
        self.timers: Dict[str, PerformanceTimer] = {}

    def _should_log(self, required_level: LogLevel) -> bool:
        return self._HIERARCHY[self.level] >= self._HIERARCHY[required_level]

    def info(self, message: str, level: LogLevel = LogLevel.STANDARD):
        if self._should_log(level):
            logger.info(f"[{self.name}] {message}")

    def debug(self, message: str):
        if self._should_log(LogLevel.VERBOSE):
            logger.debug(f"[{self.name}] {message}")

    def warning(self, message: str, level: LogLevel = LogLevel.MINIMAL):
        if self._should_log(level):
            logger.warning(f"[{self.name}] {message}")

    def metric(self, key: str, value: Any):
        """Record a metric."""
        self.metrics[key] = value
        self.debug(f"{key}: {value}")

    @contextmanager
    def timer(self, operation: str, warn_threshold_ms: float = 3000):
        """Time an operation and warn if slow."""
        timer = PerformanceTimer(operation, warn_threshold_ms)
        self.timers[operation] = timer

        with timer:
            yield timer

    def pass_stats(self, pass_name: str, query: str, n_vector: int, n_lexical: int,
                   n_fused: int, distinct_refs: int):
        """Log the outcome of one retrieval pass."""
        self.metric(f"{pass_name}_results", n_fused)
        self.metric(f"{pass_name}_distinct_refs", distinct_refs)
        self.debug(
            f"{pass_name}: '{query[:60]}' -> {n_vector} vector, {n_lexical} lexical, "
            f"{n_fused} fused, {distinct_refs} distinct refs"
        )

    def query_summary(self, query: str, n_results: int, expanded: bool):
        self.metric("final_results", n_results)
        self.metric("expanded", expanded)
        self.info(
            f"'{query[:60]}': {n_results} passages"
            + (" (after query expansion)" if expanded else "")
        )

    def get_summary(self) -> str:
        """Get summary of recorded metrics and timings."""
        lines = [f"\n{'='*60}", f"Retrieval Metrics: {self.name}", f"{'='*60}"]

        for key, value in self.metrics.items():
            lines.append(f"  {key}: {value}")

        if self.timers:
            lines.append("\nOperation Timings:")
            for op, timer in self.timers.items():
                lines.append(f"  {op}: {timer.elapsed_ms():.0f}ms")

        lines.append("=" * 60)
        return "\n".join(lines)


def create_logger(name: str, level: LogLevel = LogLevel.STANDARD,
                  verbose: bool = False) -> RetrievalLogger:
    """Factory function to create a RetrievalLogger."""
    return RetrievalLogger(name, level, verbose)
