"""
Structured logging system for gradjobs.

Provides centralized logging with console and file outputs, plus
request and scoring metrics for monitoring the API.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks per-route request counts and matching statistics.
    """

    def __init__(
        self,
        name: str = "gradjobs",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "requests_handled": 0,
            "requests_failed": 0,
            "errors_by_type": {},
            "route_stats": {},
            "scoring_runs": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"gradjobs_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # file always gets everything
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change the logger and console level; the file handler keeps DEBUG."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if not self.logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_request(self, route: str):
        """Record a handled request for a route."""
        self.metrics["requests_handled"] += 1
        if route not in self.metrics["route_stats"]:
            self.metrics["route_stats"][route] = {"requests": 0, "failures": 0}
        self.metrics["route_stats"][route]["requests"] += 1

    def record_failure(self, route: str, error_type: str):
        """Record a request that ended in an error response."""
        self.metrics["requests_failed"] += 1
        if route in self.metrics["route_stats"]:
            self.metrics["route_stats"][route]["failures"] += 1

        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

    def record_scoring(self, kind: str, scored: int, admitted: int):
        """Record one matching run (kind is 'jobs' or 'peers')."""
        runs = self.metrics["scoring_runs"].setdefault(
            kind, {"runs": 0, "scored": 0, "admitted": 0}
        )
        runs["runs"] += 1
        runs["scored"] += scored
        runs["admitted"] += admitted

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = self.metrics.copy()
        for route, stats in metrics_copy["route_stats"].items():
            if stats["requests"] > 0:
                stats["failure_rate"] = round(
                    stats["failures"] / stats["requests"], 3
                )
        for kind, stats in metrics_copy["scoring_runs"].items():
            if stats["scored"] > 0:
                stats["admission_rate"] = round(
                    stats["admitted"] / stats["scored"], 3
                )

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        total = metrics["requests_handled"]
        failed = metrics["requests_failed"]
        failure_rate = 0
        if total > 0:
            failure_rate = round(failed / total * 100, 1)

        self.info("=== API Session Metrics ===")
        self.info(f"Requests: {total} ({failed} failed, {failure_rate}%)")

        if metrics["route_stats"]:
            self.info("Routes:")
            for route, stats in metrics["route_stats"].items():
                self.info(f"  {route}: {stats['requests']} requests, {stats['failures']} failures")

        if metrics["scoring_runs"]:
            self.info("Matching:")
            for kind, stats in metrics["scoring_runs"].items():
                rate = stats.get("admission_rate", 0) * 100
                self.info(
                    f"  {kind}: {stats['runs']} runs, {stats['admitted']}/{stats['scored']} admitted ({rate:.1f}%)"
                )

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "gradjobs",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
