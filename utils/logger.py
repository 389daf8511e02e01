# utils/logger.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Logging utility for test runs with configurable levels

import logging
import sys
from enum import Enum
from typing import Optional


class LogLevel(Enum):
    """Log levels for harness runs."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


class HarnessLogger:
    """Centralized logger for test runs with structured, per-event output."""

    def __init__(self, name: str = "tessera", level: LogLevel = LogLevel.INFO):
        """Initialize the harness logger.

        Args:
            name: Logger name (typically module name)
            level: Default logging level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level.value)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level.value)
        console_handler.setFormatter(HarnessFormatter())

        self.logger.addHandler(console_handler)

        # Prevent propagation to root logger
        self.logger.propagate = False

    def set_level(self, level: LogLevel):
        """Change the logging level."""
        self.logger.setLevel(level.value)
        for handler in self.logger.handlers:
            handler.setLevel(level.value)

    # Core logging methods
    def debug(self, message: str, **kwargs):
        """Log debug message (per-operation detail)."""
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message (run milestones)."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message (unexpected but recoverable)."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message (serious problems)."""
        self.logger.error(message, **kwargs)

    # Specialized methods for test-run events
    def test_start(self, nodes: str, concurrency: int, time_limit: float, nemesis: bool):
        """Log test initialization."""
        self.info("=== Starting Test ===")
        self.info(f"Nodes: {nodes}")
        self.info(f"Concurrency: {concurrency}, time limit: {time_limit}s")
        self.info(f"Nemesis: {'partition-random-halves' if nemesis else 'none'}")

    def op_invoked(self, process, f: str, value, node: Optional[str] = None):
        """Log an operation invocation."""
        target = f" -> {node}" if node else ""
        self.debug(f"  {process} :invoke :{f} {value!r}{target}")

    def op_completed(self, process, op_type: str, f: str, value, error: Optional[str] = None):
        """Log an operation completion."""
        reason = f" ({error})" if error else ""
        self.debug(f"  {process} :{op_type} :{f} {value!r}{reason}")

    def nemesis_transition(self, action: str, detail: str):
        """Log a fault-state change."""
        self.info(f"[NEMESIS] {action}: {detail}")

    def transport_error(self, node: str, f: str, reason: str):
        """Log a transport failure converted into an outcome."""
        self.warning(f"[CLIENT] {f} against {node} failed: {reason}")

    def checker_summary(self, ops: int, configurations: int):
        """Log checker workload."""
        self.info(f"[CHECK] {ops} operations, {configurations} configurations explored")

    def final_verdict(self, verdict: str):
        """Log final verdict."""
        self.info(f"\n>>> FINAL VERDICT: {verdict} <<<")


class HarnessFormatter(logging.Formatter):
    """Custom formatter for harness logging with clean output."""

    def format(self, record):
        # For INFO level and above, show message only (clean output)
        if record.levelno == logging.INFO:
            return record.getMessage()

        if record.levelno == logging.DEBUG:
            return f"[DEBUG] {record.getMessage()}"

        return f"[{record.levelname}] {record.getMessage()}"


# Global logger instance
_global_logger: Optional[HarnessLogger] = None


def get_logger(name: str = "tessera") -> HarnessLogger:
    """Get or create the global harness logger instance.

    Args:
        name: Logger name (default: "tessera")

    Returns:
        HarnessLogger instance
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = HarnessLogger(name)
    return _global_logger


def set_log_level(level: LogLevel):
    """Set the global log level.

    Args:
        level: New log level
    """
    get_logger().set_level(level)


def configure_logging(verbose: bool = False, debug: bool = False):
    """Configure logging based on command line flags.

    Args:
        verbose: Enable verbose (INFO) output
        debug: Enable debug output (overrides verbose)
    """
    if debug:
        set_log_level(LogLevel.DEBUG)
    elif verbose:
        set_log_level(LogLevel.INFO)
    else:
        set_log_level(LogLevel.WARNING)
