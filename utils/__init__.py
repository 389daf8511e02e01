# utils/__init__.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Utility module exports

from .history_log import format_history, write_history
from .logger import LogLevel, configure_logging, get_logger, set_log_level

__all__ = [
    "format_history",
    "write_history",
    "LogLevel",
    "configure_logging",
    "get_logger",
    "set_log_level",
]
