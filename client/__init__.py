# client/__init__.py

"""Client adapters for the register service."""

from .adapter import ClientAdapter, Connection, Outcome, OutcomeKind
from .http_client import HttpRegisterClient
from .retry import RetriesExhausted, RetryPolicy

__all__ = [
    "ClientAdapter",
    "Connection",
    "Outcome",
    "OutcomeKind",
    "HttpRegisterClient",
    "RetriesExhausted",
    "RetryPolicy",
]
