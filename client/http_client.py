# client/http_client.py
# This file is part of Tessera - A Linearizability Test Harness
#
# HTTP client for the replicated register service

"""HTTP register client.

Each command is POSTed as a JSON list to the node's command endpoint::

    ["read", key]
    ["write", key, value]
    ["cas", key, old, new]

and the response body is JSON-decoded. Consensus metadata carried in the
``x-leader-peer-url``, ``x-raft-index``, ``x-raft-term`` and
``x-etcd-index`` headers is attached to the outcome for logging only.

Failures are classified per operation. Reads are inert, so every failed
read is a definite ``fail``. Writes and cas are ``fail`` only when the
request provably never reached the service (connection refused, connect
timeout, 4xx rejection, retries exhausted on conflict / not-leader);
anything after the request was sent (read timeout, reset, 5xx, undecodable
body) is ``ambiguous``.
"""

import random
import time
from typing import Any, Dict, List, Optional

import requests
from urllib3.exceptions import NewConnectionError

from model.operation import CAS, READ, WRITE, Op
from model.topology import ClusterTopology
from utils.logger import get_logger

from .adapter import ClientAdapter, Connection, Outcome
from .retry import RetriesExhausted, RetryPolicy

DEFAULT_TIMEOUT = 5.0  # seconds
DEFAULT_KEY = "foo"
# The service accepts every command on its read endpoint.
DEFAULT_COMMAND_PATH = "/read"

# Rejected before being proposed: safe to retry.
RETRYABLE_STATUS = frozenset({409, 503})

METADATA_HEADERS = {
    "x-leader-peer-url": "leader_peer_url",
    "x-etcd-index": "etcd_index",
    "x-raft-index": "raft_index",
    "x-raft-term": "raft_term",
}


def encode_command(op: Op, key: str) -> List[Any]:
    """Wire encoding of a register operation."""
    if op.f == READ:
        return [READ, key]
    if op.f == WRITE:
        return [WRITE, key, op.value]
    if op.f == CAS:
        old, new = op.value
        return [CAS, key, old, new]
    raise ValueError(f"Unsupported register operation: {op.f}")


def response_metadata(response: requests.Response) -> Dict[str, Any]:
    """Consensus metadata from response headers, plus the status code."""
    meta: Dict[str, Any] = {"status": response.status_code}
    for header, name in METADATA_HEADERS.items():
        if header in response.headers:
            meta[name] = response.headers[header]
    return meta


def _register_value(value: Any) -> Any:
    """Register values are text; numbers decoded from JSON are rendered back."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _never_sent(exc: requests.exceptions.RequestException) -> bool:
    """True if the request provably did not reach the service."""
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return True
    if isinstance(exc, requests.exceptions.ConnectionError) and exc.args:
        reason = getattr(exc.args[0], "reason", exc.args[0])
        return isinstance(reason, NewConnectionError)
    return False


class HttpRegisterClient(ClientAdapter):
    """ClientAdapter speaking the register service's JSON-over-HTTP protocol.

    Args:
        topology: Cluster topology used to resolve node addresses
        key: Name of the single register under test
        timeout: Per-operation budget in seconds, retries included
        retry: Policy for commands rejected with 409 / 503
        command_path: Endpoint path every command is POSTed to
    """

    def __init__(
        self,
        topology: ClusterTopology,
        key: str = DEFAULT_KEY,
        timeout: float = DEFAULT_TIMEOUT,
        retry: Optional[RetryPolicy] = None,
        command_path: str = DEFAULT_COMMAND_PATH,
        rng: Optional[random.Random] = None,
    ):
        self.topology = topology
        self.key = key
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.command_path = command_path
        self.rng = rng or random.Random()
        self.logger = get_logger()

    def open(self, node: str) -> Connection:
        address = f"http://{self.topology.address(node)}"
        self.logger.debug(f"Opening connection to {node} at {address}")
        return Connection(node=node, address=address, handle=requests.Session())

    def close(self, conn: Connection) -> None:
        if conn.handle is not None:
            conn.handle.close()

    def invoke(self, conn: Connection, op: Op) -> Outcome:
        try:
            body = encode_command(op, self.key)
        except (ValueError, TypeError) as e:
            return Outcome.fail(f"cannot encode {op.f}: {e}")

        inert = op.f == READ

        try:
            response = self._post(conn, body)
        except RetriesExhausted as e:
            return Outcome.fail(str(e))
        except requests.exceptions.RequestException as e:
            reason = f"{type(e).__name__}: {e}"
            self.logger.transport_error(conn.node, op.f, reason)
            if inert or _never_sent(e):
                return Outcome.fail(reason)
            return Outcome.ambiguous(reason)

        meta = response_metadata(response)
        status = response.status_code

        if status in RETRYABLE_STATUS or 400 <= status < 500:
            return Outcome.fail(f"rejected with HTTP {status}")
        if status >= 300:
            reason = f"HTTP {status}"
            return Outcome.fail(reason) if inert else Outcome.ambiguous(reason)

        try:
            payload = response.json()
        except ValueError as e:
            reason = f"malformed response: {e}"
            return Outcome.fail(reason) if inert else Outcome.ambiguous(reason)

        self.logger.debug(f"{conn.node} {op.f} -> {payload!r} {meta}")
        return self._interpret(op, payload, meta)

    def _interpret(self, op: Op, payload: Any, meta: Dict[str, Any]) -> Outcome:
        if op.f == READ:
            value = payload.get("value") if isinstance(payload, dict) else payload
            return Outcome.ok(_register_value(value), meta)

        if op.f == WRITE:
            return Outcome.ok(payload, meta)

        applied = payload
        if isinstance(payload, dict):
            applied = payload.get("applied", payload.get("value"))
        if not isinstance(applied, bool):
            return Outcome.ambiguous(f"malformed cas response: {payload!r}")
        return Outcome.ok(applied, meta)

    def _post(self, conn: Connection, body: List[Any]) -> requests.Response:
        """POST ``body``, retrying outright rejections within the timeout."""
        url = f"{conn.address}{self.command_path}"
        deadline = time.monotonic() + self.timeout
        response = None

        for attempt in range(1, self.retry.max_attempts + 1):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            response = conn.handle.post(url, json=body, timeout=remaining)
            if response.status_code not in RETRYABLE_STATUS:
                return response
            if attempt == self.retry.max_attempts:
                break
            delay = self.retry.backoff(attempt, self.rng)
            self.logger.debug(
                f"{conn.node} rejected {body[0]} with HTTP {response.status_code}, "
                f"retrying in {delay:.3f}s"
            )
            time.sleep(min(delay, max(0.0, deadline - time.monotonic())))

        if response is None:
            raise requests.exceptions.ConnectTimeout("no time left to send request")
        raise RetriesExhausted(attempt, response.status_code)
