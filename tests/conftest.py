# tests/conftest.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test configuration and shared fixtures for pytest

"""Test configuration and shared fixtures for Tessera tests.

This module provides pytest configuration and the in-memory stand-ins that
let the executor and the harness run end to end without a cluster:

- Python path setup for module imports
- In-memory register clients (a correct one and a deliberately stale one)
- A recording fake network for the nemesis
"""

import sys
import threading
from pathlib import Path

import pytest

# Ensure project modules can be imported
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from client.adapter import ClientAdapter, Connection, Outcome  # noqa: E402
from model.operation import CAS, READ, WRITE  # noqa: E402
from model.topology import ClusterTopology  # noqa: E402
from runner.errors import NemesisError  # noqa: E402
from runner.nemesis import Net  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Verify the project packages import before any test runs."""
    try:
        import client
        import logic
        import model
        import parser
        import runner
        import utils
    except ImportError as e:
        pytest.skip(f"Cannot import required modules: {e}")

    yield


class AtomicRegisterClient(ClientAdapter):
    """One shared in-memory register behind a lock: always linearizable."""

    def __init__(self):
        self.value = None
        self.lock = threading.Lock()
        self.opened = []
        self.closed = []

    def open(self, node):
        conn = Connection(node=node, address=f"mem://{node}")
        self.opened.append(conn)
        return conn

    def close(self, conn):
        self.closed.append(conn)

    def invoke(self, conn, op):
        with self.lock:
            if op.f == READ:
                return Outcome.ok(self.value)
            if op.f == WRITE:
                self.value = op.value
                return Outcome.ok(op.value)
            if op.f == CAS:
                old, new = op.value
                if self.value == old:
                    self.value = new
                    return Outcome.ok(True)
                return Outcome.ok(False)
        return Outcome.fail(f"unsupported {op.f}")


class StaleReadClient(AtomicRegisterClient):
    """Acknowledges writes but every read returns a value that was never written."""

    def invoke(self, conn, op):
        if op.f == READ:
            return Outcome.ok("never-written")
        return super().invoke(conn, op)


class FakeNet(Net):
    """Records grudges and heals instead of touching a network."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def drop_all(self, grudge):
        self.calls.append(("drop_all", grudge))
        if self.fail_on == "drop_all":
            raise NemesisError("iptables refused the rule")

    def heal(self):
        self.calls.append(("heal", None))
        if self.fail_on == "heal":
            raise NemesisError("iptables flush failed")


@pytest.fixture
def five_nodes():
    """Standard five-node cluster addressed by name."""
    return ClusterTopology.of(["n1", "n2", "n3", "n4", "n5"], port=8080)


@pytest.fixture
def atomic_client():
    return AtomicRegisterClient()


@pytest.fixture
def stale_client():
    return StaleReadClient()


@pytest.fixture
def fake_net():
    return FakeNet()


@pytest.fixture
def failing_net():
    return FakeNet(fail_on="drop_all")
