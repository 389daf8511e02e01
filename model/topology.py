# model/topology.py

"""
ClusterTopology
===============

Immutable description of the cluster under test: node names in a fixed
order and the client address of each node. Built once at test start and
passed to the executor, the client and the nemesis.

The container inventory the test cluster ships with is a single bracketed,
comma-separated line such as::

    [jepsen-control@172.18.0.9/16,jepsen-n1@172.18.0.2/16,jepsen-n2@172.18.0.3/16]

The control host is skipped; every other entry becomes a node named by its
index (``n1``, ``n2`` ...) whose client address is ``<ip>:<port>``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple

DEFAULT_CLIENT_PORT = 8080
CONTROL_HOST_MARKER = "jepsen-control"
NODE_PREFIX = "jepsen-n"


@dataclass(frozen=True, slots=True)
class ClusterTopology:
    nodes: Tuple[str, ...]
    addresses: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        if not self.nodes:
            raise ValueError("Cluster topology needs at least one node")
        if len(set(self.nodes)) != len(self.nodes):
            raise ValueError(f"Duplicate node names in {self.nodes}")
        unknown = set(self.addresses) - set(self.nodes)
        if unknown:
            raise ValueError(f"Addresses given for unknown nodes: {sorted(unknown)}")
        object.__setattr__(self, "addresses", dict(self.addresses))

    @classmethod
    def of(cls, nodes: Iterable[str], port: Optional[int] = None) -> ClusterTopology:
        """Topology whose nodes are reachable at ``<name>[:port]``."""
        names = tuple(nodes)
        suffix = f":{port}" if port is not None else ""
        return cls(names, {n: f"{n}{suffix}" for n in names})

    @classmethod
    def from_inventory(cls, text: str, port: int = DEFAULT_CLIENT_PORT) -> ClusterTopology:
        """Parse the bracketed ``name@ip/mask`` inventory line."""
        body = text.strip()
        if body.startswith("[") and body.endswith("]"):
            body = body[1:-1]

        names = []
        addresses: Dict[str, str] = {}
        for entry in body.split(","):
            entry = entry.strip()
            if not entry or CONTROL_HOST_MARKER in entry:
                continue
            try:
                host, location = entry.split("@", 1)
            except ValueError:
                raise ValueError(f"Inventory entry without '@': {entry!r}")
            ip = location.split("/", 1)[0]
            index = host.replace(NODE_PREFIX, "")
            name = f"n{index}"
            names.append(name)
            addresses[name] = f"{ip}:{port}"
        return cls(tuple(names), addresses)

    def address(self, node: str) -> str:
        """Client address (``host:port``) of ``node``."""
        if node not in self.nodes:
            raise KeyError(f"Unknown node: {node}")
        return self.addresses.get(node, node)

    def node_for(self, process: int) -> str:
        """Node a worker process is bound to (round-robin)."""
        return self.nodes[process % len(self.nodes)]

    def __len__(self) -> int:
        return len(self.nodes)

    def __str__(self) -> str:
        return ",".join(f"{n}={self.address(n)}" for n in self.nodes)
