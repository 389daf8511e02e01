# tests/model_tests/test_topology_model.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test suite for cluster topology construction and inventory parsing

import pytest

from model.fault import complete_grudge
from model.topology import ClusterTopology

INVENTORY = (
    "[jepsen-control@172.18.0.9/16,jepsen-n1@172.18.0.2/16,"
    "jepsen-n2@172.18.0.3/16,jepsen-n3@172.18.0.4/16]\n"
)


class TestClusterTopology:
    def test_inventory_skips_control_host(self):
        topo = ClusterTopology.from_inventory(INVENTORY)
        assert topo.nodes == ("n1", "n2", "n3")
        assert topo.address("n2") == "172.18.0.3:8080"

    def test_inventory_custom_port(self):
        topo = ClusterTopology.from_inventory(INVENTORY, port=2379)
        assert topo.address("n1") == "172.18.0.2:2379"

    def test_inventory_entry_without_at_sign(self):
        with pytest.raises(ValueError, match="without '@'"):
            ClusterTopology.from_inventory("[jepsen-n1]")

    def test_empty_topology_rejected(self):
        with pytest.raises(ValueError):
            ClusterTopology(())

    def test_duplicate_nodes_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ClusterTopology(("n1", "n1"))

    def test_unknown_node_address(self, five_nodes):
        with pytest.raises(KeyError):
            five_nodes.address("n9")

    def test_processes_are_bound_round_robin(self, five_nodes):
        assert [five_nodes.node_for(p) for p in range(7)] == [
            "n1", "n2", "n3", "n4", "n5", "n1", "n2",
        ]

    def test_of_without_port_uses_bare_names(self):
        assert ClusterTopology.of(["a", "b"]).address("a") == "a"


class TestCompleteGrudge:
    def test_each_node_drops_the_other_half(self):
        grudge = complete_grudge((("n1", "n2"), ("n3", "n4", "n5")))
        assert grudge["n1"] == frozenset({"n3", "n4", "n5"})
        assert grudge["n4"] == frozenset({"n1", "n2"})
        assert all(node not in peers for node, peers in grudge.items())
