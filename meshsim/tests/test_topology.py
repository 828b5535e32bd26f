# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Tests for the topology store.
"""

import pytest

from meshsim.errors import InvalidTopologyError, UnknownAddressError
from meshsim.topology import (
    MODEL_NETWORKS,
    Edge,
    build_network,
    load_model_network,
    network_from_model,
    parse_edge_key,
)


class TestBuildNetwork:
    """Tests for network construction."""

    def test_nodes_start_empty(self):
        network = build_network(["A", "B"], [])

        for address, node in network.nodes.items():
            assert node.address == address
            assert node.neighbors == []
            assert node.originators == {}
            assert node.ogm_sequence == 0

    def test_edges_define_neighbors(self):
        network = build_network(["A", "B", "C"], [("A", "B", 10), ("A", "C", 3), ("B", "A", 10)])

        assert network.nodes["A"].neighbors == ["B", "C"]
        assert network.nodes["B"].neighbors == ["A"]
        assert network.nodes["C"].neighbors == []

    def test_asymmetric_edges_are_distinct(self):
        network = build_network(["A", "B"], [("A", "B", 10), ("B", "A", 5)])

        assert network.edges[("A", "B")] == Edge(throughput=10)
        assert network.edges[("B", "A")] == Edge(throughput=5)
        assert network.link_throughput("B", "A") == 5

    def test_edges_are_read_only(self):
        network = build_network(["A", "B"], [("A", "B", 10)])

        with pytest.raises(TypeError):
            network.edges[("B", "A")] = Edge(throughput=1)

    def test_edge_is_immutable(self):
        edge = Edge(throughput=10)

        with pytest.raises(AttributeError):
            edge.throughput = 1

    def test_undeclared_address_rejected(self):
        with pytest.raises(InvalidTopologyError, match="undeclared"):
            build_network(["A"], [("A", "B", 10)])

    @pytest.mark.parametrize("throughput", [0, -1, float("nan"), float("inf"), "10", None, True])
    def test_invalid_throughput_rejected(self, throughput):
        with pytest.raises(InvalidTopologyError):
            build_network(["A", "B"], [("A", "B", throughput)])

    def test_duplicate_node_rejected(self):
        with pytest.raises(InvalidTopologyError, match="Duplicate node"):
            build_network(["A", "A"], [])

    def test_empty_address_rejected(self):
        with pytest.raises(InvalidTopologyError):
            build_network([""], [])

    def test_duplicate_edge_rejected(self):
        with pytest.raises(InvalidTopologyError, match="Duplicate edge"):
            build_network(["A", "B"], [("A", "B", 10), ("A", "B", 5)])

    def test_self_loop_rejected(self):
        with pytest.raises(InvalidTopologyError, match="Self-loop"):
            build_network(["A"], [("A", "A", 10)])


class TestNetworkLookups:
    """Tests for lookups on a built network."""

    def test_node_lookup(self, six_node_network):
        assert six_node_network.node("C").address == "C"
        assert "C" in six_node_network
        assert len(six_node_network) == 6

    def test_unknown_node_raises(self, six_node_network):
        with pytest.raises(UnknownAddressError):
            six_node_network.node("Z")

    def test_missing_edge_raises(self, six_node_network):
        with pytest.raises(UnknownAddressError):
            six_node_network.link_throughput("A", "F")

    def test_link_to_unknown_node_raises(self, six_node_network):
        with pytest.raises(UnknownAddressError):
            six_node_network.link_throughput("A", "Z")


class TestModelNetworks:
    """Tests for the model format and built-in networks."""

    def test_parse_edge_key(self):
        assert parse_edge_key("A->B") == ("A", "B")
        assert parse_edge_key(" A -> B ") == ("A", "B")

    @pytest.mark.parametrize("key", ["AB", "A->", "->B", "A->B->C"])
    def test_malformed_edge_key(self, key):
        with pytest.raises(InvalidTopologyError):
            parse_edge_key(key)

    def test_six_node_model(self, six_node_network):
        assert six_node_network.addresses == ["A", "B", "C", "D", "E", "F"]
        assert len(six_node_network.edges) == 12
        assert six_node_network.link_throughput("C", "B") == 5
        assert six_node_network.link_throughput("B", "C") == 10
        assert six_node_network.link_throughput("D", "E") == 5
        assert six_node_network.link_throughput("E", "D") == 10

    def test_model_edge_without_throughput(self):
        with pytest.raises(InvalidTopologyError):
            network_from_model({"nodes": {"A": {}, "B": {}}, "edges": {"A->B": {}}})

    def test_model_without_nodes(self):
        with pytest.raises(InvalidTopologyError):
            network_from_model({"edges": {}})

    def test_load_every_builtin_model(self):
        for name in MODEL_NETWORKS:
            assert len(load_model_network(name)) > 0

    def test_unknown_model(self):
        with pytest.raises(InvalidTopologyError):
            load_model_network("nine-node")
