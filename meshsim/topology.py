# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Topology store for meshsim.

Builds an immutable directed graph of node addresses and per-edge throughput
capacities. Links may be asymmetric: ``(A, B)`` and ``(B, A)`` are distinct
edges, each with its own throughput.

Example:
    network = build_network(
        ["A", "B"],
        [("A", "B", 10), ("B", "A", 10)],
    )
    network.link_throughput("A", "B")  # -> 10
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple

from .errors import InvalidTopologyError, UnknownAddressError
from .mesh.node import Node

logger = logging.getLogger(__name__)

EdgeKey = Tuple[str, str]
EdgeSpec = Tuple[str, str, float]


@dataclass(frozen=True)
class Edge:
    """Capacity of a directed link, in abstract bandwidth units."""
    throughput: float


class Network:
    """
    Nodes and directed edges of a simulated mesh.

    The network owns every Node and Edge. Nodes are mutated only by the
    protocol engine; the set of nodes and edges never changes after
    construction.

    Attributes:
        nodes: Node records by address
        edges: Read-only mapping of ``(source, target)`` to Edge
    """

    def __init__(self, nodes: Dict[str, Node], edges: Dict[EdgeKey, Edge]):
        self.nodes = nodes
        self._edges = dict(edges)
        self.edges: Mapping[EdgeKey, Edge] = MappingProxyType(self._edges)

    def __contains__(self, address: str) -> bool:
        return address in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def addresses(self) -> list:
        """Node addresses in declaration order."""
        return list(self.nodes.keys())

    def node(self, address: str) -> Node:
        """Look up a node, raising UnknownAddressError if it is not declared."""
        try:
            return self.nodes[address]
        except KeyError:
            raise UnknownAddressError(address, "no such node") from None

    def has_edge(self, source: str, target: str) -> bool:
        return (source, target) in self._edges

    def link_throughput(self, source: str, target: str) -> float:
        """
        Get the throughput of the directed edge ``source -> target``.

        Raises:
            UnknownAddressError: If either node or the edge itself is missing
        """
        self.node(source)
        self.node(target)
        edge = self._edges.get((source, target))
        if edge is None:
            raise UnknownAddressError(target, f"no edge {source}->{target}")
        return edge.throughput


def build_network(node_addresses: Iterable[str], edge_list: Iterable[EdgeSpec]) -> Network:
    """
    Build a Network from node addresses and directed edges.

    Args:
        node_addresses: Unique node addresses
        edge_list: ``(source, target, throughput)`` triples

    Returns:
        Network with one Node per address, each with the neighbors its
        outgoing edges name, an empty originator table and sequence 0

    Raises:
        InvalidTopologyError: On duplicate or empty addresses, edges naming
            undeclared addresses, self-loops, duplicate edges or
            non-positive throughput
    """
    nodes: Dict[str, Node] = {}
    for address in node_addresses:
        if not isinstance(address, str) or not address:
            raise InvalidTopologyError(f"Node address must be a non-empty string, got {address!r}")
        if address in nodes:
            raise InvalidTopologyError(f"Duplicate node address: {address}")
        nodes[address] = Node(address=address)

    edges: Dict[EdgeKey, Edge] = {}
    for source, target, throughput in edge_list:
        for address in (source, target):
            if address not in nodes:
                raise InvalidTopologyError(
                    f"Edge {source}->{target} references undeclared address {address!r}"
                )
        if source == target:
            raise InvalidTopologyError(f"Self-loop edge is not allowed: {source}->{target}")
        if (source, target) in edges:
            raise InvalidTopologyError(f"Duplicate edge: {source}->{target}")
        if isinstance(throughput, bool) or not isinstance(throughput, (int, float)):
            raise InvalidTopologyError(
                f"Edge {source}->{target} throughput must be a number, got {throughput!r}"
            )
        if not math.isfinite(throughput) or throughput <= 0:
            raise InvalidTopologyError(
                f"Edge {source}->{target} throughput must be positive, got {throughput}"
            )

        edges[(source, target)] = Edge(throughput=throughput)
        nodes[source].neighbors.append(target)

    logger.debug(f"Built network: {len(nodes)} nodes, {len(edges)} edges")
    return Network(nodes, edges)


def parse_edge_key(key: str) -> EdgeKey:
    """Split an ``"A->B"`` edge key into its source and target addresses."""
    parts = key.split("->")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise InvalidTopologyError(f"Malformed edge key: {key!r} (expected 'A->B')")
    return parts[0].strip(), parts[1].strip()


def network_from_model(model: Dict[str, Any]) -> Network:
    """
    Build a Network from a model description.

    The model format is::

        {
            "nodes": {"A": {}, "B": {}},
            "edges": {"A->B": {"throughput": 10}, "B->A": {"throughput": 10}},
        }
    """
    if not isinstance(model, dict) or "nodes" not in model:
        raise InvalidTopologyError("Model network must be a mapping with a 'nodes' entry")

    edge_list = []
    for key, spec in (model.get("edges") or {}).items():
        source, target = parse_edge_key(key)
        if not isinstance(spec, dict) or "throughput" not in spec:
            raise InvalidTopologyError(f"Edge {key} is missing a throughput")
        edge_list.append((source, target, spec["throughput"]))

    return build_network(list(model["nodes"]), edge_list)


#   A--B
TWO_NODE_MODEL = {
    "nodes": {"A": {}, "B": {}},
    "edges": {
        "B->A": {"throughput": 10},
        "A->B": {"throughput": 10},
    },
}

#  /- B --> C -\
# A             F
#  \- D <-- E -/
SIX_NODE_MODEL = {
    "nodes": {"A": {}, "B": {}, "C": {}, "D": {}, "E": {}, "F": {}},
    "edges": {
        "B->A": {"throughput": 10},
        "A->B": {"throughput": 10},

        "A->D": {"throughput": 10},
        "D->A": {"throughput": 10},

        "B->C": {"throughput": 10},
        "C->B": {"throughput": 5},

        "D->E": {"throughput": 5},
        "E->D": {"throughput": 10},

        "C->F": {"throughput": 10},
        "F->C": {"throughput": 10},

        "E->F": {"throughput": 10},
        "F->E": {"throughput": 10},
    },
}

MODEL_NETWORKS = {
    "two-node": TWO_NODE_MODEL,
    "six-node": SIX_NODE_MODEL,
}


def load_model_network(name: str) -> Network:
    """Build one of the built-in model networks by name."""
    if name not in MODEL_NETWORKS:
        raise InvalidTopologyError(
            f"Unknown model network {name!r}; choose one of {sorted(MODEL_NETWORKS)}"
        )
    return network_from_model(MODEL_NETWORKS[name])
