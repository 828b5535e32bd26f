# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Per-node protocol state: neighbors, originator table and sequence counter.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class NextHop:
    """The neighbor a route currently goes through, and the path throughput via it."""
    address: str
    throughput: float


@dataclass
class OriginatorEntry:
    """
    A node's current best route toward one originator.

    Attributes:
        originator_address: Node that originates the OGMs this entry tracks
        next_hop: Neighbor through which the best known path routes
        last_seen_sequence: Highest OGM sequence accepted for this originator
    """
    originator_address: str
    next_hop: NextHop
    last_seen_sequence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "next_hop_address": self.next_hop.address,
            "throughput": self.next_hop.throughput,
            "last_seen_sequence": self.last_seen_sequence,
        }


@dataclass
class Node:
    """
    A simulated mesh node.

    Attributes:
        address: Unique node address
        neighbors: Addresses reachable in one hop, in declaration order
        originators: Originator table keyed by originator address
        ogm_sequence: Sequence number of the last OGM this node originated
    """
    address: str
    neighbors: List[str] = field(default_factory=list)
    originators: Dict[str, OriginatorEntry] = field(default_factory=dict)
    ogm_sequence: int = 0

    def is_neighbor(self, address: str) -> bool:
        return address in self.neighbors
