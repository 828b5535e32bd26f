# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
OGM protocol engine for meshsim.

Every node periodically floods an Originator Message (OGM). Receivers
rewrite the OGM's throughput metric for the link it arrived on, record the
best next hop toward its originator and relay it onward unless it is stale.

Key rules:
- A node never processes its own OGM coming back around a cycle
- Path throughput is the bottleneck link capacity along the path,
  discounted by a hop penalty at every hop
- An OGM whose sequence is not newer than the last one accepted for its
  originator is dropped and not relayed; this bounds the flood and makes
  the protocol tolerant of reordering and duplicates
- A fresher OGM over a worse path advances the sequence bookkeeping but
  does not replace the next hop; routes only improve or hold

Example flow:
    1. A broadcasts OGM(seq=1, throughput=255) to B and D
    2. B receives it: A is a direct neighbor, so throughput = link(B->A)
       discounted by the hop penalty
    3. B records A as its next hop toward A and relays to its neighbors
    4. C receives B's copy: throughput = min(link(C->B), advertised),
       discounted again, and so on
"""

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from .delivery import DeliverySimulator
from .events import EventCollector, EventKind, NullCollector, ProtocolEvent
from .messages import OGM, decode_message
from .node import NextHop, Node, OriginatorEntry
from .ratelimit import LeakyBucket

if TYPE_CHECKING:
    from ..topology import Network

logger = logging.getLogger(__name__)

# Throughput advertised by an originator: "unconstrained".
MAX_METRIC = 255
# Multiplicative discount applied once per hop traversed.
HOP_PENALTY = 0.058


@dataclass
class UpdateResult:
    """Outcome of applying an OGM to a node's originator table."""
    sequence_too_low: bool
    created: bool = False
    next_hop_changed: bool = False


class OgmProtocol:
    """
    Generates, relays and processes OGMs for every node of a network.

    The engine holds an explicit Network handle and delivers through a
    DeliverySimulator; it registers itself as the simulator's delivery
    handler on construction.

    Attributes:
        network: Network whose nodes this engine drives
        delivery: Delivery simulator used for every send
        collector: Sink for protocol events
        max_metric: Throughput advertised at origination
        hop_penalty: Per-hop multiplicative discount
        gates: Optional transmit gates by node address
        metrics: Engine counters
    """

    def __init__(
        self,
        network: "Network",
        delivery: DeliverySimulator,
        collector: Optional[EventCollector] = None,
        max_metric: float = MAX_METRIC,
        hop_penalty: float = HOP_PENALTY,
        gates: Optional[Mapping[str, LeakyBucket]] = None,
    ):
        if not 0 <= hop_penalty < 1:
            raise ValueError(f"hop_penalty must be in [0, 1), got {hop_penalty}")
        if max_metric <= 0:
            raise ValueError(f"max_metric must be positive, got {max_metric}")

        self.network = network
        self.delivery = delivery
        self.collector = collector or NullCollector()
        self.max_metric = max_metric
        self.hop_penalty = hop_penalty
        self.gates: Dict[str, LeakyBucket] = dict(gates or {})

        self.metrics = {
            "ogms_originated": 0,
            "ogms_sent": 0,
            "ogms_received": 0,
            "dropped_self_origin": 0,
            "dropped_stale": 0,
            "dropped_rate_limited": 0,
            "originators_added": 0,
            "nexthop_updates": 0,
        }

        self._lock = threading.RLock()
        self.delivery.attach(self.receive_packet)

        logger.info(
            f"OgmProtocol initialized: nodes={len(network)}, max_metric={max_metric}, "
            f"hop_penalty={hop_penalty}, gated={len(self.gates)}"
        )

    # =========================================================================
    # Origination
    # =========================================================================

    def broadcast(self, address: str) -> int:
        """
        Originate a new OGM from ``address`` to every neighbor.

        Returns:
            The node's new sequence number
        """
        with self._lock:
            node = self.network.node(address)
            node.ogm_sequence += 1
            self.metrics["ogms_originated"] += 1

            for neighbor in node.neighbors:
                ogm = OGM(
                    sequence=node.ogm_sequence,
                    originator_address=node.address,
                    sender_address=node.address,
                    throughput=self.max_metric,
                    timestamp=self.delivery.now,
                )
                self._send(node, neighbor, ogm)

            logger.debug(f"{address} originated OGM seq={node.ogm_sequence} to {len(node.neighbors)} neighbors")
            return node.ogm_sequence

    def broadcast_all(self) -> Dict[str, int]:
        """Have every node originate one OGM, in declaration order."""
        return {address: self.broadcast(address) for address in self.network.addresses}

    # =========================================================================
    # Reception
    # =========================================================================

    def receive_packet(self, address: str, payload: bytes) -> Optional[UpdateResult]:
        """Decode a delivered payload and dispatch it by message kind."""
        message = decode_message(payload)
        if isinstance(message, OGM):
            return self.receive(address, message)
        raise TypeError(f"Unhandled message type: {type(message).__name__}")

    def receive(self, address: str, ogm: OGM) -> Optional[UpdateResult]:
        """
        Process an OGM delivered to ``address``.

        Returns:
            The originator table update result, or None if the OGM was this
            node's own and was dropped before processing
        """
        with self._lock:
            node = self.network.node(address)
            self.metrics["ogms_received"] += 1

            if ogm.originator_address == node.address:
                self.metrics["dropped_self_origin"] += 1
                self._emit(EventKind.OGM_DROPPED_SELF_ORIGIN, node, ogm, peer=ogm.sender_address)
                return None

            self.adjust_throughput(node, ogm)
            result = self.update_originator(node, ogm)

            if result.sequence_too_low:
                self.metrics["dropped_stale"] += 1
                self._emit(EventKind.OGM_DROPPED_STALE, node, ogm, peer=ogm.sender_address)
                return result

            self.relay(node, ogm)
            return result

    def relay(self, node: Node, ogm: OGM) -> None:
        """
        Forward an OGM to every neighbor of ``node``.

        The neighbor the OGM arrived from is included (no split horizon);
        its copy is dropped there as stale or self-originated.
        """
        ogm.sender_address = node.address
        for neighbor in node.neighbors:
            self._send(node, neighbor, ogm)

    # =========================================================================
    # Metric and table update
    # =========================================================================

    def adjust_throughput(self, node: Node, ogm: OGM) -> float:
        """
        Rewrite ``ogm.throughput`` for the link it arrived on.

        - One hop from its originator, the path throughput is the link
          throughput itself.
        - Further away, it is the smaller of the advertised path throughput
          and the link throughput.
        Either way, the hop penalty is then applied once.

        Returns:
            The adjusted throughput
        """
        link = self._link_throughput(node.address, ogm.sender_address)
        if node.is_neighbor(ogm.originator_address):
            ogm.throughput = link
        else:
            ogm.throughput = min(link, ogm.throughput)

        ogm.throughput = ogm.throughput * (1 - self.hop_penalty)
        return ogm.throughput

    def update_originator(self, node: Node, ogm: OGM) -> UpdateResult:
        """
        Apply an (already adjusted) OGM to the node's originator table.

        A new originator gets an entry through the OGM's sender. For a known
        originator, an OGM with a sequence not newer than the last one seen
        is reported as too low and changes nothing. Otherwise the sequence
        advances, and the next hop is replaced only by a strictly higher
        throughput.
        """
        entry = node.originators.get(ogm.originator_address)

        if entry is None:
            node.originators[ogm.originator_address] = OriginatorEntry(
                originator_address=ogm.originator_address,
                next_hop=NextHop(address=ogm.sender_address, throughput=ogm.throughput),
                last_seen_sequence=ogm.sequence,
            )
            self.metrics["originators_added"] += 1
            self._emit(EventKind.ORIGINATOR_ADDED, node, ogm, peer=ogm.sender_address)
            return UpdateResult(sequence_too_low=False, created=True)

        if ogm.sequence <= entry.last_seen_sequence:
            return UpdateResult(sequence_too_low=True)

        entry.last_seen_sequence = ogm.sequence

        if ogm.throughput > entry.next_hop.throughput:
            entry.next_hop = NextHop(address=ogm.sender_address, throughput=ogm.throughput)
            self.metrics["nexthop_updates"] += 1
            self._emit(EventKind.NEXTHOP_UPDATED, node, ogm, peer=ogm.sender_address)
            return UpdateResult(sequence_too_low=False, next_hop_changed=True)

        return UpdateResult(sequence_too_low=False)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_originator_table(self, address: str) -> Dict[str, Dict[str, Any]]:
        """
        Snapshot of a node's originator table.

        Returns:
            ``{originator: {next_hop_address, throughput, last_seen_sequence}}``
        """
        with self._lock:
            node = self.network.node(address)
            return {
                originator: entry.to_dict()
                for originator, entry in node.originators.items()
            }

    def get_routing_status(self) -> Dict[str, Any]:
        """Get every node's table and the engine metrics, for debugging."""
        with self._lock:
            return {
                "now": self.delivery.now,
                "nodes": {
                    address: {
                        "ogm_sequence": node.ogm_sequence,
                        "neighbors": list(node.neighbors),
                        "originators": self.get_originator_table(address),
                    }
                    for address, node in self.network.nodes.items()
                },
                "metrics": self.metrics.copy(),
            }

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _link_throughput(self, receiver: str, sender: str) -> float:
        # The receiver's own link back to the sender; on a one-way link fall
        # back to the edge the OGM actually traversed.
        if self.network.has_edge(receiver, sender):
            return self.network.link_throughput(receiver, sender)
        return self.network.link_throughput(sender, receiver)

    def _send(self, node: Node, neighbor: str, ogm: OGM) -> bool:
        payload = ogm.to_bytes()

        gate = self.gates.get(node.address)
        if gate is not None:
            gate.advance(self.delivery.now)
            if not gate.admit(len(payload) * 8):
                self.metrics["dropped_rate_limited"] += 1
                self._emit(EventKind.OGM_DROPPED_RATE_LIMITED, node, ogm, peer=neighbor)
                return False

        self.delivery.schedule(node.address, neighbor, payload)
        self.metrics["ogms_sent"] += 1
        self._emit(EventKind.OGM_SENT, node, ogm, peer=neighbor)
        return True

    def _emit(self, kind: EventKind, node: Node, ogm: OGM, peer: Optional[str] = None) -> None:
        self.collector.emit(ProtocolEvent(
            kind=kind,
            node=node.address,
            originator=ogm.originator_address,
            sequence=ogm.sequence,
            peer=peer,
            throughput=ogm.throughput,
            time=self.delivery.now,
        ))
