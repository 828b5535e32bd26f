# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Observability events emitted by the OGM protocol engine.

The engine reports what it does to an injected collector. Collectors decide
where events go: the log, an in-memory list for tests, or nowhere.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of protocol events."""
    OGM_SENT = "ogm-sent"
    OGM_DROPPED_SELF_ORIGIN = "ogm-dropped-self-origin"
    OGM_DROPPED_STALE = "ogm-dropped-stale"
    OGM_DROPPED_RATE_LIMITED = "ogm-dropped-rate-limited"
    ORIGINATOR_ADDED = "originator-added"
    NEXTHOP_UPDATED = "nexthop-updated"


ROUTE_CHANGE_KINDS = (EventKind.ORIGINATOR_ADDED, EventKind.NEXTHOP_UPDATED)


@dataclass
class ProtocolEvent:
    """
    A single protocol event.

    Attributes:
        kind: What happened
        node: Address of the node the event happened on
        originator: Originator of the OGM involved
        sequence: Sequence number of the OGM involved
        peer: Neighbor the OGM came from (receive events) or is sent to (send events)
        throughput: OGM throughput at the time of the event
        time: Simulation time
    """
    kind: EventKind
    node: str
    originator: str
    sequence: int
    peer: Optional[str] = None
    throughput: Optional[float] = None
    time: float = 0.0

    def describe(self) -> str:
        text = f"[{self.time:.1f}] {self.kind.value} node={self.node} originator={self.originator} seq={self.sequence}"
        if self.peer is not None:
            text += f" peer={self.peer}"
        if self.throughput is not None:
            text += f" throughput={self.throughput:.3f}"
        return text


class EventCollector:
    """Interface for event sinks."""

    def emit(self, event: ProtocolEvent) -> None:
        raise NotImplementedError


class NullCollector(EventCollector):
    """Discards every event."""

    def emit(self, event: ProtocolEvent) -> None:
        pass


class LoggingCollector(EventCollector):
    """Writes events to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self.log = log or logger
        self.level = level

    def emit(self, event: ProtocolEvent) -> None:
        self.log.log(self.level, event.describe())


class RecordingCollector(EventCollector):
    """Keeps every event in memory, optionally forwarding to another collector."""

    def __init__(self, forward: Optional[EventCollector] = None):
        self.events: List[ProtocolEvent] = []
        self.forward = forward

    def emit(self, event: ProtocolEvent) -> None:
        self.events.append(event)
        if self.forward:
            self.forward.emit(event)

    def of_kind(self, kind: EventKind) -> List[ProtocolEvent]:
        return [e for e in self.events if e.kind == kind]

    def route_changes(self) -> List[ProtocolEvent]:
        """Events that set a next hop: first-learned routes and replacements, in order."""
        return [e for e in self.events if e.kind in ROUTE_CHANGE_KINDS]

    def counts(self) -> Dict[str, int]:
        """Number of events per kind, keyed by the kind's string value."""
        return dict(Counter(e.kind.value for e in self.events))

    def clear(self) -> None:
        self.events.clear()
