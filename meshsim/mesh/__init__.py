# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Mesh protocol module for meshsim.

This module provides the simulated OGM routing protocol:
- Per-node state and originator tables (node.py)
- OGM wire format and message kinds (messages.py)
- Randomly delayed message delivery (delivery.py)
- The OGM protocol engine (protocol.py)
- Leaky-bucket transmit gates (ratelimit.py)
- Protocol events and collectors (events.py)
"""

from .node import Node, NextHop, OriginatorEntry
from .messages import OGM, Message, decode_message
from .delivery import DeliverySimulator, UniformDelay, FixedDelay
from .events import EventKind, ProtocolEvent, LoggingCollector, RecordingCollector
from .protocol import OgmProtocol, UpdateResult, MAX_METRIC, HOP_PENALTY
from .ratelimit import LeakyBucket

__all__ = [
    "Node",
    "NextHop",
    "OriginatorEntry",
    "OGM",
    "Message",
    "decode_message",
    "DeliverySimulator",
    "UniformDelay",
    "FixedDelay",
    "EventKind",
    "ProtocolEvent",
    "LoggingCollector",
    "RecordingCollector",
    "OgmProtocol",
    "UpdateResult",
    "MAX_METRIC",
    "HOP_PENALTY",
    "LeakyBucket",
]
