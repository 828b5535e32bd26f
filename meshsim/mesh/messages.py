# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Protocol messages and their wire encoding.

Messages travel through the delivery simulator as JSON bytes so every
recipient decodes its own copy; an in-flight message is never shared or
mutated by two nodes. ``Message`` is the closed union of message kinds that
``decode_message`` can return; new kinds are added to ``MESSAGE_KINDS`` and
to the union.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Union

from ..errors import MalformedMessageError

MSG_OGM = "OGM"


@dataclass
class OGM:
    """
    Originator Message.

    Attributes:
        sequence: Originator's sequence number, immutable for the message's life
        originator_address: Node that initiated this OGM chain
        sender_address: Node that transmitted this copy (rewritten per hop)
        throughput: Path metric, adjusted at every hop
        timestamp: Simulation time at origination (diagnostic only)
    """
    sequence: int
    originator_address: str
    sender_address: str
    throughput: float
    timestamp: float
    kind: str = field(default=MSG_OGM, init=False)

    def to_bytes(self) -> bytes:
        """Serialize the OGM for delivery."""
        return json.dumps(asdict(self)).encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OGM":
        try:
            return cls(
                sequence=int(data["sequence"]),
                originator_address=str(data["originator_address"]),
                sender_address=str(data["sender_address"]),
                throughput=float(data["throughput"]),
                timestamp=float(data["timestamp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedMessageError(f"Invalid OGM fields: {e}") from e

    @classmethod
    def from_bytes(cls, data: bytes) -> "OGM":
        """Deserialize an OGM from delivered bytes."""
        message = decode_message(data)
        if not isinstance(message, cls):
            raise MalformedMessageError(f"Expected an OGM, got {message.kind}")
        return message


Message = Union[OGM]

MESSAGE_KINDS = {
    MSG_OGM: OGM,
}


def decode_message(data: bytes) -> Message:
    """
    Decode delivered bytes into a message, dispatching on its kind tag.

    Raises:
        MalformedMessageError: If the payload is not JSON, lacks a kind tag,
            or names an unknown kind
    """
    try:
        parsed = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedMessageError(f"Undecodable payload: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedMessageError("Payload must be a JSON object")

    kind = parsed.get("kind")
    message_cls = MESSAGE_KINDS.get(kind)
    if message_cls is None:
        raise MalformedMessageError(f"Unknown message kind: {kind!r}")
    return message_cls.from_dict(parsed)
