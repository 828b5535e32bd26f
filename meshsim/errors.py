# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Error taxonomy for meshsim.

Protocol-level anomalies (stale sequence numbers, an OGM returning to its
own originator) are normal suppression outcomes and never raise. The
exceptions below indicate a malformed topology or an engine bug.
"""


class MeshSimError(Exception):
    """Base class for all meshsim errors."""


class InvalidTopologyError(MeshSimError):
    """The static network description is malformed."""


class UnknownAddressError(MeshSimError):
    """A delivery, neighbor or edge reference names an address absent from the network."""

    def __init__(self, address: str, detail: str = ""):
        self.address = address
        message = f"Unknown address: {address}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedMessageError(MeshSimError):
    """A delivered payload could not be decoded into a known message kind."""
