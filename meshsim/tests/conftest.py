# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Pytest fixtures for meshsim tests.

Provides model networks, deterministic delivery and OGM factories.
"""

import pytest
from unittest.mock import Mock

from meshsim.mesh.delivery import DeliverySimulator
from meshsim.mesh.events import RecordingCollector
from meshsim.mesh.messages import OGM
from meshsim.mesh.protocol import OgmProtocol
from meshsim.topology import TWO_NODE_MODEL, SIX_NODE_MODEL, network_from_model


@pytest.fixture
def two_node_network():
    """A <-> B, throughput 10 both ways."""
    return network_from_model(TWO_NODE_MODEL)


@pytest.fixture
def six_node_network():
    """A-B-C-F and A-D-E-F with C->B=5 and D->E=5."""
    return network_from_model(SIX_NODE_MODEL)


@pytest.fixture
def recorder():
    """Collector that keeps every protocol event."""
    return RecordingCollector()


@pytest.fixture
def mock_delivery():
    """Delivery simulator stand-in that records schedule() calls."""
    delivery = Mock(spec=DeliverySimulator)
    delivery.now = 0.0
    delivery.schedule = Mock(return_value=1.0)
    return delivery


@pytest.fixture
def six_node_engine(six_node_network, mock_delivery, recorder):
    """Engine over the six-node network with a mocked delivery simulator."""
    return OgmProtocol(six_node_network, mock_delivery, collector=recorder)


@pytest.fixture
def make_ogm():
    """Factory for OGMs with sensible defaults."""
    def _make(sequence=1, originator="A", sender="A", throughput=255.0, timestamp=0.0):
        return OGM(
            sequence=sequence,
            originator_address=originator,
            sender_address=sender,
            throughput=throughput,
            timestamp=timestamp,
        )
    return _make
