# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Tests for the delivery simulator and delay sources.
"""

import random

import pytest
from unittest.mock import Mock

from meshsim.errors import UnknownAddressError
from meshsim.mesh.delivery import DeliverySimulator, FixedDelay, UniformDelay


class TestDelaySources:
    """Tests for delay sources."""

    def test_uniform_delay_stays_in_range(self):
        delay = UniformDelay(100.0, seed=3)

        samples = [delay("A", "B") for _ in range(500)]

        assert all(0 <= s < 100.0 for s in samples)

    def test_uniform_delay_is_reproducible_with_seed(self):
        first = UniformDelay(100.0, seed=42)
        second = UniformDelay(100.0, seed=42)

        assert [first("A", "B") for _ in range(10)] == [second("A", "B") for _ in range(10)]

    def test_uniform_delay_accepts_rng(self):
        rng = Mock(spec=random.Random)
        rng.random.return_value = 0.5

        assert UniformDelay(80.0, rng=rng)("A", "B") == 40.0

    def test_fixed_delay(self):
        assert FixedDelay(3.0)("A", "B") == 3.0

    def test_negative_delays_rejected(self):
        with pytest.raises(ValueError):
            UniformDelay(-1.0)
        with pytest.raises(ValueError):
            FixedDelay(-1.0)


class TestDeliverySimulator:
    """Tests for scheduling and delivery."""

    def test_default_delay_is_a_tenth_of_the_time_unit(self, six_node_network):
        sim = DeliverySimulator(six_node_network)

        assert isinstance(sim.delay_source, UniformDelay)
        assert sim.delay_source.max_delay == pytest.approx(100.0)

    def test_delivers_payload_to_recipient(self, six_node_network):
        handler = Mock()
        sim = DeliverySimulator(six_node_network, FixedDelay(5.0))
        sim.attach(handler)

        deliver_at = sim.schedule("A", "B", b"hello")
        sim.run()

        assert deliver_at == 5.0
        handler.assert_called_once_with("B", b"hello")
        assert sim.now == 5.0
        assert sim.stats["delivered"] == 1

    def test_delivers_in_time_order(self, six_node_network):
        received = []
        delays = iter([30.0, 10.0, 20.0])
        sim = DeliverySimulator(six_node_network, lambda src, dst: next(delays))
        sim.attach(lambda to, payload: received.append(payload))

        sim.schedule("A", "B", b"1")
        sim.schedule("A", "D", b"2")
        sim.schedule("B", "C", b"3")
        sim.run()

        assert received == [b"2", b"3", b"1"]

    def test_ties_delivered_in_scheduling_order(self, six_node_network):
        received = []
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))
        sim.attach(lambda to, payload: received.append(payload))

        for i in range(5):
            sim.schedule("A", "B", str(i).encode())
        sim.run()

        assert received == [b"0", b"1", b"2", b"3", b"4"]

    def test_delay_source_sees_both_addresses(self, six_node_network):
        delay = Mock(return_value=1.0)
        sim = DeliverySimulator(six_node_network, delay)

        sim.schedule("C", "F", b"x")

        delay.assert_called_once_with("C", "F")

    def test_unknown_recipient_raises(self, six_node_network):
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))

        with pytest.raises(UnknownAddressError):
            sim.schedule("A", "Z", b"x")
        assert sim.pending == 0

    def test_unknown_sender_raises(self, six_node_network):
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))

        with pytest.raises(UnknownAddressError):
            sim.schedule("Z", "A", b"x")

    def test_negative_delay_from_source_rejected(self, six_node_network):
        sim = DeliverySimulator(six_node_network, lambda src, dst: -1.0)

        with pytest.raises(ValueError):
            sim.schedule("A", "B", b"x")

    def test_delivery_without_handler_raises(self, six_node_network):
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))
        sim.schedule("A", "B", b"x")

        with pytest.raises(RuntimeError):
            sim.run()

    def test_handler_errors_propagate(self, six_node_network):
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))
        sim.attach(Mock(side_effect=UnknownAddressError("Z")))
        sim.schedule("A", "B", b"x")

        with pytest.raises(UnknownAddressError):
            sim.run()

    def test_run_until_stops_before_later_events(self, six_node_network):
        handler = Mock()
        delays = iter([10.0, 50.0])
        sim = DeliverySimulator(six_node_network, lambda src, dst: next(delays))
        sim.attach(handler)
        sim.schedule("A", "B", b"early")
        sim.schedule("A", "B", b"late")

        stats = sim.run(until=20.0)

        assert stats["events_processed"] == 1
        assert stats["pending"] == 1
        assert sim.now == 20.0
        handler.assert_called_once_with("B", b"early")

    def test_run_max_events(self, six_node_network):
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))
        sim.attach(Mock())
        for _ in range(4):
            sim.schedule("A", "B", b"x")

        stats = sim.run(max_events=3)

        assert stats["events_processed"] == 3
        assert sim.pending == 1

    def test_step_on_empty_queue(self, six_node_network):
        sim = DeliverySimulator(six_node_network)

        assert sim.step() is False
        assert sim.idle

    def test_call_at_fires_timer(self, six_node_network):
        callback = Mock()
        sim = DeliverySimulator(six_node_network)
        sim.call_at(250.0, callback)

        sim.run()

        callback.assert_called_once_with()
        assert sim.now == 250.0
        assert sim.stats["timers_fired"] == 1

    def test_call_at_in_the_past_rejected(self, six_node_network):
        sim = DeliverySimulator(six_node_network)
        sim.call_at(10.0, Mock())
        sim.run()

        with pytest.raises(ValueError):
            sim.call_at(5.0, Mock())

    def test_cancel_all(self, six_node_network):
        handler = Mock()
        sim = DeliverySimulator(six_node_network, FixedDelay(1.0))
        sim.attach(handler)
        sim.schedule("A", "B", b"x")
        sim.call_at(5.0, Mock())

        assert sim.cancel_all() == 2
        sim.run()

        handler.assert_not_called()
        assert sim.stats["cancelled"] == 2
