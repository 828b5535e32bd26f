# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Leaky-bucket admission control.

A bucket tracks how many bits are "in flight" for one node. It drains a
fixed amount every tick; a send is admitted only while the bucket has room.
The protocol engine consults a node's bucket before scheduling a delivery
when transmit gates are wired in (off by default).
"""

import logging

logger = logging.getLogger(__name__)


class LeakyBucket:
    """
    Leaky bucket sized in bits per second.

    Attributes:
        capacity_per_second: Bits the bucket can hold and drains per second
        ticks_per_second: Drain ticks per second
        level: Bits currently in the bucket, never negative
    """

    def __init__(self, capacity_per_second: float, ticks_per_second: int = 10, time_unit: float = 1000.0):
        """
        Initialize the bucket.

        Args:
            capacity_per_second: Bucket size and drain rate in bits per second
            ticks_per_second: Number of drain ticks per second
            time_unit: Simulation time units per second (for advance())
        """
        if capacity_per_second <= 0:
            raise ValueError(f"capacity_per_second must be positive, got {capacity_per_second}")
        if ticks_per_second <= 0:
            raise ValueError(f"ticks_per_second must be positive, got {ticks_per_second}")

        self.capacity_per_second = capacity_per_second
        self.ticks_per_second = ticks_per_second
        self.tick_period = time_unit / ticks_per_second
        self.level = 0.0
        self._last_tick_at = 0.0

    @property
    def drain_per_tick(self) -> float:
        return self.capacity_per_second / self.ticks_per_second

    def tick(self) -> None:
        """Drain one tick's worth of bits, clamping at zero."""
        self.level = max(0.0, self.level - self.drain_per_tick)

    def advance(self, now: float) -> int:
        """
        Apply every whole tick elapsed up to simulation time ``now``.

        Returns:
            Number of ticks applied
        """
        ticks = int((now - self._last_tick_at) // self.tick_period)
        if ticks <= 0:
            return 0
        self.level = max(0.0, self.level - ticks * self.drain_per_tick)
        self._last_tick_at += ticks * self.tick_period
        return ticks

    def admit(self, bits: float) -> bool:
        """
        Offer ``bits`` to the bucket.

        Returns:
            True if admitted. On rejection the bucket is marked full.
        """
        new_level = self.level + bits
        if new_level > self.capacity_per_second:
            self.level = self.capacity_per_second
            logger.debug(f"Rejected {bits} bits: bucket full ({self.capacity_per_second})")
            return False
        self.level = new_level
        return True
