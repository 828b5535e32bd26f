# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Delivery simulator for meshsim.

Replaces real transmission with an event queue keyed by delivery time. Every
scheduled message is delivered exactly once after a delay drawn from an
injectable delay source; there is no loss model. Messages scheduled at
different times, or to different recipients, may be delivered in any order.

The simulator runs on a single logical thread: events are popped one at a
time and each delivery handler runs to completion before the next begins.

Example:
    sim = DeliverySimulator(network, delay_source=UniformDelay(100.0, seed=7))
    sim.attach(engine.receive_packet)
    sim.schedule("A", "B", payload)
    sim.run()
"""

import heapq
import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..errors import UnknownAddressError

if TYPE_CHECKING:
    from ..topology import Network

logger = logging.getLogger(__name__)

# Abstract time units per second; delays are a fraction of this.
TM = 1000
DEFAULT_MAX_DELAY_FRACTION = 0.1

DelaySource = Callable[[str, str], float]
DeliveryHandler = Callable[[str, bytes], Any]


class UniformDelay:
    """Delay drawn uniformly from ``[0, max_delay)``."""

    def __init__(self, max_delay: float, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        if max_delay < 0:
            raise ValueError(f"max_delay must be non-negative, got {max_delay}")
        self.max_delay = max_delay
        self.rng = rng or random.Random(seed)

    def __call__(self, from_address: str, to_address: str) -> float:
        return self.rng.random() * self.max_delay


class FixedDelay:
    """Constant delay; deliveries happen in scheduling order."""

    def __init__(self, delay: float = 1.0):
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self.delay = delay

    def __call__(self, from_address: str, to_address: str) -> float:
        return self.delay


@dataclass(order=True)
class ScheduledEvent:
    """An entry in the event queue, ordered by time then scheduling order."""
    deliver_at: float
    order: int
    action: Callable[[], None] = field(compare=False)
    description: str = field(default="", compare=False)


class DeliverySimulator:
    """
    Schedules asynchronous, randomly delayed delivery of messages between nodes.

    Attributes:
        network: Network whose nodes are valid recipients
        delay_source: Callable ``(from_address, to_address) -> delay``
        now: Current simulation time
        stats: Counters for scheduled/delivered messages and timers
    """

    def __init__(
        self,
        network: "Network",
        delay_source: Optional[DelaySource] = None,
        time_unit: float = TM,
        max_delay_fraction: float = DEFAULT_MAX_DELAY_FRACTION,
    ):
        self.network = network
        self.delay_source = delay_source or UniformDelay(max_delay_fraction * time_unit)
        self.time_unit = time_unit
        self.now = 0.0

        self._queue: List[ScheduledEvent] = []
        self._counter = itertools.count()
        self._handler: Optional[DeliveryHandler] = None

        self.stats = {
            "scheduled": 0,
            "delivered": 0,
            "timers_fired": 0,
            "cancelled": 0,
        }

    def attach(self, handler: DeliveryHandler) -> None:
        """Set the callback that receives ``(to_address, payload)`` on delivery."""
        self._handler = handler

    @property
    def pending(self) -> int:
        """Number of events still queued."""
        return len(self._queue)

    @property
    def idle(self) -> bool:
        return not self._queue

    def schedule(self, from_address: str, to_address: str, payload: bytes) -> float:
        """
        Schedule one-shot delivery of ``payload`` to ``to_address``.

        Returns:
            Simulation time at which the payload will be delivered

        Raises:
            UnknownAddressError: If either address is not in the network
        """
        if from_address not in self.network:
            raise UnknownAddressError(from_address, "unknown sender")
        if to_address not in self.network:
            raise UnknownAddressError(to_address, f"delivery from {from_address}")

        delay = self.delay_source(from_address, to_address)
        if delay < 0:
            raise ValueError(f"Delay source returned a negative delay: {delay}")

        deliver_at = self.now + delay
        self._push(
            deliver_at,
            lambda: self._deliver(to_address, payload),
            f"deliver {from_address}->{to_address}",
        )
        self.stats["scheduled"] += 1
        return deliver_at

    def call_at(self, when: float, callback: Callable[[], None], description: str = "timer") -> None:
        """Schedule a driver callback (e.g. a periodic broadcast) at an absolute time."""
        if when < self.now:
            raise ValueError(f"Cannot schedule in the past: {when} < {self.now}")

        def fire():
            self.stats["timers_fired"] += 1
            callback()

        self._push(when, fire, description)

    def step(self) -> bool:
        """
        Process the next queued event.

        Returns:
            False if the queue was empty
        """
        if not self._queue:
            return False

        event = heapq.heappop(self._queue)
        self.now = event.deliver_at
        event.action()
        return True

    def run(self, until: Optional[float] = None, max_events: Optional[int] = None) -> Dict[str, Any]:
        """
        Process events until the queue drains.

        Args:
            until: Stop before processing events later than this time
            max_events: Stop after processing this many events

        Returns:
            Run statistics
        """
        processed = 0
        while self._queue:
            if until is not None and self._queue[0].deliver_at > until:
                break
            if max_events is not None and processed >= max_events:
                break
            self.step()
            processed += 1

        if until is not None and self.now < until and (not self._queue or self._queue[0].deliver_at > until):
            self.now = until

        logger.debug(f"Processed {processed} events, now={self.now:.1f}, pending={self.pending}")
        return {
            "events_processed": processed,
            "now": self.now,
            "pending": self.pending,
            "delivered": self.stats["delivered"],
        }

    def cancel_all(self) -> int:
        """Withdraw every queued event. Returns the number cancelled."""
        cancelled = len(self._queue)
        self._queue.clear()
        self.stats["cancelled"] += cancelled
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending events")
        return cancelled

    def _push(self, when: float, action: Callable[[], None], description: str) -> None:
        heapq.heappush(self._queue, ScheduledEvent(when, next(self._counter), action, description))

    def _deliver(self, to_address: str, payload: bytes) -> None:
        if self._handler is None:
            raise RuntimeError("No delivery handler attached")
        self.stats["delivered"] += 1
        self._handler(to_address, payload)
