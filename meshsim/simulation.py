# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Simulation driver for meshsim.

Wires a network, delivery simulator and protocol engine together from a
configuration, schedules periodic broadcast rounds and runs the event loop
until the flood settles.
"""

import logging
from typing import Any, Dict, Optional

from .config import MeshSimConfig
from .mesh.delivery import DeliverySimulator, DelaySource, UniformDelay
from .mesh.events import EventCollector, LoggingCollector
from .mesh.protocol import OgmProtocol
from .mesh.ratelimit import LeakyBucket
from .topology import Network

logger = logging.getLogger(__name__)


class Simulation:
    """
    Manages the lifecycle of one simulated mesh.

    Attributes:
        config: Simulation configuration
        network: The simulated network
        delivery: Event queue shared by every node
        engine: OGM protocol engine
        rounds_started: Broadcast rounds originated so far
    """

    def __init__(
        self,
        config: MeshSimConfig,
        network: Optional[Network] = None,
        delay_source: Optional[DelaySource] = None,
        collector: Optional[EventCollector] = None,
    ):
        self.config = config
        self.network = network or config.topology.build()

        delivery_cfg = config.delivery
        if delay_source is None:
            delay_source = UniformDelay(
                delivery_cfg.max_delay_fraction * delivery_cfg.time_unit,
                seed=delivery_cfg.seed,
            )
        self.delivery = DeliverySimulator(self.network, delay_source, time_unit=delivery_cfg.time_unit)

        gates = {}
        if config.rate_limit.enabled:
            gates = {
                address: LeakyBucket(
                    config.rate_limit.capacity_per_second,
                    config.rate_limit.ticks_per_second,
                    time_unit=delivery_cfg.time_unit,
                )
                for address in self.network.addresses
            }

        self.engine = OgmProtocol(
            self.network,
            self.delivery,
            collector=collector or LoggingCollector(),
            max_metric=config.protocol.max_metric,
            hop_penalty=config.protocol.hop_penalty,
            gates=gates,
        )
        self.rounds_started = 0

    def schedule_rounds(self, rounds: Optional[int] = None, start: Optional[float] = None) -> None:
        """
        Queue ``rounds`` broadcast rounds, one every ``originator_interval``.

        In each round every node originates one OGM.
        """
        rounds = rounds if rounds is not None else self.config.simulation.rounds
        start = start if start is not None else self.delivery.now
        interval = self.config.simulation.originator_interval

        for i in range(rounds):
            self.delivery.call_at(start + i * interval, self._broadcast_round, f"round {i + 1}")

    def run(self, rounds: Optional[int] = None) -> Dict[str, Any]:
        """
        Run the configured broadcast rounds and let the flood settle.

        The event loop stops ``settle_time`` after the last round begins;
        anything still queued then is left pending. Without a settle time
        the loop runs until the queue drains.

        Returns:
            Run statistics, including engine metrics
        """
        sim_cfg = self.config.simulation
        rounds = rounds if rounds is not None else sim_cfg.rounds
        logger.info(f"Starting simulation: nodes={len(self.network)}, rounds={rounds}")

        start = self.delivery.now
        self.schedule_rounds(rounds, start)
        if sim_cfg.settle_time is None:
            stats = self.delivery.run()
        else:
            last_round = start + (rounds - 1) * sim_cfg.originator_interval
            stats = self.delivery.run(until=last_round + sim_cfg.settle_time)

        if stats["pending"]:
            logger.warning(f"Stopped at t={self.delivery.now:.1f} with {stats['pending']} events still queued")
        logger.info(
            f"Simulation settled at t={self.delivery.now:.1f}: "
            f"{stats['delivered']} deliveries, {self.engine.metrics['nexthop_updates']} next-hop updates"
        )
        return {
            "rounds": self.rounds_started,
            "now": self.delivery.now,
            "events_processed": stats["events_processed"],
            "delivered": stats["delivered"],
            "pending": stats["pending"],
            "metrics": self.engine.metrics.copy(),
        }

    def stop(self) -> int:
        """Withdraw any queued deliveries and rounds."""
        return self.delivery.cancel_all()

    def tables(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Originator tables of every node."""
        return {
            address: self.engine.get_originator_table(address)
            for address in self.network.addresses
        }

    def _broadcast_round(self) -> None:
        self.rounds_started += 1
        logger.debug(f"Broadcast round {self.rounds_started} at t={self.delivery.now:.1f}")
        self.engine.broadcast_all()
