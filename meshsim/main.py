#!/usr/bin/env python3
# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
meshsim - Main Entry Point

Runs an OGM flooding simulation over a configured network and prints every
node's originator table once the flood has settled.

Usage:
    python -m meshsim.main --config config.yaml
    python -m meshsim.main --model six-node --rounds 5 --seed 42
    python -m meshsim.main --init-config --config config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config import MeshSimConfig, TopologyConfig, create_default_config, load_config
from .errors import MeshSimError
from .simulation import Simulation
from .topology import MODEL_NETWORKS


def setup_logging(config: MeshSimConfig) -> logging.Logger:
    """Configure logging based on simulation configuration."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers = [logging.StreamHandler(sys.stderr)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=log_format,
        handlers=handlers,
        force=True
    )

    return logging.getLogger("meshsim")


def render_tables(tables: Dict[str, Dict[str, dict]], console: Optional[Console] = None) -> None:
    """Print one originator table per node."""
    console = console or Console()
    for address, table in tables.items():
        view = Table(title=f"Node {address}", title_justify="left")
        view.add_column("Originator")
        view.add_column("Next hop")
        view.add_column("Throughput", justify="right")
        view.add_column("Last seq", justify="right")
        for originator in sorted(table):
            entry = table[originator]
            view.add_row(
                originator,
                entry["next_hop_address"],
                f"{entry['throughput']:.4f}",
                str(entry["last_seen_sequence"]),
            )
        console.print(view)


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="OGM mesh routing simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m meshsim.main --model two-node
  python -m meshsim.main --config config.yaml --log-level DEBUG
  python -m meshsim.main --init-config --config config.yaml
        """
    )

    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (default: built-in six-node network)"
    )

    parser.add_argument(
        "--model", "-m",
        choices=sorted(MODEL_NETWORKS),
        help="Use a built-in model network instead of the configured topology"
    )

    parser.add_argument(
        "--rounds", "-r",
        type=int,
        help="Override the number of broadcast rounds"
    )

    parser.add_argument(
        "--seed", "-s",
        type=int,
        help="Override the delivery delay seed"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level from config"
    )

    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default configuration file and exit"
    )

    args = parser.parse_args(argv)

    # Handle config initialization
    if args.init_config:
        if not args.config:
            parser.error("--init-config requires --config")

        config_path = create_default_config(args.config, seed=args.seed)
        print(f"Configuration file created: {config_path}")
        return 0

    # Load configuration
    try:
        config = load_config(args.config) if args.config else MeshSimConfig()
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        print("Use --init-config to create a new configuration file", file=sys.stderr)
        return 1
    except (ValidationError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    # Command line overrides
    if args.model:
        config.topology = TopologyConfig(model=args.model)
    if args.rounds is not None:
        if args.rounds < 1:
            parser.error("--rounds must be at least 1")
        config.simulation.rounds = args.rounds
    if args.seed is not None:
        config.delivery.seed = args.seed
    if args.log_level:
        config.log_level = args.log_level

    logger = setup_logging(config)

    try:
        simulation = Simulation(config)
    except MeshSimError as e:
        logger.error(f"Refusing to run: {e}")
        return 1

    try:
        stats = simulation.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        simulation.stop()
        return 1
    except MeshSimError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    render_tables(simulation.tables())
    logger.info(
        f"Done: {stats['rounds']} rounds, {stats['delivered']} deliveries, "
        f"{stats['metrics']['dropped_stale']} stale drops"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
