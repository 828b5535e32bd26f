# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
Configuration module for meshsim.

Handles loading and validation of simulation configuration from YAML files.

Example config.yaml:

    topology:
      nodes: [A, B]
      edges:
        - {source: A, target: B, throughput: 10}
        - {source: B, target: A, throughput: 10}
    delivery:
      seed: ${MESHSIM_SEED:-42}
    simulation:
      rounds: 3
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, validator

from .errors import InvalidTopologyError
from .mesh.delivery import DEFAULT_MAX_DELAY_FRACTION, TM
from .mesh.protocol import HOP_PENALTY, MAX_METRIC
from .topology import MODEL_NETWORKS, SIX_NODE_MODEL, Network, build_network, load_model_network, parse_edge_key


class EdgeConfig(BaseModel):
    """A directed edge."""
    source: str = Field(..., min_length=1, description="Sending node address")
    target: str = Field(..., min_length=1, description="Receiving node address")
    throughput: float = Field(..., description="Link capacity in abstract bandwidth units")


class TopologyConfig(BaseModel):
    """Network description: a built-in model or explicit nodes and edges."""
    model: Optional[str] = Field(None, description="Built-in model network name")
    nodes: List[str] = Field(default=[], description="Node addresses")
    edges: List[EdgeConfig] = Field(default=[], description="Directed edges")

    @validator('model')
    def validate_model(cls, v):
        if v is not None and v not in MODEL_NETWORKS:
            raise ValueError(f'model must be one of {sorted(MODEL_NETWORKS)}')
        return v

    def build(self) -> Network:
        """
        Build the configured network.

        Raises:
            InvalidTopologyError: If no topology is configured or it is malformed
        """
        if self.model:
            return load_model_network(self.model)
        if not self.nodes:
            raise InvalidTopologyError("Topology must name a model or list nodes")
        return build_network(
            self.nodes,
            [(e.source, e.target, e.throughput) for e in self.edges],
        )


class ProtocolConfig(BaseModel):
    """OGM metric parameters."""
    max_metric: float = Field(default=MAX_METRIC, gt=0, description="Throughput advertised at origination")
    hop_penalty: float = Field(default=HOP_PENALTY, ge=0.0, lt=1.0, description="Per-hop discount")


class DeliveryConfig(BaseModel):
    """Delivery delay parameters."""
    time_unit: float = Field(default=TM, gt=0, description="Simulation time units per second")
    max_delay_fraction: float = Field(default=DEFAULT_MAX_DELAY_FRACTION, ge=0.0, le=1.0)
    seed: Optional[int] = Field(None, description="Seed for the delay source")


class RateLimitConfig(BaseModel):
    """Leaky-bucket transmit gates (one bucket per node)."""
    enabled: bool = Field(default=False, description="Gate every send through a leaky bucket")
    capacity_per_second: float = Field(default=100000.0, gt=0, description="Bits per second")
    ticks_per_second: int = Field(default=10, ge=1, le=1000)


class SimulationConfig(BaseModel):
    """Broadcast schedule."""
    rounds: int = Field(default=1, ge=1, le=10000, description="Broadcast rounds")
    originator_interval: float = Field(default=1000.0, gt=0, description="Time between rounds")
    settle_time: Optional[float] = Field(
        default=5000.0, ge=0,
        description="Time allowed after the last round; OGMs still in flight then stay queued. Unset runs to quiescence",
    )


class MeshSimConfig(BaseModel):
    """Top-level configuration model."""

    topology: TopologyConfig = Field(default_factory=lambda: TopologyConfig(model="six-node"))
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(None, description="Log file path")

    @validator('log_level')
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of {valid_levels}')
        return v.upper()


def load_config(config_path: str) -> MeshSimConfig:
    """
    Load simulation configuration from a YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Validated MeshSimConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Support environment variable substitution
    raw_config = _substitute_env_vars(raw_config)

    return MeshSimConfig(**raw_config)


def _substitute_env_vars(obj):
    """Recursively substitute environment variables in config values."""
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        # Support ${VAR} and ${VAR:-default} syntax
        if obj.startswith('${') and obj.endswith('}'):
            var_spec = obj[2:-1]
            if ':-' in var_spec:
                var_name, default = var_spec.split(':-', 1)
                return os.environ.get(var_name, default)
            else:
                return os.environ.get(var_spec, obj)
        return obj
    else:
        return obj


def create_default_config(config_path: str, seed: Optional[int] = None):
    """
    Create a default configuration file describing the six-node model network.

    Args:
        config_path: Path to write the configuration
        seed: Optional delay seed to record in the file
    """
    edges = []
    for key, spec in SIX_NODE_MODEL["edges"].items():
        source, target = parse_edge_key(key)
        edges.append({'source': source, 'target': target, 'throughput': spec['throughput']})

    default_config = {
        'topology': {
            'nodes': list(SIX_NODE_MODEL["nodes"]),
            'edges': edges,
        },
        'protocol': {
            'max_metric': MAX_METRIC,
            'hop_penalty': HOP_PENALTY,
        },
        'delivery': {
            'time_unit': TM,
            'max_delay_fraction': DEFAULT_MAX_DELAY_FRACTION,
            'seed': seed,
        },
        'rate_limit': {
            'enabled': False,
            'capacity_per_second': 100000.0,
            'ticks_per_second': 10,
        },
        'simulation': {
            'rounds': 1,
            'originator_interval': 1000.0,
            'settle_time': 5000.0,
        },
        'log_level': 'INFO',
        'log_file': None,
    }

    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)

    return path
