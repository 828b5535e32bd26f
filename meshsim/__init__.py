# Copyright 2024 meshsim Contributors
# SPDX-License-Identifier: Apache-2.0
"""
meshsim: simulator for OGM-flooding mesh routing.

Nodes periodically flood Originator Messages; every node learns, for each
originator, the neighbor with the best bottleneck throughput toward it.
"""

__version__ = "0.1.0"
