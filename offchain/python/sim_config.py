#!/usr/bin/env python3
"""
Simulation Configuration for SPV Proof-Length Runs

This module provides easy configuration switching between the different run modes:
1. Path mode (one shortest chain, every topology summed along it)
2. Optimal mode (each fast topology picks its own cheapest chain)
3. Incremental mode (blocks carry copy-on-write ancestor lists)
4. Path and optimal together, or all of the above
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from basic_data_structure import SimulationInputError

# Order matters: results are printed in this order.
ALL_STRATEGY_NAMES = (
    "array",
    "optimal",
    "incremental",
    "breadth-batch",
    "array-batch",
    "mmr",
    "mmr-linear",
    "huffman",
    "huffman-array",
    "naive",
    "single-backlink",
)

DEFAULT_CACHE_SIZE = 32
DEFAULT_SUBTREE_SIZE = 65535


class SimulationMode(Enum):
    """Which analyses a run performs."""
    PATH = "path"                # Shortest chain, per-topology cost along it
    OPTIMAL = "optimal"          # Per-topology optimal chain (fast topologies only)
    INCREMENTAL = "incremental"  # Ancestor-list variant
    COMPARE = "compare"          # Path and optimal together
    ALL = "all"


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""
    num_blocks: int = 1000
    target: int = 0
    seed: int = 0
    mode: SimulationMode = SimulationMode.ALL

    # Empty selection means "every topology"
    strategies: list[str] = field(default_factory=list)
    include_incremental: bool = True

    # Topology parameters
    cache_size: int = DEFAULT_CACHE_SIZE
    subtree_size: int = DEFAULT_SUBTREE_SIZE

    # Debugging
    verbose: bool = False
    progress_every: int = 10000

    def enabled_strategies(self) -> list[str]:
        """Resolve the selected topology names, in display order."""
        unknown = [name for name in self.strategies if name not in ALL_STRATEGY_NAMES]
        if unknown:
            raise SimulationInputError(f"Unknown topology: {', '.join(unknown)}")

        selected = self.strategies or list(ALL_STRATEGY_NAMES)
        names = [name for name in ALL_STRATEGY_NAMES if name in selected]
        if not self.include_incremental:
            names = [name for name in names if name != "incremental"]
        return names

    def check(self):
        """Validate user-supplied values; raises SimulationInputError."""
        if self.num_blocks < 1:
            raise SimulationInputError(f"Chain length must be positive, got {self.num_blocks}")
        if self.target < 0 or self.target >= self.num_blocks:
            raise SimulationInputError(
                f"Target {self.target} must be below the chain length {self.num_blocks}")
        if self.cache_size < 1:
            raise SimulationInputError(f"Cache size must be positive, got {self.cache_size}")
        if self.subtree_size < 2:
            raise SimulationInputError(f"Subtree size must be at least 2, got {self.subtree_size}")
        self.enabled_strategies()


# Global configuration - used when a caller does not pass its own
SIMULATION_CONFIG = SimulationConfig()


def set_simulation_mode(mode: SimulationMode, **kwargs):
    """Convenient function to change the run mode and other settings."""
    global SIMULATION_CONFIG
    SIMULATION_CONFIG.mode = mode
    for key, value in kwargs.items():
        if hasattr(SIMULATION_CONFIG, key):
            setattr(SIMULATION_CONFIG, key, value)
    if SIMULATION_CONFIG.verbose:
        print(f"🔧 Simulation mode switched to: {mode.value}")


def get_simulation_config(config: Optional[SimulationConfig] = None) -> SimulationConfig:
    """Get the given configuration, or the current global one."""
    return config if config is not None else SIMULATION_CONFIG


def reset_to_default_config():
    """Reset configuration to default values."""
    global SIMULATION_CONFIG
    SIMULATION_CONFIG = SimulationConfig()
