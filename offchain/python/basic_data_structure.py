from dataclasses import dataclass, field
from typing import Final, Optional

# Largest value the per-block random draw can take.
MAX_UINT64: Final[int] = 2**64 - 1


class SimulationInputError(ValueError):
    """Bad user input (chain length, target, cache size...)."""


class InternalConsistencyError(Exception):
    """A structural invariant was broken. Always a programming error."""


class TreeInvariantError(InternalConsistencyError):
    pass


class DPTableError(InternalConsistencyError):
    pass


@dataclass
class Block:
    """One simulated block header on the chain."""
    index: int
    draw: int
    skip: int
    dist: int = 0
    step: int = 0

    def __repr__(self):
        return f"Block(#{self.index}, skip={self.skip}, dist={self.dist}, step={self.step})"


@dataclass(frozen=True)
class CacheEntry:
    blocknum: int
    skip: int


@dataclass(frozen=True)
class AncestorEntry:
    """A back-link kept in a block's ancestor list: (blocknum, cumulative hashes)."""
    blocknum: int
    num_hashes: int


@dataclass
class ChainSummary:
    """Results of one simulation run, keyed by strategy name."""
    num_blocks: int
    target: int
    seed: int
    path_hops: int = 0
    path_lengths: dict[str, int] = field(default_factory=dict)
    optimal_lengths: dict[str, int] = field(default_factory=dict)
    incremental_path: Optional[int] = None
    incremental_hashes: Optional[int] = None


def compute_skip(index: int, draw: int) -> int:
    """Maximum backward jump block `index` may take given its draw.

    A zero draw is treated as an unbounded skip; every skip is clamped to the
    block's own index. Scalar form of random_stream.skip_distances, which is
    what the simulator uses; handy for checking single blocks.
    """
    if draw == 0:
        return index
    return min(index, MAX_UINT64 // draw)


def clear_lowest_bit(n: int) -> int:
    return n & (n - 1)


def skip_height(height: int) -> int:
    """Structural back-link target used by the single-backlink baseline."""
    if height < 2:
        return 0
    if height & 1:
        return clear_lowest_bit(clear_lowest_bit(height - 1)) + 1
    return clear_lowest_bit(height)
