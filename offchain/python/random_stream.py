"""
Deterministic random stream for block draws.

Every simulated block gets one uniform 64-bit draw. The stream is seeded once
and is a pure function of the seed, so two runs with the same seed see the
same chain. This is not a hash function; it only stands in for the "how lucky
was this header" value a real chain would get from proof-of-work.
"""

import numpy as np

from basic_data_structure import MAX_UINT64

# Fixed seed for reproducible chains
DEFAULT_SEED = 0


class DeterministicStream:
    """Seeded source of uniform unsigned 64-bit integers."""

    def __init__(self, seed: int = DEFAULT_SEED):
        self.seed = seed
        self._bitgen = np.random.PCG64(seed)
        self.drawn = 0

    def next_uint64(self) -> int:
        """Return the next value in the stream."""
        self.drawn += 1
        return int(self._bitgen.random_raw())

    def take(self, count: int) -> np.ndarray:
        """Return the next `count` values as a uint64 array.

        Consumes the stream exactly like `count` calls to next_uint64().
        """
        if count <= 0:
            return np.zeros(0, dtype=np.uint64)
        self.drawn += count
        return np.asarray(self._bitgen.random_raw(size=count), dtype=np.uint64)


def block_draws(num_blocks: int, seed: int = DEFAULT_SEED) -> np.ndarray:
    """Draws for blocks 0..num_blocks-1. The genesis block never draws (slot 0 is 0)."""
    draws = np.zeros(num_blocks, dtype=np.uint64)
    if num_blocks > 1:
        draws[1:] = DeterministicStream(seed).take(num_blocks - 1)
    return draws


def skip_distances(draws: np.ndarray) -> np.ndarray:
    """Vectorised skip computation: min(i, MAX_UINT64 // draw[i]).

    A zero draw would divide by zero; it is treated as an unbounded skip and
    ends up clamped to the block index like any other oversized skip.
    """
    indices = np.arange(len(draws), dtype=np.uint64)
    raw = np.full(len(draws), MAX_UINT64, dtype=np.uint64)
    np.floor_divide(np.uint64(MAX_UINT64), draws, out=raw, where=draws != 0)
    return np.minimum(raw, indices).astype(np.int64)
