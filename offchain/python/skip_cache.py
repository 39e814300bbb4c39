"""
Bounded cache of the blocks with the largest skips seen so far.

Cache-augmented topologies commit to these "lucky" blocks separately from
the main back-link tree, so the cache only ever needs the top K entries,
kept sorted by skip from largest to smallest.
"""

import bisect

from basic_data_structure import CacheEntry, DPTableError


class TopSkipCache:
    """Fixed-capacity list of (blocknum, skip), strictly descending by skip."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("Cache capacity must be positive.")
        self.capacity = capacity
        self._entries: list[CacheEntry] = []
        self._blocknums: set[int] = set()
        # Bumped on every change so callers can memoise derived data
        self.version = 0

    @property
    def entries(self) -> tuple[CacheEntry, ...]:
        return tuple(self._entries)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, blocknum):
        return blocknum in self._blocknums

    def __iter__(self):
        return iter(self._entries)

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    @property
    def min_skip(self) -> int:
        return self._entries[-1].skip if self._entries else 0

    def offer(self, blocknum: int, skip: int) -> bool:
        """Try to add a block. Returns True if it was kept."""
        if self.is_full and skip <= self.min_skip:
            return False

        # Keys are negated so bisect works on the descending list
        keys = [-entry.skip for entry in self._entries]
        pos = bisect.bisect_left(keys, -skip)
        if pos < len(keys) and keys[pos] == -skip:
            # Equal skips would break strict ordering; the older block stays
            return False

        self._entries.insert(pos, CacheEntry(blocknum, skip))
        self._blocknums.add(blocknum)
        if len(self._entries) > self.capacity:
            evicted = self._entries.pop()
            self._blocknums.discard(evicted.blocknum)
        self.version += 1
        return True

    def validate(self):
        if len(self._entries) > self.capacity:
            raise DPTableError(f"Cache holds {len(self._entries)} entries, capacity {self.capacity}")
        for earlier, later in zip(self._entries, self._entries[1:]):
            if earlier.skip <= later.skip:
                raise DPTableError(f"Cache out of order: {earlier} before {later}")
        if self._blocknums != {entry.blocknum for entry in self._entries}:
            raise DPTableError("Cache index does not match its entries")

    def __repr__(self):
        return f"TopSkipCache({len(self._entries)}/{self.capacity}, min_skip={self.min_skip})"
