"""
Incremental Ancestor Bookkeeping

A variant where no global shortest-path table exists. Every block carries the
list of ancestors it could link to, merkled (as an MMR) into its header:

- block i copies block i-1's list up to the ancestor block i-1 actually used,
  and appends block i-1 itself;
- each entry records the hashes needed to reach the target through it;
- block i picks the reachable entry with the cheapest total.

Sibling lists share their prefixes, so lists are persistent cons-cell chains:
copying a prefix is free and nothing is duplicated. Once block i exists, the
lists of blocks that fell off block i-1's list can never be copied again and
are released straight away.
"""

from dataclasses import dataclass
from typing import Optional

from basic_data_structure import AncestorEntry, DPTableError, SimulationInputError
from proof_strategies import mmr_proof_len


class AncestorLink:
    """One cell of a persistent list: an entry plus the list before it."""
    __slots__ = ('entry', 'parent', 'size')

    def __init__(self, entry, parent, size):
        self.entry = entry
        self.parent = parent
        self.size = size


class AncestorList:
    """Immutable list of AncestorEntry; append and prefix share structure."""
    __slots__ = ('tail',)

    def __init__(self, tail: Optional[AncestorLink] = None):
        self.tail = tail

    def __len__(self):
        return self.tail.size if self.tail is not None else 0

    def append(self, entry: AncestorEntry) -> 'AncestorList':
        return AncestorList(AncestorLink(entry, self.tail, len(self) + 1))

    def prefix(self, length: int) -> 'AncestorList':
        """The first `length` entries, sharing cells with this list."""
        if length < 0 or length > len(self):
            raise IndexError(f"Prefix of {length} from a list of {len(self)}")
        link = self.tail
        while link is not None and link.size > length:
            link = link.parent
        return AncestorList(link)

    def entries(self) -> list[AncestorEntry]:
        out = []
        link = self.tail
        while link is not None:
            out.append(link.entry)
            link = link.parent
        out.reverse()
        return out

    def __iter__(self):
        return iter(self.entries())

    def __getitem__(self, index):
        return self.entries()[index]

    def index_of(self, blocknum: int) -> int:
        """Position of the first entry for `blocknum`, or -1."""
        for index, entry in enumerate(self.entries()):
            if entry.blocknum == blocknum:
                return index
        return -1


@dataclass
class AncestorBlock:
    index: int
    skip: int
    ancestors: Optional[AncestorList]
    prev_used: int = 0
    hashes_to_target: int = 0


class AncestorChain:
    """Grows a chain where each block keeps its own ancestor list."""

    def __init__(self, skips, target: int = 0, verbose: bool = False):
        self.skips = [int(s) for s in skips]
        self.num_blocks = len(self.skips)
        self.target = target
        self.verbose = verbose
        if self.num_blocks < 1:
            raise SimulationInputError("Chain must contain at least one block")
        if target < 0 or target >= self.num_blocks:
            raise SimulationInputError(
                f"Target {target} must be below the chain length {self.num_blocks}")

        self.blocks: list[Optional[AncestorBlock]] = [None] * self.num_blocks
        self.released = 0

    @staticmethod
    def proof_len(ancestors: list[AncestorEntry], blocknum: int) -> int:
        """How deep blocknum sits in the MMR over an ancestor list."""
        for index, entry in enumerate(ancestors):
            if entry.blocknum == blocknum:
                return mmr_proof_len(len(ancestors), index)
        raise DPTableError(f"Block {blocknum} is missing from its ancestor list")

    def _append_prev(self, prev: AncestorBlock) -> AncestorList:
        """Copy prev's list up to the ancestor it used, then add prev itself."""
        base = prev.ancestors.prefix(prev.prev_used + 1)
        position = base.index_of(prev.index)
        if position < 0:
            position = len(base)
        hashes = prev.hashes_to_target + mmr_proof_len(len(base) + 1, position)
        return base.append(AncestorEntry(prev.index, hashes))

    def _release_dropped(self, prev: AncestorBlock):
        """Free lists of blocks that fell off prev's list after its used entry."""
        for entry in prev.ancestors.entries()[prev.prev_used + 1:]:
            dropped = self.blocks[entry.blocknum]
            if dropped.ancestors is None:
                raise DPTableError(f"Ancestor list of block {entry.blocknum} released twice")
            dropped.ancestors = None
            self.released += 1

    def _choose_prev(self, block: AncestorBlock):
        entries = block.ancestors.entries()
        lowest = block.index - block.skip
        best = None
        for j, entry in enumerate(entries):
            # Can't reach it?
            if entry.blocknum < lowest:
                continue
            total = entry.num_hashes + self.proof_len(entries, entry.blocknum)
            if best is None or total < best:
                best = total
                block.prev_used = j
        if best is None:
            raise DPTableError(f"Block {block.index} cannot reach any ancestor")
        block.hashes_to_target = best

    def grow(self):
        """Build every block from the target up."""
        t = self.target
        self.blocks[t] = AncestorBlock(
            index=t, skip=self.skips[t],
            ancestors=AncestorList().append(AncestorEntry(t, 0)))

        for i in range(t + 1, self.num_blocks):
            prev = self.blocks[i - 1]
            block = AncestorBlock(index=i, skip=self.skips[i], ancestors=self._append_prev(prev))
            self.blocks[i] = block
            self._release_dropped(prev)
            self._choose_prev(block)

            if self.verbose and i % 10000 == 0:
                print(f"  ⏳ incremental: block {i}/{self.num_blocks}, list {len(block.ancestors)}")
        return self.blocks

    def run(self):
        """Grow the chain.

        Returns:
            (proof path length, total hashes) for the newest block.
        """
        self.grow()
        last = self.blocks[-1]
        if last.index == self.target:
            return 0, 0
        if self.verbose:
            print(f"♻️  Released {self.released} ancestor lists along the way")
        return len(last.ancestors) - 1, last.hashes_to_target
