"""
Proof-Length Strategies for Back-Link Topologies

Each block commits to a tree of earlier blocks ("prevtree"). To hop from a
block back to an earlier one, a light client has to check a proof through
that tree. This module computes how many hashes such a proof costs under
different tree topologies:

- array:          RFC 6962 style external-node tree built from an in-order array
- optimal:        breadth-first internal-node tree (ideal, not incrementable)
- incremental:    the incrementally balanced tree from incremental_tree.py
- breadth-batch:  series of breadth-first trees in fixed-size batches
- array-batch:    same, but old batches hang off an array tree
- mmr:            Merkle Mountain Range, peaks joined by an array tree
- mmr-linear:     Merkle Mountain Range, peaks joined as a backward list
- huffman:        skip-weighted Huffman tree over a top-K cache, MMR otherwise
- huffman-array:  same cache, array tree otherwise
- naive:          balanced tree, ignoring incremental constraints
- single-backlink: one structural back-link per block plus the parent

Strategies flagged `is_fast` answer a query in O(log n) and can sit inside
the optimal-length dynamic program.
"""

from basic_data_structure import SimulationInputError, skip_height
from incremental_tree import IncrementalTree, build_tree
from sim_config import DEFAULT_SUBTREE_SIZE, SimulationConfig
from huffman_depth import huffman_depths

# Display names for reports
STRATEGY_NAMES = {
    'array': 'Array (external-node) Tree',
    'optimal': 'Breadth-First Optimal Tree',
    'incremental': 'Incremental Balanced Tree',
    'breadth-batch': 'Batched Breadth-First Trees',
    'array-batch': 'Batched Trees over Array',
    'mmr': 'Merkle Mountain Range',
    'mmr-linear': 'Merkle Mountain Range (linear peaks)',
    'huffman': 'Huffman Cache + MMR',
    'huffman-array': 'Huffman Cache + Array Tree',
    'naive': 'Naive Balanced Tree',
    'single-backlink': 'Single Back-Link',
}


def _check_range(from_block, to_block):
    if to_block < 0 or to_block >= from_block:
        raise SimulationInputError(f"Cannot prove block {to_block} from a tree of {from_block}")


# --- TOPOLOGY DEPTH CALCULATORS ---

def prooflen_for_internal_node(depth: int) -> int:
    """Hashes needed for a value stored at `depth` in an internal-node tree.

    Every level above the value needs the value hash plus both child hashes,
    except the level holding the value itself:

          /\\
         /  \\
      value  /\\
            L  R
    """
    if depth == 0:
        return 1
    return (depth - 1) * 2 + 1


def naive_proof_len(from_block: int, to_block: int) -> int:
    """Balanced tree over all `from_block` elements: ceil(log2(from_block))."""
    _check_range(from_block, to_block)
    return (from_block - 1).bit_length()


def optimal_proof_len(from_block: int, to_block: int) -> int:
    """Breadth-first internal-node tree, newest block at the root:

                 N
               /   \\
            N-1     N-2
           /   \\   /   \\
         N-3  N-4 N-5  N-6

    The depth of a node is floor(log2(distance)).
    """
    _check_range(from_block, to_block)
    depth = (from_block - to_block).bit_length() - 1
    return prooflen_for_internal_node(depth)


def array_proof_len(from_block: int, to_block: int) -> int:
    """External-node tree built from an in-order array (RFC 6962 layout):

            ^
           / \\
          /\\  \\
         /  \\  \\
        /\\  /\\  \\
       0  1 2  3  4

    Each split takes the largest power of two below the range size.
    """
    _check_range(from_block, to_block)
    start, end = 0, from_block
    hashes = 0
    while end - start > 1:
        half = 1 << ((end - start - 1).bit_length() - 1)
        if to_block < start + half:
            end = start + half
        else:
            start += half
        hashes += 1
    return hashes


def mmr_locate(num: int, node: int):
    """Find the mountain holding `node` in an MMR of `num` elements.

    Returns:
        (number of peaks, index of the peak from the oldest, mountain height)
    """
    _check_range(num, node)
    peaks = bin(num).count('1')
    offset = 0
    peaknum = 0
    for height in range(num.bit_length() - 1, -1, -1):
        summit = 1 << height
        if num & summit:
            offset += summit
            if node < offset:
                return peaks, peaknum, height
            peaknum += 1
    raise SimulationInputError(f"Block {node} is outside an MMR of {num}")


def mmr_proof_len(num: int, node: int) -> int:
    """Merkle Mountain Range with peaks joined by an array tree.

    7 elements make three mountains, and more recent peaks sit higher:

              /\\(3)
             /  6
            /\\
           /  \\
       (1)/    \\(2)
        /\\     /\\
       /\\/\\   4  5
      0 1 2 3
    """
    peaks, peaknum, height = mmr_locate(num, node)
    return array_proof_len(peaks, peaknum) + height


def mmr_linear_proof_len(num: int, node: int) -> int:
    """Merkle Mountain Range with peaks chained newest-first.

    The newest peak is one hash away; every older peak costs one more, and
    the two oldest share the bottom of the list.
    """
    peaks, peaknum, height = mmr_locate(num, node)
    if peaks == 1:
        return height
    return min(peaks - peaknum, peaks - 1) + height


def batch_proof_len(from_block: int, to_block: int,
                    subtree_size: int = DEFAULT_SUBTREE_SIZE, array: bool = False) -> int:
    """Series of breadth-first trees of `subtree_size` blocks each.

                     /\\
                    /  \\
                   /    \\
                  /\\    tree under construction
                 /  \\
                /\\   batch 2
               /  \\
         batch 0  batch 1

    With `array`, old batches are found through an array tree instead.
    """
    _check_range(from_block, to_block)
    from_tree = from_block // subtree_size
    to_tree = to_block // subtree_size

    if from_tree == to_tree:
        # Falls back to the optimal case while there is only one batch
        if from_block < subtree_size:
            return optimal_proof_len(from_block, to_block)
        return 1 + optimal_proof_len(from_block, to_block)

    if array:
        return 1 + array_proof_len(from_tree * subtree_size, to_block)

    # One hash to reach the old batches, one more per batch we go back
    tree_depth = 1 + from_tree - to_tree
    # The first batch is on the left spine
    if to_tree == 0:
        tree_depth -= 1

    return tree_depth + optimal_proof_len(subtree_size, to_block % subtree_size)


def incremental_proof_len(from_block: int, to_block: int) -> int:
    """Build the incremental tree over 0..from_block-1 and look the block up."""
    _check_range(from_block, to_block)
    tree = build_tree(from_block)
    depth = tree.depth_of(to_block)
    tree.teardown()
    return prooflen_for_internal_node(depth)


# --- STRATEGY OBJECTS ---

class ProofStrategy:
    """A prevtree topology: name, capability flags and a cost function."""
    name = None
    is_fast = True
    uses_cache = False
    # Strategies that pick their own chain instead of costing hops of another
    own_path = False

    def proof_len(self, from_block, to_block, cache=None):
        raise NotImplementedError

    def reset(self):
        """Drop per-chain state before a new replay."""
        pass

    def __call__(self, from_block, to_block, cache=None):
        return self.proof_len(from_block, to_block, cache)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"


class NaiveStrategy(ProofStrategy):
    name = "naive"

    def proof_len(self, from_block, to_block, cache=None):
        return naive_proof_len(from_block, to_block)


class OptimalStrategy(ProofStrategy):
    name = "optimal"

    def proof_len(self, from_block, to_block, cache=None):
        return optimal_proof_len(from_block, to_block)


class ArrayStrategy(ProofStrategy):
    name = "array"

    def proof_len(self, from_block, to_block, cache=None):
        return array_proof_len(from_block, to_block)


class MMRStrategy(ProofStrategy):
    name = "mmr"

    def proof_len(self, from_block, to_block, cache=None):
        return mmr_proof_len(from_block, to_block)


class MMRLinearStrategy(ProofStrategy):
    name = "mmr-linear"

    def proof_len(self, from_block, to_block, cache=None):
        return mmr_linear_proof_len(from_block, to_block)


class BatchStrategy(ProofStrategy):
    name = "breadth-batch"
    array = False

    def __init__(self, subtree_size=DEFAULT_SUBTREE_SIZE):
        self.subtree_size = subtree_size

    def proof_len(self, from_block, to_block, cache=None):
        return batch_proof_len(from_block, to_block, self.subtree_size, self.array)


class ArrayBatchStrategy(BatchStrategy):
    name = "array-batch"
    array = True


class IncrementalTreeStrategy(ProofStrategy):
    """Incremental balanced tree.

    Rebuilding the tree per query is O(n), so this is not fast. When queried
    with growing `from_block` values the tree is extended in place instead of
    rebuilt.
    """
    name = "incremental"
    is_fast = False

    def __init__(self):
        self.tree = IncrementalTree()

    def proof_len(self, from_block, to_block, cache=None):
        _check_range(from_block, to_block)
        if len(self.tree) > from_block:
            self.tree.teardown()
        for value in range(len(self.tree), from_block):
            self.tree.insert(value)
        return prooflen_for_internal_node(self.tree.depth_of(to_block))

    def reset(self):
        self.tree.teardown()


class HuffmanCacheStrategy(ProofStrategy):
    """Huffman tree over the top-K skip cache, plus a fallback topology.

    One extra hash selects between the cache tree and the fallback tree.
    Short chains (no longer than the cache) just use the fallback.
    """
    name = "huffman"
    uses_cache = True

    def __init__(self):
        self._memo_cache = None
        self._memo_version = None
        self._depths = {}

    def fallback_len(self, from_block, to_block):
        return mmr_proof_len(from_block, to_block)

    def cached_depths(self, cache):
        if cache is not self._memo_cache or cache.version != self._memo_version:
            self._depths = huffman_depths(cache.entries)
            self._memo_cache = cache
            self._memo_version = cache.version
        return self._depths

    def proof_len(self, from_block, to_block, cache=None):
        if cache is None:
            raise SimulationInputError(f"{self.name} needs a skip cache")
        if from_block <= cache.capacity:
            return self.fallback_len(from_block, to_block)

        depths = self.cached_depths(cache)
        if to_block in depths:
            return 1 + depths[to_block]
        return 1 + self.fallback_len(from_block, to_block)


class HuffmanArrayStrategy(HuffmanCacheStrategy):
    name = "huffman-array"

    def fallback_len(self, from_block, to_block):
        return array_proof_len(from_block, to_block)


class SingleBacklinkStrategy(ProofStrategy):
    """Parent link plus one structural back-link (the block's skip height).

    Each hop costs one header; the chain itself is chosen by the simulator.
    """
    name = "single-backlink"
    is_fast = False
    own_path = True

    def links(self, block):
        return block - 1, skip_height(block)

    def proof_len(self, from_block, to_block, cache=None):
        if to_block not in self.links(from_block):
            raise SimulationInputError(f"Block {from_block} has no back-link to {to_block}")
        return 1


STRATEGY_CLASSES = {
    'array': ArrayStrategy,
    'optimal': OptimalStrategy,
    'incremental': IncrementalTreeStrategy,
    'breadth-batch': BatchStrategy,
    'array-batch': ArrayBatchStrategy,
    'mmr': MMRStrategy,
    'mmr-linear': MMRLinearStrategy,
    'huffman': HuffmanCacheStrategy,
    'huffman-array': HuffmanArrayStrategy,
    'naive': NaiveStrategy,
    'single-backlink': SingleBacklinkStrategy,
}


def build_strategies(config: SimulationConfig) -> list[ProofStrategy]:
    """Instantiate the topologies a configuration enables, in display order."""
    strategies = []
    for name in config.enabled_strategies():
        cls = STRATEGY_CLASSES[name]
        if issubclass(cls, BatchStrategy):
            strategies.append(cls(config.subtree_size))
        else:
            strategies.append(cls())
    return strategies
