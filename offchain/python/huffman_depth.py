"""
Huffman encoding over cached blocks.

Blocks with large skips are the ones a proof most wants to jump to, so the
cache commits to them in a Huffman tree weighted by skip: heavy entries end
up shallow. Only depths matter here; no hashes are computed.
"""

import heapq
from typing import Iterable, Optional

from basic_data_structure import CacheEntry

# "No target inside this subtree"
NO_TARGET = -1


class HuffmanNode:
    """Node for building the Huffman tree over cache entries."""
    def __init__(self, item, freq):
        self.item, self.freq, self.left, self.right = item, freq, None, None


def _initial_heap(entries):
    # (weight, order) keeps merges deterministic when weights tie
    return [(entry.skip, order, entry) for order, entry in enumerate(entries)]


def huffman_target_depth(entries: Iterable[CacheEntry], target: int) -> Optional[int]:
    """Depth of `target` in the Huffman tree over `entries`, without building it.

    Each heap item carries its distance to the target leaf. A merged node
    takes the distance of whichever child actually contains the target, plus
    one; if neither does it carries NO_TARGET.

    Returns:
        The depth, or None when `target` is not one of the entries.
    """
    entries = list(entries)
    if not entries:
        return None

    pq = [(weight, order, 0 if entry.blocknum == target else NO_TARGET)
          for weight, order, entry in _initial_heap(entries)]
    heapq.heapify(pq)
    order = len(pq)
    while len(pq) > 1:
        left_weight, _, left_dist = heapq.heappop(pq)
        right_weight, _, right_dist = heapq.heappop(pq)
        if left_dist != NO_TARGET:
            dist = left_dist + 1
        elif right_dist != NO_TARGET:
            dist = right_dist + 1
        else:
            dist = NO_TARGET
        heapq.heappush(pq, (left_weight + right_weight, order, dist))
        order += 1

    dist = pq[0][2]
    return None if dist == NO_TARGET else dist


def build_huffman_tree(entries: Iterable[CacheEntry]) -> Optional[HuffmanNode]:
    """Build the Huffman tree from cache entries weighted by skip."""
    pq = [(weight, order, HuffmanNode(entry, weight))
          for weight, order, entry in _initial_heap(entries)]
    if not pq:
        return None
    heapq.heapify(pq)
    order = len(pq)
    while len(pq) > 1:
        _, _, left = heapq.heappop(pq)
        _, _, right = heapq.heappop(pq)
        merged = HuffmanNode(None, left.freq + right.freq)
        merged.left, merged.right = left, right
        heapq.heappush(pq, (merged.freq, order, merged))
        order += 1
    return pq[0][2]


def huffman_depths(entries: Iterable[CacheEntry]) -> dict[int, int]:
    """Map every cached blocknum to its leaf depth, using an explicit stack."""
    depths = {}
    root = build_huffman_tree(entries)
    if root is None:
        return depths

    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if node.item is not None:
            depths[node.item.blocknum] = depth
        else:
            if node.right is not None:
                stack.append((node.right, depth + 1))
            if node.left is not None:
                stack.append((node.left, depth + 1))
    return depths
