"""
Incremental Self-Balancing Proof Tree

An internal-node tree that keeps the most recent insertions close to the root
while still being updatable one block at a time:

1. The root always holds the newest value.
2. A subtree is "fixed" once it is completely populated down to the current
   maximum depth; nothing inside a fixed subtree moves again.
3. When the whole tree is fixed a new level is grown: a fresh root takes the
   old root as its left child.

Inserting walks down from the root, swapping the new value into every node it
visits and carrying the displaced value further down, preferring the left
subtree until it is fixed.
"""

from typing import Optional

from basic_data_structure import TreeInvariantError


class TreeNode:
    """Node in the incremental tree. Values are block numbers."""
    def __init__(self, value, depth=0):
        self.value = value
        self.depth = depth
        self.fixed = False
        self.left = None
        self.right = None

    def children(self):
        return [child for child in (self.left, self.right) if child is not None]

    def __repr__(self):
        return f"TreeNode(value={self.value}, depth={self.depth}, fixed={self.fixed})"


class IncrementalTree:
    """Incrementally balanced tree with recent values near the top."""

    def __init__(self):
        self.root: Optional[TreeNode] = None
        self.max_depth = 0
        self.size = 0
        self.last_value = None

    def __len__(self):
        return self.size

    def is_fixed(self, node: TreeNode) -> bool:
        """True if node's subtree is complete down to max_depth. Cached once true."""
        if node.fixed:
            return True

        if node.depth == self.max_depth:
            node.fixed = True
            return True

        if node.left is None or node.right is None:
            return False

        node.fixed = self.is_fixed(node.left) and self.is_fixed(node.right)
        return node.fixed

    def insert(self, value) -> int:
        """Add a value to the tree.

        Returns:
            Number of value swaps the insertion performed.
        """
        self.size += 1
        self.last_value = value

        if self.root is None:
            self.root = TreeNode(value, 0)
            self.max_depth = 0
            return 0

        # Start a new level?
        if self.is_fixed(self.root):
            new_root = TreeNode(value, 0)
            new_root.left = self.root
            self.root = new_root
            self.max_depth += 1
            self._increment_depths(new_root.left)
            return 0

        # Left side should be complete before anything goes right
        if self.root.left is None or not self.is_fixed(self.root.left):
            raise TreeInvariantError("Root is not fixed but its left subtree is not complete")

        return self._descend(self.root, value)

    def _descend(self, node: TreeNode, value) -> int:
        swaps = 0
        while True:
            node.value, value = value, node.value
            swaps += 1

            if node.left is None:
                node.left = TreeNode(value, node.depth + 1)
                return swaps
            if not self.is_fixed(node.left):
                node = node.left
                continue
            if node.right is None:
                node.right = TreeNode(value, node.depth + 1)
                return swaps
            if self.is_fixed(node.right):
                raise TreeInvariantError(f"Descended into fixed subtree at {node!r}")
            node = node.right

    @staticmethod
    def _increment_depths(node: TreeNode):
        stack = [node]
        while stack:
            current = stack.pop()
            current.depth += 1
            stack.extend(current.children())

    def iter_nodes(self):
        """Yield every node, parents before children."""
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def find(self, value) -> Optional[TreeNode]:
        """Brute force search; fine for testing and small trees."""
        for node in self.iter_nodes():
            if node.value == value:
                return node
        return None

    def depth_of(self, value) -> int:
        node = self.find(value)
        if node is None:
            raise TreeInvariantError(f"Value {value} is not in the tree")
        return node.depth

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def validate(self, expected_max_value=None):
        """Check depths, the max-depth bound, fixed flags and the root value.

        The root must hold `expected_max_value`, or the last inserted value
        when none is given.

        Raises:
            TreeInvariantError: on the first violation found.
        """
        if self.root is None:
            if self.size:
                raise TreeInvariantError(f"Empty tree claims {self.size} values")
            return

        if expected_max_value is None:
            expected_max_value = self.last_value
        if self.root.value != expected_max_value:
            raise TreeInvariantError(
                f"Root holds {self.root.value}, expected newest value {expected_max_value}")

        count = 0
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            count += 1
            if node.depth != depth:
                raise TreeInvariantError(f"{node!r} stored depth differs from actual depth {depth}")
            if node.depth > self.max_depth:
                raise TreeInvariantError(f"{node!r} is below max depth {self.max_depth}")
            if node.fixed and not self._is_complete(node):
                raise TreeInvariantError(f"{node!r} is marked fixed but not complete")
            for child in node.children():
                stack.append((child, depth + 1))

        if count != self.size:
            raise TreeInvariantError(f"Tree holds {count} nodes but {self.size} values were inserted")

    def _is_complete(self, node: TreeNode) -> bool:
        # Uncached version of is_fixed, used to audit the cached flags.
        if node.depth == self.max_depth:
            return True
        if node.left is None or node.right is None:
            return False
        return self._is_complete(node.left) and self._is_complete(node.right)

    def teardown(self):
        """Release every node."""
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            stack.extend(node.children())
            node.left = node.right = None
        self.root = None
        self.max_depth = 0
        self.size = 0
        self.last_value = None


def build_tree(count: int) -> IncrementalTree:
    """Tree holding block numbers 0..count-1, inserted in order."""
    tree = IncrementalTree()
    for value in range(count):
        tree.insert(value)
    return tree
