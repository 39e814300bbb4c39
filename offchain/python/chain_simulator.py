"""
Chain-Growth Simulator

Grows a chain block by block. Every block gets a random draw that decides how
far back it is allowed to link (its skip), and a light client wants to prove
the newest block descends from a trusted target block in as few hashes as
possible.

Two dynamic programs run over the skip windows:

1. Shortest path: fewest hops back to the target. Every topology is then
   costed along that one chain.
2. Optimal: every fast topology picks the chain that is cheapest under its
   own per-hop cost, all in one combined pass.

Ties always go to the closest predecessor (predecessors are scanned from
i-1 downwards and only a strictly better candidate replaces the current one).
"""

import time
from typing import Optional

import numpy as np

from ancestor_paths import AncestorChain
from basic_data_structure import Block, ChainSummary, DPTableError, SimulationInputError, skip_height
from proof_strategies import ProofStrategy, build_strategies
from random_stream import block_draws, skip_distances
from sim_config import SimulationConfig, SimulationMode, get_simulation_config
from skip_cache import TopSkipCache


class ChainSimulator:
    """Runs the shortest-path and optimal-length programs over one chain."""

    def __init__(self, config: Optional[SimulationConfig] = None,
                 strategies: Optional[list[ProofStrategy]] = None):
        self.config = get_simulation_config(config)
        # Bad input aborts here, before anything is computed
        self.config.check()

        self.num_blocks = self.config.num_blocks
        self.target = self.config.target
        self.seed = self.config.seed
        self.verbose = self.config.verbose
        self.strategies = strategies if strategies is not None else build_strategies(self.config)

        self.draws = block_draws(self.num_blocks, self.seed)
        self.skips = skip_distances(self.draws)

        self.dist: Optional[np.ndarray] = None
        self.step: Optional[np.ndarray] = None
        self.optimal_table: Optional[np.ndarray] = None
        self.optimal_steps: Optional[np.ndarray] = None
        self.optimal_strategies: list[ProofStrategy] = []
        self.performance_stats = {}

    def print_verbose(self, message: str):
        if self.verbose:
            print(message)

    def _progress(self, stage, i):
        every = self.config.progress_every
        if self.verbose and every and i % every == 0:
            print(f"  ⏳ {stage}: block {i}/{self.num_blocks}")

    def window_floor(self, i: int) -> int:
        """Lowest predecessor block i may link to; never below the target."""
        return max(self.target, i - int(self.skips[i]))

    def new_cache(self) -> TopSkipCache:
        return TopSkipCache(self.config.cache_size)

    # --- SHORTEST PATH ---

    def shortest_path(self):
        """Fewest-hops chain from every block back to the target.

        Returns:
            (dist, step) arrays of length num_blocks. Blocks at or below the
            target have dist 0 and step -1.
        """
        start = time.time()
        n = self.num_blocks
        skips = self.skips.tolist()
        dist = [0] * n
        step = [-1] * n

        for i in range(self.target + 1, n):
            lower = max(self.target, i - skips[i])
            best = i - 1
            for j in range(i - 2, lower - 1, -1):
                if dist[j] < dist[best]:
                    best = j
            dist[i] = dist[best] + 1
            step[i] = best
            self._progress("shortest path", i)

        self.dist = np.array(dist, dtype=np.int64)
        self.step = np.array(step, dtype=np.int64)
        self.performance_stats['shortest_path'] = {'duration_seconds': time.time() - start}
        return self.dist, self.step

    def _ensure_shortest_path(self):
        if self.dist is None:
            self.shortest_path()

    def path(self, start: Optional[int] = None) -> list[int]:
        """Blocks on the shortest chain from `start` (default: newest block) down to the target."""
        self._ensure_shortest_path()
        if start is None:
            start = self.num_blocks - 1
        if start < self.target or start >= self.num_blocks:
            raise SimulationInputError(f"Block {start} is not between the target and the chain tip")
        blocks = [start]
        while blocks[-1] != self.target:
            blocks.append(int(self.step[blocks[-1]]))
        return blocks

    def path_proof_lengths(self) -> dict[str, int]:
        """Total proof hashes for every topology along the shortest chain.

        The chain is replayed from the genesis side so cache-based topologies
        see the cache as it was when each hop's block was created, and the
        incremental tree can grow instead of being rebuilt per hop.
        """
        start = time.time()
        self._ensure_shortest_path()
        hops = {}
        for block in self.path()[:-1]:
            hops[block] = int(self.step[block])

        costed = [s for s in self.strategies if not s.own_path]
        totals = {s.name: 0 for s in costed}
        cache = self.new_cache()
        skips = self.skips.tolist()

        for s in costed:
            s.reset()

        for i in range(1, self.num_blocks):
            if i in hops:
                for s in costed:
                    totals[s.name] += s.proof_len(i, hops[i], cache)
            cache.offer(i, skips[i])

        results = {}
        for s in self.strategies:
            if s.own_path:
                results[s.name] = self.single_backlink_length()
            else:
                results[s.name] = totals[s.name]

        self.performance_stats['path_proof_lengths'] = {'duration_seconds': time.time() - start}
        return results

    # --- BASELINE ---

    def single_backlink_length(self) -> int:
        """Hops needed when each block links only to its parent and its skip height."""
        n = self.num_blocks
        skips = self.skips.tolist()
        cost = [0] * n
        for i in range(self.target + 1, n):
            best = cost[i - 1] + 1
            height = skip_height(i)
            # The jump needs a draw good enough to cover it
            if height >= self.target and height >= i - skips[i] and cost[height] + 1 < best:
                best = cost[height] + 1
            cost[i] = best
        return cost[n - 1]

    # --- OPTIMAL LENGTHS ---

    def optimal_proof_lengths(self) -> dict[str, int]:
        """Cheapest proof per fast topology, each choosing its own chain.

        prooflen[i][s] = min over the skip window of proof_len_s(i, j) + prooflen[j][s]
        """
        start = time.time()
        fast = [s for s in self.strategies if s.is_fast]
        self.optimal_strategies = fast
        n = self.num_blocks
        skips = self.skips.tolist()
        table = [[0] * len(fast) for _ in range(n)]
        steps = [[-1] * len(fast) for _ in range(n)]
        cache = self.new_cache()

        for i in range(1, n):
            if i > self.target:
                lower = max(self.target, i - skips[i])
                best = [None] * len(fast)
                best_step = [i - 1] * len(fast)
                for j in range(i - 1, lower - 1, -1):
                    row = table[j]
                    for k, s in enumerate(fast):
                        cost = s.proof_len(i, j, cache) + row[k]
                        if best[k] is None or cost < best[k]:
                            best[k] = cost
                            best_step[k] = j
                table[i] = best
                steps[i] = best_step
                self._progress("optimal lengths", i)
            cache.offer(i, skips[i])

        self.optimal_table = np.array(table, dtype=np.int64).reshape(n, len(fast))
        self.optimal_steps = np.array(steps, dtype=np.int64).reshape(n, len(fast))
        self.performance_stats['optimal_proof_lengths'] = {'duration_seconds': time.time() - start}
        return {s.name: int(table[n - 1][k]) for k, s in enumerate(fast)}

    # --- INSPECTION ---

    def blocks(self) -> list[Block]:
        """Materialise the chain as Block records."""
        self._ensure_shortest_path()
        return [
            Block(index=i, draw=int(self.draws[i]), skip=int(self.skips[i]),
                  dist=int(self.dist[i]), step=int(self.step[i]))
            for i in range(self.num_blocks)
        ]

    def validate(self):
        """Re-check the shortest-path tables, and the optimal-length tables if computed.

        Raises:
            DPTableError: if a step leaves its window, a cost does not follow
            from its step, or a better predecessor was missed.
        """
        self._ensure_shortest_path()
        for i in range(self.num_blocks):
            if i <= self.target:
                if self.dist[i] != 0 or self.step[i] != -1:
                    raise DPTableError(f"Block {i} is at or below the target but has a path")
                continue
            lower = self.window_floor(i)
            j = int(self.step[i])
            if not lower <= j < i:
                raise DPTableError(f"Block {i} steps to {j}, outside [{lower}, {i - 1}]")
            if self.dist[i] != self.dist[j] + 1:
                raise DPTableError(f"Block {i} has dist {self.dist[i]} but steps to dist {self.dist[j]}")
            if self.dist[lower:i].min() + 1 != self.dist[i]:
                raise DPTableError(f"Block {i} missed a shorter predecessor")

        if self.optimal_table is not None:
            self._validate_optimal()

    def _validate_optimal(self):
        # Replays the cache so cache-backed costs see the same state as the DP
        table, steps = self.optimal_table, self.optimal_steps
        skips = self.skips.tolist()
        cache = self.new_cache()
        for i in range(self.num_blocks):
            for k, s in enumerate(self.optimal_strategies):
                j = int(steps[i][k])
                if i <= self.target:
                    if table[i][k] != 0 or j != -1:
                        raise DPTableError(f"{s.name}: block {i} is at or below the target but has a cost")
                    continue
                lower = self.window_floor(i)
                if not lower <= j < i:
                    raise DPTableError(f"{s.name}: block {i} steps to {j}, outside [{lower}, {i - 1}]")
                if table[i][k] != s.proof_len(i, j, cache) + table[j][k]:
                    raise DPTableError(f"{s.name}: block {i} cost {table[i][k]} does not follow from its step to {j}")
            if i:
                cache.offer(i, skips[i])

    def run(self, mode: Optional[SimulationMode] = None) -> ChainSummary:
        """Run the analyses a mode asks for and collect the totals."""
        mode = mode or self.config.mode
        summary = ChainSummary(num_blocks=self.num_blocks, target=self.target, seed=self.seed)

        self.print_verbose(f"🔗 Simulating {self.num_blocks} blocks (target {self.target}, seed {self.seed})")
        self.shortest_path()
        summary.path_hops = int(self.dist[-1])

        if mode in (SimulationMode.PATH, SimulationMode.COMPARE, SimulationMode.ALL):
            summary.path_lengths = self.path_proof_lengths()
        if mode in (SimulationMode.OPTIMAL, SimulationMode.COMPARE, SimulationMode.ALL):
            summary.optimal_lengths = self.optimal_proof_lengths()
        if mode in (SimulationMode.INCREMENTAL, SimulationMode.ALL):
            chain = AncestorChain(self.skips, self.target, verbose=self.verbose)
            summary.incremental_path, summary.incremental_hashes = chain.run()

        self.print_verbose(f"✅ Shortest chain: {summary.path_hops} hops")
        return summary
