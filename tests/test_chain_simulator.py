"""
Tests for the shortest-path and optimal-length programs.

Run with: pytest tests/
"""
import pytest

from basic_data_structure import DPTableError, SimulationInputError
from chain_simulator import ChainSimulator
from proof_strategies import build_strategies, incremental_proof_len
from sim_config import SimulationConfig, SimulationMode
from skip_cache import TopSkipCache


def _simulator(num_blocks=600, target=0, seed=0, **kwargs):
    return ChainSimulator(SimulationConfig(num_blocks=num_blocks, target=target, seed=seed, **kwargs))


def test_same_seed_same_results():
    first = _simulator(seed=4, mode=SimulationMode.COMPARE).run()
    second = _simulator(seed=4, mode=SimulationMode.COMPARE).run()
    assert first == second


def test_draws_do_not_depend_on_target():
    assert _simulator(target=0).draws.tolist() == _simulator(target=100).draws.tolist()


def test_longer_chain_keeps_earlier_distances():
    short, _ = _simulator(num_blocks=300, seed=9).shortest_path()
    long, _ = _simulator(num_blocks=900, seed=9).shortest_path()
    assert short.tolist() == long[:300].tolist()


@pytest.mark.parametrize("seed, target", [(0, 0), (1, 0), (2, 37), (3, 250)])
def test_tables_validate(seed, target):
    sim = _simulator(seed=seed, target=target)
    sim.shortest_path()
    sim.validate()
    assert (sim.dist[:target + 1] == 0).all()
    assert (sim.step[:target + 1] == -1).all()


def test_path_walks_from_newest_block_to_target():
    sim = _simulator(num_blocks=1000, target=12, seed=5)
    path = sim.path()
    assert path[0] == 999
    assert path[-1] == 12
    assert len(path) - 1 == sim.dist[-1]
    for block, prev in zip(path, path[1:]):
        assert sim.window_floor(block) <= prev < block

    mid = path[len(path) // 2]
    assert sim.path(mid) == path[len(path) // 2:]
    with pytest.raises(SimulationInputError):
        sim.path(5)


def test_validate_catches_tampered_step():
    sim = _simulator(seed=6)
    sim.shortest_path()
    sim.step[300] = 310
    with pytest.raises(DPTableError):
        sim.validate()


def test_validate_catches_missed_shortcut():
    sim = _simulator(seed=6)
    sim.shortest_path()
    sim.dist[500] += 1
    with pytest.raises(DPTableError):
        sim.validate()


@pytest.mark.parametrize("num_blocks, target", [(10, 10), (10, 11), (10, -1), (0, 0)])
def test_bad_chain_parameters(num_blocks, target):
    with pytest.raises(SimulationInputError):
        _simulator(num_blocks=num_blocks, target=target)


def test_bad_cache_size():
    with pytest.raises(SimulationInputError):
        _simulator(cache_size=0)


def test_optimal_never_worse_than_shortest_chain():
    sim = _simulator(num_blocks=1500, seed=8, mode=SimulationMode.COMPARE, include_incremental=False)
    summary = sim.run()
    fast = [s.name for s in sim.strategies if s.is_fast]
    assert set(summary.optimal_lengths) == set(fast)
    for name in fast:
        assert summary.optimal_lengths[name] <= summary.path_lengths[name]
    assert sim.optimal_table.shape == (1500, len(fast))


def test_single_backlink_bounds():
    for seed in range(4):
        sim = _simulator(num_blocks=800, target=20, seed=seed, strategies=['single-backlink'])
        lengths = sim.path_proof_lengths()
        hops = lengths['single-backlink']
        assert sim.dist[-1] <= hops <= 800 - 1 - 20


def test_incremental_strategy_sums_hops():
    sim = _simulator(num_blocks=400, seed=3, strategies=['incremental'])
    lengths = sim.path_proof_lengths()
    path = sim.path()
    expected = sum(incremental_proof_len(block, prev) for block, prev in zip(path, path[1:]))
    assert lengths['incremental'] == expected


def test_path_mode_skips_other_analyses():
    summary = _simulator(mode=SimulationMode.PATH, include_incremental=False).run()
    assert summary.path_lengths
    assert summary.optimal_lengths == {}
    assert summary.incremental_hashes is None


def test_all_mode_includes_ancestor_lists():
    summary = _simulator(num_blocks=300, mode=SimulationMode.ALL, include_incremental=False).run()
    assert summary.incremental_path >= 1
    assert summary.incremental_hashes >= 1


def test_single_block_chain():
    summary = _simulator(num_blocks=1).run()
    assert summary.path_hops == 0
    assert set(summary.path_lengths.values()) == {0}
    assert set(summary.optimal_lengths.values()) == {0}
    assert (summary.incremental_path, summary.incremental_hashes) == (0, 0)


def test_target_is_newest_block():
    sim = _simulator(num_blocks=50, target=49, mode=SimulationMode.COMPARE)
    summary = sim.run()
    assert sim.path() == [49]
    assert set(summary.path_lengths.values()) == {0}


def test_blocks_carry_tables():
    sim = _simulator(num_blocks=100, seed=1)
    blocks = sim.blocks()
    assert len(blocks) == 100
    assert blocks[0].skip == 0
    assert blocks[99].dist == sim.dist[99]
    assert blocks[99].step == sim.step[99]


def test_shortest_path_prefers_closest_predecessor():
    sim = _simulator(num_blocks=2000, target=5, seed=2)
    dist, step = sim.shortest_path()
    for i in range(6, 2000):
        lower = sim.window_floor(i)
        best = dist[lower:i].min()
        assert step[i] == max(j for j in range(lower, i) if dist[j] == best)


def test_optimal_tables_match_brute_force():
    config = SimulationConfig(num_blocks=300, target=7, seed=12, cache_size=4,
                              include_incremental=False, mode=SimulationMode.OPTIMAL)
    sim = ChainSimulator(config)
    lengths = sim.optimal_proof_lengths()

    # Fresh strategy objects and a fresh cache, offered each block after it is costed
    fast = [s for s in build_strategies(config) if s.is_fast]
    assert [s.name for s in fast] == [s.name for s in sim.optimal_strategies]
    cache = TopSkipCache(4)
    table = [[0] * len(fast) for _ in range(300)]
    for i in range(1, 300):
        if i > 7:
            lower = max(7, i - int(sim.skips[i]))
            for k, s in enumerate(fast):
                costs = {j: s.proof_len(i, j, cache) + table[j][k] for j in range(lower, i)}
                best = min(costs.values())
                table[i][k] = best
                assert sim.optimal_table[i][k] == best
                assert sim.optimal_steps[i][k] == max(j for j, c in costs.items() if c == best)
        cache.offer(i, int(sim.skips[i]))

    assert lengths == {s.name: table[299][k] for k, s in enumerate(fast)}
    assert (sim.optimal_steps[:8] == -1).all()
    sim.validate()


def test_validate_checks_optimal_tables():
    sim = _simulator(num_blocks=300, target=3, seed=4, cache_size=4,
                     strategies=['mmr', 'huffman'], mode=SimulationMode.OPTIMAL)
    sim.run()
    sim.validate()
    sim.optimal_table[200][1] += 1
    with pytest.raises(DPTableError):
        sim.validate()


def test_validate_catches_optimal_step_outside_window():
    sim = _simulator(num_blocks=300, seed=4, strategies=['naive'], mode=SimulationMode.OPTIMAL)
    sim.run()
    sim.optimal_steps[150][0] = 150
    with pytest.raises(DPTableError):
        sim.validate()


def test_path_lengths_repeat_on_second_replay():
    sim = _simulator(num_blocks=400, seed=7, strategies=['incremental', 'huffman', 'mmr'])
    assert sim.path_proof_lengths() == sim.path_proof_lengths()
