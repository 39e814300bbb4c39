import pytest

from ancestor_paths import AncestorChain, AncestorList
from basic_data_structure import AncestorEntry, DPTableError, SimulationInputError
from random_stream import block_draws, skip_distances


def test_list_prefix_shares_cells():
    full = AncestorList()
    for blocknum in range(5):
        full = full.append(AncestorEntry(blocknum, blocknum * 2))
    head = full.prefix(3)
    assert [e.blocknum for e in head] == [0, 1, 2]
    assert head.tail is full.tail.parent.parent
    assert len(full) == 5
    assert full[4] == AncestorEntry(4, 8)
    assert full.index_of(3) == 3
    assert full.index_of(9) == -1


def test_append_leaves_original_alone():
    base = AncestorList().append(AncestorEntry(0, 0))
    left = base.append(AncestorEntry(1, 1))
    right = base.append(AncestorEntry(2, 2))
    assert [e.blocknum for e in left] == [0, 1]
    assert [e.blocknum for e in right] == [0, 2]
    assert len(base) == 1


def test_prefix_out_of_range():
    with pytest.raises(IndexError):
        AncestorList().prefix(1)


def test_parent_links_only():
    chain = AncestorChain([0, 1, 1, 1])
    assert chain.run() == (2, 5)
    assert chain.released == 1
    assert chain.blocks[0].ancestors is None
    assert chain.blocks[3].prev_used == 2


def test_long_skips_jump_to_target():
    chain = AncestorChain([0, 1, 2, 3])
    assert chain.run() == (1, 1)
    assert chain.released == 2
    assert chain.blocks[3].prev_used == 0


def test_target_only_chain():
    assert AncestorChain([0]).run() == (0, 0)
    assert AncestorChain([0, 1, 1], target=2).run() == (0, 0)


def test_blocks_below_target_are_untouched():
    chain = AncestorChain([0, 1, 2, 3, 4], target=2)
    chain.run()
    assert chain.blocks[0] is None and chain.blocks[1] is None
    assert chain.blocks[4].ancestors[0] == AncestorEntry(2, 0)


def test_every_choice_is_reachable():
    skips = skip_distances(block_draws(2000, seed=3))
    chain = AncestorChain(skips, target=10)
    path, hashes = chain.run()
    assert path >= 1 and hashes >= 1
    for block in chain.blocks[11:]:
        if block.ancestors is None:
            continue
        used = block.ancestors[block.prev_used]
        assert used.blocknum >= block.index - block.skip


def test_bad_input():
    with pytest.raises(SimulationInputError):
        AncestorChain([])
    with pytest.raises(SimulationInputError):
        AncestorChain([0, 1], target=2)


def test_missing_block_in_list():
    with pytest.raises(DPTableError):
        AncestorChain.proof_len([AncestorEntry(0, 0)], 5)
