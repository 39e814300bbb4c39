#!/usr/bin/env python3
"""
SPV Proof-Length Command Line

Calculates proof length for SPV chains of block headers, using various
different prevtree topologies.

    python spv_main.py 100000 --seed 3                 # path + optimal lengths
    python spv_main.py prooflen 5000 --mmr --huffman   # selected topologies only
    python spv_main.py incremental 5000                # ancestor-list variant
    python spv_main.py tree 20                         # incremental tree layout
    python spv_main.py sweep --lengths 1000 10000 --seeds 5
"""

import argparse
import sys

from ancestor_paths import AncestorChain
from basic_data_structure import SimulationInputError
from chain_simulator import ChainSimulator
from incremental_tree import IncrementalTree
from proof_length_report import ProofLengthReport, run_sweep
from random_stream import block_draws, skip_distances
from sim_config import DEFAULT_CACHE_SIZE, DEFAULT_SUBTREE_SIZE, SimulationConfig, SimulationMode

COMMANDS = ('prooflen', 'incremental', 'tree', 'sweep')

# Flag -> topology name
TOPOLOGY_FLAGS = {
    '--array': 'array',
    '--optimal': 'optimal',
    '--breadth-batch': 'breadth-batch',
    '--array-batch': 'array-batch',
    '--mmr': 'mmr',
    '--mmr-linear': 'mmr-linear',
    '--huffman': 'huffman',
    '--huffman-array': 'huffman-array',
    '--naive': 'naive',
    '--single-backlink': 'single-backlink',
}

MODE_MAP = {
    'path': SimulationMode.PATH,
    'optimal': SimulationMode.OPTIMAL,
    'incremental': SimulationMode.INCREMENTAL,
    'compare': SimulationMode.COMPARE,
    'all': SimulationMode.ALL,
}


def _add_chain_arguments(parser):
    parser.add_argument('--target', type=int, default=0,
                        help='Block number to terminate SPV proof at')
    parser.add_argument('--seed', type=int, default=0,
                        help='Seed for deterministic RNG')
    parser.add_argument('--verbose', action='store_true',
                        help='Print progress while simulating')


def _add_topology_arguments(parser):
    group = parser.add_argument_group('topologies (default: all)')
    for flag, name in TOPOLOGY_FLAGS.items():
        group.add_argument(flag, dest='strategies', action='append_const', const=name,
                           help=f'Include the {name} topology')
    group.add_argument('--no-incremental', dest='include_incremental', action='store_false',
                       help='Skip the incremental tree (slow on long chains)')
    parser.add_argument('--cache-size', type=int, default=DEFAULT_CACHE_SIZE,
                        help='Entries kept by the Huffman skip cache')
    parser.add_argument('--subtree-size', type=int, default=DEFAULT_SUBTREE_SIZE,
                        help='Blocks per batch for the batched topologies')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Calculates proof length for SPV chains of block headers, '
                    'using various different prevtree topologies')
    commands = parser.add_subparsers(dest='command', required=True)

    prooflen = commands.add_parser('prooflen', help='Proof hashes per topology')
    prooflen.add_argument('num', type=int, help='Chain length in blocks')
    _add_chain_arguments(prooflen)
    _add_topology_arguments(prooflen)
    prooflen.add_argument('--mode', choices=list(MODE_MAP), default='compare',
                          help='path, optimal, both (compare) or all incl. the ancestor-list variant')

    incremental = commands.add_parser('incremental', help='Ancestor-list variant')
    incremental.add_argument('num', type=int, help='Chain length in blocks')
    _add_chain_arguments(incremental)

    tree = commands.add_parser('tree', help='Grow the incremental tree and show depths')
    tree.add_argument('num', type=int, help='Number of values to insert')

    sweep = commands.add_parser('sweep', help='Run many chains and write a report')
    sweep.add_argument('--lengths', type=int, nargs='+', default=[1000, 10000],
                       help='Chain lengths to simulate')
    sweep.add_argument('--seeds', type=int, default=3, help='Seeds 0..n-1 per length')
    sweep.add_argument('--target', type=int, default=0)
    sweep.add_argument('--mode', choices=list(MODE_MAP), default='compare')
    sweep.add_argument('--output-dir', default='report', help='Where to write the report')
    sweep.add_argument('--verbose', action='store_true')
    _add_topology_arguments(sweep)
    return parser


def config_from_args(args, num_blocks) -> SimulationConfig:
    return SimulationConfig(
        num_blocks=num_blocks,
        target=args.target,
        seed=getattr(args, 'seed', 0),
        mode=MODE_MAP[getattr(args, 'mode', 'compare')],
        strategies=getattr(args, 'strategies', None) or [],
        include_incremental=getattr(args, 'include_incremental', True),
        cache_size=getattr(args, 'cache_size', DEFAULT_CACHE_SIZE),
        subtree_size=getattr(args, 'subtree_size', DEFAULT_SUBTREE_SIZE),
        verbose=args.verbose,
    )


def print_proof_lengths(args):
    config = config_from_args(args, args.num)
    summary = ChainSimulator(config).run()

    for name, hashes in summary.path_lengths.items():
        print(f"{name}: proof hashes {hashes}")
    for name, hashes in summary.optimal_lengths.items():
        print(f"prooflen-{name}: proof hashes {hashes}")
    if summary.incremental_hashes is not None:
        print(f"prooflen: proof path {summary.incremental_path}, hashes {summary.incremental_hashes}")


def print_incremental_length(args):
    config = config_from_args(args, args.num)
    config.check()
    skips = skip_distances(block_draws(config.num_blocks, config.seed))
    path, hashes = AncestorChain(skips, config.target, verbose=config.verbose).run()
    print(f"prooflen: proof path {path}, hashes {hashes}")


def print_tree_layout(args):
    if args.num < 0:
        raise SimulationInputError(f"Cannot insert {args.num} values")
    tree = IncrementalTree()
    for value in range(args.num):
        swaps = tree.insert(value)
        print(f"Adding node {value}: max_depth {tree.max_depth}, swaps {swaps}")

    tree.validate()
    for value in range(args.num - 1, -1, -1):
        print(f"Depth of {value} = {tree.depth_of(value)}")
    tree.teardown()


def run_report(args):
    config = config_from_args(args, max(args.lengths))
    config.check()
    if min(args.lengths) <= args.target:
        raise SimulationInputError(f"Target {args.target} must be below every chain length")

    print(f"🚀 Sweeping {len(args.lengths)} chain lengths x {args.seeds} seeds")
    df = run_sweep(args.lengths, range(args.seeds), args.target, config, config.mode)
    report = ProofLengthReport(args.output_dir)
    report.generate(df, {
        'lengths': args.lengths,
        'seeds': args.seeds,
        'target': args.target,
        'mode': config.mode.value,
        'topologies': config.enabled_strategies(),
    })
    print(f"\n✅ Report written to {report.output_directory}")


HANDLERS = {
    'prooflen': print_proof_lengths,
    'incremental': print_incremental_length,
    'tree': print_tree_layout,
    'sweep': run_report,
}


def main(argv=None) -> int:
    """Main CLI interface."""
    argv = list(sys.argv[1:] if argv is None else argv)
    # No command given means prooflen; options may come before the chain length
    if argv and argv[0] not in ('-h', '--help') and not set(argv) & set(COMMANDS):
        argv.insert(0, 'prooflen')

    args = build_parser().parse_args(argv)
    try:
        HANDLERS[args.command](args)
    except SimulationInputError as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
