#!/usr/bin/env python3
"""
Proof-Length Sweep Reports

Runs the simulator over a grid of chain lengths and seeds and writes:
- the raw results as CSV (one row per length x seed x topology x mode)
- summary statistics per topology and chain length
- run metadata as JSON
- a line chart of mean proof hashes against chain length
"""

import json
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from chain_simulator import ChainSimulator
from proof_strategies import STRATEGY_NAMES
from sim_config import SimulationConfig, SimulationMode, get_simulation_config

RESULT_COLUMNS = ['num_blocks', 'seed', 'target', 'mode', 'strategy', 'proof_hashes', 'path_hops']


def run_sweep(lengths, seeds, target: int = 0, config: Optional[SimulationConfig] = None,
              mode: SimulationMode = SimulationMode.ALL) -> pd.DataFrame:
    """Simulate every (length, seed) pair and collect one row per topology result."""
    base = get_simulation_config(config)
    rows = []
    for num_blocks in lengths:
        for seed in seeds:
            run_config = replace(base, num_blocks=num_blocks, seed=seed, target=target, mode=mode)
            summary = ChainSimulator(run_config).run()

            for name, hashes in summary.path_lengths.items():
                rows.append([num_blocks, seed, target, 'path', name, hashes, summary.path_hops])
            for name, hashes in summary.optimal_lengths.items():
                rows.append([num_blocks, seed, target, 'optimal', name, hashes, summary.path_hops])
            if summary.incremental_hashes is not None:
                rows.append([num_blocks, seed, target, 'incremental', 'ancestor-list',
                             summary.incremental_hashes, summary.incremental_path])

            if base.verbose:
                print(f"  ✅ {num_blocks} blocks, seed {seed}: {summary.path_hops} hops")
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Mean/min/max proof hashes per mode, topology and chain length."""
    if df.empty:
        return df
    return (df.groupby(['mode', 'strategy', 'num_blocks'])['proof_hashes']
              .agg(['count', 'mean', 'std', 'min', 'max'])
              .round(4)
              .reset_index())


class ProofLengthReport:
    """Writes sweep results into a timestamped output directory."""

    def __init__(self, output_dir: str = "report"):
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        self.run_id = f"prooflen_{timestamp}"
        self.output_directory = Path(output_dir) / self.run_id
        self.charts_dir = self.output_directory / "charts"
        self.data_dir = self.output_directory / "data"
        for dir_path in [self.charts_dir, self.data_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

        plt.rcParams['figure.dpi'] = 150
        plt.rcParams['savefig.bbox'] = 'tight'
        plt.rcParams['font.size'] = 10

    def save_processed_data(self, df: pd.DataFrame):
        """Save raw rows and summary statistics as CSV."""
        csv_file = self.data_dir / "proof_lengths.csv"
        df.to_csv(csv_file, index=False)
        print(f"💾 Results saved to: {csv_file}")

        summary_file = self.data_dir / "summary_statistics.csv"
        summarize(df).to_csv(summary_file, index=False)
        print(f"💾 Summary statistics saved to: {summary_file}")
        return csv_file, summary_file

    def save_run_metadata(self, metadata: dict):
        metadata_file = self.output_directory / "run_metadata.json"
        run_info = {'run_id': self.run_id, 'created': datetime.now().isoformat()}
        run_info.update(metadata)
        with open(metadata_file, 'w') as f:
            json.dump(run_info, f, indent=2)
        print(f"💾 Saved run metadata: {metadata_file}")
        return metadata_file

    def create_proof_length_chart(self, df: pd.DataFrame, mode: str = 'path') -> Optional[Path]:
        """Line chart of mean proof hashes vs chain length, one line per topology."""
        data = df[df['mode'] == mode]
        if data.empty:
            print(f"⚠️  No '{mode}' results to chart")
            return None

        means = data.groupby(['strategy', 'num_blocks'])['proof_hashes'].mean().unstack(0)
        fig, ax = plt.subplots(figsize=(10, 6))
        colors = plt.cm.tab20(np.linspace(0, 1, max(len(means.columns), 1)))
        for color, strategy in zip(colors, means.columns):
            ax.plot(means.index, means[strategy], marker='o', color=color,
                    label=STRATEGY_NAMES.get(strategy, strategy))

        ax.set_xscale('log')
        ax.set_xlabel('Chain length (blocks)')
        ax.set_ylabel('Mean proof hashes')
        ax.set_title(f'SPV proof length by prevtree topology ({mode})')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=8)

        chart_file = self.charts_dir / f"proof_lengths_{mode}.png"
        fig.savefig(chart_file)
        plt.close(fig)
        print(f"📈 Chart saved to: {chart_file}")
        return chart_file

    def generate(self, df: pd.DataFrame, metadata: Optional[dict] = None):
        """Write every artefact for one sweep."""
        self.save_processed_data(df)
        self.save_run_metadata(metadata or {})
        charts = []
        if df.empty:
            return charts
        for mode in sorted(df['mode'].unique()):
            chart = self.create_proof_length_chart(df, mode)
            if chart is not None:
                charts.append(chart)
        return charts
