import json

from proof_length_report import RESULT_COLUMNS, ProofLengthReport, run_sweep, summarize
from sim_config import SimulationConfig, SimulationMode


def _sweep(mode=SimulationMode.ALL):
    config = SimulationConfig(strategies=['mmr', 'naive', 'single-backlink'])
    return run_sweep([50, 100], range(2), config=config, mode=mode)


def test_sweep_rows():
    df = _sweep()
    assert list(df.columns) == RESULT_COLUMNS
    # 3 path + 2 optimal + 1 ancestor-list row per chain
    assert len(df) == 24
    assert set(df['mode']) == {'path', 'optimal', 'incremental'}
    assert set(df[df['mode'] == 'optimal']['strategy']) == {'mmr', 'naive'}
    assert (df[df['mode'] == 'incremental']['strategy'] == 'ancestor-list').all()


def test_sweep_does_not_touch_base_config():
    config = SimulationConfig(num_blocks=7, strategies=['naive'])
    run_sweep([30], [5], config=config, mode=SimulationMode.PATH)
    assert config.num_blocks == 7
    assert config.seed == 0


def test_summary_statistics():
    summary = summarize(_sweep(SimulationMode.PATH))
    assert len(summary) == 6
    assert (summary['count'] == 2).all()
    assert (summary['min'] <= summary['max']).all()


def test_report_files(tmp_path):
    df = _sweep()
    report = ProofLengthReport(str(tmp_path))
    charts = report.generate(df, {'lengths': [50, 100]})

    assert len(charts) == 3
    assert all(chart.exists() for chart in charts)
    assert (report.data_dir / "proof_lengths.csv").exists()
    assert (report.data_dir / "summary_statistics.csv").exists()
    with open(report.output_directory / "run_metadata.json") as f:
        metadata = json.load(f)
    assert metadata['run_id'] == report.run_id
    assert metadata['lengths'] == [50, 100]


def test_chart_without_results(tmp_path):
    report = ProofLengthReport(str(tmp_path))
    assert report.create_proof_length_chart(_sweep(SimulationMode.PATH), 'optimal') is None
