import pytest

from spv_main import main


def test_tree_layout(capsys):
    assert main(['tree', '3']) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "Adding node 0: max_depth 0, swaps 0",
        "Adding node 1: max_depth 1, swaps 0",
        "Adding node 2: max_depth 1, swaps 1",
        "Depth of 2 = 0",
        "Depth of 1 = 1",
        "Depth of 0 = 1",
    ]


def test_bare_number_runs_prooflen(capsys):
    assert main(['300', '--mmr', '--naive', '--seed', '2']) == 0
    out = capsys.readouterr().out
    assert "mmr: proof hashes " in out
    assert "naive: proof hashes " in out
    assert "prooflen-mmr: proof hashes " in out
    assert "array" not in out


def test_selected_mode(capsys):
    assert main(['prooflen', '200', '--single-backlink', '--mode', 'path']) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 1
    assert out[0].startswith("single-backlink: proof hashes ")


def test_incremental_command(capsys):
    assert main(['incremental', '500', '--seed', '1']) == 0
    out = capsys.readouterr().out
    assert out.startswith("prooflen: proof path ")


def test_target_past_chain_end(capsys):
    assert main(['prooflen', '10', '--target', '10']) == 1
    assert "❌ ERROR" in capsys.readouterr().err


def test_missing_chain_length():
    with pytest.raises(SystemExit):
        main(['prooflen'])


def test_sweep_writes_report(tmp_path, capsys):
    assert main(['sweep', '--lengths', '40', '80', '--seeds', '2', '--mmr',
                 '--output-dir', str(tmp_path)]) == 0
    run_dirs = list(tmp_path.iterdir())
    assert len(run_dirs) == 1
    assert (run_dirs[0] / "data" / "proof_lengths.csv").exists()
    assert (run_dirs[0] / "run_metadata.json").exists()
    assert "Report written" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [
    ['--seed', '3', '100', '--naive'],
    ['--target', '5', '--naive', '100'],
    ['--naive', '100'],
])
def test_options_before_chain_length(argv, capsys):
    assert main(argv) == 0
    assert "naive: proof hashes " in capsys.readouterr().out


def test_incremental_mode(capsys):
    assert main(['prooflen', '300', '--naive', '--mode', 'incremental']) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 1
    assert out[0].startswith("prooflen: proof path ")
