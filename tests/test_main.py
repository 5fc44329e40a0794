import json
import logging

import matplotlib
matplotlib.use("Agg")

import pytest

from main import main

YI_TRACE = """L 10,1
M 20,1
L 22,1
S 18,1
L 110,1
L 210,1
M 12,1
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "yi.trace").write_text(YI_TRACE)
    return tmp_path


def test_trace_run_prints_summary(workdir, capsys):
    assert main(["-s", "4", "-E", "2", "-b", "4", "-t", "yi.trace"]) == 0
    out = capsys.readouterr().out
    assert "hits:1 misses:4 evictions:1 dirty_bytes_in_cache:0 dirty_bytes_evicted:16" in out


def test_end_to_end_example(workdir, capsys):
    (workdir / "tiny.trace").write_text("L 0,1\nL 1,1\nL 0,1\n")
    assert main(["-s", "1", "-E", "1", "-b", "0", "-t", "tiny.trace"]) == 0
    assert "hits:1 misses:2 evictions:0" in capsys.readouterr().out


def test_missing_trace_is_config_error(workdir, capsys):
    assert main(["-s", "1", "-E", "1", "-b", "0", "-t", "missing.trace"]) == 1
    assert "hits:" not in capsys.readouterr().out


def test_invalid_geometry_is_config_error(workdir, capsys):
    assert main(["-s", "60", "-E", "1", "-b", "8", "-t", "yi.trace"]) == 1
    assert main(["-s", "1", "-E", "0", "-b", "0", "-t", "yi.trace"]) == 1
    assert main(["-t", "yi.trace"]) == 1
    assert "hits:" not in capsys.readouterr().out


def test_explicit_config_must_exist(workdir):
    assert main(["-c", "absent.json", "-t", "yi.trace"]) == 1


def test_config_file_and_json_output(workdir):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 4, "associativity": 2, "block_bits": 4},
        "trace": {"path": "yi.trace"},
        "output": {"results_dir": "out", "results_file": "r.json"},
    }))
    assert main(["-c", "cfg.json"]) == 0
    saved = json.loads((workdir / "out" / "r.json").read_text())
    assert saved["cache"]["num_sets"] == 16
    assert saved["results"]["misses"] == 4
    assert saved["results"]["dirty_bytes_evicted"] == 16


def test_command_line_overrides_config(workdir, capsys):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 4, "associativity": 2, "block_bits": 4},
    }))
    assert main(["-c", "cfg.json", "-s", "0", "-E", "1", "-t", "yi.trace"]) == 0
    # fully associative, single line: every access to a new block evicts
    assert "hits:0 misses:5 evictions:4 dirty_bytes_in_cache:0 dirty_bytes_evicted:16" in capsys.readouterr().out


def test_generated_workload_with_plots(workdir):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 2, "associativity": 2, "block_bits": 4},
        "workload": {"working_set_kb": 1, "access_pattern": "random", "random_seed": 5},
        "output": {"hitmiss_plot": "plots/hm.png", "breakdown_plot": "plots/bars.png"},
    }))
    rc = main(["-c", "cfg.json", "--generate", "300", "--save-trace", "gen.trace",
               "--output", "res.json", "--plot"])
    assert rc == 0
    assert len((workdir / "gen.trace").read_text().splitlines()) == 300
    saved = json.loads((workdir / "res.json").read_text())
    assert saved["results"]["hits"] + saved["results"]["misses"] == 300
    assert (workdir / "plots" / "hm.png").exists()
    assert (workdir / "plots" / "bars.png").exists()

    # replaying the saved trace reproduces the same counts
    assert main(["-c", "cfg.json", "-t", "gen.trace", "--output", "replay.json"]) == 0
    replay = json.loads((workdir / "replay.json").read_text())
    assert replay["results"] == saved["results"]


def test_non_utf8_trace_line_is_skipped(workdir, capsys):
    (workdir / "bad.trace").write_bytes(b"L 0,1\n\xff\xfe garbage\nL 0,1\n")
    assert main(["-s", "0", "-E", "1", "-b", "0", "-t", "bad.trace"]) == 0
    assert "hits:1 misses:1 evictions:0" in capsys.readouterr().out


def test_workload_num_requests_runs_without_trace(workdir):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 1, "associativity": 2, "block_bits": 4},
        "workload": {"num_requests": 50, "working_set_kb": 1, "random_seed": 1},
    }))
    assert main(["-c", "cfg.json", "--output", "r.json"]) == 0
    saved = json.loads((workdir / "r.json").read_text())
    assert saved["results"]["hits"] + saved["results"]["misses"] == 50


def test_bare_generate_uses_configured_num_requests(workdir):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 1, "associativity": 2, "block_bits": 4},
        "trace": {"path": "yi.trace"},
        "workload": {"num_requests": 40, "working_set_kb": 1, "random_seed": 2},
    }))
    assert main(["-c", "cfg.json", "--generate", "--output", "r.json"]) == 0
    saved = json.loads((workdir / "r.json").read_text())
    assert saved["results"]["hits"] + saved["results"]["misses"] == 40


def test_trace_in_config_wins_over_num_requests(workdir, capsys):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 4, "associativity": 2, "block_bits": 4},
        "trace": {"path": "yi.trace"},
        "workload": {"num_requests": 40},
    }))
    assert main(["-c", "cfg.json"]) == 0
    assert "hits:1 misses:4 evictions:1" in capsys.readouterr().out


def test_invalid_num_requests_is_config_error(workdir):
    (workdir / "cfg.json").write_text(json.dumps({
        "cache": {"set_bits": 1, "associativity": 1, "block_bits": 0},
        "workload": {"num_requests": -3},
    }))
    assert main(["-c", "cfg.json"]) == 1
    assert main(["-c", "cfg.json", "--generate", "-5"]) == 1


def test_debug_logs_every_access(workdir, caplog):
    caplog.set_level(logging.DEBUG)
    assert main(["-s", "4", "-E", "2", "-b", "4", "-t", "yi.trace", "--debug"]) == 0
    accesses = [r.getMessage() for r in caplog.records if r.name == "simulator"]
    assert accesses == [
        "L 10 miss",
        "L 22 miss",
        "S 18 hit",
        "L 110 miss",
        "L 210 miss eviction",
    ]
