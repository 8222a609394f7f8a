"""Tests for the command-line entry points"""

import argparse
import asyncio
import json

import pytest
import yaml

from conftest import ZeroSource
from main import build_config, run_benchmark, run_demo, run_simulation
from zk.errors import ParameterError
from zk.zk_proofs import MODP_2048_GROUP, TOY_GROUP


def make_args(tmp_path, **overrides):
    values = dict(config=str(tmp_path / "absent.yaml"), preset=None, rounds=None,
                  security_bits=None, workers=None)
    values.update(overrides)
    return argparse.Namespace(**values)


class TestBuildConfig:

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = build_config(make_args(tmp_path))
        assert config.group == TOY_GROUP
        assert config.protocol.effective_rounds() == 1

    def test_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = build_config(make_args(
            tmp_path, preset="modp2048", rounds=5, security_bits=20, workers=3))
        assert config.group == MODP_2048_GROUP
        assert config.protocol.rounds == 5
        assert config.protocol.effective_rounds() == 20
        assert config.protocol.parallel_workers == 3

    def test_workers_keep_configured_security_bits(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'protocol': {'target_security_bits': 40}}))

        config = build_config(make_args(tmp_path, config=str(path), workers=2))
        assert config.protocol.target_security_bits == 40
        assert config.protocol.effective_rounds() == 40
        assert config.protocol.parallel_workers == 2

    def test_rounds_replace_configured_security_bits(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'protocol': {'target_security_bits': 40}}))

        config = build_config(make_args(tmp_path, config=str(path), rounds=6))
        assert config.protocol.target_security_bits is None
        assert config.protocol.effective_rounds() == 6

    def test_invalid_rounds(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ParameterError):
            build_config(make_args(tmp_path, rounds=0))


def test_demo_run(system_config, capsys):
    assert asyncio.run(run_demo(system_config, secret=12345, impostor_rounds=40))

    output = capsys.readouterr().out
    assert "Prover's public key (y = g^x mod p): 166103576" in output
    assert "Verification successful" in output
    assert "REJECTED" in output

    report = json.loads((system_config.results_dir / "demo_report.json").read_text())
    labels = [session['label'] for session in report['data']['sessions']]
    assert labels == ["prover", "impostor", "amplified"]
    assert (system_config.results_dir / "performance_report.txt").exists()


def test_simulation_run(system_config, capsys):
    assert asyncio.run(run_simulation(system_config, rounds=3))
    assert "3/3 verify" in capsys.readouterr().out


def test_demo_succeeds_when_no_challenge_one_is_drawn(system_config, capsys):
    # every round draws b = 0, which any secret passes
    assert asyncio.run(run_demo(system_config, secret=12345, impostor_rounds=1, source=ZeroSource()))
    output = capsys.readouterr().out
    assert "no b=1 challenge was drawn" in output
    assert "ACCEPTED (BAD!)" not in output


def test_benchmark_saves_metrics(system_config):
    assert run_benchmark(system_config, trials=2)
    metrics = json.loads((system_config.results_dir / "benchmark_metrics.json").read_text())
    assert metrics['summary']['operations']['toy_prove']['count'] == 2


def test_benchmark_respects_config_flag(system_config):
    system_config.enable_benchmarking = False
    assert not run_benchmark(system_config, trials=2)
    assert not (system_config.results_dir / "benchmark_metrics.json").exists()
