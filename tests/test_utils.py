"""Tests for performance monitoring and result export"""

import json
import logging
import time

import numpy as np
import pytest

from utils.utils import (
    PerformanceMonitor,
    setup_logging,
    save_results,
    create_results_summary,
    create_performance_report,
    format_duration,
    get_system_info,
)


class TestPerformanceMonitor:

    def test_empty_summary(self):
        summary = PerformanceMonitor().get_summary()
        assert summary == {'total_operations': 0, 'total_duration': 0.0, 'operations': {}}

    def test_operations_grouped_by_name(self):
        monitor = PerformanceMonitor()
        for _ in range(3):
            with monitor.start_operation("prove"):
                time.sleep(0.001)
        with monitor.start_operation("verify"):
            pass

        summary = monitor.get_summary()
        assert summary['total_operations'] == 4
        prove_stats = summary['operations']['prove']
        assert prove_stats['count'] == 3
        assert prove_stats['min_duration'] <= prove_stats['avg_duration'] <= prove_stats['max_duration']
        assert prove_stats['total_duration'] >= 0.003
        assert summary['operations']['verify']['std_duration'] == 0.0

    def test_exception_is_recorded(self):
        monitor = PerformanceMonitor()
        with pytest.raises(RuntimeError):
            with monitor.start_operation("failing"):
                raise RuntimeError("boom")
        assert monitor.metrics[0].additional_data == {'exception': True}

    def test_save_metrics(self, tmp_path):
        monitor = PerformanceMonitor()
        with monitor.start_operation("modpow"):
            pass
        path = tmp_path / "metrics" / "metrics.json"
        monitor.save_metrics(path)

        data = json.loads(path.read_text())
        assert data['summary']['operations']['modpow']['count'] == 1
        assert 'python_version' in data['system_info']
        assert data['metrics'][0]['operation'] == "modpow"

    def test_performance_report(self):
        monitor = PerformanceMonitor()
        assert "No performance data available." in create_performance_report(monitor)
        with monitor.start_operation("toy_prove"):
            pass
        assert "TOY_PROVE:" in create_performance_report(monitor)


class TestExport:

    def test_save_results_writes_json_and_summary(self, tmp_path):
        big = 2**127 - 1
        results = {
            'group': {'name': 'mersenne127', 'p': big, 'g': 3, 'bits': 127},
            'sessions': [{
                'identity': 'alice', 'label': 'amplified', 'rounds': 8,
                'rounds_passed': 8, 'verified': True, 'soundness_error': 2.0 ** -8,
            }],
            'performance_metrics': {'avg_prove': np.float64(0.25), 'count': np.int64(3)},
        }
        path = tmp_path / "results" / "run.json"
        save_results(results, path)

        saved = json.loads(path.read_text())
        assert saved['data']['group']['p'] == str(big)
        assert saved['data']['group']['g'] == 3
        assert saved['data']['performance_metrics'] == {'avg_prove': 0.25, 'count': 3}
        assert 'system_info' in saved['metadata']

        summary = (tmp_path / "results" / "run_summary.txt").read_text()
        assert "SESSION: amplified" in summary
        assert "PASSED" in summary
        assert "3.906e-03" in summary

    def test_summary_without_sections(self):
        text = create_results_summary({})
        assert "RESULTS SUMMARY" in text
        assert "SESSION" not in text


@pytest.mark.parametrize("seconds,expected", [
    (0.0015, "1.500ms"),
    (2.5, "2.50s"),
    (125, "2m 5.0s"),
    (3725, "1h 2m 5.0s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_system_info_fields():
    info = get_system_info()
    assert {'platform', 'python_version', 'timestamp'} <= set(info)


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "zkp.log"
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("DEBUG", log_file)
        logging.getLogger("zk.test").debug("debug line")
        for handler in root.handlers:
            handler.flush()
        assert "debug line" in log_file.read_text()
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
