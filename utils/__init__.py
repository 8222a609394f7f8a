"""Utilities for the proof system."""

from .utils import (
    setup_logging,
    save_results,
    PerformanceMonitor,
    create_performance_report,
    create_results_summary,
    get_system_info,
    format_duration
)

__all__ = [
    'setup_logging',
    'save_results',
    'PerformanceMonitor',
    'create_performance_report',
    'create_results_summary',
    'get_system_info',
    'format_duration'
]
