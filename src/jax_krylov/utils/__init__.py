# File location: jax-krylov/src/jax_krylov/utils/__init__.py

"""
Utility functions for benchmarking solvers.

This module provides helpers for timing solver runs and comparing
several solvers on the same linear system.
"""

from .benchmarking import *

__all__ = [
    # benchmarking.py
    "benchmark_function",
    "compare_solvers",
    "create_performance_report",
    "PerformanceProfiler"
]
