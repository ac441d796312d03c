# File location: jax-krylov/src/jax_krylov/utils/benchmarking.py

"""
Timing and comparison utilities for the linear solvers.

This module provides tools for measuring solver execution time and
for running several solvers on the same system side by side.
"""

import jax
import jax.numpy as jnp
from typing import Any, Callable, Dict, Optional, Sequence
import time


def _block(result: Any) -> None:
    for leaf in jax.tree_util.tree_leaves(result):
        if hasattr(leaf, 'block_until_ready'):
            leaf.block_until_ready()


def benchmark_function(fn: Callable,
                       *args,
                       num_runs: int = 10,
                       num_warmup: int = 1,
                       return_all: bool = False,
                       **kwargs) -> Dict[str, float]:
    """Benchmark function execution time.

    Args:
        fn: Function to benchmark
        *args: Function arguments
        num_runs: Number of benchmark runs
        num_warmup: Number of untimed runs (JIT compilation happens here)
        return_all: Whether to return all timing measurements
        **kwargs: Function keyword arguments

    Returns:
        Timing statistics dictionary
    """
    for _ in range(num_warmup):
        _block(fn(*args, **kwargs))

    times = []
    for _ in range(num_runs):
        start_time = time.perf_counter()
        _block(fn(*args, **kwargs))
        times.append(time.perf_counter() - start_time)

    times_array = jnp.array(times)
    stats = {
        'mean_time': float(jnp.mean(times_array)),
        'std_time': float(jnp.std(times_array)),
        'min_time': float(jnp.min(times_array)),
        'max_time': float(jnp.max(times_array)),
        'median_time': float(jnp.median(times_array)),
        'num_runs': num_runs
    }

    if return_all:
        stats['all_times'] = times

    return stats


def compare_solvers(A: Any,
                    b: Any,
                    methods: Optional[Sequence[str]] = None,
                    num_runs: int = 1,
                    method_kwargs: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Dict[str, Any]]:
    """Run several iterative solvers on the same system.

    Args:
        A: Coefficient matrix
        b: Right-hand side
        methods: Names accepted by `linear_solve_iterative`
            (default: gmres, restarted_gmres, cg)
        num_runs: Timed runs per method
        method_kwargs: Extra keyword arguments per method name

    Returns:
        Mapping method -> {'mean_time', 'iterations', 'error',
        'converged', 'residual_norm'}; a method that rejects the system
        (e.g. CG on a non-symmetric matrix) gets {'error_message': ...}
    """
    # Imported here to keep utils importable on its own
    from ..linalg.ops import aslinearoperator
    from ..linalg.solvers import linear_solve_iterative

    if methods is None:
        methods = ['gmres', 'restarted_gmres', 'cg']
    method_kwargs = method_kwargs or {}

    operator = aslinearoperator(A)
    b = jnp.asarray(b)
    results = {}

    for method in methods:
        kwargs = method_kwargs.get(method, {})
        try:
            timing = benchmark_function(linear_solve_iterative, A, b, method=method,
                                        num_runs=num_runs, **kwargs)
        except (ValueError, TypeError) as e:
            results[method] = {'error_message': str(e)}
            continue

        x, state = linear_solve_iterative(A, b, method=method, **kwargs)
        iterations = state.iterations if hasattr(state, 'iterations') else state.iteration

        results[method] = {
            'mean_time': timing['mean_time'],
            'iterations': int(iterations),
            'error': float(state.error),
            'converged': bool(state.converged),
            'residual_norm': float(jnp.linalg.norm(b - operator(x)))
        }

    return results


def create_performance_report(results: Dict[str, Dict[str, Any]],
                              title: str = "Solver Comparison") -> str:
    """Create formatted report from `compare_solvers` output.

    Args:
        results: Output of compare_solvers
        title: Report title

    Returns:
        Formatted report string
    """
    report = [f"\n{title}", "=" * len(title), ""]

    for name, stats in results.items():
        report.append(f"{name}:")
        report.append("-" * (len(name) + 1))

        if 'error_message' in stats:
            report.append(f"  ERROR: {stats['error_message']}")
        else:
            report.append(f"  Mean time:  {stats['mean_time']:.6f} sec")
            report.append(f"  Iterations: {stats['iterations']}")
            report.append(f"  Rel. error: {stats['error']:.3e}")
            report.append(f"  Converged:  {stats['converged']}")

        report.append("")

    return "\n".join(report)


class PerformanceProfiler:
    """Context manager for profiling function performance."""

    def __init__(self, name: str = "operation", verbose: bool = True):
        self.name = name
        self.verbose = verbose
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        if self.verbose:
            print(f"{self.name}: {self.duration:.6f} seconds")

    @property
    def duration(self):
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
