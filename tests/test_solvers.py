# tests/test_solvers.py

import jax
import jax.numpy as jnp
import pytest
from jax import random

from jax_krylov.core.arrays import DimensionMismatchError
from jax_krylov.linalg.solvers import (
    conjugate_gradient, jacobi_method, sor_method, least_squares_solver,
    linear_solve_iterative
)
from jax_krylov.linalg.problems import poisson_2d, random_spd_matrix, random_system
from jax_krylov.utils.benchmarking import (
    benchmark_function, compare_solvers, create_performance_report, PerformanceProfiler
)


class TestConjugateGradient:
    """Test preconditioned conjugate gradient."""

    def test_small_spd_system(self):
        """A 2 x 2 SPD system is solved in at most two steps."""
        A = jnp.array([[2.0, 2.0], [2.0, 5.0]])
        b = jnp.array([6.0, 3.0])
        x, state = conjugate_gradient(A, b, tolerance=1e-10)

        assert state.converged
        assert state.iteration <= 2
        assert jnp.allclose(x, jnp.array([4.0, -1.0]))

    def test_random_spd(self):
        """Test convergence on a random SPD matrix."""
        key_a, key_b = random.split(random.PRNGKey(0))
        A = random_spd_matrix(key_a, 20)
        b = random.normal(key_b, (20,))

        x, state = conjugate_gradient(A, b, tolerance=1e-8, max_iterations=200)

        assert state.converged
        assert state.error <= 1e-8
        assert jnp.allclose(A @ x, b, atol=1e-6)
        assert jnp.allclose(state.residual, b - A @ x, atol=1e-6)

    def test_preconditioned(self):
        """Symmetric Gauss-Seidel needs fewer steps than plain CG on Poisson."""
        A = poisson_2d(10, 10)
        b = jnp.ones(100)
        x_true = jnp.linalg.solve(A, b)

        x_plain, plain = conjugate_gradient(A, b, tolerance=1e-8)
        x_jacobi, jacobi = conjugate_gradient(A, b, preconditioner='jacobi', tolerance=1e-8)
        x_sgs, sgs = conjugate_gradient(A, b, preconditioner='gauss_seidel', tolerance=1e-8)

        for x, state in [(x_plain, plain), (x_jacobi, jacobi), (x_sgs, sgs)]:
            assert state.converged
            assert jnp.allclose(x, x_true, atol=1e-6)

        assert sgs.iteration < plain.iteration

    def test_sparse_matrix(self):
        """BCOO matrices give the dense solution."""
        A = poisson_2d(4, 4)
        b = jnp.arange(16.0)
        x, state = conjugate_gradient(poisson_2d(4, 4, sparse_format=True), b, tolerance=1e-10)

        assert state.converged
        assert jnp.allclose(x, jnp.linalg.solve(A, b))

    def test_converged_initial_guess(self):
        """An exact initial guess takes no steps."""
        A = jnp.array([[4.0, 1.0], [1.0, 3.0]])
        b = jnp.array([1.0, 2.0])
        x, state = conjugate_gradient(A, b, x0=jnp.linalg.solve(A, b), tolerance=1e-8)

        assert state.iteration == 0
        assert state.converged

    def test_non_symmetric_rejected(self):
        """CG refuses a non-symmetric matrix."""
        A, b = random_system(random.PRNGKey(1), 5)
        with pytest.raises(ValueError):
            conjugate_gradient(A, b)


class TestStationaryMethods:
    """Test Jacobi and SOR iterations."""

    def setup_method(self):
        self.A = jnp.array([[3.0, 1.0], [1.0, 2.0]])
        self.b = jnp.array([5.0, 5.0])

    def test_jacobi(self):
        """Test Jacobi on a diagonally dominant system."""
        x, state = jacobi_method(self.A, self.b, tolerance=1e-10)

        assert state.converged
        assert jnp.allclose(x, jnp.array([1.0, 2.0]), atol=1e-8)

    def test_jacobi_iteration_limit(self):
        """Stopping early is reported, not raised."""
        x, state = jacobi_method(self.A, self.b, tolerance=1e-14, max_iterations=3)

        assert state.iteration == 3
        assert not state.converged

    def test_gauss_seidel_faster_than_jacobi(self):
        """SOR with omega = 1 converges faster than Jacobi."""
        _, jacobi = jacobi_method(self.A, self.b, tolerance=1e-10)
        x, gs = sor_method(self.A, self.b, omega=1.0, tolerance=1e-10)

        assert gs.converged
        assert gs.iteration < jacobi.iteration
        assert jnp.allclose(x, jnp.array([1.0, 2.0]), atol=1e-8)

    def test_sor_over_relaxed(self):
        """Test SOR with omega = 1.25 on a 3 x 3 system."""
        A = jnp.array([[3.0, 1.0, -1.0], [2.0, 4.0, 1.0], [-1.0, 2.0, 5.0]])
        b = jnp.array([4.0, 1.0, 1.0])
        x, state = sor_method(A, b, omega=1.25, tolerance=1e-10)

        assert state.converged
        assert jnp.allclose(x, jnp.linalg.solve(A, b), atol=1e-8)

    def test_invalid_inputs(self):
        """Zero diagonals and bad relaxation weights are rejected."""
        A = jnp.array([[0.0, 1.0], [1.0, 0.0]])
        with pytest.raises(ValueError):
            jacobi_method(A, self.b)
        with pytest.raises(ValueError):
            sor_method(A, self.b)
        with pytest.raises(ValueError):
            sor_method(self.A, self.b, omega=2.5)
        with pytest.raises(DimensionMismatchError):
            jacobi_method(self.A, jnp.ones(3))


class TestLeastSquares:
    """Test least squares through Gram-Schmidt QR."""

    def test_overdetermined(self):
        """Test against the library least squares solver."""
        A = jnp.array([[1.0, -4.0], [2.0, 3.0], [2.0, 2.0]])
        b = jnp.array([-3.0, 15.0, 9.0])

        x = least_squares_solver(A, b)
        x_ref = jnp.linalg.lstsq(A, b)[0]
        assert jnp.allclose(x, x_ref)

    def test_square_system(self):
        """A square full-rank system is solved exactly."""
        A, b = random_system(random.PRNGKey(2), 6)
        assert jnp.allclose(least_squares_solver(A, b), jnp.linalg.solve(A, b))

    def test_shape_mismatch(self):
        """Right-hand side must match the number of rows."""
        with pytest.raises(DimensionMismatchError):
            least_squares_solver(jnp.ones((3, 2)), jnp.ones(2))


class TestUnifiedInterface:
    """Test dispatch by method name."""

    def setup_method(self):
        self.A = jnp.array([[4.0, 1.0, 0.0], [1.0, 3.0, 1.0], [0.0, 1.0, 2.0]])
        self.b = jnp.array([1.0, 2.0, 3.0])

    @pytest.mark.parametrize("method", ['gmres', 'restarted_gmres', 'cg', 'jacobi', 'sor'])
    def test_methods(self, method):
        """Every method solves a small SPD diagonally dominant system."""
        x, state = linear_solve_iterative(self.A, self.b, method=method, tolerance=1e-10)

        assert state.converged
        assert jnp.allclose(x, jnp.linalg.solve(self.A, self.b), atol=1e-6)

    def test_unknown_method(self):
        """Unknown method names are rejected."""
        with pytest.raises(ValueError):
            linear_solve_iterative(self.A, self.b, method='bicgstab')


class TestBenchmarking:
    """Test timing and solver comparison utilities."""

    def test_benchmark_function(self):
        """Test timing statistics."""
        A = jnp.eye(4)
        stats = benchmark_function(lambda v: A @ v, jnp.ones(4), num_runs=3, return_all=True)

        assert stats['num_runs'] == 3
        assert len(stats['all_times']) == 3
        assert stats['min_time'] <= stats['mean_time'] <= stats['max_time']

    def test_compare_solvers(self):
        """CG is reported as an error on a non-symmetric system."""
        A, b = random_system(random.PRNGKey(3), 10)
        results = compare_solvers(A, b, methods=['gmres', 'cg'],
                                  method_kwargs={'gmres': {'tolerance': 1e-10}})

        assert results['gmres']['converged']
        assert results['gmres']['residual_norm'] < 1e-8
        assert 'error_message' in results['cg']

        report = create_performance_report(results)
        assert "gmres:" in report
        assert "ERROR" in report

    def test_profiler(self, capsys):
        """The profiler measures and prints a duration."""
        with PerformanceProfiler("solve") as profiler:
            jnp.linalg.solve(jnp.eye(3), jnp.ones(3)).block_until_ready()

        assert profiler.duration is not None
        assert profiler.duration >= 0.0
        assert "solve:" in capsys.readouterr().out


if __name__ == "__main__":
    pytest.main([__file__])
