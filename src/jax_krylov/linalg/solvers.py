# File location: jax-krylov/src/jax_krylov/linalg/solvers.py

"""
Iterative solvers: preconditioned CG, Jacobi, SOR, and QR least squares.

This module provides the classical companions of GMRES, written against
the same operator and preconditioner abstractions, plus a unified entry
point that dispatches to any of them by name.
"""

import jax
import jax.numpy as jnp
from jax import lax
from jax.scipy.linalg import solve_triangular
from typing import Any, NamedTuple, Optional, Tuple

from ..core.arrays import DimensionMismatchError, as_float_array, prepare_system
from ..core.numerics import safe_reference_norm
from .ops import aslinearoperator, back_substitution, modified_gram_schmidt, to_dense
from .preconditioners import make_preconditioner


class SolverState(NamedTuple):
    """State for iterative solvers."""
    x: jnp.ndarray
    residual: jnp.ndarray
    iteration: int
    converged: bool
    error: float


def conjugate_gradient(A: Any,
                       b: Any,
                       x0: Optional[Any] = None,
                       preconditioner: Any = None,
                       tolerance: float = 1e-6,
                       max_iterations: Optional[int] = None,
                       omega: float = 1.0) -> Tuple[jnp.ndarray, SolverState]:
    """Preconditioned conjugate gradient for symmetric positive definite systems.

    Args:
        A: Coefficient matrix (must be SPD) or operator
        b: Right-hand side vector
        x0: Initial guess (defaults to zero)
        preconditioner: None, 'jacobi', 'ssor', 'gauss_seidel', a
            Preconditioner or a matrix M
        tolerance: Relative residual tolerance ||b - Ax|| / ||b||
        max_iterations: Maximum iterations (defaults to n)
        omega: SSOR relaxation weight

    Returns:
        (solution, final_state) tuple
    """
    operator = aslinearoperator(A)
    b, x0 = prepare_system(b, x0, operator.shape)
    n = b.shape[0]

    if isinstance(operator.matrix, jax.Array):
        if not bool(jnp.allclose(operator.matrix, operator.matrix.T)):
            raise ValueError("Conjugate gradient requires a symmetric matrix")

    M = make_preconditioner(preconditioner, operator, omega=omega)
    bnorm = safe_reference_norm(b)
    if max_iterations is None:
        max_iterations = n

    def cg_step(state):
        x, r, z, p, iteration = state

        # Compute step size
        Ap = operator(p)
        r_dot_z = jnp.dot(r, z)
        alpha = r_dot_z / jnp.dot(p, Ap)

        # Update solution and residual
        x_new = x + alpha * p
        r_new = r - alpha * Ap
        z_new = M(r_new)

        # Compute conjugate direction
        beta = jnp.dot(r_new, z_new) / r_dot_z
        p_new = z_new + beta * p

        return x_new, r_new, z_new, p_new, iteration + 1

    def cg_cond(state):
        _, r, _, _, iteration = state
        error = jnp.linalg.norm(r) / bnorm
        converged = error <= tolerance
        max_iters = iteration >= max_iterations
        return jnp.logical_not(jnp.logical_or(converged, max_iters))

    # Initialize
    r0 = b - operator(x0)
    z0 = M(r0)
    initial_state = (x0, r0, z0, z0, 0)

    # Run CG iterations
    x_final, r_final, _, _, iterations = lax.while_loop(cg_cond, cg_step, initial_state)

    error = float(jnp.linalg.norm(r_final)) / bnorm

    solver_state = SolverState(
        x=x_final,
        residual=r_final,
        iteration=int(iterations),
        converged=error <= tolerance,
        error=error
    )

    return x_final, solver_state


def _dense_system(A: Any, b: Any, x0: Optional[Any]) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    A = to_dense(A)
    if A.ndim != 2:
        raise DimensionMismatchError(f"Coefficient matrix must be 2D: {A.shape}")
    b, x0 = prepare_system(b, x0, A.shape)
    d = jnp.diag(A)
    if bool(jnp.any(d == 0)):
        raise ValueError("Coefficient matrix has zero diagonal entries")
    return A, b, x0, d


def jacobi_method(A: Any,
                  b: Any,
                  x0: Optional[Any] = None,
                  tolerance: float = 1e-6,
                  max_iterations: int = 1000) -> Tuple[jnp.ndarray, SolverState]:
    """Jacobi iterative method for linear systems.

    Converges for strictly diagonally dominant matrices.

    Args:
        A: Coefficient matrix
        b: Right-hand side vector
        x0: Initial guess
        tolerance: Relative residual tolerance
        max_iterations: Maximum iterations

    Returns:
        (solution, solver_state) tuple
    """
    A, b, x0, d = _dense_system(A, b, x0)
    bnorm = safe_reference_norm(b)

    # Off-diagonal remainder
    R = A - jnp.diag(d)

    def jacobi_step(state):
        x, iteration = state
        x_new = (b - R @ x) / d
        return x_new, iteration + 1

    def jacobi_cond(state):
        x, iteration = state
        error = jnp.linalg.norm(b - A @ x) / bnorm
        converged = error <= tolerance
        max_iters = iteration >= max_iterations
        return jnp.logical_not(jnp.logical_or(converged, max_iters))

    initial_state = (x0, 0)
    x_final, iterations = lax.while_loop(jacobi_cond, jacobi_step, initial_state)

    residual = b - A @ x_final
    error = float(jnp.linalg.norm(residual)) / bnorm

    solver_state = SolverState(
        x=x_final,
        residual=residual,
        iteration=int(iterations),
        converged=error <= tolerance,
        error=error
    )

    return x_final, solver_state


def sor_method(A: Any,
               b: Any,
               x0: Optional[Any] = None,
               omega: float = 1.0,
               tolerance: float = 1e-6,
               max_iterations: int = 1000) -> Tuple[jnp.ndarray, SolverState]:
    """Successive over-relaxation for linear systems.

    Each sweep solves (D + omega L) x_new = omega b - (omega U + (omega - 1) D) x,
    which is the row-by-row SOR update in matrix form. omega = 1 is
    Gauss-Seidel.

    Args:
        A: Coefficient matrix
        b: Right-hand side vector
        x0: Initial guess
        omega: Relaxation parameter in (0, 2)
        tolerance: Relative residual tolerance
        max_iterations: Maximum iterations

    Returns:
        (solution, solver_state) tuple
    """
    if not 0.0 < omega < 2.0:
        raise ValueError(f"SOR relaxation omega must be in (0, 2), got {omega}")

    A, b, x0, d = _dense_system(A, b, x0)
    bnorm = safe_reference_norm(b)

    D = jnp.diag(d)
    lower = D + omega * jnp.tril(A, k=-1)
    upper_part = omega * jnp.triu(A, k=1) + (omega - 1.0) * D

    def sor_step(state):
        x, iteration = state
        x_new = solve_triangular(lower, omega * b - upper_part @ x, lower=True)
        return x_new, iteration + 1

    def sor_cond(state):
        x, iteration = state
        error = jnp.linalg.norm(b - A @ x) / bnorm
        converged = error <= tolerance
        max_iters = iteration >= max_iterations
        return jnp.logical_not(jnp.logical_or(converged, max_iters))

    x_final, iterations = lax.while_loop(sor_cond, sor_step, (x0, 0))

    residual = b - A @ x_final
    error = float(jnp.linalg.norm(residual)) / bnorm

    solver_state = SolverState(
        x=x_final,
        residual=residual,
        iteration=int(iterations),
        converged=error <= tolerance,
        error=error
    )

    return x_final, solver_state


def least_squares_solver(A: Any, b: Any) -> jnp.ndarray:
    """Solve min ||Ax - b|| through a modified Gram-Schmidt QR factorization.

    Args:
        A: Design matrix (m x n, m >= n, full column rank)
        b: Target vector (m)

    Returns:
        Least squares solution x = R^{-1} Q^T b
    """
    A = as_float_array(A)
    b = as_float_array(b)
    if b.ndim != 1 or A.ndim != 2 or b.shape[0] != A.shape[0]:
        raise DimensionMismatchError(f"Shapes do not match: A {A.shape}, b {b.shape}")

    Q, R = modified_gram_schmidt(A)
    return back_substitution(R, Q.T @ b)


def linear_solve_iterative(A: Any,
                           b: Any,
                           method: str = 'gmres',
                           **kwargs) -> Tuple[jnp.ndarray, Any]:
    """Unified interface for iterative linear solvers.

    Args:
        A: Coefficient matrix
        b: Right-hand side
        method: Solver method ('gmres', 'restarted_gmres', 'cg',
            'jacobi', 'sor')
        **kwargs: Additional solver parameters

    Returns:
        (solution, solver_state) tuple
    """
    # Imported here: the krylov package itself depends on this one
    from ..krylov.gmres import gmres, restarted_gmres

    if method == 'gmres':
        return gmres(A, b, **kwargs)
    elif method == 'restarted_gmres':
        return restarted_gmres(A, b, **kwargs)
    elif method == 'cg':
        return conjugate_gradient(A, b, **kwargs)
    elif method == 'jacobi':
        return jacobi_method(A, b, **kwargs)
    elif method == 'sor':
        return sor_method(A, b, **kwargs)
    else:
        raise ValueError(f"Unknown solver method: {method}")
