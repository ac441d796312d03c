# File location: jax-krylov/src/jax_krylov/krylov/gmres.py

"""
Preconditioned GMRES and restarted GMRES.

A cycle builds the Krylov basis with Arnoldi steps, keeps the Hessenberg
matrix in triangular form with Givens rotations, and reads the residual
norm off the rotated right-hand side without forming b - A x. The
solution is only assembled (one triangular solve) when a cycle ends or
when a callback asks for intermediate iterates.

Restarting discards the basis after a fixed number of iterations and
starts a fresh cycle from the current solution, bounding memory to
O(n * restart_size).
"""

import enum
import warnings
import attrs
import jax.numpy as jnp
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from ..core.arrays import DimensionMismatchError, prepare_system
from ..core.numerics import is_near_zero, safe_reference_norm, vector_norm
from ..linalg.ops import LinearOperator, aslinearoperator, back_substitution
from ..linalg.preconditioners import Preconditioner, make_preconditioner
from .arnoldi import arnoldi_step
from .givens import rotate_hessenberg_column


def _positive_int(instance, attribute, value):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{attribute.name} must be an int, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{attribute.name} must be > 0, got {value}")


def _positive_float(instance, attribute, value):
    if not value > 0.0:
        raise ValueError(f"{attribute.name} must be > 0, got {value}")


@attrs.define(frozen=True)
class GMRESConfig:
    """Iteration budget and tolerances for GMRES.

    Attributes:
        max_iter_per_cycle: Iterations of a single (non-restarted) cycle
        restart_size: Iterations per cycle when restarting; defaults to
            max_iter_per_cycle
        tolerance: Relative residual ||M^{-1}(b - A x)|| / ||b|| to reach
        max_total_iterations: Iteration budget across all restart cycles;
            defaults to 10 * n
        breakdown_tol: Relative threshold for an invariant Krylov subspace
        verbose: Print one progress line per cycle
    """
    max_iter_per_cycle: int = attrs.field(default=10, validator=_positive_int)
    restart_size: Optional[int] = attrs.field(default=None, validator=_positive_int)
    tolerance: float = attrs.field(default=1e-6, converter=float, validator=_positive_float)
    max_total_iterations: Optional[int] = attrs.field(default=None, validator=_positive_int)
    breakdown_tol: float = attrs.field(default=1e-12, converter=float, validator=_positive_float)
    verbose: bool = attrs.field(default=False, validator=attrs.validators.instance_of(bool))

    @property
    def cycle_length(self) -> int:
        if self.restart_size is not None:
            return self.restart_size
        return self.max_iter_per_cycle

    def total_iterations(self, n: int) -> int:
        if self.max_total_iterations is not None:
            return self.max_total_iterations
        return 10 * n


class ConvergenceStatus(enum.Enum):
    """How a GMRES run ended."""
    CONVERGED = "Converged."
    NOT_CONVERGED = "Not converged."
    BREAKDOWN = "Breakdown: Krylov subspace stopped growing before the tolerance was met."

    @property
    def message(self) -> str:
        return self.value


class GMRESState(NamedTuple):
    """Result of a single GMRES cycle."""
    x: jnp.ndarray
    iterations: int
    errors: jnp.ndarray
    basis: jnp.ndarray
    hessenberg: jnp.ndarray
    status: ConvergenceStatus
    converged: bool
    error: float
    breakdown: bool


class RestartedGMRESState(NamedTuple):
    """Result of restarted GMRES."""
    x: jnp.ndarray
    iterations: int
    cycles: int
    errors: jnp.ndarray
    status: ConvergenceStatus
    converged: bool
    error: float
    message: str


def update_solution(x0: jnp.ndarray,
                    triangular: jnp.ndarray,
                    beta: jnp.ndarray,
                    basis: jnp.ndarray,
                    k: int) -> jnp.ndarray:
    """Least squares correction x0 + Q_k R_k^{-1} beta_k.

    Args:
        x0: Solution at the start of the cycle
        triangular: Rotated Hessenberg arena, leading k x k block upper
            triangular
        beta: Rotated residual vector
        basis: Krylov basis arena
        k: Number of completed iterations

    Returns:
        Updated solution estimate
    """
    if k == 0:
        return x0
    y = back_substitution(triangular[:k, :k], beta[:k])
    return x0 + basis[:, :k] @ y


def gmres_cycle(operator: LinearOperator,
                preconditioner: Preconditioner,
                b: jnp.ndarray,
                x0: jnp.ndarray,
                bnorm: float,
                max_iterations: int,
                config: GMRESConfig,
                callback: Optional[Callable[[jnp.ndarray, int, float], Any]] = None) -> GMRESState:
    """Run one GMRES cycle of at most `max_iterations` Arnoldi steps.

    Args:
        operator: System operator A
        preconditioner: Left preconditioner M
        b: Right-hand side
        x0: Starting solution of this cycle
        bnorm: Reference norm for relative errors (||b||, or 1 if zero)
        max_iterations: Iteration budget of the cycle
        config: Tolerances
        callback: Called as callback(x_k, k, error) after every iteration

    Returns:
        GMRESState of the cycle
    """
    n = b.shape[0]
    tol = config.tolerance

    Ax0 = operator(x0)
    if Ax0.shape != b.shape:
        raise DimensionMismatchError(
            f"Operator output shape {Ax0.shape} does not match right-hand side {b.shape}")

    r = preconditioner(b - Ax0)
    rnorm = float(vector_norm(r))
    error = rnorm / bnorm

    if error <= tol:
        return GMRESState(
            x=x0,
            iterations=0,
            errors=jnp.zeros(0, dtype=b.dtype),
            basis=jnp.zeros((n, 0), dtype=b.dtype),
            hessenberg=jnp.zeros((0, 0), dtype=b.dtype),
            status=ConvergenceStatus.CONVERGED,
            converged=True,
            error=error,
            breakdown=False
        )

    m = min(max_iterations, n)
    dtype = r.dtype

    basis = jnp.zeros((n, m + 1), dtype=dtype).at[:, 0].set(r / rnorm)
    hessenberg = jnp.zeros((m + 1, m), dtype=dtype)
    triangular = jnp.zeros((m + 1, m), dtype=dtype)
    cs = jnp.zeros(m, dtype=dtype)
    sn = jnp.zeros(m, dtype=dtype)
    beta = jnp.zeros(m + 1, dtype=dtype).at[0].set(rnorm)

    def preconditioned(v):
        return preconditioner(operator(v))

    errors = []
    status = ConvergenceStatus.NOT_CONVERGED
    breakdown = False
    k = 0
    basis_size = 1

    for i in range(m):
        step = arnoldi_step(preconditioned, basis, hessenberg, i, config.breakdown_tol)
        basis, hessenberg = step.basis, step.hessenberg

        rotated = rotate_hessenberg_column(hessenberg[:, i], cs, sn, beta, i)
        if is_near_zero(rotated.column[i], vector_norm(hessenberg[:i + 2, i]), config.breakdown_tol):
            # Singular projected matrix; column i adds nothing to the solve
            errors.append(error)
            status = ConvergenceStatus.BREAKDOWN
            breakdown = True
            break

        cs, sn, beta = rotated.cs, rotated.sn, rotated.beta
        triangular = triangular.at[:, i].set(rotated.column)
        k = i + 1
        basis_size = k if step.breakdown else k + 1

        error = abs(float(beta[i + 1])) / bnorm
        errors.append(error)

        if callback is not None:
            callback(update_solution(x0, triangular, beta, basis, k), k, error)

        if error <= tol:
            status = ConvergenceStatus.CONVERGED
            breakdown = step.breakdown
            break
        if step.breakdown:
            status = ConvergenceStatus.BREAKDOWN
            breakdown = True
            break

    x = update_solution(x0, triangular, beta, basis, k)

    return GMRESState(
        x=x,
        iterations=len(errors),
        errors=jnp.asarray(errors, dtype=dtype),
        basis=basis[:, :basis_size],
        hessenberg=hessenberg[:k + 1, :k],
        status=status,
        converged=status is ConvergenceStatus.CONVERGED,
        error=error,
        breakdown=breakdown
    )


def _resolve_config(config: Optional[GMRESConfig], options: Dict[str, Any]) -> GMRESConfig:
    if config is None:
        return GMRESConfig(**options)
    if options:
        raise TypeError(f"Pass either a GMRESConfig or keyword options, not both: {sorted(options)}")
    if not isinstance(config, GMRESConfig):
        raise TypeError(f"config must be a GMRESConfig, got {type(config).__name__}")
    return config


def _setup(A: Any,
           b: Any,
           x0: Optional[Any],
           preconditioner: Any,
           omega: float) -> Tuple[LinearOperator, jnp.ndarray, jnp.ndarray, Preconditioner, float]:
    operator = aslinearoperator(A)
    b, x0 = prepare_system(b, x0, operator.shape)

    M = make_preconditioner(preconditioner, operator, omega=omega)
    if M.n is not None and M.n != b.shape[0]:
        raise DimensionMismatchError(
            f"Preconditioner size {M.n} does not match system size {b.shape[0]}")

    return operator, b, x0, M, safe_reference_norm(b)


def gmres(A: Any,
          b: Any,
          x0: Optional[Any] = None,
          preconditioner: Any = None,
          config: Optional[GMRESConfig] = None,
          callback: Optional[Callable[[jnp.ndarray, int, float], Any]] = None,
          omega: float = 1.0,
          **options) -> Tuple[jnp.ndarray, GMRESState]:
    """Preconditioned GMRES without restarts.

    Runs a single cycle of at most `max_iter_per_cycle` iterations
    (capped at the problem dimension).

    Args:
        A: Matrix, BCOO sparse matrix, LinearOperator or callable
        b: Right-hand side vector
        x0: Initial guess (defaults to zero)
        preconditioner: None, 'jacobi', 'ssor', 'gauss_seidel', a
            Preconditioner, a callable r -> M^{-1} r, or a matrix M
        config: GMRESConfig; alternatively pass its fields as keywords
        callback: Called as callback(x_k, k, error) after each iteration
        omega: SSOR relaxation weight
        **options: GMRESConfig fields when config is None

    Returns:
        (solution, final_state) tuple

    Raises:
        DimensionMismatchError: If A, b, x0 or M disagree in size
    """
    config = _resolve_config(config, options)
    operator, b, x0, M, bnorm = _setup(A, b, x0, preconditioner, omega)

    state = gmres_cycle(operator, M, b, x0, bnorm, config.max_iter_per_cycle, config, callback)

    if config.verbose:
        print(f"GMRES: {state.iterations} iterations, "
              f"error={state.error:.3e}, {state.status.message}")

    return state.x, state


def restarted_gmres(A: Any,
                    b: Any,
                    x0: Optional[Any] = None,
                    preconditioner: Any = None,
                    config: Optional[GMRESConfig] = None,
                    callback: Optional[Callable[[jnp.ndarray, int, float], Any]] = None,
                    omega: float = 1.0,
                    **options) -> Tuple[jnp.ndarray, RestartedGMRESState]:
    """Restarted preconditioned GMRES, GMRES(m).

    Each cycle runs at most `restart_size` iterations from the current
    solution with a fresh basis. Cycles repeat until the tolerance is met,
    the Krylov subspace breaks down, or `max_total_iterations` is used up.
    Running out of iterations is reported in the returned state, not
    raised.

    Args:
        A: Matrix, BCOO sparse matrix, LinearOperator or callable
        b: Right-hand side vector
        x0: Initial guess (defaults to zero)
        preconditioner: See `gmres`
        config: GMRESConfig; alternatively pass its fields as keywords
        callback: Called as callback(x_k, k, error) after each iteration,
            with k counted across cycles
        omega: SSOR relaxation weight
        **options: GMRESConfig fields when config is None

    Returns:
        (solution, final_state) tuple
    """
    config = _resolve_config(config, options)
    operator, b, x0, M, bnorm = _setup(A, b, x0, preconditioner, omega)
    n = b.shape[0]

    cycle_length = config.cycle_length
    if config.restart_size is not None and config.restart_size > n:
        warnings.warn(f"restart_size ({config.restart_size}) exceeds the problem "
                      f"dimension ({n}); cycles are limited to {n} iterations")
    budget = config.total_iterations(n)

    x = x0
    errors = []
    total = 0
    cycles = 0

    def global_callback(x_k, k, error):
        return callback(x_k, total + k, error)

    while True:
        remaining = budget - total
        state = gmres_cycle(operator, M, b, x, bnorm, min(cycle_length, remaining), config,
                            global_callback if callback is not None else None)
        x = state.x

        if state.iterations > 0:
            cycles += 1
            total += state.iterations
            errors.extend(float(e) for e in state.errors)
            if config.verbose:
                print(f"GMRES cycle {cycles}: {state.iterations} iterations, "
                      f"total={total}, error={state.error:.3e}")

        # A zero-length cycle only re-measures the residual of x
        if state.status is not ConvergenceStatus.NOT_CONVERGED or remaining <= 0:
            break

    if config.verbose:
        print(f"GMRES: {state.status.message}")

    restarted_state = RestartedGMRESState(
        x=x,
        iterations=total,
        cycles=cycles,
        errors=jnp.asarray(errors, dtype=b.dtype),
        status=state.status,
        converged=state.converged,
        error=state.error,
        message=state.status.message
    )

    return x, restarted_state
