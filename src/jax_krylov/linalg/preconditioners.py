# File location: jax-krylov/src/jax_krylov/linalg/preconditioners.py

"""
Left preconditioners: identity, Jacobi, symmetric SOR and explicit matrices.

Every preconditioner implements the same contract, `solve(r) -> z` with
z = M^{-1} r, so solvers never need to know which variant they hold.
"""

import jax.numpy as jnp
from typing import Any, Callable, Optional, Union

from ..core.arrays import DimensionMismatchError
from .ops import LinearOperator, back_substitution, forward_substitution, to_dense


class Preconditioner:
    """Base class for left preconditioners M, applied as z = M^{-1} r."""

    name = "preconditioner"

    def __init__(self, n: Optional[int] = None):
        self.n = n

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        raise NotImplementedError

    def __call__(self, r: jnp.ndarray) -> jnp.ndarray:
        return self.solve(r)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n={self.n})"


class IdentityPreconditioner(Preconditioner):
    """M = I."""

    name = "identity"

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        return r


def _diagonal(A: jnp.ndarray) -> jnp.ndarray:
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise DimensionMismatchError(f"Preconditioner requires a square matrix: {A.shape}")
    d = jnp.diag(A)
    if bool(jnp.any(d == 0)):
        zero_rows = [int(i) for i in jnp.nonzero(d == 0)[0]]
        raise ValueError(f"Matrix has zero diagonal entries at rows {zero_rows}")
    return d


class JacobiPreconditioner(Preconditioner):
    """M = D, the diagonal of A."""

    name = "jacobi"

    def __init__(self, A: Any):
        A = to_dense(A)
        self.inv_diagonal = 1.0 / _diagonal(A)
        super().__init__(A.shape[0])

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        return self.inv_diagonal * r


class SSORPreconditioner(Preconditioner):
    """Symmetric successive over-relaxation preconditioner.

    With A = L + D + U (strict lower, diagonal, strict upper parts),

        M = (I + omega * L D^{-1}) (D + omega * U)

    applied by one forward and one backward substitution. omega = 1 gives
    the symmetric Gauss-Seidel preconditioner.

    Args:
        A: Square matrix with non-zero diagonal
        omega: Relaxation weight in (0, 2)
    """

    name = "ssor"

    def __init__(self, A: Any, omega: float = 1.0):
        if not 0.0 < omega < 2.0:
            raise ValueError(f"SSOR weight omega must be in (0, 2), got {omega}")
        A = to_dense(A)
        d = _diagonal(A)
        n = A.shape[0]

        strict_lower = jnp.tril(A, k=-1)
        strict_upper = jnp.triu(A, k=1)

        self.omega = omega
        self.lower = jnp.eye(n, dtype=A.dtype) + omega * strict_lower / d[None, :]
        self.upper = jnp.diag(d) + omega * strict_upper
        super().__init__(n)

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        c = forward_substitution(self.lower, r, unit_diagonal=True)
        return back_substitution(self.upper, c)

    def matrix(self) -> jnp.ndarray:
        """Explicit M = lower @ upper."""
        return self.lower @ self.upper


class FunctionPreconditioner(Preconditioner):
    """Wraps a user function r -> M^{-1} r."""

    name = "function"

    def __init__(self, fn: Callable[[jnp.ndarray], jnp.ndarray], n: Optional[int] = None):
        self.fn = fn
        super().__init__(n)

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        return self.fn(r)


class MatrixPreconditioner(Preconditioner):
    """Explicit preconditioning matrix M, applied by a dense solve."""

    name = "matrix"

    def __init__(self, M: Any):
        M = to_dense(M)
        if M.ndim != 2 or M.shape[0] != M.shape[1]:
            raise DimensionMismatchError(f"Preconditioner matrix must be square: {M.shape}")
        self.M = M
        super().__init__(M.shape[0])

    def solve(self, r: jnp.ndarray) -> jnp.ndarray:
        return jnp.linalg.solve(self.M, r)


def make_preconditioner(preconditioner: Union[None, str, Preconditioner, Any],
                        A: Any = None,
                        omega: float = 1.0) -> Preconditioner:
    """Build a preconditioner from a name, instance or matrix.

    Args:
        preconditioner: None or 'identity', 'jacobi', 'ssor',
            'gauss_seidel', a Preconditioner instance, or an explicit
            matrix M
        A: System matrix, required for 'jacobi', 'ssor' and 'gauss_seidel'
        omega: SSOR relaxation weight

    Returns:
        Preconditioner instance
    """
    if preconditioner is None:
        n = A.shape[0] if A is not None else None
        return IdentityPreconditioner(n)

    if isinstance(preconditioner, Preconditioner):
        return preconditioner

    if isinstance(preconditioner, str):
        name = preconditioner.lower()
        if name == 'identity':
            return IdentityPreconditioner(A.shape[0] if A is not None else None)
        if A is None:
            raise ValueError(f"Preconditioner '{preconditioner}' requires the system matrix")
        if name == 'jacobi':
            return JacobiPreconditioner(A)
        elif name == 'ssor':
            return SSORPreconditioner(A, omega=omega)
        elif name in ('gauss_seidel', 'gaussseidel'):
            return SSORPreconditioner(A, omega=1.0)
        else:
            raise ValueError(f"Unknown preconditioner: {preconditioner}")

    if callable(preconditioner) and not isinstance(preconditioner, LinearOperator):
        return FunctionPreconditioner(preconditioner, A.shape[0] if A is not None else None)

    return MatrixPreconditioner(preconditioner)
