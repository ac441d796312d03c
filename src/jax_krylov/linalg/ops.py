# File location: jax-krylov/src/jax_krylov/linalg/ops.py

"""
Linear operators, triangular solves and Gram-Schmidt QR.

This module provides the primitives the Krylov solvers are written
against: a thin operator wrapper over dense matrices, BCOO sparse
matrices and matrix-free callables, triangular substitution, and the
modified Gram-Schmidt orthogonalization.
"""

import jax.numpy as jnp
from jax.experimental import sparse
from jax.scipy.linalg import solve_triangular
from typing import Any, Callable, Optional, Tuple

from ..core.arrays import DimensionMismatchError, as_float_array
from ..core.numerics import is_near_zero


class LinearOperator:
    """Matrix-vector product v -> A v with a known shape.

    Args:
        matvec: Function computing A @ v for a 1D vector v
        shape: Operator shape (n, n)
        dtype: Result dtype
        matrix: Explicit matrix backing the operator, if any
    """

    def __init__(self,
                 matvec: Callable[[jnp.ndarray], jnp.ndarray],
                 shape: Tuple[int, int],
                 dtype: Optional[jnp.dtype] = None,
                 matrix: Optional[Any] = None):
        self._matvec = matvec
        self.shape = tuple(int(s) for s in shape)
        self.dtype = jnp.dtype(dtype) if dtype is not None else jnp.result_type(float)
        self.matrix = matrix

    def matvec(self, v: jnp.ndarray) -> jnp.ndarray:
        return self._matvec(v)

    def __call__(self, v: jnp.ndarray) -> jnp.ndarray:
        return self._matvec(v)

    def __matmul__(self, v: jnp.ndarray) -> jnp.ndarray:
        return self._matvec(v)

    def __repr__(self) -> str:
        kind = type(self.matrix).__name__ if self.matrix is not None else "callable"
        return f"LinearOperator(shape={self.shape}, dtype={self.dtype.name}, backing={kind})"


def aslinearoperator(A: Any, shape: Optional[Tuple[int, int]] = None) -> LinearOperator:
    """Wrap a matrix, sparse matrix or callable as a LinearOperator.

    Args:
        A: Dense array, jax.experimental.sparse matrix, LinearOperator,
           or callable v -> A v
        shape: Required when A is a plain callable

    Returns:
        LinearOperator view of A
    """
    if isinstance(A, LinearOperator):
        return A

    if isinstance(A, sparse.JAXSparse):
        if len(A.shape) != 2:
            raise DimensionMismatchError(f"Sparse operator must be 2D: {A.shape}")
        return LinearOperator(lambda v: A @ v, A.shape, A.dtype, matrix=A)

    if callable(A):
        if shape is None:
            raise ValueError("shape is required for a matrix-free operator")
        return LinearOperator(A, shape)

    A = as_float_array(A)
    if A.ndim != 2:
        raise DimensionMismatchError(f"Operator must be 2D: {A.shape}")
    return LinearOperator(lambda v: A @ v, A.shape, A.dtype, matrix=A)


def matvec(A: Any, x: jnp.ndarray) -> jnp.ndarray:
    """Apply a dense, sparse or operator A to a vector."""
    if isinstance(A, LinearOperator) or callable(A):
        return A(x)
    return A @ x


def to_dense(A: Any) -> jnp.ndarray:
    """Materialise an operator as a dense matrix.

    Raises:
        TypeError: If A is matrix-free
    """
    if isinstance(A, LinearOperator):
        if A.matrix is None:
            raise TypeError("Matrix-free operator has no explicit matrix")
        A = A.matrix
    if isinstance(A, sparse.JAXSparse):
        return A.todense()
    if callable(A):
        raise TypeError("Matrix-free operator has no explicit matrix")
    return as_float_array(A)


def back_substitution(U: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Solve U x = b for upper triangular U."""
    return solve_triangular(U, b, lower=False)


def forward_substitution(L: jnp.ndarray,
                         b: jnp.ndarray,
                         unit_diagonal: bool = False) -> jnp.ndarray:
    """Solve L x = b for lower triangular L."""
    return solve_triangular(L, b, lower=True, unit_diagonal=unit_diagonal)


def modified_gram_schmidt(A: jnp.ndarray, rtol: float = 1e-12) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Reduced QR factorization by modified Gram-Schmidt.

    Each column is orthogonalized against the already computed directions
    one at a time, projecting the running remainder rather than the
    original column.

    Args:
        A: Matrix (m x n) with m >= n and linearly independent columns
        rtol: Relative threshold for detecting dependent columns

    Returns:
        (Q, R) with Q (m x n) orthonormal columns and R (n x n) upper
        triangular, A = Q R

    Raises:
        DimensionMismatchError: If m < n
        ValueError: If the columns are linearly dependent
    """
    A = as_float_array(A)
    if A.ndim != 2:
        raise DimensionMismatchError(f"Input must be 2D: {A.shape}")
    m, n = A.shape
    if m < n:
        raise DimensionMismatchError(
            f"Number of rows ({m}) must be >= number of columns ({n})")

    Q = jnp.zeros((m, n), dtype=A.dtype)
    R = jnp.zeros((n, n), dtype=A.dtype)

    for j in range(n):
        y = A[:, j]
        for i in range(j):
            r_ij = jnp.dot(Q[:, i], y)
            R = R.at[i, j].set(r_ij)
            y = y - r_ij * Q[:, i]

        r_jj = jnp.linalg.norm(y)
        if is_near_zero(r_jj, jnp.linalg.norm(A[:, j]), rtol):
            raise ValueError(f"Column {j} is linearly dependent on the previous columns")
        R = R.at[j, j].set(r_jj)
        Q = Q.at[:, j].set(y / r_jj)

    return Q, R


def orthogonality_error(Q: jnp.ndarray) -> float:
    """Frobenius norm of Q^T Q - I."""
    k = Q.shape[1]
    return float(jnp.linalg.norm(Q.T @ Q - jnp.eye(k, dtype=Q.dtype)))
