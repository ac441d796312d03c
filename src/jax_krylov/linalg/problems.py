# File location: jax-krylov/src/jax_krylov/linalg/problems.py

"""Standard test systems for the iterative solvers."""

import jax
import jax.numpy as jnp
from jax.experimental import sparse
from typing import Sequence, Tuple, Union


def banded_test_matrix(n: int, offset: int = 10) -> jnp.ndarray:
    """Non-symmetric banded matrix from Sauer's GMRES example.

    Diagonal sqrt(1..n), cos(1..n-offset) on the offset-th superdiagonal
    and sin(1..n-offset) on the offset-th subdiagonal.
    """
    if n <= offset:
        raise ValueError(f"n ({n}) must exceed the band offset ({offset})")
    k = jnp.arange(1, n + 1, dtype=jnp.result_type(float))
    off = k[:n - offset]
    return (jnp.diag(jnp.sqrt(k))
            + jnp.diag(jnp.cos(off), offset)
            + jnp.diag(jnp.sin(off), -offset))


def poisson_2d(nx: int, ny: int, sparse_format: bool = False) -> Union[jnp.ndarray, sparse.BCOO]:
    """5-point finite-difference Laplacian on an nx x ny interior grid.

    Rows are ordered x-fastest; the matrix is SPD with 4 on the diagonal
    and -1 for each grid neighbour.

    Args:
        nx: Interior points along x
        ny: Interior points along y
        sparse_format: Return a BCOO sparse matrix instead of a dense one
    """
    tx = 2.0 * jnp.eye(nx) - jnp.eye(nx, k=1) - jnp.eye(nx, k=-1)
    ty = 2.0 * jnp.eye(ny) - jnp.eye(ny, k=1) - jnp.eye(ny, k=-1)
    A = jnp.kron(jnp.eye(ny), tx) + jnp.kron(ty, jnp.eye(nx))
    if sparse_format:
        return sparse.BCOO.fromdense(A)
    return A


def random_system(key: jax.Array,
                  n: int,
                  shift: float = None) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Well-conditioned non-symmetric system (A, b).

    A = shift * I + G / sqrt(n) with Gaussian G; the default shift of 4
    keeps the spectrum away from the origin.
    """
    if shift is None:
        shift = 4.0
    key_a, key_b = jax.random.split(key)
    G = jax.random.normal(key_a, (n, n), dtype=jnp.result_type(float))
    A = shift * jnp.eye(n) + G / jnp.sqrt(n)
    b = jax.random.normal(key_b, (n,), dtype=jnp.result_type(float))
    return A, b


def random_spd_matrix(key: jax.Array, n: int, regularization: float = 1.0) -> jnp.ndarray:
    """Random symmetric positive definite matrix G^T G + regularization * I."""
    G = jax.random.normal(key, (n, n), dtype=jnp.result_type(float))
    return G.T @ G + regularization * jnp.eye(n)


def clustered_spectrum_system(n: int,
                              eigenvalues: Sequence[float]) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Diagonal system whose Krylov space from b = ones has dimension d.

    The d distinct eigenvalues are repeated cyclically along the diagonal,
    so GMRES started from zero spans the exact solution after d steps.
    """
    eigenvalues = jnp.asarray(eigenvalues, dtype=jnp.result_type(float))
    d = eigenvalues.shape[0]
    if d > n:
        raise ValueError(f"Cannot place {d} distinct eigenvalues in a {n} x {n} matrix")
    diagonal = eigenvalues[jnp.arange(n) % d]
    return jnp.diag(diagonal), jnp.ones(n, dtype=diagonal.dtype)
