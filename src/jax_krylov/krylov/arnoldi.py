# File location: jax-krylov/src/jax_krylov/krylov/arnoldi.py

"""
Arnoldi process with modified Gram-Schmidt orthogonalization.

Builds an orthonormal basis Q of the Krylov subspace
span{v, Av, A^2 v, ...} one vector at a time, together with the upper
Hessenberg matrix H satisfying A Q_k = Q_{k+1} H_k.
"""

import jax.numpy as jnp
from typing import Any, Callable, NamedTuple, Tuple

from ..core.arrays import as_float_array
from ..core.numerics import is_near_zero, vector_norm
from ..linalg.ops import aslinearoperator


class ArnoldiStep(NamedTuple):
    """Basis and Hessenberg arenas after one Arnoldi step."""
    basis: jnp.ndarray
    hessenberg: jnp.ndarray
    norm: float
    breakdown: bool


def arnoldi_step(operator: Callable[[jnp.ndarray], jnp.ndarray],
                 basis: jnp.ndarray,
                 hessenberg: jnp.ndarray,
                 i: int,
                 breakdown_tol: float = 1e-12) -> ArnoldiStep:
    """Extend the Krylov basis by one vector.

    Fills column i of the Hessenberg arena and, unless the new direction
    vanishes, column i + 1 of the basis arena.

    Args:
        operator: Function v -> M^{-1} A v
        basis: Basis arena (n x (m + 1)), columns 0..i orthonormal
        hessenberg: Hessenberg arena ((m + 1) x m)
        i: Index of the basis vector to expand
        breakdown_tol: Relative size of H[i+1, i] (against ||A q_i||)
            below which the subspace is considered invariant

    Returns:
        ArnoldiStep with updated arenas, H[i+1, i] and a breakdown flag.
        On breakdown, basis column i + 1 is left untouched.
    """
    w = operator(basis[:, i])
    scale = vector_norm(w)

    for k in range(i + 1):
        q_k = basis[:, k]
        h_ki = jnp.dot(w, q_k)
        hessenberg = hessenberg.at[k, i].set(h_ki)
        w = w - h_ki * q_k

    norm = vector_norm(w)
    hessenberg = hessenberg.at[i + 1, i].set(norm)

    breakdown = is_near_zero(norm, scale, breakdown_tol)
    if not breakdown:
        basis = basis.at[:, i + 1].set(w / norm)

    return ArnoldiStep(basis=basis, hessenberg=hessenberg,
                       norm=float(norm), breakdown=breakdown)


def arnoldi_iteration(A: Any,
                      v0: jnp.ndarray,
                      num_steps: int,
                      breakdown_tol: float = 1e-12) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Run the Arnoldi process from a start vector.

    Args:
        A: Matrix, sparse matrix or LinearOperator
        v0: Start vector (normalised internally)
        num_steps: Number of Arnoldi steps m
        breakdown_tol: Relative breakdown threshold

    Returns:
        (Q, H): Q is n x (m + 1) and H is (m + 1) x m, so that
        A Q[:, :m] = Q H. If the subspace becomes invariant after k < m
        steps, Q is n x k and H is k x k with A Q = Q H.
    """
    operator = aslinearoperator(A)
    v0 = as_float_array(v0)
    v_norm = float(vector_norm(v0))
    if v_norm == 0.0:
        raise ValueError("Arnoldi start vector must be non-zero")
    if num_steps <= 0:
        raise ValueError(f"num_steps must be positive, got {num_steps}")

    n = v0.shape[0]
    basis = jnp.zeros((n, num_steps + 1), dtype=v0.dtype)
    hessenberg = jnp.zeros((num_steps + 1, num_steps), dtype=v0.dtype)
    basis = basis.at[:, 0].set(v0 / v_norm)

    for i in range(num_steps):
        step = arnoldi_step(operator, basis, hessenberg, i, breakdown_tol)
        basis, hessenberg = step.basis, step.hessenberg
        if step.breakdown:
            return basis[:, :i + 1], hessenberg[:i + 1, :i + 1]

    return basis, hessenberg
