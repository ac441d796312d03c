# File location: jax-krylov/src/jax_krylov/krylov/givens.py

"""
Givens rotations and the incremental QR update of a Hessenberg matrix.

GMRES never refactors its Hessenberg matrix. Each new column is rotated
by all previous rotations, one new rotation zeros its subdiagonal entry,
and the same rotation is applied to the residual vector beta, whose last
entry then equals the current residual norm.
"""

import jax
import jax.numpy as jnp
from jax import lax
from typing import NamedTuple, Tuple, Union


class RotatedColumn(NamedTuple):
    """Result of rotating one Hessenberg column."""
    column: jnp.ndarray
    cs: jnp.ndarray
    sn: jnp.ndarray
    beta: jnp.ndarray


@jax.jit
def givens_rotation(a: Union[float, jnp.ndarray],
                    b: Union[float, jnp.ndarray]) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Cosine/sine pair (c, s) with -s*a + c*b = 0.

    Uses the ratio of the smaller to the larger entry so that squaring
    never overflows.

    Args:
        a: Entry that is kept (diagonal)
        b: Entry to be zeroed (subdiagonal)

    Returns:
        (c, s) tuple
    """
    a = jnp.asarray(a)
    b = jnp.asarray(b)

    b_is_zero = b == 0
    b_dominates = jnp.abs(b) > jnp.abs(a)

    # Denominators are swapped for 1 on the branches that are not selected
    ratio_ab = a / jnp.where(b_is_zero, 1.0, b)
    s_b = 1.0 / jnp.sqrt(1.0 + ratio_ab ** 2)
    c_b = ratio_ab * s_b

    ratio_ba = b / jnp.where(a == 0, 1.0, a)
    c_a = 1.0 / jnp.sqrt(1.0 + ratio_ba ** 2)
    s_a = ratio_ba * c_a

    c = jnp.where(b_is_zero, 1.0, jnp.where(b_dominates, c_b, c_a))
    s = jnp.where(b_is_zero, 0.0, jnp.where(b_dominates, s_b, s_a))
    return c, s


def apply_givens_rotation(c: jnp.ndarray,
                          s: jnp.ndarray,
                          x: jnp.ndarray,
                          y: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Rotate the pair (x, y) to (c*x + s*y, -s*x + c*y)."""
    return c * x + s * y, -s * x + c * y


@jax.jit
def rotate_hessenberg_column(column: jnp.ndarray,
                             cs: jnp.ndarray,
                             sn: jnp.ndarray,
                             beta: jnp.ndarray,
                             i: int) -> RotatedColumn:
    """Bring column i of the Hessenberg matrix to upper triangular form.

    Args:
        column: Column i of H, length m + 1 (entries below i + 1 are zero)
        cs: Rotation cosines, entries 0..i-1 valid
        sn: Rotation sines, entries 0..i-1 valid
        beta: Rotated residual vector, length m + 1
        i: Column index

    Returns:
        RotatedColumn with the rotated column, cs/sn extended by the new
        rotation at index i, and beta updated at entries i and i + 1
    """
    def apply_previous(k, col):
        top, bottom = apply_givens_rotation(cs[k], sn[k], col[k], col[k + 1])
        return col.at[k].set(top).at[k + 1].set(bottom)

    column = lax.fori_loop(0, i, apply_previous, column)

    c, s = givens_rotation(column[i], column[i + 1])
    cs = cs.at[i].set(c)
    sn = sn.at[i].set(s)

    beta_i = beta[i]
    beta = beta.at[i + 1].set(-s * beta_i)
    beta = beta.at[i].set(c * beta_i)

    column = column.at[i].set(c * column[i] + s * column[i + 1])
    column = column.at[i + 1].set(0.0)

    return RotatedColumn(column=column, cs=cs, sn=sn, beta=beta)
