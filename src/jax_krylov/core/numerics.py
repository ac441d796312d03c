# File location: jax-krylov/src/jax_krylov/core/numerics.py

"""
Norms, relative errors and near-zero guards.

Iterative solvers divide by a handful of quantities that can vanish: the
norm of the right-hand side, the norm of a new Krylov direction, the
diagonal of a rotated Hessenberg matrix. The helpers here centralise how
those denominators are measured and guarded.
"""

import jax.numpy as jnp
from typing import Optional, Union


def vector_norm(x: jnp.ndarray, ord: Optional[Union[int, float, str]] = None) -> jnp.ndarray:
    """Norm of a vector.

    Args:
        x: Input vector
        ord: Order of the norm (2 for L2, 1 for L1, inf for max)

    Returns:
        Scalar norm value
    """
    if ord is None or ord == 2:
        return jnp.sqrt(jnp.sum(jnp.abs(x) ** 2))
    elif ord == 1:
        return jnp.sum(jnp.abs(x))
    elif ord == jnp.inf or ord == 'inf':
        return jnp.max(jnp.abs(x))
    else:
        raise ValueError(f"Unsupported norm order: {ord}")


def safe_reference_norm(b: jnp.ndarray) -> float:
    """2-norm of a right-hand side, replaced by 1 when it is zero."""
    bnorm = float(vector_norm(b))
    return bnorm if bnorm > 0.0 else 1.0


def relative_error(value: Union[float, jnp.ndarray], reference: float) -> float:
    """Absolute value of `value` scaled by `reference` (1 if zero)."""
    if reference == 0.0:
        reference = 1.0
    return float(jnp.abs(value)) / reference


def machine_epsilon(dtype: jnp.dtype = None) -> float:
    """Machine epsilon of a floating dtype (default float dtype if None)."""
    if dtype is None:
        dtype = jnp.result_type(float)
    return float(jnp.finfo(dtype).eps)


def is_near_zero(value: Union[float, jnp.ndarray],
                 scale: Union[float, jnp.ndarray] = 1.0,
                 rtol: float = 1e-12) -> bool:
    """Check |value| <= rtol * |scale|, treating an exact zero as near zero.

    Args:
        value: Quantity about to be used as a denominator
        scale: Magnitude the quantity is compared against
        rtol: Relative threshold

    Returns:
        True when value should be treated as zero
    """
    value = abs(float(value))
    return value == 0.0 or value <= rtol * abs(float(scale))
