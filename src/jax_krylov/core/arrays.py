# File location: jax-krylov/src/jax_krylov/core/arrays.py

"""
Array coercion, dtype inspection, and shape validation.

This module provides the small set of array utilities every solver in the
package runs before touching its inputs: conversion to floating JAX arrays,
dtype information for tolerance scaling, and dimension checks for linear
systems.
"""

import jax.numpy as jnp
from typing import Any, Dict, Optional, Sequence, Tuple
import numpy as np


class DimensionMismatchError(ValueError):
    """Raised when operator, right-hand side and initial guess disagree in size."""


def get_dtype_info(dtype: jnp.dtype) -> Dict[str, Any]:
    """Get information about a floating or integer dtype.

    Args:
        dtype: JAX/NumPy dtype to analyze

    Returns:
        Dictionary containing name, itemsize, kind and, for floating
        dtypes, eps/max/min/precision/resolution
    """
    dtype = jnp.dtype(dtype)
    info = {
        'name': dtype.name,
        'itemsize': dtype.itemsize,
        'kind': dtype.kind,
    }

    if jnp.issubdtype(dtype, jnp.floating):
        finfo = jnp.finfo(dtype)
        info.update({
            'eps': float(finfo.eps),
            'max': float(finfo.max),
            'min': float(finfo.min),
            'precision': finfo.precision,
            'resolution': float(finfo.resolution)
        })
    elif jnp.issubdtype(dtype, jnp.integer):
        iinfo = jnp.iinfo(dtype)
        info.update({
            'max': int(iinfo.max),
            'min': int(iinfo.min)
        })

    return info


def as_float_array(x: Any, dtype: Optional[jnp.dtype] = None) -> jnp.ndarray:
    """Convert input to a floating point JAX array.

    Integer and boolean inputs are promoted to the default float dtype
    (float64 once the package is imported).

    Args:
        x: Array-like input
        dtype: Explicit target dtype

    Returns:
        Floating point jnp.ndarray
    """
    x = jnp.asarray(x)
    if dtype is not None:
        return x.astype(dtype)
    if not jnp.issubdtype(x.dtype, jnp.inexact):
        x = x.astype(jnp.result_type(float))
    return x


def check_finite(x: Any) -> bool:
    """Check that an array contains only finite values."""
    return bool(jnp.all(jnp.isfinite(jnp.asarray(x))))


def validate_linear_system(shape: Sequence[int],
                           b: jnp.ndarray,
                           x0: Optional[jnp.ndarray] = None) -> int:
    """Check the dimensions of a square system A x = b.

    Args:
        shape: Shape of the operator A
        b: Right-hand side vector
        x0: Optional initial guess

    Returns:
        Problem dimension n

    Raises:
        DimensionMismatchError: If A is not square or b/x0 do not match it
    """
    shape = tuple(shape)
    if len(shape) != 2 or shape[0] != shape[1]:
        raise DimensionMismatchError(f"Operator must be square: {shape}")

    n = shape[0]
    if b.ndim != 1 or b.shape[0] != n:
        raise DimensionMismatchError(
            f"Right-hand side shape {b.shape} does not match operator {shape}")
    if x0 is not None and (x0.ndim != 1 or x0.shape[0] != n):
        raise DimensionMismatchError(
            f"Initial guess shape {x0.shape} does not match operator {shape}")

    return n


def prepare_system(b: Any,
                   x0: Optional[Any],
                   shape: Tuple[int, int]) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Coerce and validate right-hand side and initial guess.

    Column vectors of shape (n, 1) are flattened. A missing initial guess
    becomes the zero vector.

    Args:
        b: Right-hand side
        x0: Initial guess or None
        shape: Operator shape

    Returns:
        (b, x0) as 1D floating arrays of matching dtype
    """
    b = as_float_array(b)
    if b.ndim == 2 and b.shape[1] == 1:
        b = b[:, 0]

    if x0 is None:
        validate_linear_system(shape, b)
        return b, jnp.zeros_like(b)

    x0 = as_float_array(x0)
    if x0.ndim == 2 and x0.shape[1] == 1:
        x0 = x0[:, 0]
    validate_linear_system(shape, b, x0)

    dtype = jnp.result_type(b.dtype, x0.dtype)
    return b.astype(dtype), x0.astype(dtype)


def to_numpy(x: Any) -> np.ndarray:
    """Copy a JAX array to host memory as a NumPy array."""
    return np.asarray(x)
