# File location: jax-krylov/src/jax_krylov/core/__init__.py

"""
Core array utilities and numerical guards.

This module provides the building blocks shared by every solver:
- Array coercion and dtype handling
- Linear system dimension checks
- Norms and near-zero guards for denominators
"""

from .arrays import *
from .numerics import *

__all__ = [
    # arrays.py
    "DimensionMismatchError",
    "get_dtype_info",
    "as_float_array",
    "check_finite",
    "validate_linear_system",
    "prepare_system",
    "to_numpy",
    
    # numerics.py
    "vector_norm",
    "safe_reference_norm",
    "relative_error",
    "machine_epsilon",
    "is_near_zero"
]
