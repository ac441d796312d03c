# File location: jax-krylov/src/jax_krylov/krylov/__init__.py

"""
Krylov subspace methods: Arnoldi, Givens rotations and GMRES.

This module provides the building blocks of GMRES (Arnoldi steps,
incremental Givens QR of the Hessenberg matrix, the least squares
update) and the full and restarted GMRES drivers.
"""

from .givens import *
from .arnoldi import *
from .gmres import *

__all__ = [
    # givens.py
    "RotatedColumn",
    "givens_rotation",
    "apply_givens_rotation",
    "rotate_hessenberg_column",
    
    # arnoldi.py
    "ArnoldiStep",
    "arnoldi_step",
    "arnoldi_iteration",
    
    # gmres.py
    "GMRESConfig",
    "ConvergenceStatus",
    "GMRESState",
    "RestartedGMRESState",
    "update_solution",
    "gmres_cycle",
    "gmres",
    "restarted_gmres"
]
