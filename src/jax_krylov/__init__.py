# File location: jax-krylov/src/jax_krylov/__init__.py

"""
JAX-Krylov: Krylov subspace solvers with JAX

An educational implementation of preconditioned and restarted GMRES
(Arnoldi, Givens rotations, incremental least squares) together with
the classical iterative solvers it is usually taught alongside.
"""

import jax

# Residual monitoring down to ~1e-10 needs double precision
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"
__author__ = "Your Name"
__email__ = "your.email@example.com"

# Core imports for easy access
from . import core
from . import linalg
from . import krylov
from . import utils

from .krylov import gmres, restarted_gmres, GMRESConfig, ConvergenceStatus
from .linalg import linear_solve_iterative

# Version and metadata
__all__ = [
    "__version__",
    "__author__", 
    "__email__",
    "core",
    "linalg",
    "krylov",
    "utils",
    "gmres",
    "restarted_gmres",
    "GMRESConfig",
    "ConvergenceStatus",
    "linear_solve_iterative"
]
