# File location: jax-krylov/src/jax_krylov/linalg/__init__.py

"""
Linear operators, preconditioners and classical iterative solvers.

This module provides the operator abstraction used by the Krylov
solvers, the preconditioner family, triangular and QR primitives, the
stationary and conjugate gradient methods, and standard test systems.
"""

from .ops import *
from .preconditioners import *
from .solvers import *
from .problems import *

__all__ = [
    # ops.py
    "LinearOperator",
    "aslinearoperator",
    "matvec",
    "to_dense",
    "back_substitution",
    "forward_substitution",
    "modified_gram_schmidt",
    "orthogonality_error",
    
    # preconditioners.py
    "Preconditioner",
    "IdentityPreconditioner",
    "JacobiPreconditioner",
    "SSORPreconditioner",
    "FunctionPreconditioner",
    "MatrixPreconditioner",
    "make_preconditioner",
    
    # solvers.py  
    "SolverState",
    "conjugate_gradient",
    "jacobi_method",
    "sor_method",
    "least_squares_solver",
    "linear_solve_iterative",
    
    # problems.py
    "banded_test_matrix",
    "poisson_2d",
    "random_system",
    "random_spd_matrix",
    "clustered_spectrum_system"
]
