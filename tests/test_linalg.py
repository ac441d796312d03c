# tests/test_linalg.py

import jax
import jax.numpy as jnp
import pytest
from jax import random
from jax.experimental import sparse

from jax_krylov.core.arrays import DimensionMismatchError
from jax_krylov.linalg.ops import (
    LinearOperator, aslinearoperator, matvec, to_dense, back_substitution,
    forward_substitution, modified_gram_schmidt, orthogonality_error
)
from jax_krylov.linalg.preconditioners import (
    Preconditioner, IdentityPreconditioner, JacobiPreconditioner, SSORPreconditioner,
    FunctionPreconditioner, MatrixPreconditioner, make_preconditioner
)
from jax_krylov.linalg.problems import (
    banded_test_matrix, poisson_2d, random_system, random_spd_matrix,
    clustered_spectrum_system
)


class TestLinearOperator:
    """Test the operator wrapper over dense, sparse and callable inputs."""

    def test_dense_operator(self):
        """Test wrapping a dense matrix."""
        A = jnp.array([[1.0, 2.0], [3.0, 4.0]])
        op = aslinearoperator(A)

        assert op.shape == (2, 2)
        assert op.matrix is not None
        v = jnp.array([1.0, -1.0])
        assert jnp.allclose(op(v), A @ v)
        assert jnp.allclose(op @ v, A @ v)
        assert jnp.allclose(op.matvec(v), A @ v)

    def test_integer_matrix_promoted(self):
        """Integer matrices are promoted to floating point."""
        op = aslinearoperator([[2, 0], [0, 2]])
        assert op.dtype == jnp.float64
        assert jnp.allclose(op(jnp.ones(2)), 2.0)

    def test_sparse_operator(self):
        """Test wrapping a BCOO matrix."""
        A = poisson_2d(3, 3)
        op = aslinearoperator(sparse.BCOO.fromdense(A))
        v = jnp.arange(9.0)

        assert op.shape == (9, 9)
        assert jnp.allclose(op(v), A @ v)
        assert jnp.allclose(to_dense(op), A)

    def test_callable_operator(self):
        """Matrix-free operators need an explicit shape."""
        op = aslinearoperator(lambda v: 2.0 * v, shape=(3, 3))
        assert op.shape == (3, 3)
        assert op.matrix is None
        assert jnp.allclose(op(jnp.ones(3)), 2.0)

        with pytest.raises(ValueError):
            aslinearoperator(lambda v: 2.0 * v)

    def test_operator_passthrough(self):
        """Existing operators are returned unchanged."""
        op = LinearOperator(lambda v: v, (4, 4))
        assert aslinearoperator(op) is op

    def test_non_matrix_rejected(self):
        """A vector is not an operator."""
        with pytest.raises(DimensionMismatchError):
            aslinearoperator(jnp.ones(3))

    def test_to_dense_matrix_free(self):
        """Matrix-free operators cannot be materialised."""
        op = LinearOperator(lambda v: v, (2, 2))
        with pytest.raises(TypeError):
            to_dense(op)
        with pytest.raises(TypeError):
            to_dense(lambda v: v)

    def test_matvec_helper(self):
        """Test matvec over the supported operator kinds."""
        A = jnp.array([[1.0, 1.0], [0.0, 1.0]])
        v = jnp.array([1.0, 2.0])
        expected = jnp.array([3.0, 2.0])

        assert jnp.allclose(matvec(A, v), expected)
        assert jnp.allclose(matvec(aslinearoperator(A), v), expected)
        assert jnp.allclose(matvec(sparse.BCOO.fromdense(A), v), expected)


class TestTriangularAndQR:
    """Test triangular solves and modified Gram-Schmidt."""

    def test_back_substitution(self):
        """Test solving an upper triangular system."""
        U = jnp.array([[2.0, 1.0, -1.0], [0.0, 3.0, 2.0], [0.0, 0.0, 4.0]])
        b = jnp.array([1.0, 2.0, 8.0])
        x = back_substitution(U, b)
        assert jnp.allclose(U @ x, b)

    def test_forward_substitution(self):
        """Test solving a lower triangular system, with and without unit diagonal."""
        L = jnp.array([[2.0, 0.0], [1.0, 4.0]])
        b = jnp.array([2.0, 9.0])
        assert jnp.allclose(forward_substitution(L, b), jnp.array([1.0, 2.0]))

        # Diagonal entries are ignored and taken as 1
        x = forward_substitution(L, b, unit_diagonal=True)
        assert jnp.allclose(x, jnp.array([2.0, 7.0]))

    def test_gram_schmidt_known_factors(self):
        """Test the QR factors of a small textbook matrix."""
        A = jnp.array([[1.0, -4.0], [2.0, 3.0], [2.0, 2.0]])
        Q, R = modified_gram_schmidt(A)

        assert jnp.allclose(R, jnp.array([[3.0, 2.0], [0.0, 5.0]]))
        assert jnp.allclose(Q[:, 0], jnp.array([1.0, 2.0, 2.0]) / 3.0)
        assert jnp.allclose(Q @ R, A)

    def test_gram_schmidt_random(self):
        """Test orthonormality and reconstruction for a random matrix."""
        A = random.normal(random.PRNGKey(0), (8, 5))
        Q, R = modified_gram_schmidt(A)

        assert Q.shape == (8, 5)
        assert R.shape == (5, 5)
        assert orthogonality_error(Q) < 1e-12
        assert jnp.allclose(jnp.tril(R, k=-1), 0.0)
        assert jnp.allclose(Q @ R, A)

    def test_gram_schmidt_wide_matrix(self):
        """More columns than rows is rejected."""
        with pytest.raises(DimensionMismatchError):
            modified_gram_schmidt(jnp.ones((2, 3)))

    def test_gram_schmidt_dependent_columns(self):
        """Linearly dependent columns are rejected."""
        A = jnp.array([[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]])
        with pytest.raises(ValueError):
            modified_gram_schmidt(A)

    def test_orthogonality_error(self):
        """Orthonormal columns have zero error."""
        assert orthogonality_error(jnp.eye(4)[:, :2]) == pytest.approx(0.0)
        assert orthogonality_error(jnp.ones((3, 2))) > 1.0


class TestPreconditioners:
    """Test the preconditioner family."""

    def setup_method(self):
        self.A = jnp.array([[4.0, 1.0], [1.0, 3.0]])
        self.r = jnp.array([1.0, 2.0])

    def test_identity(self):
        """Identity returns its input."""
        M = IdentityPreconditioner(2)
        assert jnp.array_equal(M(self.r), self.r)
        assert M.n == 2

    def test_jacobi(self):
        """Jacobi divides by the diagonal."""
        M = JacobiPreconditioner(self.A)
        assert jnp.allclose(M(self.r), jnp.array([0.25, 2.0 / 3.0]))
        assert M.n == 2

    def test_ssor_matrix(self):
        """Test M = (I + L D^{-1})(D + U) for omega = 1."""
        M = SSORPreconditioner(self.A, omega=1.0)
        expected = jnp.array([[4.0, 1.0], [1.0, 3.25]])

        assert jnp.allclose(M.matrix(), expected)
        assert jnp.allclose(M.lower, jnp.array([[1.0, 0.0], [0.25, 1.0]]))
        assert jnp.allclose(M.solve(self.r), jnp.linalg.solve(expected, self.r))

    def test_ssor_relaxed(self):
        """Test that solve inverts the explicit matrix for omega != 1."""
        A = poisson_2d(3, 3)
        M = SSORPreconditioner(A, omega=1.5)
        r = jnp.arange(1.0, 10.0)

        assert jnp.allclose(M.matrix() @ M.solve(r), r)

        # Symmetric A gives a symmetric SSOR matrix
        assert jnp.allclose(M.matrix(), M.matrix().T)

    def test_ssor_invalid_omega(self):
        """Relaxation weights outside (0, 2) are rejected."""
        with pytest.raises(ValueError):
            SSORPreconditioner(self.A, omega=2.0)
        with pytest.raises(ValueError):
            SSORPreconditioner(self.A, omega=0.0)

    def test_zero_diagonal(self):
        """Diagonal-based preconditioners need a non-zero diagonal."""
        A = jnp.array([[0.0, 1.0], [1.0, 2.0]])
        with pytest.raises(ValueError):
            JacobiPreconditioner(A)
        with pytest.raises(ValueError):
            SSORPreconditioner(A)

    def test_function_preconditioner(self):
        """A user function is applied as M^{-1}."""
        M = FunctionPreconditioner(lambda r: 0.5 * r, 2)
        assert jnp.allclose(M(self.r), 0.5 * self.r)

    def test_matrix_preconditioner(self):
        """An explicit M is applied by a linear solve."""
        M = MatrixPreconditioner(self.A)
        assert jnp.allclose(self.A @ M(self.r), self.r)

        with pytest.raises(DimensionMismatchError):
            MatrixPreconditioner(jnp.ones((2, 3)))

    def test_make_preconditioner_names(self):
        """Test construction by name."""
        assert isinstance(make_preconditioner(None, self.A), IdentityPreconditioner)
        assert isinstance(make_preconditioner('identity'), IdentityPreconditioner)
        assert isinstance(make_preconditioner('jacobi', self.A), JacobiPreconditioner)
        assert isinstance(make_preconditioner('SSOR', self.A), SSORPreconditioner)

        gs = make_preconditioner('gauss_seidel', self.A, omega=1.7)
        assert gs.omega == 1.0
        assert jnp.allclose(gs.matrix(), SSORPreconditioner(self.A).matrix())

    def test_make_preconditioner_other_inputs(self):
        """Test instances, callables and matrices."""
        M = JacobiPreconditioner(self.A)
        assert make_preconditioner(M, self.A) is M

        f = make_preconditioner(lambda r: r / 4.0, self.A)
        assert isinstance(f, FunctionPreconditioner)
        assert f.n == 2

        assert isinstance(make_preconditioner(jnp.eye(2), self.A), MatrixPreconditioner)
        assert isinstance(make_preconditioner(aslinearoperator(self.A)), MatrixPreconditioner)

    def test_make_preconditioner_errors(self):
        """Unknown names and missing matrices are rejected."""
        with pytest.raises(ValueError):
            make_preconditioner('ilu', self.A)
        with pytest.raises(ValueError):
            make_preconditioner('jacobi')

    def test_base_class(self):
        """The base class has no solve."""
        with pytest.raises(NotImplementedError):
            Preconditioner(2)(self.r)


class TestProblems:
    """Test the standard test systems."""

    def test_banded_test_matrix(self):
        """Test diagonal and band entries."""
        A = banded_test_matrix(20)

        assert A.shape == (20, 20)
        assert jnp.allclose(jnp.diag(A), jnp.sqrt(jnp.arange(1.0, 21.0)))
        assert jnp.allclose(A[0, 10], jnp.cos(1.0))
        assert jnp.allclose(A[10, 0], jnp.sin(1.0))
        assert jnp.allclose(A[9, 19], jnp.cos(10.0))
        assert A[0, 1] == 0.0

        with pytest.raises(ValueError):
            banded_test_matrix(10)

    def test_poisson_2d(self):
        """Test the 5-point Laplacian structure."""
        A = poisson_2d(3, 3)

        assert A.shape == (9, 9)
        assert jnp.allclose(A, A.T)
        assert jnp.allclose(jnp.diag(A), 4.0)
        assert A[0, 1] == -1.0
        assert A[0, 3] == -1.0
        # Corner rows have two neighbours, the centre row four
        assert jnp.allclose(jnp.sum(A[0]), 2.0)
        assert jnp.allclose(jnp.sum(A[4]), 0.0)

        A_sparse = poisson_2d(3, 3, sparse_format=True)
        assert isinstance(A_sparse, sparse.BCOO)
        assert jnp.allclose(A_sparse.todense(), A)

    def test_random_system(self):
        """Test shapes and reproducibility."""
        key = random.PRNGKey(1)
        A, b = random_system(key, 6)
        A2, b2 = random_system(key, 6)

        assert A.shape == (6, 6)
        assert b.shape == (6,)
        assert A.dtype == jnp.float64
        assert jnp.array_equal(A, A2)
        assert jnp.array_equal(b, b2)

    def test_random_spd_matrix(self):
        """Test symmetry and positive definiteness."""
        A = random_spd_matrix(random.PRNGKey(2), 5)
        assert jnp.allclose(A, A.T)
        assert jnp.min(jnp.linalg.eigvalsh(A)) >= 1.0 - 1e-8

    def test_clustered_spectrum_system(self):
        """Eigenvalues are repeated cyclically along the diagonal."""
        A, b = clustered_spectrum_system(5, [1.0, 2.0])

        assert jnp.allclose(jnp.diag(A), jnp.array([1.0, 2.0, 1.0, 2.0, 1.0]))
        assert jnp.allclose(b, 1.0)

        with pytest.raises(ValueError):
            clustered_spectrum_system(2, [1.0, 2.0, 3.0])


if __name__ == "__main__":
    pytest.main([__file__])
