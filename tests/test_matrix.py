"""
Test the dense matrix kernel.
"""

import pytest
import numpy as np

from pygeoreg._core.matrix import transpose, multiply, inverse, PIVOT_TOLERANCE
from pygeoreg.exceptions import InvalidArgumentError, SingularMatrixError


INVERSE_ATOL = 1e-6


class TestTransposeMultiply:

    def test_transpose(self):
        A = np.arange(6.0).reshape(2, 3)
        At = transpose(A)
        assert At.shape == (3, 2)
        np.testing.assert_array_equal(At, A.T)
        assert At.flags['C_CONTIGUOUS']

    def test_multiply_matrices(self):
        np.random.seed(42)
        A = np.random.randn(4, 3)
        B = np.random.randn(3, 5)
        np.testing.assert_allclose(multiply(A, B), A @ B)

    def test_multiply_vector(self):
        A = np.array([[1.0, 2.0], [3.0, 4.0]])
        result = multiply(A, [1.0, 1.0])
        assert result.shape == (2,)
        np.testing.assert_allclose(result, [3.0, 7.0])

    def test_multiply_shape_mismatch(self):
        with pytest.raises(InvalidArgumentError, match="Shape mismatch"):
            multiply(np.ones((2, 3)), np.ones((2, 3)))

    def test_transpose_rejects_vector(self):
        with pytest.raises(InvalidArgumentError):
            transpose(np.ones(3))


class TestInverse:

    @pytest.mark.parametrize("n", [1, 2, 5, 10])
    def test_inverse_times_matrix_is_identity(self, n):
        np.random.seed(n)
        M = np.random.randn(n, n)
        A = M @ M.T + n * np.eye(n)
        A_inv = inverse(A)
        np.testing.assert_allclose(A_inv @ A, np.eye(n), atol=INVERSE_ATOL)

    def test_needs_pivoting(self):
        # Zero in the leading position
        A = np.array([[0.0, 1.0], [1.0, 0.0]])
        np.testing.assert_allclose(inverse(A), A)

    def test_input_not_modified(self):
        A = np.array([[4.0, 7.0], [2.0, 6.0]])
        original = A.copy()
        inverse(A)
        np.testing.assert_array_equal(A, original)

    def test_singular(self):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrixError) as excinfo:
            inverse(A)
        assert excinfo.value.column == 1
        assert abs(excinfo.value.pivot) < PIVOT_TOLERANCE

    def test_singular_is_value_error(self):
        with pytest.raises(ValueError):
            inverse(np.zeros((3, 3)))

    def test_non_square(self):
        with pytest.raises(InvalidArgumentError, match="square"):
            inverse(np.ones((2, 3)))
