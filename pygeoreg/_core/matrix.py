"""
Dense matrix kernel.

Transpose, product and Gauss-Jordan inverse on float64 arrays. Shapes are
checked, never broadcast or coerced.
"""

import numpy as np

from ..exceptions import InvalidArgumentError, SingularMatrixError


# Smallest pivot magnitude accepted by ``inverse``
PIVOT_TOLERANCE = 1e-10


def _as_matrix(A, name: str) -> np.ndarray:
    A = np.asarray(A, dtype=np.float64)
    if A.ndim != 2:
        raise InvalidArgumentError(f"{name} must be 2-dimensional, got {A.ndim} dimension(s)")
    return A


def transpose(A) -> np.ndarray:
    """Return Aᵗ as a new (contiguous) array."""
    return np.ascontiguousarray(_as_matrix(A, "A").T)


def multiply(A, B) -> np.ndarray:
    """
    Matrix product A·B.

    ``B`` may be a 1-d vector, in which case a 1-d vector is returned.

    Raises
    ------
    InvalidArgumentError
        If the inner dimensions differ
    """
    A = _as_matrix(A, "A")
    B = np.asarray(B, dtype=np.float64)
    if B.ndim not in (1, 2):
        raise InvalidArgumentError("B must be a vector or a 2-dimensional matrix")
    if A.shape[1] != B.shape[0]:
        raise InvalidArgumentError(
            f"Shape mismatch: cannot multiply {A.shape} by {B.shape}"
        )
    return A @ B


def inverse(A, tol: float = PIVOT_TOLERANCE) -> np.ndarray:
    """
    Invert a square matrix by Gauss-Jordan elimination.

    Works on the augmented matrix [A | I] with partial pivoting: at each
    step the row with the largest absolute value in the current column
    becomes the pivot row.

    Parameters
    ----------
    A : array, shape (n, n)
        Matrix to invert (not modified)
    tol : float
        Minimum absolute pivot value

    Returns
    -------
    ndarray, shape (n, n)
        A⁻¹

    Raises
    ------
    SingularMatrixError
        If the chosen pivot is smaller than ``tol`` in absolute value
    InvalidArgumentError
        If A is not square
    """
    A = _as_matrix(A, "A")
    n, m = A.shape
    if n != m:
        raise InvalidArgumentError(f"Only square matrices can be inverted, got {A.shape}")

    augmented = np.hstack([A, np.eye(n)])

    for i in range(n):
        # Partial pivoting
        pivot_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if pivot_row != i:
            augmented[[i, pivot_row]] = augmented[[pivot_row, i]]

        pivot = augmented[i, i]
        if not abs(pivot) >= tol:
            raise SingularMatrixError(
                f"Matrix is singular or nearly singular "
                f"(pivot {pivot:.3e} in column {i})",
                pivot=float(pivot),
                column=i,
            )

        augmented[i, i:] /= pivot

        # Eliminate column i from every other row
        factors = augmented[:, i].copy()
        factors[i] = 0.0
        augmented[:, i:] -= np.outer(factors, augmented[i, i:])

    return augmented[:, n:].copy()


__all__ = ["transpose", "multiply", "inverse", "PIVOT_TOLERANCE"]
