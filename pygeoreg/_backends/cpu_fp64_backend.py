"""
CPU backend using NumPy.

Solves the normal equations with the package's Gauss-Jordan kernel.
"""

import numpy as np
from typing import Optional

from .base import CPUBackend, LinearModelResult
from .._core.matrix import inverse, multiply, transpose
from ..exceptions import InvalidArgumentError, SingularMatrixError


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy.

    Forms X'X on the sqrt(weight)-scaled design and inverts it by
    Gauss-Jordan elimination. X'X is equilibrated (unit diagonal) before
    inversion so the fixed pivot tolerance does not depend on the scale
    of the predictors.
    """

    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"

    @staticmethod
    def _check_weights(weights: np.ndarray, n: int) -> np.ndarray:
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (n,):
            raise InvalidArgumentError(
                f"weights must have shape ({n},), got {weights.shape}"
            )
        if not np.all(np.isfinite(weights)):
            raise InvalidArgumentError("weights contain NaN or Inf")
        if np.any(weights < 0):
            raise InvalidArgumentError("weights must be non-negative")
        if not np.any(weights > 0):
            raise InvalidArgumentError("All weights are zero")
        return weights

    def _scaled(self, X_full, y=None, weights=None):
        if weights is None:
            return X_full, y
        w_sqrt = np.sqrt(weights)
        X_work = X_full * w_sqrt[:, np.newaxis]
        y_work = y * w_sqrt if y is not None else None
        return X_work, y_work

    def _invert_gram(self, X_work: np.ndarray) -> np.ndarray:
        XtX = multiply(transpose(X_work), X_work)

        scale = np.sqrt(np.diag(XtX))
        if not np.all(scale > 0):
            column = int(np.argmin(scale))
            raise SingularMatrixError(
                f"Design column {column} is zero for every weighted observation",
                column=column,
            )

        outer = np.outer(scale, scale)
        return inverse(XtX / outer) / outer

    def gram_inverse(
        self,
        X: np.ndarray,
        weights: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if weights is not None:
            weights = self._check_weights(weights, X.shape[0])
        X_work, _ = self._scaled(X, weights=weights)
        return self._invert_gram(X_work)

    def fit_linear_model(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: Optional[np.ndarray] = None,
    ) -> LinearModelResult:
        """
        Fit linear model by the normal equations.

        beta = (Xw'Xw)^-1 Xw'yw with Xw, yw scaled by sqrt(weight).
        """
        y = np.asarray(y, dtype=np.float64)
        X = np.asarray(X, dtype=np.float64)
        n = len(y)
        if X.ndim != 2 or X.shape[0] != n:
            raise InvalidArgumentError(
                f"X must have shape ({n}, p), got {X.shape}"
            )

        # Add intercept
        X_full = np.column_stack([np.ones(n), X])
        p = X_full.shape[1]

        if weights is not None:
            weights = self._check_weights(weights, n)

        X_work, y_work = self._scaled(X_full, y, weights)

        xtx_inv = self._invert_gram(X_work)
        xty = multiply(transpose(X_work), y_work)
        coef = multiply(xtx_inv, xty)

        fitted = multiply(X_full, coef)
        residuals = y - fitted

        return LinearModelResult(
            coef=coef,
            residuals=residuals,
            fitted_values=fitted,
            xtx_inv=xtx_inv,
            df_residual=n - p,
            weights=weights,
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'algorithm': 'Gauss-Jordan normal equations',
            'library': f'NumPy {np.__version__}',
        }
