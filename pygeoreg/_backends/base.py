"""
Backend interface.

A backend solves the weighted normal equations for one design matrix and
reports what it runs on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class LinearModelResult:
    """Weighted least-squares solution."""
    coef: np.ndarray           # intercept first
    residuals: np.ndarray      # y - fitted, original scale
    fitted_values: np.ndarray  # original scale
    xtx_inv: np.ndarray        # (Xw'Xw)^-1, Xw = sqrt(w)-scaled design with intercept
    df_residual: int
    weights: Optional[np.ndarray] = None


class BackendBase(ABC):
    """Solver backend. Subclasses set ``name`` and ``precision``."""

    name: str
    precision: str

    @abstractmethod
    def fit_linear_model(self, X: np.ndarray, y: np.ndarray,
                         weights: Optional[np.ndarray] = None) -> LinearModelResult:
        """
        Solve y ~ 1 + X, optionally weighted.

        ``X`` excludes the intercept column; the backend prepends it.
        Rows of X and y are multiplied by sqrt(weight) before solving,
        while residuals and fitted values are returned unscaled.

        Raises
        ------
        SingularMatrixError
            The scaled cross-product matrix has no usable pivot
        InvalidArgumentError
            Malformed X or weights
        """

    @abstractmethod
    def gram_inverse(self, X: np.ndarray, weights: Optional[np.ndarray] = None) -> np.ndarray:
        """Inverse cross-product of a design that already holds its intercept."""

    @abstractmethod
    def get_device_info(self) -> dict:
        """Backend, precision, algorithm and library version."""


class CPUBackend(BackendBase):
    """Marker base for backends computing on the host in float64."""
