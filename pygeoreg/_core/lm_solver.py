"""
Weighted least-squares entry points.

Estimators and diagnostics call these rather than a backend directly;
without an explicit backend the CPU one is used.
"""

from typing import Optional

import numpy as np


def _resolve(backend):
    if backend is not None:
        return backend
    from .._backends import get_backend
    return get_backend('cpu')


def fit_weighted_least_squares(
    X: np.ndarray,
    y: np.ndarray,
    weights: Optional[np.ndarray] = None,
    backend=None,
):
    """
    Regress y on an intercept plus the columns of X.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Predictor columns; the intercept is added by the backend
    y : ndarray, shape (n,)
        Response
    weights : ndarray, optional
        Non-negative per-row weights (need not be normalized)
    backend : BackendBase, optional

    Returns
    -------
    LinearModelResult
    """
    return _resolve(backend).fit_linear_model(X, y, weights=weights)


def gram_inverse(
    X: np.ndarray,
    weights: Optional[np.ndarray] = None,
    backend=None,
) -> np.ndarray:
    """(Xw'Xw)^-1 where X already carries its intercept column."""
    return _resolve(backend).gram_inverse(X, weights=weights)
