"""
Regression diagnostics.

Coefficient inference, goodness-of-fit metrics and residual tests shared
by the OLS, weighted and GWR estimators. All p-values come from the
package's own distribution functions.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import numpy as np

from ._core.distributions import chi_square_cdf, normal_cdf, two_sided_t_pvalue
from ._core.lm_solver import fit_weighted_least_squares, gram_inverse
from ._core.matrix import multiply, transpose
from ._utils import check_array, check_vector
from .exceptions import InvalidArgumentError, SingularMatrixError


SIGNIFICANCE_LEVEL = 0.05

# Any VIF above this flags multicollinearity
VIF_THRESHOLD = 10.0


# =============================================================================
# Result types
# =============================================================================

@dataclass(frozen=True)
class NormalityTest:
    """Jarque-Bera test on residuals."""
    statistic: float
    p_value: float
    normal: bool


@dataclass(frozen=True)
class HeteroscedasticityTest:
    """Breusch-Pagan test on residuals."""
    statistic: float
    p_value: float
    homoscedastic: bool


@dataclass(frozen=True)
class MulticollinearityCheck:
    variance_inflation_factors: Mapping[str, float]
    has_multicollinearity: bool


@dataclass(frozen=True)
class SpatialAutocorrelation:
    """Global Moran's I with normal-approximation inference."""
    morans_i: float
    expected: float
    z_score: float
    p_value: float
    has_autocorrelation: bool


@dataclass(frozen=True)
class ModelDiagnostics:
    normality: Optional[NormalityTest] = None
    heteroscedasticity: Optional[HeteroscedasticityTest] = None
    multicollinearity: Optional[MulticollinearityCheck] = None
    spatial_autocorrelation: Optional[SpatialAutocorrelation] = None


@dataclass(frozen=True)
class CoefficientStatistics:
    """Per-coefficient inference, intercept first."""
    standard_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    df_residual: int
    mse: float


@dataclass(frozen=True)
class FitMetrics:
    r_squared: float
    adjusted_r_squared: float
    aic: float
    rmse: float
    mae: float
    mape: float


# =============================================================================
# Coefficient inference
# =============================================================================

def coefficient_statistics(
    X: np.ndarray,
    beta: np.ndarray,
    residuals: np.ndarray,
    weights: Optional[np.ndarray] = None,
    robust: bool = False,
    xtx_inv: Optional[np.ndarray] = None,
    backend=None,
) -> CoefficientStatistics:
    """
    Standard errors, t-statistics and p-values.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Full design matrix, intercept column included
    beta : ndarray, shape (p,)
        Coefficients
    residuals : ndarray, shape (n,)
        Residuals on the original scale
    weights : ndarray, optional
        Observation weights; X and the residuals are scaled by sqrt(w)
    robust : bool
        HC1 sandwich estimator instead of the classical one
    xtx_inv : ndarray, optional
        Precomputed (Xw'Xw)^-1 (e.g. from the fit)

    Returns
    -------
    CoefficientStatistics

    Notes
    -----
    Classical: ``Var(b) = (X'X)^-1 * RSS / (n - p)``.
    HC1: ``n / (n - p) * (X'X)^-1 X' diag(e²) X (X'X)^-1``.
    """
    X = check_array(X)
    beta = check_vector(beta, name='beta')
    residuals = check_vector(residuals, name='residuals')
    n, p = X.shape
    if len(beta) != p or len(residuals) != n:
        raise InvalidArgumentError(
            f"Shape mismatch: X {X.shape}, beta {beta.shape}, residuals {residuals.shape}"
        )
    df = n - p
    if df <= 0:
        raise InvalidArgumentError(
            f"Insufficient observations: {n} observations for {p} coefficients"
        )

    if weights is not None:
        w_sqrt = np.sqrt(np.asarray(weights, dtype=np.float64))
        X_work = X * w_sqrt[:, np.newaxis]
        e_work = residuals * w_sqrt
    else:
        X_work, e_work = X, residuals

    if xtx_inv is None:
        xtx_inv = gram_inverse(X_work, backend=backend)

    rss = float(e_work @ e_work)
    mse = rss / df

    if robust:
        Xe = X_work * e_work[:, np.newaxis]
        meat = multiply(transpose(Xe), Xe)
        vcov = (n / df) * multiply(multiply(xtx_inv, meat), xtx_inv)
    else:
        vcov = xtx_inv * mse

    std_errors = np.sqrt(np.maximum(np.diag(vcov), 0.0))
    with np.errstate(divide='ignore', invalid='ignore'):
        t_values = beta / std_errors
    p_values = np.array([two_sided_t_pvalue(t, df) for t in t_values])

    return CoefficientStatistics(
        standard_errors=std_errors,
        t_values=t_values,
        p_values=p_values,
        df_residual=df,
        mse=mse,
    )


# =============================================================================
# Goodness of fit
# =============================================================================

def fit_metrics(
    actual: np.ndarray,
    predicted: np.ndarray,
    n_params: float,
    weights: Optional[np.ndarray] = None,
) -> FitMetrics:
    """
    R², adjusted R², AIC, RMSE, MAE and MAPE.

    ``n_params`` counts the intercept; GWR passes its effective number
    of parameters. With weights, the mean, TSS, RSS, MAE and MAPE are
    weighted (weights are expected to sum to n). MAPE skips terms whose
    actual value is 0 but still divides by the full weight total.
    """
    actual = check_vector(actual, name='actual')
    predicted = check_vector(predicted, name='predicted')
    n = len(actual)
    w = np.ones(n) if weights is None else np.asarray(weights, dtype=np.float64)
    w_total = float(np.sum(w))

    residuals = actual - predicted
    mean = float(np.sum(w * actual)) / w_total
    tss = float(np.sum(w * (actual - mean) ** 2))
    rss = float(np.sum(w * residuals ** 2))

    r_squared = 1.0 - rss / tss if tss > 0 else 0.0

    df = n - n_params
    adjusted = 1.0 - (1.0 - r_squared) * (n - 1) / df if df > 0 else math.nan

    aic = n * math.log(rss / n) + 2.0 * n_params if rss > 0 else -math.inf
    rmse = math.sqrt(rss / n)
    mae = float(np.sum(w * np.abs(residuals))) / w_total

    with np.errstate(divide='ignore', invalid='ignore'):
        pct = np.abs(residuals / actual) * 100.0
    pct = np.where(np.isfinite(pct), pct, 0.0)
    mape = float(np.sum(w * pct)) / w_total

    return FitMetrics(
        r_squared=r_squared,
        adjusted_r_squared=adjusted,
        aic=aic,
        rmse=rmse,
        mae=mae,
        mape=mape,
    )


def _r_squared(y, fitted, weights=None) -> float:
    w = np.ones(len(y)) if weights is None else weights
    mean = np.sum(w * y) / np.sum(w)
    ss_tot = np.sum(w * (y - mean) ** 2)
    ss_res = np.sum(w * (y - fitted) ** 2)
    return 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0


# =============================================================================
# Residual tests
# =============================================================================

def jarque_bera(residuals: np.ndarray) -> NormalityTest:
    """
    Jarque-Bera normality test.

    ``JB = n/6 * (S² + (K - 3)² / 4)``, chi-square with 2 df. Residuals
    with zero variance are reported as normal with statistic 0.
    """
    e = check_vector(residuals, name='residuals')
    n = len(e)
    dev = e - np.mean(e)
    m2 = np.mean(dev ** 2)
    if not m2 > 0:
        return NormalityTest(statistic=0.0, p_value=1.0, normal=True)

    skew = np.mean(dev ** 3) / m2 ** 1.5
    kurt = np.mean(dev ** 4) / m2 ** 2
    stat = float(n / 6.0 * (skew ** 2 + (kurt - 3.0) ** 2 / 4.0))
    p_value = 1.0 - chi_square_cdf(stat, 2)
    return NormalityTest(statistic=stat, p_value=p_value, normal=p_value >= SIGNIFICANCE_LEVEL)


def breusch_pagan(residuals: np.ndarray, X: np.ndarray, backend=None) -> HeteroscedasticityTest:
    """
    Breusch-Pagan test for heteroscedasticity.

    H0: Homoscedasticity (constant variance)
    H1: Heteroscedasticity (variance depends on X)

    Squared residuals scaled by their mean are regressed on the design
    columns (X without intercept); ``LM = n * R²`` is chi-square with
    ``X.shape[1]`` df. A singular auxiliary regression gives NaN.
    """
    e = check_vector(residuals, name='residuals')
    X = check_array(X)
    n, k = X.shape

    sigma2 = np.sum(e ** 2) / n
    if not sigma2 > 0:
        return HeteroscedasticityTest(statistic=0.0, p_value=1.0, homoscedastic=True)
    u2 = e ** 2 / sigma2

    try:
        aux = fit_weighted_least_squares(X, u2, backend=backend)
    except SingularMatrixError:
        return HeteroscedasticityTest(statistic=math.nan, p_value=math.nan, homoscedastic=False)

    stat = float(n * _r_squared(u2, aux.fitted_values))
    p_value = 1.0 - chi_square_cdf(stat, k)
    return HeteroscedasticityTest(
        statistic=stat,
        p_value=p_value,
        homoscedastic=p_value >= SIGNIFICANCE_LEVEL,
    )


def variance_inflation_factors(
    X: np.ndarray,
    names: Sequence[str],
    weights: Optional[np.ndarray] = None,
    backend=None,
) -> dict:
    """
    VIF for each design column.

    Each column is regressed (with intercept) on the others; ``VIF = 1 /
    (1 - R²)``. A single column has VIF 1. Constant columns, exact linear
    dependence and singular auxiliary fits give infinity.
    """
    X = check_array(X)
    n, k = X.shape
    if len(names) != k:
        raise InvalidArgumentError(f"Expected {k} names, got {len(names)}")
    if k == 1:
        return {names[0]: 1.0}

    vifs = {}
    for j, name in enumerate(names):
        target = X[:, j]
        if np.ptp(target) == 0:
            vifs[name] = math.inf
            continue
        others = np.delete(X, j, axis=1)
        try:
            aux = fit_weighted_least_squares(others, target, weights=weights, backend=backend)
        except SingularMatrixError:
            vifs[name] = math.inf
            continue
        r2 = _r_squared(target, aux.fitted_values, aux.weights)
        if r2 >= 1.0:
            vifs[name] = math.inf
        else:
            vifs[name] = float(1.0 / (1.0 - r2))
    return vifs


def multicollinearity_check(X, names, weights=None, backend=None) -> MulticollinearityCheck:
    vifs = variance_inflation_factors(X, names, weights=weights, backend=backend)
    return MulticollinearityCheck(
        variance_inflation_factors=MappingProxyType(vifs),
        has_multicollinearity=any(v > VIF_THRESHOLD for v in vifs.values()),
    )


# =============================================================================
# Spatial autocorrelation
# =============================================================================

def _check_weight_matrix(values, weights):
    values = check_vector(values, name='values')
    W = np.asarray(weights, dtype=np.float64)
    n = len(values)
    if W.shape != (n, n):
        raise InvalidArgumentError(
            f"Weight matrix must have shape ({n}, {n}), got {W.shape}"
        )
    return values, W


def morans_i(values: np.ndarray, weights: np.ndarray) -> float:
    """
    Global Moran's I.

    ``I = (n / S0) * sum_ij w_ij d_i d_j / sum_i d_i²`` with ``d`` the
    deviations from the mean and ``S0`` the total weight. Returns NaN when
    the total weight or the variance is zero.
    """
    values, W = _check_weight_matrix(values, weights)
    n = len(values)
    dev = values - np.mean(values)
    s0 = float(np.sum(W))
    denom = float(dev @ dev)
    if s0 == 0 or denom == 0:
        return math.nan
    return float((n / s0) * (dev @ W @ dev) / denom)


def spatial_autocorrelation(values: np.ndarray, weights: np.ndarray) -> SpatialAutocorrelation:
    """
    Moran's I with its expectation, z-score and two-sided p-value.

    ``E[I] = -1 / (n - 1)``; the variance is the normality-assumption
    moment ``(n² S1 - n S2 + 3 S0²) / ((n² - 1) S0²) - E[I]²``.
    """
    values, W = _check_weight_matrix(values, weights)
    n = len(values)
    if n < 2:
        raise InvalidArgumentError("Moran's I needs at least 2 observations")

    stat = morans_i(values, W)
    expected = -1.0 / (n - 1)

    s0 = float(np.sum(W))
    s1 = 0.5 * float(np.sum((W + W.T) ** 2))
    s2 = float(np.sum((W.sum(axis=1) + W.sum(axis=0)) ** 2))

    z_score = p_value = math.nan
    if s0 > 0 and not math.isnan(stat):
        variance = (n * n * s1 - n * s2 + 3.0 * s0 * s0) / ((n * n - 1.0) * s0 * s0) - expected ** 2
        if variance > 0:
            z_score = (stat - expected) / math.sqrt(variance)
            p_value = 2.0 * (1.0 - normal_cdf(abs(z_score)))

    return SpatialAutocorrelation(
        morans_i=stat,
        expected=expected,
        z_score=z_score,
        p_value=p_value,
        has_autocorrelation=p_value < SIGNIFICANCE_LEVEL,
    )


def model_diagnostics(
    X: np.ndarray,
    residuals: np.ndarray,
    names: Sequence[str],
    weights: Optional[np.ndarray] = None,
    spatial_weights: Optional[np.ndarray] = None,
    backend=None,
) -> ModelDiagnostics:
    """
    Residual and design diagnostics for a fitted model.

    ``X`` holds the design columns without intercept. For weighted fits
    the residual tests use sqrt(w)-scaled residuals and the VIF auxiliary
    regressions are weighted.
    """
    residuals = np.asarray(residuals, dtype=np.float64)
    scaled = residuals if weights is None else residuals * np.sqrt(weights)

    autocorrelation = None
    if spatial_weights is not None:
        autocorrelation = spatial_autocorrelation(residuals, spatial_weights)

    return ModelDiagnostics(
        normality=jarque_bera(scaled),
        heteroscedasticity=breusch_pagan(scaled, X, backend=backend),
        multicollinearity=multicollinearity_check(X, names, weights=weights, backend=backend),
        spatial_autocorrelation=autocorrelation,
    )


__all__ = [
    "NormalityTest",
    "HeteroscedasticityTest",
    "MulticollinearityCheck",
    "SpatialAutocorrelation",
    "ModelDiagnostics",
    "CoefficientStatistics",
    "FitMetrics",
    "coefficient_statistics",
    "fit_metrics",
    "jarque_bera",
    "breusch_pagan",
    "variance_inflation_factors",
    "multicollinearity_check",
    "morans_i",
    "spatial_autocorrelation",
    "model_diagnostics",
]
