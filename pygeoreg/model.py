"""
Fitted regression model and scoring.

A RegressionModel is produced once per fit and never mutated; arrays are
read-only and the per-variable mappings are read-only views.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ._core.design import extract_design_matrix
from ._core.matrix import multiply
from ._utils import as_records
from .config import RegressionConfig, resolve_config
from .diagnostics import ModelDiagnostics
from .exceptions import EngineError, InvalidArgumentError


INTERCEPT = "intercept"

REGRESSION_TYPES = ("OLS", "Weighted", "GWR")

_TITLES = {
    "OLS": "ORDINARY LEAST SQUARES RESULTS",
    "Weighted": "WEIGHTED LEAST SQUARES RESULTS",
    "GWR": "GEOGRAPHICALLY WEIGHTED REGRESSION RESULTS",
}


def _readonly(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.flags.writeable = False
    return array


def named_values(names: Sequence[str], values) -> Mapping[str, float]:
    """Read-only name -> float mapping, in ``names`` order."""
    return MappingProxyType({name: float(v) for name, v in zip(names, values)})


def _significance(p: float) -> str:
    if np.isnan(p):
        return ''
    if p < 0.001:
        return ' ***'
    if p < 0.01:
        return ' **'
    if p < 0.05:
        return ' *'
    if p < 0.1:
        return ' .'
    return ''


@dataclass(frozen=True, eq=False, repr=False)
class RegressionModel:
    """
    Result of a regression fit.

    ``used_variables`` lists ``"intercept"`` followed by the design
    columns; it orders ``coefficients``, ``standard_errors``, ``t_values``
    and ``p_values``. For GWR the coefficients are the mean of the local
    coefficient vectors, which are kept in ``local_coefficients``.

    Examples
    --------
    >>> model = fit_ols(records, "value", ["sqft", "age"])
    >>> model.summary()
    >>> model.coef["sqft"]
    >>> model.predict(new_records)
    """
    target_variable: str
    used_variables: Tuple[str, ...]
    predictors: Tuple[str, ...]
    coefficients: Mapping[str, float]
    standard_errors: Mapping[str, float]
    t_values: Mapping[str, float]
    p_values: Mapping[str, float]
    r_squared: float
    adjusted_r_squared: float
    aic: float
    rmse: float
    mae: float
    mape: float
    actual_values: np.ndarray
    predicted_values: np.ndarray
    residuals: np.ndarray
    regression_type: str
    model_name: str
    n_obs: int
    df_residual: int
    config: RegressionConfig
    diagnostics: Optional[ModelDiagnostics] = None
    local_coefficients: Optional[np.ndarray] = None
    local_r_squared: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.regression_type not in REGRESSION_TYPES:
            raise InvalidArgumentError(f"Unknown regression type: '{self.regression_type}'")
        object.__setattr__(self, "used_variables", tuple(self.used_variables))
        object.__setattr__(self, "predictors", tuple(self.predictors))
        for name in ("coefficients", "standard_errors", "t_values", "p_values"):
            values = getattr(self, name)
            if not isinstance(values, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(values)))
        for name in ("actual_values", "predicted_values", "residuals",
                     "local_coefficients", "local_r_squared"):
            values = getattr(self, name)
            if values is not None:
                object.__setattr__(self, name, _readonly(values))

    @property
    def coef(self) -> pd.Series:
        """Named coefficients (pandas Series)."""
        return pd.Series(
            [self.coefficients[name] for name in self.used_variables],
            index=list(self.used_variables),
        )

    def to_frame(self) -> pd.DataFrame:
        """Coefficient table: estimate, std. error, t value, p value."""
        names = list(self.used_variables)
        return pd.DataFrame({
            'estimate': [self.coefficients[n] for n in names],
            'std_error': [self.standard_errors[n] for n in names],
            't_value': [self.t_values[n] for n in names],
            'p_value': [self.p_values[n] for n in names],
        }, index=names)

    def predict(self, records, config=None) -> np.ndarray:
        """Score new records; see :func:`predict`."""
        return predict(self, records, config)

    def summary(self):
        """
        Print summary of regression results (like R's summary.lm).
        """
        print()
        print("="*80)
        print(_TITLES[self.regression_type])
        print("="*80)
        print()

        print(f"Model: {self.model_name}")
        print(f"Dependent variable: {self.target_variable}")
        print(f"Number of observations: {self.n_obs}")
        print(f"Degrees of freedom: {self.df_residual} (residual), "
              f"{len(self.used_variables) - 1} (model)")
        if self.regression_type == "GWR":
            print(f"Kernel: {self.config.kernel_type.value}, "
                  f"bandwidth: {self.config.bandwidth:g}"
                  f"{' (adaptive)' if self.config.adaptive_bandwidth else ''}")
        print()

        print("Residuals:")
        residual_summary = pd.Series(self.residuals).describe()
        print(f"  Min:    {residual_summary['min']:>10.4f}")
        print(f"  1Q:     {residual_summary['25%']:>10.4f}")
        print(f"  Median: {residual_summary['50%']:>10.4f}")
        print(f"  3Q:     {residual_summary['75%']:>10.4f}")
        print(f"  Max:    {residual_summary['max']:>10.4f}")
        print()

        label = "Mean coefficients:" if self.regression_type == "GWR" else "Coefficients:"
        print(label)
        print("-"*80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>12}")
        print("-"*80)

        for name in self.used_variables:
            p = self.p_values[name]
            if np.isnan(p):
                p_str = 'NA'
            else:
                p_str = f"{p:.4f}" if p >= 0.0001 else "<.0001"
            print(f"{name:<20} {self.coefficients[name]:>12.4f} {self.standard_errors[name]:>12.4f} "
                  f"{self.t_values[name]:>10.3f} {p_str:>12}{_significance(p)}")

        print("-"*80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

        print(f"Multiple R-squared:      {self.r_squared:.4f}")
        print(f"Adjusted R-squared:      {self.adjusted_r_squared:.4f}")
        print(f"AIC:                     {self.aic:.2f}")
        print(f"RMSE:                    {self.rmse:.4f}")
        print(f"MAE:                     {self.mae:.4f}")
        print(f"MAPE:                    {self.mape:.2f}%")

        diag = self.diagnostics
        if diag is not None:
            print()
            print("Diagnostics:")
            if diag.normality is not None:
                print(f"  Jarque-Bera:     {diag.normality.statistic:>10.3f}  "
                      f"p = {diag.normality.p_value:.4f}")
            if diag.heteroscedasticity is not None:
                print(f"  Breusch-Pagan:   {diag.heteroscedasticity.statistic:>10.3f}  "
                      f"p = {diag.heteroscedasticity.p_value:.4f}")
            if diag.multicollinearity is not None:
                vifs = diag.multicollinearity.variance_inflation_factors
                print(f"  Max VIF:         {max(vifs.values()):>10.3f}")
            if diag.spatial_autocorrelation is not None:
                sa = diag.spatial_autocorrelation
                print(f"  Moran's I:       {sa.morans_i:>10.4f}  "
                      f"z = {sa.z_score:.3f}, p = {sa.p_value:.4f}")

        print("="*80)
        print()

    def __repr__(self):
        return (f"RegressionModel(type={self.regression_type}, n={self.n_obs}, "
                f"p={len(self.used_variables) - 1}, R²={self.r_squared:.3f})")


def predict(model: RegressionModel, records, config=None) -> np.ndarray:
    """
    Predict the target for records with a fitted model.

    The model's base predictors are re-extracted and the transforms and
    expansion of the fit configuration (or ``config``, when given) are
    re-applied; the design must reproduce the model's columns. GWR models
    score with their mean coefficients.

    Parameters
    ----------
    model : RegressionModel
    records : sequence of mappings or DataFrame
    config : RegressionConfig or mapping, optional

    Returns
    -------
    ndarray, shape (n,)
        Predictions on the (possibly transformed) target scale
    """
    records = as_records(records)
    config = model.config if config is None else resolve_config(config)

    design = extract_design_matrix(records, None, model.predictors, config)
    expected = list(model.used_variables[1:])
    if design.names != expected:
        raise InvalidArgumentError(
            f"Design columns {design.names} do not match the model's {expected}"
        )

    beta = np.array([model.coefficients[name] for name in model.used_variables])
    X_full = np.column_stack([np.ones(design.n_obs), design.X])
    return multiply(X_full, beta)


@dataclass(frozen=True)
class FitResult:
    """Model or engine error from :func:`try_fit`."""
    model: Optional[RegressionModel] = None
    error: Optional[EngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> RegressionModel:
        """Return the model, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.model


def try_fit(kind: str, records, target: str, predictors, config=None, **kwargs) -> FitResult:
    """
    Run an estimator and return errors as values.

    Parameters
    ----------
    kind : {'ols', 'weighted', 'gwr'}
    records, target, predictors, config
        As for the estimator
    **kwargs
        Passed to the estimator (``weights`` for 'weighted')

    Returns
    -------
    FitResult
        ``error`` holds any SingularMatrixError or InvalidArgumentError
    """
    from .gwr import fit_gwr
    from .lm import fit_ols, fit_weighted

    estimators = {'ols': fit_ols, 'weighted': fit_weighted, 'gwr': fit_gwr}
    try:
        estimator = estimators[str(kind).lower()]
    except KeyError:
        return FitResult(error=InvalidArgumentError(
            f"Unknown regression kind: '{kind}'\n"
            f"Valid options: 'ols', 'weighted', 'gwr'"
        ))

    try:
        return FitResult(model=estimator(records, target, predictors, config, **kwargs))
    except EngineError as exc:
        return FitResult(error=exc)


__all__ = [
    "INTERCEPT",
    "RegressionModel",
    "FitResult",
    "predict",
    "try_fit",
    "named_values",
]
