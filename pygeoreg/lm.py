"""
Global linear regression on records: OLS and weighted OLS.

This is the user-facing API for the non-spatial estimators.
"""

import warnings
from typing import Callable, Mapping, Optional, Sequence, Union

import numpy as np

from ._backends import get_backend
from ._core.design import DesignMatrix, coerce_number, extract_design_matrix
from ._core.lm_solver import fit_weighted_least_squares
from ._utils import as_records
from .config import RegressionConfig, resolve_config
from .diagnostics import coefficient_statistics, fit_metrics, model_diagnostics
from .exceptions import InvalidArgumentError
from .model import INTERCEPT, RegressionModel, named_values


WeightSpec = Union[Sequence[float], np.ndarray, Callable[[Mapping], float]]


def check_observations(design: DesignMatrix):
    """Require more observations than coefficients (intercept included)."""
    n = design.n_obs
    p = design.X.shape[1] + 1
    if n <= p:
        raise InvalidArgumentError(
            f"Insufficient observations: {n} records for {p} coefficients "
            f"(including intercept)"
        )


def _weight_from_record(value, strict: bool, index: int, name: str) -> float:
    number = coerce_number(value)
    if number is None:
        if strict:
            raise InvalidArgumentError(
                f"Record {index}: weight field '{name}' is not numeric ({value!r})"
            )
        return 1.0
    # "0" parses to a falsy weight; read it like any unusable string
    if isinstance(value, str) and number == 0:
        return 1.0
    return number


def resolve_weights(
    records: Sequence[Mapping],
    config: RegressionConfig,
    weights: Optional[WeightSpec] = None,
) -> np.ndarray:
    """
    Observation weights for a weighted fit, normalized to sum to n.

    Sources, in order: the explicit ``weights`` (a sequence, or a
    callable taking a record), then ``config.weight_variable`` when the
    first record carries a truthy value for it, then equal weights.
    Record values that are numbers are used as-is; strings are parsed,
    falling back to 1 like any other value.

    Raises
    ------
    InvalidArgumentError
        On a length mismatch, non-numeric explicit weights, a weight
        variable no record carries, negative weights or a zero total
    """
    n = len(records)

    if weights is not None:
        raw = [weights(r) for r in records] if callable(weights) else list(weights)
        if len(raw) != n:
            raise InvalidArgumentError(f"Expected {n} weights, got {len(raw)}")
        values = []
        for i, w in enumerate(raw):
            number = coerce_number(w)
            if number is None:
                raise InvalidArgumentError(f"Weight {i} is not numeric ({w!r})")
            values.append(number)
        values = np.array(values, dtype=np.float64)

    elif config.weight_variable:
        name = config.weight_variable
        if not any(name in record for record in records):
            raise InvalidArgumentError(f"Weight field '{name}' not found in any record")
        if records[0].get(name):
            values = np.array([
                _weight_from_record(record.get(name), config.strict, i, name)
                for i, record in enumerate(records)
            ])
        else:
            warnings.warn(
                f"First record has no usable value for weight field '{name}'; "
                f"using equal weights",
                UserWarning,
                stacklevel=3,
            )
            values = np.ones(n)

    else:
        values = np.ones(n)

    if np.any(values < 0):
        raise InvalidArgumentError("Weights must be non-negative")
    total = float(np.sum(values))
    if not total > 0:
        raise InvalidArgumentError("Weights sum to zero")
    return values * (n / total)


def _global_model(
    design: DesignMatrix,
    target: str,
    config: RegressionConfig,
    regression_type: str,
    default_name: str,
    weights: Optional[np.ndarray] = None,
) -> RegressionModel:
    backend = get_backend(config.backend)
    fit = fit_weighted_least_squares(design.X, design.y, weights=weights, backend=backend)

    X_full = np.column_stack([np.ones(design.n_obs), design.X])
    stats = coefficient_statistics(
        X_full, fit.coef, fit.residuals,
        weights=weights,
        robust=config.robust_standard_errors,
        xtx_inv=fit.xtx_inv,
        backend=backend,
    )
    metrics = fit_metrics(design.y, fit.fitted_values, len(fit.coef), weights=weights)
    diagnostics = model_diagnostics(
        design.X, fit.residuals, design.names, weights=weights, backend=backend
    )

    names = [INTERCEPT] + design.names
    return RegressionModel(
        target_variable=target,
        used_variables=names,
        predictors=design.predictors,
        coefficients=named_values(names, fit.coef),
        standard_errors=named_values(names, stats.standard_errors),
        t_values=named_values(names, stats.t_values),
        p_values=named_values(names, stats.p_values),
        r_squared=metrics.r_squared,
        adjusted_r_squared=metrics.adjusted_r_squared,
        aic=metrics.aic,
        rmse=metrics.rmse,
        mae=metrics.mae,
        mape=metrics.mape,
        actual_values=design.y,
        predicted_values=fit.fitted_values,
        residuals=fit.residuals,
        regression_type=regression_type,
        model_name=config.model_name or default_name,
        n_obs=design.n_obs,
        df_residual=fit.df_residual,
        config=config,
        diagnostics=diagnostics,
    )


def fit_ols(records, target: str, predictors: Sequence[str], config=None) -> RegressionModel:
    """
    Ordinary least squares regression on records.

    Parameters
    ----------
    records : sequence of mappings or DataFrame
        One record per observation
    target : str
        Response field
    predictors : list of str
        Predictor fields
    config : RegressionConfig or mapping, optional
        Transforms, expansion, robust standard errors, strictness

    Returns
    -------
    RegressionModel

    Raises
    ------
    InvalidArgumentError
        Empty input, unknown fields, or too few observations
    SingularMatrixError
        Collinear design

    Examples
    --------
    >>> model = fit_ols(properties, "value", ["sqft", "age"])
    >>> model.summary()
    """
    records = as_records(records)
    config = resolve_config(config)
    design = extract_design_matrix(records, target, predictors, config)
    check_observations(design)
    return _global_model(design, target, config, "OLS", "OLS Regression Model")


def fit_weighted(
    records,
    target: str,
    predictors: Sequence[str],
    config=None,
    weights: Optional[WeightSpec] = None,
) -> RegressionModel:
    """
    Weighted least squares regression on records.

    Weights come from ``weights`` or ``config.weight_variable`` (see
    :func:`resolve_weights`) and are normalized to sum to n. Fit metrics
    and diagnostics are computed on the weighted problem.

    Examples
    --------
    >>> model = fit_weighted(properties, "value", ["sqft"],
    ...                      config={"weightVariable": "reliability"})
    """
    records = as_records(records)
    config = resolve_config(config)
    design = extract_design_matrix(records, target, predictors, config)
    check_observations(design)
    w = resolve_weights(records, config, weights)
    return _global_model(design, target, config, "Weighted", "Weighted Regression Model", weights=w)


def lm(y: str, X: Sequence[str], data, weights: Optional[WeightSpec] = None, **kwargs) -> RegressionModel:
    """
    Fit a global linear model (convenience function).

    Parameters
    ----------
    y : str
        Response field
    X : list of str
        Predictor fields
    data : DataFrame or sequence of mappings
        Dataset
    weights : sequence or callable, optional
        Observation weights; switches to weighted least squares
    **kwargs
        RegressionConfig fields

    Examples
    --------
    >>> model = lm(y='value', X=['sqft', 'age'], data=df)
    >>> model.coef
    """
    config = RegressionConfig(**kwargs)
    if weights is not None or config.weight_variable:
        return fit_weighted(data, y, X, config, weights=weights)
    return fit_ols(data, y, X, config)


__all__ = ["fit_ols", "fit_weighted", "lm", "resolve_weights", "check_observations"]
