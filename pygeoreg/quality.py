"""
Model quality assessment.

Descriptive summaries of a fitted model: a qualitative rating with
strengths and weaknesses, relative variable importance, and the ratio
statistics used in mass-appraisal studies.
"""

import math
from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidArgumentError
from .model import INTERCEPT, RegressionModel


SIGNIFICANCE_LEVEL = 0.05


def _r_squared_note(r2: float):
    pct = f"{r2 * 100:.1f}%"
    if r2 > 0.8:
        return True, f"High R² ({pct}) indicates excellent goodness of fit."
    if r2 > 0.6:
        return True, f"Good R² ({pct}) indicates good explanatory power."
    if r2 > 0.4:
        return True, f"Moderate R² ({pct}) indicates reasonable explanatory power."
    if r2 > 0.2:
        return False, f"Low R² ({pct}) indicates poor explanatory power."
    return False, f"Very low R² ({pct}) indicates very poor explanatory power."


def _mape_note(mape: float):
    pct = f"{mape:.1f}%"
    if mape < 5:
        return True, f"Low MAPE ({pct}) indicates excellent prediction accuracy."
    if mape < 10:
        return True, f"Good MAPE ({pct}) indicates good prediction accuracy."
    if mape < 20:
        return False, f"Moderate MAPE ({pct}) indicates room for improvement in prediction accuracy."
    return False, f"High MAPE ({pct}) indicates poor prediction accuracy."


def _overall(r2: float, mape: float) -> str:
    if r2 > 0.8 and mape < 10:
        return "excellent"
    if r2 > 0.6 and mape < 15:
        return "good"
    if r2 > 0.4 and mape < 20:
        return "moderate"
    if r2 > 0.2:
        return "poor"
    return "very poor"


def assess_quality(model: RegressionModel) -> dict:
    """
    Qualitative rating of a fitted model.

    Returns
    -------
    dict
        ``quality`` (excellent / good / moderate / poor / very poor),
        ``strengths`` and ``weaknesses`` (lists of sentences)
    """
    strengths, weaknesses = [], []

    for is_strength, note in (_r_squared_note(model.r_squared), _mape_note(model.mape)):
        (strengths if is_strength else weaknesses).append(note)

    variables = [v for v in model.used_variables if v != INTERCEPT]
    significant = [v for v in variables if model.p_values[v] < SIGNIFICANCE_LEVEL]
    if significant:
        if len(significant) == len(variables):
            strengths.append("All variables are statistically significant (p < 0.05).")
        else:
            strengths.append(
                f"{len(significant)} out of {len(variables)} variables are statistically significant."
            )
    elif variables:
        weaknesses.append("No variables are statistically significant (p < 0.05).")

    diagnostics = model.diagnostics
    if diagnostics is not None and diagnostics.multicollinearity is not None:
        if diagnostics.multicollinearity.has_multicollinearity:
            weaknesses.append(
                "Multicollinearity detected, which can affect coefficient interpretation."
            )
        else:
            strengths.append("No significant multicollinearity issues detected.")

    if diagnostics is not None and diagnostics.spatial_autocorrelation is not None:
        if diagnostics.spatial_autocorrelation.has_autocorrelation:
            weaknesses.append(
                "Spatial autocorrelation in residuals detected, suggesting spatial "
                "patterns not captured by the model."
            )
        else:
            strengths.append("No significant spatial autocorrelation in residuals.")

    return {
        "quality": _overall(model.r_squared, model.mape),
        "strengths": strengths,
        "weaknesses": weaknesses,
    }


def variable_importance(model: RegressionModel) -> dict:
    """
    Relative importance from absolute t-values.

    Non-intercept importances sum to 1. NaN t-values count as 0; when
    some t-values are infinite those variables share the total equally.
    If nothing is left to normalize, every variable gets an equal share.
    The intercept is reported with importance 0.
    """
    variables = [v for v in model.used_variables if v != INTERCEPT]
    importance = {INTERCEPT: 0.0}
    if not variables:
        return importance

    t_abs = np.array([abs(model.t_values[v]) for v in variables], dtype=np.float64)
    t_abs = np.where(np.isnan(t_abs), 0.0, t_abs)

    infinite = np.isinf(t_abs)
    if infinite.any():
        shares = infinite / infinite.sum()
    elif t_abs.sum() > 0:
        shares = t_abs / t_abs.sum()
    else:
        shares = np.full(len(variables), 1.0 / len(variables))

    importance.update({v: float(s) for v, s in zip(variables, shares)})
    return importance


@dataclass(frozen=True)
class RatioStatistics:
    """Assessment ratio study on predicted / actual."""
    median_ratio: float
    cod: float                     # coefficient of dispersion, percent
    prd: float                     # price-related differential
    median_absolute_error: float
    mean_absolute_error: float
    rmse: float
    n_used: int


def ratio_statistics(model: RegressionModel) -> RatioStatistics:
    """
    Ratio statistics of predicted to actual values.

    ``COD = 100 * mean(|ratio - median|) / median`` and
    ``PRD = mean(ratio) / (sum(predicted) / sum(actual))``. Observations
    whose actual value is 0 are left out of the ratios; the error
    statistics use every observation.

    Raises
    ------
    InvalidArgumentError
        If no observation has a non-zero actual value
    """
    actual = np.asarray(model.actual_values)
    predicted = np.asarray(model.predicted_values)
    usable = actual != 0
    if not usable.any():
        raise InvalidArgumentError("No observations with a non-zero actual value")

    ratios = predicted[usable] / actual[usable]
    median = float(np.median(ratios))
    cod = 100.0 * float(np.mean(np.abs(ratios - median))) / median if median != 0 else math.nan

    weighted_mean = float(np.sum(predicted[usable])) / float(np.sum(actual[usable]))
    prd = float(np.mean(ratios)) / weighted_mean if weighted_mean != 0 else math.nan

    errors = np.abs(actual - predicted)
    return RatioStatistics(
        median_ratio=median,
        cod=cod,
        prd=prd,
        median_absolute_error=float(np.median(errors)),
        mean_absolute_error=float(np.mean(errors)),
        rmse=float(np.sqrt(np.mean(errors ** 2))),
        n_used=int(usable.sum()),
    )


__all__ = ["assess_quality", "variable_importance", "ratio_statistics", "RatioStatistics"]
