"""
PyGeoReg: spatial regression for geolocated records (OLS, WLS, GWR).

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .lm import fit_ols, fit_weighted, lm
from .gwr import fit_gwr
from .model import RegressionModel, FitResult, predict, try_fit
from .quality import assess_quality, variable_importance, ratio_statistics
from .config import RegressionConfig, KernelType, DistanceMetric, TransformType
from .exceptions import EngineError, SingularMatrixError, InvalidArgumentError

# Diagnostics and spatial weights (for advanced users)
from .diagnostics import (
    coefficient_statistics,
    morans_i,
    spatial_autocorrelation,
    jarque_bera,
    breusch_pagan,
    variance_inflation_factors,
    fit_metrics,
)
from ._core.weights import spatial_weights

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'fit_ols',
    'fit_weighted',
    'fit_gwr',
    'lm',
    'predict',
    'try_fit',
    'RegressionModel',
    'FitResult',
    'assess_quality',
    'variable_importance',
    'ratio_statistics',
    'RegressionConfig',
    'KernelType',
    'DistanceMetric',
    'TransformType',
    'EngineError',
    'SingularMatrixError',
    'InvalidArgumentError',
    'coefficient_statistics',
    'morans_i',
    'spatial_autocorrelation',
    'jarque_bera',
    'breusch_pagan',
    'variance_inflation_factors',
    'fit_metrics',
    'spatial_weights',
    'get_backend',
    'list_available_backends',
]
