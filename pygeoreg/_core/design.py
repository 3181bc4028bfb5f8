"""
Design matrix extraction.

Turns records (flat mappings) into the numeric arrays the estimators work
on. Field access goes through a registry of accessors built once per call
from the requested names, so a name that no record carries is rejected
before any numbers are read.
"""

import math
import warnings
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..config import RegressionConfig, TransformType
from ..exceptions import InvalidArgumentError


# Floor used by the log and inverse transforms
TRANSFORM_EPS = 1e-4


def coerce_number(value) -> Optional[float]:
    """
    Read a record value as a finite float.

    Numbers are taken as-is and numeric strings are parsed. Booleans,
    NaN/inf and anything else give ``None``.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def apply_transform(values: np.ndarray, transform: TransformType) -> np.ndarray:
    """Apply a field transform element-wise."""
    values = np.asarray(values, dtype=np.float64)
    if transform is TransformType.LOG:
        return np.log(np.maximum(values, TRANSFORM_EPS))
    if transform is TransformType.SQRT:
        return np.sqrt(np.maximum(values, 0.0))
    if transform is TransformType.SQUARE:
        return values * values
    if transform is TransformType.INVERSE:
        return 1.0 / np.where(np.abs(values) < TRANSFORM_EPS, TRANSFORM_EPS, values)
    return values


@dataclass(frozen=True)
class FieldAccessor:
    """Validated reader for one named record field."""
    name: str
    transform: TransformType = TransformType.NONE
    strict: bool = False

    def read(self, record: Mapping, index: int) -> Optional[float]:
        """Raw numeric value, or None when missing/non-numeric (lenient mode)."""
        value = coerce_number(record.get(self.name))
        if value is None and self.strict:
            raise InvalidArgumentError(
                f"Record {index}: field '{self.name}' is missing or not numeric "
                f"({record.get(self.name)!r})"
            )
        return value

    def column(self, records: Sequence[Mapping]) -> Tuple[np.ndarray, int]:
        """
        Extract and transform this field for every record.

        Returns
        -------
        values : ndarray, shape (n,)
        n_filled : int
            Number of values that were missing or non-numeric and read as 0
        """
        raw = [self.read(record, i) for i, record in enumerate(records)]
        n_filled = sum(v is None for v in raw)
        values = np.array([0.0 if v is None else v for v in raw], dtype=np.float64)
        return apply_transform(values, self.transform), n_filled


def build_accessors(
    records: Sequence[Mapping],
    names: Sequence[str],
    config: RegressionConfig,
) -> Dict[str, FieldAccessor]:
    """
    Build the field-accessor registry for one call.

    Raises
    ------
    InvalidArgumentError
        If a name is not a non-empty string, or no record carries the field
    """
    registry = {}
    for name in names:
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError(f"Field names must be non-empty strings, got {name!r}")
        if name in registry:
            continue
        if not any(name in record for record in records):
            raise InvalidArgumentError(f"Field '{name}' not found in any record")
        registry[name] = FieldAccessor(
            name=name,
            transform=config.transform_for(name),
            strict=config.strict,
        )
    return registry


def _warn_zero_filled(filled: Counter):
    if filled:
        total = sum(filled.values())
        fields = ", ".join(f"{name} ({count})" for name, count in sorted(filled.items()))
        warnings.warn(
            f"{total} missing or non-numeric value(s) read as 0: {fields}",
            UserWarning,
            stacklevel=4,
        )


def expand_design_matrix(
    X: np.ndarray,
    names: Sequence[str],
    polynomial_degree: int = 1,
    include_interactions: bool = False,
) -> Tuple[np.ndarray, List[str]]:
    """
    Append polynomial and interaction columns.

    Column order: the original columns, then powers 2..degree of every
    column (``"x^2"``, ...), then every pairwise product (``"a:b"``).
    """
    columns = [X[:, j] for j in range(X.shape[1])]
    expanded = list(names)
    p = X.shape[1]

    for power in range(2, int(polynomial_degree) + 1):
        for j in range(p):
            columns.append(X[:, j] ** power)
            expanded.append(f"{names[j]}^{power}")

    if include_interactions and p > 1:
        for j in range(p - 1):
            for k in range(j + 1, p):
                columns.append(X[:, j] * X[:, k])
                expanded.append(f"{names[j]}:{names[k]}")

    if len(columns) == p:
        return X, expanded
    return np.column_stack(columns), expanded


@dataclass(frozen=True)
class DesignMatrix:
    """Numeric arrays extracted from records."""
    X: np.ndarray                  # (n, p) design columns, no intercept
    y: Optional[np.ndarray]        # (n,) response, None when not requested
    names: List[str]               # design column names
    predictors: List[str]          # base predictor fields

    @property
    def n_obs(self) -> int:
        return self.X.shape[0]


def _check_predictors(predictors) -> List[str]:
    if isinstance(predictors, str):
        raise InvalidArgumentError(
            "predictors must be a list of field names, not a single string"
        )
    predictors = list(predictors or [])
    if not predictors:
        raise InvalidArgumentError("At least one predictor is required")
    return predictors


def extract_design_matrix(
    records: Sequence[Mapping],
    target: Optional[str],
    predictors: Sequence[str],
    config: RegressionConfig,
) -> DesignMatrix:
    """
    Extract (X, y) from records.

    Parameters
    ----------
    records : sequence of mappings
        One record per observation; no rows are filtered out
    target : str or None
        Response field; None extracts predictors only (scoring)
    predictors : sequence of str
        Predictor fields, in design-column order
    config : RegressionConfig
        Transforms, expansion and strictness

    Returns
    -------
    DesignMatrix
    """
    predictors = _check_predictors(predictors)
    if len(records) == 0:
        raise InvalidArgumentError("No records supplied")

    names = list(predictors) + ([target] if target is not None else [])
    registry = build_accessors(records, names, config)

    filled = Counter()
    columns = []
    for name in predictors:
        values, n_filled = registry[name].column(records)
        columns.append(values)
        if n_filled:
            filled[name] = n_filled

    y = None
    if target is not None:
        y, n_filled = registry[target].column(records)
        if n_filled:
            filled[target] = n_filled

    _warn_zero_filled(filled)

    X = np.column_stack(columns)
    X, design_names = expand_design_matrix(
        X, predictors, config.polynomial_degree, config.include_interactions
    )
    return DesignMatrix(X=X, y=y, names=design_names, predictors=predictors)


__all__ = [
    "FieldAccessor",
    "DesignMatrix",
    "build_accessors",
    "coerce_number",
    "apply_transform",
    "expand_design_matrix",
    "extract_design_matrix",
]
