"""
Utility functions.
"""

import numpy as np
import pandas as pd

from .exceptions import InvalidArgumentError


def check_array(X, name='X', dtype=np.float64):
    """Validate array input."""
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 2:
        raise InvalidArgumentError(f"{name} must be 2-dimensional")
    if not np.all(np.isfinite(X)):
        raise InvalidArgumentError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', dtype=np.float64):
    """Validate vector input."""
    y = np.asarray(y, dtype=dtype)
    if y.ndim != 1:
        raise InvalidArgumentError(f"{name} must be 1-dimensional")
    if not np.all(np.isfinite(y)):
        raise InvalidArgumentError(f"{name} contains NaN or Inf")
    return y


def as_records(records):
    """
    Normalize caller input to a list of record mappings.

    DataFrames are read row-wise; any other iterable of mappings is
    materialized as a list.
    """
    if isinstance(records, pd.DataFrame):
        return records.to_dict(orient='records')
    if records is None:
        raise InvalidArgumentError("records must not be None")
    records = list(records)
    for i, record in enumerate(records):
        if not hasattr(record, 'get'):
            raise InvalidArgumentError(
                f"Record {i} is not a mapping ({type(record).__name__})"
            )
    return records
