"""
Spatial weight matrix construction.

Pairwise distances between record locations are converted to kernel
weights under a fixed or adaptive bandwidth. With an adaptive bandwidth
each row uses its own nearest-neighbour distance, so the matrix is not
symmetric in general.
"""

import math
import warnings
from typing import Mapping, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from ..config import DistanceMetric, RegressionConfig, _coerce_enum
from ..exceptions import InvalidArgumentError
from .design import FieldAccessor, coerce_number
from .kernels import get_kernel


EARTH_RADIUS_KM = 6371.0

# Minimum neighbour count for adaptive bandwidths
MIN_NEIGHBOURS = 10


def _pair_from_value(value):
    """(lat, lon) from a pair-like or mapping value, None entries if unusable."""
    if isinstance(value, Mapping):
        lat = next((value[k] for k in ("lat", "latitude") if k in value), None)
        lon = next((value[k] for k in ("lng", "lon", "longitude") if k in value), None)
        return coerce_number(lat), coerce_number(lon)
    if isinstance(value, (list, tuple, np.ndarray)) and len(value) == 2:
        return coerce_number(value[0]), coerce_number(value[1])
    return None, None


def record_coordinates(records: Sequence[Mapping], config: RegressionConfig) -> np.ndarray:
    """
    Read (latitude, longitude) for every record.

    Coordinates come from ``config.location_field`` when set, otherwise
    from ``config.latitude_field`` / ``config.longitude_field``. Missing
    coordinates read as 0 unless ``config.strict`` is set.

    Returns
    -------
    ndarray, shape (n, 2)
    """
    if config.location_field is not None:
        fields = [config.location_field]
    else:
        fields = [config.latitude_field, config.longitude_field]
    for name in fields:
        if not any(name in record for record in records):
            raise InvalidArgumentError(f"Coordinate field '{name}' not found in any record")

    coords = np.zeros((len(records), 2), dtype=np.float64)
    n_missing = 0

    if config.location_field is not None:
        for i, record in enumerate(records):
            lat, lon = _pair_from_value(record.get(config.location_field))
            if lat is None or lon is None:
                if config.strict:
                    raise InvalidArgumentError(
                        f"Record {i}: '{config.location_field}' is not a coordinate pair"
                    )
                n_missing += 1
            coords[i] = (lat or 0.0, lon or 0.0)
    else:
        for j, name in enumerate(fields):
            values, n_filled = FieldAccessor(name, strict=config.strict).column(records)
            coords[:, j] = values
            n_missing += n_filled

    if n_missing:
        warnings.warn(
            f"{n_missing} missing coordinate value(s) read as 0",
            UserWarning,
            stacklevel=3,
        )
    return coords


def haversine_distances(coords: np.ndarray) -> np.ndarray:
    """Great-circle distances in kilometres between (lat, lon) rows."""
    lat = np.radians(coords[:, 0])
    lon = np.radians(coords[:, 1])
    dlat = lat[np.newaxis, :] - lat[:, np.newaxis]
    dlon = lon[np.newaxis, :] - lon[:, np.newaxis]
    a = (np.sin(dlat / 2.0) ** 2
         + np.cos(lat)[:, np.newaxis] * np.cos(lat)[np.newaxis, :] * np.sin(dlon / 2.0) ** 2)
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def pairwise_distances(coords, metric=DistanceMetric.EUCLIDEAN) -> np.ndarray:
    """
    n x n distance matrix.

    Euclidean and manhattan distances are taken on the raw coordinate
    values (degrees, for geographic input); haversine returns kilometres.
    """
    coords = np.asarray(coords, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise InvalidArgumentError("Coordinates must have shape (n, 2)")
    metric = _coerce_enum(DistanceMetric, metric, "distance metric")

    if metric is DistanceMetric.EUCLIDEAN:
        distances = cdist(coords, coords, metric='euclidean')
    elif metric is DistanceMetric.MANHATTAN:
        distances = cdist(coords, coords, metric='cityblock')
    else:
        distances = haversine_distances(coords)

    np.fill_diagonal(distances, 0.0)
    return distances


def adaptive_bandwidths(distances: np.ndarray, fraction: float) -> np.ndarray:
    """
    Per-row bandwidth: distance to the k-th nearest neighbour.

    ``k = max(10, floor(n * fraction))``, counting the row itself as the
    0-th neighbour and capped at n - 1.
    """
    n = distances.shape[0]
    k = min(max(MIN_NEIGHBOURS, int(math.floor(n * fraction))), n - 1)
    return np.sort(distances, axis=1)[:, k]


def spatial_weight_matrix(
    distances: np.ndarray,
    bandwidth: float,
    adaptive: bool = False,
    kernel_type=None,
) -> np.ndarray:
    """
    Kernel weights for a precomputed distance matrix.

    Parameters
    ----------
    distances : ndarray, shape (n, n)
    bandwidth : float
        Fixed bandwidth, or neighbour fraction of n when ``adaptive``
    adaptive : bool
        Use per-row nearest-neighbour bandwidths
    kernel_type : KernelType or str, optional
        Defaults to gaussian

    Returns
    -------
    ndarray, shape (n, n)
        ``w[i, j]`` in [0, 1]; row i is the weight vector for location i
    """
    if not bandwidth > 0:
        raise InvalidArgumentError(f"Bandwidth must be positive, got {bandwidth}")
    kernel = get_kernel(kernel_type if kernel_type is not None else "gaussian")

    if adaptive and distances.shape[0] > 1:
        row_bandwidth = adaptive_bandwidths(distances, bandwidth)
        # Co-located neighbours can give a zero bandwidth; keep only d == 0
        row_bandwidth = np.where(row_bandwidth > 0, row_bandwidth, np.finfo(np.float64).tiny)
        return kernel(distances, row_bandwidth[:, np.newaxis])

    return kernel(distances, bandwidth)


def spatial_weights(
    records: Sequence[Mapping],
    config: Optional[RegressionConfig] = None,
) -> np.ndarray:
    """Build the n x n spatial weight matrix for records."""
    config = config or RegressionConfig()
    coords = record_coordinates(records, config)
    distances = pairwise_distances(coords, config.distance_metric)
    return spatial_weight_matrix(
        distances,
        config.bandwidth,
        adaptive=config.adaptive_bandwidth,
        kernel_type=config.kernel_type,
    )


__all__ = [
    "EARTH_RADIUS_KM",
    "record_coordinates",
    "haversine_distances",
    "pairwise_distances",
    "adaptive_bandwidths",
    "spatial_weight_matrix",
    "spatial_weights",
]
