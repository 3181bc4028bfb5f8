"""
Regression configuration.

Caller-supplied options for extraction, spatial weighting and inference.
The engine only ever reads a config; use ``dataclasses.replace`` (or
``RegressionConfig.replace``) to derive a modified copy.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .exceptions import InvalidArgumentError


class KernelType(Enum):
    """Distance-decay kernel shapes."""
    GAUSSIAN = "gaussian"
    BISQUARE = "bisquare"
    TRICUBE = "tricube"
    EXPONENTIAL = "exponential"


class DistanceMetric(Enum):
    """Pairwise distance metrics between record locations."""
    EUCLIDEAN = "euclidean"      # raw coordinate units
    MANHATTAN = "manhattan"      # raw coordinate units
    HAVERSINE = "haversine"      # great-circle kilometres


class TransformType(Enum):
    """Per-field value transforms applied after extraction."""
    NONE = "none"
    LOG = "log"
    SQRT = "sqrt"
    SQUARE = "square"
    INVERSE = "inverse"


def _coerce_enum(enum_cls, value, option: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = ", ".join(f"'{m.value}'" for m in enum_cls)
        raise InvalidArgumentError(
            f"Unknown {option}: '{value}'\n"
            f"Valid options: {valid}"
        ) from None


# camelCase keys sent by front-end callers
_CAMEL_KEYS = {
    "modelName": "model_name",
    "kernelType": "kernel_type",
    "kernel": "kernel_type",
    "distanceMetric": "distance_metric",
    "adaptiveBandwidth": "adaptive_bandwidth",
    "dataTransforms": "data_transforms",
    "weightVariable": "weight_variable",
    "polynomialDegree": "polynomial_degree",
    "includeInteractions": "include_interactions",
    "robustStandardErrors": "robust_standard_errors",
    "latitudeField": "latitude_field",
    "longitudeField": "longitude_field",
    "locationField": "location_field",
    "maxGwrObservations": "max_gwr_observations",
}


@dataclass(frozen=True)
class RegressionConfig:
    """
    Options for a single estimation call.

    Attributes
    ----------
    model_name : str, optional
        Display name; each estimator supplies a default.
    kernel_type : KernelType
        Kernel used to turn distances into GWR weights.
    distance_metric : DistanceMetric
        Metric used for pairwise distances.
    bandwidth : float
        Fixed bandwidth in distance units, or the neighbour fraction of n
        when ``adaptive_bandwidth`` is set.
    adaptive_bandwidth : bool
        Use a per-row bandwidth from nearest-neighbour distances.
    data_transforms : mapping of str to TransformType
        Transform applied to each named field (target or predictor).
    weight_variable : str, optional
        Record field holding observation weights for weighted OLS.
    polynomial_degree : int
        Adds powers 2..degree of every predictor to the design matrix.
    include_interactions : bool
        Adds all pairwise predictor products to the design matrix.
    robust_standard_errors : bool
        Report HC1 heteroscedasticity-robust standard errors.
    strict : bool
        Raise on missing or non-numeric values instead of reading them as 0.
    latitude_field, longitude_field : str
        Coordinate fields read when ``location_field`` is not set.
    location_field : str, optional
        Field holding a ``(latitude, longitude)`` pair.
    max_gwr_observations : int
        Upper bound on n accepted by GWR (n x n weights, n local solves).
    backend : str
        Computational backend name passed to ``get_backend``.
    """
    model_name: Optional[str] = None
    kernel_type: KernelType = KernelType.GAUSSIAN
    distance_metric: DistanceMetric = DistanceMetric.EUCLIDEAN
    bandwidth: float = 0.15
    adaptive_bandwidth: bool = False
    data_transforms: Mapping[str, TransformType] = field(default_factory=dict)
    weight_variable: Optional[str] = None
    polynomial_degree: int = 1
    include_interactions: bool = False
    robust_standard_errors: bool = False
    strict: bool = False
    latitude_field: str = "latitude"
    longitude_field: str = "longitude"
    location_field: Optional[str] = None
    max_gwr_observations: int = 5000
    backend: str = "auto"

    def __post_init__(self):
        object.__setattr__(self, "kernel_type",
                           _coerce_enum(KernelType, self.kernel_type, "kernel type"))
        object.__setattr__(self, "distance_metric",
                           _coerce_enum(DistanceMetric, self.distance_metric, "distance metric"))

        transforms = {
            name: _coerce_enum(TransformType, t, f"transform for '{name}'")
            for name, t in dict(self.data_transforms or {}).items()
        }
        object.__setattr__(self, "data_transforms", MappingProxyType(transforms))

        if not self.bandwidth > 0:
            raise InvalidArgumentError(f"Bandwidth must be positive, got {self.bandwidth}")
        if int(self.polynomial_degree) != self.polynomial_degree or self.polynomial_degree < 1:
            raise InvalidArgumentError(
                f"Polynomial degree must be a positive integer, got {self.polynomial_degree}"
            )
        if self.max_gwr_observations < 1:
            raise InvalidArgumentError("max_gwr_observations must be at least 1")

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "RegressionConfig":
        """
        Build a config from a caller mapping.

        Accepts both snake_case field names and the camelCase keys used by
        front-end callers (``kernelType``, ``dataTransforms``, ...).
        ``None`` values are treated as "use the default".

        Examples
        --------
        >>> RegressionConfig.from_mapping({"kernelType": "bisquare", "bandwidth": 0.3})
        """
        if options is None:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in options.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                raise InvalidArgumentError(f"Unknown configuration option: '{key}'")
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def replace(self, **changes) -> "RegressionConfig":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def transform_for(self, name: str) -> TransformType:
        """Transform configured for a field (``NONE`` if absent)."""
        return self.data_transforms.get(name, TransformType.NONE)


def resolve_config(config) -> RegressionConfig:
    """Accept ``None``, a mapping, or a RegressionConfig."""
    if config is None:
        return RegressionConfig()
    if isinstance(config, RegressionConfig):
        return config
    if isinstance(config, Mapping):
        return RegressionConfig.from_mapping(config)
    raise InvalidArgumentError(
        f"config must be a RegressionConfig or mapping, got {type(config).__name__}"
    )


__all__ = [
    "KernelType",
    "DistanceMetric",
    "TransformType",
    "RegressionConfig",
    "resolve_config",
]
