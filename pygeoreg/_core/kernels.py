"""
Spatial kernel definitions.

Each kernel maps a scaled distance r = d / bandwidth to a weight in [0, 1]
with weight(0) = 1. Every kernel is truncated at the bandwidth: distances
beyond it get weight 0, including for the gaussian and exponential shapes.
"""

import numpy as np
from abc import ABC, abstractmethod

from ..config import KernelType
from ..exceptions import InvalidArgumentError


class Kernel(ABC):
    """Base class for distance-decay kernels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Kernel name."""
        pass

    @abstractmethod
    def shape(self, r: np.ndarray) -> np.ndarray:
        """Weight as a function of r = d / bandwidth, for 0 <= r <= 1."""
        pass

    def __call__(self, distance, bandwidth) -> np.ndarray:
        """
        Kernel weights for distances under a (fixed or per-row) bandwidth.

        Parameters
        ----------
        distance : float or ndarray
            Non-negative distances
        bandwidth : float or ndarray
            Positive bandwidth, broadcast against ``distance``

        Returns
        -------
        ndarray
            Weights, 0 wherever ``distance > bandwidth``
        """
        distance = np.asarray(distance, dtype=np.float64)
        bandwidth = np.asarray(bandwidth, dtype=np.float64)
        if np.any(bandwidth <= 0):
            raise InvalidArgumentError("Bandwidth must be positive")

        r = distance / bandwidth
        inside = distance <= bandwidth
        return np.where(inside, self.shape(np.where(inside, r, 0.0)), 0.0)


class Gaussian(Kernel):
    """exp(-r²/2)"""

    @property
    def name(self) -> str:
        return "gaussian"

    def shape(self, r: np.ndarray) -> np.ndarray:
        return np.exp(-0.5 * r ** 2)


class Bisquare(Kernel):
    """(1 - r²)²"""

    @property
    def name(self) -> str:
        return "bisquare"

    def shape(self, r: np.ndarray) -> np.ndarray:
        return (1.0 - r ** 2) ** 2


class Tricube(Kernel):
    """(1 - |r|³)³"""

    @property
    def name(self) -> str:
        return "tricube"

    def shape(self, r: np.ndarray) -> np.ndarray:
        return (1.0 - np.abs(r) ** 3) ** 3


class Exponential(Kernel):
    """exp(-r)"""

    @property
    def name(self) -> str:
        return "exponential"

    def shape(self, r: np.ndarray) -> np.ndarray:
        return np.exp(-r)


_KERNELS = {
    KernelType.GAUSSIAN: Gaussian,
    KernelType.BISQUARE: Bisquare,
    KernelType.TRICUBE: Tricube,
    KernelType.EXPONENTIAL: Exponential,
}


def get_kernel(kernel_type) -> Kernel:
    """Kernel instance for a KernelType (or its string value)."""
    if not isinstance(kernel_type, KernelType):
        try:
            kernel_type = KernelType(str(kernel_type).lower())
        except ValueError:
            raise InvalidArgumentError(f"Unknown kernel type: '{kernel_type}'") from None
    return _KERNELS[kernel_type]()


__all__ = ["Kernel", "Gaussian", "Bisquare", "Tricube", "Exponential", "get_kernel"]
