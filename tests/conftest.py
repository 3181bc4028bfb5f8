"""
Shared synthetic property data.
"""

import pytest
import numpy as np


def make_properties(n=60, seed=42, spatial_effect=0.0, noise=5000.0):
    """
    Synthetic geolocated property records.

    value = 50000 + 150 * sqft - 800 * age (+ a price gradient along
    longitude when ``spatial_effect`` is set) + noise.
    """
    rng = np.random.RandomState(seed)
    lat = 45.50 + rng.uniform(0, 0.1, n)
    lon = -122.70 + rng.uniform(0, 0.1, n)
    sqft = rng.uniform(800, 3500, n)
    age = rng.uniform(0, 80, n)
    slope = 150.0 + spatial_effect * (lon + 122.70) / 0.1
    value = 50000 + slope * sqft - 800 * age + rng.randn(n) * noise
    return [
        {
            "id": i,
            "latitude": float(lat[i]),
            "longitude": float(lon[i]),
            "sqft": float(sqft[i]),
            "age": float(age[i]),
            "value": float(value[i]),
        }
        for i in range(n)
    ]


def line_records(n=20):
    """Exact line y = 2 + 3x on x = 0..n-1, coordinates on a diagonal."""
    return [
        {"x": float(i), "y": 2.0 + 3.0 * i, "latitude": 0.01 * i, "longitude": 0.01 * i}
        for i in range(n)
    ]


@pytest.fixture
def properties():
    return make_properties()


@pytest.fixture
def line():
    return line_records()
