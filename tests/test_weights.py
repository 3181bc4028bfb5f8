"""
Test kernels, distances and spatial weight matrices.
"""

import math

import pytest
import numpy as np

from pygeoreg._core.kernels import get_kernel, Gaussian, Bisquare, Tricube, Exponential
from pygeoreg._core.weights import (
    EARTH_RADIUS_KM,
    adaptive_bandwidths,
    pairwise_distances,
    record_coordinates,
    spatial_weight_matrix,
    spatial_weights,
)
from pygeoreg.config import KernelType, DistanceMetric, RegressionConfig
from pygeoreg.exceptions import InvalidArgumentError


ALL_KERNELS = [k.value for k in KernelType]


class TestKernels:

    @pytest.mark.parametrize("name", ALL_KERNELS)
    def test_weight_at_zero_is_one(self, name):
        assert get_kernel(name)(0.0, 0.5) == pytest.approx(1.0)

    @pytest.mark.parametrize("name", ALL_KERNELS)
    def test_zero_beyond_bandwidth(self, name):
        kernel = get_kernel(name)
        assert kernel(0.51, 0.5) == 0.0
        assert kernel(10.0, 0.5) == 0.0

    @pytest.mark.parametrize("name", ALL_KERNELS)
    def test_monotone_inside_bandwidth(self, name):
        weights = get_kernel(name)(np.linspace(0, 1, 11), 1.0)
        assert np.all(np.diff(weights) <= 0)
        assert np.all((weights >= 0) & (weights <= 1))

    def test_shapes(self):
        r = 0.5
        assert Gaussian()(r, 1.0) == pytest.approx(math.exp(-0.125))
        assert Bisquare()(r, 1.0) == pytest.approx(0.5625)
        assert Tricube()(r, 1.0) == pytest.approx((1 - 0.125) ** 3)
        assert Exponential()(r, 1.0) == pytest.approx(math.exp(-0.5))

    def test_at_bandwidth_inclusive(self):
        assert Bisquare()(1.0, 1.0) == 0.0
        assert Gaussian()(1.0, 1.0) == pytest.approx(math.exp(-0.5))

    def test_per_row_bandwidth_broadcast(self):
        d = np.array([[0.0, 1.0], [1.0, 0.0]])
        w = Gaussian()(d, np.array([[0.5], [2.0]]))
        assert w[0, 1] == 0.0
        assert w[1, 0] == pytest.approx(math.exp(-0.125))

    @pytest.mark.parametrize("bandwidth", [0.0, -1.0])
    def test_non_positive_bandwidth(self, bandwidth):
        with pytest.raises(InvalidArgumentError):
            Gaussian()(0.1, bandwidth)

    def test_unknown_kernel(self):
        with pytest.raises(InvalidArgumentError, match="Unknown kernel"):
            get_kernel("triangular")

    def test_kernel_names(self):
        for name in ALL_KERNELS:
            assert get_kernel(name).name == name


class TestDistances:

    COORDS = np.array([[0.0, 0.0], [3.0, 4.0], [1.0, 1.0]])

    def test_euclidean(self):
        d = pairwise_distances(self.COORDS, "euclidean")
        assert d[0, 1] == pytest.approx(5.0)
        np.testing.assert_allclose(d, d.T)
        np.testing.assert_array_equal(np.diag(d), 0.0)

    def test_manhattan(self):
        d = pairwise_distances(self.COORDS, DistanceMetric.MANHATTAN)
        assert d[0, 1] == pytest.approx(7.0)
        assert d[1, 2] == pytest.approx(5.0)

    def test_haversine_one_degree_latitude(self):
        d = pairwise_distances(np.array([[0.0, 0.0], [1.0, 0.0]]), "haversine")
        assert d[0, 1] == pytest.approx(EARTH_RADIUS_KM * math.pi / 180, rel=1e-9)

    def test_haversine_known_distance(self):
        # Paris - London, about 344 km
        d = pairwise_distances(np.array([[48.8566, 2.3522], [51.5074, -0.1278]]), "haversine")
        assert d[0, 1] == pytest.approx(343.5, abs=1.0)

    def test_bad_shape(self):
        with pytest.raises(InvalidArgumentError):
            pairwise_distances(np.ones((3, 3)))

    def test_unknown_metric(self):
        with pytest.raises(InvalidArgumentError, match="distance metric"):
            pairwise_distances(self.COORDS, "chebyshev")


class TestCoordinates:

    def test_lat_lon_fields(self):
        records = [{"latitude": 1.0, "longitude": 2.0}, {"latitude": "3", "longitude": 4}]
        coords = record_coordinates(records, RegressionConfig())
        np.testing.assert_allclose(coords, [[1, 2], [3, 4]])

    def test_custom_field_names(self):
        records = [{"lat": 1.0, "lng": 2.0}]
        config = RegressionConfig(latitude_field="lat", longitude_field="lng")
        np.testing.assert_allclose(record_coordinates(records, config), [[1, 2]])

    def test_location_field_pairs(self):
        records = [{"loc": (1.0, 2.0)}, {"loc": [3.0, 4.0]}, {"loc": {"lat": 5, "lng": 6}}]
        config = RegressionConfig(location_field="loc")
        np.testing.assert_allclose(record_coordinates(records, config), [[1, 2], [3, 4], [5, 6]])

    def test_missing_coordinates_warn(self):
        records = [{"latitude": 1.0, "longitude": 2.0}, {"latitude": None, "longitude": 4.0}]
        with pytest.warns(UserWarning, match="1 missing coordinate"):
            coords = record_coordinates(records, RegressionConfig())
        np.testing.assert_allclose(coords[1], [0.0, 4.0])

    def test_missing_coordinates_strict(self):
        records = [{"loc": (1.0, 2.0)}, {"loc": "nowhere"}]
        config = RegressionConfig(location_field="loc", strict=True)
        with pytest.raises(InvalidArgumentError, match="Record 1"):
            record_coordinates(records, config)

    def test_absent_coordinate_field(self):
        with pytest.raises(InvalidArgumentError, match="Coordinate field"):
            record_coordinates([{"x": 1}], RegressionConfig())


class TestWeightMatrix:

    def test_fixed_bandwidth(self):
        coords = np.column_stack([np.arange(5.0), np.zeros(5)])
        d = pairwise_distances(coords)
        w = spatial_weight_matrix(d, 2.0, kernel_type="bisquare")
        np.testing.assert_allclose(np.diag(w), 1.0)
        assert w[0, 1] == pytest.approx(0.5625)
        assert w[0, 3] == 0.0
        np.testing.assert_allclose(w, w.T)

    def test_adaptive_bandwidth_neighbour_count(self):
        n = 40
        coords = np.column_stack([np.arange(float(n)), np.zeros(n)])
        d = pairwise_distances(coords)
        # floor(40 * 0.5) = 20 neighbours
        bw = adaptive_bandwidths(d, 0.5)
        assert bw[0] == pytest.approx(20.0)
        # Small fractions still use at least 10 neighbours
        bw = adaptive_bandwidths(d, 0.01)
        assert bw[0] == pytest.approx(10.0)

    def test_adaptive_bandwidth_capped_at_n_minus_one(self):
        coords = np.column_stack([np.arange(5.0), np.zeros(5)])
        bw = adaptive_bandwidths(pairwise_distances(coords), 0.5)
        assert bw[0] == pytest.approx(4.0)
        assert bw[2] == pytest.approx(2.0)

    def test_adaptive_not_symmetric(self):
        coords = np.array([[0.0, 0.0], [0.1, 0.0], [0.2, 0.0]] + [[10.0 + i, 0.0] for i in range(12)])
        w = spatial_weight_matrix(pairwise_distances(coords), 0.1, adaptive=True, kernel_type="gaussian")
        assert w.shape == (15, 15)
        assert not np.allclose(w, w.T)
        np.testing.assert_allclose(np.diag(w), 1.0)
        assert np.all((w >= 0) & (w <= 1))

    def test_colocated_points_adaptive(self):
        coords = np.zeros((12, 2))
        w = spatial_weight_matrix(pairwise_distances(coords), 0.5, adaptive=True)
        np.testing.assert_allclose(w, 1.0)

    def test_non_positive_bandwidth(self):
        with pytest.raises(InvalidArgumentError):
            spatial_weight_matrix(np.zeros((2, 2)), 0.0)

    def test_spatial_weights_from_records(self):
        records = [{"latitude": 0.0, "longitude": 0.1 * i} for i in range(6)]
        config = RegressionConfig(bandwidth=0.25, kernel_type="tricube")
        w = spatial_weights(records, config)
        assert w.shape == (6, 6)
        assert w[0, 1] > w[0, 2] > 0
        assert w[0, 3] == 0.0
