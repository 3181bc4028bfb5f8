"""
Test coefficient inference, residual tests and Moran's I.
"""

import math

import pytest
import numpy as np
from scipy import stats

from pygeoreg.diagnostics import (
    coefficient_statistics,
    fit_metrics,
    jarque_bera,
    breusch_pagan,
    variance_inflation_factors,
    multicollinearity_check,
    morans_i,
    spatial_autocorrelation,
)
from pygeoreg._core.weights import pairwise_distances, spatial_weight_matrix
from pygeoreg.exceptions import InvalidArgumentError


def _grid_weights(side=8, bandwidth=1.5):
    xs, ys = np.meshgrid(np.arange(side, dtype=float), np.arange(side, dtype=float))
    coords = np.column_stack([xs.ravel(), ys.ravel()])
    W = spatial_weight_matrix(pairwise_distances(coords), bandwidth, kernel_type="bisquare")
    np.fill_diagonal(W, 0.0)
    return coords, W


class TestCoefficientStatistics:

    def setup_method(self):
        np.random.seed(42)
        self.n = 80
        self.X = np.column_stack([np.ones(self.n), np.random.randn(self.n, 2)])
        self.beta_true = np.array([1.0, 0.5, -2.0])
        self.y = self.X @ self.beta_true + np.random.randn(self.n) * (1 + np.abs(self.X[:, 1]))
        self.beta, *_ = np.linalg.lstsq(self.X, self.y, rcond=None)
        self.resid = self.y - self.X @ self.beta

    def test_classical(self):
        result = coefficient_statistics(self.X, self.beta, self.resid)
        mse = self.resid @ self.resid / (self.n - 3)
        se = np.sqrt(np.diag(np.linalg.inv(self.X.T @ self.X)) * mse)
        np.testing.assert_allclose(result.standard_errors, se, rtol=1e-9)
        np.testing.assert_allclose(result.t_values, self.beta / se, rtol=1e-9)
        assert result.df_residual == self.n - 3
        assert result.mse == pytest.approx(mse)

    def test_hc1(self):
        result = coefficient_statistics(self.X, self.beta, self.resid, robust=True)
        bread = np.linalg.inv(self.X.T @ self.X)
        meat = self.X.T @ (self.X * self.resid[:, None] ** 2)
        vcov = self.n / (self.n - 3) * bread @ meat @ bread
        np.testing.assert_allclose(result.standard_errors, np.sqrt(np.diag(vcov)), rtol=1e-9)

    def test_weighted(self):
        w = np.random.uniform(0.5, 2.0, self.n)
        ws = np.sqrt(w)
        Xw, yw = self.X * ws[:, None], self.y * ws
        beta, *_ = np.linalg.lstsq(Xw, yw, rcond=None)
        resid = self.y - self.X @ beta
        result = coefficient_statistics(self.X, beta, resid, weights=w)
        ew = resid * ws
        se = np.sqrt(np.diag(np.linalg.inv(Xw.T @ Xw)) * (ew @ ew) / (self.n - 3))
        np.testing.assert_allclose(result.standard_errors, se, rtol=1e-9)

    def test_p_values_small_df_use_t(self):
        X = self.X[:12]
        beta, *_ = np.linalg.lstsq(X, self.y[:12], rcond=None)
        resid = self.y[:12] - X @ beta
        result = coefficient_statistics(X, beta, resid)
        expected = 2 * stats.t.sf(np.abs(result.t_values), 9)
        np.testing.assert_allclose(result.p_values, expected, atol=1e-6)

    def test_insufficient_df(self):
        with pytest.raises(InvalidArgumentError, match="Insufficient"):
            coefficient_statistics(self.X[:3], self.beta, self.resid[:3])

    def test_shape_mismatch(self):
        with pytest.raises(InvalidArgumentError, match="Shape mismatch"):
            coefficient_statistics(self.X, self.beta[:2], self.resid)


class TestFitMetrics:

    def test_unweighted(self):
        actual = np.array([10.0, 12.0, 9.0, 15.0, 11.0])
        predicted = np.array([11.0, 11.5, 9.5, 14.0, 10.0])
        m = fit_metrics(actual, predicted, 2)
        r = actual - predicted
        rss = r @ r
        tss = np.sum((actual - actual.mean()) ** 2)
        assert m.r_squared == pytest.approx(1 - rss / tss)
        assert m.adjusted_r_squared == pytest.approx(1 - (1 - m.r_squared) * 4 / 3)
        assert m.aic == pytest.approx(5 * math.log(rss / 5) + 4)
        assert m.rmse == pytest.approx(math.sqrt(rss / 5))
        assert m.mae == pytest.approx(np.mean(np.abs(r)))
        assert m.mape == pytest.approx(np.mean(np.abs(r / actual)) * 100)

    def test_mape_skips_zero_actuals(self):
        m = fit_metrics(np.array([0.0, 10.0]), np.array([1.0, 9.0]), 1)
        assert m.mape == pytest.approx(10.0 / 2)

    def test_constant_target(self):
        m = fit_metrics(np.full(4, 3.0), np.array([3.0, 3.1, 2.9, 3.0]), 1)
        assert m.r_squared == 0.0

    def test_no_residual_df(self):
        m = fit_metrics(np.array([1.0, 2.0]), np.array([1.0, 2.5]), 2)
        assert math.isnan(m.adjusted_r_squared)

    def test_weighted_mean_and_rss(self):
        actual = np.array([1.0, 2.0, 4.0])
        predicted = np.array([1.5, 2.0, 3.0])
        w = np.array([0.5, 1.0, 1.5])
        m = fit_metrics(actual, predicted, 1, weights=w)
        mean = np.sum(w * actual) / 3
        tss = np.sum(w * (actual - mean) ** 2)
        rss = np.sum(w * (actual - predicted) ** 2)
        assert m.r_squared == pytest.approx(1 - rss / tss)
        assert m.rmse == pytest.approx(math.sqrt(rss / 3))


class TestResidualTests:

    def test_jarque_bera_matches_scipy(self):
        np.random.seed(0)
        e = np.random.standard_t(5, size=200)
        result = jarque_bera(e)
        expected = stats.jarque_bera(e)
        assert result.statistic == pytest.approx(expected.statistic, rel=1e-10)
        assert result.p_value == pytest.approx(expected.pvalue, abs=1e-8)
        assert result.normal == (result.p_value >= 0.05)

    def test_jarque_bera_flags_skewed(self):
        np.random.seed(1)
        result = jarque_bera(np.random.exponential(size=300))
        assert not result.normal

    def test_jarque_bera_constant(self):
        result = jarque_bera(np.zeros(10))
        assert result.statistic == 0.0
        assert result.normal

    def test_breusch_pagan(self):
        np.random.seed(2)
        n = 200
        X = np.random.uniform(1, 10, (n, 2))
        hetero = np.random.randn(n) * X[:, 0]
        result = breusch_pagan(hetero, X)

        sigma2 = np.mean(hetero ** 2)
        u2 = hetero ** 2 / sigma2
        Xa = np.column_stack([np.ones(n), X])
        b, *_ = np.linalg.lstsq(Xa, u2, rcond=None)
        fitted = Xa @ b
        r2 = 1 - np.sum((u2 - fitted) ** 2) / np.sum((u2 - u2.mean()) ** 2)
        assert result.statistic == pytest.approx(n * r2, rel=1e-8)
        assert result.p_value == pytest.approx(stats.chi2.sf(n * r2, 2), abs=1e-8)
        assert not result.homoscedastic

    def test_breusch_pagan_homoscedastic(self):
        np.random.seed(3)
        X = np.random.uniform(1, 10, (300, 1))
        result = breusch_pagan(np.random.randn(300), X)
        assert result.p_value > 0.01

    def test_breusch_pagan_singular_aux(self):
        X = np.column_stack([np.arange(10.0), np.arange(10.0)])
        result = breusch_pagan(np.random.RandomState(0).randn(10), X)
        assert math.isnan(result.statistic)


class TestVIF:

    def test_independent_columns_near_one(self):
        np.random.seed(4)
        X = np.random.randn(500, 3)
        vifs = variance_inflation_factors(X, ["a", "b", "c"])
        for v in vifs.values():
            assert v == pytest.approx(1.0, abs=0.05)

    def test_matches_definition(self):
        np.random.seed(5)
        a = np.random.randn(100)
        b = a + 0.5 * np.random.randn(100)
        X = np.column_stack([a, b])
        r2 = np.corrcoef(a, b)[0, 1] ** 2
        vifs = variance_inflation_factors(X, ["a", "b"])
        assert vifs["a"] == pytest.approx(1 / (1 - r2), rel=1e-8)
        assert vifs["b"] == pytest.approx(1 / (1 - r2), rel=1e-8)

    def test_single_column(self):
        assert variance_inflation_factors(np.arange(5.0).reshape(-1, 1), ["x"]) == {"x": 1.0}

    def test_exact_dependence_is_infinite(self):
        x = np.arange(10.0)
        X = np.column_stack([x, 2 * x + 1, np.random.RandomState(0).randn(10)])
        vifs = variance_inflation_factors(X, ["x", "y", "z"])
        assert vifs["x"] > 1e6
        assert vifs["y"] > 1e6

    def test_multicollinearity_flag(self):
        np.random.seed(6)
        a = np.random.randn(100)
        X = np.column_stack([a, a + 0.01 * np.random.randn(100)])
        check = multicollinearity_check(X, ["a", "b"])
        assert check.has_multicollinearity
        with pytest.raises(TypeError):
            check.variance_inflation_factors["a"] = 1.0

    def test_name_count_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            variance_inflation_factors(np.ones((5, 2)), ["a"])


class TestMoransI:

    def test_clustered_exceeds_shuffled(self):
        coords, W = _grid_weights()
        clustered = coords[:, 0] + coords[:, 1]
        shuffled = np.random.RandomState(0).permutation(clustered)
        assert morans_i(clustered, W) > morans_i(shuffled, W)
        assert morans_i(clustered, W) > 0.5

    def test_checkerboard_negative(self):
        coords, _ = _grid_weights()
        W = spatial_weight_matrix(pairwise_distances(coords), 1.01, kernel_type="bisquare")
        np.fill_diagonal(W, 0.0)
        checker = (coords[:, 0] + coords[:, 1]) % 2
        assert morans_i(checker, W) < -0.9

    def test_formula(self):
        values = np.array([1.0, 2.0, 4.0, 3.0])
        W = np.array([
            [0, 1, 0, 0],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
            [0, 0, 1, 0],
        ], dtype=float)
        dev = values - values.mean()
        expected = (4 / W.sum()) * (dev @ W @ dev) / (dev @ dev)
        assert morans_i(values, W) == pytest.approx(expected)

    def test_undefined_cases(self):
        assert math.isnan(morans_i(np.ones(4), np.ones((4, 4))))
        assert math.isnan(morans_i(np.arange(4.0), np.zeros((4, 4))))

    def test_weight_shape_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            morans_i(np.arange(4.0), np.ones((3, 3)))


class TestSpatialAutocorrelation:

    def test_clustered_is_significant(self):
        coords, W = _grid_weights()
        result = spatial_autocorrelation(coords[:, 0] + coords[:, 1], W)
        assert result.expected == pytest.approx(-1 / 63)
        assert result.z_score > 3
        assert result.p_value < 0.01
        assert result.has_autocorrelation

    def test_random_not_significant(self):
        coords, W = _grid_weights()
        values = np.random.RandomState(11).randn(64)
        result = spatial_autocorrelation(values, W)
        assert abs(result.z_score) < 3

    def test_variance_formula(self):
        # Rook contiguity on a 1-d chain of 5
        W = np.diag(np.ones(4), 1) + np.diag(np.ones(4), -1)
        values = np.array([1.0, 3.0, 2.0, 5.0, 4.0])
        n = 5
        s0 = W.sum()
        s1 = 0.5 * np.sum((W + W.T) ** 2)
        s2 = np.sum((W.sum(0) + W.sum(1)) ** 2)
        e = -1 / (n - 1)
        var = (n * n * s1 - n * s2 + 3 * s0 ** 2) / ((n * n - 1) * s0 ** 2) - e ** 2
        result = spatial_autocorrelation(values, W)
        assert result.z_score == pytest.approx((morans_i(values, W) - e) / math.sqrt(var))

    def test_undefined_gives_nan(self):
        result = spatial_autocorrelation(np.ones(5), np.ones((5, 5)))
        assert math.isnan(result.morans_i)
        assert math.isnan(result.p_value)
        assert not result.has_autocorrelation
