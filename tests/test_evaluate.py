"""Tests for spline evaluation."""

import numpy as np
import pytest

from jaxslm.evaluate import evaluate
from jaxslm.exceptions import InvalidArgumentError, OutOfRangeError
from jaxslm.model import SplineModel


@pytest.fixture
def cubic_model():
    """Hermite spline reproducing f(x) = x^3 - 2x on uneven knots."""
    knots = np.array([-1.0, 0.0, 0.4, 2.0])
    coef = np.column_stack([knots**3 - 2 * knots, 3 * knots**2 - 2])
    return SplineModel(knots=knots, coefficients=coef)


class TestEvaluate:
    """Tests for evaluate()."""

    @pytest.mark.parametrize(
        "mode, expected",
        [
            (0, lambda x: x**3 - 2 * x),
            (1, lambda x: 3 * x**2 - 2),
            (2, lambda x: 6 * x),
            (3, lambda x: np.full_like(x, 6.0)),
        ],
    )
    def test_modes(self, cubic_model, mode, expected):
        x = np.linspace(-1, 2, 31)
        np.testing.assert_allclose(
            evaluate(cubic_model, x, mode=mode), expected(x), atol=1e-9
        )

    def test_values_at_knots(self, cubic_model):
        np.testing.assert_allclose(
            evaluate(cubic_model, cubic_model.knots), cubic_model.values, atol=1e-14
        )

    def test_returns_float64(self, cubic_model):
        result = evaluate(cubic_model, [0.5])
        assert isinstance(result, np.ndarray)
        assert result.dtype == np.float64

    def test_scalar_point(self, cubic_model):
        result = evaluate(cubic_model, 1.0)
        assert result.shape == (1,)
        np.testing.assert_allclose(result, [-1.0], atol=1e-12)

    def test_out_of_range_is_nan(self, cubic_model):
        result = evaluate(cubic_model, [-2.0, 0.5, 3.0])
        assert np.isnan(result[0])
        assert np.isnan(result[2])
        np.testing.assert_allclose(result[1], 0.125 - 1.0, atol=1e-12)

    def test_out_of_range_strict(self, cubic_model):
        with pytest.raises(OutOfRangeError):
            evaluate(cubic_model, [3.0], strict=True)

    def test_nan_point(self, cubic_model):
        result = evaluate(cubic_model, [0.0, np.nan], assume_sorted=False)
        assert np.isnan(result[1])
        np.testing.assert_allclose(result[0], 0.0, atol=1e-14)

    def test_unsorted_points_keep_order(self, cubic_model):
        x = np.array([1.5, -0.5, 0.2, 1.9, 0.0])
        result = evaluate(cubic_model, x, assume_sorted=False)
        np.testing.assert_allclose(result, x**3 - 2 * x, atol=1e-9)

    def test_empty(self, cubic_model):
        assert evaluate(cubic_model, []).shape == (0,)

    def test_call_shortcut(self, cubic_model):
        x = np.array([1.0, 0.1])
        np.testing.assert_allclose(cubic_model(x, mode=1), 3 * x**2 - 2, atol=1e-9)


class TestEvaluateModes:
    """Invalid evaluation modes."""

    @pytest.mark.parametrize("mode", [4, -2, 1.5, "one", True])
    def test_invalid_mode(self, cubic_model, mode):
        with pytest.raises(InvalidArgumentError, match="mode"):
            evaluate(cubic_model, [0.5], mode=mode)

    def test_integral_float_mode(self, cubic_model):
        np.testing.assert_allclose(evaluate(cubic_model, [1.0], mode=2.0), [6.0], atol=1e-9)

    def test_inverse_not_implemented(self, cubic_model):
        with pytest.raises(NotImplementedError, match="inverse"):
            evaluate(cubic_model, [0.5], mode=-1)

    def test_extrapolation_not_implemented(self, cubic_model):
        model = SplineModel(
            knots=cubic_model.knots,
            coefficients=cubic_model.coefficients,
            extrapolation="linear",
        )
        with pytest.raises(NotImplementedError, match="Extrapolation"):
            evaluate(model, [0.5])
