"""Tests for the SplineModel record."""

import json

import numpy as np
import pytest

from jaxslm.exceptions import DegenerateKnotsError, ValidationError
from jaxslm.model import Extrapolation, SplineModel, SplineType


@pytest.fixture
def model():
    knots = np.array([0.0, 1.0, 3.0])
    coef = np.array([[0.0, 1.0], [1.0, 0.5], [1.5, 0.0]])
    return SplineModel(knots=knots, coefficients=coef, x=[0.0, 2.0, 3.0], y=[0.1, 1.2, 1.4])


class TestSplineModel:
    """Tests for SplineModel construction and accessors."""

    def test_accessors(self, model):
        assert model.type == SplineType.CUBIC
        assert model.extrapolation == Extrapolation.NONE
        assert model.degree == 3
        assert model.n_knots == 3
        assert model.domain == (0.0, 3.0)
        np.testing.assert_array_equal(model.values, [0.0, 1.0, 1.5])
        np.testing.assert_array_equal(model.slopes, [1.0, 0.5, 0.0])
        np.testing.assert_array_equal(model.coef_vector, [0.0, 1.0, 1.5, 1.0, 0.5, 0.0])

    def test_string_enums(self):
        m = SplineModel([0.0, 1.0], [[0.0, 0.0], [1.0, 0.0]], type="cubic", extrapolation="none")
        assert m.type == SplineType.CUBIC
        assert m.extrapolation == Extrapolation.NONE

    def test_bad_coefficient_shape(self):
        with pytest.raises(ValidationError, match="coefficients must have shape"):
            SplineModel(knots=[0.0, 1.0, 2.0], coefficients=np.zeros((2, 2)))

    def test_degenerate_knots(self):
        with pytest.raises(DegenerateKnotsError):
            SplineModel(knots=[0.0, 1.0, 1.0], coefficients=np.zeros((3, 2)))

    def test_immutable(self, model):
        with pytest.raises(AttributeError):
            model.knots = np.array([0.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            model.coefficients[0, 0] = 5.0
        with pytest.raises(ValueError):
            model.knots[0] = -1.0

    def test_inputs_copied(self):
        coef = np.array([[0.0, 1.0], [1.0, 1.0]])
        m = SplineModel(knots=[0.0, 1.0], coefficients=coef)
        coef[0, 0] = 99.0
        assert m.values[0] == 0.0

    def test_linear_example(self):
        m = SplineModel(knots=[0.0, 1.0], coefficients=[[0.0, 1.0], [1.0, 1.0]])
        np.testing.assert_allclose(m([0.25, 0.5]), [0.25, 0.5], atol=1e-15)

    def test_repr(self, model):
        assert repr(model) == "SplineModel(type='cubic', n_knots=3, domain=[0, 3])"


class TestSerialization:
    """Tests for to_dict/from_dict and JSON files."""

    def test_round_trip(self, model):
        loaded = SplineModel.from_dict(model.to_dict())
        np.testing.assert_array_equal(loaded.knots, model.knots)
        np.testing.assert_array_equal(loaded.coefficients, model.coefficients)
        np.testing.assert_array_equal(loaded.x, model.x)
        np.testing.assert_array_equal(loaded.y, model.y)
        assert loaded.type == model.type

    def test_dict_is_json(self, model):
        json.dumps(model.to_dict())

    def test_save_load(self, model, tmp_path):
        filepath = str(tmp_path / "model.json")
        model.save(filepath)
        loaded = SplineModel.load(filepath)
        x = np.linspace(0, 3, 17)
        np.testing.assert_allclose(loaded(x), model(x))

    def test_without_data(self):
        m = SplineModel(knots=[0.0, 1.0], coefficients=np.zeros((2, 2)))
        data = m.to_dict()
        assert data["x"] is None
        assert SplineModel.from_dict(data).x is None

    def test_summary(self, model):
        summary = model.summary()
        assert "JAXSLM Shape-Constrained Spline" in summary
        assert "Knots:         3" in summary
        assert "Data points:   3" in summary
