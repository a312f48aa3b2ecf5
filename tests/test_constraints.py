"""Tests for constraints module."""

import numpy as np
import pytest

from jaxslm.constraints import (
    DEFAULT_MIN_MAX_SAMPLE_POINTS,
    ConstraintSystem,
    ConstraintType,
    ShapeConstraint,
    ShapeConstraints,
)
from jaxslm.exceptions import ConflictingConstraintError, ValidationError


def _coef(knots, f, df):
    return np.concatenate([f(knots), df(knots)])


class TestShapeConstraint:
    """Tests for ShapeConstraint dataclass."""

    def test_whole_domain(self):
        c = ShapeConstraint(ConstraintType.INCREASING)
        assert c.whole_domain
        assert c.constraint_type.is_monotone
        assert str(c) == "increasing"

    def test_interval(self):
        c = ShapeConstraint(ConstraintType.CONCAVE_DOWN, (0.0, 0.5))
        assert not c.whole_domain
        assert not c.constraint_type.is_monotone
        assert str(c) == "concave_down on [0, 0.5]"

    def test_serialization(self):
        c = ShapeConstraint(ConstraintType.DECREASING, (1.0, 2.0))
        loaded = ShapeConstraint.from_dict(c.to_dict())
        assert loaded == c


class TestShapeConstraints:
    """Tests for ShapeConstraints builder."""

    def test_empty(self):
        assert len(ShapeConstraints()) == 0

    def test_chaining(self):
        shapes = ShapeConstraints().add_increasing().add_concave_down(interval=(0.0, 0.5))
        assert len(shapes) == 2
        types = [c.constraint_type for c in shapes]
        assert types == [ConstraintType.INCREASING, ConstraintType.CONCAVE_DOWN]

    def test_interval_sorted(self):
        shapes = ShapeConstraints().add_decreasing((3.0, 1.0))
        assert shapes.constraints[0].interval == (1.0, 3.0)

    def test_both_directions_conflict(self):
        shapes = ShapeConstraints().add_increasing().add_decreasing()
        with pytest.raises(ConflictingConstraintError, match="Only one"):
            shapes.validate()

    def test_whole_and_interval_conflict(self):
        shapes = ShapeConstraints().add_increasing().add_decreasing((0.0, 1.0))
        with pytest.raises(ConflictingConstraintError):
            shapes.validate()

    def test_curvature_conflict(self):
        shapes = ShapeConstraints().add_concave_up().add_concave_up((0.0, 1.0))
        with pytest.raises(ConflictingConstraintError, match="curvature"):
            shapes.validate()

    def test_monotone_and_curvature_compatible(self):
        shapes = ShapeConstraints().add_increasing().add_concave_down()
        assert shapes.validate() is shapes

    def test_intervals_of_both_directions_allowed(self):
        shapes = ShapeConstraints().add_increasing((0.0, 1.0)).add_decreasing((1.0, 2.0))
        shapes.validate()

    def test_serialization(self):
        shapes = ShapeConstraints().add_increasing().add_concave_up((0.0, 0.5))
        loaded = ShapeConstraints.from_dict(shapes.to_dict())
        assert loaded.constraints == shapes.constraints


class TestConstraintSystem:
    """Tests for ConstraintSystem row builders."""

    @pytest.fixture
    def knots(self):
        return np.array([0.0, 0.5, 1.5, 2.0])

    def test_empty_finalize(self, knots):
        A_eq, b_eq, A_ineq, b_ineq = ConstraintSystem(knots).finalize()
        assert A_eq.shape == (0, 8)
        assert b_eq.shape == (0,)
        assert A_ineq.shape == (0, 8)
        assert b_ineq.shape == (0,)

    def test_c2_rows(self, knots):
        system = ConstraintSystem(knots).add_c2_continuity()
        assert system.n_equality == 2
        A_eq, b_eq, _, _ = system.finalize()

        # any cubic is C2, a Hermite spline with kinked curvature is not
        smooth = _coef(knots, lambda x: x**3 - x, lambda x: 3 * x**2 - 1)
        np.testing.assert_allclose(A_eq @ smooth, 0.0, atol=1e-12)
        kinked = _coef(knots, np.abs, np.sign)
        kinked[0] = 1.0
        assert np.max(np.abs(A_eq @ kinked)) > 1e-3

    def test_c2_two_knots(self):
        system = ConstraintSystem(np.array([0.0, 1.0])).add_c2_continuity()
        assert len(system) == 0

    def test_endpoint_values(self, knots):
        system = ConstraintSystem(knots)
        system.add_endpoint_value("left", 2.0).add_endpoint_value("right", -1.0)
        A_eq, b_eq, _, _ = system.finalize()
        np.testing.assert_array_equal(A_eq[0], np.eye(8)[0])
        np.testing.assert_array_equal(A_eq[1], np.eye(8)[3])
        np.testing.assert_array_equal(b_eq, [2.0, -1.0])

    def test_endpoint_invalid_side(self, knots):
        with pytest.raises(ValidationError, match="side"):
            ConstraintSystem(knots).add_endpoint_value("middle", 0.0)

    def test_min_value_rows(self, knots):
        system = ConstraintSystem(knots).add_min_value(0.5)
        n_spans = knots.size - 1
        assert system.n_inequality == knots.size + n_spans * len(DEFAULT_MIN_MAX_SAMPLE_POINTS)

        _, _, A_ineq, b_ineq = system.finalize()
        above = _coef(knots, lambda x: 1.0 + 0 * x, lambda x: 0 * x)
        below = _coef(knots, lambda x: 0.0 * x, lambda x: 0 * x)
        assert np.all(A_ineq @ above <= b_ineq + 1e-12)
        assert np.all(A_ineq @ below > b_ineq)

    def test_max_value_custom_samples(self, knots):
        system = ConstraintSystem(knots).add_max_value(1.0, sample_points=[0.5])
        assert system.n_inequality == knots.size + knots.size - 1

    def test_sample_points_range(self, knots):
        with pytest.raises(ValidationError, match=r"\[0, 1\]"):
            ConstraintSystem(knots).add_min_value(0.0, sample_points=[1.5])

    def test_monotonicity_rows(self, knots):
        system = ConstraintSystem(knots).add_monotonicity("increasing")
        assert system.n_inequality == 5 * (knots.size - 1)
        _, _, A, b = system.finalize()

        increasing = _coef(knots, lambda x: x, np.ones_like)
        decreasing = _coef(knots, lambda x: -x, lambda x: -np.ones_like(x))
        assert np.all(A @ increasing <= b + 1e-12)
        assert np.any(A @ decreasing > b)

    def test_decreasing_negates(self, knots):
        inc = ConstraintSystem(knots).add_monotonicity("increasing").finalize()[2]
        dec = ConstraintSystem(knots).add_monotonicity("decreasing").finalize()[2]
        np.testing.assert_allclose(dec, -inc)

    def test_monotonicity_interval_spans(self, knots):
        # (0.6, 0.7) lies inside the middle span only
        system = ConstraintSystem(knots).add_monotonicity("increasing", (0.6, 0.7))
        assert system.n_inequality == 5

    def test_interval_outside_warns(self, knots):
        with pytest.warns(UserWarning, match="does not overlap"):
            system = ConstraintSystem(knots).add_monotonicity("increasing", (5.0, 6.0))
        assert len(system) == 0

    def test_invalid_direction(self, knots):
        with pytest.raises(ValidationError, match="direction"):
            ConstraintSystem(knots).add_monotonicity("sideways")
        with pytest.raises(ValidationError, match="direction"):
            ConstraintSystem(knots).add_curvature("left")

    def test_curvature_rows(self, knots):
        system = ConstraintSystem(knots).add_curvature("up")
        assert system.n_inequality == 2 * (knots.size - 1)
        _, _, A, b = system.finalize()

        convex = _coef(knots, lambda x: x**2, lambda x: 2 * x)
        concave = _coef(knots, lambda x: -(x**2), lambda x: -2 * x)
        assert np.all(A @ convex <= b + 1e-12)
        assert np.all(A @ concave > b)

    def test_curvature_interval_clipped(self, knots):
        # f'' = 6x - 3 changes sign at 0.5: convex on [0.5, 2] but not before
        f = _coef(knots, lambda x: x**3 - 1.5 * x**2, lambda x: 3 * x**2 - 3 * x)
        _, _, A, b = ConstraintSystem(knots).add_curvature("up", (0.5, 2.0)).finalize()
        assert np.all(A @ f <= b + 1e-12)
        _, _, A, b = ConstraintSystem(knots).add_curvature("up", (0.2, 2.0)).finalize()
        assert np.any(A @ f > b)

    def test_add_shape_constraint_dispatch(self, knots):
        system = ConstraintSystem(knots)
        system.add_shape_constraint(ShapeConstraint(ConstraintType.DECREASING))
        system.add_shape_constraint(ShapeConstraint(ConstraintType.CONCAVE_DOWN, (0.0, 0.4)))
        assert system.n_inequality == 5 * 3 + 2

    def test_rows_unit_l1_norm(self, knots):
        system = (
            ConstraintSystem(knots)
            .add_c2_continuity()
            .add_endpoint_value("left", 3.0)
            .add_min_value(-1.0)
            .add_monotonicity("increasing")
            .add_curvature("down", (0.2, 1.7))
        )
        A_eq, _, A_ineq, _ = system.finalize()
        np.testing.assert_allclose(np.abs(A_eq).sum(axis=1), 1.0)
        np.testing.assert_allclose(np.abs(A_ineq).sum(axis=1), 1.0)
