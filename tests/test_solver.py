"""Tests for the constrained least-squares solver."""

import numpy as np
import pytest

from jaxslm.exceptions import InfeasibleConstraintsError, ValidationError
from jaxslm.solver import solve_constrained_lsq


@pytest.fixture
def problem():
    """Overdetermined least-squares problem with a known solution."""
    rng = np.random.default_rng(0)
    M = rng.normal(size=(30, 4))
    c_true = np.array([1.0, -2.0, 0.5, 3.0])
    y = M @ c_true
    return M, y, c_true


class TestUnconstrained:
    """Fast path without constraints."""

    def test_recovers_exact_solution(self, problem):
        M, y, c_true = problem
        coef = solve_constrained_lsq(M, y, np.zeros((0, 4)), 0.0)
        np.testing.assert_allclose(coef, c_true, atol=1e-10)

    def test_regularization_shrinks(self, problem):
        M, y, c_true = problem
        coef = solve_constrained_lsq(M, y, np.eye(4), 1e3)
        assert np.linalg.norm(coef) < np.linalg.norm(c_true)

    def test_negative_lam(self, problem):
        M, y, _ = problem
        with pytest.raises(ValidationError, match="non-negative"):
            solve_constrained_lsq(M, y, np.eye(4), -1.0)

    def test_bad_constraint_shape(self, problem):
        M, y, _ = problem
        with pytest.raises(ValidationError, match="Constraint block"):
            solve_constrained_lsq(M, y, np.eye(4), 0.0, A_eq=np.ones((1, 3)), b_eq=[0.0])


class TestEqualityConstrained:
    """Null-space elimination of equalities."""

    def test_equalities_hold(self, problem):
        M, y, _ = problem
        A_eq = np.array([[1.0, 1.0, 0.0, 0.0], [0.0, 0.0, 0.0, 1.0]])
        b_eq = np.array([0.0, 1.0])
        coef = solve_constrained_lsq(M, y, np.eye(4), 0.0, A_eq, b_eq)
        np.testing.assert_allclose(A_eq @ coef, b_eq, atol=1e-10)

    def test_matches_kkt_solution(self, problem):
        M, y, _ = problem
        A_eq = np.array([[1.0, 2.0, 3.0, 4.0]])
        b_eq = np.array([2.0])
        coef = solve_constrained_lsq(M, y, np.eye(4), 0.0, A_eq, b_eq)

        kkt = np.block([[2 * M.T @ M, A_eq.T], [A_eq, np.zeros((1, 1))]])
        rhs = np.concatenate([2 * M.T @ y, b_eq])
        expected = np.linalg.solve(kkt, rhs)[:4]
        np.testing.assert_allclose(coef, expected, atol=1e-8)

    def test_inconsistent_equalities(self, problem):
        M, y, _ = problem
        A_eq = np.array([[1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0]])
        b_eq = np.array([0.0, 1.0])
        with pytest.raises(InfeasibleConstraintsError, match="inconsistent"):
            solve_constrained_lsq(M, y, np.eye(4), 0.0, A_eq, b_eq)

    def test_fully_determined(self, problem):
        M, y, _ = problem
        coef = solve_constrained_lsq(M, y, np.eye(4), 0.0, np.eye(4), np.arange(4.0))
        np.testing.assert_allclose(coef, np.arange(4.0), atol=1e-12)


class TestInequalityConstrained:
    """QP path."""

    def test_inactive_constraints_do_not_change_solution(self, problem):
        M, y, c_true = problem
        A_ineq = np.eye(4)
        b_ineq = np.full(4, 10.0)
        coef = solve_constrained_lsq(M, y, np.eye(4), 0.0, A_ineq=A_ineq, b_ineq=b_ineq)
        np.testing.assert_allclose(coef, c_true, atol=1e-10)

    def test_active_bound(self, problem):
        M, y, _ = problem
        # c[3] <= 1 while the unconstrained optimum has c[3] = 3
        A_ineq = np.array([[0.0, 0.0, 0.0, 1.0]])
        coef = solve_constrained_lsq(M, y, np.eye(4), 0.0, A_ineq=A_ineq, b_ineq=[1.0])
        assert coef[3] <= 1.0 + 1e-6
        np.testing.assert_allclose(coef[3], 1.0, atol=1e-5)

    def test_mixed_constraints(self, problem):
        M, y, _ = problem
        A_eq = np.array([[1.0, 0.0, 0.0, 0.0]])
        A_ineq = np.array([[0.0, -1.0, 0.0, 0.0]])
        coef = solve_constrained_lsq(
            M, y, np.eye(4), 0.0, A_eq, [0.0], A_ineq, [0.0]
        )
        np.testing.assert_allclose(coef[0], 0.0, atol=1e-10)
        assert coef[1] >= -1e-6

    def test_infeasible(self, problem):
        M, y, _ = problem
        # c[0] <= -1 and c[0] >= 1
        A_ineq = np.array([[1.0, 0.0, 0.0, 0.0], [-1.0, 0.0, 0.0, 0.0]])
        with pytest.raises(InfeasibleConstraintsError, match="No spline"):
            solve_constrained_lsq(M, y, np.eye(4), 0.0, A_ineq=A_ineq, b_ineq=[-1.0, -1.0])

    def test_init_accepted(self, problem):
        M, y, _ = problem
        A_ineq = np.array([[0.0, 0.0, 0.0, 1.0]])
        coef = solve_constrained_lsq(
            M, y, np.eye(4), 0.0, A_ineq=A_ineq, b_ineq=[1.0], init=np.zeros(4)
        )
        np.testing.assert_allclose(coef[3], 1.0, atol=1e-5)
