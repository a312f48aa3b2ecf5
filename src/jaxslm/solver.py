"""
Constrained Least-Squares Solver for JAXSLM.

Solves

    minimize    ||Mdes @ c - y||^2 + lam * ||Mreg @ c||^2
    subject to  A_eq @ c = b_eq
                A_ineq @ c <= b_ineq

Equalities are eliminated through an orthonormal null-space basis. Without
inequalities the reduced problem is an ordinary linear least-squares solve;
with inequalities a feasibility LP is solved first and the quadratic program
is handed to SLSQP.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy.linalg import null_space

from .exceptions import InfeasibleConstraintsError, ValidationError
from .utils import particular_solution

EQUALITY_TOL = 1e-8
FEASIBILITY_TOL = 1e-7


def _empty_block(n_coef: int, A, b) -> tuple[np.ndarray, np.ndarray]:
    if A is None or np.size(A) == 0:
        return np.zeros((0, n_coef)), np.zeros(0)
    A = np.atleast_2d(np.asarray(A, dtype=np.float64))
    b = np.asarray(b, dtype=np.float64).ravel()
    if A.shape[1] != n_coef or A.shape[0] != b.size:
        raise ValidationError(
            f"Constraint block has shape {A.shape} with {b.size} right-hand sides; "
            f"expected (m, {n_coef}) with m right-hand sides"
        )
    return A, b


def _feasible_point(G: np.ndarray, h: np.ndarray) -> np.ndarray:
    """
    Find any ``z`` with ``G @ z <= h``.

    Raises
    ------
    InfeasibleConstraintsError
        If the LP solver proves the system infeasible.
    """
    from scipy.optimize import linprog

    result = linprog(
        c=np.zeros(G.shape[1]),
        A_ub=G,
        b_ub=h,
        bounds=[(None, None)] * G.shape[1],
        method="highs",
    )
    if result.status == 2:
        raise InfeasibleConstraintsError(
            "No spline satisfies all shape constraints simultaneously "
            f"({G.shape[0]} inequality rows); relax a constraint and refit"
        )
    if result.status != 0:
        warnings.warn(
            f"Feasibility check did not finish cleanly: {result.message}", stacklevel=3
        )
        return np.zeros(G.shape[1])
    return np.asarray(result.x)


def solve_constrained_lsq(
    Mdes: np.ndarray,
    rhs: np.ndarray,
    Mreg: np.ndarray,
    lam: float,
    A_eq: np.ndarray | None = None,
    b_eq: np.ndarray | None = None,
    A_ineq: np.ndarray | None = None,
    b_ineq: np.ndarray | None = None,
    init: np.ndarray | None = None,
    max_iter: int = 500,
    tol: float = 1e-12,
) -> np.ndarray:
    """
    Solve the regularized, linearly constrained least-squares problem.

    Parameters
    ----------
    Mdes : np.ndarray
        Design matrix of shape (n_samples, n_coef).
    rhs : np.ndarray
        Targets of shape (n_samples,).
    Mreg : np.ndarray
        Regularizer matrix of shape (n_reg, n_coef).
    lam : float
        Non-negative regularization weight.
    A_eq, b_eq : np.ndarray, optional
        Equality block ``A_eq @ c = b_eq``.
    A_ineq, b_ineq : np.ndarray, optional
        Inequality block ``A_ineq @ c <= b_ineq``.
    init : np.ndarray, optional
        Starting coefficient vector for the constrained path.
    max_iter : int
        Maximum SLSQP iterations.
    tol : float
        SLSQP objective tolerance.

    Returns
    -------
    coef : np.ndarray
        Coefficient vector of shape (n_coef,).

    Raises
    ------
    InfeasibleConstraintsError
        If the equality block is inconsistent or no point satisfies both blocks.
    """
    from scipy.optimize import minimize

    Mdes = np.asarray(Mdes, dtype=np.float64)
    Mreg = np.asarray(Mreg, dtype=np.float64)
    rhs = np.asarray(rhs, dtype=np.float64).ravel()
    n_coef = Mdes.shape[1]
    if lam < 0:
        raise ValidationError(f"Regularization parameter must be non-negative, got {lam}")

    A_eq, b_eq = _empty_block(n_coef, A_eq, b_eq)
    A_ineq, b_ineq = _empty_block(n_coef, A_ineq, b_ineq)

    A = np.vstack([Mdes, np.sqrt(lam) * Mreg])
    b = np.concatenate([rhs, np.zeros(Mreg.shape[0])])

    # Eliminate equalities: c = c_p + N @ z
    if A_eq.shape[0]:
        c_p, residual = particular_solution(A_eq, b_eq)
        if residual > EQUALITY_TOL:
            raise InfeasibleConstraintsError(
                f"Equality constraints are inconsistent (relative residual {residual:.2e})"
            )
        N = null_space(A_eq)
    else:
        c_p = np.zeros(n_coef)
        N = np.eye(n_coef)

    G = A_ineq @ N
    h = b_ineq - A_ineq @ c_p

    if N.shape[1] == 0:
        if G.shape[0] and np.max(-h) > FEASIBILITY_TOL:
            raise InfeasibleConstraintsError(
                "Equality constraints fix every coefficient and violate the inequalities"
            )
        return c_p

    AN = A @ N
    b_red = b - A @ c_p
    z_ls, _, _, _ = np.linalg.lstsq(AN, b_red, rcond=None)

    # ---- Fast path: no inequality constraints, or none of them active ----
    if G.shape[0] == 0 or np.all(G @ z_ls <= h + FEASIBILITY_TOL):
        return c_p + N @ z_ls

    # ---- Optimization path: inequality constrained QP ----
    z_feas = _feasible_point(G, h)
    if init is not None:
        z0 = N.T @ (np.asarray(init, dtype=np.float64).ravel() - c_p)
    else:
        z0 = z_feas

    scale = max(float(b_red @ b_red), 1.0)

    def objective_and_grad(z):
        """Scaled least-squares objective with its gradient."""
        r = AN @ z - b_red
        return float(r @ r) / scale, 2.0 * (AN.T @ r) / scale

    result = minimize(
        objective_and_grad,
        z0,
        jac=True,
        method="SLSQP",
        constraints=[{
            "type": "ineq",
            "fun": lambda z: h - G @ z,
            "jac": lambda z: -G,
        }],
        options={"maxiter": max_iter, "ftol": tol},
    )
    if not result.success:
        warnings.warn(
            f"Constrained solve did not converge: {result.message}", stacklevel=2
        )

    z = result.x
    violation = float(np.max(G @ z - h))
    if violation > 1e-6:
        warnings.warn(
            f"Returned coefficients violate an inequality by {violation:.2e}", stacklevel=2
        )
    return c_p + N @ z
