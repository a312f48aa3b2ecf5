"""
Cubic Hermite Basis for JAXSLM.

A cubic spline segment on ``[k_j, k_{j+1}]`` is parameterized by the value
and slope at both of its knots. With ``h = k_{j+1} - k_j``,
``t = (x - k_j) / h`` and ``s = 1 - t``::

    f(x) = v_j (3s^2 - 2s^3) + v_{j+1} (3t^2 - 2t^3)
         + h d_j (s^2 - s^3) + h d_{j+1} (t^3 - t^2)

The coefficient vector of a spline with ``nk`` knots has length ``2 * nk``
and is laid out as ``[v_0, ..., v_{nk-1}, d_0, ..., d_{nk-1}]``. Every
design, regularizer and constraint row in the package, and the evaluator,
goes through :func:`hermite_basis` so that fitting and evaluation agree.
"""

from __future__ import annotations

from functools import partial

import jax.numpy as jnp
import numpy as np
from jax import jit

from .knots import bin_points

MAX_DERIVATIVE_ORDER = 3


@partial(jit, static_argnames=("order",))
def hermite_basis(t: jnp.ndarray, h: jnp.ndarray, order: int = 0) -> jnp.ndarray:
    """
    Hermite basis weights (or their x-derivatives) at local coordinates.

    Parameters
    ----------
    t : jnp.ndarray
        Local coordinates in ``[0, 1]``, shape (n,).
    h : jnp.ndarray
        Width of the span each coordinate belongs to, shape (n,).
    order : int
        Derivative order with respect to x, 0 through 3.

    Returns
    -------
    weights : jnp.ndarray
        Array of shape (4, n): weights of the left value, right value,
        left slope and right slope.
    """
    s = 1.0 - t
    if order == 0:
        weights = (
            3.0 * s**2 - 2.0 * s**3,
            3.0 * t**2 - 2.0 * t**3,
            h * (s**2 - s**3),
            h * (t**3 - t**2),
        )
    elif order == 1:
        weights = (
            6.0 * (s**2 - s) / h,
            6.0 * (t - t**2) / h,
            3.0 * s**2 - 2.0 * s,
            3.0 * t**2 - 2.0 * t,
        )
    elif order == 2:
        weights = (
            (6.0 - 12.0 * s) / h**2,
            (6.0 - 12.0 * t) / h**2,
            (2.0 - 6.0 * s) / h,
            (6.0 * t - 2.0) / h,
        )
    elif order == 3:
        ones = jnp.ones_like(t)
        weights = (
            12.0 * ones / h**3,
            -12.0 * ones / h**3,
            6.0 * ones / h**2,
            6.0 * ones / h**2,
        )
    else:
        raise ValueError(f"order must be between 0 and {MAX_DERIVATIVE_ORDER}, got {order}")
    return jnp.stack(weights)


def local_coordinates(
    x: np.ndarray,
    knots: np.ndarray,
    spans: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Local coordinate ``t`` and span width ``h`` of each point.

    Parameters
    ----------
    x : np.ndarray
        Points, shape (n,).
    knots : np.ndarray
        Knot vector.
    spans : np.ndarray of int
        Span index of each point (from :func:`bin_points`).

    Returns
    -------
    t : np.ndarray
    h : np.ndarray
    """
    h = np.diff(knots)[spans]
    t = (x - knots[spans]) / h
    return t, h


def basis_rows(
    knots: np.ndarray,
    spans: np.ndarray,
    t: np.ndarray,
    order: int = 0,
) -> np.ndarray:
    """
    Linear functionals mapping the coefficient vector to ``f^(order)``.

    Parameters
    ----------
    knots : np.ndarray
        Knot vector of length ``nk``.
    spans : np.ndarray of int
        Span index per row.
    t : np.ndarray
        Local coordinate per row.
    order : int
        Derivative order, 0 through 3.

    Returns
    -------
    rows : np.ndarray
        Dense matrix of shape (len(spans), 2 * nk).
    """
    knots = np.asarray(knots, dtype=np.float64)
    spans = np.asarray(spans, dtype=np.intp).ravel()
    t = np.asarray(t, dtype=np.float64).ravel()
    nk = knots.size

    h = np.diff(knots)[spans]
    weights = np.asarray(hermite_basis(jnp.asarray(t), jnp.asarray(h), order=order))

    rows = np.zeros((spans.size, 2 * nk))
    idx = np.arange(spans.size)
    rows[idx, spans] = weights[0]
    rows[idx, spans + 1] = weights[1]
    rows[idx, nk + spans] = weights[2]
    rows[idx, nk + spans + 1] = weights[3]
    return rows


def design_matrix(
    x: np.ndarray,
    knots: np.ndarray,
    bins: np.ndarray | None = None,
) -> np.ndarray:
    """
    Least-squares design matrix of the cubic Hermite spline.

    Parameters
    ----------
    x : np.ndarray
        Sample locations, shape (n_samples,), all within the knot range.
    knots : np.ndarray
        Knot vector of length ``nk``.
    bins : np.ndarray of int, optional
        Precomputed bin of each sample. Computed if not given.

    Returns
    -------
    Mdes : np.ndarray
        Matrix of shape (n_samples, 2 * nk) with ``Mdes @ coef`` giving the
        spline values at ``x``.
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    knots = np.asarray(knots, dtype=np.float64)
    if bins is None:
        bins = bin_points(x, knots, assume_sorted=False)
    t, _ = local_coordinates(x, knots, bins)
    return basis_rows(knots, bins, t, order=0)


def regularizer_matrix(knots: np.ndarray) -> np.ndarray:
    """
    Roughness penalty rows for the integrated squared second derivative.

    Row ``j`` is ``sqrt(w_j) * f''(k_j)``, with ``f''`` taken from the span on
    the right of the first knot and from the span on the left of every other
    knot, and ``w_j`` half the total width of the spans adjacent to knot
    ``j``. ``||Mreg @ coef||^2`` is then the trapezoidal estimate of
    ``integral f''(x)^2 dx``, exact in the limit of C2 continuity.

    Parameters
    ----------
    knots : np.ndarray
        Knot vector of length ``nk``.

    Returns
    -------
    Mreg : np.ndarray
        Matrix of shape (nk, 2 * nk).
    """
    knots = np.asarray(knots, dtype=np.float64)
    nk = knots.size
    dknots = np.diff(knots)

    spans = np.concatenate([[0], np.arange(nk - 1)])
    t = np.concatenate([[0.0], np.ones(nk - 1)])
    rows = basis_rows(knots, spans, t, order=2)

    padded = np.concatenate([[0.0], dknots, [0.0]])
    widths = 0.5 * (padded[:-1] + padded[1:])
    return rows * np.sqrt(widths)[:, None]
