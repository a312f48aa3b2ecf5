"""
Spline Evaluation for JAXSLM.

Evaluates a fitted :class:`~jaxslm.model.SplineModel` or one of its
derivatives at arbitrary points.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

import jax.numpy as jnp
import numpy as np
from jax import jit

from .basis import hermite_basis
from .exceptions import InvalidArgumentError
from .knots import bin_points
from .model import Extrapolation, SplineType
from .utils import validate_1d

if TYPE_CHECKING:
    from .model import SplineModel

EVAL_MODES = {
    0: "value",
    1: "first derivative",
    2: "second derivative",
    3: "third derivative",
}
INVERSE_MODE = -1


@partial(jit, static_argnames=("order",))
def _eval_cubic(
    t: jnp.ndarray,
    h: jnp.ndarray,
    v0: jnp.ndarray,
    v1: jnp.ndarray,
    d0: jnp.ndarray,
    d1: jnp.ndarray,
    order: int = 0,
) -> jnp.ndarray:
    """Blend the end values and slopes of each point's span."""
    w = hermite_basis(t, h, order=order)
    return w[0] * v0 + w[1] * v1 + w[2] * d0 + w[3] * d1


def _check_mode(mode: Any) -> int:
    try:
        is_integer = not isinstance(mode, bool) and float(mode).is_integer()
    except (TypeError, ValueError):
        is_integer = False
    if not is_integer:
        raise InvalidArgumentError(f"The evaluation mode must be an integer, got {mode!r}")
    mode = int(mode)
    if mode == INVERSE_MODE:
        raise NotImplementedError("The function inverse has not been implemented yet.")
    if mode not in EVAL_MODES:
        raise InvalidArgumentError(
            f"The evaluation mode cannot be {mode}. It must be one of {sorted(EVAL_MODES)}."
        )
    return mode


def evaluate(
    model: SplineModel,
    points: Any,
    mode: int = 0,
    assume_sorted: bool = True,
    strict: bool = False,
) -> np.ndarray:
    """
    Evaluate a spline or one of its derivatives.

    Parameters
    ----------
    model : SplineModel
        Fitted spline.
    points : array-like
        Query points. Scalars are treated as a single point.
    mode : int
        0 for the value, 1, 2 or 3 for that derivative. -1 (inverse
        evaluation) is reserved and not implemented.
    assume_sorted : bool
        If True, ``points`` must be in ascending order. If False they are
        sorted internally; the output is always in input order.
    strict : bool
        If True, raise for points outside the knot range instead of
        returning NaN for them.

    Returns
    -------
    values : np.ndarray
        Array of shape (n_points,).

    Raises
    ------
    InvalidArgumentError
        If ``mode`` is not one of 0, 1, 2, 3 (or -1).
    NotImplementedError
        For inverse evaluation, or a model whose extrapolation is not ``none``.
    OutOfRangeError
        If ``strict`` and a point lies outside the knot range.
    """
    if model.extrapolation != Extrapolation.NONE:
        raise NotImplementedError(
            f"Extrapolation method {model.extrapolation.value!r} is not supported."
        )
    if model.type != SplineType.CUBIC:
        raise NotImplementedError(f"Cannot use the spline type {model.type.value!r}")
    order = _check_mode(mode)

    points = validate_1d(points, name="points")
    knots = model.knots
    bins = bin_points(points, knots, assume_sorted=assume_sorted, strict=strict)

    inside = bins >= 0
    spans = np.where(inside, bins, 0)
    h = np.diff(knots)[spans]
    t = np.where(inside, (points - knots[spans]) / h, 0.0)

    values = model.values
    slopes = model.slopes
    result = _eval_cubic(
        jnp.asarray(t),
        jnp.asarray(h),
        jnp.asarray(values[spans]),
        jnp.asarray(values[spans + 1]),
        jnp.asarray(slopes[spans]),
        jnp.asarray(slopes[spans + 1]),
        order=order,
    )
    return np.where(inside, np.asarray(result, dtype=np.float64), np.nan)
