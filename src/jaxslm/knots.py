"""
Knot Selection and Binning for JAXSLM.

Chooses knot locations from the data and assigns points to the half-open
knot interval that contains them.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .exceptions import DegenerateKnotsError, OutOfRangeError, ValidationError

KNOT_PLACEMENTS = ("quantile", "uniform")


def check_knots(knots: np.ndarray) -> np.ndarray:
    """
    Verify that a knot vector is usable.

    Parameters
    ----------
    knots : np.ndarray
        Knot positions, expected to be sorted.

    Returns
    -------
    knots : np.ndarray
        The same knots as a float64 array.

    Raises
    ------
    ValidationError
        If there are fewer than two knots or a knot is not finite.
    DegenerateKnotsError
        If any two knots coincide.
    """
    knots = np.asarray(knots, dtype=np.float64)
    if knots.ndim != 1 or knots.size < 2:
        raise ValidationError(f"At least 2 knots are required, got {knots.size}")
    if not np.all(np.isfinite(knots)):
        raise ValidationError("Knots must be finite")
    dknots = np.diff(knots)
    if np.any(dknots < 0):
        raise ValidationError("Knots must be sorted in increasing order")
    if np.any(dknots == 0):
        n_dup = int(np.count_nonzero(dknots == 0))
        raise DegenerateKnotsError(
            f"Knots must be distinct; found {n_dup} coincident pair(s). "
            "Reduce the number of knots or use knot_placement='uniform'."
        )
    return knots


def choose_knots(
    knots: Any,
    x: np.ndarray,
    placement: str = "quantile",
) -> np.ndarray:
    """
    Choose knot positions spanning the data.

    Parameters
    ----------
    knots : int or array-like
        Number of knots, or an explicit knot vector.
    x : np.ndarray
        Sample locations (NaN already removed).
    placement : str
        ``"quantile"``: evenly spaced empirical quantiles with nearest-rank
        selection, so every knot is a data value.
        ``"uniform"``: evenly spaced over ``[min(x), max(x)]``.
        Ignored when an explicit knot vector is given.

    Returns
    -------
    knots : np.ndarray
        Strictly increasing knot positions with ``knots[0] <= min(x)`` and
        ``knots[-1] >= max(x)``.

    Raises
    ------
    ValidationError
        If the request is malformed or explicit knots do not span the data.
    DegenerateKnotsError
        If two knots coincide, e.g. more quantile knots than distinct x values.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        raise ValidationError("Cannot choose knots without data")

    if np.ndim(knots) == 0:
        n_knots = int(knots)
        if n_knots != knots:
            raise ValidationError(f"Number of knots must be an integer, got {knots!r}")
        if n_knots < 2:
            raise ValidationError(f"At least 2 knots are required, got {n_knots}")
        if placement not in KNOT_PLACEMENTS:
            raise ValidationError(
                f"Unknown knot placement {placement!r}. Choose from {list(KNOT_PLACEMENTS)}"
            )
        if placement == "uniform":
            chosen = np.linspace(np.min(x), np.max(x), n_knots)
        else:
            chosen = np.quantile(x, np.linspace(0.0, 1.0, n_knots), method="nearest")
        return check_knots(chosen)

    chosen = np.sort(np.asarray(knots, dtype=np.float64).ravel())
    chosen = check_knots(chosen)
    if chosen[0] > np.min(x) or chosen[-1] < np.max(x):
        raise ValidationError(
            f"Knots [{chosen[0]:g}, {chosen[-1]:g}] must span the data "
            f"[{np.min(x):g}, {np.max(x):g}]"
        )
    return chosen


def _bin_sorted(points: np.ndarray, knots: np.ndarray) -> np.ndarray:
    """Bin ascending points with one search per interior knot."""
    n = points.size
    # First point at or beyond each interior knot; every such knot bumps the bin
    starts = np.searchsorted(points, knots[1:-1], side="left")
    bumps = np.bincount(starts, minlength=n + 1)[:n]
    return np.cumsum(bumps)


def bin_points(
    points: Any,
    knots: np.ndarray,
    assume_sorted: bool = True,
    strict: bool = True,
) -> np.ndarray:
    """
    Assign each point to its knot interval.

    ``indices[i] = j`` such that ``knots[j] <= points[i] < knots[j+1]``; the
    last interval is closed on the right so the final knot maps to bin
    ``len(knots) - 2``.

    Parameters
    ----------
    points : array-like
        Points to bin.
    knots : np.ndarray
        Strictly increasing knots.
    assume_sorted : bool
        If True, ``points`` must already be in ascending order. If False the
        points are sorted internally and the result is returned in input order.
    strict : bool
        If True, raise for points outside ``[knots[0], knots[-1]]`` (and NaN).
        If False, such points get index ``-1``.

    Returns
    -------
    indices : np.ndarray of int
        Bin index per point, in input order.

    Raises
    ------
    OutOfRangeError
        If ``strict`` and any point lies outside the knot span.
    """
    points = np.asarray(points, dtype=np.float64).ravel()
    knots = np.asarray(knots, dtype=np.float64)

    if assume_sorted:
        indices = _bin_sorted(points, knots)
    else:
        order = np.argsort(points, kind="stable")
        indices = np.empty(points.size, dtype=np.intp)
        indices[order] = _bin_sorted(points[order], knots)

    outside = ~((points >= knots[0]) & (points <= knots[-1]))
    if np.any(outside):
        if strict:
            n_out = int(np.count_nonzero(outside))
            raise OutOfRangeError(
                f"{n_out} point(s) lie outside the knot range "
                f"[{knots[0]:g}, {knots[-1]:g}]; extrapolation is not supported"
            )
        indices = np.where(outside, -1, indices)

    return indices.astype(np.intp)
