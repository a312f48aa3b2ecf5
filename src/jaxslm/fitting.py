"""
Spline Fitting for JAXSLM.

:func:`fit` turns scattered ``(x, y)`` data and a :class:`FitRequest` into a
:class:`~jaxslm.model.SplineModel`::

    (x, y) -> drop NaN -> scale y -> choose knots -> bin
           -> design + regularizer + constraint rows -> solve -> unscale
"""

from __future__ import annotations

import dataclasses
import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np

from .basis import design_matrix, regularizer_matrix
from .constraints import DEFAULT_MIN_MAX_SAMPLE_POINTS, ConstraintSystem, ShapeConstraints
from .exceptions import ValidationError
from .knots import KNOT_PLACEMENTS, bin_points, choose_knots
from .model import Extrapolation, SplineModel
from .solver import solve_constrained_lsq
from .utils import (
    YScaling,
    array_to_list,
    check_consistent_length,
    drop_nan_pairs,
    float_or_none,
    none_to_nan,
    validate_1d,
    validate_intervals,
)

_NAN = float("nan")
_INTERVAL_OPTIONS = (
    "increasing_intervals",
    "decreasing_intervals",
    "concave_up_intervals",
    "concave_down_intervals",
)
_SENTINEL_OPTIONS = ("left_value", "right_value", "min_value", "max_value")


# =============================================================================
# Fit Request
# =============================================================================


@dataclass
class FitRequest:
    """
    Options for a shape-constrained spline fit.

    Parameters
    ----------
    degree : int
        Spline degree. Only 3 (piecewise cubic Hermite) is implemented.
    knots : int or array-like
        Number of knots, or an explicit knot vector spanning the data.
    knot_placement : str
        ``"quantile"`` or ``"uniform"``; see :func:`jaxslm.knots.choose_knots`.
    C2 : bool
        Enforce continuity of the second derivative at interior knots.
    lam : float
        Weight of the roughness penalty (larger is smoother).
    scaling : bool
        Scale ``y`` onto ``[1, 2]`` during the solve.
    left_value, right_value : float
        Spline value at the first/last knot. NaN leaves it free.
    min_value, max_value : float
        Global lower/upper bound, enforced at the knots and at
        ``min_max_sample_points`` within each span. NaN means unbounded.
    min_max_sample_points : sequence of float
        Normalized positions in ``[0, 1]`` used for the bound rows.
    increasing, decreasing : bool
        Monotone over the whole knot range.
    increasing_intervals, decreasing_intervals : array-like of shape (n, 2)
        Intervals over which the spline is monotone.
    concave_up, concave_down : bool
        Curvature sign over the whole knot range.
    concave_up_intervals, concave_down_intervals : array-like of shape (n, 2)
        Intervals with a curvature sign.
    init : array-like of shape (n_knots, 2), optional
        Starting guess for the coefficients (used by the constrained solver).
    extrapolation : str
        Only ``"none"`` is implemented.
    calculate_stats : bool
        Accepted for compatibility; no statistics are computed.
    """

    degree: int = 3
    knots: Any = 6
    knot_placement: str = "quantile"
    C2: bool = True
    lam: float = 1e-4
    scaling: bool = True
    left_value: float = _NAN
    right_value: float = _NAN
    min_value: float = _NAN
    max_value: float = _NAN
    min_max_sample_points: tuple[float, ...] = DEFAULT_MIN_MAX_SAMPLE_POINTS
    increasing: bool = False
    decreasing: bool = False
    increasing_intervals: Any = None
    decreasing_intervals: Any = None
    concave_up: bool = False
    concave_down: bool = False
    concave_up_intervals: Any = None
    concave_down_intervals: Any = None
    init: Any = None
    extrapolation: str = "none"
    calculate_stats: bool = False

    def shape_constraints(self) -> ShapeConstraints:
        """
        Collect the monotonicity and curvature requests.

        Returns
        -------
        shapes : ShapeConstraints
            Unvalidated specifications, whole-domain requests first.
        """
        shapes = ShapeConstraints()
        if self.increasing:
            shapes.add_increasing()
        if self.decreasing:
            shapes.add_decreasing()
        for lo, hi in validate_intervals(self.increasing_intervals, "increasing_intervals"):
            shapes.add_increasing((lo, hi))
        for lo, hi in validate_intervals(self.decreasing_intervals, "decreasing_intervals"):
            shapes.add_decreasing((lo, hi))
        if self.concave_up:
            shapes.add_concave_up()
        if self.concave_down:
            shapes.add_concave_down()
        for lo, hi in validate_intervals(self.concave_up_intervals, "concave_up_intervals"):
            shapes.add_concave_up((lo, hi))
        for lo, hi in validate_intervals(self.concave_down_intervals, "concave_down_intervals"):
            shapes.add_concave_down((lo, hi))
        return shapes

    def validate(self) -> FitRequest:
        """
        Check the request before any matrix is assembled.

        Raises
        ------
        NotImplementedError
            For a degree other than 3 or an extrapolation other than ``none``.
        ValidationError
            For malformed options (negative ``lam``, bad interval matrices, ...).
        ConflictingConstraintError
            For mutually exclusive shape requests.
        """
        if self.degree != 3:
            raise NotImplementedError(f"degree {self.degree} has not been implemented")

        try:
            extrapolation = Extrapolation(self.extrapolation)
        except ValueError:
            raise ValidationError(
                f"Unknown extrapolation {self.extrapolation!r}. "
                f"Choose from {[e.value for e in Extrapolation]}"
            ) from None
        if extrapolation != Extrapolation.NONE:
            raise NotImplementedError(
                f"Extrapolation method {extrapolation.value!r} is not supported."
            )

        if not np.isfinite(self.lam) or self.lam < 0:
            raise ValidationError(f"lam must be a non-negative number, got {self.lam}")
        if self.knot_placement not in KNOT_PLACEMENTS:
            raise ValidationError(
                f"Unknown knot placement {self.knot_placement!r}. "
                f"Choose from {list(KNOT_PLACEMENTS)}"
            )
        for name in _SENTINEL_OPTIONS:
            if np.isinf(getattr(self, name)):
                raise ValidationError(f"{name} must be finite or NaN")

        self.shape_constraints().validate()

        if self.calculate_stats:
            warnings.warn(
                "calculate_stats is accepted but no statistics are computed", stacklevel=3
            )
        return self

    def replace(self, **options: Any) -> FitRequest:
        """Return a copy with some options changed."""
        unknown = set(options) - {f.name for f in dataclasses.fields(self) if f.init}
        if unknown:
            raise ValidationError(f"Unknown fit option(s): {sorted(unknown)}")
        return dataclasses.replace(self, **options)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary (NaN sentinels become None)."""
        data: dict[str, Any] = {
            "degree": self.degree,
            "knots": self.knots if np.ndim(self.knots) == 0 else array_to_list(self.knots),
            "knot_placement": self.knot_placement,
            "C2": self.C2,
            "lam": self.lam,
            "scaling": self.scaling,
            "min_max_sample_points": list(self.min_max_sample_points),
            "increasing": self.increasing,
            "decreasing": self.decreasing,
            "concave_up": self.concave_up,
            "concave_down": self.concave_down,
            "init": array_to_list(self.init),
            "extrapolation": self.extrapolation,
            "calculate_stats": self.calculate_stats,
        }
        for name in _SENTINEL_OPTIONS:
            data[name] = float_or_none(getattr(self, name))
        for name in _INTERVAL_OPTIONS:
            data[name] = array_to_list(validate_intervals(getattr(self, name), name))
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FitRequest:
        """
        Deserialize from dictionary.

        Raises
        ------
        ValidationError
            If the dictionary contains unknown keys.
        """
        data = dict(data)
        for name in _SENTINEL_OPTIONS:
            if name in data:
                data[name] = none_to_nan(data[name])
        if "min_max_sample_points" in data:
            data["min_max_sample_points"] = tuple(data["min_max_sample_points"])
        return cls().replace(**data)


# =============================================================================
# Fitting
# =============================================================================


def build_constraint_system(
    request: FitRequest,
    knots: np.ndarray,
    scaling: YScaling | None = None,
) -> ConstraintSystem:
    """
    Accumulate every constraint row a request asks for.

    Parameters
    ----------
    request : FitRequest
        Validated request.
    knots : np.ndarray
        Knot vector of the fit.
    scaling : YScaling, optional
        Scaling applied to ``y``; bound and endpoint values are mapped with it.

    Returns
    -------
    system : ConstraintSystem
        Unfinalized constraint rows.
    """
    scaling = scaling or YScaling()
    system = ConstraintSystem(knots)

    if request.C2:
        system.add_c2_continuity()

    if not np.isnan(request.left_value):
        system.add_endpoint_value("left", scaling.forward_value(request.left_value))
    if not np.isnan(request.right_value):
        system.add_endpoint_value("right", scaling.forward_value(request.right_value))

    if not np.isnan(request.min_value):
        system.add_min_value(
            scaling.forward_value(request.min_value), request.min_max_sample_points
        )
    if not np.isnan(request.max_value):
        system.add_max_value(
            scaling.forward_value(request.max_value), request.min_max_sample_points
        )

    for constraint in request.shape_constraints():
        system.add_shape_constraint(constraint)

    return system


def _initial_guess(init: Any, n_knots: int, scaling: YScaling) -> np.ndarray | None:
    if init is None:
        return None
    init = np.asarray(init, dtype=np.float64)
    if init.shape != (n_knots, 2):
        raise ValidationError(
            f"init must have shape ({n_knots}, 2) to match the knots, got {init.shape}"
        )
    scaled = scaling.forward_coefficients(init)
    return np.concatenate([scaled[:, 0], scaled[:, 1]])


def fit(
    x: Any,
    y: Any,
    request: FitRequest | None = None,
    weights: Any = None,
    **options: Any,
) -> SplineModel:
    """
    Fit a shape-constrained least-squares cubic spline.

    Parameters
    ----------
    x, y : array-like
        Data to fit, same length. Pairs with NaN in either coordinate are
        dropped.
    request : FitRequest, optional
        Fit options. Keyword ``options`` override its fields (or build a new
        request when it is omitted).
    weights : array-like, optional
        Not supported; must be None.
    **options
        Any :class:`FitRequest` field.

    Returns
    -------
    model : SplineModel
        Fitted spline in the units of ``y``.

    Raises
    ------
    NotImplementedError
        If weights are given, or for unsupported degree/extrapolation.
    ValidationError
        For malformed inputs.
    ConflictingConstraintError
        For mutually exclusive shape requests.
    DegenerateKnotsError
        If two knots coincide.
    InfeasibleConstraintsError
        If no spline satisfies the constraints.

    Examples
    --------
    >>> x = np.linspace(0, 1, 11)
    >>> model = fit(x, x**3, knots=6, lam=1e-6)
    >>> model([0.5])
    """
    if weights is not None:
        raise NotImplementedError("Weights are not implemented currently.")

    request = request.replace(**options) if request is not None else FitRequest().replace(**options)
    request.validate()

    x = validate_1d(x, name="x")
    y = validate_1d(y, name="y")
    check_consistent_length(x, y)
    x, y = drop_nan_pairs(x, y)
    if x.size == 0:
        raise ValidationError("No data points remain after removing NaN values")

    scaling = YScaling.from_data(y, enabled=request.scaling)
    y_hat = scaling.forward_values(y)

    knots = choose_knots(request.knots, x, request.knot_placement)
    nk = knots.size

    bins = bin_points(x, knots, assume_sorted=False)
    Mdes = design_matrix(x, knots, bins)
    Mreg = regularizer_matrix(knots)

    system = build_constraint_system(request, knots, scaling)
    A_eq, b_eq, A_ineq, b_ineq = system.finalize()

    coef = solve_constrained_lsq(
        Mdes,
        y_hat,
        Mreg,
        request.lam,
        A_eq,
        b_eq,
        A_ineq,
        b_ineq,
        init=_initial_guess(request.init, nk, scaling),
    )
    coef = scaling.inverse_coefficients(np.column_stack([coef[:nk], coef[nk:]]))

    return SplineModel(
        knots=knots,
        coefficients=coef,
        x=x,
        y=y,
        y_scale=scaling.scale,
        y_shift=scaling.shift,
    )
