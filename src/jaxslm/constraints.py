"""
Shape Constraints for JAXSLM.

Translates shape requirements into linear equality and inequality rows on
the Hermite coefficient vector:

- C2 continuity across interior knots
- Endpoint values
- Global lower/upper bounds (sampled)
- Monotonicity over the whole domain or over intervals
- Curvature (concave up/down) over the whole domain or over intervals
"""

from __future__ import annotations

import warnings
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from .basis import basis_rows
from .exceptions import ConflictingConstraintError, ValidationError
from .utils import normalize_rows

# Chebyshev-Lobatto interior nodes (1 - cos(k*pi/12)) / 2, k = 1..11
DEFAULT_MIN_MAX_SAMPLE_POINTS = (
    0.017037,
    0.066987,
    0.14645,
    0.25,
    0.37059,
    0.5,
    0.62941,
    0.75,
    0.85355,
    0.93301,
    0.98296,
)


# =============================================================================
# Constraint Types
# =============================================================================


class ConstraintType(Enum):
    """Shape requirements that can be imposed on a spline."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    CONCAVE_UP = "concave_up"
    CONCAVE_DOWN = "concave_down"

    @property
    def is_monotone(self) -> bool:
        return self in (ConstraintType.INCREASING, ConstraintType.DECREASING)


@dataclass(frozen=True)
class ShapeConstraint:
    """
    A single shape requirement.

    Parameters
    ----------
    constraint_type : ConstraintType
        Kind of requirement.
    interval : tuple of float, optional
        ``(lo, hi)`` sub-interval the requirement applies to. None means the
        whole knot range.
    """
    constraint_type: ConstraintType
    interval: tuple[float, float] | None = None

    @property
    def whole_domain(self) -> bool:
        return self.interval is None

    def __str__(self) -> str:
        if self.interval is None:
            return self.constraint_type.value
        lo, hi = self.interval
        return f"{self.constraint_type.value} on [{lo:g}, {hi:g}]"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "constraint_type": self.constraint_type.value,
            "interval": None if self.interval is None else list(self.interval),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShapeConstraint:
        """Deserialize from dictionary."""
        interval = data.get("interval")
        return cls(
            constraint_type=ConstraintType(data["constraint_type"]),
            interval=None if interval is None else (float(interval[0]), float(interval[1])),
        )


# =============================================================================
# Shape Constraint Builder
# =============================================================================


class ShapeConstraints:
    """
    Builder for shape constraint specifications.

    Supports method chaining for convenient construction.

    Examples
    --------
    >>> shapes = (ShapeConstraints()
    ...     .add_increasing()
    ...     .add_concave_down(interval=(0.0, 0.5))
    ... )
    """

    def __init__(self):
        self.constraints: list[ShapeConstraint] = []

    def _add(self, constraint_type: ConstraintType, interval) -> ShapeConstraints:
        if interval is not None:
            lo, hi = sorted(float(v) for v in interval)
            interval = (lo, hi)
        self.constraints.append(ShapeConstraint(constraint_type, interval))
        return self

    def add_increasing(self, interval: tuple[float, float] | None = None) -> ShapeConstraints:
        """Require a non-decreasing spline over ``interval`` (or everywhere)."""
        return self._add(ConstraintType.INCREASING, interval)

    def add_decreasing(self, interval: tuple[float, float] | None = None) -> ShapeConstraints:
        """Require a non-increasing spline over ``interval`` (or everywhere)."""
        return self._add(ConstraintType.DECREASING, interval)

    def add_concave_up(self, interval: tuple[float, float] | None = None) -> ShapeConstraints:
        """Require a non-negative second derivative (convex in the usual sense)."""
        return self._add(ConstraintType.CONCAVE_UP, interval)

    def add_concave_down(self, interval: tuple[float, float] | None = None) -> ShapeConstraints:
        """Require a non-positive second derivative."""
        return self._add(ConstraintType.CONCAVE_DOWN, interval)

    def validate(self) -> ShapeConstraints:
        """
        Check that no mutually exclusive requirements were combined.

        Raises
        ------
        ConflictingConstraintError
            If both whole-domain directions of a kind are requested, or a
            whole-domain requirement is combined with interval requirements
            of the same kind (monotonicity or curvature).
        """
        for monotone, kind, names in (
            (True, "monotonicity", ("increasing", "decreasing")),
            (False, "curvature", ("concave_up", "concave_down")),
        ):
            group = [c for c in self.constraints if c.constraint_type.is_monotone == monotone]
            whole = {c.constraint_type for c in group if c.whole_domain}
            if len(whole) > 1:
                raise ConflictingConstraintError(
                    f"Only one of {names[0]} and {names[1]} can be true"
                )
            if whole and any(not c.whole_domain for c in group):
                (ctype,) = whole
                raise ConflictingConstraintError(
                    f"The spline cannot be {ctype.value} over the whole domain and also have "
                    f"{kind} intervals ({names[0]}_intervals / {names[1]}_intervals)"
                )
        return self

    def __len__(self) -> int:
        return len(self.constraints)

    def __iter__(self) -> Iterator[ShapeConstraint]:
        return iter(self.constraints)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"constraints": [c.to_dict() for c in self.constraints]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShapeConstraints:
        """Deserialize from dictionary."""
        obj = cls()
        obj.constraints = [ShapeConstraint.from_dict(c) for c in data["constraints"]]
        return obj


# =============================================================================
# Constraint System
# =============================================================================


def _overlapping_spans(knots: np.ndarray, interval: tuple[float, float] | None) -> np.ndarray:
    """Indices of knot spans with a positive-length overlap with ``interval``."""
    n_spans = knots.size - 1
    if interval is None:
        return np.arange(n_spans)
    lo, hi = interval
    spans = np.flatnonzero((knots[:-1] < hi) & (knots[1:] > lo))
    if spans.size == 0:
        warnings.warn(
            f"Interval [{lo:g}, {hi:g}] does not overlap the knot range "
            f"[{knots[0]:g}, {knots[-1]:g}]; no constraint added",
            stacklevel=3,
        )
    return spans


class ConstraintSystem:
    """
    Row accumulator for the linear constraints of a spline fit.

    Builders append rows to the equality block (``A_eq @ coef = b_eq``) or
    the inequality block (``A_ineq @ coef <= b_ineq``). :meth:`finalize`
    stacks each block once and rescales every row by its L1 norm.

    Parameters
    ----------
    knots : np.ndarray
        Knot vector of the spline being fitted.
    """

    def __init__(self, knots: np.ndarray):
        self.knots = np.asarray(knots, dtype=np.float64)
        self.n_knots = self.knots.size
        self.n_coef = 2 * self.n_knots
        self._eq_rows: list[np.ndarray] = []
        self._eq_rhs: list[np.ndarray] = []
        self._ineq_rows: list[np.ndarray] = []
        self._ineq_rhs: list[np.ndarray] = []

    # -------------------------------------------------------------------------
    # Accumulation
    # -------------------------------------------------------------------------

    def add_equality(self, rows: np.ndarray, rhs: Any) -> ConstraintSystem:
        """Append rows ``rows @ coef = rhs``."""
        rows = np.atleast_2d(np.asarray(rows, dtype=np.float64))
        self._eq_rows.append(rows)
        self._eq_rhs.append(np.broadcast_to(np.asarray(rhs, dtype=np.float64), rows.shape[:1]))
        return self

    def add_inequality(self, rows: np.ndarray, rhs: Any) -> ConstraintSystem:
        """Append rows ``rows @ coef <= rhs``."""
        rows = np.atleast_2d(np.asarray(rows, dtype=np.float64))
        self._ineq_rows.append(rows)
        self._ineq_rhs.append(np.broadcast_to(np.asarray(rhs, dtype=np.float64), rows.shape[:1]))
        return self

    @property
    def n_equality(self) -> int:
        return sum(r.shape[0] for r in self._eq_rows)

    @property
    def n_inequality(self) -> int:
        return sum(r.shape[0] for r in self._ineq_rows)

    def __len__(self) -> int:
        return self.n_equality + self.n_inequality

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def _unit_rows(self, columns: Any) -> np.ndarray:
        columns = np.atleast_1d(np.asarray(columns, dtype=np.intp))
        rows = np.zeros((columns.size, self.n_coef))
        rows[np.arange(columns.size), columns] = 1.0
        return rows

    def add_c2_continuity(self) -> ConstraintSystem:
        """Match the second derivative from both sides of every interior knot."""
        interior = np.arange(1, self.n_knots - 1)
        if interior.size == 0:
            return self
        left = basis_rows(self.knots, interior - 1, np.ones(interior.size), order=2)
        right = basis_rows(self.knots, interior, np.zeros(interior.size), order=2)
        return self.add_equality(left - right, 0.0)

    def add_endpoint_value(self, side: str, value: float) -> ConstraintSystem:
        """
        Pin the spline value at the first (``"left"``) or last (``"right"``) knot.
        """
        if side not in ("left", "right"):
            raise ValidationError(f"side must be 'left' or 'right', got {side!r}")
        column = 0 if side == "left" else self.n_knots - 1
        return self.add_equality(self._unit_rows(column), value)

    def _value_rows(self, sample_points: Any) -> np.ndarray:
        """Value functionals at every knot and at sample points in every span."""
        sample_points = np.asarray(sample_points, dtype=np.float64).ravel()
        if np.any((sample_points < 0) | (sample_points > 1)):
            raise ValidationError("min_max_sample_points must lie in [0, 1]")
        n_spans = self.n_knots - 1
        spans = np.repeat(np.arange(n_spans), sample_points.size)
        t = np.tile(sample_points, n_spans)
        return np.vstack([
            self._unit_rows(np.arange(self.n_knots)),
            basis_rows(self.knots, spans, t, order=0),
        ])

    def add_min_value(
        self,
        value: float,
        sample_points: Any = DEFAULT_MIN_MAX_SAMPLE_POINTS,
    ) -> ConstraintSystem:
        """
        Bound the spline from below at the knots and at sampled points.

        The bound is only enforced at the knots and at ``sample_points``
        (normalized coordinates within each span); between samples the spline
        may dip slightly below ``value``.
        """
        return self.add_inequality(-self._value_rows(sample_points), -float(value))

    def add_max_value(
        self,
        value: float,
        sample_points: Any = DEFAULT_MIN_MAX_SAMPLE_POINTS,
    ) -> ConstraintSystem:
        """Bound the spline from above at the knots and at sampled points."""
        return self.add_inequality(self._value_rows(sample_points), float(value))

    def add_monotonicity(
        self,
        direction: str = "increasing",
        interval: tuple[float, float] | None = None,
    ) -> ConstraintSystem:
        """
        Sufficient conditions for a monotone cubic on each affected span.

        For an increasing span with secant ``delta = (v1 - v0) / h`` the rows
        require ``d0 >= 0``, ``d1 >= 0``, ``delta >= 0``, ``d0 <= 3 delta`` and
        ``d1 <= 3 delta`` (the Fritsch-Carlson box). Every span that overlaps
        ``interval`` is constrained over its full width.
        """
        if direction not in ("increasing", "decreasing"):
            raise ValidationError(
                f"direction must be 'increasing' or 'decreasing', got {direction!r}"
            )
        spans = _overlapping_spans(self.knots, interval)
        if spans.size == 0:
            return self

        nk = self.n_knots
        h = np.diff(self.knots)[spans]
        rows = np.zeros((5 * spans.size, self.n_coef))
        for k, (j, hj) in enumerate(zip(spans, h)):
            r = 5 * k
            rows[r, nk + j] = -1.0
            rows[r + 1, nk + j + 1] = -1.0
            rows[r + 2, [j, j + 1]] = [1.0, -1.0]
            rows[r + 3, [j, j + 1, nk + j]] = [3.0, -3.0, hj]
            rows[r + 4, [j, j + 1, nk + j + 1]] = [3.0, -3.0, hj]

        sign = 1.0 if direction == "increasing" else -1.0
        return self.add_inequality(sign * rows, 0.0)

    def add_curvature(
        self,
        direction: str = "up",
        interval: tuple[float, float] | None = None,
    ) -> ConstraintSystem:
        """
        Sign conditions on the second derivative.

        ``f''`` is linear on each span, so constraining it at both ends of a
        span's overlap with ``interval`` covers the whole overlap exactly.
        """
        if direction not in ("up", "down"):
            raise ValidationError(f"direction must be 'up' or 'down', got {direction!r}")
        spans = _overlapping_spans(self.knots, interval)
        if spans.size == 0:
            return self

        left = self.knots[spans]
        right = self.knots[spans + 1]
        if interval is not None:
            left = np.maximum(left, interval[0])
            right = np.minimum(right, interval[1])
        h = np.diff(self.knots)[spans]
        t_lo = (left - self.knots[spans]) / h
        t_hi = np.minimum((right - self.knots[spans]) / h, 1.0)

        rows = basis_rows(
            self.knots,
            np.concatenate([spans, spans]),
            np.concatenate([t_lo, t_hi]),
            order=2,
        )
        # concave up: -f'' <= 0
        sign = -1.0 if direction == "up" else 1.0
        return self.add_inequality(sign * rows, 0.0)

    def add_shape_constraint(self, constraint: ShapeConstraint) -> ConstraintSystem:
        """Dispatch a :class:`ShapeConstraint` to the matching builder."""
        ctype = constraint.constraint_type
        if ctype == ConstraintType.INCREASING:
            return self.add_monotonicity("increasing", constraint.interval)
        elif ctype == ConstraintType.DECREASING:
            return self.add_monotonicity("decreasing", constraint.interval)
        elif ctype == ConstraintType.CONCAVE_UP:
            return self.add_curvature("up", constraint.interval)
        elif ctype == ConstraintType.CONCAVE_DOWN:
            return self.add_curvature("down", constraint.interval)
        raise ValidationError(f"Unknown constraint type: {ctype}")

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    def _stack(self, rows: list[np.ndarray], rhs: list[np.ndarray]):
        if not rows:
            return np.zeros((0, self.n_coef)), np.zeros(0)
        return normalize_rows(np.vstack(rows), np.concatenate(rhs))

    def finalize(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Stack and row-normalize both blocks.

        Returns
        -------
        A_eq, b_eq, A_ineq, b_ineq : np.ndarray
            Every row (with its right-hand side) divided by its L1 norm.
        """
        A_eq, b_eq = self._stack(self._eq_rows, self._eq_rhs)
        A_ineq, b_ineq = self._stack(self._ineq_rows, self._ineq_rhs)
        return A_eq, b_eq, A_ineq, b_ineq
