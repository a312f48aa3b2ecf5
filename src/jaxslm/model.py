"""
Fitted Spline Model for JAXSLM.

:class:`SplineModel` is an immutable record of a fitted piecewise-cubic
Hermite spline: its knots, the value and slope at every knot, and the
metadata of the fit that produced it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from .exceptions import ValidationError
from .knots import check_knots
from .utils import array_to_list


class SplineType(Enum):
    """Piecewise polynomial families. Only cubic Hermite splines exist."""
    CUBIC = "cubic"


class Extrapolation(Enum):
    """Behavior outside the knot range. Only ``NONE`` can be evaluated."""
    NONE = "none"
    CONSTANT = "constant"
    LINEAR = "linear"
    CUBIC = "cubic"


def _frozen_array(values: Any, dtype=np.float64) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class SplineModel:
    """
    A fitted cubic Hermite spline.

    Parameters
    ----------
    knots : array-like
        Strictly increasing knot positions, length ``nk >= 2``.
    coefficients : array-like
        Array of shape ``(nk, 2)``: column 0 holds the spline value at each
        knot, column 1 the slope.
    type : SplineType or str
        Spline family; only ``"cubic"``.
    extrapolation : Extrapolation or str
        Behavior outside ``[knots[0], knots[-1]]``.
    x, y : array-like, optional
        The data the spline was fitted to, in original units.
    y_scale, y_shift : float
        Scaling ``y * y_scale + y_shift`` used during the fit.

    Raises
    ------
    ValidationError
        If the coefficient shape does not match the knots.
    DegenerateKnotsError
        If two knots coincide.

    Examples
    --------
    >>> model = SplineModel(knots=[0.0, 1.0], coefficients=[[0.0, 1.0], [1.0, 1.0]])
    >>> model([0.25, 0.5])
    array([0.25, 0.5 ])
    """

    knots: np.ndarray
    coefficients: np.ndarray
    type: SplineType = SplineType.CUBIC
    extrapolation: Extrapolation = Extrapolation.NONE
    x: np.ndarray | None = None
    y: np.ndarray | None = None
    y_scale: float = 1.0
    y_shift: float = 0.0

    def __post_init__(self):
        knots = check_knots(np.asarray(self.knots, dtype=np.float64).ravel())
        coef = np.asarray(self.coefficients, dtype=np.float64)
        if coef.shape != (knots.size, 2):
            raise ValidationError(
                f"coefficients must have shape ({knots.size}, 2) for {knots.size} knots, "
                f"got {coef.shape}"
            )

        object.__setattr__(self, "knots", _frozen_array(knots))
        object.__setattr__(self, "coefficients", _frozen_array(coef))
        object.__setattr__(self, "type", SplineType(self.type))
        object.__setattr__(self, "extrapolation", Extrapolation(self.extrapolation))
        if self.x is not None:
            object.__setattr__(self, "x", _frozen_array(np.ravel(self.x)))
        if self.y is not None:
            object.__setattr__(self, "y", _frozen_array(np.ravel(self.y)))
        object.__setattr__(self, "y_scale", float(self.y_scale))
        object.__setattr__(self, "y_shift", float(self.y_shift))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def degree(self) -> int:
        return 3

    @property
    def n_knots(self) -> int:
        return int(self.knots.size)

    @property
    def values(self) -> np.ndarray:
        """Spline value at each knot."""
        return self.coefficients[:, 0]

    @property
    def slopes(self) -> np.ndarray:
        """Spline first derivative at each knot."""
        return self.coefficients[:, 1]

    @property
    def domain(self) -> tuple[float, float]:
        """Closed interval on which the spline can be evaluated."""
        return float(self.knots[0]), float(self.knots[-1])

    @property
    def coef_vector(self) -> np.ndarray:
        """Flat coefficient vector ``[values..., slopes...]`` used by the solver."""
        return np.concatenate([self.values, self.slopes])

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        points: Any,
        mode: int = 0,
        assume_sorted: bool = True,
        strict: bool = False,
    ) -> np.ndarray:
        """Evaluate the spline or a derivative; see :func:`jaxslm.evaluate.evaluate`."""
        from .evaluate import evaluate

        return evaluate(self, points, mode=mode, assume_sorted=assume_sorted, strict=strict)

    def __call__(self, points: Any, mode: int = 0) -> np.ndarray:
        return self.evaluate(points, mode=mode, assume_sorted=False)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "type": self.type.value,
            "degree": self.degree,
            "knots": array_to_list(self.knots),
            "coefficients": array_to_list(self.coefficients),
            "extrapolation": self.extrapolation.value,
            "x": array_to_list(self.x),
            "y": array_to_list(self.y),
            "y_scale": self.y_scale,
            "y_shift": self.y_shift,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SplineModel:
        """Deserialize from dictionary."""
        return cls(
            knots=data["knots"],
            coefficients=data["coefficients"],
            type=data.get("type", "cubic"),
            extrapolation=data.get("extrapolation", "none"),
            x=data.get("x"),
            y=data.get("y"),
            y_scale=data.get("y_scale", 1.0),
            y_shift=data.get("y_shift", 0.0),
        )

    def save(self, filepath: str) -> None:
        """
        Save model to JSON file.

        Parameters
        ----------
        filepath : str
            Path to save the model.
        """
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> SplineModel:
        """
        Load model from JSON file.

        Parameters
        ----------
        filepath : str
            Path to the model file.

        Returns
        -------
        model : SplineModel
        """
        with open(filepath) as f:
            data = json.load(f)
        return cls.from_dict(data)

    def summary(self) -> str:
        """
        Return a human-readable summary of the spline.

        Returns
        -------
        summary : str
        """
        lines = [
            "=" * 60,
            "JAXSLM Shape-Constrained Spline",
            "=" * 60,
            "",
            f"Type:          {self.type.value} (degree {self.degree})",
            f"Knots:         {self.n_knots}",
            f"Domain:        [{self.knots[0]:.6g}, {self.knots[-1]:.6g}]",
            f"Extrapolation: {self.extrapolation.value}",
        ]
        if self.x is not None:
            lines.append(f"Data points:   {self.x.size}")
        lines.extend([
            f"Scale factor applied to y: {self.y_scale:.6g}",
            f"Shift applied to y:        {self.y_shift:.6g}",
            "",
            f"{'knot':>14} {'value':>14} {'slope':>14}",
        ])
        for k, (v, d) in zip(self.knots, self.coefficients):
            lines.append(f"{k:>14.6g} {v:>14.6g} {d:>14.6g}")
        lines.append("=" * 60)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SplineModel(type='{self.type.value}', n_knots={self.n_knots}, "
            f"domain=[{self.knots[0]:g}, {self.knots[-1]:g}])"
        )
