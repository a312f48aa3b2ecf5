"""
Scikit-learn Style Spline Estimator for JAXSLM.

Wraps :func:`jaxslm.fitting.fit` in an estimator with ``fit`` / ``predict``
so shape-constrained splines can be cloned, grid-searched and saved like any
other regressor.
"""

from __future__ import annotations

import json
from typing import Any

import numpy as np

from ._compat import _SklearnCompatMixin
from .fitting import FitRequest, fit
from .model import SplineModel
from .utils import validate_1d

_NAN = float("nan")


class SplineRegressor(_SklearnCompatMixin):
    """
    Shape-constrained least-squares cubic spline regressor.

    Every parameter is a :class:`~jaxslm.fitting.FitRequest` field with the
    same meaning and default.

    Parameters
    ----------
    knots : int or array-like
        Number of knots, or an explicit knot vector.
    knot_placement : str
        ``"quantile"`` or ``"uniform"``.
    lam : float
        Roughness penalty weight.
    C2 : bool
        Continuous second derivative at interior knots.
    scaling : bool
        Scale y onto ``[1, 2]`` while solving.
    left_value, right_value, min_value, max_value : float
        Endpoint values and global bounds. NaN leaves them free.
    increasing, decreasing, concave_up, concave_down : bool
        Whole-domain shape requests.
    increasing_intervals, decreasing_intervals : array-like, optional
        Intervals of monotonicity, shape (n, 2).
    concave_up_intervals, concave_down_intervals : array-like, optional
        Intervals of curvature sign, shape (n, 2).
    init : array-like of shape (n_knots, 2), optional
        Starting coefficients for the constrained solver.

    Examples
    --------
    >>> reg = SplineRegressor(knots=8, increasing=True)
    >>> reg.fit(x, y)
    >>> reg.predict([0.25, 0.5])
    """

    def __init__(
        self,
        knots: Any = 6,
        knot_placement: str = "quantile",
        lam: float = 1e-4,
        C2: bool = True,
        scaling: bool = True,
        left_value: float = _NAN,
        right_value: float = _NAN,
        min_value: float = _NAN,
        max_value: float = _NAN,
        increasing: bool = False,
        decreasing: bool = False,
        increasing_intervals: Any = None,
        decreasing_intervals: Any = None,
        concave_up: bool = False,
        concave_down: bool = False,
        concave_up_intervals: Any = None,
        concave_down_intervals: Any = None,
        init: Any = None,
    ):
        self.knots = knots
        self.knot_placement = knot_placement
        self.lam = lam
        self.C2 = C2
        self.scaling = scaling
        self.left_value = left_value
        self.right_value = right_value
        self.min_value = min_value
        self.max_value = max_value
        self.increasing = increasing
        self.decreasing = decreasing
        self.increasing_intervals = increasing_intervals
        self.decreasing_intervals = decreasing_intervals
        self.concave_up = concave_up
        self.concave_down = concave_down
        self.concave_up_intervals = concave_up_intervals
        self.concave_down_intervals = concave_down_intervals
        self.init = init

        self._model: SplineModel | None = None
        self._is_fitted = False

    # -------------------------------------------------------------------------
    # Fitted attributes
    # -------------------------------------------------------------------------

    @property
    def model_(self) -> SplineModel:
        """The fitted :class:`SplineModel`."""
        self._check_is_fitted()
        return self._model

    @property
    def knots_(self) -> np.ndarray:
        """Knot vector of the fitted spline."""
        return self.model_.knots

    @property
    def coefficients_(self) -> np.ndarray:
        """Value and slope at each knot, shape (n_knots, 2)."""
        return self.model_.coefficients

    def _check_is_fitted(self):
        if not self._is_fitted:
            raise RuntimeError("Model not fitted. Call fit() first.")

    def to_request(self) -> FitRequest:
        """Build the :class:`FitRequest` described by the current parameters."""
        return FitRequest(**self.get_params(deep=False))

    # -------------------------------------------------------------------------
    # Fit / predict
    # -------------------------------------------------------------------------

    def fit(self, X: Any, y: Any, sample_weight: Any = None) -> SplineRegressor:
        """
        Fit the spline.

        Parameters
        ----------
        X : array-like of shape (n_samples,) or (n_samples, 1)
            Training inputs.
        y : array-like of shape (n_samples,)
            Target values.
        sample_weight : array-like of shape (n_samples,), optional
            Sample weights (not yet implemented).

        Returns
        -------
        self : SplineRegressor
            Fitted estimator.
        """
        self._model = fit(
            validate_1d(X, name="X"),
            y,
            request=self.to_request(),
            weights=sample_weight,
        )
        self._is_fitted = True
        return self

    def predict(self, X: Any) -> np.ndarray:
        """
        Evaluate the fitted spline.

        Points outside the knot range give NaN.

        Parameters
        ----------
        X : array-like of shape (n_samples,) or (n_samples, 1)

        Returns
        -------
        y_pred : np.ndarray of shape (n_samples,)
        """
        return self.predict_derivative(X, order=0)

    def predict_derivative(self, X: Any, order: int = 1) -> np.ndarray:
        """
        Evaluate a derivative of the fitted spline.

        Parameters
        ----------
        X : array-like of shape (n_samples,) or (n_samples, 1)
        order : int
            Derivative order, 0 to 3.

        Returns
        -------
        values : np.ndarray of shape (n_samples,)
        """
        self._check_is_fitted()
        return self._model.evaluate(validate_1d(X, name="X"), mode=order, assume_sorted=False)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _state_dict(self) -> dict:
        """
        Return a JSON-serialisable dictionary of the fitted estimator.

        Returns
        -------
        data : dict
            The fit request as ``config`` and the spline as ``model``.
        """
        self._check_is_fitted()
        config = self.to_request().to_dict()
        for key in ("degree", "extrapolation", "calculate_stats", "min_max_sample_points"):
            config.pop(key)
        return {"config": config, "model": self._model.to_dict()}

    @classmethod
    def _from_dict(cls, data: dict) -> SplineRegressor:
        request = FitRequest.from_dict(data["config"])
        params = {name: getattr(request, name) for name in cls._param_names()}
        estimator = cls(**params)
        estimator._model = SplineModel.from_dict(data["model"])
        estimator._is_fitted = True
        return estimator

    def save(self, filepath: str) -> None:
        """
        Save the fitted estimator to a JSON file.

        Parameters
        ----------
        filepath : str
            Path to save the estimator.
        """
        with open(filepath, "w") as f:
            json.dump(self._state_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> SplineRegressor:
        """
        Load a fitted estimator from a JSON file.

        Parameters
        ----------
        filepath : str
            Path written by :meth:`save`.

        Returns
        -------
        estimator : SplineRegressor
        """
        with open(filepath) as f:
            data = json.load(f)
        return cls._from_dict(data)

    def summary(self) -> str:
        """
        Return a summary of the fitted spline and the shape requests.

        Returns
        -------
        summary : str
        """
        self._check_is_fitted()
        shapes = [str(c) for c in self.to_request().shape_constraints()]
        lines = self._model.summary().splitlines()[:-1]
        lines.extend([
            "",
            f"Regularization (lam): {self.lam:g}",
            f"C2 continuity:        {self.C2}",
            f"Shape constraints:    {', '.join(shapes) if shapes else 'none'}",
            "=" * 60,
        ])
        return "\n".join(lines)


def fit_slm(x: Any, y: Any, **options: Any) -> SplineRegressor:
    """
    Convenience function for a quick shape-constrained spline fit.

    Parameters
    ----------
    x, y : array-like
        Data to fit.
    **options
        :class:`SplineRegressor` parameters.

    Returns
    -------
    model : SplineRegressor
        Fitted estimator.

    Examples
    --------
    >>> reg = fit_slm(x, y, knots=10, increasing=True, concave_down=True)
    >>> print(reg.summary())
    """
    return SplineRegressor(**options).fit(x, y)
