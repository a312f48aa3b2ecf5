"""
Numerical Utilities for JAXSLM.

Provides the y-scaling transform pair, constraint row normalization,
least-squares helpers, and input validation used throughout the library.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from .exceptions import ValidationError

# =============================================================================
# Scaling
# =============================================================================


@dataclass(frozen=True)
class YScaling:
    """
    Affine transform ``y_scaled = y * scale + shift`` applied before a fit.

    Values transform affinely; slopes (and any derivative) only pick up the
    multiplicative ``scale``. The inverse is applied to the fitted
    coefficients so the returned model is always in the caller's units.

    Parameters
    ----------
    scale : float
        Multiplicative factor.
    shift : float
        Additive offset applied after scaling.
    """

    scale: float = 1.0
    shift: float = 0.0

    @classmethod
    def from_data(cls, y: np.ndarray, enabled: bool = True) -> YScaling:
        """
        Build the scaling that maps the data range of ``y`` onto ``[1, 2]``.

        Parameters
        ----------
        y : np.ndarray
            Target values (NaN already removed).
        enabled : bool
            If False, return the identity transform.

        Returns
        -------
        scaling : YScaling
        """
        if not enabled or y.size == 0:
            return cls()
        y_min = float(np.min(y))
        y_range = float(np.max(y)) - y_min
        scale = 1.0 / y_range if y_range > 1e-12 * max(1.0, abs(y_min)) else 1.0
        return cls(scale=scale, shift=1.0 - y_min * scale)

    def forward_values(self, values: Any) -> Any:
        """Scale function values (NaN sentinels stay NaN)."""
        return np.asarray(values, dtype=np.float64) * self.scale + self.shift

    def forward_value(self, value: float) -> float:
        """Scale a single bound or endpoint value."""
        return float(value) * self.scale + self.shift

    def forward_coefficients(self, coefficients: np.ndarray) -> np.ndarray:
        """Scale an ``(n_knots, 2)`` value/slope array."""
        coef = np.array(coefficients, dtype=np.float64)
        coef[:, 0] = coef[:, 0] * self.scale + self.shift
        coef[:, 1] = coef[:, 1] * self.scale
        return coef

    def inverse_coefficients(self, coefficients: np.ndarray) -> np.ndarray:
        """Undo :meth:`forward_coefficients`."""
        coef = np.array(coefficients, dtype=np.float64)
        coef[:, 0] -= self.shift
        coef /= self.scale
        return coef


# =============================================================================
# Matrix Operations
# =============================================================================


def normalize_rows(
    M: np.ndarray,
    rhs: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Divide each row of ``M`` (and its right-hand side) by the row's L1 norm.

    Parameters
    ----------
    M : np.ndarray
        Constraint matrix of shape (n_rows, n_coef).
    rhs : np.ndarray
        Right-hand side of shape (n_rows,).

    Returns
    -------
    M_scaled : np.ndarray
    rhs_scaled : np.ndarray
    """
    if M.shape[0] == 0:
        return M, rhs
    row_sums = np.sum(np.abs(M), axis=1)
    # All-zero rows carry no information; leave them unscaled
    row_sums = np.where(row_sums > 0, row_sums, 1.0)
    return M / row_sums[:, None], rhs / row_sums


def particular_solution(
    A: np.ndarray,
    b: np.ndarray,
    rtol: float = 1e-9,
) -> Tuple[np.ndarray, float]:
    """
    Minimum-norm solution of ``A x = b`` and its relative residual.

    Parameters
    ----------
    A : np.ndarray
        Matrix of shape (m, n).
    b : np.ndarray
        Right-hand side of shape (m,).
    rtol : float
        Cutoff ratio for small singular values.

    Returns
    -------
    x : np.ndarray
        Solution vector of shape (n,).
    residual : float
        ``||A x - b|| / max(1, ||b||)``.
    """
    x, _, _, _ = np.linalg.lstsq(A, b, rcond=rtol)
    residual = float(np.linalg.norm(A @ x - b)) / max(1.0, float(np.linalg.norm(b)))
    return x, residual


# =============================================================================
# Validation Utilities
# =============================================================================


def validate_1d(X: Any, name: str = "x") -> np.ndarray:
    """
    Convert input to a 1-D float64 array.

    Parameters
    ----------
    X : array-like
        Input data; scalars become length-1 arrays.
    name : str
        Name for error messages.

    Returns
    -------
    X : np.ndarray

    Raises
    ------
    ValidationError
        If the input has more than one non-trivial dimension.
    """
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 0:
        return X.reshape(1)
    if X.ndim == 2 and 1 in X.shape:
        return X.ravel()
    if X.ndim != 1:
        raise ValidationError(f"{name} must be 1D, got shape {X.shape}")
    return X


def validate_intervals(intervals: Any, name: str) -> np.ndarray:
    """
    Validate an ``n x 2`` interval list and sort each row.

    Parameters
    ----------
    intervals : array-like or None
        Interval end points, one interval per row.
    name : str
        Option name for error messages.

    Returns
    -------
    intervals : np.ndarray
        Array of shape (n, 2) with ``intervals[:, 0] <= intervals[:, 1]``.
        Empty input gives shape (0, 2).
    """
    if intervals is None:
        return np.empty((0, 2))
    arr = np.asarray(intervals, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2))
    if arr.ndim == 1 and arr.shape[0] == 2:
        arr = arr.reshape(1, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValidationError(f"The matrix for {name} must be n x 2, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValidationError(f"{name} contains non-finite end points")
    return np.sort(arr, axis=1)


def check_consistent_length(*arrays) -> int:
    """
    Check that all arrays have consistent first dimension.

    Raises
    ------
    ValidationError
        If lengths don't match.
    """
    lengths = [len(a) for a in arrays if a is not None]
    if len(set(lengths)) > 1:
        raise ValidationError(f"Inconsistent array lengths: {lengths}")
    return lengths[0] if lengths else 0


def drop_nan_pairs(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Remove every pair where either coordinate is NaN.

    Emits a ``UserWarning`` with the number of dropped pairs.
    """
    keep = ~(np.isnan(x) | np.isnan(y))
    n_dropped = int(keep.size - np.count_nonzero(keep))
    if n_dropped:
        warnings.warn(f"Dropping {n_dropped} data points containing NaN", stacklevel=3)
    return x[keep], y[keep]


# =============================================================================
# Serialization Utilities
# =============================================================================


def array_to_list(arr: Optional[np.ndarray]) -> Optional[List]:
    """Convert array to nested Python lists (NaN kept as float NaN)."""
    if arr is None:
        return None
    return np.asarray(arr).tolist()


def float_or_none(value: float) -> Optional[float]:
    """Encode a NaN sentinel as ``None`` for JSON."""
    return None if value is None or np.isnan(value) else float(value)


def none_to_nan(value: Optional[float]) -> float:
    """Decode ``None`` back to the NaN sentinel."""
    return float("nan") if value is None else float(value)
