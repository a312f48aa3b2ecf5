"""
JAXSLM: JAX-based Shape Language Modeling

Least-squares cubic Hermite splines with shape constraints (monotonicity,
curvature, bounds, endpoint values) for building smooth, physically
sensible one-dimensional models from noisy data.

Importing the package turns on JAX 64-bit mode (``jax_enable_x64``) for the
whole process, since the spline kernels must agree with the double-precision
solve. Arrays created with ``jax.numpy`` afterwards default to float64.
"""

from __future__ import annotations

import jax

# Coefficients come from a double-precision solve.
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"

from .basis import design_matrix, hermite_basis, regularizer_matrix  # noqa: E402
from .constraints import (  # noqa: E402
    ConstraintSystem,
    ConstraintType,
    ShapeConstraint,
    ShapeConstraints,
)
from .evaluate import evaluate  # noqa: E402
from .exceptions import (  # noqa: E402
    ConflictingConstraintError,
    DegenerateKnotsError,
    InfeasibleConstraintsError,
    InvalidArgumentError,
    OutOfRangeError,
    SLMError,
    ValidationError,
)
from .fitting import FitRequest, build_constraint_system, fit  # noqa: E402
from .knots import bin_points, choose_knots  # noqa: E402
from .model import Extrapolation, SplineModel, SplineType  # noqa: E402
from .regressor import SplineRegressor, fit_slm  # noqa: E402
from .solver import solve_constrained_lsq  # noqa: E402

__all__ = [
    # Fitting
    "FitRequest",
    "fit",
    "build_constraint_system",
    # Model
    "SplineModel",
    "SplineType",
    "Extrapolation",
    "evaluate",
    # Estimator
    "SplineRegressor",
    "fit_slm",
    # Building blocks
    "choose_knots",
    "bin_points",
    "hermite_basis",
    "design_matrix",
    "regularizer_matrix",
    "ConstraintSystem",
    "ConstraintType",
    "ShapeConstraint",
    "ShapeConstraints",
    "solve_constrained_lsq",
    # Exceptions
    "SLMError",
    "ValidationError",
    "ConflictingConstraintError",
    "InvalidArgumentError",
    "DegenerateKnotsError",
    "OutOfRangeError",
    "InfeasibleConstraintsError",
]
