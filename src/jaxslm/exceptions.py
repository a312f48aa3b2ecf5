"""
Exception Types for JAXSLM.

Every error raised by the fitting and evaluation pipeline derives from
:class:`SLMError` and from the closest built-in exception, so callers that
already catch ``ValueError`` or ``RuntimeError`` keep working.
"""

from __future__ import annotations


class SLMError(Exception):
    """Base class for all JAXSLM errors."""

    pass


class ValidationError(SLMError, ValueError):
    """Raised when inputs are malformed (mismatched lengths, bad shapes, ...)."""

    pass


class ConflictingConstraintError(ValidationError):
    """Raised when mutually exclusive shape constraints are requested together."""

    pass


class InvalidArgumentError(ValidationError):
    """Raised when an argument has a value outside its allowed set."""

    pass


class DegenerateKnotsError(SLMError, ValueError):
    """Raised when two or more knots coincide."""

    pass


class OutOfRangeError(SLMError, ValueError):
    """Raised when a point lies outside the knot span and no extrapolation is allowed."""

    pass


class InfeasibleConstraintsError(SLMError, RuntimeError):
    """Raised when no coefficient vector satisfies every constraint row."""

    pass
