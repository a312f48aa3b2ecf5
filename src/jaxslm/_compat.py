"""
Scikit-learn estimator protocol mixin for JAXSLM.

Implements ``get_params`` / ``set_params`` so that :class:`SplineRegressor`
works with ``sklearn.base.clone``, ``GridSearchCV`` and ``Pipeline`` without
requiring scikit-learn as a hard dependency.
"""

from __future__ import annotations

import inspect

import numpy as np


def _param_differs(value, default) -> bool:
    if value is default:
        return False
    if isinstance(value, float) and isinstance(default, float):
        return not (value == default or (np.isnan(value) and np.isnan(default)))
    try:
        return bool(value != default)
    except ValueError:
        # array-valued parameter
        return True


class _SklearnCompatMixin:
    """
    Mixin that implements the scikit-learn estimator protocol.

    Subclasses must store every ``__init__`` parameter as a same-named
    instance attribute and must not transform it in ``__init__``.
    """

    @classmethod
    def _param_names(cls) -> list[str]:
        sig = inspect.signature(cls.__init__)
        return [name for name in sig.parameters if name != "self"]

    def get_params(self, deep: bool = True) -> dict:
        """
        Get parameters for this estimator.

        Parameters
        ----------
        deep : bool
            Accepted for sklearn compatibility. No parameter is itself an
            estimator, so it has no effect.

        Returns
        -------
        params : dict
            Parameter names mapped to their values.
        """
        return {name: getattr(self, name) for name in self._param_names()}

    def set_params(self, **params) -> _SklearnCompatMixin:
        """
        Set the parameters of this estimator.

        Returns
        -------
        self : estimator instance

        Raises
        ------
        ValueError
            If any parameter name is not valid for this estimator.
        """
        valid = self._param_names()
        for key, value in params.items():
            if key not in valid:
                raise ValueError(
                    f"Invalid parameter {key!r} for {type(self).__name__}. "
                    f"Valid parameters: {sorted(valid)}."
                )
            setattr(self, key, value)
        return self

    def __repr__(self) -> str:
        """Sklearn-style repr listing the non-default parameters."""
        sig = inspect.signature(self.__init__)
        parts = []
        for name, p in sig.parameters.items():
            value = getattr(self, name, p.default)
            if _param_differs(value, p.default):
                parts.append(f"{name}={value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"

    def __sklearn_is_fitted__(self) -> bool:
        """Check if the estimator is fitted (sklearn protocol)."""
        return getattr(self, "_is_fitted", False)
