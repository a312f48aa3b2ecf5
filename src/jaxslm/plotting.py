"""
Visualization Tools for JAXSLM.

Provides plotting functions for fitted splines and their derivatives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from .model import SplineModel
    from .regressor import SplineRegressor

_ORDER_LABELS = {0: "f(x)", 1: "f'(x)", 2: "f''(x)", 3: "f'''(x)"}


def _as_model(model: Union[SplineModel, SplineRegressor]) -> SplineModel:
    return model.model_ if hasattr(model, "model_") else model


def _dense_grid(model: SplineModel, n_points: int) -> np.ndarray:
    lo, hi = model.domain
    # every knot on the grid so kinks in f'' show up
    return np.union1d(np.linspace(lo, hi, n_points), model.knots)


def plot_fit(
    model: Union[SplineModel, SplineRegressor],
    ax: Optional[plt.Axes] = None,
    figsize: Tuple[int, int] = (10, 6),
    n_points: int = 500,
    show_data: bool = True,
    show_knots: bool = True,
    title: str = "Shape-Constrained Spline Fit",
) -> plt.Axes:
    """
    Plot the fitted spline over its data.

    Parameters
    ----------
    model : SplineModel or SplineRegressor
        Fitted spline.
    ax : plt.Axes, optional
        Axes to plot on. If None, creates new figure.
    figsize : tuple
        Figure size if creating new figure.
    n_points : int
        Number of evaluation points for the curve.
    show_data : bool
        Scatter the training data stored on the model.
    show_knots : bool
        Mark the knot values.
    title : str
        Plot title.

    Returns
    -------
    ax : plt.Axes
        The axes with the plot.
    """
    model = _as_model(model)
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    if show_data and model.x is not None:
        ax.scatter(model.x, model.y, s=20, c='gray', alpha=0.6, label='Data')

    grid = _dense_grid(model, n_points)
    ax.plot(grid, model.evaluate(grid), 'b-', linewidth=2, label='Spline')

    if show_knots:
        ax.plot(model.knots, model.values, 'ro', markersize=6, label='Knots')
        for k in model.knots:
            ax.axvline(k, color='red', alpha=0.15, linewidth=1)

    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_title(title)
    ax.legend()
    ax.grid(True, alpha=0.3)

    return ax


def plot_derivatives(
    model: Union[SplineModel, SplineRegressor],
    orders: Sequence[int] = (1, 2),
    figsize: Optional[Tuple[int, int]] = None,
    n_points: int = 500,
) -> plt.Figure:
    """
    Plot derivatives of the fitted spline, one panel per order.

    Parameters
    ----------
    model : SplineModel or SplineRegressor
        Fitted spline.
    orders : sequence of int
        Derivative orders to draw (0 to 3).
    figsize : tuple, optional
        Figure size. Defaults to 3 inches of height per panel.
    n_points : int
        Number of evaluation points.

    Returns
    -------
    fig : plt.Figure
        Figure with one axes per order.
    """
    model = _as_model(model)
    orders = list(orders)
    if not orders:
        raise ValueError("orders must contain at least one derivative order")
    if figsize is None:
        figsize = (10, 3 * len(orders))

    fig, axes = plt.subplots(len(orders), 1, figsize=figsize, sharex=True, squeeze=False)
    grid = _dense_grid(model, n_points)

    for ax, order in zip(axes[:, 0], orders):
        ax.plot(grid, model.evaluate(grid, mode=order), 'b-', linewidth=1.5)
        ax.axhline(0, color='k', linewidth=0.5)
        for k in model.knots:
            ax.axvline(k, color='red', alpha=0.15, linewidth=1)
        ax.set_ylabel(_ORDER_LABELS.get(order, f"order {order}"))
        ax.grid(True, alpha=0.3)

    axes[-1, 0].set_xlabel('x')
    fig.suptitle('Spline Derivatives')
    fig.tight_layout()
    return fig
