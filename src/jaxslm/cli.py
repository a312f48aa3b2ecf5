"""
Command-Line Interface for JAXSLM.

Provides the ``jaxslm`` command for fitting shape-constrained splines to
CSV data and evaluating saved models.

Requires the ``cli`` optional dependency group::

    pip install jaxslm[cli]

Usage::

    jaxslm fit data.csv -o model.json --knots 8 --increasing --concave-down
    jaxslm eval model.json 0.1 0.5 0.9 --mode 1
    jaxslm info model.json
"""

from __future__ import annotations

import json
import sys

try:
    import click
except ImportError:
    print(
        "Error: click is required for the jaxslm CLI. " "Install it with: pip install jaxslm[cli]",
        file=sys.stderr,
    )
    sys.exit(1)

from .exceptions import SLMError


def _read_xy(data_file: str, x_col: int, y_col: int):
    """
    Read two numeric columns from a CSV file.

    A first line that does not parse as numbers is treated as a header.

    Returns
    -------
    x, y : np.ndarray
    """
    import numpy as np

    with open(data_file) as f:
        first = f.readline()
    try:
        [float(v) for v in first.strip().split(",")]
        skip_header = 0
    except ValueError:
        skip_header = 1

    data = np.genfromtxt(data_file, delimiter=",", skip_header=skip_header, dtype=np.float64)
    if data.ndim == 1:
        data = data.reshape(1, -1)
    n_cols = data.shape[1]
    if max(x_col, y_col) >= n_cols:
        raise click.BadParameter(
            f"Column index out of range: the file has {n_cols} column(s)",
            param_hint="--x-col/--y-col",
        )
    return data[:, x_col], data[:, y_col]


def _fail(error: Exception):
    click.echo(f"Error: {error}", err=True)
    raise SystemExit(1) from None


@click.group()
@click.version_option(package_name="jaxslm")
def main():
    """JAXSLM: JAX-based shape-constrained least-squares splines."""
    pass


# =============================================================================
# fit
# =============================================================================


@main.command()
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", required=True, help="Output model file (.json).")
@click.option("--knots", "-k", default=None, type=int, help="Number of knots.")
@click.option(
    "--knot-placement",
    type=click.Choice(["quantile", "uniform"]),
    default=None,
    help="How knots are spread over the data.",
)
@click.option("--lam", default=None, type=float, help="Roughness penalty weight.")
@click.option("--increasing", is_flag=True, help="Monotone increasing everywhere.")
@click.option("--decreasing", is_flag=True, help="Monotone decreasing everywhere.")
@click.option("--concave-up", is_flag=True, help="Non-negative curvature everywhere.")
@click.option("--concave-down", is_flag=True, help="Non-positive curvature everywhere.")
@click.option("--left-value", default=None, type=float, help="Value at the first knot.")
@click.option("--right-value", default=None, type=float, help="Value at the last knot.")
@click.option("--min-value", default=None, type=float, help="Global lower bound.")
@click.option("--max-value", default=None, type=float, help="Global upper bound.")
@click.option("--no-c2", is_flag=True, help="Drop second-derivative continuity.")
@click.option("--no-scaling", is_flag=True, help="Solve in the original units of y.")
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of fit options; command-line flags take precedence.",
)
@click.option("--x-col", default=0, type=int, help="Zero-based column index of x.")
@click.option("--y-col", default=1, type=int, help="Zero-based column index of y.")
def fit(data_file, output, config_file, x_col, y_col, no_c2, no_scaling, **flags):
    """Fit a shape-constrained spline to two columns of a CSV file.

    Example:

        jaxslm fit data.csv -o model.json --knots 8 --increasing
    """
    from .fitting import FitRequest
    from .fitting import fit as fit_spline

    x, y = _read_xy(data_file, x_col, y_col)

    try:
        if config_file is not None:
            with open(config_file) as f:
                request = FitRequest.from_dict(json.load(f))
        else:
            request = FitRequest()

        overrides = {k: v for k, v in flags.items() if v is not None and v is not False}
        if no_c2:
            overrides["C2"] = False
        if no_scaling:
            overrides["scaling"] = False

        model = fit_spline(x, y, request=request, **overrides)
    except (SLMError, NotImplementedError) as e:
        _fail(e)

    model.save(output)

    click.echo(f"Fitted spline with {model.n_knots} knots to {model.x.size} points.")
    click.echo(f"  Domain: [{model.knots[0]:.6g}, {model.knots[-1]:.6g}]")
    click.echo(f"Saved to: {output}")


# =============================================================================
# eval
# =============================================================================


@main.command("eval")
@click.argument("model_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("points", nargs=-1, required=True, type=float)
@click.option(
    "--mode",
    "-m",
    default=0,
    type=int,
    help="0 for the value, 1-3 for that derivative.",
)
def eval_(model_file, points, mode):
    """Evaluate a saved spline at POINTS.

    Prints one ``point<TAB>value`` line per point; points outside the knot
    range print ``nan``. Use ``--`` before negative points.

    Example:

        jaxslm eval model.json 0.1 0.5 0.9 --mode 1
    """
    from .model import SplineModel

    try:
        model = SplineModel.load(model_file)
        values = model(list(points), mode=mode)
    except (SLMError, KeyError, json.JSONDecodeError, NotImplementedError) as e:
        _fail(e)

    for p, v in zip(points, values):
        click.echo(f"{p:.10g}\t{v:.10g}")


# =============================================================================
# info
# =============================================================================


@main.command()
@click.argument("model_file", type=click.Path(exists=True, dir_okay=False))
def info(model_file):
    """Show the summary of a saved spline.

    Example:

        jaxslm info model.json
    """
    from .model import SplineModel

    try:
        model = SplineModel.load(model_file)
    except (SLMError, KeyError, json.JSONDecodeError) as e:
        _fail(e)

    click.echo(model.summary())
