"""
Basic Usage Example for JAXSLM.

Fits shape-constrained splines to noisy one-dimensional data and shows how
each kind of prescription changes the fit.
"""

import numpy as np

from jaxslm import FitRequest, SplineRegressor, fit, fit_slm


def example_unconstrained():
    """Least-squares spline through noisy data."""
    print("=" * 60)
    print("Example 1: Unconstrained Spline")
    print("=" * 60)

    np.random.seed(42)
    x = np.sort(np.random.uniform(0, 2 * np.pi, 150))
    y = np.sin(x) + 0.1 * np.random.randn(x.size)

    model = fit(x, y, knots=10, lam=1e-4)

    grid = np.linspace(x.min(), x.max(), 7)
    print(f"\n{model!r}")
    print(f"\n{'x':>8} {'spline':>10} {'sin(x)':>10}")
    for xi, fi in zip(grid, model(grid)):
        print(f"{xi:>8.3f} {fi:>10.4f} {np.sin(xi):>10.4f}")

    return model


def example_monotone():
    """Monotone fit of a noisy dose-response curve."""
    print("\n" + "=" * 60)
    print("Example 2: Increasing and Concave Down")
    print("=" * 60)

    np.random.seed(0)
    dose = np.sort(np.random.uniform(0, 10, 60))
    response = 1.0 - np.exp(-0.4 * dose) + 0.05 * np.random.randn(dose.size)

    free = fit_slm(dose, response, knots=12, lam=0.0)
    shaped = fit_slm(dose, response, knots=12, increasing=True, concave_down=True)

    grid = np.linspace(dose.min(), dose.max(), 500)
    for name, reg in (("unconstrained", free), ("shape-constrained", shaped)):
        slope = reg.predict_derivative(grid, order=1)
        curvature = reg.predict_derivative(grid, order=2)
        print(f"\n{name}:")
        print(f"  min slope:     {slope.min():+.4f}")
        print(f"  max curvature: {curvature.max():+.4f}")

    print("\n" + shaped.summary())
    return shaped


def example_prescriptions():
    """Endpoint values, bounds, and interval constraints."""
    print("\n" + "=" * 60)
    print("Example 3: Endpoint Values and Bounds")
    print("=" * 60)

    np.random.seed(1)
    x = np.linspace(0, 1, 80)
    y = np.clip(x + 0.1 * np.random.randn(x.size), -0.2, 1.2)

    request = FitRequest(
        knots=8,
        left_value=0.0,
        right_value=1.0,
        min_value=0.0,
        max_value=1.0,
        concave_up_intervals=[[0.0, 0.5]],
        concave_down_intervals=[[0.5, 1.0]],
    )
    model = fit(x, y, request)

    values = model(np.linspace(0, 1, 201))
    print(f"\nf(0) = {model([0.0])[0]:.6f}")
    print(f"f(1) = {model([1.0])[0]:.6f}")
    print(f"range on [0, 1]: [{values.min():.4f}, {values.max():.4f}]")
    return model


def example_estimator():
    """Scikit-learn style usage."""
    print("\n" + "=" * 60)
    print("Example 4: Estimator API")
    print("=" * 60)

    np.random.seed(7)
    x = np.random.uniform(-1, 1, 100)
    y = x**3 + 0.05 * np.random.randn(x.size)

    reg = SplineRegressor(knots=6, increasing=True)
    reg.fit(x, y)
    print(f"\n{reg!r}")
    print(f"knots:  {np.round(reg.knots_, 3)}")
    print(f"values: {np.round(reg.coefficients_[:, 0], 3)}")

    reg.set_params(knots=4).fit(x, y)
    print(f"\nrefit with {reg.knots_.size} knots")
    return reg


if __name__ == "__main__":
    example_unconstrained()
    example_monotone()
    example_prescriptions()
    example_estimator()

    print("\n" + "=" * 60)
    print("All examples completed!")
    print("=" * 60)
