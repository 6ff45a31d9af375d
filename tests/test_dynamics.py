import warnings

import mpmath as mp
import numpy as np
import pytest
import sympy as sp

from pystatdyn.dynamics import (
    MODELS, FlowSystem, competition, derivative_1d, find_roots_1d, fixed_points,
    jacobian, jacobian_at, logistic_growth, lotka_volterra, nullclines,
    numeric_derivative, numeric_jacobian, predator_prey, rate_function,
    trajectory, vector_field,
)


# ---------------------------------------------------------------------
# FlowSystem container
# ---------------------------------------------------------------------
def test_from_strings_and_params():
    sys1 = FlowSystem.from_strings(["r*N*(1 - N/K)"], ["N"], {"r": 0.5, "K": 50})
    assert sys1.dim == 1
    assert fixed_points(sys1) == [(0.0,), (50.0,)]
    sys2 = sys1.with_params(K=20)
    assert fixed_points(sys2) == [(0.0,), (20.0,)]
    assert sys1.params["K"] == 50.0


def test_flowsystem_validation():
    x, y = sp.symbols("x y")
    with pytest.raises(ValueError, match="rate"):
        FlowSystem((x, y), (x,))
    with pytest.raises(ValueError, match="no value"):
        FlowSystem.from_strings(["r*N"], ["N"]).substituted()
    with pytest.raises(ValueError, match="parse"):
        FlowSystem.from_strings(["x**"], ["x"])
    with pytest.raises(ValueError, match="coordinate"):
        jacobian_at(predator_prey(), (1.0,))


# ---------------------------------------------------------------------
# Fixed points
# ---------------------------------------------------------------------
def test_logistic_fixed_points_and_slopes():
    sys1 = logistic_growth(r=1.0, K=10.0)
    assert fixed_points(sys1) == [(0.0,), (10.0,)]
    assert derivative_1d(sys1, 0.0) == pytest.approx(1.0)
    assert derivative_1d(sys1, 10.0) == pytest.approx(-1.0)
    with pytest.raises(ValueError, match="1-D"):
        derivative_1d(predator_prey(), (0.0, 0.0))


def test_logistic_slopes_scale_with_r():
    sys1 = logistic_growth(r=0.3, K=7.0)
    assert derivative_1d(sys1, 0.0) == pytest.approx(0.3)
    assert derivative_1d(sys1, 7.0) == pytest.approx(-0.3)


def test_predator_prey_fixed_points_and_jacobian():
    sys2 = predator_prey()
    assert fixed_points(sys2) == [(0.0, 0.0), (1.0, 5.0)]
    np.testing.assert_allclose(jacobian_at(sys2, (1.0, 5.0)), [[0.0, -1.0], [1.0, -0.2]], atol=1e-12)
    np.testing.assert_allclose(jacobian_at(sys2, (0.0, 0.0)), [[5.0, 0.0], [1.0, -0.2]], atol=1e-12)


def test_predator_prey_general_fixed_point():
    sys2 = predator_prey(A=2.0, B=0.5, C=1.0, D=0.25)
    # (AD/(BC), A/B)
    assert fixed_points(sys2) == [(0.0, 0.0), pytest.approx((1.0, 4.0))]


def test_symbolic_jacobian():
    x, y = sp.symbols("x y")
    J = jacobian(predator_prey())
    assert sp.simplify(J[0, 0] - (5 - y)) == 0
    assert J[0, 1] == -x
    assert J[1, 0] == 1


def test_fixed_points_domain_and_competition():
    pts = fixed_points(competition())
    assert pts == [(0.0, 0.0), (0.0, 80.0), pytest.approx((75.0, 50.0)), (100.0, 0.0)]
    interior = fixed_points(competition(), domain=[(1.0, 99.0), (1.0, 99.0)])
    assert interior == [pytest.approx((75.0, 50.0))]


def test_fixed_points_complex_roots_filtered():
    sys1 = FlowSystem.from_strings(["x**2 + 1"], ["x"])
    assert fixed_points(sys1) == []


def test_numeric_fallback_for_transcendental_rates():
    sys1 = FlowSystem.from_strings(["cos(x) - x"], ["x"])
    with pytest.warns(RuntimeWarning, match="numeric"):
        pts = fixed_points(sys1, domain=[(-2.0, 2.0)])
    assert len(pts) == 1
    assert pts[0][0] == pytest.approx(0.7390851332, abs=1e-8)


# ---------------------------------------------------------------------
# Nullclines
# ---------------------------------------------------------------------
def test_predator_prey_nullclines():
    x, y = sp.symbols("x y")
    ncl = nullclines(predator_prey())
    assert set(ncl) == {"x", "y"}
    assert sp.Eq(x, 0) in ncl["x"]
    assert sp.Eq(y, 5) in ncl["x"]
    assert ncl["y"] == [sp.Eq(y, 5 * x)]


def test_logistic_nullclines_are_fixed_points():
    N = sp.Symbol("N")
    ncl = nullclines(logistic_growth())
    assert set(ncl["N"]) == {sp.Eq(N, 0), sp.Eq(N, 10)}


# ---------------------------------------------------------------------
# Numeric evaluation
# ---------------------------------------------------------------------
def test_rate_function_broadcasts():
    f = rate_function(predator_prey())
    X, Y = np.meshgrid(np.linspace(0, 2, 5), np.linspace(0, 6, 4))
    out = f(X, Y)
    assert out.shape == (2, 4, 5)
    np.testing.assert_allclose(out[0], 5 * X - X * Y)
    np.testing.assert_allclose(out[1], X - 0.2 * Y)
    U, V = vector_field(predator_prey(), X, Y)
    np.testing.assert_allclose(U, out[0])
    with pytest.raises(ValueError, match="grid"):
        vector_field(predator_prey(), X)


def test_rate_function_constant_rate():
    f = rate_function(FlowSystem.from_strings(["2"], ["x"]))
    np.testing.assert_allclose(f(np.zeros(3)), [[2.0, 2.0, 2.0]])


def test_logistic_trajectory_approaches_capacity():
    tr = trajectory(logistic_growth(r=1.0, K=10.0), [1.0], (0.0, 20.0), n_points=201)
    assert tr["success"]
    assert tr["y"].shape == (1, 201)
    exact = 10.0 / (1.0 + 9.0 * np.exp(-tr["t"]))
    np.testing.assert_allclose(tr["y"][0], exact, rtol=1e-2)


def test_lotka_volterra_orbit_stays_positive():
    tr = trajectory(lotka_volterra(), [10.0, 5.0], (0.0, 30.0), rtol=1e-8, atol=1e-10)
    assert np.all(tr["y"] > 0)


# ---------------------------------------------------------------------
# Numeric layer for plain callables
# ---------------------------------------------------------------------
def test_numeric_derivative_and_jacobian():
    assert numeric_derivative(mp.sin, 0.0) == pytest.approx(1.0)
    assert numeric_derivative(lambda n: n * (1 - n / 10), 10.0) == pytest.approx(-1.0)

    J = numeric_jacobian(lambda x, y: (5 * x - x * y, x - 0.2 * y), (1.0, 5.0))
    np.testing.assert_allclose(J, [[0.0, -1.0], [1.0, -0.2]], atol=1e-12)
    with pytest.raises(ValueError, match="rate"):
        numeric_jacobian(lambda x, y: (x,), (1.0, 2.0))


def test_numeric_jacobian_matches_symbolic():
    sys2 = competition()
    f = lambda x, y: (
        x * (1 - (x + 0.5 * y) / 100),
        0.8 * y * (1 - (y + 0.4 * x) / 80),
    )
    np.testing.assert_allclose(numeric_jacobian(f, (75.0, 50.0)),
                               jacobian_at(sys2, (75.0, 50.0)), atol=1e-10)


def test_find_roots_1d():
    roots = find_roots_1d(lambda x: x * x - 2.0, 0.0, 3.0)
    assert roots == [pytest.approx(np.sqrt(2.0), abs=1e-10)]
    cos_roots = find_roots_1d(np.cos, 0.0, 10.0)
    np.testing.assert_allclose(cos_roots, [np.pi / 2, 3 * np.pi / 2, 5 * np.pi / 2], atol=1e-10)
    # exact zero on a grid node
    assert find_roots_1d(lambda x: x, -1.0, 1.0, n_grid=3) == [0.0]
    with pytest.raises(ValueError):
        find_roots_1d(np.cos, 1.0, 0.0)


def test_model_registry():
    assert set(MODELS) == {"logistic", "predator-prey", "lotka-volterra", "competition"}
    for name, factory in MODELS.items():
        system = factory()
        assert system.name == name
        with warnings.catch_warnings():
            warnings.simplefilter("error", RuntimeWarning)
            assert len(fixed_points(system)) >= 2
