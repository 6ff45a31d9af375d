#!/usr/bin/env python3
"""
Fixed points, nullclines and Jacobians of 1-D and 2-D flows.

A flow dx/dt = f(x; p) is held as a :class:`FlowSystem` of sympy expressions
so that fixed points, nullclines and Jacobians come out in closed form, the
way they are derived by hand:

  fixed points : solve f_i(x*) = 0 for all i simultaneously
  nullcline i  : the curve f_i(x) = 0
  Jacobian     : J_ij = ∂f_i/∂x_j, evaluated at a fixed point

For plain Python callables there is a numeric path: bracketing root search
(``find_roots_1d``) and high-precision finite differences through mpmath
(``numeric_jacobian``).

Model library (parameters are keyword arguments with textbook defaults):
  logistic_growth(r, K)         dN/dt = rN(1 - N/K)
  predator_prey(A, B, C, D)     dx/dt = Ax - Bxy,  dy/dt = Cx - Dy
  lotka_volterra(α, β, δ, γ)    dx/dt = αx - βxy,  dy/dt = δxy - γy
  competition(r1, r2, K1, K2, a12, a21)
"""

from __future__ import annotations
import itertools
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import mpmath as mp
import numpy as np
import sympy as sp
from scipy import integrate, optimize

from .core import _ensure_float, _ensure_int

__all__ = [
    "FlowSystem", "MODELS",
    "fixed_points", "nullclines", "jacobian", "jacobian_at", "derivative_1d",
    "rate_function", "vector_field", "trajectory",
    "numeric_jacobian", "numeric_derivative", "find_roots_1d",
    "logistic_growth", "predator_prey", "lotka_volterra", "competition",
]


# ============================================================
# System container
# ============================================================

@dataclass
class FlowSystem:
    """
    Autonomous system dx_i/dt = rates[i](variables; params).

    ``params`` maps parameter *names* to numeric values; any symbol in the
    rates whose name appears in ``params`` is substituted before analysis.
    """

    variables: Tuple[sp.Symbol, ...]
    rates: Tuple[sp.Expr, ...]
    params: Dict[str, float] = field(default_factory=dict)
    name: str = "system"

    def __post_init__(self):
        self.variables = tuple(self.variables)
        self.rates = tuple(sp.sympify(r) for r in self.rates)
        if not self.variables:
            raise ValueError("a FlowSystem needs at least one state variable")
        if len(self.variables) != len(self.rates):
            raise ValueError(
                f"got {len(self.rates)} rate(s) for {len(self.variables)} variable(s); "
                "each state variable needs exactly one rate equation"
            )
        self.params = {str(k): _ensure_float(str(k), v) for k, v in dict(self.params).items()}

    @classmethod
    def from_strings(cls, rates: Sequence[str], variables: Sequence[str],
                     params: Optional[Mapping[str, float]] = None,
                     name: str = "custom") -> "FlowSystem":
        """Build a system from text, e.g. ``(['r*N*(1-N/K)'], ['N'], {'r': 1, 'K': 10})``."""
        syms = tuple(sp.Symbol(v) for v in variables)
        local = {s.name: s for s in syms}
        local.update({k: sp.Symbol(k) for k in (params or {})})
        try:
            exprs = tuple(sp.sympify(r, locals=local) for r in rates)
        except (sp.SympifyError, SyntaxError, TypeError) as e:
            raise ValueError(f"could not parse rate expression(s) {list(rates)}: {e}") from e
        return cls(syms, exprs, dict(params or {}), name)

    @property
    def dim(self) -> int:
        return len(self.variables)

    def with_params(self, **updates: float) -> "FlowSystem":
        return FlowSystem(self.variables, self.rates, {**self.params, **updates}, self.name)

    def substituted(self) -> Tuple[sp.Expr, ...]:
        """Rates with numeric parameter values (as exact rationals) substituted."""
        out = []
        for rate in self.rates:
            subs = {
                s: sp.nsimplify(self.params[s.name], rational=True)
                for s in rate.free_symbols if s.name in self.params
            }
            out.append(rate.subs(subs) if subs else rate)
        free = set().union(*(e.free_symbols for e in out)) - set(self.variables)
        if free:
            raise ValueError(
                f"{self.name}: parameter(s) {sorted(s.name for s in free)} have no value; "
                "pass them in params"
            )
        return tuple(out)

    def _check_point(self, point: Any) -> np.ndarray:
        pt = np.atleast_1d(np.asarray(point, dtype=float))
        if pt.shape != (self.dim,):
            raise ValueError(f"{self.name}: point must have {self.dim} coordinate(s), got shape {pt.shape}")
        return pt

    def _subs_point(self, point: Any) -> Dict[sp.Symbol, float]:
        return dict(zip(self.variables, (float(v) for v in self._check_point(point))))


# ============================================================
# Fixed points & nullclines
# ============================================================

def _in_domain(pt: Sequence[float], domain: Optional[Sequence[Tuple[float, float]]]) -> bool:
    if domain is None:
        return True
    return all(lo <= v <= hi for v, (lo, hi) in zip(pt, domain))


def _dedup(points: List[Tuple[float, ...]], tol: float) -> List[Tuple[float, ...]]:
    out: List[Tuple[float, ...]] = []
    for p in points:
        if not any(np.allclose(p, q, atol=tol, rtol=0.0) for q in out):
            out.append(p)
    return sorted(out)


def _numeric_fixed_points(system: FlowSystem, domain, n_seeds: int) -> List[Tuple[float, ...]]:
    f = rate_function(system)
    box = domain if domain is not None else [(-10.0, 10.0)] * system.dim
    axes = [np.linspace(lo, hi, n_seeds) for lo, hi in box]
    found = []
    for seed in itertools.product(*axes):
        sol, _info, ier, _msg = optimize.fsolve(lambda z: f(*z), np.asarray(seed), full_output=True)
        if ier == 1 and np.linalg.norm(f(*sol)) < 1e-8 and _in_domain(sol, domain):
            found.append(tuple(float(v) + 0.0 for v in sol))
    return found


def fixed_points(
    system: FlowSystem,
    *,
    real_only: bool = True,
    domain: Optional[Sequence[Tuple[float, float]]] = None,
    tol: float = 1e-9,
    n_seeds: int = 9,
) -> List[Tuple[float, ...]]:
    """
    All isolated fixed points, sorted lexicographically.

    Solved symbolically with sympy; when sympy cannot solve the system a
    numeric search (``scipy.optimize.fsolve`` from an ``n_seeds`` grid over
    ``domain``, default [-10, 10] per axis) is used instead and a warning is
    issued. Non-isolated solution families (a whole line of equilibria) are
    skipped with a warning.
    """
    exprs = system.substituted()
    try:
        sols = sp.solve(list(exprs), list(system.variables), dict=True)
    except NotImplementedError:
        warnings.warn(f"{system.name}: no closed-form solution; using numeric root search.",
                      RuntimeWarning, stacklevel=2)
        return _dedup(_numeric_fixed_points(system, domain, n_seeds), 1e-6)

    points: List[Tuple[float, ...]] = []
    for sol in sols:
        if any(v not in sol for v in system.variables) or any(
            sol[v].free_symbols for v in system.variables
        ):
            warnings.warn(f"{system.name}: skipping non-isolated equilibrium set {sol}",
                          RuntimeWarning, stacklevel=2)
            continue
        vals = [complex(sp.N(sol[v])) for v in system.variables]
        if real_only and any(abs(c.imag) > tol for c in vals):
            continue
        pt = tuple(float(c.real) + 0.0 for c in vals)
        if _in_domain(pt, domain):
            points.append(pt)
    return _dedup(points, tol)


def nullclines(system: FlowSystem) -> Dict[str, List[sp.Eq]]:
    """
    Nullclines per state variable, as sympy equations.

    Each rate is factored and every factor is solved for the last variable
    it contains (``y`` before ``x`` in 2-D), so ``x(5 - y)`` yields the two
    nullclines ``x = 0`` and ``y = 5``. Factors that cannot be solved
    explicitly are returned implicitly as ``Eq(factor, 0)``.
    """
    out: Dict[str, List[sp.Eq]] = {}
    for var, rate in zip(system.variables, system.substituted()):
        curves: List[sp.Eq] = []
        try:
            _, factors = sp.factor_list(rate)
        except sp.PolynomialError:
            factors = [(rate, 1)]
        for fac, _mult in factors:
            for target in reversed(system.variables):
                if not fac.has(target):
                    continue
                try:
                    sols = sp.solve(fac, target)
                except NotImplementedError:
                    sols = []
                if sols:
                    curves.extend(sp.Eq(target, s) for s in sols)
                    break
            else:
                curves.append(sp.Eq(fac, 0))
        out[var.name] = curves
    return out


# ============================================================
# Jacobians
# ============================================================

def jacobian(system: FlowSystem) -> sp.Matrix:
    """Symbolic Jacobian J_ij = ∂f_i/∂x_j (parameters substituted)."""
    return sp.Matrix(system.substituted()).jacobian(list(system.variables))


def jacobian_at(system: FlowSystem, point: Any) -> np.ndarray:
    """Jacobian evaluated at ``point`` as a (dim, dim) float array."""
    J = jacobian(system).subs(system._subs_point(point))
    return np.array(J.evalf().tolist(), dtype=float)


def derivative_1d(system: FlowSystem, point: Any) -> float:
    """f'(x*) of a 1-D flow; its sign decides local stability."""
    if system.dim != 1:
        raise ValueError(f"{system.name}: derivative_1d needs a 1-D system, got dim={system.dim}")
    return float(jacobian_at(system, point)[0, 0])


# ============================================================
# Numeric evaluation
# ============================================================

def rate_function(system: FlowSystem) -> Callable[..., np.ndarray]:
    """Vectorized rates: ``f(x, y, ...)`` -> array of shape (dim, *broadcast shape)."""
    fn = sp.lambdify(system.variables, list(system.substituted()), modules="numpy")

    def _f(*args):
        arrs = [np.asarray(a, dtype=float) for a in args]
        shape = np.broadcast_shapes(*[a.shape for a in arrs])
        return np.array([np.broadcast_to(np.asarray(v, dtype=float), shape) for v in fn(*arrs)])
    return _f


def vector_field(system: FlowSystem, *grids: np.ndarray) -> Tuple[np.ndarray, ...]:
    """Rates on a mesh, e.g. ``U, V = vector_field(sys2d, X, Y)``."""
    if len(grids) != system.dim:
        raise ValueError(f"{system.name}: expected {system.dim} grid array(s), got {len(grids)}")
    return tuple(rate_function(system)(*grids))


def trajectory(
    system: FlowSystem,
    initial: Sequence[float],
    t_span: Tuple[float, float],
    *,
    t_eval: Optional[np.ndarray] = None,
    n_points: int = 500,
    method: str = "RK45",
    **solve_ivp_kwargs: Any,
) -> Dict[str, Any]:
    """
    Integrate the flow from ``initial`` with ``scipy.integrate.solve_ivp``.

    Returns ``{'t': (nt,), 'y': (dim, nt), 'success': bool, 'message': str}``.
    """
    y0 = system._check_point(initial)
    t0, t1 = (float(v) for v in t_span)
    if t_eval is None:
        t_eval = np.linspace(t0, t1, _ensure_int("n_points", n_points, minimum=2))
    f = rate_function(system)
    sol = integrate.solve_ivp(lambda t, z: f(*z), (t0, t1), y0, t_eval=t_eval,
                              method=method, **solve_ivp_kwargs)
    if not sol.success:
        warnings.warn(f"{system.name}: integration stopped early: {sol.message}",
                      RuntimeWarning, stacklevel=2)
    return {"t": sol.t, "y": sol.y, "success": bool(sol.success), "message": str(sol.message)}


def numeric_derivative(func: Callable[[Any], Any], x: float, *, dps: int = 30) -> float:
    """df/dx at ``x`` by mpmath differentiation at ``dps`` decimal digits."""
    with mp.workdps(_ensure_int("dps", dps, minimum=15)):
        return float(mp.diff(func, mp.mpf(float(x))))


def numeric_jacobian(func: Callable[..., Sequence[Any]], point: Sequence[float], *,
                     dps: int = 30) -> np.ndarray:
    """
    Jacobian of a callable system ``func(x1, ..., xn) -> (f1, ..., fn)``.

    Partial derivatives are taken with ``mpmath.diff`` at elevated precision,
    so ``func`` must use plain arithmetic (or mpmath functions) rather than
    numpy ufuncs.
    """
    pt = [float(v) for v in np.atleast_1d(np.asarray(point, dtype=float))]
    n = len(pt)
    J = np.empty((n, n), dtype=float)
    with mp.workdps(_ensure_int("dps", dps, minimum=15)):
        x = [mp.mpf(v) for v in pt]
        probe = func(*x)
        if len(probe) != n:
            raise ValueError(f"func returned {len(probe)} rate(s) for a {n}-D point")
        for i in range(n):
            fi = (lambda i_: (lambda *a: func(*a)[i_]))(i)
            for j in range(n):
                order = tuple(1 if k == j else 0 for k in range(n))
                J[i, j] = float(mp.diff(fi, tuple(x), order))
    return J


def find_roots_1d(func: Callable[[float], float], lo: float, hi: float, *,
                  n_grid: int = 2001, xtol: float = 1e-12) -> List[float]:
    """
    Roots of a scalar function on [lo, hi].

    The interval is scanned on ``n_grid`` nodes; exact zeros on nodes are
    kept and every sign change is refined with ``scipy.optimize.brentq``.
    Tangential roots (no sign change) between nodes are not detected.
    """
    lo = _ensure_float("lo", lo)
    hi = _ensure_float("hi", hi)
    if not lo < hi:
        raise ValueError("lo must be < hi")
    xs = np.linspace(lo, hi, _ensure_int("n_grid", n_grid, minimum=3))
    vals = np.array([float(func(x)) for x in xs])
    roots = [float(x) for x, v in zip(xs, vals) if v == 0.0]
    for a, b, fa, fb in zip(xs[:-1], xs[1:], vals[:-1], vals[1:]):
        if fa != 0.0 and fb != 0.0 and np.sign(fa) != np.sign(fb):
            roots.append(float(optimize.brentq(func, a, b, xtol=xtol)))
    step = (hi - lo) / (xs.size - 1)
    return [r[0] for r in _dedup([(r,) for r in roots], 0.5 * step)]


# ============================================================
# Model library
# ============================================================

def logistic_growth(r: float = 1.0, K: float = 10.0) -> FlowSystem:
    """dN/dt = rN(1 - N/K); fixed points N=0 (unstable for r>0) and N=K (stable)."""
    N, r_, K_ = sp.symbols("N r K")
    return FlowSystem((N,), (r_ * N * (1 - N / K_),), {"r": r, "K": K}, "logistic")


def predator_prey(A: float = 5.0, B: float = 1.0, C: float = 1.0, D: float = 0.2) -> FlowSystem:
    """
    dx/dt = Ax - Bxy, dy/dt = Cx - Dy.

    Fixed points (0, 0) and (AD/(BC), A/B).
    """
    x, y, A_, B_, C_, D_ = sp.symbols("x y A B C D")
    return FlowSystem((x, y), (A_ * x - B_ * x * y, C_ * x - D_ * y),
                      {"A": A, "B": B, "C": C, "D": D}, "predator-prey")


def lotka_volterra(alpha: float = 1.1, beta: float = 0.4,
                   delta: float = 0.1, gamma: float = 0.4) -> FlowSystem:
    """
    Classical Lotka–Volterra: dx/dt = αx - βxy, dy/dt = δxy - γy.

    The coexistence point (γ/δ, α/β) is a linear center.
    """
    x, y = sp.symbols("x y")
    a, b, d, g = sp.symbols("alpha beta delta gamma")
    return FlowSystem((x, y), (a * x - b * x * y, d * x * y - g * y),
                      {"alpha": alpha, "beta": beta, "delta": delta, "gamma": gamma},
                      "lotka-volterra")


def competition(r1: float = 1.0, r2: float = 0.8, K1: float = 100.0, K2: float = 80.0,
                a12: float = 0.5, a21: float = 0.4) -> FlowSystem:
    """
    Lotka–Volterra competition:
      dx/dt = r1 x (1 - (x + a12 y)/K1)
      dy/dt = r2 y (1 - (y + a21 x)/K2)
    """
    x, y = sp.symbols("x y")
    r1_, r2_, K1_, K2_, a12_, a21_ = sp.symbols("r1 r2 K1 K2 a12 a21")
    return FlowSystem(
        (x, y),
        (r1_ * x * (1 - (x + a12_ * y) / K1_), r2_ * y * (1 - (y + a21_ * x) / K2_)),
        {"r1": r1, "r2": r2, "K1": K1, "K2": K2, "a12": a12, "a21": a21},
        "competition",
    )


MODELS: Dict[str, Callable[..., FlowSystem]] = {
    "logistic": logistic_growth,
    "predator-prey": predator_prey,
    "lotka-volterra": lotka_volterra,
    "competition": competition,
}
