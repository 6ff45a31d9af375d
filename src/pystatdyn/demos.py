# src/pystatdyn/demos.py
from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from . import datasets
from . import plot as plot_mod
from .core import prepare_table
from .dynamics import MODELS, FlowSystem, nullclines
from .inference import coverage_simulation, estimate_interval
from .regression import coef_table, fit_model, inverse_link, linear_predictor
from .stability import analyze_system, report_table

# ---------------------------------------------------------------------
# Design note: how CLI flags reach the demo routines
# ---------------------------------------------------------------------
#
#   CLI (main.py + <name>_cli.py)
#       ↓  (argparse produces a Namespace)
#   demos.run_<name>_demo(...)  (explicit keywords per subcommand)
#
# run_regression_demo forwards extra keywords (method, weights) to
# regression.fit_model after _scrub_cli_kwargs(...) drops CLI plumbing.
#
# Every run_* routine takes keyword arguments only, returns a dict and
# treats plotting as optional: a failing plot is reported and the
# computed result is still returned.


# ---------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------

# CLI plumbing that never reaches the computational layer
_CLI_NOISE = {
    "command", "func", "json", "csv", "no_header", "precision",
}


def _scrub_cli_kwargs(kwargs: dict) -> dict:
    """Remove argparse plumbing (``func``, ``command``, output format flags)."""
    kw = dict(kwargs)
    for k in _CLI_NOISE:
        kw.pop(k, None)
    return kw


def _single_predictor(formula: str, df: pd.DataFrame) -> Optional[str]:
    rhs = formula.split("~", 1)[1].strip()
    return rhs if rhs in df.columns else None


def _pad_range(values: np.ndarray, frac: float = 0.25, floor: float = 1.0) -> Tuple[float, float]:
    if values.size == 0:
        return -1.0, 1.0
    lo, hi = float(values.min()), float(values.max())
    span = max(hi - lo, floor)
    return lo - frac * span, hi + frac * span


# ---------------------------------------------------------------------
# 1) Regression
# ---------------------------------------------------------------------
def run_regression_demo(
    *,
    data: Any = None,
    formula: str = "hindfoot_length ~ sex",
    family: str = "gaussian",
    link: Optional[str] = None,
    level: float = 0.95,
    levels: Optional[Sequence[float]] = None,
    success: Any = None,
    predictors: Optional[Mapping[str, float]] = None,
    seed: Optional[int] = 42,
    plot: bool = False,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    verbose: bool = False,
    **fit_kwargs,
) -> dict:
    """
    Fit ``formula`` and return its coefficient table.

    With no ``data`` the built-in trapping records are used, so the default
    call reproduces the hindfoot-length-by-sex comparison. ``predictors``
    (coefficient label -> value) adds a prediction read straight off the
    coefficient table, on both the link and response scales.
    """
    df = datasets.trapping_records(seed=seed) if data is None else prepare_table(data)
    fit = fit_model(df, formula, family=family, link=link, success=success,
                    **_scrub_cli_kwargs(fit_kwargs))

    all_levels = sorted({float(level), *(float(v) for v in (levels or ()))})
    tables = {lv: coef_table(fit, level=lv) for lv in all_levels}
    result: Dict[str, Any] = {
        "fit": fit,
        "table": tables[float(level)],
        "tables": tables,
        "coefficients": fit.coefficients,
        "formula": formula, "family": fit.family, "link": fit.link,
        "level": float(level), "nobs": fit.nobs, "aic": fit.aic,
    }

    if predictors is not None:
        eta = linear_predictor(fit.coefficients, predictors)
        result["prediction"] = {
            "predictors": dict(predictors),
            "link": eta,
            "response": float(inverse_link(eta, fit.link)),
        }

    if verbose:
        print(f"[run_regression_demo] {formula} ({fit.family}/{fit.link}), n={fit.nobs}")
        print(result["table"].to_string(float_format=lambda v: f"{v:.4g}"))
        for lv in all_levels[1:]:
            w = tables[lv]["ci_upper"] - tables[lv]["ci_lower"]
            print(f" {100 * lv:g}% widths: " + ", ".join(f"{k}={v:.4g}" for k, v in w.items()))
        if "prediction" in result:
            p = result["prediction"]
            print(f" prediction at {p['predictors']}: eta={p['link']:.6g} response={p['response']:.6g}")

    if plot:
        try:
            x = _single_predictor(formula, df)
            if x is not None:
                y = formula.split("~", 1)[0].strip()
                data_for_plot = df
                if fit.response_levels is not None and not pd.api.types.is_numeric_dtype(df[y]):
                    hit = str(fit.response_levels[1])
                    data_for_plot = df.assign(**{y: df[y].map(lambda v: np.nan if pd.isna(v) else float(str(v) == hit))})
                plot_mod.plot_regression(data_for_plot, x, y, result=fit, level=level,
                                         show=True, save_path=save_path, dpi=dpi, transparent=transparent)
            else:
                plot_mod.plot_coefficients(fit, levels=all_levels if len(all_levels) > 1 else (level, 0.99),
                                           show=True, save_path=save_path, dpi=dpi, transparent=transparent)
        except Exception as e:
            print(f"[run_regression_demo] Plotting failed: {e}")

    return result


# ---------------------------------------------------------------------
# 2) Confidence intervals
# ---------------------------------------------------------------------
def run_ci_demo(
    *,
    n: int = 20,
    reps: int = 100,
    level: float = 0.95,
    mu: float = 0.0,
    sigma: float = 1.0,
    seed: Optional[int] = 42,
    plot: bool = False,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    verbose: bool = False,
) -> dict:
    """Repeated-sampling coverage of t intervals (see ``coverage_simulation``)."""
    sim = coverage_simulation(n=n, reps=reps, level=level, mu=mu, sigma=sigma, seed=seed)
    missed = int(np.count_nonzero(~sim["covers"]))
    # binomial standard error of the empirical coverage
    se = float(np.sqrt(level * (1.0 - level) / sim["reps"]))
    band = estimate_interval(level, se, level=0.95)
    result = dict(sim)
    result.update({
        "missed": missed,
        "expected_missed": (1.0 - level) * sim["reps"],
        "coverage_band": (band.lower, band.upper),
    })

    if verbose:
        print(f"[run_ci_demo] n={n} reps={reps} level={level} mu={mu} sigma={sigma} seed={seed}")
        print(f" empirical coverage={sim['coverage']:.4f} (missed {missed}, "
              f"expected ≈ {result['expected_missed']:.1f})")
        print(f" 95% sampling band for the coverage: [{band.lower:.4f}, {band.upper:.4f}]")

    if plot:
        try:
            plot_mod.plot_coverage(sim, show=True, save_path=save_path, dpi=dpi, transparent=transparent)
        except Exception as e:
            print(f"[run_ci_demo] Plotting failed: {e}")

    return result


# ---------------------------------------------------------------------
# 3) Same statistics, different pictures
# ---------------------------------------------------------------------
def run_gallery_demo(
    *,
    kind: str = "datasaurus",
    shapes: Optional[Sequence[str]] = None,
    n: int = 142,
    seed: Optional[int] = 1,
    ncols: int = 4,
    plot: bool = False,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    verbose: bool = False,
) -> dict:
    """
    Summary table of a family of x/y sets that share their statistics.

    ``spread`` holds max - min of every summary column across the sets; for
    the Datasaurus-like family the moment columns are equal to rounding.
    """
    kind = str(kind).lower()
    if kind == "datasaurus":
        df = datasets.datasaurus_like(shapes, n=n, seed=seed)
    elif kind == "anscombe":
        df = datasets.anscombe_quartet()
    else:
        raise ValueError(f"kind must be 'datasaurus' or 'anscombe', got {kind!r}")
    summary = datasets.summarize_xy(df, "x", "y", by="dataset")
    spread = (summary.max() - summary.min()).drop("n")

    if verbose:
        print(f"[run_gallery_demo] kind={kind} sets={len(summary)}")
        print(summary.round(3).to_string())
        print(" spread across sets: " + ", ".join(f"{k}={v:.3g}" for k, v in spread.items()))

    if plot:
        try:
            plot_mod.plot_gallery(df, "x", "y", "dataset", ncols=ncols, title=f"{kind}: same statistics",
                                  show=True, save_path=save_path, dpi=dpi, transparent=transparent)
        except Exception as e:
            print(f"[run_gallery_demo] Plotting failed: {e}")

    return {"kind": kind, "data": df, "summary": summary, "spread": spread}


def run_simpson_demo(
    *,
    n_groups: int = 4,
    n_per_group: int = 50,
    within_slope: float = -1.0,
    between_slope: float = 2.0,
    seed: Optional[int] = 3,
    plot: bool = False,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    verbose: bool = False,
) -> dict:
    """Pooled slope against within-group slopes for a Simpson's-paradox table."""
    df = datasets.simpson_paradox(n_groups, n_per_group, within_slope=within_slope,
                                  between_slope=between_slope, seed=seed)
    pooled = datasets.summarize_xy(df, "x", "y").iloc[0]
    groups = datasets.summarize_xy(df, "x", "y", by="group")
    slopes = groups["slope"].to_numpy(float)
    reversal = bool(np.all(np.sign(slopes) != np.sign(pooled["slope"])))

    if verbose:
        print(f"[run_simpson_demo] groups={n_groups} n_per_group={n_per_group} seed={seed}")
        print(f" pooled slope={pooled['slope']:+.4f}")
        for name, s in groups["slope"].items():
            print(f" group {name}: slope={s:+.4f}")
        print(f" sign reversal: {reversal}")

    if plot:
        try:
            plot_mod.plot_simpson(df, "x", "y", "group",
                                  show=True, save_path=save_path, dpi=dpi, transparent=transparent)
        except Exception as e:
            print(f"[run_simpson_demo] Plotting failed: {e}")

    return {
        "data": df, "pooled": pooled, "groups": groups,
        "pooled_slope": float(pooled["slope"]),
        "group_slopes": dict(groups["slope"]),
        "reversal": reversal,
    }


# ---------------------------------------------------------------------
# 4) Fixed points and stability
# ---------------------------------------------------------------------
def _build_system(model: Optional[str], params: Optional[Mapping[str, float]],
                  rates: Optional[Sequence[str]], variables: Optional[Sequence[str]]) -> FlowSystem:
    params = dict(params or {})
    if rates:
        if not variables:
            raise ValueError("custom rates need their state variables (one per rate)")
        return FlowSystem.from_strings(rates, variables, params)
    key = str(model or "predator-prey").lower()
    if key not in MODELS:
        raise ValueError(f"unknown model {model!r}; choose from {sorted(MODELS)}")
    system = MODELS[key]()
    unknown = sorted(set(params) - set(system.params))
    if unknown:
        raise ValueError(f"{key}: unknown parameter(s) {unknown}; valid: {sorted(system.params)}")
    return system.with_params(**params)


def run_stability_demo(
    *,
    model: Optional[str] = "predator-prey",
    params: Optional[Mapping[str, float]] = None,
    rates: Optional[Sequence[str]] = None,
    variables: Optional[Sequence[str]] = None,
    domain: Optional[Sequence[Tuple[float, float]]] = None,
    x_range: Optional[Tuple[float, float]] = None,
    y_range: Optional[Tuple[float, float]] = None,
    initial_conditions: Optional[Sequence[Sequence[float]]] = None,
    t_span: Tuple[float, float] = (0.0, 50.0),
    tol: float = 1e-9,
    plot: bool = False,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    verbose: bool = False,
) -> dict:
    """
    Fixed points, nullclines and linear stability of a model flow.

    Either pick a library ``model`` (with optional ``params`` overrides) or
    pass ``rates`` and ``variables`` as strings for a custom system, e.g.
    ``rates=['r*N*(1-N/K)'], variables=['N'], params={'r': 1, 'K': 10}``.
    Plotting draws a phase line for 1-D systems and a phase portrait for
    2-D ones.
    """
    system = _build_system(model, params, rates, variables)
    reports = analyze_system(system, tol=tol, domain=domain)
    table = report_table(reports)
    ncl = {k: [str(eq) for eq in v] for k, v in nullclines(system).items()}

    if verbose:
        print(f"[run_stability_demo] {system.name}: "
              + "; ".join(f"d{v}/dt = {r}" for v, r in zip(system.variables, system.substituted())))
        print(f" parameters: {system.params}")
        for var, eqs in ncl.items():
            print(f" {var}-nullclines: {', '.join(eqs)}")
        print(table.to_string(index=False) if len(table) else " no fixed points found")

    if plot:
        try:
            pts = np.array([r.point for r in reports], float).reshape(-1, system.dim)
            if system.dim == 1:
                xr = x_range or _pad_range(pts[:, 0])
                plot_mod.plot_flow_1d(system, xr, show=True, save_path=save_path,
                                      dpi=dpi, transparent=transparent)
            elif system.dim == 2:
                xr = x_range or _pad_range(pts[:, 0])
                yr = y_range or _pad_range(pts[:, 1])
                plot_mod.plot_phase_portrait(system, xr, yr, initial_conditions=initial_conditions,
                                             t_span=t_span, show=True, save_path=save_path,
                                             dpi=dpi, transparent=transparent)
            else:
                print(f"[run_stability_demo] No plot for a {system.dim}-D system.")
        except Exception as e:
            print(f"[run_stability_demo] Plotting failed: {e}")

    return {
        "system": system,
        "fixed_points": [r.point for r in reports],
        "reports": reports,
        "table": table,
        "nullclines": ncl,
    }
