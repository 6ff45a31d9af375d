#!/usr/bin/env python3
"""
Plotting utilities for pystatdyn.

Public API:
  1) plot_regression(data, x, y, result=None, ...)
  2) plot_coefficients(result, levels=(0.95, 0.99), ...)
  3) plot_coverage(sim, ...)
  4) plot_gallery(df, x, y, by, ...)
  5) plot_simpson(df, x, y, by, ...)
  6) plot_flow_1d(system, x_range, ...)
  7) plot_phase_portrait(system, x_range, y_range, ...)

Every function accepts ``show``, ``save_path``, ``dpi`` and ``transparent``
and returns the matplotlib Figure.
"""

from __future__ import annotations
from typing import Any, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D

from .core import prepare_table
from .datasets import summarize_xy
from .dynamics import FlowSystem, rate_function, trajectory
from .inference import t_interval
from .regression import FitResult, coef_table
from .stability import analyze_system

__all__ = [
    "plot_regression", "plot_coefficients", "plot_coverage",
    "plot_gallery", "plot_simpson",
    "plot_flow_1d", "plot_phase_portrait",
]

_KIND_STYLE = {
    "stable": dict(marker="o", facecolor="black", edgecolor="black"),
    "unstable": dict(marker="o", facecolor="white", edgecolor="black"),
    "saddle": dict(marker="o", facecolor="#bbbbbb", edgecolor="black"),
    "other": dict(marker="D", facecolor="#6a3d9a", edgecolor="black"),
}


# --------------------------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------------------------
def _safe_show(do_show: bool) -> None:
    """Always attempt to show when requested; just suppress Agg warnings."""
    if not do_show:
        return
    import warnings
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message="FigureCanvasAgg is non-interactive")
        warnings.filterwarnings("ignore", message="Matplotlib is currently using.*")
        plt.show()


def _maybe_show_or_save(fig, save_path, show, dpi=300, transparent=False):
    if save_path:
        fig.savefig(save_path, dpi=dpi, transparent=transparent)
    _safe_show(show)
    if not show:
        plt.close(fig)


def _set_constrained_layout(fig):
    try:
        fig.set_layout_engine("constrained")
    except AttributeError:
        fig.set_constrained_layout(True)


def _annotate_box(ax, lines, loc=(0.02, 0.98), fontsize=9):
    txt = "\n".join(s for s in (lines or []) if s)
    if not txt:
        return
    ax.text(
        loc[0], loc[1], txt, transform=ax.transAxes, fontsize=fontsize,
        ha="left", va="top",
        bbox=dict(facecolor="white", alpha=0.75, edgecolor="none", pad=3.0),
    )


def _new_axes(ax, figsize):
    if ax is not None:
        return ax.figure, ax
    fig, ax = plt.subplots(figsize=figsize)
    _set_constrained_layout(fig)
    return fig, ax


def _fixed_point_style(report) -> dict:
    if report.kind == "saddle":
        return _KIND_STYLE["saddle"]
    if report.stable:
        return _KIND_STYLE["stable"]
    if report.kind.startswith("unstable"):
        return _KIND_STYLE["unstable"]
    return _KIND_STYLE["other"]


# --------------------------------------------------------------------------------------
# Regression & inference
# --------------------------------------------------------------------------------------
def plot_regression(
    data: Any,
    x: str,
    y: str,
    *,
    result: Optional[FitResult] = None,
    hue: Optional[str] = None,
    level: float = 0.95,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (7.0, 4.5),
    seed: int = 0,
):
    """
    Scatter of ``y`` against ``x`` with the fitted curve from ``result``.

    A categorical ``x`` is drawn as jittered strips with the group mean and
    its t interval at ``level``; a numeric ``x`` gets the model prediction on
    a grid (response scale, so logistic fits show the sigmoid). ``hue``
    colours the points by a second column in both cases.
    """
    cols = [x, y] + ([hue] if hue else [])
    df = prepare_table(data, columns=cols, dropna=True)
    fig, ax = _new_axes(ax, figsize)
    rng = np.random.default_rng(seed)

    if not pd.api.types.is_numeric_dtype(df[x]):
        levels = sorted(df[x].astype(str).unique())
        hue_levels = sorted(df[hue].astype(str).unique()) if hue else []
        for i, lev in enumerate(levels):
            sub = df.loc[df[x].astype(str) == lev]
            yy = sub[y].to_numpy(float)
            xx = i + rng.uniform(-0.15, 0.15, yy.size)
            if hue:
                tags = sub[hue].astype(str).to_numpy()
                for j, h in enumerate(hue_levels):
                    mask = tags == h
                    ax.scatter(xx[mask], yy[mask], s=8, alpha=0.35, color=f"C{j}",
                               label=h if i == 0 else None)
            else:
                ax.scatter(xx, yy, s=8, alpha=0.35, color=f"C{i}")
            if yy.size >= 2:
                ci = t_interval(yy, level)
                ax.errorbar([i], [ci.estimate], yerr=[[ci.estimate - ci.lower], [ci.upper - ci.estimate]],
                            fmt="s", color="black", capsize=6, zorder=5)
        ax.set_xticks(range(len(levels)))
        ax.set_xticklabels(levels)
        if hue:
            ax.legend(title=hue, loc="best", fontsize=8)
    else:
        groups = df.groupby(hue, observed=True) if hue else [(None, df)]
        for i, (key, sub) in enumerate(groups):
            ax.scatter(sub[x], sub[y], s=10, alpha=0.5, color=f"C{i}",
                       label=str(key) if key is not None else None)
        if result is not None and not hue:
            grid = np.linspace(float(df[x].min()), float(df[x].max()), 200)
            ax.plot(grid, result.predict(pd.DataFrame({x: grid})), color="black", lw=2,
                    label=f"{result.family} / {result.link} fit")
        if hue or result is not None:
            ax.legend(loc="best", fontsize=8)

    if result is not None:
        _annotate_box(ax, [f"{k} = {v:.4g}" for k, v in result.coefficients.items()])
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or (result.formula if result is not None else f"{y} vs {x}"))
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


def plot_coefficients(
    result: FitResult,
    *,
    levels: Sequence[float] = (0.95, 0.99),
    include_intercept: bool = False,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (7.0, 3.5),
):
    """Forest plot of estimates; wider levels are drawn as thinner whiskers."""
    levels = sorted(float(lv) for lv in levels)
    tables = [coef_table(result, level=lv) for lv in levels]
    terms = [t for t in tables[0].index if include_intercept or t != "(Intercept)"]
    if not terms:
        raise ValueError("no coefficients to plot; set include_intercept=True")
    fig, ax = _new_axes(ax, figsize)
    ypos = np.arange(len(terms))[::-1]

    for k, (lv, tbl) in enumerate(zip(levels, tables)):
        sub = tbl.loc[terms]
        lw = max(1.0, 5.0 - 2.0 * k)
        ax.hlines(ypos, sub["ci_lower"], sub["ci_upper"], lw=lw, color=f"C{k}",
                  label=f"{100 * lv:g}% CI")
    ax.plot(tables[0].loc[terms, "estimate"], ypos, "o", color="black", zorder=5)
    ax.axvline(0.0, color="0.5", ls="--", lw=1)
    ax.set_yticks(ypos)
    ax.set_yticklabels(terms)
    ax.set_xlabel("estimate")
    ax.set_title(title or result.formula)
    ax.legend(loc="best", fontsize=8)
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


def plot_coverage(
    sim: dict,
    *,
    max_intervals: int = 100,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (6.5, 7.0),
):
    """Intervals from :func:`pystatdyn.inference.coverage_simulation`; misses in red."""
    lo = np.asarray(sim["lower"])[:max_intervals]
    hi = np.asarray(sim["upper"])[:max_intervals]
    est = np.asarray(sim["estimate"])[:max_intervals]
    covers = np.asarray(sim["covers"])[:max_intervals]
    fig, ax = _new_axes(ax, figsize)
    idx = np.arange(lo.size)

    colors = np.where(covers, "#4575b4", "#d73027")
    ax.hlines(idx, lo, hi, colors=colors, lw=1.5)
    ax.scatter(est, idx, s=6, c=colors, zorder=3)
    ax.axvline(sim["mu"], color="black", lw=1)
    ax.set_xlabel("interval for the mean")
    ax.set_ylabel("sample")
    ax.set_title(title or f"{100 * sim['level']:g}% t intervals (n={sim['n']})")
    _annotate_box(ax, [
        f"coverage = {sim['coverage']:.3f} over {sim['reps']} samples",
        f"missed (shown) = {int(np.count_nonzero(~covers))}",
    ])
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


# --------------------------------------------------------------------------------------
# Visualization pitfalls
# --------------------------------------------------------------------------------------
def plot_gallery(
    df: pd.DataFrame,
    x: str = "x",
    y: str = "y",
    by: str = "dataset",
    *,
    ncols: int = 4,
    fit_line: bool = True,
    annotate: bool = True,
    title: Optional[str] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    panel_size: Tuple[float, float] = (3.0, 2.6),
):
    """One scatter panel per group with shared axes and its summary statistics."""
    tbl = prepare_table(df, columns=[x, y, by], dropna=True)
    summary = summarize_xy(tbl, x, y, by=by)
    names = list(summary.index)
    ncols = max(1, min(int(ncols), len(names)))
    nrows = int(np.ceil(len(names) / ncols))
    fig, axes = plt.subplots(nrows, ncols, sharex=True, sharey=True, squeeze=False,
                             figsize=(panel_size[0] * ncols, panel_size[1] * nrows))
    _set_constrained_layout(fig)

    xg = np.linspace(float(tbl[x].min()), float(tbl[x].max()), 2)
    for ax, name in zip(axes.ravel(), names):
        sub = tbl[tbl[by] == name]
        st = summary.loc[name]
        ax.scatter(sub[x], sub[y], s=8, color="#2c7fb8", alpha=0.8)
        if fit_line and np.isfinite(st["slope"]):
            ax.plot(xg, st["intercept"] + st["slope"] * xg, color="#d95f0e", lw=1)
        ax.set_title(str(name), fontsize=10)
        if annotate:
            _annotate_box(ax, [
                f"mean x={st['mean_x']:.2f}  mean y={st['mean_y']:.2f}",
                f"sx={st['sd_x']:.2f}  sy={st['sd_y']:.2f}",
                f"r={st['corr']:.3f}",
            ], fontsize=7)
    for ax in axes.ravel()[len(names):]:
        ax.set_visible(False)
    if title:
        fig.suptitle(title)
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


def plot_simpson(
    df: pd.DataFrame,
    x: str = "x",
    y: str = "y",
    by: str = "group",
    *,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (7.0, 5.0),
):
    """Per-group fits (colored) against the pooled fit (dashed black)."""
    tbl = prepare_table(df, columns=[x, y, by], dropna=True)
    pooled = summarize_xy(tbl, x, y).iloc[0]
    groups = summarize_xy(tbl, x, y, by=by)
    fig, ax = _new_axes(ax, figsize)

    for i, (name, st) in enumerate(groups.iterrows()):
        sub = tbl[tbl[by] == name]
        ax.scatter(sub[x], sub[y], s=10, alpha=0.6, color=f"C{i}")
        xg = np.linspace(float(sub[x].min()), float(sub[x].max()), 2)
        ax.plot(xg, st["intercept"] + st["slope"] * xg, color=f"C{i}", lw=2,
                label=f"{name}: slope {st['slope']:+.2f}")
    xg = np.linspace(float(tbl[x].min()), float(tbl[x].max()), 2)
    ax.plot(xg, pooled["intercept"] + pooled["slope"] * xg, "k--", lw=2,
            label=f"pooled: slope {pooled['slope']:+.2f}")
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or "Simpson's paradox")
    ax.legend(loc="best", fontsize=8)
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


# --------------------------------------------------------------------------------------
# Dynamical systems
# --------------------------------------------------------------------------------------
def plot_flow_1d(
    system: FlowSystem,
    x_range: Tuple[float, float],
    *,
    n: int = 400,
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (7.0, 4.0),
):
    """
    Rate f(x) against x for a 1-D flow.

    Stable fixed points are filled, unstable ones open; arrows on the x-axis
    show the direction of flow between them.
    """
    if system.dim != 1:
        raise ValueError(f"plot_flow_1d needs a 1-D system, got dim={system.dim}")
    lo, hi = (float(v) for v in x_range)
    xs = np.linspace(lo, hi, int(n))
    f = rate_function(system)
    fx = f(xs)[0]
    fig, ax = _new_axes(ax, figsize)

    ax.plot(xs, fx, color="C0", lw=2)
    ax.axhline(0.0, color="black", lw=1)
    reports = analyze_system(system, domain=[(lo, hi)])
    for rep in reports:
        st = _fixed_point_style(rep)
        ax.scatter([rep.point[0]], [0.0], s=80, zorder=5, marker=st["marker"],
                   facecolors=st["facecolor"], edgecolors=st["edgecolor"])
    edges = [lo] + [r.point[0] for r in reports] + [hi]
    span = 0.04 * (hi - lo)
    for a, b in zip(edges[:-1], edges[1:]):
        mid = 0.5 * (a + b)
        direction = np.sign(f(mid)[0])
        if direction != 0 and (b - a) > 2 * span:
            ax.annotate("", xy=(mid + direction * span, 0.0), xytext=(mid - direction * span, 0.0),
                        arrowprops=dict(arrowstyle="->", color="C3", lw=2))

    var = system.variables[0].name
    ax.set_xlabel(var)
    ax.set_ylabel(f"d{var}/dt")
    ax.set_title(title or f"{system.name}: phase line")
    _annotate_box(ax, [f"{var}*={r.point[0]:.4g} ({r.kind})" for r in reports])
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig


def plot_phase_portrait(
    system: FlowSystem,
    x_range: Tuple[float, float],
    y_range: Tuple[float, float],
    *,
    n: int = 40,
    density: float = 1.2,
    nullclines: bool = True,
    initial_conditions: Optional[Sequence[Sequence[float]]] = None,
    t_span: Tuple[float, float] = (0.0, 50.0),
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
    show: bool = True,
    save_path: Optional[str] = None,
    dpi: int = 300,
    transparent: bool = False,
    figsize: Tuple[float, float] = (6.5, 6.0),
):
    """
    Streamlines, nullclines (zero contours of each rate) and classified fixed
    points of a 2-D flow, with optional integrated trajectories.
    """
    if system.dim != 2:
        raise ValueError(f"plot_phase_portrait needs a 2-D system, got dim={system.dim}")
    (x0, x1), (y0, y1) = (tuple(map(float, x_range)), tuple(map(float, y_range)))
    X, Y = np.meshgrid(np.linspace(x0, x1, int(n)), np.linspace(y0, y1, int(n)))
    U, V = rate_function(system)(X, Y)
    fig, ax = _new_axes(ax, figsize)

    speed = np.hypot(U, V)
    ax.streamplot(X, Y, U, V, density=density, color=speed, cmap="Greys", linewidth=0.8)

    xname, yname = (v.name for v in system.variables)
    handles = []
    if nullclines:
        for Z, color, label in ((U, "C0", f"d{xname}/dt = 0"), (V, "C1", f"d{yname}/dt = 0")):
            if np.nanmin(Z) <= 0.0 <= np.nanmax(Z):
                ax.contour(X, Y, Z, levels=[0.0], colors=color, linewidths=2)
                handles.append(Line2D([], [], color=color, lw=2, label=label))

    for ic in initial_conditions or ():
        tr = trajectory(system, ic, t_span)
        ax.plot(tr["y"][0], tr["y"][1], color="C2", lw=1.5)
        ax.plot([ic[0]], [ic[1]], "o", color="C2", ms=4)

    reports = analyze_system(system, domain=[(x0, x1), (y0, y1)])
    for rep in reports:
        st = _fixed_point_style(rep)
        ax.scatter([rep.point[0]], [rep.point[1]], s=90, zorder=6, marker=st["marker"],
                   facecolors=st["facecolor"], edgecolors=st["edgecolor"])
    _annotate_box(ax, [f"({r.point[0]:.3g}, {r.point[1]:.3g}): {r.kind}" for r in reports])

    ax.set_xlim(x0, x1)
    ax.set_ylim(y0, y1)
    ax.set_xlabel(xname)
    ax.set_ylabel(yname)
    ax.set_title(title or f"{system.name}: phase portrait")
    if handles:
        ax.legend(handles=handles, loc="lower right", fontsize=8)
    _maybe_show_or_save(fig, save_path, show, dpi=dpi, transparent=transparent)
    return fig
