#!/usr/bin/env python3
"""
Example tables for the regression, inference and visualization units.

Public API:
- load_table(source, **read_csv_kwargs)     CSV from disk/URL or 'builtin:NAME'
- trapping_records(n=2000, seed=42)         animal-trapping survey records
- co2_uptake(seed=7)                        CO2 uptake of grass plants
- anscombe_quartet()                        the four published Anscombe sets
- datasaurus_like(shapes=None, n=142, ...)  same summary stats, different shapes
- simpson_paradox(n_groups=4, ...)          pooled trend reverses within groups
- summarize_xy(df, x, y, by=None)           per-group summary statistics

All generators are deterministic for a given seed and return a fresh
``pandas.DataFrame`` on every call.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .core import _ensure_float, _ensure_int, prepare_table

__all__ = [
    "load_table", "BUILTIN_TABLES",
    "trapping_records", "co2_uptake", "anscombe_quartet",
    "datasaurus_like", "DATASAURUS_SHAPES", "DATASAURUS_TARGET",
    "simpson_paradox", "summarize_xy",
]

_URL_PREFIXES = ("http://", "https://", "ftp://", "s3://")

# mean x, mean y, sample SD x, sample SD y, Pearson r
DATASAURUS_TARGET: Tuple[float, float, float, float, float] = (54.26, 47.83, 16.76, 26.93, -0.06)


# ------------------------- helpers -------------------------

def _coerce_rng(seed: Optional[int] = None, rng: Optional[np.random.Generator] = None) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(seed)


def _mask_missing(values: np.ndarray, frac: float, rng: np.random.Generator) -> np.ndarray:
    out = np.asarray(values, dtype=object if values.dtype.kind in "OU" else float).copy()
    hit = rng.random(out.size) < frac
    out[hit] = None if out.dtype == object else np.nan
    return out


# ------------------------- loading -------------------------

def load_table(source: str | Path, **read_csv_kwargs: Any) -> pd.DataFrame:
    """
    Read a CSV-like table.

    ``source`` may be a local path, an http(s)/ftp URL (handed straight to
    ``pandas.read_csv``), or ``builtin:NAME`` for one of :data:`BUILTIN_TABLES`.
    Column names are stripped of surrounding whitespace and fully empty rows
    are dropped.
    """
    src = str(source)
    if src.startswith("builtin:"):
        name = src.split(":", 1)[1].strip().lower()
        if name not in BUILTIN_TABLES:
            raise ValueError(f"Unknown builtin table {name!r}. Available: {sorted(BUILTIN_TABLES)}")
        return BUILTIN_TABLES[name]()

    if not src.lower().startswith(_URL_PREFIXES):
        path = Path(src).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Dataset not found: {path}")
        src = str(path)

    df = pd.read_csv(src, **read_csv_kwargs)
    df.columns = [str(c).strip() for c in df.columns]
    return df.dropna(how="all").reset_index(drop=True)


# ------------------------- survey-style tables -------------------------

# species_id -> (hindfoot mean [mm], weight mean [g], relative abundance)
_SPECIES = {
    "DM": (36.0, 43.0, 0.34),
    "DO": (35.5, 48.9, 0.10),
    "PP": (21.6, 17.2, 0.18),
    "PB": (26.1, 32.0, 0.12),
    "OT": (20.3, 24.2, 0.08),
    "RM": (16.4, 10.6, 0.10),
    "NL": (32.3, 159.2, 0.08),
}


def trapping_records(n: int = 2000, seed: Optional[int] = 42,
                     missing_frac: float = 0.04) -> pd.DataFrame:
    """
    Synthetic small-mammal trapping survey.

    Columns: ``record_id, year, plot_id, species_id, sex, hindfoot_length, weight``.
    Males are slightly larger than females within each species. A fraction
    ``missing_frac`` of ``sex``, ``hindfoot_length`` and ``weight`` is blanked
    to mimic field records.
    """
    n = _ensure_int("n", n)
    missing_frac = _ensure_float("missing_frac", missing_frac)
    if not (0.0 <= missing_frac < 1.0):
        raise ValueError("missing_frac must be in [0, 1)")
    rng = _coerce_rng(seed)

    names = np.array(list(_SPECIES))
    probs = np.array([v[2] for v in _SPECIES.values()])
    species = rng.choice(names, size=n, p=probs / probs.sum())
    sex = rng.choice(np.array(["F", "M"]), size=n)
    male = (sex == "M").astype(float)

    hf_mu = np.array([_SPECIES[s][0] for s in species])
    wt_mu = np.array([_SPECIES[s][1] for s in species])
    hindfoot = np.round(hf_mu + 0.9 * male + rng.normal(0.0, 1.6, n))
    weight = np.round(np.clip(wt_mu * (1.0 + 0.06 * male) + rng.normal(0.0, 0.15, n) * wt_mu, 4.0, None))

    return pd.DataFrame({
        "record_id": np.arange(1, n + 1),
        "year": rng.integers(1977, 2003, size=n),
        "plot_id": rng.integers(1, 25, size=n),
        "species_id": species,
        "sex": _mask_missing(sex, missing_frac, rng),
        "hindfoot_length": _mask_missing(hindfoot, missing_frac, rng).astype(float),
        "weight": _mask_missing(weight, missing_frac, rng).astype(float),
    })


_CO2_CONC = (95, 175, 250, 350, 500, 675, 1000)
# (Type, Treatment) -> asymptotic uptake [umol/m^2/s]
_CO2_ASYM = {
    ("Quebec", "nonchilled"): 41.0,
    ("Quebec", "chilled"): 38.0,
    ("Mississippi", "nonchilled"): 31.0,
    ("Mississippi", "chilled"): 18.5,
}


def co2_uptake(seed: Optional[int] = 7) -> pd.DataFrame:
    """
    CO2 uptake of 12 grass plants at 7 ambient concentrations.

    uptake = asym * (1 - exp(-rate * (conc - c0))) with a per-plant offset
    and measurement noise; ``asym`` depends on plant origin (``Type``) and
    ``Treatment``.
    """
    rng = _coerce_rng(seed)
    rate, c0 = 0.0105, 45.0
    rows = []
    for (ptype, treat), asym in _CO2_ASYM.items():
        prefix = ptype[0] + ("n" if treat == "nonchilled" else "c")
        for k in range(1, 4):
            plant_asym = asym + rng.normal(0.0, 1.5)
            for conc in _CO2_CONC:
                up = plant_asym * (1.0 - np.exp(-rate * (conc - c0))) + rng.normal(0.0, 0.8)
                rows.append((f"{prefix}{k}", ptype, treat, float(conc), round(max(up, 0.1), 1)))
    return pd.DataFrame(rows, columns=["Plant", "Type", "Treatment", "conc", "uptake"])


# ------------------------- visualization pitfalls -------------------------

_ANSCOMBE_X = [10, 8, 13, 9, 11, 14, 6, 4, 12, 7, 5]
_ANSCOMBE = {
    "I": (_ANSCOMBE_X, [8.04, 6.95, 7.58, 8.81, 8.33, 9.96, 7.24, 4.26, 10.84, 4.82, 5.68]),
    "II": (_ANSCOMBE_X, [9.14, 8.14, 8.74, 8.77, 9.26, 8.10, 6.13, 3.10, 9.13, 7.26, 4.74]),
    "III": (_ANSCOMBE_X, [7.46, 6.77, 12.74, 7.11, 7.81, 8.84, 6.08, 5.39, 8.15, 6.42, 5.73]),
    "IV": ([8, 8, 8, 8, 8, 8, 8, 19, 8, 8, 8],
           [6.58, 5.76, 7.71, 8.84, 8.47, 7.04, 5.25, 12.50, 5.56, 7.91, 6.89]),
}


def anscombe_quartet() -> pd.DataFrame:
    """Anscombe's (1973) quartet in long form: ``dataset, x, y``."""
    frames = [
        pd.DataFrame({"dataset": name, "x": np.asarray(xs, float), "y": np.asarray(ys, float)})
        for name, (xs, ys) in _ANSCOMBE.items()
    ]
    return pd.concat(frames, ignore_index=True)


def _ring(rng, n, radius, center=(0.5, 0.5)):
    theta = rng.uniform(0.0, 2.0 * np.pi, n)
    return center[0] + radius * np.cos(theta), center[1] + radius * np.sin(theta)


def _shape_circle(rng, n):
    return _ring(rng, n, 0.4)


def _shape_bullseye(rng, n):
    inner = n // 2
    x1, y1 = _ring(rng, inner, 0.18)
    x2, y2 = _ring(rng, n - inner, 0.40)
    return np.concatenate([x1, x2]), np.concatenate([y1, y2])


def _shape_star(rng, n):
    theta = rng.uniform(0.0, 2.0 * np.pi, n)
    r = 0.27 + 0.15 * np.cos(5.0 * theta)
    return 0.5 + r * np.cos(theta), 0.5 + r * np.sin(theta)


def _shape_x(rng, n):
    t = rng.uniform(-1.0, 1.0, n)
    sign = rng.choice([-1.0, 1.0], n)
    return 0.5 + 0.4 * t, 0.5 + sign * 0.4 * t


def _levels(rng, n, levels):
    return rng.choice(np.asarray(levels, float), n)


def _shape_h_lines(rng, n):
    return rng.uniform(0.0, 1.0, n), _levels(rng, n, (0.2, 0.4, 0.6, 0.8))


def _shape_v_lines(rng, n):
    return _levels(rng, n, (0.2, 0.4, 0.6, 0.8)), rng.uniform(0.0, 1.0, n)


def _shape_wide_lines(rng, n):
    return _levels(rng, n, (0.25, 0.75)), rng.uniform(0.0, 1.0, n)


def _shape_high_lines(rng, n):
    return rng.uniform(0.0, 1.0, n), _levels(rng, n, (0.25, 0.75))


def _shape_slant_up(rng, n):
    x = rng.uniform(0.0, 1.0, n)
    return x, x + _levels(rng, n, (-0.3, 0.0, 0.3))


def _shape_slant_down(rng, n):
    x = rng.uniform(0.0, 1.0, n)
    return x, -x + _levels(rng, n, (0.7, 1.0, 1.3))


def _shape_dots(rng, n):
    grid = np.array([(gx, gy) for gx in (0.2, 0.5, 0.8) for gy in (0.2, 0.5, 0.8)])
    idx = rng.integers(0, len(grid), n)
    return grid[idx, 0] + rng.normal(0.0, 0.02, n), grid[idx, 1] + rng.normal(0.0, 0.02, n)


def _shape_away(rng, n):
    return rng.uniform(0.0, 1.0, n), rng.uniform(0.0, 1.0, n)


DATASAURUS_SHAPES: Dict[str, Callable[[np.random.Generator, int], Tuple[np.ndarray, np.ndarray]]] = {
    "away": _shape_away,
    "bullseye": _shape_bullseye,
    "circle": _shape_circle,
    "dots": _shape_dots,
    "h_lines": _shape_h_lines,
    "high_lines": _shape_high_lines,
    "slant_down": _shape_slant_down,
    "slant_up": _shape_slant_up,
    "star": _shape_star,
    "v_lines": _shape_v_lines,
    "wide_lines": _shape_wide_lines,
    "x_shape": _shape_x,
}


def _match_moments(x: np.ndarray, y: np.ndarray,
                   target: Tuple[float, float, float, float, float]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Affine map of (x, y) onto the target means, sample SDs and correlation.

    Whitening with the Cholesky factor of the sample covariance and then
    coloring with the Cholesky factor of the target covariance reproduces the
    target second moments exactly; the shape is only sheared and scaled.
    """
    mx, my, sx, sy, r = (float(v) for v in target)
    if sx <= 0 or sy <= 0:
        raise ValueError("target standard deviations must be > 0")
    if not (-1.0 < r < 1.0):
        raise ValueError("target correlation must be in (-1, 1)")

    X = np.column_stack([x, y]).astype(float)
    X -= X.mean(axis=0)
    L = np.linalg.cholesky(np.cov(X, rowvar=False, ddof=1))
    Z = np.linalg.solve(L, X.T).T
    S = np.array([[sx * sx, r * sx * sy], [r * sx * sy, sy * sy]])
    out = Z @ np.linalg.cholesky(S).T
    return out[:, 0] + mx, out[:, 1] + my


def datasaurus_like(
    shapes: Optional[Sequence[str]] = None,
    *,
    n: int = 142,
    seed: Optional[int] = 1,
    jitter: float = 0.01,
    target: Tuple[float, float, float, float, float] = DATASAURUS_TARGET,
) -> pd.DataFrame:
    """
    A dozen visually distinct point clouds sharing identical summary statistics.

    Every shape in ``shapes`` (default: all of :data:`DATASAURUS_SHAPES`) is
    drawn with ``n`` points and mapped onto ``target`` = (mean x, mean y,
    SD x, SD y, r). Returns long form ``dataset, x, y``.
    """
    n = _ensure_int("n", n, minimum=3)
    jitter = _ensure_float("jitter", jitter)
    rng = _coerce_rng(seed)
    names = list(DATASAURUS_SHAPES) if shapes is None else [str(s) for s in shapes]
    unknown = [s for s in names if s not in DATASAURUS_SHAPES]
    if unknown:
        raise ValueError(f"Unknown shape(s) {unknown}. Available: {sorted(DATASAURUS_SHAPES)}")

    frames = []
    for name in names:
        x, y = DATASAURUS_SHAPES[name](rng, n)
        x = np.asarray(x, float) + rng.normal(0.0, jitter, n)
        y = np.asarray(y, float) + rng.normal(0.0, jitter, n)
        x, y = _match_moments(x, y, target)
        frames.append(pd.DataFrame({"dataset": name, "x": x, "y": y}))
    return pd.concat(frames, ignore_index=True)


def simpson_paradox(
    n_groups: int = 4,
    n_per_group: int = 50,
    *,
    within_slope: float = -1.0,
    between_slope: float = 2.0,
    spacing: float = 3.0,
    spread: float = 1.0,
    noise: float = 0.5,
    seed: Optional[int] = 3,
) -> pd.DataFrame:
    """
    Grouped data whose pooled trend has the opposite sign of the group trends.

    Group ``g`` is centered at (g*spacing, between_slope*g*spacing); inside a
    group, y = center_y + within_slope*(x - center_x) + noise.
    Returns ``group, x, y``.

    The reversal holds in expectation: the pooled covariance is roughly
    ``within_slope*spread**2 + between_slope*spacing**2*(n_groups**2 - 1)/12``
    and must have the opposite sign of ``within_slope``. Combinations that
    cannot reverse raise ``ValueError``; a very noisy draw near that boundary
    may still fail to reverse.
    """
    n_groups = _ensure_int("n_groups", n_groups, minimum=2)
    n_per_group = _ensure_int("n_per_group", n_per_group, minimum=3)
    within_slope = _ensure_float("within_slope", within_slope)
    between_slope = _ensure_float("between_slope", between_slope)
    spacing = _ensure_float("spacing", spacing, positive=True)
    spread = _ensure_float("spread", spread, positive=True)
    noise = _ensure_float("noise", noise)

    pooled_cov = within_slope * spread ** 2 + between_slope * spacing ** 2 * (n_groups ** 2 - 1) / 12.0
    if within_slope == 0.0 or np.sign(pooled_cov) != -np.sign(within_slope):
        raise ValueError(
            f"within_slope={within_slope:g}, between_slope={between_slope:g}, spacing={spacing:g} "
            f"and spread={spread:g} give no sign reversal; the slopes need opposite signs and "
            f"|between_slope|*spacing**2*(n_groups**2-1)/12 must exceed |within_slope|*spread**2."
        )
    rng = _coerce_rng(seed)

    frames = []
    for g in range(n_groups):
        cx = g * spacing
        cy = between_slope * cx
        x = cx + rng.normal(0.0, spread, n_per_group)
        y = cy + within_slope * (x - cx) + rng.normal(0.0, noise, n_per_group)
        frames.append(pd.DataFrame({"group": chr(ord("A") + g) if g < 26 else f"G{g}", "x": x, "y": y}))
    return pd.concat(frames, ignore_index=True)


# ------------------------- summaries -------------------------

def _xy_stats(x: np.ndarray, y: np.ndarray) -> Dict[str, float]:
    n = x.size
    sx = float(np.std(x, ddof=1)) if n > 1 else float("nan")
    sy = float(np.std(y, ddof=1)) if n > 1 else float("nan")
    if n > 1 and sx > 0 and sy > 0:
        r = float(np.corrcoef(x, y)[0, 1])
        slope = float(np.cov(x, y, ddof=1)[0, 1] / (sx * sx))
    else:
        r = slope = float("nan")
    return {
        "n": int(n),
        "mean_x": float(np.mean(x)),
        "mean_y": float(np.mean(y)),
        "sd_x": sx,
        "sd_y": sy,
        "corr": r,
        "slope": slope,
        "intercept": float(np.mean(y) - slope * np.mean(x)),
    }


def summarize_xy(df: pd.DataFrame, x: str, y: str, by: Optional[str] = None) -> pd.DataFrame:
    """
    Summary statistics of two columns, optionally per group.

    Returns one row per group (index: group label, or ``'all'``) with
    ``n, mean_x, mean_y, sd_x, sd_y, corr, slope, intercept``. Rows with a
    missing ``x`` or ``y`` are ignored.
    """
    cols = [x, y] + ([by] if by is not None else [])
    tbl = prepare_table(df, columns=cols, dropna=True)
    if by is None:
        stats = {"all": _xy_stats(tbl[x].to_numpy(float), tbl[y].to_numpy(float))}
    else:
        stats = {
            key: _xy_stats(sub[x].to_numpy(float), sub[y].to_numpy(float))
            for key, sub in tbl.groupby(by, sort=True, observed=True)
        }
    out = pd.DataFrame.from_dict(stats, orient="index")
    out.index.name = by or "group"
    return out


BUILTIN_TABLES: Dict[str, Callable[[], pd.DataFrame]] = {
    "trapping": trapping_records,
    "co2": co2_uptake,
    "anscombe": anscombe_quartet,
    "datasaurus": datasaurus_like,
    "simpson": simpson_paradox,
}
