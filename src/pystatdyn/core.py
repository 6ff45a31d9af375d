#!/usr/bin/env python3
"""
pystatdyn.core
==============
Low-level, stateless helpers shared by the rest of the pystatdyn package.

This module is intentionally minimal: it contains only argument validation,
table normalization, and label formatting. Everything that fits models,
computes intervals or analyzes dynamical systems lives in:

    • pystatdyn.datasets    — example tables and CSV/URL loading
    • pystatdyn.regression  — GLM / OLS fitting and coefficient tables
    • pystatdyn.inference   — confidence intervals and p-values
    • pystatdyn.dynamics    — fixed points, nullclines, Jacobians
    • pystatdyn.stability   — eigenvalue classification
    • pystatdyn.plot        — visualization utilities
    • pystatdyn.demos       — one-shot demonstrations used by the CLI
"""

from __future__ import annotations
import re
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

__all__ = [
    "prepare_table",
    "design_label",
    "INTERCEPT_LABEL",
]

INTERCEPT_LABEL = "(Intercept)"

_TREATMENT_RE = re.compile(r"^(?P<var>[^\[]+)\[T\.(?P<level>.+)\]$")
_CATEGORICAL_RE = re.compile(r"^C\(\s*(?P<var>[^,()]+)(?:,.*)?\)$")


# ---------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------
def _ensure_int(name: str, val: Any, *, minimum: int = 1) -> int:
    try:
        iv = int(val)
    except Exception:
        raise ValueError(f"{name} must be convertible to int, got {type(val)}")
    if isinstance(val, (float, np.floating)) and float(val) != iv:
        raise ValueError(f"{name} must be an integer, got {val!r}")
    if iv < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {iv}")
    return iv


def _ensure_float(name: str, val: Any, *, positive: bool = False) -> float:
    try:
        fv = float(val)
    except Exception:
        raise ValueError(f"{name} must be convertible to float, got {type(val)}")
    if not np.isfinite(fv):
        raise ValueError(f"{name} must be finite.")
    if positive and fv <= 0:
        raise ValueError(f"{name} must be > 0, got {fv}")
    return fv


def _ensure_level(level: Any, name: str = "level") -> float:
    """Confidence level as a float strictly inside (0, 1)."""
    lv = _ensure_float(name, level)
    if not (0.0 < lv < 1.0):
        raise ValueError(f"{name} must be in (0, 1), got {lv}")
    return lv


def _ensure_choice(name: str, val: Any, choices: Iterable[str]) -> str:
    sv = str(val).lower()
    allowed = tuple(choices)
    if sv not in allowed:
        raise ValueError(f"{name} must be one of {set(allowed)}, got {val!r}")
    return sv


def _as_1d(name: str, x: Any, *, min_size: int = 1) -> np.ndarray:
    """Finite 1-D float array; NaNs are dropped."""
    arr = np.asarray(x, dtype=float).ravel()
    arr = arr[np.isfinite(arr)]
    if arr.size < min_size:
        raise ValueError(f"{name} needs at least {min_size} finite values, got {arr.size}")
    return arr


# ---------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------
def prepare_table(
    data: Any,
    *,
    columns: Optional[Sequence[str]] = None,
    dropna: bool = False,
    categorical: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Normalize tabular input into a fresh ``pandas.DataFrame``.

    Parameters
    ----------
    data : DataFrame, mapping or str
        A DataFrame (copied), a mapping of column name -> sequence, or a
        path/URL string which is read through :func:`pystatdyn.datasets.load_table`.
        Strings of the form ``builtin:NAME`` select one of the bundled tables.
    columns : sequence of str, optional
        Columns that must be present. When ``dropna`` is set, only these
        columns are considered for missing values.
    dropna : bool, default False
        Drop rows with missing values (restricted to ``columns`` if given).
    categorical : sequence of str, optional
        Columns converted to ``category`` dtype.

    Returns
    -------
    DataFrame
        A copy that callers may mutate freely.

    Raises
    ------
    TypeError
        Unsupported input type.
    KeyError
        A required column is missing.
    ValueError
        The table is empty after missing-value removal.
    """
    if isinstance(data, pd.DataFrame):
        df = data.copy()
    elif isinstance(data, Mapping):
        df = pd.DataFrame(dict(data))
    elif isinstance(data, str):
        from .datasets import load_table
        df = load_table(data)
    else:
        raise TypeError(
            "data must be a pandas.DataFrame, a mapping of columns, or a path/URL string; "
            f"got {type(data).__name__}"
        )

    if columns is not None:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise KeyError(f"Missing column(s): {missing}. Available: {list(df.columns)}")

    if dropna:
        subset = list(columns) if columns is not None else None
        df = df.dropna(subset=subset).reset_index(drop=True)
        if df.empty:
            raise ValueError("table is empty after dropping missing values")

    for col in categorical or ():
        if col not in df.columns:
            raise KeyError(f"Missing column: {col}. Available: {list(df.columns)}")
        df[col] = df[col].astype("category")

    return df


def _split_interaction(term: str) -> list:
    """Split ``a:b`` on top-level colons only (not inside C(...) or [...])."""
    parts, depth, start = [], 0, 0
    for i, ch in enumerate(term):
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == ":" and depth == 0:
            parts.append(term[start:i])
            start = i + 1
    parts.append(term[start:])
    return parts


def _factor_label(factor: str) -> str:
    m = _TREATMENT_RE.match(factor)
    if m is None:
        return factor
    var = m.group("var")
    cm = _CATEGORICAL_RE.match(var)
    if cm is not None:
        var = cm.group("var").strip()
    return f"{var}{m.group('level')}"


def design_label(term: str) -> str:
    """
    Short, R-style label for a formula design term.

      'Intercept'                         -> '(Intercept)'
      'sex[T.M]'                          -> 'sexM'
      'C(species)[T.DO]'                  -> 'speciesDO'
      "C(sex, Treatment('M'))[T.F]"       -> 'sexF'
      'sex[T.M]:species_id[T.DO]'         -> 'sexM:species_idDO'
      'weight'                            -> 'weight'
    """
    term = str(term)
    if term == "Intercept":
        return INTERCEPT_LABEL
    return ":".join(_factor_label(f) for f in _split_interaction(term))
