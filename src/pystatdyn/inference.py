#!/usr/bin/env python3
"""
Confidence intervals and p-values.

Intervals are two-sided and symmetric on the estimate scale unless stated
otherwise; ``level`` is the nominal coverage (0.95 -> 95% interval). The
critical value grows strictly with ``level``, so for the same data a 95%
interval is always strictly narrower than the 99% one.

Reference formulas:
  t interval    : x̄ ± t_{1-α/2, n-1} · s/√n
  z interval    : x̄ ± z_{1-α/2} · σ/√n
  Wald interval : θ̂ ± c_{1-α/2} · se(θ̂)   (c from t_df or N(0,1))
  Wilson        : (p̂ + z²/2n ± z·√(p̂(1-p̂)/n + z²/4n²)) / (1 + z²/n)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
from scipy import stats

from .core import _as_1d, _ensure_choice, _ensure_float, _ensure_int, _ensure_level

__all__ = [
    "Interval", "TTestResult",
    "critical_value", "t_interval", "z_interval", "estimate_interval",
    "proportion_interval", "p_value", "one_sample_t_test",
    "coverage_simulation",
]

_ALTERNATIVES = ("two-sided", "greater", "less")


@dataclass(frozen=True)
class Interval:
    lower: float
    upper: float
    estimate: float
    level: float
    method: str = "t"

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def margin(self) -> float:
        return 0.5 * self.width

    def contains(self, value: float) -> bool:
        return self.lower <= float(value) <= self.upper

    def as_dict(self) -> Dict[str, float]:
        return {
            "estimate": self.estimate, "lower": self.lower, "upper": self.upper,
            "level": self.level, "width": self.width, "method": self.method,
        }


@dataclass(frozen=True)
class TTestResult:
    statistic: float
    df: Optional[float]
    p_value: float
    alternative: str
    estimate: float
    interval: Optional[Interval] = field(default=None)


def critical_value(level: float, df: Optional[float] = None) -> float:
    """Two-sided critical value: t_{1-α/2, df} if ``df`` is given, else z_{1-α/2}."""
    level = _ensure_level(level)
    q = 0.5 + 0.5 * level
    if df is None:
        return float(stats.norm.ppf(q))
    df = _ensure_float("df", df, positive=True)
    return float(stats.t.ppf(q, df))


def estimate_interval(estimate: float, std_error: float, level: float = 0.95,
                      df: Optional[float] = None) -> Interval:
    """Wald interval around an estimate with standard error ``std_error``."""
    estimate = _ensure_float("estimate", estimate)
    std_error = _ensure_float("std_error", std_error)
    if std_error < 0:
        raise ValueError("std_error must be >= 0")
    c = critical_value(level, df)
    return Interval(estimate - c * std_error, estimate + c * std_error, estimate,
                    float(level), "t" if df is not None else "z")


def t_interval(x: Any, level: float = 0.95) -> Interval:
    """Student-t interval for the mean of ``x`` (NaNs ignored)."""
    arr = _as_1d("x", x, min_size=2)
    n = arr.size
    se = float(np.std(arr, ddof=1) / np.sqrt(n))
    return estimate_interval(float(np.mean(arr)), se, level, df=n - 1)


def z_interval(x: Any, sigma: float, level: float = 0.95) -> Interval:
    """Normal interval for the mean of ``x`` with known population SD ``sigma``."""
    arr = _as_1d("x", x, min_size=1)
    sigma = _ensure_float("sigma", sigma, positive=True)
    return estimate_interval(float(np.mean(arr)), sigma / np.sqrt(arr.size), level)


def proportion_interval(successes: int, n: int, level: float = 0.95,
                        method: str = "wilson") -> Interval:
    """Interval for a binomial proportion (Wilson score or Wald)."""
    n = _ensure_int("n", n)
    successes = _ensure_int("successes", successes, minimum=0)
    if successes > n:
        raise ValueError(f"successes ({successes}) cannot exceed n ({n})")
    method = _ensure_choice("method", method, ("wilson", "wald"))
    p = successes / n
    z = critical_value(level)
    if method == "wald":
        m = z * np.sqrt(p * (1.0 - p) / n)
        return Interval(max(0.0, p - m), min(1.0, p + m), p, float(level), "wald")
    denom = 1.0 + z * z / n
    center = (p + z * z / (2.0 * n)) / denom
    half = z * np.sqrt(p * (1.0 - p) / n + z * z / (4.0 * n * n)) / denom
    return Interval(float(center - half), float(center + half), p, float(level), "wilson")


def p_value(statistic: float, df: Optional[float] = None,
            alternative: str = "two-sided") -> float:
    """
    p-value of a t (``df`` given) or z statistic.

    'greater' tests H1: θ > θ0, 'less' tests H1: θ < θ0.
    """
    statistic = _ensure_float("statistic", statistic)
    alternative = _ensure_choice("alternative", alternative, _ALTERNATIVES)
    dist = stats.norm if df is None else stats.t(_ensure_float("df", df, positive=True))
    if alternative == "greater":
        return float(dist.sf(statistic))
    if alternative == "less":
        return float(dist.cdf(statistic))
    return float(min(1.0, 2.0 * dist.sf(abs(statistic))))


def one_sample_t_test(x: Any, mu0: float = 0.0, alternative: str = "two-sided",
                      level: float = 0.95) -> TTestResult:
    """One-sample t test of H0: mean(x) == mu0, with the matching t interval."""
    arr = _as_1d("x", x, min_size=2)
    mu0 = _ensure_float("mu0", mu0)
    n = arr.size
    mean = float(np.mean(arr))
    se = float(np.std(arr, ddof=1) / np.sqrt(n))
    if se == 0.0:
        raise ValueError("x has zero variance; the t statistic is undefined")
    t = (mean - mu0) / se
    return TTestResult(
        statistic=float(t),
        df=float(n - 1),
        p_value=p_value(t, n - 1, alternative),
        alternative=alternative,
        estimate=mean,
        interval=t_interval(arr, level),
    )


def coverage_simulation(
    n: int = 20,
    reps: int = 100,
    level: float = 0.95,
    *,
    mu: float = 0.0,
    sigma: float = 1.0,
    seed: Optional[int] = 42,
    rng: Optional[np.random.Generator] = None,
) -> Dict[str, Any]:
    """
    Repeated-sampling demonstration of what "95% confidence" means.

    Draws ``reps`` samples of size ``n`` from N(mu, sigma²), builds a t
    interval from each and records whether it covers ``mu``.

    Returns
    -------
    dict with keys
      'lower', 'upper', 'estimate' : (reps,) arrays
      'covers'                     : (reps,) bool array
      'coverage'                   : empirical coverage fraction
      'level', 'n', 'reps', 'mu', 'sigma', 'seed'
    """
    n = _ensure_int("n", n, minimum=2)
    reps = _ensure_int("reps", reps)
    level = _ensure_level(level)
    mu = _ensure_float("mu", mu)
    sigma = _ensure_float("sigma", sigma, positive=True)
    if not isinstance(rng, np.random.Generator):
        rng = np.random.default_rng(seed)

    samples = rng.normal(mu, sigma, size=(reps, n))
    means = samples.mean(axis=1)
    se = samples.std(axis=1, ddof=1) / np.sqrt(n)
    c = critical_value(level, df=n - 1)
    lower, upper = means - c * se, means + c * se
    covers = (lower <= mu) & (mu <= upper)

    return {
        "lower": lower, "upper": upper, "estimate": means,
        "covers": covers, "coverage": float(np.mean(covers)),
        "level": level, "n": n, "reps": reps,
        "mu": mu, "sigma": sigma, "seed": seed,
    }
