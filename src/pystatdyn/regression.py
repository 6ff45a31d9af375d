#!/usr/bin/env python3
"""
Linear and logistic regression with generalized linear models.

Fitting is delegated to the statsmodels formula interface; this module adds
family/link resolution, response coercion for binomial models, R-style
coefficient tables and a plain linear-predictor evaluator used to read
predictions directly off a coefficient table.

Public API:
- fit_model(data, formula, family="gaussian", link=None, method="glm", ...)
- FitResult            (dataclass wrapping the statsmodels results)
- coef_table(result, level=0.95)
- linear_predictor(coefs, predictors)
- link_function(mu, link) / inverse_link(eta, link) / logistic(x)
- odds_ratios(result, level=0.95)
"""

from __future__ import annotations
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ConvergenceWarning, PerfectSeparationWarning
from scipy import special, stats

from .core import INTERCEPT_LABEL, _ensure_choice, _ensure_level, design_label, prepare_table

__all__ = [
    "FAMILIES", "LINKS",
    "FitResult", "fit_model", "coef_table",
    "linear_predictor", "link_function", "inverse_link", "logistic",
    "odds_ratios",
]

# family -> canonical link
FAMILIES: Dict[str, str] = {
    "gaussian": "identity",
    "binomial": "logit",
    "poisson": "log",
    "gamma": "inverse",
}

LINKS = ("identity", "logit", "probit", "cloglog", "log", "inverse")

_INTERCEPT_KEYS = (INTERCEPT_LABEL, "Intercept", "intercept", "const")


# ---------------------------------------------------------------------
# Link functions
# ---------------------------------------------------------------------
def logistic(x):
    """Inverse logit, 1 / (1 + exp(-x))."""
    return special.expit(np.asarray(x, dtype=float))


def link_function(mu, link: str):
    """g(mu): map the response mean onto the linear-predictor scale."""
    link = _ensure_choice("link", link, LINKS)
    mu = np.asarray(mu, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        if link == "identity":
            return mu
        if link == "logit":
            return special.logit(mu)
        if link == "probit":
            return stats.norm.ppf(mu)
        if link == "cloglog":
            return np.log(-np.log1p(-mu))
        if link == "log":
            return np.log(mu)
        return 1.0 / mu


def inverse_link(eta, link: str):
    """g^-1(eta): map a linear predictor back onto the response scale."""
    link = _ensure_choice("link", link, LINKS)
    eta = np.asarray(eta, dtype=float)
    with np.errstate(divide="ignore", over="ignore"):
        if link == "identity":
            return eta
        if link == "logit":
            return special.expit(eta)
        if link == "probit":
            return stats.norm.cdf(eta)
        if link == "cloglog":
            return -np.expm1(-np.exp(eta))
        if link == "log":
            return np.exp(eta)
        return 1.0 / eta


def _sm_link(link: str):
    links = sm.families.links
    return {
        "identity": links.Identity,
        "logit": links.Logit,
        "probit": links.Probit,
        "cloglog": links.CLogLog,
        "log": links.Log,
        "inverse": links.InversePower,
    }[link]()


def _sm_family(family: str, link: str):
    fam = {
        "gaussian": sm.families.Gaussian,
        "binomial": sm.families.Binomial,
        "poisson": sm.families.Poisson,
        "gamma": sm.families.Gamma,
    }[family]
    return fam(link=_sm_link(link))


# ---------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------
@dataclass
class FitResult:
    """Fitted regression model plus the settings that produced it."""

    formula: str
    family: str
    link: str
    method: str
    params: pd.Series
    bse: pd.Series
    stat: pd.Series
    pvalues: pd.Series
    df_resid: float
    nobs: int
    aic: float
    deviance: float
    null_deviance: float
    model: Any = field(repr=False)
    response_levels: Optional[tuple] = None

    @property
    def coefficients(self) -> Dict[str, float]:
        """Estimates keyed by R-style labels ('(Intercept)', 'sexM', ...)."""
        return {design_label(k): float(v) for k, v in self.params.items()}

    def conf_int(self, level: float = 0.95) -> pd.DataFrame:
        level = _ensure_level(level)
        ci = self.model.conf_int(alpha=1.0 - level)
        ci.columns = ["ci_lower", "ci_upper"]
        return ci

    def coef_table(self, level: float = 0.95) -> pd.DataFrame:
        return coef_table(self, level=level)

    def predict(self, newdata: Any, scale: str = "response") -> np.ndarray:
        """Predictions for ``newdata`` on the response or link scale."""
        scale = _ensure_choice("scale", scale, ("response", "link"))
        frame = prepare_table(newdata)
        mu = np.asarray(self.model.predict(frame), dtype=float)
        return mu if scale == "response" else link_function(mu, self.link)

    def summary_text(self) -> str:
        return str(self.model.summary())


def _response_name(formula: str) -> str:
    if "~" not in formula:
        raise ValueError(f"formula must have the form 'response ~ terms', got {formula!r}")
    return formula.split("~", 1)[0].strip()


def _coerce_binary_response(df: pd.DataFrame, response: str, success: Any) -> tuple:
    """
    Recode a two-level response column to 0/1 in place.

    Numeric 0/1 columns are left untouched. Booleans map True -> 1.
    For other columns the ``success`` level (default: the last level in
    sorted order) maps to 1.
    """
    col = df[response]
    if pd.api.types.is_bool_dtype(col):
        df[response] = col.astype(float)
        return (False, True)
    if pd.api.types.is_numeric_dtype(col):
        vals = set(np.unique(col.dropna().to_numpy(float)))
        if not vals <= {0.0, 1.0}:
            raise ValueError(f"binomial response {response!r} must be 0/1; found values {sorted(vals)[:5]}")
        return (0, 1)

    levels = sorted(str(v) for v in col.dropna().unique())
    if len(levels) != 2:
        raise ValueError(f"binomial response {response!r} must have exactly 2 levels, got {levels}")
    hit = str(success) if success is not None else levels[-1]
    if hit not in levels:
        raise ValueError(f"success level {success!r} is not one of {levels}")
    other = levels[0] if hit == levels[1] else levels[1]
    df[response] = col.map(lambda v: np.nan if pd.isna(v) else float(str(v) == hit))
    return (other, hit)


def fit_model(
    data: Any,
    formula: str,
    *,
    family: str = "gaussian",
    link: Optional[str] = None,
    method: str = "glm",
    success: Any = None,
    weights: Optional[str] = None,
) -> FitResult:
    """
    Fit a regression model from a formula such as ``'hindfoot_length ~ sex'``.

    Parameters
    ----------
    data : DataFrame, mapping or path/URL
        Anything :func:`pystatdyn.core.prepare_table` accepts.
    formula : str
        Wilkinson-style formula; categorical predictors use treatment coding
        with the first level as reference.
    family : {'gaussian','binomial','poisson','gamma'}
        Error distribution of the GLM.
    link : str, optional
        Link function; defaults to the canonical link of ``family``.
    method : {'glm','ols'}
        'ols' is only valid with the gaussian family and identity link and
        reports t statistics instead of z statistics.
    success : optional
        Level of a two-level string response treated as 1 (binomial only).
    weights : str, optional
        Column of prior (frequency) weights, GLM only.

    Rows with missing values in any formula variable are dropped.
    """
    family = _ensure_choice("family", family, FAMILIES)
    link = FAMILIES[family] if link is None else _ensure_choice("link", link, LINKS)
    method = _ensure_choice("method", method, ("glm", "ols"))
    if method == "ols" and (family != "gaussian" or link != "identity"):
        raise ValueError("method='ols' requires family='gaussian' with the identity link")

    df = prepare_table(data)
    response = _response_name(formula)
    levels = None
    if family == "binomial" and response in df.columns:
        levels = _coerce_binary_response(df, response, success)

    try:
        if method == "ols":
            model = smf.ols(formula, data=df)
        else:
            kw = {}
            if weights is not None:
                if weights not in df.columns:
                    raise KeyError(f"Missing weights column: {weights}. Available: {list(df.columns)}")
                df = df.dropna(subset=[weights]).reset_index(drop=True)
                kw["freq_weights"] = df[weights].to_numpy(float)
            model = smf.glm(formula, data=df, family=_sm_family(family, link), **kw)
    except KeyError:
        raise
    except Exception as e:
        if "is not defined" in str(e):
            raise KeyError(f"formula {formula!r} references a column not in the table ({e})") from e
        raise

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        res = model.fit()
    trouble = []
    for w in caught:
        if issubclass(w.category, (ConvergenceWarning, PerfectSeparationWarning)):
            trouble.append(str(w.message))
        else:
            warnings.warn(w.message, w.category, stacklevel=2)
    if method == "glm" and (trouble or not bool(getattr(res, "converged", True))):
        detail = f" ({trouble[0]})" if trouble else ""
        warnings.warn(f"GLM fit for {formula!r} did not converge cleanly{detail}; estimates may be unreliable.",
                      RuntimeWarning, stacklevel=2)

    # OLS reports t statistics and residual sums of squares; GLM reports z and deviances
    if method == "ols":
        deviance, null_dev = float(res.ssr), float(res.centered_tss)
    else:
        deviance, null_dev = float(res.deviance), float(res.null_deviance)

    return FitResult(
        formula=formula,
        family=family,
        link=link,
        method=method,
        params=res.params,
        bse=res.bse,
        stat=res.tvalues,
        pvalues=res.pvalues,
        df_resid=float(res.df_resid),
        nobs=int(res.nobs),
        aic=float(res.aic),
        deviance=deviance,
        null_deviance=null_dev,
        model=res,
        response_levels=levels,
    )


def coef_table(result: FitResult, level: float = 0.95) -> pd.DataFrame:
    """
    Coefficient table in the layout printed by the lecture notes.

    Columns: ``estimate, std_error, statistic, p_value, ci_lower, ci_upper``;
    rows use R-style labels (``(Intercept)``, ``sexM``).
    """
    ci = result.conf_int(level)
    tbl = pd.DataFrame({
        "estimate": result.params,
        "std_error": result.bse,
        "statistic": result.stat,
        "p_value": result.pvalues,
        "ci_lower": ci["ci_lower"],
        "ci_upper": ci["ci_upper"],
    })
    tbl.index = [design_label(k) for k in tbl.index]
    tbl.index.name = "term"
    return tbl


def odds_ratios(result: FitResult, level: float = 0.95) -> pd.DataFrame:
    """exp(coefficients) with their confidence limits, for logit-link fits."""
    if result.link != "logit":
        raise ValueError(f"odds ratios require a logit link, got {result.link!r}")
    tbl = coef_table(result, level=level)
    return pd.DataFrame({
        "odds_ratio": np.exp(tbl["estimate"]),
        "ci_lower": np.exp(tbl["ci_lower"]),
        "ci_upper": np.exp(tbl["ci_upper"]),
    })


def linear_predictor(coefs: Mapping[str, float], predictors: Optional[Mapping[str, float]] = None) -> float:
    """
    Evaluate intercept + sum(coef * x) from a coefficient table.

    ``coefs`` maps coefficient labels to estimates and must contain an
    intercept under one of ``'(Intercept)'``, ``'Intercept'``, ``'intercept'``
    or ``'const'``. ``predictors`` maps coefficient labels to predictor values;
    labels that are absent are taken as 0 (the reference level of a dummy).

    >>> linear_predictor({"(Intercept)": 28.836, "sexM": 0.872}, {"sexM": 1})
    29.708
    """
    predictors = dict(predictors or {})
    coefs = {str(k): float(v) for k, v in coefs.items()}
    keys = [k for k in _INTERCEPT_KEYS if k in coefs]
    if not keys:
        raise KeyError(f"coefficients need an intercept (one of {_INTERCEPT_KEYS}); got {list(coefs)}")
    icpt = keys[0]

    unknown = [k for k in predictors if k not in coefs or k == icpt]
    if unknown:
        raise KeyError(f"predictor(s) {unknown} have no coefficient; available: {list(coefs)}")

    eta = coefs[icpt]
    for name, x in predictors.items():
        eta += coefs[name] * float(x)
    return round(eta, 12)
