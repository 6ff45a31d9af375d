import warnings

import numpy as np
import pandas as pd
import pytest

from pystatdyn.datasets import trapping_records
from pystatdyn.regression import (
    coef_table, fit_model, inverse_link, link_function, linear_predictor,
    logistic, odds_ratios,
)


# ---------------------------------------------------------------------
# Linear predictor read off a coefficient table
# ---------------------------------------------------------------------
def test_linear_predictor_hindfoot_example():
    coefs = {"(Intercept)": 28.836, "sexM": 0.872}
    assert linear_predictor(coefs, {"sexM": 1}) == pytest.approx(29.708, abs=1e-12)
    # reference level (female): all dummies are zero
    assert linear_predictor(coefs, {}) == pytest.approx(28.836)
    assert linear_predictor(coefs) == pytest.approx(28.836)


def test_linear_predictor_accepts_other_intercept_names():
    assert linear_predictor({"const": 1.0, "x": 2.0}, {"x": 3.0}) == pytest.approx(7.0)
    assert linear_predictor({"Intercept": -1.0, "x": 0.5}, {"x": 4}) == pytest.approx(1.0)


def test_linear_predictor_errors():
    with pytest.raises(KeyError, match="intercept"):
        linear_predictor({"x": 1.0}, {"x": 1.0})
    with pytest.raises(KeyError, match="no coefficient"):
        linear_predictor({"(Intercept)": 1.0, "x": 1.0}, {"z": 2.0})


# ---------------------------------------------------------------------
# Link functions
# ---------------------------------------------------------------------
def test_logistic_values():
    assert logistic(0.0) == pytest.approx(0.5)
    assert logistic(np.log(3.0)) == pytest.approx(0.75)


@pytest.mark.parametrize("link,eta", [
    ("identity", 1.3), ("logit", -0.7), ("probit", 0.4),
    ("cloglog", -0.2), ("log", 0.9), ("inverse", 2.5),
])
def test_link_inverts_inverse_link(link, eta):
    assert link_function(inverse_link(eta, link), link) == pytest.approx(eta)


def test_unknown_link_raises():
    with pytest.raises(ValueError, match="link"):
        inverse_link(0.0, "cauchit")


# ---------------------------------------------------------------------
# Gaussian fits
# ---------------------------------------------------------------------
def test_gaussian_glm_recovers_line(linear_table):
    res = fit_model(linear_table, "y ~ x")
    assert res.family == "gaussian" and res.link == "identity"
    assert res.nobs == 60
    c = res.coefficients
    assert set(c) == {"(Intercept)", "x"}
    assert c["(Intercept)"] == pytest.approx(1.0, abs=0.2)
    assert c["x"] == pytest.approx(2.0, abs=0.1)
    assert res.predict(pd.DataFrame({"x": [2.0]}))[0] == pytest.approx(c["(Intercept)"] + 2 * c["x"])


def test_ols_and_glm_agree_on_estimates(linear_table):
    glm = fit_model(linear_table, "y ~ x + g")
    ols = fit_model(linear_table, "y ~ x + g", method="ols")
    np.testing.assert_allclose(glm.params.to_numpy(), ols.params.to_numpy(), rtol=1e-8)
    assert "gb" in ols.coefficients
    # OLS residual sum of squares is the gaussian deviance
    assert ols.deviance == pytest.approx(glm.deviance)


def test_coef_table_layout_and_interval_nesting(linear_table):
    res = fit_model(linear_table, "y ~ x")
    t95 = coef_table(res, level=0.95)
    t99 = res.coef_table(level=0.99)
    assert list(t95.columns) == ["estimate", "std_error", "statistic", "p_value", "ci_lower", "ci_upper"]
    assert t95.index.name == "term"
    assert list(t95.index) == ["(Intercept)", "x"]
    w95 = t95["ci_upper"] - t95["ci_lower"]
    w99 = t99["ci_upper"] - t99["ci_lower"]
    assert (w95 < w99).all()
    assert (t99["ci_lower"] < t95["ci_lower"]).all()
    assert ((t95["ci_lower"] < t95["estimate"]) & (t95["estimate"] < t95["ci_upper"])).all()


def test_interaction_terms_get_readable_labels(linear_table):
    res = fit_model(linear_table, "y ~ x * g")
    tbl = res.coef_table()
    assert set(tbl.index) == {"(Intercept)", "gb", "x", "x:gb"}
    c = res.coefficients
    expected = c["(Intercept)"] + c["gb"] + 2.0 * (c["x"] + c["x:gb"])
    assert linear_predictor(c, {"gb": 1, "x": 2.0, "x:gb": 2.0}) == pytest.approx(expected)
    pred = res.predict(pd.DataFrame({"x": [2.0], "g": ["b"]}))
    assert pred[0] == pytest.approx(expected)


def test_hindfoot_by_sex_on_trapping_records():
    df = trapping_records(n=1500, seed=42)
    res = fit_model(df, "hindfoot_length ~ sex")
    assert set(res.coefficients) == {"(Intercept)", "sexM"}
    # rows with missing sex or hindfoot length are dropped
    assert res.nobs < 1500
    tbl = res.coef_table()
    b0, b1 = tbl.loc["(Intercept)", "estimate"], tbl.loc["sexM", "estimate"]
    assert linear_predictor(res.coefficients, {"sexM": 1}) == pytest.approx(b0 + b1)


def test_fit_model_errors(linear_table):
    with pytest.raises(KeyError):
        fit_model(linear_table, "y ~ not_a_column")
    with pytest.raises(ValueError, match="family"):
        fit_model(linear_table, "y ~ x", family="tweedie")
    with pytest.raises(ValueError, match="ols"):
        fit_model(linear_table, "y ~ x", family="poisson", method="ols")
    with pytest.raises(ValueError, match="formula"):
        fit_model(linear_table, "y x")
    with pytest.raises(KeyError, match="weights"):
        fit_model(linear_table, "y ~ x", weights="w")


# ---------------------------------------------------------------------
# Binomial fits
# ---------------------------------------------------------------------
@pytest.fixture
def binary_table():
    rng = np.random.default_rng(7)
    x = rng.uniform(-2.0, 2.0, 3000)
    p = logistic(-0.5 + 1.5 * x)
    hit = rng.random(x.size) < p
    return pd.DataFrame({"x": x, "hit": hit.astype(int), "label": np.where(hit, "yes", "no")})


def test_logistic_regression_recovers_coefficients(binary_table):
    res = fit_model(binary_table, "hit ~ x", family="binomial")
    assert res.link == "logit"
    assert res.coefficients["(Intercept)"] == pytest.approx(-0.5, abs=0.25)
    assert res.coefficients["x"] == pytest.approx(1.5, abs=0.25)
    p = res.predict(pd.DataFrame({"x": [0.0]}))
    assert 0.0 < p[0] < 1.0
    eta = res.predict(pd.DataFrame({"x": [0.0]}), scale="link")
    assert eta[0] == pytest.approx(res.coefficients["(Intercept)"])


def test_two_level_string_response(binary_table):
    num = fit_model(binary_table, "hit ~ x", family="binomial")
    txt = fit_model(binary_table, "label ~ x", family="binomial")
    assert txt.response_levels == ("no", "yes")
    np.testing.assert_allclose(num.params.to_numpy(), txt.params.to_numpy(), rtol=1e-8)

    flipped = fit_model(binary_table, "label ~ x", family="binomial", success="no")
    assert flipped.coefficients["x"] == pytest.approx(-txt.coefficients["x"])


def test_binomial_response_validation(binary_table):
    bad = binary_table.assign(count=np.arange(len(binary_table)))
    with pytest.raises(ValueError, match="0/1"):
        fit_model(bad, "count ~ x", family="binomial")
    with pytest.raises(ValueError, match="success level"):
        fit_model(binary_table, "label ~ x", family="binomial", success="maybe")


def test_odds_ratios(binary_table):
    res = fit_model(binary_table, "hit ~ x", family="binomial")
    ors = odds_ratios(res)
    assert ors.loc["x", "odds_ratio"] == pytest.approx(np.exp(res.coefficients["x"]))
    assert ors.loc["x", "ci_lower"] < ors.loc["x", "odds_ratio"] < ors.loc["x", "ci_upper"]
    gauss = fit_model(binary_table, "hit ~ x")
    with pytest.raises(ValueError, match="logit"):
        odds_ratios(gauss)


def test_perfect_separation_warns_and_returns_fit():
    df = pd.DataFrame({"x": [-3.0, -2.0, -1.0, -0.5, 0.5, 1.0, 2.0, 3.0],
                       "y": [0, 0, 0, 0, 1, 1, 1, 1]})
    with pytest.warns(RuntimeWarning, match="did not converge"):
        res = fit_model(df, "y ~ x", family="binomial")
    assert res.nobs == 8
    assert res.coefficients["x"] > 0


def test_probit_link(binary_table):
    res = fit_model(binary_table, "hit ~ x", family="binomial", link="probit")
    assert res.link == "probit"
    # probit slopes are roughly logit slopes / 1.6
    assert 0.6 < res.coefficients["x"] < 1.3


def test_summary_text(linear_table):
    res = fit_model(linear_table, "y ~ x")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        text = res.summary_text()
    assert "Generalized Linear Model" in text
