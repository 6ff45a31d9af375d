#!/usr/bin/env python3
"""
Example: coefficient tables and predictions from Python
-------------------------------------------------------

Fits hindfoot length on sex for the simulated trapping survey, prints the
coefficient table at two confidence levels and reads a prediction for a
male animal straight off the table.
"""

import os

from pystatdyn.datasets import trapping_records
from pystatdyn.regression import coef_table, fit_model, linear_predictor
from pystatdyn.plot import plot_coefficients

os.makedirs("_figs", exist_ok=True)
df = trapping_records(n=2000, seed=42)

# 1. Fit the model (rows with missing sex/hindfoot are dropped)
res = fit_model(df, "hindfoot_length ~ sex")
print(coef_table(res, level=0.95).round(4))
print(coef_table(res, level=0.99).round(4))

# 2. Prediction for a male: intercept + sexM * 1
eta = linear_predictor(res.coefficients, {"sexM": 1})
print(f"\nPredicted hindfoot length (male): {eta:.3f} mm")

# 3. Logistic regression: probability of being male given hindfoot length
logit = fit_model(df, "sex ~ hindfoot_length", family="binomial", success="M")
print(logit.coef_table().round(4))

# 4. Forest plot: the 99% whiskers always contain the 95% ones
plot_coefficients(
    res,
    levels=(0.95, 0.99),
    include_intercept=True,
    show=True,
    save_path="_figs/example_coefficients.png",
)
