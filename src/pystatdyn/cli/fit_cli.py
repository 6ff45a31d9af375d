#!/usr/bin/env python3
"""
CLI: fit
========

Fit a linear or generalized linear model from a formula and print the
coefficient table with confidence limits.

Example:
    pystatdyn fit --formula "hindfoot_length ~ sex" --level 0.95 --levels 0.99
    pystatdyn fit --data builtin:trapping --formula "weight ~ hindfoot_length + sex" --csv
    pystatdyn fit --data builtin:trapping --formula "sex ~ hindfoot_length" --family binomial --success M
    pystatdyn fit --formula "hindfoot_length ~ sex" --predict sexM=1
"""

from __future__ import annotations
import argparse

from pystatdyn import demos
from pystatdyn.regression import FAMILIES, LINKS
from pystatdyn.cli.common import _level_type, _name_value, add_output_args, print_frame, print_json


# ---------------------------------------------------------------------
# Argument definitions
# ---------------------------------------------------------------------
def add_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data", type=str, default=None,
        help="CSV path/URL or builtin:NAME (trapping, co2, anscombe, datasaurus, simpson).\n"
             "Default: simulated trapping records (seeded by --seed)."
    )
    parser.add_argument("--formula", type=str, default="hindfoot_length ~ sex",
                        help="Model formula 'response ~ terms'.")
    parser.add_argument("--family", choices=sorted(FAMILIES), default="gaussian",
                        help="GLM error family.")
    parser.add_argument("--link", choices=list(LINKS), default=None,
                        help="Link function (default: canonical link of --family).")
    parser.add_argument("--method", choices=["glm", "ols"], default="glm",
                        help="Estimator; 'ols' reports t statistics (gaussian/identity only).")
    parser.add_argument("--success", type=str, default=None,
                        help="Level of a two-level text response coded as 1 (binomial).")
    parser.add_argument("--weights", type=str, default=None,
                        help="Column of frequency weights (GLM only).")
    parser.add_argument("--level", type=_level_type, default=0.95,
                        help="Confidence level of the printed interval.")
    parser.add_argument("--levels", type=_level_type, nargs="+", default=None,
                        help="Extra confidence levels to compare interval widths.")
    parser.add_argument("--predict", type=_name_value, action="append", default=None,
                        metavar="LABEL=VALUE",
                        help="Predictor value by coefficient label (repeatable), e.g. sexM=1.")
    parser.add_argument("--summary", action="store_true",
                        help="Also print the full statsmodels summary.")
    add_output_args(parser)


# ---------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------
def run(args: argparse.Namespace):
    kw = {
        "data": args.data,
        "formula": args.formula,
        "family": args.family,
        "link": args.link,
        "level": args.level,
        "levels": args.levels,
        "success": args.success,
        "predictors": dict(args.predict) if args.predict else None,
        "seed": args.seed,
        "verbose": args.verbose,

        # base plot controls
        "plot": args.plot,
        "save_path": args.save_path,
        "dpi": args.dpi,
        "transparent": args.transparent,

        # forwarded to fit_model
        "method": args.method,
        "weights": args.weights,
    }
    try:
        result = demos.run_regression_demo(**kw)
    except (ValueError, KeyError, FileNotFoundError) as e:
        raise SystemExit(f"error: {e}")

    if getattr(args, "json", False):
        print_json({
            "formula": result["formula"], "family": result["family"], "link": result["link"],
            "nobs": result["nobs"], "aic": result["aic"], "level": result["level"],
            "coefficients": result["table"],
            "prediction": result.get("prediction"),
        })
        return result

    fit = result["fit"]
    title = (f"{fit.formula}  [{fit.family}/{fit.link}, {fit.method}]  "
             f"n={fit.nobs}  {100 * args.level:g}% CI")
    print_frame(result["table"], args, title=None if args.csv else title)
    if not args.csv:
        if "prediction" in result:
            p = result["prediction"]
            print(f"prediction at {p['predictors']}: link={p['link']:.6g}  response={p['response']:.6g}")
        if args.summary:
            print(fit.summary_text())
    return result
