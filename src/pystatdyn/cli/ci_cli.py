#!/usr/bin/env python3
"""
CLI: confidence intervals.

Subcommands wired from this module:
  - ci          : t (or z, with --sigma) intervals for the mean of one column
                  at one or more levels, plus an optional one-sample t test
  - ci-coverage : repeated-sampling coverage of t intervals

Example:
    pystatdyn ci --column hindfoot_length --level 0.95 --levels 0.9 0.99
    pystatdyn ci --data survey.csv --column weight --mu0 40 --json
    pystatdyn ci-coverage --n 20 --reps 100 --level 0.95 --plot
"""

from __future__ import annotations
import argparse

import pandas as pd

from pystatdyn import datasets, demos
from pystatdyn.core import prepare_table
from pystatdyn.inference import one_sample_t_test, t_interval, z_interval
from pystatdyn.cli.common import (
    _level_type, _positive_float, _positive_int, add_output_args, print_frame, print_json,
)


# -----------------------
# ci
# -----------------------
def add_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--data", type=str, default=None,
                   help="CSV path/URL or builtin:NAME. Default: simulated trapping records.")
    p.add_argument("--column", type=str, default="hindfoot_length",
                   help="Numeric column whose mean is estimated.")
    p.add_argument("--level", type=_level_type, default=0.95, help="Confidence level.")
    p.add_argument("--levels", type=_level_type, nargs="+", default=None,
                   help="Extra confidence levels (intervals widen with the level).")
    p.add_argument("--sigma", type=_positive_float("sigma"), default=None,
                   help="Known population SD; switches to z intervals.")
    p.add_argument("--mu0", type=float, default=None,
                   help="Also run a one-sample t test of H0: mean == MU0.")
    p.add_argument("--alternative", choices=["two-sided", "greater", "less"], default="two-sided",
                   help="Alternative hypothesis for --mu0.")
    add_output_args(p)


def _interval_rows(x, levels, sigma) -> pd.DataFrame:
    rows = []
    for lv in levels:
        ci = t_interval(x, lv) if sigma is None else z_interval(x, sigma, lv)
        rows.append(ci.as_dict())
    return pd.DataFrame(rows, columns=["level", "method", "estimate", "lower", "upper", "width"]).set_index("level")


def run(args: argparse.Namespace):
    try:
        df = datasets.trapping_records(seed=args.seed) if args.data is None else prepare_table(args.data)
        df = prepare_table(df, columns=[args.column])
        if not pd.api.types.is_numeric_dtype(df[args.column]):
            raise ValueError(f"column {args.column!r} is not numeric (dtype {df[args.column].dtype})")
        x = df[args.column].to_numpy(float)
        levels = sorted({args.level, *(args.levels or ())})
        table = _interval_rows(x, levels, args.sigma)
        test = one_sample_t_test(x, args.mu0, args.alternative, args.level) if args.mu0 is not None else None
    except (ValueError, KeyError, FileNotFoundError) as e:
        raise SystemExit(f"error: {e}")

    if args.verbose:
        print(f"[ci] column={args.column} n={int(pd.notna(x).sum())} levels={levels}")

    if getattr(args, "json", False):
        payload = {"column": args.column, "intervals": table}
        if test is not None:
            payload["t_test"] = {
                "mu0": args.mu0, "statistic": test.statistic, "df": test.df,
                "p_value": test.p_value, "alternative": test.alternative,
            }
        print_json(payload)
        return {"table": table, "test": test}

    print_frame(table, args, title=None if args.csv else f"Mean of {args.column}")
    if test is not None and not args.csv:
        print(f"t = {test.statistic:.4f}, df = {test.df:g}, p-value = {test.p_value:.4g} "
              f"({test.alternative}, H0: mean = {args.mu0:g})")
    return {"table": table, "test": test}


# -----------------------
# ci-coverage
# -----------------------
def add_coverage_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--n", type=_positive_int("n", minimum=2), default=20, help="Sample size per replicate.")
    p.add_argument("--reps", type=_positive_int("reps"), default=100, help="Number of replicate samples.")
    p.add_argument("--level", type=_level_type, default=0.95, help="Confidence level.")
    p.add_argument("--mu", type=float, default=0.0, help="True population mean.")
    p.add_argument("--sigma", type=_positive_float("sigma"), default=1.0, help="True population SD.")


def run_coverage(args: argparse.Namespace):
    kw = {
        "n": args.n,
        "reps": args.reps,
        "level": args.level,
        "mu": args.mu,
        "sigma": args.sigma,
        "seed": args.seed,
        "verbose": args.verbose,
        "plot": args.plot,
        "save_path": args.save_path,
        "dpi": args.dpi,
        "transparent": args.transparent,
    }
    try:
        result = demos.run_ci_demo(**kw)
    except ValueError as e:
        raise SystemExit(f"error: {e}")

    summary = {k: result[k] for k in ("n", "reps", "level", "mu", "sigma", "seed",
                                      "coverage", "missed", "expected_missed", "coverage_band")}
    if getattr(args, "json", False):
        print_json(summary)
    elif not args.verbose:
        lo, hi = result["coverage_band"]
        print(f"{100 * args.level:g}% t intervals, n={args.n}, reps={args.reps}: "
              f"coverage={result['coverage']:.4f} (missed {result['missed']}), "
              f"expected band [{lo:.4f}, {hi:.4f}]")
    return result
