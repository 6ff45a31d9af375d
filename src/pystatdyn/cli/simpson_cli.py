#!/usr/bin/env python3
"""
CLI: simpson
============

Simpson's paradox on a simulated grouped table: the pooled regression
slope has the opposite sign of every within-group slope.

Example:
    pystatdyn simpson --groups 4 --per-group 50 --plot
    pystatdyn simpson --within-slope -0.5 --between-slope 3 --json
"""

from __future__ import annotations
import argparse

from pystatdyn import demos
from pystatdyn.cli.common import _positive_int, add_output_args, print_frame, print_json


def add_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--groups", type=_positive_int("groups", minimum=2), default=4, help="Number of groups.")
    p.add_argument("--per-group", type=_positive_int("per-group", minimum=3), default=50,
                   help="Observations per group.")
    p.add_argument("--within-slope", type=float, default=-1.0,
                   help="Slope of y on x inside each group.")
    p.add_argument("--between-slope", type=float, default=2.0,
                   help="Slope along which the group centers are placed.")
    add_output_args(p)


def run(args: argparse.Namespace):
    kw = {
        "n_groups": args.groups,
        "n_per_group": args.per_group,
        "within_slope": args.within_slope,
        "between_slope": args.between_slope,
        "seed": args.seed,
        "verbose": args.verbose,
        "plot": args.plot,
        "save_path": args.save_path,
        "dpi": args.dpi,
        "transparent": args.transparent,
    }
    try:
        result = demos.run_simpson_demo(**kw)
    except ValueError as e:
        raise SystemExit(f"error: {e}")

    cols = ["n", "mean_x", "mean_y", "corr", "slope", "intercept"]
    if getattr(args, "json", False):
        print_json({
            "pooled_slope": result["pooled_slope"],
            "reversal": result["reversal"],
            "groups": result["groups"][cols],
        })
    elif not args.verbose:
        print_frame(result["groups"][cols], args, title=None if args.csv else "Within-group fits")
        if not args.csv:
            print(f"pooled slope = {result['pooled_slope']:+.4f}  sign reversal: {result['reversal']}")
    return result
