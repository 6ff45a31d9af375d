#!/usr/bin/env python3
"""
CLI: stability
==============

Fixed points, nullclines and linear stability of a model flow, either from
the built-in model library or from rate expressions given on the command
line.

Example:
    pystatdyn stability --model logistic --param r=1 --param K=10 --plot
    pystatdyn stability --model predator-prey --json
    pystatdyn stability --var N --rate "r*N*(1-N/K)" --param r=0.5 --param K=50
    pystatdyn stability --model lotka-volterra --plot --ic 10 5 --ic 4 1 --t-max 60
"""

from __future__ import annotations
import argparse

from pystatdyn import demos
from pystatdyn.dynamics import MODELS
from pystatdyn.cli.common import _name_value, _positive_float, add_output_args, print_frame, print_json


def add_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--model", choices=sorted(MODELS), default="predator-prey",
                   help="Library model (ignored when --rate is given).")
    p.add_argument("--param", type=_name_value, action="append", default=None,
                   metavar="NAME=VALUE",
                   help="Parameter value (repeatable), e.g. --param r=1 --param K=10.")
    p.add_argument("--rate", action="append", default=None, metavar="EXPR",
                   help="Custom rate expression, one per --var (repeatable, in order).")
    p.add_argument("--var", action="append", default=None, metavar="NAME",
                   help="State variable of a custom system (repeatable, in order).")
    p.add_argument("--x-range", type=float, nargs=2, default=None, metavar=("LO", "HI"),
                   help="Plot range of the first variable.")
    p.add_argument("--y-range", type=float, nargs=2, default=None, metavar=("LO", "HI"),
                   help="Plot range of the second variable (2-D systems).")
    p.add_argument("--ic", type=float, nargs="+", action="append", default=None, metavar="X0",
                   help="Initial condition of a trajectory to overlay (repeatable).")
    p.add_argument("--t-max", type=_positive_float("t-max"), default=50.0,
                   help="Integration horizon for --ic trajectories.")
    p.add_argument("--tol", type=_positive_float("tol"), default=1e-9,
                   help="Tolerance for zero real/imaginary parts in the classification.")
    add_output_args(p)


def run(args: argparse.Namespace):
    kw = {
        "model": args.model,
        "params": dict(args.param) if args.param else None,
        "rates": args.rate,
        "variables": args.var,
        "x_range": tuple(args.x_range) if args.x_range else None,
        "y_range": tuple(args.y_range) if args.y_range else None,
        "initial_conditions": args.ic,
        "t_span": (0.0, args.t_max),
        "tol": args.tol,
        "verbose": args.verbose,
        "plot": args.plot,
        "save_path": args.save_path,
        "dpi": args.dpi,
        "transparent": args.transparent,
    }
    try:
        result = demos.run_stability_demo(**kw)
    except ValueError as e:
        raise SystemExit(f"error: {e}")

    system = result["system"]
    if getattr(args, "json", False):
        print_json({
            "system": system.name,
            "variables": [v.name for v in system.variables],
            "rates": [str(r) for r in system.substituted()],
            "params": system.params,
            "nullclines": result["nullclines"],
            "fixed_points": [r.as_dict() for r in result["reports"]],
        })
    elif not args.verbose:
        print_frame(result["table"], args, index=False,
                    title=None if args.csv else f"{system.name}: fixed points")
        if not args.csv:
            for var, eqs in result["nullclines"].items():
                print(f"{var}-nullclines: {', '.join(eqs)}")
    return result
