#!/usr/bin/env python3
"""
CLI: gallery
============

Summary statistics of a family of x/y data sets that look nothing alike
but share means, SDs and correlation (Datasaurus-like shapes or Anscombe's
quartet). ``--plot`` draws one scatter panel per set.

Example:
    pystatdyn gallery --kind datasaurus --plot
    pystatdyn gallery --kind anscombe --csv
    pystatdyn gallery --kind datasaurus --shapes circle star x_shape --n 200 --json
"""

from __future__ import annotations
import argparse

from pystatdyn import demos
from pystatdyn.datasets import DATASAURUS_SHAPES
from pystatdyn.cli.common import _positive_int, add_output_args, print_frame, print_json


def add_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--kind", choices=["datasaurus", "anscombe"], default="datasaurus",
                   help="Which family of data sets to summarize.")
    p.add_argument("--shapes", nargs="+", choices=sorted(DATASAURUS_SHAPES), default=None,
                   help="Subset of Datasaurus-like shapes (kind=datasaurus).")
    p.add_argument("--n", type=_positive_int("n", minimum=3), default=142,
                   help="Points per shape (kind=datasaurus).")
    p.add_argument("--ncols", type=_positive_int("ncols"), default=4,
                   help="Panels per row when plotting.")
    add_output_args(p)


def run(args: argparse.Namespace):
    kw = {
        "kind": args.kind,
        "shapes": args.shapes,
        "n": args.n,
        "seed": args.seed,
        "ncols": args.ncols,
        "verbose": args.verbose,
        "plot": args.plot,
        "save_path": args.save_path,
        "dpi": args.dpi,
        "transparent": args.transparent,
    }
    try:
        result = demos.run_gallery_demo(**kw)
    except ValueError as e:
        raise SystemExit(f"error: {e}")

    if getattr(args, "json", False):
        print_json({"kind": result["kind"], "summary": result["summary"], "spread": result["spread"]})
    elif not args.verbose:
        print_frame(result["summary"], args,
                    title=None if args.csv else f"{args.kind}: per-set summary statistics")
    return result
