#!/usr/bin/env python3
"""
Main CLI entry point for pystatdyn.

Public subcommands:
  • fit
  • ci
  • ci-coverage
  • gallery
  • simpson
  • stability
"""

from __future__ import annotations
import argparse
from importlib.metadata import version, PackageNotFoundError

# Subcommand modules
from pystatdyn.cli import ci_cli, fit_cli, gallery_cli, simpson_cli, stability_cli
from pystatdyn.cli.common import _positive_int


# ---------- Helpers ----------
class _SmartFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter):
    pass


def _get_version() -> str:
    try:
        return version("pystatdyn")
    except PackageNotFoundError:
        return "unknown"


# ---------- Base (shared by every subcommand) ----------
def _build_base_parser() -> argparse.ArgumentParser:
    base = argparse.ArgumentParser(add_help=False)
    base.add_argument("--seed", type=int, default=42,
                      help="Random seed for simulated data.")
    base.add_argument("--plot", action="store_true",
                      help="Generate a plot for the result (if supported).")
    base.add_argument("--save_path", type=str, default=None,
                      help="Path to save the figure (format by extension).")
    base.add_argument("--dpi", type=_positive_int("dpi"), default=300,
                      help="DPI for saved plots.")
    base.add_argument("--transparent", action="store_true",
                      help="Save plots with transparent background.")
    base.add_argument("--verbose", action="store_true",
                      help="Enable detailed output.")
    base.add_argument("--json", action="store_true",
                      help="Output results in JSON to stdout.")
    return base


# ---------- Build parser ----------
def _build_parser() -> argparse.ArgumentParser:
    formatter = _SmartFormatter
    parser = argparse.ArgumentParser(
        prog="pystatdyn",
        description="pystatdyn command-line interface",
        formatter_class=formatter,
        epilog=(
            "Examples:\n"
            "  # --- Regression & intervals ---\n"
            "  pystatdyn fit --formula \"hindfoot_length ~ sex\" --levels 0.99 --predict sexM=1\n"
            "  pystatdyn fit --data builtin:co2 --formula \"uptake ~ conc + Type\" --csv\n"
            "  pystatdyn ci --column weight --level 0.95 --levels 0.99\n"
            "  pystatdyn ci-coverage --n 20 --reps 100 --plot\n"
            "\n"
            "  # --- Visualization pitfalls ---\n"
            "  pystatdyn gallery --kind datasaurus --plot --save_path gallery.png\n"
            "  pystatdyn simpson --groups 4 --plot\n"
            "\n"
            "  # --- Dynamical systems ---\n"
            "  pystatdyn stability --model logistic --param r=1 --param K=10 --plot\n"
            "  pystatdyn stability --model predator-prey --json\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"pystatdyn {_get_version()}")

    subparsers = parser.add_subparsers(dest="command", required=True)
    base = _build_base_parser()

    # --- fit ---
    fit_p = subparsers.add_parser("fit", parents=[base],
                                  help="Fit a (generalized) linear model and print coefficients",
                                  formatter_class=formatter)
    fit_cli.add_args(fit_p)
    fit_p.set_defaults(func=fit_cli.run)

    # --- ci ---
    ci_p = subparsers.add_parser("ci", parents=[base],
                                 help="Confidence intervals for a column mean",
                                 formatter_class=formatter)
    ci_cli.add_args(ci_p)
    ci_p.set_defaults(func=ci_cli.run)

    # --- ci-coverage ---
    cov_p = subparsers.add_parser("ci-coverage", parents=[base],
                                  help="Repeated-sampling coverage of t intervals",
                                  formatter_class=formatter)
    ci_cli.add_coverage_args(cov_p)
    cov_p.set_defaults(func=ci_cli.run_coverage)

    # --- gallery ---
    gal_p = subparsers.add_parser("gallery", parents=[base],
                                  help="Same summary statistics, different data (Datasaurus/Anscombe)",
                                  formatter_class=formatter)
    gallery_cli.add_args(gal_p)
    gal_p.set_defaults(func=gallery_cli.run)

    # --- simpson ---
    simp_p = subparsers.add_parser("simpson", parents=[base],
                                   help="Pooled vs within-group slopes (Simpson's paradox)",
                                   formatter_class=formatter)
    simpson_cli.add_args(simp_p)
    simp_p.set_defaults(func=simpson_cli.run)

    # --- stability ---
    stab_p = subparsers.add_parser("stability", parents=[base],
                                   help="Fixed points and their linear stability",
                                   formatter_class=formatter)
    stability_cli.add_args(stab_p)
    stab_p.set_defaults(func=stability_cli.run)

    return parser


# ---------- Main ----------
def _post_parse_validate(args: argparse.Namespace) -> None:
    if getattr(args, "command", None) == "stability" and getattr(args, "rate", None):
        n_var = len(args.var or [])
        if n_var != len(args.rate):
            raise SystemExit(f"error: got {len(args.rate)} --rate but {n_var} --var; "
                             "give one --var per --rate.")


def main(argv=None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _post_parse_validate(args)
    args.func(args)


if __name__ == "__main__":
    main()
