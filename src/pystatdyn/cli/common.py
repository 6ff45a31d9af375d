"""
Argument types and output emitters shared by the pystatdyn subcommands.

Tables go to stdout as an aligned text table (default), CSV (``--csv``) or
JSON (shared ``--json`` flag from the base parser).
"""

from __future__ import annotations
import argparse
import json
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd


# ---------- argparse types ----------
def _positive_int(name: str, minimum: int = 1):
    def _t(v: str) -> int:
        try:
            iv = int(v)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{name} must be an integer")
        if iv < minimum:
            raise argparse.ArgumentTypeError(f"{name} must be > 0" if minimum == 1 else f"{name} must be >= {minimum}")
        return iv
    return _t


def _positive_float(name: str, allow_eq: bool = False):
    def _t(v: str) -> float:
        try:
            fv = float(v)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{name} must be a float")
        if allow_eq:
            if fv < 0:
                raise argparse.ArgumentTypeError(f"{name} must be >= 0")
        else:
            if fv <= 0:
                raise argparse.ArgumentTypeError(f"{name} must be > 0")
        return fv
    return _t


def _level_type(v: str) -> float:
    try:
        fv = float(v)
    except ValueError:
        raise argparse.ArgumentTypeError("level must be a float")
    if not (0.0 < fv < 1.0):
        raise argparse.ArgumentTypeError("level must be in (0, 1), e.g. 0.95")
    return fv


def _name_value(v: str) -> Tuple[str, float]:
    """Parse ``NAME=VALUE`` (used by --param and --predict)."""
    name, sep, raw = v.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {v!r}")
    try:
        return name, float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"value for {name!r} must be a number, got {raw!r}")


def add_output_args(p: argparse.ArgumentParser, precision: int = 4) -> None:
    p.add_argument("--csv", action="store_true", help="Output as CSV.")
    p.add_argument("--no-header", action="store_true", help="Suppress CSV header.")
    p.add_argument("--precision", type=int, default=precision,
                   help="Significant digits for table/CSV output.")


# ---------- emitters ----------
def _jsonable(obj: Any) -> Any:
    if isinstance(obj, pd.DataFrame):
        return json.loads(obj.reset_index().to_json(orient="records"))
    if isinstance(obj, pd.Series):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return _jsonable(obj.tolist())
    if isinstance(obj, (np.bool_, bool)):
        return bool(obj)
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        return None if not np.isfinite(obj) else float(obj)
    return obj


def print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(_jsonable(payload), indent=2))


def print_frame(df: pd.DataFrame, args: argparse.Namespace, title: Optional[str] = None,
                index: bool = True) -> None:
    """Print ``df`` as CSV (``args.csv``) or an aligned table with an optional title."""
    prec = int(getattr(args, "precision", 4))
    fmt = lambda v: f"{v:.{prec}g}"
    if getattr(args, "csv", False):
        print(df.to_csv(index=index, header=not getattr(args, "no_header", False),
                        float_format=f"%.{prec}g"), end="")
        return
    text = df.to_string(index=index, float_format=fmt)
    rule = "-" * max(len(line) for line in text.splitlines())
    if title:
        print(title)
    print(rule)
    print(text)
    print(rule)
