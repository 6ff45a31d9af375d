#!/usr/bin/env python3
"""
Local stability of fixed points from the linearization.

1-D flows: the sign of f'(x*) decides.
    f'(x*) < 0   -> stable
    f'(x*) > 0   -> unstable
    f'(x*) ≈ 0   -> non-hyperbolic (linearization inconclusive)

n-D flows: the eigenvalues λ of the Jacobian J(x*) decide.
    all Re λ < 0               -> stable node   / stable spiral   (complex λ)
    all Re λ > 0               -> unstable node / unstable spiral (complex λ)
    Re λ of both signs         -> saddle
    all Re λ ≈ 0, Im λ ≠ 0     -> center
    any other Re λ ≈ 0         -> non-hyperbolic

2×2 shortcut on the trace–determinant plane (τ = tr J, Δ = det J):
    Δ < 0                      -> saddle
    Δ > 0, τ² - 4Δ > 0         -> node     (stable if τ < 0)
    Δ > 0, τ² - 4Δ < 0         -> spiral   (stable if τ < 0), center if τ = 0
    τ² = 4Δ                    -> degenerate node
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .dynamics import FlowSystem, fixed_points, jacobian_at

__all__ = [
    "FixedPointReport",
    "classify_1d", "classify_eigenvalues", "classify_trace_determinant",
    "analyze_point", "analyze_system", "report_table",
]


def classify_1d(derivative: float, tol: float = 1e-9) -> str:
    d = float(derivative)
    if not np.isfinite(d):
        raise ValueError(f"derivative must be finite, got {derivative!r}")
    if abs(d) <= tol:
        return "non-hyperbolic"
    return "stable" if d < 0 else "unstable"


def classify_eigenvalues(eigenvalues: Sequence[complex], tol: float = 1e-9) -> str:
    ev = np.atleast_1d(np.asarray(eigenvalues, dtype=complex))
    if ev.size == 0:
        raise ValueError("need at least one eigenvalue")
    re, im = ev.real, ev.imag
    complex_pair = bool(np.any(np.abs(im) > tol))

    if np.any(np.abs(re) <= tol):
        if np.all(np.abs(re) <= tol) and np.all(np.abs(im) > tol):
            return "center"
        return "non-hyperbolic"
    if np.all(re < 0):
        return "stable spiral" if complex_pair else "stable node"
    if np.all(re > 0):
        return "unstable spiral" if complex_pair else "unstable node"
    return "saddle"


def classify_trace_determinant(trace: float, determinant: float, tol: float = 1e-9) -> str:
    tr, det = float(trace), float(determinant)
    if det < -tol:
        return "saddle"
    if abs(det) <= tol:
        return "non-hyperbolic"
    if abs(tr) <= tol:
        return "center"
    side = "stable" if tr < 0 else "unstable"
    disc = tr * tr - 4.0 * det
    if abs(disc) <= tol:
        return f"{side} degenerate node"
    return f"{side} node" if disc > 0 else f"{side} spiral"


@dataclass
class FixedPointReport:
    point: Tuple[float, ...]
    jacobian: np.ndarray = field(repr=False)
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray = field(repr=False)
    trace: float
    determinant: float
    kind: str
    stable: bool
    oscillatory: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "point": [float(v) for v in self.point],
            "kind": self.kind,
            "stable": bool(self.stable),
            "oscillatory": bool(self.oscillatory),
            "trace": float(self.trace),
            "determinant": float(self.determinant),
            "eigenvalues": [[float(z.real), float(z.imag)] for z in self.eigenvalues],
            "jacobian": np.asarray(self.jacobian, float).tolist(),
        }


def analyze_point(system: FlowSystem, point: Sequence[float], tol: float = 1e-9) -> FixedPointReport:
    """
    Linearize ``system`` at ``point`` and classify it.

    ``point`` is assumed to be a fixed point; the rates are not re-checked.
    """
    J = jacobian_at(system, point)
    eigvals, eigvecs = np.linalg.eig(J)
    eigvals = np.where(np.abs(eigvals.imag) <= tol, eigvals.real + 0j, eigvals)
    kind = classify_1d(J[0, 0], tol) if system.dim == 1 else classify_eigenvalues(eigvals, tol)
    return FixedPointReport(
        point=tuple(float(v) for v in np.atleast_1d(point)),
        jacobian=J,
        eigenvalues=eigvals,
        eigenvectors=eigvecs,
        trace=float(np.trace(J)),
        determinant=float(np.linalg.det(J)),
        kind=kind,
        stable=bool(np.all(eigvals.real < -tol)),
        oscillatory=bool(np.any(np.abs(eigvals.imag) > tol)),
    )


def analyze_system(system: FlowSystem, *, tol: float = 1e-9,
                   domain: Optional[Sequence[Tuple[float, float]]] = None) -> List[FixedPointReport]:
    """Find every fixed point of ``system`` and classify each one."""
    return [analyze_point(system, p, tol) for p in fixed_points(system, domain=domain)]


def _fmt_complex(z: complex, prec: int) -> str:
    if abs(z.imag) == 0.0:
        return f"{z.real:.{prec}g}"
    sign = "+" if z.imag >= 0 else "-"
    return f"{z.real:.{prec}g}{sign}{abs(z.imag):.{prec}g}i"


def report_table(reports: Sequence[FixedPointReport], precision: int = 4) -> pd.DataFrame:
    """One row per fixed point: point, kind, stable, oscillatory, trace, det, eigenvalues."""
    rows = []
    for r in reports:
        rows.append({
            "point": "(" + ", ".join(f"{v:.{precision}g}" for v in r.point) + ")",
            "kind": r.kind,
            "stable": r.stable,
            "oscillatory": r.oscillatory,
            "trace": r.trace,
            "determinant": r.determinant,
            "eigenvalues": ", ".join(_fmt_complex(z, precision) for z in r.eigenvalues),
        })
    return pd.DataFrame(rows, columns=["point", "kind", "stable", "oscillatory",
                                       "trace", "determinant", "eigenvalues"])
