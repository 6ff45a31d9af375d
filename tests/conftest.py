"""
Headless Matplotlib configuration for pytest
--------------------------------------------

Forces the non-interactive "Agg" backend before any pystatdyn module
imports pyplot, and closes every figure after each test so that demos
called with ``plot=True`` do not accumulate open figures.
"""

import os

# A malformed MPLBACKEND (stray whitespace, "none") breaks the pyplot import
mb = os.environ.get("MPLBACKEND", "")
if mb.strip().lower() in {"", "none"} or mb != mb.strip():
    os.environ["MPLBACKEND"] = "Agg"

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest


@pytest.fixture(autouse=True)
def _close_figures():
    """Automatically close all Matplotlib figures after each test."""
    yield
    plt.close("all")


@pytest.fixture
def linear_table():
    """y = 1 + 2x + small noise on 60 points, with a two-level group column."""
    import numpy as np
    import pandas as pd

    rng = np.random.default_rng(0)
    x = np.linspace(0.0, 5.0, 60)
    return pd.DataFrame({
        "x": x,
        "y": 1.0 + 2.0 * x + rng.normal(0.0, 0.3, x.size),
        "g": np.where(np.arange(x.size) % 2 == 0, "a", "b"),
    })
