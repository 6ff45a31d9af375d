#!/usr/bin/env python3
"""
Example: what "95% confidence" means
------------------------------------

Draws repeated samples, builds a t interval from each and counts how many
intervals miss the true mean.
"""

import os

from pystatdyn.demos import run_ci_demo

FIGDIR = "_figs"
os.makedirs(FIGDIR, exist_ok=True)

for level in (0.90, 0.95, 0.99):
    result = run_ci_demo(n=20, reps=200, level=level, seed=1, verbose=True, plot=False)
    print(f"  level={level:.2f}: missed {result['missed']} of {result['reps']}\n")

run_ci_demo(n=20, reps=100, level=0.95, seed=1, plot=True,
            save_path=os.path.join(FIGDIR, "example_coverage.png"))
