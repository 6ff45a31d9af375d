#!/usr/bin/env python3
"""
Example: always plot your data
------------------------------

Anscombe's quartet, a dozen Datasaurus-like shapes and a Simpson's-paradox
table, each with the summary statistics that hide what the picture shows.
"""

import os

from pystatdyn.demos import run_gallery_demo, run_simpson_demo

FIGDIR = "_figs"
os.makedirs(FIGDIR, exist_ok=True)

run_gallery_demo(kind="anscombe", ncols=2, verbose=True, plot=True,
                 save_path=os.path.join(FIGDIR, "example_anscombe.png"))

run_gallery_demo(kind="datasaurus", verbose=True, plot=True,
                 save_path=os.path.join(FIGDIR, "example_datasaurus.png"))

res = run_simpson_demo(verbose=True, plot=True,
                       save_path=os.path.join(FIGDIR, "example_simpson.png"))
print(f"\npooled slope {res['pooled_slope']:+.3f} vs group slopes "
      + ", ".join(f"{v:+.3f}" for v in res["group_slopes"].values()))
