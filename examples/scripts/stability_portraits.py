#!/usr/bin/env python3
"""
Example: fixed points and their stability
-----------------------------------------

1-D logistic growth (phase line) and the 2-D predator-prey model
(phase portrait with nullclines), plus a custom system typed as text.
"""

import os

from pystatdyn.dynamics import FlowSystem, logistic_growth, predator_prey
from pystatdyn.plot import plot_flow_1d, plot_phase_portrait
from pystatdyn.stability import analyze_system, report_table

FIGDIR = "_figs"
os.makedirs(FIGDIR, exist_ok=True)

# 1. Logistic growth: N* = 0 is unstable, N* = K is stable
logistic = logistic_growth(r=1.0, K=10.0)
print(report_table(analyze_system(logistic)).to_string(index=False))
plot_flow_1d(logistic, (-2.0, 12.0), show=False,
             save_path=os.path.join(FIGDIR, "example_logistic_flow.png"))

# 2. Predator-prey: saddle at the origin, stable spiral at (1, 5)
pp = predator_prey(A=5.0, B=1.0, C=1.0, D=0.2)
print(report_table(analyze_system(pp)).to_string(index=False))
plot_phase_portrait(pp, (-0.5, 3.0), (-1.0, 10.0),
                    initial_conditions=[(2.5, 1.0), (0.2, 8.0)], t_span=(0.0, 40.0),
                    show=False, save_path=os.path.join(FIGDIR, "example_predator_prey.png"))

# 3. Any system typed as text
custom = FlowSystem.from_strings(["x*(3 - x - 2*y)", "y*(2 - x - y)"], ["x", "y"], name="rabbits-sheep")
print(report_table(analyze_system(custom)).to_string(index=False))
