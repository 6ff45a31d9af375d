import matplotlib
import numpy as np
import pytest

from pystatdyn import plot as plot_mod
from pystatdyn.datasets import anscombe_quartet, datasaurus_like, simpson_paradox, trapping_records
from pystatdyn.dynamics import logistic_growth, lotka_volterra, predator_prey
from pystatdyn.inference import coverage_simulation
from pystatdyn.regression import fit_model


def _assert_saved(fig, path):
    assert isinstance(fig, matplotlib.figure.Figure)
    assert path.exists() and path.stat().st_size > 0


def test_plot_regression_numeric_with_fit(tmp_path, linear_table):
    res = fit_model(linear_table, "y ~ x")
    out = tmp_path / "reg.png"
    fig = plot_mod.plot_regression(linear_table, "x", "y", result=res, show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)
    ax = fig.axes[0]
    assert ax.get_xlabel() == "x" and ax.get_ylabel() == "y"
    assert ax.get_title() == "y ~ x"


def test_plot_regression_categorical_and_hue(tmp_path, linear_table):
    df = trapping_records(n=300, seed=1)
    fig = plot_mod.plot_regression(df, "sex", "hindfoot_length", show=False)
    assert [t.get_text() for t in fig.axes[0].get_xticklabels()] == ["F", "M"]

    out = tmp_path / "hue.png"
    fig = plot_mod.plot_regression(linear_table, "x", "y", hue="g", show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)


def test_plot_regression_categorical_strips_coloured_by_hue(linear_table):
    df = linear_table.assign(half=np.where(linear_table["x"] < 2.5, "low", "high"))
    fig = plot_mod.plot_regression(df, "g", "y", hue="half", show=False)
    legend = fig.axes[0].get_legend()
    assert legend is not None
    assert legend.get_title().get_text() == "half"
    assert [t.get_text() for t in legend.get_texts()] == ["high", "low"]


def test_plot_coefficients(tmp_path, linear_table):
    res = fit_model(linear_table, "y ~ x + g")
    out = tmp_path / "coef.png"
    fig = plot_mod.plot_coefficients(res, levels=(0.99, 0.95), show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)
    labels = [t.get_text() for t in fig.axes[0].get_yticklabels()]
    assert set(labels) == {"x", "gb"}
    with pytest.raises(ValueError, match="include_intercept"):
        plot_mod.plot_coefficients(fit_model(linear_table, "y ~ 1"), show=False)


def test_plot_coverage(tmp_path):
    sim = coverage_simulation(n=10, reps=60, seed=4)
    out = tmp_path / "cov.png"
    fig = plot_mod.plot_coverage(sim, max_intervals=50, show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)


def test_plot_gallery_layout(tmp_path):
    df = datasaurus_like(["circle", "star", "x_shape", "dots", "away"], n=40)
    out = tmp_path / "gallery.png"
    fig = plot_mod.plot_gallery(df, ncols=3, show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)
    visible = [ax for ax in fig.axes if ax.get_visible()]
    assert len(fig.axes) == 6 and len(visible) == 5

    fig = plot_mod.plot_gallery(anscombe_quartet(), ncols=2, title="Anscombe", show=False)
    assert sorted(ax.get_title() for ax in fig.axes) == ["I", "II", "III", "IV"]


def test_plot_simpson(tmp_path):
    out = tmp_path / "simpson.png"
    fig = plot_mod.plot_simpson(simpson_paradox(n_per_group=20), show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)
    labels = [t.get_text() for t in fig.axes[0].get_legend().get_texts()]
    assert any(lbl.startswith("pooled") for lbl in labels)


def test_plot_flow_1d(tmp_path):
    out = tmp_path / "flow.png"
    fig = plot_mod.plot_flow_1d(logistic_growth(), (-2.0, 12.0), show=False, save_path=str(out), dpi=60)
    _assert_saved(fig, out)
    assert fig.axes[0].get_ylabel() == "dN/dt"
    with pytest.raises(ValueError, match="1-D"):
        plot_mod.plot_flow_1d(predator_prey(), (0.0, 1.0), show=False)


def test_plot_phase_portrait(tmp_path):
    out = tmp_path / "phase.png"
    fig = plot_mod.plot_phase_portrait(
        predator_prey(), (-0.5, 2.0), (-1.0, 8.0), n=25,
        initial_conditions=[(1.5, 2.0)], t_span=(0.0, 20.0),
        show=False, save_path=str(out), dpi=60,
    )
    _assert_saved(fig, out)
    ax = fig.axes[0]
    assert ax.get_xlim() == pytest.approx((-0.5, 2.0))
    assert ax.get_legend() is not None

    fig = plot_mod.plot_phase_portrait(lotka_volterra(), (0.1, 10.0), (0.1, 6.0), nullclines=False, show=False)
    assert fig.axes[0].get_legend() is None
    with pytest.raises(ValueError, match="2-D"):
        plot_mod.plot_phase_portrait(logistic_growth(), (0, 1), (0, 1), show=False)


def test_plot_into_existing_axes():
    import matplotlib.pyplot as plt

    fig, (a1, a2) = plt.subplots(1, 2)
    out1 = plot_mod.plot_flow_1d(logistic_growth(), (-1.0, 11.0), ax=a1, show=False)
    out2 = plot_mod.plot_coverage(coverage_simulation(n=5, reps=20), ax=a2, show=False)
    assert out1 is fig and out2 is fig
    assert np.isfinite(a1.get_xlim()).all()
