import numpy as np
import pytest

from pystatdyn import demos


def test_regression_demo_defaults():
    res = demos.run_regression_demo(levels=[0.99])
    for k in ("fit", "table", "tables", "coefficients", "formula", "family", "link", "nobs"):
        assert k in res
    assert res["formula"] == "hindfoot_length ~ sex"
    assert set(res["coefficients"]) == {"(Intercept)", "sexM"}
    w95 = res["tables"][0.95]["ci_upper"] - res["tables"][0.95]["ci_lower"]
    w99 = res["tables"][0.99]["ci_upper"] - res["tables"][0.99]["ci_lower"]
    assert (w95 < w99).all()


def test_regression_demo_prediction_from_table():
    res = demos.run_regression_demo(predictors={"sexM": 1})
    c = res["coefficients"]
    pred = res["prediction"]
    assert pred["link"] == pytest.approx(c["(Intercept)"] + c["sexM"])
    assert pred["response"] == pytest.approx(pred["link"])


def test_regression_demo_forwards_fit_options(linear_table):
    res = demos.run_regression_demo(data=linear_table, formula="y ~ x", method="ols",
                                    func=print, command="fit")
    assert res["fit"].method == "ols"


def test_regression_demo_logistic_with_plot(tmp_path, capsys):
    out = tmp_path / "logit.png"
    res = demos.run_regression_demo(
        data="builtin:trapping", formula="sex ~ hindfoot_length", family="binomial",
        success="M", predictors={"hindfoot_length": 30.0},
        plot=True, save_path=str(out), dpi=60, verbose=True,
    )
    assert res["link"] == "logit"
    assert 0.0 < res["prediction"]["response"] < 1.0
    assert out.exists()
    assert "[run_regression_demo]" in capsys.readouterr().out


def test_regression_demo_plot_failure_is_reported(linear_table, capsys):
    res = demos.run_regression_demo(data=linear_table, formula="y ~ x", plot=True,
                                    save_path="/nonexistent-dir/fig.png")
    assert "fit" in res
    assert "Plotting failed" in capsys.readouterr().out


def test_ci_demo(tmp_path, capsys):
    out = tmp_path / "ci.png"
    res = demos.run_ci_demo(n=12, reps=80, level=0.9, seed=5, plot=True, save_path=str(out),
                            dpi=60, verbose=True)
    assert res["missed"] == int(np.count_nonzero(~res["covers"]))
    assert res["expected_missed"] == pytest.approx(8.0)
    lo, hi = res["coverage_band"]
    assert lo < 0.9 < hi
    assert out.exists()
    assert "[run_ci_demo]" in capsys.readouterr().out


def test_gallery_demo_datasaurus_and_anscombe():
    res = demos.run_gallery_demo(kind="datasaurus", n=60)
    assert len(res["summary"]) == 12
    for col in ("mean_x", "mean_y", "sd_x", "sd_y", "corr"):
        assert res["spread"][col] < 1e-8

    ans = demos.run_gallery_demo(kind="Anscombe")
    assert ans["kind"] == "anscombe"
    assert ans["spread"]["mean_x"] == pytest.approx(0.0)
    assert ans["spread"]["corr"] < 0.01

    with pytest.raises(ValueError, match="kind"):
        demos.run_gallery_demo(kind="dino")


def test_simpson_demo():
    res = demos.run_simpson_demo(n_groups=3, n_per_group=40)
    assert res["reversal"] is True
    assert res["pooled_slope"] > 0
    assert all(s < 0 for s in res["group_slopes"].values())


def test_stability_demo_predator_prey():
    res = demos.run_stability_demo()
    assert res["fixed_points"] == [(0.0, 0.0), (1.0, 5.0)]
    assert res["table"]["kind"].tolist() == ["saddle", "stable spiral"]
    assert res["nullclines"]["y"] == ["Eq(y, 5*x)"]
    assert "Eq(y, 5)" in res["nullclines"]["x"]


def test_stability_demo_custom_rates_and_params(tmp_path):
    out = tmp_path / "phase_line.png"
    res = demos.run_stability_demo(rates=["r*N*(1 - N/K)"], variables=["N"],
                                   params={"r": 2.0, "K": 4.0}, plot=True, save_path=str(out), dpi=60)
    assert res["fixed_points"] == [(0.0,), (4.0,)]
    assert [r.kind for r in res["reports"]] == ["unstable", "stable"]
    assert res["reports"][1].eigenvalues[0].real == pytest.approx(-2.0)
    assert out.exists()


def test_stability_demo_phase_portrait_and_errors(tmp_path):
    out = tmp_path / "phase.png"
    res = demos.run_stability_demo(model="lotka-volterra", params={"alpha": 1.0},
                                   initial_conditions=[(6.0, 3.0)], t_span=(0.0, 10.0),
                                   plot=True, save_path=str(out), dpi=60)
    assert res["system"].params["alpha"] == 1.0
    assert res["reports"][-1].kind == "center"
    assert out.exists()

    with pytest.raises(ValueError, match="unknown parameter"):
        demos.run_stability_demo(model="logistic", params={"q": 1.0})
    with pytest.raises(ValueError, match="unknown model"):
        demos.run_stability_demo(model="sir")
    with pytest.raises(ValueError, match="variables"):
        demos.run_stability_demo(rates=["x"])
