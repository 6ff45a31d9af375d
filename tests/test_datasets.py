import numpy as np
import pandas as pd
import pytest

from pystatdyn import datasets
from pystatdyn.datasets import (
    DATASAURUS_SHAPES, DATASAURUS_TARGET,
    anscombe_quartet, co2_uptake, datasaurus_like, load_table,
    simpson_paradox, summarize_xy, trapping_records,
)


def test_trapping_records_layout_and_missing_values():
    df = trapping_records(n=500, seed=1)
    assert list(df.columns) == [
        "record_id", "year", "plot_id", "species_id", "sex", "hindfoot_length", "weight",
    ]
    assert len(df) == 500
    assert df["hindfoot_length"].isna().any()
    assert set(df["sex"].dropna().unique()) <= {"F", "M"}
    assert set(df["species_id"].unique()) <= {"DM", "DO", "PP", "PB", "OT", "RM", "NL"}


def test_trapping_records_is_reproducible():
    a = trapping_records(n=200, seed=5)
    b = trapping_records(n=200, seed=5)
    pd.testing.assert_frame_equal(a, b)


def test_trapping_records_rejects_bad_sizes():
    with pytest.raises(ValueError):
        trapping_records(n=0)
    with pytest.raises(ValueError):
        trapping_records(n=10, missing_frac=1.5)


def test_co2_uptake_shape():
    df = co2_uptake()
    assert df.shape == (84, 5)
    assert df["Plant"].nunique() == 12
    assert sorted(df["conc"].unique()) == [95, 175, 250, 350, 500, 675, 1000]
    # uptake saturates with concentration
    by_conc = df.groupby("conc")["uptake"].mean()
    assert by_conc.iloc[-1] > by_conc.iloc[0]


def test_anscombe_sets_share_statistics():
    df = anscombe_quartet()
    summary = summarize_xy(df, "x", "y", by="dataset")
    assert list(summary.index) == ["I", "II", "III", "IV"]
    assert np.allclose(summary["mean_x"], 9.0)
    assert np.allclose(summary["mean_y"], 7.50, atol=0.01)
    assert np.allclose(summary["corr"], 0.816, atol=0.002)
    assert np.allclose(summary["slope"], 0.5, atol=0.01)


def test_datasaurus_like_matches_target_exactly():
    df = datasaurus_like(n=100, seed=3)
    summary = summarize_xy(df, "x", "y", by="dataset")
    assert set(summary.index) == set(DATASAURUS_SHAPES)
    mx, my, sx, sy, r = DATASAURUS_TARGET
    assert np.allclose(summary["mean_x"], mx)
    assert np.allclose(summary["mean_y"], my)
    assert np.allclose(summary["sd_x"], sx)
    assert np.allclose(summary["sd_y"], sy)
    assert np.allclose(summary["corr"], r)


def test_datasaurus_like_subset_and_errors():
    df = datasaurus_like(["circle", "star"], n=50)
    assert sorted(df["dataset"].unique()) == ["circle", "star"]
    assert len(df) == 100
    with pytest.raises(ValueError, match="Unknown shape"):
        datasaurus_like(["dino"])
    with pytest.raises(ValueError):
        datasaurus_like(n=0)


def test_simpson_paradox_reverses_sign():
    df = simpson_paradox(n_groups=4, n_per_group=60, seed=11)
    pooled = summarize_xy(df, "x", "y").loc["all", "slope"]
    groups = summarize_xy(df, "x", "y", by="group")["slope"]
    assert pooled > 0
    assert (groups < 0).all()
    assert list(groups.index) == ["A", "B", "C", "D"]


def test_simpson_paradox_reversed_slope_also_reverses():
    df = simpson_paradox(n_groups=3, within_slope=1.5, between_slope=-1.0, seed=5)
    assert summarize_xy(df, "x", "y").loc["all", "slope"] < 0
    assert (summarize_xy(df, "x", "y", by="group")["slope"] > 0).all()


@pytest.mark.parametrize(
    "kw",
    [
        {"within_slope": 1.0, "between_slope": 2.0},     # same sign
        {"within_slope": 0.0},                           # flat groups
        {"within_slope": -1.0, "between_slope": 0.01},   # between trend too weak
    ],
)
def test_simpson_paradox_rejects_combinations_without_reversal(kw):
    with pytest.raises(ValueError, match="sign reversal"):
        simpson_paradox(**kw)


def test_summarize_xy_ignores_missing_rows():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0, np.nan], "y": [2.0, 4.0, 6.0, 1.0]})
    row = summarize_xy(df, "x", "y").loc["all"]
    assert row["n"] == 3
    assert row["slope"] == pytest.approx(2.0)
    assert row["intercept"] == pytest.approx(0.0, abs=1e-12)
    assert row["corr"] == pytest.approx(1.0)


def test_load_table_builtin_csv_and_errors(tmp_path):
    assert len(load_table("builtin:anscombe")) == 44
    with pytest.raises(ValueError, match="Unknown builtin"):
        load_table("builtin:nope")
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "missing.csv")

    path = tmp_path / "survey.csv"
    path.write_text(" a , b \n1,2\n,\n3,4\n")
    df = load_table(path)
    assert list(df.columns) == ["a", "b"]
    assert len(df) == 2


def test_builtin_tables_are_callable_without_arguments():
    for name, factory in datasets.BUILTIN_TABLES.items():
        assert len(factory()) > 0, name
