import numpy as np
import pandas as pd
import pytest

from casecrossover.errors import MalformedInputError
from casecrossover.features.climate_windows import (
    DEFAULT_WINDOWS,
    WindowSpec,
    add_derived_covariates,
    compute_climate_windows,
)

from conftest import make_climate


def _unit(df, unit):
    return df[df["spatial_unit"] == unit].reset_index(drop=True)


def test_trailing_sum_covers_last_w_days(climate):
    out = compute_climate_windows(climate, window_days=7)
    a = _unit(out, "A")
    raw = _unit(climate, "A")["precipitation_sum"]

    assert a["precipitation_1week_sum"].iloc[:6].isna().all()
    for k in (6, 7, 30, len(a) - 1):
        assert a["precipitation_1week_sum"].iloc[k] == pytest.approx(raw.iloc[k - 6 : k + 1].sum())


def test_trailing_means_and_diurnal_variation(climate):
    out = compute_climate_windows(climate, window_days=7)
    b = _unit(out, "B")
    raw = add_derived_covariates(_unit(climate, "B"))

    k = 20
    assert b["mean_temp_1week_avg"].iloc[k] == pytest.approx(raw["temperature_mean"].iloc[k - 6 : k + 1].mean())
    diurnal = raw["temperature_max"] - raw["temperature_min"]
    assert b["diurnal_variation_1week"].iloc[k] == pytest.approx(diurnal.iloc[k - 6 : k + 1].mean())


def test_units_are_windowed_independently(climate):
    out = compute_climate_windows(climate, window_days=7)
    b = _unit(out, "B")
    # B's first W-1 days never borrow A's history
    assert b["precipitation_1week_sum"].iloc[:6].isna().all()
    assert b["precipitation_1week_sum"].iloc[6] == pytest.approx(sum(100 + i for i in range(7)))


def test_input_order_does_not_matter(climate):
    shuffled = climate.sample(frac=1.0, random_state=1)
    a = compute_climate_windows(climate)
    b = compute_climate_windows(shuffled)
    pd.testing.assert_frame_equal(a, b)


def test_missing_raw_value_nulls_every_window_touching_it(climate):
    clim = climate.copy()
    idx = clim.index[(clim["spatial_unit"] == "A") & (clim["date"] == "2015-02-01")][0]
    clim.loc[idx, "precipitation_sum"] = np.nan

    out = _unit(compute_climate_windows(clim, window_days=7), "A").set_index("date")
    s = out["precipitation_1week_sum"]
    assert s.loc["2015-02-01":"2015-02-07"].isna().all()
    assert not np.isnan(s.loc["2015-01-31"])
    assert not np.isnan(s.loc["2015-02-08"])


def test_lagged_window_shifts_within_unit(climate):
    specs = (
        WindowSpec("rain_7d", "precipitation_sum", "sum"),
        WindowSpec("rain_7d_lag2", "precipitation_sum", "sum", lag=2),
    )
    out = compute_climate_windows(climate, window_days=7, windows=specs)
    for unit in ("A", "B"):
        u = _unit(out, unit)
        pd.testing.assert_series_equal(
            u["rain_7d_lag2"].iloc[2:].reset_index(drop=True),
            u["rain_7d"].iloc[:-2].reset_index(drop=True),
            check_names=False,
        )
        assert u["rain_7d_lag2"].iloc[:8].isna().all()


def test_output_is_one_row_per_unit_day(climate):
    out = compute_climate_windows(climate)
    assert len(out) == len(climate)
    assert not out.duplicated(["spatial_unit", "date"]).any()
    assert out.columns.tolist() == ["spatial_unit", "date"] + [w.name for w in DEFAULT_WINDOWS]


def test_gap_in_series_is_rejected():
    clim = make_climate(units=("A",), start="2015-01-01", end="2015-01-31")
    clim = clim[clim["date"] != "2015-01-10"]
    with pytest.raises(MalformedInputError, match="unit A"):
        compute_climate_windows(clim)


def test_duplicate_unit_day_is_rejected():
    clim = make_climate(units=("A",), start="2015-01-01", end="2015-01-31")
    clim = pd.concat([clim, clim.iloc[[3]]], ignore_index=True)
    with pytest.raises(MalformedInputError, match="duplicate"):
        compute_climate_windows(clim)


def test_unknown_source_column_is_rejected(climate):
    with pytest.raises(MalformedInputError, match="humidity"):
        compute_climate_windows(climate, windows=[WindowSpec("hum", "humidity", "mean")])


def test_window_spec_validation():
    with pytest.raises(ValueError):
        WindowSpec("x", "precipitation_sum", "median")
    with pytest.raises(ValueError):
        WindowSpec("x", "precipitation_sum", "sum", lag=-1)
