import pandas as pd
import pytest

from casecrossover.design.assemble import assemble_crossover
from casecrossover.design.controls import sample_controls
from casecrossover.design.referent import classify_referents
from casecrossover.errors import MissingCovariateWarning
from casecrossover.features.climate_windows import compute_climate_windows
from casecrossover.features.covariate_join import join_covariates
from casecrossover.ingest.cases_reader import validate_cases


@pytest.fixture
def strata(cases):
    valid = validate_cases(cases)
    controls = sample_controls(classify_referents(valid), seed=4).controls
    return assemble_crossover(valid, controls, n_controls=5)


def test_unit_missing_from_climate_keeps_rows_with_nulls(strata, climate):
    windows = compute_climate_windows(climate)
    strata_before = strata.copy()
    windows_before = windows.copy()

    with pytest.warns(MissingCovariateWarning, match="X"):
        out, report = join_covariates(strata, windows)

    assert len(out) == len(strata)
    x = out[out["spatial_unit"] == "X"]
    assert len(x) == 6
    assert x["precipitation_1week_sum"].isna().all()
    assert x["mean_temp_1week_avg"].isna().all()
    assert out.loc[out["spatial_unit"] != "X", "precipitation_1week_sum"].notna().all()
    assert report.n_unmatched == 6
    assert not report.complete

    pd.testing.assert_frame_equal(strata, strata_before)
    pd.testing.assert_frame_equal(windows, windows_before)


def test_join_is_exact_on_unit_and_date(climate):
    windows = compute_climate_windows(climate)
    rows = pd.DataFrame(
        {
            "stratum_id": [1, 1],
            "date": pd.to_datetime(["2015-03-10", "2015-07-15"]),
            "is_case": [True, False],
            "spatial_unit": ["A", "A"],
            "lab_result": [2, None],
        }
    )
    with pytest.warns(MissingCovariateWarning):
        out, report = join_covariates(rows, windows)

    expected = windows.set_index(["spatial_unit", "date"]).loc[("A", pd.Timestamp("2015-03-10"))]
    assert out.loc[0, "precipitation_1week_sum"] == expected["precipitation_1week_sum"]
    assert pd.isna(out.loc[1, "precipitation_1week_sum"])
    assert report.n_unmatched == 1


def test_complete_join_emits_no_warning(climate, recwarn):
    windows = compute_climate_windows(climate)
    rows = pd.DataFrame(
        {
            "stratum_id": [1],
            "date": pd.to_datetime(["2015-03-10"]),
            "is_case": [True],
            "spatial_unit": ["B"],
            "lab_result": [2],
        }
    )
    out, report = join_covariates(rows, windows)
    assert report.complete
    assert not [w for w in recwarn if issubclass(w.category, MissingCovariateWarning)]
    assert out.columns.tolist()[:5] == ["stratum_id", "date", "is_case", "spatial_unit", "lab_result"]
