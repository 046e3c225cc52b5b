"""Union case rows and control rows into strata sharing stratum_id = case id."""

import pandas as pd

from casecrossover.errors import InvariantViolationError

CROSSOVER_COLUMNS = ["stratum_id", "date", "is_case", "spatial_unit", "lab_result"]


def assemble_crossover(
    cases: pd.DataFrame, controls: pd.DataFrame, n_controls: int
) -> pd.DataFrame:
    """
    One is_case=True row per case plus its control rows, validated so each
    stratum holds exactly n_controls + 1 rows.
    """
    case_rows = pd.DataFrame(
        {
            "stratum_id": cases["id"].astype("int64").to_numpy(),
            "date": pd.to_datetime(cases["infection_date"]).to_numpy(),
            "is_case": True,
            "spatial_unit": cases["spatial_unit"].to_numpy(),
            "lab_result": cases["lab_result"].to_numpy(),
        }
    )

    units = cases.drop_duplicates("id").set_index("id")["spatial_unit"]
    orphans = ~controls["case_id"].isin(units.index)
    if orphans.any():
        sid = controls.loc[orphans, "case_id"].iloc[0]
        n = int((controls["case_id"] == sid).sum())
        raise InvariantViolationError(sid, n, n_controls + 1, n_case_rows=0)

    control_rows = pd.DataFrame(
        {
            "stratum_id": controls["case_id"].astype("int64").to_numpy(),
            "date": pd.to_datetime(controls["date"]).to_numpy(),
            "is_case": False,
            "spatial_unit": controls["case_id"].map(units).to_numpy(),
            "lab_result": pd.NA,
        }
    )

    frames = [f for f in (case_rows, control_rows) if len(f)]
    if frames:
        out = pd.concat(frames, ignore_index=True)
    else:
        out = case_rows
    out = out[CROSSOVER_COLUMNS].sort_values(
        ["stratum_id", "is_case", "date"], ascending=[True, False, True], kind="mergesort"
    ).reset_index(drop=True)

    validate_strata(out, n_controls)
    return out


def validate_strata(crossover: pd.DataFrame, n_controls: int) -> None:
    """Raise InvariantViolationError for the first unbalanced stratum."""
    if crossover.empty:
        return
    g = crossover.groupby("stratum_id")["is_case"]
    sizes = g.size()
    n_cases = g.sum().astype(int)
    bad = sizes.index[(sizes != n_controls + 1) | (n_cases != 1)]
    if len(bad):
        sid = bad[0]
        raise InvariantViolationError(
            sid, int(sizes[sid]), n_controls + 1, n_case_rows=int(n_cases[sid])
        )
