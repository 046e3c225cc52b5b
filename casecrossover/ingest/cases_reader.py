"""
Load the confirmed-case table and enforce the CaseRecord contract:
columns: [id, infection_date, spatial_unit, lab_result]
"""

from pathlib import Path

import pandas as pd

from casecrossover.errors import MalformedInputError, format_examples
from casecrossover.utils.io import read_table

CASE_COLUMNS = ["id", "infection_date", "spatial_unit", "lab_result"]


def validate_cases(cases: pd.DataFrame) -> pd.DataFrame:
    """
    Returns a typed copy of `cases` restricted to CASE_COLUMNS.

    Raises MalformedInputError naming the offending ids when a required column
    is absent, an id is null/non-integer/negative/duplicated, or an
    infection_date or spatial_unit is null or unparseable.
    """
    missing = [c for c in CASE_COLUMNS if c not in cases.columns]
    if missing:
        raise MalformedInputError(
            f"case table missing columns {missing}; got {cases.columns.tolist()}"
        )
    out = cases[CASE_COLUMNS].copy()

    ids = pd.to_numeric(out["id"], errors="coerce")
    bad_id = ids.isna() | (ids % 1 != 0) | (ids < 0)
    if bad_id.any():
        raise MalformedInputError(
            f"case table has {int(bad_id.sum())} null/non-integer/negative ids: "
            f"{format_examples(out.loc[bad_id, 'id'])}"
        )
    out["id"] = ids.astype("int64")
    dup = out["id"].duplicated()
    if dup.any():
        raise MalformedInputError(f"duplicate case ids: {format_examples(out.loc[dup, 'id'].unique())}")

    dates = pd.to_datetime(out["infection_date"], errors="coerce")
    bad_date = dates.isna()
    if bad_date.any():
        raise MalformedInputError(
            f"{int(bad_date.sum())} cases with null/unparseable infection_date, "
            f"ids: {format_examples(out.loc[bad_date, 'id'])}"
        )
    out["infection_date"] = dates.dt.normalize()

    unit = out["spatial_unit"]
    bad_unit = unit.isna() | (unit.astype(str).str.strip() == "")
    if bad_unit.any():
        raise MalformedInputError(
            f"{int(bad_unit.sum())} cases without spatial_unit, "
            f"ids: {format_examples(out.loc[bad_unit, 'id'])}"
        )
    out["spatial_unit"] = unit.astype(str).str.strip()
    out["lab_result"] = out["lab_result"].astype("category")
    return out.reset_index(drop=True)


def load_case_table(path: str | Path) -> pd.DataFrame:
    df = read_table(path)
    return validate_cases(df)
