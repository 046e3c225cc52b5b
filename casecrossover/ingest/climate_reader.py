"""
Load a daily climate table into the ClimateObservation contract:
columns: [spatial_unit, date, temperature_max, temperature_min, temperature_mean, precipitation_sum, ...]
(one row per unit per day, no gaps within a unit)
"""

import re
from pathlib import Path
from typing import Iterable

import pandas as pd

from casecrossover.errors import MalformedInputError, format_examples
from casecrossover.utils.io import read_table

CLIMATE_COLUMNS = ("temperature_max", "temperature_min", "temperature_mean", "precipitation_sum")

# ERA5-Land style export names → contract names
RENAME_MAP = {
    "mun": "spatial_unit",
    "municipality": "spatial_unit",
    "temperature_2m_max": "temperature_max",
    "temperature_2m_min": "temperature_min",
    "temperature_2m": "temperature_mean",
    "temperature_2m_mean": "temperature_mean",
    "total_precipitation_sum": "precipitation_sum",
    "total_precipitation": "precipitation_sum",
}


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", str(s).lower()).strip("_")


def validate_climate(
    climate: pd.DataFrame,
    unit_col: str = "spatial_unit",
    date_col: str = "date",
    required: Iterable[str] = (),
) -> None:
    """Raise MalformedInputError if keys are missing, null, duplicated or gapped."""
    need = [unit_col, date_col, *required]
    missing = [c for c in need if c not in climate.columns]
    if missing:
        raise MalformedInputError(
            f"climate table missing columns {missing}; got {climate.columns.tolist()}"
        )

    null_unit = climate[unit_col].isna()
    if null_unit.any():
        raise MalformedInputError(
            f"climate table has {int(null_unit.sum())} rows with null {unit_col}"
        )
    dates = pd.to_datetime(climate[date_col], errors="coerce")
    bad_date = dates.isna()
    if bad_date.any():
        units = climate.loc[bad_date, unit_col].unique()
        raise MalformedInputError(
            f"climate table has {int(bad_date.sum())} null/unparseable dates "
            f"(units: {format_examples(units)})"
        )

    keys = pd.DataFrame({"unit": climate[unit_col].to_numpy(), "date": dates.to_numpy()})
    dup = keys.duplicated()
    if dup.any():
        first = keys[dup].iloc[0]
        raise MalformedInputError(
            f"climate table has {int(dup.sum())} duplicate (unit, date) rows, "
            f"e.g. unit {first['unit']} on {first['date']:%Y-%m-%d}"
        )

    keys = keys.sort_values(["unit", "date"])
    step = keys.groupby("unit", sort=False)["date"].diff()
    gap = step.notna() & (step != pd.Timedelta(days=1))
    if gap.any():
        first = keys[gap].iloc[0]
        raise MalformedInputError(
            f"climate series for unit {first['unit']} is not gapless: "
            f"next observation after a gap is {first['date']:%Y-%m-%d}"
        )


def load_climate(path: str | Path, date_col: str = "date") -> pd.DataFrame:
    """Read, rename to contract names, validate and sort a daily climate table."""
    p = Path(path)
    df = read_table(p)
    df = df.rename(columns={c: _norm(c) for c in df.columns})
    df = df.rename(columns={c: RENAME_MAP.get(c, c) for c in df.columns})
    if date_col != "date":
        df = df.rename(columns={date_col: "date"})

    validate_climate(df, required=CLIMATE_COLUMNS)

    df["date"] = pd.to_datetime(df["date"])
    df["spatial_unit"] = df["spatial_unit"].astype(str).str.strip()
    for c in CLIMATE_COLUMNS:
        df[c] = pd.to_numeric(df[c], errors="coerce")

    cols_order = ["spatial_unit", "date"] + [
        c for c in df.columns if c not in {"spatial_unit", "date"}
    ]
    return df[cols_order].sort_values(["spatial_unit", "date"]).reset_index(drop=True)
