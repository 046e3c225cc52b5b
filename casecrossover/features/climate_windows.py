"""
Trailing climate windows per spatial unit.

The aggregate at date D covers [D-W+1, D] (right-aligned, inclusive). Any
missing raw value inside the window, including the first W-1 days of each
unit's series, gives a missing aggregate; there is no partial-window fallback.
"""

from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from casecrossover.errors import MalformedInputError
from casecrossover.ingest.climate_reader import validate_climate

AGGREGATIONS = ("sum", "mean", "min", "max")


@dataclass(frozen=True)
class WindowSpec:
    """One output column: `how` of `source` over the trailing window, shifted back `lag` days."""

    name: str
    source: str
    how: str = "mean"
    lag: int = 0

    def __post_init__(self):
        if not self.name or not self.source:
            raise ValueError("window spec needs both a name and a source column")
        if self.how not in AGGREGATIONS:
            raise ValueError(f"window {self.name!r}: how must be one of {AGGREGATIONS}, got {self.how!r}")
        if int(self.lag) != self.lag or self.lag < 0:
            raise ValueError(f"window {self.name!r}: lag must be a non-negative integer")


DEFAULT_WINDOWS = (
    WindowSpec("precipitation_1week_sum", "precipitation_sum", "sum"),
    WindowSpec("mean_temp_1week_avg", "temperature_mean", "mean"),
    WindowSpec("diurnal_variation_1week", "diurnal_variation", "mean"),
)


def add_derived_covariates(climate: pd.DataFrame) -> pd.DataFrame:
    """Per-row covariates computed before any windowing."""
    out = climate.copy()
    if {"temperature_max", "temperature_min"} <= set(out.columns):
        out["diurnal_variation"] = (
            pd.to_numeric(out["temperature_max"], errors="coerce")
            - pd.to_numeric(out["temperature_min"], errors="coerce")
        )
    return out


def compute_climate_windows(
    climate: pd.DataFrame,
    window_days: int = 7,
    windows: Iterable[WindowSpec] = DEFAULT_WINDOWS,
    unit_col: str = "spatial_unit",
    date_col: str = "date",
) -> pd.DataFrame:
    """
    Returns one row per (spatial_unit, date) with a column per WindowSpec.

    Each unit is windowed on its own series, so no window state crosses units.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")
    windows = tuple(windows)

    validate_climate(climate, unit_col=unit_col, date_col=date_col)
    out = add_derived_covariates(climate)
    out[date_col] = pd.to_datetime(out[date_col])
    out = out.sort_values([unit_col, date_col]).reset_index(drop=True)

    missing = sorted({w.source for w in windows} - set(out.columns))
    if missing:
        raise MalformedInputError(f"climate table lacks window source columns: {missing}")

    for v in {w.source for w in windows}:
        out[v] = pd.to_numeric(out[v], errors="coerce")

    grouped = out.groupby(unit_col, sort=False)
    for spec in windows:
        how = spec.how
        out[spec.name] = grouped[spec.source].transform(
            lambda s: getattr(s.rolling(window_days, min_periods=window_days), how)()
        )
        if spec.lag:
            out[spec.name] = out.groupby(unit_col, sort=False)[spec.name].shift(spec.lag)

    return out[[unit_col, date_col] + [w.name for w in windows]]
