"""Attach trailing climate windows to every case/control row by (spatial_unit, date)."""

import warnings
from dataclasses import dataclass, field
from typing import Dict

import pandas as pd

from casecrossover.errors import MissingCovariateWarning

KEYS = ["spatial_unit", "date"]


@dataclass(frozen=True)
class CovariateReport:
    n_rows: int
    n_unmatched: int
    null_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return self.n_unmatched == 0 and not any(self.null_counts.values())


def join_covariates(
    crossover: pd.DataFrame, climate_windows: pd.DataFrame, warn: bool = True
) -> tuple[pd.DataFrame, CovariateReport]:
    """
    Left join on exact (spatial_unit, date). Every crossover row is kept;
    rows without a climate match, or whose window had missing history, carry
    nulls and are counted in the report.
    """
    left = crossover.copy()
    right = climate_windows.copy()
    for df in (left, right):
        df["spatial_unit"] = df["spatial_unit"].astype(str)
        df["date"] = pd.to_datetime(df["date"]).dt.normalize()

    cov_cols = [c for c in right.columns if c not in KEYS]
    overlap = [c for c in cov_cols if c in left.columns]
    if overlap:
        raise ValueError(f"covariate columns collide with crossover columns: {overlap}")

    right["_matched"] = True
    out = left.merge(right, on=KEYS, how="left", validate="many_to_one", sort=False)
    unmatched = out["_matched"].isna()
    out = out.drop(columns="_matched")

    report = CovariateReport(
        n_rows=len(out),
        n_unmatched=int(unmatched.sum()),
        null_counts={c: int(out[c].isna().sum()) for c in cov_cols},
    )
    if warn and not report.complete:
        units = sorted(out.loc[unmatched, "spatial_unit"].unique().tolist())
        msg = (
            f"{report.n_unmatched}/{report.n_rows} crossover rows have no climate row"
            + (f" (units: {units[:10]})" if units else "")
            + "; null covariates: "
            + ", ".join(f"{k}={v}" for k, v in report.null_counts.items() if v)
        )
        warnings.warn(msg, MissingCovariateWarning, stacklevel=2)
    return out, report
