"""
Classify each case by where its infection date falls within the calendar month.

START: day-of-month <= 4
END:   days remaining in the month (days_in_month - day) <= 4
MID:   neither

The class decides which side(s) of the case date controls are drawn from
(see casecrossover.design.controls).
"""

from enum import Enum

import numpy as np
import pandas as pd

BOUNDARY_DAYS = 4


class ReferentClass(str, Enum):
    START = "START"
    END = "END"
    MID = "MID"


def classify_date(date, boundary_days: int = BOUNDARY_DAYS) -> ReferentClass:
    ts = pd.Timestamp(date)
    if ts.day <= boundary_days:
        return ReferentClass.START
    if ts.days_in_month - ts.day <= boundary_days:
        return ReferentClass.END
    return ReferentClass.MID


def classify_referents(
    cases: pd.DataFrame,
    date_col: str = "infection_date",
    boundary_days: int = BOUNDARY_DAYS,
) -> pd.DataFrame:
    """
    Adds day, days_in_month, days_remaining and referent_class to a copy of `cases`.

    The class is computed once here; downstream steps read the column rather
    than re-deriving it.
    """
    out = cases.copy()
    dt = pd.to_datetime(out[date_col])
    out["day"] = dt.dt.day.astype(int)
    out["days_in_month"] = dt.dt.days_in_month.astype(int)
    out["days_remaining"] = out["days_in_month"] - out["day"]

    is_start = out["day"] <= boundary_days
    is_end = out["days_remaining"] <= boundary_days
    # START is checked first; both flags cannot hold in months longer than 8 days
    out["referent_class"] = np.select(
        [is_start, is_end],
        [ReferentClass.START.value, ReferentClass.END.value],
        default=ReferentClass.MID.value,
    )
    return out
