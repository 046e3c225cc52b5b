"""
Time-stratified control (referent) sampling.

For a case with infection date t in a month of length m, candidate control
dates are arithmetic progressions with a fixed step (3 days):

  START: t+4 ... t+m
  END:   t-m ... t-4
  MID:   both sides pooled

Each progression starts exactly at its lower bound and never passes the upper
bound. N controls are then drawn uniformly without replacement.

Every case draws from its own generator seeded by (seed, case_id), so the
controls assigned to a case do not depend on row order, batch composition or
how the work is split up.
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from casecrossover.design.referent import ReferentClass
from casecrossover.errors import InsufficientCandidatesError

STEP_DAYS = 3
MIN_OFFSET_DAYS = 4


@dataclass(frozen=True)
class ControlSample:
    """Sampled controls plus the ids of cases dropped for lack of candidates."""

    controls: pd.DataFrame
    rejected: Tuple[int, ...] = ()


def candidate_offsets(
    referent_class: ReferentClass | str,
    days_in_month: int,
    min_offset: int = MIN_OFFSET_DAYS,
    step: int = STEP_DAYS,
) -> np.ndarray:
    """Day offsets from the case date eligible as controls."""
    cls = ReferentClass(referent_class)
    forward = np.arange(min_offset, days_in_month + 1, step)
    backward = np.arange(-days_in_month, -min_offset + 1, step)
    if cls is ReferentClass.START:
        return forward
    if cls is ReferentClass.END:
        return backward
    return np.concatenate([backward, forward])


def candidate_dates(
    infection_date,
    referent_class: ReferentClass | str,
    days_in_month: Optional[int] = None,
    min_offset: int = MIN_OFFSET_DAYS,
    step: int = STEP_DAYS,
    same_month_only: bool = False,
) -> pd.DatetimeIndex:
    """Sorted, distinct candidate control dates for one case."""
    ts = pd.Timestamp(infection_date).normalize()
    dim = int(days_in_month) if days_in_month is not None else ts.days_in_month
    offsets = candidate_offsets(referent_class, dim, min_offset=min_offset, step=step)
    dates = ts + pd.to_timedelta(offsets, unit="D")
    if same_month_only:
        dates = dates[(dates.year == ts.year) & (dates.month == ts.month)]
    return dates.unique().sort_values()


def case_rng(seed: int, case_id: int) -> np.random.Generator:
    return np.random.default_rng([int(seed), int(case_id)])


def draw_controls(
    candidates: pd.DatetimeIndex,
    n_controls: int,
    rng: np.random.Generator,
    case_id: int,
) -> pd.DatetimeIndex:
    if len(candidates) < n_controls:
        raise InsufficientCandidatesError(case_id, len(candidates), n_controls)
    idx = rng.choice(len(candidates), size=n_controls, replace=False)
    return candidates[np.sort(idx)]


def sample_controls(
    classified: pd.DataFrame,
    n_controls: int = 5,
    seed: int = 0,
    min_offset: int = MIN_OFFSET_DAYS,
    step: int = STEP_DAYS,
    same_month_only: bool = False,
    on_insufficient: str = "abort",
) -> ControlSample:
    """
    Draw `n_controls` control dates per case.

    `classified` must come from classify_referents (needs id, infection_date,
    referent_class, days_in_month). With on_insufficient="abort" the first case
    short of candidates raises InsufficientCandidatesError; with "drop" such
    cases are skipped and reported in ControlSample.rejected.
    """
    need = ["id", "infection_date", "referent_class", "days_in_month"]
    missing = [c for c in need if c not in classified.columns]
    if missing:
        raise ValueError(f"Expected classified cases with columns {need}; missing {missing}")
    if on_insufficient not in ("abort", "drop"):
        raise ValueError(f"on_insufficient must be 'abort' or 'drop', got {on_insufficient!r}")

    case_ids = []
    dates = []
    rejected = []
    rows = zip(
        classified["id"],
        classified["infection_date"],
        classified["referent_class"],
        classified["days_in_month"],
    )
    for case_id, infection_date, cls, dim in rows:
        cands = candidate_dates(
            infection_date, cls, dim,
            min_offset=min_offset, step=step, same_month_only=same_month_only,
        )
        try:
            drawn = draw_controls(cands, n_controls, case_rng(seed, case_id), int(case_id))
        except InsufficientCandidatesError:
            if on_insufficient == "abort":
                raise
            rejected.append(int(case_id))
            continue
        case_ids.extend([case_id] * n_controls)
        dates.extend(drawn)

    if rejected:
        warnings.warn(
            f"{len(rejected)} case(s) dropped with fewer than {n_controls} "
            f"candidate control dates: {rejected[:20]}",
            stacklevel=2,
        )

    controls = pd.DataFrame(
        {
            "case_id": pd.Series(case_ids, dtype="int64"),
            "date": pd.to_datetime(pd.Series(dates, dtype="datetime64[ns]")),
        }
    )
    return ControlSample(controls=controls, rejected=tuple(rejected))
