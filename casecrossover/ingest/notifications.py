"""
Turn a harmonised malaria notification table into the confirmed-case table.

Expected columns (SIVEP-Malaria names):
  DT_NOTIF  notification date, dd/mm/YYYY
  DT_SINTO  symptom onset date, dd/mm/YYYY (may be blank)
  RES_EXAM  exam result code (> 1 means a parasite was found)
  TIPO_LAM  slide type (3 = cure verification slide)
  ID_LVC    1 when the record is a cure-verification (LVC) follow-up
  MUN_INFE  probable municipality of infection

Steps: parse dates → keep configured years → keep confirmed new cases →
impute missing/implausible symptom dates from the empirical notification lag
→ shift back by the incubation period → CaseRecord table.
"""

from typing import Optional, Tuple

import numpy as np
import pandas as pd

from casecrossover.errors import MalformedInputError
from casecrossover.ingest.cases_reader import validate_cases

NOTIFICATION_COLUMNS = ["DT_NOTIF", "DT_SINTO", "RES_EXAM", "TIPO_LAM", "ID_LVC", "MUN_INFE"]
DATE_FORMAT = "%d/%m/%Y"


def parse_notification_dates(df: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in NOTIFICATION_COLUMNS if c not in df.columns]
    if missing:
        raise MalformedInputError(
            f"notification table missing columns {missing}; got {df.columns.tolist()}"
        )
    out = df.copy()
    out["date_notif"] = pd.to_datetime(out["DT_NOTIF"], format=DATE_FORMAT, errors="coerce")
    out["date_symp"] = pd.to_datetime(out["DT_SINTO"], format=DATE_FORMAT, errors="coerce")
    out = out.dropna(subset=["date_notif"])
    out["year"] = out["date_notif"].dt.year
    return out


def filter_years(df: pd.DataFrame, years: Optional[Tuple[int, int]]) -> pd.DataFrame:
    if years is None:
        return df.copy()
    lo, hi = years
    return df[df["year"].between(lo, hi)].copy()


def filter_confirmed(df: pd.DataFrame, blank_flags_confirmed: bool = False) -> pd.DataFrame:
    """
    Positive exam, not a cure-verification slide, with a municipality of infection.

    By default a blank TIPO_LAM or ID_LVC excludes the record, as in the study
    case definition. With `blank_flags_confirmed=True` blank flags are read as
    "not flagged" and such positive records are kept.
    """
    res = pd.to_numeric(df["RES_EXAM"], errors="coerce")
    tipo = pd.to_numeric(df["TIPO_LAM"], errors="coerce")
    lvc = pd.to_numeric(df["ID_LVC"], errors="coerce")
    if blank_flags_confirmed:
        tipo = tipo.fillna(0)
        lvc = lvc.fillna(0)
    else:
        res = res.where(tipo.notna() & lvc.notna())
    confirmed = (res > 1) & (tipo != 3) & (lvc != 1) & df["MUN_INFE"].notna()
    return df[confirmed].copy()


def impute_symptom_dates(
    df: pd.DataFrame,
    rng: np.random.Generator,
    valid_range: Tuple[str, str] = ("2002-12-01", "2020-12-31"),
) -> pd.DataFrame:
    """
    Fill missing symptom dates as notification date minus a lag drawn (with
    replacement) from the observed notification lags. Dates outside
    `valid_range`, observed or imputed, are redrawn once the same way.
    """
    out = df.copy()
    lag_days = (out["date_notif"] - out["date_symp"]).dt.days.dropna().to_numpy()

    def _redraw(mask: pd.Series) -> None:
        n = int(mask.sum())
        if not n:
            return
        if lag_days.size == 0:
            raise MalformedInputError(
                f"{n} symptom dates need imputing but no record has both dates"
            )
        drawn = rng.choice(lag_days, size=n, replace=True)
        out.loc[mask, "date_symp"] = out.loc[mask, "date_notif"] - pd.to_timedelta(drawn, unit="D")
        out.loc[mask, "symptom_date_imputed"] = True

    out["symptom_date_imputed"] = False
    _redraw(out["date_symp"].isna())

    lo, hi = pd.Timestamp(valid_range[0]), pd.Timestamp(valid_range[1])
    _redraw((out["date_symp"] > hi) | (out["date_symp"] < lo))
    return out


def estimate_infection_dates(df: pd.DataFrame, incubation_days: int = 14) -> pd.DataFrame:
    out = df.copy()
    out["infection_date"] = out["date_symp"] - pd.Timedelta(days=incubation_days)
    return out


def build_case_table(df: pd.DataFrame) -> pd.DataFrame:
    """Sequential ids (1..n) in input order, then the CaseRecord contract."""
    cases = pd.DataFrame(
        {
            "id": np.arange(1, len(df) + 1),
            "infection_date": df["infection_date"].to_numpy(),
            "spatial_unit": df["MUN_INFE"].to_numpy(),
            "lab_result": df["RES_EXAM"].to_numpy(),
        }
    )
    return validate_cases(cases)


def preprocess_notifications(
    df: pd.DataFrame,
    seed: int,
    years: Optional[Tuple[int, int]] = None,
    incubation_days: int = 14,
    symptom_date_range: Tuple[str, str] = ("2002-12-01", "2020-12-31"),
    blank_flags_confirmed: bool = False,
) -> pd.DataFrame:
    rng = np.random.default_rng([int(seed)])
    out = parse_notification_dates(df)
    out = filter_years(out, years)
    out = filter_confirmed(out, blank_flags_confirmed)
    out = impute_symptom_dates(out, rng, symptom_date_range)
    out = estimate_infection_dates(out, incubation_days)
    return build_case_table(out)
