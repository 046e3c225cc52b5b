"""
End-to-end case-crossover build:
cases → referent classes → controls → strata ⇄ climate windows → covariate join.

Nothing is written unless every step succeeds.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

from casecrossover.config import CrossoverConfig
from casecrossover.design.assemble import assemble_crossover
from casecrossover.design.controls import sample_controls
from casecrossover.design.referent import classify_referents
from casecrossover.errors import ConfigError
from casecrossover.features.climate_windows import compute_climate_windows
from casecrossover.features.covariate_join import CovariateReport, join_covariates
from casecrossover.ingest.cases_reader import load_case_table, validate_cases
from casecrossover.ingest.climate_reader import load_climate
from casecrossover.ingest.notifications import preprocess_notifications
from casecrossover.utils.io import read_table, write_table_atomic


@dataclass(frozen=True)
class BuildResult:
    table: pd.DataFrame
    covariates: CovariateReport
    rejected_cases: Tuple[int, ...] = ()


def build_crossover(
    cases: pd.DataFrame, climate: pd.DataFrame, cfg: CrossoverConfig
) -> BuildResult:
    """In-memory build; inputs are left untouched."""
    cases = validate_cases(cases)
    classified = classify_referents(cases)
    print(
        "[crossover] Referent classes: "
        + ", ".join(f"{k}={v:,}" for k, v in classified["referent_class"].value_counts().sort_index().items())
    )

    sample = sample_controls(
        classified,
        n_controls=cfg.n_controls,
        seed=cfg.seed,
        min_offset=cfg.min_offset_days,
        step=cfg.step_days,
        same_month_only=cfg.same_month_only,
        on_insufficient=cfg.on_insufficient,
    )
    kept = cases[~cases["id"].isin(sample.rejected)]
    strata = assemble_crossover(kept, sample.controls, cfg.n_controls)
    print(
        f"[crossover] Strata: {kept['id'].nunique():,} cases × ({cfg.n_controls} controls + 1) "
        f"= {len(strata):,} rows; rejected {len(sample.rejected):,}"
    )

    windows = compute_climate_windows(climate, window_days=cfg.window_days, windows=cfg.windows)
    print(
        f"[crossover] Climate windows: {windows['spatial_unit'].nunique():,} units, "
        f"{len(windows):,} unit-days, W={cfg.window_days}"
    )

    table, report = join_covariates(strata, windows)
    if not report.complete:
        print(
            f"[crossover] Missing covariates: {report.n_unmatched:,} unmatched rows; "
            f"nulls {report.null_counts}"
        )
    return BuildResult(table=table, covariates=report, rejected_cases=sample.rejected)


def load_cases(cfg: CrossoverConfig) -> pd.DataFrame:
    if cfg.cases_path is not None:
        print(f"[crossover] Cases file: {cfg.cases_path}")
        return load_case_table(cfg.cases_path)
    if cfg.notifications_path is not None:
        print(f"[crossover] Notifications file: {cfg.notifications_path}")
        raw = read_table(cfg.notifications_path, sep=";", dtype={"MUN_INFE": str})
        return preprocess_notifications(
            raw,
            seed=cfg.seed,
            years=cfg.years,
            incubation_days=cfg.preprocess.incubation_days,
            symptom_date_range=cfg.preprocess.symptom_date_range,
            blank_flags_confirmed=cfg.preprocess.blank_flags_confirmed,
        )
    raise ConfigError("configure inputs.cases or inputs.notifications")


def run(cfg: CrossoverConfig, output_path: Optional[Path] = None) -> BuildResult:
    if cfg.climate_path is None:
        raise ConfigError("configure inputs.climate")
    cases = load_cases(cfg)
    print(f"[crossover] Cases: {len(cases):,} records, {cases['spatial_unit'].nunique():,} units")
    climate = load_climate(cfg.climate_path)

    result = build_crossover(cases, climate, cfg)

    out = write_table_atomic(result.table, output_path or cfg.output_path, sep=cfg.output_sep)
    print(f"[crossover] Saved: {out} ({len(result.table):,} rows)")
    return result
