"""Typed view of configs/crossover.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from casecrossover.errors import ConfigError
from casecrossover.features.climate_windows import DEFAULT_WINDOWS, WindowSpec
from casecrossover.utils.io import load_yaml

ON_INSUFFICIENT = ("abort", "drop")


@dataclass(frozen=True)
class PreprocessConfig:
    incubation_days: int = 14
    symptom_date_range: Tuple[str, str] = ("2002-12-01", "2020-12-31")
    blank_flags_confirmed: bool = False


@dataclass(frozen=True)
class CrossoverConfig:
    n_controls: int = 5
    window_days: int = 7
    seed: int = 20250101
    step_days: int = 3
    min_offset_days: int = 4
    same_month_only: bool = False
    on_insufficient: str = "abort"
    years: Optional[Tuple[int, int]] = None
    windows: Tuple[WindowSpec, ...] = DEFAULT_WINDOWS
    cases_path: Optional[Path] = None
    notifications_path: Optional[Path] = None
    climate_path: Optional[Path] = None
    output_path: Path = Path("data/processed/case_crossover.csv")
    output_sep: str = ","
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)

    def __post_init__(self):
        for name in ("n_controls", "window_days", "step_days"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 1:
                raise ConfigError(f"{name} must be a positive integer, got {v!r}")
        if not isinstance(self.min_offset_days, int) or self.min_offset_days < 1:
            raise ConfigError(f"min_offset_days must be >= 1, got {self.min_offset_days!r}")
        if not isinstance(self.seed, int) or isinstance(self.seed, bool) or self.seed < 0:
            raise ConfigError(f"seed must be a non-negative integer, got {self.seed!r}")
        if self.on_insufficient not in ON_INSUFFICIENT:
            raise ConfigError(
                f"on_insufficient must be one of {ON_INSUFFICIENT}, got {self.on_insufficient!r}"
            )
        if self.years is not None and self.years[0] > self.years[1]:
            raise ConfigError(f"years range is reversed: {self.years}")
        if not self.windows:
            raise ConfigError("at least one climate window must be configured")
        names = [w.name for w in self.windows]
        if len(set(names)) != len(names):
            raise ConfigError(f"duplicate window names: {names}")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "CrossoverConfig":
        known = {
            "n_controls", "window_days", "seed", "step_days", "min_offset_days",
            "same_month_only", "on_insufficient", "years", "windows", "inputs",
            "output", "preprocess", "project_root",
        }
        unknown = set(cfg) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {
            k: cfg[k]
            for k in ("n_controls", "window_days", "seed", "step_days",
                      "min_offset_days", "same_month_only", "on_insufficient")
            if k in cfg
        }

        if cfg.get("years") is not None:
            years = cfg["years"]
            if isinstance(years, dict):
                years = (years.get("start"), years.get("end"))
            try:
                kwargs["years"] = (int(years[0]), int(years[1]))
            except (TypeError, ValueError, IndexError) as e:
                raise ConfigError(f"years must be [start, end], got {cfg['years']!r}") from e

        if "windows" in cfg:
            try:
                kwargs["windows"] = tuple(WindowSpec(**w) for w in cfg["windows"])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"invalid window spec: {e}") from e

        # relative input/output paths live under project_root
        root = Path(cfg.get("project_root") or ".")
        inputs = cfg.get("inputs") or {}
        for key in ("cases", "notifications", "climate"):
            if inputs.get(key):
                kwargs[f"{key}_path"] = root / inputs[key]

        output = cfg.get("output") or {}
        if output.get("path"):
            kwargs["output_path"] = root / output["path"]
        if output.get("sep"):
            kwargs["output_sep"] = str(output["sep"])

        pre = cfg.get("preprocess") or {}
        if pre:
            pkw: Dict[str, Any] = {}
            if "incubation_days" in pre:
                pkw["incubation_days"] = int(pre["incubation_days"])
            if "symptom_date_range" in pre:
                lo, hi = pre["symptom_date_range"]
                pkw["symptom_date_range"] = (str(lo), str(hi))
            if "blank_flags_confirmed" in pre:
                pkw["blank_flags_confirmed"] = bool(pre["blank_flags_confirmed"])
            kwargs["preprocess"] = PreprocessConfig(**pkw)

        return cls(**kwargs)


def load_config(path: str | Path) -> CrossoverConfig:
    return CrossoverConfig.from_dict(load_yaml(path))
