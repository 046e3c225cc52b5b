"""
Builds the time-stratified case-crossover table using configs/crossover.yaml.

Outputs:
  - data/processed/case_crossover.csv   (one row per case/control date)
  - data/interim/crossover_sample.csv   (first 200 rows)

Usage:
  python scripts/build_crossover.py --config configs/crossover.yaml [--seed 7] [--output path.csv]
"""

import argparse
import dataclasses
import sys
import warnings
from pathlib import Path

from casecrossover.config import CrossoverConfig
from casecrossover.errors import CrossoverError
from casecrossover.pipeline import run
from casecrossover.utils.io import load_yaml, resolve_paths


def build_argparser() -> argparse.Namespace:
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default="configs/crossover.yaml")
    ap.add_argument("--seed", type=int, default=None, help="override the configured seed")
    ap.add_argument("--output", default=None, help="override output.path")
    return ap.parse_args()


def _print_warnings(caught) -> None:
    for w in caught:
        print(f"[WARN] {w.category.__name__}: {w.message}", file=sys.stderr)


def main() -> int:
    args = build_argparser()
    raw_cfg = load_yaml(args.config)
    paths = resolve_paths(raw_cfg)

    caught = []
    try:
        cfg = CrossoverConfig.from_dict(raw_cfg)
        if args.seed is not None:
            cfg = dataclasses.replace(cfg, seed=args.seed)
        if args.output is not None:
            cfg = dataclasses.replace(cfg, output_path=Path(args.output))

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = run(cfg)
    except CrossoverError as e:
        _print_warnings(caught)
        print(f"[crossover] FAILED ({type(e).__name__}): {e}", file=sys.stderr)
        return 1
    _print_warnings(caught)

    out_sample = paths["interim"] / "crossover_sample.csv"
    result.table.head(200).to_csv(out_sample, index=False)
    print(f"[crossover] Sample: {out_sample}")
    print("[crossover] Columns:", ", ".join(result.table.columns))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
