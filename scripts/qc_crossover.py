"""Quick QC for data/processed/case_crossover.csv"""
import argparse
from pathlib import Path

import pandas as pd

OUT = Path("data/processed/case_crossover.csv")
KEY_COLS = ["stratum_id", "date", "is_case", "spatial_unit", "lab_result"]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--table", default=str(OUT))
    ap.add_argument("--sep", default=",")
    args = ap.parse_args()

    df = pd.read_csv(args.table, sep=args.sep, parse_dates=["date"])
    print(f"[qc] rows={len(df):,} strata={df['stratum_id'].nunique():,} "
          f"units={df['spatial_unit'].nunique()} "
          f"range={df['date'].min():%Y-%m-%d}→{df['date'].max():%Y-%m-%d}")

    issues = []

    # stratum balance
    sizes = df.groupby("stratum_id").size()
    n_case = df.groupby("stratum_id")["is_case"].sum()
    if sizes.nunique() > 1:
        issues.append(f"unbalanced strata, sizes seen: {sorted(sizes.unique().tolist())}")
    if (n_case != 1).any():
        issues.append(f"{int((n_case != 1).sum())} strata without exactly one case row")

    # controls must not carry lab results
    if df.loc[~df["is_case"].astype(bool), "lab_result"].notna().any():
        issues.append("control rows with lab_result set")

    # covariate missingness by case/control
    cov = [c for c in df.columns if c not in KEY_COLS]
    if cov:
        miss = df.groupby("is_case")[cov].apply(lambda g: g.isna().mean()).T
        print("[qc] share of missing covariates by is_case:\n", miss.round(4))

    print("[qc] OK" if not issues else "[qc] Issues:")
    for m in issues:
        print(" -", m)


if __name__ == "__main__":
    main()
