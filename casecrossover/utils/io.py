"""IO helpers: YAML loading, path resolution, table reading and atomic writes."""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import pandas as pd
import yaml


def load_yaml(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def resolve_paths(cfg: Dict[str, Any]) -> Dict[str, Path]:
    """
    Returns the project root and the interim directory (created if missing).

    Keys returned:
      root, interim
    """
    root = Path(cfg.get("project_root", ".")).resolve()

    paths: Dict[str, Path] = {
        "root": root,
        "interim": root / "data" / "interim",
    }
    ensure_dir(paths["interim"])

    return paths


def read_table(path: str | Path, **csv_kwargs) -> pd.DataFrame:
    """Read a CSV or Parquet table, picked by file suffix."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input table not found: {p}")
    if p.suffix.lower() in {".parquet", ".pq"}:
        return pd.read_parquet(p)
    return pd.read_csv(p, **csv_kwargs)


def write_table_atomic(df: pd.DataFrame, path: str | Path, sep: str = ",") -> Path:
    """
    Write `df` as delimited text. The frame goes to a temp file in the target
    directory first and is renamed into place, so a failure never leaves a
    partial table at `path`.
    """
    out = Path(path)
    ensure_dir(out.parent)
    fd, tmp = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".tmp", dir=out.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            df.to_csv(fh, sep=sep, index=False, date_format="%Y-%m-%d")
        # mkstemp creates 0600; give the table the mode a plain open() would
        umask = os.umask(0)
        os.umask(umask)
        os.chmod(tmp, 0o666 & ~umask)
        os.replace(tmp, out)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    return out
