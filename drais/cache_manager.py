"""Parquet read/write helpers for the roster and import log files."""

from pathlib import Path

import polars as pl


def read_parquet(path: Path) -> pl.DataFrame:
    """Read a Polars DataFrame from parquet."""
    return pl.read_parquet(path)


def write_parquet(df: pl.DataFrame, path: Path) -> None:
    """Write a Polars DataFrame to parquet, replacing the file atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    df.write_parquet(tmp_path)
    tmp_path.replace(path)


def read_or_empty(path: Path | None, schema: dict) -> pl.DataFrame:
    """Read ``path`` if it exists, else return an empty frame with ``schema``."""
    if path is None or not path.exists():
        return pl.DataFrame(schema=schema)
    return read_parquet(path)
