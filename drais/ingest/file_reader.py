"""Decode an uploaded CSV or Excel file into headers and string rows.

Every cell ends up as text. CSV is read without type inference so that
phone numbers like "0701234567" keep their leading zero.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import fastexcel
import polars as pl

from drais.errors import EmptyFile, UnsupportedFileType
from drais.ingest.normalizer import normalize_cell

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".xlsx", ".xls", ".csv")
_PLACEHOLDER_HEADER = re.compile(r"_duplicated_\d+|__UNNAMED__\d+")


@dataclass
class DecodedFile:
    """Headers in file order plus one dict per non-blank data row."""
    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)


def check_extension(file_name: str, accepted: tuple[str, ...] = DEFAULT_EXTENSIONS) -> str:
    """Return the lower-cased extension, or raise UnsupportedFileType."""
    suffix = Path(file_name or "").suffix.lower()
    if suffix not in accepted:
        raise UnsupportedFileType(
            f"'{file_name}' is not a supported file. Upload one of: {', '.join(accepted)}"
        )
    return suffix


def _as_buffer(source) -> io.BytesIO:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    if isinstance(source, (str, Path)):
        return io.BytesIO(Path(source).read_bytes())
    if hasattr(source, "getvalue"):
        return io.BytesIO(source.getvalue())
    return io.BytesIO(source.read())


def _read_frame(buf: io.BytesIO, suffix: str) -> pl.DataFrame:
    if suffix == ".csv":
        return pl.read_csv(buf, infer_schema_length=0, truncate_ragged_lines=True)
    return pl.read_excel(buf)


def _stringify(df: pl.DataFrame) -> pl.DataFrame:
    """Cast every column to text.

    Excel stores numbers as floats, so a phone typed as a number comes back
    as 256701234567.0. Float columns holding only whole numbers go through
    Int64 first.
    """
    exprs = []
    for name, dtype in df.schema.items():
        col = pl.col(name)
        if dtype.is_float():
            values = df[name].drop_nulls()
            if (values == values.floor()).all():
                col = col.cast(pl.Int64)
        exprs.append(col.cast(pl.String))
    return df.select(exprs)


def _is_unnamed(header: str) -> bool:
    return not header or _PLACEHOLDER_HEADER.fullmatch(header) is not None


def _name_columns(df: pl.DataFrame) -> pl.DataFrame:
    """Drop blank columns without a header and name the rest by position.

    polars labels a missing CSV header "" (then "_duplicated_0", ...) and a
    missing Excel header "__UNNAMED__<n>". None of those may be offered as a
    mapping target.
    """
    keep, renames = [], {}
    for i, name in enumerate(df.columns):
        header = name.strip()
        if _is_unnamed(header):
            if df[name].drop_nulls().str.strip_chars().str.len_chars().sum() == 0:
                continue
            header = f"Column {i + 1}"
        keep.append(name)
        renames[name] = header
    return df.select(keep).rename(renames)


def read_table(source, file_name: str, accepted: tuple[str, ...] = DEFAULT_EXTENSIONS) -> DecodedFile:
    """Decode ``source`` (bytes, path or file-like) named ``file_name``.

    Raises UnsupportedFileType for a rejected extension or an undecodable
    payload, and EmptyFile when there is no header or no data row.
    """
    suffix = check_extension(file_name, accepted)

    try:
        df = _read_frame(_as_buffer(source), suffix)
    except pl.exceptions.NoDataError as e:
        raise EmptyFile(f"'{file_name}' must have a header row and at least one data row") from e
    except (pl.exceptions.ComputeError, UnicodeDecodeError) as e:
        raise UnsupportedFileType(f"'{file_name}' could not be decoded: {e}") from e
    except fastexcel.FastExcelError as e:
        raise UnsupportedFileType(f"'{file_name}' is not a readable Excel workbook: {e}") from e

    df = _name_columns(_stringify(df))
    headers = df.columns

    rows = []
    for raw in df.iter_rows():
        row = {h: normalize_cell(v) for h, v in zip(headers, raw)}
        if not any(row.values()):
            continue
        rows.append(row)

    if not headers or not rows:
        raise EmptyFile(f"'{file_name}' must have a header row and at least one data row")

    logger.info("Decoded %s: %d columns, %d rows", file_name, len(headers), len(rows))
    return DecodedFile(headers=headers, rows=rows)
