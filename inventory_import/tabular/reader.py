from __future__ import annotations

import io
import re
import warnings

import pandas as pd

from ..models.row_data import RowData

"""CSV reader.

One quote-aware parser (pandas.read_csv) is used both for type detection
(header only) and for the full parse, so a header such as "Weight, kg" in
quotes is read identically by both passes.

- every cell is read as text: no NA coercion ("NA", "null" stay strings),
  no numeric inference (SKU "00123" keeps its zeros)
- completely blank lines are skipped and do not consume a row number
- a data line with more cells than the header is an error, never truncated
- header names are normalized: trim, lowercase, whitespace runs -> "_",
  then HEADER_ALIASES
"""

__all__ = [
    "CSVParseError",
    "HEADER_ALIASES",
    "normalize_header",
    "read_header",
    "parse_csv",
]

# ダウンロード用テンプレートの見出しを検出ルールの列名へ寄せる
HEADER_ALIASES: dict[str, str] = {
    "product_name": "name",
    "weight_(kg)": "weight_kg",
}

_WS_RE = re.compile(r"\s+")

# 1 行目はヘッダ
FIRST_DATA_ROW = 2


class CSVParseError(Exception):
    """Raised when the tabular structure cannot be read."""


def normalize_header(name: object) -> str:
    text = _WS_RE.sub("_", str(name).strip().lower())
    return HEADER_ALIASES.get(text, text)


def _decode(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CSVParseError(f"CSV is not valid UTF-8: {e}") from e
    if raw.startswith("\ufeff"):
        return raw[1:]
    return raw


def _read_frame(text: str, nrows: int | None = None) -> pd.DataFrame | None:
    """Return the raw DataFrame, or None for input without any header line."""
    if not text.strip():
        return None
    try:
        # index_col=False だと余分なセルは警告だけで切り捨てられるのでエラーにする
        with warnings.catch_warnings():
            warnings.simplefilter("error", pd.errors.ParserWarning)
            return pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                skip_blank_lines=True,
                index_col=False,
                nrows=nrows,
            )
    except pd.errors.EmptyDataError:
        return None
    except pd.errors.ParserWarning as e:
        raise CSVParseError(f"CSV parsing errors: row has more fields than the header ({e})") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise CSVParseError(f"CSV parsing errors: {e}") from e


def read_header(raw: str | bytes) -> list[str]:
    """Normalized header names of the first non-blank line ([] for empty input)."""
    df = _read_frame(_decode(raw), nrows=0)
    if df is None:
        return []
    return [normalize_header(c) for c in df.columns]


def parse_csv(raw: str | bytes) -> list[RowData]:
    """Parse header + data lines into RowData (row_number = index + 2).

    Raises:
        CSVParseError: structure unreadable (e.g. unterminated quote, invalid
            UTF-8)
    """
    df = _read_frame(_decode(raw))
    if df is None:
        return []
    columns = [normalize_header(c) for c in df.columns]
    rows: list[RowData] = []
    for idx, raw_values in enumerate(df.itertuples(index=False, name=None)):
        values: dict[str, str] = {}
        for col, val in zip(columns, raw_values, strict=False):
            # 足りないセルは NaN になるので空文字扱い
            values[col] = val.strip() if isinstance(val, str) else ""
        rows.append(RowData(row_number=idx + FIRST_DATA_ROW, values=values))
    return rows
