from __future__ import annotations

import io
import warnings
from pathlib import Path

import pandas as pd

from hubprop.models.table import RawTable

"""CSV reader for HubSpot property exports.

- 1行目をヘッダ行、2行目以降をデータ行として扱う
- all cells are read as strings, missing trailing cells become ""
- rows whose cells are all blank after trimming are dropped
- fewer than 2 rows (header + 1 data row) is an invalid file

Lines longer than the header row are truncated to the header width; cells
beyond the last header can never be addressed by the normalizer.
"""

__all__ = [
    "CsvReadError",
    "CsvParseError",
    "InvalidCsvError",
    "read_csv_bytes",
    "read_csv_file",
]


class CsvReadError(Exception):
    """Base class for CSV input errors (client input errors)."""


class CsvParseError(CsvReadError):
    """Raised when the bytes cannot be decoded or tokenized as CSV."""


class InvalidCsvError(CsvReadError):
    """Raised when the CSV has no header row or no data rows."""


def _keep_long_line(bad_line: list[str]) -> list[str]:
    # pandas drops the extra fields (ParserWarning) and keeps the row
    return bad_line


def read_csv_bytes(data: bytes, source: str = "<upload>") -> RawTable:
    """Parse CSV bytes into a RawTable.

    Raises:
        CsvParseError: undecodable or untokenizable input
        InvalidCsvError: header only, or empty input
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.BytesIO(data),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding="utf-8-sig",
                engine="python",
                on_bad_lines=_keep_long_line,
            )
    except pd.errors.EmptyDataError as e:
        raise InvalidCsvError(f"Invalid CSV format: {source} is empty") from e
    except (UnicodeDecodeError, pd.errors.ParserError) as e:
        raise CsvParseError(f"Failed to parse the CSV file {source}: {e}") from e

    df = df.fillna("")
    records = [[str(v) for v in row] for row in df.itertuples(index=False, name=None)]
    if not records:
        raise InvalidCsvError(f"Invalid CSV format: {source} has no rows")

    headers = [h.strip() for h in records[0]]
    rows = [r for r in records[1:] if any(cell.strip() for cell in r)]
    if not rows:
        raise InvalidCsvError(f"Invalid CSV format: {source} has no data rows")
    return RawTable.of(headers, rows)


def read_csv_file(path: Path) -> RawTable:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CsvParseError(f"Failed to read the CSV file {path}: {e}") from e
    return read_csv_bytes(data, source=path.name)
