"""
Loader for table exports (CSV or Excel) downloaded from the record store.

Assumptions
-----------
- The first row holds the column names, spelled as in the live table.
- Values are kept as received: CSV cells are read as strings, Excel cells
  keep their cell type (numbers, booleans, datetimes).
- Fully blank rows are dropped.
"""

import logging
from pathlib import Path

import openpyxl
import pandas as pd

from ..errors import FetchError
from .utils import clean_header, clean_text

logger = logging.getLogger(__name__)

_EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}


def _load_csv(path: Path) -> list[dict]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    df.columns = [clean_header(c) for c in df.columns]
    records = df.to_dict(orient="records")
    return [r for r in records if any(clean_text(v) for v in r.values())]


def _load_excel(path: Path) -> list[dict]:
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.active
        rows = ws.iter_rows(values_only=True)
        try:
            header_row = next(rows)
        except StopIteration:
            return []
        header = [clean_header(cell) for cell in header_row]

        records = []
        for values in rows:
            record = {
                column: values[idx] if idx < len(values) else None
                for idx, column in enumerate(header)
                if column
            }
            if any(clean_text(v) for v in record.values()):
                records.append(record)
        return records
    finally:
        wb.close()


def load_table_export(path: str | Path) -> list[dict]:
    """Load records from a CSV or Excel export.

    Raises
    ------
    FetchError
        If the file is missing, has an unsupported extension, or cannot be
        parsed.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FetchError(f"Export file '{file_path}' was not found")

    suffix = file_path.suffix.lower()
    try:
        if suffix == ".csv":
            records = _load_csv(file_path)
        elif suffix in _EXCEL_SUFFIXES:
            records = _load_excel(file_path)
        else:
            raise FetchError(f"Unsupported export format '{suffix}'")
    except FetchError:
        raise
    except Exception as exc:
        logger.exception("Failed to read export file: %s", file_path)
        raise FetchError(f"Could not read export file '{file_path}': {exc}") from exc

    logger.info("Loaded %d rows from %s", len(records), file_path)
    return records
