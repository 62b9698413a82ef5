"""
Shared utilities for data ingestion: response unwrapping, text cleaning,
numeric coercion, header cleanup.
"""

import logging
import math
from typing import Any

logger = logging.getLogger(__name__)

# Keys under which record stores wrap their row lists, in lookup order.
# NocoDB uses "list", Supabase/PostgREST clients expose "data".
ENVELOPE_KEYS = ("list", "data", "records", "rows")


def unwrap_records(payload: Any) -> list[dict]:
    """Normalise a response body to a list of flat records.

    A bare list is used as is; a mapping exposes the list under one of
    ENVELOPE_KEYS (first present wins). Anything else yields an empty list.
    Items that are not mappings are dropped with a warning.
    """
    rows: Any = None
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                rows = payload[key]
                break

    if rows is None:
        logger.warning("Response carried no record list (type %s)", type(payload).__name__)
        return []

    records = [dict(item) for item in rows if isinstance(item, dict)]
    skipped = len(rows) - len(records)
    if skipped:
        logger.warning("Skipped %d non-record item(s) in response", skipped)
    return records


def clean_text(val: Any) -> str | None:
    """Trimmed string form of a value; None for missing or blank values."""
    if val is None:
        return None
    if isinstance(val, float) and math.isnan(val):
        return None
    text = str(val).strip()
    return text or None


def clean_header(name: Any) -> str:
    """Header cell to column name, keeping the source spelling."""
    return str(name).strip() if name is not None else ""


def safe_float(val: Any) -> float | None:
    """Coerce a value to float, returning None for non-numeric values."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        # Handle percentage strings like "78%"
        if val.endswith("%"):
            val = val[:-1]
        try:
            result = float(val)
        except ValueError:
            return None
    else:
        try:
            result = float(val)
        except (ValueError, TypeError):
            return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result
