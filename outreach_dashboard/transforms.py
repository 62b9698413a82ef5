"""
Data transforms: turn a raw record list into a DataFrame and derive the
normalised columns (trimmed text, boolean-like flags, numerics, dates) the
metric calculators count over.

Every helper tolerates a missing column by returning an all-missing Series
aligned to the frame, so calculators never branch on schema drift.
"""

import logging
from typing import Any, Mapping, Sequence

import pandas as pd

from .config import TRUTHY_TOKENS
from .kpis import is_flagged_text, to_bool_like
from .loaders.utils import clean_text, safe_float

logger = logging.getLogger(__name__)


def records_to_frame(records: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """Build a DataFrame from records without touching the input list.

    Returns
    -------
    DataFrame with one row per record, in input order, and the union of all
    field names as columns (object dtype, missing fields as NaN).
    """
    if not records:
        return pd.DataFrame()
    frame = pd.DataFrame.from_records([dict(r) for r in records])
    return frame.astype(object)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series([None] * len(df), index=df.index, dtype="object")


def text_column(df: pd.DataFrame, name: str) -> pd.Series:
    """Trimmed string values; blanks and missing values become None."""
    return _column(df, name).map(clean_text).astype(object)


def flag_column(
    df: pd.DataFrame,
    name: str,
    tokens: frozenset[str] = TRUTHY_TOKENS,
) -> pd.Series:
    """Boolean Series from a boolean-like column."""
    return _column(df, name).map(lambda v: to_bool_like(v, tokens)).astype(bool)


def content_flag_column(df: pd.DataFrame, name: str) -> pd.Series:
    """True where a free-text column carries a real value."""
    return _column(df, name).map(is_flagged_text).astype(bool)


def status_in(df: pd.DataFrame, name: str, statuses: frozenset[str]) -> pd.Series:
    """True where the trimmed, casefolded status is one of ``statuses``."""
    wanted = {s.casefold() for s in statuses}
    text = text_column(df, name)
    return text.map(lambda v: isinstance(v, str) and v.casefold() in wanted).astype(bool)


def numeric_column(df: pd.DataFrame, name: str) -> pd.Series:
    """Float values; unparseable entries are NaN and excluded from aggregates."""
    raw = _column(df, name)
    values = raw.map(safe_float).astype(float)
    malformed = int((raw.map(clean_text).notna() & values.isna()).sum())
    if malformed:
        logger.debug("Excluded %d malformed value(s) in column '%s'", malformed, name)
    return values


def date_column(df: pd.DataFrame, name: str) -> pd.Series:
    """Timestamps; unparseable entries are NaT."""
    text = text_column(df, name)
    parsed = pd.to_datetime(text, errors="coerce", utc=True, format="mixed")
    malformed = int((text.notna() & parsed.isna()).sum())
    if malformed:
        logger.debug("Excluded %d malformed date(s) in column '%s'", malformed, name)
    return parsed


def daily_counts(dates: pd.Series) -> list[tuple[str, int]]:
    """Count valid timestamps per calendar day, ascending by day."""
    valid = dates.dropna()
    if valid.empty:
        return []
    days = valid.dt.strftime("%Y-%m-%d")
    counts = days.groupby(days).size().sort_index()
    return [(str(day), int(count)) for day, count in counts.items()]
