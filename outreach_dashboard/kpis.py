"""
Outreach KPI primitives: pure functions with no side effects.

Provides the boolean-like field test, bounded rate calculation, ranked
category breakdowns, funnel construction, trend classification and the
linear business formulas (time saved, projected revenue, ROI).
"""

import logging
from typing import Any, Iterable, Sequence

import pandas as pd

from .config import FALSY_TOKENS, TRUTHY_TOKENS, BusinessConstants
from .models import CategoryCount, FunnelStage

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_bool_like(value: Any, tokens: frozenset[str] = TRUTHY_TOKENS) -> bool:
    """Return True if a loosely typed field reads as "yes".

    Accepts the boolean True, numbers equal to 1 (columns with gaps are
    float-padded, so 1 arrives as 1.0) and strings whose trimmed, casefolded
    form is in ``tokens``. Everything else, including missing values, is
    False.
    """
    if value is True:
        return True
    if value is False or _is_missing(value):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().casefold() in tokens


def is_flagged_text(value: Any, falsy: frozenset[str] = FALSY_TOKENS) -> bool:
    """Return True for free text that carries content.

    Used for columns such as error messages, where any non-empty value that
    is not a placeholder ("no", "null", ...) marks the record.
    """
    if value is True:
        return True
    if value is False or _is_missing(value):
        return False
    return str(value).strip().casefold() not in falsy


def rate(numerator: float, denominator: float) -> float:
    """Return numerator / denominator * 100, bounded to [0, 100].

    A zero (or negative) denominator yields 0.0, never NaN or infinity.
    """
    if denominator <= 0:
        return 0.0
    pct = (numerator / denominator) * 100
    return float(min(max(pct, 0.0), 100.0))


def category_breakdown(values: Iterable[Any], top_n: int) -> tuple[CategoryCount, ...]:
    """Rank distinct trimmed values by frequency and keep the top N.

    Missing and blank values are skipped. Ties keep the order in which the
    values were first seen, so the result is reproducible for a given input
    order.
    """
    cleaned = pd.Series(
        [str(v).strip() for v in values if not _is_missing(v)],
        dtype="object",
    )
    cleaned = cleaned[cleaned != ""]
    if cleaned.empty or top_n <= 0:
        return ()

    # groupby(sort=False) keeps first-seen key order; sorted() is stable.
    counts = cleaned.groupby(cleaned, sort=False).size()
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return tuple(CategoryCount(name=str(name), value=int(count)) for name, count in ranked[:top_n])


def count_distinct(values: Iterable[Any]) -> int:
    """Number of distinct trimmed non-empty values."""
    seen = {str(v).strip() for v in values if not _is_missing(v)}
    seen.discard("")
    return len(seen)


def build_funnel(stages: Sequence[tuple[str, int]]) -> tuple[FunnelStage, ...]:
    """Build an ordered funnel from (name, value) pairs.

    The first stage is always 100%; each later stage is its value as a
    percentage of the first stage's value.
    """
    if not stages:
        return ()
    first_value = stages[0][1]
    funnel = [FunnelStage(name=stages[0][0], value=int(first_value), percentage=100.0)]
    for name, value in stages[1:]:
        funnel.append(FunnelStage(name=name, value=int(value), percentage=rate(value, first_value)))
    return tuple(funnel)


def classify_trend(value: float, up_above: float, neutral_above: float) -> str:
    """Return 'up', 'neutral' or 'down' for a metric card.

    Logic
    -----
        up       if value > up_above
        neutral  if value > neutral_above
        down     otherwise
    """
    if value is None or _is_missing(value):
        return "neutral"
    if value > up_above:
        return "up"
    if value > neutral_above:
        return "neutral"
    return "down"


def classify_band(value: float, low: float, high: float) -> str:
    """Return 'up' when low < value < high, else 'neutral'."""
    if value is None or _is_missing(value):
        return "neutral"
    return "up" if low < value < high else "neutral"


# ---------------------------------------------------------------------------
# Business formulas
# ---------------------------------------------------------------------------

def minutes_saved(contacts: int, constants: BusinessConstants) -> float:
    """Manual minutes replaced by ``contacts`` automated touches."""
    return contacts * constants.minutes_saved_per_contact


def hours_saved(contacts: int, constants: BusinessConstants) -> float:
    return minutes_saved(contacts, constants) / 60


def money_saved(hours: float, constants: BusinessConstants) -> float:
    return hours * constants.hourly_rate


def projected_revenue(conversions: int, constants: BusinessConstants) -> float:
    """Expected revenue from ``conversions`` at the configured deal size and close rate."""
    return conversions * constants.avg_deal_size * constants.close_rate


def projected_roi(revenue: float, constants: BusinessConstants) -> float:
    """Return the ROI percentage of ``revenue`` against the system cost.

    Floors at 0 and is 0 when no positive system cost is configured. Unlike
    rates, ROI is not capped at 100.
    """
    if constants.system_cost <= 0:
        return 0.0
    return max(0.0, ((revenue - constants.system_cost) / constants.system_cost) * 100)
