"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Each
function turns a metrics snapshot (or the session state) into plain dicts or
DataFrames suitable for rendering cards, funnels, and charts. No metric is
computed here; values are only selected, labelled and formatted.
"""

import logging
from typing import Sequence

import pandas as pd

from .config import CHART_COLORS
from .datasource import DashboardState
from .kpis import classify_band, classify_trend
from .models import (
    CategoryCount,
    ConnectionMetrics,
    EmailCampaignMetrics,
    LinkedInLeadMetrics,
    MetricsSnapshot,
)

logger = logging.getLogger(__name__)

VIEW_LOADING = "loading"
VIEW_ERROR = "error"
VIEW_NO_DATA = "no_data"
VIEW_POPULATED = "populated"

BREAKDOWN_INDUSTRIES = "Industry Distribution"
BREAKDOWN_JOB_TITLES = "Top Job Titles by Response"
BREAKDOWN_SECTORS = "Top Sectors"
BREAKDOWN_ACCEPTANCES = "Acceptances per Day"

# Share-of-total breakdowns, drawn as pies rather than ranked bars
PIE_BREAKDOWNS = frozenset({BREAKDOWN_INDUSTRIES})


def get_view_status(state: DashboardState | None) -> str:
    """Which screen to show: loading, error, no_data, or populated.

    Loading and error screens only replace the dashboard while nothing has
    been loaded; once a snapshot exists it stays visible and errors surface
    as notices.
    """
    if state is None:
        return VIEW_LOADING
    if state.metrics is not None:
        return VIEW_POPULATED
    if state.loading:
        return VIEW_LOADING
    if state.last_error:
        return VIEW_ERROR
    return VIEW_NO_DATA


def get_status_line(state: DashboardState) -> str:
    """Connection badge text for the page header."""
    if state.last_error and state.metrics is None:
        return "🔴 Connection error"
    parts = [f"🟢 Connected ({len(state.records)} records)"]
    if state.last_update is not None:
        updated = f"Updated {state.last_update.strftime('%H:%M:%S')}"
        if state.load_ms is not None:
            updated += f" ({state.load_ms}ms)"
        parts.append(updated)
    if state.last_error:
        parts.append("last refresh failed")
    return " · ".join(parts)


def _card(
    label: str,
    value: str,
    subtitle: str | None = None,
    trend: str | None = None,
    trend_label: str | None = None,
    variant: str = "default",
) -> dict:
    return {
        "label": label,
        "value": value,
        "subtitle": subtitle,
        "trend": trend,
        "trend_label": trend_label,
        "variant": variant,
    }


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _money(value: float) -> str:
    return f"${value:,.0f}"


def _email_cards(m: EmailCampaignMetrics) -> dict[str, list[dict]]:
    return {
        "Campaign": [
            _card("Total Leads", f"{m.total_leads:,}"),
            _card("Emails Sent", f"{m.emails_sent:,}", variant="info"),
            _card("Responses", f"{m.total_responses:,}", subtitle=f"{_pct(m.reply_rate)} reply rate", variant="success"),
            _card("Meetings Booked", f"{m.meetings_booked:,}", subtitle=f"{_pct(m.meeting_rate)} meeting rate", variant="warning"),
            _card("Meeting Rate", _pct(m.meeting_rate)),
        ],
        "Return on Automation": [
            _card("Hours Saved", f"{m.hours_saved:.1f}h", subtitle=f"Equivalent to {_money(m.money_saved)} USD", variant="success"),
            _card(
                "Response → Meeting",
                _pct(m.response_to_meeting_conversion),
                subtitle=f"{m.total_responses} responses to {m.meetings_booked} meetings",
                variant="info",
            ),
            _card("Projected Revenue", _money(m.projected_revenue), variant="success"),
            _card("Projected ROI", _pct(m.projected_roi), trend=classify_trend(m.projected_roi, 200, 100)),
        ],
    }


def _linkedin_lead_cards(m: LinkedInLeadMetrics) -> dict[str, list[dict]]:
    hours, minutes = divmod(int(m.time_saved_minutes), 60)
    follow_up_trend = classify_trend(m.follow_up_rate, 60, 40)
    length_trend = classify_band(m.avg_message_length, 100, 300)
    sent_share = m.rate_variants.get("response_rate.per_connection_sent", 0.0)
    return {
        "Main Metrics": [
            _card("Total Prospects", f"{m.total_prospects:,}", variant="info"),
            _card("Connections Sent", f"{m.connections_sent:,}", subtitle=f"{_pct(m.connection_rate)} of total", variant="success"),
            _card("Responses Received", f"{m.responses_received:,}", subtitle=f"{_pct(sent_share)} of sent"),
            _card("Response Rate", _pct(m.response_rate), trend=classify_trend(m.response_rate, 15, 8)),
            _card("Completion Rate", _pct(m.final_rate), variant="success"),
        ],
        "Business Metrics": [
            _card("Companies", f"{m.total_companies:,}", subtitle="Unique companies contacted", variant="info"),
            _card("Sectors Reached", f"{m.total_sectors:,}", subtitle="Unique sectors", variant="success"),
            _card("Estimated ROI", _pct(m.roi), trend=classify_trend(m.roi, 200, 100), variant="success"),
        ],
        "Communication": [
            _card(
                "Follow-up Rate",
                _pct(m.follow_up_rate),
                trend=follow_up_trend,
                trend_label="Excellent follow-up" if follow_up_trend == "up" else "Can improve",
                variant="info",
            ),
            _card(
                "Avg. Message Length",
                f"{round(m.avg_message_length)} chars",
                trend=length_trend,
                trend_label="Optimal length" if length_trend == "up" else "Review length",
                variant="warning",
            ),
        ],
        "Impact": [
            _card("Time Saved", f"{hours}h {minutes}m", variant="success"),
            _card("Effort Value Saved", _money(m.manual_effort_saved), variant="warning"),
            _card("Projected Revenue", _money(m.projected_revenue)),
        ],
    }


def _connection_cards(m: ConnectionMetrics) -> dict[str, list[dict]]:
    time_to_accept = f"{m.avg_time_to_accept:.1f}h" if m.avg_time_to_accept is not None else "N/A"
    return {
        "Connections": [
            _card("Invitations Sent", f"{m.total_invitations:,}", variant="info"),
            _card("Accepted", f"{m.accepted:,}", subtitle=f"{_pct(m.acceptance_rate)} acceptance", variant="success"),
            _card("Responded", f"{m.responded:,}", subtitle=f"{_pct(m.response_rate)} response rate"),
            _card("Errors", f"{m.errored:,}", subtitle=f"{_pct(m.error_rate)} of invitations", variant="warning"),
            _card("Avg. Time to Accept", time_to_accept),
        ],
        "Engagement": [
            _card("Follow-ups Sent", f"{m.total_follow_ups:,}", subtitle=f"{m.avg_follow_ups:.2f} per invitation", variant="info"),
            _card("Network Size", f"{m.network_size:,}"),
        ],
        "Return on Automation": [
            _card("Hours Saved", f"{m.hours_saved:.1f}h", subtitle=f"Equivalent to {_money(m.money_saved)} USD", variant="success"),
            _card("Projected Revenue", _money(m.projected_revenue)),
            _card("Estimated ROI", _pct(m.roi), trend=classify_trend(m.roi, 200, 100), variant="success"),
        ],
    }


def get_metric_cards(metrics: MetricsSnapshot) -> dict[str, list[dict]]:
    """Card dicts grouped by section title, in display order.

    Each card has: label, value, subtitle, trend ('up' | 'neutral' | 'down'
    or None), trend_label, variant.
    """
    if isinstance(metrics, EmailCampaignMetrics):
        return _email_cards(metrics)
    if isinstance(metrics, LinkedInLeadMetrics):
        return _linkedin_lead_cards(metrics)
    if isinstance(metrics, ConnectionMetrics):
        return _connection_cards(metrics)
    raise TypeError(f"Unsupported metrics type: {type(metrics).__name__}")


def get_funnel_frame(metrics: MetricsSnapshot) -> pd.DataFrame:
    """Funnel stages with a chart colour per stage.

    Returns
    -------
    DataFrame with columns: stage, value, percentage, color
    """
    rows = [
        {
            "stage": stage.name,
            "value": stage.value,
            "percentage": stage.percentage,
            "color": CHART_COLORS[i % len(CHART_COLORS)],
        }
        for i, stage in enumerate(metrics.funnel)
    ]
    return pd.DataFrame(rows, columns=["stage", "value", "percentage", "color"])


def get_breakdown_frame(items: Sequence[CategoryCount]) -> pd.DataFrame:
    """Ranked breakdown with chart colours cycled in rank order.

    Returns
    -------
    DataFrame with columns: name, value, color
    """
    rows = [
        {"name": item.name, "value": item.value, "color": CHART_COLORS[i % len(CHART_COLORS)]}
        for i, item in enumerate(items)
    ]
    return pd.DataFrame(rows, columns=["name", "value", "color"])


def get_breakdowns(metrics: MetricsSnapshot) -> dict[str, pd.DataFrame]:
    """Every ranked breakdown of a snapshot, keyed by chart title."""
    if isinstance(metrics, EmailCampaignMetrics):
        return {
            BREAKDOWN_INDUSTRIES: get_breakdown_frame(metrics.industries_data),
            BREAKDOWN_JOB_TITLES: get_breakdown_frame(metrics.job_title_responses),
        }
    if isinstance(metrics, LinkedInLeadMetrics):
        return {BREAKDOWN_SECTORS: get_breakdown_frame(metrics.sectors_data)}
    if isinstance(metrics, ConnectionMetrics):
        daily = pd.DataFrame(
            [{"date": d.date, "value": d.value} for d in metrics.acceptances_by_day],
            columns=["date", "value"],
        )
        if not daily.empty:
            daily["date"] = pd.to_datetime(daily["date"])
        return {BREAKDOWN_ACCEPTANCES: daily}
    return {}
