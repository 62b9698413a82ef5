"""
Metric calculators: record list -> immutable metrics snapshot.

One calculator per record shape, selected through compute_metrics(). Each
calculator counts over normalised columns (see transforms), derives bounded
rates, ranked breakdowns, a fixed-stage funnel and the business formulas,
and evaluates every named rate formula so the dashboard can show whichever
definition is selected.

Calculators never mutate their input and perform no I/O.
"""

import logging
from typing import Any, Callable, Mapping, Sequence

import pandas as pd

from .config import (
    CONNECTION_FIELDS,
    CONNECTION_SENT_STATUS,
    DEFAULT_FORMULAS,
    EMAIL_FIELDS,
    LINKEDIN_LEAD_FIELDS,
    PENDING_STATUS,
    RATE_FORMULAS,
    RESPONSE_RECEIVED_MARKER,
    SENT_STATUSES,
    SHAPE_EMAIL_CAMPAIGN,
    SHAPE_LINKEDIN_CONNECTIONS,
    SHAPE_LINKEDIN_LEADS,
    TOP_INDUSTRIES,
    TOP_JOB_TITLES,
    TOP_SECTORS,
    BusinessConstants,
)
from .errors import ConfigurationError
from .kpis import (
    build_funnel,
    category_breakdown,
    count_distinct,
    hours_saved,
    minutes_saved,
    money_saved,
    projected_revenue,
    projected_roi,
    rate,
)
from .models import (
    CategoryCount,
    CategoryShare,
    ConnectionMetrics,
    DailyCount,
    EmailCampaignMetrics,
    LinkedInLeadMetrics,
    MetricsSnapshot,
    freeze_mapping,
)
from .transforms import (
    content_flag_column,
    daily_counts,
    date_column,
    flag_column,
    numeric_column,
    records_to_frame,
    status_in,
    text_column,
)

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


def _select_formulas(shape: str, formulas: Mapping[str, str] | None) -> dict[str, str]:
    selected = dict(DEFAULT_FORMULAS[shape])
    if formulas:
        for metric, name in formulas.items():
            available = RATE_FORMULAS[shape].get(metric)
            if available is None:
                raise ConfigurationError(f"'{metric}' has no selectable formulas for shape '{shape}'")
            if name not in available:
                raise ConfigurationError(
                    f"Unknown formula '{name}' for {metric}. Available: {sorted(available)}"
                )
            selected[metric] = name
    return selected


def _evaluate_rates(shape: str, counts: Mapping[str, int]) -> dict[str, float]:
    """Every named formula of a shape as 'metric.formula' -> value."""
    variants = {}
    for metric, options in RATE_FORMULAS[shape].items():
        for name, (numerator, denominator) in options.items():
            variants[f"{metric}.{name}"] = rate(counts[numerator], counts[denominator])
    return variants


def _fields(defaults: Mapping[str, str], overrides: Mapping[str, str] | None) -> dict[str, str]:
    fields = dict(defaults)
    if overrides:
        fields.update(overrides)
    return fields


# ---------------------------------------------------------------------------
# Email campaigns
# ---------------------------------------------------------------------------

def compute_email_metrics(
    records: Sequence[Record],
    constants: BusinessConstants,
    formulas: Mapping[str, str] | None = None,
    fields: Mapping[str, str] | None = None,
) -> EmailCampaignMetrics:
    """Email campaign snapshot.

    A lead is "sent" when its status is one of SENT_STATUSES; responses and
    booked meetings come from boolean-like columns. Job titles are ranked
    over responded leads only.
    """
    f = _fields(EMAIL_FIELDS, fields)
    selected = _select_formulas(SHAPE_EMAIL_CAMPAIGN, formulas)
    df = records_to_frame(records)

    sent = status_in(df, f["status"], SENT_STATUSES)
    responded = flag_column(df, f["responded"])
    meeting = flag_column(df, f["meeting"])

    counts = {
        "total_leads": len(df),
        "emails_sent": int(sent.sum()),
        "total_responses": int(responded.sum()),
        "meetings_booked": int(meeting.sum()),
    }
    variants = _evaluate_rates(SHAPE_EMAIL_CAMPAIGN, counts)

    saved_hours = hours_saved(counts["emails_sent"], constants)
    revenue = projected_revenue(counts["meetings_booked"], constants)

    return EmailCampaignMetrics(
        total_leads=counts["total_leads"],
        emails_sent=counts["emails_sent"],
        total_responses=counts["total_responses"],
        meetings_booked=counts["meetings_booked"],
        reply_rate=variants[f"reply_rate.{selected['reply_rate']}"],
        meeting_rate=rate(counts["meetings_booked"], counts["emails_sent"]),
        response_to_meeting_conversion=rate(counts["meetings_booked"], counts["total_responses"]),
        hours_saved=saved_hours,
        money_saved=money_saved(saved_hours, constants),
        projected_revenue=revenue,
        projected_roi=projected_roi(revenue, constants),
        industries_data=category_breakdown(text_column(df, f["industry"]), TOP_INDUSTRIES),
        job_title_responses=category_breakdown(
            text_column(df, f["job_title"])[responded], TOP_JOB_TITLES
        ),
        funnel=build_funnel([
            ("Leads", counts["total_leads"]),
            ("Emails Sent", counts["emails_sent"]),
            ("Responses", counts["total_responses"]),
            ("Meetings", counts["meetings_booked"]),
        ]),
        rate_variants=freeze_mapping(variants),
    )


# ---------------------------------------------------------------------------
# LinkedIn lead outreach
# ---------------------------------------------------------------------------

def compute_linkedin_lead_metrics(
    records: Sequence[Record],
    constants: BusinessConstants,
    formulas: Mapping[str, str] | None = None,
    fields: Mapping[str, str] | None = None,
) -> LinkedInLeadMetrics:
    """LinkedIn outreach snapshot.

    Rules
    -----
    - connections sent: status equals ENVIADO (case-insensitive)
    - contacted: any non-empty status other than "pendiente"
    - responses: the reply column reads "Recibió Respuesta"
    - final: boolean-like Final column
    - follow-up: either follow-up column is non-empty
    """
    f = _fields(LINKEDIN_LEAD_FIELDS, fields)
    selected = _select_formulas(SHAPE_LINKEDIN_LEADS, formulas)
    df = records_to_frame(records)

    status = text_column(df, f["status"])
    sent = status_in(df, f["status"], frozenset({CONNECTION_SENT_STATUS}))
    contacted = status.map(
        lambda v: isinstance(v, str) and v.casefold() != PENDING_STATUS.casefold()
    ).astype(bool)
    responded = status_in(df, f["responded"], frozenset({RESPONSE_RECEIVED_MARKER}))
    final = flag_column(df, f["final"])
    follow_up = text_column(df, f["follow_up_1"]).notna() | text_column(df, f["follow_up_2"]).notna()

    messages = text_column(df, f["message"]).dropna()
    avg_message_length = float(messages.str.len().mean()) if not messages.empty else 0.0

    counts = {
        "total_prospects": len(df),
        "connections_sent": int(sent.sum()),
        "responses_received": int(responded.sum()),
        "contacted_prospects": int(contacted.sum()),
        "final_prospects": int(final.sum()),
        "follow_up_prospects": int(follow_up.sum()),
    }
    variants = _evaluate_rates(SHAPE_LINKEDIN_LEADS, counts)
    total = counts["total_prospects"]

    contacted_rate = rate(counts["contacted_prospects"], total)
    saved_minutes = minutes_saved(counts["contacted_prospects"], constants)
    revenue = projected_revenue(counts["final_prospects"], constants)

    return LinkedInLeadMetrics(
        total_prospects=total,
        connections_sent=counts["connections_sent"],
        responses_received=counts["responses_received"],
        contacted_prospects=counts["contacted_prospects"],
        final_prospects=counts["final_prospects"],
        follow_up_prospects=counts["follow_up_prospects"],
        contacted_rate=contacted_rate,
        connection_rate=rate(counts["connections_sent"], total),
        response_rate=variants[f"response_rate.{selected['response_rate']}"],
        final_rate=rate(counts["final_prospects"], total),
        follow_up_rate=rate(counts["follow_up_prospects"], total),
        total_companies=count_distinct(text_column(df, f["company"])),
        total_sectors=count_distinct(text_column(df, f["sector"])),
        avg_message_length=avg_message_length,
        time_saved_minutes=saved_minutes,
        manual_effort_saved=int(round(money_saved(saved_minutes / 60, constants))),
        projected_revenue=revenue,
        roi=projected_roi(revenue, constants),
        sectors_data=category_breakdown(text_column(df, f["sector"]), TOP_SECTORS),
        contact_distribution=(
            CategoryShare(name="Contacted", percentage=contacted_rate),
            CategoryShare(name="Pending", percentage=100.0 - contacted_rate),
        ),
        funnel=build_funnel([
            ("Prospects", total),
            ("Contacted", counts["contacted_prospects"]),
            ("Responses", counts["responses_received"]),
            ("Final", counts["final_prospects"]),
        ]),
        rate_variants=freeze_mapping(variants),
    )


# ---------------------------------------------------------------------------
# LinkedIn connection automation
# ---------------------------------------------------------------------------

def compute_connection_metrics(
    records: Sequence[Record],
    constants: BusinessConstants,
    formulas: Mapping[str, str] | None = None,
    fields: Mapping[str, str] | None = None,
) -> ConnectionMetrics:
    """Connection automation snapshot.

    Time to accept is read in hours; follow-up and connection counts are
    numeric columns. Unparseable values drop out of the affected average or
    sum only, the record still counts everywhere else.
    """
    f = _fields(CONNECTION_FIELDS, fields)
    selected = _select_formulas(SHAPE_LINKEDIN_CONNECTIONS, formulas)
    df = records_to_frame(records)

    accepted = flag_column(df, f["accepted"])
    responded = flag_column(df, f["responded"])
    errored = content_flag_column(df, f["error"])

    time_to_accept = numeric_column(df, f["time_to_accept"])[accepted]
    time_to_accept = time_to_accept[time_to_accept >= 0].dropna()
    follow_ups = numeric_column(df, f["follow_ups"]).dropna()
    follow_ups = follow_ups[follow_ups >= 0]
    network = numeric_column(df, f["connections"]).dropna()

    counts = {
        "total_invitations": len(df),
        "accepted": int(accepted.sum()),
        "responded": int(responded.sum()),
        "errored": int(errored.sum()),
    }
    counts["delivered"] = counts["total_invitations"] - counts["errored"]
    variants = _evaluate_rates(SHAPE_LINKEDIN_CONNECTIONS, counts)

    saved_hours = hours_saved(counts["total_invitations"], constants)
    revenue = projected_revenue(counts["responded"], constants)

    acceptances = daily_counts(date_column(df, f["acceptance_date"])[accepted])

    return ConnectionMetrics(
        total_invitations=counts["total_invitations"],
        accepted=counts["accepted"],
        responded=counts["responded"],
        errored=counts["errored"],
        delivered=counts["delivered"],
        acceptance_rate=variants[f"acceptance_rate.{selected['acceptance_rate']}"],
        response_rate=variants[f"response_rate.{selected['response_rate']}"],
        error_rate=rate(counts["errored"], counts["total_invitations"]),
        avg_time_to_accept=float(time_to_accept.mean()) if not time_to_accept.empty else None,
        total_follow_ups=int(follow_ups.sum()),
        avg_follow_ups=float(follow_ups.sum() / len(df)) if len(df) else 0.0,
        network_size=int(network.max()) if not network.empty else 0,
        hours_saved=saved_hours,
        money_saved=money_saved(saved_hours, constants),
        projected_revenue=revenue,
        roi=projected_roi(revenue, constants),
        acceptances_by_day=tuple(DailyCount(date=day, value=n) for day, n in acceptances),
        funnel=build_funnel([
            ("Invitations", counts["total_invitations"]),
            ("Accepted", counts["accepted"]),
            ("Responded", counts["responded"]),
        ]),
        rate_variants=freeze_mapping(variants),
    )


_CALCULATORS: dict[str, Callable[..., MetricsSnapshot]] = {
    SHAPE_EMAIL_CAMPAIGN: compute_email_metrics,
    SHAPE_LINKEDIN_LEADS: compute_linkedin_lead_metrics,
    SHAPE_LINKEDIN_CONNECTIONS: compute_connection_metrics,
}


def compute_metrics(
    records: Sequence[Record],
    shape: str = SHAPE_EMAIL_CAMPAIGN,
    constants: BusinessConstants | None = None,
    formulas: Mapping[str, str] | None = None,
    fields: Mapping[str, str] | None = None,
) -> MetricsSnapshot:
    """Compute the snapshot for ``records`` of the given shape.

    Parameters
    ----------
    records : Raw rows as received from the record store.
    shape : One of config.SHAPES.
    constants : Business constants; defaults to BusinessConstants().
    formulas : Overrides of DEFAULT_FORMULAS, e.g. {"response_rate": "per_contacted"}.
    fields : Overrides of the shape's field map, e.g. {"status": "Estado"}.
    """
    try:
        calculator = _CALCULATORS[shape]
    except KeyError:
        raise ConfigurationError(f"Unknown record shape '{shape}'") from None

    snapshot = calculator(
        records,
        constants if constants is not None else BusinessConstants(),
        formulas=formulas,
        fields=fields,
    )
    logger.debug("Computed %s metrics over %d records", shape, len(records))
    return snapshot
