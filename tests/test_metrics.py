"""Tests for the per-shape metric calculators."""

import pytest

from outreach_dashboard.config import (
    DATASET_REGISTRY,
    SHAPE_EMAIL_CAMPAIGN,
    SHAPE_LINKEDIN_CONNECTIONS,
    SHAPE_LINKEDIN_LEADS,
    BusinessConstants,
)
from outreach_dashboard.errors import ConfigurationError
from outreach_dashboard.metrics import compute_metrics
from outreach_dashboard.models import (
    CategoryCount,
    ConnectionMetrics,
    EmailCampaignMetrics,
    LinkedInLeadMetrics,
)
from outreach_dashboard.simulator import generate_records

EMAIL_CONSTANTS = DATASET_REGISTRY["email_campaign"]["constants"]


def _email_records() -> list[dict]:
    records = []
    for i in range(10):
        records.append({
            "Status": "Enviado" if i < 4 else "Pendiente",
            "Respondidos": "Sí" if i < 2 else "No",
            "¿Agendaron llamada?": "si" if i == 0 else "",
            "Industria": "Tecnología" if i % 2 else "Retail",
            "Puesto": "CFO" if i == 0 else "Director Comercial",
        })
    return records


def _lead_records() -> list[dict]:
    return [
        {"Status": "ENVIADO", "¿Respondió?": "Recibió Respuesta", "Final": "Sí",
         "Empresa": "Grupo Alfa", "Sector": "Retail", "Mensaje": "a" * 120,
         "Seguimiento_1": "Seguimiento enviado", "Seguimiento_2": ""},
        {"Status": "enviado", "¿Respondió?": "Sin respuesta", "Final": "no",
         "Empresa": "Grupo Alfa ", "Sector": "Retail", "Mensaje": "b" * 80,
         "Seguimiento_1": "", "Seguimiento_2": "Segundo seguimiento"},
        {"Status": "Pendiente", "¿Respondió?": "", "Final": None,
         "Empresa": "Banco Central", "Sector": "Servicios Financieros", "Mensaje": "",
         "Seguimiento_1": None, "Seguimiento_2": None},
        {"Status": "En proceso", "¿Respondió?": "recibió respuesta", "Final": "1",
         "Empresa": "", "Sector": "", "Mensaje": None},
    ]


def _connection_records() -> list[dict]:
    return [
        {"requestAccepted": "yes", "acceptanceDate": "2025-05-01T10:00:00+00:00",
         "timeToAccept": "10", "responseReceived": "yes", "followUpCount": 2,
         "messageError": None, "connectionsCount": 850},
        {"requestAccepted": True, "acceptanceDate": "2025-05-01T18:00:00+00:00",
         "timeToAccept": "pending", "responseReceived": "no", "followUpCount": "1",
         "messageError": "", "connectionsCount": 851},
        {"requestAccepted": "1", "acceptanceDate": "2025-05-03T09:30:00+00:00",
         "timeToAccept": 20.0, "responseReceived": "no", "followUpCount": None,
         "messageError": "null", "connectionsCount": "852"},
        {"requestAccepted": "no", "acceptanceDate": None, "timeToAccept": None,
         "responseReceived": "no", "followUpCount": 0,
         "messageError": "Invitation limit reached", "connectionsCount": 852},
    ]


# ---------------------------------------------------------------------------
# Email campaigns
# ---------------------------------------------------------------------------

def test_email_counts_and_rates():
    m = compute_metrics(_email_records(), SHAPE_EMAIL_CAMPAIGN, constants=EMAIL_CONSTANTS)

    assert isinstance(m, EmailCampaignMetrics)
    assert m.total_leads == 10
    assert m.emails_sent == 4
    assert m.total_responses == 2
    assert m.meetings_booked == 1
    assert m.reply_rate == 50.0
    assert m.meeting_rate == 25.0
    assert m.response_to_meeting_conversion == 50.0


def test_email_business_formulas():
    m = compute_metrics(_email_records(), SHAPE_EMAIL_CAMPAIGN, constants=EMAIL_CONSTANTS)

    assert m.hours_saved == pytest.approx(2.0)
    assert m.money_saved == pytest.approx(120.0)
    assert m.projected_revenue == pytest.approx(3_750.0)
    assert m.projected_roi == pytest.approx(150.0)


def test_email_breakdowns_and_funnel():
    m = compute_metrics(_email_records(), SHAPE_EMAIL_CAMPAIGN, constants=EMAIL_CONSTANTS)

    assert m.industries_data == (CategoryCount("Retail", 5), CategoryCount("Tecnología", 5))
    # Job titles are ranked over responded leads only
    assert m.job_title_responses == (
        CategoryCount("CFO", 1),
        CategoryCount("Director Comercial", 1),
    )
    assert [(s.name, s.value, s.percentage) for s in m.funnel] == [
        ("Leads", 10, 100.0),
        ("Emails Sent", 4, 40.0),
        ("Responses", 2, 20.0),
        ("Meetings", 1, 10.0),
    ]


def test_email_empty_records():
    m = compute_metrics([], SHAPE_EMAIL_CAMPAIGN)

    assert m.total_leads == 0
    assert m.reply_rate == 0.0
    assert m.industries_data == ()
    assert m.job_title_responses == ()
    assert m.funnel[0].value == 0
    assert m.funnel[0].percentage == 100.0


def test_email_reply_rate_formula_selection():
    records = _email_records()

    per_lead = compute_metrics(records, SHAPE_EMAIL_CAMPAIGN, formulas={"reply_rate": "per_lead"})

    assert per_lead.reply_rate == 20.0
    assert per_lead.rate_variants["reply_rate.per_sent"] == 50.0
    assert per_lead.rate_variants["reply_rate.per_lead"] == 20.0


def test_responses_above_sent_stay_bounded():
    records = [{"Status": "Pendiente", "Respondidos": "yes"}, {"Status": "sent", "Respondidos": "yes"}]

    m = compute_metrics(records, SHAPE_EMAIL_CAMPAIGN)

    assert m.emails_sent == 1
    assert m.total_responses == 2
    assert m.reply_rate == 100.0


def test_field_overrides():
    records = [{"Estado": "Enviado", "Respondidos": "Sí"}]

    m = compute_metrics(records, SHAPE_EMAIL_CAMPAIGN, fields={"status": "Estado"})

    assert m.emails_sent == 1
    assert m.reply_rate == 100.0


def test_missing_columns_count_as_absent():
    m = compute_metrics([{"Id": 1}, {"Id": 2}], SHAPE_EMAIL_CAMPAIGN)

    assert m.total_leads == 2
    assert m.emails_sent == 0
    assert m.total_responses == 0
    assert m.industries_data == ()


# ---------------------------------------------------------------------------
# LinkedIn lead outreach
# ---------------------------------------------------------------------------

def test_linkedin_lead_counts():
    m = compute_metrics(_lead_records(), SHAPE_LINKEDIN_LEADS)

    assert isinstance(m, LinkedInLeadMetrics)
    assert m.total_prospects == 4
    assert m.connections_sent == 2
    assert m.contacted_prospects == 3
    assert m.responses_received == 2
    assert m.final_prospects == 2
    assert m.follow_up_prospects == 2
    assert m.total_companies == 2
    assert m.total_sectors == 2
    assert m.avg_message_length == pytest.approx(100.0)


def test_linkedin_lead_rates_and_impact():
    m = compute_metrics(_lead_records(), SHAPE_LINKEDIN_LEADS, constants=BusinessConstants())

    assert m.response_rate == 100.0
    assert m.contacted_rate == 75.0
    assert m.connection_rate == 50.0
    assert m.final_rate == 50.0
    assert m.follow_up_rate == 50.0
    assert m.time_saved_minutes == pytest.approx(60.0)
    assert m.manual_effort_saved == 60
    assert m.projected_revenue == pytest.approx(6_000.0)
    assert m.roi == pytest.approx(300.0)
    assert [(s.name, s.percentage) for s in m.contact_distribution] == [
        ("Contacted", 75.0),
        ("Pending", 25.0),
    ]
    assert m.sectors_data[0] == CategoryCount("Retail", 2)


def test_linkedin_response_rate_variants():
    m = compute_metrics(
        _lead_records(), SHAPE_LINKEDIN_LEADS, formulas={"response_rate": "per_prospect"}
    )

    assert m.response_rate == 50.0
    assert m.rate_variants["response_rate.per_contacted"] == pytest.approx(200 / 3)
    assert m.rate_variants["response_rate.per_connection_sent"] == 100.0


def test_linkedin_empty_records():
    m = compute_metrics([], SHAPE_LINKEDIN_LEADS)

    assert m.total_prospects == 0
    assert m.avg_message_length == 0.0
    assert m.roi == 0.0
    assert m.sectors_data == ()
    assert m.funnel[0].percentage == 100.0


# ---------------------------------------------------------------------------
# LinkedIn connection automation
# ---------------------------------------------------------------------------

def test_connection_metrics():
    m = compute_metrics(_connection_records(), SHAPE_LINKEDIN_CONNECTIONS)

    assert isinstance(m, ConnectionMetrics)
    assert m.total_invitations == 4
    assert m.accepted == 3
    assert m.responded == 1
    assert m.errored == 1
    assert m.delivered == 3
    assert m.acceptance_rate == 75.0
    assert m.response_rate == pytest.approx(100 / 3)
    assert m.error_rate == 25.0
    assert m.rate_variants["acceptance_rate.per_delivered"] == 100.0
    assert m.total_follow_ups == 3
    assert m.avg_follow_ups == pytest.approx(0.75)
    assert m.network_size == 852
    assert m.hours_saved == pytest.approx(4 * 20 / 60)


def test_connection_malformed_time_to_accept_is_excluded():
    m = compute_metrics(_connection_records(), SHAPE_LINKEDIN_CONNECTIONS)

    # "pending" drops out of the average; the record still counts as accepted
    assert m.avg_time_to_accept == pytest.approx(15.0)
    assert m.accepted == 3


def test_connection_acceptances_by_day():
    m = compute_metrics(_connection_records(), SHAPE_LINKEDIN_CONNECTIONS)

    assert [(d.date, d.value) for d in m.acceptances_by_day] == [
        ("2025-05-01", 2),
        ("2025-05-03", 1),
    ]


def test_connection_empty_records():
    m = compute_metrics([], SHAPE_LINKEDIN_CONNECTIONS)

    assert m.total_invitations == 0
    assert m.avg_time_to_accept is None
    assert m.avg_follow_ups == 0.0
    assert m.network_size == 0
    assert m.acceptances_by_day == ()
    assert [s.percentage for s in m.funnel] == [100.0, 0.0, 0.0]


# ---------------------------------------------------------------------------
# Snapshot guarantees
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "shape", [SHAPE_EMAIL_CAMPAIGN, SHAPE_LINKEDIN_LEADS, SHAPE_LINKEDIN_CONNECTIONS]
)
def test_recompute_is_identical_and_input_untouched(shape):
    records = generate_records(shape)
    before = [dict(r) for r in records]

    first = compute_metrics(records, shape)
    second = compute_metrics(records, shape)

    assert first == second
    assert records == before


@pytest.mark.parametrize(
    "shape", [SHAPE_EMAIL_CAMPAIGN, SHAPE_LINKEDIN_LEADS, SHAPE_LINKEDIN_CONNECTIONS]
)
def test_rates_within_bounds(shape):
    m = compute_metrics(generate_records(shape), shape)

    assert m.funnel[0].percentage == 100.0
    for stage in m.funnel:
        assert 0.0 <= stage.percentage <= 100.0
    for value in m.rate_variants.values():
        assert 0.0 <= value <= 100.0


def test_snapshot_is_read_only():
    m = compute_metrics(_email_records(), SHAPE_EMAIL_CAMPAIGN)

    with pytest.raises(AttributeError):
        m.total_leads = 0
    with pytest.raises(TypeError):
        m.rate_variants["reply_rate.per_sent"] = 0.0


def test_to_dict_flattens_nested_values():
    data = compute_metrics(_email_records(), SHAPE_EMAIL_CAMPAIGN).to_dict()

    assert data["funnel"][0] == {"name": "Leads", "value": 10, "percentage": 100.0}
    assert data["rate_variants"]["reply_rate.per_sent"] == 50.0


def test_unknown_shape_and_formula_are_rejected():
    with pytest.raises(ConfigurationError):
        compute_metrics([], "sms_campaign")
    with pytest.raises(ConfigurationError):
        compute_metrics([], SHAPE_EMAIL_CAMPAIGN, formulas={"reply_rate": "per_click"})
    with pytest.raises(ConfigurationError):
        compute_metrics([], SHAPE_EMAIL_CAMPAIGN, formulas={"open_rate": "per_sent"})
