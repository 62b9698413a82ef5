"""Tests for the dashboard session fetch cycle."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from outreach_dashboard.dashboard import VIEW_ERROR, VIEW_NO_DATA, VIEW_POPULATED, get_view_status
from outreach_dashboard.datasource import DashboardSession
from outreach_dashboard.errors import ConfigurationError, FetchError
from outreach_dashboard.models import ConnectionMetrics, EmailCampaignMetrics

FIXED_NOW = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)

EMAIL_ROWS = [
    {"Status": "Enviado", "Respondidos": "Sí", "¿Agendaron llamada?": "si"},
    {"Status": "Pendiente", "Respondidos": "No"},
]


def scripted_loader(*outcomes):
    """Loader returning (or raising) each outcome in turn; repeats the last one."""
    queue = list(outcomes)

    def load():
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return [dict(r) for r in outcome]

    return load


def make_session(dataset, loader, **kwargs):
    return DashboardSession(dataset, loader, clock=lambda: FIXED_NOW, **kwargs)


def test_successful_refresh_replaces_state():
    updates, notices = [], []
    session = make_session(
        "email_campaign",
        scripted_loader(EMAIL_ROWS),
        on_update=updates.append,
        on_notice=notices.append,
    )

    assert session.refresh() is True

    state = session.state
    assert isinstance(state.metrics, EmailCampaignMetrics)
    assert state.metrics.total_leads == 2
    assert state.metrics.meetings_booked == 1
    assert len(state.records) == 2
    assert state.loading is False
    assert state.last_update == FIXED_NOW
    assert state.last_error is None
    assert state.load_ms == 0
    assert [n.level for n in notices] == ["info"]
    assert notices[0].message == "2 records loaded."
    # loading published first, then the applied result
    assert updates[0].loading is True
    assert updates[-1].metrics is state.metrics


def test_fetch_error_keeps_previous_snapshot():
    session = make_session(
        "email_campaign",
        scripted_loader(EMAIL_ROWS, FetchError("HTTP 500", status_code=500)),
    )
    session.refresh()
    before = session.state.metrics

    assert session.refresh() is True

    state = session.state
    assert state.metrics is before
    assert state.last_error == "HTTP 500"
    assert state.last_notice.level == "error"
    assert state.last_notice.title == "Connection error"
    assert state.loading is False
    assert get_view_status(state) == VIEW_POPULATED


def test_first_fetch_error_shows_error_view():
    session = make_session("linkedin_leads", scripted_loader(FetchError("unreachable")))

    session.refresh()

    assert session.state.metrics is None
    assert get_view_status(session.state) == VIEW_ERROR


def test_recovery_clears_error():
    session = make_session(
        "email_campaign",
        scripted_loader(FetchError("unreachable"), EMAIL_ROWS),
    )
    session.refresh()
    session.refresh()

    assert session.state.last_error is None
    assert session.state.metrics.total_leads == 2


def test_empty_result_retains_previous_snapshot():
    session = make_session("email_campaign", scripted_loader(EMAIL_ROWS, []))
    session.refresh()
    before = session.state

    session.refresh()

    state = session.state
    assert state.metrics is before.metrics
    assert state.records == before.records
    assert state.last_notice.level == "warning"
    assert state.last_notice.title == "No data"


def test_empty_result_clears_snapshot():
    rows = [{"Status": "ENVIADO", "¿Respondió?": "Recibió Respuesta"}]
    session = make_session("linkedin_leads", scripted_loader(rows, []))
    session.refresh()
    assert session.state.metrics is not None

    session.refresh()

    assert session.state.metrics is None
    assert session.state.records == ()
    assert get_view_status(session.state) == VIEW_NO_DATA


def test_empty_result_builds_zero_snapshot():
    session = make_session("linkedin_connections", scripted_loader([]))

    session.refresh()

    metrics = session.state.metrics
    assert isinstance(metrics, ConnectionMetrics)
    assert metrics.total_invitations == 0
    assert metrics.funnel[0].percentage == 100.0
    assert get_view_status(session.state) == VIEW_POPULATED


def test_superseded_cycle_is_discarded():
    calls = []
    nested = []
    old_rows = [{"Status": "Enviado"}]
    new_rows = [{"Status": "Enviado"}, {"Status": "Enviado"}, {"Status": "Pendiente"}]

    def loader():
        calls.append(1)
        if len(calls) == 1:
            # A newer cycle starts and completes while this one is in flight
            nested.append(session.refresh())
            return old_rows
        return new_rows

    session = make_session("email_campaign", loader)

    assert session.refresh() is False
    assert nested == [True]
    assert session.state.metrics.total_leads == 3
    assert session.state.loading is False


def test_stopped_session_discards_in_flight_result():
    def loader():
        session.stop()
        return EMAIL_ROWS

    session = make_session("email_campaign", loader)

    assert session.refresh() is False
    assert session.state.metrics is None
    assert session.state.loading is False


def test_unexpected_loader_error_propagates_and_resets_loading():
    session = make_session("email_campaign", scripted_loader(KeyError("boom")))

    with pytest.raises(KeyError):
        session.refresh()

    assert session.state.loading is False


def test_start_polls_until_stopped():
    loaded = threading.Event()

    def on_update(state):
        if state.metrics is not None:
            loaded.set()

    session = make_session(
        "email_campaign",
        scripted_loader(EMAIL_ROWS),
        refresh_seconds=0.05,
        on_update=on_update,
    )

    session.start()
    try:
        assert loaded.wait(5.0)
        assert session.running
    finally:
        session.stop()

    assert not session.running
    assert session.state.metrics.total_leads == 2


def test_invalid_session_arguments():
    with pytest.raises(ConfigurationError):
        DashboardSession("sms", scripted_loader([]))
    with pytest.raises(ConfigurationError):
        DashboardSession("email_campaign", scripted_loader([]), refresh_seconds=0)


def test_formula_selection_reaches_snapshot():
    session = make_session(
        "email_campaign", scripted_loader(EMAIL_ROWS), formulas={"reply_rate": "per_lead"}
    )

    session.refresh()

    # one response over two leads; per_sent would give 100.0
    assert session.state.metrics.reply_rate == 50.0


def test_restart_while_old_worker_is_blocked_keeps_one_poller():
    entered = threading.Event()
    release = threading.Event()
    callers = []

    def loader():
        callers.append(threading.get_ident())
        if not release.is_set():
            entered.set()
            release.wait(5.0)
        if threading.get_ident() == callers[0]:
            return EMAIL_ROWS[:1]
        return EMAIL_ROWS

    published = []

    def on_update(state):
        if state.metrics is not None:
            published.append(state.metrics.total_leads)

    session = make_session(
        "email_campaign", loader, refresh_seconds=0.05, on_update=on_update
    )
    thread_name = "dashboard-email_campaign"

    session.start()
    try:
        assert entered.wait(5.0)
        session.stop(timeout=0.1)
        session.start()
        release.set()
        time.sleep(0.6)

        pollers = [t for t in threading.enumerate() if t.name == thread_name]
        assert len(pollers) == 1
        assert len(set(callers[1:])) == 1
        assert callers[0] not in callers[1:]
    finally:
        session.stop()

    # The cycle begun before the restart never lands
    assert published
    assert set(published) == {2}


def test_refresh_if_due_follows_the_interval():
    now = [FIXED_NOW]
    calls = []

    def loader():
        calls.append(1)
        return EMAIL_ROWS

    session = DashboardSession(
        "email_campaign", loader, refresh_seconds=30, clock=lambda: now[0]
    )

    assert session.refresh_if_due() is True
    assert session.refresh_if_due() is False
    now[0] = FIXED_NOW + timedelta(seconds=29)
    assert session.refresh_if_due() is False
    now[0] = FIXED_NOW + timedelta(seconds=30)
    assert session.refresh_if_due() is True
    assert len(calls) == 2
    assert not session.running
