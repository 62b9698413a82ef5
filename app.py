"""
Outreach KPI Dashboard — Interactive Dashboard

Run with:  streamlit run app.py
"""

import plotly.graph_objects as go
import streamlit as st

from outreach_dashboard.config import DATASET_REGISTRY, DEFAULT_DATASET, load_settings, resolve_constants
from outreach_dashboard.dashboard import (
    VIEW_ERROR,
    VIEW_LOADING,
    VIEW_NO_DATA,
    PIE_BREAKDOWNS,
    get_breakdowns,
    get_funnel_frame,
    get_metric_cards,
    get_status_line,
    get_view_status,
)
from outreach_dashboard.datasource import DashboardSession
from outreach_dashboard.loaders import build_loader
from outreach_dashboard.models import LinkedInLeadMetrics

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Outreach KPI Dashboard",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

VARIANT_COLORS = {
    "default": "#95a5a6",
    "info": "#3498db",
    "success": "#2ecc71",
    "warning": "#f39c12",
}

TREND_ICONS = {"up": "▲", "neutral": "■", "down": "▼"}
TREND_COLORS = {"up": "#2ecc71", "neutral": "#888", "down": "#e74c3c"}


# ---------------------------------------------------------------------------
# Session (one data source per browser session)
# ---------------------------------------------------------------------------
@st.cache_resource
def get_settings():
    return load_settings()


def get_session(dataset: str) -> DashboardSession:
    current = st.session_state.get("session")
    if current is not None and current.dataset == dataset:
        return current
    if current is not None:
        current.stop()

    settings = get_settings()
    session = DashboardSession(
        dataset,
        build_loader(dataset, settings),
        constants=resolve_constants(dataset, settings),
        refresh_seconds=settings.refresh_seconds,
    )
    # Polled by the render_dashboard fragment timer; no worker thread.
    st.session_state["session"] = session
    return session


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("Outreach KPIs")
st.sidebar.markdown("Prospecting automation dashboard")
st.sidebar.divider()

dataset_keys = list(DATASET_REGISTRY)
selected_dataset = st.sidebar.radio(
    "Dashboard",
    dataset_keys,
    index=dataset_keys.index(DEFAULT_DATASET),
    format_func=lambda key: DATASET_REGISTRY[key]["label"],
)

session = get_session(selected_dataset)

if st.sidebar.button("Refresh now"):
    session.refresh()

st.sidebar.divider()
st.sidebar.caption(f"Auto-refresh every {session.refresh_seconds:.0f}s")


# ---------------------------------------------------------------------------
# Helper: metric card
# ---------------------------------------------------------------------------
def metric_card(card: dict):
    color = VARIANT_COLORS.get(card["variant"], VARIANT_COLORS["default"])
    subtitle = card["subtitle"] or ""
    trend_html = ""
    if card["trend"]:
        trend_color = TREND_COLORS[card["trend"]]
        trend_html = (
            f"<span style='color: {trend_color}; font-weight: 600;'>"
            f"{TREND_ICONS[card['trend']]} {card['trend_label'] or ''}</span>"
        )

    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{card['label']}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{card['value']}</div>
            <div style="font-size: 13px; color: #666;">{subtitle} {trend_html}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def funnel_chart(metrics):
    funnel = get_funnel_frame(metrics)
    fig = go.Figure(go.Funnel(
        y=funnel["stage"],
        x=funnel["value"],
        marker={"color": funnel["color"].tolist()},
        text=funnel["percentage"].apply(lambda x: f"{x:.1f}%"),
        textinfo="value+text",
    ))
    fig.update_layout(height=350, plot_bgcolor="rgba(0,0,0,0)", margin=dict(l=10, r=10, t=10, b=10))
    st.plotly_chart(fig, use_container_width=True)


def breakdown_chart(title: str, frame):
    st.subheader(title)
    if frame.empty:
        st.info("No data for this breakdown.")
        return
    if title in PIE_BREAKDOWNS:
        fig = go.Figure(go.Pie(
            labels=frame["name"],
            values=frame["value"],
            marker={"colors": frame["color"].tolist()},
            hole=0.4,
        ))
    elif "color" not in frame.columns:
        fig = go.Figure(go.Bar(x=frame["date"], y=frame["value"], marker_color="#3498db"))
    else:
        fig = go.Figure(go.Bar(
            x=frame["value"],
            y=frame["name"],
            orientation="h",
            marker_color=frame["color"].tolist(),
        ))
        fig.update_yaxes(autorange="reversed")
    fig.update_layout(height=320, plot_bgcolor="rgba(0,0,0,0)", margin=dict(l=10, r=10, t=10, b=40))
    st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE
# ===========================================================================
@st.fragment(run_every=session.refresh_seconds)
def render_dashboard():
    session.refresh_if_due()
    state = session.state
    status = get_view_status(state)

    notice = state.last_notice
    if notice is not None and st.session_state.get("last_notice") is not notice:
        st.session_state["last_notice"] = notice
        st.toast(f"{notice.title}: {notice.message}", icon="⚠️" if notice.level != "info" else "✅")

    st.title(DATASET_REGISTRY[selected_dataset]["label"])

    if status == VIEW_LOADING:
        st.info("Loading dashboard...")
        return
    if status == VIEW_ERROR:
        st.error("Could not reach the data store. Retrying on the next refresh.")
        return
    if status == VIEW_NO_DATA:
        st.warning("No data available for this dashboard yet.")
        return

    metrics = state.metrics
    st.caption(get_status_line(state))

    for section, cards in get_metric_cards(metrics).items():
        st.subheader(section)
        cols = st.columns(min(len(cards), 5))
        for i, card in enumerate(cards):
            with cols[i % len(cols)]:
                metric_card(card)

    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Conversion Funnel")
        funnel_chart(metrics)
    with col2:
        if isinstance(metrics, LinkedInLeadMetrics):
            st.subheader("Contact Distribution")
            fig = go.Figure(go.Pie(
                labels=[s.name for s in metrics.contact_distribution],
                values=[s.percentage for s in metrics.contact_distribution],
                hole=0.4,
            ))
            fig.update_layout(height=350, margin=dict(l=10, r=10, t=10, b=10))
            st.plotly_chart(fig, use_container_width=True)

    for title, frame in get_breakdowns(metrics).items():
        breakdown_chart(title, frame)


render_dashboard()
