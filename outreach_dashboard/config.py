"""
Configuration: dataset registry, field maps, business constants, settings.

DATASET_REGISTRY maps each dashboard dataset to its record shape, the
backend that serves it, what to do when a fetch returns no rows, the rate
formulas selected for its cards, and its default business constants.

Credentials and per-deployment overrides come from the environment (or a
``.env`` file) through load_settings(); nothing secret lives in this module.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Record shapes
# ---------------------------------------------------------------------------
SHAPE_EMAIL_CAMPAIGN = "email_campaign"
SHAPE_LINKEDIN_LEADS = "linkedin_leads"
SHAPE_LINKEDIN_CONNECTIONS = "linkedin_connections"

SHAPES = (SHAPE_EMAIL_CAMPAIGN, SHAPE_LINKEDIN_LEADS, SHAPE_LINKEDIN_CONNECTIONS)

# ---------------------------------------------------------------------------
# Token sets used by the boolean-like and status tests
# ---------------------------------------------------------------------------
TRUTHY_TOKENS = frozenset({"yes", "si", "sí", "1", "true"})
FALSY_TOKENS = frozenset({"", "no", "false", "0", "null", "undefined", "none", "nan"})

# Email statuses that count as "sent"
SENT_STATUSES = frozenset({"sent", "enviado", "completed"})

# LinkedIn lead statuses
CONNECTION_SENT_STATUS = "ENVIADO"
PENDING_STATUS = "pendiente"
RESPONSE_RECEIVED_MARKER = "Recibió Respuesta"

# ---------------------------------------------------------------------------
# Field maps: canonical role -> column name in the source table
# ---------------------------------------------------------------------------
EMAIL_FIELDS: dict[str, str] = {
    "status": "Status",
    "responded": "Respondidos",
    "meeting": "¿Agendaron llamada?",
    "industry": "Industria",
    "job_title": "Puesto",
    "company": "Compañía",
}

LINKEDIN_LEAD_FIELDS: dict[str, str] = {
    "status": "Status",
    "responded": "¿Respondió?",
    "final": "Final",
    "company": "Empresa",
    "sector": "Sector",
    "message": "Mensaje",
    "follow_up_1": "Seguimiento_1",
    "follow_up_2": "Seguimiento_2",
}

CONNECTION_FIELDS: dict[str, str] = {
    "lead_id": "Lead_id",
    "invitation_date": "invitationDate",
    "accepted": "requestAccepted",
    "acceptance_date": "acceptanceDate",
    "time_to_accept": "timeToAccept",
    "responded": "responseReceived",
    "follow_ups": "followUpCount",
    "error": "messageError",
    "connections": "connectionsCount",
}

FIELD_MAPS: dict[str, dict[str, str]] = {
    SHAPE_EMAIL_CAMPAIGN: EMAIL_FIELDS,
    SHAPE_LINKEDIN_LEADS: LINKEDIN_LEAD_FIELDS,
    SHAPE_LINKEDIN_CONNECTIONS: CONNECTION_FIELDS,
}

# ---------------------------------------------------------------------------
# Top-N sizes for ranked breakdowns
# ---------------------------------------------------------------------------
TOP_INDUSTRIES = 7
TOP_JOB_TITLES = 5
TOP_SECTORS = 5


# ---------------------------------------------------------------------------
# Business constants
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class BusinessConstants:
    """Fixed inputs of the time-saved and revenue formulas.

    minutes_saved_per_contact is the manual effort one automated contact
    replaces; close_rate is a fraction (0.25 == 25%).
    """

    hourly_rate: float = 60.0
    minutes_saved_per_contact: float = 20.0
    avg_deal_size: float = 20_000.0
    close_rate: float = 0.15
    system_cost: float = 1_500.0


# ---------------------------------------------------------------------------
# Named rate formulas
# ---------------------------------------------------------------------------
# formula name -> (numerator count, denominator count), both keys of the
# counts computed by the shape's calculator.
RATE_FORMULAS: dict[str, dict[str, dict[str, tuple[str, str]]]] = {
    SHAPE_EMAIL_CAMPAIGN: {
        "reply_rate": {
            "per_sent": ("total_responses", "emails_sent"),
            "per_lead": ("total_responses", "total_leads"),
        },
    },
    SHAPE_LINKEDIN_LEADS: {
        "response_rate": {
            "per_connection_sent": ("responses_received", "connections_sent"),
            "per_contacted": ("responses_received", "contacted_prospects"),
            "per_prospect": ("responses_received", "total_prospects"),
        },
    },
    SHAPE_LINKEDIN_CONNECTIONS: {
        "acceptance_rate": {
            "per_invitation": ("accepted", "total_invitations"),
            "per_delivered": ("accepted", "delivered"),
        },
        "response_rate": {
            "per_accepted": ("responded", "accepted"),
            "per_invitation": ("responded", "total_invitations"),
        },
    },
}

DEFAULT_FORMULAS: dict[str, dict[str, str]] = {
    SHAPE_EMAIL_CAMPAIGN: {"reply_rate": "per_sent"},
    SHAPE_LINKEDIN_LEADS: {"response_rate": "per_connection_sent"},
    SHAPE_LINKEDIN_CONNECTIONS: {
        "acceptance_rate": "per_invitation",
        "response_rate": "per_accepted",
    },
}

# ---------------------------------------------------------------------------
# Dataset registry
# ---------------------------------------------------------------------------
# shape: record shape handled by the metric calculator
# backend: "nocodb" or "supabase" for live fetches
# table: table name in the backend
# empty_policy: "retain" | "clear" | "build" when a fetch returns no rows
# formulas: rate formula selected per metric, see RATE_FORMULAS
DATASET_REGISTRY: dict[str, dict] = {
    "email_campaign": {
        "label": "Email Campaigns",
        "shape": SHAPE_EMAIL_CAMPAIGN,
        "backend": "nocodb",
        "table": "PROSPECCIÓN CORREO",
        "empty_policy": "retain",
        "formulas": DEFAULT_FORMULAS[SHAPE_EMAIL_CAMPAIGN],
        "constants": BusinessConstants(
            hourly_rate=60.0,
            minutes_saved_per_contact=30.0,
            avg_deal_size=15_000.0,
            close_rate=0.25,
            system_cost=1_500.0,
        ),
    },
    "linkedin_leads": {
        "label": "LinkedIn Outreach",
        "shape": SHAPE_LINKEDIN_LEADS,
        "backend": "nocodb",
        "table": "PROSPECCIÓN LINKEDIN",
        "empty_policy": "clear",
        "formulas": DEFAULT_FORMULAS[SHAPE_LINKEDIN_LEADS],
        "constants": BusinessConstants(),
    },
    "linkedin_connections": {
        "label": "LinkedIn Connections",
        "shape": SHAPE_LINKEDIN_CONNECTIONS,
        "backend": "supabase",
        "table": "LinkedIn Dashboards",
        "empty_policy": "build",
        "formulas": DEFAULT_FORMULAS[SHAPE_LINKEDIN_CONNECTIONS],
        "constants": BusinessConstants(),
    },
}

EMPTY_POLICIES = {"retain", "clear", "build"}

DEFAULT_DATASET = "linkedin_leads"

# ---------------------------------------------------------------------------
# Chart palette, cycled over breakdown buckets and funnel stages
# ---------------------------------------------------------------------------
CHART_COLORS = ["#3498db", "#2ecc71", "#f39c12", "#9b59b6", "#e74c3c"]


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------
_SOURCES = {"live", "file", "simulated"}

_CONSTANT_ENV_VARS = {
    "hourly_rate": "DASHBOARD_HOURLY_RATE",
    "minutes_saved_per_contact": "DASHBOARD_MINUTES_PER_CONTACT",
    "avg_deal_size": "DASHBOARD_AVG_DEAL_SIZE",
    "close_rate": "DASHBOARD_CLOSE_RATE",
    "system_cost": "DASHBOARD_SYSTEM_COST",
}


@dataclass(frozen=True)
class Settings:
    """Deployment settings resolved from the environment."""

    source: str = "simulated"
    nocodb_base_url: str | None = None
    nocodb_api_token: str | None = None
    nocodb_project: str = "PROSPECCIÓN"
    supabase_url: str | None = None
    supabase_key: str | None = None
    data_file: Path | None = None
    refresh_seconds: float = 30.0
    request_timeout: float = 30.0
    constant_overrides: Mapping[str, float] = field(default_factory=dict)


def _env_float(env: Mapping[str, str], name: str, default: float | None) -> float | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from exc


def load_settings(env: Mapping[str, str] | None = None, dotenv: bool = True) -> Settings:
    """Build Settings from environment variables.

    When ``env`` is None the process environment is used, after loading a
    ``.env`` file from the working directory if one exists.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    source = env.get("DASHBOARD_SOURCE", "simulated").strip().lower()
    if source not in _SOURCES:
        raise ConfigurationError(
            f"DASHBOARD_SOURCE must be one of {sorted(_SOURCES)}, got {source!r}"
        )

    refresh_seconds = _env_float(env, "DASHBOARD_REFRESH_SECONDS", 30.0)
    if refresh_seconds <= 0:
        raise ConfigurationError("DASHBOARD_REFRESH_SECONDS must be positive")

    overrides = {}
    for attr, var in _CONSTANT_ENV_VARS.items():
        value = _env_float(env, var, None)
        if value is not None:
            overrides[attr] = value

    data_file = env.get("DASHBOARD_DATA_FILE")

    settings = Settings(
        source=source,
        nocodb_base_url=env.get("NOCODB_BASE_URL") or None,
        nocodb_api_token=env.get("NOCODB_API_TOKEN") or None,
        nocodb_project=env.get("NOCODB_PROJECT") or "PROSPECCIÓN",
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_KEY") or None,
        data_file=Path(data_file) if data_file else None,
        refresh_seconds=refresh_seconds,
        request_timeout=_env_float(env, "DASHBOARD_REQUEST_TIMEOUT", 30.0),
        constant_overrides=overrides,
    )
    logger.debug("Loaded settings: source=%s refresh=%ss", settings.source, settings.refresh_seconds)
    return settings


def get_dataset(dataset: str) -> dict:
    """Return the registry entry for a dataset key."""
    try:
        return DATASET_REGISTRY[dataset]
    except KeyError:
        raise ConfigurationError(
            f"Unknown dataset '{dataset}'. Known datasets: {sorted(DATASET_REGISTRY)}"
        ) from None


def resolve_constants(dataset: str, settings: Settings | None = None) -> BusinessConstants:
    """Dataset default constants with any environment overrides applied."""
    constants = get_dataset(dataset)["constants"]
    if settings is None or not settings.constant_overrides:
        return constants
    return replace(constants, **dict(settings.constant_overrides))
