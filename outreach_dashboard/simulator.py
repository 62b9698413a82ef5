"""
Simulated record generator for the outreach dashboard.

Produces rows shaped like the live tables (same column names, same loose
value spellings) so the dashboard and the smoke pipeline can run without a
record store. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import (
    CONNECTION_FIELDS,
    EMAIL_FIELDS,
    LINKEDIN_LEAD_FIELDS,
    SHAPE_EMAIL_CAMPAIGN,
    SHAPE_LINKEDIN_CONNECTIONS,
    SHAPE_LINKEDIN_LEADS,
)
from .errors import ConfigurationError

# ---------------------------------------------------------------------------
# Typical campaign parameters
# ---------------------------------------------------------------------------
_INDUSTRIES = [
    "Manufactura", "Tecnología", "Logística", "Retail", "Salud",
    "Construcción", "Servicios Financieros", "Educación", "Energía",
]

_JOB_TITLES = [
    "Director General", "Gerente de Operaciones", "Director Comercial",
    "Gerente de TI", "CFO", "Gerente de Compras", "Director de Marketing",
]

_COMPANIES = [
    "Grupo Alfa", "Industrias Norte", "Logística Express", "Tecno Soluciones",
    "Constructora del Valle", "Farmacias Unidas", "Energía Verde", "Banco Central",
    "Colegio Moderno", "Retail Plus", "Aceros del Bajío", "Distribuidora Sol",
]

# The same "yes"/"no" in the spellings seen in the live tables
_YES_SPELLINGS = ["Sí", "si", "SI", "Yes", "1", True]
_NO_SPELLINGS = ["No", "no", "", None, "null"]

_EMAIL_STATUSES = ["Enviado", "enviado", "sent", "completed", "Pendiente", "Error", ""]
_EMAIL_STATUS_WEIGHTS = [0.35, 0.1, 0.15, 0.1, 0.2, 0.05, 0.05]

_LEAD_STATUSES = ["ENVIADO", "Enviado ", "Pendiente", "En proceso", ""]
_LEAD_STATUS_WEIGHTS = [0.45, 0.1, 0.25, 0.15, 0.05]

_MESSAGES = [
    "Hola {name}, vi que en {company} están creciendo y me gustaría compartir "
    "cómo automatizamos la prospección para equipos comerciales.",
    "{name}, ¿te interesaría una llamada de 15 minutos para revisar cómo "
    "reducir el tiempo de seguimiento manual en {company}?",
    "Gracias por conectar, {name}.",
]

_FIRST_NAMES = ["Ana", "Luis", "María", "Jorge", "Sofía", "Carlos", "Elena", "Diego"]


def _yes_no(rng: np.random.Generator, p_yes: float):
    pool = _YES_SPELLINGS if rng.random() < p_yes else _NO_SPELLINGS
    return pool[int(rng.integers(len(pool)))]


def generate_email_campaign(n_records: int = 120, seed: int = 42) -> list[dict]:
    """Rows shaped like the email prospecting table."""
    rng = np.random.default_rng(seed)
    f = EMAIL_FIELDS
    created = pd.Timestamp("2025-06-02")
    rows = []

    for i in range(n_records):
        status = str(rng.choice(_EMAIL_STATUSES, p=_EMAIL_STATUS_WEIGHTS))
        sent = status.strip().lower() in {"enviado", "sent", "completed"}
        responded = _yes_no(rng, 0.22 if sent else 0.0)
        responded_yes = responded in _YES_SPELLINGS
        meeting = _yes_no(rng, 0.4 if responded_yes else 0.0)

        rows.append({
            "Id": i + 1,
            "Primer Nombre": _FIRST_NAMES[i % len(_FIRST_NAMES)],
            "Correo": f"contacto{i + 1}@example.com",
            f["industry"]: str(rng.choice(_INDUSTRIES)) if rng.random() > 0.08 else "",
            f["company"]: str(rng.choice(_COMPANIES)),
            f["job_title"]: str(rng.choice(_JOB_TITLES)),
            f["status"]: status,
            f["responded"]: responded,
            f["meeting"]: meeting,
            "CreatedAt": (created + pd.Timedelta(hours=int(rng.integers(0, 24 * 60)))).isoformat(),
        })

    return rows


def generate_linkedin_leads(n_records: int = 150, seed: int = 42) -> list[dict]:
    """Rows shaped like the LinkedIn lead outreach table."""
    rng = np.random.default_rng(seed)
    f = LINKEDIN_LEAD_FIELDS
    rows = []

    for i in range(n_records):
        name = _FIRST_NAMES[i % len(_FIRST_NAMES)]
        company = str(rng.choice(_COMPANIES))
        status = str(rng.choice(_LEAD_STATUSES, p=_LEAD_STATUS_WEIGHTS))
        sent = status.strip().upper() == "ENVIADO"
        responded = sent and rng.random() < 0.18

        message = ""
        if status.strip() and status.strip().lower() != "pendiente":
            message = str(rng.choice(_MESSAGES)).format(name=name, company=company)

        follow_up_1 = "Seguimiento enviado" if message and rng.random() < 0.55 else ""
        follow_up_2 = "Segundo seguimiento" if follow_up_1 and rng.random() < 0.4 else ""

        rows.append({
            "ID_LinkedIn": f"li-{i + 1:04d}",
            "Nombre": name,
            "Apellido": "",
            "URL_LinkedIn": f"https://www.linkedin.com/in/prospecto-{i + 1}",
            f["company"]: company,
            f["sector"]: str(rng.choice(_INDUSTRIES)) if rng.random() > 0.1 else "",
            f["status"]: status,
            f["message"]: message,
            f["follow_up_1"]: follow_up_1,
            f["follow_up_2"]: follow_up_2,
            f["responded"]: "Recibió Respuesta" if responded else "Sin respuesta",
            f["final"]: _yes_no(rng, 0.35 if responded else 0.02),
        })

    return rows


def generate_linkedin_connections(
    n_records: int = 200,
    seed: int = 42,
    start: str = "2025-05-01",
    days: int = 30,
) -> list[dict]:
    """Rows shaped like the connection automation table."""
    rng = np.random.default_rng(seed)
    f = CONNECTION_FIELDS
    start_ts = pd.Timestamp(start, tz="UTC")
    network = 850
    rows = []

    for i in range(n_records):
        invited = start_ts + pd.Timedelta(minutes=int(rng.integers(0, days * 24 * 60)))
        errored = rng.random() < 0.04
        accepted = not errored and rng.random() < 0.38
        hours_to_accept = float(np.round(rng.exponential(30.0), 1)) if accepted else None
        accepted_at = invited + pd.Timedelta(hours=hours_to_accept) if accepted else None
        responded = accepted and rng.random() < 0.3
        network += int(accepted)

        rows.append({
            "id": i + 1,
            f["lead_id"]: f"lead-{i + 1:04d}",
            f["invitation_date"]: invited.isoformat(),
            f["accepted"]: "yes" if accepted else "no",
            f["acceptance_date"]: accepted_at.isoformat() if accepted_at is not None else None,
            # Occasional free-text entries, as typed by hand in the table
            f["time_to_accept"]: (
                str(hours_to_accept) if hours_to_accept is not None and rng.random() > 0.05
                else ("pending" if accepted else None)
            ),
            f["responded"]: "yes" if responded else "no",
            f["follow_ups"]: int(rng.integers(0, 3)) if accepted else 0,
            f["error"]: "Invitation limit reached" if errored else None,
            f["connections"]: network,
            "created_at": invited.isoformat(),
        })

    return rows


_GENERATORS = {
    SHAPE_EMAIL_CAMPAIGN: generate_email_campaign,
    SHAPE_LINKEDIN_LEADS: generate_linkedin_leads,
    SHAPE_LINKEDIN_CONNECTIONS: generate_linkedin_connections,
}


def generate_records(shape: str, n_records: int | None = None, seed: int = 42) -> list[dict]:
    """Synthetic records for a record shape."""
    try:
        generator = _GENERATORS[shape]
    except KeyError:
        raise ConfigurationError(f"No simulator for shape '{shape}'") from None
    if n_records is None:
        return generator(seed=seed)
    return generator(n_records=n_records, seed=seed)
