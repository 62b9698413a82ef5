"""
Loader for NocoDB tables over the v1 REST data API.

    GET {base_url}/api/v1/db/data/noco/{project}/{table}
    header: xc-token: <api token>

One read-all request, no filter or pagination parameters. The body is either
a bare list of rows or an envelope with the rows under "list".
"""

import logging
from urllib.parse import quote

import requests

from ..errors import FetchError
from .utils import unwrap_records

logger = logging.getLogger(__name__)

_DATA_API_PATH = "/api/v1/db/data/noco"


def build_table_url(base_url: str, project: str, table: str) -> str:
    """URL of a table's data endpoint with encoded project and table names."""
    return "{}{}/{}/{}".format(
        base_url.rstrip("/"),
        _DATA_API_PATH,
        quote(project, safe=""),
        quote(table, safe=""),
    )


def load_nocodb_table(
    base_url: str,
    api_token: str,
    project: str,
    table: str,
    session: requests.Session | None = None,
    timeout: float = 30.0,
) -> list[dict]:
    """Fetch every row of a NocoDB table.

    Raises
    ------
    FetchError
        On network failure, non-success status, or a body that is not JSON.
    """
    url = build_table_url(base_url, project, table)
    http = session or requests.Session()
    headers = {"xc-token": api_token, "Content-Type": "application/json"}

    try:
        response = http.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"Could not reach NocoDB table '{table}': {exc}") from exc

    if not response.ok:
        raise FetchError(
            f"NocoDB returned HTTP {response.status_code} for table '{table}'",
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise FetchError(f"NocoDB table '{table}' returned a non-JSON body") from exc

    records = unwrap_records(payload)
    logger.info("Loaded %d rows from NocoDB table '%s'", len(records), table)
    return records
