"""Loader for Supabase tables through the official client."""

import logging
from typing import Any

from ..errors import FetchError
from .utils import unwrap_records

logger = logging.getLogger(__name__)


def create_supabase_client(url: str, key: str) -> Any:
    """Create a Supabase client for ``url`` authenticated with ``key``."""
    from supabase import create_client

    return create_client(url, key)


def load_supabase_table(client: Any, table: str) -> list[dict]:
    """Fetch every row of a Supabase table with a single ``select *``.

    Raises
    ------
    FetchError
        When the client raises for any reason (HTTP, network, decoding).
    """
    try:
        result = client.table(table).select("*").execute()
    except Exception as exc:
        raise FetchError(f"Supabase query on table '{table}' failed: {exc}") from exc

    records = unwrap_records(getattr(result, "data", None))
    logger.info("Loaded %d rows from Supabase table '%s'", len(records), table)
    return records
