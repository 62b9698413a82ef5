"""Record loaders for the outreach dashboard's data sources."""

import logging
from functools import partial
from typing import Callable

from ..config import Settings, get_dataset
from ..errors import ConfigurationError
from ..simulator import generate_records
from .nocodb import build_table_url, load_nocodb_table
from .spreadsheet import load_table_export
from .supabase_table import create_supabase_client, load_supabase_table
from .utils import unwrap_records

logger = logging.getLogger(__name__)

__all__ = [
    "build_loader",
    "build_table_url",
    "load_nocodb_table",
    "load_supabase_table",
    "load_table_export",
    "create_supabase_client",
    "unwrap_records",
]


def build_loader(dataset: str, settings: Settings) -> Callable[[], list[dict]]:
    """Return a zero-argument fetch function for a dataset.

    The dataset's backend and table come from DATASET_REGISTRY; where to read
    (live store, export file, or simulator) and the credentials come from
    ``settings``.
    """
    entry = get_dataset(dataset)

    if settings.source == "simulated":
        return partial(generate_records, entry["shape"])

    if settings.source == "file":
        if settings.data_file is None:
            raise ConfigurationError("DASHBOARD_DATA_FILE is required when DASHBOARD_SOURCE=file")
        return partial(load_table_export, settings.data_file)

    backend = entry["backend"]
    if backend == "nocodb":
        if not settings.nocodb_base_url or not settings.nocodb_api_token:
            raise ConfigurationError("NOCODB_BASE_URL and NOCODB_API_TOKEN must be set")
        return partial(
            load_nocodb_table,
            settings.nocodb_base_url,
            settings.nocodb_api_token,
            settings.nocodb_project,
            entry["table"],
            timeout=settings.request_timeout,
        )

    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY must be set")
        client = create_supabase_client(settings.supabase_url, settings.supabase_key)
        return partial(load_supabase_table, client, entry["table"])

    raise ConfigurationError(f"Dataset '{dataset}' has unknown backend '{backend}'")
