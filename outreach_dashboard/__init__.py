"""
Outreach KPI Dashboard

Analytics backend that turns prospecting records (LinkedIn connection
automation, LinkedIn lead outreach, email campaigns) fetched from NocoDB or
Supabase into dashboard-ready metrics snapshots.

To read from another store:
    Add a loader in outreach_dashboard.loaders that returns a list of flat
    dicts and raises FetchError on failure, then route a backend name to it
    in loaders.build_loader(). The calculators do not change.

To connect to Streamlit:
    Create a DashboardSession with build_loader(dataset, settings), call
    start(), and render session.state through the functions in
    outreach_dashboard.dashboard.

To add a dataset:
    Add an entry to config.DATASET_REGISTRY naming its record shape, backend,
    table, empty-result policy and business constants. A table with new
    column names only needs a field map override.
"""

from .metrics import compute_metrics

__all__ = ["compute_metrics"]
