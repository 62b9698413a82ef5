"""
Outreach KPI Dashboard — End-to-end analytics pipeline.

Fetches every configured dataset once (live store, export file or simulator,
per DASHBOARD_SOURCE), computes the snapshots and prints smoke-test
summaries.

Usage:
    python main.py
"""

import logging

from outreach_dashboard.config import DATASET_REGISTRY, load_settings, resolve_constants
from outreach_dashboard.dashboard import (
    get_breakdowns,
    get_funnel_frame,
    get_metric_cards,
    get_status_line,
    get_view_status,
)
from outreach_dashboard.datasource import DashboardSession
from outreach_dashboard.loaders import build_loader
from outreach_dashboard.metrics import compute_metrics

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""

    print("=" * 70)
    print("  OUTREACH KPI DASHBOARD")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    settings = load_settings()
    print(f"Source: {settings.source}")

    checks: list[tuple[str, bool]] = []

    for dataset, entry in DATASET_REGISTRY.items():
        print("\n")
        print(f"[ {entry['label'].upper()} ]")
        print("-" * 40)

        session = DashboardSession(
            dataset,
            build_loader(dataset, settings),
            constants=resolve_constants(dataset, settings),
            refresh_seconds=settings.refresh_seconds,
        )
        session.refresh()
        state = session.state
        status = get_view_status(state)

        print(f"\n{get_status_line(state)}")
        print(f"View: {status}")
        if state.last_notice is not None:
            print(f"Notice [{state.last_notice.level}]: {state.last_notice.message}")

        if state.metrics is None:
            checks.append((f"{dataset}: snapshot available", False))
            continue

        for section, cards in get_metric_cards(state.metrics).items():
            print(f"\n  {section}")
            for card in cards:
                line = f"    {card['label']:24s} {card['value']:>12s}"
                if card["subtitle"]:
                    line += f"  ({card['subtitle']})"
                if card["trend"]:
                    line += f"  [{card['trend']}]"
                print(line)

        print("\n  Funnel")
        print(get_funnel_frame(state.metrics).to_string(index=False))

        for title, frame in get_breakdowns(state.metrics).items():
            print(f"\n  {title}")
            if frame.empty:
                print("    (no data)")
            else:
                print(frame.head(10).to_string(index=False))

        # ------------------------------------------------------------------
        # Acceptance checks
        # ------------------------------------------------------------------
        snapshot = state.metrics
        recomputed = compute_metrics(
            list(state.records), session.shape, constants=session.constants, formulas=session.formulas
        )
        checks.append((f"{dataset}: recompute is identical", recomputed == snapshot))
        checks.append((f"{dataset}: funnel starts at 100%", snapshot.funnel[0].percentage == 100.0))
        checks.append((
            f"{dataset}: rates within [0, 100]",
            all(0.0 <= v <= 100.0 for v in snapshot.rate_variants.values()),
        ))

    print("\n")
    print("[ ACCEPTANCE CRITERIA CHECKS ]")
    print("-" * 40)
    for label, passed in checks:
        print(f"  [{'PASS' if passed else 'FAIL'}] {label}")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
