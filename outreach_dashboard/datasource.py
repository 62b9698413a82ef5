"""
Dashboard data source: the fetch -> compute -> replace-state cycle.

A DashboardSession owns one dataset's records and snapshot. refresh() runs a
single cycle on the calling thread; start() runs a cycle immediately and
then every ``refresh_seconds`` on a worker thread until stop(); refresh_if_due()
lets a host with its own timer poll without a thread.

Each cycle takes a generation number when it begins. Its result is applied
only if no newer cycle has already been applied and the session has not been
stopped. Cycles begun before a stop() stay discarded after a later start(),
so a slow response never overwrites a newer one and nothing lands after
teardown.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from .config import EMPTY_POLICIES, BusinessConstants, get_dataset
from .errors import ConfigurationError, EmptyResultWarning, FetchError
from .metrics import compute_metrics
from .models import MetricsSnapshot

logger = logging.getLogger(__name__)

RecordLoader = Callable[[], list[dict]]


@dataclass(frozen=True)
class Notice:
    """A transient, user-facing notification (toast)."""

    level: str  # "info" | "warning" | "error"
    title: str
    message: str


@dataclass(frozen=True)
class DashboardState:
    """What the presentation layer renders from.

    ``metrics`` is None until a fetch has produced a snapshot (or after an
    empty fetch under the "clear" policy).
    """

    dataset: str
    records: tuple[Mapping[str, Any], ...] = ()
    metrics: MetricsSnapshot | None = None
    loading: bool = False
    last_update: datetime | None = None
    last_error: str | None = None
    last_notice: Notice | None = None
    load_ms: int | None = None


class DashboardSession:
    """Polling data source for one dataset.

    Parameters
    ----------
    dataset : Key of config.DATASET_REGISTRY.
    loader : Zero-argument callable returning the records; raises FetchError.
    constants : Business constants for the calculator.
    formulas : Rate formula per metric; defaults to the registry entry.
    refresh_seconds : Polling interval used by start().
    on_update : Called with the new DashboardState after every applied change.
    on_notice : Called with each Notice (toast plumbing).
    """

    def __init__(
        self,
        dataset: str,
        loader: RecordLoader,
        constants: BusinessConstants | None = None,
        refresh_seconds: float = 30.0,
        formulas: Mapping[str, str] | None = None,
        on_update: Callable[[DashboardState], None] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        entry = get_dataset(dataset)
        if entry["empty_policy"] not in EMPTY_POLICIES:
            raise ConfigurationError(
                f"Dataset '{dataset}' has unknown empty_policy '{entry['empty_policy']}'"
            )
        if refresh_seconds <= 0:
            raise ConfigurationError("refresh_seconds must be positive")

        self.dataset = dataset
        self.shape = entry["shape"]
        self.empty_policy = entry["empty_policy"]
        self.constants = constants if constants is not None else entry["constants"]
        selected = formulas if formulas is not None else entry.get("formulas")
        self.formulas = dict(selected) if selected else None
        self.refresh_seconds = refresh_seconds

        self._loader = loader
        self._on_update = on_update
        self._on_notice = on_notice
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = threading.Lock()
        self._state = DashboardState(dataset=dataset)
        self._generation = 0
        self._applied_generation = 0
        self._in_flight = 0
        self._cancelled_through = 0
        self._last_started: datetime | None = None
        self._stopped = False
        self._stop_event = threading.Event()
        self._worker: threading.Thread | None = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    @property
    def state(self) -> DashboardState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Refresh now and then every ``refresh_seconds`` until stop()."""
        if self.running:
            return
        # One event per worker; a worker outliving stop() keeps its own set event.
        stop_event = threading.Event()
        with self._lock:
            self._stopped = False
        self._stop_event = stop_event
        self._worker = threading.Thread(
            target=self._poll,
            args=(stop_event,),
            name=f"dashboard-{self.dataset}",
            daemon=True,
        )
        self._worker.start()
        logger.info("Started polling '%s' every %ss", self.dataset, self.refresh_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Cancel polling; results of cycles still in flight are discarded."""
        with self._lock:
            self._stopped = True
            self._cancelled_through = self._generation
        self._stop_event.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        self._worker = None
        logger.info("Stopped polling '%s'", self.dataset)

    def _poll(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.refresh()
            except Exception:
                logger.exception("Refresh of '%s' failed", self.dataset)
            if stop_event.wait(self.refresh_seconds):
                break

    def refresh_if_due(self) -> bool:
        """Refresh unless a cycle started less than ``refresh_seconds`` ago.

        For hosts that own the timer themselves (a Streamlit fragment with
        ``run_every``) instead of a worker thread from start(), so polling
        ends when the host view goes away. Returns what refresh() returns,
        or False when no cycle was due.
        """
        with self._lock:
            last_started = self._last_started
        if last_started is not None:
            elapsed = (self._clock() - last_started).total_seconds()
            if elapsed < self.refresh_seconds:
                return False
        return self.refresh()

    # ------------------------------------------------------------------
    # Fetch cycle
    # ------------------------------------------------------------------
    def refresh(self) -> bool:
        """Run one fetch-and-recompute cycle.

        Returns True if the cycle's outcome was applied to the state, False
        if it was superseded by a newer cycle or the session was stopped.
        FetchError never propagates out of this method.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._in_flight += 1
            self._last_started = self._clock()
            self._state = replace(self._state, loading=True)
        self._publish()

        try:
            apply, notice = self._run_cycle()
        except Exception:
            with self._lock:
                self._in_flight -= 1
                self._state = replace(self._state, loading=self._in_flight > 0)
            self._publish()
            raise
        return self._finish(generation, apply, notice)

    def _run_cycle(self) -> tuple[Callable[[DashboardState], DashboardState], Notice]:
        started = self._clock()
        try:
            records = self._loader()
        except FetchError as exc:
            logger.warning("Fetch failed for '%s': %s", self.dataset, exc)
            return self._failed(exc)

        elapsed_ms = int((self._clock() - started).total_seconds() * 1000)

        if not records:
            warning = EmptyResultWarning(f"No records found for {self.dataset}.")
            logger.warning("%s", warning)
            return self._empty(warning, elapsed_ms)

        # Calculator runs outside the lock; it is pure and needs no state.
        snapshot = compute_metrics(
            records, self.shape, constants=self.constants, formulas=self.formulas
        )
        notice = Notice(level="info", title="Data updated", message=f"{len(records)} records loaded.")

        def apply(state: DashboardState) -> DashboardState:
            return replace(
                state,
                records=tuple(records),
                metrics=snapshot,
                last_update=self._clock(),
                last_error=None,
                last_notice=notice,
                load_ms=elapsed_ms,
            )

        return apply, notice

    def _failed(self, exc: FetchError) -> tuple[Callable[[DashboardState], DashboardState], Notice]:
        notice = Notice(level="error", title="Connection error", message=str(exc))

        def apply(state: DashboardState) -> DashboardState:
            return replace(state, last_error=str(exc), last_notice=notice)

        return apply, notice

    def _empty(
        self,
        warning: EmptyResultWarning,
        elapsed_ms: int,
    ) -> tuple[Callable[[DashboardState], DashboardState], Notice]:
        notice = Notice(level="warning", title="No data", message=str(warning))

        def apply(state: DashboardState) -> DashboardState:
            common = dict(last_error=None, last_notice=notice, load_ms=elapsed_ms)
            if self.empty_policy == "retain":
                return replace(state, **common)
            if self.empty_policy == "clear":
                return replace(state, records=(), metrics=None, last_update=self._clock(), **common)
            empty_snapshot = compute_metrics(
                [], self.shape, constants=self.constants, formulas=self.formulas
            )
            return replace(
                state, records=(), metrics=empty_snapshot, last_update=self._clock(), **common
            )

        return apply, notice

    def _finish(
        self,
        generation: int,
        apply: Callable[[DashboardState], DashboardState],
        notice: Notice,
    ) -> bool:
        with self._lock:
            self._in_flight -= 1
            loading = self._in_flight > 0
            stale = (
                self._stopped
                or generation <= self._cancelled_through
                or generation < self._applied_generation
            )
            if stale:
                self._state = replace(self._state, loading=loading)
            else:
                self._applied_generation = generation
                self._state = replace(apply(self._state), loading=loading)

        if stale:
            logger.debug("Discarded result of cycle %d for '%s'", generation, self.dataset)
            return False

        if self._on_notice is not None:
            self._on_notice(notice)
        self._publish()
        return True

    def _publish(self) -> None:
        if self._on_update is not None:
            self._on_update(self.state)
