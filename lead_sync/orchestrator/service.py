"""Sync coordinator: concurrent feed refreshes and optimistic status updates."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..metrics import DashboardMetrics, ReportStats, compute_metrics, compute_report
from ..models import FeedOutcome, FeedState, FeedStatus, Lead, LeadPatch, LeadStatus, PipelineStage
from ..store import LeadStore
from ..vocabulary import coerce_status, status_to_stage

LOGGER = logging.getLogger(__name__)

StagePersister = Callable[[str, PipelineStage], Any]

SYNC_ERROR_MESSAGE = "Failed to sync pipeline stage with server"


class FeedProtocol(Protocol):
    """Interface that feed ingestors must follow."""

    name: str

    def load(self) -> FeedOutcome:  # pragma: no cover - runtime protocol
        """Fetch and normalise the feed without raising."""

    def load_bounded(self, timeout: float) -> FeedOutcome:  # pragma: no cover - runtime protocol
        """Like :meth:`load` but gives up after ``timeout`` seconds."""


class RefreshHandle:
    """Futures for one :meth:`SyncCoordinator.refresh_all` call."""

    def __init__(self, futures: Mapping[str, "Future[FeedOutcome]"]) -> None:
        self._futures = dict(futures)

    @property
    def feeds(self) -> List[str]:
        return list(self._futures)

    def done(self) -> bool:
        return all(future.done() for future in self._futures.values())

    def wait(self, timeout: Optional[float] = None) -> Dict[str, FeedOutcome]:
        """Block until every submitted load has settled and return the outcomes."""

        wait_for(list(self._futures.values()), timeout=timeout)
        return {
            name: future.result()
            for name, future in self._futures.items()
            if future.done() and not future.cancelled()
        }


class SyncCoordinator:
    """Runs the feed ingestors against a shared :class:`LeadStore`.

    Parameters
    ----------
    store:
        The lead store every feed merges into.
    feeds:
        Feed ingestors; their ``name`` keys the per-feed state flags.
    persist_stage:
        Callable issuing the remote pipeline stage write, usually
        :meth:`DashboardApiClient.update_pipeline_stage`. ``None`` keeps
        status changes local.
    bounded_wait:
        When set, each feed uses :meth:`load_bounded` with this many seconds.
    fallback:
        Known-good patches per feed name, merged when that feed times out.
    max_workers:
        Threads per refresh; defaults to one per feed.
    """

    def __init__(
        self,
        store: LeadStore,
        feeds: Sequence[FeedProtocol],
        *,
        persist_stage: Optional[StagePersister] = None,
        bounded_wait: Optional[float] = None,
        fallback: Optional[Mapping[str, Iterable[LeadPatch]]] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        names = [feed.name for feed in feeds]
        if len(set(names)) != len(names):
            raise ValueError(f"Feed names must be unique: {names}")
        self._store = store
        self._feeds = list(feeds)
        self._persist_stage = persist_stage
        self._bounded_wait = bounded_wait
        self._fallback = {name: tuple(patches) for name, patches in (fallback or {}).items()}
        self._max_workers = max_workers or max(len(self._feeds), 1)
        # Each refresh gets its own pool so loads still held by a superseded
        # refresh never delay a newer one. Stage writes have a pool of their own.
        self._refresh_executor: Optional[ThreadPoolExecutor] = None
        self._persist_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="lead-sync-persist")
        # Guards generations, feed states, and every merge driven by a feed result.
        self._lock = threading.Lock()
        self._generations: Dict[str, int] = {name: 0 for name in names}
        self._states: Dict[str, FeedState] = {name: FeedState(name=name) for name in names}
        self._sync_error: Optional[str] = None
        self._closed = False

    def __enter__(self) -> "SyncCoordinator":
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            refresh_executor, self._refresh_executor = self._refresh_executor, None
        if refresh_executor is not None:
            refresh_executor.shutdown(wait=wait, cancel_futures=True)
        self._persist_executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Reads
    @property
    def feeds(self) -> List[FeedProtocol]:
        return list(self._feeds)

    def snapshot(self) -> Tuple[Lead, ...]:
        return self._store.snapshot()

    def metrics(self, now: Optional[datetime] = None) -> DashboardMetrics:
        return compute_metrics(self._store.snapshot(), now=now)

    def report(self) -> ReportStats:
        return compute_report(self._store.snapshot())

    def feed_states(self) -> Dict[str, FeedState]:
        with self._lock:
            return dict(self._states)

    def feed_state(self, name: str) -> FeedState:
        with self._lock:
            return self._states[name]

    @property
    def sync_error(self) -> Optional[str]:
        with self._lock:
            return self._sync_error

    def clear_sync_error(self) -> None:
        with self._lock:
            self._sync_error = None

    # ------------------------------------------------------------------
    # Refresh
    def refresh_all(self) -> RefreshHandle:
        """Start every feed load; each one merges as soon as it resolves.

        Calling this again supersedes loads still in flight: queued ones are
        cancelled and running ones are dropped when they arrive.
        """

        futures: Dict[str, Future[FeedOutcome]] = {}
        with self._lock:
            if self._closed:
                raise RuntimeError("SyncCoordinator is closed")
            self._sync_error = None
            self._retire_refresh_executor()
            executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="lead-sync-refresh")
            self._refresh_executor = executor
            for feed in self._feeds:
                generation = self._generations[feed.name] + 1
                self._generations[feed.name] = generation
                self._states[feed.name] = replace(
                    self._states[feed.name],
                    status=FeedStatus.LOADING,
                    error=None,
                    generation=generation,
                )
                LOGGER.debug("Starting feed %s (generation %s)", feed.name, generation)
                futures[feed.name] = executor.submit(self._run_feed, feed, generation)
        return RefreshHandle(futures)

    def _retire_refresh_executor(self) -> None:
        # Caller holds the lock. Threads already inside a fetch finish on their own.
        if self._refresh_executor is not None:
            self._refresh_executor.shutdown(wait=False, cancel_futures=True)
            self._refresh_executor = None

    def _run_feed(self, feed: FeedProtocol, generation: int) -> FeedOutcome:
        if self._bounded_wait is not None:
            outcome = feed.load_bounded(self._bounded_wait)
        else:
            outcome = feed.load()
        self._apply_outcome(feed.name, outcome, generation)
        return outcome

    def _apply_outcome(self, name: str, outcome: FeedOutcome, generation: int) -> bool:
        with self._lock:
            if self._generations.get(name) != generation:
                LOGGER.debug("Dropping superseded %s result (generation %s)", name, generation)
                return False

            status = outcome.status
            merged = 0
            error: Optional[str] = None
            if outcome.ok:
                try:
                    self._store.merge_all(outcome.leads)
                    merged = len(outcome.leads)
                except ValueError as exc:
                    LOGGER.error("Feed %s produced an invalid lead patch: %s", name, exc)
                    status = FeedStatus.ERROR
                    error = str(exc)
            else:
                error = str(outcome.error) if outcome.error else status.value
                fallback = self._fallback.get(name)
                if status is FeedStatus.TIMEOUT and fallback:
                    LOGGER.info("Feed %s timed out; merging %s fallback leads", name, len(fallback))
                    try:
                        self._store.merge_all(fallback)
                        merged = len(fallback)
                    except ValueError as exc:
                        LOGGER.error("Fallback leads for feed %s are invalid: %s", name, exc)
                        status = FeedStatus.ERROR
                        error = str(exc)

            self._states[name] = replace(
                self._states[name],
                status=status,
                error=error,
                lead_count=merged,
                updated_at=datetime.now(timezone.utc),
            )
        return True

    def reset(self, seed: Iterable[LeadPatch] = ()) -> None:
        """Forget the session: in-flight loads are invalidated and the store is emptied."""

        with self._lock:
            self._retire_refresh_executor()
            for name in self._generations:
                self._generations[name] += 1
                self._states[name] = FeedState(name=name, generation=self._generations[name])
            self._sync_error = None
            self._store.reset(seed)

    # ------------------------------------------------------------------
    # Status updates
    def update_status(self, lead_id: str, new_status: LeadStatus | str) -> Optional["Future[bool]"]:
        """Apply ``new_status`` locally now and persist its pipeline stage in the background.

        Returns the persistence future, or ``None`` when the status has no
        pipeline stage (or no persister is configured) and nothing is sent.
        The local change is kept even if the remote write fails.
        """

        status = coerce_status(new_status)
        stage = status_to_stage(status)
        if not self._store.patch(lead_id, {"status": status, "pipeline_stage": stage}):
            LOGGER.debug("Lead %s is not loaded yet; status change not visible locally", lead_id)

        if stage is None:
            LOGGER.debug("Status %s has no pipeline stage; skipping remote update", status)
            return None
        if self._persist_stage is None:
            return None
        return self._persist_executor.submit(self._persist, str(lead_id), stage)

    def _persist(self, lead_id: str, stage: PipelineStage) -> bool:
        try:
            self._persist_stage(lead_id, stage)
        except Exception:
            LOGGER.exception("Failed to update pipeline stage for lead %s", lead_id)
            with self._lock:
                self._sync_error = SYNC_ERROR_MESSAGE
            return False
        LOGGER.debug("Persisted stage %s for lead %s", stage, lead_id)
        return True
