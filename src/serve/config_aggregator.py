"""Polling aggregator for configuration sources.

This module owns the source trackers, runs the fixed-interval poll loop
on one background thread and hands merged snapshots to a consumer queue.
Tracker state is only touched from the poll thread, so trackers carry no
locks; the sink is the only object shared with other threads.
"""

from __future__ import annotations

from datetime import timedelta
import queue
import threading
import time
from typing import Sequence

from core.config import ConfluxConfig
from core.constants import EMIT_RETRY_SECONDS
from core.errors import ConfluxError, ConfluxMergeError
from core.logging_config import get_logger
from ingest.source_tracker import SourceTracker
from serve.aggregator_lifecycle import AggregatorState, validate_transition
from serve.snapshot_payload import AggregateSnapshot, failure_snapshot
from store.object_store import ObjectStoreClient, S3ObjectStore, create_s3_client
from transforms.structural_merge import merge_values

logger = get_logger(__name__)


class ConfigAggregator:
    """Merge configuration sources and republish on change."""

    def __init__(
        self,
        trackers: Sequence[SourceTracker],
        poll_interval: timedelta,
        name: str = "conflux",
    ) -> None:
        self._trackers = tuple(trackers)
        self._interval_seconds = poll_interval.total_seconds()
        self._name = name
        self._state: AggregatorState = "created"
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def trackers(self) -> tuple[SourceTracker, ...]:
        return self._trackers

    def start(self, sink: "queue.Queue[AggregateSnapshot]") -> None:
        """Start polling on a background thread and return immediately.

        Args:
            sink: Queue receiving one snapshot per changed or failed pass.

        Raises:
            ConfluxLifecycleError: If the aggregator was already started.
        """
        with self._state_lock:
            validate_transition(self._state, "running")
            self._state = "running"
            self._thread = threading.Thread(
                target=self._run,
                args=(sink,),
                name=f"{self._name}-poller",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to exit.

        Returns once the signal is issued; use ``join`` to wait for the
        thread. The loop emits nothing further once it observes the signal.

        Raises:
            ConfluxLifecycleError: If the aggregator is not running.
        """
        with self._state_lock:
            validate_transition(self._state, "stopped")
            self._state = "stopped"
            self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the poll thread to finish.

        Returns:
            True if the thread has exited (or never started).
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run_pass(self) -> AggregateSnapshot | None:
        """Evaluate every source once.

        Probes all trackers first, then retrieves the changed ones, then
        merges every cached value in source order. Only call this directly
        while the poll thread is not running.

        Returns:
            Merged or failure snapshot, or None when nothing changed.
        """
        try:
            changed_trackers = [tracker for tracker in self._trackers if tracker.has_changed()]
            for tracker in changed_trackers:
                tracker.retrieve()
        except ConfluxError as error:
            logger.error("poll_pass_failed", aggregator=self._name, error=str(error))
            return failure_snapshot(error)
        if not changed_trackers:
            return None
        try:
            merged_value = merge_values([tracker.value for tracker in self._trackers])
        except ConfluxMergeError as error:
            logger.error("poll_pass_failed", aggregator=self._name, error=str(error))
            return failure_snapshot(error)
        logger.info(
            "poll_pass_merged",
            aggregator=self._name,
            changed_sources=[tracker.descriptor.uri for tracker in changed_trackers],
            source_count=len(self._trackers),
        )
        return AggregateSnapshot(value=merged_value)

    def _run(self, sink: "queue.Queue[AggregateSnapshot]") -> None:
        logger.info(
            "poll_loop_started",
            aggregator=self._name,
            interval_seconds=self._interval_seconds,
        )
        try:
            self._poll_loop(sink)
        except Exception as error:
            logger.error(
                "poll_loop_crashed",
                aggregator=self._name,
                error=str(error),
                error_type=type(error).__name__,
            )
            return
        logger.info("poll_loop_stopped", aggregator=self._name)

    def _poll_loop(self, sink: "queue.Queue[AggregateSnapshot]") -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            snapshot = self.run_pass()
            if snapshot is not None and not self._emit(sink, snapshot):
                return
            next_tick = _next_tick_after(next_tick, self._interval_seconds, time.monotonic())
            if self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                return

    def _emit(self, sink: "queue.Queue[AggregateSnapshot]", snapshot: AggregateSnapshot) -> bool:
        """Block until the consumer accepts the snapshot or stop is requested."""
        while not self._stop_event.is_set():
            try:
                sink.put(snapshot, timeout=EMIT_RETRY_SECONDS)
            except queue.Full:
                continue
            return True
        return False


def _next_tick_after(previous_tick: float, interval: float, now: float) -> float:
    """Advance to the first tick boundary after ``now``; missed ticks are dropped."""
    next_tick = previous_tick + interval
    if next_tick <= now:
        missed = int((now - previous_tick) // interval)
        next_tick = previous_tick + (missed + 1) * interval
    return next_tick


def build_aggregator(
    config: ConfluxConfig,
    store: ObjectStoreClient | None = None,
    name: str = "conflux",
) -> ConfigAggregator:
    """Create an aggregator with one tracker per configured source.

    Args:
        config: Validated configuration.
        store: Object store client; an S3 client is built from config if omitted.
        name: Aggregator name used in logs and the thread name.

    Returns:
        Aggregator in the ``created`` state.
    """
    object_store = store if store is not None else S3ObjectStore(create_s3_client(config))
    trackers = [SourceTracker(descriptor, object_store) for descriptor in config.sources]
    logger.info(
        "aggregator_built",
        aggregator=name,
        sources=[descriptor.uri for descriptor in config.sources],
        interval_seconds=config.poll_interval.total_seconds(),
    )
    return ConfigAggregator(trackers, config.poll_interval, name=name)
