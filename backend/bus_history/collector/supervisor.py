"""
Keeps one StationWorker running per active monitoring configuration.

Reconciliation runs once on start, then every `reconcile_seconds`, and
immediately when `notify_config_changed()` is called. Workers are keyed by
configuration id, so editing a configuration's display fields never restarts
its worker.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .base import ArrivalSink, ConfigProvider, ConfirmationSource, SnapshotSource
from .config import CollectorConfig
from .tracker import BusStateTracker
from .types import MonitoringConfig
from .window import ActiveWindow
from .worker import StationWorker

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[MonitoringConfig, threading.Event], StationWorker]


@dataclass(frozen=True)
class ReconcileResult:
    started: list[int] = field(default_factory=list)
    stopped: list[int] = field(default_factory=list)
    failed: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.started or self.stopped)


class CollectorSupervisor:
    def __init__(
        self,
        config_provider: ConfigProvider,
        snapshot_source: SnapshotSource,
        confirmation_source: ConfirmationSource,
        sink: ArrivalSink,
        config: CollectorConfig = CollectorConfig(),
        *,
        worker_factory: Optional[WorkerFactory] = None,
    ) -> None:
        self.config = config
        self._provider = config_provider
        self._snapshot_source = snapshot_source
        self._confirmation_source = confirmation_source
        self._sink = sink
        self._worker_factory = worker_factory or self._build_worker

        self._lifecycle = threading.Lock()
        self._lock = threading.Lock()
        self._workers: dict[int, StationWorker] = {}
        self._retired: list[StationWorker] = []

        self._cancel: Optional[threading.Event] = None
        self._wake = threading.Event()
        self._loop_thread: Optional[threading.Thread] = None

    def _build_worker(self, cfg: MonitoringConfig, cancel: threading.Event) -> StationWorker:
        c = self.config
        tracker = BusStateTracker(
            cfg,
            self._confirmation_source,
            self._sink,
            confirm_timeout=timedelta(seconds=c.confirm_timeout_seconds),
            retention=timedelta(seconds=c.retention_seconds),
            max_age=timedelta(seconds=c.max_age_seconds),
        )
        return StationWorker(
            cfg,
            self._snapshot_source,
            tracker,
            interval_seconds=c.interval_ms / 1000.0,
            window=ActiveWindow(c.start_hour, c.end_hour, ZoneInfo(c.timezone)),
            cancel=cancel,
        )

    def is_running(self) -> bool:
        return self._cancel is not None

    def running_config_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._workers)

    def workers(self) -> list[StationWorker]:
        with self._lock:
            return [self._workers[k] for k in sorted(self._workers)]

    def start(self) -> bool:
        """Start collecting. Returns False if already running."""
        with self._lifecycle:
            if self._cancel is not None:
                return False

            logger.info(
                "Starting data collector interval=%dms window=%02d-%02d reconcile=%.0fs",
                self.config.interval_ms, self.config.start_hour, self.config.end_hour, self.config.reconcile_seconds,
            )
            self._cancel = threading.Event()
            self._wake.clear()

            try:
                self.reconcile()
            except Exception:
                # roll back to Stopped so a later start() can try again
                self._cancel.set()
                with self._lock:
                    workers = list(self._workers.values())
                    self._workers.clear()
                for w in workers:
                    w.stop()
                    w.join()
                self._cancel = None
                raise

            self._loop_thread = threading.Thread(
                target=self._reconcile_loop, args=(self._cancel,), name="collector-supervisor", daemon=True
            )
            self._loop_thread.start()
            return True

    def stop(self) -> None:
        """Stop every worker and wait until all of them have exited."""
        with self._lifecycle:
            cancel = self._cancel
            if cancel is None:
                return

            logger.info("Stopping data collector...")
            cancel.set()
            self._wake.set()

            with self._lock:
                workers = list(self._workers.values()) + self._retired
                for w in workers:
                    w.stop()
                self._workers.clear()
                self._retired = []

            if self._loop_thread is not None:
                self._loop_thread.join()
                self._loop_thread = None

            for w in workers:
                if w.ident is not None:
                    w.join()

            self._cancel = None
            logger.info("Data collector stopped")

    def notify_config_changed(self) -> None:
        """Ask for an immediate reconciliation. No-op while stopped."""
        if self._cancel is None:
            return
        self._wake.set()

    def _reconcile_loop(self, cancel: threading.Event) -> None:
        while not cancel.is_set():
            self._wake.wait(self.config.reconcile_seconds)
            self._wake.clear()
            if cancel.is_set():
                break
            try:
                self.reconcile()
            except Exception:
                logger.exception("Unexpected error while reconciling collectors")

    def reconcile(self) -> ReconcileResult:
        """Bring running workers in line with the active configuration set."""
        try:
            configs = self._provider.list_active_configs()
        except Exception as e:
            logger.error("Error loading configs, keeping %d collectors: %r", len(self._workers), e)
            return ReconcileResult(failed=True)

        active = {cfg.config_id: cfg for cfg in configs if cfg.is_active}
        started: list[int] = []
        stopped: list[int] = []

        with self._lock:
            cancel = self._cancel
            if cancel is None or cancel.is_set():
                return ReconcileResult()

            for config_id in list(self._workers):
                if config_id in active:
                    continue
                worker = self._workers.pop(config_id)
                logger.info(
                    "Stopping collector for deleted/inactive config %d (%s)",
                    config_id, worker.config.station_name or worker.config.station_id,
                )
                worker.stop()
                self._retired.append(worker)
                stopped.append(config_id)

            for config_id, cfg in active.items():
                if config_id in self._workers:
                    continue
                logger.info(
                    "Starting new collector for config %d: route=%s (%s), station=%s (%s)",
                    config_id, cfg.route_id, cfg.route_name, cfg.station_id, cfg.station_name,
                )
                try:
                    worker = self._worker_factory(cfg, cancel)
                    worker.start()
                except Exception:
                    # retried on the next reconcile
                    logger.exception("Failed to start collector for config %d", config_id)
                    continue
                self._workers[config_id] = worker
                started.append(config_id)

            self._retired = [w for w in self._retired if w.is_alive()]
            logger.info("Synced: %d active collectors", len(self._workers))

        return ReconcileResult(started=started, stopped=stopped)

    def status(self) -> dict:
        with self._lock:
            workers = [
                {
                    "config_id": w.config.config_id,
                    "route_id": w.config.route_id,
                    "station_id": w.config.station_id,
                    "station_name": w.config.station_name,
                    "tracked_buses": w.tracked_buses,
                    "ticks": w.ticks,
                }
                for _, w in sorted(self._workers.items())
            ]
        return {"running": self.is_running(), "workers": workers}
