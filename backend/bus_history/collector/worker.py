from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Optional

from .base import SnapshotSource
from .tracker import BusStateTracker
from .types import ArrivalRecord, MonitoringConfig
from .window import ActiveWindow

logger = logging.getLogger(__name__)

# how often a sleeping worker re-checks the shared cancel event
CANCEL_CHECK_SECONDS = 0.25


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StationWorker(threading.Thread):
    """
    Polls one route/station pair on a fixed interval and feeds its tracker.

    Exits when its own stop event or the shared cancel event is set. Buses
    still waiting for confirmation at that point are dropped.
    """

    def __init__(
        self,
        config: MonitoringConfig,
        snapshot_source: SnapshotSource,
        tracker: BusStateTracker,
        *,
        interval_seconds: float,
        window: ActiveWindow = ActiveWindow(),
        cancel: Optional[threading.Event] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(name=f"station-worker-{config.config_id}", daemon=True)
        self.config = config
        self.tracker = tracker
        self._source = snapshot_source
        self._interval = interval_seconds
        self._window = window
        self._cancel = cancel or threading.Event()
        self._stop_event = threading.Event()
        self._clock = clock
        self.ticks = 0
        self.tracked_buses = 0

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set() or self._cancel.is_set()

    def run(self) -> None:
        cfg = self.config
        logger.info(
            "Collection started for route %s (%s) at station %s (%s) every %.1fs window=%s",
            cfg.route_id, cfg.route_name, cfg.station_id, cfg.station_name, self._interval, self._window.describe(),
        )

        next_tick = time.monotonic()
        while not self.stopping:
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error in collection tick for config %d", cfg.config_id)

            next_tick += self._interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # tick overran the interval; restart the cadence from now
                next_tick = time.monotonic()
                delay = 0
            self._sleep(delay)

        logger.info(
            "Collection stopped for route %s at station %s (dropping %d tracked buses)",
            cfg.route_id, cfg.station_name or cfg.station_id, len(self.tracker),
        )

    def _sleep(self, delay: float) -> None:
        """Wait up to `delay` seconds, waking early on stop or shared cancel."""
        deadline = time.monotonic() + delay
        while not self.stopping:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            if self._cancel.wait(min(remaining, CANCEL_CHECK_SECONDS)):
                return

    def tick(self, now: Optional[datetime] = None) -> list[ArrivalRecord]:
        """One poll cycle. Never raises for upstream failures."""
        now = now or self._clock()
        cfg = self.config

        if not self._window.is_open(now):
            logger.debug(
                "Outside time window (%s), skipping collection for %s",
                self._window.describe(), cfg.station_name or cfg.station_id,
            )
            return []

        self.ticks += 1
        try:
            vehicles = self._source.fetch_snapshot(cfg.route_id, cfg.station_id)
        except Exception as e:
            logger.warning(
                "Error fetching data for route %s at station %s: %r", cfg.route_id, cfg.station_id, e,
            )
            return []

        if self.stopping:
            return []

        logger.debug(
            "API returned %d arrivals for route %s at station %s, currently tracking %d buses",
            len(vehicles), cfg.route_id, cfg.station_id, len(self.tracker),
        )
        records = self.tracker.apply_snapshot(vehicles, now)
        self.tracked_buses = len(self.tracker)
        return records
