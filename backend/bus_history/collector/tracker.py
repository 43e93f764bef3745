"""
Per-station bus tracking.

The arrival API only tells us which buses are approaching a station and how
many stops away they are. A bus that drops out of that list is taken to have
passed the station. For each passage we record:

  seats_before  seat count at the closest approach we observed
  seats_after   seat count from the location feed shortly after passage,
                or NULL if none showed up within the confirmation timeout

A tracker belongs to exactly one station worker and is only touched from
that worker's thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional

from .base import ArrivalSink, ConfirmationSource
from .confirmation import confirm_seats_after
from .types import ArrivalRecord, MonitoringConfig, VehicleSighting

logger = logging.getLogger(__name__)

DEFAULT_CONFIRM_TIMEOUT = timedelta(minutes=2)
DEFAULT_RETENTION = timedelta(minutes=10)
DEFAULT_MAX_AGE = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class BusTrackingState:
    plate: str
    first_seen_at: datetime
    last_seen_at: datetime

    seats_before: int
    approach_ordinal: int            # stops away when seats_before was read

    finalized: bool = False
    passed_at: Optional[datetime] = None
    confirmation_attempts: int = 0


class BusStateTracker:
    def __init__(
        self,
        config: MonitoringConfig,
        confirmation_source: ConfirmationSource,
        sink: ArrivalSink,
        *,
        confirm_timeout: timedelta = DEFAULT_CONFIRM_TIMEOUT,
        retention: timedelta = DEFAULT_RETENTION,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self._confirmation_source = confirmation_source
        self._sink = sink
        self._confirm_timeout = confirm_timeout
        self._retention = retention
        self._max_age = max_age
        self._clock = clock
        self._states: dict[str, BusTrackingState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, plate: str) -> bool:
        return plate in self._states

    def get(self, plate: str) -> Optional[BusTrackingState]:
        return self._states.get(plate)

    def apply_snapshot(
        self,
        vehicles: Iterable[VehicleSighting],
        now: Optional[datetime] = None,
    ) -> list[ArrivalRecord]:
        """
        Feed one poll result. Returns the arrivals persisted during this tick.
        """
        now = now or self._clock()
        seen = self._observe(vehicles, now)

        persisted: list[ArrivalRecord] = []
        for plate, state in self._states.items():
            if plate in seen or state.finalized:
                continue
            record = self._handle_passage(state, now)
            if record is not None:
                persisted.append(record)

        self._cleanup(now)
        return persisted

    def _observe(self, vehicles: Iterable[VehicleSighting], now: datetime) -> set[str]:
        seen: set[str] = set()
        for v in vehicles:
            plate = getattr(v, "plate", None)
            if not plate:
                continue
            seen.add(plate)

            if not isinstance(getattr(v, "stops_away", None), int) or not isinstance(getattr(v, "seats", None), int):
                # still counts as present; just no usable reading this tick
                logger.debug("Bus %s skipped: malformed sighting %r", plate, v)
                continue

            state = self._states.get(plate)
            if state is None:
                self._states[plate] = BusTrackingState(
                    plate=plate,
                    first_seen_at=now,
                    last_seen_at=now,
                    seats_before=v.seats,
                    approach_ordinal=v.stops_away,
                )
                logger.info(
                    "New bus %s approaching station %s, location=%d stops away, seats=%d",
                    plate, self.config.station_name or self.config.station_id, v.stops_away, v.seats,
                )
                continue

            state.last_seen_at = now
            if v.stops_away < state.approach_ordinal:
                state.seats_before = v.seats
                state.approach_ordinal = v.stops_away
                logger.debug("Bus %s getting closer: location=%d, seats=%d", plate, v.stops_away, v.seats)
        return seen

    def _handle_passage(self, state: BusTrackingState, now: datetime) -> Optional[ArrivalRecord]:
        if state.passed_at is None:
            state.passed_at = now

        result = confirm_seats_after(self._confirmation_source, self.config.route_id, state.plate)
        if result.is_confirmed:
            return self._finalize(state, result.seats)

        state.confirmation_attempts += 1
        elapsed = now - state.passed_at
        if elapsed < self._confirm_timeout:
            logger.info(
                "Waiting for valid seat data for bus %s (retry %d, elapsed %ds)",
                state.plate, state.confirmation_attempts, int(elapsed.total_seconds()),
            )
            return None

        logger.warning("Timeout waiting for seat data for bus %s, saving without seats_after", state.plate)
        return self._finalize(state, None)

    def _finalize(self, state: BusTrackingState, seats_after: Optional[int]) -> Optional[ArrivalRecord]:
        record = ArrivalRecord(
            config_id=self.config.config_id,
            route_id=self.config.route_id,
            station_id=self.config.station_id,
            plate=state.plate,
            arrival_time=state.last_seen_at,
            seats_before=state.seats_before,
            seats_after=seats_after,
        )
        try:
            record_id = self._sink.persist(record)
        except Exception:
            # left unfinalized; retried next tick until the age ceiling drops it
            logger.exception("Error saving bus arrival bus=%s config=%d", state.plate, self.config.config_id)
            return None

        state.finalized = True
        logger.info(
            "Recorded arrival id=%s route=%s station=%s bus=%s seats_before=%d seats_after=%s passengers=%s",
            record_id,
            self.config.route_name or self.config.route_id,
            self.config.station_name or self.config.station_id,
            state.plate,
            record.seats_before,
            record.seats_after,
            record.passengers_boarded,
        )
        return record

    def _cleanup(self, now: datetime) -> None:
        for plate in list(self._states):
            state = self._states[plate]
            if state.finalized and now - state.last_seen_at > self._retention:
                del self._states[plate]
                logger.debug("Removed bus %s from tracking", plate)
            elif now - state.first_seen_at >= self._max_age:
                del self._states[plate]
                logger.debug(
                    "Removed bus %s from tracking after %s (finalized=%s)", plate, self._max_age, state.finalized
                )
