import os

# must be set before bus_history.core.db is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("GBIS_SERVICE_KEY", None)
os.environ.pop("COLLECTOR_AUTOSTART", None)

import threading
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from bus_history.collector.base import ArrivalSink, ConfigProvider, ConfirmationSource, SnapshotSource
from bus_history.collector.types import MonitoringConfig, VehicleLocation, VehicleSighting
from bus_history.core.db import Base, init_db, make_engine


T0 = datetime(2026, 3, 2, 8, 0, 0, tzinfo=UTC)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def sighting(plate: str, stops_away: int, seats: int) -> VehicleSighting:
    return VehicleSighting(plate=plate, stops_away=stops_away, seats=seats)


class FakeConfirmationSource(ConfirmationSource):
    """
    Answers fetch_locations from a queue of scripted responses. Each entry is
    a list of VehicleLocation or an exception to raise. The last entry repeats.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or [[]]
        self.calls: list[str] = []

    def fetch_locations(self, route_id: str) -> list[VehicleLocation]:
        self.calls.append(route_id)
        resp = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(resp, Exception):
            raise resp
        return resp


class FakeSnapshotSource(SnapshotSource):
    def __init__(self, *responses):
        self.responses = list(responses) or [[]]
        self.calls: list[tuple[str, str]] = []
        self.called = threading.Event()

    def fetch_snapshot(self, route_id: str, station_id: str) -> list[VehicleSighting]:
        self.calls.append((route_id, station_id))
        self.called.set()
        resp = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(resp, Exception):
            raise resp
        return resp


class FakeSink(ArrivalSink):
    def __init__(self, fail_times: int = 0):
        self.records = []
        self.fail_times = fail_times
        self.attempts = 0
        self._lock = threading.Lock()

    def persist(self, record) -> int:
        with self._lock:
            self.attempts += 1
            if self.fail_times > 0:
                self.fail_times -= 1
                raise RuntimeError("database is locked")
            self.records.append(record)
            return len(self.records)


class FakeConfigProvider(ConfigProvider):
    def __init__(self, configs=None):
        self.configs: list[MonitoringConfig] = list(configs or [])
        self.fail = False
        self.calls = 0

    def list_active_configs(self) -> list[MonitoringConfig]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("no such table: route_configs")
        return [c for c in self.configs if c.is_active]


@pytest.fixture
def station() -> MonitoringConfig:
    return MonitoringConfig(
        config_id=1,
        route_id="234000016",
        station_id="228000704",
        route_name="7770",
        station_name="Sadang Station",
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
