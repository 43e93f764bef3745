import threading
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from bus_history.collector.tracker import BusStateTracker
from bus_history.collector.types import VehicleLocation
from bus_history.collector.window import ActiveWindow
from bus_history.collector.worker import StationWorker

from conftest import FakeConfirmationSource, FakeSink, FakeSnapshotSource, sighting

UTC_ZONE = ZoneInfo("UTC")


def make_worker(station, snapshots, *, window=ActiveWindow(tz=UTC_ZONE), interval=60.0, cancel=None, sink=None):
    tracker = BusStateTracker(station, FakeConfirmationSource([VehicleLocation("A1", 4)]), sink or FakeSink())
    return StationWorker(station, snapshots, tracker, interval_seconds=interval, window=window, cancel=cancel)


def test_tick_outside_window_does_not_poll(station):
    src = FakeSnapshotSource([sighting("A1", 1, 6)])
    worker = make_worker(station, src, window=ActiveWindow(22, 2, UTC_ZONE))

    assert worker.tick(datetime(2026, 3, 2, 10, 0, tzinfo=UTC)) == []

    assert src.calls == []
    assert worker.ticks == 0
    assert len(worker.tracker) == 0


def test_tick_inside_wrapped_window_polls(station):
    src = FakeSnapshotSource([sighting("A1", 1, 6)])
    worker = make_worker(station, src, window=ActiveWindow(22, 2, UTC_ZONE))

    worker.tick(datetime(2026, 3, 2, 23, 0, tzinfo=UTC))
    worker.tick(datetime(2026, 3, 3, 1, 0, tzinfo=UTC))

    assert src.calls == [(station.route_id, station.station_id)] * 2
    assert worker.ticks == 2
    assert worker.tracked_buses == 1


def test_fetch_error_skips_tick_without_touching_state(station):
    src = FakeSnapshotSource([sighting("A1", 1, 6)], RuntimeError("HTTP 503"), [])
    sink = FakeSink()
    worker = make_worker(station, src, sink=sink)

    worker.tick(datetime(2026, 3, 2, 8, 0, tzinfo=UTC))
    assert worker.tick(datetime(2026, 3, 2, 8, 0, 30, tzinfo=UTC)) == []

    # a failed poll must not read as "bus disappeared"
    assert sink.records == []
    assert worker.tracker.get("A1").passed_at is None

    records = worker.tick(datetime(2026, 3, 2, 8, 1, tzinfo=UTC))
    assert [r.plate for r in records] == ["A1"]


def test_snapshot_ignored_once_cancelled(station):
    cancel = threading.Event()
    worker = make_worker(station, FakeSnapshotSource([sighting("A1", 1, 6)]), cancel=cancel)
    cancel.set()

    assert worker.tick(datetime(2026, 3, 2, 8, 0, tzinfo=UTC)) == []
    assert len(worker.tracker) == 0


def test_run_polls_immediately_and_exits_on_stop(station):
    src = FakeSnapshotSource([])
    worker = make_worker(station, src, interval=60.0)

    worker.start()
    assert src.called.wait(2.0)
    worker.stop()
    worker.join(2.0)

    assert not worker.is_alive()
    assert worker.ticks == 1


def test_run_exits_on_shared_cancel(station):
    cancel = threading.Event()
    src = FakeSnapshotSource([])
    worker = make_worker(station, src, interval=30.0, cancel=cancel)

    worker.start()
    assert src.called.wait(2.0)
    cancel.set()
    worker.join(2.0)

    # woke from the interval wait without its own stop() being called
    assert not worker.is_alive()
    assert worker.ticks == 1


def test_run_exits_on_own_stop_during_long_interval(station):
    src = FakeSnapshotSource([])
    worker = make_worker(station, src, interval=30.0)

    worker.start()
    assert src.called.wait(2.0)
    worker.stop()
    worker.join(2.0)

    assert not worker.is_alive()
