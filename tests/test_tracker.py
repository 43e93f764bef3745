from datetime import timedelta

from bus_history.collector.tracker import BusStateTracker
from bus_history.collector.types import VehicleLocation, VehicleSighting

from conftest import FakeConfirmationSource, FakeSink, T0, at, sighting


def make_tracker(station, confirmations=None, sink=None, **kwargs):
    confirmations = confirmations or FakeConfirmationSource([])
    sink = sink or FakeSink()
    return BusStateTracker(station, confirmations, sink, clock=lambda: T0, **kwargs), confirmations, sink


def test_records_closest_approach_and_confirmed_seats(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=4, station_seq=12)])
    tracker, _, sink = make_tracker(station, conf)

    assert tracker.apply_snapshot([sighting("A1", 3, 10)], at(0)) == []
    assert tracker.apply_snapshot([sighting("A1", 1, 6)], at(30)) == []
    records = tracker.apply_snapshot([], at(60))

    assert len(records) == 1
    rec = records[0]
    assert rec.plate == "A1"
    assert rec.config_id == station.config_id
    assert rec.route_id == station.route_id
    assert rec.station_id == station.station_id
    assert rec.seats_before == 6
    assert rec.seats_after == 4
    assert rec.passengers_boarded == 2
    assert rec.arrival_time == at(30)
    assert sink.records == records


def test_sentinel_then_seat_count_yields_single_record(station):
    conf = FakeConfirmationSource(
        [VehicleLocation(plate="A1", seats=-1)],
        [VehicleLocation(plate="A1", seats=4)],
    )
    tracker, _, sink = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 3, 10)], at(0))
    tracker.apply_snapshot([sighting("A1", 1, 6)], at(30))
    assert tracker.apply_snapshot([], at(60)) == []
    records = tracker.apply_snapshot([], at(90))
    tracker.apply_snapshot([], at(120))

    assert [(r.seats_before, r.seats_after) for r in sink.records] == [(6, 4)]
    assert records == sink.records
    assert tracker.get("A1").confirmation_attempts == 1


def test_seats_before_only_updates_on_strictly_closer_approach(station):
    tracker, _, _ = make_tracker(station)

    for i, (stops, seats) in enumerate([(5, 20), (3, 15), (4, 30), (2, 9), (2, 1)]):
        tracker.apply_snapshot([sighting("B7", stops, seats)], at(i * 30))

    state = tracker.get("B7")
    assert state.approach_ordinal == 2
    assert state.seats_before == 9
    assert state.first_seen_at == at(0)
    assert state.last_seen_at == at(120)


def test_arrival_finalized_exactly_once(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=4)])
    tracker, _, sink = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    tracker.apply_snapshot([], at(30))
    tracker.apply_snapshot([], at(60))
    tracker.apply_snapshot([], at(90))

    assert len(sink.records) == 1
    assert tracker.get("A1").finalized


def test_unconfirmed_passage_waits_then_saves_without_seats_after(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=-1)])
    tracker, _, sink = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    assert tracker.apply_snapshot([], at(10)) == []
    assert tracker.apply_snapshot([], at(129)) == []

    state = tracker.get("A1")
    assert state.passed_at == at(10)
    assert state.confirmation_attempts == 2
    assert not state.finalized

    records = tracker.apply_snapshot([], at(130))
    assert len(records) == 1
    assert records[0].seats_before == 6
    assert records[0].seats_after is None
    assert records[0].passengers_boarded is None
    assert len(sink.records) == 1


def test_late_confirmation_within_timeout_wins(station):
    conf = FakeConfirmationSource([], [], [VehicleLocation(plate="A1", seats=2)])
    tracker, _, sink = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 2, 8)], at(0))
    assert tracker.apply_snapshot([], at(30)) == []
    assert tracker.apply_snapshot([], at(60)) == []
    records = tracker.apply_snapshot([], at(90))

    assert [r.seats_after for r in records] == [2]
    assert len(conf.calls) == 3


def test_confirmation_errors_count_as_attempts(station):
    conf = FakeConfirmationSource(RuntimeError("read timeout"))
    tracker, _, sink = make_tracker(station, conf, confirm_timeout=timedelta(seconds=60))

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    assert tracker.apply_snapshot([], at(30)) == []
    assert tracker.get("A1").confirmation_attempts == 1

    records = tracker.apply_snapshot([], at(90))
    assert [r.seats_after for r in records] == [None]


def test_reappearing_bus_keeps_pending_state(station):
    conf = FakeConfirmationSource([])
    tracker, _, sink = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    tracker.apply_snapshot([], at(30))
    tracker.apply_snapshot([sighting("A1", 1, 5)], at(60))

    state = tracker.get("A1")
    assert state.passed_at == at(30)
    assert state.last_seen_at == at(60)
    assert state.seats_before == 6
    assert sink.records == []


def test_vehicles_without_plate_are_ignored(station):
    tracker, _, _ = make_tracker(station)

    tracker.apply_snapshot([VehicleSighting(plate="", stops_away=1, seats=3), sighting("C3", 4, 12)], at(0))

    assert len(tracker) == 1
    assert "C3" in tracker
    assert "" not in tracker


def test_malformed_sightings_are_skipped(station):
    tracker, _, sink = make_tracker(station)

    records = tracker.apply_snapshot(
        [
            VehicleSighting(plate="N1", stops_away=None, seats=5),
            VehicleSighting(plate="N2", stops_away=3, seats=None),
            sighting("C3", 4, 12),
        ],
        at(0),
    )

    assert records == []
    assert len(tracker) == 1
    assert "N1" not in tracker
    assert "N2" not in tracker


def test_malformed_sighting_of_tracked_bus_is_not_a_passage(station):
    tracker, conf, sink = make_tracker(station)

    tracker.apply_snapshot([sighting("A1", 2, 8)], at(0))
    tracker.apply_snapshot([VehicleSighting(plate="A1", stops_away=None, seats=None)], at(30))

    state = tracker.get("A1")
    assert state.passed_at is None
    assert state.seats_before == 8
    assert conf.calls == []


def test_persist_failure_retries_on_next_tick(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=4)])
    sink = FakeSink(fail_times=1)
    tracker, _, _ = make_tracker(station, conf, sink)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    assert tracker.apply_snapshot([], at(30)) == []
    assert not tracker.get("A1").finalized

    records = tracker.apply_snapshot([], at(60))
    assert len(records) == 1
    assert sink.attempts == 2
    assert len(sink.records) == 1


def test_finalized_entries_dropped_after_retention(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=4)])
    tracker, _, _ = make_tracker(station, conf)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    tracker.apply_snapshot([], at(30))

    tracker.apply_snapshot([], at(600))
    assert "A1" in tracker

    tracker.apply_snapshot([], at(601))
    assert "A1" not in tracker


def test_age_ceiling_drops_bus_that_never_leaves(station):
    tracker, _, sink = make_tracker(station)

    t = 0
    while t < 3600:
        tracker.apply_snapshot([sighting("D4", 2, 5)], at(t))
        assert "D4" in tracker
        t += 30

    tracker.apply_snapshot([sighting("E5", 6, 30)], at(3600))
    assert "D4" not in tracker
    assert "E5" in tracker
    assert sink.records == []


def test_age_ceiling_drops_entry_whose_persist_keeps_failing(station):
    conf = FakeConfirmationSource([VehicleLocation(plate="A1", seats=4)])
    sink = FakeSink(fail_times=10_000)
    tracker, _, _ = make_tracker(station, conf, sink)

    tracker.apply_snapshot([sighting("A1", 1, 6)], at(0))
    for t in range(30, 3600, 30):
        tracker.apply_snapshot([], at(t))
        assert "A1" in tracker

    tracker.apply_snapshot([], at(3600))
    assert "A1" not in tracker
    assert sink.records == []


def test_uses_clock_when_now_not_given(station):
    tracker, _, _ = make_tracker(station)

    tracker.apply_snapshot([sighting("A1", 3, 10)])

    assert tracker.get("A1").first_seen_at == T0
