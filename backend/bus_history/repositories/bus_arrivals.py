from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bus_history.collector.types import ArrivalRecord
from bus_history.models.bus_arrivals import BusArrival
from bus_history.models.route_configs import RouteConfig
from bus_history.utils.time import fmt_day, hour_label, local_hour, to_utc

DEFAULT_PAGE_LIMIT = 20
TRIP_WINDOW = timedelta(hours=6)


@dataclass(frozen=True)
class ArrivalFilter:
    route_id: Optional[str] = None
    station_id: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT


@dataclass(frozen=True)
class ArrivalWithConfig:
    id: int
    route_config_id: int
    bus_number: str
    arrival_time: datetime
    seats_before: Optional[int]
    seats_after: Optional[int]
    created_at: Optional[datetime]

    route_id: str
    route_name: str
    station_id: str
    station_name: str
    sta_order: int


@dataclass(frozen=True)
class ArrivalStats:
    route_id: str
    station_name: str
    period_from: str
    period_to: str
    total_arrivals: int
    avg_seats_before: float
    avg_seats_after: float
    avg_boarding: float
    busiest_hours: list[str] = field(default_factory=list)


def _joined(arrival: BusArrival, cfg: RouteConfig) -> ArrivalWithConfig:
    return ArrivalWithConfig(
        id=arrival.id,
        route_config_id=arrival.route_config_id,
        bus_number=arrival.bus_number,
        arrival_time=to_utc(arrival.arrival_time),
        seats_before=arrival.seats_before,
        seats_after=arrival.seats_after,
        created_at=to_utc(arrival.created_at) if arrival.created_at else None,
        route_id=cfg.route_id,
        route_name=cfg.route_name,
        station_id=cfg.station_id,
        station_name=cfg.station_name,
        sta_order=cfg.sta_order,
    )


def create_arrival(db: Session, record: ArrivalRecord) -> int:
    row = BusArrival(
        route_config_id=record.config_id,
        bus_number=record.plate,
        arrival_time=to_utc(record.arrival_time),
        seats_before=record.seats_before,
        seats_after=record.seats_after,
    )
    db.add(row)
    db.commit()
    return row.id


def _apply_filters(stmt, *, route_id, station_id, from_date, to_date):
    if route_id:
        stmt = stmt.where(RouteConfig.route_id == route_id)
    if station_id:
        stmt = stmt.where(RouteConfig.station_id == station_id)
    if from_date is not None:
        stmt = stmt.where(BusArrival.arrival_time >= to_utc(from_date))
    if to_date is not None:
        stmt = stmt.where(BusArrival.arrival_time <= to_utc(to_date))
    return stmt


def find_by_filter(db: Session, flt: ArrivalFilter) -> tuple[list[ArrivalWithConfig], int]:
    """Newest first, paginated. Returns (rows, total matching)."""
    filters = dict(
        route_id=flt.route_id,
        station_id=flt.station_id,
        from_date=flt.from_date,
        to_date=flt.to_date,
    )

    count_stmt = _apply_filters(
        select(func.count()).select_from(BusArrival).join(RouteConfig, BusArrival.route_config_id == RouteConfig.id),
        **filters,
    )
    total = int(db.execute(count_stmt).scalar_one())

    page = flt.page if flt.page >= 1 else 1
    limit = flt.limit if flt.limit >= 1 else DEFAULT_PAGE_LIMIT

    stmt = _apply_filters(
        select(BusArrival, RouteConfig).join(RouteConfig, BusArrival.route_config_id == RouteConfig.id),
        **filters,
    )
    stmt = stmt.order_by(BusArrival.arrival_time.desc(), BusArrival.id.desc()).limit(limit).offset((page - 1) * limit)

    rows = [_joined(a, c) for a, c in db.execute(stmt).all()]
    return rows, total


def find_by_id(db: Session, arrival_id: int) -> Optional[ArrivalWithConfig]:
    stmt = (
        select(BusArrival, RouteConfig)
        .join(RouteConfig, BusArrival.route_config_id == RouteConfig.id)
        .where(BusArrival.id == arrival_id)
    )
    row = db.execute(stmt).first()
    if row is None:
        return None
    return _joined(row[0], row[1])


def get_statistics(
    db: Session,
    route_id: str,
    station_id: str,
    *,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tz: ZoneInfo = ZoneInfo("Asia/Seoul"),
) -> Optional[ArrivalStats]:
    filters = dict(route_id=route_id, station_id=station_id, from_date=from_date, to_date=to_date)

    agg = _apply_filters(
        select(
            RouteConfig.route_id,
            RouteConfig.station_name,
            func.count(BusArrival.id),
            func.avg(BusArrival.seats_before),
            func.avg(BusArrival.seats_after),
            func.avg(BusArrival.seats_before - BusArrival.seats_after),
        )
        .join(RouteConfig, BusArrival.route_config_id == RouteConfig.id)
        .group_by(RouteConfig.route_id, RouteConfig.station_name),
        **filters,
    )
    row = db.execute(agg).first()
    if row is None:
        return None

    _, station_name, total, avg_before, avg_after, avg_boarding = row

    # hour bucketing happens in the local timezone, not the database's
    times_stmt = _apply_filters(
        select(BusArrival.arrival_time).join(RouteConfig, BusArrival.route_config_id == RouteConfig.id),
        **filters,
    )
    hours = Counter(local_hour(t, tz) for t in db.scalars(times_stmt))
    busiest = [hour_label(h) for h, _ in sorted(hours.items(), key=lambda kv: (-kv[1], kv[0]))[:3]]

    return ArrivalStats(
        route_id=route_id,
        station_name=station_name,
        period_from=fmt_day(from_date, tz),
        period_to=fmt_day(to_date, tz),
        total_arrivals=int(total),
        avg_seats_before=float(avg_before or 0.0),
        avg_seats_after=float(avg_after or 0.0),
        avg_boarding=float(avg_boarding or 0.0),
        busiest_hours=busiest,
    )


def get_trip_by_arrival_id(db: Session, arrival_id: int) -> Optional[list[ArrivalWithConfig]]:
    """
    The run of consecutive stations this bus served around the given arrival.

    Candidates are arrivals of the same bus on the same route within 6 hours
    either side. Walking outwards from the target, the trip continues as long
    as station order keeps increasing in time.
    """
    target = find_by_id(db, arrival_id)
    if target is None:
        return None

    stmt = (
        select(BusArrival, RouteConfig)
        .join(RouteConfig, BusArrival.route_config_id == RouteConfig.id)
        .where(BusArrival.bus_number == target.bus_number)
        .where(RouteConfig.route_id == target.route_id)
        .where(BusArrival.arrival_time >= target.arrival_time - TRIP_WINDOW)
        .where(BusArrival.arrival_time <= target.arrival_time + TRIP_WINDOW)
        .order_by(BusArrival.arrival_time.asc(), BusArrival.id.asc())
    )
    arrivals = [_joined(a, c) for a, c in db.execute(stmt).all()]

    idx = next((i for i, a in enumerate(arrivals) if a.id == arrival_id), None)
    if idx is None:
        return None

    start = idx
    while start > 0 and arrivals[start - 1].sta_order < arrivals[start].sta_order:
        start -= 1

    end = idx
    while end + 1 < len(arrivals) and arrivals[end + 1].sta_order > arrivals[end].sta_order:
        end += 1

    return arrivals[start:end + 1]
