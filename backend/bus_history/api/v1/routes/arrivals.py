from __future__ import annotations

from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bus_history.api.v1.schemas.arrivals import ArrivalOut, ArrivalPage, ArrivalStatsOut
from bus_history.collector.config import CollectorConfig
from bus_history.core.deps import get_collector_config, get_db
from bus_history.repositories import bus_arrivals
from bus_history.utils.time import local_day_end, local_day_start

router = APIRouter(prefix="/v1/arrivals", tags=["arrivals"])


def _date_range(from_date: Optional[str], to_date: Optional[str], tz: ZoneInfo):
    try:
        start = local_day_start(from_date, tz) if from_date else None
        end = local_day_end(to_date, tz) if to_date else None
    except ValueError:
        raise HTTPException(status_code=400, detail="from_date/to_date must be YYYY-MM-DD")
    return start, end


@router.get("", response_model=ArrivalPage)
def list_arrivals(
    route_id: Optional[str] = Query(None),
    station_id: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, description="YYYY-MM-DD, local time"),
    to_date: Optional[str] = Query(None, description="YYYY-MM-DD, local time, inclusive"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
    cfg: CollectorConfig = Depends(get_collector_config),
):
    start, end = _date_range(from_date, to_date, ZoneInfo(cfg.timezone))

    rows, total = bus_arrivals.find_by_filter(
        db,
        bus_arrivals.ArrivalFilter(
            route_id=route_id,
            station_id=station_id,
            from_date=start,
            to_date=end,
            page=page,
            limit=limit,
        ),
    )
    return ArrivalPage(
        data=[ArrivalOut.model_validate(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=ArrivalStatsOut)
def arrival_stats(
    route_id: str = Query(...),
    station_id: str = Query(...),
    from_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    cfg: CollectorConfig = Depends(get_collector_config),
):
    tz = ZoneInfo(cfg.timezone)
    start, end = _date_range(from_date, to_date, tz)

    stats = bus_arrivals.get_statistics(db, route_id, station_id, from_date=start, to_date=end, tz=tz)
    if stats is None:
        raise HTTPException(status_code=404, detail="No arrivals recorded for this route/station")
    return ArrivalStatsOut.model_validate(stats)


@router.get("/{arrival_id}/trip", response_model=list[ArrivalOut])
def arrival_trip(arrival_id: int, db: Session = Depends(get_db)):
    trip = bus_arrivals.get_trip_by_arrival_id(db, arrival_id)
    if trip is None:
        raise HTTPException(status_code=404, detail=f"arrival {arrival_id} not found")
    return [ArrivalOut.model_validate(a) for a in trip]
