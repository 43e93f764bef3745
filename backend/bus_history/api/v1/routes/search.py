"""
GBIS lookups used to fill in a new monitoring config: find a route or a
station by name, then pick the station (and its sequence on the route).
"""

import logging
from collections.abc import Callable
from typing import TypeVar

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from bus_history.api.v1.schemas.search import RouteOut, RouteStationOut, StationOut, StationRouteOut
from bus_history.core.deps import get_gbis_source
from bus_history.sources.gbis.http import GbisApiError
from bus_history.sources.gbis.source import GbisSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/search", tags=["search"])

T = TypeVar("T")


def _upstream(call: Callable[[], T]) -> T:
    try:
        return call()
    except (GbisApiError, httpx.HTTPError) as e:
        logger.warning("GBIS lookup failed: %r", e)
        raise HTTPException(status_code=502, detail=f"GBIS lookup failed: {e}")


@router.get("/routes", response_model=list[RouteOut])
def search_routes(keyword: str = Query(..., min_length=1), source: GbisSource = Depends(get_gbis_source)):
    return _upstream(lambda: source.search_routes(keyword.strip()))


@router.get("/stations", response_model=list[StationOut])
def search_stations(keyword: str = Query(..., min_length=1), source: GbisSource = Depends(get_gbis_source)):
    return _upstream(lambda: source.search_stations(keyword.strip()))


@router.get("/routes/{route_id}/stations", response_model=list[RouteStationOut])
def route_stations(route_id: str, source: GbisSource = Depends(get_gbis_source)):
    return _upstream(lambda: source.route_stations(route_id))


@router.get("/stations/{station_id}/routes", response_model=list[StationRouteOut])
def station_routes(station_id: str, source: GbisSource = Depends(get_gbis_source)):
    return _upstream(lambda: source.station_routes(station_id))
