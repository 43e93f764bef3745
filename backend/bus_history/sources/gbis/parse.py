import logging
from typing import Any, Optional

from bus_history.collector.types import VehicleLocation, VehicleSighting

from .types import RouteInfo, RouteStation, StationInfo

logger = logging.getLogger(__name__)

SEATS_UNKNOWN = -1

# direction labels as GBIS shows them to riders
DIRECTION_UP = "상행"
DIRECTION_TURN = "회차"
DIRECTION_DOWN = "하행"


def as_list(x):
    if x is None:
        return []
    return x if isinstance(x, list) else [x]


def as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_plate(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def sightings_from_arrival_item(body: dict) -> list[VehicleSighting]:
    """
    getBusArrivalItemv2 returns one item describing the next two buses of a
    route at a station (suffixes 1 and 2). Slots without a plate are empty.
    """
    out: list[VehicleSighting] = []
    for item in as_list(body.get("busArrivalItem")):
        for slot in ("1", "2"):
            plate = as_plate(item.get(f"plateNo{slot}"))
            if not plate:
                continue

            stops_away = as_int(item.get(f"locationNo{slot}"))
            if stops_away is None:
                logger.debug("Arrival slot %s for bus %s skipped: missing locationNo", slot, plate)
                continue

            out.append(
                VehicleSighting(
                    plate=plate,
                    stops_away=stops_away,
                    seats=as_int(item.get(f"remainSeatCnt{slot}"), SEATS_UNKNOWN),
                )
            )
    return out


def locations_from_body(body: dict) -> list[VehicleLocation]:
    out: list[VehicleLocation] = []
    for row in as_list(body.get("busLocationList")):
        plate = as_plate(row.get("plateNo"))
        if not plate:
            continue
        out.append(
            VehicleLocation(
                plate=plate,
                seats=as_int(row.get("remainSeatCnt"), SEATS_UNKNOWN),
                station_seq=as_int(row.get("stationSeq")),
            )
        )
    return out


def as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def as_text(value: Any) -> str:
    # GBIS sends numeric route names ("7770") as JSON numbers
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def routes_from_body(body: dict) -> list[RouteInfo]:
    out: list[RouteInfo] = []
    for row in as_list(body.get("busRouteList")):
        route_id = as_text(row.get("routeId"))
        if not route_id:
            continue
        out.append(
            RouteInfo(
                route_id=route_id,
                route_name=as_text(row.get("routeName")),
                route_type_name=as_text(row.get("routeTypeName")),
                region_name=as_text(row.get("regionName")),
                start_station_name=as_text(row.get("startStationName")),
                end_station_name=as_text(row.get("endStationName")),
            )
        )
    return out


def stations_from_body(body: dict) -> list[StationInfo]:
    out: list[StationInfo] = []
    for row in as_list(body.get("busStationList")):
        station_id = as_text(row.get("stationId"))
        if not station_id:
            continue
        out.append(
            StationInfo(
                station_id=station_id,
                station_name=as_text(row.get("stationName")),
                region_name=as_text(row.get("regionName")),
                mobile_no=as_text(row.get("mobileNo")),
                x=as_float(row.get("x")),
                y=as_float(row.get("y")),
            )
        )
    return out


def route_stations_from_body(body: dict) -> list[RouteStation]:
    out: list[RouteStation] = []
    for row in as_list(body.get("busRouteStationList")):
        station_id = as_text(row.get("stationId"))
        seq = as_int(row.get("stationSeq"))
        if not station_id or seq is None:
            continue
        out.append(
            RouteStation(
                station_id=station_id,
                station_name=as_text(row.get("stationName")),
                station_seq=seq,
                turn=as_text(row.get("turnYn")).upper() == "Y",
                region_name=as_text(row.get("regionName")),
            )
        )
    return sorted(out, key=lambda s: s.station_seq)


def direction_at(stations: list[RouteStation], station_id: str) -> tuple[str, Optional[int]]:
    """
    Direction of travel at `station_id`, judged against the route's
    turnaround point: before it is up, at it is turn, after it is down.
    Routes without a turnaround are one-way (up). A station served twice on a
    loop is judged at its later stop. Returns ("", None) when the station is
    not on the route.
    """
    seq = next((s.station_seq for s in reversed(stations) if s.station_id == station_id), None)
    if seq is None:
        return "", None

    turn_seq = next((s.station_seq for s in reversed(stations) if s.turn), None)
    if turn_seq is None or seq < turn_seq:
        return DIRECTION_UP, seq
    if seq == turn_seq:
        return DIRECTION_TURN, seq
    return DIRECTION_DOWN, seq
