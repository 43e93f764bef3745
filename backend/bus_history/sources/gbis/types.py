from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RouteInfo:
    route_id: str
    route_name: str
    route_type_name: str = ""
    region_name: str = ""
    start_station_name: str = ""
    end_station_name: str = ""


@dataclass(frozen=True)
class StationInfo:
    station_id: str
    station_name: str
    region_name: str = ""
    mobile_no: str = ""
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class RouteStation:
    station_id: str
    station_name: str
    station_seq: int                 # becomes sta_order on a route config
    turn: bool = False               # turnaround point of the route
    region_name: str = ""


@dataclass(frozen=True)
class StationRoute:
    route_id: str
    route_name: str
    route_type_name: str = ""
    direction: str = ""              # see parse.direction_at
    sta_order: Optional[int] = None
