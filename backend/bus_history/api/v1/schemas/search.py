from typing import Optional

from pydantic import BaseModel, ConfigDict


class RouteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    route_name: str
    route_type_name: str = ""
    region_name: str = ""
    start_station_name: str = ""
    end_station_name: str = ""


class StationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    station_id: str
    station_name: str
    region_name: str = ""
    mobile_no: str = ""
    x: Optional[float] = None
    y: Optional[float] = None


class RouteStationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    station_id: str
    station_name: str
    station_seq: int
    turn: bool = False
    region_name: str = ""


class StationRouteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    route_name: str
    route_type_name: str = ""
    direction: str = ""
    sta_order: Optional[int] = None
