from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ArrivalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    route_config_id: int
    bus_number: str
    arrival_time: datetime
    seats_before: Optional[int] = None
    seats_after: Optional[int] = None
    created_at: Optional[datetime] = None

    route_id: str
    route_name: str
    station_id: str
    station_name: str
    sta_order: int


class ArrivalPage(BaseModel):
    data: list[ArrivalOut]
    total: int
    page: int
    limit: int


class ArrivalStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    station_name: str
    period_from: str
    period_to: str
    total_arrivals: int
    avg_seats_before: float
    avg_seats_after: float
    avg_boarding: float
    busiest_hours: list[str]
