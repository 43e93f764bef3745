from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MonitoringConfig:
    config_id: int
    route_id: str
    station_id: str
    route_name: str = ""
    station_name: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class VehicleSighting:
    plate: str
    stops_away: int                  # ordinal distance to the monitored station
    seats: int


@dataclass(frozen=True)
class VehicleLocation:
    plate: str
    seats: int                       # negative = upstream has no seat count yet
    station_seq: Optional[int] = None


@dataclass(frozen=True)
class ArrivalRecord:
    config_id: int
    route_id: str
    station_id: str
    plate: str

    arrival_time: datetime           # last time the bus was seen approaching
    seats_before: int
    seats_after: Optional[int]       # None when confirmation timed out

    @property
    def passengers_boarded(self) -> Optional[int]:
        if self.seats_after is None:
            return None
        return self.seats_before - self.seats_after
