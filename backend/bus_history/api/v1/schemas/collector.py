from pydantic import BaseModel


class WorkerStatus(BaseModel):
    config_id: int
    route_id: str
    station_id: str
    station_name: str
    tracked_buses: int
    ticks: int


class CollectorStatus(BaseModel):
    running: bool
    workers: list[WorkerStatus] = []
