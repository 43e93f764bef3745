from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RouteConfigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    route_id: str
    route_name: str
    station_id: str
    station_name: str
    direction: str
    sta_order: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RouteConfigCreate(BaseModel):
    route_id: Union[str, int] = Field(..., description="GBIS route id; string or number")
    route_name: str = Field(..., min_length=1)
    station_id: Union[str, int] = Field(..., description="GBIS station id; string or number")
    station_name: str = Field(..., min_length=1)
    direction: str = ""
    sta_order: int = 0

    @field_validator("route_id", "station_id")
    @classmethod
    def numeric_id(cls, v):
        s = str(v).strip()
        if not s.isdigit():
            raise ValueError(f"must be numeric, got {v!r}")
        return s


class RouteConfigUpdate(BaseModel):
    station_name: Optional[str] = None
    is_active: Optional[bool] = None


class RouteConfigActive(BaseModel):
    is_active: bool
