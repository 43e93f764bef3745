from sqlalchemy import Boolean, Column, DateTime, Integer, Text
from sqlalchemy.sql import func
from bus_history.core.db import Base

class RouteConfig(Base):
    __tablename__ = "route_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    route_id = Column(Text, nullable=False, index=True)
    route_name = Column(Text, nullable=False)
    station_id = Column(Text, nullable=False, index=True)
    station_name = Column(Text, nullable=False)

    direction = Column(Text, nullable=False, default="")
    sta_order = Column(Integer, nullable=False, default=0)   # station sequence on the route

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
