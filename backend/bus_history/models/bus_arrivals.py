from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.sql import func
from bus_history.core.db import Base

class BusArrival(Base):
    __tablename__ = "bus_arrivals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_config_id = Column(Integer, ForeignKey("route_configs.id"), nullable=False, index=True)

    bus_number = Column(Text, nullable=False, index=True)   # vehicle plate
    arrival_time = Column(DateTime(timezone=True), nullable=False, index=True)

    seats_before = Column(Integer, nullable=True)
    seats_after = Column(Integer, nullable=True)            # NULL when confirmation timed out

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
