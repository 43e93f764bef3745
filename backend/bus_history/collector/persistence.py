from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from bus_history.models.route_configs import RouteConfig
from bus_history.repositories import bus_arrivals, route_configs

from .base import ArrivalSink, ConfigProvider
from .types import ArrivalRecord, MonitoringConfig

logger = logging.getLogger(__name__)


def to_monitoring_config(cfg: RouteConfig) -> MonitoringConfig:
    return MonitoringConfig(
        config_id=cfg.id,
        route_id=cfg.route_id,
        station_id=cfg.station_id,
        route_name=cfg.route_name,
        station_name=cfg.station_name,
        is_active=bool(cfg.is_active),
    )


class DbArrivalSink(ArrivalSink):
    """Writes arrivals through a fresh session per call, so workers never share one."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def persist(self, record: ArrivalRecord) -> int:
        db: Session = self._session_factory()
        try:
            return bus_arrivals.create_arrival(db, record)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class DbConfigProvider(ConfigProvider):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_active_configs(self) -> list[MonitoringConfig]:
        db: Session = self._session_factory()
        try:
            return [to_monitoring_config(cfg) for cfg in route_configs.find_active(db)]
        finally:
            db.close()
