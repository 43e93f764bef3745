from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bus_history.models.bus_arrivals import BusArrival
from bus_history.models.route_configs import RouteConfig


def find_all(db: Session) -> list[RouteConfig]:
    stmt = select(RouteConfig).order_by(RouteConfig.route_name.asc(), RouteConfig.sta_order.asc())
    return list(db.scalars(stmt))


def find_active(db: Session) -> list[RouteConfig]:
    stmt = (
        select(RouteConfig)
        .where(RouteConfig.is_active.is_(True))
        .order_by(RouteConfig.route_name.asc(), RouteConfig.sta_order.asc())
    )
    return list(db.scalars(stmt))


def find_by_id(db: Session, config_id: int) -> Optional[RouteConfig]:
    return db.get(RouteConfig, config_id)


def create(
    db: Session,
    *,
    route_id: str,
    route_name: str,
    station_id: str,
    station_name: str,
    direction: str = "",
    sta_order: int = 0,
) -> RouteConfig:
    # configurations are always active on registration
    cfg = RouteConfig(
        route_id=route_id,
        route_name=route_name,
        station_id=station_id,
        station_name=station_name,
        direction=direction,
        sta_order=sta_order,
        is_active=True,
    )
    db.add(cfg)
    db.commit()
    db.refresh(cfg)
    return cfg


def update(
    db: Session,
    config_id: int,
    *,
    station_name: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Optional[RouteConfig]:
    cfg = db.get(RouteConfig, config_id)
    if cfg is None:
        return None
    if station_name is None and is_active is None:
        return cfg

    if station_name is not None:
        cfg.station_name = station_name
    if is_active is not None:
        cfg.is_active = is_active
    db.commit()
    db.refresh(cfg)
    return cfg


def update_status(db: Session, config_id: int, is_active: bool) -> Optional[RouteConfig]:
    return update(db, config_id, is_active=is_active)


def delete_config(db: Session, config_id: int) -> bool:
    """Delete a configuration together with its recorded arrivals."""
    cfg = db.get(RouteConfig, config_id)
    if cfg is None:
        return False
    db.execute(delete(BusArrival).where(BusArrival.route_config_id == config_id))
    db.delete(cfg)
    db.commit()
    return True
