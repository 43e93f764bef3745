import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from bus_history.api.v1.schemas.route_configs import (
    RouteConfigActive,
    RouteConfigCreate,
    RouteConfigOut,
    RouteConfigUpdate,
)
from bus_history.collector.supervisor import CollectorSupervisor
from bus_history.core.deps import get_db, get_optional_supervisor
from bus_history.repositories import route_configs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/configs", tags=["configs"])


def _notify(supervisor: Optional[CollectorSupervisor]) -> None:
    if supervisor is not None:
        supervisor.notify_config_changed()


@router.get("", response_model=list[RouteConfigOut])
def list_configs(db: Session = Depends(get_db)):
    return route_configs.find_all(db)


@router.post("", response_model=RouteConfigOut, status_code=201)
def create_config(
    body: RouteConfigCreate,
    db: Session = Depends(get_db),
    supervisor: Optional[CollectorSupervisor] = Depends(get_optional_supervisor),
):
    cfg = route_configs.create(
        db,
        route_id=body.route_id,
        route_name=body.route_name,
        station_id=body.station_id,
        station_name=body.station_name,
        direction=body.direction,
        sta_order=body.sta_order,
    )
    logger.info("Created config %d route=%s station=%s", cfg.id, cfg.route_id, cfg.station_id)

    # registering a station starts collection if it is not already running
    if supervisor is not None:
        if not supervisor.is_running():
            supervisor.start()
        supervisor.notify_config_changed()
    return cfg


@router.patch("/{config_id}", response_model=RouteConfigOut)
def update_config(
    config_id: int,
    body: RouteConfigUpdate,
    db: Session = Depends(get_db),
    supervisor: Optional[CollectorSupervisor] = Depends(get_optional_supervisor),
):
    cfg = route_configs.update(db, config_id, station_name=body.station_name, is_active=body.is_active)
    if cfg is None:
        raise HTTPException(status_code=404, detail=f"config {config_id} not found")
    if body.is_active is not None:
        _notify(supervisor)
    return cfg


@router.put("/{config_id}/active", response_model=RouteConfigOut)
def toggle_config(
    config_id: int,
    body: RouteConfigActive,
    db: Session = Depends(get_db),
    supervisor: Optional[CollectorSupervisor] = Depends(get_optional_supervisor),
):
    cfg = route_configs.update_status(db, config_id, body.is_active)
    if cfg is None:
        raise HTTPException(status_code=404, detail=f"config {config_id} not found")
    _notify(supervisor)
    return cfg


@router.delete("/{config_id}", status_code=204)
def delete_config(
    config_id: int,
    db: Session = Depends(get_db),
    supervisor: Optional[CollectorSupervisor] = Depends(get_optional_supervisor),
):
    if not route_configs.delete_config(db, config_id):
        raise HTTPException(status_code=404, detail=f"config {config_id} not found")
    _notify(supervisor)
    return Response(status_code=204)
