from typing import Optional

from fastapi import HTTPException, Request

from bus_history.core.db import SessionLocal
from bus_history.collector.config import CollectorConfig, load_config
from bus_history.collector.supervisor import CollectorSupervisor
from bus_history.sources.gbis.source import GbisSource


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_supervisor(request: Request) -> CollectorSupervisor:
    supervisor = getattr(request.app.state, "supervisor", None)
    if supervisor is None:
        raise HTTPException(status_code=503, detail="Collector not initialized. Check GBIS settings.")
    return supervisor


def get_optional_supervisor(request: Request) -> Optional[CollectorSupervisor]:
    return getattr(request.app.state, "supervisor", None)


def get_collector_config(request: Request) -> CollectorConfig:
    cfg = getattr(request.app.state, "collector_config", None)
    return cfg or load_config()


def get_gbis_source(request: Request) -> GbisSource:
    source = getattr(request.app.state, "gbis_source", None)
    if source is None:
        raise HTTPException(status_code=503, detail="GBIS not configured. Set GBIS_SERVICE_KEY.")
    return source
