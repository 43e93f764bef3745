import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import anyio.to_thread
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bus_history.api.v1.routes.arrivals import router as arrivals_router
from bus_history.api.v1.routes.collector import router as collector_router
from bus_history.api.v1.routes.health import router as health_router
from bus_history.api.v1.routes.route_configs import router as route_configs_router
from bus_history.api.v1.routes.search import router as search_router
from bus_history.collector.config import CollectorConfig, load_config
from bus_history.collector.persistence import DbArrivalSink, DbConfigProvider
from bus_history.collector.supervisor import CollectorSupervisor
from bus_history.core.db import SessionLocal, init_db
from bus_history.core.log import configure_logging_if_needed
from bus_history.sources.gbis.source import GbisSource

logger = logging.getLogger(__name__)


def build_source() -> Optional[GbisSource]:
    """GBIS client from env settings. None if GBIS is not configured."""
    try:
        return GbisSource()
    except RuntimeError as e:
        logger.warning("GBIS disabled, collector and search unavailable: %s", e)
        return None


def build_supervisor(collector_config: CollectorConfig, source: GbisSource) -> CollectorSupervisor:
    return CollectorSupervisor(
        DbConfigProvider(SessionLocal),
        source,
        source,
        DbArrivalSink(SessionLocal),
        collector_config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging_if_needed()
    init_db()

    if getattr(app.state, "collector_config", None) is None:
        app.state.collector_config = load_config()

    # anything already on app.state was supplied by the caller and is not ours to close
    owned_source = None
    if getattr(app.state, "gbis_source", None) is None:
        owned_source = build_source()
        app.state.gbis_source = owned_source
    if getattr(app.state, "supervisor", None) is None and app.state.gbis_source is not None:
        app.state.supervisor = build_supervisor(app.state.collector_config, app.state.gbis_source)

    supervisor = getattr(app.state, "supervisor", None)
    if supervisor is not None and os.getenv("COLLECTOR_AUTOSTART", "0") == "1":
        supervisor.start()

    try:
        yield
    finally:
        if supervisor is not None:
            # joins every worker thread; keep it off the event loop
            await anyio.to_thread.run_sync(supervisor.stop)
        if owned_source is not None:
            owned_source.close()


def create_app() -> FastAPI:
    app = FastAPI(title="Bus History API", lifespan=lifespan)

    # Dev-friendly CORS policy so the dashboard can call the API directly.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/v1")
    app.include_router(route_configs_router)
    app.include_router(arrivals_router)
    app.include_router(search_router)
    app.include_router(collector_router)
    return app


app = create_app()
