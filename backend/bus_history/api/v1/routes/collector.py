from fastapi import APIRouter, Depends

from bus_history.api.v1.schemas.collector import CollectorStatus
from bus_history.collector.supervisor import CollectorSupervisor
from bus_history.core.deps import get_optional_supervisor, get_supervisor

router = APIRouter(prefix="/v1/collector", tags=["collector"])


@router.post("/start", response_model=CollectorStatus)
def start_collection(supervisor: CollectorSupervisor = Depends(get_supervisor)):
    supervisor.start()
    return supervisor.status()


@router.post("/stop", response_model=CollectorStatus)
def stop_collection(supervisor: CollectorSupervisor = Depends(get_supervisor)):
    supervisor.stop()
    return supervisor.status()


@router.get("/status", response_model=CollectorStatus)
def collection_status(supervisor=Depends(get_optional_supervisor)):
    if supervisor is None:
        return CollectorStatus(running=False)
    return supervisor.status()
