from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from loyaltyapi.containers import Container
from loyaltyapi.schemas.health import HealthCheckResponse
from loyaltyapi.services.reconciliation_worker import ReconciliationWorker

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    worker: ReconciliationWorker = Depends(Provide[Container.reconciliation_worker]),
) -> HealthCheckResponse:
    """Health check endpoint."""

    return HealthCheckResponse(worker_running=worker.running)
