from dependency_injector import containers, providers

from loyaltyapi.config import get_settings
from loyaltyapi.services.accrual_client import AccrualClient
from loyaltyapi.services.reconciliation_worker import ReconciliationWorker


class Container(containers.DeclarativeContainer):
    """Application container (process-wide singletons)."""

    wiring_config = containers.WiringConfiguration(
        modules=["loyaltyapi.routers.health_router"],
    )

    config = providers.Singleton(get_settings)

    accrual_client = providers.Singleton(
        AccrualClient,
        base_url=config.provided.ACCRUAL_SYSTEM_ADDRESS,
        timeout_seconds=config.provided.ACCRUAL_TIMEOUT_SECONDS,
    )

    reconciliation_worker = providers.Singleton(
        ReconciliationWorker,
        accrual_client=accrual_client,
        settings=config,
    )
