"""
정산 워커 - 주기적으로 OrderReconciliationService를 실행하는 백그라운드 작업

각 tick마다 새 DB 세션을 열고 정산 서비스를 새로 구성합니다.
stop_event가 설정되면 다음 tick을 예약하지 않고 종료합니다.
"""

import asyncio
import logging
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.database.session import get_db_context
from loyaltyapi.repositories.order_repository import OrderRepository
from loyaltyapi.repositories.outbox_repository import OutboxRepository
from loyaltyapi.repositories.unit_of_work import SqlAlchemyUnitOfWork
from loyaltyapi.services.accrual_client import AccrualClient
from loyaltyapi.services.reconciliation_service import OrderReconciliationService

logger = logging.getLogger(__name__)


class ReconciliationWorker:
    def __init__(
        self,
        accrual_client: AccrualClient,
        settings: Settings,
        session_scope: Callable[[], ContextManager[Session]] = get_db_context,
    ):
        self.accrual_client = accrual_client
        self.settings = settings
        self.session_scope = session_scope
        self.running = False

    def build_service(self, db: Session) -> OrderReconciliationService:
        return OrderReconciliationService(
            outbox_repo=OutboxRepository(db),
            order_repo=OrderRepository(db),
            unit_of_work=SqlAlchemyUnitOfWork(db),
            accrual_client=self.accrual_client,
            batch_size=self.settings.RECONCILE_BATCH_SIZE,
            max_workers=self.settings.RECONCILE_MAX_WORKERS,
            max_retries=self.settings.RECONCILE_MAX_RETRIES,
        )

    async def run_once(self) -> None:
        """tick 1회 실행 (배치 조회 실패 시 예외 전파)"""
        with self.session_scope() as db:
            await self.build_service(db).process_pending_orders()

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """stop_event가 설정될 때까지 RECONCILE_INTERVAL_SECONDS 주기로 tick 실행"""
        stop_event = stop_event or asyncio.Event()
        interval = self.settings.RECONCILE_INTERVAL_SECONDS
        self.running = True
        logger.info(f"Reconciliation worker started (interval={interval}s)")

        try:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval)
                    break
                except asyncio.TimeoutError:
                    pass

                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error processing pending orders: {e}", exc_info=True)
        finally:
            self.running = False
            logger.info("Reconciliation worker stopped")
