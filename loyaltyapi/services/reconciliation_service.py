"""
주문 정산 서비스 (Reconciliation Dispatcher)

아웃박스의 PENDING 레코드를 배치로 가져와 외부 적립 시스템과 대조하고,
주문 상태와 사용자 잔액을 갱신합니다.

처리 흐름:
1. PENDING 아웃박스 레코드를 생성 순으로 최대 batch_size개 조회
2. 레코드별로 동시에 처리하되 최대 max_workers개까지만 실행
3. 레코드 처리 결과에 따라 아웃박스 상태 갱신
   - 성공: PROCESSED
   - 실패: retries >= max_retries 이면 FAILED, 아니면 retries + 1
4. 한 레코드의 실패는 다른 레코드 처리에 영향을 주지 않음

잔액 적립과 주문 상태 저장은 하나의 트랜잭션으로 처리되며,
이미 PROCESSED인 주문은 적립 시스템을 다시 호출하지 않고,
상태 저장은 저장된 주문이 PROCESSED가 아닐 때만 성공하므로
재시도나 여러 디스패처의 동시 실행에도 적립은 한 번만 반영됩니다.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from loyaltyapi.core.exceptions import (
    OrderAlreadyProcessedError,
    OrderNotFoundError,
    UnknownAccrualStatusError,
)
from loyaltyapi.models.order import OrderStatus, OutboxStatus
from loyaltyapi.repositories.interfaces import (
    AbstractOrderRepository,
    AbstractOutboxRepository,
    AbstractUnitOfWork,
)
from loyaltyapi.schemas.accrual import AccrualStatus
from loyaltyapi.schemas.order import Order
from loyaltyapi.schemas.outbox import OutboxRecord
from loyaltyapi.services.accrual_client import (
    AccrualClient,
    AccrualOrderNotFoundError,
    AccrualRateLimitedError,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_WORKERS = 5
DEFAULT_MAX_RETRIES = 3

ACCRUAL_STATUS_MAP: Dict[str, OrderStatus] = {
    AccrualStatus.REGISTERED.value: OrderStatus.NEW,
    AccrualStatus.PROCESSING.value: OrderStatus.PROCESSING,
    AccrualStatus.INVALID.value: OrderStatus.INVALID,
    AccrualStatus.PROCESSED.value: OrderStatus.PROCESSED,
}


class OrderReconciliationService:
    """아웃박스 기반 주문 정산 서비스

    호출 사이에 상태를 보관하지 않으며, 주기 실행은 ReconciliationWorker가 담당합니다.
    """

    def __init__(
        self,
        outbox_repo: AbstractOutboxRepository,
        order_repo: AbstractOrderRepository,
        unit_of_work: AbstractUnitOfWork,
        accrual_client: AccrualClient,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.outbox_repo = outbox_repo
        self.order_repo = order_repo
        self.unit_of_work = unit_of_work
        self.accrual_client = accrual_client
        self.batch_size = batch_size
        self.max_workers = max_workers
        self.max_retries = max_retries

    async def process_pending_orders(self) -> None:
        """PENDING 아웃박스 배치 처리 (1 tick)

        Raises:
            Exception: 배치 조회 자체가 실패한 경우에만 전파
        """
        records = self.outbox_repo.find_pending(self.batch_size)
        if not records:
            return

        semaphore = asyncio.Semaphore(self.max_workers)

        async def run(record: OutboxRecord) -> bool:
            async with semaphore:
                return await self._process_record(record)

        results: List[bool] = await asyncio.gather(*(run(r) for r in records))
        succeeded = sum(1 for ok in results if ok)
        logger.info(
            f"Reconciliation tick finished: {succeeded}/{len(records)} succeeded"
        )

    async def _process_record(self, record: OutboxRecord) -> bool:
        """레코드 하나를 처리하고 결과에 따라 아웃박스를 갱신 (예외를 밖으로 내보내지 않음)"""
        try:
            await self.process_order(record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Failed to process order {record.order_id} "
                f"(outbox_id={record.id}, retries={record.retries}): {e}"
            )
            self._apply_retry_policy(record)
            return False

        self._mark_outbox(record, OutboxStatus.PROCESSED)
        return True

    def _apply_retry_policy(self, record: OutboxRecord) -> None:
        if record.retries >= self.max_retries:
            logger.error(
                f"Outbox {record.id} exhausted retries ({record.retries}), marking FAILED"
            )
            self._mark_outbox(record, OutboxStatus.FAILED)
            return

        try:
            self.outbox_repo.increment_retries(record.id)
        except Exception as e:
            logger.error(f"Failed to increment retries for outbox {record.id}: {e}")

    def _mark_outbox(self, record: OutboxRecord, status: OutboxStatus) -> None:
        try:
            self.outbox_repo.update_status(record.id, status)
        except Exception as e:
            logger.error(
                f"Failed to update outbox {record.id} status to {status.value}: {e}"
            )

    async def process_order(self, record: OutboxRecord) -> None:
        """아웃박스 레코드에 해당하는 주문 정산

        Raises:
            OrderNotFoundError: 주문이 존재하지 않음
            AccrualRateLimitedError, AccrualTransientError: 재시도 대상
            AccrualUnexpectedResponseError: 적립 시스템 응답 오류
            UnknownAccrualStatusError: 알 수 없는 적립 상태
            TerminalStateViolationError 등: 상태 전이 규칙 위반
        """
        order = self.order_repo.find_by_id(record.order_id)
        if order is None:
            raise OrderNotFoundError(record.order_id)

        if order.is_terminal:
            # 적립이 이미 반영된 주문 (이전 tick에서 아웃박스 갱신만 실패한 경우)
            logger.info(f"Order {order.number} already processed, skipping accrual call")
            return

        try:
            accrual = await self.accrual_client.get_order_info(order.number)
        except AccrualOrderNotFoundError:
            logger.info(f"Order {order.number} not registered in accrual system, marking INVALID")
            self._persist(order, OrderStatus.INVALID, None)
            return
        except AccrualRateLimitedError as e:
            logger.warning(
                f"Accrual system rate limited while checking {order.number} "
                f"(retry_after={e.retry_after})"
            )
            raise

        new_status = ACCRUAL_STATUS_MAP.get(accrual.status)
        if new_status is None:
            raise UnknownAccrualStatusError(accrual.status)

        self._persist(order, new_status, accrual.accrual)

    def _persist(
        self, order: Order, new_status: OrderStatus, accrual: Optional[Decimal]
    ) -> None:
        """잔액 적립과 주문 상태 저장을 하나의 트랜잭션으로 처리

        상태 저장은 저장된 주문이 PROCESSED가 아닐 때만 성공하므로,
        다른 디스패처가 먼저 확정한 주문의 적립은 함께 롤백됩니다.
        """
        order.check_transition(new_status, accrual)

        try:
            with self.unit_of_work.begin() as tx:
                if new_status == OrderStatus.PROCESSED and accrual is not None and accrual > 0:
                    tx.balances.accrue(order.user_id, accrual)
                order.update_status(new_status, accrual)
                tx.orders.update_status(order)
                tx.commit()
        except OrderAlreadyProcessedError:
            logger.info(
                f"Order {order.number} was already processed by another dispatcher, "
                f"accrual rolled back"
            )
            return

        logger.info(
            f"Order {order.number} reconciled: status={new_status.value}, accrual={accrual}"
        )
