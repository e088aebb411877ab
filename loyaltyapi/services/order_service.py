import logging
from typing import List

from loyaltyapi.core.exceptions import (
    DuplicateOrderNumberError,
    InvalidOrderNumberError,
    OrderNumberConflictError,
)
from loyaltyapi.repositories.interfaces import AbstractOrderRepository, AbstractUnitOfWork
from loyaltyapi.schemas.order import (
    Order,
    OrderResponse,
    UploadOrderResponse,
    UploadStatus,
)
from loyaltyapi.schemas.outbox import OutboxRecord
from loyaltyapi.utils.luhn import validate_order_number

logger = logging.getLogger(__name__)


class OrderService:
    """주문 업로드/조회 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, order_repo: AbstractOrderRepository, unit_of_work: AbstractUnitOfWork):
        self.order_repo = order_repo
        self.unit_of_work = unit_of_work

    def upload_order(self, user_id: int, number: str) -> UploadOrderResponse:
        """주문 번호 업로드

        주문과 아웃박스 레코드를 하나의 트랜잭션으로 생성합니다.
        같은 사용자의 재업로드는 멱등하게 already_uploaded를 반환합니다.

        Args:
            user_id: 인증된 사용자 ID
            number: 주문 번호

        Returns:
            UploadOrderResponse: accepted 또는 already_uploaded

        Raises:
            InvalidOrderNumberError: Luhn 체크섬 불일치
            OrderNumberConflictError: 다른 사용자가 이미 업로드한 번호
        """
        if not validate_order_number(number):
            raise InvalidOrderNumberError(number)

        existing = self.order_repo.find_by_number(number)
        if existing is not None:
            return self._classify_existing(existing, user_id)

        try:
            with self.unit_of_work.begin() as tx:
                order = tx.orders.create(Order.new(user_id, number))
                tx.outbox.create(OutboxRecord.pending(order.id))
                tx.commit()
        except DuplicateOrderNumberError:
            # 동시 업로드 경합: 먼저 커밋된 주문 기준으로 재분류
            logger.info(f"Concurrent upload detected for order {number}")
            existing = self.order_repo.find_by_number(number)
            if existing is None:
                raise
            return self._classify_existing(existing, user_id)

        logger.info(f"Order {number} accepted for user {user_id} (order_id={order.id})")
        return UploadOrderResponse(status=UploadStatus.ACCEPTED)

    def _classify_existing(self, existing: Order, user_id: int) -> UploadOrderResponse:
        if existing.user_id != user_id:
            logger.warning(
                f"Order {existing.number} already uploaded by another user "
                f"(requested by {user_id})"
            )
            raise OrderNumberConflictError(existing.number)
        return UploadOrderResponse(status=UploadStatus.ALREADY_UPLOADED)

    def get_user_orders(self, user_id: int) -> List[OrderResponse]:
        """사용자 주문 목록 (최신 업로드 순)"""
        orders = self.order_repo.find_by_user(user_id)
        return [OrderResponse.from_order(order) for order in orders]
