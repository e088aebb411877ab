from typing import List, Optional

from sqlalchemy import asc, desc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import (
    DuplicateOrderNumberError,
    OrderAlreadyProcessedError,
    OrderNotFoundError,
)
from loyaltyapi.models.order import Order as OrderModel, OrderStatus
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.repositories.interfaces import AbstractOrderRepository
from loyaltyapi.schemas.order import Order


class OrderRepository(BaseRepository[OrderModel, Order], AbstractOrderRepository):
    """주문 리포지토리"""

    def __init__(self, db: Session, auto_commit: bool = True):
        super().__init__(OrderModel, Order, db, auto_commit=auto_commit)

    def create(self, order: Order) -> Order:
        instance = OrderModel(
            user_id=order.user_id,
            number=order.number,
            status=order.status,
            accrual=order.accrual,
            uploaded_at=order.uploaded_at,
        )
        try:
            instance = self._add(instance)
        except IntegrityError as e:
            raise DuplicateOrderNumberError(order.number) from e
        return self._to_schema(instance)

    def find_by_number(self, number: str) -> Optional[Order]:
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.number == number)
            .first()
        )
        return self._to_schema(instance)

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self.get_by_id(order_id)

    def find_by_user(self, user_id: int) -> List[Order]:
        instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.uploaded_at), desc(self.model_class.id))
            .all()
        )
        return self._to_schemas(instances)

    def update_status(self, order: Order) -> None:
        # PROCESSED 주문은 다시 쓰지 않음 (다른 디스패처가 먼저 확정한 경우)
        result = self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == order.id,
                self.model_class.status != OrderStatus.PROCESSED,
            )
            .values(status=order.status, accrual=order.accrual)
        )
        if result.rowcount == 0:
            if self.auto_commit:
                self.db.rollback()
            if self.db.get(self.model_class, order.id) is None:
                raise OrderNotFoundError(order.id)
            raise OrderAlreadyProcessedError(order.id)
        self._finish_write()

    def find_pending(self, limit: int) -> List[Order]:
        instances = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.status.in_([OrderStatus.NEW, OrderStatus.PROCESSING])
            )
            .order_by(asc(self.model_class.uploaded_at), asc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(instances)
