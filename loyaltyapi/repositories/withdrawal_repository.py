from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from loyaltyapi.models.balance import Withdrawal as WithdrawalModel
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.repositories.interfaces import AbstractWithdrawalRepository
from loyaltyapi.schemas.balance import Withdrawal


class WithdrawalRepository(
    BaseRepository[WithdrawalModel, Withdrawal], AbstractWithdrawalRepository
):
    """출금 내역 리포지토리 (추가 전용)"""

    def __init__(self, db: Session, auto_commit: bool = True):
        super().__init__(WithdrawalModel, Withdrawal, db, auto_commit=auto_commit)

    def create(self, withdrawal: Withdrawal) -> Withdrawal:
        instance = WithdrawalModel(
            user_id=withdrawal.user_id,
            order_number=withdrawal.order_number,
            sum=withdrawal.sum,
            processed_at=withdrawal.processed_at,
        )
        return self._to_schema(self._add(instance))

    def find_by_user(self, user_id: int) -> List[Withdrawal]:
        instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.processed_at), desc(self.model_class.id))
            .all()
        )
        return self._to_schemas(instances)
