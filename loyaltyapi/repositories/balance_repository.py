"""
잔액 리포지토리

잔액 변경은 모두 단일 SQL 문으로 수행됩니다:
- 적립: INSERT ... ON CONFLICT (user_id) DO UPDATE SET current = current + :amount
- 출금: UPDATE ... WHERE current >= :amount (갱신된 행이 없으면 잔액 부족)
"""

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import InsufficientBalanceError, NonPositiveAmountError
from loyaltyapi.models.balance import Balance as BalanceModel
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.repositories.interfaces import AbstractBalanceRepository
from loyaltyapi.schemas.balance import Balance


class BalanceRepository(BaseRepository[BalanceModel, Balance], AbstractBalanceRepository):
    def __init__(self, db: Session, auto_commit: bool = True):
        super().__init__(BalanceModel, Balance, db, auto_commit=auto_commit)

    def _insert(self):
        if self.db.get_bind().dialect.name == "sqlite":
            return sqlite.insert(self.model_class)
        return postgresql.insert(self.model_class)

    def get_by_user(self, user_id: int) -> Balance:
        instance = self.db.get(self.model_class, user_id)
        if instance is None:
            return Balance.new(user_id)
        # 같은 세션에서 UPDATE 문으로 바뀐 값을 반영
        self.db.refresh(instance)
        return self._to_schema(instance)

    def accrue(self, user_id: int, amount: Decimal) -> None:
        if amount <= 0:
            raise NonPositiveAmountError("accrual", amount)

        stmt = self._insert().values(
            user_id=user_id, current=amount, withdrawn=Decimal("0")
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.model_class.user_id],
            set_={"current": self.model_class.current + stmt.excluded.current},
        )
        self.db.execute(stmt)
        self._finish_write()

    def withdraw(self, user_id: int, amount: Decimal) -> None:
        if amount <= 0:
            raise NonPositiveAmountError("withdrawal", amount)

        result = self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.user_id == user_id,
                self.model_class.current >= amount,
            )
            .values(
                current=self.model_class.current - amount,
                withdrawn=self.model_class.withdrawn + amount,
            )
        )
        if result.rowcount == 0:
            if self.auto_commit:
                self.db.rollback()
            raise InsufficientBalanceError(
                details={"user_id": user_id, "requested": str(amount)}
            )
        self._finish_write()
