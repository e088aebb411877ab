"""
SQLAlchemy 기반 Unit of Work

begin()이 반환하는 트랜잭션의 리포지토리들은 모두 같은 세션을 공유하며
flush만 수행합니다. commit()을 호출해야 변경이 확정되고,
예외가 발생하거나 commit 없이 블록을 벗어나면 전체가 롤백됩니다.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from loyaltyapi.repositories.balance_repository import BalanceRepository
from loyaltyapi.repositories.interfaces import AbstractTransaction, AbstractUnitOfWork
from loyaltyapi.repositories.order_repository import OrderRepository
from loyaltyapi.repositories.outbox_repository import OutboxRepository
from loyaltyapi.repositories.withdrawal_repository import WithdrawalRepository

logger = logging.getLogger(__name__)


class SqlAlchemyTransaction(AbstractTransaction):
    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepository(db, auto_commit=False)
        self.outbox = OutboxRepository(db, auto_commit=False)
        self.balances = BalanceRepository(db, auto_commit=False)
        self.withdrawals = WithdrawalRepository(db, auto_commit=False)
        self.closed = False

    def commit(self) -> None:
        self.db.commit()
        self.closed = True

    def rollback(self) -> None:
        self.db.rollback()
        self.closed = True


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def begin(self) -> Iterator[SqlAlchemyTransaction]:
        tx = SqlAlchemyTransaction(self.db)
        try:
            yield tx
        except Exception:
            if not tx.closed:
                tx.rollback()
            raise
        if not tx.closed:
            logger.warning("Unit of work exited without commit, rolling back")
            tx.rollback()
