from fastapi import Depends
from sqlalchemy.orm import Session

from loyaltyapi.database.session import get_db
from loyaltyapi.repositories.balance_repository import BalanceRepository
from loyaltyapi.repositories.order_repository import OrderRepository
from loyaltyapi.repositories.unit_of_work import SqlAlchemyUnitOfWork
from loyaltyapi.repositories.withdrawal_repository import WithdrawalRepository
from loyaltyapi.services.balance_service import BalanceService
from loyaltyapi.services.order_service import OrderService


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(
        order_repo=OrderRepository(db),
        unit_of_work=SqlAlchemyUnitOfWork(db),
    )


def get_balance_service(db: Session = Depends(get_db)) -> BalanceService:
    return BalanceService(
        balance_repo=BalanceRepository(db),
        withdrawal_repo=WithdrawalRepository(db),
        unit_of_work=SqlAlchemyUnitOfWork(db),
    )
