from .interfaces import (
    AbstractBalanceRepository,
    AbstractOrderRepository,
    AbstractOutboxRepository,
    AbstractTransaction,
    AbstractUnitOfWork,
    AbstractWithdrawalRepository,
)
from .order_repository import OrderRepository
from .outbox_repository import OutboxRepository
from .balance_repository import BalanceRepository
from .withdrawal_repository import WithdrawalRepository
from .unit_of_work import SqlAlchemyUnitOfWork
