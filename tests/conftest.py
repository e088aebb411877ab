import copy
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loyaltyapi.core.exceptions import (
    DuplicateOrderNumberError,
    OrderAlreadyProcessedError,
    OrderNotFoundError,
)
from loyaltyapi.models import balance as balance_models  # noqa: F401
from loyaltyapi.models import order as order_models  # noqa: F401
from loyaltyapi.models.base import Base
from loyaltyapi.models.order import OrderStatus, OutboxStatus
from loyaltyapi.repositories.interfaces import (
    AbstractBalanceRepository,
    AbstractOrderRepository,
    AbstractOutboxRepository,
    AbstractTransaction,
    AbstractUnitOfWork,
    AbstractWithdrawalRepository,
)
from loyaltyapi.schemas.accrual import AccrualResponse
from loyaltyapi.schemas.balance import Balance, Withdrawal
from loyaltyapi.schemas.order import Order
from loyaltyapi.schemas.outbox import OutboxRecord
from loyaltyapi.services.accrual_client import AccrualTransientError


# ============================================================================
# In-memory fakes
# ============================================================================


class InMemoryStore:
    """리포지토리 fake들이 공유하는 저장소 (UoW 롤백 시 스냅샷으로 복원)"""

    def __init__(self):
        self.orders: Dict[int, Order] = {}
        self.outbox: Dict[int, OutboxRecord] = {}
        self.balances: Dict[int, Balance] = {}
        self.withdrawals: List[Withdrawal] = []
        self.next_id = 1

    def allocate_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "orders": self.orders,
                "outbox": self.outbox,
                "balances": self.balances,
                "withdrawals": self.withdrawals,
                "next_id": self.next_id,
            }
        )

    def restore(self, snapshot: dict) -> None:
        for key, value in snapshot.items():
            setattr(self, key, value)


class InMemoryOrderRepository(AbstractOrderRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.status_updates: List[Order] = []

    def create(self, order: Order) -> Order:
        if any(o.number == order.number for o in self.store.orders.values()):
            raise DuplicateOrderNumberError(order.number)
        stored = order.model_copy(update={"id": self.store.allocate_id()})
        self.store.orders[stored.id] = stored
        return stored.model_copy()

    def find_by_number(self, number: str) -> Optional[Order]:
        for order in self.store.orders.values():
            if order.number == number:
                return order.model_copy()
        return None

    def find_by_id(self, order_id: int) -> Optional[Order]:
        order = self.store.orders.get(order_id)
        return order.model_copy() if order else None

    def find_by_user(self, user_id: int) -> List[Order]:
        orders = [o for o in self.store.orders.values() if o.user_id == user_id]
        orders.sort(key=lambda o: (o.uploaded_at, o.id), reverse=True)
        return [o.model_copy() for o in orders]

    def update_status(self, order: Order) -> None:
        if order.id not in self.store.orders:
            raise OrderNotFoundError(order.id)
        if self.store.orders[order.id].status == OrderStatus.PROCESSED:
            raise OrderAlreadyProcessedError(order.id)
        self.status_updates.append(order.model_copy())
        self.store.orders[order.id] = self.store.orders[order.id].model_copy(
            update={"status": order.status, "accrual": order.accrual}
        )

    def find_pending(self, limit: int) -> List[Order]:
        orders = [
            o
            for o in self.store.orders.values()
            if o.status in (OrderStatus.NEW, OrderStatus.PROCESSING)
        ]
        orders.sort(key=lambda o: (o.uploaded_at, o.id))
        return [o.model_copy() for o in orders[:limit]]


class InMemoryOutboxRepository(AbstractOutboxRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def create(self, record: OutboxRecord) -> OutboxRecord:
        stored = record.model_copy(update={"id": self.store.allocate_id()})
        self.store.outbox[stored.id] = stored
        return stored.model_copy()

    def find_pending(self, limit: int) -> List[OutboxRecord]:
        records = [
            r for r in self.store.outbox.values() if r.status == OutboxStatus.PENDING
        ]
        records.sort(key=lambda r: (r.created_at, r.id))
        return [r.model_copy() for r in records[:limit]]

    def update_status(self, record_id: int, status: OutboxStatus) -> None:
        self.store.outbox[record_id].status = status

    def increment_retries(self, record_id: int) -> None:
        self.store.outbox[record_id].retries += 1


class InMemoryBalanceRepository(AbstractBalanceRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store
        self.accrue_calls: List[tuple] = []

    def get_by_user(self, user_id: int) -> Balance:
        balance = self.store.balances.get(user_id)
        return balance.model_copy() if balance else Balance.new(user_id)

    def accrue(self, user_id: int, amount: Decimal) -> None:
        self.accrue_calls.append((user_id, amount))
        balance = self.store.balances.get(user_id) or Balance.new(user_id)
        balance.accrue(amount)
        self.store.balances[user_id] = balance

    def withdraw(self, user_id: int, amount: Decimal) -> None:
        balance = self.get_by_user(user_id)
        balance.withdraw(amount)
        self.store.balances[user_id] = balance


class InMemoryWithdrawalRepository(AbstractWithdrawalRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def create(self, withdrawal: Withdrawal) -> Withdrawal:
        stored = withdrawal.model_copy(update={"id": self.store.allocate_id()})
        self.store.withdrawals.append(stored)
        return stored.model_copy()

    def find_by_user(self, user_id: int) -> List[Withdrawal]:
        items = [w for w in self.store.withdrawals if w.user_id == user_id]
        items.sort(key=lambda w: (w.processed_at, w.id), reverse=True)
        return [w.model_copy() for w in items]


class InMemoryTransaction(AbstractTransaction):
    def __init__(self, uow: "InMemoryUnitOfWork"):
        self.uow = uow
        self.orders = uow.orders
        self.outbox = uow.outbox
        self.balances = uow.balances
        self.withdrawals = uow.withdrawals
        self.snapshot = uow.store.snapshot()
        self.closed = False

    def commit(self) -> None:
        self.uow.commits += 1
        self.closed = True

    def rollback(self) -> None:
        self.uow.store.restore(self.snapshot)
        self.uow.rollbacks += 1
        self.closed = True


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store, orders, outbox, balances, withdrawals):
        self.store = store
        self.orders = orders
        self.outbox = outbox
        self.balances = balances
        self.withdrawals = withdrawals
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def begin(self):
        tx = InMemoryTransaction(self)
        try:
            yield tx
        except Exception:
            if not tx.closed:
                tx.rollback()
            raise
        if not tx.closed:
            tx.rollback()


class StubAccrualClient:
    """주문 번호별로 미리 정한 응답(또는 예외)을 돌려주는 적립 시스템 대역"""

    def __init__(self, responses: Optional[Dict[str, Union[AccrualResponse, Exception]]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    async def get_order_info(self, number: str) -> AccrualResponse:
        self.calls.append(number)
        result = self.responses.get(number)
        if result is None:
            raise AccrualTransientError(f"no stubbed response for {number}")
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        pass


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def order_repo(store):
    return InMemoryOrderRepository(store)


@pytest.fixture
def outbox_repo(store):
    return InMemoryOutboxRepository(store)


@pytest.fixture
def balance_repo(store):
    return InMemoryBalanceRepository(store)


@pytest.fixture
def withdrawal_repo(store):
    return InMemoryWithdrawalRepository(store)


@pytest.fixture
def unit_of_work(store, order_repo, outbox_repo, balance_repo, withdrawal_repo):
    return InMemoryUnitOfWork(store, order_repo, outbox_repo, balance_repo, withdrawal_repo)


@pytest.fixture
def accrual_client():
    return StubAccrualClient()


@pytest.fixture
def seed_order(order_repo, outbox_repo):
    """주문 + PENDING 아웃박스 한 쌍을 저장하는 헬퍼"""

    def _seed(
        number: str,
        user_id: int = 1,
        status: OrderStatus = OrderStatus.NEW,
        retries: int = 0,
        age_seconds: int = 0,
    ):
        created = datetime.now(timezone.utc) - timedelta(seconds=age_seconds)
        order = Order.new(user_id, number).model_copy(
            update={"status": status, "uploaded_at": created}
        )
        order = order_repo.create(order)
        record = OutboxRecord.pending(order.id).model_copy(
            update={"retries": retries, "created_at": created}
        )
        record = outbox_repo.create(record)
        return order, record

    return _seed


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
