"""
리포지토리 계약 (추상 클래스)

서비스 계층은 이 인터페이스에만 의존합니다.
SQLAlchemy 구현과 테스트용 인메모리 구현이 모두 이 계약을 따릅니다.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import ContextManager, List, Optional

from loyaltyapi.models.order import OutboxStatus
from loyaltyapi.schemas.balance import Balance, Withdrawal
from loyaltyapi.schemas.order import Order
from loyaltyapi.schemas.outbox import OutboxRecord


class AbstractOrderRepository(ABC):
    @abstractmethod
    def create(self, order: Order) -> Order:
        """주문 저장 - id가 채워진 주문 반환

        Raises:
            DuplicateOrderNumberError: 같은 번호의 주문이 이미 존재하는 경우
        """

    @abstractmethod
    def find_by_number(self, number: str) -> Optional[Order]: ...

    @abstractmethod
    def find_by_id(self, order_id: int) -> Optional[Order]: ...

    @abstractmethod
    def find_by_user(self, user_id: int) -> List[Order]:
        """사용자 주문 목록 (최신 업로드 순)"""

    @abstractmethod
    def update_status(self, order: Order) -> None:
        """주문의 status/accrual 저장 (저장된 상태가 PROCESSED가 아닐 때만)

        Raises:
            OrderNotFoundError: 해당 id의 주문이 없는 경우
            OrderAlreadyProcessedError: 저장된 주문이 이미 PROCESSED인 경우
        """

    @abstractmethod
    def find_pending(self, limit: int) -> List[Order]:
        """정산이 끝나지 않은 주문 (NEW/PROCESSING, 오래된 순)"""


class AbstractOutboxRepository(ABC):
    @abstractmethod
    def create(self, record: OutboxRecord) -> OutboxRecord: ...

    @abstractmethod
    def find_pending(self, limit: int) -> List[OutboxRecord]:
        """PENDING 레코드를 생성 시각 오름차순으로 최대 limit개 조회"""

    @abstractmethod
    def update_status(self, record_id: int, status: OutboxStatus) -> None: ...

    @abstractmethod
    def increment_retries(self, record_id: int) -> None: ...


class AbstractBalanceRepository(ABC):
    @abstractmethod
    def get_by_user(self, user_id: int) -> Balance:
        """잔액 조회 - 레코드가 없으면 0 잔액 반환"""

    @abstractmethod
    def accrue(self, user_id: int, amount: Decimal) -> None:
        """잔액 적립 (레코드가 없으면 생성)"""

    @abstractmethod
    def withdraw(self, user_id: int, amount: Decimal) -> None:
        """잔액 차감

        Raises:
            InsufficientBalanceError: current < amount 인 경우 (변경 없음)
        """


class AbstractWithdrawalRepository(ABC):
    @abstractmethod
    def create(self, withdrawal: Withdrawal) -> Withdrawal: ...

    @abstractmethod
    def find_by_user(self, user_id: int) -> List[Withdrawal]:
        """사용자 출금 내역 (최신 순)"""


class AbstractTransaction(ABC):
    """하나의 트랜잭션에 묶인 리포지토리 묶음"""

    orders: AbstractOrderRepository
    outbox: AbstractOutboxRepository
    balances: AbstractBalanceRepository
    withdrawals: AbstractWithdrawalRepository

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class AbstractUnitOfWork(ABC):
    @abstractmethod
    def begin(self) -> ContextManager[AbstractTransaction]:
        """트랜잭션 시작

        with 블록이 예외로 끝나거나 commit() 없이 끝나면 전체 롤백됩니다.
        """
