import logging
from decimal import Decimal
from typing import List

from loyaltyapi.core.exceptions import InsufficientBalanceError, InvalidOrderNumberError
from loyaltyapi.repositories.interfaces import (
    AbstractBalanceRepository,
    AbstractUnitOfWork,
    AbstractWithdrawalRepository,
)
from loyaltyapi.schemas.balance import (
    BalanceResponse,
    Withdrawal,
    WithdrawalResponse,
    WithdrawResponse,
)
from loyaltyapi.utils.luhn import validate_order_number

logger = logging.getLogger(__name__)


class BalanceService:
    """잔액 조회 및 포인트 출금을 담당하는 서비스"""

    def __init__(
        self,
        balance_repo: AbstractBalanceRepository,
        withdrawal_repo: AbstractWithdrawalRepository,
        unit_of_work: AbstractUnitOfWork,
    ):
        self.balance_repo = balance_repo
        self.withdrawal_repo = withdrawal_repo
        self.unit_of_work = unit_of_work

    def get_balance(self, user_id: int) -> BalanceResponse:
        balance = self.balance_repo.get_by_user(user_id)
        return BalanceResponse.from_balance(balance)

    def withdraw(self, user_id: int, order_number: str, sum: Decimal) -> WithdrawResponse:
        """포인트 출금

        출금 내역 생성과 잔액 차감을 하나의 트랜잭션으로 처리합니다.

        Args:
            user_id: 인증된 사용자 ID
            order_number: 출금 대상 주문 번호 (Luhn 검증)
            sum: 출금 포인트

        Returns:
            WithdrawResponse: success=True

        Raises:
            InvalidOrderNumberError: Luhn 체크섬 불일치
            InsufficientBalanceError: 잔액 부족
            NonPositiveAmountError: 0 이하 금액
        """
        if not validate_order_number(order_number):
            raise InvalidOrderNumberError(order_number)

        balance = self.balance_repo.get_by_user(user_id)
        if sum > balance.current:
            logger.info(
                f"Insufficient balance for user {user_id}: "
                f"current={balance.current}, requested={sum}"
            )
            raise InsufficientBalanceError(
                details={"current": str(balance.current), "requested": str(sum)}
            )

        with self.unit_of_work.begin() as tx:
            withdrawal = Withdrawal.new(user_id, order_number, sum)
            tx.withdrawals.create(withdrawal)
            tx.balances.withdraw(user_id, sum)
            tx.commit()

        logger.info(f"User {user_id} withdrew {sum} for order {order_number}")
        return WithdrawResponse(success=True)

    def get_withdrawals(self, user_id: int) -> List[WithdrawalResponse]:
        """사용자 출금 내역 (최신 순)"""
        withdrawals = self.withdrawal_repo.find_by_user(user_id)
        return [WithdrawalResponse.from_withdrawal(w) for w in withdrawals]
