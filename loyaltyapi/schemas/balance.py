"""
잔액/출금 도메인 스키마

Balance 불변식:
1. current >= 0 (출금 전 잔액 부족 검증)
2. 적립/출금 금액은 항상 양수
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from loyaltyapi.core.exceptions import (
    InsufficientBalanceError,
    InvalidUserIdError,
    MissingNumberError,
    NonPositiveAmountError,
)


class Balance(BaseModel):
    """사용자 포인트 잔액"""

    user_id: int
    current: Decimal = Decimal("0")
    withdrawn: Decimal = Decimal("0")

    class Config:
        from_attributes = True

    @classmethod
    def new(cls, user_id: int) -> "Balance":
        return cls(user_id=user_id, current=Decimal("0"), withdrawn=Decimal("0"))

    @classmethod
    def restore(cls, user_id: int, current: Decimal, withdrawn: Decimal) -> "Balance":
        return cls(user_id=user_id, current=current, withdrawn=withdrawn)

    def accrue(self, amount: Decimal) -> None:
        if amount <= 0:
            raise NonPositiveAmountError("accrual", amount)
        self.current += amount

    def withdraw(self, amount: Decimal) -> None:
        if amount <= 0:
            raise NonPositiveAmountError("withdrawal", amount)
        if self.current < amount:
            raise InsufficientBalanceError(
                details={"current": str(self.current), "requested": str(amount)}
            )
        self.current -= amount
        self.withdrawn += amount

    def can_withdraw(self, amount: Decimal) -> bool:
        return amount > 0 and self.current >= amount


class Withdrawal(BaseModel):
    """포인트 출금 내역 (생성 후 불변)"""

    id: Optional[int] = None
    user_id: int
    order_number: str
    sum: Decimal
    processed_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def new(cls, user_id: int, order_number: str, sum: Decimal) -> "Withdrawal":
        if user_id <= 0:
            raise InvalidUserIdError(user_id)
        if not order_number:
            raise MissingNumberError()
        if sum <= 0:
            raise NonPositiveAmountError("withdrawal", sum)

        return cls(
            user_id=user_id,
            order_number=order_number,
            sum=sum,
            processed_at=datetime.now(timezone.utc),
        )


class BalanceResponse(BaseModel):
    """잔액 조회 응답"""

    current: float = Field(..., description="사용 가능 포인트")
    withdrawn: float = Field(..., description="누적 출금 포인트")

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponse":
        return cls(current=float(balance.current), withdrawn=float(balance.withdrawn))


class WithdrawRequest(BaseModel):
    """출금 요청"""

    order: str = Field(..., description="출금 대상 주문 번호")
    sum: Decimal = Field(..., gt=0, decimal_places=2, description="출금 포인트 (소수점 둘째 자리까지)")


class WithdrawResponse(BaseModel):
    success: bool = Field(..., description="성공 여부")


class WithdrawalResponse(BaseModel):
    """출금 내역 응답 항목"""

    order: str = Field(..., description="주문 번호")
    sum: float = Field(..., description="출금 포인트")
    processed_at: datetime = Field(..., description="처리 시간")

    @classmethod
    def from_withdrawal(cls, withdrawal: Withdrawal) -> "WithdrawalResponse":
        return cls(
            order=withdrawal.order_number,
            sum=float(withdrawal.sum),
            processed_at=withdrawal.processed_at,
        )
