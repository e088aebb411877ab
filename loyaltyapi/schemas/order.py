"""
주문 도메인 스키마

Order는 리포지토리가 반환하는 도메인 객체이며 상태 전이 규칙을 직접 검증합니다.

상태 전이:
    NEW -> PROCESSING -> {INVALID, PROCESSED}
    PROCESSED는 종료 상태로, 이후 어떤 전이도 허용되지 않습니다.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from loyaltyapi.core.exceptions import (
    InvalidCarriesAccrualError,
    InvalidUserIdError,
    MissingNumberError,
    NegativeAccrualError,
    TerminalStateViolationError,
)
from loyaltyapi.models.order import OrderStatus


class Order(BaseModel):
    """업로드된 주문 (정산 파이프라인에 의해서만 상태가 변경됨)"""

    id: Optional[int] = None
    user_id: int
    number: str
    status: OrderStatus = OrderStatus.NEW
    accrual: Optional[Decimal] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def new(cls, user_id: int, number: str) -> "Order":
        """신규 주문 생성 - NEW 상태, 적립금 없음"""
        if user_id <= 0:
            raise InvalidUserIdError(user_id)
        if not number:
            raise MissingNumberError()

        return cls(
            user_id=user_id,
            number=number,
            status=OrderStatus.NEW,
            accrual=None,
            uploaded_at=datetime.now(timezone.utc),
        )

    @classmethod
    def restore(
        cls,
        id: int,
        user_id: int,
        number: str,
        status: OrderStatus,
        accrual: Optional[Decimal],
        uploaded_at: datetime,
    ) -> "Order":
        """저장된 값으로 주문 복원 (검증 없이 그대로)"""
        return cls(
            id=id,
            user_id=user_id,
            number=number,
            status=status,
            accrual=accrual,
            uploaded_at=uploaded_at,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status == OrderStatus.PROCESSED

    def check_transition(
        self, new_status: OrderStatus, accrual: Optional[Decimal] = None
    ) -> None:
        """상태 전이 가능 여부 검증 (상태는 변경하지 않음)

        Raises:
            TerminalStateViolationError: 이미 PROCESSED 상태인 경우
            NegativeAccrualError: PROCESSED 전이에 음수 적립금이 전달된 경우
            InvalidCarriesAccrualError: INVALID 전이에 적립금이 전달된 경우
        """
        if self.status == OrderStatus.PROCESSED:
            raise TerminalStateViolationError(self.status.value, new_status.value)

        if new_status == OrderStatus.PROCESSED and accrual is not None and accrual < 0:
            raise NegativeAccrualError(accrual)

        if new_status == OrderStatus.INVALID and accrual is not None:
            raise InvalidCarriesAccrualError(accrual)

    def update_status(
        self, new_status: OrderStatus, accrual: Optional[Decimal] = None
    ) -> None:
        """상태와 적립금을 한 번에 변경 - 검증 실패 시 기존 상태 유지"""
        self.check_transition(new_status, accrual)
        self.status, self.accrual = new_status, accrual


class UploadStatus(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_UPLOADED = "already_uploaded"


class UploadOrderResponse(BaseModel):
    """주문 업로드 결과"""

    status: UploadStatus = Field(..., description="업로드 처리 결과")


class OrderResponse(BaseModel):
    """주문 목록 응답 항목"""

    number: str = Field(..., description="주문 번호")
    status: OrderStatus = Field(..., description="주문 상태")
    accrual: Optional[float] = Field(None, description="적립 포인트 (PROCESSED만)")
    uploaded_at: datetime = Field(..., description="업로드 시간")

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            number=order.number,
            status=order.status,
            accrual=float(order.accrual) if order.accrual is not None else None,
            uploaded_at=order.uploaded_at,
        )
