from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AccrualStatus(str, Enum):
    """외부 적립 시스템이 반환하는 주문 상태"""

    REGISTERED = "REGISTERED"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


class AccrualResponse(BaseModel):
    """GET /api/orders/{number} 응답 본문

    status는 알 수 없는 값도 그대로 받아 정산 단계에서 판단합니다.
    """

    order: str = Field(..., description="주문 번호")
    status: str = Field(..., description="적립 처리 상태")
    accrual: Optional[Decimal] = Field(None, description="적립 포인트 (PROCESSED만)")
