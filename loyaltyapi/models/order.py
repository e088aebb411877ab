"""
주문 및 아웃박스 데이터 모델

주문(orders)은 사용자가 업로드한 구매 영수증 번호를 저장하고,
아웃박스(outbox)는 주문과 같은 트랜잭션에서 생성되는 정산 작업 큐 역할을 합니다.
아웃박스 레코드는 삭제되지 않으며 정산 이력(Audit Trail)으로 남습니다.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from loyaltyapi.models.base import BaseModel, BigIntegerPK, TimestampMixin


class OrderStatus(str, enum.Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


class OutboxStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class Order(BaseModel):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("number", name="uq_orders_number"),
        Index("idx_orders_user_uploaded", "user_id", "uploaded_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    number: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"), default=OrderStatus.NEW, nullable=False
    )
    # PROCESSED 상태에서만 값이 존재
    accrual: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class OutboxRecord(BaseModel, TimestampMixin):
    __tablename__ = "outbox"
    __table_args__ = (
        UniqueConstraint("order_id", name="uq_outbox_order_id"),
        Index("idx_outbox_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("orders.id"), nullable=False
    )
    status: Mapped[OutboxStatus] = mapped_column(
        Enum(OutboxStatus, name="outbox_status"),
        default=OutboxStatus.PENDING,
        nullable=False,
    )
    retries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
