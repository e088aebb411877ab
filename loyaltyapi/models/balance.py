"""
잔액 및 출금 데이터 모델

balances 테이블은 사용자별 사용 가능 포인트(current)와 누적 출금액(withdrawn)을,
withdrawals 테이블은 불변의 출금 내역을 저장합니다.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntegerPK


class Balance(BaseModel):
    __tablename__ = "balances"

    user_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    current: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0"), nullable=False
    )
    withdrawn: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Withdrawal(BaseModel):
    __tablename__ = "withdrawals"
    __table_args__ = (Index("idx_withdrawals_user_processed", "user_id", "processed_at"),)

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    order_number: Mapped[str] = mapped_column(String(255), nullable=False)
    sum: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
