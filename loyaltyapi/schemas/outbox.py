from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from loyaltyapi.models.order import OutboxStatus


class OutboxRecord(BaseModel):
    """주문 정산 작업 큐 항목 (주문과 1:1)"""

    id: Optional[int] = None
    order_id: int
    status: OutboxStatus = OutboxStatus.PENDING
    retries: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def pending(cls, order_id: int) -> "OutboxRecord":
        now = datetime.now(timezone.utc)
        return cls(
            order_id=order_id,
            status=OutboxStatus.PENDING,
            retries=0,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (OutboxStatus.PROCESSED, OutboxStatus.FAILED)
