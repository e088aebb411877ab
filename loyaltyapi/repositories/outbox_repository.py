"""
아웃박스 리포지토리

아웃박스 레코드는 주문 업로드와 같은 트랜잭션에서 생성되며,
정산 워커가 PENDING 레코드를 오래된 순으로 가져가 처리합니다.
"""

from typing import List

from sqlalchemy import asc, func, update
from sqlalchemy.orm import Session

from loyaltyapi.models.order import OutboxRecord as OutboxModel, OutboxStatus
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.repositories.interfaces import AbstractOutboxRepository
from loyaltyapi.schemas.outbox import OutboxRecord


class OutboxRepository(
    BaseRepository[OutboxModel, OutboxRecord], AbstractOutboxRepository
):
    def __init__(self, db: Session, auto_commit: bool = True):
        super().__init__(OutboxModel, OutboxRecord, db, auto_commit=auto_commit)

    def create(self, record: OutboxRecord) -> OutboxRecord:
        instance = OutboxModel(
            order_id=record.order_id,
            status=record.status,
            retries=record.retries,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        return self._to_schema(self._add(instance))

    def find_pending(self, limit: int) -> List[OutboxRecord]:
        instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.status == OutboxStatus.PENDING)
            .order_by(asc(self.model_class.created_at), asc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(instances)

    def update_status(self, record_id: int, status: OutboxStatus) -> None:
        self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == record_id)
            .values(status=status, updated_at=func.now())
        )
        self._finish_write()

    def increment_retries(self, record_id: int) -> None:
        # 동시 갱신에도 값이 유실되지 않도록 DB에서 증가
        self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == record_id)
            .values(retries=self.model_class.retries + 1, updated_at=func.now())
        )
        self._finish_write()
