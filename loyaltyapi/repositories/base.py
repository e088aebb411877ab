from abc import ABC
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Session

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    auto_commit=True(기본): 단독 사용 시 각 쓰기 작업마다 커밋
    auto_commit=False: Unit of Work 내부에서 사용, flush만 수행하고 커밋은 UoW가 담당
    """

    def __init__(
        self,
        model_class: Type[T],
        schema_class: Type[SchemaType],
        db: Session,
        auto_commit: bool = True,
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db
        self.auto_commit = auto_commit

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None

        # Pydantic v2의 model_validate를 사용하여 from_attributes 활용
        return self.schema_class.model_validate(model_instance)

    def _to_schemas(self, model_instances: List[Any]) -> List[SchemaType]:
        return [self._to_schema(instance) for instance in model_instances]

    def _finish_write(self) -> None:
        """쓰기 작업 마무리 - 단독 모드는 커밋, UoW 모드는 flush"""
        try:
            if self.auto_commit:
                self.db.commit()
            else:
                self.db.flush()
        except Exception:
            if self.auto_commit:
                self.db.rollback()
            raise

    def _add(self, instance: T) -> T:
        self.db.add(instance)
        try:
            self.db.flush()
            self.db.refresh(instance)
        except Exception:
            if self.auto_commit:
                self.db.rollback()
            raise
        self._finish_write()
        return instance

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        """ID로 조회 - Pydantic 스키마 반환"""
        return self._to_schema(self.db.get(self.model_class, id))
