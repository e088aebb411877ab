"""
DB 세션 수명 관리

- get_db: 요청 단위 세션 (FastAPI Depends). 커밋은 리포지토리와 Unit of Work가 담당
- get_db_context: 정산 워커 tick처럼 요청 밖에서 쓰는 세션. 정상 종료 시 남은 변경 커밋
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from loyaltyapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            logger.warning("Request failed with open transaction, rolling back")
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
        if db.in_transaction():
            db.commit()
    except Exception as e:
        logger.error(f"Session rolled back: {e}")
        db.rollback()
        raise
    finally:
        db.close()
