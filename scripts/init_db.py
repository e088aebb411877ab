import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loyaltyapi.database.connection import engine
from loyaltyapi.models.base import Base

# 테이블 등록을 위해 모델 모듈 import
from loyaltyapi.models import balance, order  # noqa: F401


def init_db():
    """데이터베이스 초기화 (orders, outbox, balances, withdrawals 테이블 생성)"""
    try:
        Base.metadata.create_all(bind=engine)
        print(f"Database initialized successfully: {engine.url.render_as_string(hide_password=True)}")
    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
