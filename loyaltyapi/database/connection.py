from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from loyaltyapi.config import Settings, settings


def build_engine(config: Settings) -> Engine:
    if config.is_sqlite:
        return create_engine(
            config.DATABASE_URI,
            connect_args={"check_same_thread": False},
            echo=config.DEBUG,
        )
    return create_engine(
        config.DATABASE_URI,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=config.DEBUG,  # 디버그 모드에서 SQL 로깅
    )


engine = build_engine(settings)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
