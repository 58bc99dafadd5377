"""Engine and session factory bound to the warehouse database."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bi_dashboard.core.config import get_settings

settings = get_settings()

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    pool_timeout=settings.db_pool_timeout_seconds,
    pool_recycle=settings.db_pool_recycle_seconds,
    pool_pre_ping=True,
    future=True,
    execution_options={"schema_translate_map": settings.schema_translate_map},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
