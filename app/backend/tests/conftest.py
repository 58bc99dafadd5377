from __future__ import annotations

import os

os.environ.setdefault("DB_HEALTH_CHECK_INTERVAL_SECONDS", "0")
os.environ.setdefault("QUERY_RETRY_BASE_DELAY_SECONDS", "0")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bi_dashboard.db.base import Base
from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.main import create_app
from bi_dashboard.models.entities import (
    CUSTOM_DASHBOARDS,
    WAREHOUSE,
    WAREHOUSE_DEV,
    ActiveCompany,
    CapacityDatamart,
    LeaveRecord,
    ProjectProgress,
    TaskMetrics,
)

TEST_TABLES = [
    ActiveCompany.__table__,
    ProjectProgress.__table__,
    CapacityDatamart.__table__,
    TaskMetrics.__table__,
    LeaveRecord.__table__,
]

# SQLite has no schemas; every logical warehouse schema lands in "main".
SQLITE_SCHEMA_MAP = {WAREHOUSE: None, WAREHOUSE_DEV: None, CUSTOM_DASHBOARDS: None}


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
        execution_options={"schema_translate_map": SQLITE_SCHEMA_MAP},
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
