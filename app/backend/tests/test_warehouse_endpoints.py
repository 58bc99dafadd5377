from __future__ import annotations

from collections.abc import Generator
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.main import create_app
from bi_dashboard.models.entities import ActiveCompany, LeaveRecord, ProjectProgress, TaskMetrics
from bi_dashboard.repositories.warehouse_repository import like_to_regex


def _seed_companies(db: Session) -> None:
    db.execute(insert(ActiveCompany.__table__), [{"id": 2, "name": "Zeta"}, {"id": 1, "name": "Acme"}])
    db.commit()


def test_companies_are_sorted_by_name(client: TestClient, db_session: Session) -> None:
    _seed_companies(db_session)

    response = client.get("/api/v1/companies")

    assert response.status_code == 200
    assert response.json() == [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Zeta"}]


def test_projects_by_company(client: TestClient, db_session: Session) -> None:
    for row in [
        {"company_id": 1, "project_id": 10, "client_name": "B", "project_name": "x", "start_date": date(2024, 1, 1)},
        {"company_id": 1, "project_id": 11, "client_name": "A", "project_name": "y", "worked_hours": Decimal("5")},
        {"company_id": 2, "project_id": 12, "client_name": "A", "project_name": "z"},
    ]:
        db_session.execute(insert(ProjectProgress.__table__), row)
    db_session.commit()

    everything = client.get("/api/v1/projects")
    company = client.get("/api/v1/projects/company/1")
    invalid = client.get("/api/v1/projects/company/0")

    assert [row["project_id"] for row in everything.json()] == [11, 10, 12]
    rows = company.json()
    assert [row["project_id"] for row in rows] == [11, 10]
    assert rows[0]["worked_hours"] == "5.00"
    assert rows[1]["start_date"] == "2024-01-01"
    assert invalid.status_code == 422


def test_tasks_are_newest_first_and_limited(client: TestClient, db_session: Session) -> None:
    db_session.execute(
        insert(TaskMetrics.__table__),
        [
            {"company_id": 1, "user_id": 1, "user": "Ana", "project_name": "P", "task_name": "t", "day": date(2023, 10, d)}
            for d in (1, 3, 2)
        ],
    )
    db_session.commit()

    response = client.get("/api/v1/tasks", params={"company_id": 1, "limit": 2})

    assert response.status_code == 200
    assert [row["day"] for row in response.json()] == ["2023-10-03", "2023-10-02"]


def test_leaves_are_passed_through(client: TestClient, db_session: Session) -> None:
    db_session.execute(
        insert(LeaveRecord.__table__),
        [
            {"company_id": 4195, "user_id": 1, "user_name": "Ana", "month": "2023-10", "licencias": "[1]"},
            {"company_id": 7, "user_id": 2, "user_name": "Luis", "month": "2023-11", "licencias": "[2]"},
        ],
    )
    db_session.commit()

    everything = client.get("/api/v1/leaves")
    company = client.get("/api/v1/leaves", params={"company_id": 4195})

    assert [row["month"] for row in everything.json()] == ["2023-11", "2023-10"]
    assert [row["user_name"] for row in company.json()] == ["Ana"]


def test_database_failure_maps_to_service_unavailable() -> None:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    session = sessionmaker(bind=engine, future=True)()
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_db
    try:
        with TestClient(app) as test_client:
            response = test_client.get("/api/v1/companies")
    finally:
        session.close()

    assert response.status_code == 503
    assert "warehouse is unavailable" in response.json()["detail"]


def test_like_patterns() -> None:
    assert like_to_regex("llyc%").match("llyc_leaves_main_query_view")
    assert like_to_regex("a_c").match("abc")
    assert not like_to_regex("a_c").match("abbc")
    assert like_to_regex("50%.view").match("50 percent.view")
    assert not like_to_regex("x.y").match("xzy")


def test_warehouse_diagnostics(client: TestClient, db_session: Session) -> None:
    _seed_companies(db_session)
    db_session.execute(text("CREATE VIEW company_names_view AS SELECT name FROM active_companies"))
    db_session.commit()

    views = client.get("/api/v1/warehouse/views", params={"schema": "main", "pattern": "company%"})
    no_views = client.get("/api/v1/warehouse/views", params={"schema": "main", "pattern": "leaves%"})
    structure = client.get("/api/v1/warehouse/structure", params={"schema": "main", "table": "active_companies"})
    missing = client.get("/api/v1/warehouse/structure", params={"schema": "main", "table": "nope"})
    found = client.get("/api/v1/warehouse/find-table", params={"table": "active_companies"})
    not_found = client.get("/api/v1/warehouse/find-table", params={"table": "nope"})

    assert views.json() == {
        "schema": "main",
        "views": [{"table_name": "company_names_view", "table_schema": "main"}],
        "count": 1,
    }
    assert no_views.json()["count"] == 0

    payload = structure.json()
    assert [column["column_name"] for column in payload["columns"]] == ["id", "name"]
    assert payload["column_count"] == 2
    assert len(payload["sample_data"]) == 2

    assert missing.status_code == 404
    assert found.json() == {
        "table": "active_companies",
        "found": True,
        "locations": [{"table_schema": "main", "table_name": "active_companies"}],
    }
    assert not_found.json()["found"] is False
