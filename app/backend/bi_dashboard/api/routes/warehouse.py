"""Warehouse diagnostics: available views, relation structure, table lookup."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.services.dashboard_service import DashboardService

router = APIRouter(prefix="/warehouse", tags=["warehouse"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/views")
def list_views(
    schema: str | None = None,
    pattern: str = Query(default="%", min_length=1, max_length=255),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).list_views(schema=schema, pattern=pattern)


@router.get("/structure")
def describe_relation(
    schema: str | None = None,
    table: str | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).describe_relation(schema=schema, table_name=table)


@router.get("/find-table")
def find_table(
    table: str = Query(default="avance_proyectos", min_length=1, max_length=255),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).find_table(table)
