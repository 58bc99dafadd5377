"""Raw capacity, task, and leave datasets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.services.dashboard_service import DashboardService

router = APIRouter(tags=["datasets"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/capacity")
def list_capacity(
    company_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).list_capacity(company_id)


@router.get("/tasks")
def list_tasks(
    company_id: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1, le=10000),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).list_tasks(company_id, limit)


@router.get("/leaves")
def list_leaves(
    company_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).list_leaves(company_id)
