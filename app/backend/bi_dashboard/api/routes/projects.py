"""Project metrics and company endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.services.dashboard_service import DashboardService

router = APIRouter(tags=["projects"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/companies")
def list_companies(db: Session = Depends(get_db_session)) -> list[dict[str, object]]:
    return _service(db).list_companies()


@router.get("/projects")
def list_projects(
    company_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).list_projects(company_id)


@router.get("/projects/company/{company_id}")
def list_projects_by_company(
    company_id: int = Path(ge=1),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).list_projects(company_id)
