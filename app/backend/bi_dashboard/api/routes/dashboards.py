"""Dashboard endpoints for capacity usage, leaves, and project status."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.services.dashboard_service import DashboardService
from bi_dashboard.services.leave_summary import ReservedHoursMode
from bi_dashboard.services.project_metrics import ProjectSortField, SortOrder

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/capacity-usage")
def get_capacity_usage(
    company_id: int | None = Query(default=None, ge=1),
    area: str | None = None,
    position: str | None = None,
    user: str | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.capacity_usage(company_id=company_id, area=area, position=position, user=user)


@router.get("/capacity-monthly")
def get_capacity_monthly(
    company_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).capacity_monthly(company_id=company_id)


@router.get("/leaves")
def get_leaves_dashboard(
    company_id: int | None = Query(default=None, ge=1),
    user_id: str | None = None,
    project_id: str | None = None,
    month: str | None = None,
    from_month: str | None = None,
    to_month: str | None = None,
    reserved_hours_mode: ReservedHoursMode | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.leaves_dashboard(
        company_id=company_id,
        user_id=user_id,
        project_id=project_id,
        month=month,
        from_month=from_month,
        to_month=to_month,
        reserved_hours_mode=reserved_hours_mode,
    )


@router.get("/projects")
def get_projects_dashboard(
    company_id: int | None = Query(default=None, ge=1),
    start_date_from: date | None = None,
    start_date_to: date | None = None,
    status: str | None = None,
    client: str | None = None,
    show_empty: bool = False,
    sort_field: ProjectSortField = ProjectSortField.MARGIN_PERCENTAGE,
    order: SortOrder = SortOrder.DESC,
    client_limit: int = Query(default=15, ge=1, le=500),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.projects_dashboard(
        company_id=company_id,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        status_filter=status,
        client=client,
        show_empty=show_empty,
        sort_field=sort_field,
        order=order,
        client_limit=client_limit,
    )
