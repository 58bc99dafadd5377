"""Export endpoint for dashboard datasets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.services.dashboard_service import DashboardService
from bi_dashboard.services.leave_summary import ReservedHoursMode

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/{report_key}")
def export_report(
    report_key: str,
    format: str = Query(default="xlsx"),
    company_id: int | None = Query(default=None, ge=1),
    area: str | None = None,
    position: str | None = None,
    user: str | None = None,
    reserved_hours_mode: ReservedHoursMode | None = None,
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_report(
        report_key=report_key,
        format_name=format,
        company_id=company_id,
        area=area,
        position=position,
        user=user,
        reserved_hours_mode=reserved_hours_mode,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
