"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from bi_dashboard.db.dependencies import get_db_session
from bi_dashboard.db.health import check_database_health

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Simple liveness endpoint."""

    return {"status": "ok"}


@router.get("/health/db")
def database_health(response: Response, db: Session = Depends(get_db_session)) -> dict[str, object]:
    """Database round trip; answers 503 while the warehouse is unreachable."""

    healthy = check_database_health(db)
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"success": healthy, "timestamp": datetime.now(timezone.utc).isoformat()}
